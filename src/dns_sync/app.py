"""
Flask application factory for dns-sync.

The app only hosts configuration and the database session; callers work
with the models and DnsProviderService inside ``app.app_context()``.
"""
import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask

from .config_defaults import get_default
from .database import init_db

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once, level from LOG_LEVEL."""
    level_name = (level or get_default('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Extra Flask config applied before the database is set up
            (e.g. SQLALCHEMY_DATABASE_URI for tests)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY') or get_default('SECRET_KEY', 'dns-sync-dev')
    if config:
        app.config.update(config)

    init_db(app)
    logger.info("dns-sync application initialized")
    return app
