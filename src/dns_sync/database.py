"""
Database initialization for the Provider → Zone → Record cache.

This module provides:
- Database path resolution from configuration
- Table creation for the cache schema
"""
import logging
import os

from .config_defaults import get_default

# Import all models to ensure they're registered with SQLAlchemy
from .models import DnsProvider, DnsRecord, DnsZone, db  # noqa: F401

logger = logging.getLogger(__name__)


def get_db_path() -> str:
    """
    Get database file path.
    Priority: environment variable > .env/.env.defaults > current directory
    """
    db_path = get_default('DNS_SYNC_DB_PATH')
    if db_path and os.path.isabs(db_path):
        logger.info(f"Using configured database path: {db_path}")
        return db_path

    db_path = os.path.join(os.getcwd(), db_path or 'dns_sync.db')
    logger.info(f"Using database path: {db_path}")
    return db_path


def init_db(app):
    """
    Initialize database with Flask app.

    Keeps a SQLALCHEMY_DATABASE_URI the app already carries (tests use
    this), otherwise points at the configured sqlite file. Creates all
    tables.
    """
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{get_db_path()}'
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)

    db.init_app(app)

    with app.app_context():
        db.create_all()
        logger.info("Database tables created/verified")
