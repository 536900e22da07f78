"""
BIND zone-file server backend.

Zones are plain files on a remote host reached through the platform's
remote-command transport. Only configuration parsing exists so far.
"""

import logging
from typing import Any, Dict

from .unimplemented import UnimplementedBackend

logger = logging.getLogger(__name__)


class BindBackend(UnimplementedBackend):
    """BIND 9 zone-file backend."""

    provider_type = 'bind9'

    CONFIG_SCHEMA = {
        'type': 'object',
        'required': ['host', 'zone_path'],
        'properties': {
            'host': {'type': 'string', 'minLength': 1},
            'zone_path': {'type': 'string', 'minLength': 1},
            'config_path': {'type': 'string'},
            'reload_command': {'type': 'string'},
            'timeout': {'type': ['number', 'null']},
            'rate_limit': {'type': ['integer', 'null']},
        },
    }

    def __init__(self, config: Dict[str, Any], log: logging.Logger | None = None, **kwargs):
        super().__init__(config, log=log or logger)

    def _configure(self, config: Dict[str, Any]) -> None:
        self.host = config['host']
        self.zone_path = config['zone_path'].rstrip('/') + '/'
        self.config_path = config.get('config_path', '/etc/bind/')
        self.reload_command = config.get('reload_command', 'rndc reload')
