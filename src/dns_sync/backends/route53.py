"""
AWS Route 53 backend.

Cloud DNS API keyed by hosted-zone id. Credentials are parsed and checked
at construction; remote operations are not implemented yet.
"""

import logging
from typing import Any, Dict

from .unimplemented import UnimplementedBackend

logger = logging.getLogger(__name__)


class Route53Backend(UnimplementedBackend):
    """AWS Route 53 backend."""

    provider_type = 'route53'

    CONFIG_SCHEMA = {
        'type': 'object',
        'required': ['access_key_id', 'secret_access_key'],
        'properties': {
            'access_key_id': {'type': 'string', 'minLength': 1},
            'secret_access_key': {'type': 'string', 'minLength': 1},
            'region': {'type': 'string'},
            'timeout': {'type': ['number', 'null']},
            'rate_limit': {'type': ['integer', 'null']},
        },
    }

    def __init__(self, config: Dict[str, Any], log: logging.Logger | None = None, **kwargs):
        super().__init__(config, log=log or logger)

    def _configure(self, config: Dict[str, Any]) -> None:
        self.access_key_id = config['access_key_id']
        self.secret_access_key = config['secret_access_key']
        self.region = config.get('region', 'us-east-1')
