"""
DNS Backend Abstraction Layer.

This module provides a pluggable backend system for DNS providers.
Each backend implements the DNSBackend interface.

Supported providers:
- powerdns: PowerDNS Authoritative Server (record-set API)
- cloudflare: Cloudflare (flat-record REST API)
- bind9: BIND zone-file server (not implemented yet)
- route53: AWS Route 53 (not implemented yet)

Usage:
    from dns_sync.backends import get_backend, make_backend

    # Get backend by provider type and config
    backend = get_backend('powerdns', {'api_url': '...', 'api_key': '...'})

    # Get backend for a DnsProvider row
    backend = make_backend(provider)
"""

from .base import (
    AlreadyExists,
    BackendError,
    ConfigurationError,
    DNSBackend,
    NotImplementedByBackend,
    ReadResult,
)
from .bind import BindBackend
from .cloudflare import CloudflareBackend
from .powerdns import PowerDNSBackend
from .registry import BACKEND_REGISTRY, ProviderType, get_backend, make_backend
from .route53 import Route53Backend

__all__ = [
    'AlreadyExists',
    'BackendError',
    'ConfigurationError',
    'DNSBackend',
    'NotImplementedByBackend',
    'ReadResult',
    'BACKEND_REGISTRY',
    'ProviderType',
    'get_backend',
    'make_backend',
    'BindBackend',
    'CloudflareBackend',
    'PowerDNSBackend',
    'Route53Backend',
]
