"""
Backend Registry and Resolution.

Maps the closed set of provider types to backend classes and builds a
configured backend for a DnsProvider row. No network calls happen here.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Type

import httpx

from .base import ConfigurationError, DNSBackend
from .bind import BindBackend
from .cloudflare import CloudflareBackend
from .powerdns import PowerDNSBackend
from .route53 import Route53Backend

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """DNS provider types a DnsProvider row may declare."""
    POWERDNS = 'powerdns'
    CLOUDFLARE = 'cloudflare'
    BIND9 = 'bind9'
    ROUTE53 = 'route53'

    @classmethod
    def parse(cls, value: Any) -> 'ProviderType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(f"Unknown backend provider: {value}")


BACKEND_REGISTRY: Dict[ProviderType, Type[DNSBackend]] = {
    ProviderType.POWERDNS: PowerDNSBackend,
    ProviderType.CLOUDFLARE: CloudflareBackend,
    ProviderType.BIND9: BindBackend,
    ProviderType.ROUTE53: Route53Backend,
}

_missing = set(ProviderType) - set(BACKEND_REGISTRY)
if _missing:
    raise ImportError(f"No backend registered for provider types: {sorted(t.value for t in _missing)}")


def get_backend(
    provider_type: str | ProviderType,
    config: Dict[str, Any],
    log: Optional[logging.Logger] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> DNSBackend:
    """Get backend instance by provider type and configuration.

    Args:
        provider_type: Provider type tag (e.g., 'powerdns', 'cloudflare')
        config: Provider-specific connection configuration
        log: Logger injected into the backend
        transport: httpx transport override (tests, proxies)

    Returns:
        Configured DNSBackend instance

    Raises:
        ConfigurationError: If provider type is unknown or config is invalid
    """
    backend_class = BACKEND_REGISTRY[ProviderType.parse(provider_type)]
    return backend_class(config, log=log, transport=transport)


def make_backend(
    provider: 'DnsProvider',
    log: Optional[logging.Logger] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> DNSBackend:
    """Create backend instance from a DnsProvider row.

    The row's ``timeout`` and ``rate_limit`` columns fill in the connection
    map where it does not set them itself.

    Raises:
        ConfigurationError: If provider type is unknown or config is invalid
    """
    config = provider.get_connection_config()
    if provider.timeout is not None:
        config.setdefault('timeout', provider.timeout)
    if provider.rate_limit is not None:
        config.setdefault('rate_limit', provider.rate_limit)

    logger.debug(f"Building {provider.type} backend for provider {provider.name}")
    return get_backend(provider.type, config, log=log, transport=transport)


def get_available_providers() -> Dict[str, Type[DNSBackend]]:
    """Get dict of available backend providers keyed by type tag."""
    return {ptype.value: cls for ptype, cls in BACKEND_REGISTRY.items()}
