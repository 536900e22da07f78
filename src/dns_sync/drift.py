"""
Drift detection between the local zone cache and a provider.

Read-only: compares zone names, never mutates either side.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from .models import DnsProvider, DnsZone

logger = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    return (name or '').strip().rstrip('.').lower()


def compare_zone_names(local: Iterable[str], remote: Iterable[str]) -> Dict[str, List[str]]:
    """Split two zone-name inventories into what only one side has.

    Names compare case-insensitively and without trailing dot.
    """
    local_set = {_normalize(n) for n in local if _normalize(n)}
    remote_set = {_normalize(n) for n in remote if _normalize(n)}
    return {
        'local_only': sorted(local_set - remote_set),
        'remote_only': sorted(remote_set - local_set),
    }


def detect_drift(provider: DnsProvider, client: Optional[Any] = None) -> Dict[str, Any]:
    """Compare cached zones of a provider with a fresh get_all_zones().

    Returns:
        {'local_only': [...], 'remote_only': [...]}, plus 'error' with the
        degradation reason when the provider could not be listed (both
        lists are then empty rather than reporting every cached zone as
        local-only)
    """
    client = client or provider.get_client()
    read = client.get_all_zones()
    if read.degraded:
        logger.warning(f"Drift check for provider {provider.name} skipped: {read.message}")
        return {'local_only': [], 'remote_only': [], 'error': read.reason}

    local_names = [z.name for z in DnsZone.live().filter_by(dns_provider_id=provider.id)]
    drift = compare_zone_names(local_names, [z.get('name', '') for z in read.data])

    if drift['local_only'] or drift['remote_only']:
        logger.info(
            f"Provider {provider.name} drift: {len(drift['local_only'])} local-only, "
            f"{len(drift['remote_only'])} remote-only zones"
        )
    return drift
