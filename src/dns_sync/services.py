"""
DNS provider service.

Operations that span several cache entities: bulk sync of a provider,
zone import, validated zone/record creation, status reporting and
BIND-format export. Single-entity writes live on the models.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .backends.base import BackendError, ConfigurationError, strip_priority
from .config_defaults import get_int
from .drift import detect_drift
from .models import DnsProvider, DnsRecord, DnsZone, db, normalize_kind, utcnow
from .rrset import strip_trailing_dot
from .validation import (
    is_valid_record_type,
    requires_priority,
    validate_domain_name,
    validate_record_content,
)
from .writethrough import WriteOutcome

logger = logging.getLogger(__name__)


class DnsProviderService:
    """Provider-level operations on the zone/record cache."""

    def sync_provider_from_remote(self, provider: DnsProvider) -> Dict[str, Any]:
        """Import every zone the provider reports, with its records.

        Zones are upserted by (provider, name). A failing zone is reported
        in ``errors`` and does not stop the others.

        Returns:
            {'zones': int, 'records': int, 'errors': [str, ...]}
        """
        results: Dict[str, Any] = {'zones': 0, 'records': 0, 'errors': []}

        try:
            client = provider.get_client()
        except ConfigurationError as e:
            logger.error(f"Provider {provider.name} sync failed: {e}")
            results['errors'].append(f"Provider sync failed: {e}")
            return results

        read = client.get_all_zones()
        if read.degraded:
            results['errors'].append(f"Provider sync failed: {read.message}")
            return results

        for remote in read.data:
            name = strip_trailing_dot(remote.get('name', '')).lower()
            try:
                zone = self._upsert_zone(provider, remote)
                db.session.commit()
                results['zones'] += 1

                synced = zone.sync_records_from_remote()
                if synced < 0:
                    results['errors'].append(f"Zone {name}: records could not be read from provider")
                else:
                    results['records'] += synced
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Zone {name} sync failed: {e}")
                results['errors'].append(f"Zone {name}: {e}")

        provider.last_sync = utcnow()
        db.session.commit()
        logger.info(
            f"Provider {provider.name} synced: {results['zones']} zones, "
            f"{results['records']} records, {len(results['errors'])} errors"
        )
        return results

    def _upsert_zone(self, provider: DnsProvider, remote: Dict[str, Any]) -> DnsZone:
        name = strip_trailing_dot(remote.get('name', '')).lower()
        zone = DnsZone.query.filter_by(dns_provider_id=provider.id, name=name).first()
        if zone is None:
            zone = DnsZone(dns_provider_id=provider.id, name=name, serial=0)
            db.session.add(zone)

        zone.external_id = str(remote['id']) if remote.get('id') is not None else zone.external_id
        zone.kind = normalize_kind(remote.get('kind'), zone.kind or 'primary')
        if remote.get('serial') is not None and int(remote['serial']) >= int(zone.serial or 0):
            zone.serial = int(remote['serial'])
        if remote.get('nameservers'):
            zone.set_nameservers(remote['nameservers'])
        if remote.get('masters'):
            zone.set_masters(remote['masters'])
        zone.active = True
        zone.deleted_at = None
        zone.last_check = utcnow()
        zone.last_synced = zone.last_check
        zone.set_provider_data(remote.get('provider_data', remote))
        return zone

    def import_zone(self, provider: DnsProvider, zone_id: str) -> Optional[DnsZone]:
        """Cache one remote zone and its records; None if the provider has no such zone."""
        read = provider.get_client().get_zone(zone_id)
        if read.degraded or not read.data:
            logger.warning(f"Import of zone {zone_id} from {provider.name} failed: {read.message or 'not found'}")
            return None

        zone = self._upsert_zone(provider, read.data)
        db.session.commit()
        zone.sync_records_from_remote()
        logger.info(f"Imported zone {zone.name} from provider {provider.name}")
        return zone

    def list_zones(self, provider: DnsProvider) -> List[Dict[str, Any]]:
        """Zones as the provider reports them right now ([] when unreachable)."""
        try:
            client = provider.get_client()
        except ConfigurationError as e:
            logger.error(f"Failed to list zones of {provider.name}: {e}")
            return []
        return client.get_all_zones().data

    def create_zone(self, provider: DnsProvider, data: Dict[str, Any]) -> WriteOutcome:
        """Validate, then create the zone on the provider before caching it."""
        is_valid, error = validate_domain_name(data.get('name', ''))
        if not is_valid:
            return WriteOutcome.invalid(error)

        name = strip_trailing_dot(data['name']).lower()
        kind = str(data.get('kind', 'primary')).lower()
        if not normalize_kind(kind, ''):
            return WriteOutcome.invalid(f"Unsupported zone kind: {data.get('kind')}")

        zone = DnsZone.query.filter_by(dns_provider_id=provider.id, name=name).first()
        if zone is not None and zone.deleted_at is None:
            return WriteOutcome.exists(f"Zone {name} already exists for provider {provider.name}")
        if zone is None:
            zone = DnsZone(dns_provider_id=provider.id, name=name)

        outcome = zone.create_on_remote({
            'name': name,
            'kind': normalize_kind(kind),
            'ttl': data.get('ttl') or get_int('DNS_SYNC_DEFAULT_TTL', 3600),
            'description': data.get('description'),
            'nameservers': data.get('nameservers') or [],
            'masters': data.get('masters') or [],
        })
        outcome.entity = zone if outcome else None
        return outcome

    def create_record(self, zone: DnsZone, data: Dict[str, Any]) -> WriteOutcome:
        """Validate, then create the record remote-first.

        RRset backends merge the value into its existing record-set.
        """
        record_type = (data.get('type') or '').upper()
        if not is_valid_record_type(record_type):
            return WriteOutcome.invalid(f"Unsupported record type: {record_type or '(empty)'}")

        record = DnsRecord(
            dns_zone_id=zone.id,
            name=data.get('name') or '@',
            type=record_type,
            content=data.get('content', ''),
            ttl=data.get('ttl'),
            priority=data.get('priority'),
            disabled=bool(data.get('disabled', False)),
            comment=data.get('comment'),
        )
        outcome = record.create_on_remote()
        outcome.entity = record if outcome else None
        return outcome

    def update_record(self, record: DnsRecord, data: Dict[str, Any]) -> WriteOutcome:
        outcome = record.update_on_remote(data)
        outcome.entity = record
        return outcome

    def delete_record(self, record: DnsRecord) -> WriteOutcome:
        outcome = record.delete_on_remote()
        outcome.entity = record
        return outcome

    def delete_provider(self, provider: DnsProvider) -> bool:
        """Remove a provider from the store.

        Hard delete only when no zone row (live or soft-deleted) points at
        it; otherwise the provider is deactivated.

        Returns:
            True if the row was deleted, False if it was deactivated
        """
        if DnsZone.query.filter_by(dns_provider_id=provider.id).count() == 0:
            db.session.delete(provider)
            db.session.commit()
            logger.info(f"Provider {provider.name} deleted")
            return True

        provider.active = False
        db.session.commit()
        logger.info(f"Provider {provider.name} still has zones, deactivated instead of deleted")
        return False

    def test_connection(self, provider: DnsProvider) -> bool:
        try:
            return provider.get_client().test_connection()
        except BackendError as e:
            logger.error(f"Connection test for {provider.name} failed: {e}")
            return False

    def get_sync_status(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Per active provider: cache counts, staleness and reachability."""
        now = now or utcnow()
        max_age = timedelta(hours=get_int('DNS_SYNC_PROVIDER_STALE_HOURS', 1))
        status = []
        for provider in DnsProvider.active_providers():
            records = (
                DnsRecord.live()
                .join(DnsZone, DnsRecord.dns_zone_id == DnsZone.id)
                .filter(DnsZone.dns_provider_id == provider.id, DnsZone.deleted_at.is_(None))
                .count()
            )
            status.append({
                'provider': provider,
                'zones': provider.live_zones().count(),
                'records': records,
                'last_sync': provider.last_sync,
                'is_stale': provider.last_sync is None or provider.last_sync < now - max_age,
                'is_reachable': self.test_connection(provider),
            })
        return status

    def refresh_all_providers(self) -> Dict[str, Dict[str, Any]]:
        """Run sync_provider_from_remote for every active provider, keyed by name."""
        return {p.name: self.sync_provider_from_remote(p) for p in DnsProvider.active_providers().all()}

    def detect_drift(self, provider: DnsProvider) -> Dict[str, Any]:
        return detect_drift(provider)

    def is_valid_record_type(self, record_type: str) -> bool:
        return is_valid_record_type(record_type)

    def validate_record_content(self, record_type: str, content: str, priority: Optional[int] = None) -> bool:
        is_valid, _ = validate_record_content(record_type, content, priority)
        return is_valid

    def export_to_bind_format(self, zone: DnsZone) -> str:
        """Render the cached zone as a BIND zone file."""
        origin = f"{strip_trailing_dot(zone.name)}."
        lines = [f"$ORIGIN {origin}", f"$TTL {zone.ttl or get_int('DNS_SYNC_DEFAULT_TTL', 3600)}", '']

        records = (
            DnsRecord.live()
            .filter_by(dns_zone_id=zone.id)
            .order_by(DnsRecord.type, DnsRecord.name)
            .all()
        )
        for record in records:
            content = record.content
            if requires_priority(record.type) and strip_priority(content, record.type) == content:
                content = f"{record.priority or 0} {content}"
            lines.append(f"{self._relative_name(record.name, origin)} {record.ttl} IN {record.type} {content}")

        return '\n'.join(lines)

    @staticmethod
    def _relative_name(name: Optional[str], origin: str) -> str:
        if not name or name == '@' or name.lower() == origin.lower():
            return '@'
        if not name.endswith('.'):
            return name
        suffix = f".{origin}"
        if name.lower().endswith(suffix.lower()):
            return name[:-len(suffix)]
        return name
