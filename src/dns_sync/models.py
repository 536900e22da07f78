"""
Database models for dns-sync (Provider → Zone → Record cache).

- DnsProvider: one configured DNS backend and its connection settings
- DnsZone: local cache of one remote zone
- DnsRecord: local cache of one remote resource record

Zones and records are write-through caches: every mutating method calls
the provider first and mirrors the provider's answer locally only after
it succeeded. Zones and records are soft-deleted (``deleted_at``) so the
rows stay available for audit.
"""
import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint

from .config_defaults import get_int
from .rrset import ensure_trailing_dot
from .serial import next_serial
from .validation import normalize_record_name, requires_priority, validate_record_content
from .writethrough import RemoteResult, WriteOutcome, apply_to_cache, remote_mutate

logger = logging.getLogger(__name__)

db = SQLAlchemy()

ZONE_KINDS = ('primary', 'secondary', 'native', 'forwarded')


def utcnow() -> datetime:
    return datetime.utcnow()


def stale_threshold() -> timedelta:
    """Cache age after which a zone or record must be re-synced."""
    return timedelta(minutes=get_int('DNS_SYNC_STALE_MINUTES', 5))


def _load_json(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


def _is_stale(last_synced: Optional[datetime], max_age: Optional[timedelta], now: Optional[datetime]) -> bool:
    if last_synced is None:
        return True
    return last_synced < (now or utcnow()) - (max_age or stale_threshold())


def normalize_kind(kind: Optional[str], fallback: str = 'primary') -> str:
    """Map provider zone kinds (Master, Slave, full...) to ours."""
    kind = str(kind or '').lower()
    kind = {'master': 'primary', 'slave': 'secondary'}.get(kind, kind)
    return kind if kind in ZONE_KINDS else fallback


class DnsProvider(db.Model):
    """
    Configured DNS backend (one PowerDNS endpoint, one Cloudflare account...).

    ``connection_config`` is an opaque JSON map; only the backend for
    ``type`` interprets its keys.
    """
    __tablename__ = 'dns_providers'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, default='powerdns', index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)
    connection_config = db.Column(db.Text, nullable=False, default='{}')  # JSON
    active = db.Column(db.Boolean, nullable=False, default=True)
    version = db.Column(db.String(64))
    last_sync = db.Column(db.DateTime, index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    rate_limit = db.Column(db.Integer)  # requests per minute, NULL = unlimited
    timeout = db.Column(db.Integer, default=30)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    zones = db.relationship('DnsZone', back_populates='dns_provider')

    def get_connection_config(self) -> dict[str, Any]:
        """Parse connection_config from JSON."""
        return dict(_load_json(self.connection_config, {}))

    def set_connection_config(self, config: dict[str, Any]):
        """Set connection_config as JSON."""
        self.connection_config = json.dumps(config)

    def get_client(self, log: Optional[logging.Logger] = None):
        """Build the backend for this provider (no network calls)."""
        # Lazy import to avoid circular dependencies
        from .backends.registry import make_backend
        return make_backend(self, log=log)

    def live_zones(self):
        return DnsZone.live().filter_by(dns_provider_id=self.id)

    @classmethod
    def active_providers(cls):
        return cls.query.filter_by(active=True).order_by(cls.sort_order, cls.name)

    def __repr__(self):
        return f'<DnsProvider {self.type}:{self.name}>'


class DnsZone(db.Model):
    """
    Cached DNS zone.

    Lifecycle: created locally → create_on_remote (assigns external_id and
    serial) → refreshed by sync_from_remote → soft-deleted after a
    successful delete_on_remote.
    """
    __tablename__ = 'dns_zones'

    id = db.Column(db.Integer, primary_key=True)
    dns_provider_id = db.Column(db.Integer, db.ForeignKey('dns_providers.id'), nullable=False, index=True)
    external_id = db.Column(db.String(255), index=True)  # NULL until created on remote
    name = db.Column(db.String(255), nullable=False)
    kind = db.Column(db.String(16), nullable=False, default='primary')
    masters = db.Column(db.Text)  # JSON array
    serial = db.Column(db.BigInteger)
    last_check = db.Column(db.DateTime)
    last_synced = db.Column(db.DateTime, index=True)
    account = db.Column(db.String(64))
    active = db.Column(db.Boolean, nullable=False, default=True)
    description = db.Column(db.Text)
    provider_data = db.Column(db.Text)  # JSON, raw last-known provider response
    ttl = db.Column(db.Integer, nullable=False, default=3600)
    nameservers = db.Column(db.Text)  # JSON array
    records_count = db.Column(db.Integer, nullable=False, default=0)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime, index=True)

    dns_provider = db.relationship('DnsProvider', back_populates='zones')
    records = db.relationship('DnsRecord', back_populates='zone', cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('dns_provider_id', 'name', name='uq_zone_provider_name'),
        CheckConstraint(f"kind IN {ZONE_KINDS}", name='check_zone_kind'),
        db.Index('idx_zone_active_kind', 'active', 'kind'),
    )

    @classmethod
    def live(cls):
        """Query excluding soft-deleted zones."""
        return cls.query.filter(cls.deleted_at.is_(None))

    def get_provider_data(self) -> dict[str, Any]:
        return _load_json(self.provider_data, {})

    def set_provider_data(self, data: Optional[dict[str, Any]]):
        self.provider_data = json.dumps(data, default=str) if data is not None else None

    def get_nameservers(self) -> list[str]:
        return _load_json(self.nameservers, [])

    def set_nameservers(self, nameservers: Optional[list[str]]):
        self.nameservers = json.dumps(list(nameservers)) if nameservers else None

    def get_masters(self) -> list[str]:
        return _load_json(self.masters, [])

    def set_masters(self, masters: Optional[list[str]]):
        self.masters = json.dumps(list(masters)) if masters else None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def get_provider(self) -> 'DnsProvider':
        """Owning provider, also for zones not yet added to the session."""
        return self.dns_provider or db.session.get(DnsProvider, self.dns_provider_id)

    def get_client(self):
        return self.get_provider().get_client()

    def _creation_data(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'kind': self.kind or 'primary',
            'nameservers': self.get_nameservers(),
            'masters': self.get_masters(),
            'ttl': self.ttl or get_int('DNS_SYNC_DEFAULT_TTL', 3600),
        }

    def _accept_serial(self, remote_serial: Optional[int]) -> None:
        """Take the provider's serial, or advance ours; never go backwards."""
        if remote_serial is not None and int(remote_serial) >= int(self.serial or 0):
            self.serial = int(remote_serial)
        else:
            if remote_serial is not None:
                logger.warning(f"Zone {self.name}: provider serial {remote_serial} is behind cached {self.serial}")
            self.serial = self.get_next_serial()

    def _stamp(self, data: dict[str, Any]) -> None:
        self.last_synced = utcnow()
        self.set_provider_data(data.get('provider_data', data))

    # Write-through cache operations

    def create_on_remote(self, data: Optional[dict[str, Any]] = None) -> WriteOutcome:
        """Create the zone on the provider, then record its identity locally.

        On failure nothing local changes and the zone stays unprovisioned.
        """
        data = {**self._creation_data(), **(data or {})}
        client = self.get_client()
        result = remote_mutate(client.create_zone, data, description=f"create zone {data['name']}")

        def apply(remote: RemoteResult) -> None:
            self.external_id = remote.data.get('id') or self.external_id
            self.kind = normalize_kind(data['kind'])
            self.ttl = data['ttl']
            if data.get('description') is not None:
                self.description = data['description']
            if data.get('masters'):
                self.set_masters(data['masters'])
            if remote.data.get('nameservers') or data.get('nameservers'):
                self.set_nameservers(remote.data.get('nameservers') or data['nameservers'])
            self._accept_serial(remote.data.get('serial'))
            self.active = True
            self.deleted_at = None
            self._stamp(remote.data)
            db.session.add(self)

        return apply_to_cache(result, apply, db.session, f"create zone {data['name']}")

    def update_on_remote(self, data: dict[str, Any]) -> WriteOutcome:
        """Update zone metadata on the provider, then locally.

        The serial is re-derived after every successful update.
        """
        if not self.external_id:
            return WriteOutcome.not_provisioned(f"Zone {self.name} has not been created on its provider")

        client = self.get_client()
        result = remote_mutate(client.update_zone, self.external_id, data, description=f"update zone {self.name}")

        def apply(remote: RemoteResult) -> None:
            for key in ('ttl', 'description', 'account', 'active'):
                if key in data:
                    setattr(self, key, data[key])
            if 'kind' in data:
                self.kind = normalize_kind(data['kind'], self.kind)
            if 'masters' in data:
                self.set_masters(data['masters'])
            if 'nameservers' in data:
                self.set_nameservers(data['nameservers'])
            self._accept_serial(remote.data.get('serial'))
            self._stamp(remote.data)

        return apply_to_cache(result, apply, db.session, f"update zone {self.name}")

    def delete_on_remote(self) -> WriteOutcome:
        """Delete on the provider first; soft-delete locally only on success."""
        if not self.external_id:
            # Never created remotely: there is nothing to delete there
            self.soft_delete()
            db.session.commit()
            return WriteOutcome.ok(f"Zone {self.name} removed from cache (never provisioned)")

        client = self.get_client()
        result = remote_mutate(client.delete_zone, self.external_id, description=f"delete zone {self.name}")
        return apply_to_cache(result, lambda remote: self.soft_delete(), db.session, f"delete zone {self.name}")

    def sync_from_remote(self) -> WriteOutcome:
        """Overwrite cached fields with the provider's state, then sync records."""
        if not self.external_id:
            return WriteOutcome.not_provisioned(f"Zone {self.name} has not been created on its provider")

        read = self.get_client().get_zone(self.external_id)
        if read.degraded or not read.data:
            logger.warning(f"Zone {self.name} sync skipped: {read.message or 'no data from provider'}")
            return WriteOutcome.from_remote(RemoteResult(
                success=False, reason=read.reason or 'not_found', message=read.message or 'Zone not found on provider',
            ))

        remote = read.data
        if remote.get('serial') is not None:
            if int(remote['serial']) >= int(self.serial or 0):
                self.serial = int(remote['serial'])
            else:
                logger.warning(f"Zone {self.name}: provider serial {remote['serial']} is behind cached {self.serial}")
        if remote.get('kind'):
            self.kind = normalize_kind(remote['kind'], self.kind)
        if remote.get('nameservers'):
            self.set_nameservers(remote['nameservers'])
        if remote.get('masters'):
            self.set_masters(remote['masters'])
        self.last_check = utcnow()
        self._stamp(remote)
        db.session.commit()

        synced = self.sync_records_from_remote()
        return WriteOutcome.ok(f"Zone {self.name} synced", {'records': synced})

    def sync_records_from_remote(self) -> int:
        """Refresh cached records from the provider.

        Upserts by (zone, external_id). Cached records whose external_id the
        provider no longer reports are soft-deleted; rows without an
        external_id (not yet on the provider) are left alone. When several
        cached rows share one external_id, the first live one is kept and
        the others are soft-deleted.

        Returns:
            Number of records synced, -1 when the provider could not be read
        """
        read = self.get_client().get_zone_records(self.external_id)
        if read.degraded:
            logger.error(f"Zone {self.name} record sync skipped: {read.message}")
            return -1

        now = utcnow()
        existing: Dict[str, list] = {}
        rows = (
            DnsRecord.query
            .filter(DnsRecord.dns_zone_id == self.id, DnsRecord.external_id.isnot(None))
            .order_by(DnsRecord.deleted_at.isnot(None), DnsRecord.id)
        )
        for row in rows:
            existing.setdefault(row.external_id, []).append(row)
        seen = set()

        for remote in read.data:
            external_id = remote.get('id')
            if external_id is None:
                continue
            external_id = str(external_id)
            seen.add(external_id)
            matches = existing.get(external_id) or []
            if matches:
                record = matches[0]
            else:
                record = DnsRecord(dns_zone_id=self.id, external_id=external_id)
                db.session.add(record)
            record.apply_remote(remote, now)
            for duplicate in matches[1:]:
                if duplicate.deleted_at is None:
                    logger.warning(f"Zone {self.name}: dropping duplicate cached record {external_id}")
                    duplicate.deleted_at = now

        for external_id, matches in existing.items():
            if external_id in seen:
                continue
            for record in matches:
                if record.deleted_at is None:
                    record.deleted_at = now

        db.session.flush()
        self.records_count = self.get_record_count()
        db.session.commit()
        logger.info(f"Zone {self.name}: synced {len(seen)} records from provider")
        return len(seen)

    def refresh_serial(self) -> None:
        """Pick up the serial after a record change on this zone.

        Uses the provider's serial when it reports one, otherwise advances
        the cached serial exactly once.
        """
        read = self.get_client().get_zone(self.external_id) if self.external_id else None
        remote_serial = read.data.get('serial') if read is not None and read.ok and read.data else None
        self._accept_serial(remote_serial)
        self.last_synced = utcnow()
        self.records_count = self.get_record_count()

    def restamp_record_ids(self, client, rrsets: set) -> None:
        """Re-key cached rows of the given (name, type) sets after a write.

        Only for backends whose record ids are positions inside an rrset:
        removing a value shifts its siblings, so their cached external_ids
        are re-read from the provider and matched by content.
        """
        if not client.positional_record_ids:
            return
        read = client.get_zone_records(self.external_id)
        if read.degraded:
            logger.warning(f"Zone {self.name}: record ids not refreshed after write: {read.message}")
            return

        remote_ids = {}
        for remote in read.data:
            key = (ensure_trailing_dot(remote.get('name', '')).lower(), (remote.get('type') or '').upper())
            if key in rrsets and remote.get('id') is not None:
                remote_ids[(key, remote.get('content'))] = str(remote['id'])

        for row in DnsRecord.live().filter(DnsRecord.dns_zone_id == self.id, DnsRecord.external_id.isnot(None)):
            key = (ensure_trailing_dot(row.name or '').lower(), (row.type or '').upper())
            external_id = remote_ids.get((key, row.content))
            if key in rrsets and external_id is not None and external_id != row.external_id:
                logger.debug(f"Record {row.external_id} re-keyed to {external_id}")
                row.external_id = external_id

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()
        self.active = False

    # Business logic

    def get_next_serial(self, today: Optional[date] = None) -> int:
        return next_serial(self.serial, today)

    def is_cache_stale(self, max_age: Optional[timedelta] = None, now: Optional[datetime] = None) -> bool:
        return _is_stale(self.last_synced, max_age, now)

    def get_record_count(self) -> int:
        return DnsRecord.live().filter_by(dns_zone_id=self.id).count()

    def get_active_record_count(self) -> int:
        return DnsRecord.live().filter_by(dns_zone_id=self.id, disabled=False).count()

    def __repr__(self):
        return f'<DnsZone {self.name}>'


class DnsRecord(db.Model):
    """
    Cached DNS resource record.

    ``external_id`` links to the provider's own identifier (for PowerDNS a
    synthesized ``name_type_index``). Priority only means something for
    MX and SRV.
    """
    __tablename__ = 'dns_records'

    id = db.Column(db.Integer, primary_key=True)
    dns_zone_id = db.Column(db.Integer, db.ForeignKey('dns_zones.id', ondelete='CASCADE'), nullable=False)
    external_id = db.Column(db.String(512))
    name = db.Column(db.String(255))
    type = db.Column(db.String(16), nullable=False)
    content = db.Column(db.Text, nullable=False)
    ttl = db.Column(db.Integer, nullable=False, default=3600)
    priority = db.Column(db.Integer, nullable=False, default=0)
    disabled = db.Column(db.Boolean, nullable=False, default=False)
    auth = db.Column(db.Boolean, nullable=False, default=True)
    comment = db.Column(db.Text)
    provider_data = db.Column(db.Text)  # JSON
    last_synced = db.Column(db.DateTime, index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime, index=True)

    zone = db.relationship('DnsZone', back_populates='records')

    __table_args__ = (
        db.Index('idx_record_zone_external', 'dns_zone_id', 'external_id'),
        db.Index('idx_record_zone_type', 'dns_zone_id', 'type'),
    )

    @classmethod
    def live(cls):
        """Query excluding soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))

    def get_provider_data(self) -> dict[str, Any]:
        return _load_json(self.provider_data, {})

    def set_provider_data(self, data: Optional[dict[str, Any]]):
        self.provider_data = json.dumps(data, default=str) if data is not None else None

    def get_zone(self) -> DnsZone:
        """Owning zone, also for records not yet added to the session."""
        return self.zone or db.session.get(DnsZone, self.dns_zone_id)

    def to_record_data(self) -> Dict[str, Any]:
        return {
            'id': self.external_id,
            'name': self.name,
            'type': self.type,
            'content': self.content,
            'ttl': self.ttl,
            'priority': self.priority,
            'disabled': bool(self.disabled),
            'comment': self.comment,
        }

    def apply_remote(self, remote: Dict[str, Any], now: Optional[datetime] = None) -> None:
        """Overwrite cached fields with a normalized provider record."""
        if remote.get('name'):
            self.name = ensure_trailing_dot(remote['name'])
        self.type = (remote.get('type') or self.type or '').upper()
        self.content = remote.get('content', self.content)
        self.ttl = remote.get('ttl') if remote.get('ttl') is not None else (self.ttl or 3600)
        self.priority = remote.get('priority') if remote.get('priority') is not None else (self.priority or 0)
        self.disabled = bool(remote.get('disabled', self.disabled or False))
        self.auth = bool(remote.get('auth', True))
        if remote.get('comment') is not None:
            self.comment = remote['comment']
        self.last_synced = now or utcnow()
        self.deleted_at = None
        self.set_provider_data(remote.get('provider_data', remote))

    def _rrset_key(self) -> tuple:
        return ensure_trailing_dot(self.name or '').lower(), (self.type or '').upper()

    def _find_duplicate(self, zone: DnsZone, name: str, record_type: str, content: str) -> Optional['DnsRecord']:
        query = DnsRecord.live().filter_by(dns_zone_id=zone.id, name=name, type=record_type, content=content)
        if self.id is not None:
            query = query.filter(DnsRecord.id != self.id)
        return query.first()

    def _check(self, zone: DnsZone, fields: Dict[str, Any]) -> Optional[WriteOutcome]:
        """Validation and duplicate check; runs before any provider call."""
        record_type = fields['type']
        priority = fields.get('priority')
        if requires_priority(record_type) and priority is None:
            return WriteOutcome.invalid(f"{record_type} record requires a priority")
        is_valid, error = validate_record_content(record_type, fields['content'], priority)
        if not is_valid:
            return WriteOutcome.invalid(error)

        duplicate = self._find_duplicate(zone, fields['name'], record_type, fields['content'])
        if duplicate is not None:
            return WriteOutcome.exists(
                f"Record already exists: {record_type} {fields['name']} -> {fields['content']}",
                duplicate.to_record_data(),
            )
        return None

    # Write-through cache operations

    def create_on_remote(self, data: Optional[dict[str, Any]] = None) -> WriteOutcome:
        """Create the record on the provider, then cache it.

        Validation and duplicate detection happen first and never reach the
        provider. The row is added to the session only after the provider
        accepted the record.
        """
        zone = self.get_zone()
        if zone is None or not zone.external_id:
            return WriteOutcome.not_provisioned("Zone has not been created on its provider")

        fields = {**self.to_record_data(), **(data or {})}
        fields['type'] = (fields.get('type') or '').upper()
        fields['name'] = normalize_record_name(fields.get('name'), zone.name)
        if not requires_priority(fields['type']) and fields.get('priority') is None:
            fields['priority'] = 0

        problem = self._check(zone, fields)
        if problem is not None:
            logger.info(f"Record create rejected before provider call: {problem.message}")
            return problem

        payload = {k: fields.get(k) for k in ('name', 'type', 'content', 'ttl', 'priority', 'disabled', 'comment')}
        client = zone.get_client()
        description = f"create record {fields['type']} {fields['name']}"
        result = remote_mutate(client.create_record, zone.external_id, payload, description=description)

        def apply(remote: RemoteResult) -> None:
            self.dns_zone_id = zone.id
            for key in ('name', 'type', 'content', 'priority', 'disabled', 'comment'):
                if fields.get(key) is not None:
                    setattr(self, key, fields[key])
            # The provider's spelling of the value wins (PowerDNS prefixes MX priority)
            if remote.data.get('content'):
                self.content = remote.data['content']
            if remote.data.get('priority') is not None:
                self.priority = remote.data['priority']
            self.external_id = str(remote.data['id']) if remote.data.get('id') is not None else None
            self.ttl = remote.data.get('ttl') or fields.get('ttl') or zone.ttl
            self.last_synced = utcnow()
            self.deleted_at = None
            self.set_provider_data(remote.data.get('provider_data', remote.data))
            db.session.add(self)
            db.session.flush()
            zone.restamp_record_ids(client, {self._rrset_key()})
            zone.refresh_serial()

        return apply_to_cache(result, apply, db.session, description)

    def update_on_remote(self, data: dict[str, Any]) -> WriteOutcome:
        """Update the record on the provider, then locally."""
        zone = self.get_zone()
        if not self.external_id or zone is None or not zone.external_id:
            return WriteOutcome.not_provisioned("Record has not been created on its provider")

        fields = {**self.to_record_data(), **data}
        fields['type'] = (fields.get('type') or '').upper()
        fields['name'] = normalize_record_name(fields.get('name'), zone.name)
        if not requires_priority(fields['type']) and fields.get('priority') is None:
            fields['priority'] = 0

        problem = self._check(zone, fields)
        if problem is not None:
            logger.info(f"Record update rejected before provider call: {problem.message}")
            return problem

        old_key = self._rrset_key()
        client = zone.get_client()
        description = f"update record {fields['type']} {fields['name']}"
        result = remote_mutate(
            client.update_record,
            zone.external_id,
            self.external_id,
            data,
            current=self.to_record_data(),
            description=description,
        )

        def apply(remote: RemoteResult) -> None:
            for key in ('name', 'type', 'content', 'priority', 'disabled', 'comment'):
                if key in data:
                    setattr(self, key, fields[key])
            if remote.data.get('content'):
                self.content = remote.data['content']
            if remote.data.get('priority') is not None:
                self.priority = remote.data['priority']
            if remote.data.get('id') is not None:
                self.external_id = str(remote.data['id'])
            if remote.data.get('ttl') is not None:
                self.ttl = remote.data['ttl']
            elif data.get('ttl') is not None:
                self.ttl = data['ttl']
            self.last_synced = utcnow()
            self.set_provider_data(remote.data.get('provider_data', remote.data))
            db.session.flush()
            zone.restamp_record_ids(client, {old_key, self._rrset_key()})
            zone.refresh_serial()

        return apply_to_cache(result, apply, db.session, description)

    def delete_on_remote(self) -> WriteOutcome:
        """Delete on the provider first; soft-delete locally only on success."""
        zone = self.get_zone()
        if not self.external_id:
            self.deleted_at = utcnow()
            db.session.commit()
            return WriteOutcome.ok("Record removed from cache (never provisioned)")
        if zone is None or not zone.external_id:
            return WriteOutcome.not_provisioned("Zone has not been created on its provider")

        client = zone.get_client()
        description = f"delete record {self.type} {self.name}"
        result = remote_mutate(
            client.delete_record,
            zone.external_id,
            self.external_id,
            current=self.to_record_data(),
            description=description,
        )

        def apply(remote: RemoteResult) -> None:
            self.deleted_at = utcnow()
            self.last_synced = self.deleted_at
            db.session.flush()
            zone.restamp_record_ids(client, {self._rrset_key()})
            zone.refresh_serial()

        return apply_to_cache(result, apply, db.session, description)

    def sync_from_remote(self) -> WriteOutcome:
        """Overwrite cached fields with the provider's copy of this record."""
        zone = self.get_zone()
        if not self.external_id or zone is None or not zone.external_id:
            return WriteOutcome.not_provisioned("Record has not been created on its provider")

        read = zone.get_client().get_record(zone.external_id, self.external_id)
        if read.degraded or not read.data:
            logger.warning(f"Record {self.external_id} sync skipped: {read.message or 'not reported by provider'}")
            return WriteOutcome.from_remote(RemoteResult(
                success=False, reason=read.reason or 'not_found', message=read.message or 'Record not found on provider',
            ))

        self.apply_remote(read.data)
        db.session.commit()
        return WriteOutcome.ok(f"Record {self.external_id} synced")

    def is_cache_stale(self, max_age: Optional[timedelta] = None, now: Optional[datetime] = None) -> bool:
        return _is_stale(self.last_synced, max_age, now)

    # Business logic

    def is_active(self) -> bool:
        return not self.disabled

    def is_apex_record(self) -> bool:
        if not self.name or self.name == '@':
            return True
        zone = self.get_zone()
        return zone is not None and self.name.rstrip('.').lower() == zone.name.rstrip('.').lower()

    def get_formatted_name(self) -> str:
        """Absolute name without trailing dot."""
        zone = self.get_zone()
        if not self.name or self.name == '@':
            return zone.name.rstrip('.')
        if self.name.endswith('.'):
            return self.name.rstrip('.')
        return f"{self.name}.{zone.name.rstrip('.')}"

    def requires_priority(self) -> bool:
        return requires_priority(self.type)

    def get_display_priority(self) -> Optional[int]:
        return self.priority if self.requires_priority() else None

    def validate_content(self) -> bool:
        priority = self.priority if self.requires_priority() else None
        is_valid, _ = validate_record_content(self.type, self.content, priority)
        return is_valid

    def __repr__(self):
        return f'<DnsRecord {self.type} {self.name}>'
