"""
PowerDNS Authoritative Server Backend Implementation.

Implements DNSBackend for the PowerDNS HTTP API. PowerDNS mutates
record-sets, not records: every record write reads the zone, merges the
change into the matching rrset and PATCHes the whole set back.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..rrset import (
    ensure_trailing_dot,
    find_rrset,
    merge_rrset,
    remove_from_rrset,
    replace_in_rrset,
    strip_trailing_dot,
)
from ..serial import serial_from_soa
from ..validation import normalize_record_name, requires_priority
from .base import (
    REASON_NOT_FOUND,
    AlreadyExists,
    BackendError,
    DNSBackend,
    ReadResult,
    RecordData,
    ZoneData,
    extract_priority,
    strip_priority,
)

logger = logging.getLogger(__name__)

# Local zone kinds -> PowerDNS kinds
ZONE_KINDS = {
    'primary': 'Master',
    'secondary': 'Slave',
    'native': 'Native',
}


class PowerDNSBackend(DNSBackend):
    """PowerDNS Authoritative Server backend implementation."""

    provider_type = 'powerdns'
    positional_record_ids = True

    CONFIG_SCHEMA = {
        'type': 'object',
        'required': ['api_url', 'api_key'],
        'properties': {
            'api_url': {'type': 'string', 'minLength': 1},
            'api_key': {'type': 'string', 'minLength': 1},
            'server_id': {'type': 'string'},
            'api_prefix': {'type': 'string'},
            'timeout': {'type': ['number', 'null']},
            'rate_limit': {'type': ['integer', 'null']},
        },
    }

    def __init__(
        self,
        config: Dict[str, Any],
        log: Optional[logging.Logger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize PowerDNS backend.

        Required config keys:
            api_url: PowerDNS API URL (e.g., http://powerdns:8081)
            api_key: X-API-Key value

        Optional config keys:
            timeout: Request timeout in seconds (default: 30)
            rate_limit: Requests per minute (default: unlimited)
            server_id: Server ID (default: localhost)
            api_prefix: API path prefix (default: /api/v1)
        """
        self._transport = transport
        self._client: httpx.Client | None = None
        super().__init__(config, log=log or logger)

    def _configure(self, config: Dict[str, Any]) -> None:
        self.api_url = config['api_url'].rstrip('/')
        self.api_key = config['api_key']
        self.server_id = config.get('server_id', 'localhost')
        self.api_prefix = '/' + config.get('api_prefix', '/api/v1').strip('/')

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.api_url,
                headers={'X-API-Key': self.api_key, 'Accept': 'application/json'},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def _server_path(self) -> str:
        return f'{self.api_prefix}/servers/{self.server_id}'

    def _zone_path(self, zone_id: str) -> str:
        return f'{self._server_path}/zones/{ensure_trailing_dot(zone_id)}'

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        self._throttle()
        response = self.client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    def _fetch_zone(self, zone_id: str) -> Dict[str, Any]:
        return self._request('GET', self._zone_path(zone_id)).json() or {}

    def _zone_data(self, raw: Dict[str, Any]) -> ZoneData:
        """Convert a PowerDNS zone object to ZoneData."""
        serial = raw.get('serial')
        if serial is None:
            soa = next((r for r in raw.get('rrsets', []) if r.get('type') == 'SOA'), None)
            if soa and soa.get('records'):
                serial = serial_from_soa(soa['records'][0].get('content', ''))
        nameservers = [
            rec['content']
            for rrset in raw.get('rrsets', [])
            if rrset.get('type') == 'NS' and ensure_trailing_dot(rrset.get('name', '')) == raw.get('name')
            for rec in rrset.get('records', [])
        ] or raw.get('nameservers', [])
        return {
            'id': raw.get('id') or raw.get('name'),
            'name': strip_trailing_dot(raw.get('name', '')),
            'kind': raw.get('kind'),
            'serial': serial,
            'masters': raw.get('masters', []),
            'nameservers': nameservers,
            'provider_data': raw,
        }

    def _record_id(self, name: str, record_type: str, index: int) -> str:
        return f"{ensure_trailing_dot(name)}_{record_type}_{index}"

    def _parse_record_id(self, record_id: str) -> Tuple[str, str, int]:
        """Split ``name_type_index``; names may contain underscores."""
        parts = (record_id or '').rsplit('_', 2)
        if len(parts) != 3 or not parts[2].isdigit():
            raise BackendError(f"Invalid record_id format: {record_id}", reason=REASON_NOT_FOUND)
        return parts[0], parts[1].upper(), int(parts[2])

    def _expand_rrsets(self, rrsets: List[Dict[str, Any]]) -> List[RecordData]:
        """One normalized record per rrset member, ids ``name_type_index``."""
        records = []
        for rrset in rrsets:
            comment = ', '.join(c.get('content', '') for c in rrset.get('comments', []))
            for index, record in enumerate(rrset.get('records', [])):
                content = record.get('content', '')
                records.append(self.normalize_record({
                    'id': self._record_id(rrset['name'], rrset['type'], index),
                    'name': rrset['name'],
                    'type': rrset['type'],
                    'content': content,
                    'ttl': rrset.get('ttl', 3600),
                    'priority': extract_priority(content, rrset['type']),
                    'disabled': record.get('disabled', False),
                    'auth': True,
                    'comment': comment,
                    'rrset': rrset,
                }))
        return records

    @staticmethod
    def _wire_content(record_type: str, content: str, priority: Optional[int]) -> str:
        """PowerDNS keeps MX/SRV priority as the leading field of content.

        An explicit priority replaces whatever priority the content already
        carries, so cached provider content ("10 mail.example.com.") can be
        re-prioritized.
        """
        if not requires_priority(record_type) or priority is None or content is None:
            return content
        return f"{int(priority)} {strip_priority(content, record_type)}"

    @classmethod
    def _stored_content(cls, record_type: str, content: str, priority: Optional[int]) -> str:
        """A cached value as PowerDNS holds it; a priority already in content wins."""
        if content is None or strip_priority(content, record_type) != content:
            return content
        return cls._wire_content(record_type, content, priority)

    def _patch(self, zone_id: str, rrset: Dict[str, Any]) -> None:
        self._request('PATCH', self._zone_path(zone_id), json={'rrsets': [rrset]})

    def test_connection(self) -> bool:
        """Test connection to PowerDNS API."""
        try:
            self._request('GET', self._server_path)
            return True
        except Exception as e:
            self.log.warning(f"PowerDNS connection test failed: {e}")
            return False

    def get_all_zones(self) -> ReadResult:
        try:
            zones = self._request('GET', f'{self._server_path}/zones').json() or []
            return ReadResult.success([self._zone_data(z) for z in zones])
        except Exception as e:
            return self._degraded('get_all_zones', e, [])

    def get_zone(self, zone_id: str) -> ReadResult:
        try:
            return ReadResult.success(self._zone_data(self._fetch_zone(zone_id)))
        except Exception as e:
            return self._degraded(f'get_zone({zone_id})', e, {})

    def create_zone(self, data: Dict[str, Any]) -> ZoneData:
        """Create a zone; PowerDNS answers with the zone including serial."""
        kind = ZONE_KINDS.get(str(data.get('kind', 'primary')).lower(), 'Native')
        payload = {
            'name': ensure_trailing_dot(data['name']),
            'kind': kind,
            'nameservers': [ensure_trailing_dot(ns) for ns in data.get('nameservers', [])],
        }
        if data.get('masters'):
            payload['masters'] = list(data['masters'])
        try:
            response = self._request('POST', f'{self._server_path}/zones', json=payload)
            return self._zone_data(response.json() or payload)
        except Exception as e:
            raise self._write_failed(f"create_zone({data.get('name')})", e)

    def update_zone(self, zone_id: str, data: Dict[str, Any]) -> ZoneData:
        """Update zone metadata (kind, masters, account) with PUT.

        PowerDNS answers 204 without a body, so the returned ZoneData only
        echoes what was sent and carries no serial.
        """
        payload = {}
        if 'kind' in data:
            payload['kind'] = ZONE_KINDS.get(str(data['kind']).lower(), data['kind'])
        for key in ('masters', 'account', 'soa_edit_api', 'dnssec'):
            if key in data:
                payload[key] = data[key]
        try:
            self._request('PUT', self._zone_path(zone_id), json=payload)
            return {'id': ensure_trailing_dot(zone_id), 'serial': None, 'provider_data': payload}
        except Exception as e:
            raise self._write_failed(f'update_zone({zone_id})', e)

    def delete_zone(self, zone_id: str) -> bool:
        try:
            self._request('DELETE', self._zone_path(zone_id))
            return True
        except Exception as e:
            raise self._write_failed(f'delete_zone({zone_id})', e)

    def get_zone_records(self, zone_id: str) -> ReadResult:
        try:
            zone = self._fetch_zone(zone_id)
            return ReadResult.success(self._expand_rrsets(zone.get('rrsets', [])))
        except Exception as e:
            return self._degraded(f'get_zone_records({zone_id})', e, [])

    def get_record(self, zone_id: str, record_id: str) -> ReadResult:
        """PowerDNS has no per-record endpoint; filter the expanded zone."""
        result = self.get_zone_records(zone_id)
        if result.degraded:
            return ReadResult.degrade({}, result.reason, result.message)
        for record in result.data:
            if record['id'] == record_id:
                return ReadResult.success(record)
        return ReadResult.success({})

    def _merge_target(self, zone_id: str, data: Dict[str, Any]) -> Tuple[str, str, List[Dict[str, Any]]]:
        """Fetch the zone remotely; the local cache is never trusted here."""
        name = normalize_record_name(data.get('name'), strip_trailing_dot(zone_id))
        record_type = data['type'].upper()
        zone = self._fetch_zone(zone_id)
        return name, record_type, zone.get('rrsets', [])

    def _written_record(self, rrset: Dict[str, Any], content: str) -> RecordData:
        index = next(i for i, r in enumerate(rrset['records']) if r['content'] == content)
        member = rrset['records'][index]
        return self.normalize_record({
            'id': self._record_id(rrset['name'], rrset['type'], index),
            'name': rrset['name'],
            'type': rrset['type'],
            'content': content,
            'ttl': rrset['ttl'],
            'disabled': member['disabled'],
            'rrset': rrset,
        })

    def create_record(self, zone_id: str, data: Dict[str, Any]) -> RecordData | AlreadyExists:
        """Add one value to its rrset, keeping every sibling value."""
        try:
            name, record_type, rrsets = self._merge_target(zone_id, data)
            content = self._wire_content(record_type, data['content'], data.get('priority'))
            merged = merge_rrset(
                find_rrset(rrsets, name, record_type),
                name,
                record_type,
                content,
                ttl=data.get('ttl'),
                disabled=data.get('disabled'),
            )
            if merged.duplicate:
                self.log.info(f"PowerDNS {record_type} {name} already contains {content}, nothing sent")
                return AlreadyExists(name, record_type, content, merged.existing_records)

            self._patch(zone_id, merged.rrset)
            return self._written_record(merged.rrset, content)
        except Exception as e:
            raise self._write_failed(f'create_record({zone_id})', e)

    def update_record(
        self,
        zone_id: str,
        record_id: str,
        data: Dict[str, Any],
        current: Optional[RecordData] = None,
    ) -> RecordData | AlreadyExists:
        """Replace one rrset member, siblings untouched.

        A changed name or type moves the value: it is removed from the old
        rrset and merged into the new one within a single PATCH.
        """
        try:
            current = current or {}
            id_name, id_type, index = self._parse_record_id(record_id)
            zone_name = strip_trailing_dot(zone_id)
            old_name = normalize_record_name(current.get('name') or id_name, zone_name)
            old_type = (current.get('type') or id_type).upper()

            new_name = normalize_record_name(data.get('name') or old_name, zone_name)
            new_type = (data.get('type') or old_type).upper()
            content = data['content'] if 'content' in data else current.get('content')
            if data.get('priority') is not None:
                content = self._wire_content(new_type, content, data['priority'])
            else:
                content = self._stored_content(new_type, content, current.get('priority'))

            rrsets = self._fetch_zone(zone_id).get('rrsets', [])
            old_rrset = find_rrset(rrsets, old_name, old_type)

            old_content = current.get('content')
            if old_content is not None:
                old_content = self._stored_content(old_type, old_content, current.get('priority'))
            elif old_rrset and index < len(old_rrset.get('records', [])):
                old_content = old_rrset['records'][index]['content']

            if (new_name.lower(), new_type) == (old_name.lower(), old_type):
                merged = replace_in_rrset(
                    old_rrset,
                    new_name,
                    new_type,
                    old_content,
                    content,
                    ttl=data.get('ttl'),
                    disabled=data.get('disabled'),
                )
                changes = [merged.rrset] if not merged.duplicate else []
            else:
                merged = merge_rrset(
                    find_rrset(rrsets, new_name, new_type),
                    new_name,
                    new_type,
                    content,
                    ttl=data.get('ttl'),
                    disabled=data.get('disabled'),
                )
                changes = [merged.rrset] if not merged.duplicate else []
                if changes and old_rrset is not None:
                    changes.insert(0, remove_from_rrset(old_rrset, old_content))

            if merged.duplicate:
                return AlreadyExists(new_name, new_type, content, merged.existing_records)

            self._request('PATCH', self._zone_path(zone_id), json={'rrsets': changes})
            return self._written_record(merged.rrset, content)
        except Exception as e:
            raise self._write_failed(f'update_record({zone_id}, {record_id})', e)

    def delete_record(self, zone_id: str, record_id: str, current: Optional[RecordData] = None) -> bool:
        """Remove one value; the rrset itself goes only with its last value."""
        try:
            name, record_type, index = self._parse_record_id(record_id)
            zone = self._fetch_zone(zone_id)
            existing = find_rrset(zone.get('rrsets', []), name, record_type)
            if existing is None:
                self.log.warning(f"PowerDNS rrset {name} {record_type} already absent from {zone_id}")
                return True

            content = (current or {}).get('content')
            if content is not None:
                content = self._stored_content(record_type, content, current.get('priority'))
            elif index < len(existing.get('records', [])):
                content = existing['records'][index]['content']

            self._patch(zone_id, remove_from_rrset(existing, content))
            return True
        except Exception as e:
            raise self._write_failed(f'delete_record({zone_id}, {record_id})', e)

    def normalize_record(self, record: Dict[str, Any]) -> RecordData:
        """Normalize PowerDNS record format; names keep their trailing dot."""
        normalized = super().normalize_record(record)
        normalized['name'] = ensure_trailing_dot(record.get('name', ''))
        normalized['provider_data'] = record.get('rrset', record)
        return normalized

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __del__(self):
        """Cleanup HTTP client on destruction."""
        if getattr(self, '_client', None) is not None:
            try:
                self._client.close()
            except Exception:
                pass
