"""
Cloudflare Backend Implementation.

Flat-record REST API: zones live at ``/zones/{id}`` and individual records
at ``/zones/{id}/dns_records/{id}``. Every response is wrapped as
``{"success": bool, "result": ..., "errors": [...]}``.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..rrset import strip_trailing_dot
from .base import (
    REASON_HTTP,
    AlreadyExists,
    BackendError,
    DNSBackend,
    ReadResult,
    RecordData,
    ZoneData,
    reason_for_status,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://api.cloudflare.com/client/v4'

# "An identical record already exists" / "A, AAAA or CNAME already exists"
DUPLICATE_ERROR_CODES = frozenset({81057, 81058})

PAGE_SIZE = 100


class CloudflareAPIError(BackendError):
    """Cloudflare answered with success=false or an HTTP error."""

    def __init__(self, message: str, reason: str, codes: frozenset = frozenset()):
        super().__init__(message, reason=reason)
        self.codes = codes


class CloudflareBackend(DNSBackend):
    """Cloudflare DNS backend implementation."""

    provider_type = 'cloudflare'

    CONFIG_SCHEMA = {
        'type': 'object',
        'required': ['api_token'],
        'properties': {
            'api_token': {'type': 'string', 'minLength': 1},
            'account_id': {'type': 'string'},
            'api_url': {'type': 'string'},
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
        """Initialize Cloudflare backend.

        Required config keys:
            api_token: API token with Zone:Edit and DNS:Edit

        Optional config keys:
            account_id: Account that owns newly created zones
            api_url: API base URL (default: Cloudflare v4)
            timeout: Request timeout in seconds (default: 30)
            rate_limit: Requests per minute (default: unlimited)
        """
        self._transport = transport
        self._client: httpx.Client | None = None
        super().__init__(config, log=log or logger)

    def _configure(self, config: Dict[str, Any]) -> None:
        self.api_token = config['api_token']
        self.account_id = config.get('account_id')
        self.api_url = config.get('api_url', DEFAULT_API_URL).rstrip('/')

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.api_url,
                headers={
                    'Authorization': f'Bearer {self.api_token}',
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Perform one API call and unwrap the envelope.

        Returns:
            The whole decoded body (``result`` plus ``result_info``)

        Raises:
            CloudflareAPIError: On HTTP error or success=false
        """
        self._throttle()
        response = self.client.request(method, path, **kwargs)
        try:
            body = response.json() or {}
        except ValueError:
            body = {}

        if response.is_error or not body.get('success', False):
            errors = body.get('errors') or []
            codes = frozenset(e.get('code') for e in errors if isinstance(e, dict))
            detail = '; '.join(str(e.get('message', '')) for e in errors if isinstance(e, dict))
            reason = reason_for_status(response.status_code) if response.is_error else REASON_HTTP
            raise CloudflareAPIError(
                f"Cloudflare {method} {path} failed: HTTP {response.status_code} {detail}".strip(),
                reason=reason,
                codes=codes,
            )
        return body

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            query = dict(params or {}, page=page, per_page=PAGE_SIZE)
            body = self._call('GET', path, params=query)
            items.extend(body.get('result') or [])
            total_pages = (body.get('result_info') or {}).get('total_pages', 1)
            if page >= total_pages:
                return items
            page += 1

    def _zone_data(self, raw: Dict[str, Any]) -> ZoneData:
        return {
            'id': raw.get('id'),
            'name': strip_trailing_dot(raw.get('name', '')),
            'kind': 'primary' if raw.get('type', 'full') == 'full' else 'secondary',
            'serial': None,
            'nameservers': raw.get('name_servers', []),
            'masters': [],
            'provider_data': raw,
        }

    def test_connection(self) -> bool:
        """Verify the API token."""
        try:
            self._call('GET', '/user/tokens/verify')
            return True
        except Exception as e:
            self.log.warning(f"Cloudflare connection test failed: {e}")
            return False

    def get_all_zones(self) -> ReadResult:
        try:
            return ReadResult.success([self._zone_data(z) for z in self._paginate('/zones')])
        except Exception as e:
            return self._degraded('get_all_zones', e, [])

    def get_zone(self, zone_id: str) -> ReadResult:
        try:
            return ReadResult.success(self._zone_data(self._call('GET', f'/zones/{zone_id}')['result']))
        except Exception as e:
            return self._degraded(f'get_zone({zone_id})', e, {})

    def create_zone(self, data: Dict[str, Any]) -> ZoneData:
        payload: Dict[str, Any] = {'name': strip_trailing_dot(data['name']), 'type': 'full'}
        if self.account_id:
            payload['account'] = {'id': self.account_id}
        try:
            return self._zone_data(self._call('POST', '/zones', json=payload)['result'])
        except Exception as e:
            raise self._write_failed(f"create_zone({data.get('name')})", e)

    def update_zone(self, zone_id: str, data: Dict[str, Any]) -> ZoneData:
        payload = {k: data[k] for k in ('paused', 'plan', 'type', 'vanity_name_servers') if k in data}
        try:
            return self._zone_data(self._call('PATCH', f'/zones/{zone_id}', json=payload)['result'])
        except Exception as e:
            raise self._write_failed(f'update_zone({zone_id})', e)

    def delete_zone(self, zone_id: str) -> bool:
        try:
            self._call('DELETE', f'/zones/{zone_id}')
            return True
        except Exception as e:
            raise self._write_failed(f'delete_zone({zone_id})', e)

    def get_zone_records(self, zone_id: str) -> ReadResult:
        try:
            records = self._paginate(f'/zones/{zone_id}/dns_records')
            return ReadResult.success([self.normalize_record(r) for r in records])
        except Exception as e:
            return self._degraded(f'get_zone_records({zone_id})', e, [])

    def get_record(self, zone_id: str, record_id: str) -> ReadResult:
        try:
            body = self._call('GET', f'/zones/{zone_id}/dns_records/{record_id}')
            return ReadResult.success(self.normalize_record(body['result']))
        except Exception as e:
            return self._degraded(f'get_record({zone_id}, {record_id})', e, {})

    def _record_payload(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if 'type' in data or not partial:
            payload['type'] = data['type'].upper()
        if 'name' in data or not partial:
            payload['name'] = strip_trailing_dot(data['name'])
        if 'content' in data or not partial:
            payload['content'] = data['content']
        if data.get('ttl') is not None:
            payload['ttl'] = int(data['ttl'])
        elif not partial:
            payload['ttl'] = 1  # automatic
        if data.get('priority') is not None and data.get('type', '').upper() in ('MX', 'SRV', ''):
            payload['priority'] = int(data['priority'])
        if data.get('comment'):
            payload['comment'] = data['comment']
        return payload

    def create_record(self, zone_id: str, data: Dict[str, Any]) -> RecordData | AlreadyExists:
        try:
            body = self._call('POST', f'/zones/{zone_id}/dns_records', json=self._record_payload(data))
            return self.normalize_record(body['result'])
        except CloudflareAPIError as e:
            if e.codes & DUPLICATE_ERROR_CODES:
                self.log.info(f"Cloudflare reports {data['type']} {data['name']} -> {data['content']} exists")
                return AlreadyExists(data['name'], data['type'].upper(), data['content'])
            raise self._write_failed(f'create_record({zone_id})', e)
        except Exception as e:
            raise self._write_failed(f'create_record({zone_id})', e)

    def update_record(
        self,
        zone_id: str,
        record_id: str,
        data: Dict[str, Any],
        current: Optional[RecordData] = None,
    ) -> RecordData | AlreadyExists:
        try:
            body = self._call(
                'PATCH',
                f'/zones/{zone_id}/dns_records/{record_id}',
                json=self._record_payload(data, partial=True),
            )
            return self.normalize_record(body['result'])
        except Exception as e:
            raise self._write_failed(f'update_record({zone_id}, {record_id})', e)

    def delete_record(self, zone_id: str, record_id: str, current: Optional[RecordData] = None) -> bool:
        try:
            self._call('DELETE', f'/zones/{zone_id}/dns_records/{record_id}')
            return True
        except Exception as e:
            raise self._write_failed(f'delete_record({zone_id}, {record_id})', e)

    def normalize_record(self, record: Dict[str, Any]) -> RecordData:
        """Normalize Cloudflare record format (no per-record disable)."""
        normalized = super().normalize_record({
            'id': record.get('id'),
            'name': strip_trailing_dot(record.get('name', '')),
            'type': record.get('type'),
            'content': record.get('content', ''),
            'ttl': record.get('ttl', 1),
            'priority': record.get('priority'),
            'disabled': False,
            'comment': record.get('comment'),
        })
        normalized['provider_data'] = record
        return normalized

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
