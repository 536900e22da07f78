"""
Abstract base class for DNS provider backends.

All DNS providers must implement this interface. Reads and writes fail
differently on purpose:

- read methods never raise; on any error they log and return a degraded
  ReadResult with empty data so the local cache can keep serving
- write methods raise BackendError, because a silently failed write would
  leave the cache describing DNS state that does not exist
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import jsonschema

from ..config_defaults import get_int

logger = logging.getLogger(__name__)

ZoneData = Dict[str, Any]
RecordData = Dict[str, Any]

# Failure reasons surfaced to callers
REASON_AUTH = 'auth'
REASON_TIMEOUT = 'timeout'
REASON_NOT_FOUND = 'not_found'
REASON_RATE_LIMITED = 'rate_limited'
REASON_HTTP = 'http_error'
REASON_NETWORK = 'network'
REASON_CONFIG = 'configuration'
REASON_UNSUPPORTED = 'unsupported'
REASON_UNKNOWN = 'unknown'


class BackendError(Exception):
    """Exception raised for backend operation failures."""

    def __init__(self, message: str, reason: str = REASON_UNKNOWN):
        super().__init__(message)
        self.reason = reason


class ConfigurationError(BackendError):
    """Unknown provider type or invalid connection configuration."""

    def __init__(self, message: str):
        super().__init__(message, reason=REASON_CONFIG)


class NotImplementedByBackend(BackendError):
    """Write operation the backend does not support yet."""

    def __init__(self, message: str):
        super().__init__(message, reason=REASON_UNSUPPORTED)


def reason_for_status(status: int) -> str:
    if status in (401, 403):
        return REASON_AUTH
    if status == 404:
        return REASON_NOT_FOUND
    if status == 429:
        return REASON_RATE_LIMITED
    return REASON_HTTP


def classify_error(exc: Exception) -> str:
    """Map a transport/API exception to a failure reason."""
    if isinstance(exc, BackendError):
        return exc.reason
    if isinstance(exc, httpx.TimeoutException):
        return REASON_TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        return reason_for_status(exc.response.status_code)
    if isinstance(exc, httpx.TransportError):
        return REASON_NETWORK
    return REASON_UNKNOWN


@dataclass
class ReadResult:
    """Result of a read: data, or empty data plus the reason it degraded.

    Distinguishes "the provider has no records" (ok, empty data) from
    "the provider could not be asked" (degraded).
    """
    data: Any
    reason: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def degraded(self) -> bool:
        return self.reason is not None

    @classmethod
    def success(cls, data: Any) -> 'ReadResult':
        return cls(data=data)

    @classmethod
    def degrade(cls, empty: Any, reason: str, message: str = '') -> 'ReadResult':
        return cls(data=empty, reason=reason, message=message)


@dataclass
class AlreadyExists:
    """Returned by create_record when the value is already in its RRset.

    Not an error: no mutating call was made.
    """
    name: str
    record_type: str
    content: str
    records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Record already exists: {self.record_type} {self.name} -> {self.content}"


# Field count of MX/SRV content when it carries its priority
PRIORITY_FIELDS = {'MX': 2, 'SRV': 4}


def _has_priority(content: str, record_type: str) -> bool:
    fields = (content or '').split()
    expected = PRIORITY_FIELDS.get(record_type.upper())
    return expected is not None and len(fields) >= expected and fields[0].isdigit()


def extract_priority(content: str, record_type: str) -> int:
    """Leading-integer priority of MX/SRV content, 0 otherwise."""
    if _has_priority(content, record_type):
        return int(content.split()[0])
    return 0


def strip_priority(content: str, record_type: str) -> str:
    """MX/SRV content without its leading priority field.

    ``10 mail.example.com.`` becomes ``mail.example.com.``; an SRV value
    keeps weight and port (``5 5060 sip.example.com.`` is left alone).
    """
    if _has_priority(content, record_type):
        return content.split(None, 1)[1].strip()
    return content


class DNSBackend(ABC):
    """Abstract base class for DNS backends.

    Each DNS provider (PowerDNS, Cloudflare, BIND, Route 53) implements
    this interface to be usable behind a DnsProvider row.

    Subclasses declare the connection keys they need in CONFIG_SCHEMA and
    read them in ``_configure``; construction fails with ConfigurationError
    when required keys are missing.
    """

    provider_type: str = ''

    # Record ids derive from a value's position in its rrset and shift when
    # a sibling is removed
    positional_record_ids: bool = False

    CONFIG_SCHEMA: Dict[str, Any] = {'type': 'object'}

    DEFAULT_TIMEOUT = 30

    def __init__(self, config: Dict[str, Any], log: Optional[logging.Logger] = None):
        """Initialize backend with configuration.

        Args:
            config: Provider-specific connection configuration
            log: Logger used for degraded reads and failed writes
        """
        self.config = dict(config or {})
        self.log = log or logger
        self.validate_config(self.config)

        self.timeout = float(self.config.get('timeout') or get_int('DNS_SYNC_DEFAULT_TIMEOUT', self.DEFAULT_TIMEOUT))
        rate_limit = self.config.get('rate_limit')
        self.min_interval = 60.0 / int(rate_limit) if rate_limit else 0.0
        self._last_call = 0.0

        self._configure(self.config)

    @classmethod
    def validate_config(cls, config: Dict[str, Any]) -> None:
        """Validate a connection map against CONFIG_SCHEMA."""
        try:
            jsonschema.validate(instance=config, schema=cls.CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Invalid {cls.provider_type or cls.__name__} config: {e.message}")

    def _configure(self, config: Dict[str, Any]) -> None:
        """Parse provider-specific keys. Called once from __init__."""

    def _throttle(self) -> None:
        """Space outgoing calls to honour the provider's rate limit."""
        if not self.min_interval:
            return
        wait = self._last_call + self.min_interval - time.monotonic()
        if wait > 0:
            time.sleep(wait)
        self._last_call = time.monotonic()

    def _degraded(self, operation: str, exc: Exception, empty: Any) -> ReadResult:
        reason = classify_error(exc)
        self.log.error(f"{self.provider_type} {operation} failed ({reason}): {exc}")
        return ReadResult.degrade(empty, reason, str(exc))

    def _write_failed(self, operation: str, exc: Exception) -> BackendError:
        if isinstance(exc, BackendError):
            self.log.error(f"{self.provider_type} {operation} failed ({exc.reason}): {exc}")
            return exc
        reason = classify_error(exc)
        self.log.error(f"{self.provider_type} {operation} failed ({reason}): {exc}")
        return BackendError(f"{operation} failed: {exc}", reason=reason)

    @abstractmethod
    def test_connection(self) -> bool:
        """Lightweight reachability/credentials check. Never raises."""

    @abstractmethod
    def get_all_zones(self) -> ReadResult:
        """List all zones (ReadResult.data: list of ZoneData)."""

    @abstractmethod
    def get_zone(self, zone_id: str) -> ReadResult:
        """Fetch one zone (ReadResult.data: ZoneData, {} when unavailable)."""

    @abstractmethod
    def create_zone(self, data: Dict[str, Any]) -> ZoneData:
        """Create a zone.

        Returns:
            ZoneData with at least ``id`` and ``serial`` when the provider
            reports one

        Raises:
            BackendError: If creation fails
        """

    @abstractmethod
    def update_zone(self, zone_id: str, data: Dict[str, Any]) -> ZoneData:
        """Update zone metadata. Raises BackendError on failure."""

    @abstractmethod
    def delete_zone(self, zone_id: str) -> bool:
        """Delete a zone. Raises BackendError on failure."""

    @abstractmethod
    def get_zone_records(self, zone_id: str) -> ReadResult:
        """List all records of a zone, one entry per value."""

    @abstractmethod
    def get_record(self, zone_id: str, record_id: str) -> ReadResult:
        """Fetch one record ({} when the backend cannot address records)."""

    @abstractmethod
    def create_record(self, zone_id: str, data: Dict[str, Any]) -> RecordData | AlreadyExists:
        """Create a record. Raises BackendError on failure."""

    @abstractmethod
    def update_record(
        self,
        zone_id: str,
        record_id: str,
        data: Dict[str, Any],
        current: Optional[RecordData] = None,
    ) -> RecordData | AlreadyExists:
        """Update a record.

        Args:
            zone_id: Provider zone identifier
            record_id: Provider record identifier
            data: New record fields
            current: Cached copy of the record before the change, for
                backends that address records by content

        Raises:
            BackendError: If update fails
        """

    @abstractmethod
    def delete_record(self, zone_id: str, record_id: str, current: Optional[RecordData] = None) -> bool:
        """Delete a record. Raises BackendError on failure."""

    def normalize_record(self, record: Dict[str, Any]) -> RecordData:
        """Normalize a provider record to the common schema.

        Subclasses override to handle provider-specific formats.
        """
        record_type = (record.get('type') or '').upper()
        content = record.get('content', '')
        priority = record.get('priority')
        if priority is None:
            priority = extract_priority(content, record_type)
        return {
            'id': record.get('id'),
            'name': record.get('name', ''),
            'type': record_type,
            'content': content,
            'ttl': record.get('ttl', 3600),
            'priority': priority,
            'disabled': bool(record.get('disabled', False)),
            'auth': bool(record.get('auth', True)),
            'comment': record.get('comment') or '',
            'provider_data': record,
        }

    def filter_records(
        self,
        records: List[RecordData],
        name: str,
        record_type: Optional[str] = None,
    ) -> List[RecordData]:
        """Filter normalized records by name and optionally type."""
        wanted = name.rstrip('.').lower()
        result = []
        for rec in records:
            if rec.get('name', '').rstrip('.').lower() == wanted:
                if record_type is None or rec.get('type', '').upper() == record_type.upper():
                    result.append(rec)
        return result

    def close(self) -> None:
        """Release network resources. No-op by default."""
