"""
Shared behaviour for backends whose API is not wired up yet.

Reads degrade silently (empty data, reason ``unsupported``); writes raise
NotImplementedByBackend so nothing is ever cached as if it had happened.
"""

from typing import Any, Dict, Optional

from .base import (
    REASON_UNSUPPORTED,
    AlreadyExists,
    DNSBackend,
    NotImplementedByBackend,
    ReadResult,
    RecordData,
    ZoneData,
)


class UnimplementedBackend(DNSBackend):
    """Backend with the full interface but no remote operations."""

    def _unsupported_read(self, operation: str, empty: Any) -> ReadResult:
        self.log.debug(f"{self.provider_type} {operation} not implemented, returning no data")
        return ReadResult.degrade(empty, REASON_UNSUPPORTED, f"{self.provider_type} does not support {operation} yet")

    def _unsupported_write(self, operation: str) -> NotImplementedByBackend:
        self.log.error(f"{self.provider_type} {operation} not implemented")
        return NotImplementedByBackend(f"{self.provider_type} provider does not implement {operation} yet")

    def test_connection(self) -> bool:
        return False

    def get_all_zones(self) -> ReadResult:
        return self._unsupported_read('get_all_zones', [])

    def get_zone(self, zone_id: str) -> ReadResult:
        return self._unsupported_read('get_zone', {})

    def get_zone_records(self, zone_id: str) -> ReadResult:
        return self._unsupported_read('get_zone_records', [])

    def get_record(self, zone_id: str, record_id: str) -> ReadResult:
        return self._unsupported_read('get_record', {})

    def create_zone(self, data: Dict[str, Any]) -> ZoneData:
        raise self._unsupported_write('create_zone')

    def update_zone(self, zone_id: str, data: Dict[str, Any]) -> ZoneData:
        raise self._unsupported_write('update_zone')

    def delete_zone(self, zone_id: str) -> bool:
        raise self._unsupported_write('delete_zone')

    def create_record(self, zone_id: str, data: Dict[str, Any]) -> RecordData | AlreadyExists:
        raise self._unsupported_write('create_record')

    def update_record(
        self,
        zone_id: str,
        record_id: str,
        data: Dict[str, Any],
        current: Optional[RecordData] = None,
    ) -> RecordData | AlreadyExists:
        raise self._unsupported_write('update_record')

    def delete_record(self, zone_id: str, record_id: str, current: Optional[RecordData] = None) -> bool:
        raise self._unsupported_write('delete_record')
