"""Write-through behaviour of cached zones against the fake PowerDNS API."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import pytest

from conftest import a_rrset, make_zone
from dns_sync.models import DnsRecord, DnsZone, db
from dns_sync.serial import next_serial
from dns_sync.writethrough import CONSISTENCY_ERROR, NOT_PROVISIONED, REMOTE_FAILED


def test_create_on_remote_assigns_identity_and_serial(provider, pdns):
    zone = DnsZone(dns_provider_id=provider.id, name="example.com", kind="primary")

    outcome = zone.create_on_remote()

    assert outcome
    assert zone.external_id == "example.com."
    assert zone.serial == pdns.create_serial
    assert zone.last_synced is not None
    assert DnsZone.query.count() == 1
    assert "example.com." in pdns.zones


def test_remote_failure_leaves_cache_untouched(provider, pdns):
    pdns.fail_with = 500
    zone = DnsZone(dns_provider_id=provider.id, name="example.com")

    outcome = zone.create_on_remote()

    assert not outcome
    assert outcome.status == REMOTE_FAILED
    assert outcome.reason == "http_error"
    assert zone.external_id is None
    assert zone.serial is None
    assert DnsZone.query.count() == 0


def test_remote_serial_absent_uses_next_serial(provider, pdns):
    pdns.create_serial = None
    zone = DnsZone(dns_provider_id=provider.id, name="example.com")

    zone.create_on_remote()

    assert zone.serial == next_serial(None)


def test_cache_write_failure_is_consistency_error(provider, pdns, monkeypatch, caplog):
    zone = DnsZone(dns_provider_id=provider.id, name="example.com")

    def broken_stamp(self, data):
        raise RuntimeError("disk full")

    monkeypatch.setattr(DnsZone, "_stamp", broken_stamp)
    with caplog.at_level(logging.CRITICAL):
        outcome = zone.create_on_remote()

    assert outcome.status == CONSISTENCY_ERROR
    assert "example.com." in pdns.zones
    assert any(r.levelno == logging.CRITICAL for r in caplog.records)


def test_update_bumps_serial_once(provider, pdns):
    pdns.add_zone("example.com", serial=2026010101)
    zone = make_zone(provider, serial=2026010101)

    outcome = zone.update_on_remote({"kind": "native", "description": "moved"})

    assert outcome
    assert pdns.mutations[-1].method == "PUT"
    assert zone.kind == "native"
    assert zone.description == "moved"
    assert zone.serial == next_serial(2026010101)


def test_update_unprovisioned_zone_makes_no_call(provider, pdns):
    zone = make_zone(provider, external_id=None)

    outcome = zone.update_on_remote({"kind": "native"})

    assert outcome.status == NOT_PROVISIONED
    assert pdns.requests == []


def test_delete_soft_deletes_after_remote(provider, pdns):
    pdns.add_zone("example.com")
    zone = make_zone(provider)

    assert zone.delete_on_remote()

    assert "example.com." not in pdns.zones
    assert zone.deleted_at is not None
    assert DnsZone.query.count() == 1
    assert DnsZone.live().count() == 0


def test_failed_delete_keeps_zone_live(provider, pdns):
    pdns.add_zone("example.com")
    pdns.fail_with = 503
    zone = make_zone(provider)

    outcome = zone.delete_on_remote()

    assert outcome.status == REMOTE_FAILED
    assert zone.deleted_at is None
    assert DnsZone.live().count() == 1


def test_sync_from_remote_refreshes_zone_and_records(provider, pdns):
    pdns.add_zone("example.com", serial=2026101805, kind="Master", rrsets=[
        a_rrset("example.com.", "ns1.example.net.", "ns2.example.net.", rtype="NS"),
        a_rrset("www.example.com.", "10.0.0.1", "10.0.0.2"),
    ])
    zone = make_zone(provider, serial=2026101801)

    outcome = zone.sync_from_remote()

    assert outcome
    assert outcome.data["records"] == 4
    assert zone.serial == 2026101805
    assert zone.kind == "primary"
    assert zone.get_nameservers() == ["ns1.example.net.", "ns2.example.net."]
    assert zone.records_count == 4
    assert zone.get_record_count() == 4


def test_sync_never_moves_serial_backwards(provider, pdns):
    pdns.add_zone("example.com", serial=2026010101)
    zone = make_zone(provider, serial=2026101805)

    zone.sync_from_remote()

    assert zone.serial == 2026101805


def test_record_sync_upserts_and_prunes(provider, pdns):
    pdns.add_zone("example.com", rrsets=[a_rrset("www.example.com.", "10.0.0.1")])
    zone = make_zone(provider)
    stale = DnsRecord(dns_zone_id=zone.id, external_id="gone.example.com._A_0", name="gone.example.com.",
                      type="A", content="10.9.9.9")
    local_only = DnsRecord(dns_zone_id=zone.id, name="draft.example.com.", type="A", content="10.8.8.8")
    db.session.add_all([stale, local_only])
    db.session.commit()

    assert zone.sync_records_from_remote() == 1
    assert zone.sync_records_from_remote() == 1

    live = DnsRecord.live().filter_by(dns_zone_id=zone.id).all()
    assert sorted(r.name for r in live) == ["draft.example.com.", "www.example.com."]
    assert stale.deleted_at is not None
    assert DnsRecord.query.filter_by(external_id="www.example.com._A_0").count() == 1


def test_record_sync_on_unreachable_provider_keeps_cache(provider, pdns):
    pdns.add_zone("example.com")
    zone = make_zone(provider)
    db.session.add(DnsRecord(dns_zone_id=zone.id, external_id="www.example.com._A_0", name="www.example.com.",
                             type="A", content="10.0.0.1"))
    db.session.commit()
    pdns.fail_reads_with = 502

    assert zone.sync_records_from_remote() == -1
    assert zone.get_record_count() == 1


def test_staleness(provider, pdns):
    pdns.add_zone("example.com")
    zone = make_zone(provider)

    assert zone.is_cache_stale()

    zone.sync_from_remote()
    assert not zone.is_cache_stale()
    assert zone.is_cache_stale(now=datetime.utcnow() + timedelta(minutes=10))
    assert not zone.is_cache_stale(max_age=timedelta(hours=1), now=datetime.utcnow() + timedelta(minutes=10))


def test_stale_threshold_from_environment(provider, pdns, monkeypatch):
    monkeypatch.setenv("DNS_SYNC_STALE_MINUTES", "30")
    zone = make_zone(provider, last_synced=datetime.utcnow() - timedelta(minutes=10))

    assert not zone.is_cache_stale()


def test_active_record_count(provider):
    zone = make_zone(provider)
    db.session.add_all([
        DnsRecord(dns_zone_id=zone.id, name="a.example.com.", type="A", content="10.0.0.1"),
        DnsRecord(dns_zone_id=zone.id, name="b.example.com.", type="A", content="10.0.0.2", disabled=True),
        DnsRecord(dns_zone_id=zone.id, name="c.example.com.", type="A", content="10.0.0.3",
                  deleted_at=datetime.utcnow()),
    ])
    db.session.commit()

    assert zone.get_record_count() == 2
    assert zone.get_active_record_count() == 1


@pytest.mark.parametrize("serial,expected_suffix", [(None, 1), (0, 1)])
def test_get_next_serial_for_new_zone(provider, serial, expected_suffix):
    zone = make_zone(provider, serial=serial)
    assert zone.get_next_serial() % 100 == expected_suffix
