"""Tests for provider-type resolution and backend construction."""

from __future__ import annotations

import pytest

from conftest import PDNS_CONFIG
from dns_sync.backends import (
    BACKEND_REGISTRY,
    BindBackend,
    CloudflareBackend,
    ConfigurationError,
    NotImplementedByBackend,
    PowerDNSBackend,
    ProviderType,
    Route53Backend,
    get_backend,
    make_backend,
)
from dns_sync.backends.registry import get_available_providers
from dns_sync.models import DnsProvider


def test_every_provider_type_has_a_backend():
    assert set(BACKEND_REGISTRY) == set(ProviderType)


@pytest.mark.parametrize(
    "tag,config,cls",
    [
        ("powerdns", PDNS_CONFIG, PowerDNSBackend),
        ("PowerDNS", PDNS_CONFIG, PowerDNSBackend),
        ("cloudflare", {"api_token": "t"}, CloudflareBackend),
        ("bind9", {"host": "ns1", "zone_path": "/etc/bind/zones"}, BindBackend),
        ("route53", {"access_key_id": "AK", "secret_access_key": "SK"}, Route53Backend),
        (ProviderType.CLOUDFLARE, {"api_token": "t"}, CloudflareBackend),
    ],
)
def test_get_backend_resolves_type(tag, config, cls):
    assert isinstance(get_backend(tag, config), cls)


def test_unknown_type_is_configuration_error():
    with pytest.raises(ConfigurationError, match="Unknown backend provider"):
        get_backend("digitalocean", {})


@pytest.mark.parametrize(
    "tag,config",
    [
        ("powerdns", {"api_url": "http://pdns"}),
        ("cloudflare", {"api_token": ""}),
        ("bind9", {"host": "ns1"}),
        ("route53", {"access_key_id": "AK"}),
    ],
)
def test_missing_required_keys_fail_fast(tag, config):
    with pytest.raises(ConfigurationError):
        get_backend(tag, config)


def test_make_backend_merges_row_settings(app):
    provider = DnsProvider(type="powerdns", name="pdns", timeout=7, rate_limit=120)
    provider.set_connection_config(PDNS_CONFIG)

    backend = make_backend(provider)

    assert backend.timeout == 7.0
    assert backend.min_interval == 0.5


def test_connection_map_wins_over_row_settings(app):
    provider = DnsProvider(type="powerdns", name="pdns", timeout=7)
    provider.set_connection_config({**PDNS_CONFIG, "timeout": 3})

    assert make_backend(provider).timeout == 3.0


def test_unimplemented_backends_degrade_reads_and_refuse_writes():
    backend = get_backend("bind9", {"host": "ns1", "zone_path": "/etc/bind/zones"})

    zones = backend.get_all_zones()
    assert zones.degraded and zones.reason == "unsupported" and zones.data == []
    assert backend.get_zone("example.com").data == {}
    assert backend.test_connection() is False

    with pytest.raises(NotImplementedByBackend):
        backend.create_zone({"name": "example.com"})
    with pytest.raises(NotImplementedByBackend):
        backend.delete_record("example.com", "1")


def test_available_providers_keyed_by_tag():
    assert get_available_providers()["route53"] is Route53Backend
