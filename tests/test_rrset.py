"""Tests for the record-set merge helpers (pure, no network)."""

from __future__ import annotations

import random

import pytest

from dns_sync.rrset import (
    ensure_trailing_dot,
    find_rrset,
    merge_rrset,
    remove_from_rrset,
    replace_in_rrset,
)


def _rrset(name: str, rtype: str, contents: list[str], ttl: int | None = 300, disabled: set[str] | None = None) -> dict:
    rrset = {
        "name": name,
        "type": rtype,
        "records": [{"content": c, "disabled": c in (disabled or set())} for c in contents],
    }
    if ttl is not None:
        rrset["ttl"] = ttl
    return rrset


def _random_ipv4(rng: random.Random) -> str:
    return ".".join(str(rng.randint(1, 254)) for _ in range(4))


def test_round_robin_a_records_keep_existing_address():
    existing = _rrset("www.example.com.", "A", ["192.168.1.1"])

    merged = merge_rrset(existing, "www.example.com.", "A", "192.168.1.2")

    assert not merged.duplicate
    assert [r["content"] for r in merged.records] == ["192.168.1.1", "192.168.1.2"]
    assert merged.rrset["changetype"] == "REPLACE"
    assert merged.rrset["name"] == "www.example.com."


def test_merge_into_missing_rrset_uses_default_ttl():
    merged = merge_rrset(None, "new.example.com", "TXT", '"hello"')

    assert merged.rrset["name"] == "new.example.com."
    assert merged.ttl == 3600
    assert merged.records == [{"content": '"hello"', "disabled": False}]


def test_explicit_ttl_overrides_existing():
    existing = _rrset("www.example.com.", "A", ["10.0.0.1"], ttl=300)

    merged = merge_rrset(existing, "www.example.com.", "A", "10.0.0.2", ttl=60)

    assert merged.ttl == 60


def test_existing_set_without_ttl_falls_back_to_default():
    existing = _rrset("www.example.com.", "A", ["10.0.0.1"], ttl=None)

    merged = merge_rrset(existing, "www.example.com.", "A", "10.0.0.2", default_ttl=900)

    assert merged.ttl == 900


@pytest.mark.parametrize("seed", range(25))
def test_merge_preserves_every_member_and_carries_ttl(seed):
    rng = random.Random(seed)
    contents = list(dict.fromkeys(_random_ipv4(rng) for _ in range(rng.randint(0, 8))))
    disabled = {c for c in contents if rng.random() < 0.3}
    ttl = rng.choice([60, 300, 3600, 86400])
    existing = _rrset("rr.example.com.", "A", contents, ttl=ttl, disabled=disabled) if contents else None
    new = _random_ipv4(rng)

    merged = merge_rrset(existing, "rr.example.com.", "A", new)

    if new in contents:
        assert merged.duplicate
        assert merged.rrset is None
        return

    by_content = {r["content"]: r["disabled"] for r in merged.records}
    for content in contents:
        assert by_content[content] == (content in disabled)
    assert new in by_content
    assert len(merged.records) == len(contents) + 1
    assert merged.ttl == (ttl if contents else 3600)


@pytest.mark.parametrize("seed", range(25))
def test_re_adding_any_member_is_a_duplicate(seed):
    rng = random.Random(1000 + seed)
    contents = list(dict.fromkeys(_random_ipv4(rng) for _ in range(rng.randint(1, 6))))
    existing = _rrset("dup.example.com.", "A", contents)

    merged = merge_rrset(existing, "dup.example.com.", "A", rng.choice(contents))

    assert merged.duplicate
    assert merged.rrset is None
    assert [r["content"] for r in merged.existing_records] == contents


def test_replace_swaps_one_member_only():
    existing = _rrset("mail.example.com.", "MX", ["10 mx1.example.com.", "20 mx2.example.com."], ttl=600)

    merged = replace_in_rrset(existing, "mail.example.com.", "MX", "20 mx2.example.com.", "30 mx3.example.com.")

    assert [r["content"] for r in merged.records] == ["10 mx1.example.com.", "30 mx3.example.com."]
    assert merged.ttl == 600


def test_replace_with_unknown_old_value_appends():
    existing = _rrset("www.example.com.", "A", ["10.0.0.1"])

    merged = replace_in_rrset(existing, "www.example.com.", "A", "10.9.9.9", "10.0.0.2")

    assert [r["content"] for r in merged.records] == ["10.0.0.1", "10.0.0.2"]


def test_replace_onto_existing_sibling_is_duplicate():
    existing = _rrset("www.example.com.", "A", ["10.0.0.1", "10.0.0.2"])

    merged = replace_in_rrset(existing, "www.example.com.", "A", "10.0.0.1", "10.0.0.2")

    assert merged.duplicate


def test_replace_keeps_disabled_flag_unless_given():
    existing = _rrset("www.example.com.", "A", ["10.0.0.1"], disabled={"10.0.0.1"})

    kept = replace_in_rrset(existing, "www.example.com.", "A", "10.0.0.1", "10.0.0.5")
    enabled = replace_in_rrset(existing, "www.example.com.", "A", "10.0.0.1", "10.0.0.5", disabled=False)

    assert kept.records[0]["disabled"] is True
    assert enabled.records[0]["disabled"] is False


def test_remove_last_member_deletes_rrset():
    existing = _rrset("old.example.com.", "CNAME", ["target.example.com."])

    change = remove_from_rrset(existing, "target.example.com.")

    assert change == {"name": "old.example.com.", "type": "CNAME", "changetype": "DELETE"}


def test_remove_one_of_many_keeps_siblings_and_ttl():
    existing = _rrset("example.com.", "NS", ["ns1.example.net.", "ns2.example.net."], ttl=172800)

    change = remove_from_rrset(existing, "ns1.example.net.")

    assert change["changetype"] == "REPLACE"
    assert change["ttl"] == 172800
    assert change["records"] == [{"content": "ns2.example.net.", "disabled": False}]


def test_find_rrset_ignores_case_and_trailing_dot():
    rrsets = [_rrset("WWW.Example.com.", "A", ["10.0.0.1"]), _rrset("www.example.com.", "AAAA", ["::1"])]

    assert find_rrset(rrsets, "www.example.com", "a") is rrsets[0]
    assert find_rrset(rrsets, "www.example.com.", "TXT") is None
    assert find_rrset([], "www.example.com.", "A") is None


def test_ensure_trailing_dot_is_idempotent():
    assert ensure_trailing_dot("example.com") == "example.com."
    assert ensure_trailing_dot("example.com.") == "example.com."
