"""Tests for record validation and name normalization."""

from __future__ import annotations

import pytest

from dns_sync.validation import (
    is_valid_record_type,
    normalize_record_name,
    requires_priority,
    validate_domain_name,
    validate_record_content,
)


@pytest.mark.parametrize(
    "record_type,content,priority",
    [
        ("A", "192.168.1.1", None),
        ("a", "10.0.0.1", None),
        ("AAAA", "2001:db8::1", None),
        ("MX", "mail.example.com.", 10),
        ("MX", "mail.example.com.", 0),
        ("SRV", "5 5060 sip.example.com.", 10),
        ("CNAME", "target.example.com.", None),
        ("TXT", "v=spf1 -all", None),
        ("TXT", "x" * 255, None),
        ("SOA", "ns1.example.com. hostmaster.example.com. 1 10800 3600 604800 3600", None),
    ],
)
def test_valid_content(record_type, content, priority):
    assert validate_record_content(record_type, content, priority) == (True, None)


@pytest.mark.parametrize(
    "record_type,content,priority,message",
    [
        ("A", "2001:db8::1", None, "IPv4"),
        ("A", "999.1.1.1", None, "IPv4"),
        ("AAAA", "192.168.1.1", None, "IPv6"),
        ("MX", "mail.example.com.", None, "priority"),
        ("SRV", "5 5060 sip.example.com.", None, "priority"),
        ("MX", "mail.example.com.", 70000, "between"),
        ("MX", "mail.example.com.", "high", "integer"),
        ("MX", "", 10, "content"),
        ("CNAME", "  ", None, "empty"),
        ("TXT", "", None, "requires content"),
        ("TXT", "x" * 256, None, "255"),
        ("SOA", "ns1.example.com. hostmaster.example.com. 1", None, "seven"),
        ("BOGUS", "x", None, "Unsupported"),
    ],
)
def test_invalid_content(record_type, content, priority, message):
    is_valid, error = validate_record_content(record_type, content, priority)
    assert is_valid is False
    assert message in error


def test_priority_types():
    assert requires_priority("mx")
    assert requires_priority("SRV")
    assert not requires_priority("A")
    assert not requires_priority("")


def test_record_types():
    assert is_valid_record_type("caa")
    assert not is_valid_record_type("WKS")


@pytest.mark.parametrize(
    "name,expected",
    [
        ("@", "example.com."),
        ("", "example.com."),
        (None, "example.com."),
        ("www", "www.example.com."),
        ("a.b", "a.b.example.com."),
        ("www.example.com.", "www.example.com."),
        ("other.net.", "other.net."),
        ("Example.COM", "example.com."),
    ],
)
def test_normalize_record_name(name, expected):
    assert normalize_record_name(name, "example.com") == expected


def test_normalize_record_name_with_dotted_zone():
    assert normalize_record_name("www", "example.com.") == "www.example.com."


@pytest.mark.parametrize("name", ["example.com", "example.com.", "sub.example.co.uk", "_dmarc.example.com"])
def test_valid_domain_names(name):
    assert validate_domain_name(name) == (True, None)


@pytest.mark.parametrize("name", ["", "-bad.example.com", "exa mple.com", "a..b"])
def test_invalid_domain_names(name):
    assert validate_domain_name(name)[0] is False
