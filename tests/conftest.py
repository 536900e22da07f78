"""Shared fixtures: Flask app with a throwaway sqlite cache and a fake PowerDNS API.

The fake PowerDNS server keeps zones in memory and is reached through
httpx.MockTransport, so no test performs real network I/O.
"""

from __future__ import annotations

import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from dns_sync.app import create_app
from dns_sync.backends.registry import make_backend
from dns_sync.models import DnsProvider, DnsZone, db

PDNS_CONFIG = {"api_url": "http://pdns.test:8081", "api_key": "secret"}
PDNS_PREFIX = "/api/v1/servers/localhost"


class FakePowerDNS:
    """In-memory PowerDNS Authoritative HTTP API."""

    def __init__(self):
        self.zones: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None  # status for every non-GET call
        self.fail_reads_with: int | None = None
        self.create_serial = 2026010101
        self.transport = httpx.MockTransport(self.handle)

    def add_zone(self, name: str, serial: int | None = 2026010101, rrsets=None, kind: str = "Native") -> dict:
        name = name if name.endswith(".") else f"{name}."
        self.zones[name] = {"id": name, "name": name, "kind": kind, "serial": serial, "rrsets": list(rrsets or [])}
        return self.zones[name]

    def rrset(self, zone: str, name: str, rtype: str) -> dict | None:
        for rrset in self.zones[zone]["rrsets"]:
            if rrset["name"] == name and rrset["type"] == rtype:
                return rrset
        return None

    @property
    def mutations(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method != "GET"]

    @property
    def patches(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "PATCH"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method != "GET" and self.fail_with:
            return httpx.Response(self.fail_with, json={"error": "injected failure"})
        if request.method == "GET" and self.fail_reads_with:
            return httpx.Response(self.fail_reads_with, json={"error": "injected failure"})

        if path == PDNS_PREFIX:
            return httpx.Response(200, json={"id": "localhost", "type": "Server"})

        if path == f"{PDNS_PREFIX}/zones":
            if request.method == "GET":
                listing = [{k: v for k, v in z.items() if k != "rrsets"} for z in self.zones.values()]
                return httpx.Response(200, json=listing)
            body = json.loads(request.content)
            if body["name"] in self.zones:
                return httpx.Response(409, json={"error": "Conflict"})
            zone = self.add_zone(body["name"], serial=self.create_serial, kind=body.get("kind", "Native"))
            return httpx.Response(201, json=zone)

        if path.startswith(f"{PDNS_PREFIX}/zones/"):
            zone = self.zones.get(path[len(f"{PDNS_PREFIX}/zones/"):])
            if zone is None:
                return httpx.Response(404, json={"error": "Could not find domain"})
            if request.method == "GET":
                return httpx.Response(200, json=zone)
            if request.method == "PATCH":
                for change in json.loads(request.content)["rrsets"]:
                    zone["rrsets"] = [
                        r for r in zone["rrsets"]
                        if not (r["name"] == change["name"] and r["type"] == change["type"])
                    ]
                    if change["changetype"] == "REPLACE":
                        zone["rrsets"].append({
                            "name": change["name"],
                            "type": change["type"],
                            "ttl": change["ttl"],
                            "records": change["records"],
                        })
                zone["serial"] = (zone["serial"] or 0) + 1
                return httpx.Response(204)
            if request.method == "PUT":
                zone.update(json.loads(request.content))
                return httpx.Response(204)
            if request.method == "DELETE":
                del self.zones[zone["name"]]
                return httpx.Response(204)

        return httpx.Response(404, json={"error": "Not Found"})


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setenv("SECRET_KEY", "test_secret_key_for_testing_only")
    monkeypatch.setenv("DNS_SYNC_DB_PATH", str(tmp_path / "test.db"))

    app = create_app()
    app.config["TESTING"] = True

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def pdns() -> FakePowerDNS:
    return FakePowerDNS()


@pytest.fixture
def provider(app, pdns, monkeypatch) -> DnsProvider:
    """PowerDNS provider whose backend talks to the fake server."""
    row = DnsProvider(type="powerdns", name="pdns-test")
    row.set_connection_config(PDNS_CONFIG)
    db.session.add(row)
    db.session.commit()

    monkeypatch.setattr(
        DnsProvider,
        "get_client",
        lambda self, log=None: make_backend(self, log=log, transport=pdns.transport),
    )
    return row


def make_zone(provider: DnsProvider, name: str = "example.com", external_id: str | None = "example.com.", **kwargs) -> DnsZone:
    zone = DnsZone(dns_provider_id=provider.id, name=name, external_id=external_id, **kwargs)
    db.session.add(zone)
    db.session.commit()
    return zone


def a_rrset(name: str, *addresses: str, ttl: int = 3600, rtype: str = "A") -> dict:
    return {
        "name": name,
        "type": rtype,
        "ttl": ttl,
        "records": [{"content": a, "disabled": False} for a in addresses],
    }
