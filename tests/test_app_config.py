"""Configuration lookup and application factory."""

from __future__ import annotations

import logging

import pytest

from dns_sync.app import create_app, setup_logging
from dns_sync.config_defaults import _parse_env_file, get_default, get_int, load_defaults, require_default
from dns_sync.database import get_db_path


def test_environment_wins(monkeypatch):
    monkeypatch.setenv("DNS_SYNC_DEFAULT_TTL", "60")
    assert get_int("DNS_SYNC_DEFAULT_TTL", 3600) == 60


def test_unparsable_int_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("DNS_SYNC_STALE_MINUTES", "soon")
    with caplog.at_level(logging.WARNING):
        assert get_int("DNS_SYNC_STALE_MINUTES", 5) == 5
    assert "not an integer" in caplog.text


def test_builtin_default_when_unset(monkeypatch):
    monkeypatch.delenv("DNS_SYNC_PROVIDER_STALE_HOURS", raising=False)
    assert get_int("DNS_SYNC_PROVIDER_STALE_HOURS") == 1


def test_require_default_missing(monkeypatch):
    monkeypatch.delenv("DNS_SYNC_NO_SUCH_KEY", raising=False)
    assert get_default("DNS_SYNC_NO_SUCH_KEY") is None
    with pytest.raises(RuntimeError, match="DNS_SYNC_NO_SUCH_KEY"):
        require_default("DNS_SYNC_NO_SUCH_KEY")


def test_parse_env_file(tmp_path):
    env = tmp_path / ".env"
    env.write_text('# comment\nA=1\nB="quoted value"\nnot a pair\nC=\'x\'\n', encoding="utf-8")

    assert _parse_env_file(env) == {"A": "1", "B": "quoted value", "C": "x"}


@pytest.fixture
def fresh_defaults():
    load_defaults.cache_clear()
    yield
    load_defaults.cache_clear()


def test_dotenv_overrides_defaults_file(monkeypatch, tmp_path, fresh_defaults):
    (tmp_path / ".env.defaults").write_text("DNS_SYNC_LAYER=catalog\nDNS_SYNC_ONLY_DEFAULTS=kept\n", encoding="utf-8")
    (tmp_path / ".env").write_text("DNS_SYNC_LAYER=local\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DNS_SYNC_LAYER", raising=False)
    monkeypatch.delenv("DNS_SYNC_ONLY_DEFAULTS", raising=False)

    assert get_default("DNS_SYNC_LAYER") == "local"
    assert get_default("DNS_SYNC_ONLY_DEFAULTS") == "kept"

    monkeypatch.setenv("DNS_SYNC_LAYER", "env")
    assert get_default("DNS_SYNC_LAYER") == "env"


def test_db_path_relative_to_cwd(monkeypatch, tmp_path):
    monkeypatch.setenv("DNS_SYNC_DB_PATH", "cache.db")
    monkeypatch.chdir(tmp_path)
    assert get_db_path() == str(tmp_path / "cache.db")


def test_create_app_keeps_explicit_database_uri(monkeypatch, tmp_path):
    uri = f"sqlite:///{tmp_path / 'explicit.db'}"

    app = create_app({"SQLALCHEMY_DATABASE_URI": uri, "TESTING": True})

    assert app.config["SQLALCHEMY_DATABASE_URI"] == uri
    assert (tmp_path / "explicit.db").exists()


def test_setup_logging_level(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", logging.WARNING)

    setup_logging("debug")

    assert root.level == logging.DEBUG
