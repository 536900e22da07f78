"""Configuration lookup for dns-sync.

Resolution order for every key:
- process environment
- `.env` (local override layer, optional)
- `.env.defaults` (version-controlled catalog of defaults)
- the fallback passed by the caller
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

# Keys understood by the engine, with their built-in fallbacks
DEFAULTS: Dict[str, str] = {
    'DNS_SYNC_DB_PATH': 'dns_sync.db',
    'DNS_SYNC_STALE_MINUTES': '5',
    'DNS_SYNC_DEFAULT_TIMEOUT': '30',
    'DNS_SYNC_DEFAULT_TTL': '3600',
    'DNS_SYNC_PROVIDER_STALE_HOURS': '1',
}


# Later files override earlier ones
ENV_FILES = ('.env.defaults', '.env')


def _search_dirs() -> list[Path]:
    """Package checkout root first, then the working directory if it differs."""
    root = Path(__file__).resolve().parents[2]
    try:
        cwd = Path.cwd().resolve()
    except OSError:
        return [root]
    return [root] if cwd == root else [root, cwd]


@lru_cache(maxsize=1)
def load_defaults() -> Dict[str, str]:
    """Merged `.env.defaults` and `.env` values; empty when no file exists."""
    merged: Dict[str, str] = {}
    dirs = _search_dirs()
    for path in (d / name for name in ENV_FILES for d in dirs):
        if path.is_file():
            merged.update(_parse_env_file(path))
    return merged


def get_default(key: str, fallback: str | None = None) -> str | None:
    """Return the configured value for a key (or fallback)."""
    value = os.environ.get(key)
    if value is not None:
        return value
    value = load_defaults().get(key)
    if value is not None:
        return value
    if fallback is not None:
        return fallback
    return DEFAULTS.get(key)


def require_default(key: str) -> str:
    """Return the configured value or raise if missing everywhere."""
    value = get_default(key)
    if value is None:
        raise RuntimeError(f"Required setting '{key}' missing from environment and .env/.env.defaults")
    return value


def get_int(key: str, fallback: int | None = None) -> int:
    """Return a setting parsed as int, falling back when unparsable."""
    raw = get_default(key, str(fallback) if fallback is not None else None)
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Setting {key}={raw!r} is not an integer, using {fallback}")
        if fallback is None:
            return int(DEFAULTS[key])
        return fallback


def _parse_env_file(env_path: Path) -> Dict[str, str]:
    """KEY=value pairs; `#` lines and lines without `=` are ignored."""
    pairs = (
        raw.strip().partition('=')
        for raw in env_path.read_text(encoding='utf-8').splitlines()
    )
    values: Dict[str, str] = {}
    for key, sep, value in pairs:
        if not sep or key.startswith('#'):
            continue
        value = value.strip()
        if value[:1] in ('"', "'") and len(value) > 1 and value.endswith(value[0]):
            value = value[1:-1]
        values[key.strip()] = value
    return values
