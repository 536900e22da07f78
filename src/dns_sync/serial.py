"""
Zone serial helpers.

Serials use the conventional date encoding YYYYMMDDnn: the first eight
digits are the day of the change, the last two a per-day counter.
"""
import re
from datetime import date
from typing import Optional

SOA_SPLIT = re.compile(r'\s+')


def today_prefix(today: Optional[date] = None) -> int:
    """Return today's serial base, e.g. 2026101800."""
    today = today or date.today()
    return int(today.strftime('%Y%m%d')) * 100


def next_serial(current: Optional[int], today: Optional[date] = None) -> int:
    """Return the serial to use after one more change.

    A serial dated today (or later) is incremented by one; anything else
    (unset, older day, non-date serial) restarts at today's ``...01``.
    The result is always greater than ``current``.
    """
    prefix = today_prefix(today)
    current = int(current or 0)

    if current > prefix:
        return current + 1
    return prefix + 1


def serial_from_soa(content: str) -> Optional[int]:
    """Extract the serial field from SOA record content.

    SOA format: mname rname serial refresh retry expire minimum
    """
    parts = SOA_SPLIT.split(content.strip())
    if len(parts) < 7:
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None
