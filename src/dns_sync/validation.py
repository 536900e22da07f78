"""
Record validation.

Everything here runs before any provider call. Functions return
``(is_valid, error_message)`` tuples instead of raising so callers can
present a validation failure separately from a remote failure.
"""
import ipaddress
import re

RECORD_TYPES = frozenset({
    'A', 'AAAA', 'CNAME', 'MX', 'TXT', 'NS', 'PTR', 'SRV',
    'SOA', 'CAA', 'DNAME', 'DS', 'NAPTR', 'SPF', 'SSHFP',
})

PRIORITY_TYPES = frozenset({'MX', 'SRV'})

# Single character-string limit
TXT_MAX_LENGTH = 255

# Labels of letters, digits, hyphens and underscores, optional trailing dot
DOMAIN_PATTERN = re.compile(
    r'^(?=.{1,253}\.?$)([a-zA-Z0-9_]([a-zA-Z0-9_-]{0,61}[a-zA-Z0-9_])?\.)*'
    r'[a-zA-Z0-9_]([a-zA-Z0-9_-]{0,61}[a-zA-Z0-9_])?\.?$'
)


def is_valid_record_type(record_type: str) -> bool:
    return (record_type or '').upper() in RECORD_TYPES


def requires_priority(record_type: str) -> bool:
    return (record_type or '').upper() in PRIORITY_TYPES


def validate_domain_name(name: str) -> tuple[bool, str | None]:
    """Validate a zone name like ``example.com`` or ``example.com.``."""
    if not name:
        return False, "Zone name is required"
    if not DOMAIN_PATTERN.match(name):
        return False, f"Invalid zone name: {name}"
    return True, None


def _is_ipv4(content: str) -> bool:
    try:
        ipaddress.IPv4Address(content)
        return True
    except ValueError:
        return False


def _is_ipv6(content: str) -> bool:
    try:
        ipaddress.IPv6Address(content)
        return True
    except ValueError:
        return False


def validate_record_content(
    record_type: str,
    content: str,
    priority: int | None = None,
) -> tuple[bool, str | None]:
    """
    Validate record content for its type.

    Rules:
    - A: IPv4 address
    - AAAA: IPv6 address
    - MX, SRV: non-empty content and an explicit priority
    - TXT: non-empty, at most 255 characters
    - SOA: at least seven fields
    - everything else: non-empty content

    Returns:
        (is_valid, error_message)
    """
    record_type = (record_type or '').upper()
    content = content if content is not None else ''

    if not is_valid_record_type(record_type):
        return False, f"Unsupported record type: {record_type or '(empty)'}"

    if record_type == 'A':
        if not _is_ipv4(content):
            return False, "Invalid IPv4 address"
    elif record_type == 'AAAA':
        if not _is_ipv6(content):
            return False, "Invalid IPv6 address"
    elif record_type in PRIORITY_TYPES:
        if not content.strip():
            return False, f"{record_type} record requires content"
        if priority is None:
            return False, f"{record_type} record requires a priority"
        try:
            if int(priority) < 0 or int(priority) > 65535:
                return False, f"{record_type} priority must be between 0 and 65535"
        except (TypeError, ValueError):
            return False, f"{record_type} priority must be an integer"
    elif record_type == 'TXT':
        if not content.strip():
            return False, "TXT record requires content"
        if len(content) > TXT_MAX_LENGTH:
            return False, f"TXT record cannot exceed {TXT_MAX_LENGTH} characters"
    elif record_type == 'SOA':
        if len(content.split()) < 7:
            return False, "SOA record requires seven fields"
    elif not content.strip():
        return False, "Content cannot be empty"

    return True, None


def normalize_record_name(name: str | None, zone_name: str) -> str:
    """Turn a record name into an absolute name with trailing dot.

    ``@`` or empty means the zone apex; names already ending in a dot are
    absolute; anything else is relative to the zone.
    """
    apex = zone_name.rstrip('.') + '.'
    if not name or name == '@':
        return apex
    if name.endswith('.'):
        return name
    if name.lower() == zone_name.rstrip('.').lower():
        return apex
    return f"{name}.{apex}"
