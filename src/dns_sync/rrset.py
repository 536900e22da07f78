"""
RRset merge algorithm.

Backends such as PowerDNS mutate whole record-sets (all values sharing a
name and type) rather than single records. Adding one value therefore
means: read the current set remotely, merge the new value in, and submit
the complete set as one REPLACE. The helpers here are pure; the network
side lives in the backend.

Invariants:
- every existing member keeps its content and disabled flag
- re-adding content already in the set is reported as a duplicate
- an omitted TTL carries the existing set's TTL forward
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_TTL = 3600


def ensure_trailing_dot(name: str) -> str:
    return name if name.endswith('.') else f"{name}."


def strip_trailing_dot(name: str) -> str:
    return name.rstrip('.')


def _same_name(a: str, b: str) -> bool:
    return ensure_trailing_dot(a).lower() == ensure_trailing_dot(b).lower()


def find_rrset(rrsets: List[Dict[str, Any]], name: str, record_type: str) -> Optional[Dict[str, Any]]:
    """Return the rrset matching (name, type) exactly, or None."""
    record_type = record_type.upper()
    for rrset in rrsets or []:
        if rrset.get('type', '').upper() == record_type and _same_name(rrset.get('name', ''), name):
            return rrset
    return None


@dataclass
class MergeResult:
    """Outcome of merging one requested value into a record-set.

    ``rrset`` is the REPLACE payload to submit; it is None when the request
    was a duplicate and nothing must be sent.
    """
    name: str
    record_type: str
    duplicate: bool = False
    rrset: Optional[Dict[str, Any]] = None
    existing_records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def records(self) -> List[Dict[str, Any]]:
        return self.rrset['records'] if self.rrset else list(self.existing_records)

    @property
    def ttl(self) -> Optional[int]:
        return self.rrset['ttl'] if self.rrset else None


def _copy_members(existing: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not existing:
        return []
    return [
        {'content': r.get('content', ''), 'disabled': bool(r.get('disabled', False))}
        for r in existing.get('records', [])
    ]


def _replace_payload(name: str, record_type: str, ttl: int, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'name': ensure_trailing_dot(name),
        'type': record_type,
        'ttl': ttl,
        'changetype': 'REPLACE',
        'records': records,
    }


def _carry_ttl(existing: Optional[Dict[str, Any]], ttl: Optional[int], default_ttl: int) -> int:
    if ttl is not None:
        return int(ttl)
    if existing and existing.get('ttl') is not None:
        return int(existing['ttl'])
    return default_ttl


def merge_rrset(
    existing: Optional[Dict[str, Any]],
    name: str,
    record_type: str,
    content: str,
    ttl: Optional[int] = None,
    disabled: Optional[bool] = None,
    default_ttl: int = DEFAULT_TTL,
) -> MergeResult:
    """Merge one new value into an existing record-set.

    Args:
        existing: Current remote rrset for (name, type), or None
        name: Owner name
        record_type: Record type
        content: Value to add
        ttl: Explicit TTL, None to keep the existing set's TTL
        disabled: Disabled flag for the new member (default False)
        default_ttl: TTL for a brand-new set when none is given

    Returns:
        MergeResult with either duplicate=True or the REPLACE payload
    """
    record_type = record_type.upper()
    members = _copy_members(existing)

    if any(m['content'] == content for m in members):
        return MergeResult(name=name, record_type=record_type, duplicate=True, existing_records=members)

    merged = members + [{'content': content, 'disabled': bool(disabled or False)}]
    payload = _replace_payload(name, record_type, _carry_ttl(existing, ttl, default_ttl), merged)
    return MergeResult(name=name, record_type=record_type, rrset=payload, existing_records=members)


def replace_in_rrset(
    existing: Optional[Dict[str, Any]],
    name: str,
    record_type: str,
    old_content: Optional[str],
    new_content: str,
    ttl: Optional[int] = None,
    disabled: Optional[bool] = None,
    default_ttl: int = DEFAULT_TTL,
) -> MergeResult:
    """Swap one member of a record-set for a new value.

    Siblings are left untouched. When ``old_content`` is not in the set the
    new value is appended, so an update against a drifted set never drops
    data. Replacing a value with one already present is a duplicate.
    """
    record_type = record_type.upper()
    members = _copy_members(existing)

    if new_content != old_content and any(m['content'] == new_content for m in members):
        return MergeResult(name=name, record_type=record_type, duplicate=True, existing_records=members)

    updated = []
    replaced = False
    for member in members:
        if not replaced and old_content is not None and member['content'] == old_content:
            updated.append({
                'content': new_content,
                'disabled': member['disabled'] if disabled is None else bool(disabled),
            })
            replaced = True
        else:
            updated.append(member)
    if not replaced:
        updated.append({'content': new_content, 'disabled': bool(disabled or False)})

    payload = _replace_payload(name, record_type, _carry_ttl(existing, ttl, default_ttl), updated)
    return MergeResult(name=name, record_type=record_type, rrset=payload, existing_records=members)


def remove_from_rrset(existing: Dict[str, Any], content: Optional[str]) -> Dict[str, Any]:
    """Build the PATCH rrset that removes one value.

    If the value is the last member (or no value is given) the whole set is
    deleted with changetype DELETE; otherwise the remaining members are
    submitted as a REPLACE with the set's TTL unchanged.
    """
    name = ensure_trailing_dot(existing['name'])
    record_type = existing['type']
    members = _copy_members(existing)
    remaining = [m for m in members if m['content'] != content] if content is not None else []

    if not remaining:
        return {'name': name, 'type': record_type, 'changetype': 'DELETE'}
    return _replace_payload(name, record_type, _carry_ttl(existing, None, DEFAULT_TTL), remaining)
