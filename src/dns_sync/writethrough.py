"""
Two-phase write-through.

Every mutation of a cached entity is split in two steps:

1. ``remote_mutate`` calls the provider and captures the outcome in a
   RemoteResult without touching the cache.
2. ``apply_to_cache`` runs the entity's cache update only when the remote
   step succeeded, then commits.

The cache is therefore never written before the provider confirmed the
change. WriteOutcome is what callers get back; it is truthy only on
success so it can be used where a plain bool used to be returned.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .backends.base import AlreadyExists, classify_error

logger = logging.getLogger(__name__)

OK = 'ok'
VALIDATION_FAILED = 'validation_failed'
DUPLICATE = 'duplicate'
REMOTE_FAILED = 'remote_failed'
CONSISTENCY_ERROR = 'consistency_error'
NOT_PROVISIONED = 'not_provisioned'


@dataclass
class RemoteResult:
    """What the provider said about one mutating call."""
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    message: Optional[str] = None
    duplicate: Optional[AlreadyExists] = None


@dataclass
class WriteOutcome:
    """Result of a write-through operation as seen by callers."""
    status: str
    message: str = ''
    reason: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    entity: Any = field(default=None, repr=False)  # cached row the operation acted on

    def __bool__(self) -> bool:
        return self.status == OK

    @property
    def success(self) -> bool:
        return self.status == OK

    @classmethod
    def ok(cls, message: str = '', data: Optional[Dict[str, Any]] = None) -> 'WriteOutcome':
        return cls(OK, message, data=data or {})

    @classmethod
    def invalid(cls, message: str) -> 'WriteOutcome':
        return cls(VALIDATION_FAILED, message, reason='validation')

    @classmethod
    def exists(cls, message: str, data: Optional[Dict[str, Any]] = None) -> 'WriteOutcome':
        return cls(DUPLICATE, message, reason='duplicate', data=data or {})

    @classmethod
    def not_provisioned(cls, message: str) -> 'WriteOutcome':
        return cls(NOT_PROVISIONED, message, reason='not_provisioned')

    @classmethod
    def from_remote(cls, result: RemoteResult) -> 'WriteOutcome':
        if result.duplicate is not None:
            return cls.exists(result.duplicate.message, {'records': result.duplicate.records})
        return cls(REMOTE_FAILED, result.message or 'Remote operation failed', reason=result.reason)


def remote_mutate(
    operation: Callable[..., Any],
    *args: Any,
    description: str,
    log: logging.Logger = logger,
    **kwargs: Any,
) -> RemoteResult:
    """Run one provider write and capture its outcome.

    Never raises. A False return from a bool-returning operation counts as
    failure; an AlreadyExists return counts as a duplicate.
    """
    try:
        data = operation(*args, **kwargs)
    except Exception as e:
        reason = classify_error(e)
        log.error(f"Remote {description} failed ({reason}): {e}")
        return RemoteResult(success=False, reason=reason, message=str(e))

    if isinstance(data, AlreadyExists):
        log.info(f"Remote {description} skipped: {data.message}")
        return RemoteResult(success=False, reason='duplicate', message=data.message, duplicate=data)
    if data is False:
        log.error(f"Remote {description} returned failure")
        return RemoteResult(success=False, reason='unknown', message=f"{description} was refused by provider")
    if not isinstance(data, dict):
        data = {}
    return RemoteResult(success=True, data=data)


def apply_to_cache(
    result: RemoteResult,
    apply: Callable[[RemoteResult], None],
    session: Any,
    description: str,
    log: logging.Logger = logger,
) -> WriteOutcome:
    """Mirror a successful remote result into the cache and commit.

    A failure here means the provider changed but the cache did not: that
    is logged as critical and reported as a consistency error, and the
    entity should be repaired with sync_from_remote.
    """
    if not result.success:
        return WriteOutcome.from_remote(result)

    try:
        apply(result)
        session.commit()
    except Exception as e:
        session.rollback()
        log.critical(
            f"Cache out of step after {description}: remote change succeeded but local update failed: {e}. "
            f"Run sync_from_remote to repair."
        )
        return WriteOutcome(CONSISTENCY_ERROR, str(e), reason='consistency', data=result.data)

    return WriteOutcome.ok(f"{description} succeeded", result.data)
