"""
ORM-level immutability enforcement for append-only ledger records.

Protected records:
    - LedgerEvent: never updated, never deleted.  A changed row would break
      the hash chain; the listener stops it before it reaches the database.
    - NonceRecord: never deleted (it is the permanent replay record); a used
      nonce never reverts to unused; presigned_hash, nonce and identity
      never change.

The listeners run in ``before_update`` / ``before_delete`` mapper events, so
they fire inside the flush of whatever transaction attempts the change and
abort it with ImmutabilityViolationError.
"""

from sqlalchemy import event, inspect

from streampay_kernel.exceptions import ImmutabilityViolationError
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.ledger_event import LedgerEvent
from streampay_kernel.models.nonce import NonceRecord

logger = get_logger("db.immutability")

_NONCE_FROZEN_FIELDS = ("vault_id", "identity", "nonce", "presigned_hash", "created_at")


def _check_ledger_event_update(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "LedgerEvent", "entity_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        "LedgerEvent", str(target.id), "ledger events are append-only"
    )


def _check_ledger_event_delete(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "LedgerEvent", "entity_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        "LedgerEvent", str(target.id), "ledger events cannot be deleted"
    )


def _check_nonce_update(mapper, connection, target):
    state = inspect(target)

    for field in _NONCE_FROZEN_FIELDS:
        if state.attrs[field].history.has_changes():
            raise ImmutabilityViolationError(
                "NonceRecord", str(target.id), f"{field} cannot change"
            )

    used_history = state.attrs["used"].history
    if used_history.has_changes() and True in (used_history.deleted or ()):
        raise ImmutabilityViolationError(
            "NonceRecord", str(target.id), "a used nonce cannot be reset"
        )


def _check_nonce_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "NonceRecord", str(target.id), "nonce records are permanent"
    )


_LISTENERS = (
    (LedgerEvent, "before_update", _check_ledger_event_update),
    (LedgerEvent, "before_delete", _check_ledger_event_delete),
    (NonceRecord, "before_update", _check_nonce_update),
    (NonceRecord, "before_delete", _check_nonce_delete),
)


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, identifier, fn in _LISTENERS:
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)


def unregister_immutability_listeners() -> None:
    """Remove all immutability listeners. Primarily for testing."""
    for target, identifier, fn in _LISTENERS:
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
