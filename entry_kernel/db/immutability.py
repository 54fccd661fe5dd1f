"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Once an entry is confirmed its payload is the document of record: inventory
has been (or will be) moved on the strength of it.  The Transition Guard
refuses edits to locked entries at the service layer; this module is the
second layer and catches any code path that writes through the ORM directly.

    session.flush()
         |
         v
    [before_update] --> _check_entry_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_entry_delete() --------^
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable                         | Mutable fields
--------------------|----------------------------------------|------------------------------
EntryModel          | status in {confirmed, finalConfirmed}  | status (forward), ledger flag,
                    |                                        | confirmation stamps, audit
LedgerTransaction   | ALWAYS (append-only)                   | none
LedgerApplication   | ALWAYS (append-only)                   | none

updated_at / updated_by_id are audit metadata and always allowed to change.

===============================================================================
USAGE
===============================================================================

    from entry_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent; create_tables() calls it
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from entry_kernel.exceptions import ImmutabilityViolationError
from entry_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

# Fields a locked entry may still change as the workflow advances.
_LOCKED_ENTRY_MUTABLE_FIELDS = _AUDIT_FIELDS | frozenset({
    "status",
    "ledger_applied",
    "first_confirmed_at",
    "final_confirmed_at",
    "final_confirmed_by_id",
})


def _was_locked(target) -> bool:
    from entry_kernel.domain.workflow import LOCKED_STATUSES

    status_history = get_history(target, "status")
    if status_history.deleted:
        old_status = status_history.deleted[0]
    else:
        old_status = target.status
    return str(old_status) in {s.value for s in LOCKED_STATUSES}


def _block(entity_type: str, entity_id, operation: str, reason: str, field=None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_entry_immutability(mapper, connection, target):
    """Block payload edits on entries that were already locked before this flush."""
    if not _was_locked(target):
        return

    for attr in inspect(target).attrs:
        if attr.key in _LOCKED_ENTRY_MUTABLE_FIELDS:
            continue
        if attr.history.has_changes():
            _block(
                "Entry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a confirmed entry",
                field=attr.key,
            )


def _check_entry_delete(mapper, connection, target):
    if _was_locked(target):
        _block("Entry", target.id, "DELETE", "Confirmed entries cannot be deleted")


def _check_ledger_transaction_immutability(mapper, connection, target):
    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            _block(
                "LedgerTransaction",
                target.id,
                "UPDATE",
                "Ledger transactions are append-only",
                field=attr.key,
            )


def _check_ledger_transaction_delete(mapper, connection, target):
    _block(
        "LedgerTransaction",
        target.id,
        "DELETE",
        "Ledger transactions are append-only",
    )


def _check_ledger_application_immutability(mapper, connection, target):
    _block(
        "LedgerApplication",
        target.id,
        "UPDATE",
        "Ledger application markers are append-only",
    )


def _check_ledger_application_delete(mapper, connection, target):
    _block(
        "LedgerApplication",
        target.id,
        "DELETE",
        "Ledger application markers are append-only",
    )


def _listeners():
    from entry_kernel.models.entry import EntryModel
    from entry_kernel.models.inventory import (
        LedgerApplicationModel,
        LedgerTransactionModel,
    )

    return [
        (EntryModel, "before_update", _check_entry_immutability),
        (EntryModel, "before_delete", _check_entry_delete),
        (LedgerTransactionModel, "before_update", _check_ledger_transaction_immutability),
        (LedgerTransactionModel, "before_delete", _check_ledger_transaction_delete),
        (LedgerApplicationModel, "before_update", _check_ledger_application_immutability),
        (LedgerApplicationModel, "before_delete", _check_ledger_application_delete),
    ]


def register_immutability_listeners():
    """Register all immutability listeners (safe to call repeatedly)."""
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)

