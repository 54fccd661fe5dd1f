"""
Typed Exception Hierarchy for the Entry Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP adapters, batch importers, tests) must branch on the kind of
failure, never on message wording. Every exception here therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (field, item code, requested, available, ...)

Example:
    try:
        service.decide_approval(task_id, ApprovalDecision.APPROVE, actor)
    except FinalApprovalNotReadyError as e:
        return {"error": e.code, "entry_id": str(e.entry_id)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EntryKernelError (base)
    |
    +-- SubmissionError                 (returned as a REJECTED result)
    |   +-- EntryValidationError
    |   +-- InsufficientStockError
    |   +-- ReferentialIntegrityError
    |
    +-- AccessError
    |   +-- UnauthorizedError
    |   +-- ForbiddenError
    |
    +-- ConflictError
    |   +-- EntryLockedError
    |   +-- InvalidStatusTransitionError
    |   +-- TaskAlreadyDecidedError
    |   +-- FinalApprovalNotReadyError
    |   +-- LedgerStageNotReachedError
    |
    +-- NotFoundError
    |   +-- EntryNotFoundError
    |   +-- ApprovalTaskNotFoundError
    |   +-- DocumentTypeNotFoundError
    |   +-- InventoryItemNotFoundError
    |
    +-- DocumentTypeConfigError
    +-- ImmutabilityViolationError
    +-- StorageUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|------------------------------------
Submission   | VALIDATION_ERROR            | One or more fields failed coercion
             | INSUFFICIENT_STOCK          | Decrease exceeds current quantity
             | REFERENTIAL_INTEGRITY       | Referenced record does not exist
-------------|-----------------------------|------------------------------------
Access       | UNAUTHORIZED                | No actor could be identified
             | FORBIDDEN                   | Actor lacks the capability
-------------|-----------------------------|------------------------------------
Conflict     | ENTRY_LOCKED                | Entry confirmed / final-confirmed
             | INVALID_STATUS_TRANSITION   | Backward or skipped status move
             | TASK_ALREADY_DECIDED        | Task is no longer pending
             | NOT_READY                   | Final task before any approval
             | STAGE_NOT_REACHED           | Manual ledger apply before its stage
-------------|-----------------------------|------------------------------------
Not found    | ENTRY_NOT_FOUND             | Unknown entry id
             | APPROVAL_TASK_NOT_FOUND     | Unknown task id
             | DOCUMENT_TYPE_NOT_FOUND     | Unknown or inactive document type
             | INVENTORY_ITEM_NOT_FOUND    | Unknown inventory item code
-------------|-----------------------------|------------------------------------
Config       | DOCUMENT_TYPE_CONFIG_ERROR  | Malformed document-type definition
Immutability | IMMUTABILITY_VIOLATION      | ORM write to a locked row
Internal     | INTERNAL_ERROR              | Storage failure (detail withheld)

Idempotent outcomes (ledger already applied) are NOT exceptions; they are
reported through LedgerApplyResult.
"""

from decimal import Decimal
from typing import Any


class EntryKernelError(Exception):
    """Base exception for all entry kernel errors."""

    code: str = "ENTRY_KERNEL_ERROR"


# Submission errors -- surfaced to the submitter as a rejected result


class SubmissionError(EntryKernelError):
    """Base exception for submissions that cannot be accepted."""

    code: str = "SUBMISSION_ERROR"

    def details(self) -> dict[str, Any]:
        """Structured payload for a rejected-submission response."""
        return {}


class EntryValidationError(SubmissionError):
    """One or more payload fields failed validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, document_type: str, field_errors: list[dict[str, Any]]):
        self.document_type = document_type
        self.field_errors = field_errors
        fields = ", ".join(sorted({e["field"] for e in field_errors}))
        super().__init__(
            f"Submission for {document_type} failed validation: {fields}"
        )

    def details(self) -> dict[str, Any]:
        return {"field_errors": list(self.field_errors)}


class InsufficientStockError(SubmissionError):
    """A decrease would take an inventory item below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        field: str,
        item_code: str,
        requested: Decimal,
        available: Decimal,
    ):
        self.field = field
        self.item_code = item_code
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_code}: "
            f"requested {requested}, available {available}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "item_code": self.item_code,
            "requested": str(self.requested),
            "available": str(self.available),
        }


class ReferentialIntegrityError(SubmissionError):
    """A reference field points at records that do not exist."""

    code: str = "REFERENTIAL_INTEGRITY"

    def __init__(self, field: str, missing_ids: list[str]):
        self.field = field
        self.missing_ids = missing_ids
        super().__init__(
            f"Field {field} references unknown records: {', '.join(missing_ids)}"
        )

    def details(self) -> dict[str, Any]:
        return {"field": self.field, "missing_ids": list(self.missing_ids)}


# Access errors


class AccessError(EntryKernelError):
    """Base exception for identity and authorization failures."""

    code: str = "ACCESS_ERROR"


class UnauthorizedError(AccessError):
    """No actor could be identified for the request."""

    code: str = "UNAUTHORIZED"

    def __init__(self, reason: str = "No authenticated actor"):
        self.reason = reason
        super().__init__(reason)


class ForbiddenError(AccessError):
    """The actor lacks the capability required for the operation."""

    code: str = "FORBIDDEN"

    def __init__(
        self,
        actor_id: str,
        capability: str,
        document_type: str,
        reason: str | None = None,
    ):
        self.actor_id = actor_id
        self.capability = capability
        self.document_type = document_type
        self.reason = reason
        msg = f"Actor {actor_id} lacks {capability} on {document_type}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


# Conflict errors


class ConflictError(EntryKernelError):
    """Base exception for operations that conflict with current state."""

    code: str = "CONFLICT"


class EntryLockedError(ConflictError):
    """The entry has been confirmed and can no longer be changed."""

    code: str = "ENTRY_LOCKED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Entry {entry_id} is locked in status {status}")


class InvalidStatusTransitionError(ConflictError):
    """Entry status may only move forward along the workflow."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entry_id: str, from_status: str, to_status: str):
        self.entry_id = entry_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Entry {entry_id} cannot move from {from_status} to {to_status}"
        )


class TaskAlreadyDecidedError(ConflictError):
    """The approval task is no longer pending."""

    code: str = "TASK_ALREADY_DECIDED"

    def __init__(self, task_id: str, status: str):
        self.task_id = task_id
        self.status = status
        super().__init__(f"Approval task {task_id} is already {status}")


class FinalApprovalNotReadyError(ConflictError):
    """Final task acted on before any regular approval was recorded."""

    code: str = "NOT_READY"

    def __init__(self, task_id: str, entry_id: str):
        self.task_id = task_id
        self.entry_id = entry_id
        super().__init__(
            f"Final approval task {task_id} requires an approved "
            f"regular confirmation on entry {entry_id}"
        )


class LedgerStageNotReachedError(ConflictError):
    """Manual ledger apply requested before the document type's apply stage."""

    code: str = "STAGE_NOT_REACHED"

    def __init__(self, entry_id: str, status: str, apply_stage: str):
        self.entry_id = entry_id
        self.status = status
        self.apply_stage = apply_stage
        super().__init__(
            f"Entry {entry_id} in status {status} has not reached {apply_stage}"
        )


# Not-found errors


class NotFoundError(EntryKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class EntryNotFoundError(NotFoundError):
    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class ApprovalTaskNotFoundError(NotFoundError):
    code: str = "APPROVAL_TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Approval task not found: {task_id}")


class DocumentTypeNotFoundError(NotFoundError):
    code: str = "DOCUMENT_TYPE_NOT_FOUND"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(f"Document type not found: {document_type}")


class InventoryItemNotFoundError(NotFoundError):
    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Inventory item not found: {item_code}")


# Configuration


class DocumentTypeConfigError(EntryKernelError):
    """A document-type definition could not be parsed."""

    code: str = "DOCUMENT_TYPE_CONFIG_ERROR"

    def __init__(self, document_type: str, reason: str):
        self.document_type = document_type
        self.reason = reason
        super().__init__(f"Invalid document type {document_type}: {reason}")


class ImmutabilityViolationError(EntryKernelError):
    """
    Attempted to modify or delete an immutable row.

    Locked entries (confirmed / final-confirmed) and ledger transactions
    are protected at the ORM layer in addition to the service checks.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class StorageUnavailableError(EntryKernelError):
    """Infrastructure failure. The message never carries storage detail."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Internal error during {operation}")
