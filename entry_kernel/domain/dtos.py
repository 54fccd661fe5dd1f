"""
Data Transfer Objects (``entry_kernel.domain.dtos``).

Immutable value objects crossing the boundary between the kernel services
and their callers.  ORM models convert to these via ``to_dto()``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from entry_kernel.domain.schema import DocumentTypeSchema, InventoryOperation
from entry_kernel.domain.workflow import EntryStatus, TaskStatus


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class ValidatedSubmission:
    """A payload that passed every submission check."""

    schema: DocumentTypeSchema
    document_type_id: UUID
    values: dict[str, Any]


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submit / submit_draft / update."""

    status: SubmissionStatus
    entry_id: UUID | None = None
    entry_status: EntryStatus | None = None
    error_code: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    task_ids: tuple[UUID, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.status == SubmissionStatus.ACCEPTED

    @classmethod
    def accepted(
        cls,
        entry_id: UUID,
        entry_status: EntryStatus,
        task_ids: tuple[UUID, ...] = (),
    ) -> "SubmissionResult":
        return cls(
            status=SubmissionStatus.ACCEPTED,
            entry_id=entry_id,
            entry_status=entry_status,
            task_ids=task_ids,
        )

    @classmethod
    def rejected(
        cls,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None,
        entry_id: UUID | None = None,
    ) -> "SubmissionResult":
        return cls(
            status=SubmissionStatus.REJECTED,
            entry_id=entry_id,
            error_code=error_code,
            message=message,
            details=details or {},
        )


class LedgerApplyReason(str, Enum):
    """Why an apply call changed nothing."""

    ALREADY_APPLIED = "already_applied"
    NO_MAPPINGS = "no_mappings"
    NOTHING_APPLIED = "nothing_applied"


@dataclass(frozen=True)
class LedgerApplyResult:
    """Outcome of a Ledger Applier call. Idempotent outcomes are not errors."""

    applied: bool
    reason: LedgerApplyReason | None = None
    applied_count: int = 0
    skipped_fields: tuple[str, ...] = ()

    @classmethod
    def success(
        cls, applied_count: int, skipped_fields: tuple[str, ...] = ()
    ) -> "LedgerApplyResult":
        return cls(
            applied=True,
            applied_count=applied_count,
            skipped_fields=skipped_fields,
        )

    @classmethod
    def unchanged(
        cls,
        reason: LedgerApplyReason,
        skipped_fields: tuple[str, ...] = (),
    ) -> "LedgerApplyResult":
        return cls(applied=False, reason=reason, skipped_fields=skipped_fields)


@dataclass(frozen=True)
class EntryInfo:
    id: UUID
    document_type_code: str
    status: EntryStatus
    payload: dict[str, Any]
    schema_version: int
    ledger_applied: bool
    created_by_id: UUID
    first_confirmed_at: datetime | None = None
    final_confirmed_at: datetime | None = None
    final_confirmed_by_id: UUID | None = None


@dataclass(frozen=True)
class ApprovalTaskInfo:
    id: UUID
    entry_id: UUID
    assigned_role: str
    is_final: bool
    status: TaskStatus
    decided_by_id: UUID | None = None
    decided_at: datetime | None = None
    comment: str | None = None


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of recording a decision on an approval task."""

    task: ApprovalTaskInfo
    entry_status: EntryStatus
    ledger: LedgerApplyResult | None = None
    superseded_task_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class InventoryItemInfo:
    id: UUID
    code: str
    name: str
    unit: str | None
    category: str | None
    opening_quantity: Decimal
    current_quantity: Decimal


@dataclass(frozen=True)
class LedgerTransactionInfo:
    id: UUID
    item_code: str
    entry_id: UUID
    field_key: str
    operation: InventoryOperation
    requested_amount: Decimal
    delta: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    created_at: datetime


@dataclass(frozen=True)
class PendingTask:
    """A pending approval task as shown on an approver's work list."""

    task_id: UUID
    entry_id: UUID
    document_type_code: str
    assigned_role: str
    is_final: bool
    entry_status: EntryStatus
    submitted_by_id: UUID
    submitted_at: datetime | None


@dataclass(frozen=True)
class PendingCounts:
    confirm: int = 0
    final: int = 0

    @property
    def total(self) -> int:
        return self.confirm + self.final
