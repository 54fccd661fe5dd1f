"""
EntryWorkflowService -- boundary facade for entry submission and approval.

Responsibility:
    Composes the kernel services into the operations callers use: submit,
    drafts, update, delete, approval decisions, permission matrix writes
    and manual ledger retries.  Each public method owns its transaction
    boundary.  Kernel services only flush; this facade commits on success
    and rolls back on any failure (when ``auto_commit=True``).

Error propagation:
    - SubmissionError subclasses (validation, stock, references) become a
      REJECTED ``SubmissionResult``; nothing is persisted.
    - Access, conflict and not-found errors are raised to the caller.
    - SQLAlchemyError is logged with full detail and re-raised as
      StorageUnavailableError, which carries no internal detail.

Usage::

    service = EntryWorkflowService(session, get_schema_provider())
    result = service.submit("RAW_ISSUE", payload, actor)
    if result.is_success:
        outcome = service.decide_approval(task_id, ApprovalDecision.APPROVE, approver)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entry_kernel.domain.actor import Actor, ReferenceRecordChecker
from entry_kernel.domain.clock import Clock, SystemClock
from entry_kernel.domain.coercion import coerce_payload
from entry_kernel.domain.dtos import (
    ApprovalOutcome,
    EntryInfo,
    LedgerApplyResult,
    PendingCounts,
    PendingTask,
    SubmissionResult,
)
from entry_kernel.domain.permissions import Capability, PermissionEntry, PermissionFlags
from entry_kernel.domain.schema import ApplyStage, FieldSchemaProvider
from entry_kernel.domain.workflow import ApprovalDecision, EntryStatus
from entry_kernel.exceptions import (
    EntryValidationError,
    InvalidStatusTransitionError,
    LedgerStageNotReachedError,
    StorageUnavailableError,
    SubmissionError,
)
from entry_kernel.logging_config import LogContext, get_logger
from entry_kernel.models.entry import EntryModel
from entry_kernel.selectors.task_selector import TaskSelector
from entry_kernel.services.confirmation_tracker import ConfirmationTracker
from entry_kernel.services.document_type_service import DocumentTypeService
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.ledger_applier import LedgerApplier
from entry_kernel.services.permission_service import PermissionMatrix
from entry_kernel.services.reference_checker import DatabaseReferenceChecker
from entry_kernel.services.submission_validator import SubmissionValidator
from entry_kernel.services.transition_guard import TransitionGuard

logger = get_logger("services.workflow")

_REQUIRED = "REQUIRED"


class EntryWorkflowService:
    """Transaction-owning facade over the entry kernel."""

    def __init__(
        self,
        session: Session,
        schemas: FieldSchemaProvider,
        clock: Clock | None = None,
        references: ReferenceRecordChecker | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._schemas = schemas
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        self._document_types = DocumentTypeService(session)
        self._permissions = PermissionMatrix(session)
        self._entries = EntryStore(session, self._clock)
        self._guard = TransitionGuard(self._permissions, self._entries)
        self._validator = SubmissionValidator(
            session,
            schemas,
            self._permissions,
            references or DatabaseReferenceChecker(session),
        )
        self._ledger = LedgerApplier(session, schemas, self._clock)
        self._tracker = ConfirmationTracker(
            session,
            schemas,
            permissions=self._permissions,
            entries=self._entries,
            ledger=self._ledger,
            clock=self._clock,
        )
        self._tasks = TaskSelector(session)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        document_type_code: str,
        payload: Mapping[str, Any],
        actor: Actor | None,
    ) -> SubmissionResult:
        """Validate and persist a submitted entry, then create its approval tasks."""
        actor = self._guard.require_actor(actor)
        with LogContext.bind(actor_id=actor.actor_id, document_type=document_type_code):
            try:
                with self._transaction("submit"):
                    doc_type = self._document_types.get_active(document_type_code)
                    self._guard.require_capability(
                        actor, doc_type.id, doc_type.code, Capability.SUBMIT
                    )
                    validated = self._validator.validate(document_type_code, payload, actor)
                    entry = self._entries.create(
                        doc_type, validated.values, actor.actor_id, EntryStatus.SUBMITTED
                    )
                    tasks = self._tracker.create_tasks_for_submission(entry)
                    result = SubmissionResult.accepted(
                        entry.id, EntryStatus.SUBMITTED, tuple(t.id for t in tasks)
                    )
            except SubmissionError as exc:
                return self._rejected("submit", exc)

            logger.info(
                "entry_submitted",
                extra={"entry_id": str(result.entry_id), "task_count": len(result.task_ids)},
            )
            return result

    def save_draft(
        self,
        document_type_code: str,
        payload: Mapping[str, Any],
        actor: Actor | None,
    ) -> SubmissionResult:
        """
        Persist an incomplete entry as a draft.

        Missing required fields are tolerated; malformed values are not.
        References and stock are checked when the draft is submitted.
        """
        actor = self._guard.require_actor(actor)
        with LogContext.bind(actor_id=actor.actor_id, document_type=document_type_code):
            try:
                with self._transaction("save_draft"):
                    doc_type = self._document_types.get_active(document_type_code)
                    self._guard.require_capability(
                        actor, doc_type.id, doc_type.code, Capability.SUBMIT
                    )
                    values = self._coerce_draft(document_type_code, payload)
                    entry = self._entries.create(
                        doc_type, values, actor.actor_id, EntryStatus.DRAFT
                    )
                    result = SubmissionResult.accepted(entry.id, EntryStatus.DRAFT)
            except SubmissionError as exc:
                return self._rejected("save_draft", exc)

            logger.info("entry_draft_saved", extra={"entry_id": str(result.entry_id)})
            return result

    def submit_draft(self, entry_id: UUID, actor: Actor | None) -> SubmissionResult:
        """Run full submission checks on a draft and move it to submitted."""
        with LogContext.bind(actor_id=actor.actor_id if actor else None, entry_id=entry_id):
            try:
                with self._transaction("submit_draft"):
                    entry = self._guard.require_mutable(entry_id, actor)
                    if entry.status != EntryStatus.DRAFT.value:
                        raise InvalidStatusTransitionError(
                            str(entry_id), entry.status, EntryStatus.SUBMITTED.value
                        )
                    validated = self._validator.validate(
                        entry.document_type_code, entry.payload or {}, actor
                    )
                    self._entries.replace_payload(entry, validated.values, actor.actor_id)
                    self._entries.advance_status(
                        entry, EntryStatus.SUBMITTED, actor.actor_id
                    )
                    tasks = self._tracker.create_tasks_for_submission(entry)
                    result = SubmissionResult.accepted(
                        entry.id, EntryStatus.SUBMITTED, tuple(t.id for t in tasks)
                    )
            except SubmissionError as exc:
                return self._rejected("submit_draft", exc, entry_id=entry_id)

            logger.info("entry_submitted", extra={"task_count": len(result.task_ids)})
            return result

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_entry(
        self,
        entry_id: UUID,
        payload: Mapping[str, Any],
        actor: Actor | None,
    ) -> SubmissionResult:
        """
        Replace the payload of a draft or submitted entry.

        Raises:
            EntryNotFoundError, ForbiddenError, EntryLockedError.
        """
        with LogContext.bind(actor_id=actor.actor_id if actor else None, entry_id=entry_id):
            try:
                with self._transaction("update_entry"):
                    entry = self._guard.require_mutable(entry_id, actor)
                    status = EntryStatus(entry.status)
                    if status is EntryStatus.DRAFT:
                        values = self._coerce_draft(entry.document_type_code, payload)
                    else:
                        values = self._validator.validate(
                            entry.document_type_code, payload, actor
                        ).values
                    self._entries.replace_payload(entry, values, actor.actor_id)
                    result = SubmissionResult.accepted(entry.id, status)
            except SubmissionError as exc:
                return self._rejected("update_entry", exc, entry_id=entry_id)

            logger.info("entry_updated", extra={"entry_status": result.entry_status.value})
            return result

    def delete_entry(self, entry_id: UUID, actor: Actor | None) -> None:
        """
        Delete a draft or submitted entry and its approval tasks.

        Raises:
            EntryNotFoundError, ForbiddenError, EntryLockedError.
        """
        with LogContext.bind(actor_id=actor.actor_id if actor else None, entry_id=entry_id):
            with self._transaction("delete_entry"):
                entry = self._guard.require_mutable(entry_id, actor)
                self._entries.delete(entry)

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def decide_approval(
        self,
        task_id: UUID,
        decision: ApprovalDecision | str,
        actor: Actor | None,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        """
        Record an approve/reject decision on a task.

        Raises:
            ApprovalTaskNotFoundError, ForbiddenError, TaskAlreadyDecidedError,
            FinalApprovalNotReadyError, InsufficientStockError (ledger apply
            found the stock already consumed; nothing is recorded).
        """
        actor = self._guard.require_actor(actor)
        decision = ApprovalDecision(decision)
        with LogContext.bind(actor_id=actor.actor_id, task_id=task_id):
            t0 = time.monotonic()
            with self._transaction("decide_approval"):
                outcome = self._tracker.record_approval(task_id, decision, actor, comment)

            logger.info(
                "approval_decided",
                extra={
                    "entry_id": str(outcome.task.entry_id),
                    "decision": decision.value,
                    "entry_status": outcome.entry_status.value,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return outcome

    def apply_ledger(self, entry_id: UUID, actor: Actor | None) -> LedgerApplyResult:
        """
        Retry the ledger apply for an entry that reached its apply stage.

        Only the document type's final confirmer may do this.  Repeated
        calls report ``already_applied``.
        """
        actor = self._guard.require_actor(actor)
        with LogContext.bind(actor_id=actor.actor_id, entry_id=entry_id):
            with self._transaction("apply_ledger"):
                entry = self._entries.get(entry_id)
                self._guard.require_capability(
                    actor,
                    entry.document_type_id,
                    entry.document_type_code,
                    Capability.FINAL_CONFIRM,
                )
                self._require_stage_reached(entry)
                result = self._ledger.apply(entry.id, actor.actor_id)
            return result

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def set_permission_matrix(
        self,
        document_type_code: str,
        entries: Iterable[PermissionEntry] | Mapping[str, PermissionFlags | Mapping[str, Any]],
        replace: bool = False,
    ) -> dict[str, PermissionFlags]:
        """Write the permission matrix for one document type (mirror included)."""
        if isinstance(entries, Mapping):
            entries = [
                PermissionEntry(
                    role,
                    flags if isinstance(flags, PermissionFlags)
                    else PermissionFlags.from_mapping(flags),
                )
                for role, flags in entries.items()
            ]
        with LogContext.bind(document_type=document_type_code):
            with self._transaction("set_permission_matrix"):
                matrix = self._permissions.set_permissions(
                    document_type_code, entries, replace=replace
                )
            return matrix

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: UUID, actor: Actor | None) -> EntryInfo:
        actor = self._guard.require_actor(actor)
        entry = self._entries.get(entry_id)
        self._guard.require_capability(
            actor, entry.document_type_id, entry.document_type_code, Capability.READ
        )
        return entry.to_dto()

    def pending_tasks(self, actor: Actor | None, limit: int = 50) -> list[PendingTask]:
        actor = self._guard.require_actor(actor)
        return self._tasks.pending_for_roles(actor.roles, limit=limit)

    def pending_counts(self, actor: Actor | None) -> PendingCounts:
        actor = self._guard.require_actor(actor)
        return self._tasks.pending_counts(actor.roles)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
            if self._auto_commit:
                self._session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "storage_failure",
                extra={"operation": operation, "error_type": type(exc).__name__},
                exc_info=True,
            )
            if self._auto_commit:
                self._session.rollback()
            raise StorageUnavailableError(operation) from exc
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            raise

    def _coerce_draft(
        self, document_type_code: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        schema = self._schemas.get(document_type_code)
        values, errors = coerce_payload(schema, payload)
        blocking = [e for e in errors if e.code != _REQUIRED]
        if blocking:
            raise EntryValidationError(schema.code, [e.to_dict() for e in blocking])
        return values

    def _require_stage_reached(self, entry: EntryModel) -> None:
        stage = self._schemas.get(entry.document_type_code).apply_stage
        status = EntryStatus(entry.status)
        required = (
            EntryStatus.FINAL_CONFIRMED
            if stage is ApplyStage.ON_FINAL
            else EntryStatus.CONFIRMED
        )
        if status.rank < required.rank:
            raise LedgerStageNotReachedError(str(entry.id), status.value, stage.value)

    @staticmethod
    def _rejected(
        operation: str, exc: SubmissionError, entry_id: UUID | None = None
    ) -> SubmissionResult:
        logger.info(
            "submission_rejected",
            extra={"operation": operation, "error_code": exc.code},
        )
        return SubmissionResult.rejected(
            exc.code, str(exc), details=exc.details(), entry_id=entry_id
        )
