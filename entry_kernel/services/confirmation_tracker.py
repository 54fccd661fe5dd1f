"""
ConfirmationTracker -- per-role approval tasks and decisions.

Responsibility:
    Generates confirmation tasks when an entry is submitted and records
    approver decisions, advancing the entry and triggering the ledger at
    the document type's apply stage.

Architecture position:
    Kernel > Services.  Coordinates EntryStore, PermissionMatrix, and
    LedgerApplier within the caller's transaction.

Invariants enforced:
    - Task generation is idempotent (UNIQUE(entry, role, is_final) plus an
      existence check).
    - Only a holder of the task's role with the matching capability may
      decide it; a task is decided at most once.
    - A final task cannot be decided before a regular task on the same
      entry has been approved (NOT_READY).
    - Final approval supersedes every task still pending on the entry.

Failure modes:
    - ApprovalTaskNotFoundError   unknown task id
    - ForbiddenError              actor lacks role or capability
    - TaskAlreadyDecidedError     task no longer pending
    - FinalApprovalNotReadyError  final task acted on too early
    - InsufficientStockError      ledger apply found stock already consumed
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from entry_kernel.domain.actor import Actor
from entry_kernel.domain.clock import Clock, SystemClock
from entry_kernel.domain.dtos import ApprovalOutcome, LedgerApplyResult
from entry_kernel.domain.permissions import Capability
from entry_kernel.domain.schema import ApplyStage, FieldSchemaProvider
from entry_kernel.domain.workflow import ApprovalDecision, EntryStatus, TaskStatus
from entry_kernel.exceptions import (
    ApprovalTaskNotFoundError,
    FinalApprovalNotReadyError,
    ForbiddenError,
    TaskAlreadyDecidedError,
)
from entry_kernel.logging_config import get_logger
from entry_kernel.models.approval_task import ApprovalTaskModel
from entry_kernel.models.entry import EntryModel
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.ledger_applier import LedgerApplier
from entry_kernel.services.permission_service import PermissionMatrix

logger = get_logger("services.confirmation_tracker")


class ConfirmationTracker:
    """Creates approval tasks and records decisions on them."""

    def __init__(
        self,
        session: Session,
        schemas: FieldSchemaProvider,
        permissions: PermissionMatrix | None = None,
        entries: EntryStore | None = None,
        ledger: LedgerApplier | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._schemas = schemas
        self._clock = clock or SystemClock()
        self._permissions = permissions or PermissionMatrix(session)
        self._entries = entries or EntryStore(session, self._clock)
        self._ledger = ledger or LedgerApplier(session, schemas, self._clock)

    # ------------------------------------------------------------------
    # Task generation
    # ------------------------------------------------------------------

    def create_tasks_for_submission(self, entry: EntryModel) -> list[ApprovalTaskModel]:
        """Create pending tasks for every confirming role and the final confirmer."""
        wanted: list[tuple[str, bool]] = [
            (role, False)
            for role in self._permissions.roles_with(
                entry.document_type_id, Capability.CONFIRM
            )
        ]
        final_role = self._permissions.final_confirmer(entry.document_type_id)
        if final_role is not None:
            wanted.append((final_role, True))

        existing = {
            (task.assigned_role, task.is_final): task
            for task in self._tasks_for_entry(entry.id)
        }

        created: list[ApprovalTaskModel] = []
        for role, is_final in wanted:
            if (role, is_final) in existing:
                continue
            task = ApprovalTaskModel(
                entry_id=entry.id,
                assigned_role=role,
                is_final=is_final,
                status=TaskStatus.PENDING.value,
            )
            self._session.add(task)
            created.append(task)
        self._session.flush()

        if not wanted:
            logger.warning(
                "no_confirming_roles",
                extra={
                    "entry_id": str(entry.id),
                    "document_type": entry.document_type_code,
                },
            )
        logger.info(
            "approval_tasks_created",
            extra={
                "entry_id": str(entry.id),
                "created_count": len(created),
                "final_role": final_role,
            },
        )
        return created

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def record_approval(
        self,
        task_id: UUID,
        decision: ApprovalDecision,
        actor: Actor,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        task = self._load_task(task_id)
        entry = self._entries.get_for_update(task.entry_id)

        capability = Capability.FINAL_CONFIRM if task.is_final else Capability.CONFIRM
        if not actor.has_role(task.assigned_role) or not self._permissions.can_act(
            actor.roles, entry.document_type_id, capability
        ):
            logger.warning(
                "approval_forbidden",
                extra={
                    "task_id": str(task.id),
                    "actor_id": str(actor.actor_id),
                    "assigned_role": task.assigned_role,
                },
            )
            raise ForbiddenError(
                str(actor.actor_id),
                capability.value,
                entry.document_type_code,
                reason=f"task is assigned to role {task.assigned_role}",
            )

        if task.status != TaskStatus.PENDING.value:
            raise TaskAlreadyDecidedError(str(task.id), task.status)

        if task.is_final and not self._has_approved_regular_task(entry.id):
            raise FinalApprovalNotReadyError(str(task.id), str(entry.id))

        task.status = decision.task_status.value
        task.decided_by_id = actor.actor_id
        task.decided_at = self._clock.now()
        task.comment = comment
        self._session.flush()

        ledger_result: LedgerApplyResult | None = None
        superseded: list[UUID] = []

        if decision is ApprovalDecision.APPROVE:
            stage = self._schemas.get(entry.document_type_code).apply_stage
            if task.is_final:
                self._entries.mark_final_confirmed(entry, actor.actor_id)
                superseded = self._supersede_pending(entry.id)
                ledger_result = self._ledger.apply(entry.id, actor.actor_id)
            else:
                self._entries.mark_confirmed(entry, actor.actor_id)
                if stage is ApplyStage.ON_ANY_CONFIRM:
                    ledger_result = self._ledger.apply(entry.id, actor.actor_id)

        logger.info(
            "approval_decision_recorded",
            extra={
                "task_id": str(task.id),
                "entry_id": str(entry.id),
                "decision": decision.value,
                "is_final": task.is_final,
                "entry_status": entry.status,
                "ledger_applied": ledger_result.applied if ledger_result else None,
            },
        )
        return ApprovalOutcome(
            task=task.to_dto(),
            entry_status=EntryStatus(entry.status),
            ledger=ledger_result,
            superseded_task_ids=tuple(superseded),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tasks_for_entry(self, entry_id: UUID) -> list[ApprovalTaskModel]:
        return list(
            self._session.execute(
                select(ApprovalTaskModel)
                .where(ApprovalTaskModel.entry_id == entry_id)
                .order_by(ApprovalTaskModel.is_final, ApprovalTaskModel.assigned_role)
            ).scalars()
        )

    def _load_task(self, task_id: UUID) -> ApprovalTaskModel:
        task = self._session.execute(
            select(ApprovalTaskModel)
            .where(ApprovalTaskModel.id == task_id)
            .with_for_update()
        ).scalar_one_or_none()
        if task is None:
            raise ApprovalTaskNotFoundError(str(task_id))
        return task

    def _has_approved_regular_task(self, entry_id: UUID) -> bool:
        return (
            self._session.execute(
                select(ApprovalTaskModel.id)
                .where(
                    ApprovalTaskModel.entry_id == entry_id,
                    ApprovalTaskModel.is_final.is_(False),
                    ApprovalTaskModel.status == TaskStatus.APPROVED.value,
                )
                .limit(1)
            ).first()
            is not None
        )

    def _supersede_pending(self, entry_id: UUID) -> list[UUID]:
        superseded = []
        for task in self._tasks_for_entry(entry_id):
            if task.status == TaskStatus.PENDING.value:
                task.status = TaskStatus.SUPERSEDED.value
                superseded.append(task.id)
        self._session.flush()
        if superseded:
            logger.info(
                "approval_tasks_superseded",
                extra={"entry_id": str(entry_id), "count": len(superseded)},
            )
        return superseded
