"""
Tests for ConfirmationTracker -- approval task generation and decisions.

Covers:
- create_tasks_for_submission(): one task per confirming role plus the
  final task, idempotent regeneration, no-roles warning
- record_approval(): role/capability checks, single decision per task,
  NOT_READY gate on the final task, supersession, apply stage triggers
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from entry_kernel.domain.dtos import LedgerApplyReason
from entry_kernel.domain.permissions import PermissionFlags
from entry_kernel.domain.workflow import ApprovalDecision, EntryStatus, TaskStatus
from entry_kernel.exceptions import (
    ApprovalTaskNotFoundError,
    FinalApprovalNotReadyError,
    ForbiddenError,
    TaskAlreadyDecidedError,
)
from entry_kernel.models.approval_task import ApprovalTaskModel
from entry_kernel.models.inventory import LedgerTransactionModel
from entry_kernel.services.confirmation_tracker import ConfirmationTracker
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.inventory_service import InventoryService
from tests.conftest import PLANT_MANAGER, QUALITY, SUPERVISOR


@pytest.fixture
def tracker(session, schema_provider, clock, permission_matrix):
    return ConfirmationTracker(session, schema_provider, clock=clock)


@pytest.fixture
def make_entry(session, document_types, submitter, clock, inventory_items):
    store = EntryStore(session, clock)

    def _make(code: str, payload: dict):
        return store.create(document_types[code], payload, submitter.actor_id)

    return _make


@pytest.fixture
def issue(make_entry, tracker):
    entry = make_entry(
        "RAW_ISSUE",
        {"issue_date": "2024-01-15", "item": "STEEL-SHEET", "quantity": Decimal("30")},
    )
    tracker.create_tasks_for_submission(entry)
    return entry


def quantity_of(session, code: str) -> Decimal:
    return InventoryService(session).get_item(code).current_quantity


class TestTaskGeneration:

    def test_one_task_per_confirming_role_plus_final(self, session, issue):
        tasks = session.execute(
            select(ApprovalTaskModel).where(ApprovalTaskModel.entry_id == issue.id)
        ).scalars().all()
        assert sorted((t.assigned_role, t.is_final) for t in tasks) == [
            (PLANT_MANAGER, True),
            (QUALITY, False),
            (SUPERVISOR, False),
        ]
        assert all(t.status == TaskStatus.PENDING.value for t in tasks)

    def test_regeneration_is_idempotent(self, session, tracker, issue):
        assert tracker.create_tasks_for_submission(issue) == []
        count = len(
            session.execute(
                select(ApprovalTaskModel.id).where(ApprovalTaskModel.entry_id == issue.id)
            ).all()
        )
        assert count == 3

    def test_no_confirming_roles_logs_warning(
        self, session, tracker, make_entry, permission_matrix, captured_logs
    ):
        permission_matrix.set_permissions(
            "STOCK_COUNT", {"warehouse": PermissionFlags(can_submit=True)}, replace=True
        )
        entry = make_entry(
            "STOCK_COUNT", {"count_date": "2024-01-31", "item": "WIDGET", "counted_quantity": 5}
        )
        assert tracker.create_tasks_for_submission(entry) == []
        assert any(r["message"] == "no_confirming_roles" for r in captured_logs())


class TestDecisions:

    def test_regular_approval_confirms_entry(self, tracker, issue, supervisor, task_for, clock):
        task = task_for(issue.id, SUPERVISOR)
        outcome = tracker.record_approval(task.id, ApprovalDecision.APPROVE, supervisor, "ok")

        assert outcome.entry_status is EntryStatus.CONFIRMED
        assert outcome.task.status is TaskStatus.APPROVED
        assert outcome.task.decided_by_id == supervisor.actor_id
        assert outcome.task.comment == "ok"
        assert outcome.ledger is None
        assert issue.first_confirmed_at == clock.now()

    def test_second_regular_approval_keeps_first_stamp(
        self, tracker, issue, supervisor, inspector, task_for, clock
    ):
        tracker.record_approval(task_for(issue.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)
        first_stamp = issue.first_confirmed_at
        clock.advance(60)
        outcome = tracker.record_approval(
            task_for(issue.id, QUALITY).id, ApprovalDecision.APPROVE, inspector
        )
        assert outcome.entry_status is EntryStatus.CONFIRMED
        assert issue.first_confirmed_at == first_stamp

    def test_final_before_regular_not_ready(self, tracker, issue, manager, task_for):
        final = task_for(issue.id, PLANT_MANAGER, is_final=True)
        with pytest.raises(FinalApprovalNotReadyError) as exc_info:
            tracker.record_approval(final.id, ApprovalDecision.APPROVE, manager)
        assert exc_info.value.code == "NOT_READY"
        assert final.status == TaskStatus.PENDING.value

    def test_final_reject_also_gated(self, tracker, issue, manager, task_for):
        final = task_for(issue.id, PLANT_MANAGER, is_final=True)
        with pytest.raises(FinalApprovalNotReadyError):
            tracker.record_approval(final.id, ApprovalDecision.REJECT, manager)

    def test_rejected_regular_task_does_not_unlock_final(
        self, tracker, issue, supervisor, manager, task_for
    ):
        tracker.record_approval(task_for(issue.id, SUPERVISOR).id, ApprovalDecision.REJECT, supervisor)
        with pytest.raises(FinalApprovalNotReadyError):
            tracker.record_approval(
                task_for(issue.id, PLANT_MANAGER, is_final=True).id,
                ApprovalDecision.APPROVE,
                manager,
            )

    def test_final_approval_applies_ledger_and_supersedes(
        self, session, tracker, issue, supervisor, manager, task_for
    ):
        tracker.record_approval(task_for(issue.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)
        quality_task = task_for(issue.id, QUALITY)

        outcome = tracker.record_approval(
            task_for(issue.id, PLANT_MANAGER, is_final=True).id, ApprovalDecision.APPROVE, manager
        )

        assert outcome.entry_status is EntryStatus.FINAL_CONFIRMED
        assert outcome.superseded_task_ids == (quality_task.id,)
        assert quality_task.status == TaskStatus.SUPERSEDED.value
        assert outcome.ledger.applied
        assert outcome.ledger.applied_count == 1
        assert issue.final_confirmed_by_id == manager.actor_id
        assert issue.ledger_applied
        assert quantity_of(session, "STEEL-SHEET") == Decimal("70")

    def test_superseded_task_cannot_be_decided(
        self, tracker, issue, supervisor, inspector, manager, task_for
    ):
        tracker.record_approval(task_for(issue.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)
        tracker.record_approval(
            task_for(issue.id, PLANT_MANAGER, is_final=True).id, ApprovalDecision.APPROVE, manager
        )
        with pytest.raises(TaskAlreadyDecidedError) as exc_info:
            tracker.record_approval(task_for(issue.id, QUALITY).id, ApprovalDecision.APPROVE, inspector)
        assert exc_info.value.status == TaskStatus.SUPERSEDED.value

    def test_task_decided_once(self, tracker, issue, supervisor, task_for):
        task = task_for(issue.id, SUPERVISOR)
        tracker.record_approval(task.id, ApprovalDecision.APPROVE, supervisor)
        with pytest.raises(TaskAlreadyDecidedError):
            tracker.record_approval(task.id, ApprovalDecision.REJECT, supervisor)

    def test_reject_leaves_entry_status(self, tracker, issue, supervisor, task_for):
        outcome = tracker.record_approval(
            task_for(issue.id, SUPERVISOR).id, ApprovalDecision.REJECT, supervisor, "wrong lot"
        )
        assert outcome.task.status is TaskStatus.REJECTED
        assert outcome.entry_status is EntryStatus.SUBMITTED
        assert issue.first_confirmed_at is None

    def test_wrong_role_forbidden(self, tracker, issue, supervisor, task_for):
        final = task_for(issue.id, PLANT_MANAGER, is_final=True)
        with pytest.raises(ForbiddenError):
            tracker.record_approval(final.id, ApprovalDecision.APPROVE, supervisor)

    def test_role_without_capability_forbidden(
        self, tracker, issue, supervisor, task_for, permission_matrix
    ):
        permission_matrix.set_permissions("RAW_ISSUE", {SUPERVISOR: PermissionFlags(can_read=True)})
        with pytest.raises(ForbiddenError):
            tracker.record_approval(
                task_for(issue.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor
            )

    def test_unknown_task(self, tracker, supervisor):
        with pytest.raises(ApprovalTaskNotFoundError):
            tracker.record_approval(uuid4(), ApprovalDecision.APPROVE, supervisor)


class TestApplyStage:

    def test_on_any_confirm_applies_on_first_approval(
        self, session, tracker, make_entry, supervisor, task_for
    ):
        receipt = make_entry(
            "GOODS_RECEIPT",
            {
                "receipt_date": "2024-01-15",
                "supplier": "ACME",
                "item": "WIDGET",
                "quantity": Decimal("10"),
            },
        )
        tracker.create_tasks_for_submission(receipt)

        outcome = tracker.record_approval(
            task_for(receipt.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor
        )

        assert outcome.entry_status is EntryStatus.CONFIRMED
        assert outcome.ledger.applied
        assert quantity_of(session, "WIDGET") == Decimal("10")

    def test_later_confirmations_report_already_applied(
        self, session, tracker, make_entry, supervisor, inspector, manager, task_for
    ):
        receipt = make_entry(
            "GOODS_RECEIPT",
            {
                "receipt_date": "2024-01-15",
                "supplier": "ACME",
                "item": "WIDGET",
                "quantity": Decimal("10"),
            },
        )
        tracker.create_tasks_for_submission(receipt)
        tracker.record_approval(task_for(receipt.id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)

        second = tracker.record_approval(
            task_for(receipt.id, QUALITY).id, ApprovalDecision.APPROVE, inspector
        )
        final = tracker.record_approval(
            task_for(receipt.id, PLANT_MANAGER, is_final=True).id, ApprovalDecision.APPROVE, manager
        )

        assert second.ledger.reason is LedgerApplyReason.ALREADY_APPLIED
        assert final.ledger.reason is LedgerApplyReason.ALREADY_APPLIED
        assert quantity_of(session, "WIDGET") == Decimal("10")
        rows = session.execute(
            select(LedgerTransactionModel).where(LedgerTransactionModel.entry_id == receipt.id)
        ).scalars().all()
        assert len(rows) == 1
