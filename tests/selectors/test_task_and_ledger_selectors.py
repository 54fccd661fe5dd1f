"""Tests for the read-only selectors (work lists, counters, ledger history)."""

from decimal import Decimal

import pytest

from entry_kernel.domain.schema import InventoryOperation
from entry_kernel.domain.workflow import ApprovalDecision, EntryStatus, TaskStatus
from entry_kernel.exceptions import InventoryItemNotFoundError
from entry_kernel.selectors.ledger_selector import LedgerSelector
from entry_kernel.selectors.task_selector import TaskSelector
from tests.conftest import PLANT_MANAGER, QUALITY, SUPERVISOR


@pytest.fixture
def submit(workflow, submitter, inventory_items, issue_payload):
    def _submit(quantity="10"):
        return workflow.submit("RAW_ISSUE", issue_payload(quantity=quantity), submitter).entry_id

    return _submit


@pytest.fixture
def approve_entry(workflow, task_for, supervisor, manager):
    def _approve(entry_id):
        workflow.decide_approval(task_for(entry_id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)
        workflow.decide_approval(
            task_for(entry_id, PLANT_MANAGER, is_final=True).id, ApprovalDecision.APPROVE, manager
        )

    return _approve


class TestTaskSelector:

    def test_no_roles_no_work(self, session, submit):
        submit()
        selector = TaskSelector(session)
        assert selector.pending_for_roles([]) == []
        assert selector.pending_counts([]).total == 0

    def test_final_tasks_listed_first(self, session, submit):
        submit()
        tasks = TaskSelector(session).pending_for_roles([SUPERVISOR, PLANT_MANAGER])

        assert [t.is_final for t in tasks] == [True, False]
        assert tasks[0].assigned_role == PLANT_MANAGER
        assert tasks[1].entry_status is EntryStatus.SUBMITTED
        assert tasks[1].document_type_code == "RAW_ISSUE"

    def test_limit(self, session, submit):
        for _ in range(3):
            submit()
        assert len(TaskSelector(session).pending_for_roles([SUPERVISOR], limit=2)) == 2

    def test_decided_tasks_leave_the_list(self, session, workflow, supervisor, task_for, submit):
        entry_id = submit()
        workflow.decide_approval(task_for(entry_id, SUPERVISOR).id, ApprovalDecision.APPROVE, supervisor)

        selector = TaskSelector(session)
        assert selector.pending_for_roles([SUPERVISOR]) == []
        assert selector.pending_counts([QUALITY]).confirm == 1
        assert selector.pending_counts([PLANT_MANAGER]).final == 1

    def test_tasks_for_entry(self, session, submit):
        entry_id = submit()
        tasks = TaskSelector(session).tasks_for_entry(entry_id)

        assert len(tasks) == 3
        assert tasks[-1].is_final
        assert all(t.status is TaskStatus.PENDING for t in tasks)


class TestLedgerSelector:

    def test_movements_in_application_order(self, session, clock, submit, approve_entry):
        first = submit("30")
        second = submit("20")
        approve_entry(first)
        clock.advance(60)
        approve_entry(second)

        movements = LedgerSelector(session).movements_for_item("STEEL-SHEET")

        assert [m.entry_id for m in movements] == [first, second]
        assert movements[-1].quantity_after == Decimal("50")
        assert movements[0].operation is InventoryOperation.DECREASE
        assert movements[0].delta == Decimal("-30")

    def test_entry_without_ledger(self, session, submit):
        assert LedgerSelector(session).transactions_for_entry(submit()) == []

    def test_unknown_item(self, session):
        with pytest.raises(InventoryItemNotFoundError):
            LedgerSelector(session).movements_for_item("NOPE")
