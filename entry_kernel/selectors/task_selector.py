"""
Module: entry_kernel.selectors.task_selector
Responsibility: Pending-confirmation work lists and counters for approvers.

Final tasks are listed before regular ones; within each group, oldest
entries first.
"""

from typing import Iterable

from sqlalchemy import func, select

from entry_kernel.domain.dtos import PendingCounts, PendingTask
from entry_kernel.domain.workflow import EntryStatus, TaskStatus
from entry_kernel.models.approval_task import ApprovalTaskModel
from entry_kernel.models.entry import EntryModel
from entry_kernel.selectors.base import BaseSelector


class TaskSelector(BaseSelector[ApprovalTaskModel]):

    def pending_for_roles(self, roles: Iterable[str], limit: int = 50) -> list[PendingTask]:
        roles = list(roles)
        if not roles:
            return []
        rows = self.session.execute(
            select(ApprovalTaskModel, EntryModel)
            .join(EntryModel, EntryModel.id == ApprovalTaskModel.entry_id)
            .where(
                ApprovalTaskModel.assigned_role.in_(roles),
                ApprovalTaskModel.status == TaskStatus.PENDING.value,
            )
            .order_by(
                ApprovalTaskModel.is_final.desc(),
                EntryModel.created_at,
                ApprovalTaskModel.id,
            )
            .limit(limit)
        ).all()
        return [
            PendingTask(
                task_id=task.id,
                entry_id=entry.id,
                document_type_code=entry.document_type_code,
                assigned_role=task.assigned_role,
                is_final=task.is_final,
                entry_status=EntryStatus(entry.status),
                submitted_by_id=entry.created_by_id,
                submitted_at=entry.created_at,
            )
            for task, entry in rows
        ]

    def pending_counts(self, roles: Iterable[str]) -> PendingCounts:
        roles = list(roles)
        if not roles:
            return PendingCounts()
        rows = self.session.execute(
            select(ApprovalTaskModel.is_final, func.count(ApprovalTaskModel.id))
            .where(
                ApprovalTaskModel.assigned_role.in_(roles),
                ApprovalTaskModel.status == TaskStatus.PENDING.value,
            )
            .group_by(ApprovalTaskModel.is_final)
        ).all()
        counts = {bool(is_final): count for is_final, count in rows}
        return PendingCounts(confirm=counts.get(False, 0), final=counts.get(True, 0))

    def tasks_for_entry(self, entry_id) -> list:
        rows = self.session.execute(
            select(ApprovalTaskModel)
            .where(ApprovalTaskModel.entry_id == entry_id)
            .order_by(ApprovalTaskModel.is_final, ApprovalTaskModel.assigned_role)
        ).scalars()
        return [row.to_dto() for row in rows]
