"""
Module: entry_kernel.models.approval_task
Responsibility: ORM persistence for per-role confirmation tasks.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - UNIQUE(entry_id, assigned_role, is_final): task generation is
      idempotent; re-running it never duplicates a task.
    - status limited to pending / approved / rejected / superseded.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entry_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from entry_kernel.domain.dtos import ApprovalTaskInfo
    from entry_kernel.models.entry import EntryModel


class ApprovalTaskModel(Base):
    """One confirmation task assigned to a role for an entry."""

    __tablename__ = "approval_tasks"

    __table_args__ = (
        UniqueConstraint(
            "entry_id", "assigned_role", "is_final",
            name="uq_approval_tasks_entry_role_final",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'superseded')",
            name="ck_approval_tasks_valid_status",
        ),
        Index("ix_approval_tasks_role_status", "assigned_role", "status"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("entries.id", ondelete="CASCADE"), nullable=False,
    )
    assigned_role: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    decided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )

    entry: Mapped[EntryModel] = relationship("EntryModel", back_populates="tasks")

    def __repr__(self) -> str:
        kind = "final" if self.is_final else "confirm"
        return f"<ApprovalTask {self.id} {kind}:{self.assigned_role} status={self.status}>"

    def to_dto(self) -> ApprovalTaskInfo:
        from entry_kernel.domain.dtos import ApprovalTaskInfo
        from entry_kernel.domain.workflow import TaskStatus

        return ApprovalTaskInfo(
            id=self.id,
            entry_id=self.entry_id,
            assigned_role=self.assigned_role,
            is_final=self.is_final,
            status=TaskStatus(self.status),
            decided_by_id=self.decided_by_id,
            decided_at=self.decided_at,
            comment=self.comment,
        )
