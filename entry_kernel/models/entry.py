"""
Module: entry_kernel.models.entry
Responsibility: ORM persistence for submitted entries (records).

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - status limited to the four workflow values (check constraint).
    - Locked entries (confirmed / finalConfirmed) reject payload changes and
      deletion via db/immutability.py listeners.
    - ledger_applied flips false -> true at most once; the unique marker in
      ledger_applications backs this at the store level.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE of a locked entry.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entry_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from entry_kernel.domain.dtos import EntryInfo
    from entry_kernel.models.approval_task import ApprovalTaskModel


class EntryModel(TrackedBase):
    """A submitted record of a document type."""

    __tablename__ = "entries"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'confirmed', 'finalConfirmed')",
            name="ck_entries_valid_status",
        ),
        Index("ix_entries_document_type_status", "document_type_id", "status"),
        Index("ix_entries_created_by", "created_by_id"),
    )

    document_type_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("document_types.id"), nullable=False,
    )
    document_type_code: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="submitted")
    schema_version: Mapped[int] = mapped_column(nullable=False, default=1)
    ledger_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    final_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    final_confirmed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )

    tasks: Mapped[list[ApprovalTaskModel]] = relationship(
        "ApprovalTaskModel",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="ApprovalTaskModel.is_final",
    )

    def __repr__(self) -> str:
        return f"<Entry {self.id} {self.document_type_code} status={self.status}>"

    def to_dto(self) -> EntryInfo:
        from entry_kernel.domain.dtos import EntryInfo
        from entry_kernel.domain.workflow import EntryStatus

        return EntryInfo(
            id=self.id,
            document_type_code=self.document_type_code,
            status=EntryStatus(self.status),
            payload=dict(self.payload or {}),
            schema_version=self.schema_version,
            ledger_applied=self.ledger_applied,
            created_by_id=self.created_by_id,
            first_confirmed_at=self.first_confirmed_at,
            final_confirmed_at=self.final_confirmed_at,
            final_confirmed_by_id=self.final_confirmed_by_id,
        )
