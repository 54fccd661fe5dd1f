"""
Module: entry_kernel.models.permission
Responsibility: ORM persistence for the role x document-type permission
    matrix and its report read-permission mirror.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - UNIQUE(role, document_type_id): one matrix cell per role and type.
    - Partial unique index on document_type_id WHERE can_final_confirm:
      at most one final confirmer per document type, enforced by the store.
    - UNIQUE(role, report_code) on the mirror.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from entry_kernel.db.base import Base, UUIDString
from entry_kernel.domain.permissions import PermissionFlags


class PermissionEntryModel(Base):
    """Capabilities one role holds on one document type."""

    __tablename__ = "permission_entries"

    __table_args__ = (
        UniqueConstraint(
            "role", "document_type_id",
            name="uq_permission_entries_role_document_type",
        ),
        Index(
            "uq_permission_entries_single_final_confirmer",
            "document_type_id",
            unique=True,
            postgresql_where=text("can_final_confirm"),
            sqlite_where=text("can_final_confirm = 1"),
        ),
    )

    role: Mapped[str] = mapped_column(String(64), nullable=False)
    document_type_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("document_types.id"), nullable=False,
    )
    can_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_submit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_confirm: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_final_confirm: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return f"<PermissionEntry {self.role}@{self.document_type_id}>"

    @property
    def flags(self) -> PermissionFlags:
        return PermissionFlags(
            can_read=self.can_read,
            can_submit=self.can_submit,
            can_confirm=self.can_confirm,
            can_final_confirm=self.can_final_confirm,
        )

    def apply_flags(self, flags: PermissionFlags) -> None:
        self.can_read = flags.can_read
        self.can_submit = flags.can_submit
        self.can_confirm = flags.can_confirm
        self.can_final_confirm = flags.can_final_confirm


class ReportPermissionModel(Base):
    """Role may read the report mirrored from a document type."""

    __tablename__ = "report_permissions"

    __table_args__ = (
        UniqueConstraint("role", "report_code", name="uq_report_permissions_role_code"),
    )

    role: Mapped[str] = mapped_column(String(64), nullable=False)
    report_code: Mapped[str] = mapped_column(String(80), nullable=False)
    document_type_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("document_types.id"), nullable=False,
    )
