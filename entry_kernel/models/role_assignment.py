"""
Module: entry_kernel.models.role_assignment
Responsibility: ORM persistence for user -> role assignments.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from entry_kernel.db.base import Base, UUIDString


class RoleAssignmentModel(Base):
    __tablename__ = "role_assignments"

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_role_assignments_user_role"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
