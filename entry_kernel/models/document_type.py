"""
Module: entry_kernel.models.document_type
Responsibility: ORM persistence for registered document types.

Architecture position: Kernel > Models.  May import from db/ only.

The field layout itself lives in configuration (entry_config); this table
anchors foreign keys and records the schema version in force.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from entry_kernel.db.base import Base


class DocumentTypeModel(Base):
    """A registered document type (form)."""

    __tablename__ = "document_types"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DocumentType {self.code} v{self.version}>"
