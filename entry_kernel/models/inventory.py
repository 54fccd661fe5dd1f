"""
Module: entry_kernel.models.inventory
Responsibility: ORM persistence for inventory items, ledger transactions,
    and the per-entry ledger application marker.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Quantities are exact decimals (ExactDecimal via the Decimal type map).
    - UNIQUE(entry_id, field_key) on ledger_transactions: one ledger line
      per inventory link per entry.
    - UNIQUE(entry_id) on ledger_applications: the store-enforced
      idempotency key for ledger application.
    - Ledger transactions and application markers are append-only
      (db/immutability.py).

Failure modes:
    - IntegrityError when a second apply for the same entry races the first.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entry_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from entry_kernel.domain.dtos import InventoryItemInfo, LedgerTransactionInfo


class InventoryItemModel(TrackedBase):
    """A stock-keeping item whose quantity the ledger moves."""

    __tablename__ = "inventory_items"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    opening_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    current_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<InventoryItem {self.code} qty={self.current_quantity}>"

    def to_dto(self) -> InventoryItemInfo:
        from entry_kernel.domain.dtos import InventoryItemInfo

        return InventoryItemInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            unit=self.unit,
            category=self.category,
            opening_quantity=self.opening_quantity,
            current_quantity=self.current_quantity,
        )


class LedgerTransactionModel(Base):
    """One applied inventory movement. Append-only."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        UniqueConstraint(
            "entry_id", "field_key", name="uq_ledger_transactions_entry_field",
        ),
        CheckConstraint(
            "operation IN ('increase', 'decrease', 'set_absolute')",
            name="ck_ledger_transactions_valid_operation",
        ),
        Index("ix_ledger_transactions_item_created", "item_id", "created_at"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"), nullable=False,
    )
    document_type_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("document_types.id"), nullable=False,
    )
    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("entries.id"), nullable=False,
    )
    field_key: Mapped[str] = mapped_column(String(64), nullable=False)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    requested_amount: Mapped[Decimal] = mapped_column(nullable=False)
    delta: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_before: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(nullable=False)
    applied_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    item: Mapped[InventoryItemModel] = relationship("InventoryItemModel", lazy="joined")

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.entry_id}:{self.field_key} delta={self.delta}>"

    def to_dto(self) -> LedgerTransactionInfo:
        from entry_kernel.domain.dtos import LedgerTransactionInfo
        from entry_kernel.domain.schema import InventoryOperation

        return LedgerTransactionInfo(
            id=self.id,
            item_code=self.item.code,
            entry_id=self.entry_id,
            field_key=self.field_key,
            operation=InventoryOperation(self.operation),
            requested_amount=self.requested_amount,
            delta=self.delta,
            quantity_before=self.quantity_before,
            quantity_after=self.quantity_after,
            created_at=self.created_at,
        )


class LedgerApplicationModel(Base):
    """Marker row: the entry's ledger has been applied. One per entry."""

    __tablename__ = "ledger_applications"

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("entries.id"), nullable=False, unique=True,
    )
    transaction_count: Mapped[int] = mapped_column(nullable=False)
    applied_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
