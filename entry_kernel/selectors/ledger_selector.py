"""
Module: entry_kernel.selectors.ledger_selector
Responsibility: Ledger history queries (per entry and per inventory item).

Item movements are returned in application order, so the last row's
``quantity_after`` equals the item's current quantity.
"""

from uuid import UUID

from sqlalchemy import select

from entry_kernel.domain.dtos import LedgerTransactionInfo
from entry_kernel.exceptions import InventoryItemNotFoundError
from entry_kernel.models.inventory import InventoryItemModel, LedgerTransactionModel
from entry_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[LedgerTransactionModel]):

    def transactions_for_entry(self, entry_id: UUID) -> list[LedgerTransactionInfo]:
        rows = self.session.execute(
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.entry_id == entry_id)
            .order_by(LedgerTransactionModel.created_at, LedgerTransactionModel.field_key)
        ).scalars()
        return [row.to_dto() for row in rows]

    def movements_for_item(self, item_code: str) -> list[LedgerTransactionInfo]:
        item_id = self.session.execute(
            select(InventoryItemModel.id).where(InventoryItemModel.code == item_code)
        ).scalar_one_or_none()
        if item_id is None:
            raise InventoryItemNotFoundError(item_code)
        rows = self.session.execute(
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.item_id == item_id)
            .order_by(LedgerTransactionModel.created_at, LedgerTransactionModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]
