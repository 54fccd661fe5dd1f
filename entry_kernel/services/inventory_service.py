"""
InventoryService -- inventory item administration.

Responsibility:
    Creates inventory items (opening quantity becomes the current quantity)
    and resolves items by code.  Quantity changes after creation go through
    the LedgerApplier only.

Failure modes:
    - InventoryItemNotFoundError from get_item() for unknown codes.
    - IntegrityError on a duplicate item code (UNIQUE constraint).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from entry_kernel.db.types import parse_quantity
from entry_kernel.domain.dtos import InventoryItemInfo
from entry_kernel.exceptions import InventoryItemNotFoundError
from entry_kernel.logging_config import get_logger
from entry_kernel.models.inventory import InventoryItemModel
from entry_kernel.services.base import BaseService

logger = get_logger("services.inventory")


class InventoryService(BaseService[InventoryItemModel]):
    """Inventory item CRUD (creation and lookup)."""

    def create_item(
        self,
        code: str,
        name: str,
        actor_id: UUID,
        opening_quantity: Decimal | int | str = 0,
        unit: str | None = None,
        category: str | None = None,
    ) -> InventoryItemInfo:
        quantity = parse_quantity(opening_quantity)
        if quantity is None:
            raise ValueError(f"Invalid opening quantity: {opening_quantity!r}")

        model = InventoryItemModel(
            code=code.strip(),
            name=name,
            unit=unit,
            category=category,
            opening_quantity=quantity,
            current_quantity=quantity,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "inventory_item_created",
            extra={"item_code": model.code, "opening_quantity": str(quantity)},
        )
        return model.to_dto()

    def find_by_code(self, code: str, for_update: bool = False) -> InventoryItemModel | None:
        stmt = select(InventoryItemModel).where(InventoryItemModel.code == code.strip())
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def find_many(self, codes) -> dict[str, InventoryItemModel]:
        wanted = sorted({c.strip() for c in codes})
        if not wanted:
            return {}
        rows = self.session.execute(
            select(InventoryItemModel).where(InventoryItemModel.code.in_(wanted))
        ).scalars()
        return {row.code: row for row in rows}

    def get_item(self, code: str) -> InventoryItemInfo:
        model = self.find_by_code(code)
        if model is None:
            raise InventoryItemNotFoundError(code)
        return model.to_dto()
