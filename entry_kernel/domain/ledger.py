"""
Ledger arithmetic (``entry_kernel.domain.ledger``).

Pure functions computing how an inventory operation moves a quantity.
All values are ``Decimal``; no floats are accepted.

    increase      delta = +amount
    decrease      delta = -|amount|
    set_absolute  delta = target - current   (result == target)
"""

from dataclasses import dataclass
from decimal import Decimal

from entry_kernel.domain.schema import InventoryOperation


@dataclass(frozen=True)
class QuantityMovement:
    operation: InventoryOperation
    requested: Decimal
    delta: Decimal
    quantity_before: Decimal
    quantity_after: Decimal

    @property
    def would_go_negative(self) -> bool:
        return self.quantity_after < 0


def compute_movement(
    operation: InventoryOperation,
    amount: Decimal,
    current: Decimal,
) -> QuantityMovement:
    """Compute the delta and resulting quantity for one ledger line."""
    if operation is InventoryOperation.INCREASE:
        delta = amount
    elif operation is InventoryOperation.DECREASE:
        delta = -abs(amount)
    elif operation is InventoryOperation.SET_ABSOLUTE:
        delta = amount - current
    else:
        raise ValueError(f"Unknown inventory operation: {operation!r}")
    return QuantityMovement(
        operation=operation,
        requested=amount,
        delta=delta,
        quantity_before=current,
        quantity_after=current + delta,
    )
