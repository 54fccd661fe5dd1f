"""
Module: entry_kernel.db.types
Responsibility: The single sanctioned parser for user-supplied quantities and
    their canonical JSON rendering.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in quantity arithmetic.  parse_quantity() converts
      through str() and refuses bool, NaN, and infinities.
"""

from decimal import Decimal, InvalidOperation
from typing import Any


def parse_quantity(value: Any) -> Decimal | None:
    """
    Parse a payload value into an exact Decimal quantity.

    Accepts int, Decimal, float (via its repr), and numeric strings.  A comma
    decimal separator is accepted ("12,5" -> 12.5).  Returns None for
    anything that is not a finite number, including booleans and blanks.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def canonical_quantity(value: Decimal) -> str:
    """Render a quantity for JSON storage without exponent notation."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
