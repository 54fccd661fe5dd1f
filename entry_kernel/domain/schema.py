"""
Document-type schema domain types (``entry_kernel.domain.schema``).

Responsibility
--------------
Pure, already-parsed description of a document type: its fields, their
constraints, and the inventory links that drive the ledger.  Configuration
is parsed into these closed variants exactly once (see ``entry_config``);
nothing downstream inspects loosely-typed dictionaries.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``InventoryOperation`` and ``ApplyStage`` are closed enumerations.
* A document type applies its whole ledger at a single stage: if any link
  asks for ``on_any_confirm`` the type is applied on the first confirmation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Protocol


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    FILE = "file"
    ENTRY_REF = "entry_ref"
    ENTRY_REF_MULTI = "entry_ref_multi"
    INVENTORY_ITEM = "inventory_item"
    TABLE_SELECT = "table_select"
    SUBFORM = "subform"


REFERENCE_FIELD_TYPES: frozenset[FieldType] = frozenset({
    FieldType.ENTRY_REF,
    FieldType.ENTRY_REF_MULTI,
})


class InventoryOperation(str, Enum):
    """How a linked amount moves the item's quantity."""

    INCREASE = "increase"
    DECREASE = "decrease"
    SET_ABSOLUTE = "set_absolute"


class ApplyStage(str, Enum):
    """Workflow stage at which a document type's ledger is applied."""

    ON_FINAL = "on_final"
    ON_ANY_CONFIRM = "on_any_confirm"


@dataclass(frozen=True)
class InventoryLink:
    """
    Binds an inventory-item field to the amount field that moves it.

    ``item_field`` holds the item code; ``amount_key`` names the payload
    field holding the amount.
    """

    item_field: str
    amount_key: str
    operation: InventoryOperation = InventoryOperation.INCREASE
    apply_stage: ApplyStage = ApplyStage.ON_FINAL


@dataclass(frozen=True)
class FieldDefinition:
    """One declared field of a document type."""

    key: str
    field_type: FieldType
    label: str = ""
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    minimum: Decimal | None = None
    maximum: Decimal | None = None
    decimals: bool = True
    options: tuple[str, ...] = ()
    min_items: int | None = None
    max_items: int | None = None
    inventory: InventoryLink | None = None
    subform_fields: tuple["FieldDefinition", ...] = ()


@dataclass(frozen=True)
class DocumentTypeSchema:
    """Parsed definition of a document type."""

    code: str
    title: str
    fields: tuple[FieldDefinition, ...]
    version: int = 1
    is_active: bool = True
    description: str = ""
    _by_key: dict[str, FieldDefinition] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_key", {f.key: f for f in self.fields})

    @property
    def field_keys(self) -> frozenset[str]:
        return frozenset(self._by_key)

    def get_field(self, key: str) -> FieldDefinition | None:
        return self._by_key.get(key)

    @property
    def inventory_links(self) -> tuple[InventoryLink, ...]:
        """Inventory links in declared field order."""
        return tuple(f.inventory for f in self.fields if f.inventory is not None)

    @property
    def apply_stage(self) -> ApplyStage:
        if any(
            link.apply_stage is ApplyStage.ON_ANY_CONFIRM
            for link in self.inventory_links
        ):
            return ApplyStage.ON_ANY_CONFIRM
        return ApplyStage.ON_FINAL


class FieldSchemaProvider(Protocol):
    """Supplies parsed document-type schemas by code."""

    def get(self, code: str) -> DocumentTypeSchema:
        """Return the schema or raise DocumentTypeNotFoundError."""
        ...

    def all(self) -> tuple[DocumentTypeSchema, ...]:
        ...
