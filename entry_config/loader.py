"""
Configuration Loader (``entry_config.loader``).

Responsibility
--------------
Loads YAML files and parses document-type definitions into the kernel's
frozen ``DocumentTypeSchema`` / ``FieldDefinition`` / ``InventoryLink``
value objects.  Parsing happens once, at load time; everything downstream
works with closed enumerations, never with raw strings.

Architecture position
---------------------
**Config layer** -- build/test tooling.  Consumed by
``entry_config.assembler``.  Imports kernel domain types only.

Invariants enforced
-------------------
* Every inventory link names an existing numeric amount field and sits on
  an ``inventory_item`` field.
* Field keys are unique within a document type (and within a subform).
* Regex patterns compile; select fields declare options.
* Legacy spellings are normalized: operations ``deltaPlus`` / ``deltaMinus``
  / ``set`` and stages ``final`` / ``anyConfirm``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural problems  -> ``DocumentTypeConfigError``.
"""

from __future__ import annotations

import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from entry_kernel.domain.schema import (
    ApplyStage,
    DocumentTypeSchema,
    FieldDefinition,
    FieldType,
    InventoryLink,
    InventoryOperation,
)
from entry_kernel.exceptions import DocumentTypeConfigError

_OPERATION_ALIASES: dict[str, InventoryOperation] = {
    "increase": InventoryOperation.INCREASE,
    "deltaPlus": InventoryOperation.INCREASE,
    "decrease": InventoryOperation.DECREASE,
    "deltaMinus": InventoryOperation.DECREASE,
    "set_absolute": InventoryOperation.SET_ABSOLUTE,
    "set": InventoryOperation.SET_ABSOLUTE,
}

_STAGE_ALIASES: dict[str, ApplyStage] = {
    "on_final": ApplyStage.ON_FINAL,
    "final": ApplyStage.ON_FINAL,
    "on_any_confirm": ApplyStage.ON_ANY_CONFIRM,
    "anyConfirm": ApplyStage.ON_ANY_CONFIRM,
}

_TYPE_ALIASES: dict[str, FieldType] = {
    "entryRef": FieldType.ENTRY_REF,
    "entryRefMulti": FieldType.ENTRY_REF_MULTI,
    "kardexItem": FieldType.INVENTORY_ITEM,
    "tableSelect": FieldType.TABLE_SELECT,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: Any) -> str:
    """SHA-256 of the canonical JSON serialization (deterministic)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_decimal(code: str, key: str, value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise DocumentTypeConfigError(code, f"{key} must be a number")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise DocumentTypeConfigError(code, f"{key} must be a number") from exc


def parse_field_type(code: str, value: Any) -> FieldType:
    if value in _TYPE_ALIASES:
        return _TYPE_ALIASES[value]
    try:
        return FieldType(value)
    except ValueError as exc:
        raise DocumentTypeConfigError(code, f"unknown field type {value!r}") from exc


def parse_inventory_link(code: str, item_field: str, data: dict[str, Any]) -> InventoryLink:
    """Parse the ``inventory`` block of an inventory-item field."""
    amount_key = data.get("amount_key", data.get("amountKey"))
    if not amount_key:
        raise DocumentTypeConfigError(
            code, f"inventory link on {item_field} is missing amount_key"
        )

    op_value = data.get("operation", data.get("op", "increase"))
    operation = _OPERATION_ALIASES.get(op_value)
    if operation is None:
        raise DocumentTypeConfigError(
            code, f"inventory link on {item_field} has unknown operation {op_value!r}"
        )

    stage_value = data.get("apply_stage", data.get("applyOn", "on_final"))
    stage = _STAGE_ALIASES.get(stage_value)
    if stage is None:
        raise DocumentTypeConfigError(
            code, f"inventory link on {item_field} has unknown apply stage {stage_value!r}"
        )

    return InventoryLink(
        item_field=item_field,
        amount_key=str(amount_key),
        operation=operation,
        apply_stage=stage,
    )


def parse_field(code: str, data: dict[str, Any]) -> FieldDefinition:
    """Parse one field definition."""
    try:
        key = str(data["key"])
        field_type = parse_field_type(code, data["type"])
    except KeyError as exc:
        raise DocumentTypeConfigError(code, f"field is missing {exc.args[0]!r}") from exc

    pattern = data.get("regex", data.get("pattern"))
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise DocumentTypeConfigError(code, f"field {key} has an invalid regex") from exc

    options = tuple(str(o) for o in data.get("options", ()) or ())
    if field_type in (FieldType.SELECT, FieldType.MULTISELECT) and not options:
        raise DocumentTypeConfigError(code, f"field {key} declares no options")

    inventory = None
    if data.get("inventory") is not None:
        if field_type is not FieldType.INVENTORY_ITEM:
            raise DocumentTypeConfigError(
                code, f"field {key} has an inventory link but is not an inventory_item"
            )
        inventory = parse_inventory_link(code, key, data["inventory"])

    subform_fields: tuple[FieldDefinition, ...] = ()
    if field_type is FieldType.SUBFORM:
        subform_fields = _parse_fields(code, data.get("fields", []))

    return FieldDefinition(
        key=key,
        field_type=field_type,
        label=str(data.get("label", key)),
        required=bool(data.get("required", False)),
        min_length=data.get("min_length", data.get("minLength")),
        max_length=data.get("max_length", data.get("maxLength")),
        pattern=pattern,
        minimum=_parse_decimal(code, f"{key}.min", data.get("min")),
        maximum=_parse_decimal(code, f"{key}.max", data.get("max")),
        decimals=bool(data.get("decimals", True)),
        options=options,
        min_items=data.get("min_items", data.get("minItems")),
        max_items=data.get("max_items", data.get("maxItems")),
        inventory=inventory,
        subform_fields=subform_fields,
    )


def _parse_fields(code: str, items: list[dict[str, Any]]) -> tuple[FieldDefinition, ...]:
    fields = tuple(parse_field(code, item) for item in items)
    seen: set[str] = set()
    for fd in fields:
        if fd.key in seen:
            raise DocumentTypeConfigError(code, f"duplicate field key {fd.key}")
        seen.add(fd.key)
    return fields


def parse_document_type(data: dict[str, Any]) -> DocumentTypeSchema:
    """
    Parse a complete document type.

    Raises:
        DocumentTypeConfigError: on any structural problem.
    """
    code = str(data.get("code", "")).strip()
    if not code:
        raise DocumentTypeConfigError("<unknown>", "document type has no code")

    fields = _parse_fields(code, data.get("fields", []))
    schema = DocumentTypeSchema(
        code=code,
        title=str(data.get("title", code)),
        fields=fields,
        version=int(data.get("version", 1)),
        is_active=bool(data.get("is_active", True)),
        description=str(data.get("description", "")),
    )

    for link in schema.inventory_links:
        amount_field = schema.get_field(link.amount_key)
        if amount_field is None:
            raise DocumentTypeConfigError(
                code, f"inventory link on {link.item_field} references unknown field {link.amount_key}"
            )
        if amount_field.field_type is not FieldType.NUMBER:
            raise DocumentTypeConfigError(
                code, f"amount field {link.amount_key} must be a number field"
            )
    return schema
