"""
Payload coercion (``entry_kernel.domain.coercion``).

Responsibility
--------------
Turn a raw submitted mapping into clean, typed values according to a
``DocumentTypeSchema``.  Pure: no database access.  Cross-record checks
(references, stock) happen in the Submission Validator service.

Behaviour
---------
* Keys that are not declared fields are dropped.
* Every failing field produces a ``FieldError``; coercion continues so the
  caller sees all problems at once.
* Integral number fields become ``int``; fractional fields become
  ``Decimal``.  Floats never survive coercion.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from entry_kernel.db.types import parse_quantity
from entry_kernel.domain.dtos import FieldError
from entry_kernel.domain.schema import DocumentTypeSchema, FieldDefinition, FieldType

_TRUE_STRINGS = frozenset({"true", "on", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "off", "no", "0"})


class _Invalid(Exception):
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def _check_item_count(fd: FieldDefinition, items: list) -> None:
    if fd.min_items is not None and len(items) < fd.min_items:
        raise _Invalid("TOO_FEW_ITEMS", f"At least {fd.min_items} items required")
    if fd.max_items is not None and len(items) > fd.max_items:
        raise _Invalid("TOO_MANY_ITEMS", f"At most {fd.max_items} items allowed")


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise _Invalid("INVALID_LIST", "Expected a list")


def _coerce_text(fd: FieldDefinition, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, Decimal)):
        raise _Invalid("INVALID_TEXT", "Expected text")
    text = str(value)
    if fd.min_length is not None and len(text) < fd.min_length:
        raise _Invalid("TOO_SHORT", f"Must be at least {fd.min_length} characters")
    if fd.max_length is not None and len(text) > fd.max_length:
        raise _Invalid("TOO_LONG", f"Must be at most {fd.max_length} characters")
    if fd.pattern and re.search(fd.pattern, text) is None:
        raise _Invalid("PATTERN_MISMATCH", "Does not match the required format")
    return text


def _coerce_number(fd: FieldDefinition, value: Any) -> int | Decimal:
    number = parse_quantity(value)
    if number is None:
        raise _Invalid("INVALID_NUMBER", "Expected a number")
    if fd.minimum is not None and number < fd.minimum:
        raise _Invalid("BELOW_MINIMUM", f"Must be at least {fd.minimum}")
    if fd.maximum is not None and number > fd.maximum:
        raise _Invalid("ABOVE_MAXIMUM", f"Must be at most {fd.maximum}")
    if not fd.decimals:
        if number != number.to_integral_value():
            raise _Invalid("NOT_INTEGER", "Expected a whole number")
        return int(number)
    return number


def _coerce_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10]).isoformat()
        except ValueError:
            pass
    raise _Invalid("INVALID_DATE", "Expected a date (YYYY-MM-DD)")


def _coerce_datetime(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).isoformat()
        except ValueError:
            pass
    raise _Invalid("INVALID_DATETIME", "Expected an ISO-8601 date and time")


def _coerce_option(fd: FieldDefinition, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _Invalid("INVALID_OPTION", "Expected one of the listed options")
    text = str(value)
    if fd.options and text not in fd.options:
        raise _Invalid("INVALID_OPTION", f"'{text}' is not an allowed option")
    return text


def _coerce_checkbox(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _Invalid("INVALID_BOOLEAN", "Expected true or false")


def _coerce_uuid(value: Any) -> str:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, str):
        try:
            return str(UUID(value.strip()))
        except ValueError:
            pass
    raise _Invalid("INVALID_REFERENCE", "Expected a record identifier")


def _coerce_code(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _Invalid("INVALID_CODE", "Expected an item code")
    code = str(value).strip()
    if not code:
        raise _Invalid("INVALID_CODE", "Expected an item code")
    return code


def _coerce_file(value: Any) -> Any:
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and value.get("url"):
        return dict(value)
    raise _Invalid("INVALID_FILE", "Expected an uploaded file reference")


def _coerce_value(
    fd: FieldDefinition, value: Any, path: str, errors: list[FieldError]
) -> Any:
    ft = fd.field_type
    if ft in (FieldType.TEXT, FieldType.TEXTAREA):
        return _coerce_text(fd, value)
    if ft is FieldType.NUMBER:
        return _coerce_number(fd, value)
    if ft is FieldType.DATE:
        return _coerce_date(value)
    if ft is FieldType.DATETIME:
        return _coerce_datetime(value)
    if ft is FieldType.SELECT:
        return _coerce_option(fd, value)
    if ft is FieldType.MULTISELECT:
        items = [_coerce_option(fd, v) for v in _as_list(value)]
        _check_item_count(fd, items)
        return items
    if ft is FieldType.CHECKBOX:
        return _coerce_checkbox(value)
    if ft is FieldType.FILE:
        return _coerce_file(value)
    if ft is FieldType.ENTRY_REF:
        return _coerce_uuid(value)
    if ft is FieldType.ENTRY_REF_MULTI:
        items = [_coerce_uuid(v) for v in _as_list(value)]
        _check_item_count(fd, items)
        return items
    if ft in (FieldType.INVENTORY_ITEM, FieldType.TABLE_SELECT):
        return _coerce_code(value)
    if ft is FieldType.SUBFORM:
        rows = _as_list(value)
        _check_item_count(fd, rows)
        cleaned_rows = []
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                raise _Invalid("INVALID_ROW", f"Row {index} is not an object")
            cleaned_rows.append(
                _coerce_fields(fd.subform_fields, row, f"{path}[{index}].", errors)
            )
        return cleaned_rows
    raise _Invalid("UNSUPPORTED_TYPE", f"Unsupported field type {ft.value}")


def _coerce_fields(
    fields: tuple[FieldDefinition, ...],
    raw: Mapping[str, Any],
    prefix: str,
    errors: list[FieldError],
) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for fd in fields:
        path = f"{prefix}{fd.key}"
        value = raw.get(fd.key)
        if _is_blank(value):
            if fd.required:
                errors.append(FieldError(path, "REQUIRED", "This field is required"))
            continue
        try:
            cleaned[fd.key] = _coerce_value(fd, value, path, errors)
        except _Invalid as exc:
            errors.append(FieldError(path, exc.code, exc.message))
    return cleaned


def coerce_payload(
    schema: DocumentTypeSchema, raw: Mapping[str, Any]
) -> tuple[dict[str, Any], list[FieldError]]:
    """
    Coerce ``raw`` against ``schema``.

    Returns the cleaned values (declared fields only) and the list of field
    errors.  The payload is acceptable iff the error list is empty.
    """
    errors: list[FieldError] = []
    cleaned = _coerce_fields(schema.fields, raw or {}, "", errors)
    return cleaned, errors
