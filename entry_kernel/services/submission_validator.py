"""
SubmissionValidator -- decides whether a payload may become an entry.

Responsibility:
    Runs every check a submission must pass before it is persisted:

    1. Field coercion against the document-type schema (all field errors
       collected into one EntryValidationError).
    2. Reference fields: every referenced entry exists, and the actor can
       read at least one document type among the referenced entries.
    3. Inventory links: each referenced item exists; decrease links may not
       request more than the item's current quantity (amounts are summed
       per item when several links draw on the same one).

Architecture position:
    Kernel > Services.  Read-only.

Failure modes:
    - DocumentTypeNotFoundError  unknown or inactive document type
    - EntryValidationError       field-level failures
    - ReferentialIntegrityError  reference to a missing entry
    - ForbiddenError             references to unreadable document types
    - InsufficientStockError     decrease exceeds available quantity
"""

from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from entry_kernel.db.types import parse_quantity
from entry_kernel.domain.actor import Actor, ReferenceRecordChecker
from entry_kernel.domain.coercion import coerce_payload
from entry_kernel.domain.dtos import FieldError, ValidatedSubmission
from entry_kernel.domain.permissions import Capability
from entry_kernel.domain.schema import (
    REFERENCE_FIELD_TYPES,
    DocumentTypeSchema,
    FieldSchemaProvider,
    InventoryOperation,
)
from entry_kernel.exceptions import (
    EntryValidationError,
    ForbiddenError,
    InsufficientStockError,
    ReferentialIntegrityError,
)
from entry_kernel.logging_config import get_logger
from entry_kernel.services.document_type_service import DocumentTypeService
from entry_kernel.services.inventory_service import InventoryService
from entry_kernel.services.permission_service import PermissionMatrix
from entry_kernel.services.reference_checker import DatabaseReferenceChecker

logger = get_logger("services.submission_validator")


class SubmissionValidator:

    def __init__(
        self,
        session: Session,
        schemas: FieldSchemaProvider,
        permissions: PermissionMatrix | None = None,
        references: ReferenceRecordChecker | None = None,
    ):
        self._session = session
        self._schemas = schemas
        self._permissions = permissions or PermissionMatrix(session)
        self._references = references or DatabaseReferenceChecker(session)
        self._document_types = DocumentTypeService(session)
        self._inventory = InventoryService(session)

    def validate(
        self,
        document_type_code: str,
        raw_payload: Mapping[str, Any],
        actor: Actor,
    ) -> ValidatedSubmission:
        schema = self._schemas.get(document_type_code)
        doc_type = self._document_types.get_active(document_type_code)

        values, errors = coerce_payload(schema, raw_payload)
        if errors:
            self._reject_fields(schema, errors)

        self._check_references(schema, values, actor)
        self._check_inventory(schema, values)

        logger.debug(
            "submission_validated",
            extra={"document_type": schema.code, "field_count": len(values)},
        )
        return ValidatedSubmission(
            schema=schema,
            document_type_id=doc_type.id,
            values=values,
        )

    def _reject_fields(self, schema: DocumentTypeSchema, errors: list[FieldError]):
        logger.info(
            "submission_fields_invalid",
            extra={
                "document_type": schema.code,
                "fields": sorted({e.field for e in errors}),
            },
        )
        raise EntryValidationError(schema.code, [e.to_dict() for e in errors])

    def _check_references(
        self, schema: DocumentTypeSchema, values: dict[str, Any], actor: Actor
    ) -> None:
        readable: set[UUID] | None = None
        for fd in schema.fields:
            if fd.field_type not in REFERENCE_FIELD_TYPES or fd.key not in values:
                continue
            raw = values[fd.key]
            ids = [UUID(v) for v in (raw if isinstance(raw, list) else [raw])]
            if not ids:
                continue

            found = self._references.document_types_of(ids)
            missing = [str(i) for i in ids if i not in found]
            if missing:
                raise ReferentialIntegrityError(fd.key, missing)

            if readable is None:
                readable = self._permissions.readable_document_type_ids(actor.roles)
            if not set(found.values()) & readable:
                raise ForbiddenError(
                    str(actor.actor_id),
                    Capability.READ.value,
                    schema.code,
                    reason=f"cannot read records referenced by field {fd.key}",
                )

    def _check_inventory(self, schema: DocumentTypeSchema, values: dict[str, Any]) -> None:
        links = schema.inventory_links
        if not links:
            return

        codes = [values[link.item_field] for link in links if link.item_field in values]
        items = self._inventory.find_many(codes)

        unknown = [
            FieldError(
                link.item_field,
                "UNKNOWN_INVENTORY_ITEM",
                f"Unknown inventory item {values[link.item_field]}",
            )
            for link in links
            if link.item_field in values and values[link.item_field] not in items
        ]
        if unknown:
            self._reject_fields(schema, unknown)

        requested: dict[str, Decimal] = {}
        first_field: dict[str, str] = {}
        for link in links:
            if link.operation is not InventoryOperation.DECREASE:
                continue
            code = values.get(link.item_field)
            amount = parse_quantity(values.get(link.amount_key))
            if code is None or amount is None:
                continue
            requested[code] = requested.get(code, Decimal("0")) + abs(amount)
            first_field.setdefault(code, link.item_field)

        for code, total in requested.items():
            available = items[code].current_quantity
            if total > available:
                logger.info(
                    "submission_insufficient_stock",
                    extra={
                        "document_type": schema.code,
                        "item_code": code,
                        "requested": str(total),
                        "available": str(available),
                    },
                )
                raise InsufficientStockError(first_field[code], code, total, available)
