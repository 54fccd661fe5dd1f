"""
LedgerApplier -- applies an entry's inventory effects exactly once.

Responsibility:
    Reads the entry's payload through its document type's inventory links,
    writes one ledger transaction per applied link, moves item quantities,
    and marks the entry as applied -- all inside one SAVEPOINT so the
    whole set lands or none of it does.

Architecture position:
    Kernel > Services.  Called by ConfirmationTracker when the document
    type's apply stage is reached, and by the boundary facade for manual
    retries.

Invariants enforced:
    - At most once per entry: the ledger_applied flag is checked under a
      row lock, and the UNIQUE(entry_id) marker in ledger_applications
      turns a lost race into an IntegrityError that is reported as
      ``already_applied`` after the savepoint rolls back.  Any other
      constraint failure propagates.
    - Exact arithmetic: every amount is a Decimal (parse_quantity).
    - No overselling: a movement that would leave an item below zero
      aborts the whole apply with InsufficientStockError.

Tolerated input (link skipped, others still applied):
    - item code or amount missing from the payload
    - amount not numeric
    - item code not found

Failure modes:
    - EntryNotFoundError for an unknown entry id.
    - InsufficientStockError when stock moved since submission.
    - IntegrityError for a constraint failure other than a lost race.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entry_kernel.db.types import parse_quantity
from entry_kernel.domain.clock import Clock, SystemClock
from entry_kernel.domain.dtos import LedgerApplyReason, LedgerApplyResult
from entry_kernel.domain.ledger import compute_movement
from entry_kernel.domain.schema import FieldSchemaProvider
from entry_kernel.exceptions import EntryNotFoundError, InsufficientStockError
from entry_kernel.logging_config import get_logger
from entry_kernel.models.entry import EntryModel
from entry_kernel.models.inventory import LedgerApplicationModel, LedgerTransactionModel
from entry_kernel.services.inventory_service import InventoryService

logger = get_logger("services.ledger_applier")


class LedgerApplier:
    """Applies inventory effects for an entry, idempotently."""

    def __init__(
        self,
        session: Session,
        schemas: FieldSchemaProvider,
        clock: Clock | None = None,
    ):
        self._session = session
        self._schemas = schemas
        self._clock = clock or SystemClock()
        self._inventory = InventoryService(session)

    def apply(self, entry_id: UUID, actor_id: UUID) -> LedgerApplyResult:
        """
        Apply the entry's ledger effects.

        Returns:
            LedgerApplyResult with ``applied=True`` when at least one link
            was applied; otherwise ``applied=False`` and the reason.
        """
        try:
            with self._session.begin_nested():
                return self._apply(entry_id, actor_id)
        except IntegrityError:
            if not self._marker_exists(entry_id):
                raise
            logger.warning(
                "ledger_apply_conflict",
                extra={"entry_id": str(entry_id)},
                exc_info=True,
            )
            return LedgerApplyResult.unchanged(LedgerApplyReason.ALREADY_APPLIED)

    def _marker_exists(self, entry_id: UUID) -> bool:
        return (
            self._session.execute(
                select(LedgerApplicationModel.id)
                .where(LedgerApplicationModel.entry_id == entry_id)
                .limit(1)
            ).first()
            is not None
        )

    def _apply(self, entry_id: UUID, actor_id: UUID) -> LedgerApplyResult:
        entry = self._session.execute(
            select(EntryModel).where(EntryModel.id == entry_id).with_for_update()
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))

        if entry.ledger_applied:
            logger.info("ledger_already_applied", extra={"entry_id": str(entry_id)})
            return LedgerApplyResult.unchanged(LedgerApplyReason.ALREADY_APPLIED)

        links = self._schemas.get(entry.document_type_code).inventory_links
        if not links:
            return LedgerApplyResult.unchanged(LedgerApplyReason.NO_MAPPINGS)

        payload = entry.payload or {}
        now = self._clock.now()
        applied = 0
        skipped: list[str] = []

        for link in links:
            raw_code = payload.get(link.item_field)
            code = str(raw_code).strip() if raw_code is not None else ""
            amount = parse_quantity(payload.get(link.amount_key))
            if not code or amount is None:
                logger.info(
                    "ledger_link_skipped",
                    extra={
                        "entry_id": str(entry_id),
                        "field": link.item_field,
                        "reason": "missing_code_or_amount",
                    },
                )
                skipped.append(link.item_field)
                continue

            item = self._inventory.find_by_code(code, for_update=True)
            if item is None:
                logger.info(
                    "ledger_link_skipped",
                    extra={
                        "entry_id": str(entry_id),
                        "field": link.item_field,
                        "item_code": code,
                        "reason": "item_not_found",
                    },
                )
                skipped.append(link.item_field)
                continue

            movement = compute_movement(link.operation, amount, item.current_quantity)
            if movement.would_go_negative:
                raise InsufficientStockError(
                    link.item_field, item.code, -movement.delta, item.current_quantity
                )

            self._session.add(
                LedgerTransactionModel(
                    item_id=item.id,
                    document_type_id=entry.document_type_id,
                    entry_id=entry.id,
                    field_key=link.item_field,
                    operation=link.operation.value,
                    requested_amount=movement.requested,
                    delta=movement.delta,
                    quantity_before=movement.quantity_before,
                    quantity_after=movement.quantity_after,
                    applied_by_id=actor_id,
                    created_at=now,
                )
            )
            item.current_quantity = movement.quantity_after
            item.updated_by_id = actor_id
            applied += 1

        if applied == 0:
            return LedgerApplyResult.unchanged(
                LedgerApplyReason.NOTHING_APPLIED, tuple(skipped)
            )

        entry.ledger_applied = True
        self._session.add(
            LedgerApplicationModel(
                entry_id=entry.id,
                transaction_count=applied,
                applied_by_id=actor_id,
                applied_at=now,
            )
        )
        self._session.flush()

        logger.info(
            "ledger_applied",
            extra={
                "entry_id": str(entry_id),
                "document_type": entry.document_type_code,
                "applied_count": applied,
                "skipped_fields": skipped,
            },
        )
        return LedgerApplyResult.success(applied, tuple(skipped))
