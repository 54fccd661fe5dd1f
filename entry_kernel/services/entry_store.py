"""
EntryStore -- persistence and lifecycle of entries.

Responsibility:
    Owns entry rows: creation, lookup (optionally row-locked), payload
    replacement, deletion, and monotonic status advancement.  Permission
    and lock checks live in TransitionGuard; the store only refuses moves
    the state machine forbids.

Invariants enforced:
    - Status never moves backward (ENTRY_TRANSITIONS).  Advancing to the
      current status is a no-op.
    - first_confirmed_at / final_confirmed_at are stamped once.

Failure modes:
    - EntryNotFoundError for unknown ids.
    - InvalidStatusTransitionError for backward or undefined moves.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select

from entry_kernel.domain.clock import Clock, SystemClock
from entry_kernel.domain.workflow import EntryStatus, can_transition
from entry_kernel.exceptions import EntryNotFoundError, InvalidStatusTransitionError
from entry_kernel.logging_config import get_logger
from entry_kernel.models.document_type import DocumentTypeModel
from entry_kernel.models.entry import EntryModel
from entry_kernel.services.base import BaseService

logger = get_logger("services.entry_store")


class EntryStore(BaseService[EntryModel]):

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def create(
        self,
        document_type: DocumentTypeModel,
        payload: dict[str, Any],
        actor_id: UUID,
        status: EntryStatus = EntryStatus.SUBMITTED,
    ) -> EntryModel:
        model = EntryModel(
            document_type_id=document_type.id,
            document_type_code=document_type.code,
            payload=payload,
            status=status.value,
            schema_version=document_type.version,
            ledger_applied=False,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()
        logger.info(
            "entry_created",
            extra={
                "entry_id": str(model.id),
                "document_type": document_type.code,
                "status": status.value,
            },
        )
        return model

    def find(self, entry_id: UUID, for_update: bool = False) -> EntryModel | None:
        stmt = select(EntryModel).where(EntryModel.id == entry_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, entry_id: UUID) -> EntryModel:
        model = self.find(entry_id)
        if model is None:
            raise EntryNotFoundError(str(entry_id))
        return model

    def get_for_update(self, entry_id: UUID) -> EntryModel:
        model = self.find(entry_id, for_update=True)
        if model is None:
            raise EntryNotFoundError(str(entry_id))
        return model

    def replace_payload(
        self, entry: EntryModel, payload: dict[str, Any], actor_id: UUID
    ) -> EntryModel:
        entry.payload = dict(payload)
        entry.updated_by_id = actor_id
        self.session.flush()
        logger.info("entry_payload_replaced", extra={"entry_id": str(entry.id)})
        return entry

    def delete(self, entry: EntryModel) -> None:
        entry_id = str(entry.id)
        self.session.delete(entry)
        self.session.flush()
        logger.info("entry_deleted", extra={"entry_id": entry_id})

    def advance_status(
        self, entry: EntryModel, target: EntryStatus, actor_id: UUID | None = None
    ) -> bool:
        """
        Move ``entry`` forward to ``target``.

        Returns True if the status changed, False if it was already there.
        """
        current = EntryStatus(entry.status)
        if current == target:
            return False
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(str(entry.id), current.value, target.value)

        entry.status = target.value
        if actor_id is not None:
            entry.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "entry_status_advanced",
            extra={
                "entry_id": str(entry.id),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return True

    def mark_confirmed(self, entry: EntryModel, actor_id: UUID) -> None:
        """Record a regular confirmation; no-op on status if already past it."""
        if EntryStatus(entry.status) == EntryStatus.SUBMITTED:
            self.advance_status(entry, EntryStatus.CONFIRMED, actor_id)
        if entry.first_confirmed_at is None:
            entry.first_confirmed_at = self._clock.now()
            self.session.flush()

    def mark_final_confirmed(self, entry: EntryModel, actor_id: UUID) -> None:
        self.advance_status(entry, EntryStatus.FINAL_CONFIRMED, actor_id)
        entry.final_confirmed_at = self._clock.now()
        entry.final_confirmed_by_id = actor_id
        if entry.first_confirmed_at is None:
            entry.first_confirmed_at = entry.final_confirmed_at
        self.session.flush()
