"""
TransitionGuard -- may this actor mutate or delete this entry?

Responsibility:
    Centralizes the rule "an entry may be edited or deleted only by a
    submitter of its document type, and only while it is draft or
    submitted".  Checks run in a fixed order so callers get a stable error:

        existence  -> EntryNotFoundError
        permission -> ForbiddenError      (can_submit on the document type)
        lock state -> EntryLockedError    (confirmed / finalConfirmed)

Architecture position:
    Kernel > Services.  Read-only: performs no writes.
"""

from uuid import UUID

from entry_kernel.domain.actor import Actor
from entry_kernel.domain.permissions import Capability
from entry_kernel.domain.workflow import MUTABLE_STATUSES, EntryStatus
from entry_kernel.exceptions import EntryLockedError, ForbiddenError, UnauthorizedError
from entry_kernel.logging_config import get_logger
from entry_kernel.models.entry import EntryModel
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.permission_service import PermissionMatrix

logger = get_logger("services.transition_guard")


class TransitionGuard:

    def __init__(self, permissions: PermissionMatrix, entries: EntryStore):
        self._permissions = permissions
        self._entries = entries

    @staticmethod
    def require_actor(actor: Actor | None) -> Actor:
        if actor is None:
            raise UnauthorizedError()
        return actor

    def require_capability(
        self,
        actor: Actor,
        document_type_id: UUID,
        document_type_code: str,
        capability: Capability,
    ) -> None:
        if not self._permissions.can_act(actor.roles, document_type_id, capability):
            logger.warning(
                "capability_denied",
                extra={
                    "actor_id": str(actor.actor_id),
                    "document_type": document_type_code,
                    "capability": capability.value,
                },
            )
            raise ForbiddenError(
                str(actor.actor_id), capability.value, document_type_code
            )

    def can_mutate(self, entry: EntryModel, actor: Actor) -> bool:
        return EntryStatus(entry.status) in MUTABLE_STATUSES and self._permissions.can_act(
            actor.roles, entry.document_type_id, Capability.SUBMIT
        )

    def can_delete(self, entry: EntryModel, actor: Actor) -> bool:
        return self.can_mutate(entry, actor)

    def require_mutable(self, entry_id: UUID, actor: Actor | None) -> EntryModel:
        """Load the entry for update and enforce the edit/delete rule."""
        actor = self.require_actor(actor)
        entry = self._entries.get_for_update(entry_id)
        self.require_capability(
            actor, entry.document_type_id, entry.document_type_code, Capability.SUBMIT
        )
        status = EntryStatus(entry.status)
        if status not in MUTABLE_STATUSES:
            raise EntryLockedError(str(entry.id), status.value)
        return entry
