"""
Actor and collaborator interfaces (``entry_kernel.domain.actor``).

The kernel never authenticates anyone.  It receives an ``Actor`` produced
by an injected ``ActorIdentityResolver`` and checks capabilities against
the actor's roles.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    """An identified caller and the roles it holds."""

    actor_id: UUID
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        return role in self.roles


class ActorIdentityResolver(Protocol):
    """Resolves a session artifact (token, cookie value, ...) to an Actor."""

    def resolve(self, session_artifact: Any) -> Actor:
        """Return the actor or raise UnauthorizedError."""
        ...


class ReferenceRecordChecker(Protocol):
    """Looks up existing records for reference fields."""

    def document_types_of(self, entry_ids: Iterable[UUID]) -> dict[UUID, UUID]:
        """Map each existing entry id to its document type id.

        Ids that do not exist are absent from the result.
        """
        ...
