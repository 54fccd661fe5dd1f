"""
SessionTokenActorResolver -- session token to Actor.

The token is a JWT issued by the edge (gateway / web tier).  Its signature
is NOT verified here: the edge owns authentication, this resolver only reads
the ``sub`` claim and loads the user's roles from the role directory.
"""

from typing import Any
from uuid import UUID

import jwt
from sqlalchemy.orm import Session

from entry_kernel.domain.actor import Actor
from entry_kernel.exceptions import UnauthorizedError
from entry_kernel.logging_config import get_logger
from entry_kernel.services.actor_directory import ActorDirectory

logger = get_logger("services.actor_resolver")


class SessionTokenActorResolver:
    """ActorIdentityResolver backed by JWT session tokens."""

    def __init__(self, session: Session, subject_claim: str = "sub"):
        self._directory = ActorDirectory(session)
        self._subject_claim = subject_claim

    def resolve(self, session_artifact: Any) -> Actor:
        if not session_artifact or not isinstance(session_artifact, str):
            raise UnauthorizedError("Missing session token")

        try:
            claims = jwt.decode(
                session_artifact,
                options={"verify_signature": False},
                algorithms=["HS256", "RS256"],
            )
        except jwt.InvalidTokenError as exc:
            logger.info("session_token_undecodable")
            raise UnauthorizedError("Malformed session token") from exc

        subject = claims.get(self._subject_claim)
        if subject is None:
            raise UnauthorizedError("Session token has no subject")
        try:
            actor_id = UUID(str(subject))
        except ValueError as exc:
            raise UnauthorizedError("Session token subject is not a user id") from exc

        actor = self._directory.actor_for(actor_id)
        logger.debug(
            "actor_resolved",
            extra={"actor_id": str(actor_id), "roles": sorted(actor.roles)},
        )
        return actor
