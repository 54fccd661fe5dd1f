"""
ActorDirectory -- user to role assignments.

Resolves the roles an identified user holds.  Authentication happens
elsewhere; this service only answers "which roles does user X have?".
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, select

from entry_kernel.domain.actor import Actor
from entry_kernel.logging_config import get_logger
from entry_kernel.models.role_assignment import RoleAssignmentModel
from entry_kernel.services.base import BaseService

logger = get_logger("services.actor_directory")


class ActorDirectory(BaseService[RoleAssignmentModel]):

    def roles_for(self, user_id: UUID) -> frozenset[str]:
        return frozenset(
            self.session.execute(
                select(RoleAssignmentModel.role).where(
                    RoleAssignmentModel.user_id == user_id
                )
            ).scalars()
        )

    def actor_for(self, user_id: UUID) -> Actor:
        return Actor(actor_id=user_id, roles=self.roles_for(user_id))

    def assign_role(self, user_id: UUID, role: str) -> None:
        if role in self.roles_for(user_id):
            return
        self.session.add(RoleAssignmentModel(user_id=user_id, role=role))
        self.session.flush()
        logger.info("role_assigned", extra={"user_id": str(user_id), "role": role})

    def assign_roles(self, user_id: UUID, roles: Iterable[str]) -> Actor:
        for role in roles:
            self.assign_role(user_id, role)
        return self.actor_for(user_id)

    def revoke_role(self, user_id: UUID, role: str) -> None:
        self.session.execute(
            delete(RoleAssignmentModel).where(
                RoleAssignmentModel.user_id == user_id,
                RoleAssignmentModel.role == role,
            )
        )
        logger.info("role_revoked", extra={"user_id": str(user_id), "role": role})
