"""Boundary services: the workflow facade and the session-token actor resolver."""

from entry_services.actor_resolver import SessionTokenActorResolver
from entry_services.workflow_service import EntryWorkflowService

__all__ = [
    "EntryWorkflowService",
    "SessionTokenActorResolver",
]
