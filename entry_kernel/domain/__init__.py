"""Pure domain layer: value objects, state machines, and ledger arithmetic. ZERO I/O."""

from entry_kernel.domain.actor import Actor, ActorIdentityResolver, ReferenceRecordChecker
from entry_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from entry_kernel.domain.permissions import Capability, PermissionEntry, PermissionFlags
from entry_kernel.domain.schema import (
    ApplyStage,
    DocumentTypeSchema,
    FieldDefinition,
    FieldSchemaProvider,
    FieldType,
    InventoryLink,
    InventoryOperation,
)
from entry_kernel.domain.workflow import ApprovalDecision, EntryStatus, TaskStatus

__all__ = [
    "Actor",
    "ActorIdentityResolver",
    "ReferenceRecordChecker",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Capability",
    "PermissionEntry",
    "PermissionFlags",
    "ApplyStage",
    "DocumentTypeSchema",
    "FieldDefinition",
    "FieldSchemaProvider",
    "FieldType",
    "InventoryLink",
    "InventoryOperation",
    "ApprovalDecision",
    "EntryStatus",
    "TaskStatus",
]
