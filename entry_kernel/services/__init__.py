"""Kernel services: flush-only persistence and workflow logic."""

from entry_kernel.services.actor_directory import ActorDirectory
from entry_kernel.services.confirmation_tracker import ConfirmationTracker
from entry_kernel.services.document_type_service import DocumentTypeService
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.inventory_service import InventoryService
from entry_kernel.services.ledger_applier import LedgerApplier
from entry_kernel.services.permission_service import PermissionMatrix
from entry_kernel.services.reference_checker import DatabaseReferenceChecker
from entry_kernel.services.submission_validator import SubmissionValidator
from entry_kernel.services.transition_guard import TransitionGuard

__all__ = [
    "ActorDirectory",
    "ConfirmationTracker",
    "DatabaseReferenceChecker",
    "DocumentTypeService",
    "EntryStore",
    "InventoryService",
    "LedgerApplier",
    "PermissionMatrix",
    "SubmissionValidator",
    "TransitionGuard",
]
