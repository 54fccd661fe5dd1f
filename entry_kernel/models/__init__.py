"""SQLAlchemy ORM models for the entry kernel."""

from entry_kernel.models.approval_task import ApprovalTaskModel
from entry_kernel.models.document_type import DocumentTypeModel
from entry_kernel.models.entry import EntryModel
from entry_kernel.models.inventory import (
    InventoryItemModel,
    LedgerApplicationModel,
    LedgerTransactionModel,
)
from entry_kernel.models.permission import PermissionEntryModel, ReportPermissionModel
from entry_kernel.models.role_assignment import RoleAssignmentModel


def import_all_models() -> None:
    """Ensure every model is registered on Base.metadata.

    Importing this package already does so; the function exists so callers
    can make the dependency explicit.
    """


__all__ = [
    "ApprovalTaskModel",
    "DocumentTypeModel",
    "EntryModel",
    "InventoryItemModel",
    "LedgerApplicationModel",
    "LedgerTransactionModel",
    "PermissionEntryModel",
    "ReportPermissionModel",
    "RoleAssignmentModel",
    "import_all_models",
]
