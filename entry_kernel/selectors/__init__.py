"""Read-only selectors returning DTOs."""

from entry_kernel.selectors.ledger_selector import LedgerSelector
from entry_kernel.selectors.task_selector import TaskSelector

__all__ = ["LedgerSelector", "TaskSelector"]
