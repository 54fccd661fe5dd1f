"""
Workflow domain types (``entry_kernel.domain.workflow``).

Responsibility
--------------
Entry and approval-task lifecycle state machines.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Entry status is monotonic: ``ENTRY_TRANSITIONS`` lists the only forward
  edges.  ``finalConfirmed`` is terminal.
* Entries in ``LOCKED_STATUSES`` reject payload mutation and deletion.
* Task status leaves ``pending`` exactly once; every other status is terminal.
"""

from enum import Enum


class EntryStatus(str, Enum):
    """Entry lifecycle states, in workflow order."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FINAL_CONFIRMED = "finalConfirmed"

    @property
    def rank(self) -> int:
        return _ENTRY_ORDER.index(self)


_ENTRY_ORDER = (
    EntryStatus.DRAFT,
    EntryStatus.SUBMITTED,
    EntryStatus.CONFIRMED,
    EntryStatus.FINAL_CONFIRMED,
)

ENTRY_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.DRAFT: frozenset({EntryStatus.SUBMITTED}),
    EntryStatus.SUBMITTED: frozenset({
        EntryStatus.CONFIRMED,
        EntryStatus.FINAL_CONFIRMED,
    }),
    EntryStatus.CONFIRMED: frozenset({EntryStatus.FINAL_CONFIRMED}),
    EntryStatus.FINAL_CONFIRMED: frozenset(),
}

MUTABLE_STATUSES: frozenset[EntryStatus] = frozenset({
    EntryStatus.DRAFT,
    EntryStatus.SUBMITTED,
})

LOCKED_STATUSES: frozenset[EntryStatus] = frozenset({
    EntryStatus.CONFIRMED,
    EntryStatus.FINAL_CONFIRMED,
})


def can_transition(current: EntryStatus, target: EntryStatus) -> bool:
    """True if ``target`` is a permitted forward move from ``current``."""
    return target in ENTRY_TRANSITIONS[current]


class TaskStatus(str, Enum):
    """Approval task states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({
        TaskStatus.APPROVED,
        TaskStatus.REJECTED,
        TaskStatus.SUPERSEDED,
    }),
    TaskStatus.APPROVED: frozenset(),
    TaskStatus.REJECTED: frozenset(),
    TaskStatus.SUPERSEDED: frozenset(),
}


class ApprovalDecision(str, Enum):
    """Decision an approver records on a task."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def task_status(self) -> TaskStatus:
        if self is ApprovalDecision.APPROVE:
            return TaskStatus.APPROVED
        return TaskStatus.REJECTED
