"""
Tests for TransitionGuard -- who may edit or delete an entry, and when.

Check order: not found -> forbidden -> locked.
"""

from uuid import uuid4

import pytest

from entry_kernel.domain.permissions import Capability
from entry_kernel.domain.workflow import EntryStatus
from entry_kernel.exceptions import (
    EntryLockedError,
    EntryNotFoundError,
    ForbiddenError,
    UnauthorizedError,
)
from entry_kernel.services.entry_store import EntryStore
from entry_kernel.services.permission_service import PermissionMatrix
from entry_kernel.services.transition_guard import TransitionGuard


@pytest.fixture
def store(session, clock):
    return EntryStore(session, clock)


@pytest.fixture
def guard(session, store, permission_matrix):
    return TransitionGuard(PermissionMatrix(session), store)


@pytest.fixture
def entry(store, document_types, submitter):
    return store.create(
        document_types["RAW_ISSUE"],
        {"issue_date": "2024-01-15", "item": "STEEL-SHEET", "quantity": "5"},
        submitter.actor_id,
    )


class TestMutability:

    @pytest.mark.parametrize("status", [EntryStatus.DRAFT, EntryStatus.SUBMITTED])
    def test_submitter_may_mutate_open_entries(self, store, guard, document_types, submitter, status):
        entry = store.create(document_types["RAW_ISSUE"], {}, submitter.actor_id, status=status)
        assert guard.can_mutate(entry, submitter)
        assert guard.can_delete(entry, submitter)
        assert guard.require_mutable(entry.id, submitter) is entry

    @pytest.mark.parametrize("status", [EntryStatus.CONFIRMED, EntryStatus.FINAL_CONFIRMED])
    def test_locked_entries_refused(self, store, guard, entry, submitter, status):
        store.advance_status(entry, status)
        assert not guard.can_mutate(entry, submitter)
        with pytest.raises(EntryLockedError) as exc_info:
            guard.require_mutable(entry.id, submitter)
        assert exc_info.value.status == status.value

    def test_non_submitter_forbidden(self, guard, entry, supervisor):
        assert not guard.can_mutate(entry, supervisor)
        with pytest.raises(ForbiddenError):
            guard.require_mutable(entry.id, supervisor)

    def test_forbidden_reported_before_locked(self, store, guard, entry, supervisor):
        store.advance_status(entry, EntryStatus.CONFIRMED)
        with pytest.raises(ForbiddenError):
            guard.require_mutable(entry.id, supervisor)

    def test_not_found_reported_first(self, guard, outsider):
        with pytest.raises(EntryNotFoundError):
            guard.require_mutable(uuid4(), outsider)

    def test_missing_actor(self, guard, entry):
        with pytest.raises(UnauthorizedError):
            guard.require_mutable(entry.id, None)


class TestCapability:

    def test_require_capability_denial_logged(self, guard, document_types, outsider, captured_logs):
        doc_type = document_types["RAW_ISSUE"]
        with pytest.raises(ForbiddenError) as exc_info:
            guard.require_capability(outsider, doc_type.id, doc_type.code, Capability.SUBMIT)
        assert exc_info.value.code == "FORBIDDEN"
        assert any(r["message"] == "capability_denied" for r in captured_logs())
