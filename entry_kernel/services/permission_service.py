"""
PermissionMatrix -- role x document-type capability matrix.

Responsibility:
    Answers "may any of these roles do X on this document type?" and writes
    the matrix.  Every write normalizes the flags, keeps a single final
    confirmer per document type, and mirrors the read bit into
    ``report_permissions`` in the same transaction.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - can_final_confirm excludes can_confirm; any capability implies read.
    - At most one role per document type holds can_final_confirm.  The
      service clears the bit on every other role before setting it; a
      partial unique index backs this at the store level.
    - Report read permission exists iff the role can read the type.
    - Moving the final-confirmer bit hands every pending final task on
      the type to the new final role in the same transaction.
    - No in-process caching: every check reads storage.

Failure modes:
    - DocumentTypeNotFoundError for an unknown document type code.
    - IntegrityError if two writers race to install different final
      confirmers (the second transaction fails).
"""

from typing import Iterable, Mapping
from uuid import UUID

from sqlalchemy import delete, exists, select, update
from sqlalchemy.orm import Session, aliased

from entry_kernel.domain.permissions import (
    Capability,
    PermissionEntry,
    PermissionFlags,
    report_code_for,
)
from entry_kernel.domain.workflow import TaskStatus
from entry_kernel.logging_config import get_logger
from entry_kernel.models.approval_task import ApprovalTaskModel
from entry_kernel.models.entry import EntryModel
from entry_kernel.models.permission import PermissionEntryModel, ReportPermissionModel
from entry_kernel.services.document_type_service import DocumentTypeService

logger = get_logger("services.permissions")


def _capability_column(capability: Capability):
    return getattr(PermissionEntryModel, capability.value)


class PermissionMatrix:
    """Reads and writes the permission matrix."""

    def __init__(self, session: Session):
        self._session = session
        self._document_types = DocumentTypeService(session)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def can_act(
        self,
        actor_roles: Iterable[str],
        document_type_id: UUID,
        capability: Capability,
    ) -> bool:
        """True if any of ``actor_roles`` holds ``capability`` on the type."""
        roles = list(actor_roles)
        if not roles:
            return False
        found = self._session.execute(
            select(PermissionEntryModel.id)
            .where(
                PermissionEntryModel.document_type_id == document_type_id,
                PermissionEntryModel.role.in_(roles),
                _capability_column(capability).is_(True),
            )
            .limit(1)
        ).first()
        return found is not None

    def capabilities_for(
        self, actor_roles: Iterable[str], document_type_id: UUID
    ) -> PermissionFlags:
        """Union of the flags held by ``actor_roles`` on the type."""
        roles = list(actor_roles)
        combined = PermissionFlags()
        if not roles:
            return combined
        rows = self._session.execute(
            select(PermissionEntryModel).where(
                PermissionEntryModel.document_type_id == document_type_id,
                PermissionEntryModel.role.in_(roles),
            )
        ).scalars()
        for row in rows:
            combined = combined.union(row.flags)
        return combined

    def roles_with(self, document_type_id: UUID, capability: Capability) -> list[str]:
        return list(
            self._session.execute(
                select(PermissionEntryModel.role)
                .where(
                    PermissionEntryModel.document_type_id == document_type_id,
                    _capability_column(capability).is_(True),
                )
                .order_by(PermissionEntryModel.role)
            ).scalars()
        )

    def final_confirmer(self, document_type_id: UUID) -> str | None:
        roles = self.roles_with(document_type_id, Capability.FINAL_CONFIRM)
        return roles[0] if roles else None

    def readable_document_type_ids(self, actor_roles: Iterable[str]) -> set[UUID]:
        roles = list(actor_roles)
        if not roles:
            return set()
        return set(
            self._session.execute(
                select(PermissionEntryModel.document_type_id).where(
                    PermissionEntryModel.role.in_(roles),
                    PermissionEntryModel.can_read.is_(True),
                )
            ).scalars()
        )

    def matrix(self, document_type_code: str) -> dict[str, PermissionFlags]:
        """Current matrix for one document type, keyed by role."""
        doc_type = self._document_types.get_by_code(document_type_code)
        rows = self._session.execute(
            select(PermissionEntryModel)
            .where(PermissionEntryModel.document_type_id == doc_type.id)
            .order_by(PermissionEntryModel.role)
        ).scalars()
        return {row.role: row.flags for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_permissions(
        self,
        document_type_code: str,
        entries: Iterable[PermissionEntry] | Mapping[str, PermissionFlags],
        replace: bool = False,
    ) -> dict[str, PermissionFlags]:
        """
        Write matrix cells for one document type.

        Entries are applied in order; when more than one requests final
        confirmation, the last one wins and the others keep their remaining
        bits.  With ``replace=True`` roles absent from ``entries`` lose all
        capabilities on the type.

        Returns:
            The resulting matrix for the document type.
        """
        doc_type = self._document_types.get_by_code(document_type_code)

        if isinstance(entries, Mapping):
            entries = [PermissionEntry(role, flags) for role, flags in entries.items()]

        requested: dict[str, PermissionFlags] = {}
        final_role: str | None = None
        for entry in entries:
            flags = entry.flags.normalized()
            requested[entry.role] = flags
            if flags.can_final_confirm:
                final_role = entry.role

        for role, flags in requested.items():
            if role != final_role and flags.can_final_confirm:
                requested[role] = flags.without_final()

        if final_role is not None:
            demoted = self._session.execute(
                update(PermissionEntryModel)
                .where(
                    PermissionEntryModel.document_type_id == doc_type.id,
                    PermissionEntryModel.role != final_role,
                    PermissionEntryModel.can_final_confirm.is_(True),
                )
                .values(can_final_confirm=False)
                .execution_options(synchronize_session="fetch")
            )
            if demoted.rowcount:
                logger.info(
                    "final_confirmer_demoted",
                    extra={
                        "document_type": document_type_code,
                        "new_final_role": final_role,
                        "demoted_count": demoted.rowcount,
                    },
                )
            self._reassign_pending_final_tasks(doc_type.id, document_type_code, final_role)

        existing = {
            row.role: row
            for row in self._session.execute(
                select(PermissionEntryModel).where(
                    PermissionEntryModel.document_type_id == doc_type.id
                )
            ).scalars()
        }

        for role, flags in requested.items():
            row = existing.get(role)
            if row is None:
                row = PermissionEntryModel(role=role, document_type_id=doc_type.id)
                self._session.add(row)
                existing[role] = row
            row.apply_flags(flags)

        removed: list[str] = []
        if replace:
            for role, row in list(existing.items()):
                if role not in requested:
                    self._session.delete(row)
                    removed.append(role)
                    del existing[role]

        self._session.flush()

        self._mirror_report_permissions(
            doc_type.id,
            document_type_code,
            {role: row.can_read for role, row in existing.items()},
            removed,
        )

        logger.info(
            "permission_matrix_updated",
            extra={
                "document_type": document_type_code,
                "roles": sorted(requested),
                "removed_roles": removed,
                "final_role": final_role,
            },
        )
        return {role: existing[role].flags for role in sorted(existing)}

    def _reassign_pending_final_tasks(
        self, document_type_id: UUID, document_type_code: str, final_role: str
    ) -> None:
        """Hand pending final tasks on the type to the current final confirmer."""
        other_final = aliased(ApprovalTaskModel)
        moved = self._session.execute(
            update(ApprovalTaskModel)
            .where(
                ApprovalTaskModel.is_final.is_(True),
                ApprovalTaskModel.status == TaskStatus.PENDING.value,
                ApprovalTaskModel.assigned_role != final_role,
                ApprovalTaskModel.entry_id.in_(
                    select(EntryModel.id).where(
                        EntryModel.document_type_id == document_type_id
                    )
                ),
                ~exists().where(
                    other_final.entry_id == ApprovalTaskModel.entry_id,
                    other_final.assigned_role == final_role,
                    other_final.is_final.is_(True),
                ),
            )
            .values(assigned_role=final_role)
            .execution_options(synchronize_session="fetch")
        )
        if moved.rowcount:
            logger.info(
                "final_tasks_reassigned",
                extra={
                    "document_type": document_type_code,
                    "new_final_role": final_role,
                    "task_count": moved.rowcount,
                },
            )

    def _mirror_report_permissions(
        self,
        document_type_id: UUID,
        document_type_code: str,
        readable: dict[str, bool],
        removed: list[str],
    ) -> None:
        report_code = report_code_for(document_type_code)
        current = set(
            self._session.execute(
                select(ReportPermissionModel.role).where(
                    ReportPermissionModel.report_code == report_code
                )
            ).scalars()
        )
        should_have = {role for role, can_read in readable.items() if can_read}
        revoke = (current - should_have) & (set(readable) | set(removed))

        for role in sorted(should_have - current):
            self._session.add(
                ReportPermissionModel(
                    role=role,
                    report_code=report_code,
                    document_type_id=document_type_id,
                )
            )
        if revoke:
            self._session.execute(
                delete(ReportPermissionModel)
                .where(
                    ReportPermissionModel.report_code == report_code,
                    ReportPermissionModel.role.in_(sorted(revoke)),
                )
                .execution_options(synchronize_session="fetch")
            )
        self._session.flush()
