"""Database-backed ReferenceRecordChecker over the ``entries`` table."""

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from entry_kernel.models.entry import EntryModel


class DatabaseReferenceChecker:
    """Resolves referenced entry ids to their document type ids."""

    def __init__(self, session: Session):
        self._session = session

    def document_types_of(self, entry_ids: Iterable[UUID]) -> dict[UUID, UUID]:
        ids = sorted({UUID(str(i)) for i in entry_ids}, key=str)
        if not ids:
            return {}
        rows = self._session.execute(
            select(EntryModel.id, EntryModel.document_type_id).where(
                EntryModel.id.in_(ids)
            )
        ).all()
        return {row.id: row.document_type_id for row in rows}
