"""
ConfiguredSchemaProvider -- FieldSchemaProvider backed by parsed config.

Holds already-parsed schemas in memory.  The provider is immutable once
built; reloading configuration means building a new provider.
"""

from typing import Iterable

from entry_kernel.domain.schema import DocumentTypeSchema
from entry_kernel.exceptions import DocumentTypeNotFoundError


class ConfiguredSchemaProvider:

    def __init__(self, schemas: Iterable[DocumentTypeSchema], checksum: str | None = None):
        self._schemas: dict[str, DocumentTypeSchema] = {s.code: s for s in schemas}
        self.checksum = checksum

    def get(self, code: str) -> DocumentTypeSchema:
        schema = self._schemas.get(code)
        if schema is None:
            raise DocumentTypeNotFoundError(code)
        return schema

    def all(self) -> tuple[DocumentTypeSchema, ...]:
        return tuple(self._schemas.values())

    def codes(self) -> tuple[str, ...]:
        return tuple(self._schemas)

    def __contains__(self, code: object) -> bool:
        return code in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
