"""
DocumentTypeService -- registration of configured document types.

Responsibility:
    Upserts ``document_types`` rows from parsed ``DocumentTypeSchema``
    objects so entries, permissions, and ledger lines have a foreign-key
    anchor, and resolves codes to rows.

Failure modes:
    - DocumentTypeNotFoundError for unknown codes, and (via get_active)
      for inactive types.
"""

from sqlalchemy import select

from entry_kernel.domain.schema import DocumentTypeSchema
from entry_kernel.exceptions import DocumentTypeNotFoundError
from entry_kernel.logging_config import get_logger
from entry_kernel.models.document_type import DocumentTypeModel
from entry_kernel.services.base import BaseService

logger = get_logger("services.document_type")


class DocumentTypeService(BaseService[DocumentTypeModel]):
    """Registers and resolves document types."""

    def register(self, schema: DocumentTypeSchema) -> DocumentTypeModel:
        """Insert or refresh the row for ``schema.code``."""
        model = self.find_by_code(schema.code)
        if model is None:
            model = DocumentTypeModel(
                code=schema.code,
                title=schema.title,
                version=schema.version,
                is_active=schema.is_active,
            )
            self.session.add(model)
            self.session.flush()
            logger.info(
                "document_type_registered",
                extra={"document_type": schema.code, "version": schema.version},
            )
            return model

        if (model.title, model.version, model.is_active) != (
            schema.title,
            schema.version,
            schema.is_active,
        ):
            model.title = schema.title
            model.version = schema.version
            model.is_active = schema.is_active
            self.session.flush()
            logger.info(
                "document_type_updated",
                extra={"document_type": schema.code, "version": schema.version},
            )
        return model

    def register_all(self, schemas) -> list[DocumentTypeModel]:
        return [self.register(schema) for schema in schemas]

    def find_by_code(self, code: str) -> DocumentTypeModel | None:
        return self.session.execute(
            select(DocumentTypeModel).where(DocumentTypeModel.code == code)
        ).scalar_one_or_none()

    def get_by_code(self, code: str) -> DocumentTypeModel:
        model = self.find_by_code(code)
        if model is None:
            raise DocumentTypeNotFoundError(code)
        return model

    def get_active(self, code: str) -> DocumentTypeModel:
        model = self.get_by_code(code)
        if not model.is_active:
            raise DocumentTypeNotFoundError(code)
        return model
