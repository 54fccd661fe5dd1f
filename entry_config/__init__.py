"""
entry_config -- single public entrypoint for document-type configuration.

Responsibility:
    ``get_schema_provider()`` is the only way runtime code obtains
    document-type schemas.  YAML loading and assembly are internal.

Architecture position:
    Configuration.  Sits above ``entry_kernel`` and below
    ``entry_services``.  The kernel never imports from this package; it
    depends only on the ``FieldSchemaProvider`` protocol.

Audit relevance:
    Every successful call emits an ``ENTRY_CONFIG_TRACE`` log record with
    the set id, version, checksum, and document-type count, tying entries
    back to the configuration that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from entry_config.assembler import AssemblyError, DocumentTypeSet, assemble_from_directory
from entry_config.provider import ConfiguredSchemaProvider
from entry_config.settings import EngineSettings

_logger = logging.getLogger("entry_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_schema_provider(
    set_name: str = "manufacturing",
    config_dir: Path | None = None,
) -> ConfiguredSchemaProvider:
    """The ONLY public configuration entrypoint.

    Args:
        set_name: Name of the configuration set directory.
        config_dir: Override path to the sets directory.
            Defaults to entry_config/sets/.

    Raises:
        AssemblyError: If the set cannot be found or assembled.
        DocumentTypeConfigError: If a document type is malformed.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    doc_set = assemble_from_directory(sets_dir / set_name)

    _logger.info(
        "ENTRY_CONFIG_TRACE",
        extra={
            "trace_type": "ENTRY_CONFIG_TRACE",
            "config_set_id": doc_set.set_id,
            "config_set_version": doc_set.version,
            "checksum": doc_set.checksum,
            "document_type_count": len(doc_set.document_types),
        },
    )
    return ConfiguredSchemaProvider(doc_set.document_types, checksum=doc_set.checksum)


__all__ = [
    "AssemblyError",
    "ConfiguredSchemaProvider",
    "DocumentTypeSet",
    "EngineSettings",
    "get_schema_provider",
]
