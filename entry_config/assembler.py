"""
entry_config.assembler -- composes a set directory into one DocumentTypeSet.

Set structure::

    sets/manufacturing/
    +-- root.yaml                 # set_id, version, description
    +-- document_types/           # one YAML per document type
        +-- raw_material_issue.yaml
        +-- ...

Invariants enforced:
    - ``root.yaml`` must exist.
    - Document type codes are unique across the set.
    - A deterministic SHA-256 checksum covers every loaded source.

Failure modes:
    - ``AssemblyError`` -- missing directory or root.yaml, duplicate codes.
    - ``DocumentTypeConfigError`` -- propagated from the loader.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from entry_config.loader import compute_checksum, load_yaml_file, parse_document_type
from entry_kernel.domain.schema import DocumentTypeSchema
from entry_kernel.exceptions import EntryKernelError


class AssemblyError(EntryKernelError):
    """Error while assembling a configuration set."""

    code: str = "ASSEMBLY_FAILED"


@dataclass(frozen=True)
class DocumentTypeSet:
    set_id: str
    version: int
    document_types: tuple[DocumentTypeSchema, ...]
    checksum: str


def assemble_from_directory(set_dir: Path) -> DocumentTypeSet:
    """Load every document type in ``set_dir``."""
    if not set_dir.is_dir():
        raise AssemblyError(f"Configuration set not found: {set_dir}")

    root_path = set_dir / "root.yaml"
    if not root_path.exists():
        raise AssemblyError(f"root.yaml not found in {set_dir}")
    root_data = load_yaml_file(root_path)

    raw_types: list[dict] = []
    types_dir = set_dir / "document_types"
    if types_dir.is_dir():
        for path in sorted(types_dir.glob("*.yaml")):
            data = load_yaml_file(path)
            raw_types.extend(data.get("document_types", [data] if "code" in data else []))

    schemas: list[DocumentTypeSchema] = []
    seen: set[str] = set()
    for raw in raw_types:
        schema = parse_document_type(raw)
        if schema.code in seen:
            raise AssemblyError(f"Duplicate document type code {schema.code} in {set_dir}")
        seen.add(schema.code)
        schemas.append(schema)

    return DocumentTypeSet(
        set_id=str(root_data.get("set_id", set_dir.name)),
        version=int(root_data.get("version", 1)),
        document_types=tuple(schemas),
        checksum=compute_checksum({"root": root_data, "document_types": raw_types}),
    )
