"""
Tests for document-type configuration: YAML parsing, set assembly, the
public ``get_schema_provider`` entrypoint, and engine settings.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from entry_config import (
    AssemblyError,
    ConfiguredSchemaProvider,
    EngineSettings,
    get_schema_provider,
)
from entry_config.assembler import assemble_from_directory
from entry_config.loader import compute_checksum, parse_document_type, parse_inventory_link
from entry_kernel.domain.schema import ApplyStage, FieldType, InventoryOperation
from entry_kernel.exceptions import DocumentTypeConfigError, DocumentTypeNotFoundError


def _doc_type(code="TEST_DOC", fields=None, **extra) -> dict:
    data = {"code": code, "title": "Test", "fields": fields or [{"key": "note", "type": "text"}]}
    data.update(extra)
    return data


def _write_set(root: Path, name: str, *doc_types: dict, root_data: dict | None = None) -> Path:
    set_dir = root / name
    (set_dir / "document_types").mkdir(parents=True)
    if root_data is not False:
        (set_dir / "root.yaml").write_text(
            yaml.safe_dump(root_data or {"set_id": name, "version": 3})
        )
    for i, doc in enumerate(doc_types):
        (set_dir / "document_types" / f"{i:02d}.yaml").write_text(yaml.safe_dump(doc))
    return set_dir


ITEM_AND_QTY = [
    {"key": "item", "type": "inventory_item", "inventory": {"amount_key": "qty", "operation": "decrease"}},
    {"key": "qty", "type": "number"},
]


class TestManufacturingSet:
    """The shipped configuration set loads and normalizes legacy spellings."""

    def test_all_document_types_present(self):
        provider = get_schema_provider()
        assert set(provider.codes()) == {
            "RAW_ISSUE",
            "GOODS_RECEIPT",
            "STOCK_COUNT",
            "PRODUCTION_REPORT",
            "QC_INSPECTION",
        }

    def test_legacy_aliases_normalized(self):
        receipt = get_schema_provider().get("GOODS_RECEIPT")
        item = receipt.get_field("item")

        assert item.field_type is FieldType.INVENTORY_ITEM
        assert item.inventory.amount_key == "quantity"
        assert item.inventory.operation is InventoryOperation.INCREASE
        assert receipt.apply_stage is ApplyStage.ON_ANY_CONFIRM
        assert receipt.get_field("supplier").min_length == 2

    def test_stock_count_sets_absolute(self):
        link = get_schema_provider().get("STOCK_COUNT").inventory_links[0]
        assert link.operation is InventoryOperation.SET_ABSOLUTE
        assert link.apply_stage is ApplyStage.ON_FINAL

    def test_production_report_has_two_links(self):
        schema = get_schema_provider().get("PRODUCTION_REPORT")
        ops = [(link.item_field, link.operation) for link in schema.inventory_links]
        assert ops == [
            ("material_item", InventoryOperation.DECREASE),
            ("output_item", InventoryOperation.INCREASE),
        ]
        assert schema.get_field("output_quantity").decimals is False

    def test_subform_fields_parsed(self):
        checks = get_schema_provider().get("QC_INSPECTION").get_field("checks")
        assert checks.field_type is FieldType.SUBFORM
        assert [f.key for f in checks.subform_fields] == ["check", "passed"]
        assert checks.max_items == 20

    def test_unknown_code(self):
        with pytest.raises(DocumentTypeNotFoundError):
            get_schema_provider().get("NOPE")

    def test_trace_logged(self, captured_logs):
        provider = get_schema_provider()

        trace = next(r for r in captured_logs() if r["message"] == "ENTRY_CONFIG_TRACE")
        assert trace["config_set_id"] == "manufacturing"
        assert trace["checksum"] == provider.checksum
        assert trace["document_type_count"] == len(provider)


class TestParseDocumentType:

    def test_minimal(self):
        schema = parse_document_type(_doc_type())
        assert schema.code == "TEST_DOC"
        assert schema.is_active
        assert schema.inventory_links == ()

    def test_bounds_parsed_as_decimal(self):
        schema = parse_document_type(_doc_type(fields=[{"key": "n", "type": "number", "min": 0.5, "max": 10}]))
        field = schema.get_field("n")
        assert field.minimum == Decimal("0.5")
        assert field.maximum == Decimal("10")

    def test_link_defaults(self):
        link = parse_inventory_link("X", "item", {"amount_key": "qty"})
        assert link.operation is InventoryOperation.INCREASE
        assert link.apply_stage is ApplyStage.ON_FINAL

    @pytest.mark.parametrize(
        "data, message",
        [
            ({"title": "no code"}, "no code"),
            (_doc_type(fields=[{"key": "a", "type": "text"}, {"key": "a", "type": "text"}]), "duplicate"),
            (_doc_type(fields=[{"key": "a", "type": "colour"}]), "unknown field type"),
            (_doc_type(fields=[{"type": "text"}]), "missing"),
            (_doc_type(fields=[{"key": "a", "type": "text", "regex": "[unclosed"}]), "invalid regex"),
            (_doc_type(fields=[{"key": "a", "type": "select"}]), "no options"),
            (_doc_type(fields=[{"key": "a", "type": "number", "min": "lots"}]), "must be a number"),
            (
                _doc_type(fields=[{"key": "a", "type": "text", "inventory": {"amount_key": "a"}}]),
                "not an inventory_item",
            ),
            (
                _doc_type(fields=[{"key": "item", "type": "inventory_item", "inventory": {}}]),
                "missing amount_key",
            ),
            (
                _doc_type(fields=[{"key": "item", "type": "inventory_item", "inventory": {"amount_key": "qty"}}]),
                "unknown field qty",
            ),
            (
                _doc_type(
                    fields=[
                        {"key": "item", "type": "inventory_item", "inventory": {"amount_key": "qty"}},
                        {"key": "qty", "type": "text"},
                    ]
                ),
                "must be a number field",
            ),
            (
                _doc_type(
                    fields=[
                        {"key": "item", "type": "inventory_item", "inventory": {"amount_key": "qty", "op": "double"}},
                        {"key": "qty", "type": "number"},
                    ]
                ),
                "unknown operation",
            ),
            (
                _doc_type(
                    fields=[
                        {"key": "item", "type": "inventory_item", "inventory": {"amount_key": "qty", "applyOn": "never"}},
                        {"key": "qty", "type": "number"},
                    ]
                ),
                "unknown apply stage",
            ),
        ],
    )
    def test_structural_errors(self, data, message):
        with pytest.raises(DocumentTypeConfigError, match=message):
            parse_document_type(data)


class TestAssembly:

    def test_set_from_directory(self, tmp_path):
        set_dir = _write_set(tmp_path, "plant", _doc_type("A"), _doc_type("B", fields=ITEM_AND_QTY))
        doc_set = assemble_from_directory(set_dir)

        assert doc_set.set_id == "plant"
        assert doc_set.version == 3
        assert [s.code for s in doc_set.document_types] == ["A", "B"]

    def test_list_file_form(self, tmp_path):
        set_dir = _write_set(tmp_path, "plant", {"document_types": [_doc_type("A"), _doc_type("B")]})
        assert len(assemble_from_directory(set_dir).document_types) == 2

    def test_duplicate_codes(self, tmp_path):
        set_dir = _write_set(tmp_path, "plant", _doc_type("A"), _doc_type("A"))
        with pytest.raises(AssemblyError, match="Duplicate"):
            assemble_from_directory(set_dir)

    def test_missing_root(self, tmp_path):
        set_dir = _write_set(tmp_path, "plant", _doc_type("A"), root_data=False)
        with pytest.raises(AssemblyError, match="root.yaml"):
            assemble_from_directory(set_dir)

    def test_missing_set(self, tmp_path):
        with pytest.raises(AssemblyError) as exc_info:
            get_schema_provider("absent", config_dir=tmp_path)
        assert exc_info.value.code == "ASSEMBLY_FAILED"

    def test_checksum_deterministic(self, tmp_path):
        first = assemble_from_directory(_write_set(tmp_path, "one", _doc_type("A")))
        second = assemble_from_directory(
            _write_set(tmp_path, "two", _doc_type("A"), root_data={"set_id": "one", "version": 3})
        )
        changed = assemble_from_directory(_write_set(tmp_path, "three", _doc_type("A", title="Other")))

        assert first.checksum == second.checksum
        assert first.checksum != changed.checksum

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_custom_config_dir(self, tmp_path):
        _write_set(tmp_path, "plant", _doc_type("ONLY"))
        provider = get_schema_provider("plant", config_dir=tmp_path)

        assert isinstance(provider, ConfiguredSchemaProvider)
        assert provider.codes() == ("ONLY",)
        assert "ONLY" in provider


class TestEngineSettings:

    def test_defaults(self):
        settings = EngineSettings.from_env({})
        assert settings.database_url == "sqlite:///entries.db"
        assert settings.echo is False
        assert settings.pool_size == 20
        assert settings.config_set == "manufacturing"

    def test_from_environment(self):
        settings = EngineSettings.from_env(
            {
                "DATABASE_URL": "postgresql://entry@db/entries",
                "ENTRY_SQL_ECHO": "true",
                "ENTRY_DB_POOL_SIZE": "5",
                "ENTRY_CONFIG_SET": "plant",
            }
        )
        assert settings.database_url == "postgresql://entry@db/entries"
        assert settings.echo is True
        assert settings.pool_size == 5
        assert settings.config_set == "plant"
