"""Tests for permission flag normalization (pure domain)."""

import pytest

from entry_kernel.domain.permissions import (
    Capability,
    PermissionFlags,
    report_code_for,
)


class TestNormalization:

    def test_final_wins_over_confirm(self):
        flags = PermissionFlags(can_confirm=True, can_final_confirm=True).normalized()
        assert flags.can_final_confirm
        assert not flags.can_confirm

    @pytest.mark.parametrize(
        "flags",
        [
            PermissionFlags(can_submit=True),
            PermissionFlags(can_confirm=True),
            PermissionFlags(can_final_confirm=True),
        ],
    )
    def test_any_action_implies_read(self, flags):
        assert flags.normalized().can_read

    def test_empty_flags_stay_empty(self):
        assert PermissionFlags().normalized() == PermissionFlags()

    def test_normalization_is_idempotent(self):
        flags = PermissionFlags(can_confirm=True, can_final_confirm=True, can_submit=True)
        assert flags.normalized().normalized() == flags.normalized()


class TestFlagHelpers:

    def test_has(self):
        flags = PermissionFlags(can_read=True, can_submit=True)
        assert flags.has(Capability.SUBMIT)
        assert not flags.has(Capability.CONFIRM)

    def test_without_final_keeps_other_bits(self):
        flags = PermissionFlags(can_read=True, can_submit=True, can_final_confirm=True)
        assert flags.without_final() == PermissionFlags(can_read=True, can_submit=True)

    def test_union(self):
        a = PermissionFlags(can_read=True)
        b = PermissionFlags(can_confirm=True)
        assert a.union(b) == PermissionFlags(can_read=True, can_confirm=True)

    def test_from_mapping_accepts_camel_case(self):
        flags = PermissionFlags.from_mapping({"canRead": 1, "can_submit": True, "canFinalConfirm": True})
        assert flags == PermissionFlags(can_read=True, can_submit=True, can_final_confirm=True)

    def test_from_mapping_parses_string_flags(self):
        flags = PermissionFlags.from_mapping(
            {"can_read": "true", "canConfirm": "Yes", "can_final_confirm": "false", "canSubmit": "0"}
        )
        assert flags == PermissionFlags(can_read=True, can_confirm=True)

    @pytest.mark.parametrize("value", ["maybe", 2, 1.5, []])
    def test_from_mapping_rejects_unknown_values(self, value):
        with pytest.raises(ValueError, match="can_final_confirm"):
            PermissionFlags.from_mapping({"can_final_confirm": value})

    def test_to_dict_roundtrip(self):
        flags = PermissionFlags(can_read=True, can_confirm=True)
        assert PermissionFlags.from_mapping(flags.to_dict()) == flags


def test_report_code():
    assert report_code_for("raw_issue") == "RPT:FORM:RAW_ISSUE"
