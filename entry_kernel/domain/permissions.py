"""
Permission domain types (``entry_kernel.domain.permissions``).

Pure value objects for the role x document-type capability matrix.

Normalization rules (applied to every write):
    * can_final_confirm wins over can_confirm (the two are exclusive).
    * Any of submit / confirm / final_confirm implies can_read.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping

_TRUE_STRINGS = frozenset({"true", "on", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "off", "no", "0", ""})


class Capability(str, Enum):
    """Capabilities a role may hold on a document type."""

    READ = "can_read"
    SUBMIT = "can_submit"
    CONFIRM = "can_confirm"
    FINAL_CONFIRM = "can_final_confirm"


@dataclass(frozen=True)
class PermissionFlags:
    """The four capability bits for one (role, document type) cell."""

    can_read: bool = False
    can_submit: bool = False
    can_confirm: bool = False
    can_final_confirm: bool = False

    def has(self, capability: Capability) -> bool:
        return bool(getattr(self, capability.value))

    def normalized(self) -> "PermissionFlags":
        can_final = bool(self.can_final_confirm)
        can_confirm = bool(self.can_confirm) and not can_final
        can_submit = bool(self.can_submit)
        can_read = bool(self.can_read) or can_submit or can_confirm or can_final
        return PermissionFlags(
            can_read=can_read,
            can_submit=can_submit,
            can_confirm=can_confirm,
            can_final_confirm=can_final,
        )

    def without_final(self) -> "PermissionFlags":
        return replace(self, can_final_confirm=False)

    def union(self, other: "PermissionFlags") -> "PermissionFlags":
        return PermissionFlags(
            can_read=self.can_read or other.can_read,
            can_submit=self.can_submit or other.can_submit,
            can_confirm=self.can_confirm or other.can_confirm,
            can_final_confirm=self.can_final_confirm or other.can_final_confirm,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PermissionFlags":
        """
        Build from a mapping; accepts snake_case and camelCase keys.

        Values may be booleans, 0/1, or the strings true/false (also
        yes/no, on/off).  Anything else raises ValueError.
        """

        def flag(snake: str, camel: str) -> bool:
            return _parse_flag(snake, data.get(snake, data.get(camel)))

        return cls(
            can_read=flag("can_read", "canRead"),
            can_submit=flag("can_submit", "canSubmit"),
            can_confirm=flag("can_confirm", "canConfirm"),
            can_final_confirm=flag("can_final_confirm", "canFinalConfirm"),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "can_read": self.can_read,
            "can_submit": self.can_submit,
            "can_confirm": self.can_confirm,
            "can_final_confirm": self.can_final_confirm,
        }


def _parse_flag(key: str, value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid value for {key}: {value!r}")


@dataclass(frozen=True)
class PermissionEntry:
    """One requested matrix cell: a role and its flags."""

    role: str
    flags: PermissionFlags


def report_code_for(document_type_code: str) -> str:
    """Report permission code mirrored from a document type's read bit."""
    return f"RPT:FORM:{document_type_code.upper()}"
