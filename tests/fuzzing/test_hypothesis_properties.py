"""
Property-based tests for the pure kernel layer.

Boundaries fuzzed here:
- Ledger arithmetic: every operation, any finite quantity
- Quantity parsing and canonical rendering
- Permission normalization
- Payload coercion against the shipped document types (never raises)
- Status transitions (never backward)
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from entry_config import get_schema_provider
from entry_kernel.db.types import canonical_quantity, parse_quantity
from entry_kernel.domain.coercion import coerce_payload
from entry_kernel.domain.ledger import compute_movement
from entry_kernel.domain.permissions import PermissionFlags
from entry_kernel.domain.schema import InventoryOperation
from entry_kernel.domain.workflow import EntryStatus, can_transition

quantities = st.decimals(
    min_value=Decimal("-1000000"),
    max_value=Decimal("1000000"),
    allow_nan=False,
    allow_infinity=False,
    places=6,
)
non_negative = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000"),
    allow_nan=False,
    allow_infinity=False,
    places=6,
)
flags = st.builds(
    PermissionFlags,
    can_read=st.booleans(),
    can_submit=st.booleans(),
    can_confirm=st.booleans(),
    can_final_confirm=st.booleans(),
)
payload_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.text(max_size=30),
    st.decimals(allow_nan=True, allow_infinity=True),
    st.lists(st.text(max_size=5), max_size=3),
    st.dictionaries(st.text(max_size=5), st.integers(), max_size=3),
)

_PROVIDER = get_schema_provider()


class TestLedgerArithmetic:

    @given(amount=quantities, current=quantities)
    def test_set_absolute_lands_on_target(self, amount, current):
        movement = compute_movement(InventoryOperation.SET_ABSOLUTE, amount, current)
        assert movement.quantity_after == amount
        assert movement.quantity_before + movement.delta == movement.quantity_after

    @given(amount=quantities, current=non_negative)
    def test_decrease_never_adds(self, amount, current):
        movement = compute_movement(InventoryOperation.DECREASE, amount, current)
        assert movement.delta <= 0
        assert movement.quantity_after == current - abs(amount)
        assert movement.would_go_negative == (abs(amount) > current)

    @given(amount=non_negative, current=non_negative)
    def test_increase_adds_amount(self, amount, current):
        movement = compute_movement(InventoryOperation.INCREASE, amount, current)
        assert movement.delta == amount
        assert not movement.would_go_negative


class TestQuantityParsing:

    @given(value=quantities)
    def test_canonical_form_parses_back(self, value):
        assert parse_quantity(canonical_quantity(value)) == value

    @given(value=quantities)
    def test_canonical_form_has_no_exponent(self, value):
        assert "E" not in canonical_quantity(value).upper()

    @given(value=st.one_of(st.booleans(), st.none(), st.lists(st.integers())))
    def test_non_numbers_rejected(self, value):
        assert parse_quantity(value) is None

    @given(value=st.integers(min_value=-(10**12), max_value=10**12))
    def test_integers_exact(self, value):
        assert parse_quantity(value) == Decimal(value)
        assert parse_quantity(str(value)) == Decimal(value)


class TestPermissionNormalization:

    @given(value=flags)
    def test_confirm_and_final_exclusive(self, value):
        normalized = value.normalized()
        assert not (normalized.can_confirm and normalized.can_final_confirm)

    @given(value=flags)
    def test_any_action_implies_read(self, value):
        normalized = value.normalized()
        if normalized.can_submit or normalized.can_confirm or normalized.can_final_confirm:
            assert normalized.can_read

    @given(value=flags)
    def test_idempotent(self, value):
        assert value.normalized().normalized() == value.normalized()

    @given(value=flags)
    def test_mapping_round_trip(self, value):
        assert PermissionFlags.from_mapping(value.to_dict()) == value


class TestPayloadCoercion:

    @settings(suppress_health_check=[HealthCheck.too_slow], max_examples=200)
    @given(
        code=st.sampled_from(sorted(_PROVIDER.codes())),
        raw=st.dictionaries(st.text(max_size=20), payload_values, max_size=8),
    )
    def test_never_raises_and_keeps_declared_keys(self, code, raw):
        schema = _PROVIDER.get(code)
        cleaned, errors = coerce_payload(schema, raw)
        assert set(cleaned) <= schema.field_keys
        for error in errors:
            assert error.field.split(".")[0].split("[")[0] in schema.field_keys

    @given(raw=st.dictionaries(st.sampled_from(["issue_date", "item", "quantity"]), payload_values))
    def test_accepted_quantities_are_positive(self, raw):
        schema = _PROVIDER.get("RAW_ISSUE")
        cleaned, errors = coerce_payload(schema, raw)
        if not errors:
            assert cleaned["quantity"] >= Decimal("0.001")


class TestStatusTransitions:

    @given(current=st.sampled_from(list(EntryStatus)), target=st.sampled_from(list(EntryStatus)))
    def test_only_forward(self, current, target):
        if can_transition(current, target):
            assert target.rank > current.rank
