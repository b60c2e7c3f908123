"""
test_core_types.py - Unit tests for core data structures and errors

Tests:
- TreeSKU validation and cost()
- Sapling per-unit price and the zero-quantity guard
- RewardSnapshot and Notification helpers
- Error types carry their diagnostic values
- Identity and amount validation helpers
"""

import pytest
from datetime import datetime

from orchard import (
    TreeSKU, Sapling, RewardSnapshot, Notification, EventType,
    OrchardError, Unauthorized, InvalidAddress, NotFound, Unavailable,
    InsufficientPayment, InsufficientFunds, PaymentFailed, ReentrantCall,
    ZeroQuantityLot, ZERO_IDENTITY, MAX_QUANTITY,
)
from orchard.core import require_amount, require_positive_quantity, is_null_identity


class TestTreeSKU:
    """Tests for TreeSKU construction."""

    def test_create(self):
        sku = TreeSKU("Oak", "SN1", 100, 5)
        assert sku.name == "Oak"
        assert sku.serial == "SN1"
        assert sku.price == 100
        assert sku.quantity == 5

    def test_cost(self):
        assert TreeSKU("Oak", "SN1", 100, 5).cost(3) == 300

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="name cannot be empty"):
            TreeSKU("  ", "SN1", 100, 5)

    def test_empty_serial_rejected(self):
        with pytest.raises(ValueError, match="serial cannot be empty"):
            TreeSKU("Oak", "", 100, 5)

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError, match="price cannot be negative"):
            TreeSKU("Oak", "SN1", -1, 5)

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError, match="quantity cannot be negative"):
            TreeSKU("Oak", "SN1", 100, -5)

    def test_float_price_rejected(self):
        with pytest.raises(ValueError, match="price must be int"):
            TreeSKU("Oak", "SN1", 1.5, 5)

    def test_zero_price_allowed(self):
        assert TreeSKU("Oak", "SN1", 0, 5).cost(5) == 0

    def test_is_immutable(self):
        sku = TreeSKU("Oak", "SN1", 100, 5)
        with pytest.raises(AttributeError):
            sku.quantity = 10


class TestSapling:
    """Tests for Sapling lots."""

    def test_unit_price(self):
        lot = Sapling(0, "Oak", 300, 3, datetime(2025, 1, 1))
        assert lot.unit_price() == 100

    def test_new_lot_is_live(self):
        assert Sapling(0, "Oak", 100, 1, datetime(2025, 1, 1)).live

    def test_zero_quantity_unit_price_raises(self):
        """Pricing an empty lot raises instead of dividing by zero."""
        lot = Sapling(7, "Oak", 0, 0, datetime(2025, 1, 1), live=False)
        with pytest.raises(ZeroQuantityLot) as exc:
            lot.unit_price()
        assert exc.value.lot_id == 7

    def test_snapshot(self):
        t = datetime(2025, 1, 1)
        snap = Sapling(3, "Oak", 200, 2, t).snapshot()
        assert snap == {
            'lot_id': 3, 'sku_name': "Oak", 'price': 200,
            'quantity': 2, 'planted_at': t, 'live': True,
        }


class TestRewardSnapshot:

    def test_as_dict(self):
        snap = RewardSnapshot(fruits=20, flowers=10, woods=4, intervals=2)
        assert snap.as_dict() == {'fruits': 20, 'flowers': 10, 'woods': 4}

    def test_equality(self):
        assert RewardSnapshot(10, 5, 2, 1) == RewardSnapshot(10, 5, 2, 1)


class TestNotification:

    def test_payload_dict(self):
        n = Notification(
            event_type=EventType.SKU_ADDED,
            timestamp=datetime(2025, 1, 1),
            sequence_number=0,
            orchard="test",
            payload=(("name", "Oak"), ("price", 100)),
        )
        assert n.payload_dict == {"name": "Oak", "price": 100}

    def test_repr_mentions_event(self):
        n = Notification(EventType.REWARD_CLAIMED, datetime(2025, 1, 1), 4, "test")
        assert "reward_claimed" in repr(n)
        assert "#4" in repr(n)


class TestErrors:
    """Every error derives from OrchardError and keeps its diagnostics."""

    @pytest.mark.parametrize("error", [
        Unauthorized("mallory", "add_tree"),
        InvalidAddress(ZERO_IDENTITY),
        NotFound("tree 'Oak'"),
        Unavailable("Oak", 3, 1),
        InsufficientPayment(300, 200),
        InsufficientFunds(100, 50),
        PaymentFailed("alice", 100),
        ReentrantCall("plant", "return_saplings"),
        ZeroQuantityLot(1),
    ])
    def test_base_class(self, error):
        assert isinstance(error, OrchardError)

    def test_unavailable_carries_requested_and_available(self):
        err = Unavailable("Oak", 3, 1)
        assert (err.sku_name, err.requested, err.available) == ("Oak", 3, 1)
        assert "requested 3" in str(err)

    def test_insufficient_payment_carries_values(self):
        err = InsufficientPayment(300, 200)
        assert err.required == 300
        assert err.paid == 200

    def test_insufficient_funds_carries_values(self):
        err = InsufficientFunds(100, 50)
        assert err.required == 100
        assert err.available == 50


class TestValidationHelpers:

    @pytest.mark.parametrize("identity", [None, "", "   ", ZERO_IDENTITY])
    def test_null_identities(self, identity):
        assert is_null_identity(identity)

    def test_regular_identity(self):
        assert not is_null_identity("bob")

    @pytest.mark.parametrize("value", [0, -1])
    def test_quantity_must_be_positive(self, value):
        with pytest.raises(ValueError, match="positive"):
            require_positive_quantity(value)

    def test_bool_is_not_a_quantity(self):
        with pytest.raises(ValueError, match="must be int"):
            require_positive_quantity(True)

    def test_quantity_overflow_detected(self):
        with pytest.raises(OverflowError):
            require_positive_quantity(MAX_QUANTITY + 1)

    def test_amount_zero_allowed(self):
        assert require_amount("payment", 0) == 0
