"""
Simulated payment tests.

Verifies:
- Five methods, each with display metadata
- COD is unpaid with a handling fee and no reference
- Every other method is paid with a prefixed reference
- Unknown methods and unusable amounts are rejected
"""

import re
from decimal import Decimal

import pytest

from tarpprint.services import payment_service
from tarpprint.services.payment_service import PaymentError, simulate_payment


class TestPaymentMethods:

    def test_method_list(self):
        methods = payment_service.list_payment_methods()
        assert [m["id"] for m in methods] == ["gcash", "paymaya", "bank_transfer", "credit_card", "cod"]
        assert all(m["name"] and m["processing_time"] for m in methods)

    @pytest.mark.parametrize("method", ["", None, "GCASH", "bitcoin", 7])
    def test_validate_rejects_unknown(self, method):
        with pytest.raises(PaymentError):
            payment_service.validate_method(method)


class TestSimulatePayment:

    def test_cod(self, app):
        outcome = simulate_payment("cod", Decimal("1620.00"))
        assert outcome.is_paid is False
        assert outcome.reference is None
        assert outcome.amount_due == Decimal("1670.00")

    @pytest.mark.parametrize(
        "method,prefix",
        [("gcash", "GC"), ("paymaya", "PM"), ("bank_transfer", "BT"), ("credit_card", "CC")],
    )
    def test_prepaid(self, app, method, prefix):
        outcome = simulate_payment(method, "540")
        assert outcome.is_paid is True
        assert outcome.amount_due == Decimal("540.00")
        assert re.fullmatch(rf"{prefix}\d{{10}}", outcome.reference)

    def test_references_differ(self, app):
        refs = {simulate_payment("gcash", 100).reference for _ in range(5)}
        assert len(refs) > 1

    def test_supplied_reference_used(self, app):
        outcome = simulate_payment("credit_card", 100, {"reference_number": "  AUTH-99  "})
        assert outcome.reference == "AUTH-99"

    @pytest.mark.parametrize("amount", [0, -10, "free", None])
    def test_bad_amount(self, app, amount):
        with pytest.raises(PaymentError):
            simulate_payment("gcash", amount)

    def test_to_dict(self, app):
        data = simulate_payment("cod", 100).to_dict()
        assert data == {
            "method_id": "cod",
            "method_name": "Cash on Delivery",
            "is_paid": False,
            "reference": None,
            "amount_due": 150.0,
        }
