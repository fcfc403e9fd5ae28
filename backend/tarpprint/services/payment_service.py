# Overview: Service-layer operations for payment; simulated checkout, no gateway.

"""
Payment Simulation Service

WHY: The storefront takes orders before any real gateway is wired in.
Checkout runs through simulate_payment(), which always succeeds and only
decides whether the order starts paid.

DESIGN PRINCIPLES:
- Cash on delivery is the only unpaid method; every other method settles
  immediately with a reference number
- Nothing is charged, nothing is stored here; the order service persists
  the outcome on the order row
- Optional fixed delay (PAYMENT_SIMULATION_DELAY_SECONDS) for demos
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app, has_app_context

from tarpprint.money import quantize_money


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_GCASH = "gcash"
METHOD_PAYMAYA = "paymaya"
METHOD_BANK_TRANSFER = "bank_transfer"
METHOD_CREDIT_CARD = "credit_card"
METHOD_COD = "cod"

COD_HANDLING_FEE = Decimal("50.00")

PAYMENT_METHODS = {
    METHOD_GCASH: {
        "name": "GCash",
        "description": "Pay using your GCash wallet",
        "processing_time": "Instant",
        "fee": "No additional fees",
        "reference_prefix": "GC",
    },
    METHOD_PAYMAYA: {
        "name": "PayMaya",
        "description": "Pay using your PayMaya account",
        "processing_time": "Instant",
        "fee": "No additional fees",
        "reference_prefix": "PM",
    },
    METHOD_BANK_TRANSFER: {
        "name": "Bank Transfer",
        "description": "Direct bank transfer",
        "processing_time": "1-2 business days",
        "fee": "Bank charges may apply",
        "reference_prefix": "BT",
    },
    METHOD_CREDIT_CARD: {
        "name": "Credit/Debit Card",
        "description": "Visa, Mastercard, JCB",
        "processing_time": "Instant",
        "fee": "3.5% processing fee",
        "reference_prefix": "CC",
    },
    METHOD_COD: {
        "name": "Cash on Delivery",
        "description": "Pay when you receive your order",
        "processing_time": "Upon delivery",
        "fee": "PHP 50 handling fee",
        "reference_prefix": None,
    },
}


@dataclass(frozen=True)
class PaymentOutcome:
    method_id: str
    method_name: str
    is_paid: bool
    reference: str | None
    amount_due: Decimal

    def to_dict(self) -> dict:
        return {
            "method_id": self.method_id,
            "method_name": self.method_name,
            "is_paid": self.is_paid,
            "reference": self.reference,
            "amount_due": float(self.amount_due),
        }


def list_payment_methods() -> list[dict]:
    return [
        {
            "id": method_id,
            "name": info["name"],
            "description": info["description"],
            "processing_time": info["processing_time"],
            "fee": info["fee"],
        }
        for method_id, info in PAYMENT_METHODS.items()
    ]


def validate_method(method_id) -> str:
    if not isinstance(method_id, str) or method_id.strip() not in PAYMENT_METHODS:
        raise PaymentError(
            f"Invalid payment method: {method_id}. Must be one of {list(PAYMENT_METHODS)}"
        )
    return method_id.strip()


def generate_reference(method_id: str) -> str:
    """<PREFIX><10 digits>, e.g. GC4820193371."""
    prefix = PAYMENT_METHODS[method_id]["reference_prefix"] or "REF"
    digits = "".join(str(secrets.randbelow(10)) for _ in range(10))
    return f"{prefix}{digits}"


def simulate_payment(method_id: str, amount, details: dict | None = None) -> PaymentOutcome:
    """
    Run the simulated checkout for one order.

    Args:
        method_id: one of PAYMENT_METHODS
        amount: order total (snapshot price)
        details: optional method-specific fields; "reference_number" is
            used as the reference instead of a generated one

    Returns:
        PaymentOutcome. Never fails for a known method.

    Raises:
        PaymentError: unknown method or unusable amount
    """
    method_id = validate_method(method_id)
    try:
        total = quantize_money(amount)
    except (ArithmeticError, TypeError, ValueError):
        raise PaymentError("Payment amount must be a number")
    if total <= 0:
        raise PaymentError("Payment amount must be positive")

    delay = current_app.config.get("PAYMENT_SIMULATION_DELAY_SECONDS", 0) if has_app_context() else 0
    if delay:
        time.sleep(delay)

    info = PAYMENT_METHODS[method_id]
    if method_id == METHOD_COD:
        return PaymentOutcome(
            method_id=method_id,
            method_name=info["name"],
            is_paid=False,
            reference=None,
            amount_due=total + COD_HANDLING_FEE,
        )

    supplied = (details or {}).get("reference_number")
    reference = str(supplied).strip()[:128] if supplied else generate_reference(method_id)
    return PaymentOutcome(
        method_id=method_id,
        method_name=info["name"],
        is_paid=True,
        reference=reference,
        amount_due=total,
    )
