# Overview: Service-layer operations for pricing; pure arithmetic, no database work.

"""
Tarpaulin Price Calculation

price = width_m x height_m x quantity x price_per_sqm
      (+ template_surcharge x quantity when a template is selected)

DESIGN:
- Decimal arithmetic throughout. Every input goes through str() first, so
  calculate_price(2, 1.5, 3, 280) is exactly 2520 and argument order never
  changes the result.
- Partial, not total: bad input raises PricingError. Nothing is clamped.
- Form-layer bounds (0.5-10 m, 1-100 units) are exposed here so the order
  service enforces them server-side.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from tarpprint.money import to_decimal, quantize_money


MIN_DIMENSION_M = Decimal("0.5")
MAX_DIMENSION_M = Decimal("10")
DIMENSION_STEP = Decimal("0.01")
MIN_QUANTITY = 1
MAX_QUANTITY = 100


class PricingError(ValueError):
    """Raised when pricing inputs are missing, non-numeric or out of range."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class PriceEstimate:
    area_sqm: Decimal
    unit_price: Decimal
    base_price: Decimal
    surcharge: Decimal
    total_price: Decimal

    def to_dict(self) -> dict:
        return {
            "area_sqm": float(self.area_sqm),
            "unit_price": float(self.unit_price),
            "base_price": float(self.base_price),
            "surcharge": float(self.surcharge),
            "total_price": float(self.total_price),
        }


def _positive_decimal(name: str, value) -> Decimal:
    try:
        dec = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise PricingError(f"{name} must be a number", details={"field": name})
    if not dec.is_finite():
        raise PricingError(f"{name} must be a finite number", details={"field": name})
    if dec <= 0:
        raise PricingError(f"{name} must be greater than 0", details={"field": name})
    return dec


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise PricingError(f"{name} must be a whole number", details={"field": name})
    try:
        dec = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise PricingError(f"{name} must be a whole number", details={"field": name})
    if not dec.is_finite() or dec != dec.to_integral_value():
        raise PricingError(f"{name} must be a whole number", details={"field": name})
    qty = int(dec)
    if qty < 1:
        raise PricingError(f"{name} must be at least 1", details={"field": name})
    return qty


def calculate_price(width_m, height_m, quantity, price_per_sqm) -> Decimal:
    """
    Exact price for a print job, unrounded.

    Raises PricingError for non-positive or non-numeric input.
    """
    width = _positive_decimal("width", width_m)
    height = _positive_decimal("height", height_m)
    qty = _positive_int("quantity", quantity)
    rate = _positive_decimal("price_per_sqm", price_per_sqm)
    return width * height * qty * rate


def estimate_price(
    width_m,
    height_m,
    quantity,
    price_per_sqm,
    template_surcharge=None,
) -> PriceEstimate:
    """
    Price breakdown including the optional per-unit template surcharge.

    total_price is rounded half-up to centavos; this is the value orders
    store as their snapshot.
    """
    base = calculate_price(width_m, height_m, quantity, price_per_sqm)
    qty = _positive_int("quantity", quantity)

    surcharge = Decimal("0")
    if template_surcharge is not None:
        try:
            per_unit = to_decimal(template_surcharge)
        except (InvalidOperation, TypeError, ValueError):
            raise PricingError("template_surcharge must be a number", details={"field": "template_surcharge"})
        if not per_unit.is_finite() or per_unit < 0:
            raise PricingError("template_surcharge must be >= 0", details={"field": "template_surcharge"})
        surcharge = per_unit * qty

    area = to_decimal(width_m) * to_decimal(height_m)
    total = quantize_money(base + surcharge)
    return PriceEstimate(
        area_sqm=area,
        unit_price=quantize_money((base + surcharge) / qty),
        base_price=quantize_money(base),
        surcharge=quantize_money(surcharge),
        total_price=total,
    )


def _dimension(name: str, value) -> Decimal:
    dec = _positive_decimal(name, value)
    if dec > MAX_DIMENSION_M:
        # Rejected by the bounds check; quantize would overflow on huge exponents
        return dec
    return dec.quantize(DIMENSION_STEP, rounding=ROUND_HALF_UP)


def validate_order_dimensions(width_m, height_m, quantity) -> tuple[Decimal, Decimal, int]:
    """
    Enforce the ordering bounds server-side.

    Returns normalized (width, height, quantity). Dimensions are rounded
    half-up to centimetres, the precision orders store them at, so the
    price snapshot is computed from the stored values.
    """
    width = _dimension("width", width_m)
    height = _dimension("height", height_m)
    qty = _positive_int("quantity", quantity)

    errors = {}
    if not (MIN_DIMENSION_M <= width <= MAX_DIMENSION_M):
        errors["width"] = f"Width must be between {MIN_DIMENSION_M}m and {MAX_DIMENSION_M}m"
    if not (MIN_DIMENSION_M <= height <= MAX_DIMENSION_M):
        errors["height"] = f"Height must be between {MIN_DIMENSION_M}m and {MAX_DIMENSION_M}m"
    if not (MIN_QUANTITY <= qty <= MAX_QUANTITY):
        errors["quantity"] = f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}"
    if errors:
        raise PricingError("Order dimensions out of range", details=errors)

    return width, height, qty
