# Overview: Decimal helpers for currency amounts (PHP pesos, 2 decimal places).

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """
    Convert an int/float/str/Decimal to Decimal via its string form.

    Going through str() keeps 1.5 as Decimal("1.5") instead of the binary
    float expansion. Raises InvalidOperation/TypeError on garbage input.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("booleans are not amounts")
    if isinstance(value, (int, float, str)):
        return Decimal(str(value).strip())
    raise TypeError(f"unsupported amount type: {type(value).__name__}")


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_json(value) -> float | None:
    """JSON representation used by to_dict(); None stays None."""
    if value is None:
        return None
    try:
        return float(quantize_money(value))
    except (InvalidOperation, TypeError):
        return None
