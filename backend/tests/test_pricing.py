"""
Pricing tests.

Verifies:
- price = width x height x quantity x rate, exact in Decimal
- Argument order of the dimensions never changes the result
- Non-positive and non-numeric inputs are rejected, never clamped
- Template surcharge is per unit
- Ordering bounds (0.5-10 m, 1-100 units) are enforced
"""

from decimal import Decimal

import pytest

from tarpprint.services.pricing_service import (
    PricingError,
    calculate_price,
    estimate_price,
    validate_order_dimensions,
)


class TestCalculatePrice:

    def test_mesh_vinyl_example(self):
        assert calculate_price(2, 1.5, 3, 280) == Decimal("2520")

    def test_standard_vinyl_example(self):
        assert calculate_price(3, 2, 1, 180) == Decimal("1080")

    def test_width_and_height_commute(self):
        assert calculate_price(1.5, 2, 3, 280) == calculate_price(2, 1.5, 3, 280)

    def test_float_inputs_stay_exact(self):
        # 0.1 x 0.2 is 0.020000000000000004 in binary floats
        assert calculate_price(0.1, 0.2, 1, 100) == Decimal("2.000")

    def test_string_inputs_accepted(self):
        assert calculate_price("2", "1.5", "3", "280.00") == Decimal("2520")

    @pytest.mark.parametrize(
        "width,height,quantity,rate",
        [
            (0, 1, 1, 180),
            (1, -2, 1, 180),
            (1, 1, 0, 180),
            (1, 1, 1, 0),
            ("abc", 1, 1, 180),
            (None, 1, 1, 180),
            (1, 1, 1.5, 180),
            (1, 1, True, 180),
            (float("nan"), 1, 1, 180),
        ],
    )
    def test_rejects_bad_input(self, width, height, quantity, rate):
        with pytest.raises(PricingError):
            calculate_price(width, height, quantity, rate)

    def test_error_names_the_field(self):
        with pytest.raises(PricingError) as exc:
            calculate_price(1, 0, 1, 180)
        assert exc.value.details == {"field": "height"}


class TestEstimatePrice:

    def test_without_template(self):
        estimate = estimate_price(2, 1.5, 3, Decimal("280.00"))
        assert estimate.total_price == Decimal("2520.00")
        assert estimate.surcharge == Decimal("0.00")
        assert estimate.unit_price == Decimal("840.00")
        assert estimate.area_sqm == Decimal("3.0")

    def test_template_surcharge_is_per_unit(self):
        estimate = estimate_price(1, 1, 4, Decimal("180.00"), template_surcharge=Decimal("50.00"))
        assert estimate.base_price == Decimal("720.00")
        assert estimate.surcharge == Decimal("200.00")
        assert estimate.total_price == Decimal("920.00")

    def test_total_rounds_half_up(self):
        # 0.55 x 0.55 x 1 x 1.00 = 0.3025
        estimate = estimate_price("0.55", "0.55", 1, "1.00")
        assert estimate.total_price == Decimal("0.30")
        # 0.5 x 0.5 x 1 x 0.5 = 0.125
        estimate = estimate_price("0.5", "0.5", 1, "0.5")
        assert estimate.total_price == Decimal("0.13")

    def test_negative_surcharge_rejected(self):
        with pytest.raises(PricingError):
            estimate_price(1, 1, 1, 180, template_surcharge=-5)

    def test_to_dict_is_json_friendly(self):
        data = estimate_price(2, 1.5, 3, 280).to_dict()
        assert data["total_price"] == 2520.0
        assert all(isinstance(v, float) for v in data.values())


class TestOrderBounds:

    def test_accepts_edges(self):
        width, height, qty = validate_order_dimensions(0.5, 10, 100)
        assert width == Decimal("0.5")
        assert height == Decimal("10")
        assert qty == 100

    @pytest.mark.parametrize(
        "width,height,quantity,field",
        [
            (0.4, 1, 1, "width"),
            (1, 10.5, 1, "height"),
            (1, 1, 101, "quantity"),
        ],
    )
    def test_rejects_out_of_range(self, width, height, quantity, field):
        with pytest.raises(PricingError) as exc:
            validate_order_dimensions(width, height, quantity)
        assert field in exc.value.details

    def test_dimensions_rounded_to_centimetres(self):
        width, height, _ = validate_order_dimensions("1.255", "2.004", 1)
        assert width == Decimal("1.26")
        assert height == Decimal("2.00")

    def test_rounding_cannot_lift_into_range(self):
        with pytest.raises(PricingError) as exc:
            validate_order_dimensions("0.494", 1, 1)
        assert "width" in exc.value.details

    def test_huge_dimension_rejected(self):
        with pytest.raises(PricingError) as exc:
            validate_order_dimensions("1e30", 1, 1)
        assert "width" in exc.value.details
