"""Tests for VAT and shipping pricing."""

from decimal import Decimal

import pytest

from checkout.errors import CartValidationError
from checkout.order.pricing import SHIPPING_OPTIONS, quote, tax_rate_for, to_cents


class TestTaxRates:
    @pytest.mark.parametrize(
        "country,rate",
        [("SE", "0.25"), ("NO", "0.25"), ("DK", "0.25"), ("FI", "0.24"), ("se", "0.25"), ("DE", "0.25")],
    )
    def test_rate_by_country(self, country, rate):
        assert tax_rate_for(country) == Decimal(rate)


class TestRounding:
    def test_half_up_to_the_cent(self):
        assert to_cents("0.125") == Decimal("0.13")
        assert to_cents("0.124") == Decimal("0.12")

    def test_floats_are_converted_through_str(self):
        assert to_cents(611.5) == Decimal("611.50")


class TestQuote:
    def test_standard_shipping_below_threshold(self):
        result = quote([(Decimal("150.00"), 3)], country="SE", shipping_code="standard")
        assert result.subtotal == Decimal("450.00")
        assert result.tax_total == Decimal("112.50")
        assert result.shipping_cost == Decimal("49.00")
        assert result.grand_total == Decimal("611.50")
        assert result.carrier_code == "POSTNORD"

    def test_free_shipping_from_threshold(self):
        result = quote([(Decimal("250.00"), 2)], country="SE", shipping_code="standard")
        assert result.shipping_cost == Decimal("0.00")
        assert result.grand_total == Decimal("625.00")

    def test_express_is_never_free(self):
        result = quote([(Decimal("1000.00"), 1)], country="SE", shipping_code="express")
        assert result.shipping_cost == Decimal("99.00")
        assert result.carrier_code == "DHL"

    def test_servicepoint_uses_bring(self):
        result = quote([(Decimal("10.00"), 1)], country="NO", shipping_code="servicepoint")
        assert result.shipping_cost == Decimal("39.00")
        assert result.carrier_code == "BRING"

    def test_finnish_vat(self):
        result = quote([(Decimal("100.00"), 1)], country="FI", shipping_code="express")
        assert result.tax_total == Decimal("24.00")

    def test_tax_is_rounded_half_up(self):
        result = quote([(Decimal("0.10"), 1)], country="SE", shipping_code="express")
        # 0.10 * 0.25 = 0.025
        assert result.tax_total == Decimal("0.03")

    def test_total_is_sum_of_parts(self):
        result = quote([(Decimal("19.99"), 7), (Decimal("5.05"), 3)], country="DK", shipping_code="standard")
        assert result.grand_total == result.subtotal + result.tax_total + result.shipping_cost

    def test_unknown_shipping_option_rejected(self):
        with pytest.raises(CartValidationError):
            quote([(Decimal("10.00"), 1)], country="SE", shipping_code="teleport")

    def test_as_pricing_uses_floats(self):
        pricing = quote([(Decimal("150.00"), 3)], country="SE", shipping_code="standard").as_pricing()
        assert pricing == {
            "subtotal": 450.0,
            "tax_total": 112.5,
            "shipping_cost": 49.0,
            "grand_total": 611.5,
            "currency": "SEK",
        }


def test_every_option_names_a_carrier():
    assert {option.carrier_code for option in SHIPPING_OPTIONS.values()} == {"POSTNORD", "DHL", "BRING"}
