"""Order pricing: VAT per destination country and shipping options.

All arithmetic is done in ``Decimal`` and rounded half-up to the cent, then
handed to the Order aggregate. The quote is computed once per checkout.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from checkout.errors import CartValidationError

CENT = Decimal("0.01")

DEFAULT_TAX_RATE = Decimal("0.25")
TAX_RATES = {
    "SE": Decimal("0.25"),
    "NO": Decimal("0.25"),
    "DK": Decimal("0.25"),
    "FI": Decimal("0.24"),
}


@dataclass(frozen=True)
class ShippingOption:
    code: str
    carrier_code: str
    name: str
    price: Decimal
    free_from: Decimal | None = None

    def cost_for(self, subtotal: Decimal) -> Decimal:
        if self.free_from is not None and subtotal >= self.free_from:
            return Decimal("0.00")
        return self.price


SHIPPING_OPTIONS = {
    "standard": ShippingOption("standard", "POSTNORD", "PostNord Standard", Decimal("49.00"), Decimal("500.00")),
    "express": ShippingOption("express", "DHL", "DHL Express", Decimal("99.00")),
    "servicepoint": ShippingOption(
        "servicepoint", "BRING", "Bring Service Point", Decimal("39.00"), Decimal("500.00")
    ),
}


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    tax_rate: Decimal
    tax_total: Decimal
    shipping_cost: Decimal
    grand_total: Decimal
    currency: str
    carrier_code: str

    def as_pricing(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax_total": float(self.tax_total),
            "shipping_cost": float(self.shipping_cost),
            "grand_total": float(self.grand_total),
            "currency": self.currency,
        }


def to_cents(amount) -> Decimal:
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def tax_rate_for(country: str | None) -> Decimal:
    return TAX_RATES.get((country or "").upper(), DEFAULT_TAX_RATE)


def shipping_option(code: str) -> ShippingOption:
    option = SHIPPING_OPTIONS.get(code)
    if option is None:
        raise CartValidationError(f"Unknown shipping option '{code}'", shipping_option=code)
    return option


def quote(lines, country: str, shipping_code: str, currency: str = "SEK") -> PriceQuote:
    """Price ``lines`` of ``(unit_price, quantity)`` for delivery to ``country``."""
    subtotal = to_cents(sum((Decimal(str(price)) * qty for price, qty in lines), Decimal("0")))
    rate = tax_rate_for(country)
    tax_total = to_cents(subtotal * rate)
    option = shipping_option(shipping_code)
    shipping_cost = to_cents(option.cost_for(subtotal))
    return PriceQuote(
        subtotal=subtotal,
        tax_rate=rate,
        tax_total=tax_total,
        shipping_cost=shipping_cost,
        grand_total=subtotal + tax_total + shipping_cost,
        currency=currency,
        carrier_code=option.carrier_code,
    )
