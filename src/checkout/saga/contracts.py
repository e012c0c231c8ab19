"""Checkout request and confirmation types.

The cart handed to the orchestrator is a frozen snapshot: prices are the ones
the customer saw when adding items and are checked against the catalog, never
trusted.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from uuid import uuid4

TRACKING_PENDING = "pending"


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price_at_add: Decimal


@dataclass(frozen=True)
class CartSnapshot:
    lines: tuple[CartLine, ...]

    @classmethod
    def of(cls, *lines) -> "CartSnapshot":
        """Build a snapshot from ``(product_id, quantity, unit_price)`` tuples or CartLines."""
        return cls(
            lines=tuple(
                line if isinstance(line, CartLine) else CartLine(line[0], int(line[1]), Decimal(str(line[2])))
                for line in lines
            )
        )

    @property
    def is_empty(self) -> bool:
        return not self.lines


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    postal_code: str
    country: str
    name: str | None = None


@dataclass(frozen=True)
class CustomerInfo:
    customer_id: str
    email: str
    name: str
    shipping_address: Address


@dataclass(frozen=True)
class CreateOrderRequest:
    cart: CartSnapshot
    customer: CustomerInfo
    payment_method: str
    shipping_option: str
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        # One key per checkout: a request built without one gets a fresh key,
        # and resubmitting the same request object reuses it.
        if not self.idempotency_key:
            object.__setattr__(self, "idempotency_key", f"chk_{uuid4().hex}")


@dataclass(frozen=True)
class OrderConfirmation:
    order_id: str
    status: str
    payment_status: str
    payment_reference: str | None
    total: Decimal
    currency: str
    tracking_number: str = TRACKING_PENDING
    redirect_target: str | None = None
    instructions: str | None = None
    notice: dict | None = None
    replayed: bool = False

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["total"] = str(self.total)
        return payload
