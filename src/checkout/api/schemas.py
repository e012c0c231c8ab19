"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer), separate from the
saga's request types and the protean commands.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from checkout.order.order import OrderStatus


class AddressSchema(BaseModel):
    name: str | None = None
    street: str
    city: str
    postal_code: str
    country: str = Field(min_length=2, max_length=2)


class CustomerSchema(BaseModel):
    customer_id: str
    email: str
    name: str
    shipping_address: AddressSchema


class CartLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)


class CreateOrderRequest(BaseModel):
    items: list[CartLineSchema] = Field(min_length=1)
    customer: CustomerSchema
    payment_method: str
    shipping_option: str = "standard"
    idempotency_key: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2, "unit_price": "225.00"}],
                    "customer": {
                        "customer_id": "cust-001",
                        "email": "anna@example.com",
                        "name": "Anna Svensson",
                        "shipping_address": {
                            "street": "Drottninggatan 1",
                            "city": "Stockholm",
                            "postal_code": "11151",
                            "country": "SE",
                        },
                    },
                    "payment_method": "card",
                    "shipping_option": "standard",
                }
            ]
        }
    }


class OrderConfirmationResponse(BaseModel):
    order_id: str
    status: str
    payment_status: str
    payment_reference: str | None = None
    total: str
    currency: str
    tracking_number: str
    redirect_target: str | None = None
    instructions: str | None = None
    notice: dict | None = None
    replayed: bool = False


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: float
    weight_kg: float | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    payment_method: str
    payment_status: str
    payment_reference: str | None = None
    shipping_option: str
    carrier_code: str | None = None
    tracking_number: str | None = None
    label_status: str
    subtotal: float
    tax_total: float
    shipping_cost: float
    grand_total: float
    currency: str
    items: list[OrderItemResponse]


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    reason: str | None = None


class PaymentWebhookRequest(BaseModel):
    reference: str
    status: str


class PaymentMethodsResponse(BaseModel):
    methods: list[str]


class CountResponse(BaseModel):
    status: str = "ok"
    count: int
