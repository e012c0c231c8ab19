"""Order placement: command and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class PlaceOrder:
    """Persist the order produced by a checkout whose payment is captured or pending."""

    idempotency_key: String(required=True, max_length=255)
    customer_id: Identifier(required=True)
    customer_email: String(max_length=254)
    items: Text(required=True)  # JSON: list of item dicts
    shipping_address: Text(required=True)  # JSON: address dict
    shipping_option: String(required=True, max_length=50)
    carrier_code: String(required=True, max_length=50)
    subtotal: Float(required=True)
    tax_total: Float(default=0.0)
    shipping_cost: Float(default=0.0)
    grand_total: Float(required=True)
    currency: String(max_length=3, default="SEK")
    payment_method: String(required=True, max_length=50)
    payment_id: String(max_length=255)
    payment_status: String(required=True, max_length=50)
    redirect_target: String(max_length=1024)
    reservation_id: String(max_length=255)


@checkout.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        order = Order.place(
            idempotency_key=command.idempotency_key,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            items_data=items_data,
            shipping_address=shipping_address,
            shipping_option=command.shipping_option,
            carrier_code=command.carrier_code,
            pricing={
                "subtotal": command.subtotal,
                "tax_total": command.tax_total or 0.0,
                "shipping_cost": command.shipping_cost or 0.0,
                "grand_total": command.grand_total,
                "currency": command.currency or "SEK",
            },
            payment_method=command.payment_method,
            payment_id=command.payment_id,
            payment_status=command.payment_status,
            redirect_target=command.redirect_target,
            reservation_id=command.reservation_id,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
