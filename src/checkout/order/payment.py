"""Payment outcomes for pending orders: commands and handler.

Used by reconciliation once the provider has settled a pending payment,
either way.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class ConfirmOrderPayment:
    order_id: Identifier(required=True)
    payment_id: String(max_length=255)


@checkout.command(part_of="Order")
class FailOrderPayment:
    order_id: Identifier(required=True)
    reason: String(max_length=500)


@checkout.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ConfirmOrderPayment)
    def confirm_order_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.confirm_payment(payment_id=command.payment_id)
        repo.add(order)

    @handle(FailOrderPayment)
    def fail_order_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.fail_payment(reason=command.reason)
        repo.add(order)
