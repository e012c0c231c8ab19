"""Order status changes after placement: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order, OrderStatus


@checkout.command(part_of="Order")
class AdvanceOrderStatus:
    """Move an order along its state machine (processing, shipped, delivered, cancelled)."""

    order_id: Identifier(required=True)
    status: String(required=True, choices=OrderStatus)
    reason: String(max_length=500)


@checkout.command_handler(part_of=Order)
class AdvanceOrderStatusHandler:
    @handle(AdvanceOrderStatus)
    def advance_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.advance_to(OrderStatus(command.status), reason=command.reason)
        repo.add(order)
