"""OrderStore: the only write path to persisted orders.

Wraps the order commands so the checkout saga and the HTTP layer deal in
checkout errors rather than protean exceptions. Must be used inside the
checkout domain context.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from checkout.errors import OrderNotFoundError, OrderTransitionError, PersistenceError
from checkout.order.lifecycle import AdvanceOrderStatus
from checkout.order.order import LabelStatus, Order, OrderStatus
from checkout.order.payment import ConfirmOrderPayment, FailOrderPayment
from checkout.order.placement import PlaceOrder
from checkout.order.shipping import AssignTrackingNumber, DeferShippingLabel

logger = structlog.get_logger(__name__)


class OrderStore:
    def create(
        self,
        *,
        idempotency_key,
        customer_id,
        customer_email,
        items,
        shipping_address,
        shipping_option,
        carrier_code,
        pricing,
        payment_method,
        payment_id,
        payment_status,
        redirect_target=None,
        reservation_id=None,
    ) -> Order:
        command = PlaceOrder(
            idempotency_key=idempotency_key,
            customer_id=customer_id,
            customer_email=customer_email,
            items=json.dumps(items),
            shipping_address=json.dumps(shipping_address),
            shipping_option=shipping_option,
            carrier_code=carrier_code,
            subtotal=pricing["subtotal"],
            tax_total=pricing["tax_total"],
            shipping_cost=pricing["shipping_cost"],
            grand_total=pricing["grand_total"],
            currency=pricing["currency"],
            payment_method=payment_method,
            payment_id=payment_id,
            payment_status=payment_status,
            redirect_target=redirect_target,
            reservation_id=reservation_id,
        )
        try:
            order_id = current_domain.process(command, asynchronous=False)
        except Exception as exc:
            logger.error("Order could not be persisted", idempotency_key=idempotency_key, error=str(exc))
            raise PersistenceError(idempotency_key=idempotency_key) from exc
        return self.get(order_id)

    def get(self, order_id) -> Order:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFoundError(order_id=str(order_id)) from exc

    def find_by_idempotency_key(self, idempotency_key) -> Order | None:
        return self._first(idempotency_key=idempotency_key)

    def find_by_payment_reference(self, reference) -> Order | None:
        return self._first(payment_id=reference)

    def confirm_payment(self, order_id, payment_id=None) -> Order:
        self._run(ConfirmOrderPayment(order_id=order_id, payment_id=payment_id))
        return self.get(order_id)

    def fail_payment(self, order_id, reason=None) -> Order:
        self._run(FailOrderPayment(order_id=order_id, reason=reason))
        return self.get(order_id)

    def update_status(self, order_id, status: OrderStatus, reason=None) -> Order:
        self._run(AdvanceOrderStatus(order_id=order_id, status=status.value, reason=reason))
        return self.get(order_id)

    def assign_tracking_number(self, order_id, tracking_number, carrier_code) -> Order:
        self._run(
            AssignTrackingNumber(
                order_id=order_id,
                tracking_number=tracking_number,
                carrier_code=carrier_code,
            )
        )
        return self.get(order_id)

    def mark_label_pending(self, order_id, reason=None) -> Order:
        self._run(DeferShippingLabel(order_id=order_id, reason=reason))
        return self.get(order_id)

    def pending_payment_orders(self, exclude_methods=()) -> list[Order]:
        """Every order still waiting on its payment, leaving out ``exclude_methods``."""
        query = self._query(status=OrderStatus.PENDING.value, payment_status="pending")
        if exclude_methods:
            query = query.exclude(payment_method__in=list(exclude_methods))
        return list(query.all().items)

    def orders_awaiting_label(self) -> list[Order]:
        return self._all(label_status=LabelStatus.PENDING.value)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _run(self, command) -> None:
        try:
            current_domain.process(command, asynchronous=False)
        except ObjectNotFoundError as exc:
            raise OrderNotFoundError(order_id=str(command.order_id)) from exc
        except ValidationError as exc:
            raise OrderTransitionError(_first_message(exc), order_id=str(command.order_id)) from exc

    def _query(self, **filters):
        # No row limit: the background sweeps must see every matching order.
        return current_domain.repository_for(Order)._dao.query.filter(**filters).limit(None)

    def _all(self, **filters) -> list[Order]:
        return list(self._query(**filters).all().items)

    def _first(self, **filters) -> Order | None:
        results = self._all(**filters)
        return results[0] if results else None


def _first_message(exc: ValidationError) -> str | None:
    for messages in (exc.messages or {}).values():
        if messages:
            return messages[0]
    return None
