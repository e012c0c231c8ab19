"""Checkout orchestrator: the saga that turns a cart into an order.

Steps and what a failure at each one undoes:

    Validating    cart vs catalog          nothing to undo
    Reserving     stock via the ledger     nothing was reserved
    Paying        processor.process        release the reservation
    Persisting    OrderStore.create        release the reservation; a captured
                                           payment is left for reconciliation
    LabelIssuing  ShippingLabelIssuer      nothing; label flagged pending

The payment method is resolved before anything is reserved. Payment capture
is never retried. A pending payment persists the order as Pending and skips
label issuance; reconciliation issues the label once the payment verifies.

Requests sharing an idempotency key are serialized in-process, and a request
whose order already exists returns that order instead of running again.

Must be used inside the checkout domain context.
"""

import threading
from datetime import UTC, datetime, timedelta

import structlog

from checkout.catalog.port import CatalogGateway
from checkout.config import CheckoutSettings
from checkout.errors import (
    CartValidationError,
    CheckoutError,
    InsufficientStockError,
    LabelGenerationError,
    OrderNotFoundError,
    OrderTransitionError,
    PaymentDeclinedError,
    PaymentPendingTimeout,
    PersistenceError,
    ReservationReleasedError,
    StockContentionError,
)
from checkout.inventory.ledger import InventoryLedger, ReservationToken
from checkout.notifications.dispatcher import NotificationDispatcher
from checkout.order.order import Order, OrderStatus
from checkout.order.pricing import PriceQuote, quote, shipping_option, to_cents
from checkout.order.store import OrderStore
from checkout.payments.attempt import PaymentAttempt, PaymentStatus, ProcessResult, derive_idempotency_key
from checkout.payments.processors import ProcessorKind
from checkout.payments.registry import PaymentProcessorRegistry
from checkout.saga.contracts import TRACKING_PENDING, CreateOrderRequest, OrderConfirmation
from checkout.saga.run import CheckoutRun, CheckoutState
from checkout.shipping.issuer import ShippingLabelIssuer
from checkout.utils.locks import KeyedLocks

logger = structlog.get_logger(__name__)


class CheckoutOrchestrator:
    def __init__(
        self,
        catalog: CatalogGateway,
        ledger: InventoryLedger,
        registry: PaymentProcessorRegistry,
        store: OrderStore,
        issuer: ShippingLabelIssuer,
        notifier: NotificationDispatcher | None = None,
        settings: CheckoutSettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.registry = registry
        self.store = store
        self.issuer = issuer
        self.notifier = notifier
        self.settings = settings or CheckoutSettings()
        self._runs: dict[str, CheckoutRun] = {}
        self._key_locks = KeyedLocks()
        self._guard = threading.Lock()

    # -------------------------------------------------------------------
    # Interactive path
    # -------------------------------------------------------------------
    def create_order(self, request: CreateOrderRequest) -> OrderConfirmation:
        return self.execute(self.begin(request), request)

    def begin(self, request: CreateOrderRequest) -> CheckoutRun:
        run = CheckoutRun(derive_idempotency_key(request))
        with self._guard:
            self._runs[run.run_id] = run
        return run

    def abort(self, run_id: str) -> bool:
        run = self._runs.get(run_id)
        return run.abort() if run is not None else False

    def execute(self, run: CheckoutRun, request: CreateOrderRequest) -> OrderConfirmation:
        log = logger.bind(idempotency_key=run.idempotency_key, run_id=run.run_id)
        try:
            with self._key_locks.hold(run.idempotency_key):
                existing = self.store.find_by_idempotency_key(run.idempotency_key)
                if existing is not None:
                    log.info("Checkout replayed", order_id=str(existing.id))
                    return self._confirmation(existing, replayed=True)
                return self._run_steps(run, request, log)
        finally:
            with self._guard:
                self._runs.pop(run.run_id, None)

    def _run_steps(self, run: CheckoutRun, request: CreateOrderRequest, log) -> OrderConfirmation:
        try:
            processor = self.registry.get(request.payment_method)
            quote_, items = self._validate(request)

            run.advance(CheckoutState.RESERVING)
            token = self.ledger.reserve(
                [(item["product_id"], item["quantity"]) for item in items],
                ttl=timedelta(seconds=self.settings.reservation_ttl_seconds),
            )
            run.committed("release_reservation", lambda: self.ledger.release(token, reason="checkout_failed"))

            run.advance(CheckoutState.PAYING)
            attempt = PaymentAttempt(
                idempotency_key=run.idempotency_key,
                method=request.payment_method,
                amount=quote_.grand_total,
                currency=quote_.currency,
            )
            result = processor.process(attempt)
            if not (result.succeeded or result.pending):
                log.info("Payment declined", method=request.payment_method, reason=result.failure_reason)
                raise PaymentDeclinedError(result.failure_reason)

            run.advance(CheckoutState.PERSISTING)
            order = self._persist(request, run, quote_, items, token, result, log)
        except Exception as exc:
            undone = run.fail(getattr(exc, "code", type(exc).__name__))
            log.info("Checkout failed", reason=run.failure_reason, compensated=undone)
            raise

        run.settle()
        self._settle_reservation(order, token, result)

        if result.succeeded:
            run.advance(CheckoutState.LABEL_ISSUING)
            order = self._issue_label(order)
        run.advance(CheckoutState.COMPLETED)

        notice = PaymentPendingTimeout().to_dict() if result.timed_out else None
        confirmation = self._confirmation(order, instructions=result.instructions, notice=notice)
        self._notify(order, confirmation)
        log.info("Checkout completed", order_id=confirmation.order_id, status=confirmation.status)
        return confirmation

    def _validate(self, request: CreateOrderRequest) -> tuple[PriceQuote, list[dict]]:
        """Check every line against the catalog and price the order."""
        if request.cart.is_empty:
            raise CartValidationError("The cart is empty")
        shipping_option(request.shipping_option)

        wanted: dict[str, int] = {}
        for line in request.cart.lines:
            if line.quantity < 1:
                raise CartValidationError("Quantities must be at least 1", product_id=line.product_id)
            wanted[line.product_id] = wanted.get(line.product_id, 0) + line.quantity

        problems = []
        items = []
        for line in request.cart.lines:
            product = self.catalog.get_product(line.product_id)
            if product is None:
                problems.append({"product_id": line.product_id, "problem": "not_found"})
                continue
            if not product.is_active:
                problems.append({"product_id": line.product_id, "problem": "inactive"})
                continue
            if abs(product.price - line.unit_price_at_add) > self.settings.price_tolerance:
                problems.append(
                    {
                        "product_id": line.product_id,
                        "problem": "price_changed",
                        "current_price": str(product.price),
                    }
                )
                continue
            if product.stock < wanted[line.product_id]:
                problems.append(
                    {
                        "product_id": line.product_id,
                        "problem": "out_of_stock",
                        "available": product.stock,
                    }
                )
                continue
            items.append(
                {
                    "product_id": product.product_id,
                    "name": product.name,
                    "quantity": line.quantity,
                    "unit_price": float(to_cents(product.price)),
                    "weight_kg": product.weight_kg,
                }
            )

        if problems:
            raise CartValidationError(problems=problems)

        quote_ = quote(
            [(item["unit_price"], item["quantity"]) for item in items],
            country=request.customer.shipping_address.country,
            shipping_code=request.shipping_option,
            currency=self.settings.currency,
        )
        return quote_, items

    def _persist(self, request, run, quote_, items, token, result: ProcessResult, log) -> Order:
        address = request.customer.shipping_address
        try:
            return self.store.create(
                idempotency_key=run.idempotency_key,
                customer_id=request.customer.customer_id,
                customer_email=request.customer.email,
                items=items,
                shipping_address={
                    "name": address.name or request.customer.name,
                    "street": address.street,
                    "city": address.city,
                    "postal_code": address.postal_code,
                    "country": address.country,
                },
                shipping_option=request.shipping_option,
                carrier_code=quote_.carrier_code,
                pricing=quote_.as_pricing(),
                payment_method=request.payment_method,
                payment_id=result.provider_reference,
                payment_status=result.status.value,
                redirect_target=result.redirect_target,
                reservation_id=token.token_id,
            )
        except PersistenceError:
            log.critical(
                "Payment taken but order not saved; manual reconciliation required",
                payment_reference=result.provider_reference,
                payment_status=result.status.value,
                amount=str(quote_.grand_total),
            )
            raise

    def _settle_reservation(self, order: Order, token: ReservationToken, result: ProcessResult) -> None:
        try:
            if result.succeeded:
                self.ledger.confirm(token)
            else:
                hold = timedelta(seconds=self.settings.pending_payment_hold_seconds)
                self.ledger.extend(token, datetime.now(UTC) + hold)
        except ReservationReleasedError:
            logger.error("Reservation lapsed before the order settled", order_id=str(order.id))

    # -------------------------------------------------------------------
    # Background entry points
    # -------------------------------------------------------------------
    def reconcile_pending_payment(self, order_id) -> Order:
        """Ask the provider where a pending payment stands and move the order to match.

        A paid order is confirmed and gets its label. A failed payment cancels
        the order and releases its stock. Anything else leaves it pending.
        """
        order = self.store.get(order_id)
        if order.payment_status == "succeeded":
            if order.tracking_number is None and order.status == OrderStatus.CONFIRMED.value:
                order = self._issue_label(order)
            return order
        if order.status != OrderStatus.PENDING.value:
            return order

        processor = self.registry.get(order.payment_method)
        outcome = processor.status(order.payment_id)
        if outcome == PaymentStatus.PENDING:
            logger.info("Payment still pending", order_id=str(order.id), method=order.payment_method)
            return order

        with self._key_locks.hold(order.idempotency_key):
            order = self.store.get(order_id)
            if order.status != OrderStatus.PENDING.value:
                return order

            if outcome == PaymentStatus.FAILED:
                order = self.store.fail_payment(order.id, reason="payment_failed")
                logger.info("Pending payment failed", order_id=str(order.id), payment_reference=order.payment_id)
                self._release_held_stock(order)
                return order

            order = self.store.confirm_payment(order.id)
            logger.info("Pending payment confirmed", order_id=str(order.id), payment_reference=order.payment_id)
            self._confirm_held_stock(order)
            return self._issue_label(order)

    def reconcile_pending_payments(self) -> int:
        """Sweep every pending order a provider can settle on its own.

        Bank transfers only settle through ``mark_transfer_received`` and are
        left out of the sweep.
        """
        confirmed = 0
        manual = self.registry.methods_of_kind(ProcessorKind.MANUAL)
        for order in self.store.pending_payment_orders(exclude_methods=manual):
            try:
                order = self.reconcile_pending_payment(order.id)
            except CheckoutError as exc:
                logger.error("Reconciliation failed", order_id=str(order.id), error=exc.message)
                continue
            if order.payment_status == "succeeded":
                confirmed += 1
        return confirmed

    def reconcile_payment_reference(self, reference: str) -> Order:
        """Webhook entry: reconcile the order that owns a provider reference."""
        order = self.store.find_by_payment_reference(reference)
        if order is None:
            raise OrderNotFoundError(payment_reference=reference)
        return self.reconcile_pending_payment(order.id)

    def mark_transfer_received(self, reference: str) -> Order:
        order = self.store.find_by_payment_reference(reference)
        if order is None:
            raise OrderNotFoundError(payment_reference=reference)
        processor = self.registry.get(order.payment_method)
        if processor.kind != ProcessorKind.MANUAL:
            raise OrderTransitionError("The order was not paid by bank transfer", order_id=str(order.id))
        processor.mark_received(reference)
        return self.reconcile_pending_payment(order.id)

    def retry_pending_labels(self) -> int:
        issued = 0
        for order in self.store.orders_awaiting_label():
            if order.status == OrderStatus.CANCELLED.value:
                continue
            order = self._issue_label(order)
            if order.tracking_number:
                issued += 1
        return issued

    def expire_reservations(self, now: datetime | None = None) -> int:
        return self.ledger.expire_stale(now)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _issue_label(self, order: Order) -> Order:
        try:
            label = self.issuer.generate(order)
        except LabelGenerationError:
            logger.warning("Shipping label deferred", order_id=str(order.id))
            return self.store.mark_label_pending(order.id, reason="label_generation_failed")
        return self.store.assign_tracking_number(order.id, label.tracking_number, label.carrier_code)

    def _release_held_stock(self, order: Order) -> None:
        token = self.ledger.find(order.reservation_id) if order.reservation_id else None
        if token is None:
            logger.warning("No reservation recorded for cancelled order", order_id=str(order.id))
            return
        self.ledger.release(token, reason="payment_failed")

    def _confirm_held_stock(self, order: Order) -> None:
        token = self.ledger.find(order.reservation_id) if order.reservation_id else None
        if token is None:
            logger.error("No reservation recorded for paid order", order_id=str(order.id))
            return
        try:
            self.ledger.confirm(token)
            return
        except ReservationReleasedError:
            logger.warning("Reservation lapsed while payment was pending", order_id=str(order.id))

        try:
            self.ledger.confirm(self.ledger.reserve(token.lines))
        except (InsufficientStockError, StockContentionError) as exc:
            logger.error(
                "Paid order has no stock held; manual allocation required",
                order_id=str(order.id),
                error=exc.message,
            )

    def _confirmation(self, order: Order, replayed=False, instructions=None, notice=None) -> OrderConfirmation:
        pending = order.payment_status == "pending"
        return OrderConfirmation(
            order_id=str(order.id),
            status=order.status,
            payment_status=order.payment_status,
            payment_reference=order.payment_id,
            total=to_cents(order.pricing.grand_total),
            currency=order.pricing.currency,
            tracking_number=order.tracking_number or TRACKING_PENDING,
            redirect_target=order.redirect_target if pending else None,
            instructions=instructions,
            notice=notice,
            replayed=replayed,
        )

    def _notify(self, order: Order, confirmation: OrderConfirmation) -> None:
        if self.notifier is None:
            return
        self.notifier.order_confirmed({**confirmation.to_dict(), "email": order.customer_email})
