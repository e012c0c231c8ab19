"""FastAPI routes for the Checkout domain.

Handlers are plain functions: the saga makes blocking provider calls and
waits on locks, so FastAPI runs them in its threadpool instead of on the
event loop.
"""

import json
from datetime import UTC, datetime

from fastapi import APIRouter, Header, HTTPException

from checkout.api.schemas import (
    CountResponse,
    CreateOrderRequest,
    OrderConfirmationResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentMethodsResponse,
    PaymentWebhookRequest,
    UpdateOrderStatusRequest,
)
from checkout.composition import get_checkout
from checkout.domain import logger
from checkout.errors import (
    CartValidationError,
    CatalogUnavailableError,
    CheckoutError,
    InsufficientStockError,
    MissingIdempotencyKeyError,
    OrderNotFoundError,
    OrderTransitionError,
    PaymentDeclinedError,
    PersistenceError,
    StockContentionError,
    UnsupportedMethodError,
)
from checkout.order.order import Order
from checkout.payments.gateway import get_gateway
from checkout.saga import contracts as saga

router = APIRouter(prefix="/checkout", tags=["checkout"])

_STATUS_CODES = {
    CartValidationError: 422,
    InsufficientStockError: 409,
    MissingIdempotencyKeyError: 400,
    StockContentionError: 409,
    PaymentDeclinedError: 402,
    UnsupportedMethodError: 400,
    OrderNotFoundError: 404,
    OrderTransitionError: 409,
    PersistenceError: 503,
    CatalogUnavailableError: 503,
}


def _http_error(exc: CheckoutError) -> HTTPException:
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 500)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_reference=order.payment_id,
        shipping_option=order.shipping_option,
        carrier_code=order.carrier_code,
        tracking_number=order.tracking_number,
        label_status=order.label_status,
        subtotal=order.pricing.subtotal,
        tax_total=order.pricing.tax_total,
        shipping_cost=order.pricing.shipping_cost,
        grand_total=order.pricing.grand_total,
        currency=order.pricing.currency,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                weight_kg=item.weight_kg,
            )
            for item in order.items
        ],
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@router.post("/orders", status_code=201, response_model=OrderConfirmationResponse)
def create_order(
    body: CreateOrderRequest,
    idempotency_key: str | None = Header(default=None),
) -> OrderConfirmationResponse:
    key = body.idempotency_key or idempotency_key
    if not key:
        raise _http_error(MissingIdempotencyKeyError())

    address = body.customer.shipping_address
    request = saga.CreateOrderRequest(
        cart=saga.CartSnapshot.of(*[(line.product_id, line.quantity, line.unit_price) for line in body.items]),
        customer=saga.CustomerInfo(
            customer_id=body.customer.customer_id,
            email=body.customer.email,
            name=body.customer.name,
            shipping_address=saga.Address(
                street=address.street,
                city=address.city,
                postal_code=address.postal_code,
                country=address.country.upper(),
                name=address.name,
            ),
        ),
        payment_method=body.payment_method,
        shipping_option=body.shipping_option,
        idempotency_key=key,
    )
    try:
        confirmation = get_checkout().create_order(request)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return OrderConfirmationResponse(**confirmation.to_dict())


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    try:
        order = get_checkout().store.get(order_id)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return _order_response(order)


@router.post("/orders/{order_id}/reconcile", response_model=OrderResponse)
def reconcile_order(order_id: str) -> OrderResponse:
    try:
        order = get_checkout().reconcile_pending_payment(order_id)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return _order_response(order)


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderResponse:
    try:
        order = get_checkout().store.update_status(order_id, body.status, reason=body.reason)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return _order_response(order)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
@router.get("/payment-methods", response_model=PaymentMethodsResponse)
def payment_methods() -> PaymentMethodsResponse:
    return PaymentMethodsResponse(methods=get_checkout().registry.supported_methods())


@router.post("/payments/webhook", response_model=OrderResponse)
def payment_webhook(
    body: PaymentWebhookRequest,
    x_gateway_signature: str = Header(default=""),
) -> OrderResponse:
    """Provider callback: re-verify the payment and reconcile its order."""
    if not get_gateway().verify_webhook_signature(json.dumps(body.model_dump()), x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.info("Payment webhook received", reference=body.reference, status=body.status)
    try:
        order = get_checkout().reconcile_payment_reference(body.reference)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return _order_response(order)


@router.post("/payments/bank-transfers/{reference}/received", response_model=OrderResponse)
def bank_transfer_received(reference: str) -> OrderResponse:
    try:
        order = get_checkout().mark_transfer_received(reference)
    except CheckoutError as exc:
        raise _http_error(exc) from exc
    return _order_response(order)


# ---------------------------------------------------------------------------
# Maintenance (background jobs)
# ---------------------------------------------------------------------------
@router.post("/maintenance/expire-reservations", response_model=CountResponse)
def expire_reservations() -> CountResponse:
    return CountResponse(count=get_checkout().expire_reservations(datetime.now(UTC)))


@router.post("/maintenance/retry-labels", response_model=CountResponse)
def retry_labels() -> CountResponse:
    return CountResponse(count=get_checkout().retry_pending_labels())


@router.post("/maintenance/reconcile-payments", response_model=CountResponse)
def reconcile_payments() -> CountResponse:
    return CountResponse(count=get_checkout().reconcile_pending_payments())
