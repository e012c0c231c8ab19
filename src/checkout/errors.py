"""Checkout error taxonomy.

Every error surfaced to callers carries a machine-readable ``code`` and a
customer-safe ``message``. Provider internals go to the log, never into the
message.
"""


class CheckoutError(Exception):
    """Base class for errors returned from the checkout path."""

    code = "checkout_error"
    default_message = "Checkout could not be completed"

    def __init__(self, message: str | None = None, **details) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class CartValidationError(CheckoutError):
    """User-fixable cart problem: stale price, inactive product, not enough stock."""

    code = "validation_error"
    default_message = "The cart is no longer valid"


class InsufficientStockError(CheckoutError):
    code = "insufficient_stock"
    default_message = "Not enough stock to reserve the requested quantity"

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Only {available} unit(s) of {product_id} available, {requested} requested",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class StockContentionError(CheckoutError):
    code = "stock_contention"
    default_message = "Stock is being updated by other checkouts, please retry"


class ReservationReleasedError(CheckoutError):
    code = "reservation_released"
    default_message = "The stock reservation is no longer held"


class MissingIdempotencyKeyError(CheckoutError):
    code = "missing_idempotency_key"
    default_message = "Send an Idempotency-Key header or an idempotency_key field with every checkout"


class CatalogUnavailableError(CheckoutError):
    code = "catalog_unavailable"
    default_message = "Product information is unavailable right now, please retry"


class UnsupportedMethodError(CheckoutError):
    code = "unsupported_payment_method"
    default_message = "The payment method is not supported"

    def __init__(self, method: str) -> None:
        super().__init__(f"Payment method '{method}' is not supported", method=method)
        self.method = method


class PaymentDeclinedError(CheckoutError):
    code = "payment_declined"
    default_message = "The payment was declined"

    def __init__(self, reason: str | None = None) -> None:
        message = f"The payment was declined: {reason}" if reason else None
        super().__init__(message)
        self.reason = reason


class PaymentPendingTimeout(CheckoutError):
    """The provider did not answer in time; the order waits for reconciliation."""

    code = "payment_pending_timeout"
    default_message = "Payment confirmation is delayed; the order will update once the provider responds"


class PersistenceError(CheckoutError):
    code = "persistence_failed"
    default_message = "The order could not be saved"


class LabelGenerationError(CheckoutError):
    code = "label_generation_failed"
    default_message = "The shipping label could not be issued yet"


class OrderNotFoundError(CheckoutError):
    code = "order_not_found"
    default_message = "Order not found"


class OrderTransitionError(CheckoutError):
    code = "invalid_transition"
    default_message = "The order cannot move to the requested state"


class CheckoutAbortedError(CheckoutError):
    code = "checkout_aborted"
    default_message = "The checkout was aborted"
