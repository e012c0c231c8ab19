"""Payment processors: one small class per behavioural variant.

Every processor answers the same questions: ``process`` starts a payment
for an attempt, ``status`` reports where a provider reference stands
(pending, succeeded or failed) and ``verify`` says whether it has been paid. The variant is carried by ``kind`` so callers can reason about the
outcome without knowing which provider sits behind a method:

- SYNCHRONOUS (card): ``process`` captures or declines on the spot
- REDIRECT (Swish, Klarna): ``process`` hands back a redirect target and
  stays pending until ``verify`` sees the customer approve
- MANUAL (bank transfer): pending with a reference until an operator marks
  the transfer as received

``process`` is never retried, since a repeated capture could charge twice.
``status`` and ``verify`` are read-only and retried with backoff on transient
errors.
"""

import threading
import time
from abc import ABC, abstractmethod
from enum import Enum

import structlog

from checkout.payments.attempt import PaymentAttempt, PaymentStatus, ProcessResult
from checkout.payments.gateway.port import GatewayError, GatewayTimeout, PaymentGateway
from checkout.utils.retry import call_with_retry

logger = structlog.get_logger(__name__)


class ProcessorKind(Enum):
    SYNCHRONOUS = "synchronous"
    REDIRECT = "redirect"
    MANUAL = "manual"


class PaymentProcessor(ABC):
    kind: ProcessorKind

    def __init__(self, method: str) -> None:
        self.method = method

    @abstractmethod
    def process(self, attempt: PaymentAttempt) -> ProcessResult: ...

    @abstractmethod
    def status(self, reference: str) -> PaymentStatus: ...

    def verify(self, reference: str) -> bool:
        return self.status(reference) == PaymentStatus.SUCCEEDED


class _GatewayBackedProcessor(PaymentProcessor):
    def __init__(
        self,
        method: str,
        gateway: PaymentGateway,
        timeout: float = 10.0,
        verify_attempts: int = 3,
        backoff_seconds: float = 0.25,
        sleep=time.sleep,
    ) -> None:
        super().__init__(method)
        self.gateway = gateway
        self.timeout = timeout
        self.verify_attempts = verify_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def status(self, reference: str) -> PaymentStatus:
        try:
            reported = call_with_retry(
                lambda: self.gateway.get_status(reference, timeout=self.timeout),
                attempts=self.verify_attempts,
                backoff_seconds=self.backoff_seconds,
                retry_on=(GatewayError,),
                operation=f"verify_{self.method}",
                sleep=self._sleep,
            )
        except GatewayError:
            logger.warning("Payment provider unreachable during verify", method=self.method, reference=reference)
            return PaymentStatus.PENDING
        try:
            return PaymentStatus(reported)
        except ValueError:
            logger.warning(
                "Unknown payment status reported", method=self.method, reference=reference, status=reported
            )
            return PaymentStatus.PENDING


class CardProcessor(_GatewayBackedProcessor):
    kind = ProcessorKind.SYNCHRONOUS

    def process(self, attempt: PaymentAttempt) -> ProcessResult:
        try:
            charge = self.gateway.create_charge(
                amount=float(attempt.amount),
                currency=attempt.currency,
                payment_method_type=self.method,
                idempotency_key=attempt.idempotency_key,
                timeout=self.timeout,
            )
        except GatewayError as exc:
            # The capture may have gone through; only verify can tell.
            logger.warning(
                "Card capture outcome unknown",
                idempotency_key=attempt.idempotency_key,
                timeout=isinstance(exc, GatewayTimeout),
                error=str(exc),
            )
            return ProcessResult(
                status=PaymentStatus.PENDING,
                provider_reference=attempt.idempotency_key,
                timed_out=True,
            )

        if charge.success:
            return ProcessResult(
                status=PaymentStatus.SUCCEEDED,
                provider_reference=charge.gateway_transaction_id,
            )
        return ProcessResult(
            status=PaymentStatus.FAILED,
            provider_reference=charge.gateway_transaction_id,
            failure_reason=charge.failure_reason,
        )


class RedirectProcessor(_GatewayBackedProcessor):
    kind = ProcessorKind.REDIRECT

    def process(self, attempt: PaymentAttempt) -> ProcessResult:
        try:
            session = self.gateway.create_session(
                amount=float(attempt.amount),
                currency=attempt.currency,
                payment_method_type=self.method,
                idempotency_key=attempt.idempotency_key,
                timeout=self.timeout,
            )
        except GatewayError as exc:
            logger.warning(
                "Payment session could not be opened",
                method=self.method,
                idempotency_key=attempt.idempotency_key,
                error=str(exc),
            )
            return ProcessResult(
                status=PaymentStatus.FAILED,
                failure_reason="Payment provider unavailable",
            )

        return ProcessResult(
            status=PaymentStatus.PENDING,
            provider_reference=session.session_id,
            redirect_target=session.redirect_url,
        )


class ManualProcessor(PaymentProcessor):
    """Bank transfer. Never resolves on its own."""

    kind = ProcessorKind.MANUAL

    def __init__(self, method: str = "bank-transfer", clock=time.time) -> None:
        super().__init__(method)
        self._clock = clock
        self._received: set[str] = set()
        self._lock = threading.Lock()

    def process(self, attempt: PaymentAttempt) -> ProcessResult:
        reference = self._reference_for(attempt.idempotency_key)
        return ProcessResult(
            status=PaymentStatus.PENDING,
            provider_reference=reference,
            instructions=(
                f"Transfer {attempt.amount:.2f} {attempt.currency} and quote reference {reference} "
                "as the payment message."
            ),
        )

    def status(self, reference: str) -> PaymentStatus:
        with self._lock:
            return PaymentStatus.SUCCEEDED if reference in self._received else PaymentStatus.PENDING

    def mark_received(self, reference: str) -> None:
        """Operator action: the transfer for ``reference`` has reached the account."""
        with self._lock:
            self._received.add(reference)
        logger.info("Bank transfer marked received", reference=reference)

    def _reference_for(self, key: str) -> str:
        stamp = str(int(self._clock() * 1000))[-6:]
        return f"ORDER-{key[-8:].upper()}-{stamp}"
