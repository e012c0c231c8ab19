"""Payment attempt and processor result types.

A ``PaymentAttempt`` is built once per order-creation request. Its
idempotency key is the request's own key, so a client retry reuses it and
never produces a second capture, while a new checkout of the same cart gets a
new key and a new charge.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class PaymentStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentAttempt:
    idempotency_key: str
    method: str
    amount: Decimal
    currency: str = "SEK"
    status: PaymentStatus = PaymentStatus.PENDING
    provider_reference: str | None = None


@dataclass(frozen=True)
class ProcessResult:
    status: PaymentStatus
    provider_reference: str | None = None
    redirect_target: str | None = None
    failure_reason: str | None = None
    instructions: str | None = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.SUCCEEDED

    @property
    def pending(self) -> bool:
        return self.status == PaymentStatus.PENDING


def derive_idempotency_key(request) -> str:
    """Return the key that identifies this checkout request."""
    if not request.idempotency_key:
        raise ValueError("A checkout request needs an idempotency key")
    return request.idempotency_key
