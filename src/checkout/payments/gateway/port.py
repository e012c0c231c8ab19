"""Payment gateway port (abstract interface).

Defines the contract every payment provider adapter implements. Processors
program against this port; adapters are swapped through ``set_gateway()``.

Transient failures are reported as ``GatewayTimeout`` or
``GatewayUnavailable``. A declined charge is a normal ``ChargeResult``, not
an exception.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayError(Exception):
    """Base class for provider transport failures."""


class GatewayTimeout(GatewayError):
    """The provider did not answer within the request timeout."""


class GatewayUnavailable(GatewayError):
    """The provider could not be reached."""


@dataclass(frozen=True)
class ChargeResult:
    """Result of a synchronous capture."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class SessionResult:
    """A hosted payment session the customer completes elsewhere."""

    session_id: str
    redirect_url: str
    gateway_status: str = "pending"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        idempotency_key: str,
        timeout: float | None = None,
    ) -> ChargeResult:
        """Capture funds immediately."""
        ...

    @abstractmethod
    def create_session(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        idempotency_key: str,
        timeout: float | None = None,
    ) -> SessionResult:
        """Open a redirect or push session for the customer to approve."""
        ...

    @abstractmethod
    def get_status(self, reference: str, timeout: float | None = None) -> str:
        """Return ``succeeded``, ``failed`` or ``pending`` for a charge or session."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
