"""Configurable fake payment gateway for development and testing.

Simulates a provider without external calls. Charges and sessions are
idempotent by key, like real providers: repeating a request with the same key
returns the original outcome instead of charging twice.

Failure modes:
- ``should_succeed=False``: charges are declined with ``failure_reason``
- ``simulate_timeout=True``: the charge is captured but the call times out
- ``unavailable=True``: every call raises ``GatewayUnavailable``
"""

import threading
from uuid import uuid4

from checkout.payments.gateway.port import (
    ChargeResult,
    GatewayTimeout,
    GatewayUnavailable,
    PaymentGateway,
    SessionResult,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.simulate_timeout: bool = False
        self.unavailable: bool = False
        self.calls: list[dict] = []
        self._charges: dict[str, ChargeResult] = {}
        self._sessions: dict[str, SessionResult] = {}
        self._statuses: dict[str, str] = {}
        self._lock = threading.Lock()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Card declined",
        simulate_timeout: bool = False,
        unavailable: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.simulate_timeout = simulate_timeout
        self.unavailable = unavailable

    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        idempotency_key: str,
        timeout: float | None = None,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "payment_method_type": payment_method_type,
                "idempotency_key": idempotency_key,
            }
        )
        if self.unavailable:
            raise GatewayUnavailable("Payment provider unreachable")

        with self._lock:
            result = self._charges.get(idempotency_key)
            if result is None:
                if self.should_succeed:
                    result = ChargeResult(
                        success=True,
                        gateway_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                        gateway_status="succeeded",
                    )
                else:
                    result = ChargeResult(
                        success=False,
                        gateway_status="failed",
                        failure_reason=self.failure_reason,
                    )
                self._charges[idempotency_key] = result
                self._statuses[idempotency_key] = result.gateway_status
                if result.gateway_transaction_id:
                    self._statuses[result.gateway_transaction_id] = result.gateway_status

        if self.simulate_timeout:
            raise GatewayTimeout(f"No response within {timeout}s")
        return result

    def create_session(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        idempotency_key: str,
        timeout: float | None = None,  # noqa: ARG002
    ) -> SessionResult:
        self.calls.append(
            {
                "method": "create_session",
                "amount": amount,
                "currency": currency,
                "payment_method_type": payment_method_type,
                "idempotency_key": idempotency_key,
            }
        )
        if self.unavailable:
            raise GatewayUnavailable("Payment provider unreachable")

        with self._lock:
            session = self._sessions.get(idempotency_key)
            if session is None:
                session_id = f"fake_sess_{uuid4().hex[:12]}"
                session = SessionResult(
                    session_id=session_id,
                    redirect_url=f"https://pay.fake-gateway.example.com/{payment_method_type}/{session_id}",
                )
                self._sessions[idempotency_key] = session
                self._statuses[session_id] = "pending"
        return session

    def get_status(self, reference: str, timeout: float | None = None) -> str:
        self.calls.append({"method": "get_status", "reference": reference})
        if self.unavailable:
            raise GatewayUnavailable("Payment provider unreachable")
        if self.simulate_timeout:
            raise GatewayTimeout(f"No response within {timeout}s")
        return self._statuses.get(reference, "pending")

    def complete_session(self, reference: str, succeeded: bool = True) -> None:
        """Simulate the customer approving (or rejecting) a hosted session."""
        self._statuses[reference] = "succeeded" if succeeded else "failed"

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
