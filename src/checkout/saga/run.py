"""One checkout run: its state machine and its undo stack.

Each committed step pushes the action that undoes it. On failure the stack
is unwound newest-first, so only steps that actually happened are undone.
Once the order is persisted the stack is cleared: nothing after that point
is compensated.
"""

import threading
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog

from checkout.errors import CheckoutAbortedError

logger = structlog.get_logger(__name__)


class CheckoutState(Enum):
    VALIDATING = "Validating"
    RESERVING = "Reserving"
    PAYING = "Paying"
    PERSISTING = "Persisting"
    LABEL_ISSUING = "LabelIssuing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    COMPENSATED = "Compensated"


_NEXT_STATES = {
    CheckoutState.VALIDATING: {CheckoutState.RESERVING},
    CheckoutState.RESERVING: {CheckoutState.PAYING},
    CheckoutState.PAYING: {CheckoutState.PERSISTING},
    CheckoutState.PERSISTING: {CheckoutState.LABEL_ISSUING, CheckoutState.COMPLETED},
    CheckoutState.LABEL_ISSUING: {CheckoutState.COMPLETED},
}

_TERMINAL = {CheckoutState.COMPLETED, CheckoutState.FAILED, CheckoutState.COMPENSATED}

# Abort is honoured only while nothing has been sent to a payment provider.
_ABORTABLE = {CheckoutState.VALIDATING, CheckoutState.RESERVING}


class CompensationStack:
    def __init__(self) -> None:
        self._actions: list[tuple[str, object]] = []

    def push(self, name: str, action) -> None:
        self._actions.append((name, action))

    def unwind(self) -> list[str]:
        """Run every pending compensation, newest first, and return their names."""
        undone = []
        while self._actions:
            name, action = self._actions.pop()
            try:
                action()
            except Exception as exc:
                logger.error("Compensation failed", compensation=name, error=str(exc))
                continue
            undone.append(name)
        return undone

    def clear(self) -> None:
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)


class CheckoutRun:
    def __init__(self, idempotency_key: str) -> None:
        self.run_id = str(uuid4())
        self.idempotency_key = idempotency_key
        self.state = CheckoutState.VALIDATING
        self.history: list[tuple[CheckoutState, datetime]] = [(self.state, datetime.now(UTC))]
        self.failure_reason: str | None = None
        self.compensations = CompensationStack()
        self.aborted = False
        self._lock = threading.RLock()

    @property
    def is_finished(self) -> bool:
        return self.state in _TERMINAL

    def advance(self, state: CheckoutState) -> None:
        with self._lock:
            if self.aborted:
                raise CheckoutAbortedError(run_id=self.run_id)
            if state not in _NEXT_STATES.get(self.state, set()):
                raise RuntimeError(f"Checkout cannot move from {self.state.value} to {state.value}")
            self._enter(state)

    def committed(self, name: str, compensation) -> None:
        """Record a step that took effect, with the action that undoes it."""
        with self._lock:
            if self.aborted:
                # Aborted while the step was in flight: undo it straight away
                compensation()
                raise CheckoutAbortedError(run_id=self.run_id)
            self.compensations.push(name, compensation)

    def settle(self) -> None:
        """The order exists; earlier steps are no longer undone."""
        with self._lock:
            self.compensations.clear()

    def fail(self, reason: str) -> list[str]:
        with self._lock:
            if self.is_finished:
                return []
            self.failure_reason = reason
            undone = self.compensations.unwind()
            self._enter(CheckoutState.COMPENSATED if undone else CheckoutState.FAILED)
            return undone

    def abort(self) -> bool:
        """Stop the run if payment has not started. Releases what it holds before returning."""
        with self._lock:
            if self.state not in _ABORTABLE or self.aborted:
                return False
            self.aborted = True
            self.failure_reason = "aborted"
            self.compensations.unwind()
            self._enter(CheckoutState.COMPENSATED)
            return True

    def _enter(self, state: CheckoutState) -> None:
        logger.info(
            "Checkout state changed",
            run_id=self.run_id,
            idempotency_key=self.idempotency_key,
            from_state=self.state.value,
            state=state.value,
        )
        self.state = state
        self.history.append((state, datetime.now(UTC)))

    @property
    def states(self) -> list[CheckoutState]:
        return [state for state, _ in self.history]
