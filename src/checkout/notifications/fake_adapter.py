"""Fake notification adapter: records confirmations for testing."""

import threading

from checkout.notifications.port import NotificationGateway


class FakeNotifier(NotificationGateway):
    """Notifier that records messages in memory for test assertions."""

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
        self._lock = threading.Lock()

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send_order_confirmation(self, order: dict) -> None:
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)
        with self._lock:
            self.sent.append(order)
