"""Fire-and-forget notification dispatch.

Sends run on a small thread pool. A failed send is logged and dropped; it
never blocks or fails the checkout that triggered it.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

import structlog

from checkout.notifications.port import NotificationGateway

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, gateway: NotificationGateway, max_workers: int = 2) -> None:
        self.gateway = gateway
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="checkout-notify")
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

    def order_confirmed(self, order: dict) -> None:
        future = self._executor.submit(self._send, order)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def wait(self, timeout: float | None = None) -> None:
        """Block until queued sends have finished (tests and shutdown)."""
        with self._pending_lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    @property
    def in_flight(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _send(self, order: dict) -> None:
        try:
            self.gateway.send_order_confirmation(order)
        except Exception as exc:
            logger.warning("Order confirmation not delivered", order_id=order.get("order_id"), error=str(exc))
