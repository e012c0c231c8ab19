"""Notification port: abstract interface for customer notifications."""

from abc import ABC, abstractmethod


class NotificationGateway(ABC):
    """Abstract interface for notification adapters."""

    @abstractmethod
    def send_order_confirmation(self, order: dict) -> None:
        """Tell the customer their order was received.

        ``order`` is a plain snapshot (order_id, email, status, total,
        tracking_number, ...) so adapters never touch domain objects.
        """
        ...
