"""Notification sink port — abstract interface for order notices."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OrderNotice:
    """Emitted after an order is placed and after every status change."""

    order_id: str
    customer_id: str
    stall_id: str
    new_status: str


class NotificationSink(ABC):
    """Abstract interface for notice delivery adapters (email, webhook, ...)."""

    @abstractmethod
    def deliver(self, notice: OrderNotice) -> None:
        """Deliver ``notice``. May raise; callers treat failures as non-fatal."""
        ...
