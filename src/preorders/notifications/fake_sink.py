"""Fake notification sink — records notices for testing."""

from preorders.notifications.port import NotificationSink, OrderNotice


class NotificationDeliveryFailed(Exception):
    """Raised by the fake sink when configured to fail."""


class FakeNotificationSink(NotificationSink):
    """Sink that keeps delivered notices in memory for test assertions."""

    def __init__(self):
        self.delivered: list[OrderNotice] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake sink behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def deliver(self, notice: OrderNotice) -> None:
        if not self.should_succeed:
            raise NotificationDeliveryFailed(self.failure_reason)
        self.delivered.append(notice)

    def notices_for(self, order_id) -> list[OrderNotice]:
        return [notice for notice in self.delivered if notice.order_id == str(order_id)]

    def reset(self):
        """Clear delivered notices (useful between tests)."""
        self.delivered.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
