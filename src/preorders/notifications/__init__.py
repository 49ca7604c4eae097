"""Notification sink factory.

Provides get_sink() / set_sink() to swap implementations:
- FakeNotificationSink for development and testing
- an email or webhook dispatcher in production
"""

from preorders.notifications.fake_sink import FakeNotificationSink
from preorders.notifications.port import NotificationSink

_current_sink: NotificationSink | None = None


def get_sink() -> NotificationSink:
    """Return the current notification sink. Defaults to FakeNotificationSink."""
    global _current_sink
    if _current_sink is None:
        _current_sink = FakeNotificationSink()
    return _current_sink


def set_sink(sink: NotificationSink) -> None:
    """Override the active notification sink (useful for tests)."""
    global _current_sink
    _current_sink = sink


def reset_sink() -> None:
    """Reset to the default notification sink."""
    global _current_sink
    _current_sink = None
