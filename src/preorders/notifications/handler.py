"""Order notices — forwards order lifecycle events to the notification sink.

Runs after the order is persisted. Delivery is best effort: a failing sink is
logged and never fails the placement or transition that raised the event.
"""

import structlog
from protean.utils.mixins import handle

from preorders.domain import preorders
from preorders.notifications import get_sink
from preorders.notifications.port import OrderNotice
from preorders.order.events import OrderPlaced, OrderStatusChanged
from preorders.order.order import Order

logger = structlog.get_logger(__name__)


def _dispatch(notice: OrderNotice) -> None:
    try:
        get_sink().deliver(notice)
    except Exception as exc:
        logger.error(
            "order_notice_failed",
            order_id=notice.order_id,
            new_status=notice.new_status,
            error=str(exc),
        )


@preorders.event_handler(part_of=Order)
class OrderNoticesHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        _dispatch(
            OrderNotice(
                order_id=str(event.order_id),
                customer_id=str(event.customer_id),
                stall_id=str(event.stall_id),
                new_status=event.status,
            )
        )

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        _dispatch(
            OrderNotice(
                order_id=str(event.order_id),
                customer_id=str(event.customer_id),
                stall_id=str(event.stall_id),
                new_status=event.new_status,
            )
        )
