"""Order status transitions — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from preorders.domain import preorders
from preorders.order.capacity import DailyBookings, bookings_for
from preorders.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@preorders.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    new_status = String(required=True, max_length=50)
    expected_status = String(max_length=50)  # guard against acting on a stale read
    note = Text()


@preorders.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        order.transition_to(
            command.new_status,
            note=command.note,
            expected_status=command.expected_status,
        )

        if order.status == OrderStatus.CANCELLED.value:
            # A cancelled order no longer counts against the day's capacity
            ledger = bookings_for(order.stall_id, order.service_date)
            ledger.release()
            current_domain.repository_for(DailyBookings).add(ledger)

        repo.add(order)
        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
        )
        return str(order.id)
