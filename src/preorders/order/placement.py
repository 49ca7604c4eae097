"""Order placement — command and handler.

Turns a live cart into a pending order. Items and schedule are validated
first; an order is only built when neither side has a blocking finding. The
day's booking ledger, the new order and the emptied cart are persisted in the
same unit of work.
"""

from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Text
from protean.utils.globals import current_domain

from preorders.cart.cart import Cart, CartStatus
from preorders.catalog import get_catalog
from preorders.domain import preorders
from preorders.order.capacity import DailyBookings, bookings_for
from preorders.order.order import Order
from preorders.utils.clock import utc_now
from preorders.validation.availability import LineItem, validate_items
from preorders.validation.result import ValidationResult
from preorders.validation.scheduling import validate_schedule

logger = structlog.get_logger(__name__)


@dataclass
class PlacementOutcome:
    """What a placement attempt produced: an order id, or the findings that blocked it."""

    validation: ValidationResult = field(default_factory=ValidationResult)
    order_id: str | None = None
    order: Order | None = None

    @property
    def placed(self) -> bool:
        return self.order_id is not None


@preorders.command(part_of="Order")
class PlaceOrder:
    cart_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime(required=True)
    instructions = Text()


def _check_cart(cart: Cart, stall_id, result: ValidationResult) -> None:
    if CartStatus(cart.status) == CartStatus.MERGED:
        result.block("Cart was merged into another cart")
    elif not cart.is_live(utc_now()):
        result.block("Cart has expired")
    elif not cart.items:
        result.block("Cart is empty")
    elif any(str(item.stall_id) != str(stall_id) for item in cart.items):
        result.block(f"Cart contains items from a stall other than {stall_id}")


@preorders.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.get(command.cart_id)

        outcome = PlacementOutcome()
        _check_cart(cart, command.stall_id, outcome.validation)
        if not outcome.validation.valid:
            return outcome

        outcome.validation.merge(
            validate_items([LineItem.from_cart_item(item) for item in cart.items]),
            validate_schedule(command.stall_id, command.requested_for, item_count=cart.item_count),
        )
        if not outcome.validation.valid:
            return outcome

        stall = get_catalog().get_stall(command.stall_id)
        order = Order.place(
            customer_id=cart.customer_id,
            stall_id=command.stall_id,
            lines=cart.items,
            requested_for=command.requested_for,
            timezone=stall.timezone,
            instructions=command.instructions,
            cart_id=str(cart.id),
        )

        ledger = bookings_for(command.stall_id, order.service_date)
        try:
            ledger.reserve(stall.capacity_per_day)
        except ValidationError as exc:
            for messages in exc.messages.values():
                outcome.validation.errors.extend(messages)
            return outcome

        cart.clear()

        current_domain.repository_for(DailyBookings).add(ledger)
        current_domain.repository_for(Order).add(order)
        cart_repo.add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            cart_id=str(cart.id),
            stall_id=str(command.stall_id),
            service_date=order.service_date,
            total=order.pricing.total,
            warnings=len(outcome.validation.warnings),
        )
        outcome.order_id = str(order.id)
        return outcome
