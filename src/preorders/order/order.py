"""Order aggregate — the immutable record a validated cart becomes.

Once placed, items, pricing and the stall/customer association never change.
Only the status moves, and every move appends exactly one entry to the
status history; earlier entries are never rewritten.

State Machine:
    PENDING → CONFIRMED → IN_PREPARATION → READY → COMPLETED
    IN_PREPARATION → COMPLETED
    CANCELLED (from PENDING, CONFIRMED)
"""

import json
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from preorders.domain import preorders
from preorders.errors import IllegalTransition
from preorders.order.events import OrderPlaced, OrderStatusChanged
from preorders.settings import get_settings
from preorders.utils.clock import as_utc, service_date, utc_now


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED},
    OrderStatus.IN_PREPARATION: {OrderStatus.READY, OrderStatus.COMPLETED},
    OrderStatus.READY: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def allowed_transitions(status) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS[OrderStatus(status)])


def compute_tax(subtotal: int, rate) -> int:
    """Tax in cents: ``subtotal × rate`` rounded half-up to the nearest cent."""
    amount = Decimal(subtotal) * Decimal(str(rate))
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@preorders.value_object(part_of="Order")
class OrderPricing:
    """Amounts in cents, fixed when the order is placed."""

    subtotal = Integer(required=True, min_value=0)
    tax = Integer(required=True, min_value=0)
    total = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="KES")

    @invariant.post
    def total_is_subtotal_plus_tax(self):
        if self.total != self.subtotal + self.tax:
            raise ValidationError({"total": ["Total must equal subtotal plus tax"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@preorders.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)


@preorders.entity(part_of="Order")
class StatusChange:
    """One entry of the append-only status history."""

    status = String(choices=OrderStatus, required=True)
    recorded_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=0)
    note = Text()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@preorders.aggregate
class Order:
    customer_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    cart_id = Identifier()
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    requested_for = DateTime(required=True)
    service_date = String(required=True, max_length=10)  # stall-local calendar day, ISO
    instructions = Text()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusChange)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["An order must contain at least one item"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        stall_id,
        lines,
        requested_for,
        timezone=None,
        instructions=None,
        cart_id=None,
        tax_rate=None,
        currency=None,
    ):
        """Build a pending order from validated cart lines.

        Args:
            lines: Iterable of objects with product_id, quantity and unit_price (cents).
            timezone: The stall's IANA zone, used to pin the order to a calendar day.
        """
        settings = get_settings()
        tax_rate = settings.tax_rate if tax_rate is None else tax_rate
        now = utc_now()
        requested_for = as_utc(requested_for)

        items = [
            OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.quantity * line.unit_price,
            )
            for line in lines
        ]
        if not items:
            raise ValidationError({"items": ["An order must contain at least one item"]})
        subtotal = sum(item.line_total for item in items)
        tax = compute_tax(subtotal, tax_rate)

        order = cls(
            customer_id=customer_id,
            stall_id=stall_id,
            cart_id=cart_id,
            items=items,
            pricing=OrderPricing(
                subtotal=subtotal,
                tax=tax,
                total=subtotal + tax,
                currency=currency or settings.currency,
            ),
            requested_for=requested_for,
            service_date=service_date(requested_for, timezone),
            instructions=instructions,
            status=OrderStatus.PENDING.value,
            status_history=[StatusChange(status=OrderStatus.PENDING.value, recorded_at=now, sequence=0)],
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                stall_id=str(stall_id),
                cart_id=str(cart_id) if cart_id else None,
                status=order.status,
                requested_for=requested_for,
                service_date=order.service_date,
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                            "line_total": item.line_total,
                        }
                        for item in items
                    ]
                ),
                subtotal=subtotal,
                tax=tax,
                total=subtotal + tax,
                currency=order.pricing.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    @property
    def history(self) -> list[StatusChange]:
        """Status history, oldest first."""
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def transition_to(self, new_status, note=None, at=None, expected_status=None):
        """Move to ``new_status`` and append one history entry.

        Raises ``IllegalTransition`` when ``new_status`` is unknown, not reachable
        from the current status, or when ``expected_status`` no longer matches.
        """
        current = OrderStatus(self.status)

        if expected_status is not None and str(expected_status) != current.value:
            raise IllegalTransition(
                {"status": [f"Order is {current.value}, not {expected_status}; refresh and retry"]}
            )

        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise IllegalTransition({"status": [f"Unknown order status: {new_status}"]}) from None

        if target not in _VALID_TRANSITIONS[current]:
            raise IllegalTransition({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        history = self.history
        at = as_utc(at) or utc_now()
        if history and at < as_utc(history[-1].recorded_at):
            raise ValidationError({"recorded_at": ["Status history timestamps must not go backwards"]})

        self.add_status_history(
            StatusChange(status=target.value, recorded_at=at, sequence=len(history), note=note)
        )
        self.status = target.value
        self.updated_at = at

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                stall_id=str(self.stall_id),
                previous_status=current.value,
                new_status=target.value,
                note=note,
                changed_at=at,
            )
        )
