"""Caller-facing API of the preorders engine.

Every write goes through ``current_domain.process`` while holding the record
locks of everything it reads and writes, so the whole read-modify-write,
including the unit-of-work commit, runs without interleaving for those
records. Version conflicts raised by the store are retried a bounded number
of times, then surfaced as ``ConcurrencyConflict``.

Must be called inside an active domain context.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from preorders.cart.cart import Cart, compute_item_count, compute_total
from preorders.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from preorders.cart.management import ClearCart, ExpireCart, ExtendCart, GetOrCreateCart, MergeCarts
from preorders.cart.reconciliation import ReconcileCart, ReconciliationReport
from preorders.catalog import get_catalog
from preorders.errors import ConcurrencyConflict
from preorders.order.order import Order, OrderStatus
from preorders.order.placement import PlaceOrder, PlacementOutcome
from preorders.order.transitions import TransitionOrder
from preorders.settings import get_settings
from preorders.utils.clock import as_utc, service_date, utc_now
from preorders.utils.locks import bookings_key, cart_key, customer_key, order_key, record_locks
from preorders.utils.logging import bound_context
from preorders.validation.result import ValidationResult

logger = structlog.get_logger(__name__)

__all__ = [
    "add_item",
    "clear_cart",
    "compute_item_count",
    "compute_total",
    "expire_stale_carts",
    "extend_cart",
    "get_cart",
    "get_or_create_cart",
    "get_order",
    "merge_carts",
    "orders_for_customer",
    "place_order",
    "reconcile_cart",
    "remove_item",
    "transition_order",
    "update_quantity",
    "validate_and_create_order",
]


def _write(command, *keys):
    """Process ``command`` under the locks for ``keys``, retrying version conflicts."""
    attempts = get_settings().max_write_attempts
    for attempt in range(1, attempts + 1):
        with record_locks.hold(*keys):
            try:
                return current_domain.process(command, asynchronous=False)
            except ExpectedVersionError:
                logger.warning(
                    "write_conflict",
                    command=command.__class__.__name__,
                    keys=list(keys),
                    attempt=attempt,
                )
    raise ConcurrencyConflict(", ".join(keys), attempts)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_cart(cart_id) -> Cart:
    return current_domain.repository_for(Cart).get(str(cart_id))


def get_order(order_id) -> Order:
    return current_domain.repository_for(Order).get(str(order_id))


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------
def get_or_create_cart(customer_id) -> Cart:
    """The customer's live cart; never an expired one."""
    with bound_context(customer_id=str(customer_id)):
        cart_id = _write(GetOrCreateCart(customer_id=customer_id), customer_key(customer_id))
    return get_cart(cart_id)


def add_item(
    cart_id,
    product_id,
    stall_id,
    quantity,
    unit_price=None,
    requested_for=None,
    instructions=None,
) -> Cart:
    with bound_context(cart_id=str(cart_id)):
        _write(
            AddToCart(
                cart_id=cart_id,
                product_id=product_id,
                stall_id=stall_id,
                quantity=quantity,
                unit_price=unit_price,
                requested_for=requested_for,
                instructions=instructions,
            ),
            cart_key(cart_id),
        )
    return get_cart(cart_id)


def update_quantity(cart_id, product_id, stall_id, quantity, requested_for=None) -> Cart:
    with bound_context(cart_id=str(cart_id)):
        _write(
            UpdateCartQuantity(
                cart_id=cart_id,
                product_id=product_id,
                stall_id=stall_id,
                quantity=quantity,
                requested_for=requested_for,
            ),
            cart_key(cart_id),
        )
    return get_cart(cart_id)


def remove_item(cart_id, product_id, stall_id, requested_for=None) -> Cart:
    with bound_context(cart_id=str(cart_id)):
        _write(
            RemoveFromCart(cart_id=cart_id, product_id=product_id, stall_id=stall_id, requested_for=requested_for),
            cart_key(cart_id),
        )
    return get_cart(cart_id)


def clear_cart(cart_id) -> Cart:
    with bound_context(cart_id=str(cart_id)):
        _write(ClearCart(cart_id=cart_id), cart_key(cart_id))
    return get_cart(cart_id)


def merge_carts(cart_id, source_cart_id) -> Cart:
    """Fold ``source_cart_id`` into ``cart_id``; the source is closed as merged."""
    with bound_context(cart_id=str(cart_id), source_cart_id=str(source_cart_id)):
        _write(
            MergeCarts(cart_id=cart_id, source_cart_id=source_cart_id),
            cart_key(cart_id),
            cart_key(source_cart_id),
        )
    return get_cart(cart_id)


def extend_cart(cart_id, hours=None) -> Cart:
    with bound_context(cart_id=str(cart_id)):
        _write(ExtendCart(cart_id=cart_id, hours=hours), cart_key(cart_id))
    return get_cart(cart_id)


def expire_stale_carts(as_of=None) -> int:
    """Close every cart past its expiry by ``as_of`` (default: now). Returns how many were closed.

    Each cart is expired under its own lock and re-checked there, so a cart
    extended since the scan stays open.
    """
    now = as_utc(as_of) or utc_now()
    expired = 0
    for cart in current_domain.repository_for(Cart).stale(now):
        with bound_context(cart_id=str(cart.id)):
            if _write(ExpireCart(cart_id=cart.id, as_of=now), cart_key(cart.id)):
                expired += 1

    if expired:
        logger.info("stale_carts_expired", count=expired)
    return expired


def reconcile_cart(cart_id) -> ReconciliationReport:
    with bound_context(cart_id=str(cart_id)):
        return _write(ReconcileCart(cart_id=cart_id), cart_key(cart_id))


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def place_order(cart_id, stall_id, requested_for, instructions=None) -> PlacementOutcome:
    """Validate the cart and, when nothing blocks, create the order and empty the cart.

    Serialized per cart and per (stall, day) so the capacity check and the
    booking it gates cannot interleave with another placement for that day.
    """
    command = PlaceOrder(cart_id=cart_id, stall_id=stall_id, requested_for=requested_for, instructions=instructions)
    stall = get_catalog().get_stall(command.stall_id)
    day = service_date(command.requested_for, stall.timezone if stall else None)

    with bound_context(cart_id=str(cart_id), stall_id=str(stall_id), service_date=day):
        outcome = _write(command, cart_key(cart_id), bookings_key(stall_id, day))
        if outcome.placed:
            outcome.order = get_order(outcome.order_id)
        else:
            logger.info("order_rejected", errors=outcome.validation.errors)
    return outcome


def validate_and_create_order(cart_id, stall_id, requested_for, instructions=None) -> Order | ValidationResult:
    """The created order, or the validation findings that prevented it."""
    outcome = place_order(cart_id, stall_id, requested_for, instructions=instructions)
    return outcome.order if outcome.placed else outcome.validation


def transition_order(order_id, new_status, expected_status=None, note=None) -> Order:
    """Move an order along its lifecycle; raises ``IllegalTransition`` when not allowed."""
    if isinstance(new_status, OrderStatus):
        new_status = new_status.value
    if isinstance(expected_status, OrderStatus):
        expected_status = expected_status.value
    order = get_order(order_id)

    keys = [order_key(order_id)]
    if new_status == OrderStatus.CANCELLED.value:
        keys.append(bookings_key(order.stall_id, order.service_date))

    with bound_context(order_id=str(order_id)):
        _write(
            TransitionOrder(
                order_id=order_id,
                new_status=new_status,
                expected_status=expected_status,
                note=note,
            ),
            *keys,
        )
    return get_order(order_id)


def orders_for_customer(customer_id) -> list[Order]:
    """Every order ``customer_id`` has placed, newest first."""
    return current_domain.repository_for(Order).for_customer(customer_id)
