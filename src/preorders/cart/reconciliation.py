"""Cart reconciliation — re-check every cart line against the catalogue.

Lines whose product or stall can no longer be served, or whose requested time
has left the bookable window, are dropped from the cart. Every dropped line
is reported back with its reason; nothing is discarded silently.
"""

from dataclasses import dataclass, field
from datetime import timedelta

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from preorders.cart.cart import Cart, CartItem
from preorders.catalog import get_catalog
from preorders.domain import preorders
from preorders.settings import get_settings
from preorders.utils.clock import as_utc, day_name, to_local, utc_now

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RemovedItem:
    product_id: str
    stall_id: str
    requested_for: str | None
    reason: str


@dataclass
class ReconciliationReport:
    cart_id: str
    removed: list[RemovedItem] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed)


def _reason_to_drop(item: CartItem, catalog, settings, now) -> str | None:
    """First reason ``item`` can no longer be ordered, or None when it is still good."""
    product = catalog.get_product(item.product_id)
    if product is None:
        return "product no longer exists"
    if not product.is_active:
        return f"product {product.label} is {product.status}"
    if str(product.stall_id) != str(item.stall_id):
        return f"product {product.label} is no longer sold at this stall"
    if product.stock < item.quantity:
        return f"insufficient inventory for {product.label}: {product.stock} available, {item.quantity} requested"

    stall = catalog.get_stall(item.stall_id)
    if stall is None:
        return "stall no longer exists"
    if not stall.is_active:
        return f"stall {stall.label} is not accepting orders"

    requested_for = as_utc(item.requested_for)
    if requested_for is None:
        return None
    if requested_for <= now:
        return "requested time is in the past"
    if requested_for > now + timedelta(days=settings.booking_horizon_days):
        return f"requested time is more than {settings.booking_horizon_days} days ahead"

    day = day_name(to_local(requested_for, stall.timezone))
    hours = stall.hours_on(day)
    if hours is not None and hours.closed:
        return f"stall {stall.label} is closed on {day.capitalize()}"
    return None


def reconcile(cart: Cart, catalog=None, settings=None, now=None) -> ReconciliationReport:
    """Drop stale lines from ``cart`` in place and report what was removed."""
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    now = as_utc(now) or utc_now()

    removals = []
    for item in cart.items:
        reason = _reason_to_drop(item, catalog, settings, now)
        if reason:
            removals.append((item.key, reason))

    cart.drop_items(removals)
    return ReconciliationReport(
        cart_id=str(cart.id),
        removed=[RemovedItem(key.product_id, key.stall_id, key.requested_for, reason) for key, reason in removals],
    )


@preorders.command(part_of="Cart")
class ReconcileCart:
    cart_id = Identifier(required=True)


@preorders.command_handler(part_of=Cart)
class ReconcileCartHandler:
    @handle(ReconcileCart)
    def reconcile_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        report = reconcile(cart)
        if report.changed:
            repo.add(cart)
            logger.info("cart_reconciled", cart_id=report.cart_id, removed=len(report.removed))
        return report
