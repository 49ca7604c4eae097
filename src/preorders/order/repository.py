"""Repository for the Order aggregate."""

import structlog

from preorders.domain import preorders
from preorders.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

_SCAN_LIMIT = 10_000


def _scan(query, lookup: str, **filters) -> list[Order]:
    items = query.filter(**filters).limit(_SCAN_LIMIT).all().items
    if len(items) >= _SCAN_LIMIT:
        logger.warning("order_scan_truncated", lookup=lookup, limit=_SCAN_LIMIT, **filters)
    return items


@preorders.repository(part_of=Order)
class OrderRepository:
    """Order lookups used by capacity and conflict checks."""

    def open_for_stall(self, stall_id, service_dates=None) -> list[Order]:
        """Non-cancelled orders at ``stall_id``, optionally limited to the given stall-local days."""
        filters = {"stall_id": str(stall_id)}
        if service_dates is not None:
            filters["service_date__in"] = sorted(set(service_dates))
        orders = _scan(self._dao.query, "open_for_stall", **filters)
        return [order for order in orders if order.status != OrderStatus.CANCELLED.value]

    def for_customer(self, customer_id) -> list[Order]:
        """Every order placed by ``customer_id``, newest first."""
        orders = _scan(self._dao.query, "for_customer", customer_id=str(customer_id))
        return sorted(orders, key=lambda order: order.created_at, reverse=True)
