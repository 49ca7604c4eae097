"""Repository for the Cart aggregate."""

import structlog

from preorders.cart.cart import Cart, CartStatus
from preorders.domain import preorders

logger = structlog.get_logger(__name__)

_SCAN_LIMIT = 10_000


def _scan(query, lookup: str, **filters) -> list[Cart]:
    items = query.filter(**filters).limit(_SCAN_LIMIT).all().items
    if len(items) >= _SCAN_LIMIT:
        logger.warning("cart_scan_truncated", lookup=lookup, limit=_SCAN_LIMIT, **filters)
    return items


@preorders.repository(part_of=Cart)
class CartRepository:
    """Cart lookups by owner and lifecycle status."""

    def active_for(self, customer_id) -> list[Cart]:
        """Every cart of ``customer_id`` still flagged Active, live or past its expiry."""
        return _scan(
            self._dao.query,
            "active_for",
            customer_id=str(customer_id),
            status=CartStatus.ACTIVE.value,
        )

    def stale(self, as_of) -> list[Cart]:
        """Active carts whose expiry has passed by ``as_of``."""
        carts = _scan(self._dao.query, "stale", status=CartStatus.ACTIVE.value)
        return [cart for cart in carts if not cart.is_live(as_of)]
