"""Cart aggregate (CQRS) — the mutable pre-order basket of one customer.

A customer has at most one live cart at a time. A cart lives until its
expiry; once expired (or merged into another cart) it is closed for good and
a fresh cart is created on the next basket interaction. Placing an order
empties the cart in place so its identity and expiry survive.

Lines are identified by (product, stall, requested fulfilment time): adding a
line that matches an existing key grows that line instead of duplicating it.
"""

import json
from datetime import timedelta
from enum import Enum
from typing import NamedTuple

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from preorders.cart.events import (
    CartCleared,
    CartExpired,
    CartExtended,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartReconciled,
    CartsMerged,
)
from preorders.domain import preorders
from preorders.errors import CartClosed, ItemLimitExceeded
from preorders.settings import get_settings
from preorders.utils.clock import as_utc, utc_now


class CartStatus(Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    MERGED = "Merged"


class ItemKey(NamedTuple):
    """Identity of a cart line."""

    product_id: str
    stall_id: str
    requested_for: str | None  # ISO-8601, UTC

    @classmethod
    def of(cls, product_id, stall_id, requested_for=None) -> "ItemKey":
        moment = as_utc(requested_for)
        return cls(str(product_id), str(stall_id), moment.isoformat() if moment else None)


@preorders.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # cents, at the time of adding
    requested_for = DateTime()
    instructions = Text()
    added_at = DateTime()

    @property
    def key(self) -> ItemKey:
        return ItemKey.of(self.product_id, self.stall_id, self.requested_for)

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price


def _check_quantity(quantity, max_quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
    if quantity > max_quantity:
        raise ItemLimitExceeded({"quantity": [f"Quantity {quantity} exceeds the per-item limit of {max_quantity}"]})


@preorders.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    merged_into = Identifier()
    created_at = DateTime()
    updated_at = DateTime()
    expires_at = DateTime(required=True)

    @invariant.post
    def line_keys_must_be_unique(self):
        keys = [item.key for item in self.items]
        if len(keys) != len(set(keys)):
            raise ValidationError({"items": ["A cart cannot hold two lines for the same product, stall and time"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id, ttl_hours=None, now=None):
        now = as_utc(now) or utc_now()
        ttl_hours = ttl_hours if ttl_hours is not None else get_settings().cart_ttl_hours
        return cls(
            customer_id=customer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
        )

    # -------------------------------------------------------------------
    # Lifecycle queries
    # -------------------------------------------------------------------
    def is_live(self, now=None) -> bool:
        now = as_utc(now) or utc_now()
        return CartStatus(self.status) == CartStatus.ACTIVE and as_utc(self.expires_at) > now

    def _assert_live(self, now):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise CartClosed({"cart": [f"Cart is {self.status.lower()} and can no longer change"]})
        if as_utc(self.expires_at) <= now:
            raise CartClosed({"cart": ["Cart has expired"]})

    def find_item(self, product_id, stall_id, requested_for=None) -> CartItem | None:
        key = ItemKey.of(product_id, stall_id, requested_for)
        return next((i for i in self.items if i.key == key), None)

    # -------------------------------------------------------------------
    # Pure derivations
    # -------------------------------------------------------------------
    @property
    def total(self) -> int:
        """Sum of quantity × unit price over every line, in cents."""
        return sum(item.line_total for item in self.items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        product_id,
        stall_id,
        quantity,
        unit_price,
        requested_for=None,
        instructions=None,
        max_quantity=None,
    ):
        """Add a line, or grow the line with the same identity key."""
        now = utc_now()
        self._assert_live(now)
        max_quantity = max_quantity or get_settings().max_item_quantity
        _check_quantity(quantity, max_quantity)

        existing = self.find_item(product_id, stall_id, requested_for)
        if existing:
            new_quantity = existing.quantity + quantity
            if new_quantity > max_quantity:
                raise ItemLimitExceeded(
                    {
                        "quantity": [
                            f"Adding {quantity} would bring the line to {new_quantity}, "
                            f"above the per-item limit of {max_quantity}"
                        ]
                    }
                )
            existing.quantity = new_quantity
            if instructions:
                existing.instructions = instructions
        else:
            new_quantity = quantity
            self.add_items(
                CartItem(
                    product_id=product_id,
                    stall_id=stall_id,
                    quantity=quantity,
                    unit_price=unit_price,
                    requested_for=as_utc(requested_for),
                    instructions=instructions,
                    added_at=now,
                )
            )

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                stall_id=str(stall_id),
                requested_for=as_utc(requested_for),
                quantity_added=quantity,
                new_quantity=new_quantity,
            )
        )

    def update_quantity(self, product_id, stall_id, quantity, requested_for=None, max_quantity=None):
        """Set a line's quantity. Zero or less removes the line; an absent line is left alone."""
        now = utc_now()
        self._assert_live(now)

        item = self.find_item(product_id, stall_id, requested_for)
        if item is None:
            return

        if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity <= 0:
            self._drop(item, now)
            return

        _check_quantity(quantity, max_quantity or get_settings().max_item_quantity)
        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = now

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(item.product_id),
                stall_id=str(item.stall_id),
                requested_for=item.requested_for,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, stall_id, requested_for=None):
        """Remove a line. Removing a line that is not there is a no-op."""
        now = utc_now()
        self._assert_live(now)

        item = self.find_item(product_id, stall_id, requested_for)
        if item is not None:
            self._drop(item, now)

    def _drop(self, item, now):
        self.remove_items(item)
        self.updated_at = now
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(item.product_id),
                stall_id=str(item.stall_id),
                requested_for=item.requested_for,
            )
        )

    def clear(self):
        """Empty the cart in place, keeping its identity and expiry."""
        now = utc_now()
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = now

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    def drop_items(self, removals):
        """Remove the lines named in ``removals`` (``(ItemKey, reason)`` pairs) and report them."""
        now = utc_now()
        report = []
        for key, reason in removals:
            item = next((i for i in self.items if i.key == key), None)
            if item is None:
                continue
            self.remove_items(item)
            report.append(
                {
                    "product_id": key.product_id,
                    "stall_id": key.stall_id,
                    "requested_for": key.requested_for,
                    "reason": reason,
                }
            )

        if report:
            self.updated_at = now
            self.raise_(CartReconciled(cart_id=str(self.id), removed=json.dumps(report)))

    # -------------------------------------------------------------------
    # Merging and expiry
    # -------------------------------------------------------------------
    def merge_from(self, source, max_quantity=None):
        """Fold every line of ``source`` into this cart and close ``source``."""
        now = utc_now()
        self._assert_live(now)
        if str(source.id) == str(self.id):
            raise ValidationError({"source_cart_id": ["A cart cannot be merged into itself"]})
        if CartStatus(source.status) == CartStatus.MERGED:
            raise CartClosed({"source_cart_id": ["Source cart was already merged"]})

        max_quantity = max_quantity or get_settings().max_item_quantity
        for line in source.items:
            existing = self.find_item(line.product_id, line.stall_id, line.requested_for)
            if existing:
                combined = existing.quantity + line.quantity
                if combined > max_quantity:
                    raise ItemLimitExceeded(
                        {"quantity": [f"Merged line would hold {combined}, above the per-item limit of {max_quantity}"]}
                    )
                existing.quantity = combined
                if line.instructions:
                    existing.instructions = line.instructions
            else:
                self.add_items(
                    CartItem(
                        product_id=line.product_id,
                        stall_id=line.stall_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        requested_for=line.requested_for,
                        instructions=line.instructions,
                        added_at=now,
                    )
                )

        merged_count = len(source.items)
        for line in list(source.items):
            source.remove_items(line)
        source.status = CartStatus.MERGED.value
        source.merged_into = str(self.id)
        source.updated_at = now
        self.updated_at = now

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(source.id),
                items_merged_count=merged_count,
            )
        )

    def extend(self, hours=None):
        """Push expiry to ``hours`` from now. Only a live cart can be extended."""
        now = utc_now()
        self._assert_live(now)
        hours = hours if hours is not None else get_settings().cart_ttl_hours
        if hours <= 0:
            raise ValidationError({"hours": ["Extension must be a positive number of hours"]})

        self.expires_at = now + timedelta(hours=hours)
        self.updated_at = now
        self.raise_(CartExtended(cart_id=str(self.id), expires_at=self.expires_at))

    def expire(self, now=None):
        """Close a cart whose expiry has passed."""
        now = as_utc(now) or utc_now()
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise CartClosed({"status": ["Only active carts can expire"]})
        if as_utc(self.expires_at) > now:
            raise ValidationError({"expires_at": ["Cart has not reached its expiry yet"]})

        self.status = CartStatus.EXPIRED.value
        self.updated_at = now
        self.raise_(
            CartExpired(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                expired_at=now,
            )
        )


def compute_total(cart: Cart) -> int:
    """Cart total in cents; no side effects."""
    return cart.total


def compute_item_count(cart: Cart) -> int:
    """Number of units across every cart line; no side effects."""
    return cart.item_count
