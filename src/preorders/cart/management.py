"""Cart management — commands and handler.

Handles cart lookup/creation, clearing, merging, expiry extension and the
closing of carts past their expiry.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from preorders.cart.cart import Cart, CartStatus
from preorders.domain import preorders
from preorders.utils.clock import as_utc, utc_now

logger = structlog.get_logger(__name__)


@preorders.command(part_of="Cart")
class GetOrCreateCart:
    """Return the customer's live cart, opening a new one when there is none."""

    customer_id = Identifier(required=True)


@preorders.command(part_of="Cart")
class ClearCart:
    cart_id = Identifier(required=True)


@preorders.command(part_of="Cart")
class MergeCarts:
    """Fold the lines of ``source_cart_id`` into ``cart_id`` and close the source."""

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)


@preorders.command(part_of="Cart")
class ExtendCart:
    cart_id = Identifier(required=True)
    hours = Integer(min_value=1)


@preorders.command(part_of="Cart")
class ExpireCart:
    """Close ``cart_id`` when it is still active and its expiry has passed by ``as_of``."""

    cart_id = Identifier(required=True)
    as_of = DateTime()


@preorders.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(GetOrCreateCart)
    def get_or_create_cart(self, command):
        repo = current_domain.repository_for(Cart)
        now = utc_now()

        live = None
        for cart in repo.active_for(command.customer_id):
            if cart.is_live(now) and live is None:
                live = cart
            elif not cart.is_live(now):
                # An expired cart is never revived
                cart.expire(now)
                repo.add(cart)

        if live is not None:
            return str(live.id)

        cart = Cart.create(customer_id=command.customer_id, now=now)
        repo.add(cart)
        logger.info("cart_created", cart_id=str(cart.id), customer_id=str(command.customer_id))
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)

    @handle(MergeCarts)
    def merge_carts(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        source = repo.get(command.source_cart_id)

        cart.merge_from(source)
        repo.add(source)
        repo.add(cart)

    @handle(ExtendCart)
    def extend_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.extend(hours=command.hours)
        repo.add(cart)
        return cart.expires_at

    @handle(ExpireCart)
    def expire_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        now = as_utc(command.as_of) or utc_now()

        # Extended, merged or already closed since the caller looked
        if CartStatus(cart.status) != CartStatus.ACTIVE or cart.is_live(now):
            return False

        cart.expire(now)
        repo.add(cart)
        return True
