"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, Text

from preorders.domain import preorders


@preorders.event(part_of="Cart")
class CartItemAdded:
    """A product line was added to the cart, or an existing line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime()
    quantity_added = Integer(required=True)
    new_quantity = Integer(required=True)


@preorders.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of a cart line was set to a new value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@preorders.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime()


@preorders.event(part_of="Cart")
class CartCleared:
    """Every line was removed; the cart itself stays live."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@preorders.event(part_of="Cart")
class CartsMerged:
    """Lines of another cart were folded into this one."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)
    items_merged_count = Integer(required=True)


@preorders.event(part_of="Cart")
class CartExtended:
    """The cart's expiry was pushed further out."""

    __version__ = 1

    cart_id = Identifier(required=True)
    expires_at = DateTime(required=True)


@preorders.event(part_of="Cart")
class CartExpired:
    """The cart passed its expiry and was closed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    expired_at = DateTime(required=True)


@preorders.event(part_of="Cart")
class CartReconciled:
    """Lines that no longer pass catalogue checks were dropped from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    removed = Text(required=True)  # JSON: list of {product_id, stall_id, requested_for, reason}
