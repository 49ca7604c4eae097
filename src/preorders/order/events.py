"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from preorders.domain import preorders


@preorders.event(part_of="Order")
class OrderPlaced:
    """A validated cart was turned into a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(required=True)
    requested_for = DateTime(required=True)
    service_date = String(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price, line_total}
    subtotal = Integer(required=True)
    tax = Integer(required=True)
    total = Integer(required=True)
    currency = String(max_length=3)
    placed_at = DateTime(required=True)


@preorders.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along its lifecycle; one event per history entry."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = Text()
    changed_at = DateTime(required=True)
