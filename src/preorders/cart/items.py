"""Cart item management — commands and handler.

Unit prices are taken from the catalogue when a line is added; the price
stamped on the line is what the availability check later compares against.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer, Text
from protean.utils.globals import current_domain

from preorders.cart.cart import Cart
from preorders.catalog import get_catalog
from preorders.domain import preorders


@preorders.command(part_of="Cart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Integer(min_value=0)  # cents; defaults to the current catalogue price
    requested_for = DateTime()
    instructions = Text()


@preorders.command(part_of="Cart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime()
    quantity = Integer(required=True)


@preorders.command(part_of="Cart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    stall_id = Identifier(required=True)
    requested_for = DateTime()


@preorders.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        unit_price = command.unit_price
        if unit_price is None:
            product = get_catalog().get_product(command.product_id)
            if product is None:
                raise ObjectNotFoundError(f"Product {command.product_id} does not exist")
            if str(product.stall_id) != str(command.stall_id):
                raise ValidationError({"stall_id": [f"Product {product.label} is not sold at stall {command.stall_id}"]})
            unit_price = product.unit_price

        cart.add_item(
            product_id=command.product_id,
            stall_id=command.stall_id,
            quantity=command.quantity,
            unit_price=unit_price,
            requested_for=command.requested_for,
            instructions=command.instructions,
        )
        repo.add(cart)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_quantity(
            product_id=command.product_id,
            stall_id=command.stall_id,
            quantity=command.quantity,
            requested_for=command.requested_for,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(
            product_id=command.product_id,
            stall_id=command.stall_id,
            requested_for=command.requested_for,
        )
        repo.add(cart)
