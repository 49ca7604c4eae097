"""Availability validation: can the catalogue serve these line items at these prices?

Each line is checked in turn. The first blocking finding for a line ends the
checks for that line; advisory warnings are only raised for lines that passed
every blocking check.
"""

from dataclasses import dataclass

from preorders.catalog import get_catalog
from preorders.settings import get_settings
from preorders.validation.result import ValidationResult


@dataclass(frozen=True)
class LineItem:
    product_id: str
    stall_id: str
    quantity: int
    unit_price: int  # cents, as submitted

    @classmethod
    def from_cart_item(cls, item) -> "LineItem":
        return cls(str(item.product_id), str(item.stall_id), item.quantity, item.unit_price)


def _check_line(line: LineItem, catalog, settings, result: ValidationResult) -> None:
    product = catalog.get_product(line.product_id)
    if product is None:
        result.block(f"Product {line.product_id} not found")
        return

    if not product.is_active:
        result.block(f'Product "{product.label}" is unavailable')
        return

    if str(product.stall_id) != str(line.stall_id):
        result.block(f'Stall mismatch: product "{product.label}" does not belong to stall {line.stall_id}')
        return

    if product.stock < line.quantity:
        result.block(
            f'Insufficient inventory for "{product.label}". Available: {product.stock}, Requested: {line.quantity}'
        )
        return

    if product.unit_price != line.unit_price:
        result.block(
            f'Price mismatch for "{product.label}". '
            f"Current price: {product.unit_price} cents, Submitted price: {line.unit_price} cents"
        )
        return

    if product.stock <= line.quantity * settings.low_inventory_factor:
        result.warn(f'Low inventory for "{product.label}". Only {product.stock} remaining.')

    if line.quantity > settings.large_quantity_threshold:
        result.warn(
            f'Large quantity ordered for "{product.label}" ({line.quantity} items). '
            "This may affect preparation time."
        )


def validate_items(lines, catalog=None, settings=None) -> ValidationResult:
    """Check every line against the catalogue; valid only if no line has a blocking finding."""
    catalog = catalog or get_catalog()
    settings = settings or get_settings()

    result = ValidationResult()
    for line in lines:
        _check_line(line, catalog, settings, result)
    return result
