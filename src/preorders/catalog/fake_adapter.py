"""In-memory catalogue for development and testing.

Records are registered explicitly, either as ``Product``/``Stall`` value
objects or as plain keyword data that is validated on the way in.
"""

from preorders.catalog.port import CatalogGateway
from preorders.catalog.records import DayHours, Product, Stall


class InMemoryCatalog(CatalogGateway):
    """Catalogue adapter backed by dictionaries."""

    def __init__(self) -> None:
        self.products: dict[str, Product] = {}
        self.stalls: dict[str, Stall] = {}
        self.lookups: list[tuple[str, str]] = []

    def add_product(self, product: Product | None = None, **data) -> Product:
        product = product or Product(**data)
        self.products[str(product.product_id)] = product
        return product

    def add_stall(self, stall: Stall | None = None, hours: dict | None = None, **data) -> Stall:
        """Register a stall. ``hours`` maps day names to ``DayHours`` or dicts."""
        if stall is None:
            for day, value in (hours or {}).items():
                data[day] = value if isinstance(value, DayHours) else DayHours(**value)
            stall = Stall(**data)
        self.stalls[str(stall.stall_id)] = stall
        return stall

    def get_product(self, product_id: str) -> Product | None:
        self.lookups.append(("product", str(product_id)))
        return self.products.get(str(product_id))

    def get_stall(self, stall_id: str) -> Stall | None:
        self.lookups.append(("stall", str(stall_id)))
        return self.stalls.get(str(stall_id))

    def reset(self) -> None:
        """Forget every record (useful between tests)."""
        self.products.clear()
        self.stalls.clear()
        self.lookups.clear()
