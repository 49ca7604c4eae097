"""Catalog gateway port (abstract interface).

Defines the read-only contract the engine needs from the catalogue. Lookups
feeding blocking checks (inventory, capacity) must be served from a strongly
consistent source.
"""

from abc import ABC, abstractmethod

from preorders.catalog.records import Product, Stall


class CatalogGateway(ABC):
    """Abstract catalogue lookup interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def get_stall(self, stall_id: str) -> Stall | None:
        """Return the stall, or None when it does not exist."""
        ...
