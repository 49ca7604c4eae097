"""Catalog gateway factory.

Provides get_catalog() / set_catalog() to swap implementations:
- InMemoryCatalog for development and testing
- a catalogue-service client in production
"""

from preorders.catalog.fake_adapter import InMemoryCatalog
from preorders.catalog.port import CatalogGateway

_current_catalog: CatalogGateway | None = None


def get_catalog() -> CatalogGateway:
    """Return the current catalogue gateway. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogGateway) -> None:
    """Override the active catalogue gateway (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to the default catalogue gateway."""
    global _current_catalog
    _current_catalog = None
