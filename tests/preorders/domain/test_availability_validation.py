"""Tests for the availability validator — per-line blocking checks and advisory warnings."""

import pytest

from preorders.catalog.fake_adapter import InMemoryCatalog
from preorders.validation.availability import LineItem, validate_items


@pytest.fixture()
def shelf():
    catalog = InMemoryCatalog()
    catalog.add_product(product_id="prod-samosa", stall_id="stall-001", title="Samosa", unit_price=800, stock=50)
    catalog.add_product(product_id="prod-pilau", stall_id="stall-001", title="Pilau", unit_price=1600, stock=4)
    catalog.add_product(
        product_id="prod-chapati", stall_id="stall-001", title="Chapati", unit_price=300, stock=9, status="inactive"
    )
    catalog.add_product(product_id="prod-mandazi", stall_id="stall-002", title="Mandazi", unit_price=200, stock=80)
    return catalog


def _line(product_id, quantity=1, unit_price=800, stall_id="stall-001"):
    return LineItem(product_id=product_id, stall_id=stall_id, quantity=quantity, unit_price=unit_price)


class TestBlockingChecks:
    def test_all_good(self, shelf):
        result = validate_items([_line("prod-samosa", 2)], catalog=shelf)
        assert result.valid
        assert result.errors == []

    def test_product_not_found(self, shelf):
        result = validate_items([_line("prod-404")], catalog=shelf)
        assert not result.valid
        assert "not found" in result.errors[0]

    def test_product_unavailable(self, shelf):
        result = validate_items([_line("prod-chapati", unit_price=300)], catalog=shelf)
        assert not result.valid
        assert "unavailable" in result.errors[0]

    def test_deleted_product_is_unavailable(self, shelf):
        shelf.add_product(product_id="prod-gone", stall_id="stall-001", unit_price=100, stock=5, status="deleted")
        result = validate_items([_line("prod-gone", unit_price=100)], catalog=shelf)
        assert "unavailable" in result.errors[0]

    def test_stall_mismatch(self, shelf):
        result = validate_items([_line("prod-mandazi", unit_price=200)], catalog=shelf)
        assert not result.valid
        assert "Stall mismatch" in result.errors[0]

    def test_insufficient_inventory_names_both_counts(self, shelf):
        result = validate_items([_line("prod-pilau", 5, 1600)], catalog=shelf)
        assert not result.valid
        assert "Available: 4" in result.errors[0]
        assert "Requested: 5" in result.errors[0]

    def test_price_mismatch_names_both_prices(self, shelf):
        result = validate_items([_line("prod-pilau", 1, 1500)], catalog=shelf)
        assert not result.valid
        assert "Price mismatch" in result.errors[0]
        assert "1600" in result.errors[0]
        assert "1500" in result.errors[0]

    def test_first_failure_per_line_wins(self, shelf):
        # Short on stock and mispriced: only the inventory finding is reported
        result = validate_items([_line("prod-pilau", 9, 1)], catalog=shelf)
        assert len(result.errors) == 1
        assert "Insufficient inventory" in result.errors[0]

    def test_findings_aggregate_across_lines_in_order(self, shelf):
        result = validate_items(
            [_line("prod-404"), _line("prod-samosa", 1), _line("prod-pilau", 1, 1500)],
            catalog=shelf,
        )
        assert not result.valid
        assert len(result.errors) == 2
        assert "not found" in result.errors[0]
        assert "Price mismatch" in result.errors[1]


class TestWarnings:
    def test_low_inventory(self, shelf):
        result = validate_items([_line("prod-pilau", 2, 1600)], catalog=shelf)
        assert result.valid
        assert any("Low inventory" in w for w in result.warnings)

    def test_plenty_of_stock_has_no_warning(self, shelf):
        result = validate_items([_line("prod-samosa", 2)], catalog=shelf)
        assert result.warnings == []

    def test_large_quantity(self, shelf):
        result = validate_items([_line("prod-samosa", 11)], catalog=shelf)
        assert result.valid
        assert any("Large quantity" in w for w in result.warnings)

    def test_ten_is_not_large(self, shelf):
        result = validate_items([_line("prod-samosa", 10)], catalog=shelf)
        assert not any("Large quantity" in w for w in result.warnings)

    def test_no_warnings_for_blocked_lines(self, shelf):
        result = validate_items([_line("prod-pilau", 3, 1500)], catalog=shelf)
        assert not result.valid
        assert result.warnings == []
