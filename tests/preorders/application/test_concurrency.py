"""Concurrent writers — capacity is never exceeded and cart updates are never lost."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from protean import current_domain

from preorders.api import add_item, get_cart, get_or_create_cart, transition_order, validate_and_create_order
from preorders.domain import preorders
from preorders.errors import IllegalTransition
from preorders.order.order import Order
from preorders.validation.result import ValidationResult


def _in_context(fn, *args):
    with preorders.domain_context():
        return fn(*args)


def _run_concurrently(fn, argsets):
    with ThreadPoolExecutor(max_workers=len(argsets)) as pool:
        futures = [pool.submit(_in_context, fn, *args) for args in argsets]
        return [f.result() for f in futures]


class TestCapacityUnderConcurrency:
    @pytest.mark.parametrize("capacity", [1, 3])
    def test_concurrency_never_overbooks(self, catalog, samosa, tomorrow_noon, capacity):
        catalog.add_stall(stall_id="stall-001", name="Mama Njeri's Kitchen", capacity_per_day=capacity, hours={})
        carts = []
        for n in range(capacity + 1):
            cart = get_or_create_cart(f"cust-{n}")
            add_item(cart.id, "prod-samosa", "stall-001", 1)
            carts.append(cart.id)

        results = _run_concurrently(
            validate_and_create_order,
            [(cart_id, "stall-001", tomorrow_noon) for cart_id in carts],
        )

        placed = [r for r in results if isinstance(r, Order)]
        rejected = [r for r in results if isinstance(r, ValidationResult)]
        assert len(placed) == capacity
        assert len(rejected) == 1
        assert any("capacity" in e for e in rejected[0].errors)
        assert len(current_domain.repository_for(Order).open_for_stall("stall-001")) == capacity


class TestCartUnderConcurrency:
    def test_concurrency_keeps_every_add(self, samosa):
        cart = get_or_create_cart("cust-001")

        _run_concurrently(add_item, [(cart.id, "prod-samosa", "stall-001", 1) for _ in range(8)])

        stored = get_cart(cart.id)
        assert len(stored.items) == 1
        assert stored.items[0].quantity == 8

    def test_concurrency_get_or_create_yields_one_cart(self):
        results = _run_concurrently(get_or_create_cart, [("cust-001",) for _ in range(6)])
        assert len({str(cart.id) for cart in results}) == 1


class TestTransitionsUnderConcurrency:
    def test_concurrency_only_one_of_competing_transitions_applies(self, samosa, tomorrow_noon):
        cart = get_or_create_cart("cust-001")
        add_item(cart.id, "prod-samosa", "stall-001", 1)
        order = validate_and_create_order(cart.id, "stall-001", tomorrow_noon)

        def attempt(status):
            try:
                return transition_order(order.id, status, expected_status="pending").status
            except IllegalTransition:
                return "rejected"

        outcomes = _run_concurrently(attempt, [("confirmed",), ("cancelled",)])

        assert outcomes.count("rejected") == 1
        stored = current_domain.repository_for(Order).get(order.id)
        assert len(stored.history) == 2
