"""Shared BDD fixtures and step definitions for the preorders engine."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

from preorders.api import add_item, get_cart, get_or_create_cart, get_order, place_order, transition_order
from preorders.errors import IllegalTransition
from preorders.settings import EngineSettings, set_settings
from preorders.utils.clock import DAY_NAMES


@pytest.fixture()
def context():
    """Mutable scratchpad shared by the steps of one scenario."""
    return {"cart_id": None, "outcome": None, "order_id": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
def _register_stall(catalog, stall_id, opens, closes, closed_day=None):
    hours = {day: {"opens": opens, "closes": closes} for day in DAY_NAMES}
    if closed_day:
        hours[closed_day] = {"closed": True}
    catalog.add_stall(stall_id=stall_id, name=stall_id, capacity_per_day=20, hours=hours)


@given(parsers.cfparse('a stall "{stall_id}" open from "{opens}" to "{closes}" every day'))
def stall_open_every_day(catalog, stall_id, opens, closes):
    _register_stall(catalog, stall_id, opens, closes)


@given(parsers.cfparse('a stall "{stall_id}" open from "{opens}" to "{closes}" every day except "{closed_day}"'))
def stall_open_except(catalog, stall_id, opens, closes, closed_day):
    _register_stall(catalog, stall_id, opens, closes, closed_day)


@given(
    parsers.cfparse('a product "{product_id}" at stall "{stall_id}" priced {price:d} cents with {stock:d} in stock')
)
def product_in_catalog(catalog, product_id, stall_id, price, stock):
    catalog.add_product(product_id=product_id, stall_id=stall_id, title=product_id, unit_price=price, stock=stock)


@given(parsers.cfparse("a tax rate of {rate:f}"))
def tax_rate(rate):
    set_settings(EngineSettings(tax_rate=rate))


@given(parsers.cfparse('a cart holding {qty:d} of "{product_id}" at {price:d} cents'))
def cart_holding(context, qty, product_id, price):
    cart = get_or_create_cart("cust-001")
    add_item(cart.id, product_id, "stall-001", qty, unit_price=price)
    context["cart_id"] = str(cart.id)


@given(parsers.cfparse('the cart also holds {qty:d} of "{product_id}" at {price:d} cents'))
def cart_also_holds(context, qty, product_id, price):
    add_item(context["cart_id"], product_id, "stall-001", qty, unit_price=price)


# ---------------------------------------------------------------------------
# Order placement (used as setup in some scenarios and as the action in others)
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the customer places the order for next "{day}" at "{hhmm}"'))
@when(parsers.cfparse('the customer places the order for next "{day}" at "{hhmm}"'))
def place_the_order(context, upcoming, day, hhmm):
    hour, minute = (int(part) for part in hhmm.split(":"))
    outcome = place_order(context["cart_id"], "stall-001", upcoming(day, hour, minute))
    context["outcome"] = outcome
    context["order_id"] = outcome.order_id


@when(parsers.cfparse('the order moves to "{status}"'))
def order_moves(context, status):
    transition_order(context["order_id"], status)


@when(parsers.cfparse('the order tries to move to "{status}"'))
def order_tries_to_move(context, status):
    try:
        transition_order(context["order_id"], status)
    except ValidationError as exc:
        context["error"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is not created")
def order_not_created(context):
    assert not context["outcome"].placed
    assert not context["outcome"].validation.valid


@then(parsers.cfparse('the order is created with status "{status}"'))
def order_created(context, status):
    assert context["outcome"].placed
    assert context["outcome"].order.status == status


@then(parsers.cfparse('a blocking error mentions "{text}"'))
def blocking_error_mentions(context, text):
    assert any(text in error for error in context["outcome"].validation.errors)


@then(parsers.cfparse('a warning mentions "{text}"'))
def warning_mentions(context, text):
    assert any(text in warning for warning in context["outcome"].validation.warnings)


@then("the transition is rejected as illegal")
def transition_rejected(context):
    assert isinstance(context["error"], IllegalTransition)


@then(parsers.cfparse('the order history reads "{statuses}"'))
def order_history_reads(context, statuses):
    expected = [s.strip() for s in statuses.split(",")]
    assert [entry.status for entry in get_order(context["order_id"]).history] == expected


@then("the customer's cart is empty")
def customer_cart_is_empty(context):
    assert get_cart(context["cart_id"]).items == []
