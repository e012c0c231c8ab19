"""Shared BDD fixtures and step definitions for the checkout saga."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from checkout.order.order import Order


@pytest.fixture()
def outcome():
    """Container for the latest checkout results and errors."""
    return {"confirmations": [], "errors": []}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" priced at {price} with {stock:d} units in stock'))
def _(add_product, product_id, price, stock):
    add_product(product_id, price, stock)


@given(parsers.cfparse('the payment provider declines cards with "{reason}"'))
def _(gateway, reason):
    gateway.configure(should_succeed=False, failure_reason=reason)


@given("the carrier is rejecting shipments")
def _(carrier):
    carrier.configure(should_succeed=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the checkout succeeds with status "{status}"'))
def _(outcome, status):
    assert outcome["errors"] == []
    assert outcome["confirmations"][-1].status == status


@then(parsers.cfparse('the checkout fails with "{code}"'))
def _(outcome, code):
    assert outcome["confirmations"] == []
    assert outcome["errors"][-1].code == code


@then(parsers.cfparse("the order total is {total}"))
def _(outcome, total):
    assert str(outcome["confirmations"][-1].total) == total


@then("a tracking number is assigned")
def _(orchestrator, outcome):
    order = orchestrator.store.get(outcome["confirmations"][-1].order_id)
    assert order.tracking_number
    assert order.label_status == "Issued"


@then(parsers.cfparse('the tracking number is "{tracking_number}"'))
def _(outcome, tracking_number):
    assert outcome["confirmations"][-1].tracking_number == tracking_number


@then(parsers.cfparse('the order status is "{status}"'))
def _(orchestrator, outcome, status):
    assert orchestrator.store.get(outcome["confirmations"][-1].order_id).status == status


@then(parsers.cfparse('"{product_id}" has {on_hand:d} on hand and {reserved:d} reserved'))
def _(ledger, product_id, on_hand, reserved):
    record = ledger.record(product_id)
    assert (record.on_hand, record.reserved) == (on_hand, reserved)


@then(parsers.cfparse('no order exists for customer "{customer_id}"'))
def _(customer_id):
    orders = current_domain.repository_for(Order)._dao.query.filter(customer_id=customer_id).all().items
    assert list(orders) == []
