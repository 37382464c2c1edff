from datetime import datetime, timezone

import pytest

from storefront.core.errors import InvalidInput, InvalidTransition
from storefront.models.order import Order, OrderStatus
from storefront.services.order_status import (
    ALLOWED_TRANSITIONS,
    can_cancel,
    can_transition,
    parse_status,
    status_info,
    transition,
)

STAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)

EXPECTED = {
    ("pending", "processing"),
    ("processing", "shipped"),
    ("shipped", "delivered"),
    ("pending", "cancelled"),
    ("processing", "cancelled"),
}


def _order(status):
    return Order(id="ord-1", status=status, updated_at=STAMP, total_amount=10, shipping_address="1 Test Rd")


def test_allowed_transitions_are_exactly_the_lifecycle():
    assert {(a.value, b.value) for a, b in ALLOWED_TRANSITIONS} == EXPECTED


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("requested", list(OrderStatus))
def test_transition_succeeds_only_for_allowed_pairs(current, requested):
    order = _order(current)

    if (current.value, requested.value) in EXPECTED:
        assert can_transition(current, requested)
        assert transition(order, requested) is order
        assert order.status == requested
        assert order.updated_at > STAMP
    else:
        assert not can_transition(current, requested)
        with pytest.raises(InvalidTransition):
            transition(order, requested)
        assert order.status == current
        assert order.updated_at == STAMP


def test_transition_leaves_other_fields_alone():
    order = _order(OrderStatus.pending)
    transition(order, "processing")
    assert order.total_amount == 10
    assert order.shipping_address == "1 Test Rd"


def test_transition_accepts_strings_and_rejects_unknown_status():
    order = _order(OrderStatus.pending)
    with pytest.raises(InvalidInput):
        transition(order, "lost")
    assert order.status == OrderStatus.pending
    assert parse_status("shipped") is OrderStatus.shipped


def test_can_transition_is_false_for_unknown_status():
    assert not can_transition("pending", "lost")
    assert not can_transition("lost", OrderStatus.cancelled)
    assert can_transition("pending", "processing")


@pytest.mark.parametrize(
    "status, expected",
    [
        (OrderStatus.pending, True),
        (OrderStatus.processing, True),
        (OrderStatus.shipped, False),
        (OrderStatus.delivered, False),
        (OrderStatus.cancelled, False),
    ],
)
def test_can_cancel(status, expected):
    assert can_cancel(_order(status)) is expected


def test_can_cancel_without_order():
    assert can_cancel(None) is False


def test_status_info():
    assert status_info("shipped")["label"] == "Shipped"
    assert status_info(OrderStatus.cancelled)["color"] == "danger"
    assert status_info("teleported") == {"label": "teleported", "color": "default", "description": ""}
