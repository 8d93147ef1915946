"""Tests for the pricing policy and order construction."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from apps.checkout.builder import build_order
from apps.checkout.domain import CartItem, OrderStatus, PaymentMethod
from apps.checkout.pricing import quote, subtotal_of

D = Decimal


def test_cart_example_prices_to_32(cart_items):
    q = quote(subtotal_of(cart_items))
    assert (q.subtotal, q.shipping, q.tax, q.total) == (D("25.00"), D("5.00"), D("2.00"), D("32.00"))


@pytest.mark.parametrize(
    "subtotal, shipping, tax, total",
    [
        ("40.00", "5.00", "3.20", "48.20"),
        ("60.00", "0.00", "4.80", "64.80"),
        ("50.00", "0.00", "4.00", "54.00"),
        ("49.99", "5.00", "4.00", "58.99"),
    ],
)
def test_quote(subtotal, shipping, tax, total):
    q = quote(D(subtotal))
    assert q.shipping == D(shipping)
    assert q.tax == D(tax)
    assert q.total == D(total)


def test_tax_rounds_half_up_to_cents():
    # 19.99 * 0.08 = 1.5992
    q = quote(D("19.99"))
    assert q.tax == D("1.60")
    assert q.total == D("26.59")


def test_build_order(cart_items, valid_form):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    order = build_order(cart_items, valid_form, "credit-card", "user-1", clock=lambda: now)

    assert order.id is None
    assert order.customer_id == "user-1"
    assert order.status is OrderStatus.PENDING
    assert order.payment_method is PaymentMethod.CREDIT_CARD
    assert order.total_amount == D("32.00")
    assert order.created_at == now
    assert [(i.product_id, i.quantity) for i in order.items] == [("p-1", 2), ("p-2", 1)]
    assert order.shipping_address.full_name == "Ada Lovelace"
    assert order.shipping_address.zip_code == "10001"


def test_build_order_strips_shipping_fields(cart_items, valid_form):
    valid_form["city"] = "  London "
    order = build_order(cart_items, valid_form, PaymentMethod.CASH, None)
    assert order.shipping_address.city == "London"
    assert order.customer_id is None


def test_build_order_empty_customer_id_is_guest(cart_items, valid_form):
    assert build_order(cart_items, valid_form, "cash", "").customer_id is None


def test_build_order_requires_items(valid_form):
    with pytest.raises(ValueError, match="EMPTY_CART"):
        build_order([], valid_form, "cash", "user-1")


def test_subtotal_is_rounded_to_cents_before_tax(valid_form):
    # 10.005 * 2 = 20.010 -> 20.01; tax 1.6008 -> 1.60; plus 5.00 shipping
    items = [CartItem(product_id="p-9", title="Sub-cent", unit_price=D("10.005"), image="", quantity=2)]
    assert subtotal_of(items) == D("20.01")
    assert build_order(items, valid_form, "cash", "user-1").total_amount == D("26.61")
