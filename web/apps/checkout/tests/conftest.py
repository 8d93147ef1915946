from decimal import Decimal

import pytest

from apps.checkout.domain import CartItem


@pytest.fixture
def valid_form():
    """A checkout form that passes every shipping and card rule."""
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "address": "12 Analytical Row",
        "city": "London",
        "state": "LDN",
        "zipCode": "10001",
        "cardNumber": "4242 4242 4242 4242",
        "cardName": "Ada Lovelace",
        "expiryDate": "12/30",
        "cvv": "123",
    }


@pytest.fixture
def cart_items():
    """Two lines: 10.00 x 2 and 5.00 x 1 (subtotal 25.00)."""
    return [
        CartItem(product_id="p-1", title="Notebook", unit_price=Decimal("10.00"), image="/img/1.png", quantity=2),
        CartItem(product_id="p-2", title="Pencil", unit_price=Decimal("5.00"), image="/img/2.png", quantity=1),
    ]
