"""Order construction from cart contents and a validated checkout form."""

from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence

from .domain import CartItem, Order, OrderItem, OrderStatus, PaymentMethod, ShippingAddress
from .pricing import quote, subtotal_of


def _shipping_address(form_values: Mapping) -> ShippingAddress:
    def value(key: str) -> str:
        return str(form_values.get(key) or "").strip()

    return ShippingAddress(
        first_name=value("firstName"),
        last_name=value("lastName"),
        email=value("email"),
        address=value("address"),
        city=value("city"),
        state=value("state"),
        zip_code=value("zipCode"),
    )


def build_order(
    cart_items: Sequence[CartItem],
    form_values: Mapping,
    payment_method,
    customer_id: Optional[str],
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> Order:
    """Assemble a pending order.

    The form is expected to have passed ``validate`` already; only the
    shipping fields are read from it. The total is priced once here and is
    never recomputed after persistence.
    The subtotal is rounded half-up to cents before tax is applied, so
    sub-cent unit prices are priced at their rounded line sum.

    Args:
        cart_items: Lines to order; must not be empty.
        form_values: camelCase checkout form values.
        payment_method: ``PaymentMethod`` or its string value.
        customer_id: Authenticated customer id, or None for a guest.
        clock: Source of the provisional ``created_at``.

    Returns:
        Order: A new order with ``id=None`` and status ``PENDING``.

    Raises:
        ValueError: ``EMPTY_CART`` if there is nothing to order.
    """
    if not cart_items:
        raise ValueError("EMPTY_CART")

    items = tuple(
        OrderItem(product_id=c.product_id, title=c.title, unit_price=c.unit_price, quantity=c.quantity)
        for c in cart_items
    )
    shipping = _shipping_address(form_values)
    price = quote(subtotal_of(items))

    return Order(
        id=None,
        customer_id=customer_id or None,
        items=items,
        shipping_address=shipping,
        payment_method=PaymentMethod(payment_method),
        total_amount=price.total,
        status=OrderStatus.PENDING,
        created_at=clock(),
    )
