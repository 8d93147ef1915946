"""Fixed storefront pricing policy.

Orders of 50.00 or more ship free, smaller ones pay a flat 5.00; tax is 8%
of the subtotal. All arithmetic is done with ``Decimal`` and amounts are
kept at cent precision so the totals shown to the customer add up.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

FREE_SHIPPING_THRESHOLD = Decimal("50.00")
SHIPPING_SURCHARGE = Decimal("5.00")
TAX_RATE = Decimal("0.08")
CENT = Decimal("0.01")


class _Priced(Protocol):
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


def to_cents(amount: Decimal) -> Decimal:
    """Round an amount half-up to two decimal places."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def subtotal_of(items: Iterable[_Priced]) -> Decimal:
    """Sum of ``unit_price * quantity`` over the given lines."""
    return to_cents(sum((Decimal(i.unit_price) * i.quantity for i in items), Decimal("0")))


def shipping_for(subtotal: Decimal) -> Decimal:
    return Decimal("0.00") if subtotal >= FREE_SHIPPING_THRESHOLD else SHIPPING_SURCHARGE


def quote(subtotal: Decimal) -> PriceQuote:
    """Price a subtotal according to the storefront policy.

    Args:
        subtotal: Sum of line totals.

    Returns:
        PriceQuote: subtotal, shipping surcharge, tax and grand total.
    """
    subtotal = to_cents(subtotal)
    shipping = shipping_for(subtotal)
    tax = to_cents(subtotal * TAX_RATE)
    return PriceQuote(subtotal=subtotal, shipping=shipping, tax=tax, total=subtotal + shipping + tax)
