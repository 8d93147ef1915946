"""Cart store backed by the session storage of an ``AppContext``.

The cart is kept under a single storage key as an insertion-ordered
mapping of product id to a JSON-friendly snapshot. Every mutation writes
a fresh mapping back to storage so session backends notice the change.
"""

from decimal import Decimal
from typing import List

from .context import AppContext
from .domain import CartItem
from .pricing import PriceQuote, quote, subtotal_of


class CartStore:
    """Product-id keyed cart with add/remove/update/clear and totals."""

    STORAGE_KEY = "cart"

    def __init__(self, context: AppContext):
        self.context = context

    def _load(self) -> dict:
        return dict(self.context.storage.get(self.STORAGE_KEY) or {})

    def _store(self, lines: dict) -> None:
        self.context.storage[self.STORAGE_KEY] = lines

    @staticmethod
    def _to_item(product_id: str, line: dict) -> CartItem:
        return CartItem(
            product_id=product_id,
            title=line["title"],
            unit_price=Decimal(line["unit_price"]),
            image=line.get("image", ""),
            quantity=int(line["quantity"]),
        )

    def items(self) -> List[CartItem]:
        return [self._to_item(pid, line) for pid, line in self._load().items()]

    def is_empty(self) -> bool:
        return not self._load()

    def count(self) -> int:
        """Total number of units across all lines."""
        return sum(int(line["quantity"]) for line in self._load().values())

    def add(self, item: CartItem) -> CartItem:
        """Add a product, merging quantities when it is already in the cart.

        Args:
            item: Product snapshot and quantity to add (quantity >= 1).

        Returns:
            CartItem: The resulting cart line.

        Raises:
            ValueError: If the quantity is below 1 or the price is negative.
        """
        if item.quantity < 1:
            raise ValueError("INVALID_QUANTITY")
        if Decimal(item.unit_price) < 0:
            raise ValueError("INVALID_PRICE")
        lines = self._load()
        existing = lines.get(item.product_id)
        quantity = item.quantity + (int(existing["quantity"]) if existing else 0)
        lines[item.product_id] = {
            "title": item.title,
            "unit_price": str(item.unit_price),
            "image": item.image,
            "quantity": quantity,
        }
        self._store(lines)
        return self._to_item(item.product_id, lines[item.product_id])

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Replace a line's quantity; zero or less removes the line.

        Raises:
            KeyError: If the product is not in the cart.
        """
        lines = self._load()
        if product_id not in lines:
            raise KeyError(product_id)
        if quantity <= 0:
            del lines[product_id]
        else:
            lines[product_id] = {**lines[product_id], "quantity": int(quantity)}
        self._store(lines)

    def remove(self, product_id: str) -> None:
        lines = self._load()
        if lines.pop(product_id, None) is not None:
            self._store(lines)

    def clear(self) -> None:
        self._store({})

    def subtotal(self) -> Decimal:
        return subtotal_of(self.items())

    def summary(self) -> PriceQuote:
        return quote(self.subtotal())
