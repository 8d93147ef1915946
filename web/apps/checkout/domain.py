"""Domain models and ports for the checkout pipeline.

This module contains the dataclasses that flow through checkout (cart
items, orders and their line items), the enums for payment method, order
status and checkout state, and the protocol definitions (ports) for the
external collaborators: the remote order store, the local fallback store
and the notification function.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol, List, Optional

from .errors import CheckoutCancelled


# ---- Enums ----
class PaymentMethod(str, Enum):
    """Payment methods offered at checkout.

    Card fields are collected for ``CREDIT_CARD`` but never charged.
    """

    CREDIT_CARD = "credit-card"
    CASH = "cash"


class OrderStatus(str, Enum):
    """Order statuses. Checkout only ever creates ``PENDING`` orders; the
    backend owns later transitions."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class CheckoutState(str, Enum):
    """States of the checkout orchestrator."""

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    AUTH_GATE = "AUTH_GATE"
    SUBMITTING = "SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class CartItem:
    """A product snapshot held in the cart.

    Attributes:
        product_id: Catalog identifier of the product.
        title: Product title at the time it was added.
        unit_price: Price per unit, never negative.
        image: Image URL for display.
        quantity: Units in the cart, at least 1.
    """

    product_id: str
    title: str
    unit_price: Decimal
    image: str
    quantity: int


@dataclass(frozen=True)
class OrderItem:
    """A single line item of an order."""

    product_id: str
    title: str
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class ShippingAddress:
    first_name: str
    last_name: str
    email: str
    address: str
    city: str
    state: str
    zip_code: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Order:
    """Canonical order record.

    Attributes:
        id: Identifier assigned by whichever store persisted the order, or
            None before persistence.
        customer_id: Authenticated customer identifier; None for guests.
        items: Ordered line items, never empty.
        shipping_address: Validated shipping fields plus email.
        payment_method: How the customer chose to pay.
        total_amount: Subtotal plus shipping plus tax, fixed at build time.
        status: Always ``PENDING`` when created by checkout.
        created_at: Build time, replaced by the store's clock on save.

    The dataclass is frozen: once persisted, only the backend may change
    an order.
    """

    id: Optional[str]
    customer_id: Optional[str]
    items: tuple[OrderItem, ...]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RemoteOrderHeader:
    """Identifier and timestamp generated by the remote store for a header."""

    id: str
    created_at: datetime


class CancellationToken:
    """Flag shared between a submission and the code that may abandon it."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Raise ``CheckoutCancelled`` when the token has been cancelled."""
        if self._cancelled:
            raise CheckoutCancelled()


@dataclass
class CheckoutOutcome:
    """What the orchestrator reports after handling an event.

    Attributes:
        state: Orchestrator state after the event.
        errors: Field-keyed validation messages (empty unless FAILED on
            validation).
        order: Persisted order snapshot on success.
        redirect: Where the client should navigate next, if anywhere.
        message: User-facing banner text for systemic failures.
    """

    state: CheckoutState
    errors: dict[str, str] = field(default_factory=dict)
    order: Optional[Order] = None
    redirect: Optional[str] = None
    message: Optional[str] = None


# ---- Ports (DIP) ----
class RemoteOrderStorePort(Protocol):
    """Port for the remote relational order store (two linked tables)."""

    async def insert_order(self, order: Order) -> RemoteOrderHeader:
        """Insert the order header and return the generated id and timestamp."""
        raise NotImplementedError()

    async def insert_items(self, order_id: str, items: List[OrderItem]) -> None:
        """Insert the line items linked to ``order_id``."""
        raise NotImplementedError()

    async def delete_order(self, order_id: str) -> None:
        """Delete an order header (and any items linked to it)."""
        raise NotImplementedError()

    async def fetch_orders(self, customer_id: str) -> List[Order]:
        """Return the customer's orders with their items, newest first."""
        raise NotImplementedError()


class FallbackStorePort(Protocol):
    """Port for the local durable cache used when the remote store fails."""

    key: str

    async def append(self, record: dict) -> None:
        """Append one serialized order to the stored list."""
        raise NotImplementedError()

    async def load(self) -> List[dict]:
        """Return every serialized order held under the store key."""
        raise NotImplementedError()


class NotificationPort(Protocol):
    """Port for the remote order-confirmation function."""

    async def send_order_confirmation(self, payload: dict) -> bool:
        """Send the confirmation payload; return the remote success flag."""
        raise NotImplementedError()
