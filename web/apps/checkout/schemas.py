"""Pydantic schemas for checkout.

This module holds the checkout form schemas used by the validator, the
request schemas for the cart and login endpoints, and the read schemas
that serialize orders for API responses, the fallback store and the
confirmation notification. All schemas speak camelCase on the wire.
"""

import re
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator
from pydantic.alias_generators import to_camel

from .domain import Order, OrderItem, OrderStatus, PaymentMethod, ShippingAddress


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CARD_NUMBER_RE = re.compile(r"^[0-9]{16}$")
EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/[0-9]{2}$")
CVV_RE = re.compile(r"^[0-9]{3,4}$")

REQUIRED_MESSAGES = {
    "first_name": "First name is required",
    "last_name": "Last name is required",
    "email": "Email is required",
    "address": "Address is required",
    "city": "City is required",
    "state": "State is required",
    "zip_code": "ZIP code is required",
    "card_number": "Card number is required",
    "card_name": "Name on card is required",
    "expiry_date": "Expiry date is required",
    "cvv": "CVV is required",
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Checkout form ----
class _CheckoutForm(CamelModel):
    """Shared behavior of the checkout form schemas.

    Missing fields default to "" and are still validated, ``null`` counts
    as blank, and surrounding whitespace is stripped before the rules run.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        validate_default=True,
        loc_by_alias=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_when_null(cls, v):
        return "" if v is None else v


class ShippingForm(_CheckoutForm):
    """Shipping fields of the checkout form."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    @field_validator("first_name", "last_name", "address", "city", "state", "zip_code")
    @classmethod
    def required(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["email"])
        if not EMAIL_RE.match(v):
            raise ValueError("Email address is invalid")
        return v


class CardForm(_CheckoutForm):
    """Card fields, validated only for credit-card payments.

    The card is never charged; these checks only make sure the customer
    typed something card-shaped.
    """

    card_number: str = ""
    card_name: str = ""
    expiry_date: str = ""
    cvv: str = ""

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["card_number"])
        if not CARD_NUMBER_RE.match(re.sub(r"\s", "", v)):
            raise ValueError("Please enter a valid 16-digit card number")
        return v

    @field_validator("card_name")
    @classmethod
    def validate_card_name(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["card_name"])
        return v

    @field_validator("expiry_date")
    @classmethod
    def validate_expiry(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["expiry_date"])
        if not EXPIRY_RE.match(v):
            raise ValueError("Please use MM/YY format")
        return v

    @field_validator("cvv")
    @classmethod
    def validate_cvv(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["cvv"])
        if not CVV_RE.match(v):
            raise ValueError("CVV must be 3 or 4 digits")
        return v


# ---- Requests ----
class CartItemIn(CamelModel):
    """Input schema for adding a product to the cart."""

    product_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    image: str = ""
    quantity: int = Field(default=1, ge=1)


class CartQuantityIn(CamelModel):
    quantity: int


class LoginIn(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ---- Order read models ----
class OrderItemDTO(CamelModel):
    product_id: str
    title: str
    unit_price: Decimal
    quantity: int


class ShippingAddressDTO(CamelModel):
    first_name: str
    last_name: str
    email: str
    address: str
    city: str
    state: str
    zip_code: str


class OrderReadDTO(CamelModel):
    """Serialized order, as stored in the fallback store and returned by
    the API. Amounts are rendered as decimal strings in JSON mode."""

    id: str
    customer_id: Optional[str] = None
    items: list[OrderItemDTO]
    shipping_address: ShippingAddressDTO
    payment_method: PaymentMethod
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderReadDTO":
        return cls.model_validate(asdict(order))

    def to_order(self) -> Order:
        return Order(
            id=self.id,
            customer_id=self.customer_id,
            items=tuple(OrderItem(**i.model_dump()) for i in self.items),
            shipping_address=ShippingAddress(**self.shipping_address.model_dump()),
            payment_method=self.payment_method,
            total_amount=self.total_amount,
            status=self.status,
            created_at=self.created_at,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ConfirmationDTO(OrderReadDTO):
    """Order snapshot handed to the confirmation view."""

    @computed_field(alias="orderNumber")
    @property
    def order_number(self) -> str:
        return self.id[:8]


# ---- Notification payload ----
class ConfirmationItem(CamelModel):
    title: str
    price: Decimal
    quantity: int


class ConfirmationRequest(CamelModel):
    """Body sent to the order-confirmation function."""

    order_id: str
    customer_email: str
    customer_name: str
    items: list[ConfirmationItem]
    total_amount: Decimal
    shipping_address: ShippingAddressDTO

    @classmethod
    def from_order(cls, order: Order) -> "ConfirmationRequest":
        return cls(
            order_id=order.id,
            customer_email=order.shipping_address.email,
            customer_name=order.shipping_address.full_name,
            items=[ConfirmationItem(title=i.title, price=i.unit_price, quantity=i.quantity) for i in order.items],
            total_amount=order.total_amount,
            shipping_address=ShippingAddressDTO(**asdict(order.shipping_address)),
        )


# ---- Cart read models ----
class CartLineDTO(CamelModel):
    product_id: str
    title: str
    unit_price: Decimal
    image: str
    quantity: int


class PriceSummaryDTO(CamelModel):
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal


class CartDTO(CamelModel):
    """Cart contents with the price breakdown shown at checkout."""

    items: list[CartLineDTO]
    count: int
    summary: PriceSummaryDTO

    @classmethod
    def from_cart(cls, cart) -> "CartDTO":
        return cls(
            items=[CartLineDTO(**asdict(i)) for i in cart.items()],
            count=cart.count(),
            summary=PriceSummaryDTO(**asdict(cart.summary())),
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
