"""HTTP adapter clients for the managed backend.

This module implements the checkout ports over ``httpx.AsyncClient``:

- ``HttpOrderStoreClient`` talks to the PostgREST-style order store
  (``orders`` and ``order_items`` tables, ``eq.`` filters, ``Prefer:
  return=representation`` on inserts).
- ``HttpNotificationClient`` invokes the ``send-order-confirmation``
  function.

Both propagate ``X-Request-ID`` from the ContextVar set by the gateway
middleware and authenticate with the backend API key. There are no
retries: a failed call is reported to the caller, which owns the single
fallback path.
"""

from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string
from pydantic import BaseModel

from .domain import NotificationPort, Order, OrderItem, RemoteOrderHeader, RemoteOrderStorePort
from .schemas import OrderReadDTO, ShippingAddressDTO

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers: API key, ``X-Request-ID`` and any extras.

    Args:
        extra: Optional dict of additional headers to include.

    Returns:
        dict: Final headers dictionary for the outgoing request.
    """
    headers: dict[str, str] = {}
    api_key = getattr(settings, "BACKEND_API_KEY", "")
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


class _HeaderRow(BaseModel):
    id: str
    user_id: Optional[str] = None
    shipping_address: dict = {}
    payment_method: str = "credit-card"
    total_amount: Decimal = Decimal("0")
    status: str = "pending"
    created_at: datetime


class _ItemRow(BaseModel):
    product_id: str
    title: str
    price: Decimal
    quantity: int


def _single_row(data) -> dict:
    # PostgREST answers inserts with a list of rows
    if isinstance(data, list):
        if not data:
            raise ValueError("EMPTY_INSERT_RESPONSE")
        return data[0]
    return data


def _to_order(header: _HeaderRow, items: List[_ItemRow]) -> Order:
    return OrderReadDTO(
        id=header.id,
        customer_id=header.user_id,
        items=[
            {"product_id": i.product_id, "title": i.title, "unit_price": i.price, "quantity": i.quantity}
            for i in items
        ],
        shipping_address=ShippingAddressDTO.model_validate(header.shipping_address),
        payment_method=header.payment_method,
        total_amount=header.total_amount,
        status=header.status,
        created_at=header.created_at,
    ).to_order()


# ---------------- Order store adapter ---------------- #

class HttpOrderStoreClient(RemoteOrderStorePort):
    """HTTP client for the remote order store."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.ORDER_STORE_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    async def insert_order(self, order: Order) -> RemoteOrderHeader:
        """Insert the order header and read back its generated id and timestamp.

        Raises:
            httpx.RequestError: For network/transport errors.
            httpx.HTTPStatusError: For non-2xx responses.
        """
        payload = {
            "user_id": order.customer_id,
            "shipping_address": ShippingAddressDTO(**asdict(order.shipping_address)).model_dump(by_alias=True),
            "payment_method": order.payment_method.value,
            "total_amount": str(order.total_amount),
            "status": order.status.value,
        }
        headers = _request_headers({"Prefer": "return=representation"})
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/orders", json=payload, headers=headers)
            if resp.status_code not in (200, 201):
                resp.raise_for_status()
            row = _HeaderRow.model_validate(_single_row(resp.json()))
        return RemoteOrderHeader(id=row.id, created_at=row.created_at)

    async def insert_items(self, order_id: str, items: List[OrderItem]) -> None:
        """Insert line items linked to ``order_id``.

        Raises:
            httpx.RequestError: For network/transport errors.
            httpx.HTTPStatusError: For non-2xx responses.
        """
        payload = [
            {
                "order_id": order_id,
                "product_id": i.product_id,
                "title": i.title,
                "price": str(i.unit_price),
                "quantity": i.quantity,
            }
            for i in items
        ]
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/order_items", json=payload, headers=_request_headers())
            if resp.status_code not in (200, 201, 204):
                resp.raise_for_status()

    async def delete_order(self, order_id: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.delete(
                f"{self.base_url}/orders", params={"id": f"eq.{order_id}"}, headers=_request_headers()
            )
            if resp.status_code not in (200, 204):
                resp.raise_for_status()

    async def fetch_orders(self, customer_id: str) -> List[Order]:
        """Fetch the customer's headers, newest first, then each one's items."""
        headers = _request_headers()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(
                f"{self.base_url}/orders",
                params={"user_id": f"eq.{customer_id}", "order": "created_at.desc"},
                headers=headers,
            )
            resp.raise_for_status()
            orders = []
            for raw in resp.json():
                header = _HeaderRow.model_validate(raw)
                items_resp = await client.get(
                    f"{self.base_url}/order_items", params={"order_id": f"eq.{header.id}"}, headers=headers
                )
                items_resp.raise_for_status()
                orders.append(_to_order(header, [_ItemRow.model_validate(r) for r in items_resp.json()]))
        return orders


# ---------------- Notification adapter ---------------- #

class HttpNotificationClient(NotificationPort):
    """HTTP client for the order-confirmation function."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.NOTIFICATIONS_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    async def send_order_confirmation(self, payload: dict) -> bool:
        """Invoke the function and return its ``success`` flag.

        Raises:
            httpx.RequestError: For network/transport errors.
            httpx.HTTPStatusError: For non-2xx responses.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.base_url}/send-order-confirmation", json=payload, headers=_request_headers()
            )
            if resp.status_code != 200:
                resp.raise_for_status()
            return bool(resp.json().get("success", False))
