"""In-process stub adapters for the checkout ports.

These stubs implement ``RemoteOrderStorePort`` and ``NotificationPort``
without any network calls. They are intended for unit tests and local
development where deterministic behavior is useful and the managed
backend is not available.
"""

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import List

from .domain import NotificationPort, Order, OrderItem, RemoteOrderHeader, RemoteOrderStorePort


class OrderStoreStub(RemoteOrderStorePort):
    """In-memory stand-in for the remote order store.

    Headers and items are kept in two dicts that mirror the remote
    ``orders`` and ``order_items`` tables.
    """

    def __init__(self):
        self.orders: dict[str, Order] = {}
        self.items: dict[str, List[OrderItem]] = {}

    async def insert_order(self, order: Order) -> RemoteOrderHeader:
        header = RemoteOrderHeader(id=str(uuid.uuid4()), created_at=datetime.now(timezone.utc))
        self.orders[header.id] = dataclasses.replace(order, id=header.id, created_at=header.created_at, items=())
        return header

    async def insert_items(self, order_id: str, items: List[OrderItem]) -> None:
        if order_id not in self.orders:
            raise KeyError(order_id)
        self.items.setdefault(order_id, []).extend(items)

    async def delete_order(self, order_id: str) -> None:
        self.orders.pop(order_id, None)
        self.items.pop(order_id, None)

    async def fetch_orders(self, customer_id: str) -> List[Order]:
        mine = [
            dataclasses.replace(o, items=tuple(self.items.get(o.id, [])))
            for o in self.orders.values()
            if o.customer_id == customer_id
        ]
        return sorted(mine, key=lambda o: o.created_at, reverse=True)

    def reset(self) -> None:
        self.orders.clear()
        self.items.clear()


class NotificationStub(NotificationPort):
    """Records confirmation payloads instead of sending them."""

    def __init__(self):
        self.sent: List[dict] = []

    async def send_order_confirmation(self, payload: dict) -> bool:
        self.sent.append(payload)
        return True

    def reset(self) -> None:
        self.sent.clear()
