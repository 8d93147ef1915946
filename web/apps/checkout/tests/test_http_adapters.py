"""Unit tests for the HTTP adapters to the order store and notifications.

These tests monkeypatch ``httpx.AsyncClient`` request methods and assert
the request shape (URL, params, headers, body) and the adapter's handling
of success, HTTP errors and network errors.
"""
import asyncio

import httpx
import pytest

from apps.checkout.builder import build_order
from apps.checkout.http_adapters import REQUEST_ID_CTX, HttpNotificationClient, HttpOrderStoreClient

BASE = "http://orderstore:9001"


class DummyResp:
    """Minimal httpx-like response stub for adapter tests."""

    def __init__(self, status_code=200, json_data=None):
        self.status_code = status_code
        self._json = json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("err", request=None, response=None)

    def json(self):
        return self._json


@pytest.fixture
def order(cart_items, valid_form):
    return build_order(cart_items, valid_form, "credit-card", "user-1")


class _Calls(list):
    pass


@pytest.fixture
def calls(monkeypatch):
    recorded = _Calls()

    def patch(method, responder):
        async def fake(self, url, **kw):
            recorded.append((method, url, kw))
            result = responder(url, **kw)
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(httpx.AsyncClient, method, fake, raising=True)

    recorded.patch = patch
    return recorded


def test_insert_order_posts_header_and_parses_row(calls, order, settings):
    settings.BACKEND_API_KEY = "k-123"
    row = {"id": "5b0c7f1e-0000-4000-8000-000000000001", "created_at": "2024-03-01T10:00:00+00:00"}
    calls.patch("post", lambda url, **kw: DummyResp(201, [row]))

    token = REQUEST_ID_CTX.set("rid-42")
    try:
        header = asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_order(order))
    finally:
        REQUEST_ID_CTX.reset(token)

    assert header.id == row["id"]
    assert header.created_at.year == 2024
    _, url, kw = calls[0]
    assert url == f"{BASE}/orders"
    assert kw["json"]["user_id"] == "user-1"
    assert kw["json"]["total_amount"] == "32.00"
    assert kw["json"]["payment_method"] == "credit-card"
    assert kw["json"]["status"] == "pending"
    assert kw["json"]["shipping_address"]["zipCode"] == "10001"
    assert kw["headers"]["Prefer"] == "return=representation"
    assert kw["headers"]["apikey"] == "k-123"
    assert kw["headers"]["Authorization"] == "Bearer k-123"
    assert kw["headers"]["X-Request-ID"] == "rid-42"


def test_insert_order_accepts_single_object(calls, order):
    calls.patch("post", lambda url, **kw: DummyResp(200, {"id": "abc", "created_at": "2024-03-01T10:00:00Z"}))
    header = asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_order(order))
    assert header.id == "abc"


def test_insert_order_http_error(calls, order):
    calls.patch("post", lambda url, **kw: DummyResp(500, {"message": "boom"}))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_order(order))


def test_insert_order_empty_representation_fails(calls, order):
    calls.patch("post", lambda url, **kw: DummyResp(201, []))
    with pytest.raises(ValueError, match="EMPTY_INSERT_RESPONSE"):
        asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_order(order))


def test_insert_items_links_rows_to_header(calls, order):
    calls.patch("post", lambda url, **kw: DummyResp(201, None))
    asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_items("hdr-1", list(order.items)))

    _, url, kw = calls[0]
    assert url == f"{BASE}/order_items"
    assert kw["json"] == [
        {"order_id": "hdr-1", "product_id": "p-1", "title": "Notebook", "price": "10.00", "quantity": 2},
        {"order_id": "hdr-1", "product_id": "p-2", "title": "Pencil", "price": "5.00", "quantity": 1},
    ]
    assert "X-Request-ID" not in kw["headers"]


def test_insert_items_network_error_propagates(calls, order):
    calls.patch("post", lambda url, **kw: httpx.ConnectError("boom"))
    with pytest.raises(httpx.ConnectError):
        asyncio.run(HttpOrderStoreClient(base_url=BASE).insert_items("hdr-1", list(order.items)))


def test_delete_order_uses_eq_filter(calls):
    calls.patch("delete", lambda url, **kw: DummyResp(204, None))
    asyncio.run(HttpOrderStoreClient(base_url=BASE).delete_order("hdr-9"))
    _, url, kw = calls[0]
    assert url == f"{BASE}/orders"
    assert kw["params"] == {"id": "eq.hdr-9"}


def test_fetch_orders_joins_items(calls, order):
    shipping = {
        "firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com", "address": "12 Analytical Row",
        "city": "London", "state": "LDN", "zipCode": "10001",
    }
    headers = [
        {"id": "o-2", "user_id": "user-1", "shipping_address": shipping, "payment_method": "cash",
         "total_amount": "32.00", "status": "pending", "created_at": "2024-03-02T10:00:00Z"},
        {"id": "o-1", "user_id": "user-1", "shipping_address": shipping, "payment_method": "credit-card",
         "total_amount": 16.2, "status": "completed", "created_at": "2024-03-01T10:00:00Z"},
    ]
    items = {
        "eq.o-2": [{"id": "i-1", "order_id": "o-2", "product_id": "p-1", "title": "Notebook", "price": 10, "quantity": 2}],
        "eq.o-1": [],
    }

    def respond(url, params=None, **kw):
        if url.endswith("/orders"):
            return DummyResp(200, headers)
        return DummyResp(200, items[params["order_id"]])

    calls.patch("get", respond)
    orders = asyncio.run(HttpOrderStoreClient(base_url=BASE).fetch_orders("user-1"))

    assert [o.id for o in orders] == ["o-2", "o-1"]
    assert orders[0].items[0].quantity == 2
    assert orders[0].shipping_address.email == "ada@example.com"
    assert orders[1].status.value == "completed"
    assert calls[0][2]["params"] == {"user_id": "eq.user-1", "order": "created_at.desc"}


def test_notification_success(calls):
    calls.patch("post", lambda url, **kw: DummyResp(200, {"success": True, "message": "sent"}))
    client = HttpNotificationClient(base_url="http://notifications:9002")
    assert asyncio.run(client.send_order_confirmation({"orderId": "o-1"})) is True
    assert calls[0][1] == "http://notifications:9002/send-order-confirmation"


def test_notification_reports_failure_flag(calls):
    calls.patch("post", lambda url, **kw: DummyResp(200, {"success": False}))
    assert asyncio.run(HttpNotificationClient().send_order_confirmation({})) is False


def test_notification_server_error_raises(calls):
    calls.patch("post", lambda url, **kw: DummyResp(500, {"success": False}))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(HttpNotificationClient().send_order_confirmation({}))
