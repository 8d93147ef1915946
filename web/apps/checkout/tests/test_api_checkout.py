"""API tests for entering and submitting checkout.

They run with the in-process order store and notification stubs from
``providers``; the local fallback store is the real database table.
"""
import threading
import time

import pytest
from django.core.cache import cache

from apps.checkout import providers
from apps.checkout.models import FallbackOrderBucket
from apps.checkout.notifications import wait_for_background
from apps.checkout.orchestrator import RETRY_MESSAGE
from apps.checkout.repository import DatabaseFallbackStore

CHECKOUT_URL = "/api/checkout/"


@pytest.fixture
def customer(django_user_model):
    return django_user_model.objects.create_user(username="ada", password="s3cret-pass")


@pytest.fixture
def filled_cart(client):
    for pid, price, qty in (("p-1", "10.00", 2), ("p-2", "5.00", 1)):
        payload = {"productId": pid, "title": f"Product {pid}", "unitPrice": price, "quantity": qty}
        assert client.post("/api/cart/items/", data=payload, content_type="application/json").status_code == 201
    return client


def _submit(client, form, method="credit-card"):
    return client.post(CHECKOUT_URL, data={**form, "paymentMethod": method}, content_type="application/json")


@pytest.mark.django_db
def test_enter_with_empty_cart_redirects(client):
    r = client.get(CHECKOUT_URL)
    assert r.status_code == 303
    assert r["Location"] == "/api/cart/"


@pytest.mark.django_db
def test_enter_shows_summary(filled_cart):
    body = filled_cart.get(CHECKOUT_URL).json()
    assert body["summary"]["total"] == "32.00"
    assert body["authenticated"] is False


@pytest.mark.django_db
def test_submit_success(filled_cart, customer, valid_form):
    filled_cart.force_login(customer)
    r = _submit(filled_cart, valid_form)

    assert r.status_code == 201
    body = r.json()
    assert body["orderNumber"] == body["id"][:8]
    assert body["totalAmount"] == "32.00"
    assert body["status"] == "pending"
    assert body["customerId"] == str(customer.pk)
    assert body["redirect"] == "/order-confirmation"

    assert body["id"] in providers.order_store_stub.orders
    assert wait_for_background(timeout=5)
    assert [p["orderId"] for p in providers.notification_stub.sent] == [body["id"]]
    assert filled_cart.get("/api/cart/").json()["items"] == []


@pytest.mark.django_db
def test_submit_validation_errors(filled_cart, customer, valid_form):
    filled_cart.force_login(customer)
    valid_form["cvv"] = "1"
    r = _submit(filled_cart, valid_form)
    assert r.status_code == 400
    assert r.json() == {"detail": "VALIDATION_ERROR", "errors": {"cvv": "CVV must be 3 or 4 digits"}}


@pytest.mark.django_db
def test_guest_submit_requires_login(filled_cart, valid_form):
    r = _submit(filled_cart, valid_form)
    assert r.status_code == 401
    assert r.json() == {"detail": "AUTH_REQUIRED", "redirect": "/api/auth/login/"}
    assert filled_cart.session["pending_checkout"] is True
    assert providers.order_store_stub.orders == {}
    assert not FallbackOrderBucket.objects.exists()


@pytest.mark.django_db
def test_submit_empty_cart_redirects(client, customer, valid_form):
    client.force_login(customer)
    r = _submit(client, valid_form)
    assert r.status_code == 303


@pytest.mark.django_db
def test_remote_outage_falls_back_to_database(filled_cart, customer, valid_form, monkeypatch):
    async def down(order):
        raise ConnectionError("order store unreachable")

    monkeypatch.setattr(providers.order_store_stub, "insert_order", down)
    filled_cart.force_login(customer)
    r = _submit(filled_cart, valid_form, "cash")

    assert r.status_code == 201
    stored = FallbackOrderBucket.objects.get(key="orders").payload
    assert [o["id"] for o in stored] == [r.json()["id"]]
    assert stored[0]["paymentMethod"] == "cash"


@pytest.mark.django_db
def test_unsaved_order_returns_503_and_keeps_cart(filled_cart, customer, valid_form, monkeypatch):
    async def down(*args, **kwargs):
        raise ConnectionError("down")

    monkeypatch.setattr(providers.order_store_stub, "insert_order", down)
    monkeypatch.setattr(DatabaseFallbackStore, "append", down)
    filled_cart.force_login(customer)
    r = _submit(filled_cart, valid_form)

    assert r.status_code == 503
    assert r.json() == {"detail": "ORDER_NOT_SAVED", "message": RETRY_MESSAGE}
    assert len(filled_cart.get("/api/cart/").json()["items"]) == 2
    assert providers.notification_stub.sent == []


@pytest.mark.django_db
def test_concurrent_submit_is_refused(filled_cart, customer, valid_form):
    filled_cart.force_login(customer)
    cache.add(f"checkout:in-progress:{filled_cart.session.session_key}", 1)
    r = _submit(filled_cart, valid_form)
    assert r.status_code == 409
    assert r.json()["detail"] == "CHECKOUT_IN_PROGRESS"
    assert providers.order_store_stub.orders == {}


@pytest.mark.django_db
def test_orders_history(filled_cart, customer, valid_form, client):
    assert client.get("/api/orders/").status_code == 401

    filled_cart.force_login(customer)
    created = _submit(filled_cart, valid_form).json()
    r = filled_cart.get("/api/orders/")
    assert r.status_code == 200
    assert [o["id"] for o in r.json()["results"]] == [created["id"]]


@pytest.mark.django_db
def test_slow_confirmation_does_not_hold_the_response(filled_cart, customer, valid_form, monkeypatch):
    release = threading.Event()
    delivered = threading.Event()

    async def slow_send(payload):
        release.wait(5)
        delivered.set()
        return True

    monkeypatch.setattr(providers.notification_stub, "send_order_confirmation", slow_send)
    filled_cart.force_login(customer)

    started = time.monotonic()
    r = _submit(filled_cart, valid_form)
    elapsed = time.monotonic() - started

    assert r.status_code == 201
    assert elapsed < 2
    assert not delivered.is_set()
    release.set()
    assert delivered.wait(5)


@pytest.mark.django_db
def test_missing_field_is_reported_under_its_form_name(filled_cart, customer, valid_form):
    filled_cart.force_login(customer)
    del valid_form["firstName"]
    r = _submit(filled_cart, valid_form)
    assert r.status_code == 400
    assert r.json()["errors"] == {"firstName": "First name is required"}


@pytest.mark.django_db
def test_non_object_body_is_rejected(filled_cart, customer):
    filled_cart.force_login(customer)
    r = filled_cart.post(CHECKOUT_URL, data=[1, 2], content_type="application/json")
    assert r.status_code == 400
    assert r.json() == {"detail": "INVALID_BODY"}
    assert providers.order_store_stub.orders == {}
    assert not cache.get(f"checkout:in-progress:{filled_cart.session.session_key}")
