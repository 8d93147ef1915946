"""API tests for the session cart endpoints."""
import pytest
from django.test import Client

CART_URL = "/api/cart/"
ITEMS_URL = "/api/cart/items/"


def _add(client, product_id="p-1", price="10.00", quantity=1):
    payload = {"productId": product_id, "title": f"Product {product_id}", "unitPrice": price, "quantity": quantity}
    return client.post(ITEMS_URL, data=payload, content_type="application/json")


@pytest.mark.django_db
def test_empty_cart(client):
    r = client.get(CART_URL)
    assert r.status_code == 200
    body = r.json()
    assert body["items"] == []
    assert body["count"] == 0
    assert body["summary"]["total"] == "5.00"


@pytest.mark.django_db
def test_add_items_and_price_summary(client):
    assert _add(client, "p-1", "10.00", 2).status_code == 201
    r = _add(client, "p-2", "5.00", 1)
    assert r.status_code == 201

    body = client.get(CART_URL).json()
    assert [i["productId"] for i in body["items"]] == ["p-1", "p-2"]
    assert body["count"] == 3
    assert body["summary"] == {"subtotal": "25.00", "shipping": "5.00", "tax": "2.00", "total": "32.00"}


@pytest.mark.django_db
def test_adding_same_product_merges(client):
    _add(client, quantity=1)
    body = _add(client, quantity=2).json()
    assert len(body["items"]) == 1
    assert body["items"][0]["quantity"] == 3


@pytest.mark.django_db
@pytest.mark.parametrize(
    "payload",
    [
        {"productId": "p-1", "title": "x", "unitPrice": "-1.00"},
        {"productId": "p-1", "title": "x", "unitPrice": "1.00", "quantity": 0},
        {"title": "x", "unitPrice": "1.00"},
    ],
)
def test_invalid_item_rejected(client, payload):
    r = client.post(ITEMS_URL, data=payload, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_ITEM"


@pytest.mark.django_db
def test_patch_quantity_and_remove_by_zero(client):
    _add(client, "p-1", quantity=1)
    r = client.patch(f"{ITEMS_URL}p-1/", data={"quantity": 4}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["items"][0]["quantity"] == 4

    r = client.patch(f"{ITEMS_URL}p-1/", data={"quantity": 0}, content_type="application/json")
    assert r.json()["items"] == []


@pytest.mark.django_db
def test_patch_unknown_product(client):
    r = client.patch(f"{ITEMS_URL}nope/", data={"quantity": 1}, content_type="application/json")
    assert r.status_code == 404
    assert r.json()["detail"] == "NOT_FOUND"


@pytest.mark.django_db
def test_delete_item_and_clear(client):
    _add(client, "p-1")
    _add(client, "p-2")
    r = client.delete(f"{ITEMS_URL}p-1/")
    assert [i["productId"] for i in r.json()["items"]] == ["p-2"]

    r = client.delete(CART_URL)
    assert r.json()["items"] == []


@pytest.mark.django_db
def test_carts_are_per_session(client):
    _add(client, "p-1")
    assert Client().get(CART_URL).json()["items"] == []


@pytest.mark.django_db
def test_request_id_is_echoed(client):
    r = client.get(CART_URL, HTTP_X_REQUEST_ID="abc-123")
    assert r["X-Request-ID"] == "abc-123"
    generated = client.get(CART_URL, HTTP_X_REQUEST_ID="not valid!")["X-Request-ID"]
    assert generated != "not valid!"
