"""Login and checkout resume."""
import pytest

from apps.checkout import providers

LOGIN_URL = "/api/auth/login/"


@pytest.fixture
def customer(django_user_model):
    return django_user_model.objects.create_user(username="ada", password="s3cret-pass")


@pytest.mark.django_db
def test_login_without_pending_checkout(client, customer):
    r = client.post(LOGIN_URL, data={"username": "ada", "password": "s3cret-pass"}, content_type="application/json")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "resumeCheckout": False, "redirect": "/"}


@pytest.mark.django_db
def test_login_wrong_password(client, customer):
    r = client.post(LOGIN_URL, data={"username": "ada", "password": "nope"}, content_type="application/json")
    assert r.status_code == 401
    assert r.json()["detail"] == "INVALID_CREDENTIALS"


@pytest.mark.django_db
def test_login_resumes_checkout(client, customer, valid_form):
    item = {"productId": "p-1", "title": "Notebook", "unitPrice": "60.00"}
    client.post("/api/cart/items/", data=item, content_type="application/json")
    gated = client.post("/api/checkout/", data=valid_form, content_type="application/json")
    assert gated.status_code == 401

    r = client.post(LOGIN_URL, data={"username": "ada", "password": "s3cret-pass"}, content_type="application/json")
    assert r.json()["resumeCheckout"] is True
    assert r.json()["redirect"] == "/api/checkout/"
    assert "pending_checkout" not in client.session

    # the cart survives the login and checkout can be replayed
    done = client.post(r.json()["redirect"], data=valid_form, content_type="application/json")
    assert done.status_code == 201
    assert done.json()["totalAmount"] == "64.80"
    assert len(providers.order_store_stub.orders) == 1
