"""HTTP views for the checkout app.

Views are kept small: they validate request bodies (via Pydantic), build
an ``AppContext`` from the session and the authenticated user, delegate to
the cart store or the checkout orchestrator, and map the result to an HTTP
response with ``{"detail": CODE}`` bodies for failures.

The orchestrator, gateway and dispatcher come from ``providers``, which
returns HTTP adapter-backed ports or in-process stubs depending on
``settings.USE_HTTP_ADAPTERS``.

Checkout submission is a coroutine; the synchronous DRF view runs it
under ``async_to_sync``. The order confirmation is queued on the
dispatcher's background pool and is not awaited by the request.
"""

import logging
from collections.abc import Mapping

from asgiref.sync import async_to_sync
from django.contrib.auth import authenticate, login
from django.core.cache import cache
from django.urls import reverse
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .cart import CartStore
from .context import AppContext
from .domain import CartItem, CheckoutState
from .schemas import CartDTO, CartItemIn, CartQuantityIn, ConfirmationDTO, LoginIn, OrderReadDTO

logger = logging.getLogger(__name__)

IN_PROGRESS_TTL_SECS = 120


def _see_other(url: str) -> Response:
    resp = Response({"detail": "CART_EMPTY", "redirect": url}, status=status.HTTP_303_SEE_OTHER)
    resp["Location"] = url
    return resp


def _cart_response(cart: CartStore, status_code: int = status.HTTP_200_OK) -> Response:
    return Response(CartDTO.from_cart(cart).to_json(), status=status_code)


class CartView(APIView):
    """Read or clear the session cart."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "cart"

    def get(self, request):
        return _cart_response(CartStore(AppContext.from_request(request)))

    def delete(self, request):
        cart = CartStore(AppContext.from_request(request))
        cart.clear()
        return _cart_response(cart)


class CartItemsView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "cart"

    def post(self, request):
        """Add a product to the cart, merging with an existing line.

        Returns:
            Response: 201 with the cart, or 400 for an invalid body.
        """
        try:
            dto = CartItemIn.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": "INVALID_ITEM", "errors": e.errors(include_url=False, include_context=False)}, status=400)

        cart = CartStore(AppContext.from_request(request))
        try:
            cart.add(CartItem(**dto.model_dump()))
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return _cart_response(cart, status.HTTP_201_CREATED)


class CartItemDetailView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "cart"

    def patch(self, request, product_id: str):
        try:
            dto = CartQuantityIn.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": "INVALID_QUANTITY", "errors": e.errors(include_url=False, include_context=False)}, status=400)

        cart = CartStore(AppContext.from_request(request))
        try:
            cart.update_quantity(product_id, dto.quantity)
        except KeyError:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return _cart_response(cart)

    def delete(self, request, product_id: str):
        cart = CartStore(AppContext.from_request(request))
        cart.remove(product_id)
        return _cart_response(cart)


class CheckoutView(APIView):
    """Enter checkout (GET) or submit the checkout form (POST)."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "checkout_view" if self.request.method == "GET" else "checkout_submit"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        context = AppContext.from_request(request)
        orchestrator = providers.get_checkout_orchestrator(context)
        outcome = orchestrator.enter()
        if outcome.redirect:
            return _see_other(outcome.redirect)
        body = CartDTO.from_cart(orchestrator.cart).to_json()
        body["authenticated"] = context.is_authenticated
        return Response(body, status=status.HTTP_200_OK)

    def post(self, request):
        """Submit the checkout form.

        The body holds the camelCase form fields plus ``paymentMethod``
        (default ``credit-card``).

        Returns:
            Response: One of the following responses.
            - 201 with the order snapshot, ``orderNumber`` and ``redirect``.
            - 400 with {detail: "VALIDATION_ERROR", errors} for field errors,
              or {detail: "INVALID_BODY"} when the body is not an object.
            - 401 with {detail: "AUTH_REQUIRED", redirect} for guests; the
              resume signal is stored in the session.
            - 303 to the cart when the cart is empty.
            - 409 with {detail: "CHECKOUT_IN_PROGRESS"} while another
              submission of the same session is running.
            - 503 with {detail: "ORDER_NOT_SAVED", message} when the order
              could not be stored anywhere.
        """
        context = AppContext.from_request(request)
        orchestrator = providers.get_checkout_orchestrator(context)
        # Loads the session here; it must not be first touched inside the event loop.
        if orchestrator.cart.is_empty():
            return _see_other(orchestrator.cart_url)

        if not isinstance(request.data, Mapping):
            return Response({"detail": "INVALID_BODY"}, status=status.HTTP_400_BAD_REQUEST)
        form_values = request.data.dict() if hasattr(request.data, "dict") else dict(request.data)
        payment_method = form_values.pop("paymentMethod", None) or "credit-card"

        if not request.session.session_key:
            request.session.save()
        lock_key = f"checkout:in-progress:{request.session.session_key}"
        if not cache.add(lock_key, 1, IN_PROGRESS_TTL_SECS):
            return Response({"detail": "CHECKOUT_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)

        try:
            outcome = async_to_sync(orchestrator.submit)(form_values, payment_method)
        finally:
            cache.delete(lock_key)

        if outcome.state is CheckoutState.SUCCEEDED:
            body = ConfirmationDTO.from_order(outcome.order).to_json()
            body["redirect"] = outcome.redirect
            return Response(body, status=status.HTTP_201_CREATED)
        if outcome.state is CheckoutState.AUTH_GATE:
            return Response({"detail": "AUTH_REQUIRED", "redirect": outcome.redirect}, status=401)
        if outcome.errors:
            return Response(
                {"detail": "VALIDATION_ERROR", "errors": outcome.errors}, status=status.HTTP_400_BAD_REQUEST
            )
        if outcome.state is CheckoutState.SUBMITTING:
            return Response({"detail": "CHECKOUT_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
        if outcome.redirect:
            return _see_other(outcome.redirect)
        return Response(
            {"detail": "ORDER_NOT_SAVED", "message": outcome.message}, status=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class LoginView(APIView):
    """Session login that resumes a checkout interrupted by the auth gate."""

    def post(self, request):
        try:
            dto = LoginIn.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": "INVALID_CREDENTIALS", "errors": e.errors(include_url=False, include_context=False)}, status=400)

        user = authenticate(request, username=dto.username, password=dto.password)
        if user is None:
            return Response({"detail": "INVALID_CREDENTIALS"}, status=status.HTTP_401_UNAUTHORIZED)

        login(request, user)
        resumed = AppContext.from_request(request).consume_resume()
        redirect = reverse("checkout:checkout") if resumed else "/"
        logger.info("customer logged in", extra={"resume_checkout": resumed})
        return Response({"ok": True, "resumeCheckout": resumed, "redirect": redirect}, status=200)


class OrdersView(APIView):
    """Order history of the authenticated customer."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_list"

    def get(self, request):
        context = AppContext.from_request(request)
        if not context.is_authenticated:
            return Response({"detail": "AUTH_REQUIRED"}, status=status.HTTP_401_UNAUTHORIZED)

        orders = async_to_sync(providers.get_persistence_gateway().list_orders)(context.customer_id)
        results = [OrderReadDTO.from_order(o).to_json() for o in orders]
        return Response({"count": len(results), "results": results}, status=200)
