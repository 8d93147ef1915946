"""Checkout orchestration.

``CheckoutOrchestrator`` drives one checkout screen: it validates the
form, gates on authentication, builds and persists the order, schedules
the confirmation and clears the cart. It owns the user-facing state
machine::

    IDLE -> VALIDATING -> FAILED            (field errors)
                       -> AUTH_GATE         (no identity; resume after login)
                       -> SUBMITTING -> SUCCEEDED
                                     -> FAILED  (order could not be saved)

``leave()`` brings any state back to IDLE. Results of a submission that
finish after the user left are dropped.
"""

import asyncio
import logging
from concurrent.futures import Future
from typing import Callable, Mapping, Optional

from django.conf import settings

from .builder import build_order
from .cart import CartStore
from .context import AppContext
from .domain import CancellationToken, CheckoutOutcome, CheckoutState, Order
from .errors import CheckoutCancelled, FallbackWriteFailure
from .notifications import NotificationDispatcher
from .persistence import OrderPersistenceGateway
from .validation import validate

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "There was a problem processing your order. Please try again."


class CheckoutOrchestrator:
    """Sequences validation, auth gate, persistence, notification and cart clear.

    Attributes:
        state: Current ``CheckoutState``.
        errors: Field errors from the last validation.
        message: Banner text for the last systemic failure.
    """

    def __init__(
        self,
        context: AppContext,
        cart: CartStore,
        gateway: OrderPersistenceGateway,
        dispatcher: NotificationDispatcher,
        validator: Callable[[Mapping, object], dict] = validate,
        builder: Callable[..., Order] = build_order,
    ):
        self.context = context
        self.cart = cart
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.validator = validator
        self.builder = builder

        self.state = CheckoutState.IDLE
        self.errors: dict[str, str] = {}
        self.message: Optional[str] = None
        self._token = CancellationToken()
        self._notifications: set[Future] = set()

    @property
    def cart_url(self) -> str:
        return getattr(settings, "CHECKOUT_CART_URL", "/api/cart/")

    @property
    def login_url(self) -> str:
        return getattr(settings, "CHECKOUT_LOGIN_URL", "/api/auth/login/")

    @property
    def confirmation_url(self) -> str:
        return getattr(settings, "CHECKOUT_CONFIRMATION_URL", "/order-confirmation")

    def enter(self) -> CheckoutOutcome:
        """Open the checkout screen; an empty cart redirects to the cart."""
        if self.cart.is_empty():
            return CheckoutOutcome(state=self.state, redirect=self.cart_url)
        return CheckoutOutcome(state=self.state)

    def leave(self) -> None:
        """Navigate away: cancel an in-flight submission and reset to IDLE."""
        if self.state is CheckoutState.SUBMITTING:
            self._token.cancel()
            logger.info("checkout left during submission")
        self.state = CheckoutState.IDLE
        self.errors = {}
        self.message = None

    async def submit(self, form_values: Mapping, payment_method) -> CheckoutOutcome:
        """Handle a checkout form submission.

        Args:
            form_values: camelCase checkout form values.
            payment_method: ``PaymentMethod`` or its string value.

        Returns:
            CheckoutOutcome: The resulting state together with field errors,
            the persisted order, the next navigation target or a banner
            message, depending on how the submission ended.
        """
        if self.state is CheckoutState.SUBMITTING:
            return CheckoutOutcome(state=self.state, message="Your order is already being processed.")

        items = self.cart.items()
        if not items:
            return CheckoutOutcome(state=self.state, redirect=self.cart_url)

        self.state = CheckoutState.VALIDATING
        self.message = None
        self.errors = self.validator(form_values, payment_method)
        if self.errors:
            self.state = CheckoutState.FAILED
            return CheckoutOutcome(state=self.state, errors=dict(self.errors))

        if not self.context.is_authenticated:
            self.state = CheckoutState.AUTH_GATE
            self.context.request_resume()
            logger.info("checkout requires login, resume signal stored")
            return CheckoutOutcome(state=self.state, redirect=self.login_url)

        self.state = CheckoutState.SUBMITTING
        token = self._token = CancellationToken()
        order = self.builder(items, form_values, payment_method, self.context.customer_id)

        try:
            saved = await self.gateway.save(order, token)
        except CheckoutCancelled:
            logger.info("checkout submission cancelled")
            return CheckoutOutcome(state=self.state)
        except FallbackWriteFailure:
            if self._is_stale(token):
                return CheckoutOutcome(state=self.state)
            self.state = CheckoutState.FAILED
            self.message = RETRY_MESSAGE
            return CheckoutOutcome(state=self.state, message=self.message)

        if self._is_stale(token):
            logger.info("checkout left before completion, result dropped", extra={"order_id": saved.id})
            return CheckoutOutcome(state=self.state)

        self.state = CheckoutState.SUCCEEDED
        self._schedule_notification(saved, token)
        self.cart.clear()
        logger.info("checkout succeeded", extra={"order_id": saved.id})
        return CheckoutOutcome(state=self.state, order=saved, redirect=self.confirmation_url)

    def _is_stale(self, token: CancellationToken) -> bool:
        return token is not self._token or token.cancelled or self.state is not CheckoutState.SUBMITTING

    def _schedule_notification(self, order: Order, token: CancellationToken) -> None:
        future = self.dispatcher.notify_in_background(order, token)
        self._notifications.add(future)
        future.add_done_callback(self._notifications.discard)

    async def drain_notifications(self) -> None:
        """Wait for this orchestrator's queued confirmations."""
        pending = list(self._notifications)
        if pending:
            await asyncio.gather(*(asyncio.wrap_future(f) for f in pending), return_exceptions=True)
