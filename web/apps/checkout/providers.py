"""Service provider helpers for wiring checkout with its ports.

The factories here return the persistence gateway, the notification
dispatcher and a per-request ``CheckoutOrchestrator``. When
``settings.USE_HTTP_ADAPTERS`` is truthy the remote order store and the
notification function are reached over HTTP; otherwise the process-wide
in-memory stubs are used, which is what tests and local development rely
on. The local fallback store is always the database-backed one.
"""

from django.conf import settings

from .adapters import NotificationStub, OrderStoreStub
from .cart import CartStore
from .context import AppContext
from .http_adapters import HttpNotificationClient, HttpOrderStoreClient
from .notifications import NotificationDispatcher
from .orchestrator import CheckoutOrchestrator
from .persistence import OrderPersistenceGateway
from .repository import DatabaseFallbackStore

# Shared so that orders written by one request are visible to the next.
order_store_stub = OrderStoreStub()
notification_stub = NotificationStub()


def _use_http() -> bool:
    return bool(getattr(settings, "USE_HTTP_ADAPTERS", True))


def get_persistence_gateway() -> OrderPersistenceGateway:
    """Return a gateway over the configured remote store and the DB fallback."""
    remote = HttpOrderStoreClient() if _use_http() else order_store_stub
    return OrderPersistenceGateway(remote=remote, fallback=DatabaseFallbackStore())


def get_notification_dispatcher() -> NotificationDispatcher:
    sender = HttpNotificationClient() if _use_http() else notification_stub
    return NotificationDispatcher(sender)


def get_checkout_orchestrator(context: AppContext) -> CheckoutOrchestrator:
    """Return an orchestrator bound to one client's context and cart.

    Args:
        context: The request's ``AppContext``.

    Returns:
        CheckoutOrchestrator: A fresh orchestrator in state ``IDLE``.
    """
    return CheckoutOrchestrator(
        context=context,
        cart=CartStore(context),
        gateway=get_persistence_gateway(),
        dispatcher=get_notification_dispatcher(),
    )
