"""Best-effort order confirmation dispatch.

Confirmations run on a small module-level thread pool, each in its own
event loop, so the checkout response never waits on the notification
backend. ``wait_for_background`` lets a worker finish what is queued
before it exits.
"""

import asyncio
import contextvars
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional

from .domain import CancellationToken, NotificationPort, Order
from .errors import NotificationFailure
from .schemas import ConfirmationRequest

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="order-confirmation")
_pending: set[Future] = set()


def wait_for_background(timeout: Optional[float] = None) -> bool:
    """Block until queued confirmations finish; False if ``timeout`` expired."""
    _, not_done = wait(list(_pending), timeout=timeout)
    return not not_done


class NotificationDispatcher:
    """Sends the order confirmation and swallows every failure.

    A failed confirmation is logged and otherwise ignored: the order is
    already persisted and the checkout result does not depend on it.
    """

    def __init__(self, sender: NotificationPort):
        self.sender = sender

    def notify_in_background(self, order: Order, token: Optional[CancellationToken] = None) -> Future:
        """Queue ``notify`` on the confirmation pool and return immediately.

        The caller's context (request id included) is copied into the job.
        """
        ctx = contextvars.copy_context()

        def job():
            return asyncio.run(self.notify(order, token))

        future = _executor.submit(ctx.run, job)
        _pending.add(future)
        future.add_done_callback(_pending.discard)
        return future

    async def notify(self, order: Order, token: Optional[CancellationToken] = None) -> None:
        """Send the confirmation for ``order``; never raises.

        Skipped when the order has no shipping email or the submission's
        token was cancelled.
        """
        if not order.shipping_address.email:
            logger.info("order has no email, confirmation skipped", extra={"order_id": order.id})
            return
        if token is not None and token.cancelled:
            logger.info("checkout abandoned, confirmation skipped", extra={"order_id": order.id})
            return

        payload = ConfirmationRequest.from_order(order).model_dump(mode="json", by_alias=True)
        try:
            sent = await self.sender.send_order_confirmation(payload)
            if not sent:
                raise NotificationFailure(order.id)
        except Exception as exc:
            failure = exc if isinstance(exc, NotificationFailure) else NotificationFailure(order.id, cause=exc)
            logger.error(
                "order confirmation failed",
                extra={"order_id": failure.order_id, "cause": repr(failure.cause)},
            )
            return
        logger.info("order confirmation sent", extra={"order_id": order.id})
