"""Order persistence with a single remote-to-local fallback.

``OrderPersistenceGateway.save`` first tries the remote relational store
(order header, then its line items). Any failure there, including a
missing customer id, sends the whole order to the local fallback store
instead. When ``save`` returns, exactly one of the two stores holds the
order.
"""

import dataclasses
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from .domain import (
    CancellationToken,
    FallbackStorePort,
    Order,
    OrderStatus,
    RemoteOrderStorePort,
)
from .errors import CheckoutCancelled, FallbackWriteFailure, RemoteWriteFailure
from .schemas import OrderReadDTO

logger = logging.getLogger(__name__)


class OrderPersistenceGateway:
    """Saves orders remotely when possible and locally otherwise."""

    def __init__(self, remote: RemoteOrderStorePort, fallback: FallbackStorePort, clock=None):
        """Initialize the gateway.

        Args:
            remote: Port to the remote order store.
            fallback: Port to the local fallback store.
            clock: Callable returning the current aware datetime; used for
                fallback timestamps.
        """
        self.remote = remote
        self.fallback = fallback
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def save(self, order: Order, token: Optional[CancellationToken] = None) -> Order:
        """Persist ``order`` and return the stored record.

        Steps:
            1) Guests (no ``customer_id``) skip the remote store.
            2) Insert the header remotely, then its items under the returned id.
            3) On any remote failure, write the order to the fallback store
               with a fresh id and timestamp.

        If the item insert fails after the header was written, the orphaned
        header is deleted before falling back.

        Args:
            order: Order built by ``build_order``.
            token: Cancellation token of the submission, if any.

        Returns:
            Order: The record with its store-assigned id and ``created_at``,
            status ``PENDING``.

        Raises:
            CheckoutCancelled: If the token was cancelled before the remote
                write completed.
            FallbackWriteFailure: If the remote write failed and the local
                write failed too.
        """
        token = token or CancellationToken()
        try:
            return await self._save_remote(order, token)
        except RemoteWriteFailure as exc:
            logger.warning(
                "remote order write failed, using local fallback",
                extra={"stage": exc.stage, "remote_order_id": exc.order_id, "cause": repr(exc.cause)},
            )
        return await self._save_fallback(order)

    async def _save_remote(self, order: Order, token: CancellationToken) -> Order:
        if not order.customer_id:
            raise RemoteWriteFailure("precondition")

        token.raise_if_cancelled()
        try:
            header = await self.remote.insert_order(order)
        except Exception as exc:
            raise RemoteWriteFailure("header", cause=exc) from exc

        if token.cancelled:
            await self._compensate(header.id)
            raise CheckoutCancelled()

        try:
            await self.remote.insert_items(header.id, list(order.items))
        except Exception as exc:
            await self._compensate(header.id)
            raise RemoteWriteFailure("items", order_id=header.id, cause=exc) from exc

        logger.info("order stored remotely", extra={"order_id": header.id, "items": len(order.items)})
        return dataclasses.replace(order, id=header.id, created_at=header.created_at, status=OrderStatus.PENDING)

    async def _compensate(self, order_id: str) -> None:
        # Best effort: a header we could not delete stays orphaned remotely.
        try:
            await self.remote.delete_order(order_id)
        except Exception:
            logger.exception("could not delete orphaned order header", extra={"remote_order_id": order_id})

    async def _save_fallback(self, order: Order) -> Order:
        record = dataclasses.replace(
            order,
            id=str(uuid.uuid4()),
            created_at=self.clock(),
            status=OrderStatus.PENDING,
        )
        try:
            await self.fallback.append(OrderReadDTO.from_order(record).to_json())
        except Exception as exc:
            logger.error(
                "fallback order write failed",
                extra={"storage_key": self.fallback.key, "cause": repr(exc)},
            )
            raise FallbackWriteFailure(self.fallback.key, cause=exc) from exc
        logger.info("order stored in local fallback", extra={"order_id": record.id, "storage_key": self.fallback.key})
        return record

    async def list_orders(self, customer_id: str) -> List[Order]:
        """Return a customer's orders, remote first, local on failure.

        Args:
            customer_id: Authenticated customer id.

        Returns:
            list[Order]: Orders newest first.
        """
        try:
            return await self.remote.fetch_orders(customer_id)
        except Exception as exc:
            logger.warning("remote order read failed, using local fallback", extra={"cause": repr(exc)})

        records = [OrderReadDTO.model_validate(r).to_order() for r in await self.fallback.load()]
        mine = [o for o in records if o.customer_id == customer_id]
        return sorted(mine, key=lambda o: o.created_at, reverse=True)
