"""Local fallback store for orders the remote store could not take.

Orders are kept as a JSON list inside a single ``FallbackOrderBucket`` row
per storage key. Appends are a read-modify-write of that list, done inside
a transaction with the row locked so concurrent writers (several tabs of
the same customer, several workers) cannot drop each other's orders.
"""

from typing import List, Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import transaction

from .models import FallbackOrderBucket


class DatabaseFallbackStore:
    """``FallbackStorePort`` implementation on top of the Django ORM.

    Attributes:
        key: Storage name of the bucket row holding the order list.
    """

    def __init__(self, key: Optional[str] = None):
        self.key = key or getattr(settings, "CHECKOUT_FALLBACK_KEY", "orders")

    async def append(self, record: dict) -> None:
        await sync_to_async(self._append)(record)

    async def load(self) -> List[dict]:
        return await sync_to_async(self._load)()

    def _append(self, record: dict) -> None:
        with transaction.atomic():
            FallbackOrderBucket.objects.get_or_create(key=self.key)
            bucket = FallbackOrderBucket.objects.select_for_update().get(key=self.key)
            orders = list(bucket.payload or [])
            orders.append(record)
            bucket.payload = orders
            bucket.save(update_fields=["payload", "updated_at"])

    def _load(self) -> List[dict]:
        bucket = FallbackOrderBucket.objects.filter(key=self.key).first()
        return list(bucket.payload or []) if bucket else []
