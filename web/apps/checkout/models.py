from django.db import models


class FallbackOrderBucket(models.Model):
    # One row per storage key; payload is the full list of serialized orders
    key = models.CharField(max_length=64, unique=True)
    payload = models.JSONField(default=list)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fallback_orders"

    def __str__(self):
        return f"{self.key} ({len(self.payload or [])} orders)"
