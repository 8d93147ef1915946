"""Checkout error taxonomy.

Every failure the pipeline can produce is one of the ``CheckoutError``
subclasses below. Each carries a stable ``code`` (also its ``str()``), the
same short upper-case codes the HTTP layer returns in ``{"detail": ...}``
bodies, plus structured fields describing what failed.
"""

from typing import Optional


class CheckoutError(Exception):
    """Base class for checkout failures."""

    code = "CHECKOUT_ERROR"

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(self.code)
        self.cause = cause

    def __str__(self) -> str:
        return self.code


class ValidationError(CheckoutError):
    """Form fields failed validation; rendered inline, never propagated."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: dict[str, str]):
        super().__init__()
        self.errors = dict(errors)


class RemoteWriteFailure(CheckoutError):
    """The remote order store could not take the order.

    Attributes:
        stage: ``precondition`` (no customer id), ``header`` or ``items``.
        order_id: Remote id of a header that was written before the failure.
    """

    code = "REMOTE_WRITE_FAILED"

    def __init__(self, stage: str, order_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(cause)
        self.stage = stage
        self.order_id = order_id


class FallbackWriteFailure(CheckoutError):
    """The local fallback store rejected the write; the order is not saved."""

    code = "FALLBACK_WRITE_FAILED"

    def __init__(self, storage_key: str, cause: Optional[BaseException] = None):
        super().__init__(cause)
        self.storage_key = storage_key


class NotificationFailure(CheckoutError):
    """The confirmation message could not be sent. Logged only."""

    code = "NOTIFICATION_FAILED"

    def __init__(self, order_id: Optional[str], cause: Optional[BaseException] = None):
        super().__init__(cause)
        self.order_id = order_id


class CheckoutCancelled(CheckoutError):
    """The user left checkout while a submission was in flight."""

    code = "CHECKOUT_CANCELLED"
