"""Per-session application context.

The context bundles the client's durable storage (the Django session in
production, any mutable mapping in tests) with the authenticated customer
identity. It is created once per request and handed to the cart store and
the checkout orchestrator instead of either of them reaching for global
state.
"""

from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

RESUME_CHECKOUT_KEY = "pending_checkout"


@dataclass
class AppContext:
    """Storage and identity for one client session.

    Attributes:
        storage: Mutable mapping persisted across requests for this client.
        customer_id: Authenticated customer id, or None for guests.
    """

    storage: MutableMapping[str, Any]
    customer_id: Optional[str] = None

    @classmethod
    def from_request(cls, request) -> "AppContext":
        user = getattr(request, "user", None)
        customer_id = str(user.pk) if user is not None and user.is_authenticated else None
        return cls(storage=request.session, customer_id=customer_id)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.customer_id)

    def request_resume(self) -> None:
        """Remember that checkout should resume after the next login."""
        self.storage[RESUME_CHECKOUT_KEY] = True

    def consume_resume(self) -> bool:
        """Pop the resume signal; True when checkout was waiting on login."""
        return bool(self.storage.pop(RESUME_CHECKOUT_KEY, False))
