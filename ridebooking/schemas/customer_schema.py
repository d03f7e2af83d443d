"""Customer context handed to the wizard at construction."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BookingContext:
    """
    Explicit per-session customer context.

    Replaces ambient lookups of the signed-in user and auth token. The
    wizard pre-fills customer fields from it and the REST client reads
    the token from it.
    """
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    auth_token: Optional[str] = None

    def prefill(self) -> dict[str, str]:
        """Customer field values known up front."""
        values = {
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
        }
        return {k: v for k, v in values.items() if v}
