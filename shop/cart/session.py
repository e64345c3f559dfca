"""
Explicit session context carrying the signed-in customer.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass
class Session:
    """Init at sign-in, read by checkout, torn down at sign-out."""
    customer_id: UUID | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.customer_id is not None

    def sign_in(self, customer_id: UUID | str) -> None:
        self.customer_id = customer_id if isinstance(customer_id, UUID) else UUID(str(customer_id))

    def sign_out(self) -> None:
        self.customer_id = None
