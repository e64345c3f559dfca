"""
Domain model for catalog products.
"""
from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4


class Product:
    """Product with current price and available stock."""

    def __init__(
        self,
        name: str,
        unit_price: Decimal,
        stock: int = 0,
        id: UUID | None = None,
        description: str = "",
        image_ref: str = "",
    ):
        if unit_price < 0:
            raise ValueError("Unit price must be non-negative")
        if stock < 0:
            raise ValueError("Stock cannot be negative")

        self.id = id or uuid4()
        self.name = name
        self.unit_price = unit_price
        self.stock = stock
        self.description = description
        self.image_ref = image_ref

    def has_stock(self, quantity: int) -> bool:
        """Check whether `quantity` units are available."""
        return 0 < quantity <= self.stock
