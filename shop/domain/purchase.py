"""
Domain model for supplier purchase orders (restocking).
"""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class PurchaseOrderStatus(str, Enum):
    """Purchase order status."""
    PENDING = "PENDING"


class PurchaseOrderLine:
    """Restocking line; adds `quantity` units to the product's stock."""

    def __init__(
        self,
        product_id: UUID,
        quantity: int,
        unit_cost: Decimal,
        id: UUID | None = None,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if unit_cost < 0:
            raise ValueError("Unit cost must be non-negative")

        self.id = id or uuid4()
        self.product_id = product_id
        self.quantity = quantity
        self.unit_cost = unit_cost

    @property
    def subtotal(self) -> Decimal:
        return self.unit_cost * self.quantity


class PurchaseOrder:
    """Purchase order aggregate root."""

    def __init__(
        self,
        supplier_id: UUID,
        id: UUID | None = None,
        status: PurchaseOrderStatus = PurchaseOrderStatus.PENDING,
        lines: list[PurchaseOrderLine] | None = None,
    ):
        self.id = id or uuid4()
        self.supplier_id = supplier_id
        self.status = PurchaseOrderStatus(status)
        self._lines = lines or []

    @property
    def lines(self) -> list[PurchaseOrderLine]:
        return list(self._lines)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.subtotal for line in self._lines), Decimal("0.00"))

    def add_line(self, product_id: UUID, quantity: int, unit_cost: Decimal) -> PurchaseOrderLine:
        """Add restocking line."""
        line = PurchaseOrderLine(product_id, quantity, unit_cost)
        self._lines.append(line)
        return line
