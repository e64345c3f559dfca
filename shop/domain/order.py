"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from shop.domain.errors import InvalidStateError


class OrderStatus(str, Enum):
    """Order fulfilment status."""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"


class OrderLine:
    """Order line value object (price captured at sale time)."""

    def __init__(
        self,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
        id: UUID | None = None,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if unit_price < 0:
            raise ValueError("Unit price must be non-negative")

        self.id = id or uuid4()
        self.product_id = product_id
        self.quantity = quantity
        self.unit_price = unit_price

    @property
    def subtotal(self) -> Decimal:
        """Calculate line subtotal."""
        return self.unit_price * self.quantity


class Order:
    """Order aggregate root."""

    def __init__(
        self,
        id: UUID | None = None,
        customer_id: UUID | None = None,
        total_amount: Decimal = Decimal("0.00"),
        payment_method: str = "",
        status: OrderStatus = OrderStatus.PENDING,
        lines: list[OrderLine] | None = None,
        idempotency_key: str | None = None,
    ):
        if total_amount < 0:
            raise ValueError("Total amount must be non-negative")

        self.id = id or uuid4()
        self.customer_id = customer_id
        self.total_amount = total_amount
        self.payment_method = payment_method
        self.idempotency_key = idempotency_key
        self._lines = lines or []
        self._status = status

    @property
    def lines(self) -> list[OrderLine]:
        """Get order lines (immutable)."""
        return list(self._lines)

    @property
    def status(self) -> OrderStatus:
        """Get order status."""
        return self._status

    @property
    def lines_total(self) -> Decimal:
        """Sum of line subtotals, before any discount."""
        return sum((line.subtotal for line in self._lines), Decimal("0.00"))

    def line_for(self, product_id: UUID) -> OrderLine | None:
        """Find the line for a product, if any."""
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def add_line(self, product_id: UUID, quantity: int, unit_price: Decimal) -> OrderLine:
        """Add line to order."""
        line = OrderLine(product_id, quantity, unit_price)
        self._lines.append(line)
        return line

    def set_status(self, status: OrderStatus) -> None:
        """Set status unconditionally; any status may follow any other."""
        self._status = OrderStatus(status)

    def confirm_delivery(self) -> None:
        """Customer confirms receipt of an order that is out for delivery."""
        if self._status != OrderStatus.OUT_FOR_DELIVERY:
            raise InvalidStateError(
                f"Order {self.id} is not out for delivery (status: {self._status.value})"
            )

        self._status = OrderStatus.DELIVERED
