"""
In-process oracle that calls the shop services directly (same Django process).
"""
from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from shop.cart.errors import RemoteRejection
from shop.cart.oracle import OrderLineReceipt, OrderReceipt, ProductSnapshot
from shop.domain.errors import DomainError
from shop.services import CatalogService, OrderService


class ServiceStockOracle:
    """Stock oracle and order status gateway backed by the service layer."""

    def __init__(
        self,
        catalog: CatalogService | None = None,
        orders: OrderService | None = None,
    ):
        self.catalog = catalog or CatalogService()
        self.orders = orders or OrderService()

    def get_product(self, product_id: UUID) -> ProductSnapshot | None:
        product = self.catalog.get_product(product_id)
        if product is None:
            return None
        return ProductSnapshot(
            id=product.id,
            name=product.name,
            unit_price=product.unit_price,
            stock=product.stock,
            image_ref=product.image_ref,
            description=product.description,
        )

    def create_order(
        self,
        customer_id: UUID,
        total_amount: Decimal,
        payment_method: str,
        idempotency_key: str | None = None,
    ) -> OrderReceipt:
        try:
            result = self.orders.create_order(
                customer_id=customer_id,
                total_amount=total_amount,
                payment_method=payment_method,
                idempotency_key=idempotency_key,
            )
        except ValueError as e:
            raise _rejection(e) from e
        return OrderReceipt(
            order_id=result["order_id"],
            status=result["status"],
            replayed=result["replayed"],
        )

    def create_order_line(
        self,
        order_id: UUID,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
    ) -> OrderLineReceipt:
        try:
            line = self.orders.add_order_line(order_id, product_id, quantity, unit_price)
        except ValueError as e:
            raise _rejection(e) from e
        return OrderLineReceipt(
            id=line.id,
            order_id=order_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )

    def get_order_status(self, order_id: UUID) -> str | None:
        order = self.orders.get_order(order_id)
        if order is None:
            return None
        return order.status.value

    def update_order_status(self, order_id: UUID, status: str) -> str:
        try:
            return self.orders.set_status(order_id, status).status.value
        except ValueError as e:
            raise _rejection(e) from e

    def confirm_delivery(self, order_id: UUID, customer_id: UUID) -> str:
        try:
            return self.orders.confirm_delivery(order_id, customer_id).status.value
        except ValueError as e:
            raise _rejection(e) from e


def _rejection(error: ValueError) -> RemoteRejection:
    code = error.code if isinstance(error, DomainError) else "VALIDATION_ERROR"
    return RemoteRejection(str(error), code=code)
