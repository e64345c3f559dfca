"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction
from django.db.models import F, Prefetch

from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.product import Product
from shop.domain.purchase import PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatus
from shop.infra.models import (
    CustomerORM,
    IdempotencyKey,
    OrderLineORM,
    OrderORM,
    ProductORM,
    PurchaseOrderLineORM,
    PurchaseOrderORM,
    SupplierORM,
)

logger = logging.getLogger(__name__)


def _order_lines() -> Prefetch:
    return Prefetch("lines", queryset=OrderLineORM.objects.order_by("created_at"))


class CustomerRepository:
    """Repository for Customer entities."""

    def get_by_id(self, customer_id: UUID | str) -> CustomerORM | None:
        """Get customer by ID."""
        return CustomerORM.objects.filter(id=customer_id).first()

    def create(self, name: str, email: str = "") -> UUID:
        """Create new customer."""
        new_customer = CustomerORM.objects.create(
            name=name,
            email=email,
        )
        return new_customer.id


class SupplierRepository:
    """Repository for Supplier entities."""

    def get_by_id(self, supplier_id: UUID) -> SupplierORM | None:
        return SupplierORM.objects.filter(id=supplier_id).first()

    def create(self, name: str, **fields) -> UUID:
        supplier = SupplierORM.objects.create(name=name, **fields)
        return supplier.id


class ProductRepository:
    """Repository for catalog products and their stock counter."""

    def get_by_id(self, product_id: UUID) -> Product | None:
        """Get product by ID."""
        product_orm = ProductORM.objects.filter(id=product_id).first()
        if product_orm is None:
            return None
        return self._to_domain(product_orm)

    def exists(self, product_id: UUID) -> bool:
        return ProductORM.objects.filter(id=product_id).exists()

    def create(self, product: Product) -> UUID:
        """Persist a new product."""
        product_orm = ProductORM.objects.create(
            id=product.id,
            name=product.name,
            description=product.description,
            unit_price=product.unit_price,
            stock=product.stock,
            image_ref=product.image_ref,
        )
        return product_orm.id

    def decrement_stock(self, product_id: UUID, quantity: int) -> bool:
        """
        Atomically take `quantity` units out of stock.

        Returns False (and changes nothing) when fewer than `quantity`
        units are available, so stock never goes negative.
        """
        updated = (
            ProductORM.objects
            .filter(id=product_id, stock__gte=quantity)
            .update(stock=F("stock") - quantity)
        )
        return updated == 1

    def increment_stock(self, product_id: UUID, quantity: int) -> bool:
        """Atomically add `quantity` units to stock."""
        updated = (
            ProductORM.objects
            .filter(id=product_id)
            .update(stock=F("stock") + quantity)
        )
        return updated == 1

    def _to_domain(self, product_orm: ProductORM) -> Product:
        return Product(
            id=product_orm.id,
            name=product_orm.name,
            unit_price=product_orm.unit_price,
            stock=product_orm.stock,
            description=product_orm.description,
            image_ref=product_orm.image_ref,
        )


class OrderRepository:
    """Repository for Order aggregate."""

    def get_by_id(self, order_id: UUID, for_update: bool = False) -> Order | None:
        """
        Get order by ID with lines (no N+1).

        With for_update the order row stays locked until the surrounding
        transaction ends.
        """
        queryset = OrderORM.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            order_orm = queryset.prefetch_related(_order_lines()).get(id=order_id)
            return self._to_domain(order_orm)
        except OrderORM.DoesNotExist:
            return None

    def get_by_customer(self, customer_id: UUID, limit: int = 50, offset: int = 0) -> list[Order]:
        """Get orders by customer with pagination."""
        orders_orm = (
            OrderORM.objects
            .filter(customer_id=customer_id)
            .prefetch_related(_order_lines())
            .order_by("-created_at")[offset:offset + limit]
        )
        return [self._to_domain(order_orm) for order_orm in orders_orm]

    @transaction.atomic
    def save(self, order: Order) -> UUID:
        """Save order header. Lines are written only through add_line()."""
        order_orm, _ = OrderORM.objects.update_or_create(
            id=order.id,
            defaults={
                "customer_id": order.customer_id,
                "total_amount": order.total_amount,
                "payment_method": order.payment_method,
                "status": order.status.value,
                "idempotency_key": order.idempotency_key,
            }
        )
        return order_orm.id

    def add_line(self, order_id: UUID, line: OrderLine) -> UUID:
        """Insert a single order line."""
        line_orm = OrderLineORM.objects.create(
            id=line.id,
            order_id=order_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        return line_orm.id

    def get_line(self, order_id: UUID, product_id: UUID) -> OrderLine | None:
        line_orm = OrderLineORM.objects.filter(order_id=order_id, product_id=product_id).first()
        if line_orm is None:
            return None
        return OrderLine(
            id=line_orm.id,
            product_id=line_orm.product_id,
            quantity=line_orm.quantity,
            unit_price=line_orm.unit_price,
        )

    def update_status(self, order_id: UUID, status: OrderStatus) -> bool:
        updated = OrderORM.objects.filter(id=order_id).update(status=status.value)
        return updated == 1

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        lines = [
            OrderLine(
                id=line_orm.id,
                product_id=line_orm.product_id,
                quantity=line_orm.quantity,
                unit_price=line_orm.unit_price,
            )
            for line_orm in order_orm.lines.all()
        ]

        return Order(
            id=order_orm.id,
            customer_id=order_orm.customer_id,
            total_amount=order_orm.total_amount,
            payment_method=order_orm.payment_method,
            status=OrderStatus(order_orm.status),
            lines=lines,
            idempotency_key=order_orm.idempotency_key,
        )


class PurchaseOrderRepository:
    """Repository for PurchaseOrder aggregate."""

    def get_by_id(self, purchase_order_id: UUID) -> PurchaseOrder | None:
        try:
            purchase_orm = (
                PurchaseOrderORM.objects
                .prefetch_related("lines")
                .get(id=purchase_order_id)
            )
        except PurchaseOrderORM.DoesNotExist:
            return None

        lines = [
            PurchaseOrderLine(
                id=line_orm.id,
                product_id=line_orm.product_id,
                quantity=line_orm.quantity,
                unit_cost=line_orm.unit_cost,
            )
            for line_orm in purchase_orm.lines.all()
        ]
        return PurchaseOrder(
            id=purchase_orm.id,
            supplier_id=purchase_orm.supplier_id,
            status=PurchaseOrderStatus(purchase_orm.status),
            lines=lines,
        )

    def save(self, purchase_order: PurchaseOrder) -> UUID:
        """Save purchase order header."""
        purchase_orm, _ = PurchaseOrderORM.objects.update_or_create(
            id=purchase_order.id,
            defaults={
                "supplier_id": purchase_order.supplier_id,
                "status": purchase_order.status.value,
            }
        )
        return purchase_orm.id

    def add_line(self, purchase_order_id: UUID, line: PurchaseOrderLine) -> UUID:
        line_orm = PurchaseOrderLineORM.objects.create(
            id=line.id,
            purchase_order_id=purchase_order_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_cost=line.unit_cost,
        )
        return line_orm.id


class IdempotencyKeyRepository:
    """Stores responses of keyed requests so retries can be replayed."""

    def get(self, key: str, user_id: UUID, operation: str) -> IdempotencyKey | None:
        return IdempotencyKey.objects.filter(
            key=key,
            user_id=user_id,
            operation=operation,
        ).first()

    def save(
        self,
        key: str,
        user_id: UUID,
        operation: str,
        request_hash: str,
        response_payload: dict,
    ) -> None:
        IdempotencyKey.objects.create(
            key=key,
            user_id=user_id,
            operation=operation,
            request_hash=request_hash,
            response_payload=response_payload,
        )
