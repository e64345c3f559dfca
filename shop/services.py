"""
Application services for catalog, order and purchase operations.
"""
from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal
from uuid import UUID

from django.db import IntegrityError, transaction

from shop.domain.errors import (
    IdempotencyConflictError,
    InsufficientStockError,
    NotFoundError,
)
from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.product import Product
from shop.domain.purchase import PurchaseOrder, PurchaseOrderLine
from shop.infra.pii_masker import mask_uuid
from shop.infra.repositories import (
    CustomerRepository,
    IdempotencyKeyRepository,
    OrderRepository,
    ProductRepository,
    PurchaseOrderRepository,
    SupplierRepository,
)

logger = logging.getLogger(__name__)

CREATE_ORDER = "CREATE_ORDER"


class CatalogService:
    """Read access to products, the source of truth for price and stock."""

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def get_product(self, product_id: UUID) -> Product | None:
        """Get product by ID."""
        return self.product_repo.get_by_id(product_id)


class OrderService:
    """Service for order operations."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        product_repo: ProductRepository | None = None,
        customer_repo: CustomerRepository | None = None,
        idempotency_repo: IdempotencyKeyRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.customer_repo = customer_repo or CustomerRepository()
        self.idempotency_repo = idempotency_repo or IdempotencyKeyRepository()

    @transaction.atomic
    def create_order(
        self,
        customer_id: UUID,
        total_amount: Decimal,
        payment_method: str,
        idempotency_key: str | None = None,
    ) -> dict:
        """
        Create order header in PENDING status.

        With an idempotency key, a repeated identical request returns the
        order created the first time instead of creating a new one.
        """
        customer = self.customer_repo.get_by_id(customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        if not payment_method:
            raise ValueError("Payment method is required")

        request_hash = None
        if idempotency_key:
            request_hash = self._create_request_hash(
                customer_id=str(customer_id),
                total_amount=str(total_amount),
                payment_method=payment_method,
            )
            existing = self.idempotency_repo.get(idempotency_key, customer_id, CREATE_ORDER)
            if existing:
                if existing.request_hash != request_hash:
                    logger.warning(
                        "idempotency_key_conflict",
                        extra={
                            "user_id": mask_uuid(str(customer_id)),
                            "idempotency_key": idempotency_key,
                        }
                    )
                    raise IdempotencyConflictError(
                        "Idempotency key already used with different request"
                    )

                logger.info(
                    "idempotent_request_cached",
                    extra={
                        "idempotency_key": idempotency_key,
                        "operation": CREATE_ORDER,
                    }
                )
                payload = existing.response_payload
                return {
                    "order_id": UUID(payload["order_id"]),
                    "status": payload["status"],
                    "replayed": True,
                }

        order = Order(
            customer_id=customer_id,
            total_amount=total_amount,
            payment_method=payment_method,
            idempotency_key=idempotency_key,
        )
        order_id = self.order_repo.save(order)

        if idempotency_key:
            self.idempotency_repo.save(
                key=idempotency_key,
                user_id=customer_id,
                operation=CREATE_ORDER,
                request_hash=request_hash,
                response_payload={"order_id": str(order_id), "status": order.status.value},
            )

        logger.info(
            "order_created",
            extra={
                "order_id": str(order_id),
                "user_id": mask_uuid(str(customer_id)),
                "operation": CREATE_ORDER,
            }
        )
        return {"order_id": order_id, "status": order.status.value, "replayed": False}

    @transaction.atomic
    def add_order_line(
        self,
        order_id: UUID,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
    ) -> OrderLine:
        """
        Add a line to an order and take its quantity out of stock.

        Both writes happen in one transaction. Re-submitting the same product
        with the same quantity returns the existing line without touching
        stock again. The order row is locked for the whole call and
        (order, product) is unique, so two overlapping submissions of the
        same line decrement stock once.
        """
        order = self.order_repo.get_by_id(order_id, for_update=True)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        existing = order.line_for(product_id)
        if existing is not None:
            return self._replay_line(order_id, existing, quantity)

        line = order.add_line(product_id, quantity, unit_price)

        try:
            with transaction.atomic():
                self.order_repo.add_line(order.id, line)
        except IntegrityError:
            existing = self.order_repo.get_line(order_id, product_id)
            if existing is None:
                raise
            return self._replay_line(order_id, existing, quantity)

        if not self.product_repo.decrement_stock(product_id, quantity):
            if not self.product_repo.exists(product_id):
                raise NotFoundError(f"Product {product_id} not found")
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}: requested {quantity}"
            )

        logger.info(
            "order_line_created",
            extra={
                "order_id": str(order_id),
                "product_id": str(product_id),
                "status": "created",
            }
        )
        return line

    def _replay_line(self, order_id: UUID, existing: OrderLine, quantity: int) -> OrderLine:
        if existing.quantity != quantity:
            raise IdempotencyConflictError(
                f"Order {order_id} already has a line for product {existing.product_id}"
            )
        logger.info(
            "order_line_replayed",
            extra={"order_id": str(order_id), "product_id": str(existing.product_id)},
        )
        return existing

    @transaction.atomic
    def set_status(self, order_id: UUID, status: OrderStatus | str) -> Order:
        """Admin transition; any status can be set from any status."""
        order = self.order_repo.get_by_id(order_id, for_update=True)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        previous = order.status
        order.set_status(OrderStatus(status))
        self.order_repo.update_status(order.id, order.status)

        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(order_id),
                "status": f"{previous.value}->{order.status.value}",
            }
        )
        return order

    @transaction.atomic
    def confirm_delivery(self, order_id: UUID, customer_id: UUID) -> Order:
        """Customer confirms receipt of an order that is out for delivery."""
        order = self.order_repo.get_by_id(order_id, for_update=True)
        if not order or order.customer_id != customer_id:
            raise NotFoundError(f"Order {order_id} not found")

        order.confirm_delivery()
        self.order_repo.update_status(order.id, order.status)

        logger.info(
            "order_delivery_confirmed",
            extra={"order_id": str(order_id), "user_id": mask_uuid(str(customer_id))},
        )
        return order

    def get_order(self, order_id: UUID) -> Order | None:
        """Get order by ID."""
        return self.order_repo.get_by_id(order_id)

    def get_orders_by_customer(self, customer_id: UUID, limit: int = 50, offset: int = 0) -> list[Order]:
        """Get orders by customer with pagination."""
        return self.order_repo.get_by_customer(customer_id, limit=limit, offset=offset)

    def _create_request_hash(self, **fields) -> str:
        """Create hash of request for deduplication."""
        content = json.dumps(fields, sort_keys=True)
        return hashlib.sha256(content.encode()).hexdigest()


class PurchaseService:
    """Service for supplier purchase orders (restocking)."""

    def __init__(
        self,
        purchase_repo: PurchaseOrderRepository | None = None,
        supplier_repo: SupplierRepository | None = None,
        product_repo: ProductRepository | None = None,
    ):
        self.purchase_repo = purchase_repo or PurchaseOrderRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.product_repo = product_repo or ProductRepository()

    @transaction.atomic
    def create_purchase_order(self, supplier_id: UUID) -> PurchaseOrder:
        """Create purchase order in PENDING status."""
        if not self.supplier_repo.get_by_id(supplier_id):
            raise NotFoundError(f"Supplier {supplier_id} not found")

        purchase_order = PurchaseOrder(supplier_id=supplier_id)
        self.purchase_repo.save(purchase_order)

        logger.info(
            "purchase_order_created",
            extra={"order_id": str(purchase_order.id)},
        )
        return purchase_order

    @transaction.atomic
    def add_purchase_line(
        self,
        purchase_order_id: UUID,
        product_id: UUID,
        quantity: int,
        unit_cost: Decimal,
    ) -> PurchaseOrderLine:
        """Add restocking line and put its quantity into stock."""
        purchase_order = self.purchase_repo.get_by_id(purchase_order_id)
        if not purchase_order:
            raise NotFoundError(f"Purchase order {purchase_order_id} not found")

        line = purchase_order.add_line(product_id, quantity, unit_cost)

        if not self.product_repo.increment_stock(product_id, quantity):
            raise NotFoundError(f"Product {product_id} not found")

        self.purchase_repo.add_line(purchase_order.id, line)

        logger.info(
            "purchase_line_created",
            extra={
                "order_id": str(purchase_order_id),
                "product_id": str(product_id),
            }
        )
        return line
