"""
Tests for order and purchase services.
"""
from decimal import Decimal
from uuid import uuid4

from django.db import IntegrityError, transaction
from django.test import TestCase

from shop.domain.errors import (
    IdempotencyConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
)
from shop.domain.order import OrderStatus
from shop.domain.product import Product
from shop.infra.models import OrderLineORM, OrderORM
from shop.infra.repositories import (
    CustomerRepository,
    OrderRepository,
    ProductRepository,
    SupplierRepository,
)
from shop.services import CatalogService, OrderService, PurchaseService


class StaleOrderRepository(OrderRepository):
    """Order repository that keeps answering with an order read earlier."""

    def __init__(self, order):
        self.order = order

    def get_by_id(self, order_id, for_update=False):
        return self.order


class OrderServiceTest(TestCase):
    """Tests for OrderService."""

    def setUp(self):
        self.service = OrderService()
        self.product_repo = ProductRepository()
        self.customer_id = CustomerRepository().create(name="Ana Souza", email="ana@example.com")
        self.milk_id = self.product_repo.create(
            Product(name="Milk 1L", unit_price=Decimal("4.50"), stock=10)
        )
        self.bread_id = self.product_repo.create(
            Product(name="Bread", unit_price=Decimal("8.00"), stock=2)
        )

    def test_create_order(self):
        """Test creating an order header."""
        result = self.service.create_order(self.customer_id, Decimal("17.00"), "credit_card")

        self.assertEqual(result["status"], "PENDING")
        self.assertFalse(result["replayed"])
        order = self.service.get_order(result["order_id"])
        self.assertEqual(order.customer_id, self.customer_id)
        self.assertEqual(order.total_amount, Decimal("17.00"))
        self.assertEqual(order.payment_method, "credit_card")
        self.assertEqual(order.lines, [])

    def test_create_order_unknown_customer(self):
        """Test that an unknown customer is rejected."""
        with self.assertRaises(NotFoundError):
            self.service.create_order(uuid4(), Decimal("1.00"), "pix")

    def test_create_order_requires_payment_method(self):
        with self.assertRaises(ValueError):
            self.service.create_order(self.customer_id, Decimal("1.00"), "")

    def test_idempotent_create_order(self):
        """Test that a repeated keyed request returns the first order."""
        first = self.service.create_order(
            self.customer_id, Decimal("9.00"), "pix", idempotency_key="checkout-1"
        )
        second = self.service.create_order(
            self.customer_id, Decimal("9.00"), "pix", idempotency_key="checkout-1"
        )

        self.assertEqual(first["order_id"], second["order_id"])
        self.assertTrue(second["replayed"])
        self.assertEqual(OrderORM.objects.filter(customer_id=self.customer_id).count(), 1)

    def test_idempotency_key_reused_with_different_request(self):
        """Test that a key reused for a different total is a conflict."""
        self.service.create_order(
            self.customer_id, Decimal("9.00"), "pix", idempotency_key="checkout-1"
        )
        with self.assertRaises(IdempotencyConflictError) as context:
            self.service.create_order(
                self.customer_id, Decimal("10.00"), "pix", idempotency_key="checkout-1"
            )
        self.assertEqual(context.exception.code, "DUPLICATE_REQUEST")

    def test_add_order_line_decrements_stock(self):
        """Test that writing a line takes its quantity out of stock."""
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]

        line = self.service.add_order_line(order_id, self.milk_id, 2, Decimal("4.50"))

        self.assertEqual(line.quantity, 2)
        self.assertEqual(self.product_repo.get_by_id(self.milk_id).stock, 8)
        order = self.service.get_order(order_id)
        self.assertEqual(len(order.lines), 1)
        self.assertEqual(order.lines[0].unit_price, Decimal("4.50"))

    def test_repeated_line_is_replayed(self):
        """Test that the same line sent twice decrements stock once."""
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]

        first = self.service.add_order_line(order_id, self.milk_id, 2, Decimal("4.50"))
        second = self.service.add_order_line(order_id, self.milk_id, 2, Decimal("4.50"))

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.product_repo.get_by_id(self.milk_id).stock, 8)
        self.assertEqual(len(self.service.get_order(order_id).lines), 1)

    def test_repeated_line_with_other_quantity_conflicts(self):
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]
        self.service.add_order_line(order_id, self.milk_id, 2, Decimal("4.50"))

        with self.assertRaises(IdempotencyConflictError):
            self.service.add_order_line(order_id, self.milk_id, 3, Decimal("4.50"))
        self.assertEqual(self.product_repo.get_by_id(self.milk_id).stock, 8)

    def test_add_order_line_insufficient_stock(self):
        """Test that a line larger than stock is rejected."""
        order_id = self.service.create_order(self.customer_id, Decimal("24.00"), "pix")["order_id"]

        with self.assertRaises(InsufficientStockError):
            self.service.add_order_line(order_id, self.bread_id, 3, Decimal("8.00"))
        self.assertEqual(self.product_repo.get_by_id(self.bread_id).stock, 2)

    def test_add_order_line_unknown_product(self):
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]
        with self.assertRaises(NotFoundError):
            self.service.add_order_line(order_id, uuid4(), 1, Decimal("1.00"))

    def test_add_order_line_unknown_order(self):
        with self.assertRaises(NotFoundError):
            self.service.add_order_line(uuid4(), self.milk_id, 1, Decimal("4.50"))

    def test_line_written_behind_a_stale_read_is_replayed(self):
        """Test that a line committed after the order was read is not taken out of stock twice."""
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]
        stale_order = self.service.get_order(order_id)
        first = self.service.add_order_line(order_id, self.milk_id, 3, Decimal("4.50"))

        service = OrderService(order_repo=StaleOrderRepository(stale_order))
        second = service.add_order_line(order_id, self.milk_id, 3, Decimal("4.50"))

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.product_repo.get_by_id(self.milk_id).stock, 7)
        self.assertEqual(len(self.service.get_order(order_id).lines), 1)

    def test_line_written_behind_a_stale_read_with_other_quantity_conflicts(self):
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]
        stale_order = self.service.get_order(order_id)
        self.service.add_order_line(order_id, self.milk_id, 3, Decimal("4.50"))

        service = OrderService(order_repo=StaleOrderRepository(stale_order))
        with self.assertRaises(IdempotencyConflictError):
            service.add_order_line(order_id, self.milk_id, 1, Decimal("4.50"))
        self.assertEqual(self.product_repo.get_by_id(self.milk_id).stock, 7)

    def test_order_line_is_unique_per_product(self):
        """Test that the database refuses a second line for the same product."""
        order_id = self.service.create_order(self.customer_id, Decimal("9.00"), "pix")["order_id"]
        self.service.add_order_line(order_id, self.milk_id, 1, Decimal("4.50"))

        with self.assertRaises(IntegrityError), transaction.atomic():
            OrderLineORM.objects.create(
                order_id=order_id,
                product_id=self.milk_id,
                quantity=1,
                unit_price=Decimal("4.50"),
            )

    def test_set_status_any_to_any(self):
        """Test that the admin path moves orders freely between statuses."""
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]

        self.service.set_status(order_id, OrderStatus.DELIVERED)
        order = self.service.set_status(order_id, "PENDING")

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(self.service.get_order(order_id).status, OrderStatus.PENDING)

    def test_set_status_unknown_name(self):
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]
        with self.assertRaises(ValueError):
            self.service.set_status(order_id, "SHIPPED")

    def test_confirm_delivery(self):
        """Test that the owner confirms an order out for delivery."""
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]
        self.service.set_status(order_id, OrderStatus.OUT_FOR_DELIVERY)

        order = self.service.confirm_delivery(order_id, self.customer_id)

        self.assertEqual(order.status, OrderStatus.DELIVERED)
        self.assertEqual(self.service.get_order(order_id).status, OrderStatus.DELIVERED)

    def test_confirm_delivery_wrong_status(self):
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]
        with self.assertRaises(InvalidStateError):
            self.service.confirm_delivery(order_id, self.customer_id)
        self.assertEqual(self.service.get_order(order_id).status, OrderStatus.PENDING)

    def test_confirm_delivery_by_other_customer(self):
        """Test that another customer cannot see or confirm the order."""
        order_id = self.service.create_order(self.customer_id, Decimal("1.00"), "pix")["order_id"]
        self.service.set_status(order_id, OrderStatus.OUT_FOR_DELIVERY)
        other_id = CustomerRepository().create(name="Bruno")

        with self.assertRaises(NotFoundError):
            self.service.confirm_delivery(order_id, other_id)

    def test_orders_by_customer(self):
        """Test listing a customer's orders with pagination."""
        for _ in range(3):
            self.service.create_order(self.customer_id, Decimal("1.00"), "pix")

        self.assertEqual(len(self.service.get_orders_by_customer(self.customer_id)), 3)
        self.assertEqual(len(self.service.get_orders_by_customer(self.customer_id, limit=2)), 2)
        self.assertEqual(len(self.service.get_orders_by_customer(self.customer_id, offset=2)), 1)


class CatalogServiceTest(TestCase):

    def test_get_product(self):
        product_id = ProductRepository().create(
            Product(name="Coffee", unit_price=Decimal("15.90"), stock=4, image_ref="coffee.png")
        )
        product = CatalogService().get_product(product_id)
        self.assertEqual(product.name, "Coffee")
        self.assertEqual(product.stock, 4)
        self.assertEqual(product.image_ref, "coffee.png")

    def test_get_unknown_product(self):
        self.assertIsNone(CatalogService().get_product(uuid4()))


class PurchaseServiceTest(TestCase):
    """Tests for restocking through purchase orders."""

    def setUp(self):
        self.service = PurchaseService()
        self.product_repo = ProductRepository()
        self.supplier_id = SupplierRepository().create(name="Fazenda Boa Vista", city="Campinas")
        self.product_id = self.product_repo.create(
            Product(name="Eggs x12", unit_price=Decimal("12.00"), stock=1)
        )

    def test_purchase_line_increments_stock(self):
        """Test that a purchase line puts its quantity into stock."""
        purchase_order = self.service.create_purchase_order(self.supplier_id)
        self.service.add_purchase_line(purchase_order.id, self.product_id, 24, Decimal("7.50"))

        self.assertEqual(self.product_repo.get_by_id(self.product_id).stock, 25)
        stored = self.service.purchase_repo.get_by_id(purchase_order.id)
        self.assertEqual(stored.total_cost, Decimal("180.00"))

    def test_unknown_supplier(self):
        with self.assertRaises(NotFoundError):
            self.service.create_purchase_order(uuid4())

    def test_unknown_product(self):
        purchase_order = self.service.create_purchase_order(self.supplier_id)
        with self.assertRaises(NotFoundError):
            self.service.add_purchase_line(purchase_order.id, uuid4(), 1, Decimal("1.00"))
