"""
Tests for persistence invariants: stock never goes negative.
"""
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase

from shop.domain.errors import InsufficientStockError
from shop.domain.product import Product
from shop.infra.models import IdempotencyKey, OrderLineORM, ProductORM
from shop.infra.repositories import CustomerRepository, ProductRepository
from shop.services import OrderService


class StockInvariantTest(TestCase):
    """Tests for the product stock counter."""

    def setUp(self):
        self.product_repo = ProductRepository()
        self.product_id = self.product_repo.create(
            Product(name="Rice 5kg", unit_price=Decimal("27.90"), stock=3)
        )

    def test_decrement_within_stock(self):
        """Test that a covered decrement is applied."""
        self.assertTrue(self.product_repo.decrement_stock(self.product_id, 3))
        self.assertEqual(self.product_repo.get_by_id(self.product_id).stock, 0)

    def test_decrement_beyond_stock_changes_nothing(self):
        """Test that an overdraw is refused and stock is left as it was."""
        self.assertFalse(self.product_repo.decrement_stock(self.product_id, 4))
        self.assertEqual(self.product_repo.get_by_id(self.product_id).stock, 3)

    def test_sequential_decrements_stop_at_zero(self):
        """Test that repeated decrements never push stock below zero."""
        results = [self.product_repo.decrement_stock(self.product_id, 2) for _ in range(3)]
        self.assertEqual(results, [True, False, False])
        self.assertEqual(ProductORM.objects.get(id=self.product_id).stock, 1)

    def test_increment_stock(self):
        self.assertTrue(self.product_repo.increment_stock(self.product_id, 7))
        self.assertEqual(self.product_repo.get_by_id(self.product_id).stock, 10)

    def test_overdrawing_line_is_not_persisted(self):
        """Test that a rejected order line leaves neither a line nor a stock change."""
        customer_id = CustomerRepository().create(name="Ana")
        service = OrderService()
        order_id = service.create_order(customer_id, Decimal("111.60"), "pix")["order_id"]

        with self.assertRaises(InsufficientStockError):
            service.add_order_line(order_id, self.product_id, 4, Decimal("27.90"))

        self.assertFalse(OrderLineORM.objects.filter(order_id=order_id).exists())
        self.assertEqual(ProductORM.objects.get(id=self.product_id).stock, 3)


class IdempotencyKeyInvariantTest(TestCase):

    def test_key_is_unique_per_user_and_operation(self):
        """Test that the same key cannot be stored twice for one user and operation."""
        customer_id = CustomerRepository().create(name="Ana")
        fields = {
            "key": "k-1",
            "user_id": customer_id,
            "operation": "CREATE_ORDER",
            "request_hash": "abc",
            "response_payload": {},
        }
        IdempotencyKey.objects.create(**fields)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                IdempotencyKey.objects.create(**fields)
