"""
Tests for the order tracker.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import SimpleTestCase

from shop.cart.session import Session
from shop.cart.status import OrderTracker
from shop.test.fakes import FakeOracle


class OrderTrackerTest(SimpleTestCase):

    def setUp(self):
        self.oracle = FakeOracle()
        self.customer_id = uuid4()
        self.session = Session(customer_id=self.customer_id)
        self.tracker = OrderTracker(self.oracle, self.session)
        self.order_id = self.oracle.create_order(self.customer_id, Decimal("10.00"), "pix").order_id

    def test_confirm_receipt(self):
        """Test that an order out for delivery can be confirmed by its customer."""
        self.oracle.update_order_status(self.order_id, "OUT_FOR_DELIVERY")

        result = self.tracker.confirm_receipt(self.order_id)

        self.assertTrue(result.success)
        self.assertEqual(result.status, "DELIVERED")
        self.assertEqual(self.oracle.get_order_status(self.order_id), "DELIVERED")

    def test_confirm_receipt_too_early(self):
        """Test that confirmation is refused before the order leaves the store."""
        result = self.tracker.confirm_receipt(self.order_id)

        self.assertFalse(result.success)
        self.assertEqual(result.status, "PENDING")
        self.assertEqual(self.oracle.get_order_status(self.order_id), "PENDING")

    def test_confirm_receipt_signed_out(self):
        self.oracle.update_order_status(self.order_id, "OUT_FOR_DELIVERY")
        self.session.sign_out()

        result = self.tracker.confirm_receipt(self.order_id)

        self.assertFalse(result.success)
        self.assertEqual(self.oracle.get_order_status(self.order_id), "OUT_FOR_DELIVERY")

    def test_confirm_unknown_order(self):
        self.assertFalse(self.tracker.confirm_receipt(uuid4()).success)

    def test_confirm_other_customers_order(self):
        """Test that the server's ownership check surfaces as a failure."""
        self.oracle.update_order_status(self.order_id, "OUT_FOR_DELIVERY")
        self.session.sign_in(uuid4())

        self.assertFalse(self.tracker.confirm_receipt(self.order_id).success)

    def test_set_status_any_to_any(self):
        """Test that the admin path allows going backwards."""
        self.assertTrue(self.tracker.set_status(self.order_id, "DELIVERED").success)

        result = self.tracker.set_status(self.order_id, "PREPARING")

        self.assertTrue(result.success)
        self.assertEqual(self.oracle.get_order_status(self.order_id), "PREPARING")

    def test_set_unknown_status(self):
        result = self.tracker.set_status(self.order_id, "LOST")

        self.assertFalse(result.success)
        self.assertEqual(self.oracle.get_order_status(self.order_id), "PENDING")
