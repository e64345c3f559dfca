"""
Tests for management commands.
"""
from decimal import Decimal
from io import StringIO
from uuid import uuid4

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from shop.domain.order import OrderStatus
from shop.infra.repositories import CustomerRepository
from shop.services import OrderService


class SetOrderStatusCommandTest(TestCase):

    def setUp(self):
        self.service = OrderService()
        customer_id = CustomerRepository().create(name="Davi")
        self.order_id = self.service.create_order(customer_id, Decimal("5.00"), "cash")["order_id"]

    def test_set_status(self):
        out = StringIO()

        call_command("set_order_status", str(self.order_id), "OUT_FOR_DELIVERY", stdout=out)

        self.assertIn("OUT_FOR_DELIVERY", out.getvalue())
        self.assertEqual(self.service.get_order(self.order_id).status, OrderStatus.OUT_FOR_DELIVERY)

    def test_unknown_order(self):
        with self.assertRaises(CommandError):
            call_command("set_order_status", str(uuid4()), "DELIVERED", stdout=StringIO())
