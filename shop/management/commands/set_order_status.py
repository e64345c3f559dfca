"""
Management command to move an order to another status (admin override).
"""
from uuid import UUID

from django.core.management.base import BaseCommand, CommandError

from shop.domain.errors import DomainError
from shop.domain.order import OrderStatus
from shop.services import OrderService


class Command(BaseCommand):
    help = 'Set the status of an order (any status to any status)'

    def add_arguments(self, parser):
        parser.add_argument('order_id', type=UUID, help='Order to update')
        parser.add_argument(
            'status',
            choices=[status.value for status in OrderStatus],
            help='New status',
        )

    def handle(self, *args, **options):
        order_id = options['order_id']
        status = options['status']

        try:
            order = OrderService().set_status(order_id, status)
        except DomainError as e:
            raise CommandError(e.message)

        self.stdout.write(
            self.style.SUCCESS(f'Order {order.id} is now {order.status.value}')
        )
