"""
Order Status Workflow, client side: customer receipt confirmation and the
admin status override.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from shop.cart.errors import CartError, UnauthenticatedCheckout, user_message
from shop.cart.oracle import OrderStatusGateway
from shop.cart.session import Session
from shop.domain.order import OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusResult:
    success: bool
    status: str | None = None
    message: str | None = None


class OrderTracker:
    def __init__(self, gateway: OrderStatusGateway, session: Session):
        self.gateway = gateway
        self.session = session

    def confirm_receipt(self, order_id: UUID) -> StatusResult:
        """Mark an order delivered; only valid while it is out for delivery."""
        if not self.session.is_authenticated:
            return StatusResult(False, message=UnauthenticatedCheckout().message)

        try:
            current = self.gateway.get_order_status(order_id)
            if current is None:
                return StatusResult(False, message="Order not found")
            if current != OrderStatus.OUT_FOR_DELIVERY.value:
                return StatusResult(
                    False,
                    status=current,
                    message="Order is not out for delivery",
                )
            status = self.gateway.confirm_delivery(order_id, self.session.customer_id)
        except CartError as e:
            logger.warning(
                "confirm_receipt_failed",
                extra={"order_id": str(order_id), "error": e.message},
            )
            return StatusResult(False, message=user_message(e))

        logger.info("order_receipt_confirmed", extra={"order_id": str(order_id), "status": status})
        return StatusResult(True, status=status)

    def set_status(self, order_id: UUID, status: OrderStatus | str) -> StatusResult:
        """Admin path: any status to any status."""
        try:
            target = OrderStatus(status)
        except ValueError:
            return StatusResult(False, message=f"Unknown order status: {status}")

        try:
            new_status = self.gateway.update_order_status(order_id, target.value)
        except CartError as e:
            logger.warning(
                "order_status_update_failed",
                extra={"order_id": str(order_id), "error": e.message},
            )
            return StatusResult(False, message=user_message(e))

        logger.info("order_status_updated", extra={"order_id": str(order_id), "status": new_status})
        return StatusResult(True, status=new_status)
