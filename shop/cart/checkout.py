"""
Checkout Sequencer: turns the cart into a server-side order.

The header goes first, then one line per cart line in display order. The
server decrements stock as each line lands, so a failure midway leaves the
already written prefix in place; the cart and its idempotency key are kept
so the same checkout can be retried without decrementing stock twice.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from shop.cart.aggregate import CartAggregate, CartLine
from shop.cart.errors import (
    CartError,
    InsufficientStock,
    PartialCheckoutFailure,
    UnauthenticatedCheckout,
    user_message,
)
from shop.cart.oracle import StockOracle
from shop.cart.session import Session
from shop.infra.pii_masker import mask_uuid

logger = logging.getLogger(__name__)

EMPTY_CART_MESSAGE = "Cart is empty"
SERVER_FAILURE_MESSAGE = "Could not process the order on the server."


@dataclass(frozen=True)
class CheckoutResult:
    success: bool
    order_id: UUID | None = None
    message: str | None = None


class CheckoutSequencer:
    """Runs checkout for one cart against the oracle."""

    def __init__(self, cart: CartAggregate, oracle: StockOracle, session: Session):
        self.cart = cart
        self.oracle = oracle
        self.session = session
        # Lines already accepted by the server, per checkout key
        self._written: dict[str, set[UUID]] = {}

    def checkout(self, payment_method: str) -> CheckoutResult:
        # Cart mutations wait until checkout is done with this snapshot.
        # Reads of the cart do not.
        with self.cart.locked():
            current_key = self.cart.checkout_key
            self._written = {
                key: product_ids
                for key, product_ids in self._written.items()
                if key == current_key
            }
            lines = self.cart.lines
            if not lines:
                return CheckoutResult(False, message=EMPTY_CART_MESSAGE)

            written_before = self._written.get(current_key or "", set())
            try:
                self._verify_stock(
                    tuple(line for line in lines if line.product_id not in written_before)
                )
            except CartError as e:
                logger.info("checkout_rejected", extra={"error": e.message})
                return CheckoutResult(False, message=user_message(e))

            if not self.session.is_authenticated:
                error = UnauthenticatedCheckout()
                logger.info("checkout_rejected", extra={"error": error.code})
                return CheckoutResult(False, message=error.message)

            customer_id = self.session.customer_id
            total = self.cart.total
            checkout_key = self.cart.begin_checkout()
            log_context = {
                "user_id": mask_uuid(str(customer_id)),
                "idempotency_key": checkout_key,
                "cart_lines": len(lines),
            }

            try:
                receipt = self.oracle.create_order(
                    customer_id,
                    total,
                    payment_method,
                    idempotency_key=checkout_key,
                )
            except CartError as e:
                logger.error("checkout_failed", extra={**log_context, "error": e.message})
                return CheckoutResult(False, message=SERVER_FAILURE_MESSAGE)

            written = 0
            for line in lines:
                try:
                    self.oracle.create_order_line(
                        receipt.order_id,
                        line.product_id,
                        line.quantity,
                        line.unit_price,
                    )
                except CartError as e:
                    failure = PartialCheckoutFailure(receipt.order_id, written, len(lines), e)
                    logger.error(
                        "checkout_partial_failure",
                        extra={
                            **log_context,
                            "order_id": str(receipt.order_id),
                            "product_id": str(line.product_id),
                            "lines_written": written,
                            "error": failure.message,
                        },
                    )
                    return CheckoutResult(False, message=SERVER_FAILURE_MESSAGE)
                written += 1
                self._written.setdefault(checkout_key, set()).add(line.product_id)

            self._written.pop(checkout_key, None)
            self.cart.clear()

        logger.info(
            "checkout_completed",
            extra={
                **log_context,
                "order_id": str(receipt.order_id),
                "lines_written": written,
                "status": "replayed" if receipt.replayed else "created",
            },
        )
        return CheckoutResult(True, order_id=receipt.order_id)

    def _verify_stock(self, lines: tuple[CartLine, ...]) -> None:
        """Raise InsufficientStock for the first line live stock cannot cover."""
        for line in lines:
            product = self.oracle.get_product(line.product_id)
            available = product.stock if product is not None else 0
            if line.quantity > available:
                raise InsufficientStock(line.name, line.quantity, available)
