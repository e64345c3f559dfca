"""
Errors raised inside the cart engine.

They never reach UI callers: the public operations convert them into
result objects carrying a user-facing message.
"""
from __future__ import annotations

from uuid import UUID


class CartError(Exception):
    """Base cart engine error."""
    code = "CART_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ProductNotFound(CartError):
    """The oracle has no product with the given id."""
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: UUID):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class InsufficientStock(CartError):
    """Requested or cached quantity exceeds live stock."""
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_name}")


class UnauthenticatedCheckout(CartError):
    """No customer identity could be resolved from the session."""
    code = "UNAUTHENTICATED_CHECKOUT"

    def __init__(self):
        super().__init__("Customer not identified. Please sign in again.")


class PartialCheckoutFailure(CartError):
    """Order header written, but not every line made it to the server."""
    code = "PARTIAL_CHECKOUT_FAILURE"

    def __init__(self, order_id: UUID, lines_written: int, lines_total: int, cause: CartError):
        self.order_id = order_id
        self.lines_written = lines_written
        self.lines_total = lines_total
        self.cause = cause
        super().__init__(
            f"Order {order_id}: {lines_written} of {lines_total} lines written ({cause.message})"
        )


class NetworkFailure(CartError):
    """Transport-level failure talking to the remote service."""
    code = "NETWORK_FAILURE"


class RemoteRejection(CartError):
    """The remote service refused the operation."""
    code = "REMOTE_REJECTION"


GENERIC_MESSAGE = "Could not reach the store. Please try again."


def user_message(error: CartError) -> str:
    """Message safe to show to a shopper; transport details stay in the logs."""
    if isinstance(error, ProductNotFound):
        return "Product not found"
    if isinstance(error, (InsufficientStock, UnauthenticatedCheckout)):
        return error.message
    return GENERIC_MESSAGE
