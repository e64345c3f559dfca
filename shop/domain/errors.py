"""
Domain errors with machine-readable codes.
"""


class DomainError(ValueError):
    """Base domain error."""
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class NotFoundError(DomainError):
    """Referenced entity does not exist."""
    code = "NOT_FOUND"


class InsufficientStockError(DomainError):
    """Requested quantity exceeds available stock."""
    code = "INSUFFICIENT_STOCK"


class InvalidStateError(DomainError):
    """Operation not allowed in the current state."""
    code = "INVALID_STATE"


class IdempotencyConflictError(DomainError):
    """Idempotency key reused with a different request."""
    code = "DUPLICATE_REQUEST"
