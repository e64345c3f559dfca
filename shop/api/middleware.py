"""
Error mapping for API responses.
"""
import logging

from ariadne import format_error
from django.http import JsonResponse
from graphql import GraphQLError

from shop.domain.errors import DomainError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "NOT_FOUND": 404,
        "INSUFFICIENT_STOCK": 409,
        "INVALID_STATE": 409,
        "DUPLICATE_REQUEST": 409,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def error_code(cls, error: Exception | None) -> str:
        """Machine-readable code for an exception raised by a resolver."""
        if isinstance(error, DomainError):
            return error.code
        if isinstance(error, ValueError):
            return "VALIDATION_ERROR"
        return "INTERNAL_ERROR"

    @classmethod
    def format_graphql_error(cls, error: GraphQLError, debug: bool = False) -> dict:
        """Ariadne error formatter adding `extensions.code`."""
        formatted = format_error(error, debug)
        original = error.original_error
        if original is None:
            code = "VALIDATION_ERROR"
        else:
            code = cls.error_code(original)
        if code == "INTERNAL_ERROR" and not debug:
            formatted["message"] = "An internal error occurred"
        extensions = formatted.get("extensions") or {}
        extensions["code"] = code
        formatted["extensions"] = extensions
        return formatted

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        code = cls.error_code(error)
        if code != "INTERNAL_ERROR":
            return JsonResponse(
                {
                    "error": {
                        "code": code,
                        "message": str(error),
                    }
                },
                status=cls.ERROR_CODES.get(code, 400),
            )

        logger.error(
            "unexpected_error",
            extra={
                "error": f"{type(error).__name__}: {error}",
            },
            exc_info=True,
        )

        return JsonResponse(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                }
            },
            status=500,
        )
