"""
Storefront client configuration, read from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_API_URL = "http://localhost:8000/graphql/"
DEFAULT_HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class StorefrontConfig:
    api_url: str = DEFAULT_API_URL
    cart_path: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StorefrontConfig:
        """
        STOREFRONT_API_URL: GraphQL endpoint of the shop.
        STOREFRONT_CART_PATH: JSON file for the cart; unset keeps it in memory.
        STOREFRONT_HTTP_TIMEOUT: seconds per request.
        """
        environ = os.environ if environ is None else environ
        timeout = environ.get("STOREFRONT_HTTP_TIMEOUT")
        return cls(
            api_url=environ.get("STOREFRONT_API_URL") or DEFAULT_API_URL,
            cart_path=environ.get("STOREFRONT_CART_PATH") or None,
            http_timeout=float(timeout) if timeout else DEFAULT_HTTP_TIMEOUT,
        )
