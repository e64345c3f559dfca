"""
Durable client-side storage for the cart.

`MemoryStorage` and `FileStorage` offer a small local-storage style API.
`CartStore` keeps the cart under two named entries, each tagged with a
schema version; anything it cannot read is discarded, not trusted.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CART_ITEMS_KEY = "cart_items"
CART_COUPON_KEY = "cart_coupon"
CART_SCHEMA_VERSION = 1


class Storage(Protocol):
    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage, lost on exit."""

    def __init__(self, items: dict[str, str] | None = None):
        self._items = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """JSON file holding all entries; rewritten atomically on every change."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _read(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("storage_read_failed", extra={"error": f"{self.path}: {e}"})
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: dict[str, str]) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cart-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
            logger.warning("storage_write_failed", extra={"error": f"{self.path}: {e}"})


@dataclass
class CartState:
    """Raw persisted cart: serialized lines, coupon code and pending checkout key."""
    lines: list[dict[str, Any]] = field(default_factory=list)
    coupon_code: str | None = None
    checkout_key: str | None = None


class CartStore:
    """Reads and writes the cart's two storage entries."""

    def __init__(self, storage: Storage | None = None):
        self.storage = storage or MemoryStorage()

    def load(self) -> CartState:
        items = self._load_entry(CART_ITEMS_KEY)
        coupon = self._load_entry(CART_COUPON_KEY)

        state = CartState()
        if items is not None:
            lines = items.get("lines")
            if isinstance(lines, list) and all(isinstance(line, dict) for line in lines):
                state.lines = lines
                state.checkout_key = items.get("checkout_key")
            else:
                self._discard(CART_ITEMS_KEY, "lines is not a list of records")
        if coupon is not None:
            state.coupon_code = coupon.get("code")
        return state

    def save(self, state: CartState) -> None:
        self.storage.set_item(CART_ITEMS_KEY, json.dumps({
            "version": CART_SCHEMA_VERSION,
            "lines": state.lines,
            "checkout_key": state.checkout_key,
        }))
        if state.coupon_code:
            self.storage.set_item(CART_COUPON_KEY, json.dumps({
                "version": CART_SCHEMA_VERSION,
                "code": state.coupon_code,
            }))
        else:
            self.storage.remove_item(CART_COUPON_KEY)

    def _load_entry(self, key: str) -> dict[str, Any] | None:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except ValueError:
            self._discard(key, "not valid JSON")
            return None
        if not isinstance(record, dict):
            self._discard(key, "not a record")
            return None
        if record.get("version") != CART_SCHEMA_VERSION:
            self._discard(key, f"schema version {record.get('version')!r}")
            return None
        return record

    def _discard(self, key: str, reason: str) -> None:
        logger.warning("cart_store_discarded", extra={"error": f"{key}: {reason}"})
        self.storage.remove_item(key)
