"""
Cart Aggregate: the client-side cart and its invariants.

Every line holds 1 <= quantity, and a successful local mutation never leaves
quantity above the stock seen at the last oracle read for that line. A line
whose product has run out keeps its quantity with a zero snapshot until the
shopper removes it or checkout rejects it. Money totals are derived on
demand, never stored.

Mutations run under a per-cart lock held across the stock read and the
write, so concurrent callers are applied one after another. Reads never take
that lock: each mutation publishes an immutable snapshot on its way out and
readers see the latest one.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from shop.cart import coupons
from shop.cart.errors import CartError, ProductNotFound, user_message
from shop.cart.oracle import ProductSnapshot, StockOracle
from shop.cart.storage import CartState, CartStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
OUT_OF_STOCK_MESSAGE = "Product out of stock"


@dataclass
class CartLine:
    product_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    stock_snapshot: int
    image_ref: str = ""
    description: str = ""

    @property
    def subtotal(self) -> Decimal:
        return coupons.quantize(self.unit_price * self.quantity)

    def to_record(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "stock_snapshot": self.stock_snapshot,
            "image_ref": self.image_ref,
            "description": self.description,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> CartLine:
        """Rebuild a line from storage; raises ValueError on a bad record."""
        try:
            line = cls(
                product_id=UUID(str(record["product_id"])),
                name=str(record["name"]),
                unit_price=Decimal(str(record["unit_price"])),
                quantity=int(record["quantity"]),
                stock_snapshot=int(record["stock_snapshot"]),
                image_ref=str(record.get("image_ref") or ""),
                description=str(record.get("description") or ""),
            )
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ValueError(f"Malformed cart line: {e}") from e
        if line.quantity < 1:
            raise ValueError(f"Cart line quantity out of range: {line.quantity}")
        if line.stock_snapshot < 0:
            raise ValueError(f"Cart line stock snapshot out of range: {line.stock_snapshot}")
        if line.unit_price < 0:
            raise ValueError("Cart line price cannot be negative")
        return line


@dataclass(frozen=True)
class Address:
    """Delivery address; held in memory only."""
    postal_code: str = ""
    street: str = ""
    number: str = ""
    district: str = ""
    city: str = ""
    state: str = ""
    complement: str = ""


@dataclass(frozen=True)
class CartMutation:
    """Change `product_id` by `delta`, provided it still holds `expected_quantity`."""
    product_id: UUID
    expected_quantity: int
    delta: int


@dataclass(frozen=True)
class AddToCartResult:
    success: bool
    message: str | None = None


@dataclass(frozen=True)
class CouponResult:
    success: bool
    discount: Decimal = ZERO


@dataclass(frozen=True)
class CartView:
    lines: tuple[CartLine, ...]
    subtotal: Decimal
    total_items: int
    applied_coupon: str | None
    discount: Decimal
    total: Decimal


@dataclass(frozen=True)
class _Published:
    lines: tuple[CartLine, ...]
    coupon_code: str | None


class CartAggregate:
    """Shopping cart bound to a stock oracle and a durable store."""

    def __init__(self, oracle: StockOracle, store: CartStore | None = None):
        self.oracle = oracle
        self.store = store or CartStore()
        self._mutex = threading.RLock()
        self._address: Address | None = None

        state = self.store.load()
        self._lines = self._restore_lines(state.lines)
        coupon = coupons.resolve(state.coupon_code)
        self._coupon_code = coupon.code if coupon else None
        self._checkout_key = state.checkout_key
        self._publish()

    # Derived state

    @property
    def lines(self) -> tuple[CartLine, ...]:
        """Copies of the lines in display (insertion) order."""
        return tuple(replace(line) for line in self._published.lines)

    @property
    def is_empty(self) -> bool:
        return not self._published.lines

    @property
    def subtotal(self) -> Decimal:
        return self._subtotal_of(self._published)

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._published.lines)

    @property
    def applied_coupon(self) -> str | None:
        return self._published.coupon_code

    @property
    def discount(self) -> Decimal:
        published = self._published
        return coupons.discount_for(published.coupon_code, self._subtotal_of(published))

    @property
    def total(self) -> Decimal:
        published = self._published
        subtotal = self._subtotal_of(published)
        return max(subtotal - coupons.discount_for(published.coupon_code, subtotal), ZERO)

    @property
    def address(self) -> Address | None:
        return self._address

    def view(self) -> CartView:
        published = self._published
        subtotal = self._subtotal_of(published)
        discount = coupons.discount_for(published.coupon_code, subtotal)
        return CartView(
            lines=tuple(replace(line) for line in published.lines),
            subtotal=subtotal,
            total_items=sum(line.quantity for line in published.lines),
            applied_coupon=published.coupon_code,
            discount=discount,
            total=max(subtotal - discount, ZERO),
        )

    # Mutations

    def add_item(self, product_id: UUID, qty: int = 1) -> AddToCartResult:
        """
        Add `qty` units, clamped to live stock.

        An existing line always takes the live stock as its snapshot. When
        that stock is zero the add fails and the line keeps its quantity.
        """
        if qty < 1:
            return AddToCartResult(False, "Quantity must be at least 1")

        with self._mutex:
            try:
                product = self._fetch(product_id)
            except CartError as e:
                logger.info(
                    "add_to_cart_failed",
                    extra={"product_id": str(product_id), "error": e.message},
                )
                return AddToCartResult(False, user_message(e))

            line = self._find(product_id)
            if product.stock < 1:
                if line is not None and line.stock_snapshot != product.stock:
                    line.stock_snapshot = product.stock
                    self._persist()
                return AddToCartResult(False, OUT_OF_STOCK_MESSAGE)

            if line is None:
                self._lines.append(CartLine(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.unit_price,
                    quantity=min(qty, product.stock),
                    stock_snapshot=product.stock,
                    image_ref=product.image_ref,
                    description=product.description,
                ))
                self._contents_changed()
            else:
                before = line.quantity
                self._apply(CartMutation(product_id, before, qty), product.stock)
                if line.quantity != before:
                    self._contents_changed()
                else:
                    self._persist()

        logger.info("cart_item_added", extra={"product_id": str(product_id)})
        return AddToCartResult(True)

    def increase(self, product_id: UUID) -> bool:
        """Raise a line by one against live stock; True only if it grew."""
        with self._mutex:
            line = self._find(product_id)
            if line is None:
                return False
            expected = line.quantity
            try:
                product = self._fetch(product_id)
            except CartError as e:
                logger.info(
                    "cart_increase_failed",
                    extra={"product_id": str(product_id), "error": e.message},
                )
                return False

            new_quantity = self._apply(CartMutation(product_id, expected, 1), product.stock)
            if new_quantity is not None and new_quantity != expected:
                self._contents_changed()
            else:
                self._persist()
            return new_quantity is not None and new_quantity > expected

    def decrease(self, product_id: UUID) -> None:
        with self._mutex:
            line = self._find(product_id)
            if line is None:
                return
            expected = line.quantity
            new_quantity = self._apply(CartMutation(product_id, expected, -1))
            if new_quantity is not None and new_quantity != expected:
                self._contents_changed()

    def remove_item(self, product_id: UUID) -> None:
        with self._mutex:
            line = self._find(product_id)
            if line is None:
                return
            self._lines.remove(line)
            self._contents_changed()

    def apply_coupon(self, code: str) -> CouponResult:
        coupon = coupons.resolve(code)
        if coupon is None:
            logger.info("coupon_rejected", extra={"error": coupons.normalize_code(code)})
            return CouponResult(False, ZERO)

        with self._mutex:
            if self._coupon_code != coupon.code:
                self._coupon_code = coupon.code
                self._contents_changed()
            return CouponResult(True, coupon.discount_for(self.subtotal))

    def set_address(self, address: Address) -> None:
        self._address = address

    def clear(self) -> None:
        with self._mutex:
            self._lines = []
            self._coupon_code = None
            self._address = None
            self._checkout_key = None
            self._persist()

    # Checkout support

    @property
    def checkout_key(self) -> str | None:
        return self._checkout_key

    def begin_checkout(self) -> str:
        """Idempotency key for the current contents; created once and persisted."""
        with self._mutex:
            if self._checkout_key is None:
                self._checkout_key = str(uuid4())
                self._persist()
            return self._checkout_key

    def locked(self) -> threading.RLock:
        """The per-cart mutation lock. Readers never wait on it."""
        return self._mutex

    # Internals

    def _apply(self, mutation: CartMutation, stock: int | None = None) -> int | None:
        """
        Apply a mutation to its line and return the resulting quantity.

        Growth is capped at `stock`, which also refreshes the line's snapshot.
        A result below 1 is not applied. Returns None, leaving the line
        untouched, when the line is gone or no longer holds `expected_quantity`.
        """
        line = self._find(mutation.product_id)
        if line is None or line.quantity != mutation.expected_quantity:
            logger.warning(
                "cart_mutation_rejected",
                extra={"product_id": str(mutation.product_id)},
            )
            return None

        if stock is not None:
            line.stock_snapshot = stock

        target = line.quantity + mutation.delta
        if mutation.delta > 0:
            target = min(target, line.stock_snapshot)
        if target < 1:
            return line.quantity

        line.quantity = target
        return target

    def _fetch(self, product_id: UUID) -> ProductSnapshot:
        product = self.oracle.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def _find(self, product_id: UUID) -> CartLine | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def _contents_changed(self) -> None:
        self._checkout_key = None
        self._persist()

    def _persist(self) -> None:
        self._publish()
        self.store.save(CartState(
            lines=[line.to_record() for line in self._lines],
            coupon_code=self._coupon_code,
            checkout_key=self._checkout_key,
        ))

    def _publish(self) -> None:
        self._published = _Published(
            lines=tuple(replace(line) for line in self._lines),
            coupon_code=self._coupon_code,
        )

    @staticmethod
    def _subtotal_of(published: _Published) -> Decimal:
        return sum((line.subtotal for line in published.lines), ZERO)

    def _restore_lines(self, records: list[dict[str, Any]]) -> list[CartLine]:
        lines = []
        for record in records:
            try:
                line = CartLine.from_record(record)
            except ValueError as e:
                logger.warning("cart_line_discarded", extra={"error": str(e)})
                continue
            if self._find_in(lines, line.product_id) is None:
                lines.append(line)
        return lines

    @staticmethod
    def _find_in(lines: list[CartLine], product_id: UUID) -> CartLine | None:
        return next((line for line in lines if line.product_id == product_id), None)
