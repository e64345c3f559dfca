"""
Storefront: the operations a UI calls, wired to one cart and one session.
"""
from __future__ import annotations

from uuid import UUID

from shop.cart.aggregate import AddToCartResult, Address, CartAggregate, CartView, CouponResult
from shop.cart.checkout import CheckoutResult, CheckoutSequencer
from shop.cart.config import StorefrontConfig
from shop.cart.oracle import GraphQLStockOracle
from shop.cart.session import Session
from shop.cart.status import OrderTracker, StatusResult
from shop.cart.storage import CartStore, FileStorage, MemoryStorage


class Storefront:
    def __init__(self, oracle, store: CartStore | None = None, session: Session | None = None):
        """`oracle` must serve both the stock and the order status operations."""
        self.session = session or Session()
        self.cart = CartAggregate(oracle, store)
        self.sequencer = CheckoutSequencer(self.cart, oracle, self.session)
        self.tracker = OrderTracker(oracle, self.session)

    @classmethod
    def from_config(cls, config: StorefrontConfig | None = None, session: Session | None = None) -> Storefront:
        config = config or StorefrontConfig.from_env()
        storage = FileStorage(config.cart_path) if config.cart_path else MemoryStorage()
        oracle = GraphQLStockOracle(config.api_url, timeout=config.http_timeout)
        return cls(oracle, CartStore(storage), session)

    def add_to_cart(self, product_id: UUID, quantity: int = 1) -> AddToCartResult:
        return self.cart.add_item(product_id, quantity)

    def increase_quantity(self, product_id: UUID) -> bool:
        return self.cart.increase(product_id)

    def decrease_quantity(self, product_id: UUID) -> None:
        self.cart.decrease(product_id)

    def remove_from_cart(self, product_id: UUID) -> None:
        self.cart.remove_item(product_id)

    def apply_coupon(self, code: str) -> CouponResult:
        return self.cart.apply_coupon(code)

    def set_address(self, address: Address) -> None:
        self.cart.set_address(address)

    def checkout(self, payment_method: str) -> CheckoutResult:
        return self.sequencer.checkout(payment_method)

    def confirm_receipt(self, order_id: UUID) -> StatusResult:
        return self.tracker.confirm_receipt(order_id)

    def view(self) -> CartView:
        return self.cart.view()
