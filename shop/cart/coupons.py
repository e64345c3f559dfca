"""
Coupon resolver: maps a code to a discount rule from a fixed registry.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENTS = Decimal("0.01")


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


@dataclass(frozen=True)
class Coupon:
    """Discount rule; percent discounts are computed at the moment of use."""
    code: str
    type: DiscountType
    value: Decimal

    def discount_for(self, subtotal: Decimal) -> Decimal:
        if self.type == DiscountType.FIXED:
            return quantize(self.value)
        return quantize(subtotal * self.value / Decimal(100))


PRESET_COUPONS: dict[str, Coupon] = {
    "PRIMEIRACOMPRA": Coupon("PRIMEIRACOMPRA", DiscountType.FIXED, Decimal("5.00")),
    "PROMO10": Coupon("PROMO10", DiscountType.PERCENT, Decimal("10")),
    "BLACKFRIDAY": Coupon("BLACKFRIDAY", DiscountType.PERCENT, Decimal("20")),
}


def quantize(amount: Decimal) -> Decimal:
    """Round a money amount to cents."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def resolve(code: str | None, registry: dict[str, Coupon] | None = None) -> Coupon | None:
    """Case-insensitive, whitespace-trimmed exact lookup."""
    registry = PRESET_COUPONS if registry is None else registry
    return registry.get(normalize_code(code))


def discount_for(code: str | None, subtotal: Decimal, registry: dict[str, Coupon] | None = None) -> Decimal:
    """Discount of `code` against `subtotal`; zero for no or unknown code."""
    coupon = resolve(code, registry)
    if coupon is None:
        return Decimal("0.00")
    return coupon.discount_for(subtotal)
