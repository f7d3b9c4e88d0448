# storefront/pricing.py
from datetime import datetime
from math import floor
from typing import Iterable, Optional, Tuple

from . import config
from .models import Product, PromoCode, utcnow


def unit_price(product: Product) -> int:
    if product.sale_price is not None:
        return int(product.sale_price)
    return int(product.price)


def subtotal_of(lines: Iterable[Tuple[int, int]]) -> int:
    """lines: (unit_price, quantity) pairs"""
    return sum(int(price) * int(qty) for price, qty in lines)


def shipping_cost(subtotal: int) -> int:
    if subtotal <= 0 or subtotal >= config.FREE_SHIPPING_THRESHOLD:
        return 0
    return config.SHIPPING_FEE


def promo_discount(promo: Optional[PromoCode], subtotal: int) -> int:
    if promo is None or subtotal <= 0:
        return 0
    if promo.discount_type == "percentage":
        discount = floor(subtotal * promo.discount_amount / 100)
    else:
        discount = int(promo.discount_amount)
    return max(0, min(discount, subtotal))


def promo_problem(promo: PromoCode, subtotal: int, now: Optional[datetime] = None) -> Optional[str]:
    """Return why a promo code cannot be applied, or None when it can."""
    now = now or utcnow()
    if not promo.is_active:
        return "Promo code is not active"
    if promo.start_date and now < promo.start_date:
        return "Promo code is not valid yet"
    if promo.end_date and now > promo.end_date:
        return "Promo code has expired"
    if promo.max_uses is not None and promo.used_count >= promo.max_uses:
        return "Promo code usage limit reached"
    if promo.min_order_amount is not None and subtotal < promo.min_order_amount:
        return f"Minimum order amount is {promo.min_order_amount}"
    return None


def order_totals(lines: Iterable[Tuple[int, int]], promo: Optional[PromoCode] = None) -> dict:
    """
    Totals for a cart or order.
    Free shipping is decided on the subtotal before any promo discount.
    """
    subtotal = subtotal_of(lines)
    discount = promo_discount(promo, subtotal)
    shipping = shipping_cost(subtotal)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "shipping": shipping,
        "total": subtotal - discount + shipping,
    }
