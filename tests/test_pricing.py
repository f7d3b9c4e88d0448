from datetime import datetime, timedelta

from storefront import config
from storefront.models import Product, PromoCode
from storefront.pricing import (
    order_totals, promo_discount, promo_problem, shipping_cost, subtotal_of, unit_price,
)


def promo(**kw):
    data = dict(code="SAVE10", description="", discount_type="percentage", discount_amount=10,
                used_count=0, is_active=True)
    data.update(kw)
    return PromoCode(**data)


def test_unit_price_prefers_sale_price():
    assert unit_price(Product(price=500, sale_price=None)) == 500
    assert unit_price(Product(price=500, sale_price=420)) == 420


def test_subtotal_sums_price_times_quantity():
    assert subtotal_of([(100, 2), (35, 3)]) == 305
    assert subtotal_of([]) == 0


def test_shipping_is_charged_only_below_threshold():
    threshold = config.FREE_SHIPPING_THRESHOLD
    assert shipping_cost(threshold - 1) == config.SHIPPING_FEE
    assert shipping_cost(threshold) == 0
    assert shipping_cost(threshold + 500) == 0
    assert shipping_cost(0) == 0


def test_order_total_adds_surcharge_below_threshold():
    totals = order_totals([(300, 2)])
    assert totals["subtotal"] == 600
    assert totals["shipping"] == config.SHIPPING_FEE
    assert totals["total"] == 600 + config.SHIPPING_FEE


def test_free_shipping_is_decided_before_discount():
    subtotal = config.FREE_SHIPPING_THRESHOLD
    totals = order_totals([(subtotal, 1)], promo(discount_amount=50))
    assert totals["discount"] == subtotal // 2
    assert totals["shipping"] == 0
    assert totals["total"] == subtotal - subtotal // 2


def test_percentage_discount_is_floored():
    assert promo_discount(promo(discount_amount=15), 199) == 29


def test_fixed_discount_is_capped_at_subtotal():
    assert promo_discount(promo(discount_type="fixed", discount_amount=200), 150) == 150
    assert promo_discount(promo(discount_type="fixed", discount_amount=50), 150) == 50


def test_promo_problems():
    now = datetime(2026, 6, 1)
    assert promo_problem(promo(), 100, now) is None
    assert promo_problem(promo(is_active=False), 100, now) == "Promo code is not active"
    assert promo_problem(promo(start_date=now + timedelta(days=1)), 100, now) == "Promo code is not valid yet"
    assert promo_problem(promo(end_date=now - timedelta(days=1)), 100, now) == "Promo code has expired"
    assert promo_problem(promo(max_uses=3, used_count=3), 100, now) == "Promo code usage limit reached"
    assert promo_problem(promo(min_order_amount=500), 499, now) == "Minimum order amount is 500"
    assert promo_problem(promo(min_order_amount=500), 500, now) is None
