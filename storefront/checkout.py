# storefront/checkout.py
import logging
import uuid
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .models import Order
from .pricing import order_totals, promo_problem, subtotal_of, unit_price

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
CUSTOMER_CANCELLABLE = ("pending", "processing")


def new_order_number() -> str:
    return "ORD-" + uuid.uuid4().hex[:8].upper()


def new_tracking_number() -> str:
    return "TRK" + uuid.uuid4().hex[:10].upper()


def _error(http_status: int, error: str) -> Dict[str, Any]:
    return {"status": "error", "http_status": http_status, "error": error}


async def place_order(
    db: AsyncSession,
    cart_id: int,
    customer: Dict[str, Any],
    shipping_address: Dict[str, Any],
    user_id: Optional[str] = None,
    promo_code: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Turn a cart into an order:
      - price the lines (sale price wins) and validate the promo code
      - decrement stock for tracked products
      - create the order and its shipping record with a tracking number
      - count the promo usage and empty the cart
    Everything is committed once at the end; any failure rolls back.
    Returns {"status": "success", "order", "shipping"} or {"status": "error", "http_status", "error"}.
    """
    logger.info("[ORDERS] checkout cart=%s user=%s promo=%s", cart_id, user_id, promo_code)

    lines = await crud.get_cart_lines(db, cart_id)
    if not lines:
        return _error(400, "Cart is empty")

    priced = [(unit_price(product), item.quantity) for item, product, _ in lines]

    promo = None
    if promo_code:
        promo = await crud.get_promo_code_by_code(db, promo_code)
        if not promo:
            return _error(404, "Promo code not found")
        problem = promo_problem(promo, subtotal_of(priced))
        if problem:
            return _error(400, problem)

    totals = order_totals(priced, promo)

    try:
        for item, product, _ in lines:
            if not product.in_stock or not await crud.reserve_stock(db, product.id, item.quantity):
                name = product.name
                # rollback expires loaded rows; read what we need first
                await db.rollback()
                return _error(409, f"Not enough stock for {name}")

        items = [
            {
                "product_id": product.id,
                "name": product.name,
                "sku": product.sku,
                "image": product.main_image,
                "unit_price": unit_price(product),
                "quantity": item.quantity,
                "line_total": unit_price(product) * item.quantity,
            }
            for item, product, _ in lines
        ]
        order = await crud.create_order(db, {
            "order_number": new_order_number(),
            "user_id": user_id,
            "customer_name": customer["name"],
            "customer_email": customer["email"],
            "customer_phone": customer.get("phone"),
            "items": items,
            "shipping_address": shipping_address,
            "subtotal": totals["subtotal"],
            "discount": totals["discount"],
            "shipping_cost": totals["shipping"],
            "total": totals["total"],
            "promo_code": promo.code if promo else None,
            "status": "pending",
        })
        shipping = await crud.create_shipping(db, order.id, new_tracking_number())
        if promo:
            await crud.increment_promo_usage(db, promo.id)
        await crud.clear_cart(db, cart_id, commit=False)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("[ORDERS] checkout failed for cart %s", cart_id)
        raise

    await db.refresh(order)
    await db.refresh(shipping)
    logger.info("[ORDERS] created %s total=%s tracking=%s", order.order_number, order.total, shipping.tracking_number)
    return {"status": "success", "order": order, "shipping": shipping}


async def cancel_order(db: AsyncSession, order: Order,
                       cancellable: Iterable[str] = CUSTOMER_CANCELLABLE) -> Dict[str, Any]:
    """Cancel an order, returning its units to inventory and closing the shipment."""
    if order.status not in cancellable:
        return _error(400, f"Order cannot be cancelled while {order.status}")
    try:
        for line in order.items or []:
            await crud.restock(db, line["product_id"], line["quantity"])
        order.status = "cancelled"
        shipping = await crud.get_shipping_for_order(db, order.id)
        if shipping:
            shipping.status = "cancelled"
            shipping.history = [*(shipping.history or []), crud.history_entry("cancelled", "", "Order cancelled")]
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("[ORDERS] cancel failed for %s", order.order_number)
        raise
    await db.refresh(order)
    if shipping:
        await db.refresh(shipping)
    logger.info("[ORDERS] cancelled %s", order.order_number)
    return {"status": "success", "order": order}
