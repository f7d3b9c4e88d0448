# storefront/orders.py
import logging
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import checkout, crud, mailer
from .cart import check_cart_access
from .db import get_db
from .deps import CUSTOMER, get_current_user_id, get_optional_principal, require_admin
from .models import Order, Shipping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["orders"])

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class AddressIn(BaseModel):
    address: str = Field(min_length=2)
    city: str = Field(min_length=2)
    postal_code: str = Field(min_length=1)
    country: str = Field(default="Israel", min_length=2)


class CheckoutIn(BaseModel):
    cart_id: int
    customer_name: str = Field(min_length=2)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(default=None, min_length=9, max_length=15)
    shipping_address: AddressIn
    promo_code: Optional[str] = None


class StatusIn(BaseModel):
    status: OrderStatus


def shipping_out(s: Shipping) -> dict:
    return {
        "id": s.id,
        "order_id": s.order_id,
        "tracking_number": s.tracking_number,
        "carrier": s.carrier,
        "status": s.status,
        "history": s.history or [],
        "estimated_delivery": s.estimated_delivery.isoformat() if s.estimated_delivery else None,
        "updated_at": str(s.updated_at),
    }


def order_out(o: Order, shipping: Optional[Shipping] = None) -> dict:
    out = {
        "id": o.id,
        "order_number": o.order_number,
        "user_id": o.user_id,
        "customer_name": o.customer_name,
        "customer_email": o.customer_email,
        "customer_phone": o.customer_phone,
        "items": o.items or [],
        "shipping_address": o.shipping_address,
        "subtotal": o.subtotal,
        "discount": o.discount,
        "shipping_cost": o.shipping_cost,
        "total": o.total,
        "promo_code": o.promo_code,
        "status": o.status,
        "created_at": str(o.created_at),
    }
    if shipping is not None:
        out["tracking_number"] = shipping.tracking_number
        out["shipping"] = shipping_out(shipping)
    return out


def _raise_on_error(result: dict):
    if result["status"] != "success":
        raise HTTPException(status_code=result["http_status"], detail=result["error"])


# ---------- checkout ----------
@router.post("/orders", status_code=201)
async def create_order(payload: CheckoutIn, background: BackgroundTasks,
                       principal: Optional[dict] = Depends(get_optional_principal),
                       db: AsyncSession = Depends(get_db)):
    cart = await crud.get_cart(db, payload.cart_id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    check_cart_access(cart, principal)

    user_id = principal["id"] if principal and principal["role"] == CUSTOMER else None
    result = await checkout.place_order(
        db,
        cart.id,
        customer={"name": payload.customer_name, "email": payload.customer_email, "phone": payload.customer_phone},
        shipping_address=payload.shipping_address.model_dump(),
        user_id=user_id,
        promo_code=payload.promo_code,
    )
    _raise_on_error(result)

    order, shipping = result["order"], result["shipping"]
    background.add_task(
        mailer.send_order_confirmation, order.customer_email, order.order_number, order.total, shipping.tracking_number
    )
    return {"order": order_out(order, shipping), "tracking_number": shipping.tracking_number}


# ---------- customer ----------
async def _own_order(db: AsyncSession, order_id: int, user_id: str) -> Order:
    order = await crud.get_order(db, order_id)
    # someone else's order looks the same as a missing one
    if not order or order.user_id != user_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/user/orders")
async def my_orders(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return [order_out(o) for o in await crud.get_orders_for_user(db, user_id)]


@router.get("/user/orders/{order_id}")
async def my_order(order_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    order = await _own_order(db, order_id, user_id)
    return order_out(order, await crud.get_shipping_for_order(db, order.id))


@router.post("/user/orders/{order_id}/cancel")
async def cancel_my_order(order_id: int, user_id: str = Depends(get_current_user_id),
                          db: AsyncSession = Depends(get_db)):
    order = await _own_order(db, order_id, user_id)
    result = await checkout.cancel_order(db, order)
    _raise_on_error(result)
    return order_out(result["order"], await crud.get_shipping_for_order(db, order.id))


# ---------- admin ----------
@router.get("/admin/orders")
async def admin_orders(status: Optional[OrderStatus] = None,
                       admin_id: int = Depends(require_admin),
                       db: AsyncSession = Depends(get_db)):
    return [order_out(o) for o in await crud.list_orders(db, status=status)]


@router.get("/admin/orders/stats/by-day")
async def admin_orders_by_day(days: int = Query(30, ge=1, le=366),
                              admin_id: int = Depends(require_admin),
                              db: AsyncSession = Depends(get_db)):
    return await crud.orders_by_day(db, days=days)


@router.get("/admin/orders/{order_id}")
async def admin_order(order_id: int, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    order = await crud.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order_out(order, await crud.get_shipping_for_order(db, order.id))


@router.patch("/admin/orders/{order_id}/status")
async def admin_set_order_status(order_id: int, payload: StatusIn,
                                 admin_id: int = Depends(require_admin),
                                 db: AsyncSession = Depends(get_db)):
    order = await crud.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status == "cancelled" and payload.status != "cancelled":
        # its stock was already returned
        raise HTTPException(status_code=400, detail="Cancelled orders cannot be reopened")
    if payload.status == "cancelled":
        # staff may cancel anything not already cancelled; stock goes back either way
        allowed = [s for s in checkout.ORDER_STATUSES if s != "cancelled"]
        result = await checkout.cancel_order(db, order, cancellable=allowed)
        _raise_on_error(result)
        order = result["order"]
    else:
        order = await crud.update_order_status(db, order, payload.status)
    logger.info("[ORDERS] admin %s set %s to %s", admin_id, order.order_number, order.status)
    return order_out(order, await crud.get_shipping_for_order(db, order.id))


@router.get("/admin/dashboard")
async def admin_dashboard(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    summary = await crud.dashboard_summary(db)
    summary["recent_orders"] = [order_out(o) for o in await crud.list_orders(db, limit=5)]
    return summary
