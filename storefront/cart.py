# storefront/cart.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import CUSTOMER, get_current_user_id, get_optional_principal
from .models import Cart, CartItem
from .pricing import order_totals, unit_price
from .products import product_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


class CartIn(BaseModel):
    session_id: Optional[str] = Field(default=None, min_length=1)


class CartItemIn(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class QuantityIn(BaseModel):
    quantity: int = Field(ge=1)


def cart_out(cart: Cart) -> dict:
    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "session_id": cart.session_id,
        "created_at": str(cart.created_at),
    }


def item_out(item: CartItem) -> dict:
    return {"id": item.id, "cart_id": item.cart_id, "product_id": item.product_id, "quantity": item.quantity}


async def cart_summary(db: AsyncSession, cart: Cart) -> dict:
    lines = await crud.get_cart_lines(db, cart.id)
    items = []
    for item, product, category in lines:
        price = unit_price(product)
        items.append({
            **item_out(item),
            "unit_price": price,
            "line_total": price * item.quantity,
            "product": product_out(product, category),
        })
    totals = order_totals((i["unit_price"], i["quantity"]) for i in items)
    return {
        "cart": cart_out(cart),
        "items": items,
        "count": sum(i["quantity"] for i in items),
        **totals,
    }


def check_cart_access(cart: Cart, principal: Optional[dict]):
    """Carts owned by a customer are private to them; session carts are keyed by their session id."""
    if cart.user_id is None:
        return
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if principal["role"] != CUSTOMER or principal["id"] != cart.user_id:
        raise HTTPException(status_code=403, detail="Cart belongs to another user")


async def _load_cart(db: AsyncSession, cart_id: int, principal: Optional[dict]) -> Cart:
    cart = await crud.get_cart(db, cart_id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    check_cart_access(cart, principal)
    return cart


async def _load_item(db: AsyncSession, item_id: int, principal: Optional[dict]) -> CartItem:
    item = await crud.get_cart_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")
    await _load_cart(db, item.cart_id, principal)
    return item


@router.post("", status_code=201)
async def create_cart(payload: CartIn,
                      principal: Optional[dict] = Depends(get_optional_principal),
                      db: AsyncSession = Depends(get_db)):
    if principal and principal["role"] == CUSTOMER:
        cart = await crud.get_or_create_user_cart(db, principal["id"])
    elif payload.session_id:
        cart = await crud.get_or_create_session_cart(db, payload.session_id)
    else:
        raise HTTPException(status_code=400, detail="session_id required")
    return cart_out(cart)


@router.get("")
async def my_cart(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    cart = await crud.get_or_create_user_cart(db, user_id)
    return await cart_summary(db, cart)


@router.get("/{session_id}")
async def session_cart(session_id: str, db: AsyncSession = Depends(get_db)):
    cart = await crud.get_or_create_session_cart(db, session_id)
    return await cart_summary(db, cart)


@router.post("/{cart_id}/items", status_code=201)
async def add_item(cart_id: int, payload: CartItemIn, response: Response,
                   principal: Optional[dict] = Depends(get_optional_principal),
                   db: AsyncSession = Depends(get_db)):
    cart = await _load_cart(db, cart_id, principal)
    product = await crud.get_product(db, payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    item, created = await crud.add_item_to_cart(db, cart.id, product.id, payload.quantity)
    if not created:
        response.status_code = 200
    logger.info("[CART] cart=%s product=%s +%s (line qty %s)", cart.id, product.id, payload.quantity, item.quantity)
    return {"item": item_out(item), "cart": await cart_summary(db, cart)}


@router.delete("/{cart_id}/items", status_code=204)
async def clear_cart(cart_id: int,
                     principal: Optional[dict] = Depends(get_optional_principal),
                     db: AsyncSession = Depends(get_db)):
    cart = await _load_cart(db, cart_id, principal)
    await crud.clear_cart(db, cart.id)
    return Response(status_code=204)


@router.patch("/items/{item_id}")
async def update_item(item_id: int, payload: QuantityIn,
                      principal: Optional[dict] = Depends(get_optional_principal),
                      db: AsyncSession = Depends(get_db)):
    item = await _load_item(db, item_id, principal)
    item = await crud.update_cart_item(db, item, payload.quantity)
    return item_out(item)


@router.delete("/items/{item_id}", status_code=204)
async def remove_item(item_id: int,
                      quantity: Optional[int] = Query(None, ge=1, description="units to remove; whole line when omitted"),
                      principal: Optional[dict] = Depends(get_optional_principal),
                      db: AsyncSession = Depends(get_db)):
    item = await _load_item(db, item_id, principal)
    await crud.remove_cart_item(db, item, quantity)
    return Response(status_code=204)
