# storefront/inventory.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin
from .models import Inventory, Product

router = APIRouter(prefix="/api/admin/inventory", tags=["inventory"])


class InventoryIn(BaseModel):
    product_id: int
    quantity: int = Field(default=0, ge=0)
    minimum_stock_level: int = Field(default=5, ge=0)
    on_order: int = Field(default=0, ge=0)
    location: Optional[str] = "main warehouse"


class InventoryPatch(BaseModel):
    quantity: Optional[int] = Field(default=None, ge=0)
    minimum_stock_level: Optional[int] = Field(default=None, ge=0)
    on_order: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None


class StockIn(BaseModel):
    quantity: int = Field(ge=0)


def inventory_out(inv: Inventory, product: Optional[Product] = None) -> dict:
    out = {
        "id": inv.id,
        "product_id": inv.product_id,
        "quantity": inv.quantity,
        "minimum_stock_level": inv.minimum_stock_level,
        "on_order": inv.on_order,
        "location": inv.location,
        "low_stock": inv.quantity <= inv.minimum_stock_level,
        "last_updated": str(inv.last_updated),
    }
    if product is not None:
        out["product_name"] = product.name
        out["sku"] = product.sku
        out["in_stock"] = product.in_stock
    return out


@router.get("")
async def list_inventory(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [inventory_out(inv, p) for inv, p in await crud.list_inventory(db)]


@router.get("/low-stock")
async def low_stock(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [inventory_out(inv, p) for inv, p in await crud.list_inventory(db, low_only=True)]


@router.get("/product/{product_id}")
async def product_inventory(product_id: int, admin_id: int = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    inv = await crud.get_inventory_by_product(db, product_id)
    if not inv:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return inventory_out(inv, await crud.get_product(db, product_id))


@router.post("", status_code=201)
async def create_inventory(payload: InventoryIn, admin_id: int = Depends(require_admin),
                           db: AsyncSession = Depends(get_db)):
    product = await crud.get_product(db, payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if await crud.get_inventory_by_product(db, payload.product_id):
        raise HTTPException(status_code=409, detail="Inventory already exists for this product")
    inv = await crud.create_inventory(db, payload.model_dump())
    await db.refresh(product)
    return inventory_out(inv, product)


@router.patch("/{inventory_id}")
async def update_inventory(inventory_id: int, payload: InventoryPatch,
                           admin_id: int = Depends(require_admin),
                           db: AsyncSession = Depends(get_db)):
    inv = await crud.get_inventory(db, inventory_id)
    if not inv:
        raise HTTPException(status_code=404, detail="Inventory not found")
    patch = payload.model_dump(exclude_none=True)
    inv = await crud.update_inventory(db, inv, patch)
    return inventory_out(inv, await crud.get_product(db, inv.product_id))


@router.patch("/product/{product_id}/stock")
async def set_stock(product_id: int, payload: StockIn, admin_id: int = Depends(require_admin),
                    db: AsyncSession = Depends(get_db)):
    inv = await crud.set_product_stock(db, product_id, payload.quantity)
    if inv is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return inventory_out(inv, await crud.get_product(db, product_id))
