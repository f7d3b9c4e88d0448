# storefront/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin
from .models import Category, Product
from .pricing import unit_price

router = APIRouter(prefix="/api/products", tags=["products"])


class ProductIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    long_description: Optional[str] = None
    price: int = Field(gt=0)
    sale_price: Optional[int] = Field(default=None, gt=0)
    main_image: str = Field(min_length=1)
    images: List[str] = []
    category_id: int
    sku: str = Field(min_length=1)
    in_stock: bool = True
    is_new: bool = False
    is_featured: bool = False
    rating: float = Field(default=5, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)


# NOT NULL columns; a null in a patch leaves them unchanged
REQUIRED_FIELDS = (
    "name", "description", "price", "main_image", "category_id", "sku",
    "in_stock", "is_new", "is_featured", "rating", "review_count",
)


class ProductPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    long_description: Optional[str] = None
    price: Optional[int] = Field(default=None, gt=0)
    sale_price: Optional[int] = Field(default=None, gt=0)
    main_image: Optional[str] = Field(default=None, min_length=1)
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    sku: Optional[str] = Field(default=None, min_length=1)
    in_stock: Optional[bool] = None
    is_new: Optional[bool] = None
    is_featured: Optional[bool] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    review_count: Optional[int] = Field(default=None, ge=0)


def product_out(p: Product, category: Optional[Category] = None) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "long_description": p.long_description,
        "price": p.price,
        "sale_price": p.sale_price,
        "unit_price": unit_price(p),
        "main_image": p.main_image,
        "images": p.images or [],
        "category_id": p.category_id,
        "category_name": category.name if category else None,
        "category_slug": category.slug if category else None,
        "sku": p.sku,
        "in_stock": p.in_stock,
        "is_new": p.is_new,
        "is_featured": p.is_featured,
        "rating": p.rating,
        "review_count": p.review_count,
        "created_at": str(p.created_at),
    }


@router.get("")
async def list_products(
    category: Optional[str] = Query(None, description="category slug"),
    q: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    rows = await crud.list_products(db, category_slug=category, q=q, limit=limit)
    return [product_out(p, c) for p, c in rows]


@router.get("/featured")
async def featured_products(db: AsyncSession = Depends(get_db)):
    rows = await crud.list_products(db, featured=True)
    return [product_out(p, c) for p, c in rows]


@router.get("/new")
async def new_products(db: AsyncSession = Depends(get_db)):
    rows = await crud.list_products(db, is_new=True)
    return [product_out(p, c) for p, c in rows]


@router.get("/{product_id}")
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    row = await crud.get_product_with_category(db, product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return product_out(*row)


@router.get("/{product_id}/related")
async def related_products(product_id: int, limit: int = Query(4, ge=1, le=20),
                           db: AsyncSession = Depends(get_db)):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    rows = await crud.get_related_products(db, product, limit=limit)
    return [product_out(p, c) for p, c in rows]


@router.post("", status_code=201)
async def create_product(payload: ProductIn,
                         admin_id: int = Depends(require_admin),
                         db: AsyncSession = Depends(get_db)):
    category = await crud.get_category(db, payload.category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if await crud.get_product_by_sku(db, payload.sku):
        raise HTTPException(status_code=409, detail="SKU already exists")
    product = await crud.create_product(db, payload.model_dump())
    return product_out(product, category)


@router.patch("/{product_id}")
async def update_product(product_id: int, payload: ProductPatch,
                         admin_id: int = Depends(require_admin),
                         db: AsyncSession = Depends(get_db)):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    patch = payload.model_dump(exclude_unset=True)
    for key in REQUIRED_FIELDS:
        if key in patch and patch[key] is None:
            patch.pop(key)
    if patch.get("category_id") is not None and not await crud.get_category(db, patch["category_id"]):
        raise HTTPException(status_code=404, detail="Category not found")
    if patch.get("sku") and patch["sku"] != product.sku and await crud.get_product_by_sku(db, patch["sku"]):
        raise HTTPException(status_code=409, detail="SKU already exists")
    product = await crud.update_product(db, product, patch)
    return product_out(*await crud.get_product_with_category(db, product.id))


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: int,
                         admin_id: int = Depends(require_admin),
                         db: AsyncSession = Depends(get_db)):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    await crud.delete_product(db, product)
    return Response(status_code=204)
