# storefront/categories.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin
from .models import Category
from .products import product_out

router = APIRouter(prefix="/api/categories", tags=["categories"])

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = Field(default=None, min_length=1, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image: Optional[str] = None


def category_out(c: Category) -> dict:
    return {"id": c.id, "name": c.name, "slug": c.slug, "description": c.description, "image": c.image}


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return [category_out(c) for c in await crud.list_categories(db)]


@router.get("/{slug}")
async def get_category(slug: str, db: AsyncSession = Depends(get_db)):
    category = await crud.get_category_by_slug(db, slug)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category_out(category)


@router.get("/{slug}/products")
async def category_products(slug: str, db: AsyncSession = Depends(get_db)):
    rows = await crud.list_products(db, category_slug=slug)
    return [product_out(p, c) for p, c in rows]


@router.post("", status_code=201)
async def create_category(payload: CategoryIn,
                          admin_id: int = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    if await crud.get_category_by_slug(db, payload.slug):
        raise HTTPException(status_code=409, detail="Slug already exists")
    category = await crud.create_category(db, payload.model_dump())
    return category_out(category)


@router.patch("/{category_id}")
async def update_category(category_id: int, payload: CategoryPatch,
                          admin_id: int = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    category = await crud.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    patch = payload.model_dump(exclude_unset=True)
    for key in ("name", "slug"):
        if key in patch and patch[key] is None:
            patch.pop(key)
    if patch.get("slug") and patch["slug"] != category.slug and await crud.get_category_by_slug(db, patch["slug"]):
        raise HTTPException(status_code=409, detail="Slug already exists")
    category = await crud.update_category(db, category, patch)
    return category_out(category)


@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int,
                          admin_id: int = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    category = await crud.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if await crud.category_has_products(db, category.id):
        raise HTTPException(status_code=409, detail="Category still has products")
    await crud.delete_category(db, category)
    return Response(status_code=204)
