# storefront/favorites.py
from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import get_current_user_id
from .products import product_out

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


class FavoriteIn(BaseModel):
    product_id: int


@router.get("")
async def list_favorites(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    rows = await crud.list_favorites(db, user_id)
    return [
        {"id": fav.id, "product_id": fav.product_id, "created_at": str(fav.created_at), "product": product_out(p, c)}
        for fav, p, c in rows
    ]


@router.post("", status_code=201)
async def add_favorite(payload: FavoriteIn, user_id: str = Depends(get_current_user_id),
                       db: AsyncSession = Depends(get_db)):
    if not await crud.get_product(db, payload.product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    if await crud.get_favorite(db, user_id, payload.product_id):
        raise HTTPException(status_code=409, detail="Product is already a favorite")
    fav = await crud.add_favorite(db, user_id, payload.product_id)
    return {"id": fav.id, "product_id": fav.product_id, "created_at": str(fav.created_at)}


@router.delete("/{product_id}", status_code=204)
async def remove_favorite(product_id: int, user_id: str = Depends(get_current_user_id),
                          db: AsyncSession = Depends(get_db)):
    if not await crud.remove_favorite(db, user_id, product_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return Response(status_code=204)
