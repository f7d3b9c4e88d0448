# storefront/promo_codes.py
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin
from .models import PromoCode, to_naive_utc
from .pricing import promo_discount, promo_problem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["promo-codes"])

CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


class PromoIn(BaseModel):
    code: str = Field(min_length=3, max_length=32, pattern=CODE_PATTERN)
    description: str = Field(min_length=1)
    discount_type: Literal["percentage", "fixed"]
    discount_amount: int = Field(gt=0)
    min_order_amount: Optional[int] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PromoPatch(BaseModel):
    code: Optional[str] = Field(default=None, min_length=3, max_length=32, pattern=CODE_PATTERN)
    description: Optional[str] = Field(default=None, min_length=1)
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_amount: Optional[int] = Field(default=None, gt=0)
    min_order_amount: Optional[int] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ValidateIn(BaseModel):
    code: str = Field(min_length=1)
    subtotal: int = Field(ge=0)


def promo_out(p: PromoCode) -> dict:
    return {
        "id": p.id,
        "code": p.code,
        "description": p.description,
        "discount_type": p.discount_type,
        "discount_amount": p.discount_amount,
        "min_order_amount": p.min_order_amount,
        "max_uses": p.max_uses,
        "used_count": p.used_count,
        "is_active": p.is_active,
        "start_date": p.start_date.isoformat() if p.start_date else None,
        "end_date": p.end_date.isoformat() if p.end_date else None,
        "created_at": str(p.created_at),
    }


def _check_rules(data: dict):
    if data.get("discount_type") == "percentage" and data.get("discount_amount", 0) > 100:
        raise HTTPException(status_code=400, detail="Percentage discount cannot exceed 100")
    start, end = data.get("start_date"), data.get("end_date")
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="end_date must be after start_date")


def _normalize_dates(data: dict) -> dict:
    for key in ("start_date", "end_date"):
        if key in data:
            data[key] = to_naive_utc(data[key])
    return data


async def _get_or_404(db: AsyncSession, promo_id: int) -> PromoCode:
    promo = await crud.get_promo_code(db, promo_id)
    if not promo:
        raise HTTPException(status_code=404, detail="Promo code not found")
    return promo


# ---------- public ----------
@router.post("/promo-codes/validate")
async def validate_promo_code(payload: ValidateIn, db: AsyncSession = Depends(get_db)):
    promo = await crud.get_promo_code_by_code(db, payload.code)
    if not promo:
        raise HTTPException(status_code=404, detail="Promo code not found")
    problem = promo_problem(promo, payload.subtotal)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    return {
        "valid": True,
        "code": promo.code,
        "description": promo.description,
        "discount_type": promo.discount_type,
        "discount_amount": promo.discount_amount,
        "discount": promo_discount(promo, payload.subtotal),
    }


# ---------- admin ----------
@router.get("/admin/promo-codes")
async def list_promo_codes(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [promo_out(p) for p in await crud.list_promo_codes(db)]


@router.get("/admin/promo-codes/{promo_id}")
async def get_promo_code(promo_id: int, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return promo_out(await _get_or_404(db, promo_id))


@router.post("/admin/promo-codes", status_code=201)
async def create_promo_code(payload: PromoIn, admin_id: int = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    data = _normalize_dates(payload.model_dump())
    _check_rules(data)
    if await crud.get_promo_code_by_code(db, data["code"]):
        raise HTTPException(status_code=409, detail="Promo code already exists")
    promo = await crud.create_promo_code(db, data, admin_id)
    logger.info("[PROMO] admin %s created %s", admin_id, promo.code)
    return promo_out(promo)


@router.patch("/admin/promo-codes/{promo_id}")
async def update_promo_code(promo_id: int, payload: PromoPatch,
                            admin_id: int = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    promo = await _get_or_404(db, promo_id)
    patch = _normalize_dates(payload.model_dump(exclude_unset=True))
    for key in ("code", "description", "discount_type", "discount_amount", "is_active"):
        if key in patch and patch[key] is None:
            patch.pop(key)
    _check_rules({
        "discount_type": patch.get("discount_type", promo.discount_type),
        "discount_amount": patch.get("discount_amount", promo.discount_amount),
        "start_date": patch.get("start_date", promo.start_date),
        "end_date": patch.get("end_date", promo.end_date),
    })
    if patch.get("code"):
        other = await crud.get_promo_code_by_code(db, patch["code"])
        if other and other.id != promo.id:
            raise HTTPException(status_code=409, detail="Promo code already exists")
    promo = await crud.update_promo_code(db, promo, patch)
    return promo_out(promo)


@router.patch("/admin/promo-codes/{promo_id}/toggle")
async def toggle_promo_code(promo_id: int, admin_id: int = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    promo = await _get_or_404(db, promo_id)
    promo = await crud.update_promo_code(db, promo, {"is_active": not promo.is_active})
    return promo_out(promo)


@router.delete("/admin/promo-codes/{promo_id}", status_code=204)
async def delete_promo_code(promo_id: int, admin_id: int = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    promo = await _get_or_404(db, promo_id)
    await crud.delete_promo_code(db, promo)
    return Response(status_code=204)
