# storefront/tracking.py
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin
from .models import to_naive_utc
from .orders import shipping_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["shipping"])

ShippingStatus = Literal["pending", "processing", "in_transit", "shipped", "delivered", "failed", "cancelled"]


class ShippingUpdateIn(BaseModel):
    status: Optional[ShippingStatus] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    carrier: Optional[str] = Field(default=None, min_length=1)
    estimated_delivery: Optional[datetime] = None


@router.get("/tracking/{tracking_number}")
async def track(tracking_number: str, db: AsyncSession = Depends(get_db)):
    row = await crud.get_shipping_by_tracking(db, tracking_number)
    if not row:
        raise HTTPException(status_code=404, detail="Tracking number not found")
    shipping, order = row
    return {
        "tracking_number": shipping.tracking_number,
        "order_number": order.order_number,
        "status": shipping.status,
        "carrier": shipping.carrier,
        "history": shipping.history or [],
        "estimated_delivery": shipping.estimated_delivery.isoformat() if shipping.estimated_delivery else None,
        "order_status": order.status,
        "created_at": str(order.created_at),
    }


@router.get("/admin/shipping")
async def list_shipments(status: Optional[ShippingStatus] = None,
                         admin_id: int = Depends(require_admin),
                         db: AsyncSession = Depends(get_db)):
    rows = await crud.list_shipments(db, status=status)
    return [
        {**shipping_out(s), "order_number": o.order_number, "customer_name": o.customer_name}
        for s, o in rows
    ]


@router.patch("/admin/shipping/{shipping_id}")
async def update_shipment(shipping_id: int, payload: ShippingUpdateIn,
                          admin_id: int = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    shipping = await crud.get_shipping(db, shipping_id)
    if not shipping:
        raise HTTPException(status_code=404, detail="Shipment not found")
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Nothing to update")
    if "estimated_delivery" in data:
        data["estimated_delivery"] = to_naive_utc(data["estimated_delivery"])
    shipping = await crud.update_shipping(db, shipping, data)
    logger.info("[SHIPPING] %s -> %s", shipping.tracking_number, shipping.status)
    return shipping_out(shipping)
