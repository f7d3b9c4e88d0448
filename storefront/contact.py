# storefront/contact.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .deps import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["contact"])


class ContactIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    message: str = Field(min_length=1)


@router.post("/contact", status_code=201)
async def submit_contact(payload: ContactIn, db: AsyncSession = Depends(get_db)):
    msg = await crud.create_contact_message(db, payload.model_dump())
    logger.info("[CONTACT] message %s from %s", msg.id, msg.email)
    return {"success": True, "message": "Message sent successfully", "id": msg.id}


@router.get("/admin/contact")
async def list_contact(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [
        {
            "id": m.id,
            "name": m.name,
            "email": m.email,
            "phone": m.phone,
            "message": m.message,
            "created_at": str(m.created_at),
        }
        for m in await crud.list_contact_messages(db)
    ]
