# storefront/messages.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import config, crud, storage
from .db import get_db
from .deps import get_current_user_id, require_admin
from .models import Message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["messages"])


class MessageIn(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    subject: Optional[str] = None
    order_id: Optional[int] = None
    image_url: Optional[str] = None


class ReplyIn(MessageIn):
    user_id: str


class MarkReadIn(BaseModel):
    ids: List[int] = Field(min_length=1)


def message_out(m: Message) -> dict:
    return {
        "id": m.id,
        "user_id": m.user_id,
        "order_id": m.order_id,
        "subject": m.subject,
        "content": m.content,
        "image_url": m.image_url,
        "is_admin": m.is_admin,
        "is_read": m.is_read,
        "created_at": str(m.created_at),
    }


def _check_image_url(image_url: Optional[str], prefix: str = ""):
    if image_url is not None and not storage.is_public_url(image_url, prefix):
        raise HTTPException(status_code=400, detail="Images must be uploaded first")


async def _check_order_owner(db: AsyncSession, order_id: Optional[int], user_id: str):
    if order_id is None:
        return
    order = await crud.get_order(db, order_id)
    if not order or order.user_id != user_id:
        raise HTTPException(status_code=404, detail="Order not found")


# ---------- customer ----------
@router.get("/messages")
async def my_messages(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return [message_out(m) for m in await crud.list_messages_for_user(db, user_id)]


@router.post("/messages", status_code=201)
async def send_message(payload: MessageIn, user_id: str = Depends(get_current_user_id),
                       db: AsyncSession = Depends(get_db)):
    await _check_order_owner(db, payload.order_id, user_id)
    _check_image_url(payload.image_url, f"messages/{user_id}/")
    msg = await crud.create_message(
        db, user_id, payload.content, is_admin=False,
        order_id=payload.order_id, subject=payload.subject, image_url=payload.image_url,
    )
    logger.info("[MESSAGES] user %s sent message %s", user_id, msg.id)
    return message_out(msg)


@router.get("/messages/unread-count")
async def my_unread_count(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return {"count": await crud.count_unread_for_user(db, user_id)}


@router.post("/messages/read")
async def mark_my_messages_read(payload: MarkReadIn, user_id: str = Depends(get_current_user_id),
                                db: AsyncSession = Depends(get_db)):
    return {"updated": await crud.mark_messages_read(db, payload.ids, user_id=user_id)}


@router.post("/messages/upload", status_code=201)
async def upload_message_image(file: UploadFile = File(...), user_id: str = Depends(get_current_user_id)):
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files can be uploaded")
    # read one byte past the limit so oversize files are caught without buffering them whole
    data = await file.read(config.MAX_IMAGE_BYTES + 1)
    if not data:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(data) > config.MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Image must be 5 MB or smaller")
    try:
        url = await storage.upload_image(data, content_type, user_id)
    except storage.StorageNotConfigured:
        raise HTTPException(status_code=503, detail="Image storage is not configured")
    except storage.StorageError:
        raise HTTPException(status_code=502, detail="Image upload failed")
    return {"url": url}


@router.get("/orders/{order_id}/messages")
async def order_messages(order_id: int, user_id: str = Depends(get_current_user_id),
                         db: AsyncSession = Depends(get_db)):
    await _check_order_owner(db, order_id, user_id)
    return [message_out(m) for m in await crud.list_messages_for_order(db, order_id)]


# ---------- admin ----------
@router.get("/admin/messages")
async def all_messages(unread_only: bool = False, admin_id: int = Depends(require_admin),
                       db: AsyncSession = Depends(get_db)):
    return [message_out(m) for m in await crud.list_all_messages(db, unread_only=unread_only)]


@router.get("/admin/messages/unread")
async def unread_messages(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [message_out(m) for m in await crud.list_all_messages(db, unread_only=True)]


@router.get("/admin/messages/user/{user_id}")
async def user_thread(user_id: str, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await crud.get_user_by_id(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return [message_out(m) for m in await crud.list_messages_for_user(db, user_id)]


@router.post("/admin/messages", status_code=201)
async def reply(payload: ReplyIn, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await crud.get_user_by_id(db, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    await _check_order_owner(db, payload.order_id, payload.user_id)
    _check_image_url(payload.image_url)
    msg = await crud.create_message(
        db, payload.user_id, payload.content, is_admin=True,
        order_id=payload.order_id, subject=payload.subject, image_url=payload.image_url,
    )
    logger.info("[MESSAGES] admin %s replied to user %s", admin_id, payload.user_id)
    return message_out(msg)


@router.post("/admin/messages/read")
async def mark_read_admin(payload: MarkReadIn, admin_id: int = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    return {"updated": await crud.mark_messages_read(db, payload.ids)}
