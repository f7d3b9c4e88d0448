# storefront/admin_users.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .auth import RegisterIn, admin_out, user_out
from .db import get_db
from .deps import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-users"])


class UserPatch(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class AdminIn(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=8)


async def _user_or_404(db: AsyncSession, user_id: str):
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users")
async def list_users(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [user_out(u) for u in await crud.list_users(db)]


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return user_out(await _user_or_404(db, user_id))


@router.post("/users", status_code=201)
async def create_user(payload: RegisterIn, admin_id: int = Depends(require_admin),
                      db: AsyncSession = Depends(get_db)):
    if await crud.get_user_by_username(db, payload.username):
        raise HTTPException(status_code=409, detail="Username already taken")
    if await crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered")
    user = await crud.create_user(
        db, payload.username, payload.email, payload.password,
        first_name=payload.first_name, last_name=payload.last_name, phone=payload.phone,
    )
    logger.info("[ADMIN] admin %s created user %s", admin_id, user.id)
    return user_out(user)


@router.patch("/users/{user_id}")
async def update_user(user_id: str, payload: UserPatch, admin_id: int = Depends(require_admin),
                      db: AsyncSession = Depends(get_db)):
    user = await _user_or_404(db, user_id)
    patch = payload.model_dump(exclude_unset=True)
    for key in ("username", "email", "password"):
        if key in patch and patch[key] is None:
            patch.pop(key)
    if patch.get("username") and patch["username"] != user.username:
        if await crud.get_user_by_username(db, patch["username"]):
            raise HTTPException(status_code=409, detail="Username already taken")
    if patch.get("email"):
        other = await crud.get_user_by_email(db, patch["email"])
        if other and other.id != user.id:
            raise HTTPException(status_code=409, detail="Email already registered")
    password = patch.pop("password", None)
    if patch:
        user = await crud.update_user(db, user, patch)
    if password:
        user = await crud.set_user_password(db, user, password)
    return user_out(user)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(user_id: str, admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await _user_or_404(db, user_id)
    await crud.delete_user(db, user)
    logger.info("[ADMIN] admin %s deleted user %s", admin_id, user_id)
    return Response(status_code=204)


@router.get("/admins")
async def list_admins(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [admin_out(a) for a in await crud.list_admins(db)]


@router.post("/admins", status_code=201)
async def create_admin(payload: AdminIn, admin_id: int = Depends(require_admin),
                       db: AsyncSession = Depends(get_db)):
    if await crud.admin_exists(db, payload.username, payload.email):
        raise HTTPException(status_code=409, detail="Admin with this username or email already exists")
    admin = await crud.create_admin(db, payload.username, payload.email, payload.password)
    logger.info("[ADMIN] admin %s created admin %s", admin_id, admin.username)
    return admin_out(admin)
