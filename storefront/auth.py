# storefront/auth.py
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from jose import jwt
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import config, crud, mailer
from .db import get_db, redis as redis_client
from .deps import ADMIN, CUSTOMER, get_current_user_id, require_admin
from .models import Admin, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

RESET_KEY_PREFIX = "password_reset:"


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class LoginIn(BaseModel):
    username: str = Field(min_length=1, description="username or email")
    password: str = Field(min_length=1)


class ProfileIn(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2)
    last_name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=9, max_length=15)
    address: Optional[str] = Field(default=None, min_length=2)
    city: Optional[str] = Field(default=None, min_length=2)
    postal_code: Optional[str] = None
    country: Optional[str] = None


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8)


def create_access_token(data: dict, expires_delta: int = config.ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def user_out(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "address": user.address,
        "city": user.city,
        "postal_code": user.postal_code,
        "country": user.country,
        "role": CUSTOMER,
        "created_at": str(user.created_at),
    }


def admin_out(admin: Admin) -> dict:
    return {
        "id": admin.id,
        "username": admin.username,
        "email": admin.email,
        "role": ADMIN,
        "last_login": str(admin.last_login) if admin.last_login else None,
    }


def _session_response(response: Response, token: str, account: dict) -> dict:
    set_session_cookie(response, token)
    return {"access_token": token, "token_type": "bearer", "user": account}


@router.post("/register", status_code=201)
async def register(payload: RegisterIn, response: Response, db: AsyncSession = Depends(get_db)):
    if await crud.get_user_by_username(db, payload.username):
        raise HTTPException(status_code=409, detail="Username already taken")
    if await crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered")
    user = await crud.create_user(
        db, payload.username, payload.email, payload.password,
        first_name=payload.first_name, last_name=payload.last_name, phone=payload.phone,
    )
    logger.info("[AUTH] registered user %s", user.id)
    token = create_access_token({"sub": user.id, "role": CUSTOMER})
    return _session_response(response, token, user_out(user))


@router.post("/login")
async def login(payload: LoginIn, response: Response, db: AsyncSession = Depends(get_db)):
    user = await crud.get_user_by_login(db, payload.username.strip())
    if not user or not crud.verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({"sub": user.id, "role": CUSTOMER})
    return _session_response(response, token, user_out(user))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/user")
async def current_user(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return user_out(user)


@router.patch("/user/profile")
async def update_profile(payload: ProfileIn,
                         user_id: str = Depends(get_current_user_id),
                         db: AsyncSession = Depends(get_db)):
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    patch = payload.model_dump(exclude_unset=True)
    if patch.get("email"):
        other = await crud.get_user_by_email(db, patch["email"])
        if other and other.id != user.id:
            raise HTTPException(status_code=409, detail="Email already registered")
    elif "email" in patch:
        patch.pop("email")
    user = await crud.update_user(db, user, patch)
    return user_out(user)


@router.patch("/user/password")
async def change_password(payload: PasswordChangeIn,
                          user_id: str = Depends(get_current_user_id),
                          db: AsyncSession = Depends(get_db)):
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    if not crud.verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    await crud.set_user_password(db, user, payload.new_password)
    return {"ok": True}


@router.post("/forgot-password")
async def forgot_password(payload: ForgotPasswordIn, background: BackgroundTasks,
                          db: AsyncSession = Depends(get_db)):
    # same answer whether or not the address is known
    user = await crud.get_user_by_email(db, payload.email)
    if user:
        token = secrets.token_urlsafe(32)
        await redis_client.set(RESET_KEY_PREFIX + token, user.id, ex=config.PASSWORD_RESET_TTL_SECONDS)
        background.add_task(mailer.send_password_reset_email, user.email, token)
        logger.info("[AUTH] password reset requested for user %s", user.id)
    return {"ok": True, "message": "If the address is registered, a reset link has been sent"}


@router.post("/reset-password")
async def reset_password(payload: ResetPasswordIn, db: AsyncSession = Depends(get_db)):
    key = RESET_KEY_PREFIX + payload.token
    # read and consume in one step
    user_id = await redis_client.getdel(key)
    if not user_id:
        raise HTTPException(status_code=400, detail="Reset link is invalid or has expired")
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=400, detail="Reset link is invalid or has expired")
    await crud.set_user_password(db, user, payload.password)
    return {"ok": True}


@router.post("/admin/login")
async def admin_login(payload: LoginIn, response: Response, db: AsyncSession = Depends(get_db)):
    admin = await crud.validate_admin_login(db, payload.username.strip(), payload.password)
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    admin = await crud.update_admin_last_login(db, admin)
    token = create_access_token({"sub": str(admin.id), "role": ADMIN})
    return _session_response(response, token, admin_out(admin))


@router.get("/admin/me")
async def current_admin(admin_id: int = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    admin = await crud.get_admin(db, admin_id)
    if not admin:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return admin_out(admin)
