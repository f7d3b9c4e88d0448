# storefront/deps.py
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from . import config

security = HTTPBearer(auto_error=False)

CUSTOMER = "customer"
ADMIN = "admin"


def decode_session_token(token: str) -> dict:
    """Returns {"id", "role"} for a valid token, raises 401 otherwise."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"id": subject, "role": payload.get("role", CUSTOMER)}


def _session_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    # an explicit Authorization header wins over the cookie
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def get_optional_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[dict]:
    token = _session_token(request, credentials)
    if not token:
        return None
    try:
        return decode_session_token(token)
    except HTTPException:
        # a stale cookie must not break anonymous browsing
        return None


def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    token = _session_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return decode_session_token(token)


def get_current_user_id(principal: dict = Depends(get_principal)) -> str:
    if principal["role"] != CUSTOMER:
        raise HTTPException(status_code=403, detail="Customer account required")
    return principal["id"]


def require_admin(principal: dict = Depends(get_principal)) -> int:
    if principal["role"] != ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return int(principal["id"])
