"""Admin login / logout"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import authenticate_admin, create_session_token, get_current_admin, record_login
from ..config import (
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_SECURE,
    SESSION_TTL_DAYS,
)
from ..database import get_db
from ..models import AdminUser
from ..rate_limiter import create_rate_limiter
from ..shared.responses import success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

login_rate_limit = create_rate_limiter(limit=10, window_seconds=900, key_prefix="admin_login")


class LoginRequest(BaseModel):
    email: str
    password: str


def admin_payload(admin: AdminUser) -> dict:
    return {"id": admin.id, "email": admin.email, "name": admin.name, "role": admin.role}


@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(login_rate_limit),
):
    """Authenticate an admin and set the session cookie"""
    admin = authenticate_admin(db, data.email, data.password)
    if not admin:
        logger.warning(f"⚠️ Failed login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not admin.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    record_login(db, admin)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=create_session_token(admin),
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite=SESSION_COOKIE_SAMESITE,
        max_age=SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
    )
    logger.info(f"✅ Admin logged in: {admin.email}")
    return success(message="Login successful", user=admin_payload(admin))


@router.post("/logout")
async def logout(response: Response, admin: AdminUser = Depends(get_current_admin)):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    logger.info(f"👋 Admin logged out: {admin.email}")
    return success(message="Logout successful")


@router.get("/me")
async def me(admin: AdminUser = Depends(get_current_admin)):
    return success(user=admin_payload(admin))
