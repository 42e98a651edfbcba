import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import SESSION_COOKIE_NAME, SESSION_TTL_DAYS
from .database import get_db
from .models import AdminUser
from .security_utils import create_jwt_token, verify_jwt_token, verify_password

logger = logging.getLogger(__name__)

# Cookie is the primary transport; a Bearer header is accepted for API clients
bearer = HTTPBearer(auto_error=False)


def authenticate_admin(db: Session, email: str, password: str) -> Optional[AdminUser]:
    """Return the admin for valid credentials, None otherwise"""
    admin = db.query(AdminUser).filter(AdminUser.email == email.strip().lower()).first()
    if not admin or not verify_password(password, admin.password_hash):
        return None
    return admin


def create_session_token(admin: AdminUser) -> str:
    return create_jwt_token(
        {"sub": str(admin.id), "email": admin.email, "role": admin.role},
        expires_delta=timedelta(days=SESSION_TTL_DAYS),
    )


def record_login(db: Session, admin: AdminUser) -> None:
    admin.last_login_at = datetime.utcnow()
    db.commit()


async def get_current_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> AdminUser:
    """Resolve the signed-in admin from the session cookie"""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token and credentials:
        token = credentials.credentials

    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    payload = verify_jwt_token(token)
    if not payload or not payload.get("sub"):
        logger.warning(f"⚠️ Invalid session token on {request.url.path}")
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    admin = db.query(AdminUser).filter(AdminUser.id == int(payload["sub"])).first()
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    if not admin.is_active:
        logger.warning(f"⚠️ Inactive admin {admin.email} attempted access")
        raise HTTPException(status_code=403, detail="Account is inactive")

    return admin
