"""
Calendar OAuth routes
Connect Google / Outlook calendars and manage sync settings
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_admin
from ..config import FRONTEND_URL
from ..database import get_db
from ..models import AdminUser
from ..models_calendar import CalendarCredential
from ..security_utils import generate_timed_token, verify_timed_token
from ..services.calendar_providers import PROVIDERS, CalendarProviderError, get_provider
from ..services.calendar_sync_service import save_credential
from ..shared.responses import success

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Calendar OAuth"])

DEFAULT_RETURN_URL = f"{FRONTEND_URL}/admin/appointments/settings"
STATE_SALT = "calendar-oauth"
STATE_MAX_AGE = 600  # seconds


class CalendarSyncSettings(BaseModel):
    syncEnabled: Optional[bool] = None
    autoSync: Optional[bool] = None
    calendarId: Optional[str] = None


def _provider_or_404(provider: str):
    adapter = get_provider(provider)
    if not adapter:
        raise HTTPException(status_code=404, detail=f"Unknown calendar provider: {provider}")
    return adapter


def _with_params(url: str, **params) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


@router.get("/auth/oauth/{provider}/authorize")
async def authorize(
    provider: str,
    redirectUrl: Optional[str] = None,
    admin: AdminUser = Depends(get_current_admin),
):
    """Redirect the admin to the provider's consent screen"""
    adapter = _provider_or_404(provider)
    if not adapter.is_configured():
        raise HTTPException(status_code=500, detail=f"{provider} calendar is not configured")

    # Only return to our own frontend
    return_url = redirectUrl if redirectUrl and redirectUrl.startswith(FRONTEND_URL) else DEFAULT_RETURN_URL
    state = generate_timed_token(
        {"admin_id": admin.id, "provider": provider, "redirect": return_url}, salt=STATE_SALT
    )

    logger.info(f"🔗 {provider} calendar OAuth initiated for {admin.email}")
    return RedirectResponse(url=adapter.authorize_url(state), status_code=302)


@router.get("/auth/oauth/{provider}/callback")
async def callback(
    provider: str,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Provider redirect target; exchanges the code and returns to the frontend"""
    adapter = _provider_or_404(provider)

    if error:
        logger.warning(f"⚠️ {provider} OAuth returned error: {error}")
        return RedirectResponse(url=_with_params(DEFAULT_RETURN_URL, error=error), status_code=302)

    payload = verify_timed_token(state, max_age=STATE_MAX_AGE, salt=STATE_SALT) if state else None
    if not payload or payload.get("provider") != provider:
        raise HTTPException(status_code=403, detail="Invalid state parameter")
    if not code:
        return RedirectResponse(
            url=_with_params(payload["redirect"], error="Missing authorization code"), status_code=302
        )

    try:
        tokens = await adapter.exchange_code(code)
        account = await adapter.fetch_account(tokens.access_token)
    except (CalendarProviderError, httpx.HTTPError) as e:
        logger.error(f"❌ {provider} OAuth callback failed: {e}")
        return RedirectResponse(url=_with_params(payload["redirect"], error=str(e)), status_code=302)

    save_credential(db, payload["admin_id"], provider, tokens, account)
    label = "Google Calendar" if provider == "google" else "Outlook Calendar"
    return RedirectResponse(
        url=_with_params(
            payload["redirect"],
            success=f"{provider}_connected",
            message=f"{label} connected successfully",
        ),
        status_code=302,
    )


def _credential_payload(credential: Optional[CalendarCredential]) -> dict:
    if not credential:
        return {"connected": False}
    return {
        "connected": True,
        "email": credential.provider_email,
        "calendarId": credential.calendar_id,
        "syncEnabled": credential.sync_enabled,
        "autoSync": credential.auto_sync,
        "lastSyncedAt": credential.last_synced_at,
        "lastError": credential.last_error,
    }


def _get_credential(db: Session, admin: AdminUser, provider: str) -> Optional[CalendarCredential]:
    return (
        db.query(CalendarCredential)
        .filter(CalendarCredential.admin_id == admin.id, CalendarCredential.provider == provider)
        .first()
    )


@router.get("/admin/oauth/status")
async def oauth_status(admin: AdminUser = Depends(get_current_admin), db: Session = Depends(get_db)):
    return success({name: _credential_payload(_get_credential(db, admin, name)) for name in PROVIDERS})


@router.delete("/admin/oauth/{provider}")
async def disconnect(provider: str, admin: AdminUser = Depends(get_current_admin), db: Session = Depends(get_db)):
    _provider_or_404(provider)
    credential = _get_credential(db, admin, provider)
    if not credential:
        raise HTTPException(status_code=404, detail=f"{provider} calendar not connected")

    db.delete(credential)
    db.commit()
    logger.info(f"✅ {provider} calendar disconnected for {admin.email}")
    return success(message=f"{provider} calendar disconnected")


@router.patch("/admin/oauth/{provider}/settings")
async def update_sync_settings(
    provider: str,
    data: CalendarSyncSettings,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    _provider_or_404(provider)
    credential = _get_credential(db, admin, provider)
    if not credential:
        raise HTTPException(status_code=404, detail=f"{provider} calendar not connected")

    if data.syncEnabled is not None:
        credential.sync_enabled = data.syncEnabled
    if data.autoSync is not None:
        credential.auto_sync = data.autoSync
    if data.calendarId is not None:
        credential.calendar_id = data.calendarId or None
    db.commit()
    db.refresh(credential)
    return success(_credential_payload(credential))
