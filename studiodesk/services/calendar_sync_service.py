"""
Calendar Sync Service
Pushes booked appointments to every connected calendar. Sync failures are
recorded on the credential and logged; they never fail the booking itself.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..models_appointments import Appointment
from ..models_calendar import CalendarCredential
from ..security_utils import decrypt_value, encrypt_value
from .calendar_providers import CalendarProviderError, TokenSet, get_provider

logger = logging.getLogger(__name__)


def save_credential(
    db: Session, admin_id: int, provider: str, tokens: TokenSet, account: dict
) -> CalendarCredential:
    """Insert or refresh the admin's credential for a provider"""
    credential = (
        db.query(CalendarCredential)
        .filter(CalendarCredential.admin_id == admin_id, CalendarCredential.provider == provider)
        .first()
    )
    if not credential:
        credential = CalendarCredential(admin_id=admin_id, provider=provider)
        db.add(credential)

    credential.access_token = encrypt_value(tokens.access_token)
    if tokens.refresh_token:
        credential.refresh_token = encrypt_value(tokens.refresh_token)
    credential.token_expires_at = tokens.expires_at
    credential.scopes = tokens.scopes
    credential.provider_account_id = account.get("id")
    credential.provider_email = account.get("email")
    if account.get("calendar_id") and not credential.calendar_id:
        credential.calendar_id = account["calendar_id"]
    credential.last_error = None

    db.commit()
    db.refresh(credential)
    logger.info(f"✅ {provider} calendar connected for admin {admin_id}")
    return credential


async def get_valid_access_token(credential: CalendarCredential, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing if it expires within 5 minutes.
    Returns None if the token cannot be recovered.
    """
    provider = get_provider(credential.provider)

    if credential.token_expires_at > datetime.utcnow() + timedelta(minutes=5):
        return decrypt_value(credential.access_token)

    if not credential.refresh_token:
        logger.warning(f"⚠️ {credential.provider} token expired and no refresh token stored")
        return None

    refresh_token = decrypt_value(credential.refresh_token)
    if not refresh_token:
        return None

    logger.info(f"🔄 {credential.provider} calendar token expired, refreshing...")
    tokens = await provider.refresh(refresh_token)
    credential.access_token = encrypt_value(tokens.access_token)
    if tokens.refresh_token:
        credential.refresh_token = encrypt_value(tokens.refresh_token)
    credential.token_expires_at = tokens.expires_at
    db.commit()
    logger.info(f"✅ {credential.provider} calendar token refreshed")
    return tokens.access_token


def _active_credentials(db: Session) -> list[CalendarCredential]:
    return (
        db.query(CalendarCredential)
        .filter(CalendarCredential.sync_enabled.is_(True), CalendarCredential.auto_sync.is_(True))
        .all()
    )


def event_title(appointment: Appointment) -> str:
    client_name = appointment.client.name if appointment.client else "Client"
    return f"{appointment.type} - {client_name}"


def _event_description(appointment: Appointment) -> str:
    lines = [f"{appointment.type} call ({appointment.duration} minutes)"]
    if appointment.client:
        lines.append(f"Client: {appointment.client.name} <{appointment.client.email}>")
    if appointment.client_notes:
        lines.append(f"Notes: {appointment.client_notes}")
    return "\n".join(lines)


async def sync_appointment(db: Session, appointment: Appointment) -> dict[str, Optional[str]]:
    """Create or update the appointment's event in every auto-sync calendar"""
    if not appointment.scheduled_at:
        return {}

    results: dict[str, Optional[str]] = {}
    event_ids = dict(appointment.calendar_event_ids or {})
    start = appointment.scheduled_at
    end = start + timedelta(minutes=appointment.duration)

    for credential in _active_credentials(db):
        provider = get_provider(credential.provider)
        try:
            access_token = await get_valid_access_token(credential, db)
            if not access_token:
                raise CalendarProviderError("No valid access token")

            event = provider.build_event(event_title(appointment), _event_description(appointment), start, end)
            existing_id = event_ids.get(credential.provider)
            if existing_id:
                await provider.update_event(access_token, credential.calendar_id, existing_id, event)
                results[credential.provider] = existing_id
            else:
                event_id = await provider.create_event(access_token, credential.calendar_id, event)
                event_ids[credential.provider] = event_id
                results[credential.provider] = event_id

            credential.last_synced_at = datetime.utcnow()
            credential.last_error = None
            logger.info(f"📅 Appointment {appointment.id} synced to {credential.provider}")
        except (CalendarProviderError, httpx.HTTPError) as e:
            credential.last_error = str(e)
            results[credential.provider] = None
            logger.error(f"❌ Calendar sync to {credential.provider} failed for appointment {appointment.id}: {e}")

    appointment.calendar_event_ids = event_ids
    db.commit()
    return results


async def remove_appointment(db: Session, appointment: Appointment) -> None:
    """Delete the appointment's events from connected calendars"""
    event_ids = dict(appointment.calendar_event_ids or {})
    if not event_ids:
        return

    for credential in _active_credentials(db):
        event_id = event_ids.get(credential.provider)
        if not event_id:
            continue
        provider = get_provider(credential.provider)
        try:
            access_token = await get_valid_access_token(credential, db)
            if not access_token:
                raise CalendarProviderError("No valid access token")
            await provider.delete_event(access_token, credential.calendar_id, event_id)
            event_ids.pop(credential.provider, None)
            credential.last_error = None
        except (CalendarProviderError, httpx.HTTPError) as e:
            credential.last_error = str(e)
            logger.error(f"❌ Calendar removal from {credential.provider} failed for appointment {appointment.id}: {e}")

    appointment.calendar_event_ids = event_ids
    db.commit()
