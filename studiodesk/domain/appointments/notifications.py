"""
Side effects of appointment transitions: client emails and calendar sync.
Failures here are logged and never undo the transition.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ...email_service import (
    EmailDeliveryError,
    send_appointment_cancelled,
    send_appointment_confirmed,
    send_appointment_invitation,
)
from ...models_appointments import Appointment
from ...services.calendar_providers import CalendarProviderError
from ...services.calendar_sync_service import remove_appointment, sync_appointment

logger = logging.getLogger(__name__)


def format_when(value: Optional[datetime]) -> str:
    return value.strftime("%A %d %B %Y, %H:%M UTC") if value else ""


def _recipient(appointment: Appointment) -> tuple[Optional[str], str]:
    client = appointment.client
    if not client:
        return None, "there"
    return client.email, client.name


async def notify_invited(appointment: Appointment, booking_url: str) -> bool:
    to, name = _recipient(appointment)
    if not to:
        return False
    try:
        await send_appointment_invitation(
            to, name, appointment.type, booking_url, format_when(appointment.invite_token_expires_at)
        )
        return True
    except EmailDeliveryError as e:
        logger.error(f"❌ Invitation email failed for appointment {appointment.id}: {e}")
        return False


async def notify_booked(db: Session, appointment: Appointment) -> None:
    """Confirmation email plus calendar push, used for bookings and reschedules"""
    to, name = _recipient(appointment)
    if to:
        try:
            await send_appointment_confirmed(
                to, name, appointment.type, format_when(appointment.scheduled_at), appointment.duration
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ Confirmation email failed for appointment {appointment.id}: {e}")

    try:
        await sync_appointment(db, appointment)
    except (CalendarProviderError, httpx.HTTPError) as e:
        logger.error(f"❌ Calendar sync failed for appointment {appointment.id}: {e}")


async def notify_cancelled(db: Session, appointment: Appointment, reason: Optional[str]) -> None:
    to, name = _recipient(appointment)
    if to:
        try:
            await send_appointment_cancelled(to, name, appointment.type, reason)
        except EmailDeliveryError as e:
            logger.error(f"❌ Cancellation email failed for appointment {appointment.id}: {e}")

    try:
        await remove_appointment(db, appointment)
    except (CalendarProviderError, httpx.HTTPError) as e:
        logger.error(f"❌ Calendar removal failed for appointment {appointment.id}: {e}")
