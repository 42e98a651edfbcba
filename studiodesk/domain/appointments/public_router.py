"""Public booking pages reached through an invitation link"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...shared.responses import success
from .schemas import PublicBookingRequest
from .service import AppointmentService

router = APIRouter(prefix="/book", tags=["Public Booking"])

booking_rate_limit = create_rate_limiter(limit=20, window_seconds=60, key_prefix="booking")


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


@router.get("/{token}", dependencies=[Depends(booking_rate_limit)])
async def get_booking_info(token: str, service: AppointmentService = Depends(get_appointment_service)):
    """Invitation details with the days that still have free slots"""
    return success(service.invite_info(token))


@router.get("/{token}/available-times", dependencies=[Depends(booking_rate_limit)])
async def get_available_times(
    token: str,
    date: date,
    service: AppointmentService = Depends(get_appointment_service),
):
    return success({"date": date.isoformat(), "availableTimes": service.invite_times(token, date)})


@router.post("/{token}", status_code=201, dependencies=[Depends(booking_rate_limit)])
async def book_appointment(
    token: str,
    data: PublicBookingRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.book_from_invite(token, data)
    return success(
        {
            "id": appointment.id,
            "status": appointment.status,
            "scheduledAt": appointment.scheduled_at,
            "duration": appointment.duration,
            "teamsLink": appointment.teams_link,
        },
        message="Your appointment has been confirmed! Check your email for details.",
    )
