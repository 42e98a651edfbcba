"""Appointment router - admin endpoints for scheduling"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...shared.responses import paginated, success
from .schemas import (
    AppointmentCreate,
    BlockedTimeCreate,
    CancelRequest,
    CompleteRequest,
    InvitationCreate,
    NoShowRequest,
    RescheduleRequest,
    SendInviteRequest,
    SettingsUpdate,
)
from .service import AppointmentService, blocked_payload, settings_payload, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# SETTINGS, AVAILABILITY AND BLOCKED TIMES
# ============================================================================


@router.get("/settings")
async def get_settings(
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(settings_payload(service.get_settings()))


@router.patch("/settings")
async def update_settings(
    data: SettingsUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(settings_payload(service.update_settings(data)), message="Settings updated")


@router.get("/availability")
async def get_availability(
    startDate: date,
    endDate: date,
    duration: Optional[int] = Query(None, ge=15, le=240),
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free start times per day"""
    return success(
        service.available_slots(startDate, endDate, duration),
        nextAvailable=service.next_available_slot(duration),
    )


@router.get("/blocked-times")
async def list_blocked_times(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success([blocked_payload(b) for b in service.list_blocked(start, end)])


@router.post("/blocked-times", status_code=201)
async def create_blocked_time(
    data: BlockedTimeCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(blocked_payload(service.create_blocked(data, admin)), message="Time blocked")


@router.delete("/blocked-times/{blocked_id}")
async def delete_blocked_time(
    blocked_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete_blocked(blocked_id)
    return success(message="Blocked time removed")


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.get("")
async def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    clientId: Optional[int] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    dateFrom: Optional[datetime] = None,
    dateTo: Optional[datetime] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    items, total = service.list_appointments(page, limit, clientId, status, type, dateFrom, dateTo)
    return paginated([to_response(a).model_dump() for a in items], total, page, limit)


@router.get("/stats")
async def appointment_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(service.stats())


@router.get("/export")
async def export_appointments_csv(
    clientId: Optional[int] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    dateFrom: Optional[datetime] = None,
    dateTo: Optional[datetime] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Export appointments as CSV with optional filters"""
    logger.info(f"📊 Appointment CSV export requested by {admin.email}")
    return service.export_csv(
        client_id=clientId, status=status, type=type, date_from=dateFrom, date_to=dateTo
    )


@router.post("", status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create a draft appointment"""
    return success(to_response(service.create_draft(data, admin)).model_dump())


@router.post("/invite", status_code=201)
async def create_invitation(
    data: InvitationCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create an appointment and send the booking link in one step"""
    appointment, url = await service.create_invitation(data, admin)
    payload = to_response(appointment).model_dump()
    payload["bookingUrl"] = url
    return success(payload, message="Invitation created")


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get(appointment_id)
    payload = to_response(appointment).model_dump()
    payload["auditLog"] = [
        {"action": log.action, "actor": log.actor, "details": log.details, "createdAt": log.created_at}
        for log in appointment.audit_logs
    ]
    return success(payload)


@router.post("/{appointment_id}/send-invite")
async def send_invite(
    appointment_id: int,
    data: SendInviteRequest = SendInviteRequest(),
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment, url = await service.send_invite(appointment_id, data, admin)
    payload = to_response(appointment).model_dump()
    payload["bookingUrl"] = url
    return success(payload, message="Invitation sent")


@router.post("/{appointment_id}/reschedule")
async def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.reschedule(appointment_id, data, admin)
    return success(to_response(appointment).model_dump(), message="Appointment rescheduled")


@router.post("/{appointment_id}/complete")
async def complete_appointment(
    appointment_id: int,
    data: CompleteRequest,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(to_response(service.complete(appointment_id, data, admin)).model_dump())


@router.post("/{appointment_id}/no-show")
async def mark_no_show(
    appointment_id: int,
    data: NoShowRequest,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return success(to_response(service.no_show(appointment_id, data, admin)).model_dump())


@router.post("/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: int,
    data: CancelRequest,
    admin: AdminUser = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel(appointment_id, data, admin)
    return success(to_response(appointment).model_dump(), message="Appointment cancelled")
