"""Appointment service - Business logic for scheduling"""

import csv
import logging
import secrets
from datetime import date, datetime, timedelta
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...models import AdminUser, Client
from ...models_appointments import (
    Appointment,
    AppointmentOutcome,
    AppointmentSettings,
    AppointmentStatus,
    AppointmentType,
    BlockedTime,
)
from . import availability
from .availability import AvailabilityRules, Interval, InvalidRangeError
from .notifications import notify_booked, notify_cancelled, notify_invited
from .repository import AppointmentRepository
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    BlockedTimeCreate,
    CancelRequest,
    CompleteRequest,
    InvitationCreate,
    NoShowRequest,
    PublicBookingRequest,
    RescheduleRequest,
    SendInviteRequest,
    SettingsUpdate,
)
from .state_machine import InvalidTransitionError, ensure_transition

logger = logging.getLogger(__name__)

# Longest appointment plus buffer never reaches back further than this
LOOKBACK = timedelta(days=1)


def booking_url(token: str) -> str:
    return f"{FRONTEND_URL}/book/{token}"


def to_response(appointment: Appointment) -> AppointmentResponse:
    client = appointment.client
    return AppointmentResponse(
        id=appointment.id,
        clientId=appointment.client_id,
        clientName=client.name if client else None,
        clientEmail=client.email if client else None,
        type=appointment.type,
        status=appointment.status,
        scheduledAt=appointment.scheduled_at,
        duration=appointment.duration,
        teamsLink=appointment.teams_link,
        recordingUrl=appointment.recording_url,
        recordingConsentGiven=bool(appointment.recording_consent_given),
        adminNotes=appointment.admin_notes,
        clientNotes=appointment.client_notes,
        outcome=appointment.outcome,
        callSummary=appointment.call_summary,
        noShowReason=appointment.no_show_reason,
        inviteExpiresAt=appointment.invite_token_expires_at,
        proposalId=appointment.proposal_id,
        envelopeId=appointment.envelope_id,
        invoiceId=appointment.invoice_id,
        calendarEventIds=appointment.calendar_event_ids or {},
        createdAt=appointment.created_at,
    )


def settings_payload(settings: AppointmentSettings) -> dict:
    return {
        "workdayStart": settings.workday_start,
        "workdayEnd": settings.workday_end,
        "slotMinutes": settings.slot_minutes,
        "bufferMinutes": settings.buffer_minutes,
        "bookingWindowDays": settings.booking_window_days,
        "activeTypes": settings.active_types or [],
        "timezone": settings.timezone,
    }


def blocked_payload(blocked: BlockedTime) -> dict:
    return {
        "id": blocked.id,
        "startAt": blocked.start_at,
        "endAt": blocked.end_at,
        "reason": blocked.reason,
    }


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------ settings

    def get_settings(self) -> AppointmentSettings:
        return self.repo.get_settings(self.db)

    def update_settings(self, data: SettingsUpdate) -> AppointmentSettings:
        settings = self.get_settings()
        start = data.workdayStart if data.workdayStart is not None else settings.workday_start
        end = data.workdayEnd if data.workdayEnd is not None else settings.workday_end
        if start >= end:
            raise HTTPException(status_code=400, detail="workdayStart must be before workdayEnd")

        mapping = {
            "workday_start": data.workdayStart,
            "workday_end": data.workdayEnd,
            "slot_minutes": data.slotMinutes,
            "buffer_minutes": data.bufferMinutes,
            "booking_window_days": data.bookingWindowDays,
            "timezone": data.timezone,
        }
        for key, value in mapping.items():
            if value is not None:
                setattr(settings, key, value)
        if data.activeTypes is not None:
            settings.active_types = [t.value for t in data.activeTypes]

        self.db.commit()
        self.db.refresh(settings)
        logger.info(f"✅ Appointment settings updated: {settings_payload(settings)}")
        return settings

    def rules(self) -> AvailabilityRules:
        return AvailabilityRules.from_settings(self.get_settings())

    # -------------------------------------------------------------- availability

    def occupied(self, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> list[Interval]:
        """Blocked times and live appointments that could touch [start, end)"""
        intervals = [Interval(b.start_at, b.end_at) for b in self.repo.blocked_between(self.db, start, end)]
        for appt in self.repo.occupied_between(self.db, start - LOOKBACK, end, exclude_id):
            intervals.append(Interval(appt.scheduled_at, appt.scheduled_at + timedelta(minutes=appt.duration)))
        return intervals

    def _occupied_for_days(self, first: date, last: date, exclude_id: Optional[int] = None) -> list[Interval]:
        start = datetime.combine(first, datetime.min.time())
        end = datetime.combine(last + timedelta(days=1), datetime.min.time())
        return self.occupied(start - LOOKBACK, end + LOOKBACK, exclude_id)

    def available_slots(
        self, start_date: date, end_date: date, duration: Optional[int] = None
    ) -> dict[str, list[datetime]]:
        if end_date < start_date:
            raise HTTPException(status_code=400, detail="endDate must not be before startDate")
        rules = self.rules()
        try:
            slots = availability.available_slots(
                start_date,
                end_date,
                rules,
                self._occupied_for_days(start_date, end_date),
                datetime.utcnow(),
                duration,
            )
        except InvalidRangeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {day.isoformat(): times for day, times in slots.items()}

    def times_for_day(self, day: date, duration: Optional[int] = None) -> list[dict]:
        rules = self.rules()
        length = timedelta(minutes=duration or rules.slot_minutes)
        first, last = availability.booking_window(rules, datetime.utcnow())
        if day < first or day > last:
            return []
        free = availability.free_slots_for_day(
            day, rules, self._occupied_for_days(day, day), datetime.utcnow(), duration
        )
        return [
            {"startTime": start.strftime("%H:%M"), "startDate": start, "endDate": start + length}
            for start in free
        ]

    def next_available_slot(self, duration: Optional[int] = None) -> Optional[datetime]:
        rules = self.rules()
        first, last = availability.booking_window(rules, datetime.utcnow())
        return availability.find_next_available_slot(
            rules, self._occupied_for_days(first, last), datetime.utcnow(), duration
        )

    def _check_bookable(self, start: datetime, duration: int, exclude_id: Optional[int] = None) -> None:
        rules = self.rules()
        end = start + timedelta(minutes=duration)
        reason = availability.validate_proposed_time(
            start, rules, self.occupied(start - LOOKBACK, end + LOOKBACK, exclude_id), datetime.utcnow(), duration
        )
        if reason:
            logger.warning(f"⚠️ Rejected appointment time {start.isoformat()}: {reason}")
            raise HTTPException(status_code=400, detail=reason)

    # ------------------------------------------------------------------ lookups

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def list_appointments(
        self,
        page: int = 1,
        limit: int = 20,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> tuple[list[Appointment], int]:
        return self.repo.list_appointments(
            self.db,
            page=page,
            limit=limit,
            client_id=client_id,
            status=status,
            type=type,
            date_from=date_from,
            date_to=date_to,
        )

    def stats(self) -> dict:
        by_status = self.repo.count_by(self.db, Appointment.status)
        by_type = self.repo.count_by(self.db, Appointment.type)
        by_outcome = self.repo.count_by(self.db, Appointment.outcome)
        return {
            "total": sum(by_status.values()),
            "byStatus": {s.value: by_status.get(s.value, 0) for s in AppointmentStatus},
            "byType": {t.value: by_type.get(t.value, 0) for t in AppointmentType},
            "byOutcome": {o.value: by_outcome.get(o.value, 0) for o in AppointmentOutcome},
        }

    # ----------------------------------------------------------- transitions

    def _transition(self, appointment: Appointment, target: AppointmentStatus) -> None:
        try:
            appointment.status = ensure_transition(appointment.status, target).value
        except InvalidTransitionError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def create_draft(self, data: AppointmentCreate, admin: AdminUser) -> Appointment:
        client = self.db.query(Client).filter(Client.id == data.clientId).first()
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")

        settings = self.get_settings()
        if settings.active_types and data.type.value not in settings.active_types:
            raise HTTPException(status_code=400, detail=f"{data.type.value} appointments are not currently offered")

        appointment = self.repo.create(
            self.db,
            client_id=client.id,
            type=data.type.value,
            status=AppointmentStatus.DRAFT.value,
            duration=data.duration,
            admin_notes=data.adminNotes,
            teams_link=data.teamsLink,
            proposal_id=data.proposalId,
            envelope_id=data.envelopeId,
            invoice_id=data.invoiceId,
            created_by=admin.id,
        )
        logger.info(f"📝 Draft {appointment.type} appointment {appointment.id} created for client {client.id}")
        return appointment

    async def send_invite(self, appointment_id: int, data: SendInviteRequest, admin: AdminUser) -> tuple[Appointment, str]:
        appointment = self.get(appointment_id)
        self._transition(appointment, AppointmentStatus.INVITE_SENT)

        appointment.invite_token = secrets.token_urlsafe(24)
        appointment.invite_token_expires_at = datetime.utcnow() + timedelta(days=data.expiresInDays)
        appointment.invite_token_used_at = None
        self.repo.add_audit(
            self.db,
            appointment,
            "INVITE",
            admin.email,
            {"expiresAt": appointment.invite_token_expires_at.isoformat()},
        )
        self.db.commit()
        self.db.refresh(appointment)

        url = booking_url(appointment.invite_token)
        logger.info(f"📧 Invitation issued for appointment {appointment.id}")
        await notify_invited(appointment, url)
        return appointment, url

    async def create_invitation(self, data: InvitationCreate, admin: AdminUser) -> tuple[Appointment, str]:
        appointment = self.create_draft(data, admin)
        return await self.send_invite(appointment.id, SendInviteRequest(expiresInDays=data.expiresInDays), admin)

    async def reschedule(self, appointment_id: int, data: RescheduleRequest, admin: AdminUser) -> Appointment:
        appointment = self.get(appointment_id)
        if appointment.status != AppointmentStatus.BOOKED.value:
            raise HTTPException(
                status_code=400, detail=f"Cannot reschedule appointment with status {appointment.status}"
            )
        self._check_bookable(data.scheduledAt, appointment.duration, exclude_id=appointment.id)

        previous = appointment.scheduled_at
        self._transition(appointment, AppointmentStatus.BOOKED)
        appointment.scheduled_at = data.scheduledAt
        appointment.reminder_24h_sent = False
        appointment.reminder_1h_sent = False
        self.repo.add_audit(
            self.db,
            appointment,
            "RESCHEDULE",
            admin.email,
            {
                "oldScheduledAt": previous.isoformat() if previous else None,
                "newScheduledAt": data.scheduledAt.isoformat(),
                "reason": data.reason,
            },
        )
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"🔄 Appointment {appointment.id} rescheduled to {data.scheduledAt.isoformat()}")

        await notify_booked(self.db, appointment)
        return appointment

    def complete(self, appointment_id: int, data: CompleteRequest, admin: AdminUser) -> Appointment:
        appointment = self.get(appointment_id)
        self._transition(appointment, AppointmentStatus.COMPLETED)
        appointment.outcome = data.outcome.value
        appointment.call_summary = data.callSummary
        if data.recordingUrl:
            appointment.recording_url = data.recordingUrl
        self.repo.add_audit(
            self.db, appointment, "COMPLETE", admin.email, {"outcome": data.outcome.value}
        )
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} completed ({appointment.outcome})")
        return appointment

    def no_show(self, appointment_id: int, data: NoShowRequest, admin: AdminUser) -> Appointment:
        appointment = self.get(appointment_id)
        self._transition(appointment, AppointmentStatus.NO_SHOW)
        appointment.no_show_reason = data.reason
        self.repo.add_audit(self.db, appointment, "NO_SHOW", admin.email, {"reason": data.reason})
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"⚠️ Appointment {appointment.id} marked as no-show")
        return appointment

    async def cancel(self, appointment_id: int, data: CancelRequest, admin: AdminUser) -> Appointment:
        appointment = self.get(appointment_id)
        self._transition(appointment, AppointmentStatus.CANCELLED)
        note = f"Cancellation reason: {data.reason}"
        appointment.admin_notes = f"{appointment.admin_notes}\n\n{note}" if appointment.admin_notes else note
        self.repo.add_audit(self.db, appointment, "CANCEL", admin.email, {"reason": data.reason})
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"❌ Appointment {appointment.id} cancelled")

        await notify_cancelled(self.db, appointment, data.reason)
        return appointment

    # ------------------------------------------------------------ public flow

    def get_by_invite(self, token: str) -> Appointment:
        """Resolve an invite token that can still be used to book"""
        appointment = self.repo.get_by_invite_token(self.db, token)
        if not appointment:
            raise HTTPException(status_code=404, detail="Invalid appointment link")

        if appointment.invite_token_used_at:
            raise HTTPException(
                status_code=410,
                detail={
                    "message": "This invitation has already been used",
                    "data": {"appointmentId": appointment.id, "scheduledAt": appointment.scheduled_at},
                },
            )

        expired = appointment.status == AppointmentStatus.EXPIRED.value or (
            appointment.invite_token_expires_at and appointment.invite_token_expires_at < datetime.utcnow()
        )
        if expired:
            if appointment.status == AppointmentStatus.INVITE_SENT.value:
                self._transition(appointment, AppointmentStatus.EXPIRED)
                self.repo.add_audit(self.db, appointment, "EXPIRE", "system", {})
                self.db.commit()
                logger.info(f"⚠️ Invitation for appointment {appointment.id} expired")
            raise HTTPException(
                status_code=410,
                detail="Appointment invitation has expired. Please contact the studio to schedule.",
            )

        if appointment.status != AppointmentStatus.INVITE_SENT.value:
            raise HTTPException(status_code=410, detail="This invitation is no longer valid")

        return appointment

    def invite_info(self, token: str) -> dict:
        appointment = self.get_by_invite(token)
        rules = self.rules()
        now = datetime.utcnow()
        first, last = availability.booking_window(rules, now)
        days = availability.available_slots(
            first, last, rules, self._occupied_for_days(first, last), now, appointment.duration
        )
        available_dates = sorted(days)
        first_day_times = self.times_for_day(available_dates[0], appointment.duration) if available_dates else []
        return {
            "appointmentId": appointment.id,
            "type": appointment.type,
            "clientName": appointment.client.name if appointment.client else None,
            "status": appointment.status,
            "duration": appointment.duration,
            "expiresAt": appointment.invite_token_expires_at,
            "availableDates": [d.isoformat() for d in available_dates],
            "availableTimes": first_day_times,
        }

    def invite_times(self, token: str, day: date) -> list[dict]:
        appointment = self.get_by_invite(token)
        return self.times_for_day(day, appointment.duration)

    async def book_from_invite(self, token: str, data: PublicBookingRequest) -> Appointment:
        appointment = self.get_by_invite(token)
        self._check_bookable(data.startTime, appointment.duration, exclude_id=appointment.id)

        self._transition(appointment, AppointmentStatus.BOOKED)
        appointment.scheduled_at = data.startTime
        appointment.client_notes = data.notes
        appointment.recording_consent_given = data.recordingConsentGiven
        appointment.invite_token_used_at = datetime.utcnow()
        self.repo.add_audit(
            self.db,
            appointment,
            "BOOK",
            "client",
            {"clientName": data.name, "clientEmail": data.email, "scheduledAt": data.startTime.isoformat()},
        )
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"📅 Appointment {appointment.id} booked for {data.startTime.isoformat()}")

        await notify_booked(self.db, appointment)
        return appointment

    # ------------------------------------------------------------ blocked times

    def list_blocked(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[BlockedTime]:
        return self.repo.list_blocked(self.db, start, end)

    def create_blocked(self, data: BlockedTimeCreate, admin: AdminUser) -> BlockedTime:
        blocked = self.repo.create_blocked(
            self.db, start_at=data.startAt, end_at=data.endAt, reason=data.reason, created_by=admin.id
        )
        logger.info(f"📝 Blocked time {blocked.start_at.isoformat()} - {blocked.end_at.isoformat()} added")
        return blocked

    def delete_blocked(self, blocked_id: int) -> None:
        blocked = self.repo.get_blocked(self.db, blocked_id)
        if not blocked:
            raise HTTPException(status_code=404, detail="Blocked time not found")
        self.repo.delete_blocked(self.db, blocked)

    # ------------------------------------------------------------------ export

    def export_csv(self, **filters) -> StreamingResponse:
        appointments = self.repo.all_filtered(self.db, **filters)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            ["ID", "Client", "Email", "Type", "Status", "Scheduled At", "Duration", "Outcome", "Call Summary", "Created At"]
        )
        for appt in appointments:
            writer.writerow(
                [
                    appt.id,
                    appt.client.name if appt.client else "",
                    appt.client.email if appt.client else "",
                    appt.type,
                    appt.status,
                    appt.scheduled_at.strftime("%Y-%m-%d %H:%M") if appt.scheduled_at else "",
                    appt.duration,
                    appt.outcome or "",
                    appt.call_summary or "",
                    appt.created_at.strftime("%Y-%m-%d %H:%M:%S") if appt.created_at else "",
                ]
            )

        output.seek(0)
        filename = f"appointments_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"✅ CSV export successful: {filename} ({len(appointments)} appointments)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}", "Cache-Control": "no-cache"},
        )
