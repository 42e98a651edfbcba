"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models_appointments import (
    Appointment,
    AppointmentAuditLog,
    AppointmentSettings,
    AppointmentStatus,
    BlockedTime,
)

# Statuses that no longer hold a place in the calendar
RELEASED_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.EXPIRED.value)


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_settings(db: Session) -> AppointmentSettings:
        """Get the settings row, creating it with defaults on first use"""
        settings = db.query(AppointmentSettings).order_by(AppointmentSettings.id).first()
        if not settings:
            settings = AppointmentSettings()
            db.add(settings)
            db.commit()
            db.refresh(settings)
        return settings

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.client))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_by_invite_token(db: Session, token: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.client))
            .filter(Appointment.invite_token == token)
            .first()
        )

    @staticmethod
    def create(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def _filtered(
        db: Session,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ):
        query = db.query(Appointment)
        if client_id:
            query = query.filter(Appointment.client_id == client_id)
        if status:
            query = query.filter(Appointment.status == status)
        if type:
            query = query.filter(Appointment.type == type)
        if date_from:
            query = query.filter(Appointment.scheduled_at >= date_from)
        if date_to:
            query = query.filter(Appointment.scheduled_at <= date_to)
        return query

    @staticmethod
    def list_appointments(db: Session, page: int = 1, limit: int = 20, **filters) -> tuple[list[Appointment], int]:
        """Newest scheduled first; unscheduled drafts and invites after them"""
        query = AppointmentRepository._filtered(db, **filters)
        total = query.count()
        items = (
            query.options(joinedload(Appointment.client))
            .order_by(
                Appointment.scheduled_at.is_(None),
                Appointment.scheduled_at.desc(),
                Appointment.created_at.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def all_filtered(db: Session, **filters) -> list[Appointment]:
        return (
            AppointmentRepository._filtered(db, **filters)
            .options(joinedload(Appointment.client))
            .order_by(Appointment.scheduled_at.desc())
            .all()
        )

    @staticmethod
    def occupied_between(
        db: Session, start: datetime, end: datetime, exclude_id: Optional[int] = None
    ) -> list[Appointment]:
        """Live appointments scheduled in [start, end)"""
        query = db.query(Appointment).filter(
            Appointment.scheduled_at.isnot(None),
            Appointment.scheduled_at < end,
            Appointment.scheduled_at >= start,
            Appointment.status.notin_(RELEASED_STATUSES),
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.all()

    @staticmethod
    def count_by(db: Session, column) -> dict[str, int]:
        rows = db.query(column, func.count(Appointment.id)).group_by(column).all()
        return {key: count for key, count in rows if key is not None}

    @staticmethod
    def add_audit(
        db: Session, appointment: Appointment, action: str, actor: Optional[str], details: Optional[dict] = None
    ) -> AppointmentAuditLog:
        entry = AppointmentAuditLog(
            appointment_id=appointment.id, action=action, actor=actor, details=details or {}
        )
        db.add(entry)
        return entry

    # ---------------------------------------------------------------- blocked times

    @staticmethod
    def blocked_between(db: Session, start: datetime, end: datetime) -> list[BlockedTime]:
        """Blocked ranges intersecting [start, end)"""
        return (
            db.query(BlockedTime)
            .filter(BlockedTime.start_at < end, BlockedTime.end_at > start)
            .order_by(BlockedTime.start_at)
            .all()
        )

    @staticmethod
    def list_blocked(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[BlockedTime]:
        query = db.query(BlockedTime)
        if start:
            query = query.filter(BlockedTime.end_at > start)
        if end:
            query = query.filter(BlockedTime.start_at < end)
        return query.order_by(BlockedTime.start_at).all()

    @staticmethod
    def get_blocked(db: Session, blocked_id: int) -> Optional[BlockedTime]:
        return db.query(BlockedTime).filter(BlockedTime.id == blocked_id).first()

    @staticmethod
    def create_blocked(db: Session, **data) -> BlockedTime:
        blocked = BlockedTime(**data)
        db.add(blocked)
        db.commit()
        db.refresh(blocked)
        return blocked

    @staticmethod
    def delete_blocked(db: Session, blocked: BlockedTime) -> None:
        db.delete(blocked)
        db.commit()
