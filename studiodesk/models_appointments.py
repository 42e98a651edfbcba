"""
Appointment scheduling models
"""
import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class AppointmentType(str, enum.Enum):
    INTRODUCTION = "Introduction"
    CREATIVE_DIRECTION = "CreativeDirection"
    CONTRACT_INVOICING = "ContractInvoicing"


class AppointmentStatus(str, enum.Enum):
    DRAFT = "Draft"
    INVITE_SENT = "InviteSent"
    BOOKED = "Booked"
    COMPLETED = "Completed"
    NO_SHOW = "NoShow"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class AppointmentOutcome(str, enum.Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    status = Column(String(20), default=AppointmentStatus.DRAFT.value, nullable=False, index=True)
    scheduled_at = Column(DateTime, nullable=True, index=True)  # UTC, naive
    duration = Column(Integer, default=60, nullable=False)  # minutes

    teams_link = Column(String(500), nullable=True)
    recording_url = Column(String(500), nullable=True)
    recording_consent_given = Column(Boolean, default=False, nullable=False)

    admin_notes = Column(Text, nullable=True)
    client_notes = Column(Text, nullable=True)
    outcome = Column(String(20), nullable=True)
    call_summary = Column(Text, nullable=True)
    no_show_reason = Column(Text, nullable=True)

    invite_token = Column(String(64), unique=True, index=True, nullable=True)
    invite_token_expires_at = Column(DateTime, nullable=True)
    invite_token_used_at = Column(DateTime, nullable=True)

    # Optional links to the deal this call belongs to
    proposal_id = Column(Integer, ForeignKey("proposals.id"), nullable=True)
    envelope_id = Column(Integer, ForeignKey("envelopes.id"), nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)

    reminder_24h_sent = Column(Boolean, default=False, nullable=False)
    reminder_1h_sent = Column(Boolean, default=False, nullable=False)

    # External calendar event ids keyed by provider, e.g. {"google": "abc"}
    calendar_event_ids = Column(JSON, default=dict)

    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    audit_logs = relationship(
        "AppointmentAuditLog",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentAuditLog.id",
    )


class AppointmentAuditLog(Base):
    __tablename__ = "appointment_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    action = Column(String(30), nullable=False)  # INVITE, BOOK, RESCHEDULE, COMPLETE, NO_SHOW, CANCEL, EXPIRE
    actor = Column(String(255), nullable=True)  # admin email or "client"
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="audit_logs")


class AppointmentSettings(Base):
    __tablename__ = "appointment_settings"

    id = Column(Integer, primary_key=True, index=True)
    workday_start = Column(Integer, default=11, nullable=False)  # hour, UTC
    workday_end = Column(Integer, default=16, nullable=False)  # hour, UTC
    slot_minutes = Column(Integer, default=60, nullable=False)
    buffer_minutes = Column(Integer, default=15, nullable=False)
    booking_window_days = Column(Integer, default=14, nullable=False)
    active_types = Column(JSON, default=lambda: [t.value for t in AppointmentType])
    timezone = Column(String(64), default="Europe/London", nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BlockedTime(Base):
    __tablename__ = "blocked_times"

    id = Column(Integer, primary_key=True, index=True)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    reason = Column(String(255), nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
