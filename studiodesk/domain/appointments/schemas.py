"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models_appointments import AppointmentOutcome, AppointmentType
from ...shared.validators import to_naive_utc, validate_email


class AppointmentCreate(BaseModel):
    """Schema for creating a draft appointment"""

    clientId: int
    type: AppointmentType
    duration: int = 60
    adminNotes: Optional[str] = None
    teamsLink: Optional[str] = None
    proposalId: Optional[int] = None
    envelopeId: Optional[int] = None
    invoiceId: Optional[int] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v < 15 or v > 240:
            raise ValueError("Duration must be between 15 and 240 minutes")
        return v


class InvitationCreate(AppointmentCreate):
    """Draft and invite in one step"""

    expiresInDays: int = 3

    @field_validator("expiresInDays")
    @classmethod
    def validate_expiry(cls, v):
        if v < 1 or v > 30:
            raise ValueError("Invitation expiry must be between 1 and 30 days")
        return v


class SendInviteRequest(BaseModel):
    expiresInDays: int = 3

    @field_validator("expiresInDays")
    @classmethod
    def validate_expiry(cls, v):
        if v < 1 or v > 30:
            raise ValueError("Invitation expiry must be between 1 and 30 days")
        return v


class RescheduleRequest(BaseModel):
    scheduledAt: datetime
    reason: Optional[str] = None

    @field_validator("scheduledAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)


class CompleteRequest(BaseModel):
    outcome: AppointmentOutcome
    callSummary: str
    recordingUrl: Optional[str] = None

    @field_validator("callSummary")
    @classmethod
    def validate_summary(cls, v):
        if not v or not v.strip():
            raise ValueError("Call summary is required")
        return v.strip()


class NoShowRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        if not v or not v.strip():
            raise ValueError("Reason is required")
        return v.strip()


class CancelRequest(NoShowRequest):
    pass


class BlockedTimeCreate(BaseModel):
    startAt: datetime
    endAt: datetime
    reason: Optional[str] = None

    @field_validator("startAt", "endAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.endAt <= self.startAt:
            raise ValueError("End time must be after start time")
        return self


class SettingsUpdate(BaseModel):
    workdayStart: Optional[int] = None
    workdayEnd: Optional[int] = None
    slotMinutes: Optional[int] = None
    bufferMinutes: Optional[int] = None
    bookingWindowDays: Optional[int] = None
    activeTypes: Optional[list[AppointmentType]] = None
    timezone: Optional[str] = None

    @field_validator("workdayStart")
    @classmethod
    def validate_start(cls, v):
        if v is not None and not 0 <= v <= 23:
            raise ValueError("workdayStart must be between 0 and 23")
        return v

    @field_validator("workdayEnd")
    @classmethod
    def validate_end(cls, v):
        if v is not None and not 1 <= v <= 24:
            raise ValueError("workdayEnd must be between 1 and 24")
        return v

    @field_validator("slotMinutes", "bookingWindowDays")
    @classmethod
    def validate_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Must be greater than zero")
        return v

    @field_validator("bufferMinutes")
    @classmethod
    def validate_buffer(cls, v):
        if v is not None and v < 0:
            raise ValueError("bufferMinutes cannot be negative")
        return v


class PublicBookingRequest(BaseModel):
    """Client picks a slot from the booking page"""

    startTime: datetime
    name: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    recordingConsentGiven: bool = False

    @field_validator("startTime")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class AppointmentResponse(BaseModel):
    id: int
    clientId: int
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    type: str
    status: str
    scheduledAt: Optional[datetime] = None
    duration: int
    teamsLink: Optional[str] = None
    recordingUrl: Optional[str] = None
    recordingConsentGiven: bool = False
    adminNotes: Optional[str] = None
    clientNotes: Optional[str] = None
    outcome: Optional[str] = None
    callSummary: Optional[str] = None
    noShowReason: Optional[str] = None
    inviteExpiresAt: Optional[datetime] = None
    proposalId: Optional[int] = None
    envelopeId: Optional[int] = None
    invoiceId: Optional[int] = None
    calendarEventIds: Optional[dict] = None
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True
