"""Inquiry domain schemas - Pydantic models for validation"""

import enum
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import InquiryStatus
from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import validate_and_sanitize_input


class InquiryType(str, enum.Enum):
    WEDDING = "WEDDING"
    PORTRAIT = "PORTRAIT"
    COMMERCIAL = "COMMERCIAL"
    EVENT = "EVENT"
    FAMILY = "FAMILY"
    PRODUCT = "PRODUCT"
    REAL_ESTATE = "REAL_ESTATE"
    HEADSHOT = "HEADSHOT"
    OTHER = "OTHER"


class InquiryCreate(BaseModel):
    """Public enquiry form submission"""

    fullName: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    inquiryType: InquiryType
    shootDate: Optional[date] = None
    shootDescription: str
    location: Optional[str] = None
    specialRequirements: Optional[str] = None
    budgetMin: Optional[float] = None
    budgetMax: Optional[float] = None
    source: Optional[str] = None

    @field_validator("fullName")
    @classmethod
    def validate_name(cls, v):
        v = validate_and_sanitize_input(v, max_length=255)
        if not v or len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("shootDescription")
    @classmethod
    def validate_description(cls, v):
        v = validate_and_sanitize_input(v)
        if not v or len(v) < 10:
            raise ValueError("Shoot description must be at least 10 characters")
        return v

    @field_validator("company", "location", "specialRequirements", "source")
    @classmethod
    def sanitize_text(cls, v):
        return validate_and_sanitize_input(v)

    @field_validator("budgetMin", "budgetMax")
    @classmethod
    def validate_budget(cls, v):
        if v is not None and v < 0:
            raise ValueError("Budget cannot be negative")
        return v

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.budgetMin is not None and self.budgetMax is not None and self.budgetMin > self.budgetMax:
            raise ValueError("Minimum budget cannot exceed maximum budget")
        return self


class InquiryUpdate(BaseModel):
    internalNotes: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[InquiryStatus] = None


class InquiryStatusUpdate(BaseModel):
    status: InquiryStatus


class InquiryResponse(BaseModel):
    id: int
    fullName: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    inquiryType: str
    status: str
    shootDate: Optional[date] = None
    shootDescription: str
    location: Optional[str] = None
    specialRequirements: Optional[str] = None
    budgetMin: Optional[float] = None
    budgetMax: Optional[float] = None
    source: Optional[str] = None
    internalNotes: Optional[str] = None
    tags: list[str] = []
    clientId: Optional[int] = None
    contactedAt: Optional[datetime] = None
    qualifiedAt: Optional[datetime] = None
    convertedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True
