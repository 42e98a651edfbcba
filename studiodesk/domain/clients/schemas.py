"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import ClientStatus
from ...shared.validators import validate_email, validate_phone

ContactMethod = Literal["email", "phone", "both"]
ClientType = Literal["individual", "business", "organization"]


def _clean_tags(tags: Optional[list[str]]) -> Optional[list[str]]:
    if tags is None:
        return tags
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: str = "US"
    source: Optional[str] = None
    preferredContactMethod: Optional[ContactMethod] = None
    clientType: ClientType = "individual"
    notes: Optional[str] = None
    tags: list[str] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("country")
    @classmethod
    def validate_country(cls, v):
        if len(v) != 2:
            raise ValueError("Country must be a 2-letter code")
        return v.upper()

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    status: Optional[ClientStatus] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    source: Optional[str] = None
    preferredContactMethod: Optional[ContactMethod] = None
    clientType: Optional[ClientType] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class ClientStatusUpdate(BaseModel):
    status: ClientStatus


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: int
    publicId: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    status: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    source: Optional[str] = None
    preferredContactMethod: Optional[str] = None
    clientType: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True
