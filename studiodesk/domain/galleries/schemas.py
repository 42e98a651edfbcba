"""Gallery domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import to_naive_utc


class AssetCreate(BaseModel):
    filename: str
    filepath: str
    mimeType: str
    size: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    category: Optional[str] = "photo"

    @field_validator("size")
    @classmethod
    def validate_size(cls, v):
        if v < 0:
            raise ValueError("Size cannot be negative")
        return v


class GalleryCreate(BaseModel):
    name: str
    description: Optional[str] = None
    password: Optional[str] = None
    expiresAt: Optional[datetime] = None
    clientId: Optional[int] = None
    assetIds: list[int] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Gallery name is required")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is not None and len(v) < 4:
            raise ValueError("Password must be at least 4 characters")
        return v

    @field_validator("expiresAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)


class GalleryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    expiresAt: Optional[datetime] = None
    isActive: Optional[bool] = None
    clientId: Optional[int] = None

    @field_validator("expiresAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)


class AssetIds(BaseModel):
    assetIds: list[int]

    @field_validator("assetIds")
    @classmethod
    def validate_ids(cls, v):
        if not v:
            raise ValueError("At least one asset id is required")
        return v


class PasswordUpdate(BaseModel):
    """A null password makes the gallery public"""

    password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is not None and len(v) < 4:
            raise ValueError("Password must be at least 4 characters")
        return v


class CoverUpdate(BaseModel):
    assetId: Optional[int] = None


class GalleryAccess(BaseModel):
    password: Optional[str] = None
