"""Envelope domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models_envelopes import SigningWorkflow
from ...shared.validators import to_naive_utc, validate_email
from ...utils.sanitization import validate_and_sanitize_input


class EnvelopeCreate(BaseModel):
    name: str
    description: Optional[str] = None
    signingWorkflow: SigningWorkflow = SigningWorkflow.SEQUENTIAL
    clientId: Optional[int] = None
    expiresAt: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Envelope name is required")
        return v.strip()

    @field_validator("expiresAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)


class EnvelopeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    signingWorkflow: Optional[SigningWorkflow] = None
    clientId: Optional[int] = None
    expiresAt: Optional[datetime] = None

    @field_validator("expiresAt")
    @classmethod
    def normalise(cls, v):
        return to_naive_utc(v)


class DocumentCreate(BaseModel):
    name: str
    fileName: str
    filePath: str
    fileHash: Optional[str] = None
    fileSize: Optional[int] = None

    @field_validator("fileHash")
    @classmethod
    def validate_hash(cls, v):
        if v and len(v) != 64:
            raise ValueError("fileHash must be a SHA-256 hex digest")
        return v.lower() if v else v


class SignerCreate(BaseModel):
    name: str
    email: str
    role: str = "signer"
    sequenceNumber: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("sequenceNumber")
    @classmethod
    def validate_sequence(cls, v):
        if v is not None and v < 1:
            raise ValueError("sequenceNumber must be 1 or greater")
        return v


# ============================================
# Public signing flow
# ============================================


class OtpRequest(BaseModel):
    token: str
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class OtpVerify(BaseModel):
    token: str
    otp: str

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v):
        v = v.strip()
        if not v.isdigit() or len(v) != 6:
            raise ValueError("Verification code must be 6 digits")
        return v


class SessionRequest(BaseModel):
    sessionId: str


class SignRequest(BaseModel):
    sessionId: str
    signatureDataUrl: str
    signerName: str
    signerEmail: str
    agreedToTerms: bool
    initials: Optional[str] = None
    documentId: Optional[int] = None
    page: Optional[int] = None
    x: Optional[int] = None
    y: Optional[int] = None

    @field_validator("signatureDataUrl")
    @classmethod
    def validate_signature(cls, v):
        if not v.startswith("data:image"):
            raise ValueError("Signature must be an image data URL")
        return v

    @field_validator("signerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("agreedToTerms")
    @classmethod
    def validate_terms(cls, v):
        if not v:
            raise ValueError("You must agree to the terms to sign")
        return v

    @field_validator("initials")
    @classmethod
    def validate_initials(cls, v):
        if v and len(v) > 10:
            raise ValueError("Initials must be 10 characters or fewer")
        return v


class DeclineRequest(BaseModel):
    sessionId: str
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = validate_and_sanitize_input(v, max_length=1000)
        if not v:
            raise ValueError("Please give a reason for declining")
        return v
