"""
Contract envelope and e-signature models
"""
import enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class EnvelopeStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SigningWorkflow(str, enum.Enum):
    SEQUENTIAL = "SEQUENTIAL"
    PARALLEL = "PARALLEL"


class SignerStatus(str, enum.Enum):
    PENDING = "PENDING"
    VIEWED = "VIEWED"
    SIGNED = "SIGNED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class Envelope(Base):
    __tablename__ = "envelopes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default=EnvelopeStatus.DRAFT.value, nullable=False, index=True)
    signing_workflow = Column(String(20), default=SigningWorkflow.SEQUENTIAL.value, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    signers = relationship(
        "Signer",
        back_populates="envelope",
        cascade="all, delete-orphan",
        order_by="Signer.sequence_number",
    )
    documents = relationship(
        "EnvelopeDocument", back_populates="envelope", cascade="all, delete-orphan"
    )
    audit_logs = relationship(
        "EnvelopeAuditLog",
        back_populates="envelope",
        cascade="all, delete-orphan",
        order_by="EnvelopeAuditLog.id",
    )


class EnvelopeDocument(Base):
    __tablename__ = "envelope_documents"

    id = Column(Integer, primary_key=True, index=True)
    envelope_id = Column(Integer, ForeignKey("envelopes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_hash = Column(String(64), nullable=True)  # sha256 hex
    file_size = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    envelope = relationship("Envelope", back_populates="documents")


class Signer(Base):
    __tablename__ = "signers"
    __table_args__ = (UniqueConstraint("envelope_id", "email", name="uq_signer_envelope_email"),)

    id = Column(Integer, primary_key=True, index=True)
    envelope_id = Column(Integer, ForeignKey("envelopes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(50), default="signer", nullable=False)  # signer, witness, approver
    sequence_number = Column(Integer, default=1, nullable=False)
    status = Column(String(20), default=SignerStatus.PENDING.value, nullable=False)

    # Magic link
    magic_link_token = Column(String(64), unique=True, index=True, nullable=True)
    magic_link_expires_at = Column(DateTime, nullable=True)

    # OTP (stored as sha256 of the code)
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    failed_attempts = Column(Integer, default=0, nullable=False)

    # Signing session
    session_id = Column(String(64), index=True, nullable=True)
    session_expires_at = Column(DateTime, nullable=True)

    viewed_at = Column(DateTime, nullable=True)
    signed_at = Column(DateTime, nullable=True)
    declined_at = Column(DateTime, nullable=True)
    declined_reason = Column(Text, nullable=True)
    signer_ip = Column(String(64), nullable=True)
    signer_user_agent = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    envelope = relationship("Envelope", back_populates="signers")
    signatures = relationship("Signature", back_populates="signer", cascade="all, delete-orphan")


class Signature(Base):
    __tablename__ = "signatures"

    id = Column(Integer, primary_key=True, index=True)
    signer_id = Column(Integer, ForeignKey("signers.id"), nullable=False, index=True)
    document_id = Column(Integer, ForeignKey("envelope_documents.id"), nullable=True)
    signature_data_url = Column(Text, nullable=False)
    initials = Column(String(10), nullable=True)
    signature_hash = Column(String(64), nullable=False)  # sha256 over data url + identity + timestamp
    page = Column(Integer, nullable=True)
    x = Column(Integer, nullable=True)
    y = Column(Integer, nullable=True)
    signed_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    signer = relationship("Signer", back_populates="signatures")


class EnvelopeAuditLog(Base):
    __tablename__ = "envelope_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    envelope_id = Column(Integer, ForeignKey("envelopes.id"), nullable=False, index=True)
    signer_id = Column(Integer, ForeignKey("signers.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(40), nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    envelope = relationship("Envelope", back_populates="audit_logs")
