import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class ClientStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    ARCHIVED = "ARCHIVED"


class InquiryStatus(str, enum.Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    NEGOTIATING = "NEGOTIATING"
    CONVERTED = "CONVERTED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), default="ADMIN", nullable=False)  # ADMIN, STAFF
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    status = Column(String(20), default=ClientStatus.ACTIVE.value, nullable=False, index=True)

    # Address
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(2), default="US", nullable=True)

    source = Column(String(100), nullable=True)  # referral, website, instagram, inquiry...
    preferred_contact_method = Column(String(10), nullable=True)  # email, phone, both
    client_type = Column(String(20), default="individual", nullable=True)  # individual, business, organization
    notes = Column(Text, nullable=True)
    tags = Column(JSON, default=list)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    audit_logs = relationship(
        "ClientAuditLog", back_populates="client", cascade="all, delete-orphan"
    )
    inquiries = relationship("Inquiry", back_populates="client")


class ClientAuditLog(Base):
    __tablename__ = "client_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)  # CREATE, UPDATE, STATUS_CHANGE, ARCHIVE
    admin_id = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="audit_logs")


class Inquiry(Base):
    __tablename__ = "inquiries"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    inquiry_type = Column(String(30), nullable=False)
    status = Column(String(20), default=InquiryStatus.NEW.value, nullable=False, index=True)

    shoot_date = Column(Date, nullable=True)
    shoot_description = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    special_requirements = Column(Text, nullable=True)
    budget_min = Column(Float, nullable=True)
    budget_max = Column(Float, nullable=True)
    source = Column(String(100), nullable=True)

    internal_notes = Column(Text, nullable=True)
    tags = Column(JSON, default=list)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    contacted_at = Column(DateTime, nullable=True)
    qualified_at = Column(DateTime, nullable=True)
    converted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="inquiries")


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(255), nullable=False)
    filepath = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, default=0, nullable=False)  # bytes
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    category = Column(String(50), nullable=True)  # photo, video, raw
    created_at = Column(DateTime, server_default=func.now())


class Gallery(Base):
    __tablename__ = "galleries"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    password_hash = Column(String(255), nullable=True)  # bcrypt; NULL means public
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    cover_asset_id = Column(Integer, ForeignKey("assets.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    cover_asset = relationship("Asset")
    items = relationship(
        "GalleryAsset",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="GalleryAsset.position",
    )


class GalleryAsset(Base):
    __tablename__ = "gallery_assets"
    __table_args__ = (UniqueConstraint("gallery_id", "asset_id", name="uq_gallery_asset"),)

    id = Column(Integer, primary_key=True, index=True)
    gallery_id = Column(Integer, ForeignKey("galleries.id"), nullable=False, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    gallery = relationship("Gallery", back_populates="items")
    asset = relationship("Asset")
