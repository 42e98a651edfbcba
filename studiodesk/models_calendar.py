"""
Calendar integration models (Google / Outlook)
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class CalendarCredential(Base):
    __tablename__ = "calendar_credentials"
    __table_args__ = (UniqueConstraint("admin_id", "provider", name="uq_calendar_admin_provider"),)

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)  # google, outlook

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=False)
    scopes = Column(JSON, default=list)

    provider_account_id = Column(String(255), nullable=True)
    provider_email = Column(String(255), nullable=True)
    calendar_id = Column(String(500), nullable=True)

    # Settings
    sync_enabled = Column(Boolean, default=True, nullable=False)
    auto_sync = Column(Boolean, default=True, nullable=False)
    last_synced_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    admin = relationship("AdminUser")
