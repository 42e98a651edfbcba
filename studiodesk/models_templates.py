"""
Reusable content: proposal templates, contract templates and clauses
"""
import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class ContractDocumentType(str, enum.Enum):
    SERVICE_AGREEMENT = "SERVICE_AGREEMENT"
    BOOKING_CONTRACT = "BOOKING_CONTRACT"
    LICENSE_AGREEMENT = "LICENSE_AGREEMENT"
    MODEL_RELEASE_ADULT = "MODEL_RELEASE_ADULT"
    NDA = "NDA"
    SUBCONTRACTOR_AGREEMENT = "SUBCONTRACTOR_AGREEMENT"
    PRIVACY_CONSENT = "PRIVACY_CONSENT"


class ShootEventType(str, enum.Enum):
    WEDDING = "WEDDING"
    BRAND_EDITORIAL = "BRAND_EDITORIAL"
    EVENT = "EVENT"
    PORTRAIT = "PORTRAIT"
    COMMERCIAL = "COMMERCIAL"


class ProposalTemplate(Base):
    __tablename__ = "proposal_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    title = Column(String(255), nullable=True)  # default proposal title
    default_terms = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    items = relationship(
        "ProposalTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ProposalTemplateItem.position",
    )


class ProposalTemplateItem(Base):
    __tablename__ = "proposal_template_items"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("proposal_templates.id"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    quantity = Column(Float, default=1, nullable=False)
    unit_price = Column(Float, default=0, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    template = relationship("ProposalTemplate", back_populates="items")


class ContractTemplate(Base):
    __tablename__ = "contract_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=True)
    event_type = Column(String(50), nullable=True)
    body_html = Column(Text, nullable=True)
    variables_schema = Column(JSON, default=dict)  # {"client.name": {"label": ..., "required": true}}
    mandatory_clause_ids = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    version = Column(Integer, default=1, nullable=False)

    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Clause(Base):
    """A reusable block of contract text"""

    __tablename__ = "clauses"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body_html = Column(Text, nullable=False)
    tags = Column(JSON, default=list)
    mandatory = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
