"""Template domain schemas - Pydantic models for proposal templates, contract templates and clauses"""

import re
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models_templates import ContractDocumentType, ShootEventType
from ...utils.sanitization import sanitize_html, validate_and_sanitize_input
from ..billing.schemas import LineItem

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _required_text(v: Optional[str], label: str) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{label} is required")
    return v


class TemplateItem(LineItem):
    position: Optional[int] = None


# ---------------------------------------------------------------- proposal templates


class ProposalTemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    title: Optional[str] = None
    defaultTerms: Optional[str] = None
    items: list[TemplateItem] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, "Template name")


class ProposalTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    title: Optional[str] = None
    defaultTerms: Optional[str] = None
    isActive: Optional[bool] = None
    items: Optional[list[TemplateItem]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, "Template name")


class TemplateDuplicate(BaseModel):
    name: Optional[str] = None


# ---------------------------------------------------------------- contract templates


class ContractTemplateFields(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, "Template name")

    @field_validator("bodyHtml", check_fields=False)
    @classmethod
    def clean_body(cls, v):
        return sanitize_html(v)

    @field_validator("variablesSchema", check_fields=False)
    @classmethod
    def validate_variables(cls, v):
        if v is None:
            return v
        for key in v:
            if not re.fullmatch(r"[a-zA-Z0-9_.]+", key):
                raise ValueError(f"Invalid variable name: {key}")
        return v


class ContractTemplateCreate(ContractTemplateFields):
    name: str
    description: Optional[str] = None
    type: Optional[ContractDocumentType] = None
    eventType: Optional[ShootEventType] = None
    bodyHtml: Optional[str] = None
    variablesSchema: dict[str, Any] = {}
    mandatoryClauseIds: list[int] = []
    isActive: bool = True


class ContractTemplateUpdate(ContractTemplateFields):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[ContractDocumentType] = None
    eventType: Optional[ShootEventType] = None
    bodyHtml: Optional[str] = None
    variablesSchema: Optional[dict[str, Any]] = None
    mandatoryClauseIds: Optional[list[int]] = None
    isActive: Optional[bool] = None


class ContractRenderRequest(BaseModel):
    clientId: Optional[int] = None
    variables: dict[str, Any] = {}


# ---------------------------------------------------------------- clauses


class ClauseFields(BaseModel):
    @field_validator("slug", check_fields=False)
    @classmethod
    def validate_slug(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if not SLUG_PATTERN.match(v):
            raise ValueError("Slug may only contain lowercase letters, digits and single hyphens")
        return v

    @field_validator("title", check_fields=False)
    @classmethod
    def validate_title(cls, v):
        return validate_and_sanitize_input(_required_text(v, "Title"), max_length=255)

    @field_validator("bodyHtml", check_fields=False)
    @classmethod
    def clean_body(cls, v):
        v = sanitize_html(v)
        if v is not None and not v.strip():
            raise ValueError("Clause text is required")
        return v

    @field_validator("tags", check_fields=False)
    @classmethod
    def normalise_tags(cls, v):
        if v is None:
            return v
        return sorted({t.strip().lower() for t in v if t and t.strip()})


class ClauseCreate(ClauseFields):
    slug: str
    title: str
    bodyHtml: str
    tags: list[str] = []
    mandatory: bool = False
    isActive: bool = True


class ClauseUpdate(ClauseFields):
    slug: Optional[str] = None
    title: Optional[str] = None
    bodyHtml: Optional[str] = None
    tags: Optional[list[str]] = None
    mandatory: Optional[bool] = None
    isActive: Optional[bool] = None
