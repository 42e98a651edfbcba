"""Template services - reusable proposal line items, contract templates and clause library"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AdminUser, Client
from ...models_templates import Clause, ContractTemplate, ProposalTemplate, ProposalTemplateItem
from . import rendering
from .repository import TemplateRepository
from .schemas import (
    ClauseCreate,
    ClauseUpdate,
    ContractRenderRequest,
    ContractTemplateCreate,
    ContractTemplateUpdate,
    ProposalTemplateCreate,
    ProposalTemplateUpdate,
)

logger = logging.getLogger(__name__)


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def proposal_template_payload(template: ProposalTemplate) -> dict:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "title": template.title,
        "defaultTerms": template.default_terms,
        "isActive": template.is_active,
        "items": [
            {
                "id": item.id,
                "description": item.description,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "position": item.position,
            }
            for item in template.items
        ],
        "createdAt": template.created_at,
        "updatedAt": template.updated_at,
    }


def contract_template_payload(template: ContractTemplate, clauses: Optional[list[Clause]] = None) -> dict:
    payload = {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "type": template.type,
        "eventType": template.event_type,
        "bodyHtml": template.body_html,
        "variablesSchema": template.variables_schema or {},
        "mandatoryClauseIds": template.mandatory_clause_ids or [],
        "isActive": template.is_active,
        "isPublished": template.is_published,
        "version": template.version,
        "createdAt": template.created_at,
        "updatedAt": template.updated_at,
    }
    if clauses is not None:
        payload["clauses"] = [clause_payload(c) for c in clauses]
    return payload


def clause_payload(clause: Clause) -> dict:
    return {
        "id": clause.id,
        "slug": clause.slug,
        "title": clause.title,
        "bodyHtml": clause.body_html,
        "tags": clause.tags or [],
        "mandatory": clause.mandatory,
        "isActive": clause.is_active,
        "createdAt": clause.created_at,
        "updatedAt": clause.updated_at,
    }


class ProposalTemplateService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def get_template(self, template_id: int) -> ProposalTemplate:
        template = self.repo.get_proposal_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Proposal template not found")
        return template

    def get_active_template(self, template_id: int) -> ProposalTemplate:
        template = self.get_template(template_id)
        if not template.is_active:
            raise HTTPException(status_code=400, detail="Proposal template is inactive")
        return template

    def list_templates(self, include_inactive: bool = False) -> list[ProposalTemplate]:
        return self.repo.list_proposal_templates(self.db, include_inactive)

    @staticmethod
    def _items(items) -> list[ProposalTemplateItem]:
        return [
            ProposalTemplateItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unitPrice,
                position=item.position if item.position is not None else index,
            )
            for index, item in enumerate(items)
        ]

    def create_template(self, data: ProposalTemplateCreate, admin: AdminUser) -> ProposalTemplate:
        template = ProposalTemplate(
            name=data.name,
            description=data.description,
            title=data.title,
            default_terms=data.defaultTerms,
            is_active=True,
            created_by=admin.id,
            items=self._items(data.items),
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"✅ Proposal template '{template.name}' created")
        return template

    def update_template(self, template_id: int, data: ProposalTemplateUpdate) -> ProposalTemplate:
        template = self.get_template(template_id)
        if data.name is not None:
            template.name = data.name
        if data.description is not None:
            template.description = data.description
        if data.title is not None:
            template.title = data.title
        if data.defaultTerms is not None:
            template.default_terms = data.defaultTerms
        if data.isActive is not None:
            template.is_active = data.isActive
        if data.items is not None:
            template.items = self._items(data.items)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, template_id: int) -> None:
        template = self.get_template(template_id)
        template.is_active = False
        self.db.commit()
        logger.info(f"🗑️ Proposal template '{template.name}' deactivated")

    def duplicate_template(self, template_id: int, name: Optional[str], admin: AdminUser) -> ProposalTemplate:
        original = self.get_template(template_id)
        copy = ProposalTemplate(
            name=(name or "").strip() or f"{original.name} (Copy)",
            description=original.description,
            title=original.title,
            default_terms=original.default_terms,
            is_active=True,
            created_by=admin.id,
            items=[
                ProposalTemplateItem(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    position=item.position,
                )
                for item in original.items
            ],
        )
        self.db.add(copy)
        self.db.commit()
        self.db.refresh(copy)
        return copy

    def get_stats(self) -> dict:
        counts = self.repo.count_proposal_templates(self.db)
        active = counts.get(True, 0)
        inactive = counts.get(False, 0)
        return {"total": active + inactive, "active": active, "inactive": inactive}


class ClauseService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def get_clause(self, clause_id: int) -> Clause:
        clause = self.repo.get_clause(self.db, clause_id)
        if not clause:
            raise HTTPException(status_code=404, detail="Clause not found")
        return clause

    def get_by_slug(self, slug: str) -> Clause:
        clause = self.repo.get_clause_by_slug(self.db, slug.lower())
        if not clause:
            raise HTTPException(status_code=404, detail="Clause not found")
        return clause

    def list_clauses(
        self,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        mandatory: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> list[Clause]:
        return self.repo.list_clauses(self.db, search, tag, mandatory, is_active)

    def mandatory_clauses(self) -> list[Clause]:
        return self.repo.list_clauses(self.db, mandatory=True, is_active=True)

    def all_tags(self) -> list[str]:
        return self.repo.all_clause_tags(self.db)

    def _check_slug_free(self, slug: str) -> None:
        if self.repo.get_clause_by_slug(self.db, slug):
            raise HTTPException(status_code=409, detail=f'Clause with slug "{slug}" already exists')

    def create_clause(self, data: ClauseCreate) -> Clause:
        self._check_slug_free(data.slug)
        clause = Clause(
            slug=data.slug,
            title=data.title,
            body_html=data.bodyHtml,
            tags=data.tags,
            mandatory=data.mandatory,
            is_active=data.isActive,
        )
        self.db.add(clause)
        self.db.commit()
        self.db.refresh(clause)
        logger.info(f"✅ Clause '{clause.slug}' created")
        return clause

    def update_clause(self, clause_id: int, data: ClauseUpdate) -> Clause:
        clause = self.get_clause(clause_id)
        if clause.mandatory and data.mandatory is False:
            raise HTTPException(status_code=400, detail="Cannot change mandatory clause to optional")
        if data.slug is not None and data.slug != clause.slug:
            self._check_slug_free(data.slug)
            clause.slug = data.slug

        if data.title is not None:
            clause.title = data.title
        if data.bodyHtml is not None:
            clause.body_html = data.bodyHtml
        if data.tags is not None:
            clause.tags = data.tags
        if data.mandatory is not None:
            clause.mandatory = data.mandatory
        if data.isActive is not None:
            clause.is_active = data.isActive
        self.db.commit()
        self.db.refresh(clause)
        return clause

    def delete_clause(self, clause_id: int) -> Clause:
        clause = self.get_clause(clause_id)
        if clause.mandatory:
            raise HTTPException(status_code=400, detail="Cannot delete mandatory clause")
        clause.is_active = False
        self.db.commit()
        logger.info(f"🗑️ Clause '{clause.slug}' deactivated")
        return clause

    def get_stats(self) -> dict:
        clauses = self.repo.list_clauses(self.db)
        tags = self.all_tags()
        mandatory = sum(1 for c in clauses if c.mandatory)
        active = sum(1 for c in clauses if c.is_active)
        return {
            "total": len(clauses),
            "mandatory": mandatory,
            "optional": len(clauses) - mandatory,
            "active": active,
            "inactive": len(clauses) - active,
            "totalTags": len(tags),
            "tags": tags,
        }


class ContractTemplateService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def get_template(self, template_id: int) -> ContractTemplate:
        template = self.repo.get_contract_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Contract template not found")
        return template

    def template_clauses(self, template: ContractTemplate) -> list[Clause]:
        return self.repo.get_clauses(self.db, template.mandatory_clause_ids or [], active_only=True)

    def list_templates(
        self,
        search: Optional[str] = None,
        doc_type: Optional[str] = None,
        event_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_published: Optional[bool] = None,
    ) -> list[ContractTemplate]:
        return self.repo.list_contract_templates(self.db, search, doc_type, event_type, is_active, is_published)

    def published_templates(self) -> list[ContractTemplate]:
        return self.repo.list_contract_templates(self.db, is_active=True, is_published=True)

    def _check_name_free(self, name: str) -> None:
        if self.repo.get_contract_template_by_name(self.db, name):
            raise HTTPException(status_code=409, detail=f'Template with name "{name}" already exists')

    def _check_clauses(self, clause_ids: list[int]) -> None:
        unique_ids = set(clause_ids)
        if len(self.repo.get_clauses(self.db, list(unique_ids))) != len(unique_ids):
            raise HTTPException(status_code=400, detail="Some clause IDs are invalid")

    def create_template(self, data: ContractTemplateCreate, admin: AdminUser) -> ContractTemplate:
        self._check_name_free(data.name)
        self._check_clauses(data.mandatoryClauseIds)
        template = ContractTemplate(
            name=data.name,
            description=data.description,
            type=_enum_value(data.type),
            event_type=_enum_value(data.eventType),
            body_html=data.bodyHtml,
            variables_schema=data.variablesSchema,
            mandatory_clause_ids=list(dict.fromkeys(data.mandatoryClauseIds)),
            is_active=data.isActive,
            is_published=False,
            version=1,
            created_by=admin.id,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"✅ Contract template '{template.name}' created")
        return template

    def update_template(self, template_id: int, data: ContractTemplateUpdate) -> ContractTemplate:
        template = self.get_template(template_id)
        if template.is_published and data.bodyHtml is not None and data.bodyHtml != template.body_html:
            raise HTTPException(
                status_code=400,
                detail="Cannot modify published template content. Create a new version or unpublish first.",
            )
        if data.name is not None and data.name != template.name:
            self._check_name_free(data.name)
            template.name = data.name
        if data.mandatoryClauseIds is not None:
            self._check_clauses(data.mandatoryClauseIds)
            template.mandatory_clause_ids = list(dict.fromkeys(data.mandatoryClauseIds))

        if data.description is not None:
            template.description = data.description
        if data.type is not None:
            template.type = _enum_value(data.type)
        if data.eventType is not None:
            template.event_type = _enum_value(data.eventType)
        if data.bodyHtml is not None:
            template.body_html = data.bodyHtml
        if data.variablesSchema is not None:
            template.variables_schema = data.variablesSchema
        if data.isActive is not None:
            template.is_active = data.isActive
        self.db.commit()
        self.db.refresh(template)
        return template

    def publish_template(self, template_id: int) -> ContractTemplate:
        template = self.get_template(template_id)
        if template.is_published:
            raise HTTPException(status_code=400, detail="Template is already published")
        if not template.body_html or not template.body_html.strip():
            raise HTTPException(status_code=400, detail="Cannot publish template without body content")
        if not template.variables_schema:
            raise HTTPException(status_code=400, detail="Cannot publish template without variables schema")

        template.is_published = True
        template.is_active = True
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"📢 Contract template '{template.name}' v{template.version} published")
        return template

    def unpublish_template(self, template_id: int) -> ContractTemplate:
        template = self.get_template(template_id)
        if not template.is_published:
            raise HTTPException(status_code=400, detail="Template is not published")
        template.is_published = False
        self.db.commit()
        self.db.refresh(template)
        return template

    def create_version(self, template_id: int, admin: AdminUser) -> ContractTemplate:
        """Copy a template as an unpublished draft with the next version number"""
        original = self.get_template(template_id)
        version = original.version + 1
        name = f"{original.name} (v{version})"
        self._check_name_free(name)
        template = ContractTemplate(
            name=name,
            description=original.description,
            type=original.type,
            event_type=original.event_type,
            body_html=original.body_html,
            variables_schema=dict(original.variables_schema or {}),
            mandatory_clause_ids=list(original.mandatory_clause_ids or []),
            is_active=True,
            is_published=False,
            version=version,
            created_by=admin.id,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"✅ Contract template '{original.name}' copied as v{version}")
        return template

    def delete_template(self, template_id: int) -> ContractTemplate:
        template = self.get_template(template_id)
        template.is_active = False
        template.is_published = False
        self.db.commit()
        logger.info(f"🗑️ Contract template '{template.name}' deactivated")
        return template

    def get_stats(self) -> dict:
        by_type = self.repo.count_contract_templates_by(self.db, ContractTemplate.type)
        by_event = self.repo.count_contract_templates_by(self.db, ContractTemplate.event_type)
        published = self.repo.count_contract_templates_by(self.db, ContractTemplate.is_published)
        active = self.repo.count_contract_templates_by(self.db, ContractTemplate.is_active)
        total = sum(by_type.values())
        active_count = active.get(True, 0)
        return {
            "total": total,
            "published": published.get(True, 0),
            "active": active_count,
            "inactive": total - active_count,
            "byType": {k: v for k, v in by_type.items() if k},
            "byEventType": {k: v for k, v in by_event.items() if k},
        }

    # ------------------------------------------------------------- rendering

    def _context(self, data: ContractRenderRequest) -> dict:
        today = date.today()
        context: dict = {
            "date": {
                "today": today.isoformat(),
                "tomorrow": (today + timedelta(days=1)).isoformat(),
                "nextWeek": (today + timedelta(days=7)).isoformat(),
            }
        }
        if data.clientId is not None:
            client = self.db.query(Client).filter(Client.id == data.clientId).first()
            if not client:
                raise HTTPException(status_code=404, detail="Client not found")
            context["client"] = {
                "name": client.name,
                "email": client.email,
                "phone": client.phone,
                "company": client.company,
                "address": ", ".join(p for p in (client.address, client.city, client.zip_code) if p),
            }

        # Supplied values win; dotted keys ("client.name") address nested values
        for key, value in data.variables.items():
            target = context
            *parents, leaf = key.split(".")
            for part in parents:
                if not isinstance(target.get(part), dict):
                    target[part] = {}
                target = target[part]
            if isinstance(value, dict) and isinstance(target.get(leaf), dict):
                target[leaf] = {**target[leaf], **value}
            else:
                target[leaf] = value
        return context

    def render(self, template_id: int, data: ContractRenderRequest) -> dict:
        template = self.get_template(template_id)
        if not template.is_active:
            raise HTTPException(status_code=400, detail="Contract template is inactive")

        context = self._context(data)
        missing = rendering.missing_variables(template.variables_schema, context)
        if missing:
            raise HTTPException(
                status_code=400,
                detail={"message": "Missing required template variables", "missing": missing},
            )

        clauses = self.template_clauses(template)
        return {
            "templateId": template.id,
            "version": template.version,
            "html": rendering.render_contract(template.body_html, clauses, context),
            "clauses": [c.slug for c in clauses],
        }
