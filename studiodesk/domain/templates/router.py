"""Template routers - admin endpoints for proposal templates, contract templates and clauses"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...models_templates import ContractDocumentType, ShootEventType
from ...shared.responses import success
from .schemas import (
    ClauseCreate,
    ClauseUpdate,
    ContractRenderRequest,
    ContractTemplateCreate,
    ContractTemplateUpdate,
    ProposalTemplateCreate,
    ProposalTemplateUpdate,
    TemplateDuplicate,
)
from .service import (
    ClauseService,
    ContractTemplateService,
    ProposalTemplateService,
    clause_payload,
    contract_template_payload,
    proposal_template_payload,
)

proposal_templates_router = APIRouter(prefix="/admin/proposal-templates", tags=["Proposal Templates"])
contract_templates_router = APIRouter(prefix="/admin/contract-templates", tags=["Contract Templates"])
clauses_router = APIRouter(prefix="/admin/clauses", tags=["Clauses"])


def get_proposal_template_service(db: Session = Depends(get_db)) -> ProposalTemplateService:
    return ProposalTemplateService(db)


def get_contract_template_service(db: Session = Depends(get_db)) -> ContractTemplateService:
    return ContractTemplateService(db)


def get_clause_service(db: Session = Depends(get_db)) -> ClauseService:
    return ClauseService(db)


# ---------------------------------------------------------------- proposal templates


@proposal_templates_router.get("")
async def list_proposal_templates(
    includeInactive: bool = False,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    return success([proposal_template_payload(t) for t in service.list_templates(includeInactive)])


@proposal_templates_router.get("/stats")
async def proposal_template_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    return success(service.get_stats())


@proposal_templates_router.post("", status_code=201)
async def create_proposal_template(
    data: ProposalTemplateCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    template = service.create_template(data, admin)
    return success(proposal_template_payload(template), message="Template created")


@proposal_templates_router.get("/{template_id}")
async def get_proposal_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    return success(proposal_template_payload(service.get_template(template_id)))


@proposal_templates_router.patch("/{template_id}")
async def update_proposal_template(
    template_id: int,
    data: ProposalTemplateUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    return success(proposal_template_payload(service.update_template(template_id, data)))


@proposal_templates_router.delete("/{template_id}")
async def delete_proposal_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    service.delete_template(template_id)
    return success(message="Template deleted")


@proposal_templates_router.post("/{template_id}/duplicate", status_code=201)
async def duplicate_proposal_template(
    template_id: int,
    data: TemplateDuplicate = TemplateDuplicate(),
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalTemplateService = Depends(get_proposal_template_service),
):
    template = service.duplicate_template(template_id, data.name, admin)
    return success(proposal_template_payload(template), message="Template duplicated")


# ---------------------------------------------------------------- contract templates


@contract_templates_router.get("")
async def list_contract_templates(
    search: Optional[str] = None,
    type: Optional[ContractDocumentType] = None,
    eventType: Optional[ShootEventType] = None,
    isActive: Optional[bool] = None,
    isPublished: Optional[bool] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    templates = service.list_templates(
        search,
        type.value if type else None,
        eventType.value if eventType else None,
        isActive,
        isPublished,
    )
    return success([contract_template_payload(t) for t in templates])


@contract_templates_router.get("/published")
async def published_contract_templates(
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    return success([contract_template_payload(t) for t in service.published_templates()])


@contract_templates_router.get("/stats")
async def contract_template_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    return success(service.get_stats())


@contract_templates_router.post("", status_code=201)
async def create_contract_template(
    data: ContractTemplateCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    template = service.create_template(data, admin)
    return success(contract_template_payload(template), message="Template created")


@contract_templates_router.get("/{template_id}")
async def get_contract_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    """Includes the active clauses the template pulls in"""
    template = service.get_template(template_id)
    return success(contract_template_payload(template, service.template_clauses(template)))


@contract_templates_router.put("/{template_id}")
async def update_contract_template(
    template_id: int,
    data: ContractTemplateUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    return success(contract_template_payload(service.update_template(template_id, data)))


@contract_templates_router.post("/{template_id}/publish")
async def publish_contract_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    template = service.publish_template(template_id)
    return success(contract_template_payload(template), message="Template published")


@contract_templates_router.post("/{template_id}/unpublish")
async def unpublish_contract_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    template = service.unpublish_template(template_id)
    return success(contract_template_payload(template), message="Template unpublished")


@contract_templates_router.post("/{template_id}/version", status_code=201)
async def version_contract_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    template = service.create_version(template_id, admin)
    return success(contract_template_payload(template), message="New version created")


@contract_templates_router.post("/{template_id}/render")
async def render_contract_template(
    template_id: int,
    data: ContractRenderRequest = ContractRenderRequest(),
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    return success(service.render(template_id, data))


@contract_templates_router.delete("/{template_id}")
async def delete_contract_template(
    template_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ContractTemplateService = Depends(get_contract_template_service),
):
    service.delete_template(template_id)
    return success(message="Template deleted")


# ---------------------------------------------------------------- clauses


@clauses_router.get("")
async def list_clauses(
    search: Optional[str] = None,
    tag: Optional[str] = None,
    mandatory: Optional[bool] = None,
    isActive: Optional[bool] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success([clause_payload(c) for c in service.list_clauses(search, tag, mandatory, isActive)])


@clauses_router.get("/mandatory")
async def mandatory_clauses(
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success([clause_payload(c) for c in service.mandatory_clauses()])


@clauses_router.get("/tags")
async def clause_tags(
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(service.all_tags())


@clauses_router.get("/stats")
async def clause_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(service.get_stats())


@clauses_router.get("/slug/{slug}")
async def get_clause_by_slug(
    slug: str,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(clause_payload(service.get_by_slug(slug)))


@clauses_router.post("", status_code=201)
async def create_clause(
    data: ClauseCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(clause_payload(service.create_clause(data)), message="Clause created")


@clauses_router.get("/{clause_id}")
async def get_clause(
    clause_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(clause_payload(service.get_clause(clause_id)))


@clauses_router.put("/{clause_id}")
async def update_clause(
    clause_id: int,
    data: ClauseUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    return success(clause_payload(service.update_clause(clause_id, data)))


@clauses_router.delete("/{clause_id}")
async def delete_clause(
    clause_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ClauseService = Depends(get_clause_service),
):
    service.delete_clause(clause_id)
    return success(message="Clause deleted")
