"""Proposal routes - admin quoting and the client-facing acceptance page"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import client_ip, create_rate_limiter
from ...shared.responses import paginated, success
from .proposal_service import ProposalService, proposal_payload
from .schemas import ProposalAccept, ProposalCreate, ProposalDecline, ProposalUpdate

router = APIRouter(prefix="/admin/proposals", tags=["Proposals"])
public_router = APIRouter(prefix="/proposals", tags=["Public Proposals"])

proposal_otp_rate_limit = create_rate_limiter(limit=5, window_seconds=900, key_prefix="proposal_otp")


def get_proposal_service(db: Session = Depends(get_db)) -> ProposalService:
    """Dependency injection for ProposalService"""
    return ProposalService(db)


@router.get("")
async def list_proposals(
    status: Optional[str] = None,
    clientId: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    items, total = service.list_proposals(status, clientId, page, limit)
    return paginated([proposal_payload(p) for p in items], total, page, limit)


@router.get("/stats")
async def proposal_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    return success(service.get_stats())


@router.post("", status_code=201)
async def create_proposal(
    data: ProposalCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    return success(proposal_payload(service.create_proposal(data, admin)), message="Proposal created")


@router.get("/{proposal_id}")
async def get_proposal(
    proposal_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    return success(proposal_payload(service.get_proposal(proposal_id)))


@router.put("/{proposal_id}")
async def update_proposal(
    proposal_id: int,
    data: ProposalUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    return success(proposal_payload(service.update_proposal(proposal_id, data)))


@router.post("/{proposal_id}/send")
async def send_proposal(
    proposal_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    proposal = await service.send_proposal(proposal_id)
    return success(proposal_payload(proposal), message="Proposal sent")


@router.delete("/{proposal_id}")
async def delete_proposal(
    proposal_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ProposalService = Depends(get_proposal_service),
):
    service.delete_proposal(proposal_id)
    return success(message="Proposal deleted")


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/{proposal_number}")
async def view_proposal(proposal_number: str, service: ProposalService = Depends(get_proposal_service)):
    return success(proposal_payload(service.view_public(proposal_number), public=True))


@public_router.post("/{proposal_number}/request-otp", dependencies=[Depends(proposal_otp_rate_limit)])
async def request_acceptance_code(proposal_number: str, service: ProposalService = Depends(get_proposal_service)):
    await service.request_otp(proposal_number)
    return success(message="Verification code sent to your email", expiresInMinutes=15)


@public_router.post("/{proposal_number}/accept")
async def accept_proposal(
    proposal_number: str,
    data: ProposalAccept,
    request: Request,
    service: ProposalService = Depends(get_proposal_service),
):
    proposal = service.accept(proposal_number, data, client_ip(request), request.headers.get("user-agent"))
    return success(proposal_payload(proposal, public=True), message="Proposal accepted")


@public_router.post("/{proposal_number}/decline")
async def decline_proposal(
    proposal_number: str,
    data: ProposalDecline,
    service: ProposalService = Depends(get_proposal_service),
):
    proposal = service.decline(proposal_number, data)
    return success(proposal_payload(proposal, public=True), message="Proposal declined")
