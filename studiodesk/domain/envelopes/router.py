"""Envelope router - admin endpoints for contract envelopes"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...shared.responses import paginated, success
from .schemas import DocumentCreate, EnvelopeCreate, EnvelopeUpdate, SignerCreate
from .service import EnvelopeService, document_payload, envelope_payload, signer_payload

router = APIRouter(prefix="/admin/envelopes", tags=["Envelopes"])


def get_envelope_service(db: Session = Depends(get_db)) -> EnvelopeService:
    """Dependency injection for EnvelopeService"""
    return EnvelopeService(db)


@router.get("")
async def list_envelopes(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    items, total = service.list_envelopes(status, page, limit)
    return paginated([envelope_payload(e) for e in items], total, page, limit)


@router.get("/stats")
async def envelope_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(service.get_stats())


@router.post("", status_code=201)
async def create_envelope(
    data: EnvelopeCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(envelope_payload(service.create_envelope(data, admin)), message="Envelope created")


@router.get("/{envelope_id}")
async def get_envelope(
    envelope_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(envelope_payload(service.get_envelope(envelope_id), include_audit=True))


@router.put("/{envelope_id}")
async def update_envelope(
    envelope_id: int,
    data: EnvelopeUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(envelope_payload(service.update_envelope(envelope_id, data)))


@router.post("/{envelope_id}/documents", status_code=201)
async def add_document(
    envelope_id: int,
    data: DocumentCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(document_payload(service.add_document(envelope_id, data)))


@router.delete("/{envelope_id}/documents/{document_id}")
async def remove_document(
    envelope_id: int,
    document_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    service.remove_document(envelope_id, document_id)
    return success(message="Document removed")


@router.post("/{envelope_id}/signers", status_code=201)
async def add_signer(
    envelope_id: int,
    data: SignerCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(signer_payload(service.add_signer(envelope_id, data)))


@router.delete("/{envelope_id}/signers/{signer_id}")
async def remove_signer(
    envelope_id: int,
    signer_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    service.remove_signer(envelope_id, signer_id)
    return success(message="Signer removed")


@router.post("/{envelope_id}/send")
async def send_envelope(
    envelope_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    envelope = await service.send_envelope(envelope_id, admin)
    return success(envelope_payload(envelope), message="Envelope sent")


@router.post("/{envelope_id}/cancel")
async def cancel_envelope(
    envelope_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    return success(envelope_payload(service.cancel_envelope(envelope_id, admin)), message="Envelope cancelled")


@router.get("/{envelope_id}/verify")
async def verify_envelope_signatures(
    envelope_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: EnvelopeService = Depends(get_envelope_service),
):
    """Recheck every stored signature hash"""
    results = service.verify_signatures(envelope_id)
    return success(results, allValid=all(r["valid"] for r in results))
