"""Invoice router - admin endpoints for invoicing"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...shared.responses import paginated, success
from .invoice_service import InvoiceService, invoice_payload
from .schemas import InvoiceCreate, InvoiceFromProposal, InvoiceUpdate

router = APIRouter(prefix="/admin/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


@router.get("")
async def list_invoices(
    status: Optional[str] = None,
    clientId: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    items, total = service.list_invoices(status, clientId, page, limit)
    return paginated([invoice_payload(i) for i in items], total, page, limit)


@router.get("/stats")
async def invoice_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(service.get_stats())


@router.post("", status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(invoice_payload(service.create_invoice(data, admin)), message="Invoice created")


@router.post("/from-proposal/{proposal_id}", status_code=201)
async def create_invoice_from_proposal(
    proposal_id: int,
    data: InvoiceFromProposal = InvoiceFromProposal(),
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.create_from_proposal(proposal_id, data, admin)
    return success(invoice_payload(invoice), message="Invoice created from proposal")


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(invoice_payload(service.get_invoice(invoice_id)))


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(invoice_payload(service.update_invoice(invoice_id, data)))


@router.post("/{invoice_id}/send")
async def send_invoice(
    invoice_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = await service.send_invoice(invoice_id)
    return success(invoice_payload(invoice), message="Invoice sent")


@router.post("/{invoice_id}/mark-paid")
async def mark_invoice_paid(
    invoice_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(invoice_payload(service.mark_paid(invoice_id)), message="Invoice marked as paid")


@router.post("/{invoice_id}/cancel")
async def cancel_invoice(
    invoice_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return success(invoice_payload(service.cancel_invoice(invoice_id)), message="Invoice cancelled")
