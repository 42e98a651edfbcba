"""Inquiry routes: the public enquiry form and the admin lead inbox"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import create_rate_limiter
from ...shared.responses import paginated, success
from ..clients.service import to_response as client_response
from .schemas import InquiryCreate, InquiryStatusUpdate, InquiryUpdate
from .service import InquiryService, to_response

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/inquiries", tags=["Inquiries"])
router = APIRouter(prefix="/admin/inquiries", tags=["Inquiries"])

inquiry_rate_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="inquiry")


def get_inquiry_service(db: Session = Depends(get_db)) -> InquiryService:
    return InquiryService(db)


@public_router.post("", status_code=201, dependencies=[Depends(inquiry_rate_limit)])
async def create_inquiry(data: InquiryCreate, service: InquiryService = Depends(get_inquiry_service)):
    """Public enquiry form (no auth, rate-limited per IP)"""
    inquiry = await service.create_inquiry(data)
    return success(message="Inquiry received. We'll be in touch shortly.", inquiryId=inquiry.id)


@router.get("")
async def list_inquiries(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    type: Optional[str] = None,
    search: Optional[str] = None,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    items, total = service.list_inquiries(page, limit, status, type, search)
    return paginated([to_response(i).model_dump() for i in items], total, page, limit)


@router.get("/stats")
async def inquiry_stats(
    days: int = Query(30, ge=1, le=365),
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    return success(service.get_stats(days))


@router.get("/{inquiry_id}")
async def get_inquiry(
    inquiry_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    return success(to_response(service.get_inquiry(inquiry_id)).model_dump())


@router.put("/{inquiry_id}")
async def update_inquiry(
    inquiry_id: int,
    data: InquiryUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    inquiry = service.update_inquiry(inquiry_id, data)
    return success(to_response(inquiry).model_dump(), message="Inquiry updated successfully")


@router.put("/{inquiry_id}/status")
async def update_inquiry_status(
    inquiry_id: int,
    data: InquiryStatusUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    inquiry = service.update_status(inquiry_id, data.status)
    return success(to_response(inquiry).model_dump(), message="Inquiry status updated successfully")


@router.post("/{inquiry_id}/convert")
async def convert_inquiry(
    inquiry_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    inquiry, client, created = service.convert_to_client(inquiry_id, admin)
    return success(
        {
            "inquiry": to_response(inquiry).model_dump(),
            "client": client_response(client).model_dump(),
            "clientCreated": created,
        },
        message="Inquiry converted to client",
    )


@router.delete("/{inquiry_id}")
async def archive_inquiry(
    inquiry_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    service.archive_inquiry(inquiry_id)
    return success(message="Inquiry archived")
