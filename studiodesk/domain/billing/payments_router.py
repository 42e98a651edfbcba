"""Payment router - admin endpoints for recording payments"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...models_billing import PaymentMethod
from ...shared.responses import paginated, success
from .payment_service import PaymentService, payment_payload
from .schemas import PaymentCreate

router = APIRouter(prefix="/admin/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


@router.get("")
async def list_payments(
    invoiceId: Optional[int] = None,
    method: Optional[PaymentMethod] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: AdminUser = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
):
    items, total = service.list_payments(invoiceId, method.value if method else None, page, limit)
    return paginated([payment_payload(p) for p in items], total, page, limit)


@router.get("/stats")
async def payment_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return success(service.get_stats())


@router.post("", status_code=201)
async def record_payment(
    data: PaymentCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return success(payment_payload(service.record_payment(data, admin)), message="Payment recorded")


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return success(payment_payload(service.get_payment(payment_id)))
