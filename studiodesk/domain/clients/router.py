"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...shared.responses import paginated, success
from .schemas import ClientCreate, ClientStatusUpdate, ClientUpdate
from .service import ClientService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("")
async def list_clients(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sortBy: str = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    status: Optional[str] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    includeArchived: bool = False,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    """Archived clients are hidden unless asked for"""
    clients, total = service.search_clients(
        page, limit, sortBy, sortOrder, status, search, tag, includeArchived
    )
    return paginated([to_response(c).model_dump() for c in clients], total, page, limit)


@router.get("/stats")
async def client_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    return success(service.get_stats())


@router.get("/export")
async def export_clients_csv(
    status: Optional[str] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    includeArchived: bool = False,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    """Export clients as CSV with optional filters"""
    logger.info(f"📊 CSV Export requested by {admin.email}")
    return service.export_clients_csv(status, search, tag, includeArchived)


@router.post("", status_code=201)
async def create_client(
    data: ClientCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    client = service.create_client(data, admin)
    return success(to_response(client).model_dump(), message="Client created")


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    return success(to_response(service.get_client(client_id)).model_dump())


@router.put("/{client_id}")
async def update_client(
    client_id: int,
    data: ClientUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    client = service.update_client(client_id, data, admin)
    return success(to_response(client).model_dump(), message="Client updated")


@router.patch("/{client_id}/status")
async def update_client_status(
    client_id: int,
    data: ClientStatusUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    client = service.update_status(client_id, data, admin)
    return success(to_response(client).model_dump())


@router.delete("/{client_id}")
async def archive_client(
    client_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    service.archive_client(client_id, admin)
    return success(message="Client archived")


@router.get("/{client_id}/audit-log")
async def client_audit_log(
    client_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: ClientService = Depends(get_client_service),
):
    return success(service.get_audit_log(client_id))
