"""Gallery routes: asset registry, admin gallery management and public viewing"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import create_rate_limiter
from ...shared.responses import paginated, success
from .schemas import AssetCreate, AssetIds, CoverUpdate, GalleryAccess, GalleryCreate, GalleryUpdate, PasswordUpdate
from .service import GalleryService, asset_payload, gallery_payload

assets_router = APIRouter(prefix="/admin/assets", tags=["Assets"])
router = APIRouter(prefix="/admin/galleries", tags=["Galleries"])
public_router = APIRouter(prefix="/g", tags=["Public Galleries"])

gallery_access_rate_limit = create_rate_limiter(limit=10, window_seconds=300, key_prefix="gallery_access")


def get_gallery_service(db: Session = Depends(get_db)) -> GalleryService:
    """Dependency injection for GalleryService"""
    return GalleryService(db)


# ============================================================================
# ASSETS
# ============================================================================


@assets_router.post("", status_code=201)
async def register_asset(
    data: AssetCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(asset_payload(service.register_asset(data)))


@assets_router.get("")
async def list_assets(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    items, total = service.list_assets(category, page, limit)
    return paginated([asset_payload(a) for a in items], total, page, limit)


# ============================================================================
# GALLERIES
# ============================================================================


@router.get("")
async def list_galleries(
    clientId: Optional[int] = None,
    includeInactive: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    items, total = service.list_galleries(clientId, includeInactive, page, limit)
    return paginated([gallery_payload(g) for g in items], total, page, limit)


@router.get("/stats")
async def gallery_stats(
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(service.get_stats())


@router.post("", status_code=201)
async def create_gallery(
    data: GalleryCreate,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    gallery = service.create_gallery(data, admin)
    return success(gallery_payload(gallery, include_items=True), message="Gallery created")


@router.get("/{gallery_id}")
async def get_gallery(
    gallery_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(gallery_payload(service.get_gallery(gallery_id), include_items=True))


@router.put("/{gallery_id}")
async def update_gallery(
    gallery_id: int,
    data: GalleryUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(gallery_payload(service.update_gallery(gallery_id, data)))


@router.delete("/{gallery_id}")
async def deactivate_gallery(
    gallery_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    service.deactivate_gallery(gallery_id)
    return success(message="Gallery deactivated")


@router.post("/{gallery_id}/assets")
async def add_gallery_assets(
    gallery_id: int,
    data: AssetIds,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(gallery_payload(service.add_assets(gallery_id, data.assetIds), include_items=True))


@router.delete("/{gallery_id}/assets/{asset_id}")
async def remove_gallery_asset(
    gallery_id: int,
    asset_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    service.remove_asset(gallery_id, asset_id)
    return success(message="Asset removed from gallery")


@router.put("/{gallery_id}/reorder")
async def reorder_gallery(
    gallery_id: int,
    data: AssetIds,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(gallery_payload(service.reorder(gallery_id, data.assetIds), include_items=True))


@router.post("/{gallery_id}/assets/{asset_id}/favorite")
async def toggle_favorite(
    gallery_id: int,
    asset_id: int,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    item = service.toggle_favorite(gallery_id, asset_id)
    return success({"assetId": item.asset_id, "isFavorite": item.is_favorite})


@router.put("/{gallery_id}/password")
async def set_gallery_password(
    gallery_id: int,
    data: PasswordUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    gallery = service.set_password(gallery_id, data.password)
    return success(gallery_payload(gallery), message="Password updated" if data.password else "Password removed")


@router.put("/{gallery_id}/cover")
async def set_gallery_cover(
    gallery_id: int,
    data: CoverUpdate,
    admin: AdminUser = Depends(get_current_admin),
    service: GalleryService = Depends(get_gallery_service),
):
    return success(gallery_payload(service.set_cover(gallery_id, data.assetId)))


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/{token}/meta")
async def gallery_meta(token: str, service: GalleryService = Depends(get_gallery_service)):
    return success(service.public_meta(token))


@public_router.post("/{token}/access", dependencies=[Depends(gallery_access_rate_limit)])
async def gallery_access(
    token: str,
    data: GalleryAccess,
    service: GalleryService = Depends(get_gallery_service),
):
    gallery = service.grant_access(token, data.password)
    return success({"name": gallery.name, "viewCount": gallery.view_count}, message="Access granted")


@public_router.get("/{token}/items")
async def gallery_items(
    token: str,
    password: Optional[str] = None,
    service: GalleryService = Depends(get_gallery_service),
):
    return success(service.public_items(token, password))
