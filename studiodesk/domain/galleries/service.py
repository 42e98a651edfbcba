"""Gallery service - client proofing galleries and their public access"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AdminUser, Asset, Client, Gallery, GalleryAsset
from ...security_utils import generate_hex_token, hash_password, verify_password
from .repository import GalleryRepository
from .schemas import AssetCreate, GalleryCreate, GalleryUpdate

logger = logging.getLogger(__name__)


def asset_payload(asset: Asset) -> dict:
    return {
        "id": asset.id,
        "filename": asset.filename,
        "filepath": asset.filepath,
        "mimeType": asset.mime_type,
        "size": asset.size,
        "width": asset.width,
        "height": asset.height,
        "category": asset.category,
        "createdAt": asset.created_at,
    }


def item_payload(item: GalleryAsset) -> dict:
    payload = asset_payload(item.asset)
    payload.update({"position": item.position, "isFavorite": item.is_favorite})
    return payload


def gallery_payload(gallery: Gallery, include_items: bool = False) -> dict:
    payload = {
        "id": gallery.id,
        "token": gallery.token,
        "name": gallery.name,
        "description": gallery.description,
        "isProtected": gallery.password_hash is not None,
        "expiresAt": gallery.expires_at,
        "isActive": gallery.is_active,
        "viewCount": gallery.view_count,
        "clientId": gallery.client_id,
        "coverAssetId": gallery.cover_asset_id,
        "itemCount": len(gallery.items),
        "createdAt": gallery.created_at,
    }
    if include_items:
        payload["items"] = [item_payload(i) for i in gallery.items]
    return payload


class GalleryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = GalleryRepository()

    # ------------------------------------------------------------------ assets

    def register_asset(self, data: AssetCreate) -> Asset:
        asset = self.repo.create_asset(
            self.db,
            filename=data.filename,
            filepath=data.filepath,
            mime_type=data.mimeType,
            size=data.size,
            width=data.width,
            height=data.height,
            category=data.category,
        )
        logger.info(f"📝 Asset {asset.id} registered ({asset.filename})")
        return asset

    def list_assets(self, category: Optional[str], page: int, limit: int):
        return self.repo.list_assets(self.db, category, page, limit)

    # --------------------------------------------------------------- galleries

    def get_gallery(self, gallery_id: int) -> Gallery:
        gallery = self.repo.get_gallery(self.db, gallery_id)
        if not gallery:
            raise HTTPException(status_code=404, detail="Gallery not found")
        return gallery

    def list_galleries(self, client_id: Optional[int], include_inactive: bool, page: int, limit: int):
        return self.repo.list_galleries(self.db, client_id, include_inactive, page, limit)

    def _check_client(self, client_id: Optional[int]) -> None:
        if client_id and not self.db.query(Client).filter(Client.id == client_id).first():
            raise HTTPException(status_code=404, detail="Client not found")

    def create_gallery(self, data: GalleryCreate, admin: AdminUser) -> Gallery:
        self._check_client(data.clientId)
        gallery = Gallery(
            token=generate_hex_token(16),
            name=data.name,
            description=data.description,
            password_hash=hash_password(data.password) if data.password else None,
            expires_at=data.expiresAt,
            client_id=data.clientId,
            created_by=admin.id,
        )
        self.db.add(gallery)
        self.db.commit()
        if data.assetIds:
            self.add_assets(gallery.id, data.assetIds)
        logger.info(f"✅ Gallery {gallery.id} created ({gallery.name})")
        return self.get_gallery(gallery.id)

    def update_gallery(self, gallery_id: int, data: GalleryUpdate) -> Gallery:
        gallery = self.get_gallery(gallery_id)
        self._check_client(data.clientId)
        if data.name is not None:
            gallery.name = data.name.strip()
        if data.description is not None:
            gallery.description = data.description
        if data.expiresAt is not None:
            gallery.expires_at = data.expiresAt
        if data.isActive is not None:
            gallery.is_active = data.isActive
        if data.clientId is not None:
            gallery.client_id = data.clientId
        self.db.commit()
        self.db.refresh(gallery)
        return gallery

    def deactivate_gallery(self, gallery_id: int) -> Gallery:
        gallery = self.get_gallery(gallery_id)
        gallery.is_active = False
        self.db.commit()
        logger.info(f"🔒 Gallery {gallery.id} deactivated")
        return gallery

    def add_assets(self, gallery_id: int, asset_ids: list[int]) -> Gallery:
        gallery = self.get_gallery(gallery_id)
        assets = {a.id: a for a in self.repo.get_assets(self.db, asset_ids)}
        missing = [i for i in asset_ids if i not in assets]
        if missing:
            raise HTTPException(status_code=404, detail=f"Assets not found: {missing}")

        present = {item.asset_id for item in gallery.items}
        position = max((item.position for item in gallery.items), default=-1) + 1
        added = 0
        for asset_id in dict.fromkeys(asset_ids):
            if asset_id in present:
                continue
            gallery.items.append(GalleryAsset(asset_id=asset_id, position=position))
            position += 1
            added += 1
        self.db.commit()
        logger.info(f"📝 {added} asset(s) added to gallery {gallery.id}")
        return self.get_gallery(gallery.id)

    def remove_asset(self, gallery_id: int, asset_id: int) -> None:
        gallery = self.get_gallery(gallery_id)
        item = self.repo.get_item(self.db, gallery.id, asset_id)
        if not item:
            raise HTTPException(status_code=404, detail="Asset is not in this gallery")
        if gallery.cover_asset_id == asset_id:
            gallery.cover_asset_id = None
        self.db.delete(item)
        self.db.commit()

    def reorder(self, gallery_id: int, asset_ids: list[int]) -> Gallery:
        """Positions follow the given order; the list must name every asset once"""
        gallery = self.get_gallery(gallery_id)
        items = {item.asset_id: item for item in gallery.items}
        if sorted(asset_ids) != sorted(items):
            raise HTTPException(status_code=400, detail="Order must list every asset in the gallery exactly once")
        for position, asset_id in enumerate(asset_ids):
            items[asset_id].position = position
        self.db.commit()
        self.db.expire(gallery)
        return self.get_gallery(gallery.id)

    def toggle_favorite(self, gallery_id: int, asset_id: int) -> GalleryAsset:
        item = self.repo.get_item(self.db, gallery_id, asset_id)
        if not item:
            raise HTTPException(status_code=404, detail="Asset is not in this gallery")
        item.is_favorite = not item.is_favorite
        self.db.commit()
        self.db.refresh(item)
        return item

    def set_password(self, gallery_id: int, password: Optional[str]) -> Gallery:
        gallery = self.get_gallery(gallery_id)
        gallery.password_hash = hash_password(password) if password else None
        self.db.commit()
        logger.info(f"🔐 Gallery {gallery.id} password {'set' if password else 'cleared'}")
        return gallery

    def set_cover(self, gallery_id: int, asset_id: Optional[int]) -> Gallery:
        gallery = self.get_gallery(gallery_id)
        if asset_id is not None and not self.repo.get_item(self.db, gallery.id, asset_id):
            raise HTTPException(status_code=400, detail="Cover must be an asset in this gallery")
        gallery.cover_asset_id = asset_id
        self.db.commit()
        return gallery

    def get_stats(self) -> dict:
        return self.repo.stats(self.db)

    # ------------------------------------------------------------------ public

    def _public_gallery(self, token: str) -> Gallery:
        gallery = self.repo.get_by_token(self.db, token)
        if not gallery or not gallery.is_active:
            raise HTTPException(status_code=404, detail="Gallery not found")
        if gallery.expires_at and gallery.expires_at < datetime.utcnow():
            raise HTTPException(status_code=410, detail="This gallery has expired")
        return gallery

    def _check_password(self, gallery: Gallery, password: Optional[str]) -> None:
        if gallery.password_hash is None:
            return
        if not password or not verify_password(password, gallery.password_hash):
            logger.warning(f"⚠️ Wrong password for gallery {gallery.id}")
            raise HTTPException(status_code=401, detail="Invalid gallery password")

    def public_meta(self, token: str) -> dict:
        gallery = self._public_gallery(token)
        return {
            "name": gallery.name,
            "description": gallery.description,
            "isProtected": gallery.password_hash is not None,
            "expiresAt": gallery.expires_at,
            "coverAsset": asset_payload(gallery.cover_asset) if gallery.cover_asset else None,
        }

    def grant_access(self, token: str, password: Optional[str]) -> Gallery:
        gallery = self._public_gallery(token)
        self._check_password(gallery, password)
        gallery.view_count = (gallery.view_count or 0) + 1
        self.db.commit()
        logger.info(f"👀 Gallery {gallery.id} opened (views: {gallery.view_count})")
        return gallery

    def public_items(self, token: str, password: Optional[str]) -> list[dict]:
        gallery = self._public_gallery(token)
        self._check_password(gallery, password)
        return [item_payload(i) for i in self.repo.ordered_items(self.db, gallery.id)]
