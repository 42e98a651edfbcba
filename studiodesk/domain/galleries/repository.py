"""Gallery repository - Database operations for assets and galleries"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Asset, Gallery, GalleryAsset


class GalleryRepository:
    """Repository for gallery database operations"""

    @staticmethod
    def create_asset(db: Session, **data) -> Asset:
        asset = Asset(**data)
        db.add(asset)
        db.commit()
        db.refresh(asset)
        return asset

    @staticmethod
    def list_assets(db: Session, category: Optional[str] = None, page: int = 1, limit: int = 50) -> tuple[list[Asset], int]:
        query = db.query(Asset)
        if category:
            query = query.filter(Asset.category == category)
        total = query.count()
        items = query.order_by(Asset.created_at.desc(), Asset.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    @staticmethod
    def get_assets(db: Session, asset_ids: list[int]) -> list[Asset]:
        return db.query(Asset).filter(Asset.id.in_(asset_ids)).all()

    @staticmethod
    def get_gallery(db: Session, gallery_id: int) -> Optional[Gallery]:
        return (
            db.query(Gallery)
            .options(selectinload(Gallery.items).joinedload(GalleryAsset.asset))
            .filter(Gallery.id == gallery_id)
            .first()
        )

    @staticmethod
    def get_by_token(db: Session, token: str) -> Optional[Gallery]:
        return (
            db.query(Gallery)
            .options(joinedload(Gallery.cover_asset))
            .filter(Gallery.token == token)
            .first()
        )

    @staticmethod
    def list_galleries(
        db: Session, client_id: Optional[int] = None, include_inactive: bool = False, page: int = 1, limit: int = 20
    ) -> tuple[list[Gallery], int]:
        query = db.query(Gallery)
        if client_id:
            query = query.filter(Gallery.client_id == client_id)
        if not include_inactive:
            query = query.filter(Gallery.is_active.is_(True))
        total = query.count()
        items = (
            query.options(selectinload(Gallery.items))
            .order_by(Gallery.created_at.desc(), Gallery.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_item(db: Session, gallery_id: int, asset_id: int) -> Optional[GalleryAsset]:
        return (
            db.query(GalleryAsset)
            .filter(GalleryAsset.gallery_id == gallery_id, GalleryAsset.asset_id == asset_id)
            .first()
        )

    @staticmethod
    def ordered_items(db: Session, gallery_id: int) -> list[GalleryAsset]:
        return (
            db.query(GalleryAsset)
            .options(joinedload(GalleryAsset.asset))
            .filter(GalleryAsset.gallery_id == gallery_id)
            .order_by(GalleryAsset.position, GalleryAsset.id)
            .all()
        )

    @staticmethod
    def stats(db: Session) -> dict:
        return {
            "galleries": db.query(func.count(Gallery.id)).scalar() or 0,
            "active": db.query(func.count(Gallery.id)).filter(Gallery.is_active.is_(True)).scalar() or 0,
            "protected": db.query(func.count(Gallery.id)).filter(Gallery.password_hash.isnot(None)).scalar() or 0,
            "views": db.query(func.coalesce(func.sum(Gallery.view_count), 0)).scalar() or 0,
            "assets": db.query(func.count(Asset.id)).scalar() or 0,
            "favorites": db.query(func.count(GalleryAsset.id)).filter(GalleryAsset.is_favorite.is_(True)).scalar() or 0,
        }
