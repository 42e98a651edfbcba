"""Inquiry repository - Database operations for inquiries"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Inquiry


class InquiryRepository:
    """Repository for inquiry database operations"""

    @staticmethod
    def create(db: Session, **data) -> Inquiry:
        inquiry = Inquiry(**data)
        db.add(inquiry)
        db.commit()
        db.refresh(inquiry)
        return inquiry

    @staticmethod
    def get_by_id(db: Session, inquiry_id: int) -> Optional[Inquiry]:
        return db.query(Inquiry).filter(Inquiry.id == inquiry_id).first()

    @staticmethod
    def search(
        db: Session,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Inquiry], int]:
        query = db.query(Inquiry)
        if status:
            query = query.filter(Inquiry.status == status)
        if type:
            query = query.filter(Inquiry.inquiry_type == type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Inquiry.full_name.ilike(pattern),
                    Inquiry.email.ilike(pattern),
                    Inquiry.company.ilike(pattern),
                    Inquiry.shoot_description.ilike(pattern),
                )
            )

        total = query.count()
        items = (
            query.order_by(Inquiry.created_at.desc(), Inquiry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def count_by(db: Session, column, since: Optional[datetime] = None) -> dict[str, int]:
        query = db.query(column, func.count(Inquiry.id))
        if since:
            query = query.filter(Inquiry.created_at >= since)
        return dict(query.group_by(column).all())
