"""Inquiry service - lead intake and conversion into clients"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailDeliveryError, send_inquiry_notification
from ...models import AdminUser, Client, Inquiry, InquiryStatus
from ..clients.repository import ClientRepository
from ..clients.schemas import ClientCreate
from ..clients.service import ClientService
from .repository import InquiryRepository
from .schemas import InquiryCreate, InquiryResponse, InquiryType, InquiryUpdate

logger = logging.getLogger(__name__)

# Status -> timestamp column stamped the first time the inquiry reaches it
STATUS_TIMESTAMPS = {
    InquiryStatus.CONTACTED.value: "contacted_at",
    InquiryStatus.QUALIFIED.value: "qualified_at",
    InquiryStatus.CONVERTED.value: "converted_at",
}


def to_response(inquiry: Inquiry) -> InquiryResponse:
    return InquiryResponse(
        id=inquiry.id,
        fullName=inquiry.full_name,
        email=inquiry.email,
        phone=inquiry.phone,
        company=inquiry.company,
        inquiryType=inquiry.inquiry_type,
        status=inquiry.status,
        shootDate=inquiry.shoot_date,
        shootDescription=inquiry.shoot_description,
        location=inquiry.location,
        specialRequirements=inquiry.special_requirements,
        budgetMin=inquiry.budget_min,
        budgetMax=inquiry.budget_max,
        source=inquiry.source,
        internalNotes=inquiry.internal_notes,
        tags=inquiry.tags or [],
        clientId=inquiry.client_id,
        contactedAt=inquiry.contacted_at,
        qualifiedAt=inquiry.qualified_at,
        convertedAt=inquiry.converted_at,
        createdAt=inquiry.created_at,
    )


class InquiryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = InquiryRepository()

    async def create_inquiry(self, data: InquiryCreate) -> Inquiry:
        inquiry = self.repo.create(
            self.db,
            full_name=data.fullName,
            email=data.email,
            phone=data.phone,
            company=data.company,
            inquiry_type=data.inquiryType.value,
            status=InquiryStatus.NEW.value,
            shoot_date=data.shootDate,
            shoot_description=data.shootDescription,
            location=data.location,
            special_requirements=data.specialRequirements,
            budget_min=data.budgetMin,
            budget_max=data.budgetMax,
            source=data.source or "website",
            tags=[],
        )
        logger.info(f"📥 Inquiry {inquiry.id} received from {inquiry.email}")

        try:
            await send_inquiry_notification(
                inquiry.full_name, inquiry.email, inquiry.inquiry_type, inquiry.shoot_description
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ Inquiry notification failed for inquiry {inquiry.id}: {e}")

        return inquiry

    def get_inquiry(self, inquiry_id: int) -> Inquiry:
        inquiry = self.repo.get_by_id(self.db, inquiry_id)
        if not inquiry:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        return inquiry

    def list_inquiries(self, page: int, limit: int, status: Optional[str], type: Optional[str], search: Optional[str]):
        return self.repo.search(self.db, page=page, limit=limit, status=status, type=type, search=search)

    def _apply_status(self, inquiry: Inquiry, status: InquiryStatus) -> None:
        inquiry.status = status.value
        column = STATUS_TIMESTAMPS.get(status.value)
        if column and not getattr(inquiry, column):
            setattr(inquiry, column, datetime.utcnow())

    def update_inquiry(self, inquiry_id: int, data: InquiryUpdate) -> Inquiry:
        inquiry = self.get_inquiry(inquiry_id)
        if data.internalNotes is not None:
            inquiry.internal_notes = data.internalNotes
        if data.tags is not None:
            inquiry.tags = [t.strip() for t in data.tags if t.strip()]
        if data.status is not None:
            self._apply_status(inquiry, data.status)
        self.db.commit()
        self.db.refresh(inquiry)
        logger.info(f"📝 Inquiry {inquiry.id} updated")
        return inquiry

    def update_status(self, inquiry_id: int, status: InquiryStatus) -> Inquiry:
        inquiry = self.get_inquiry(inquiry_id)
        previous = inquiry.status
        self._apply_status(inquiry, status)
        self.db.commit()
        self.db.refresh(inquiry)
        logger.info(f"🔄 Inquiry {inquiry.id} status {previous} -> {inquiry.status}")
        return inquiry

    def convert_to_client(self, inquiry_id: int, admin: AdminUser) -> tuple[Inquiry, Client, bool]:
        """
        Link the inquiry to a client, reusing an existing client with the same
        email. Returns (inquiry, client, created).
        """
        inquiry = self.get_inquiry(inquiry_id)
        if inquiry.client_id:
            raise HTTPException(status_code=400, detail="Inquiry is already converted to a client")

        client = ClientRepository.get_client_by_email(self.db, inquiry.email)
        created = client is None
        if created:
            client = ClientService(self.db).create_client(
                ClientCreate(
                    name=inquiry.full_name,
                    email=inquiry.email,
                    phone=inquiry.phone,
                    company=inquiry.company,
                    source="inquiry",
                    clientType="business" if inquiry.company else "individual",
                    notes=inquiry.shoot_description,
                ),
                admin,
                source_detail={"email": inquiry.email, "inquiryId": inquiry.id},
            )

        inquiry.client_id = client.id
        self._apply_status(inquiry, InquiryStatus.CONVERTED)
        self.db.commit()
        self.db.refresh(inquiry)
        logger.info(
            f"✅ Inquiry {inquiry.id} converted to client {client.id} ({'new' if created else 'existing'})"
        )
        return inquiry, client, created

    def archive_inquiry(self, inquiry_id: int) -> Inquiry:
        return self.update_status(inquiry_id, InquiryStatus.ARCHIVED)

    def get_stats(self, days: int = 30) -> dict:
        since = datetime.utcnow() - timedelta(days=days)
        by_status = self.repo.count_by(self.db, Inquiry.status)
        by_type = self.repo.count_by(self.db, Inquiry.inquiry_type)
        recent = self.repo.count_by(self.db, Inquiry.status, since=since)
        total = sum(by_status.values())
        converted = by_status.get(InquiryStatus.CONVERTED.value, 0)
        return {
            "total": total,
            "recent": sum(recent.values()),
            "periodDays": days,
            "byStatus": {s.value: by_status.get(s.value, 0) for s in InquiryStatus},
            "byType": {t.value: by_type.get(t.value, 0) for t in InquiryType},
            "conversionRate": round(converted / total * 100, 1) if total else 0.0,
        }
