"""Client service - Business logic for client operations"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import AdminUser, Client, ClientStatus
from .repository import ClientRepository
from .schemas import ClientCreate, ClientResponse, ClientStatusUpdate, ClientUpdate

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "A client with this email already exists"

# Schema field -> column
FIELD_MAP = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "company": "company",
    "address": "address",
    "city": "city",
    "state": "state",
    "zipCode": "zip_code",
    "country": "country",
    "source": "source",
    "preferredContactMethod": "preferred_contact_method",
    "clientType": "client_type",
    "notes": "notes",
    "tags": "tags",
}


def to_response(client: Client) -> ClientResponse:
    return ClientResponse(
        id=client.id,
        publicId=client.public_id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        company=client.company,
        status=client.status,
        address=client.address,
        city=client.city,
        state=client.state,
        zipCode=client.zip_code,
        country=client.country,
        source=client.source,
        preferredContactMethod=client.preferred_contact_method,
        clientType=client.client_type,
        notes=client.notes,
        tags=client.tags or [],
        createdAt=client.created_at,
        updatedAt=client.updated_at,
    )


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def search_clients(
        self,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        status: Optional[str] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        include_archived: bool = False,
    ) -> tuple[list[Client], int]:
        return self.repo.search_clients(
            self.db,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            tag=tag,
            status=status,
            search=search,
            include_archived=include_archived,
        )

    def get_client(self, client_id: int) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def _ensure_email_free(self, email: str, client_id: Optional[int] = None) -> None:
        existing = self.repo.get_client_by_email(self.db, email)
        if existing and existing.id != client_id:
            raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same email
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)

    def create_client(self, data: ClientCreate, admin: Optional[AdminUser] = None, source_detail: Optional[dict] = None) -> Client:
        """Create a new client with validation"""
        self._ensure_email_free(data.email)

        values = {column: getattr(data, field) for field, column in FIELD_MAP.items()}
        client = self.repo.create_client(self.db, status=data.status.value, **values)
        self.repo.add_audit(
            self.db, client, "CREATE", admin.id if admin else None, source_detail or {"email": client.email}
        )
        self._commit()
        self.db.refresh(client)
        logger.info(f"✅ Client {client.id} created ({client.email})")
        return client

    def update_client(self, client_id: int, data: ClientUpdate, admin: AdminUser) -> Client:
        client = self.get_client(client_id)
        if data.email and data.email != client.email:
            self._ensure_email_free(data.email, client.id)

        provided = data.model_dump(exclude_unset=True)
        updates = {FIELD_MAP[k]: v for k, v in provided.items() if k in FIELD_MAP and v is not None}
        if data.status is not None:
            updates["status"] = data.status.value

        changes = {
            key: {"from": getattr(client, key), "to": value}
            for key, value in updates.items()
            if getattr(client, key) != value
        }
        self.repo.update_client(self.db, client, **updates)
        if changes:
            self.repo.add_audit(self.db, client, "UPDATE", admin.id, {"changes": changes})
        self._commit()
        self.db.refresh(client)
        logger.info(f"📝 Client {client.id} updated ({', '.join(changes) or 'no changes'})")
        return client

    def update_status(self, client_id: int, data: ClientStatusUpdate, admin: AdminUser) -> Client:
        client = self.get_client(client_id)
        previous = client.status
        client.status = data.status.value
        action = "ARCHIVE" if data.status == ClientStatus.ARCHIVED else "STATUS_CHANGE"
        self.repo.add_audit(self.db, client, action, admin.id, {"from": previous, "to": client.status})
        self.db.commit()
        self.db.refresh(client)
        logger.info(f"🔄 Client {client.id} status {previous} -> {client.status}")
        return client

    def archive_client(self, client_id: int, admin: AdminUser) -> Client:
        """Clients are never physically removed"""
        return self.update_status(client_id, ClientStatusUpdate(status=ClientStatus.ARCHIVED), admin)

    def get_audit_log(self, client_id: int) -> list[dict]:
        self.get_client(client_id)
        return [
            {
                "id": entry.id,
                "action": entry.action,
                "adminId": entry.admin_id,
                "details": entry.details,
                "createdAt": entry.created_at,
            }
            for entry in self.repo.get_audit_log(self.db, client_id)
        ]

    def get_stats(self) -> dict:
        counts = self.repo.count_by_status(self.db)
        by_status = {s.value: counts.get(s.value, 0) for s in ClientStatus}
        return {
            "total": sum(by_status.values()),
            "active": by_status[ClientStatus.ACTIVE.value],
            "byStatus": by_status,
        }

    def export_clients_csv(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        include_archived: bool = False,
    ) -> StreamingResponse:
        """Export clients as CSV"""
        clients = self.repo.all_filtered(
            self.db, tag=tag, status=status, search=search, include_archived=include_archived
        )
        logger.info(f"📊 Exporting {len(clients)} clients")

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "ID",
                "Name",
                "Email",
                "Phone",
                "Company",
                "Status",
                "City",
                "Country",
                "Source",
                "Client Type",
                "Tags",
                "Created At",
            ]
        )
        for client in clients:
            writer.writerow(
                [
                    client.id,
                    client.name,
                    client.email,
                    client.phone or "",
                    client.company or "",
                    client.status,
                    client.city or "",
                    client.country or "",
                    client.source or "",
                    client.client_type or "",
                    ";".join(client.tags or []),
                    client.created_at.strftime("%Y-%m-%d %H:%M:%S") if client.created_at else "",
                ]
            )

        output.seek(0)
        filename = f"clients_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"✅ CSV export successful: {filename} ({len(clients)} clients)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
