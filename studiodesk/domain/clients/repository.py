"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Client, ClientAuditLog, ClientStatus

SORTABLE_COLUMNS = {
    "name": Client.name,
    "email": Client.email,
    "company": Client.company,
    "status": Client.status,
    "createdAt": Client.created_at,
    "updatedAt": Client.updated_at,
}


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def _filtered(
        db: Session,
        status: Optional[str] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
    ):
        query = db.query(Client)
        if status:
            query = query.filter(Client.status == status)
        elif not include_archived:
            query = query.filter(Client.status != ClientStatus.ARCHIVED.value)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Client.name.ilike(pattern),
                    Client.email.ilike(pattern),
                    Client.company.ilike(pattern),
                    Client.phone.ilike(pattern),
                )
            )
        return query

    @staticmethod
    def search_clients(
        db: Session,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        tag: Optional[str] = None,
        **filters,
    ) -> tuple[list[Client], int]:
        """Paginated, sorted client search"""
        query = ClientRepository._filtered(db, **filters)
        column = SORTABLE_COLUMNS.get(sort_by, Client.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        clients = query.order_by(ordering, Client.id.desc()).all()

        # Tags live in a JSON column; filter in Python to stay portable across databases
        if tag:
            clients = [c for c in clients if tag in (c.tags or [])]

        total = len(clients)
        start = (page - 1) * limit
        return clients[start:start + limit], total

    @staticmethod
    def all_filtered(db: Session, tag: Optional[str] = None, **filters) -> list[Client]:
        clients = ClientRepository._filtered(db, **filters).order_by(Client.created_at.desc()).all()
        if tag:
            clients = [c for c in clients if tag in (c.tags or [])]
        return clients

    @staticmethod
    def get_client_by_id(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def get_client_by_email(db: Session, email: str) -> Optional[Client]:
        return db.query(Client).filter(func.lower(Client.email) == email.lower()).first()

    @staticmethod
    def create_client(db: Session, **client_data) -> Client:
        client = Client(**client_data)
        db.add(client)
        db.flush()
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)
        return client

    @staticmethod
    def add_audit(
        db: Session, client: Client, action: str, admin_id: Optional[int], details: Optional[dict] = None
    ) -> ClientAuditLog:
        entry = ClientAuditLog(client_id=client.id, action=action, admin_id=admin_id, details=details or {})
        db.add(entry)
        return entry

    @staticmethod
    def get_audit_log(db: Session, client_id: int) -> list[ClientAuditLog]:
        return (
            db.query(ClientAuditLog)
            .filter(ClientAuditLog.client_id == client_id)
            .order_by(ClientAuditLog.created_at.desc(), ClientAuditLog.id.desc())
            .all()
        )

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(Client.status, func.count(Client.id)).group_by(Client.status).all()
        return dict(rows)
