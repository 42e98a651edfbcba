"""Envelope repository - Database operations for envelopes and signers"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models_envelopes import Envelope, EnvelopeAuditLog, EnvelopeDocument, Signer


class EnvelopeRepository:
    """Repository for envelope database operations"""

    @staticmethod
    def get_by_id(db: Session, envelope_id: int) -> Optional[Envelope]:
        return (
            db.query(Envelope)
            .options(selectinload(Envelope.signers), selectinload(Envelope.documents))
            .filter(Envelope.id == envelope_id)
            .first()
        )

    @staticmethod
    def list_envelopes(
        db: Session, status: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> tuple[list[Envelope], int]:
        query = db.query(Envelope)
        if status:
            query = query.filter(Envelope.status == status)
        total = query.count()
        items = (
            query.options(selectinload(Envelope.signers), selectinload(Envelope.documents))
            .order_by(Envelope.created_at.desc(), Envelope.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def create(db: Session, **data) -> Envelope:
        envelope = Envelope(**data)
        db.add(envelope)
        db.flush()
        return envelope

    @staticmethod
    def get_document(db: Session, envelope_id: int, document_id: int) -> Optional[EnvelopeDocument]:
        return (
            db.query(EnvelopeDocument)
            .filter(EnvelopeDocument.id == document_id, EnvelopeDocument.envelope_id == envelope_id)
            .first()
        )

    @staticmethod
    def get_signer(db: Session, envelope_id: int, signer_id: int) -> Optional[Signer]:
        return db.query(Signer).filter(Signer.id == signer_id, Signer.envelope_id == envelope_id).first()

    @staticmethod
    def get_signer_by_email(db: Session, envelope_id: int, email: str) -> Optional[Signer]:
        return db.query(Signer).filter(Signer.envelope_id == envelope_id, Signer.email == email).first()

    @staticmethod
    def get_signer_by_token(db: Session, token: str) -> Optional[Signer]:
        return (
            db.query(Signer)
            .options(joinedload(Signer.envelope))
            .filter(Signer.magic_link_token == token)
            .first()
        )

    @staticmethod
    def get_signer_by_session(db: Session, envelope_id: int, session_id: str) -> Optional[Signer]:
        return (
            db.query(Signer)
            .options(joinedload(Signer.envelope))
            .filter(Signer.envelope_id == envelope_id, Signer.session_id == session_id)
            .first()
        )

    @staticmethod
    def next_sequence_number(db: Session, envelope_id: int) -> int:
        current = db.query(func.max(Signer.sequence_number)).filter(Signer.envelope_id == envelope_id).scalar()
        return (current or 0) + 1

    @staticmethod
    def add_audit(
        db: Session,
        envelope_id: int,
        action: str,
        signer_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> EnvelopeAuditLog:
        entry = EnvelopeAuditLog(
            envelope_id=envelope_id,
            signer_id=signer_id,
            action=action,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details or {},
        )
        db.add(entry)
        return entry

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        return dict(db.query(Envelope.status, func.count(Envelope.id)).group_by(Envelope.status).all())
