"""Envelope service - admin side of contract signing"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailDeliveryError, send_signing_invitation
from ...models import AdminUser, Client
from ...models_envelopes import (
    Envelope,
    EnvelopeDocument,
    EnvelopeStatus,
    Signature,
    Signer,
    SignerStatus,
    SigningWorkflow,
)
from ...security_utils import constant_time_compare, generate_hex_token, sha256_hex
from .repository import EnvelopeRepository
from .schemas import DocumentCreate, EnvelopeCreate, EnvelopeUpdate, SignerCreate

logger = logging.getLogger(__name__)

MAGIC_LINK_DAYS = 7
ACTIVE_STATUSES = (EnvelopeStatus.PENDING.value, EnvelopeStatus.IN_PROGRESS.value)


def signature_hash(data_url: str, email: str, signed_at: datetime) -> str:
    """Binds the signature image to the signer and the moment of signing"""
    return sha256_hex(f"{data_url}|{email.lower()}|{signed_at.isoformat()}")


def signer_payload(signer: Signer) -> dict:
    return {
        "id": signer.id,
        "name": signer.name,
        "email": signer.email,
        "role": signer.role,
        "sequenceNumber": signer.sequence_number,
        "status": signer.status,
        "viewedAt": signer.viewed_at,
        "signedAt": signer.signed_at,
        "declinedAt": signer.declined_at,
        "declinedReason": signer.declined_reason,
    }


def document_payload(document: EnvelopeDocument) -> dict:
    return {
        "id": document.id,
        "name": document.name,
        "fileName": document.file_name,
        "filePath": document.file_path,
        "fileHash": document.file_hash,
        "fileSize": document.file_size,
    }


def envelope_payload(envelope: Envelope, include_audit: bool = False) -> dict:
    payload = {
        "id": envelope.id,
        "name": envelope.name,
        "description": envelope.description,
        "status": envelope.status,
        "signingWorkflow": envelope.signing_workflow,
        "clientId": envelope.client_id,
        "expiresAt": envelope.expires_at,
        "sentAt": envelope.sent_at,
        "completedAt": envelope.completed_at,
        "cancelledAt": envelope.cancelled_at,
        "createdAt": envelope.created_at,
        "signers": [signer_payload(s) for s in envelope.signers],
        "documents": [document_payload(d) for d in envelope.documents],
    }
    if include_audit:
        payload["auditLog"] = [
            {
                "action": log.action,
                "signerId": log.signer_id,
                "ipAddress": log.ip_address,
                "details": log.details,
                "createdAt": log.created_at,
            }
            for log in envelope.audit_logs
        ]
    return payload


def next_sequential_signer(envelope: Envelope) -> Optional[Signer]:
    """Lowest-sequence signer that has not signed yet"""
    waiting = [s for s in envelope.signers if s.status in (SignerStatus.PENDING.value, SignerStatus.VIEWED.value)]
    return min(waiting, key=lambda s: s.sequence_number) if waiting else None


async def invite_signer(signer: Signer, envelope: Envelope) -> bool:
    try:
        await send_signing_invitation(signer.email, signer.name, envelope.name, signer.magic_link_token)
        logger.info(f"📧 Signing invitation sent to {signer.email} for envelope {envelope.id}")
        return True
    except EmailDeliveryError as e:
        logger.error(f"❌ Signing invitation to {signer.email} failed: {e}")
        return False


class EnvelopeService:
    """Service layer for envelope business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EnvelopeRepository()

    def get_envelope(self, envelope_id: int) -> Envelope:
        envelope = self.repo.get_by_id(self.db, envelope_id)
        if not envelope:
            raise HTTPException(status_code=404, detail="Envelope not found")
        return envelope

    def _require_draft(self, envelope: Envelope, action: str) -> None:
        if envelope.status != EnvelopeStatus.DRAFT.value:
            raise HTTPException(
                status_code=400, detail=f"Cannot {action} an envelope in {envelope.status} status"
            )

    def _check_client(self, client_id: Optional[int]) -> None:
        if client_id and not self.db.query(Client).filter(Client.id == client_id).first():
            raise HTTPException(status_code=404, detail="Client not found")

    def list_envelopes(self, status: Optional[str], page: int, limit: int):
        return self.repo.list_envelopes(self.db, status, page, limit)

    def create_envelope(self, data: EnvelopeCreate, admin: AdminUser) -> Envelope:
        self._check_client(data.clientId)
        envelope = self.repo.create(
            self.db,
            name=data.name,
            description=data.description,
            signing_workflow=data.signingWorkflow.value,
            client_id=data.clientId,
            expires_at=data.expiresAt,
            status=EnvelopeStatus.DRAFT.value,
            created_by=admin.id,
        )
        self.repo.add_audit(self.db, envelope.id, "ENVELOPE_CREATED", details={"name": envelope.name})
        self.db.commit()
        self.db.refresh(envelope)
        logger.info(f"📝 Envelope {envelope.id} created by {admin.email}")
        return envelope

    def update_envelope(self, envelope_id: int, data: EnvelopeUpdate) -> Envelope:
        envelope = self.get_envelope(envelope_id)
        self._require_draft(envelope, "update")
        self._check_client(data.clientId)

        if data.name is not None:
            envelope.name = data.name
        if data.description is not None:
            envelope.description = data.description
        if data.signingWorkflow is not None:
            envelope.signing_workflow = data.signingWorkflow.value
        if data.clientId is not None:
            envelope.client_id = data.clientId
        if data.expiresAt is not None:
            envelope.expires_at = data.expiresAt
        self.db.commit()
        self.db.refresh(envelope)
        return envelope

    def add_document(self, envelope_id: int, data: DocumentCreate) -> EnvelopeDocument:
        envelope = self.get_envelope(envelope_id)
        self._require_draft(envelope, "add documents to")

        document = EnvelopeDocument(
            envelope_id=envelope.id,
            name=data.name,
            file_name=data.fileName,
            file_path=data.filePath,
            file_hash=data.fileHash,
            file_size=data.fileSize,
        )
        self.db.add(document)
        self.db.flush()
        self.repo.add_audit(
            self.db,
            envelope.id,
            "DOCUMENT_ADDED",
            details={"documentId": document.id, "fileName": data.fileName, "fileSize": data.fileSize},
        )
        self.db.commit()
        self.db.refresh(document)
        return document

    def remove_document(self, envelope_id: int, document_id: int) -> None:
        envelope = self.get_envelope(envelope_id)
        self._require_draft(envelope, "remove documents from")
        document = self.repo.get_document(self.db, envelope.id, document_id)
        if not document:
            raise HTTPException(status_code=404, detail="Document not found in this envelope")

        self.db.delete(document)
        self.repo.add_audit(
            self.db, envelope.id, "DOCUMENT_REMOVED", details={"documentId": document_id, "fileName": document.file_name}
        )
        self.db.commit()

    def add_signer(self, envelope_id: int, data: SignerCreate) -> Signer:
        envelope = self.get_envelope(envelope_id)
        self._require_draft(envelope, "add signers to")
        if self.repo.get_signer_by_email(self.db, envelope.id, data.email):
            raise HTTPException(status_code=409, detail="Signer with this email already exists in this envelope")

        signer = Signer(
            envelope_id=envelope.id,
            name=data.name.strip(),
            email=data.email,
            role=data.role,
            sequence_number=data.sequenceNumber or self.repo.next_sequence_number(self.db, envelope.id),
            status=SignerStatus.PENDING.value,
        )
        self.db.add(signer)
        self.db.flush()
        self.repo.add_audit(
            self.db,
            envelope.id,
            "SIGNER_ADDED",
            signer_id=signer.id,
            details={"signerEmail": signer.email, "signerName": signer.name, "role": signer.role},
        )
        self.db.commit()
        self.db.refresh(signer)
        return signer

    def remove_signer(self, envelope_id: int, signer_id: int) -> None:
        envelope = self.get_envelope(envelope_id)
        if envelope.status != EnvelopeStatus.DRAFT.value:
            raise HTTPException(status_code=400, detail="Signers cannot be removed once the envelope is sent")
        signer = self.repo.get_signer(self.db, envelope.id, signer_id)
        if not signer:
            raise HTTPException(status_code=404, detail="Signer not found in this envelope")

        self.repo.add_audit(
            self.db, envelope.id, "SIGNER_REMOVED", details={"signerId": signer_id, "signerEmail": signer.email}
        )
        self.db.delete(signer)
        self.db.commit()

    async def send_envelope(self, envelope_id: int, admin: AdminUser) -> Envelope:
        """Issue magic links and invite signers; sequential envelopes invite only the first"""
        envelope = self.get_envelope(envelope_id)
        self._require_draft(envelope, "send")
        if not envelope.signers:
            raise HTTPException(status_code=400, detail="Envelope must have at least one signer")
        if not envelope.documents:
            raise HTTPException(status_code=400, detail="Envelope must have at least one document")

        link_expiry = datetime.utcnow() + timedelta(days=MAGIC_LINK_DAYS)
        for signer in envelope.signers:
            signer.magic_link_token = generate_hex_token(32)
            signer.magic_link_expires_at = link_expiry
            signer.failed_attempts = 0

        envelope.status = EnvelopeStatus.PENDING.value
        envelope.sent_at = datetime.utcnow()
        self.repo.add_audit(
            self.db,
            envelope.id,
            "ENVELOPE_SENT",
            details={"signerCount": len(envelope.signers), "workflow": envelope.signing_workflow, "sentBy": admin.email},
        )
        self.db.commit()
        self.db.refresh(envelope)

        if envelope.signing_workflow == SigningWorkflow.SEQUENTIAL.value:
            recipients = [next_sequential_signer(envelope)]
        else:
            recipients = list(envelope.signers)
        for signer in recipients:
            await invite_signer(signer, envelope)

        logger.info(f"✅ Envelope {envelope.id} sent to {len(recipients)} signer(s)")
        return envelope

    def cancel_envelope(self, envelope_id: int, admin: AdminUser) -> Envelope:
        envelope = self.get_envelope(envelope_id)
        if envelope.status in (EnvelopeStatus.COMPLETED.value, EnvelopeStatus.CANCELLED.value):
            raise HTTPException(status_code=400, detail=f"Cannot cancel an envelope in {envelope.status} status")

        envelope.status = EnvelopeStatus.CANCELLED.value
        envelope.cancelled_at = datetime.utcnow()
        for signer in envelope.signers:
            signer.session_id = None
            signer.session_expires_at = None
        self.repo.add_audit(self.db, envelope.id, "ENVELOPE_CANCELLED", details={"cancelledBy": admin.email})
        self.db.commit()
        self.db.refresh(envelope)
        logger.info(f"❌ Envelope {envelope.id} cancelled by {admin.email}")
        return envelope

    def verify_signatures(self, envelope_id: int) -> list[dict]:
        """Recompute each stored signature hash and compare"""
        envelope = self.get_envelope(envelope_id)
        results = []
        for signer in envelope.signers:
            for signature in signer.signatures:
                expected = signature_hash(signature.signature_data_url, signer.email, signature.signed_at)
                valid = constant_time_compare(expected, signature.signature_hash)
                results.append({"signatureId": signature.id, "signerId": signer.id, "valid": valid})
                self.repo.add_audit(
                    self.db,
                    envelope.id,
                    "SIGNATURE_VERIFIED",
                    signer_id=signer.id,
                    details={"signatureId": signature.id, "valid": valid},
                )
                if not valid:
                    logger.warning(f"⚠️ Signature {signature.id} on envelope {envelope.id} failed integrity check")
        self.db.commit()
        return results

    def get_stats(self) -> dict:
        counts = self.repo.count_by_status(self.db)
        by_status = {s.value: counts.get(s.value, 0) for s in EnvelopeStatus}
        return {
            "total": sum(by_status.values()),
            "awaitingSignature": by_status[EnvelopeStatus.PENDING.value] + by_status[EnvelopeStatus.IN_PROGRESS.value],
            "byStatus": by_status,
            "signatures": self.db.query(Signature).count(),
        }
