"""
Public signing flow

magic link -> OTP by email -> short-lived signing session -> sign or decline.
Each step revalidates the previous one; a session is bound to one signer of
one envelope and is cleared once that signer signs or declines.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailDeliveryError, send_contract_signed_emails, send_signing_otp
from ...models_envelopes import Envelope, EnvelopeStatus, Signature, Signer, SignerStatus, SigningWorkflow
from ...security_utils import constant_time_compare, generate_hex_token, generate_otp, sha256_hex
from .repository import EnvelopeRepository
from .schemas import DeclineRequest, OtpRequest, OtpVerify, SignRequest
from .service import (
    ACTIVE_STATUSES,
    document_payload,
    invite_signer,
    next_sequential_signer,
    signature_hash,
)

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=10)
MAX_FAILED_ATTEMPTS = 5
SESSION_TTL = timedelta(hours=24)
SESSION_EXTENSION = timedelta(hours=1)


class SigningContext:
    """Caller details recorded against audit rows and signatures"""

    def __init__(self, ip_address: Optional[str] = None, user_agent: Optional[str] = None):
        self.ip_address = ip_address
        self.user_agent = (user_agent or "")[:500] or None


def _invalid_link(message: str, expired: bool = False, not_found: bool = False) -> HTTPException:
    return HTTPException(
        status_code=400, detail={"message": message, "expired": expired, "notFound": not_found}
    )


class SigningService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = EnvelopeRepository()

    def _audit(self, signer: Signer, action: str, ctx: SigningContext, details: Optional[dict] = None) -> None:
        self.repo.add_audit(
            self.db,
            signer.envelope_id,
            action,
            signer_id=signer.id,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            details=details,
        )

    def _expire_if_due(self, envelope: Envelope) -> None:
        if (
            envelope.status in ACTIVE_STATUSES
            and envelope.expires_at
            and envelope.expires_at < datetime.utcnow()
        ):
            envelope.status = EnvelopeStatus.EXPIRED.value
            self.db.commit()
            logger.info(f"⚠️ Envelope {envelope.id} expired")

    # ------------------------------------------------------------ magic link

    def validate_token(self, token: str, allow_locked: bool = False) -> Signer:
        """
        Resolve a magic link to a signer who may still act on it.

        A signer locked out by failed codes can still ask for a new code
        (allow_locked), which clears the count.
        """
        signer = self.repo.get_signer_by_token(self.db, token)
        if not signer:
            raise _invalid_link("Invalid signing link", not_found=True)

        if signer.magic_link_expires_at and signer.magic_link_expires_at < datetime.utcnow():
            raise _invalid_link("This signing link has expired", expired=True)

        if signer.status == SignerStatus.SIGNED.value:
            raise _invalid_link("You have already signed this document")
        if signer.status == SignerStatus.DECLINED.value:
            raise _invalid_link("You have declined to sign this document")

        envelope = signer.envelope
        self._expire_if_due(envelope)
        if envelope.status not in ACTIVE_STATUSES:
            raise _invalid_link(
                "This document is no longer available for signing",
                expired=envelope.status == EnvelopeStatus.EXPIRED.value,
            )

        if not allow_locked and (signer.failed_attempts or 0) >= MAX_FAILED_ATTEMPTS:
            raise _invalid_link("Too many failed verification attempts. Please request a new code.")

        return signer

    async def request_otp(self, data: OtpRequest, ctx: SigningContext) -> Signer:
        signer = self.validate_token(data.token, allow_locked=True)
        if not constant_time_compare(signer.email.lower(), data.email.lower()):
            logger.warning(f"⚠️ OTP requested with mismatched email for signer {signer.id}")
            raise HTTPException(status_code=400, detail="Email address does not match this signing link")

        otp = generate_otp()
        signer.otp_hash = sha256_hex(otp)
        signer.otp_expires_at = datetime.utcnow() + OTP_TTL
        signer.failed_attempts = 0
        self._audit(signer, "OTP_REQUESTED", ctx)
        self.db.commit()

        try:
            await send_signing_otp(signer.email, signer.name, otp)
        except EmailDeliveryError as e:
            logger.error(f"❌ OTP email to {signer.email} failed: {e}")
            raise HTTPException(status_code=502, detail="Could not send verification code. Please try again.")

        logger.info(f"🔐 Signing OTP issued for signer {signer.id}")
        return signer

    def verify_otp(self, data: OtpVerify, ctx: SigningContext) -> Signer:
        signer = self.validate_token(data.token)

        if not signer.otp_hash or not signer.otp_expires_at or signer.otp_expires_at < datetime.utcnow():
            raise HTTPException(status_code=400, detail="Verification code has expired. Please request a new one.")

        if not constant_time_compare(sha256_hex(data.otp), signer.otp_hash):
            signer.failed_attempts = (signer.failed_attempts or 0) + 1
            remaining = max(MAX_FAILED_ATTEMPTS - signer.failed_attempts, 0)
            self._audit(signer, "OTP_FAILED", ctx, {"attemptsRemaining": remaining})
            self.db.commit()
            logger.warning(f"⚠️ Wrong OTP for signer {signer.id} ({remaining} attempts left)")
            raise HTTPException(
                status_code=400,
                detail={"message": "Invalid verification code", "attemptsRemaining": remaining},
            )

        signer.otp_hash = None
        signer.otp_expires_at = None
        signer.failed_attempts = 0
        signer.session_id = generate_hex_token(16)
        signer.session_expires_at = datetime.utcnow() + SESSION_TTL
        self._audit(signer, "OTP_VERIFIED", ctx)
        self.db.commit()
        logger.info(f"✅ Signing session opened for signer {signer.id}")
        return signer

    # --------------------------------------------------------------- session

    def get_session_signer(self, envelope_id: int, session_id: Optional[str]) -> Signer:
        if not session_id:
            raise HTTPException(status_code=401, detail="Signing session required")

        signer = self.repo.get_signer_by_session(self.db, envelope_id, session_id)
        if not signer:
            raise HTTPException(status_code=401, detail="Invalid signing session")
        if not signer.session_expires_at or signer.session_expires_at < datetime.utcnow():
            raise HTTPException(status_code=401, detail="Signing session has expired. Please verify again.")

        self._expire_if_due(signer.envelope)
        if signer.envelope.status not in ACTIVE_STATUSES:
            raise HTTPException(status_code=400, detail="This document is no longer available for signing")
        return signer

    def view(self, envelope_id: int, session_id: Optional[str], ctx: SigningContext) -> dict:
        signer = self.get_session_signer(envelope_id, session_id)
        envelope = signer.envelope

        if signer.status == SignerStatus.PENDING.value:
            signer.status = SignerStatus.VIEWED.value
            signer.viewed_at = datetime.utcnow()
            self._audit(signer, "SIGNER_VIEWED", ctx)
        if envelope.status == EnvelopeStatus.PENDING.value:
            envelope.status = EnvelopeStatus.IN_PROGRESS.value
            self._audit(signer, "ENVELOPE_VIEWED", ctx)
        self.db.commit()

        return {
            "envelope": {
                "id": envelope.id,
                "name": envelope.name,
                "description": envelope.description,
                "status": envelope.status,
                "signingWorkflow": envelope.signing_workflow,
                "expiresAt": envelope.expires_at,
            },
            "documents": [document_payload(d) for d in envelope.documents],
            "signer": {
                "id": signer.id,
                "name": signer.name,
                "email": signer.email,
                "status": signer.status,
                "canSign": self.can_sign(envelope, signer),
            },
            "sessionExpiresAt": signer.session_expires_at,
        }

    def extend_session(self, envelope_id: int, session_id: Optional[str]) -> Signer:
        signer = self.get_session_signer(envelope_id, session_id)
        signer.session_expires_at = max(signer.session_expires_at, datetime.utcnow()) + SESSION_EXTENSION
        self.db.commit()
        return signer

    # ------------------------------------------------------------ sign/decline

    @staticmethod
    def can_sign(envelope: Envelope, signer: Signer) -> bool:
        """Sequential envelopes require every earlier signer to have signed"""
        if envelope.signing_workflow != SigningWorkflow.SEQUENTIAL.value:
            return True
        return all(
            other.status == SignerStatus.SIGNED.value
            for other in envelope.signers
            if other.sequence_number < signer.sequence_number
        )

    async def sign(self, envelope_id: int, data: SignRequest, ctx: SigningContext) -> dict:
        signer = self.get_session_signer(envelope_id, data.sessionId)
        envelope = signer.envelope

        if signer.status in (SignerStatus.SIGNED.value, SignerStatus.DECLINED.value):
            raise HTTPException(status_code=400, detail="You have already responded to this document")
        if not constant_time_compare(signer.email.lower(), data.signerEmail.lower()):
            raise HTTPException(status_code=400, detail="Signer email does not match")
        if not self.can_sign(envelope, signer):
            raise HTTPException(status_code=400, detail="Waiting for previous signers to complete")
        if data.documentId and not self.repo.get_document(self.db, envelope.id, data.documentId):
            raise HTTPException(status_code=404, detail="Document not found in this envelope")

        signed_at = datetime.utcnow()
        digest = signature_hash(data.signatureDataUrl, signer.email, signed_at)
        self.db.add(
            Signature(
                signer_id=signer.id,
                document_id=data.documentId,
                signature_data_url=data.signatureDataUrl,
                initials=data.initials,
                signature_hash=digest,
                page=data.page,
                x=data.x,
                y=data.y,
                signed_at=signed_at,
            )
        )

        signer.status = SignerStatus.SIGNED.value
        signer.signed_at = signed_at
        signer.signer_ip = ctx.ip_address
        signer.signer_user_agent = ctx.user_agent
        signer.session_id = None
        signer.session_expires_at = None
        self._audit(signer, "SIGNER_SIGNED", ctx, {"signatureHash": digest, "signerName": data.signerName})

        completed = all(s.status == SignerStatus.SIGNED.value for s in envelope.signers)
        if completed:
            envelope.status = EnvelopeStatus.COMPLETED.value
            envelope.completed_at = signed_at
            self._audit(signer, "ENVELOPE_COMPLETED", ctx, {"totalSigners": len(envelope.signers)})
        self.db.commit()
        logger.info(f"✍️ Signer {signer.id} signed envelope {envelope.id}{' (completed)' if completed else ''}")

        if not completed and envelope.signing_workflow == SigningWorkflow.SEQUENTIAL.value:
            upcoming = next_sequential_signer(envelope)
            if upcoming:
                await invite_signer(upcoming, envelope)

        try:
            await send_contract_signed_emails(
                signer.email, signer.name, envelope.name, signed_at.strftime("%d %B %Y %H:%M UTC"), completed
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ Signed confirmation emails failed for envelope {envelope.id}: {e}")

        return {
            "envelopeId": envelope.id,
            "signerId": signer.id,
            "signedAt": signed_at,
            "signatureHash": digest,
            "envelopeCompleted": completed,
        }

    def decline(self, envelope_id: int, data: DeclineRequest, ctx: SigningContext) -> Signer:
        signer = self.get_session_signer(envelope_id, data.sessionId)
        envelope = signer.envelope
        if signer.status in (SignerStatus.SIGNED.value, SignerStatus.DECLINED.value):
            raise HTTPException(status_code=400, detail="You have already responded to this document")

        now = datetime.utcnow()
        signer.status = SignerStatus.DECLINED.value
        signer.declined_at = now
        signer.declined_reason = data.reason
        signer.session_id = None
        signer.session_expires_at = None
        envelope.status = EnvelopeStatus.CANCELLED.value
        envelope.cancelled_at = now
        self._audit(signer, "SIGNER_DECLINED", ctx, {"reason": data.reason})
        self._audit(signer, "ENVELOPE_CANCELLED", ctx, {"reason": "Signer declined"})
        self.db.commit()
        logger.info(f"❌ Signer {signer.id} declined envelope {envelope.id}")
        return signer
