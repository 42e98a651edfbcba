"""Proposal service - quoting and client acceptance"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailDeliveryError, send_proposal, send_proposal_otp
from ...models import AdminUser, Client
from ...models_billing import Proposal, ProposalItem, ProposalStatus
from ...security_utils import constant_time_compare, generate_otp, sha256_hex
from ...shared.money import format_money
from ..templates.service import ProposalTemplateService
from .repository import BillingRepository
from .schemas import ProposalAccept, ProposalCreate, ProposalDecline, ProposalUpdate

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=15)
MAX_OTP_ATTEMPTS = 5
RESPONDABLE = (ProposalStatus.SENT.value, ProposalStatus.VIEWED.value)


def item_rows(items) -> list[dict]:
    return [{"description": i.description, "quantity": i.quantity, "unit_price": i.unitPrice} for i in items]


def item_payload(item) -> dict:
    return {
        "id": item.id,
        "description": item.description,
        "quantity": item.quantity,
        "unitPrice": item.unit_price,
        "amount": item.amount,
        "position": item.position,
    }


def proposal_payload(proposal: Proposal, public: bool = False) -> dict:
    payload = {
        "id": proposal.id,
        "proposalNumber": proposal.proposal_number,
        "clientId": proposal.client_id,
        "clientName": proposal.client.name if proposal.client else None,
        "title": proposal.title,
        "description": proposal.description,
        "status": proposal.status,
        "items": [item_payload(i) for i in proposal.items],
        "subtotal": proposal.subtotal,
        "taxRate": proposal.tax_rate,
        "taxAmount": proposal.tax_amount,
        "total": proposal.total,
        "depositAmount": proposal.deposit_amount,
        "currency": proposal.currency,
        "validUntil": proposal.valid_until,
        "notes": proposal.notes,
        "terms": proposal.terms,
        "sentAt": proposal.sent_at,
        "viewedAt": proposal.viewed_at,
        "acceptedAt": proposal.accepted_at,
        "declinedAt": proposal.declined_at,
    }
    if not public:
        payload["declinedReason"] = proposal.declined_reason
        payload["createdAt"] = proposal.created_at
    return payload


class ProposalService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def _client(self, client_id: int) -> Client:
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = self.repo.get_proposal(self.db, proposal_id)
        if not proposal:
            raise HTTPException(status_code=404, detail="Proposal not found")
        return proposal

    def _require_draft(self, proposal: Proposal, action: str) -> None:
        if proposal.status != ProposalStatus.DRAFT.value:
            raise HTTPException(status_code=400, detail=f"Only draft proposals can be {action}")

    def list_proposals(self, status: Optional[str], client_id: Optional[int], page: int, limit: int):
        return self.repo.list_proposals(self.db, status, client_id, page, limit)

    @staticmethod
    def _check_deposit(proposal: Proposal) -> None:
        if (proposal.deposit_amount or 0) > proposal.total:
            raise HTTPException(status_code=400, detail="Deposit cannot exceed the proposal total")

    def create_proposal(self, data: ProposalCreate, admin: AdminUser) -> Proposal:
        """Anything left out of the request is filled from the template, when one is given"""
        self._client(data.clientId)

        title, terms, description = data.title, data.terms, data.description
        rows = item_rows(data.items) if data.items else []
        if data.templateId is not None:
            template = ProposalTemplateService(self.db).get_active_template(data.templateId)
            title = title or template.title or template.name
            terms = terms or template.default_terms
            description = description or template.description
            if not rows:
                rows = [
                    {"description": i.description, "quantity": i.quantity, "unit_price": i.unit_price}
                    for i in template.items
                ]
        if not rows:
            raise HTTPException(status_code=400, detail="At least one line item is required")

        proposal = Proposal(
            proposal_number=self.repo.next_number(self.db, Proposal.proposal_number, "PROP"),
            client_id=data.clientId,
            title=title.strip(),
            description=description,
            status=ProposalStatus.DRAFT.value,
            currency=data.currency,
            deposit_amount=data.depositAmount,
            valid_until=data.validUntil or date.today() + timedelta(days=30),
            notes=data.notes,
            terms=terms,
            created_by=admin.id,
        )
        self.repo.replace_items(proposal, ProposalItem, rows, data.taxRate)
        self._check_deposit(proposal)
        self.db.add(proposal)
        self.db.commit()
        self.db.refresh(proposal)
        logger.info(f"📝 Proposal {proposal.proposal_number} created ({format_money(proposal.total, proposal.currency)})")
        return proposal

    def update_proposal(self, proposal_id: int, data: ProposalUpdate) -> Proposal:
        proposal = self.get_proposal(proposal_id)
        self._require_draft(proposal, "edited")

        if data.title is not None:
            proposal.title = data.title.strip()
        if data.description is not None:
            proposal.description = data.description
        if data.currency is not None:
            proposal.currency = data.currency
        if data.validUntil is not None:
            proposal.valid_until = data.validUntil
        if data.notes is not None:
            proposal.notes = data.notes
        if data.terms is not None:
            proposal.terms = data.terms

        if data.items is not None or data.taxRate is not None:
            rows = item_rows(data.items) if data.items is not None else [
                {"description": i.description, "quantity": i.quantity, "unit_price": i.unit_price}
                for i in proposal.items
            ]
            tax_rate = data.taxRate if data.taxRate is not None else proposal.tax_rate
            self.repo.replace_items(proposal, ProposalItem, rows, tax_rate)
        if data.depositAmount is not None:
            proposal.deposit_amount = data.depositAmount
        self._check_deposit(proposal)

        self.db.commit()
        self.db.refresh(proposal)
        return proposal

    async def send_proposal(self, proposal_id: int) -> Proposal:
        proposal = self.get_proposal(proposal_id)
        self._require_draft(proposal, "sent")

        proposal.status = ProposalStatus.SENT.value
        proposal.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(proposal)

        client = proposal.client
        try:
            await send_proposal(
                client.email,
                client.name,
                proposal.proposal_number,
                proposal.title,
                format_money(proposal.total, proposal.currency),
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ Proposal email for {proposal.proposal_number} failed: {e}")

        logger.info(f"📧 Proposal {proposal.proposal_number} sent to {client.email}")
        return proposal

    def delete_proposal(self, proposal_id: int) -> None:
        proposal = self.get_proposal(proposal_id)
        self._require_draft(proposal, "deleted")
        self.db.delete(proposal)
        self.db.commit()
        logger.info(f"🗑️ Proposal {proposal.proposal_number} deleted")

    def get_stats(self) -> dict:
        rows = self.repo.count_proposals(self.db)
        by_status = {s.value: rows.get(s.value, (0, 0.0))[0] for s in ProposalStatus}
        accepted_value = rows.get(ProposalStatus.ACCEPTED.value, (0, 0.0))[1]
        decided = by_status[ProposalStatus.ACCEPTED.value] + by_status[ProposalStatus.DECLINED.value]
        return {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "acceptedValue": round(accepted_value, 2),
            "acceptanceRate": round(by_status[ProposalStatus.ACCEPTED.value] / decided * 100, 1) if decided else 0.0,
        }

    # ------------------------------------------------------------ public flow

    def _public_proposal(self, number: str) -> Proposal:
        proposal = self.repo.get_proposal_by_number(self.db, number)
        if not proposal or proposal.status == ProposalStatus.DRAFT.value:
            raise HTTPException(status_code=404, detail="Proposal not found")

        if (
            proposal.status in RESPONDABLE
            and proposal.valid_until
            and proposal.valid_until < date.today()
        ):
            proposal.status = ProposalStatus.EXPIRED.value
            self.db.commit()
            logger.info(f"⚠️ Proposal {proposal.proposal_number} expired")
        return proposal

    def _require_respondable(self, proposal: Proposal) -> None:
        if proposal.status not in RESPONDABLE:
            raise HTTPException(
                status_code=400, detail=f"This proposal is {proposal.status.lower()} and can no longer be answered"
            )

    def view_public(self, number: str) -> Proposal:
        proposal = self._public_proposal(number)
        if proposal.status == ProposalStatus.SENT.value:
            proposal.status = ProposalStatus.VIEWED.value
            proposal.viewed_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(proposal)
            logger.info(f"👀 Proposal {proposal.proposal_number} viewed")
        return proposal

    async def request_otp(self, number: str) -> Proposal:
        proposal = self._public_proposal(number)
        self._require_respondable(proposal)

        otp = generate_otp()
        proposal.otp_hash = sha256_hex(otp)
        proposal.otp_expires_at = datetime.utcnow() + OTP_TTL
        proposal.otp_attempts = 0
        self.db.commit()

        client = proposal.client
        try:
            await send_proposal_otp(client.email, client.name, proposal.proposal_number, otp)
        except EmailDeliveryError as e:
            logger.error(f"❌ Proposal OTP email for {proposal.proposal_number} failed: {e}")
            raise HTTPException(status_code=502, detail="Could not send verification code. Please try again.")

        logger.info(f"🔐 Acceptance code issued for {proposal.proposal_number}")
        return proposal

    def accept(self, number: str, data: ProposalAccept, ip_address: Optional[str], user_agent: Optional[str]) -> Proposal:
        proposal = self._public_proposal(number)
        self._require_respondable(proposal)

        if not proposal.otp_hash or not proposal.otp_expires_at or proposal.otp_expires_at < datetime.utcnow():
            raise HTTPException(status_code=401, detail="Verification code has expired. Please request a new one.")
        if proposal.otp_attempts >= MAX_OTP_ATTEMPTS:
            raise HTTPException(status_code=401, detail="Too many failed attempts. Please request a new code.")

        if not constant_time_compare(sha256_hex(data.otp), proposal.otp_hash):
            proposal.otp_attempts = (proposal.otp_attempts or 0) + 1
            self.db.commit()
            logger.warning(f"⚠️ Wrong acceptance code for {proposal.proposal_number}")
            raise HTTPException(
                status_code=401,
                detail={
                    "message": "Invalid verification code",
                    "attemptsRemaining": max(MAX_OTP_ATTEMPTS - proposal.otp_attempts, 0),
                },
            )

        proposal.status = ProposalStatus.ACCEPTED.value
        proposal.accepted_at = datetime.utcnow()
        proposal.otp_hash = None
        proposal.otp_expires_at = None
        proposal.signature_ip = ip_address
        proposal.signature_agent = (user_agent or "")[:500] or None
        self.db.commit()
        self.db.refresh(proposal)
        logger.info(f"✅ Proposal {proposal.proposal_number} accepted")
        return proposal

    def decline(self, number: str, data: ProposalDecline) -> Proposal:
        proposal = self._public_proposal(number)
        self._require_respondable(proposal)

        proposal.status = ProposalStatus.DECLINED.value
        proposal.declined_at = datetime.utcnow()
        proposal.declined_reason = data.reason
        proposal.otp_hash = None
        self.db.commit()
        self.db.refresh(proposal)
        logger.info(f"❌ Proposal {proposal.proposal_number} declined")
        return proposal
