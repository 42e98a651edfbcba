"""Invoice service - billing clients and tracking payment"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailDeliveryError, send_invoice
from ...models import AdminUser, Client
from ...models_billing import Invoice, InvoiceItem, InvoicePaymentType, InvoiceStatus, Proposal, ProposalStatus
from ...shared.money import calculate_due_date, format_money, round_money
from .proposal_service import item_payload, item_rows
from .repository import BillingRepository
from .schemas import InvoiceCreate, InvoiceFromProposal, InvoiceUpdate

logger = logging.getLogger(__name__)

OUTSTANDING = (InvoiceStatus.SENT.value, InvoiceStatus.PARTIAL.value, InvoiceStatus.OVERDUE.value)


def invoice_payload(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "clientId": invoice.client_id,
        "clientName": invoice.client.name if invoice.client else None,
        "proposalId": invoice.proposal_id,
        "title": invoice.title,
        "status": invoice.status,
        "items": [item_payload(i) for i in invoice.items],
        "subtotal": invoice.subtotal,
        "taxRate": invoice.tax_rate,
        "taxAmount": invoice.tax_amount,
        "total": invoice.total,
        "amountPaid": invoice.amount_paid,
        "amountDue": invoice.amount_due,
        "paymentType": invoice.payment_type,
        "currency": invoice.currency,
        "paymentTerms": invoice.payment_terms,
        "issueDate": invoice.issue_date,
        "dueDate": invoice.due_date,
        "notes": invoice.notes,
        "sentAt": invoice.sent_at,
        "paidAt": invoice.paid_at,
        "cancelledAt": invoice.cancelled_at,
        "createdAt": invoice.created_at,
    }


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def _client(self, client_id: int) -> Client:
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def mark_overdue(self) -> int:
        """Flip sent invoices past their due date to OVERDUE"""
        invoices = self.repo.overdue_candidates(
            self.db, date.today(), (InvoiceStatus.SENT.value, InvoiceStatus.PARTIAL.value)
        )
        for invoice in invoices:
            invoice.status = InvoiceStatus.OVERDUE.value
        if invoices:
            self.db.commit()
            logger.info(f"⚠️ {len(invoices)} invoice(s) marked overdue")
        return len(invoices)

    def get_invoice(self, invoice_id: int) -> Invoice:
        self.mark_overdue()
        invoice = self.repo.get_invoice(self.db, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def list_invoices(self, status: Optional[str], client_id: Optional[int], page: int, limit: int):
        self.mark_overdue()
        return self.repo.list_invoices(self.db, status, client_id, page, limit)

    def _new_invoice(
        self,
        client_id: int,
        rows: list[dict],
        tax_rate: float,
        currency: str,
        payment_terms: str,
        admin: AdminUser,
        title: Optional[str] = None,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
        proposal_id: Optional[int] = None,
        payment_type: InvoicePaymentType = InvoicePaymentType.FULL,
    ) -> Invoice:
        issue_date = issue_date or date.today()
        invoice = Invoice(
            invoice_number=self.repo.next_number(self.db, Invoice.invoice_number, "INV"),
            client_id=client_id,
            proposal_id=proposal_id,
            title=title,
            status=InvoiceStatus.DRAFT.value,
            currency=currency,
            payment_terms=payment_terms,
            issue_date=issue_date,
            due_date=due_date or calculate_due_date(payment_terms, issue_date),
            notes=notes,
            payment_type=payment_type.value,
            amount_paid=0,
            created_by=admin.id,
        )
        self.repo.replace_items(invoice, InvoiceItem, rows, tax_rate)
        invoice.amount_due = invoice.total
        return invoice

    def _save(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"📝 Invoice {invoice.invoice_number} created ({format_money(invoice.total, invoice.currency)})")
        return invoice

    def create_invoice(self, data: InvoiceCreate, admin: AdminUser) -> Invoice:
        self._client(data.clientId)
        invoice = self._new_invoice(
            data.clientId,
            item_rows(data.items),
            data.taxRate,
            data.currency,
            data.paymentTerms,
            admin,
            title=data.title,
            issue_date=data.issueDate,
            due_date=data.dueDate,
            notes=data.notes,
        )
        return self._save(invoice)

    def create_from_proposal(self, proposal_id: int, data: InvoiceFromProposal, admin: AdminUser) -> Invoice:
        """
        FULL bills every proposal line. A deposit invoice bills the proposal's
        deposit untaxed; the remainder invoice then bills the rest of the
        subtotal and carries the whole tax amount.
        """
        proposal = self.repo.get_proposal(self.db, proposal_id)
        if not proposal:
            raise HTTPException(status_code=404, detail="Proposal not found")
        if proposal.status != ProposalStatus.ACCEPTED.value:
            raise HTTPException(status_code=400, detail="Only accepted proposals can be invoiced")

        payment_type = data.paymentType
        existing = self.repo.proposal_invoices(self.db, proposal.id, payment_type.value)
        if existing:
            raise HTTPException(
                status_code=400,
                detail=f"A {payment_type.value.lower()} invoice already exists for this proposal",
            )

        if payment_type == InvoicePaymentType.DEPOSIT:
            invoice = self._deposit_invoice(proposal, data, admin)
        elif payment_type == InvoicePaymentType.REMAINDER:
            invoice = self._remainder_invoice(proposal, data, admin)
        else:
            rows = [
                {"description": i.description, "quantity": i.quantity, "unit_price": i.unit_price}
                for i in proposal.items
            ]
            invoice = self._new_invoice(
                proposal.client_id,
                rows,
                proposal.tax_rate,
                proposal.currency,
                data.paymentTerms,
                admin,
                title=proposal.title,
                due_date=data.dueDate,
                notes=data.notes or proposal.notes,
                proposal_id=proposal.id,
            )
        return self._save(invoice)

    def _deposit_invoice(self, proposal: Proposal, data: InvoiceFromProposal, admin: AdminUser) -> Invoice:
        deposit = proposal.deposit_amount or 0
        if deposit <= 0:
            raise HTTPException(status_code=400, detail="This proposal does not have a deposit amount")

        balance = format_money(round_money(proposal.total - deposit), proposal.currency)
        return self._new_invoice(
            proposal.client_id,
            [{"description": f"Deposit - {proposal.title}", "quantity": 1, "unit_price": deposit}],
            0,
            proposal.currency,
            "Due on receipt",
            admin,
            title=f"Deposit for {proposal.title}",
            due_date=data.dueDate,
            notes=data.notes or f"This is a deposit invoice. Remaining balance: {balance}",
            proposal_id=proposal.id,
            payment_type=InvoicePaymentType.DEPOSIT,
        )

    def _remainder_invoice(self, proposal: Proposal, data: InvoiceFromProposal, admin: AdminUser) -> Invoice:
        deposit = proposal.deposit_amount or 0
        remaining_subtotal = round_money(proposal.subtotal - deposit)
        if deposit <= 0 or round_money(proposal.total - deposit) <= 0:
            raise HTTPException(status_code=400, detail="Cannot create remainder invoice for this proposal")

        invoice = self._new_invoice(
            proposal.client_id,
            [{"description": f"Final Payment - {proposal.title}", "quantity": 1, "unit_price": remaining_subtotal}],
            0,
            proposal.currency,
            "Due on receipt",
            admin,
            title=f"Final Invoice - {proposal.title}",
            due_date=data.dueDate,
            notes=data.notes
            or f"This is the final payment invoice. Deposit of {format_money(deposit, proposal.currency)} was previously paid.",
            proposal_id=proposal.id,
            payment_type=InvoicePaymentType.REMAINDER,
        )
        # All of the proposal's tax sits on the remainder
        invoice.tax_rate = proposal.tax_rate
        invoice.tax_amount = proposal.tax_amount
        invoice.total = round_money(remaining_subtotal + proposal.tax_amount)
        invoice.amount_due = invoice.total
        return invoice

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise HTTPException(status_code=400, detail="Only draft invoices can be edited")

        if data.title is not None:
            invoice.title = data.title
        if data.currency is not None:
            invoice.currency = data.currency
        if data.notes is not None:
            invoice.notes = data.notes
        if data.issueDate is not None:
            invoice.issue_date = data.issueDate
        if data.paymentTerms is not None:
            invoice.payment_terms = data.paymentTerms

        # An explicit due date wins over one derived from the terms
        if data.dueDate is not None:
            invoice.due_date = data.dueDate
        elif data.paymentTerms is not None or data.issueDate is not None:
            invoice.due_date = calculate_due_date(invoice.payment_terms, invoice.issue_date)

        if data.items is not None or data.taxRate is not None:
            rows = item_rows(data.items) if data.items is not None else [
                {"description": i.description, "quantity": i.quantity, "unit_price": i.unit_price}
                for i in invoice.items
            ]
            tax_rate = data.taxRate if data.taxRate is not None else invoice.tax_rate
            self.repo.replace_items(invoice, InvoiceItem, rows, tax_rate)
            invoice.amount_due = round_money(max(invoice.total - (invoice.amount_paid or 0), 0))

        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    async def send_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise HTTPException(status_code=400, detail="Only draft invoices can be sent")

        invoice.status = InvoiceStatus.SENT.value
        invoice.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(invoice)

        client = invoice.client
        try:
            await send_invoice(
                client.email,
                client.name,
                invoice.invoice_number,
                format_money(invoice.amount_due, invoice.currency),
                invoice.due_date.strftime("%d %B %Y"),
            )
        except EmailDeliveryError as e:
            logger.error(f"❌ Invoice email for {invoice.invoice_number} failed: {e}")

        logger.info(f"📧 Invoice {invoice.invoice_number} sent to {client.email}")
        return invoice

    def mark_paid(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise HTTPException(status_code=400, detail=f"Invoice is already {invoice.status.lower()}")

        invoice.status = InvoiceStatus.PAID.value
        invoice.amount_paid = invoice.total
        invoice.amount_due = 0
        invoice.paid_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"💰 Invoice {invoice.invoice_number} marked paid")
        return invoice

    @staticmethod
    def apply_payments(invoice: Invoice) -> None:
        """Recompute paid and due amounts from recorded payments; caller commits"""
        paid = round_money(sum(p.amount for p in invoice.payments))
        invoice.amount_paid = paid
        invoice.amount_due = round_money(max(invoice.total - paid, 0))
        if invoice.amount_due <= 0:
            invoice.status = InvoiceStatus.PAID.value
            invoice.paid_at = invoice.paid_at or datetime.utcnow()
        elif paid > 0 and invoice.status != InvoiceStatus.OVERDUE.value:
            invoice.status = InvoiceStatus.PARTIAL.value

    def cancel_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise HTTPException(status_code=400, detail=f"Cannot cancel an invoice that is {invoice.status.lower()}")

        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.cancelled_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"❌ Invoice {invoice.invoice_number} cancelled")
        return invoice

    def get_stats(self) -> dict:
        self.mark_overdue()
        rows = self.repo.count_invoices(self.db)
        by_status = {s.value: rows.get(s.value, (0, 0.0, 0.0))[0] for s in InvoiceStatus}
        outstanding = sum(rows.get(s, (0, 0.0, 0.0))[2] for s in OUTSTANDING)
        overdue = rows.get(InvoiceStatus.OVERDUE.value, (0, 0.0, 0.0))[2]
        paid = self.repo.total_paid(self.db)
        return {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "outstandingAmount": round(outstanding, 2),
            "overdueAmount": round(overdue, 2),
            "paidAmount": round(paid, 2),
        }
