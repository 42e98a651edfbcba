"""Payment service - recording money received against invoices"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AdminUser
from ...models_billing import InvoiceStatus, Payment, PaymentMethod
from ...shared.money import format_money, round_money
from .invoice_service import InvoiceService
from .repository import BillingRepository
from .schemas import PaymentCreate

logger = logging.getLogger(__name__)

NOT_PAYABLE = (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value, InvoiceStatus.PAID.value)


def payment_payload(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "paymentNumber": payment.payment_number,
        "invoiceId": payment.invoice_id,
        "invoiceNumber": payment.invoice.invoice_number if payment.invoice else None,
        "amount": payment.amount,
        "currency": payment.currency,
        "method": payment.method,
        "reference": payment.reference,
        "notes": payment.notes,
        "paidAt": payment.paid_at,
        "createdAt": payment.created_at,
    }


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()
        self.invoices = InvoiceService(db)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    def list_payments(self, invoice_id: Optional[int], method: Optional[str], page: int, limit: int):
        return self.repo.list_payments(self.db, invoice_id, method, page, limit)

    def record_payment(self, data: PaymentCreate, admin: AdminUser) -> Payment:
        """
        Record a payment and move the invoice to PARTIAL or PAID.

        Draft, cancelled and settled invoices take no payments, and a payment
        may not exceed what is still due.
        """
        invoice = self.invoices.get_invoice(data.invoiceId)
        if invoice.status in NOT_PAYABLE:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot record a payment on an invoice that is {invoice.status.lower()}",
            )
        if round_money(data.amount) > round_money(invoice.amount_due):
            raise HTTPException(status_code=400, detail="Payment exceeds the amount due")

        payment = Payment(
            payment_number=self.repo.next_number(self.db, Payment.payment_number, "PAY"),
            invoice_id=invoice.id,
            amount=data.amount,
            currency=invoice.currency,
            method=data.method.value,
            reference=data.reference,
            notes=data.notes,
            paid_at=data.paidAt or datetime.utcnow(),
            recorded_by=admin.id,
        )
        invoice.payments.append(payment)
        self.invoices.apply_payments(invoice)
        self.db.commit()
        self.db.refresh(payment)

        logger.info(
            f"💰 Payment {payment.payment_number} of {format_money(payment.amount, payment.currency)} "
            f"recorded on {invoice.invoice_number} ({invoice.status})"
        )
        return payment

    def get_stats(self) -> dict:
        rows = self.repo.count_payments(self.db)
        by_method = {m.value: rows.get(m.value, (0, 0.0))[0] for m in PaymentMethod}
        return {
            "count": sum(by_method.values()),
            "totalAmount": round(sum(total for _, total in rows.values()), 2),
            "byMethod": by_method,
        }
