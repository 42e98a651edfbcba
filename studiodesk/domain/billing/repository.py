"""Billing repository - Database operations for proposals, invoices and payments"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models_billing import Invoice, InvoiceStatus, Payment, Proposal
from ...shared.money import calculate_totals, next_document_number


class BillingRepository:
    """Repository for proposal and invoice database operations"""

    @staticmethod
    def next_number(db: Session, column, prefix: str) -> str:
        year = date.today().year
        existing = db.query(column).filter(column.like(f"{prefix}-{year}-%")).all()
        return next_document_number(prefix, [row[0] for row in existing], year)

    @staticmethod
    def replace_items(document, item_model, rows: list[dict], tax_rate: float) -> None:
        """Swap line items (dicts of description, quantity, unit_price) and recompute totals"""
        totals = calculate_totals(rows, tax_rate)

        document.items = [
            item_model(
                description=row["description"],
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                amount=amount,
                position=position,
            )
            for position, (row, amount) in enumerate(zip(rows, totals["amounts"]))
        ]
        document.tax_rate = tax_rate
        document.subtotal = totals["subtotal"]
        document.tax_amount = totals["tax_amount"]
        document.total = totals["total"]

    # ------------------------------------------------------------ proposals

    @staticmethod
    def get_proposal(db: Session, proposal_id: int) -> Optional[Proposal]:
        return (
            db.query(Proposal)
            .options(selectinload(Proposal.items))
            .filter(Proposal.id == proposal_id)
            .first()
        )

    @staticmethod
    def get_proposal_by_number(db: Session, number: str) -> Optional[Proposal]:
        return (
            db.query(Proposal)
            .options(selectinload(Proposal.items))
            .filter(Proposal.proposal_number == number)
            .first()
        )

    @staticmethod
    def list_proposals(
        db: Session, status: Optional[str] = None, client_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> tuple[list[Proposal], int]:
        query = db.query(Proposal)
        if status:
            query = query.filter(Proposal.status == status)
        if client_id:
            query = query.filter(Proposal.client_id == client_id)
        total = query.count()
        items = (
            query.options(selectinload(Proposal.items))
            .order_by(Proposal.created_at.desc(), Proposal.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def count_proposals(db: Session) -> dict[str, tuple[int, float]]:
        rows = (
            db.query(Proposal.status, func.count(Proposal.id), func.coalesce(func.sum(Proposal.total), 0))
            .group_by(Proposal.status)
            .all()
        )
        return {status: (count, float(total)) for status, count, total in rows}

    # ------------------------------------------------------------- invoices

    @staticmethod
    def get_invoice(db: Session, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(selectinload(Invoice.items))
            .filter(Invoice.id == invoice_id)
            .first()
        )

    @staticmethod
    def list_invoices(
        db: Session, status: Optional[str] = None, client_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> tuple[list[Invoice], int]:
        query = db.query(Invoice)
        if status:
            query = query.filter(Invoice.status == status)
        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        total = query.count()
        items = (
            query.options(selectinload(Invoice.items))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def overdue_candidates(db: Session, today: date, statuses: tuple) -> list[Invoice]:
        return db.query(Invoice).filter(Invoice.status.in_(statuses), Invoice.due_date < today).all()

    @staticmethod
    def count_invoices(db: Session) -> dict[str, tuple[int, float, float]]:
        rows = (
            db.query(
                Invoice.status,
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.total), 0),
                func.coalesce(func.sum(Invoice.amount_due), 0),
            )
            .group_by(Invoice.status)
            .all()
        )
        return {status: (count, float(total), float(due)) for status, count, total, due in rows}

    @staticmethod
    def proposal_invoices(db: Session, proposal_id: int, payment_type: str) -> list[Invoice]:
        return (
            db.query(Invoice)
            .filter(
                Invoice.proposal_id == proposal_id,
                Invoice.payment_type == payment_type,
                Invoice.status != InvoiceStatus.CANCELLED.value,
            )
            .all()
        )

    @staticmethod
    def total_paid(db: Session) -> float:
        return float(db.query(func.coalesce(func.sum(Invoice.amount_paid), 0)).scalar())

    # ------------------------------------------------------------- payments

    @staticmethod
    def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def list_payments(
        db: Session,
        invoice_id: Optional[int] = None,
        method: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Payment], int]:
        query = db.query(Payment)
        if invoice_id:
            query = query.filter(Payment.invoice_id == invoice_id)
        if method:
            query = query.filter(Payment.method == method)
        total = query.count()
        items = (
            query.order_by(Payment.paid_at.desc(), Payment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def count_payments(db: Session) -> dict[str, tuple[int, float]]:
        rows = (
            db.query(Payment.method, func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
            .group_by(Payment.method)
            .all()
        )
        return {method: (count, float(total)) for method, count, total in rows}
