"""Billing domain schemas - Pydantic models for proposals and invoices"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models_billing import InvoicePaymentType, PaymentMethod
from ...utils.sanitization import validate_and_sanitize_input


class LineItem(BaseModel):
    description: str
    quantity: float = 1
    unitPrice: float

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if not v or not v.strip():
            raise ValueError("Item description is required")
        return v.strip()

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("unitPrice")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Unit price cannot be negative")
        return v


class PricedDocument(BaseModel):
    """Validators shared by every document carrying line items"""

    @field_validator("items", check_fields=False)
    @classmethod
    def validate_items(cls, v):
        if v is not None and not v:
            raise ValueError("At least one line item is required")
        return v

    @field_validator("taxRate", check_fields=False)
    @classmethod
    def validate_tax_rate(cls, v):
        if v is not None and not 0 <= v <= 100:
            raise ValueError("Tax rate must be between 0 and 100")
        return v

    @field_validator("currency", check_fields=False)
    @classmethod
    def validate_currency(cls, v):
        if v is not None:
            if len(v) != 3 or not v.isalpha():
                raise ValueError("Currency must be a 3-letter ISO code")
            return v.upper()
        return v

    @field_validator("depositAmount", check_fields=False)
    @classmethod
    def validate_deposit(cls, v):
        if v is not None and v < 0:
            raise ValueError("Deposit cannot be negative")
        return v


class ProposalCreate(PricedDocument):
    """Items, title and terms may come from a proposal template instead"""

    clientId: int
    templateId: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    items: Optional[list[LineItem]] = None
    taxRate: float = 0
    depositAmount: float = 0
    currency: str = "GBP"
    validUntil: Optional[date] = None
    notes: Optional[str] = None
    terms: Optional[str] = None

    @model_validator(mode="after")
    def check_content(self):
        if self.templateId is None:
            if not self.items:
                raise ValueError("At least one line item is required")
            if not self.title or not self.title.strip():
                raise ValueError("Title is required")
        return self


class ProposalUpdate(PricedDocument):
    title: Optional[str] = None
    description: Optional[str] = None
    items: Optional[list[LineItem]] = None
    taxRate: Optional[float] = None
    depositAmount: Optional[float] = None
    currency: Optional[str] = None
    validUntil: Optional[date] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class ProposalAccept(BaseModel):
    otp: str

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v):
        v = v.strip()
        if not v.isdigit() or len(v) != 6:
            raise ValueError("Verification code must be 6 digits")
        return v


class ProposalDecline(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def sanitize(cls, v):
        return validate_and_sanitize_input(v, max_length=1000)


class InvoiceCreate(PricedDocument):
    clientId: int
    title: Optional[str] = None
    items: list[LineItem]
    taxRate: float = 0
    currency: str = "GBP"
    paymentTerms: str = "Net 30"
    issueDate: Optional[date] = None
    dueDate: Optional[date] = None
    notes: Optional[str] = None


class InvoiceUpdate(PricedDocument):
    title: Optional[str] = None
    items: Optional[list[LineItem]] = None
    taxRate: Optional[float] = None
    currency: Optional[str] = None
    paymentTerms: Optional[str] = None
    issueDate: Optional[date] = None
    dueDate: Optional[date] = None
    notes: Optional[str] = None


class InvoiceFromProposal(BaseModel):
    paymentType: InvoicePaymentType = InvoicePaymentType.FULL
    paymentTerms: str = "Net 30"
    dueDate: Optional[date] = None
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    invoiceId: int
    amount: float
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    paidAt: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be greater than zero")
        return round(v, 2)

    @field_validator("reference", "notes")
    @classmethod
    def sanitize(cls, v):
        return validate_and_sanitize_input(v, max_length=1000)
