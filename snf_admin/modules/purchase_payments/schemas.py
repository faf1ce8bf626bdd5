"""Schemas for Purchase Payments (payments to milk vendors against purchases)."""

from datetime import date
from decimal import Decimal

from pydantic import Field, field_validator, model_validator

from snf_admin.shared.schemas.base import BaseSchema, UpstreamSchema

PAYMENT_MODES = ("CASH", "NEFT", "CHEQUE", "UPI")


class PurchasePaymentDetailCreate(BaseSchema):
    """Amount paid against one purchase."""

    purchase_id: int
    amount: Decimal = Field(..., ge=0)


class PurchasePaymentCreate(BaseSchema):
    """Schema for recording a purchase payment."""

    payment_date: date
    vendor_id: int
    mode: str = Field(..., min_length=1)
    reference_no: str = Field(..., min_length=1, max_length=200)
    notes: str | None = None
    details: list[PurchasePaymentDetailCreate] = Field(..., min_length=1)

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in PAYMENT_MODES:
            raise ValueError(f"Payment mode must be one of {', '.join(PAYMENT_MODES)}")
        return v

    @model_validator(mode="after")
    def validate_amounts(self):
        if self.total_amount <= 0:
            raise ValueError("Enter at least one payment amount")
        return self

    @property
    def total_amount(self) -> Decimal:
        return sum((d.amount for d in self.details), Decimal("0"))

    @property
    def paid_details(self) -> list[PurchasePaymentDetailCreate]:
        return [d for d in self.details if d.amount > 0]


class VendorRef(UpstreamSchema):
    id: int
    name: str = ""


class PurchaseRef(UpstreamSchema):
    id: int
    purchase_no: str = ""
    invoice_no: str = ""
    purchase_date: str | None = None
    invoice_date: str | None = None


class PurchasePaymentDetailResponse(UpstreamSchema):
    id: int | None = None
    purchase_id: int | None = None
    amount: Decimal = Decimal("0")
    purchase: PurchaseRef | None = None

    @property
    def resolved_purchase_id(self) -> int | None:
        if self.purchase_id is not None:
            return self.purchase_id
        return self.purchase.id if self.purchase else None


class PurchasePaymentResponse(UpstreamSchema):
    """Purchase payment as returned by the backend."""

    id: int
    payment_date: str
    vendor_id: int | None = None
    vendor: VendorRef | None = None
    mode: str = ""
    reference_no: str | None = None
    notes: str | None = None
    total_amount: Decimal = Decimal("0")
    details: list[PurchasePaymentDetailResponse] = []


class VendorPurchase(UpstreamSchema):
    """A vendor purchase with its outstanding balance."""

    id: int
    purchase_no: str = ""
    purchase_date: str | None = None
    invoice_no: str = ""
    invoice_date: str | None = None
    total_amount: Decimal = Decimal("0")
    paid_amt: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")
