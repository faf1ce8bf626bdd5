"""Service for Purchase Payments."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from snf_admin.core.backend import BackendClient, unwrap_envelope
from snf_admin.core.exceptions import ValidationError
from snf_admin.modules.purchase_payments.schemas import (
    PurchasePaymentCreate,
    PurchasePaymentResponse,
    VendorPurchase,
)

logger = logging.getLogger(__name__)

API_BASE_URL = "/api/admin/purchase-payments"


def check_outstanding(
    data: PurchasePaymentCreate,
    purchases: list[VendorPurchase],
    already_paid: dict[int, Decimal] | None = None,
) -> None:
    """
    Each detail must reference a purchase of the vendor and stay within its
    outstanding balance. already_paid adds back amounts of the payment being edited.
    """
    by_id = {p.id: p for p in purchases}
    already_paid = already_paid or {}
    for detail in data.paid_details:
        purchase = by_id.get(detail.purchase_id)
        if purchase is None:
            raise ValidationError(
                f"Purchase {detail.purchase_id} does not belong to the selected vendor",
                field="details",
            )
        allowed = purchase.outstanding + already_paid.get(purchase.id, Decimal("0"))
        if detail.amount > allowed:
            raise ValidationError(
                f"Amount for purchase {purchase.purchase_no or purchase.id} exceeds outstanding balance",
                field="details",
            )


def to_backend_payload(data: PurchasePaymentCreate) -> dict[str, Any]:
    """Backend body; zero-amount details are dropped and the total is recomputed."""
    return {
        "paymentDate": data.payment_date.isoformat(),
        "vendorId": data.vendor_id,
        "mode": data.mode,
        "referenceNo": data.reference_no,
        "notes": data.notes or None,
        "totalAmount": float(data.total_amount),
        "details": [
            {"purchaseId": d.purchase_id, "amount": float(d.amount)} for d in data.paid_details
        ],
    }


class PurchasePaymentService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def list_payments(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> tuple[list[PurchasePaymentResponse], int]:
        payload = await self.client.get(
            API_BASE_URL,
            params={
                "page": page,
                "limit": limit,
                "search": search,
                "sortBy": sort_by,
                "sortOrder": sort_order,
            },
        )
        payload = payload or {}
        payments = [PurchasePaymentResponse.model_validate(p) for p in payload.get("payments") or []]
        total = payload.get("totalRecords")
        if total is None:
            total_pages = payload.get("totalPages", 1)
            if total_pages <= 1:
                total = len(payments)
            else:
                # Upper bound; the last page may hold fewer rows
                total = total_pages * limit
        return payments, total

    async def get_payment(self, payment_id: int) -> PurchasePaymentResponse:
        payload = await self.client.get(f"{API_BASE_URL}/{payment_id}")
        return PurchasePaymentResponse.model_validate(unwrap_envelope(payload))

    async def vendor_purchases(
        self,
        vendor_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[VendorPurchase]:
        payload = await self.client.get(
            f"/api/admin/vendors/{vendor_id}/purchases",
            params={
                "startDate": start_date.isoformat() if start_date else None,
                "endDate": end_date.isoformat() if end_date else None,
            },
        )
        rows = unwrap_envelope(payload) or []
        return [VendorPurchase.model_validate(r) for r in rows]

    async def create_payment(self, data: PurchasePaymentCreate) -> PurchasePaymentResponse:
        check_outstanding(data, await self.vendor_purchases(data.vendor_id))
        payload = await self.client.post(API_BASE_URL, json=to_backend_payload(data))
        payment = PurchasePaymentResponse.model_validate(unwrap_envelope(payload))
        logger.info(
            "Purchase payment %s recorded for vendor %s: %s",
            payment.id, data.vendor_id, data.total_amount,
        )
        return payment

    async def update_payment(
        self, payment_id: int, data: PurchasePaymentCreate
    ) -> PurchasePaymentResponse:
        existing = await self.get_payment(payment_id)
        already_paid: dict[int, Decimal] = {}
        for detail in existing.details:
            purchase_id = detail.resolved_purchase_id
            if purchase_id is not None:
                already_paid[purchase_id] = already_paid.get(purchase_id, Decimal("0")) + detail.amount
        check_outstanding(data, await self.vendor_purchases(data.vendor_id), already_paid)
        payload = await self.client.put(f"{API_BASE_URL}/{payment_id}", json=to_backend_payload(data))
        return PurchasePaymentResponse.model_validate(unwrap_envelope(payload))

    async def delete_payment(self, payment_id: int) -> None:
        await self.client.delete(f"{API_BASE_URL}/{payment_id}")
        logger.info("Purchase payment %s deleted", payment_id)
