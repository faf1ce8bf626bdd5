"""API for Purchase Payments."""

from datetime import date

from fastapi import APIRouter, Query, status

from snf_admin.core.auth.dependencies import AdminUser
from snf_admin.core.backend import Backend
from snf_admin.modules.purchase_payments.schemas import (
    PurchasePaymentCreate,
    PurchasePaymentResponse,
    VendorPurchase,
)
from snf_admin.modules.purchase_payments.service import PurchasePaymentService
from snf_admin.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/purchase-payments", tags=["Purchase Payments"])


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[PurchasePaymentResponse]],
)
async def list_purchase_payments(
    client: Backend,
    current_user: AdminUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query(None, pattern="^(asc|desc)$"),
):
    """List purchase payments."""
    payments, total = await PurchasePaymentService(client).list_payments(
        page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(items=payments, total=total, page=page, limit=limit),
    )


@router.get(
    "/vendors/{vendor_id}/purchases",
    response_model=ApiResponse[list[VendorPurchase]],
)
async def list_vendor_purchases(
    vendor_id: int,
    client: Backend,
    current_user: AdminUser,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    """Purchases of a vendor with outstanding balances (payment form source)."""
    purchases = await PurchasePaymentService(client).vendor_purchases(vendor_id, start_date, end_date)
    return ApiResponse(success=True, data=purchases)


@router.get("/{payment_id}", response_model=ApiResponse[PurchasePaymentResponse])
async def get_purchase_payment(payment_id: int, client: Backend, current_user: AdminUser):
    return ApiResponse(data=await PurchasePaymentService(client).get_payment(payment_id))


@router.post(
    "",
    response_model=ApiResponse[PurchasePaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase_payment(
    data: PurchasePaymentCreate, client: Backend, current_user: AdminUser
):
    """Record a payment; amounts may not exceed each purchase's outstanding balance."""
    payment = await PurchasePaymentService(client).create_payment(data)
    return ApiResponse(success=True, message="Payment recorded", data=payment)


@router.put("/{payment_id}", response_model=ApiResponse[PurchasePaymentResponse])
async def update_purchase_payment(
    payment_id: int, data: PurchasePaymentCreate, client: Backend, current_user: AdminUser
):
    payment = await PurchasePaymentService(client).update_payment(payment_id, data)
    return ApiResponse(success=True, message="Payment updated", data=payment)


@router.delete("/{payment_id}", response_model=ApiResponse[None])
async def delete_purchase_payment(payment_id: int, client: Backend, current_user: AdminUser):
    await PurchasePaymentService(client).delete_payment(payment_id)
    return ApiResponse(success=True, message="Payment deleted", data=None)
