"""API for subscription agency assignment."""

from fastapi import APIRouter, Query

from snf_admin.core.auth.dependencies import AdminUser
from snf_admin.core.backend import Backend
from snf_admin.modules.subscriptions.schemas import (
    AssignableSubscriptions,
    AssignmentFilter,
    BulkAssignAgencyRequest,
    BulkAssignAgencyResponse,
)
from snf_admin.modules.subscriptions.service import SubscriptionService
from snf_admin.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get("/assignable", response_model=ApiResponse[AssignableSubscriptions])
async def list_assignable_subscriptions(
    client: Backend,
    current_user: AdminUser,
    assignment: AssignmentFilter = Query("unassigned"),
    product_order_id: int | None = Query(None),
):
    """Paid subscriptions available for agency assignment, with assigned/unassigned counts."""
    result = await SubscriptionService(client).assignable(assignment, product_order_id)
    return ApiResponse(success=True, data=result)


@router.post("/bulk-assign-agency", response_model=ApiResponse[BulkAssignAgencyResponse])
async def bulk_assign_agency(
    data: BulkAssignAgencyRequest, client: Backend, current_user: AdminUser
):
    updated = await SubscriptionService(client).bulk_assign_agency(data)
    return ApiResponse(
        success=True,
        message=f"Successfully assigned agency to {updated} subscription(s)",
        data=BulkAssignAgencyResponse(updated_count=updated, agency_id=data.agency_id),
    )
