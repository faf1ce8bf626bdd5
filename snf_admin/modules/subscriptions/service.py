"""Service for bulk delivery-agency assignment of subscriptions."""

import logging

from snf_admin.core.backend import BackendClient, unwrap_envelope
from snf_admin.core.config import settings
from snf_admin.modules.subscriptions.schemas import (
    AssignableSubscription,
    AssignableSubscriptions,
    AssignmentFilter,
    BulkAssignAgencyRequest,
)

logger = logging.getLogger(__name__)


def assignable_subscriptions(
    subscriptions: list[AssignableSubscription],
    assignment: AssignmentFilter = "unassigned",
) -> AssignableSubscriptions:
    """Only PAID subscriptions can be assigned; counts are over all paid ones."""
    paid = [s for s in subscriptions if s.payment_status == "PAID"]
    assigned = [s for s in paid if s.is_assigned]
    if assignment == "unassigned":
        selected = [s for s in paid if not s.is_assigned]
    elif assignment == "assigned":
        selected = assigned
    else:
        selected = paid
    return AssignableSubscriptions(
        subscriptions=selected,
        total_paid=len(paid),
        assigned_count=len(assigned),
        unassigned_count=len(paid) - len(assigned),
    )


class SubscriptionService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def assignable(
        self, assignment: AssignmentFilter = "unassigned", product_order_id: int | None = None
    ) -> AssignableSubscriptions:
        if product_order_id is not None:
            payload = await self.client.get(f"/api/product-orders/{product_order_id}")
            order = unwrap_envelope(payload) or {}
            rows = order.get("subscriptions") or []
        else:
            payload = await self.client.get(
                "/api/subscriptions", params={"page": 1, "limit": settings.max_report_rows}
            )
            rows = unwrap_envelope(payload) or []
            if isinstance(rows, dict):
                rows = rows.get("subscriptions") or []
        subs = [AssignableSubscription.model_validate(r) for r in rows]
        return assignable_subscriptions(subs, assignment)

    async def bulk_assign_agency(self, data: BulkAssignAgencyRequest) -> int:
        await self.client.post(
            "/api/subscriptions/bulk-assign-agency",
            json={"subscriptionIds": data.subscription_ids, "agencyId": data.agency_id},
        )
        logger.info(
            "Assigned agency %s to %s subscription(s)", data.agency_id, len(data.subscription_ids)
        )
        return len(data.subscription_ids)
