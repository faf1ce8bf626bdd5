"""Tests for bulk delivery-agency assignment."""

import json

import pytest
from httpx import AsyncClient
from pydantic import ValidationError as PydanticValidationError

from snf_admin.modules.subscriptions.schemas import AssignableSubscription, BulkAssignAgencyRequest
from snf_admin.modules.subscriptions.service import assignable_subscriptions

SUBSCRIPTIONS = [
    {"id": 1, "paymentStatus": "PAID", "agencyId": None},
    {"id": 2, "paymentStatus": "PAID", "agencyId": 3},
    {"id": 3, "paymentStatus": "PENDING", "agencyId": None},
    {"id": 4, "paymentStatus": "PAID", "agency": {"id": 5, "name": "Fresh"}},
]


def _subs() -> list[AssignableSubscription]:
    return [AssignableSubscription.model_validate(s) for s in SUBSCRIPTIONS]


class TestAssignableSubscriptions:
    def test_unassigned_paid_only(self):
        result = assignable_subscriptions(_subs(), "unassigned")
        assert [s.id for s in result.subscriptions] == [1]
        assert (result.total_paid, result.assigned_count, result.unassigned_count) == (3, 2, 1)

    def test_assigned_and_all(self):
        assert [s.id for s in assignable_subscriptions(_subs(), "assigned").subscriptions] == [2, 4]
        assert [s.id for s in assignable_subscriptions(_subs(), "all").subscriptions] == [1, 2, 4]


class TestBulkAssignRequest:
    def test_ids_required_and_unique(self):
        with pytest.raises(PydanticValidationError):
            BulkAssignAgencyRequest(subscription_ids=[], agency_id=3)
        with pytest.raises(PydanticValidationError, match="unique"):
            BulkAssignAgencyRequest(subscription_ids=[1, 1], agency_id=3)

    def test_null_agency_clears(self):
        assert BulkAssignAgencyRequest(subscription_ids=[1]).agency_id is None


class TestBulkAssignApi:
    async def test_forwards_to_backend(self, client: AsyncClient, backend, admin_headers):
        backend.add("POST", "/api/subscriptions/bulk-assign-agency", {"success": True})
        response = await client.post(
            "/api/v1/subscriptions/bulk-assign-agency",
            json={"subscription_ids": [1, 2], "agency_id": None},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Successfully assigned agency to 2 subscription(s)"
        sent = json.loads(backend.requests[0].content)
        assert sent == {"subscriptionIds": [1, 2], "agencyId": None}

    async def test_empty_selection_rejected(self, client: AsyncClient, backend, admin_headers):
        response = await client.post(
            "/api/v1/subscriptions/bulk-assign-agency",
            json={"subscription_ids": [], "agency_id": 3},
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert backend.requests == []

    async def test_assignable_from_product_order(self, client: AsyncClient, backend, admin_headers):
        backend.add("GET", "/api/product-orders/9", {"id": 9, "subscriptions": SUBSCRIPTIONS})
        response = await client.get(
            "/api/v1/subscriptions/assignable",
            params={"product_order_id": 9, "assignment": "all"},
            headers=admin_headers,
        )
        data = response.json()["data"]
        assert [s["id"] for s in data["subscriptions"]] == [1, 2, 4]
        assert data["unassigned_count"] == 1

    async def test_requires_admin(self, client: AsyncClient, agency_headers):
        response = await client.post(
            "/api/v1/subscriptions/bulk-assign-agency",
            json={"subscription_ids": [1], "agency_id": 3},
            headers=agency_headers,
        )
        assert response.status_code == 403
