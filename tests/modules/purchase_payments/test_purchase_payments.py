"""Tests for Purchase Payments API and validation."""

import json
from decimal import Decimal

import pytest
from httpx import AsyncClient
from pydantic import ValidationError as PydanticValidationError

from snf_admin.modules.purchase_payments.schemas import PurchasePaymentCreate
from snf_admin.modules.purchase_payments.service import to_backend_payload

PURCHASES = [
    {"id": 11, "purchaseNo": "PUR-11", "totalAmount": 500, "paidAmt": 100, "outstanding": 400},
    {"id": 12, "purchaseNo": "PUR-12", "totalAmount": 300, "paidAmt": 0, "outstanding": 300},
]


def _payment(**overrides) -> dict:
    body = {
        "payment_date": "2024-01-15",
        "vendor_id": 7,
        "mode": "NEFT",
        "reference_no": "UTR123",
        "details": [{"purchase_id": 11, "amount": 150}, {"purchase_id": 12, "amount": 0}],
    }
    body.update(overrides)
    return body


class TestPurchasePaymentSchema:
    def test_total_and_zero_amounts_dropped(self):
        data = PurchasePaymentCreate.model_validate(_payment())
        assert data.total_amount == Decimal("150")
        payload = to_backend_payload(data)
        assert payload["paymentDate"] == "2024-01-15"
        assert payload["totalAmount"] == 150.0
        assert payload["details"] == [{"purchaseId": 11, "amount": 150.0}]

    def test_zero_total_rejected(self):
        with pytest.raises(PydanticValidationError, match="Enter at least one payment amount"):
            PurchasePaymentCreate.model_validate(
                _payment(details=[{"purchase_id": 11, "amount": 0}])
            )

    @pytest.mark.parametrize(
        "overrides",
        [
            {"reference_no": ""},
            {"mode": ""},
            {"details": []},
            {"details": [{"purchase_id": 11, "amount": -5}]},
        ],
    )
    def test_required_fields(self, overrides):
        with pytest.raises(PydanticValidationError):
            PurchasePaymentCreate.model_validate(_payment(**overrides))

    def test_payment_date_required(self):
        body = _payment()
        del body["payment_date"]
        with pytest.raises(PydanticValidationError):
            PurchasePaymentCreate.model_validate(body)


class TestCreatePurchasePayment:
    async def test_records_payment(self, client: AsyncClient, backend, admin_headers):
        backend.add("GET", "/api/admin/vendors/7/purchases", PURCHASES)
        backend.add(
            "POST",
            "/api/admin/purchase-payments",
            {"data": {"id": 3, "paymentDate": "2024-01-15", "vendorId": 7, "mode": "NEFT", "totalAmount": 150}},
        )
        response = await client.post("/api/v1/purchase-payments", json=_payment(), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["message"] == "Payment recorded"
        sent = json.loads(backend.calls("POST", "/api/admin/purchase-payments")[0].content)
        assert sent["totalAmount"] == 150
        assert sent["referenceNo"] == "UTR123"
        assert len(sent["details"]) == 1

    async def test_exceeding_outstanding_rejected(self, client: AsyncClient, backend, admin_headers):
        backend.add("GET", "/api/admin/vendors/7/purchases", PURCHASES)
        response = await client.post(
            "/api/v1/purchase-payments",
            json=_payment(details=[{"purchase_id": 12, "amount": 301}]),
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert response.json()["message"] == "Amount for purchase PUR-12 exceeds outstanding balance"
        assert backend.calls("POST", "/api/admin/purchase-payments") == []

    async def test_unknown_purchase_rejected(self, client: AsyncClient, backend, admin_headers):
        backend.add("GET", "/api/admin/vendors/7/purchases", PURCHASES)
        response = await client.post(
            "/api/v1/purchase-payments",
            json=_payment(details=[{"purchase_id": 99, "amount": 10}]),
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_missing_reference_no(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/purchase-payments", json=_payment(reference_no=""), headers=admin_headers
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "reference_no"


class TestUpdatePurchasePayment:
    async def test_own_amount_added_back(self, client: AsyncClient, backend, admin_headers):
        """Editing a payment may re-use the amount it already applied to a purchase."""
        backend.add(
            "GET",
            "/api/admin/purchase-payments/3",
            {"id": 3, "paymentDate": "2024-01-15", "totalAmount": 100,
             "details": [{"amount": 100, "purchase": {"id": 12, "purchaseNo": "PUR-12"}}]},
        )
        backend.add("GET", "/api/admin/vendors/7/purchases", PURCHASES)
        backend.add("PUT", "/api/admin/purchase-payments/3", {"id": 3, "paymentDate": "2024-01-15", "totalAmount": 380})
        response = await client.put(
            "/api/v1/purchase-payments/3",
            json=_payment(details=[{"purchase_id": 12, "amount": 380}]),
            headers=admin_headers,
        )
        assert response.status_code == 200


class TestListAndLookup:
    async def test_list(self, client: AsyncClient, backend, admin_headers):
        backend.add(
            "GET",
            "/api/admin/purchase-payments",
            {"payments": [{"id": 3, "paymentDate": "2024-01-15", "vendor": {"id": 7, "name": "Ravi"}}],
             "totalPages": 1, "totalRecords": 1},
        )
        response = await client.get("/api/v1/purchase-payments", headers=admin_headers)
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["vendor"]["name"] == "Ravi"

    async def test_total_without_total_records(self, client: AsyncClient, backend, admin_headers):
        backend.add(
            "GET",
            "/api/admin/purchase-payments",
            {"payments": [{"id": 3, "paymentDate": "2024-01-15"}], "totalPages": 1},
        )
        response = await client.get("/api/v1/purchase-payments", params={"limit": 10}, headers=admin_headers)
        assert response.json()["data"]["total"] == 1

    async def test_vendor_purchases(self, client: AsyncClient, backend, admin_headers):
        backend.add("GET", "/api/admin/vendors/7/purchases", PURCHASES)
        response = await client.get(
            "/api/v1/purchase-payments/vendors/7/purchases",
            params={"start_date": "2024-01-15", "end_date": "2024-01-15"},
            headers=admin_headers,
        )
        assert [p["outstanding"] for p in response.json()["data"]] == ["400", "300"]
        assert backend.requests[0].url.params["startDate"] == "2024-01-15"

    async def test_delete(self, client: AsyncClient, backend, admin_headers):
        backend.add("DELETE", "/api/admin/purchase-payments/3", {"success": True})
        response = await client.delete("/api/v1/purchase-payments/3", headers=admin_headers)
        assert response.status_code == 200
