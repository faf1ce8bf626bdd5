from datetime import date
from decimal import Decimal

import pytest

from snf_admin.core.auth import CurrentUser
from snf_admin.core.exceptions import ValidationError
from snf_admin.modules.reports.schemas import PurchaseOrderFilters, SaleRegisterRow
from snf_admin.modules.reports.service import (
    ReportsService,
    default_range,
    extract_pincode,
    normalize_sale_register_row,
)


class TestNormalizeSaleRegisterRow:
    def test_nested_fallbacks(self):
        row = normalize_sale_register_row(
            {
                "member": {"id": 12, "name": "Asha"},
                "totalAmount": "500",
                "refund": 50,
                "deliveryAddress": {"fullAddress": "12 MG Road, Pune 411001", "mobile": "98765"},
                "DepotProductVariant": {"name": "1L"},
                "subscription": {"startDate": "2024-01-15"},
            }
        )
        assert row.name == "Asha"
        assert row.customer_id == 12
        assert row.sale_amount == Decimal("500")
        assert row.refund_amount == Decimal("50")
        assert row.net_amount == Decimal("450")
        assert row.address == "12 MG Road, Pune 411001"
        assert row.pincode == "411001"
        assert row.mobile == "98765"
        assert row.variant == "1L"
        assert row.subscription_start_date == "15/01/2024"

    def test_explicit_values_win(self):
        row = normalize_sale_register_row(
            {"name": "Ravi", "receivedamt": 300, "amount": 999, "netAmount": 280, "pincode": "400001",
             "address": "Flat 4", "depot": {"name": "Main"}}
        )
        assert row.sale_amount == Decimal("300")
        assert row.net_amount == Decimal("280")
        assert row.pincode == "400001"
        assert row.depot == "Main"

    def test_empty_record(self):
        row = normalize_sale_register_row({})
        assert row.name == ""
        assert row.net_amount == Decimal("0")
        assert row.subscription_start_date == ""

    def test_extract_pincode(self):
        assert extract_pincode("Pune 411001 India") == "411001"
        assert extract_pincode("Plot 12345") == ""
        assert extract_pincode(None) == ""


class TestDefaultRange:
    def test_fills_missing_ends(self):
        start, end = default_range(None, date(2024, 1, 31), days_back=30)
        assert end == date(2024, 1, 31)
        assert (date.today() - start).days == 30


class TestResolveMissingDepots:
    async def test_lookups_by_pincode(self, backend):
        backend.add(
            "GET", "/api/public/area-masters/by-pincode/411001",
            {"success": True, "data": [{"name": "Kothrud", "depot": {"name": "Pune Depot"}}]},
        )
        backend.add("GET", "/api/public/area-masters/by-pincode/400001", {"message": "down"}, status_code=500)
        rows = [
            SaleRegisterRow(name="A", pincode="411001"),
            SaleRegisterRow(name="B", pincode="411001"),
            SaleRegisterRow(name="C", pincode="400001"),
            SaleRegisterRow(name="D", pincode="411001", depot="Existing"),
            SaleRegisterRow(name="E", pincode="12"),
        ]
        async with backend.client("tok") as client:
            resolved = await ReportsService(client).resolve_missing_depots(rows)

        assert [r.depot for r in resolved] == ["Pune Depot", "Pune Depot", "", "Existing", ""]
        # one lookup per distinct pincode
        assert len(backend.calls("GET", "/api/public/area-masters/by-pincode/411001")) == 1
        assert rows[0].depot == ""


class TestRoleScoping:
    async def test_vendor_locked_to_own_farmer_id(self, backend):
        backend.add("GET", "/api/reports/purchase-orders", {"data": {"report": [], "totals": None}})
        vendor = CurrentUser(id=1, role="VENDOR", vendor_id=7)
        async with backend.client("tok") as client:
            await ReportsService(client).purchase_orders(PurchaseOrderFilters(farmer_id=99), vendor)
        assert backend.requests[0].url.params["farmerId"] == "7"

    async def test_admin_must_pick_depot_for_labels(self, backend):
        admin = CurrentUser(id=1, role="ADMIN")
        async with backend.client("tok") as client:
            with pytest.raises(ValidationError, match="Select a depot"):
                await ReportsService(client).delivery_labeling(admin, date(2024, 1, 15), None)
        assert backend.requests == []


class TestDeliverySummaries:
    async def test_summarises_raw_delivery_rows(self, backend):
        backend.add(
            "GET", "/api/reports/delivery-summaries",
            {"data": {"deliveries": [
                {"orderId": "1", "status": "delivered", "agencyId": 3, "agencyName": "North"},
                {"orderId": "2", "status": "PENDING", "agencyId": 3, "agencyName": "North"},
                {"orderId": "3", "status": "DELIVERED"},
            ]}},
        )
        async with backend.client("tok") as client:
            report = await ReportsService(client).delivery_summaries(date(2024, 1, 1), date(2024, 1, 31))

        assert [s.name for s in report.summary] == ["North", "Unassigned"]
        assert report.summary[0].status_counts == {"DELIVERED": 1, "PENDING": 1}
        assert report.status_list == ["DELIVERED", "PENDING"]
        assert report.totals.total_deliveries == 3
