"""Service for reports: fetch from the commerce backend and shape for tables/exports."""

import asyncio
import logging
import re
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any

from snf_admin.core.auth import CurrentUser
from snf_admin.core.backend import BackendClient, unwrap_envelope
from snf_admin.core.config import settings
from snf_admin.core.exceptions import AppException, ValidationError
from snf_admin.modules.reports.aggregation import (
    ProductNames,
    _dig,
    build_payment_report,
    build_purchase_report,
    build_snf_order_stats,
    build_vendor_purchase_summaries,
    filter_snf_orders,
    summarize_delivery_items,
)
from snf_admin.modules.reports.grouping import parse_report_tree
from snf_admin.modules.reports.schemas import (
    DeliveryAgencyFilters,
    DeliveryAgencySummary,
    DeliveryDateGroup,
    DeliveryDateOrdersReport,
    DeliveryDateOrdersSummary,
    DeliveryFilterOptions,
    DeliveryItem,
    DeliveryLabelingReport,
    DeliveryLabelingSummary,
    DeliveryLabelOrder,
    DeliveryReportTotals,
    DeliverySummaryReport,
    DeliverySummaryTotals,
    ExceptionCounts,
    ExceptionReport,
    ExceptionReportRow,
    FilterOption,
    GroupedReport,
    PaymentReport,
    PurchaseOrderFilterOptions,
    PurchaseOrderFilters,
    PurchaseOrderItem,
    PurchaseReport,
    PurchaseReportFilters,
    ReportTotals,
    RevenueReport,
    RevenueReportRow,
    SaleRegisterReport,
    SaleRegisterRow,
    SaleRegisterTotals,
    SNFOrderReportItem,
    SNFOrdersReportResponse,
    SubscriptionReport,
    SubscriptionReportFilters,
    SubscriptionReportItem,
    SubscriptionReportSummary,
    VendorPurchaseSummary,
    WalletReport,
    WalletReportRow,
)
from snf_admin.shared.utils.dates import format_date_dmy
from snf_admin.shared.utils.money import to_decimal

logger = logging.getLogger(__name__)

_PINCODE_RE = re.compile(r"\b\d{6}\b")


def default_range(
    start: date | None,
    end: date | None,
    days_back: int = 30,
    days_ahead: int = 0,
) -> tuple[date, date]:
    """Fill a missing start/end relative to today."""
    today = date.today()
    return (
        start or today - timedelta(days=days_back),
        end or today + timedelta(days=days_ahead),
    )


def _first(*values: Any) -> Any:
    """First value that is not None (empty strings count, like `??`)."""
    for value in values:
        if value is not None:
            return value
    return None


def extract_pincode(text: Any) -> str:
    if not text:
        return ""
    match = _PINCODE_RE.search(str(text))
    return match.group(0) if match else ""


def normalize_sale_register_row(raw: Mapping[str, Any]) -> SaleRegisterRow:
    """Map one heterogeneous sale-register record onto SaleRegisterRow."""
    delivery_address = raw.get("deliveryAddress")
    name = _first(
        raw.get("name"), raw.get("memberName"), raw.get("customerName"),
        _dig(raw, "member", "name"), _dig(raw, "customer", "name"), "",
    )
    customer_id = _first(
        raw.get("customerId"), raw.get("memberId"), _dig(raw, "customer", "id"),
        _dig(raw, "member", "id"), raw.get("id"), "",
    )
    sale_amount = to_decimal(_first(
        raw.get("receivedamt"), raw.get("saleAmount"), raw.get("amount"),
        raw.get("totalAmount"), raw.get("sale"), 0,
    ))
    refund_amount = to_decimal(_first(raw.get("refundAmount"), raw.get("refund"), 0))
    net_raw = _first(raw.get("netAmount"), raw.get("net"))
    net_amount = to_decimal(net_raw) if net_raw is not None else sale_amount - refund_amount

    address = _first(
        raw.get("address"),
        raw.get("fullAddress"),
        _dig(raw, "deliveryAddress", "fullAddress"),
        delivery_address if isinstance(delivery_address, str) else None,
        _dig(raw, "customer", "address"),
        "",
    )
    address = str(address or "")
    pincode = _first(raw.get("pincode"), raw.get("pinCode"), _dig(raw, "deliveryAddress", "pincode"), "")
    pincode = (
        str(pincode or "")
        or extract_pincode(_dig(raw, "deliveryAddress", "fullAddress"))
        or extract_pincode(address)
    )
    variant = _first(
        raw.get("variant"), raw.get("variantName"), _dig(raw, "DepotProductVariant", "name"),
        _dig(raw, "subscription", "variantName"), "",
    )
    mobile = _first(
        raw.get("mobile"), raw.get("phone"), raw.get("memberMobile"),
        raw.get("customerMobile"), _dig(raw, "deliveryAddress", "mobile"), "",
    )
    depot = raw.get("depot")
    if isinstance(depot, Mapping):
        depot = depot.get("name")
    depot = (
        depot
        or raw.get("depotName")
        or _dig(raw, "depotMaster", "name")
        or _dig(raw, "depotDetails", "name")
        or _dig(raw, "Depot", "name")
        or ""
    )
    start = _first(
        raw.get("subscriptionStartDate"), raw.get("startDate"),
        _dig(raw, "subscription", "startDate"), raw.get("createdAt"), "",
    )

    return SaleRegisterRow(
        name=str(name or ""),
        customer_id=customer_id,
        sale_amount=sale_amount,
        refund_amount=refund_amount,
        net_amount=net_amount,
        address=address,
        pincode=pincode,
        mobile=str(mobile or ""),
        depot=str(depot),
        variant=str(variant or ""),
        subscription_start_date=format_date_dmy(start) if start else "",
    )


def subscription_export_rows(items: list[SubscriptionReportItem]) -> list[dict[str, Any]]:
    """Flatten subscription rows for the Excel export (Yes/No flags, dd/mm/yyyy dates)."""
    return [
        {
            "id": s.id,
            "memberName": s.member_name,
            "memberEmail": s.member_email,
            "memberMobile": s.member_mobile,
            "productName": s.product_name,
            "variantName": s.variant_name,
            "deliverySchedule": s.delivery_schedule,
            "dailyQty": s.daily_qty,
            "totalQty": s.total_qty,
            "alternateQty": s.alternate_qty or "N/A",
            "amount": s.amount,
            "paymentStatus": s.payment_status,
            "agencyName": s.agency_name or "Unassigned",
            "agencyCity": s.agency_city or "N/A",
            "agencyAssigned": "Yes" if s.agency_assigned else "No",
            "startDate": format_date_dmy(s.start_date) if s.start_date else "",
            "expiryDate": format_date_dmy(s.expiry_date) if s.expiry_date else "",
            "isExpired": "Yes" if s.is_expired else "No",
            "deliveryAddress": (s.delivery_address.full_address if s.delivery_address else "") or "N/A",
        }
        for s in items
    ]


class ReportsService:
    """Fetch report data from the backend for admins (and role-scoped vendors/agencies/depots)."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def purchase_orders(
        self,
        filters: PurchaseOrderFilters,
        user: CurrentUser,
    ) -> GroupedReport:
        """Purchase order report, grouped by `group_by` levels. Vendors only see their own purchases."""
        if user.is_vendor and not user.is_admin:
            filters = filters.model_copy(update={"farmer_id": user.vendor_id})
        start, end = default_range(filters.start_date, filters.end_date)
        payload = await self.client.get(
            "/api/reports/purchase-orders",
            params={
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "farmerId": filters.farmer_id,
                "depotId": filters.depot_id,
                "variantId": filters.variant_id,
                "productId": filters.product_id,
                "agencyId": filters.agency_id,
                "status": filters.status,
                "groupBy": filters.group_by,
            },
        )
        data = unwrap_envelope(payload) or {}
        report = parse_report_tree(data.get("report") or [], PurchaseOrderItem)
        totals = ReportTotals.model_validate(data["totals"]) if data.get("totals") else None
        return GroupedReport(
            report=report,
            totals=totals,
            record_count=data.get("recordCount", len(report)),
        )

    async def purchase_order_filters(self) -> PurchaseOrderFilterOptions:
        payload = await self.client.get("/api/reports/filters")
        data = unwrap_envelope(payload) or {}
        options = data.get("filters", data)
        return PurchaseOrderFilterOptions(
            farmers=[FilterOption.model_validate(o) for o in options.get("farmers") or []],
            depots=[FilterOption.model_validate(o) for o in options.get("depots") or []],
            products=[FilterOption.model_validate(o) for o in options.get("products") or []],
            variants=[FilterOption.model_validate(o) for o in options.get("variants") or []],
        )

    async def delivery_agencies(
        self,
        filters: DeliveryAgencyFilters,
        user: CurrentUser,
    ) -> GroupedReport:
        """Delivery report grouped by agency/area/variant/status. Agencies only see their own deliveries."""
        if user.is_agency and not user.is_admin:
            filters = filters.model_copy(update={"agency_id": user.agency_id})
        start, end = default_range(filters.start_date, filters.end_date)
        payload = await self.client.get(
            "/api/reports/delivery-agencies",
            params={
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "agencyId": filters.agency_id,
                "areaId": filters.area_id,
                "status": filters.status,
                "groupBy": filters.group_by,
            },
        )
        data = unwrap_envelope(payload) or {}
        report = parse_report_tree(data.get("report") or [], DeliveryItem)
        totals = DeliveryReportTotals.model_validate(data["totals"]) if data.get("totals") else None
        return GroupedReport(
            report=report,
            totals=totals,
            record_count=data.get("recordCount", len(report)),
        )

    async def delivery_filters(self) -> DeliveryFilterOptions:
        payload = await self.client.get("/api/reports/delivery-filters")
        data = unwrap_envelope(payload) or {}
        options = data.get("filters", data)
        return DeliveryFilterOptions(
            agencies=[FilterOption.model_validate(o) for o in options.get("agencies") or []],
            areas=[FilterOption.model_validate(o) for o in options.get("areas") or []],
        )

    async def delivery_summaries(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        agency_id: int | None = None,
    ) -> DeliverySummaryReport:
        """Status counts per agency; default window is a week back to a month ahead."""
        start, end = default_range(start_date, end_date, days_back=7, days_ahead=30)
        payload = await self.client.get(
            "/api/reports/delivery-summaries",
            params={"startDate": start.isoformat(), "endDate": end.isoformat(), "agencyId": agency_id},
        )
        data = unwrap_envelope(payload) or {}
        if "summary" not in data and data.get("deliveries"):
            # Older backends send raw delivery rows only
            items = [DeliveryItem.model_validate(d) for d in data["deliveries"]]
            summary, totals = summarize_delivery_items(items)
            return DeliverySummaryReport(
                summary=summary,
                status_list=sorted(totals.status_totals),
                totals=totals,
                record_count=len(summary),
            )
        summary = [DeliveryAgencySummary.model_validate(s) for s in data.get("summary") or []]
        return DeliverySummaryReport(
            summary=summary,
            status_list=data.get("statusList") or [],
            totals=DeliverySummaryTotals.model_validate(data.get("totals") or {}),
            record_count=data.get("recordCount", len(summary)),
        )

    async def subscriptions(self, filters: SubscriptionReportFilters) -> SubscriptionReport:
        start, end = default_range(filters.start_date, filters.end_date)
        payload = await self.client.get(
            "/api/reports/subscriptions",
            params={
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "name": filters.name,
                "status": filters.status,
                "paymentStatus": filters.payment_status,
                "agencyId": filters.agency_id,
                "productId": filters.product_id,
                "page": filters.page,
                "limit": filters.limit,
            },
        )
        payload = payload or {}
        return SubscriptionReport(
            items=[SubscriptionReportItem.model_validate(s) for s in payload.get("data") or []],
            summary=SubscriptionReportSummary.model_validate(payload.get("summary") or {}),
        )

    async def exceptions(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ExceptionReport:
        """Variant changes, stopped subscriptions and new customers in the window."""
        start, end = default_range(start_date, end_date)
        payload = await self.client.get(
            "/api/reports/exceptions",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        data = unwrap_envelope(payload) or {}

        def rows(key: str) -> list[ExceptionReportRow]:
            return [ExceptionReportRow.model_validate(r) for r in data.get(key) or []]

        report = rows("report")
        return ExceptionReport(
            report=report,
            variant_changes=rows("variantChanges"),
            stopped_subscriptions=rows("stoppedSubscriptions"),
            new_customers=rows("newCustomers"),
            counts=ExceptionCounts.model_validate(data["counts"]) if data.get("counts") else None,
            record_count=data.get("recordCount", len(report)),
        )

    async def _depot_for_pincode(self, pincode: str) -> str:
        try:
            payload = await self.client.get(f"/api/public/area-masters/by-pincode/{pincode}")
        except AppException as e:
            logger.warning("Depot lookup for pincode %s failed: %s", pincode, e.message)
            return ""
        areas = unwrap_envelope(payload) or []
        for area in areas:
            depot_name = _dig(area, "depot", "name")
            if depot_name:
                return str(depot_name)
        return ""

    async def resolve_missing_depots(self, rows: list[SaleRegisterRow]) -> list[SaleRegisterRow]:
        """Fill empty depots from area masters by pincode; lookups run concurrently."""
        pincodes = sorted(
            {
                r.pincode.strip()
                for r in rows
                if not r.depot.strip() and re.fullmatch(r"\d{6}", r.pincode.strip())
            }
        )
        if not pincodes:
            return rows
        names = await asyncio.gather(*(self._depot_for_pincode(pin) for pin in pincodes))
        depot_by_pincode = dict(zip(pincodes, names))
        resolved = []
        for r in rows:
            depot_name = depot_by_pincode.get(r.pincode.strip()) if not r.depot.strip() else None
            resolved.append(r.model_copy(update={"depot": depot_name}) if depot_name else r)
        return resolved

    async def sale_register(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        name: str | None = None,
    ) -> SaleRegisterReport:
        """Paid sales in the window, one row per customer sale, with depots resolved by pincode."""
        start, end = default_range(start_date, end_date)
        payload = await self.client.get(
            "/api/reports/sale-register",
            params={
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "paymentStatus": "PAID",
                "page": 1,
                "limit": settings.max_report_rows,
                "name": (name or "").strip(),
            },
        )
        data = unwrap_envelope(payload)
        if isinstance(data, Mapping):
            data = data.get("rows")
        raw_rows = data if isinstance(data, list) else []
        rows = await self.resolve_missing_depots([normalize_sale_register_row(r) for r in raw_rows])
        return SaleRegisterReport(
            rows=rows,
            totals=SaleRegisterTotals(
                sale_amount=sum((r.sale_amount for r in rows), to_decimal(0)),
                refund_amount=sum((r.refund_amount for r in rows), to_decimal(0)),
                net_amount=sum((r.net_amount for r in rows), to_decimal(0)),
            ),
        )

    async def snf_orders(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        search: str | None = None,
        limit: int | None = None,
    ) -> SNFOrdersReportResponse:
        """SNF orders in the window (current month by default) with depot/payment/city/product stats."""
        today = date.today()
        start = start_date or today.replace(day=1)
        end = end_date or today
        payload = await self.client.get(
            "/api/admin/snf-orders",
            params={
                "page": 1,
                "limit": limit or settings.max_report_rows,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
            },
        )
        payload = payload or {}
        orders = []
        for raw in payload.get("orders") or []:
            row = dict(raw)
            row.setdefault("customerName", raw.get("name"))
            row.setdefault("orderDate", raw.get("createdAt"))
            orders.append(SNFOrderReportItem.model_validate(row))
        # Stats cover the whole window; search only narrows the listed orders
        return SNFOrdersReportResponse(
            stats=build_snf_order_stats(orders),
            orders=filter_snf_orders(orders, search),
            total_records=payload.get("totalRecords", len(orders)),
        )

    async def _depot_name(self, depot_id: int | None) -> str:
        if not depot_id:
            return "All Depots"
        payload = await self.client.get("/api/admin/reports/filters")
        depots = _dig(payload, "filters", "depots") or _dig(payload, "data", "depots") or []
        for depot in depots:
            if str(depot.get("id")) == str(depot_id):
                return depot.get("name") or "All Depots"
        return "All Depots"

    async def delivery_labeling(
        self,
        user: CurrentUser,
        delivery_date: date | None = None,
        depot_id: int | None = None,
    ) -> DeliveryLabelingReport:
        """Orders to label for one delivery date; depot users default to their own depot."""
        delivery_date = delivery_date or date.today()
        if user.is_depot and depot_id is None:
            depot_id = user.depot_id
        if not user.is_depot and not depot_id:
            raise ValidationError("Select a depot to generate delivery labels", field="depot_id")

        payload = await self.client.get(
            "/api/admin/reports/delivery-labeling",
            params={"deliveryDate": delivery_date.isoformat(), "depotId": depot_id},
        )
        payload = payload or {}
        return DeliveryLabelingReport(
            delivery_date=delivery_date,
            depot_id=depot_id,
            depot_name=await self._depot_name(depot_id),
            orders=[DeliveryLabelOrder.model_validate(o) for o in payload.get("orders") or []],
            summary=DeliveryLabelingSummary.model_validate(payload.get("summary") or {}),
        )

    async def revenue(self) -> RevenueReport:
        """Customer-wise sale amount, largest first."""
        payload = await self.client.get("/api/reports/revenue")
        data = unwrap_envelope(payload) or {}
        rows = [RevenueReportRow.model_validate(r) for r in data.get("report") or []]
        rows.sort(key=lambda r: r.sale_amount, reverse=True)
        return RevenueReport(
            rows=rows,
            total_sale_amount=sum((r.sale_amount for r in rows), to_decimal(0)),
            record_count=len(rows),
        )

    async def wallet(self, end_date: date | None = None) -> WalletReport:
        """Closing wallet balances as of end_date (today by default)."""
        end_date = end_date or date.today()
        payload = await self.client.get("/api/reports/wallet", params={"endDate": end_date.isoformat()})
        data = unwrap_envelope(payload) or {}
        rows = [WalletReportRow.model_validate(r) for r in data.get("report") or []]
        rows.sort(key=lambda r: r.closing_balance, reverse=True)
        total = _dig(data, "totals", "totalClosingBalance")
        if isinstance(total, (int, float)) and not isinstance(total, bool):
            total = to_decimal(total)
        else:
            total = sum((r.closing_balance for r in rows), to_decimal(0))
        return WalletReport(
            end_date=end_date,
            rows=rows,
            total_closing_balance=total,
            record_count=len(rows),
        )

    async def delivery_date_orders(
        self,
        user: CurrentUser,
        delivery_date: date | None = None,
        depot_id: int | None = None,
        status: str = "ALL",
        product_id: int | None = None,
    ) -> DeliveryDateOrdersReport:
        """Orders due on a delivery date grouped by product and depot variant."""
        delivery_date = delivery_date or date.today()
        if user.is_depot and depot_id is None:
            depot_id = user.depot_id
        payload = await self.client.get(
            "/api/admin/reports/delivery-date-orders",
            params={
                "deliveryDate": delivery_date.isoformat(),
                "depotId": depot_id,
                "status": status,
                "productId": product_id,
            },
        )
        payload = payload or {}
        return DeliveryDateOrdersReport(
            delivery_date=delivery_date,
            depot_id=depot_id,
            status=status,
            groups=[DeliveryDateGroup.model_validate(g) for g in payload.get("data") or []],
            summary=DeliveryDateOrdersSummary.model_validate(payload.get("summary") or {}),
        )

    async def _purchases(
        self, filters: PurchaseReportFilters, page: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        start, end = default_range(filters.start_date, filters.end_date)
        payload = await self.client.get(
            "/api/purchases",
            params={
                "page": page,
                "limit": limit,
                "vendorId": filters.vendor_id,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
            },
        )
        payload = payload or {}
        return payload.get("data") or [], payload.get("totalPages", 1)

    async def _payments(self, filters: PurchaseReportFilters, page: int = 1, limit: int = 1000):
        start, end = default_range(filters.start_date, filters.end_date)
        payload = await self.client.get(
            "/api/admin/purchase-payments",
            params={
                "page": page,
                "limit": limit,
                "vendorId": filters.vendor_id,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
            },
        )
        payload = payload or {}
        return payload.get("payments") or payload.get("data") or [], payload.get("totalPages", 1)

    async def _product_names(self) -> ProductNames:
        products, variants = await asyncio.gather(
            self.client.get("/api/products", params={"limit": 1000}),
            self.client.get("/api/depot-product-variants", params={"limit": 1000}),
        )

        def listing(payload: Any) -> list[dict[str, Any]]:
            data = unwrap_envelope(payload)
            return data if isinstance(data, list) else []

        return ProductNames.from_catalog(listing(products), listing(variants))

    async def purchase_report(
        self, filters: PurchaseReportFilters, page: int = 1, limit: int = 20
    ) -> PurchaseReport:
        """One page of purchases with paid and outstanding amounts."""
        (purchases, total_pages), (payments, _), names = await asyncio.gather(
            self._purchases(filters, page, limit),
            self._payments(filters),
            self._product_names(),
        )
        return build_purchase_report(purchases, payments, names, filters.status, total_pages, page)

    async def vendor_purchase_summaries(self, filters: PurchaseReportFilters) -> list[VendorPurchaseSummary]:
        (purchases, _), (payments, _) = await asyncio.gather(
            self._purchases(filters, 1, settings.max_report_rows),
            self._payments(filters),
        )
        return build_vendor_purchase_summaries(purchases, payments)

    async def purchase_payment_report(
        self, filters: PurchaseReportFilters, page: int = 1, limit: int = 20
    ) -> PaymentReport:
        payments, total_pages = await self._payments(filters, page, limit)
        return build_payment_report(payments, total_pages, page)

    async def purchase_report_export_data(
        self, filters: PurchaseReportFilters
    ) -> tuple[PurchaseReport, PaymentReport, list[VendorPurchaseSummary]]:
        """All purchases in the window with their payments and vendor totals."""
        (purchases, _), (payments, _), names = await asyncio.gather(
            self._purchases(filters, 1, settings.max_report_rows),
            self._payments(filters),
            self._product_names(),
        )
        return (
            build_purchase_report(purchases, payments, names, filters.status),
            build_payment_report(payments),
            build_vendor_purchase_summaries(purchases, payments),
        )
