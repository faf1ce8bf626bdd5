"""API for reports (JSON tables, Excel exports, delivery label PDFs)."""

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from snf_admin.core.auth import CurrentUser
from snf_admin.core.auth.dependencies import require_access
from snf_admin.core.backend import Backend
from snf_admin.core.exceptions import NoDataToExportError
from snf_admin.core.pdf import build_delivery_labels_context, delivery_labels_filename, pdf_service
from snf_admin.modules.reports.aggregation import build_delivery_summary_rows, filter_delivery_date_groups
from snf_admin.modules.reports.excel_export import (
    EXCEPTION_EXPORT,
    SUBSCRIPTION_EXPORT,
    ExcelExporter,
    ExcelFile,
    SNFOrdersExcelExporter,
    delivery_agency_export_config,
    delivery_summary_export_config,
    export_delivery_date_orders,
    export_purchase_report,
    export_revenue_report,
    export_sale_register,
    export_wallet_report,
    purchase_order_export_config,
)
from snf_admin.modules.reports.grouping import (
    ExpansionState,
    collect_group_ids,
    flatten_tree,
    is_grouped_data,
)
from snf_admin.modules.reports.schemas import (
    DeliveryAgencyFilters,
    DeliveryDateOrdersReport,
    DeliveryFilterOptions,
    DeliveryLabelingReport,
    DeliverySummaryReport,
    ExceptionReport,
    GroupedReport,
    GroupedReportResponse,
    PaymentReport,
    PurchaseOrderFilterOptions,
    PurchaseOrderFilters,
    PurchaseReport,
    PurchaseReportFilters,
    RevenueReport,
    SaleRegisterReport,
    SNFOrdersReportResponse,
    SubscriptionReport,
    SubscriptionReportFilters,
    VendorPurchaseSummary,
    WalletReport,
)
from snf_admin.modules.reports.service import ReportsService, default_range, subscription_export_rows
from snf_admin.shared.schemas.base import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

ReportsUser = Depends(require_access("admin"))
PurchaseReportsUser = Depends(require_access("admin", "vendor"))
DeliveryReportsUser = Depends(require_access("admin", "agency"))
LabelingUser = Depends(require_access("admin", "depot"))


def _check_range(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be <= end_date")


def _attachment(file: ExcelFile) -> Response:
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.file_name}"'},
    )


def _grouped_response(
    report: GroupedReport,
    expanded: list[str],
    toggle: str | None,
    expand_all: bool,
) -> GroupedReportResponse:
    if expand_all:
        state = ExpansionState(collect_group_ids(report.report))
    else:
        state = ExpansionState(expanded)
        if toggle:
            state.toggle(toggle)
    return GroupedReportResponse(
        grouped=is_grouped_data(report.report),
        expanded=state.ids(),
        rows=flatten_tree(report.report, state),
        totals=report.totals,
        record_count=report.record_count,
    )


# --- Purchase orders ---

def purchase_order_filters(
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    farmer_id: int | None = Query(None),
    depot_id: int | None = Query(None),
    variant_id: int | None = Query(None),
    product_id: int | None = Query(None),
    agency_id: int | None = Query(None),
    status: str | None = Query(None),
    group_by: str = Query("farmer,depot,variant", description="Comma-separated grouping levels."),
) -> PurchaseOrderFilters:
    _check_range(start_date, end_date)
    return PurchaseOrderFilters(
        start_date=start_date,
        end_date=end_date,
        farmer_id=farmer_id,
        depot_id=depot_id,
        variant_id=variant_id,
        product_id=product_id,
        agency_id=agency_id,
        status=status,
        group_by=group_by,
    )


@router.get(
    "/purchase-orders",
    response_model=ApiResponse[GroupedReportResponse],
)
async def get_purchase_orders(
    client: Backend,
    filters: PurchaseOrderFilters = Depends(purchase_order_filters),
    expanded: list[str] = Query([], description="Expanded group ids ('<level>-<id>')."),
    toggle: str | None = Query(None, description="Group id to expand/collapse."),
    expand_all: bool = Query(False),
    current_user: CurrentUser = PurchaseReportsUser,
):
    """
    Purchase order report grouped by farmer/depot/variant with per-group totals.

    Access: Admin; Vendor (own purchases only).
    """
    report = await ReportsService(client).purchase_orders(filters, current_user)
    return ApiResponse(data=_grouped_response(report, expanded, toggle, expand_all))


@router.get(
    "/purchase-orders/filters",
    response_model=ApiResponse[PurchaseOrderFilterOptions],
)
async def get_purchase_order_filter_options(
    client: Backend,
    current_user: CurrentUser = PurchaseReportsUser,
):
    return ApiResponse(data=await ReportsService(client).purchase_order_filters())


@router.get("/purchase-orders/export")
async def export_purchase_orders(
    client: Backend,
    filters: PurchaseOrderFilters = Depends(purchase_order_filters),
    current_user: CurrentUser = PurchaseReportsUser,
):
    """Purchase order report as XLSX (group headers, subtotals, grand total)."""
    report = await ReportsService(client).purchase_orders(filters, current_user)
    if not report.report:
        raise NoDataToExportError()
    file = ExcelExporter().export(
        report.report, purchase_order_export_config(filters.group_by), totals=report.totals
    )
    return _attachment(file)


# --- Delivery agencies ---

def delivery_agency_filters(
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    agency_id: int | None = Query(None),
    area_id: int | None = Query(None),
    status: str | None = Query(None),
    group_by: str = Query("agency,area,variant,status", description="Comma-separated grouping levels."),
) -> DeliveryAgencyFilters:
    _check_range(start_date, end_date)
    return DeliveryAgencyFilters(
        start_date=start_date,
        end_date=end_date,
        agency_id=agency_id,
        area_id=area_id,
        status=status,
        group_by=group_by,
    )


@router.get(
    "/delivery-agencies",
    response_model=ApiResponse[GroupedReportResponse],
)
async def get_delivery_agencies(
    client: Backend,
    filters: DeliveryAgencyFilters = Depends(delivery_agency_filters),
    expanded: list[str] = Query([], description="Expanded group ids ('<level>-<id>')."),
    toggle: str | None = Query(None, description="Group id to expand/collapse."),
    expand_all: bool = Query(False),
    current_user: CurrentUser = DeliveryReportsUser,
):
    """
    Deliveries grouped by agency/area/variant/status.

    Access: Admin; Agency (own deliveries only).
    """
    report = await ReportsService(client).delivery_agencies(filters, current_user)
    return ApiResponse(data=_grouped_response(report, expanded, toggle, expand_all))


@router.get(
    "/delivery-agencies/filters",
    response_model=ApiResponse[DeliveryFilterOptions],
)
async def get_delivery_filter_options(
    client: Backend,
    current_user: CurrentUser = DeliveryReportsUser,
):
    return ApiResponse(data=await ReportsService(client).delivery_filters())


@router.get("/delivery-agencies/export")
async def export_delivery_agencies(
    client: Backend,
    filters: DeliveryAgencyFilters = Depends(delivery_agency_filters),
    current_user: CurrentUser = DeliveryReportsUser,
):
    report = await ReportsService(client).delivery_agencies(filters, current_user)
    if not report.report:
        raise NoDataToExportError()
    file = ExcelExporter().export(
        report.report, delivery_agency_export_config(filters.group_by), totals=report.totals
    )
    return _attachment(file)


# --- Delivery summaries ---

@router.get(
    "/delivery-summaries",
    response_model=ApiResponse[DeliverySummaryReport],
)
async def get_delivery_summaries(
    client: Backend,
    start_date: date | None = Query(None, description="Default: 7 days ago."),
    end_date: date | None = Query(None, description="Default: 30 days ahead."),
    agency_id: int | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    """Delivery status counts per agency, with a column per status."""
    _check_range(start_date, end_date)
    data = await ReportsService(client).delivery_summaries(start_date, end_date, agency_id)
    return ApiResponse(data=data)


@router.get("/delivery-summaries/export")
async def export_delivery_summaries(
    client: Backend,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    agency_id: int | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    _check_range(start_date, end_date)
    data = await ReportsService(client).delivery_summaries(start_date, end_date, agency_id)
    if not data.summary:
        raise NoDataToExportError()
    rows = build_delivery_summary_rows(data.summary, data.status_list, data.totals)
    file = ExcelExporter().export(rows, delivery_summary_export_config(data.status_list))
    return _attachment(file)


# --- Subscriptions ---

def subscription_filters(
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    name: str | None = Query(None, description="Member name search."),
    status: str = Query("all", pattern="^(expired|not_expired|all)$"),
    payment_status: str | None = Query(None),
    agency_id: int | None = Query(None),
    product_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
) -> SubscriptionReportFilters:
    _check_range(start_date, end_date)
    return SubscriptionReportFilters(
        start_date=start_date,
        end_date=end_date,
        name=name,
        status=status,
        payment_status=payment_status,
        agency_id=agency_id,
        product_id=product_id,
        page=page,
        limit=limit,
    )


@router.get(
    "/subscriptions",
    response_model=ApiResponse[SubscriptionReport],
)
async def get_subscriptions(
    client: Backend,
    filters: SubscriptionReportFilters = Depends(subscription_filters),
    current_user: CurrentUser = ReportsUser,
):
    """Paginated subscription report with payment-status statistics."""
    return ApiResponse(data=await ReportsService(client).subscriptions(filters))


@router.get("/subscriptions/export")
async def export_subscriptions(
    client: Backend,
    filters: SubscriptionReportFilters = Depends(subscription_filters),
    current_user: CurrentUser = ReportsUser,
):
    """Current page of the subscription report as XLSX."""
    data = await ReportsService(client).subscriptions(filters)
    if not data.items:
        raise NoDataToExportError()
    file = ExcelExporter().export(subscription_export_rows(data.items), SUBSCRIPTION_EXPORT)
    return _attachment(file)


# --- Exceptions ---

@router.get(
    "/exceptions",
    response_model=ApiResponse[ExceptionReport],
)
async def get_exceptions(
    client: Backend,
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    current_user: CurrentUser = ReportsUser,
):
    """Variant changes, stopped subscriptions and new customers."""
    _check_range(start_date, end_date)
    return ApiResponse(data=await ReportsService(client).exceptions(start_date, end_date))


@router.get("/exceptions/export")
async def export_exceptions(
    client: Backend,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    _check_range(start_date, end_date)
    data = await ReportsService(client).exceptions(start_date, end_date)
    if not data.report:
        raise NoDataToExportError()
    return _attachment(ExcelExporter().export(data.report, EXCEPTION_EXPORT))


# --- Sale register ---

@router.get(
    "/sale-register",
    response_model=ApiResponse[SaleRegisterReport],
)
async def get_sale_register(
    client: Backend,
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    name: str | None = Query(None, description="Customer name search."),
    current_user: CurrentUser = ReportsUser,
):
    """Paid sales with refunds and net amounts; missing depots resolved by pincode."""
    _check_range(start_date, end_date)
    return ApiResponse(data=await ReportsService(client).sale_register(start_date, end_date, name))


@router.get("/sale-register/export")
async def export_sale_register_xlsx(
    client: Backend,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    name: str | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    _check_range(start_date, end_date)
    start, end = default_range(start_date, end_date)
    data = await ReportsService(client).sale_register(start, end, name)
    if not data.rows:
        raise NoDataToExportError()
    return _attachment(export_sale_register(data.rows, start.isoformat(), end.isoformat()))


# --- SNF orders ---

@router.get(
    "/snf-orders",
    response_model=ApiResponse[SNFOrdersReportResponse],
)
async def get_snf_orders(
    client: Backend,
    start_date: date | None = Query(None, description="Default: first day of this month."),
    end_date: date | None = Query(None, description="Default: today."),
    search: str | None = Query(None, description="Customer name, mobile, order no, city or email."),
    current_user: CurrentUser = ReportsUser,
):
    """SNF orders with depot-wise, payment, city and product statistics."""
    _check_range(start_date, end_date)
    return ApiResponse(data=await ReportsService(client).snf_orders(start_date, end_date, search))


@router.get("/snf-orders/export")
async def export_snf_orders(
    client: Backend,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    _check_range(start_date, end_date)
    data = await ReportsService(client).snf_orders(start_date, end_date)
    if not data.orders:
        raise NoDataToExportError()
    return _attachment(SNFOrdersExcelExporter().export(data.orders, data.stats))


# --- Delivery labeling ---

@router.get(
    "/delivery-labeling",
    response_model=ApiResponse[DeliveryLabelingReport],
)
async def get_delivery_labeling(
    client: Backend,
    delivery_date: date | None = Query(None, description="Default: today."),
    depot_id: int | None = Query(None, description="Required for admins; depot users default to their own."),
    current_user: CurrentUser = LabelingUser,
):
    """Orders to pack for one delivery date."""
    data = await ReportsService(client).delivery_labeling(current_user, delivery_date, depot_id)
    return ApiResponse(data=data)


@router.get("/delivery-labeling/pdf")
async def get_delivery_labels_pdf(
    client: Backend,
    delivery_date: date | None = Query(None),
    depot_id: int | None = Query(None),
    current_user: CurrentUser = LabelingUser,
):
    """One 100x150mm packing slip per order."""
    report = await ReportsService(client).delivery_labeling(current_user, delivery_date, depot_id)
    if not report.orders:
        raise NoDataToExportError("No orders to generate PDF")
    pdf_bytes = pdf_service.generate_delivery_labels_pdf(build_delivery_labels_context(report))
    filename = delivery_labels_filename(report.delivery_date, report.depot_name)
    logger.info("Generated %s (%d labels)", filename, len(report.orders))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Revenue / wallet ---

@router.get("/revenue", response_model=ApiResponse[RevenueReport])
async def get_revenue(client: Backend, current_user: CurrentUser = ReportsUser):
    """Sale amount per customer, largest first."""
    return ApiResponse(data=await ReportsService(client).revenue())


@router.get("/revenue/export")
async def export_revenue(client: Backend, current_user: CurrentUser = ReportsUser):
    data = await ReportsService(client).revenue()
    if not data.rows:
        raise NoDataToExportError()
    return _attachment(export_revenue_report(data.rows, data.total_sale_amount))


@router.get("/wallet", response_model=ApiResponse[WalletReport])
async def get_wallet(
    client: Backend,
    end_date: date | None = Query(None, description="Balances as of this date. Default: today."),
    current_user: CurrentUser = ReportsUser,
):
    return ApiResponse(data=await ReportsService(client).wallet(end_date))


@router.get("/wallet/export")
async def export_wallet(
    client: Backend,
    end_date: date | None = Query(None),
    current_user: CurrentUser = ReportsUser,
):
    data = await ReportsService(client).wallet(end_date)
    if not data.rows:
        raise NoDataToExportError()
    return _attachment(export_wallet_report(data.rows, data.total_closing_balance, data.end_date))


# --- Delivery date orders ---

@router.get(
    "/delivery-date-orders",
    response_model=ApiResponse[DeliveryDateOrdersReport],
)
async def get_delivery_date_orders(
    client: Backend,
    delivery_date: date | None = Query(None, description="Default: today."),
    depot_id: int | None = Query(None, description="Depot users default to their own."),
    status: str = Query("ALL"),
    product_id: int | None = Query(None),
    search: str | None = Query(None, description="Product, category, variant, depot, vendor, agency or PO number."),
    current_user: CurrentUser = LabelingUser,
):
    """Orders due on a delivery date by product and depot variant."""
    report = await ReportsService(client).delivery_date_orders(
        current_user, delivery_date, depot_id, status, product_id
    )
    if search:
        report = report.model_copy(update={"groups": filter_delivery_date_groups(report.groups, search)})
    return ApiResponse(data=report)


@router.get("/delivery-date-orders/export")
async def export_delivery_date_orders_xlsx(
    client: Backend,
    delivery_date: date | None = Query(None),
    depot_id: int | None = Query(None),
    status: str = Query("ALL"),
    product_id: int | None = Query(None),
    current_user: CurrentUser = LabelingUser,
):
    report = await ReportsService(client).delivery_date_orders(
        current_user, delivery_date, depot_id, status, product_id
    )
    if not report.groups:
        raise NoDataToExportError()
    return _attachment(export_delivery_date_orders(report))


# --- Purchases joined with payments ---

def _purchase_filters(
    start_date: date | None = Query(None, description="Default: 30 days ago."),
    end_date: date | None = Query(None, description="Default: today."),
    vendor_id: int | None = Query(None),
    status: Literal["all", "paid", "partial", "unpaid"] = Query("all"),
) -> PurchaseReportFilters:
    _check_range(start_date, end_date)
    return PurchaseReportFilters(start_date=start_date, end_date=end_date, vendor_id=vendor_id, status=status)


@router.get("/purchases", response_model=ApiResponse[PurchaseReport])
async def get_purchase_report(
    client: Backend,
    filters: PurchaseReportFilters = Depends(_purchase_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    current_user: CurrentUser = ReportsUser,
):
    """Purchases with paid, outstanding and payment status."""
    return ApiResponse(data=await ReportsService(client).purchase_report(filters, page, limit))


@router.get("/purchases/vendors", response_model=ApiResponse[list[VendorPurchaseSummary]])
async def get_vendor_purchase_summaries(
    client: Backend,
    filters: PurchaseReportFilters = Depends(_purchase_filters),
    current_user: CurrentUser = ReportsUser,
):
    return ApiResponse(data=await ReportsService(client).vendor_purchase_summaries(filters))


@router.get("/purchases/payments", response_model=ApiResponse[PaymentReport])
async def get_purchase_payment_report(
    client: Backend,
    filters: PurchaseReportFilters = Depends(_purchase_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    current_user: CurrentUser = ReportsUser,
):
    return ApiResponse(data=await ReportsService(client).purchase_payment_report(filters, page, limit))


@router.get("/purchases/export")
async def export_purchase_report_xlsx(
    client: Backend,
    filters: PurchaseReportFilters = Depends(_purchase_filters),
    current_user: CurrentUser = ReportsUser,
):
    start, end = default_range(filters.start_date, filters.end_date)
    filters = filters.model_copy(update={"start_date": start, "end_date": end})
    report, payments, vendors = await ReportsService(client).purchase_report_export_data(filters)
    if not report.purchases:
        raise NoDataToExportError()
    return _attachment(export_purchase_report(report, payments, vendors, filters))
