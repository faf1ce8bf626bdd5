"""Schemas for reports: backend view-models, aggregated stats, export configuration."""

from datetime import date
from decimal import Decimal
from typing import Any, Literal

from pydantic import Field

from snf_admin.shared.schemas.base import BaseSchema, UpstreamSchema


# --- Grouped tree (purchase orders / delivery agencies) ---

class GroupTotals(UpstreamSchema):
    """Flat aggregate attached to every grouped node, whatever its depth."""

    total_quantity: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    item_count: int = 0
    avg_rate: Decimal = Decimal("0")  # purchase groups only
    delivered_count: int = 0  # delivery groups only
    pending_count: int = 0
    avg_delivery_time: float | None = None


class GroupedNode(UpstreamSchema):
    """
    One node of a pre-grouped report tree.

    `level` decides which optional descriptive fields are meaningful
    (farmer/depot/variant for purchases, agency/area/variant/status for deliveries).
    `data` holds either child GroupedNodes or leaf rows, never a mix.
    """

    level: str
    id: str | int
    name: str = ""
    location: str | None = None
    product_name: str | None = None
    variant_name: str | None = None
    unit: str | None = None
    city: str | None = None
    totals: GroupTotals = Field(default_factory=GroupTotals)
    data: list[Any] = []


class PurchaseOrderItem(UpstreamSchema):
    """Leaf row of the purchase order report."""

    purchase_id: int
    purchase_no: str = ""
    purchase_date: str | None = None
    delivery_date: str | None = None
    status: str | None = None

    farmer_id: int | None = None
    farmer_name: str = ""
    is_dairy_supplier: bool | None = None

    depot_id: int | None = None
    depot_name: str = ""
    depot_city: str | None = None
    depot_address: str | None = None

    product_id: int | None = None
    product_name: str = ""
    product_category: int | str | None = None
    variant_id: int | None = None
    variant_name: str = ""
    variant_mrp: Decimal | None = None

    quantity: Decimal = Decimal("0")
    delivered_quantity: Decimal | None = None
    received_quantity: Decimal | None = None
    supervisor_quantity: Decimal | None = None
    purchase_rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")

    agency_id: int | None = None
    agency_name: str | None = None

    delivered_by: str | None = None
    received_by: str | None = None

    farmer_wastage: Decimal | None = None
    farmer_not_received: Decimal | None = None
    agency_wastage: Decimal | None = None
    agency_not_received: Decimal | None = None
    wastage_registered_at: str | None = None


class DeliveryItem(UpstreamSchema):
    """Leaf row of the delivery agencies report."""

    order_id: str
    delivery_date: str | None = None
    status: str | None = None

    product_id: int | None = None
    product_name: str = ""
    variant_id: int | None = None
    variant_name: str = ""
    quantity: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")

    customer_id: int | None = None
    customer_name: str = ""
    delivery_address: str = ""
    pincode: str | None = None

    area_id: int | None = None
    area_name: str = ""
    city: str | None = None

    agency_id: int | None = None
    agency_name: str | None = None
    delivered_by: str | None = None
    delivery_time: str | None = None

    depot_id: int | None = None
    depot_name: str | None = None


class ReportTotals(UpstreamSchema):
    """Grand totals of the purchase order report."""

    total_purchases: int = 0
    total_items: int = 0
    total_quantity: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    avg_purchase_value: Decimal = Decimal("0")


class DeliveryReportTotals(UpstreamSchema):
    """Grand totals of the delivery agencies report."""

    total_deliveries: int = 0
    total_items: int = 0
    total_quantity: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    delivered_count: int = 0
    pending_count: int = 0
    avg_delivery_value: Decimal = Decimal("0")


class PurchaseOrderFilters(UpstreamSchema):
    start_date: date | None = None
    end_date: date | None = None
    farmer_id: int | None = None
    depot_id: int | None = None
    variant_id: int | None = None
    product_id: int | None = None
    agency_id: int | None = None
    status: str | None = None
    group_by: str | None = "farmer,depot,variant"


class DeliveryAgencyFilters(UpstreamSchema):
    start_date: date | None = None
    end_date: date | None = None
    agency_id: int | None = None
    area_id: int | None = None
    status: str | None = None
    group_by: str | None = "agency,area,variant,status"


class SubscriptionReportFilters(UpstreamSchema):
    start_date: date | None = None
    end_date: date | None = None
    name: str | None = None
    status: Literal["expired", "not_expired", "all"] = "all"
    payment_status: str | None = None
    agency_id: int | None = None
    product_id: int | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=1000)


class TableRow(BaseSchema):
    """One rendered row of a grouped table (group header or leaf item)."""

    kind: Literal["group", "item"]
    depth: int
    group_id: str | None = None
    level: str | None = None
    label: str | None = None
    expanded: bool = False
    totals: GroupTotals | None = None
    item: Any = None


class GroupedReport(BaseSchema):
    """Grouped report as fetched: tree (or flat rows) plus totals."""

    report: list[Any]
    totals: Any = None
    record_count: int = 0


class GroupedReportResponse(BaseSchema):
    """Grouped report with its rendered rows for the current expansion state."""

    grouped: bool
    expanded: list[str]
    rows: list[TableRow]
    totals: Any = None
    record_count: int


class FilterOption(UpstreamSchema):
    """Option in a report filter dropdown (farmer, depot, agency, area...)."""

    id: int | str
    name: str = ""
    location: str | None = None
    city: str | None = None
    category: str | None = None
    unit: str | None = None


class PurchaseOrderFilterOptions(BaseSchema):
    farmers: list[FilterOption] = []
    depots: list[FilterOption] = []
    products: list[FilterOption] = []
    variants: list[FilterOption] = []


class DeliveryFilterOptions(BaseSchema):
    agencies: list[FilterOption] = []
    areas: list[FilterOption] = []


# --- Delivery summaries ---

class DeliveryAgencySummary(UpstreamSchema):
    id: int | str
    agency_id: int | str | None = None
    name: str = ""
    city: str | None = None
    variant_id: int | str | None = None
    variant_name: str | None = None
    status_counts: dict[str, int] = {}
    total_count: int = 0


class DeliverySummaryTotals(UpstreamSchema):
    total_deliveries: int = 0
    total_agencies: int = 0
    status_totals: dict[str, int] = {}


class DeliverySummaryReport(BaseSchema):
    summary: list[DeliveryAgencySummary] = []
    status_list: list[str] = []
    totals: DeliverySummaryTotals = Field(default_factory=DeliverySummaryTotals)
    record_count: int = 0


# --- Exceptions ---

class ExceptionReportRow(UpstreamSchema):
    exception_type: str | None = None
    date: str | None = None
    customer_id: str | int | None = None
    customer_name: str | None = None
    address: str = ""
    pincode: str = ""
    depot_name: str = ""
    sub_from_date: str = ""
    sub_to_date: str = ""
    mobile_number: str = ""
    last_variant: str = ""
    new_variant: str = ""


class ExceptionCounts(UpstreamSchema):
    variant_changes: int = 0
    stopped_subscriptions: int = 0
    new_customers: int = 0


class ExceptionReport(BaseSchema):
    report: list[ExceptionReportRow] = []
    variant_changes: list[ExceptionReportRow] = []
    stopped_subscriptions: list[ExceptionReportRow] = []
    new_customers: list[ExceptionReportRow] = []
    counts: ExceptionCounts | None = None
    record_count: int = 0


# --- Subscriptions ---

class DeliveryAddressSummary(UpstreamSchema):
    recipient_name: str = ""
    mobile: str = ""
    full_address: str = ""


class SubscriptionReportItem(UpstreamSchema):
    id: int
    member_id: int | None = None
    member_name: str = ""
    member_email: str = ""
    member_mobile: str = ""
    member_active: bool | None = None
    product_name: str = ""
    variant_name: str = ""
    delivery_schedule: str = ""
    weekdays: str | None = None
    daily_qty: Decimal = Decimal("0")
    alternate_qty: Decimal | None = None
    total_qty: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    walletamt: Decimal = Decimal("0")
    payableamt: Decimal = Decimal("0")
    receivedamt: Decimal = Decimal("0")
    payment_status: str = ""
    payment_mode: str | None = None
    payment_reference_no: str | None = None
    payment_date: str | None = None
    start_date: str | None = None
    expiry_date: str | None = None
    is_expired: bool = False
    agency_id: int | None = None
    agency_name: str | None = None
    agency_city: str | None = None
    agency_assigned: bool = False
    delivery_address: DeliveryAddressSummary | None = None
    delivery_instructions: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class PaymentStatusBucket(UpstreamSchema):
    count: int = 0
    total_amount: Decimal = Decimal("0")
    total_received: Decimal = Decimal("0")
    total_payable: Decimal = Decimal("0")


class SubscriptionReportStatistics(UpstreamSchema):
    by_payment_status: dict[str, PaymentStatusBucket] = {}
    expired_count: int = 0
    active_count: int = 0


class SubscriptionReportSummary(UpstreamSchema):
    total_subscriptions: int = 0
    current_page: int = 1
    total_pages: int = 0
    page_size: int = 0
    statistics: SubscriptionReportStatistics = Field(default_factory=SubscriptionReportStatistics)


class SubscriptionReport(BaseSchema):
    items: list[SubscriptionReportItem] = []
    summary: SubscriptionReportSummary = Field(default_factory=SubscriptionReportSummary)


# --- Sale register ---

class SaleRegisterRow(BaseSchema):
    name: str = ""
    customer_id: str | int = ""
    sale_amount: Decimal = Decimal("0")
    refund_amount: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    address: str = ""
    pincode: str = ""
    mobile: str = ""
    depot: str = ""
    variant: str = ""
    subscription_start_date: str = ""


class SaleRegisterTotals(BaseSchema):
    sale_amount: Decimal
    refund_amount: Decimal
    net_amount: Decimal


class SaleRegisterReport(BaseSchema):
    rows: list[SaleRegisterRow]
    totals: SaleRegisterTotals


# --- SNF orders ---

class DepotRef(UpstreamSchema):
    id: int
    name: str = ""


class SNFOrderLine(UpstreamSchema):
    id: int | None = None
    name: str = ""
    variant_name: str | None = None
    price: Decimal = Decimal("0")
    quantity: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")


class SNFOrderReportItem(UpstreamSchema):
    id: int
    order_no: str = ""
    customer_name: str = ""
    mobile: str = ""
    email: str | None = None
    city: str = ""
    state: str | None = None
    pincode: str = ""
    address_line1: str = ""
    address_line2: str | None = None
    subtotal: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    payment_mode: str | None = None
    payment_status: str = ""
    payment_ref_no: str | None = None
    payment_date: str | None = None
    invoice_no: str | None = None
    order_date: str | None = None
    depot: DepotRef | None = None
    items: list[SNFOrderLine] = []


class DimensionStats(BaseSchema):
    """Count and amount accumulated for one bucket of one dimension."""

    count: int = 0
    amount: Decimal = Decimal("0")


class PaymentBreakdown(BaseSchema):
    paid: int = 0
    pending: int = 0
    failed: int = 0


class ProductStats(BaseSchema):
    product_name: str
    variant_name: str | None = None
    quantity: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    order_count: int = 0


class DepotWiseStats(BaseSchema):
    depot_id: int
    depot_name: str
    total_orders: int = 0
    total_customers: int = 0
    total_amount: Decimal = Decimal("0")
    total_quantity: Decimal = Decimal("0")
    avg_order_value: Decimal = Decimal("0")
    payment_breakdown: PaymentBreakdown = Field(default_factory=PaymentBreakdown)
    top_products: list[ProductStats] = []


class CityStats(BaseSchema):
    city: str
    order_count: int = 0
    customer_count: int = 0
    amount: Decimal = Decimal("0")
    avg_order_value: Decimal = Decimal("0")


class PaymentStats(BaseSchema):
    by_status: dict[str, DimensionStats] = {}
    by_mode: dict[str, DimensionStats] = {}


class SNFOrdersReportStats(BaseSchema):
    total_orders: int = 0
    total_customers: int = 0
    total_amount: Decimal = Decimal("0")
    total_quantity: Decimal = Decimal("0")
    avg_order_value: Decimal = Decimal("0")
    depot_stats: list[DepotWiseStats] = []
    payment_stats: PaymentStats = Field(default_factory=PaymentStats)
    city_stats: list[CityStats] = []
    product_stats: list[ProductStats] = []


class SNFOrdersReportResponse(BaseSchema):
    stats: SNFOrdersReportStats
    orders: list[SNFOrderReportItem]
    total_records: int


# --- Delivery labeling ---

class LabelProductRef(UpstreamSchema):
    name: str = ""


class LabelOrderItem(UpstreamSchema):
    id: int | None = None
    name: str = ""
    variant_name: str | None = None
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")
    product: LabelProductRef | None = None
    depot_product_variant: LabelProductRef | None = None


class DeliveryLabelOrder(UpstreamSchema):
    id: int
    order_no: str = ""
    name: str = ""
    mobile: str = ""
    email: str | None = None
    address_line1: str = ""
    address_line2: str | None = None
    city: str = ""
    state: str | None = None
    pincode: str = ""
    subtotal: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    payment_status: str = ""
    payment_mode: str | None = None
    delivery_date: str | None = None
    created_at: str | None = None
    items: list[LabelOrderItem] = []
    depot: DepotRef | None = None


class DeliveryLabelingSummary(UpstreamSchema):
    total_orders: int = 0
    total_amount: Decimal = Decimal("0")
    paid_orders: int = 0
    pending_orders: int = 0
    paid_amount: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")


class DeliveryLabelingReport(BaseSchema):
    delivery_date: date
    depot_id: int | None = None
    depot_name: str = "All Depots"
    orders: list[DeliveryLabelOrder] = []
    summary: DeliveryLabelingSummary = Field(default_factory=DeliveryLabelingSummary)


# --- Revenue / wallet ---

class RevenueReportRow(UpstreamSchema):
    name: str = ""
    member_id: int | str = ""
    sale_amount: Decimal = Decimal("0")
    mobile: str = ""
    current_variant: str = ""
    milk_subscription_start_date: str | None = None
    address: str = ""
    pincode: str = ""
    depot: str = ""


class RevenueReport(BaseSchema):
    """Customer-wise sale amount to date, largest first."""

    rows: list[RevenueReportRow] = []
    total_sale_amount: Decimal = Decimal("0")
    record_count: int = 0


class WalletReportRow(UpstreamSchema):
    name: str = ""
    member_id: int | str = ""
    mobile: str = ""
    address: str = ""
    pincode: str = ""
    closing_balance: Decimal = Decimal("0")


class WalletReport(BaseSchema):
    end_date: date
    rows: list[WalletReportRow] = []
    total_closing_balance: Decimal = Decimal("0")
    record_count: int = 0


# --- Delivery date orders ---

class DeliveryDateOrderLine(UpstreamSchema):
    order_id: int | str
    po_number: str | None = None
    order_date: str | None = None
    vendor_name: str = ""
    agency_name: str = ""
    status: str = ""
    quantity: Decimal = Decimal("0")
    delivered_quantity: Decimal = Decimal("0")
    received_quantity: Decimal = Decimal("0")
    supervisor_quantity: Decimal = Decimal("0")
    line_amount: Decimal = Decimal("0")
    customer_name: str | None = None
    customer_mobile: str | None = None
    payment_status: str | None = None
    delivery_address: str | None = None
    area_name: str | None = None


class DepotVariantGroup(UpstreamSchema):
    depot_variant_id: int | None = None
    depot_variant_name: str = ""
    depot_id: int | None = None
    depot_name: str = ""
    mrp: Decimal = Decimal("0")
    price_at_purchase: Decimal = Decimal("0")
    orders: list[DeliveryDateOrderLine] = []
    total_quantity: Decimal = Decimal("0")
    total_delivered_quantity: Decimal = Decimal("0")
    total_received_quantity: Decimal = Decimal("0")
    total_supervisor_quantity: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")


class ProductGroup(UpstreamSchema):
    product_id: int | None = None
    product_name: str = ""
    category_name: str = ""
    total_quantity: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    depot_variants: list[DepotVariantGroup] = []


class DeliveryDateGroup(UpstreamSchema):
    """Orders of one delivery date, by product and then depot variant."""

    date: str
    total_orders: int = 0
    total_amount: Decimal = Decimal("0")
    products: list[ProductGroup] = []


class DeliveryDateOrdersSummary(UpstreamSchema):
    total_delivery_dates: int = 0
    total_orders: int = 0
    total_amount: Decimal = Decimal("0")
    unique_products: int = 0
    unique_depot_variants: int = 0


class DeliveryDateOrdersReport(BaseSchema):
    delivery_date: date | None = None
    depot_id: int | None = None
    status: str = "ALL"
    groups: list[DeliveryDateGroup] = []
    summary: DeliveryDateOrdersSummary = Field(default_factory=DeliveryDateOrdersSummary)


# --- Purchases joined with payments ---

PurchasePaymentState = Literal["paid", "partial", "unpaid"]


class PurchaseLineSummary(BaseSchema):
    product_name: str
    variant_name: str
    quantity: int
    rate: Decimal
    amount: Decimal


class PurchaseReportItem(BaseSchema):
    purchase_id: int
    purchase_no: str = ""
    purchase_date: str | None = None
    invoice_no: str = ""
    invoice_date: str | None = None
    vendor_id: int = 0
    vendor_name: str = ""
    depot_id: int = 0
    depot_name: str = ""
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    outstanding_amount: Decimal = Decimal("0")
    payment_status: PurchasePaymentState = "unpaid"
    payment_count: int = 0
    last_payment_date: str | None = None
    products: list[PurchaseLineSummary] = []


class PurchaseSummaryStats(BaseSchema):
    total_purchases: int = 0
    total_amount: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_outstanding: Decimal = Decimal("0")
    average_order_value: Decimal = Decimal("0")
    fully_paid_count: int = 0
    partially_paid_count: int = 0
    unpaid_count: int = 0


class PurchaseReport(BaseSchema):
    summary: PurchaseSummaryStats = Field(default_factory=PurchaseSummaryStats)
    purchases: list[PurchaseReportItem] = []
    total_pages: int = 1
    current_page: int = 1


class VendorPurchaseSummary(BaseSchema):
    vendor_id: int
    vendor_name: str = ""
    total_purchases: int = 0
    total_amount: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_outstanding: Decimal = Decimal("0")
    last_purchase_date: str | None = None
    last_payment_date: str | None = None


class PaidPurchaseRef(BaseSchema):
    purchase_id: int = 0
    purchase_no: str = ""
    invoice_no: str = ""
    amount: Decimal = Decimal("0")
    purchase_date: str = ""


class PaymentReportItem(BaseSchema):
    payment_id: int
    payment_no: str = ""
    payment_date: str | None = None
    vendor_id: int = 0
    vendor_name: str = ""
    mode: str | None = None
    reference_no: str | None = None
    total_amount: Decimal = Decimal("0")
    purchase_count: int = 0
    purchases: list[PaidPurchaseRef] = []


class PaymentReport(BaseSchema):
    payments: list[PaymentReportItem] = []
    total_amount: Decimal = Decimal("0")
    total_pages: int = 1
    current_page: int = 1


class PurchaseReportFilters(BaseSchema):
    start_date: date | None = None
    end_date: date | None = None
    vendor_id: int | None = None
    status: Literal["all", "paid", "partial", "unpaid"] = "all"


# --- Excel export configuration ---

class ExcelHeader(BaseSchema):
    key: str
    label: str
    width: int = 15
    align: Literal["left", "center", "right"] | None = None


class GroupingConfig(BaseSchema):
    enabled: bool = False
    levels: list[str] = []
    show_totals: bool = False


class ExcelExportConfig(BaseSchema):
    """Static descriptor for one export: file/sheet names, ordered columns, grouping."""

    file_name: str
    sheet_name: str
    headers: list[ExcelHeader]
    include_title: bool = True
    grouping: GroupingConfig | None = None
