"""Export report data to Excel (XLSX)."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from pydantic.alias_generators import to_snake

from snf_admin.core.config import settings
from snf_admin.modules.reports.grouping import is_grouped_data
from snf_admin.modules.reports.schemas import (
    DeliveryDateOrdersReport,
    DeliveryItem,
    DeliveryReportTotals,
    ExcelExportConfig,
    ExcelHeader,
    GroupedNode,
    GroupingConfig,
    PaymentReport,
    PurchaseOrderItem,
    PurchaseReport,
    PurchaseReportFilters,
    ReportTotals,
    RevenueReportRow,
    SaleRegisterRow,
    SNFOrderReportItem,
    SNFOrdersReportStats,
    VendorPurchaseSummary,
    WalletReportRow,
)
from snf_admin.shared.utils.dates import format_date, format_date_dmy
from snf_admin.shared.utils.money import format_inr

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_COLUMN_WIDTH = 15
MIN_MERGE_COLUMNS = 11
MONEY_KEYS = {"amount", "rate"}

GROUP_COLORS = {
    "farmer": "D4E6F1",
    "depot": "D5F4E6",
    "variant": "FDEBD0",
    "agency": "E3F2FD",
    "area": "E8F5E8",
    "status": "FFF3E0",
}
DEFAULT_GROUP_COLOR = "F0F0F0"

_THIN = Side(style="thin")
_MEDIUM = Side(style="medium")


@dataclass
class ExcelFile:
    """Serialized workbook plus the attachment file name."""

    file_name: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def _cell_value(v: Any) -> Any:
    """Convert value for Excel (Decimal -> float, date stays)."""
    if v is None:
        return None
    if isinstance(v, Decimal):
        return float(v)
    return v


def _money_format() -> str:
    return f'"{settings.report_currency_symbol}"#,##0.00'


def _qty_text(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f") if value else "0"
    return str(value if value is not None else 0)


def _save(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


# --- Column resolvers, one table per row shape ---

Resolver = Callable[[Any], Any]

_SHARED_RESOLVERS: dict[str, Resolver] = {
    "status": lambda item: item.status or "pending",
    "product": lambda item: f"{item.product_name} - {item.variant_name}",
    "qty": lambda item: item.quantity,
    "agency": lambda item: item.agency_name or "N/A",
    "amount": lambda item: item.amount,
    "invoice": lambda item: "",
}

_PURCHASE_RESOLVERS: dict[str, Resolver] = {
    **_SHARED_RESOLVERS,
    "orderId": lambda item: "",
    "date": lambda item: format_date(item.purchase_date),
    "customer": lambda item: "",
    "address": lambda item: "",
    "area": lambda item: "",
    "deliveredBy": lambda item: "",
    "deliveryTime": lambda item: "",
    "purchaseNo": lambda item: item.purchase_no,
    "farmer": lambda item: item.farmer_name,
    "depot": lambda item: item.depot_name,
    "rate": lambda item: item.purchase_rate,
}

_DELIVERY_RESOLVERS: dict[str, Resolver] = {
    **_SHARED_RESOLVERS,
    "orderId": lambda item: item.order_id,
    "date": lambda item: format_date(item.delivery_date),
    "customer": lambda item: item.customer_name,
    "address": lambda item: item.delivery_address,
    "area": lambda item: item.area_name,
    "deliveredBy": lambda item: item.delivered_by or "",
    "deliveryTime": lambda item: item.delivery_time or "",
    "purchaseNo": lambda item: "",
    "farmer": lambda item: "",
    "depot": lambda item: "",
    "rate": lambda item: "",
}

_ROW_RESOLVERS: dict[type, dict[str, Resolver]] = {
    PurchaseOrderItem: _PURCHASE_RESOLVERS,
    DeliveryItem: _DELIVERY_RESOLVERS,
}


def _fallback_value(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        value = item.get(key)
        if value is None:
            value = item.get(to_snake(key))
    else:
        value = getattr(item, key, None)
        if value is None:
            value = getattr(item, to_snake(key), None)
    return "" if value is None else value


def resolve_cell(item: Any, key: str) -> Any:
    """Value for column `key` of a leaf row; unknown keys fall back to the field value, else ''."""
    resolver = _ROW_RESOLVERS.get(type(item), {}).get(key)
    if resolver is not None:
        return resolver(item)
    return _fallback_value(item, key)


def _group_header_text(node: GroupedNode) -> str:
    level = node.level
    if level == "farmer":
        return f"Farmer: {node.name}"
    if level == "depot":
        return f"Depot: {node.name}" + (f" ({node.location})" if node.location else "")
    if level == "variant":
        text = f"Product: {node.product_name or ''} - Variant: {node.name}"
        return text + (f" ({node.unit})" if node.unit else "")
    if level == "agency":
        return f"Delivery Agency: {node.name}"
    if level == "area":
        return f"Area: {node.name}" + (f" ({node.city})" if node.city else "")
    if level == "status":
        return f"Status: {node.name}"
    return node.name


def _grand_total_values(totals: Any) -> list[Any] | None:
    if isinstance(totals, ReportTotals):
        return [
            "GRAND TOTAL",
            f"Purchases: {totals.total_purchases}",
            f"Items: {totals.total_items}",
            f"Qty: {_qty_text(totals.total_quantity)}",
            format_inr(totals.total_amount, settings.report_currency_symbol),
            "", "", "", "", "",
            f"Avg Value: {format_inr(totals.avg_purchase_value, settings.report_currency_symbol)}",
        ]
    if isinstance(totals, DeliveryReportTotals):
        return [
            "GRAND TOTAL",
            f"Deliveries: {totals.total_deliveries}",
            f"Items: {totals.total_items}",
            f"Qty: {_qty_text(totals.total_quantity)}",
            format_inr(totals.total_amount, settings.report_currency_symbol),
            f"Delivered: {totals.delivered_count}",
            f"Pending: {totals.pending_count}",
            "", "", "",
            f"Avg Value: {format_inr(totals.avg_delivery_value, settings.report_currency_symbol)}",
        ]
    return None


class ExcelExporter:
    """
    Writes one styled worksheet from flat rows or a grouped report tree.

    Layout: optional title row, header row, then either one row per leaf or,
    for grouped data, group header / indented children / subtotal / blank
    separator per group, and finally an optional grand totals row.
    Callers check for empty data before exporting.
    """

    def __init__(self, today: date | None = None) -> None:
        self._today = today
        self._ws: Any = None
        self._row = 1
        self._indent = 0
        self._header_keys: list[str] = []

    def export(
        self,
        data: list[Any],
        config: ExcelExportConfig,
        totals: Any = None,
    ) -> ExcelFile:
        wb = Workbook()
        ws = wb.active
        ws.title = config.sheet_name[:31]
        self._ws = ws
        self._row = 1
        self._indent = 0
        grouping = config.grouping or GroupingConfig()

        if config.include_title:
            self._add_title(config.file_name)
        self._apply_column_widths(config.headers)
        self._add_headers(config.headers)

        if grouping.enabled and is_grouped_data(data):
            self._process_grouped(data, config.headers, grouping)
        else:
            self._process_flat(data, config.headers)

        if totals is not None and grouping.show_totals:
            self._add_grand_totals(totals)

        stamp = (self._today or date.today()).isoformat()
        file_name = f"{config.file_name}_{stamp}.xlsx"
        logger.info("Exported %s (%d rows written)", file_name, self._row - 1)
        return ExcelFile(file_name=file_name, content=_save(wb))

    def _add_title(self, title: str) -> None:
        cell = self._ws.cell(self._row, 1, title.replace("_", " "))
        cell.font = Font(bold=True, size=16)
        cell.alignment = Alignment(horizontal="center")
        self._ws.merge_cells(
            start_row=self._row, start_column=1, end_row=self._row, end_column=MIN_MERGE_COLUMNS
        )
        self._row += 2

    def _apply_column_widths(self, headers: list[ExcelHeader]) -> None:
        for idx, header in enumerate(headers, start=1):
            self._ws.column_dimensions[get_column_letter(idx)].width = header.width or DEFAULT_COLUMN_WIDTH
        self._header_keys = [h.key for h in headers]

    def _add_headers(self, headers: list[ExcelHeader]) -> None:
        fill = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")
        border = Border(top=_THIN, bottom=_THIN, left=_THIN, right=_THIN)
        for idx, header in enumerate(headers, start=1):
            cell = self._ws.cell(self._row, idx, header.label)
            cell.font = Font(bold=True)
            cell.fill = fill
            cell.border = border
            cell.alignment = Alignment(horizontal=header.align or "left")
        self._row += 1

    def _process_grouped(
        self,
        groups: list[GroupedNode],
        headers: list[ExcelHeader],
        grouping: GroupingConfig,
    ) -> None:
        for group in groups:
            self._add_group_header(group, len(headers))
            self._indent += 1
            if is_grouped_data(group.data):
                self._process_grouped(group.data, headers, grouping)
            else:
                self._process_flat(group.data, headers)
            self._indent -= 1
            if grouping.show_totals:
                self._add_group_totals(group)
            self._row += 1

    def _add_group_header(self, group: GroupedNode, header_count: int) -> None:
        color = GROUP_COLORS.get(group.level, DEFAULT_GROUP_COLOR)
        cell = self._ws.cell(self._row, 1, "  " * self._indent + _group_header_text(group))
        cell.font = Font(bold=True, size=12)
        cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        self._ws.merge_cells(
            start_row=self._row,
            start_column=1,
            end_row=self._row,
            end_column=max(header_count, MIN_MERGE_COLUMNS),
        )
        self._row += 1

    def _process_flat(self, data: list[Any], headers: list[ExcelHeader]) -> None:
        indent = "  " * self._indent
        for item in data:
            for idx, header in enumerate(headers, start=1):
                value = resolve_cell(item, header.key)
                if idx == 1 and isinstance(value, str):
                    value = f"{indent}{value}"
                cell = self._ws.cell(self._row, idx, _cell_value(value))
                if header.key in MONEY_KEYS and isinstance(value, (int, float, Decimal)):
                    cell.number_format = _money_format()
                if header.align:
                    cell.alignment = Alignment(horizontal=header.align)
            self._row += 1

    def _add_group_totals(self, group: GroupedNode) -> None:
        name = f"{group.product_name} - {group.name}" if group.level == "variant" else group.name
        totals = group.totals
        label = self._ws.cell(self._row, 1, f"{'  ' * self._indent}Total for {name}:")
        label.font = Font(bold=True)
        for idx, key in enumerate(self._header_keys, start=1):
            if idx == 1:
                continue
            if key == "qty":
                self._ws.cell(self._row, idx, _cell_value(totals.total_quantity))
            elif key == "amount":
                cell = self._ws.cell(self._row, idx, _cell_value(totals.total_amount))
                cell.number_format = _money_format()
            elif key == "rate":
                self._ws.cell(
                    self._row, idx, f"Avg: {format_inr(totals.avg_rate, settings.report_currency_symbol)}"
                )
            elif key == "agency":
                self._ws.cell(self._row, idx, f"{totals.item_count} items")
        self._row += 1

    def _add_grand_totals(self, totals: Any) -> None:
        values = _grand_total_values(totals)
        if values is None:
            return
        self._row += 1
        fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")
        border = Border(top=_MEDIUM, bottom=_MEDIUM)
        for idx, value in enumerate(values, start=1):
            cell = self._ws.cell(self._row, idx, value)
            cell.font = Font(bold=True, size=14)
            cell.fill = fill
            cell.border = border
            cell.alignment = Alignment(horizontal="right" if idx - 1 >= 4 else "left")
        self._row += 1


# --- Report export descriptors ---

PURCHASE_ORDER_HEADERS = [
    ExcelHeader(key="status", label="Status", width=12),
    ExcelHeader(key="product", label="Product", width=20),
    ExcelHeader(key="qty", label="Quantity", width=15),
    ExcelHeader(key="agency", label="Agency", width=15),
    ExcelHeader(key="amount", label="Amount", width=15, align="right"),
    ExcelHeader(key="purchaseNo", label="Purchase No", width=15),
    ExcelHeader(key="date", label="Date", width=12),
    ExcelHeader(key="invoice", label="Invoice No", width=15),
    ExcelHeader(key="farmer", label="Farmer", width=20),
    ExcelHeader(key="depot", label="Depot", width=20),
    ExcelHeader(key="rate", label="Rate", width=12, align="right"),
]

DELIVERY_AGENCY_HEADERS = [
    ExcelHeader(key="orderId", label="Order ID", width=15),
    ExcelHeader(key="date", label="Delivery Date", width=12),
    ExcelHeader(key="product", label="Product", width=25),
    ExcelHeader(key="qty", label="Quantity", width=10, align="right"),
    ExcelHeader(key="customer", label="Customer", width=20),
    ExcelHeader(key="address", label="Delivery Address", width=30),
    ExcelHeader(key="area", label="Area", width=15),
    ExcelHeader(key="agency", label="Agency", width=20),
    ExcelHeader(key="status", label="Status", width=12),
    ExcelHeader(key="amount", label="Amount", width=15, align="right"),
]

SUBSCRIPTION_HEADERS = [
    ExcelHeader(key="id", label="ID", width=10),
    ExcelHeader(key="memberName", label="Member Name", width=20),
    ExcelHeader(key="memberEmail", label="Email", width=25),
    ExcelHeader(key="memberMobile", label="Mobile", width=15),
    ExcelHeader(key="productName", label="Product", width=20),
    ExcelHeader(key="variantName", label="Variant", width=20),
    ExcelHeader(key="deliverySchedule", label="Schedule", width=15),
    ExcelHeader(key="dailyQty", label="Daily Qty", width=12, align="right"),
    ExcelHeader(key="totalQty", label="Total Qty", width=12, align="right"),
    ExcelHeader(key="alternateQty", label="Alt Qty", width=12, align="right"),
    ExcelHeader(key="amount", label="Amount", width=15, align="right"),
    ExcelHeader(key="paymentStatus", label="Payment Status", width=15),
    ExcelHeader(key="agencyName", label="Agency Name", width=20),
    ExcelHeader(key="agencyCity", label="Agency City", width=15),
    ExcelHeader(key="agencyAssigned", label="Agency Assigned", width=15),
    ExcelHeader(key="startDate", label="Start Date", width=12),
    ExcelHeader(key="expiryDate", label="Expiry Date", width=12),
    ExcelHeader(key="isExpired", label="Expired", width=10),
    ExcelHeader(key="deliveryAddress", label="Delivery Address", width=30),
]

EXCEPTION_HEADERS = [
    ExcelHeader(key="date", label="Date", width=12),
    ExcelHeader(key="customerId", label="Customer ID", width=12),
    ExcelHeader(key="address", label="Address", width=35),
    ExcelHeader(key="pincode", label="Pincode", width=10),
    ExcelHeader(key="depotName", label="Depot Name", width=20),
    ExcelHeader(key="subFromDate", label="Sub From date", width=14),
    ExcelHeader(key="subToDate", label="Sub To Date", width=14),
    ExcelHeader(key="mobileNumber", label="Mobile Number", width=14),
    ExcelHeader(key="lastVariant", label="Last Varient", width=25),
    ExcelHeader(key="newVariant", label="New Varient", width=25),
]


def purchase_order_export_config(group_by: str | None) -> ExcelExportConfig:
    return ExcelExportConfig(
        file_name="Purchase_Order_Report",
        sheet_name="Purchase Orders",
        headers=PURCHASE_ORDER_HEADERS,
        grouping=GroupingConfig(
            enabled=True, levels=[g for g in (group_by or "").split(",") if g], show_totals=True
        ),
    )


def delivery_agency_export_config(group_by: str | None) -> ExcelExportConfig:
    return ExcelExportConfig(
        file_name="Delivery_Agencies_Report",
        sheet_name="Delivery Agencies",
        headers=DELIVERY_AGENCY_HEADERS,
        grouping=GroupingConfig(
            enabled=True, levels=[g for g in (group_by or "").split(",") if g], show_totals=True
        ),
    )


def delivery_summary_export_config(status_list: list[str]) -> ExcelExportConfig:
    headers = [
        ExcelHeader(key="agency", label="Delivery Agency", width=25),
        ExcelHeader(key="city", label="City", width=15),
    ]
    headers.extend(
        ExcelHeader(key=status.lower(), label=status[:1].upper() + status[1:], width=12, align="right")
        for status in status_list
    )
    headers.append(ExcelHeader(key="total", label="Total", width=12, align="right"))
    # TOTAL row is part of the data
    return ExcelExportConfig(
        file_name="Delivery_Summaries_Report",
        sheet_name="Delivery Summaries",
        headers=headers,
        grouping=GroupingConfig(enabled=False, show_totals=False),
    )


SUBSCRIPTION_EXPORT = ExcelExportConfig(
    file_name="Subscription_Reports",
    sheet_name="Subscriptions",
    headers=SUBSCRIPTION_HEADERS,
    grouping=GroupingConfig(enabled=False, show_totals=False),
)

EXCEPTION_EXPORT = ExcelExportConfig(
    file_name="Exception_Report",
    sheet_name="Exceptions",
    headers=EXCEPTION_HEADERS,
    include_title=False,
)


# --- SNF orders workbook ---

def _percent(count: int, total: int) -> str:
    if not total:
        return "0.0%"
    return f"{count / total * 100:.1f}%"


def _ratio(total: Decimal, count: int | Decimal) -> float:
    if not count:
        return 0.0
    return round(float(total) / float(count), 2)


def _write_sheet(ws: Any, rows: list[list[Any]], widths: list[int], header_row: int | None = 1) -> None:
    for i, row in enumerate(rows, start=1):
        for j, val in enumerate(row, start=1):
            ws.cell(row=i, column=j, value=_cell_value(val))
    for j, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(j)].width = width
    if header_row:
        for j in range(1, len(rows[header_row - 1]) + 1):
            ws.cell(header_row, j).font = Font(bold=True)


class SNFOrdersExcelExporter:
    """Six-sheet SNF orders workbook: overview, depots, orders, payments, products, cities."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    def export(self, orders: list[SNFOrderReportItem], stats: SNFOrdersReportStats) -> ExcelFile:
        now = self._now or datetime.now()
        wb = Workbook()
        self._overview(wb.active, stats, now)
        self._depot_wise(wb.create_sheet("Depot-wise Analysis"), stats)
        self._orders_detail(wb.create_sheet("Orders Detail"), orders)
        self._payment_analysis(wb.create_sheet("Payment Analysis"), stats)
        self._product_analysis(wb.create_sheet("Product Analysis"), stats)
        self._city_wise(wb.create_sheet("City-wise Analysis"), stats)

        file_name = f"SNF_Orders_Report_{now.strftime('%Y-%m-%d')}.xlsx"
        logger.info("Exported %s (%d orders)", file_name, len(orders))
        return ExcelFile(file_name=file_name, content=_save(wb))

    def _overview(self, ws: Any, stats: SNFOrdersReportStats, now: datetime) -> None:
        ws.title = "Overview"
        symbol = settings.report_currency_symbol
        rows: list[list[Any]] = [
            ["SNF Orders Report - Overview", "", "", ""],
            ["Generated on:", now.strftime("%d/%m/%Y %H:%M"), "", ""],
            ["", "", "", ""],
            ["Key Metrics", "", "", ""],
            ["Total Orders", stats.total_orders, "", ""],
            ["Total Customers", stats.total_customers, "", ""],
            ["Total Amount", format_inr(stats.total_amount, symbol), "", ""],
            ["Average Order Value", format_inr(stats.avg_order_value, symbol), "", ""],
            ["", "", "", ""],
            ["Payment Status Breakdown", "Count", "Amount", "Percentage"],
        ]
        for status, s in stats.payment_stats.by_status.items():
            rows.append([status, s.count, format_inr(s.amount, symbol), _percent(s.count, stats.total_orders)])
        rows.append(["", "", "", ""])
        rows.append(["Payment Mode Breakdown", "Count", "Amount", "Percentage"])
        for mode, s in stats.payment_stats.by_mode.items():
            rows.append([mode or "Not Specified", s.count, format_inr(s.amount, symbol), _percent(s.count, stats.total_orders)])
        _write_sheet(ws, rows, [25, 15, 20, 15])

    def _depot_wise(self, ws: Any, stats: SNFOrdersReportStats) -> None:
        headers = [
            "Depot Name", "Total Orders", "Unique Customers", "Total Amount",
            "Total Quantity", "Avg Order Value", "Paid Orders", "Pending Orders",
            "Failed Orders", "Top Product", "Top Product Qty",
        ]
        rows: list[list[Any]] = [headers]
        for depot in stats.depot_stats:
            top = depot.top_products[0] if depot.top_products else None
            rows.append([
                depot.depot_name, depot.total_orders, depot.total_customers, depot.total_amount,
                depot.total_quantity, depot.avg_order_value, depot.payment_breakdown.paid,
                depot.payment_breakdown.pending, depot.payment_breakdown.failed,
                top.product_name if top else "N/A", top.quantity if top else 0,
            ])
        _write_sheet(ws, rows, [15] * len(headers))

    def _orders_detail(self, ws: Any, orders: list[SNFOrderReportItem]) -> None:
        headers = [
            "Order No", "Date", "Customer Name", "Mobile", "Email", "City", "State",
            "Pincode", "Depot", "Items Count", "Total Quantity", "Subtotal",
            "Delivery Fee", "Total Amount", "Payment Status", "Payment Mode",
            "Payment Ref", "Payment Date", "Invoice No",
        ]
        rows: list[list[Any]] = [headers]
        for order in orders:
            rows.append([
                order.order_no,
                format_date_dmy(order.order_date),
                order.customer_name,
                order.mobile,
                order.email or "",
                order.city,
                order.state or "",
                order.pincode,
                order.depot.name if order.depot else "N/A",
                len(order.items),
                sum((item.quantity for item in order.items), Decimal("0")),
                order.subtotal,
                order.delivery_fee,
                order.total_amount,
                order.payment_status,
                order.payment_mode or "",
                order.payment_ref_no or "",
                format_date_dmy(order.payment_date) if order.payment_date else "",
                order.invoice_no or "",
            ])
        _write_sheet(ws, rows, [15, 12, 20, 12, 25, 15, 10, 10, 15, 10, 12, 12, 12, 15, 15, 15, 15, 12, 15])

    def _payment_analysis(self, ws: Any, stats: SNFOrdersReportStats) -> None:
        rows: list[list[Any]] = [
            ["Payment Analysis", "", "", ""],
            ["", "", "", ""],
            ["Payment Status Analysis", "", "", ""],
            ["Status", "Count", "Amount", "Percentage"],
        ]
        for status, s in stats.payment_stats.by_status.items():
            rows.append([status, s.count, s.amount, _percent(s.count, stats.total_orders)])
        rows.append(["", "", "", ""])
        rows.append(["Payment Mode Analysis", "", "", ""])
        rows.append(["Mode", "Count", "Amount", "Percentage"])
        for mode, s in stats.payment_stats.by_mode.items():
            rows.append([mode or "Not Specified", s.count, s.amount, _percent(s.count, stats.total_orders)])
        _write_sheet(ws, rows, [20, 10, 15, 15], header_row=None)

    def _product_analysis(self, ws: Any, stats: SNFOrdersReportStats) -> None:
        rows: list[list[Any]] = [
            ["Product Name", "Variant", "Total Quantity", "Total Amount", "Order Count", "Avg Order Qty"]
        ]
        for p in stats.product_stats:
            rows.append([
                p.product_name, p.variant_name or "N/A", p.quantity, p.amount,
                p.order_count, _ratio(p.quantity, p.order_count),
            ])
        _write_sheet(ws, rows, [25, 20, 15, 15, 12, 15])

    def _city_wise(self, ws: Any, stats: SNFOrdersReportStats) -> None:
        rows: list[list[Any]] = [["City", "Total Orders", "Unique Customers", "Total Amount", "Avg Order Value"]]
        for c in stats.city_stats:
            rows.append([c.city, c.order_count, c.customer_count, c.amount, _ratio(c.amount, c.order_count)])
        _write_sheet(ws, rows, [20, 15, 15, 15, 15])


# --- Sale register ---

SALE_REGISTER_COLUMNS = [
    ("Name", "name", 22),
    ("Customer ID", "customer_id", 12),
    ("Sale Amount", "sale_amount", 14),
    ("Refund Amount", "refund_amount", 14),
    ("Net Amount", "net_amount", 14),
    ("Address", "address", 40),
    ("Pincode", "pincode", 10),
    ("Mobile", "mobile", 14),
    ("Depot", "depot", 18),
    ("Variant", "variant", 20),
    ("Milk Subscription Start Date", "subscription_start_date", 24),
]


def export_sale_register(rows: list[SaleRegisterRow], start_date: str, end_date: str) -> ExcelFile:
    wb = Workbook()
    ws = wb.active
    ws.title = "Sale Register"
    table: list[list[Any]] = [[label for label, _, _ in SALE_REGISTER_COLUMNS]]
    for r in rows:
        table.append([getattr(r, attr) for _, attr, _ in SALE_REGISTER_COLUMNS])
    _write_sheet(ws, table, [width for _, _, width in SALE_REGISTER_COLUMNS])
    file_name = f"Sale_Register_{start_date}_to_{end_date}.xlsx"
    logger.info("Exported %s (%d rows)", file_name, len(rows))
    return ExcelFile(file_name=file_name, content=_save(wb))


# --- Revenue / wallet ---

REVENUE_COLUMNS = [
    ("Name", "name", 22),
    ("Member ID", "member_id", 12),
    ("Sale Amount", "sale_amount", 14),
    ("Mobile", "mobile", 14),
    ("Current Varient", "current_variant", 20),
    ("Milk Subscription Start Date", "milk_subscription_start_date", 24),
    ("Address", "address", 40),
    ("Pincode", "pincode", 10),
    ("Depot", "depot", 18),
]

WALLET_COLUMNS = [
    ("Name", "name", 22),
    ("Member ID", "member_id", 12),
    ("Mobile", "mobile", 14),
    ("Address", "address", 40),
    ("Pincode", "pincode", 10),
    ("Closing Balance", "closing_balance", 16),
]


def _table_with_total(
    columns: list[tuple[str, str, int]],
    rows: list[Any],
    total_attr: str,
    total: Decimal,
    formatters: Mapping[str, Callable[[Any], Any]] | None = None,
) -> list[list[Any]]:
    formatters = formatters or {}
    table: list[list[Any]] = [[label for label, _, _ in columns]]
    for r in rows:
        table.append([formatters.get(attr, lambda v: v)(getattr(r, attr)) for _, attr, _ in columns])
    total_row: list[Any] = ["" for _ in columns]
    total_row[0] = "TOTAL"
    total_row[[attr for _, attr, _ in columns].index(total_attr)] = total
    table.append(total_row)
    return table


def export_revenue_report(rows: list[RevenueReportRow], total: Decimal, today: date | None = None) -> ExcelFile:
    wb = Workbook()
    ws = wb.active
    ws.title = "Revenue"
    table = _table_with_total(
        REVENUE_COLUMNS, rows, "sale_amount", total,
        formatters={"milk_subscription_start_date": format_date_dmy},
    )
    _write_sheet(ws, table, [width for _, _, width in REVENUE_COLUMNS])
    ws.cell(len(table), 1).font = Font(bold=True)
    file_name = f"Revenue_Report_{(today or date.today()).isoformat()}.xlsx"
    logger.info("Exported %s (%d rows)", file_name, len(rows))
    return ExcelFile(file_name=file_name, content=_save(wb))


def export_wallet_report(rows: list[WalletReportRow], total: Decimal, end_date: date) -> ExcelFile:
    wb = Workbook()
    ws = wb.active
    ws.title = "Wallet"
    table = _table_with_total(WALLET_COLUMNS, rows, "closing_balance", total)
    _write_sheet(ws, table, [width for _, _, width in WALLET_COLUMNS])
    ws.cell(len(table), 1).font = Font(bold=True)
    file_name = f"Wallet_Report_As_Of_{end_date.isoformat()}.xlsx"
    logger.info("Exported %s (%d rows)", file_name, len(rows))
    return ExcelFile(file_name=file_name, content=_save(wb))


# --- Delivery date orders ---

DELIVERY_ORDER_HEADERS = [
    "    Variant", "Depot", "MRP", "Price", "Quantity", "Amount", "Customer", "Mobile", "Payment Status",
]


def export_delivery_date_orders(
    report: DeliveryDateOrdersReport,
    now: datetime | None = None,
) -> ExcelFile:
    """Single sheet: one block per delivery date, one sub-block per product, one row per order."""
    now = now or datetime.now()
    symbol = settings.report_currency_symbol
    width = len(DELIVERY_ORDER_HEADERS)

    def line(*values: Any) -> list[Any]:
        return list(values) + [""] * (width - len(values))

    rows: list[list[Any]] = [
        line("Delivery Date Orders Report"),
        line("Generated on:", now.strftime("%d/%m/%Y %H:%M")),
        line("Delivery Date:", format_date(report.delivery_date) or "All dates"),
        line("Total Orders:", report.summary.total_orders),
        line("Total Amount:", format_inr(report.summary.total_amount, symbol)),
        line(),
    ]
    for group in report.groups:
        label = format_date(group.date)
        rows.append(line(f"DELIVERY DATE: {label}" if label else "No Delivery Date"))
        rows.append(line(f"Orders: {group.total_orders}", format_inr(group.total_amount, symbol)))
        rows.append(line())
        for product in group.products:
            rows.append(line(f"  PRODUCT: {product.product_name}"))
            rows.append(line("Category:", product.category_name))
            rows.append(line("Qty:", _qty_text(product.total_quantity)))
            rows.append(line("Amount:", format_inr(product.total_amount, symbol)))
            rows.append(list(DELIVERY_ORDER_HEADERS))
            for variant in product.depot_variants:
                for order in variant.orders:
                    rows.append([
                        f"    {variant.depot_variant_name}",
                        variant.depot_name,
                        variant.mrp,
                        variant.price_at_purchase,
                        order.quantity,
                        order.line_amount,
                        order.customer_name or "",
                        order.customer_mobile or "",
                        order.payment_status or "",
                    ])
            rows.append(line())
        rows.append(line())

    wb = Workbook()
    ws = wb.active
    ws.title = "Delivery Orders Report"
    _write_sheet(ws, rows, [30, 15, 10, 10, 8, 12, 20, 15, 12])
    suffix = report.delivery_date.strftime("%d%m%Y") if report.delivery_date else "all_dates"
    file_name = f"Delivery_Orders_{suffix}.xlsx"
    logger.info("Exported %s (%d delivery dates)", file_name, len(report.groups))
    return ExcelFile(file_name=file_name, content=_save(wb))


# --- Purchases joined with payments ---

def export_purchase_report(
    report: PurchaseReport,
    payments: PaymentReport,
    vendors: list[VendorPurchaseSummary],
    filters: PurchaseReportFilters,
    now: datetime | None = None,
) -> ExcelFile:
    """Single sheet: summary, purchase details, purchase items, payment history, vendor summary."""
    now = now or datetime.now()
    start = filters.start_date.isoformat() if filters.start_date else "all"
    end = filters.end_date.isoformat() if filters.end_date else "all"
    summary = report.summary
    rows: list[list[Any]] = [
        ["Purchase Report"],
        ["Report Date:", now.strftime("%d/%m/%Y %H:%M")],
        ["Date Range:", f"{start} to {end}"],
        ["Vendor Filter:", str(filters.vendor_id) if filters.vendor_id else "All Vendors"],
        ["Status Filter:", filters.status],
        [],
        ["SUMMARY"],
        ["Total Purchases", summary.total_purchases],
        ["Total Amount", summary.total_amount],
        ["Total Paid", summary.total_paid],
        ["Total Outstanding", summary.total_outstanding],
        ["Average Order Value", summary.average_order_value],
        ["Fully Paid", summary.fully_paid_count],
        ["Partially Paid", summary.partially_paid_count],
        ["Unpaid", summary.unpaid_count],
        [],
        ["PURCHASE DETAILS"],
        [
            "Purchase No", "Purchase Date", "Invoice No", "Invoice Date", "Vendor", "Depot",
            "Total Amount", "Paid Amount", "Outstanding", "Payment Status", "Payments",
        ],
    ]
    for p in report.purchases:
        rows.append([
            p.purchase_no, format_date_dmy(p.purchase_date), p.invoice_no, format_date_dmy(p.invoice_date),
            p.vendor_name, p.depot_name, p.total_amount, p.paid_amount, p.outstanding_amount,
            p.payment_status.upper(), p.payment_count,
        ])
    rows.append([
        "TOTALS", "", "", "", "", "", summary.total_amount, summary.total_paid, summary.total_outstanding, "", "",
    ])
    rows.append([])

    rows.append(["PURCHASE ITEMS"])
    rows.append(["Purchase No", "Vendor", "Product", "Variant", "Quantity", "Rate", "Amount"])
    item_qty = 0
    item_amount = Decimal("0")
    for p in report.purchases:
        for item in p.products:
            rows.append([p.purchase_no, p.vendor_name, item.product_name, item.variant_name,
                         item.quantity, item.rate, item.amount])
            item_qty += item.quantity
            item_amount += item.amount
    rows.append(["TOTALS", "", "", "", item_qty, "", item_amount])

    if payments.payments:
        rows.append([])
        rows.append(["PAYMENT HISTORY"])
        rows.append(["Payment No", "Payment Date", "Vendor", "Mode", "Reference No", "Amount", "Purchases"])
        for pay in payments.payments:
            rows.append([
                pay.payment_no, format_date_dmy(pay.payment_date), pay.vendor_name, pay.mode or "",
                pay.reference_no or "", pay.total_amount, pay.purchase_count,
            ])
        rows.append(["TOTALS", "", "", "", "", payments.total_amount, ""])

    if vendors:
        rows.append([])
        rows.append(["VENDOR SUMMARY"])
        rows.append([
            "Vendor", "Purchases", "Total Amount", "Total Paid", "Outstanding",
            "Last Purchase", "Last Payment",
        ])
        for v in vendors:
            rows.append([
                v.vendor_name, v.total_purchases, v.total_amount, v.total_paid, v.total_outstanding,
                format_date_dmy(v.last_purchase_date), format_date_dmy(v.last_payment_date),
            ])
        rows.append([
            "TOTALS",
            sum(v.total_purchases for v in vendors),
            sum((v.total_amount for v in vendors), Decimal("0")),
            sum((v.total_paid for v in vendors), Decimal("0")),
            sum((v.total_outstanding for v in vendors), Decimal("0")),
            "", "",
        ])

    wb = Workbook()
    ws = wb.active
    ws.title = "Purchase Report"
    _write_sheet(ws, rows, [18, 14, 16, 14, 22, 16, 14, 14, 14, 14, 10])
    file_name = f"Purchase_Report_{start}_to_{end}_{now.strftime('%Y%m%d%H%M%S')}.xlsx"
    logger.info("Exported %s (%d purchases)", file_name, len(report.purchases))
    return ExcelFile(file_name=file_name, content=_save(wb))
