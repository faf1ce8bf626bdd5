from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from openpyxl import load_workbook

from snf_admin.modules.reports.aggregation import build_delivery_summary_rows, build_snf_order_stats
from snf_admin.modules.reports.excel_export import (
    EXCEPTION_EXPORT,
    ExcelExporter,
    SNFOrdersExcelExporter,
    delivery_summary_export_config,
    export_sale_register,
    purchase_order_export_config,
    resolve_cell,
)
from snf_admin.modules.reports.grouping import parse_report_tree
from snf_admin.modules.reports.schemas import (
    DeliveryAgencySummary,
    DeliveryItem,
    DeliverySummaryTotals,
    ExceptionReportRow,
    PurchaseOrderItem,
    ReportTotals,
    SaleRegisterRow,
    SNFOrderReportItem,
)

LEAF = {
    "purchaseId": 10,
    "purchaseNo": "PO-10",
    "farmerName": "Ravi",
    "depotName": "Main",
    "productName": "Milk",
    "variantName": "1L",
    "quantity": 5,
    "purchaseRate": 40,
    "amount": 200,
}

TREE = [
    {
        "level": "farmer",
        "id": 1,
        "name": "Ravi",
        "totals": {"totalQuantity": 5, "totalAmount": 200, "itemCount": 1, "avgRate": 40},
        "data": [
            {
                "level": "depot",
                "id": 2,
                "name": "Main",
                "location": "Pune",
                "totals": {"totalQuantity": 5, "totalAmount": 200, "itemCount": 1, "avgRate": 40},
                "data": [LEAF],
            }
        ],
    }
]


def _sheet(content: bytes, name: str | None = None):
    wb = load_workbook(BytesIO(content))
    return wb[name] if name else wb.active


class TestResolveCell:
    def test_purchase_item(self):
        item = PurchaseOrderItem.model_validate(LEAF)
        assert resolve_cell(item, "product") == "Milk - 1L"
        assert resolve_cell(item, "status") == "pending"
        assert resolve_cell(item, "agency") == "N/A"
        assert resolve_cell(item, "customer") == ""
        assert resolve_cell(item, "farmer") == "Ravi"

    def test_delivery_item(self):
        item = DeliveryItem.model_validate(
            {"orderId": "D-1", "deliveryDate": "2024-01-15", "customerName": "Asha", "areaName": "Kothrud"}
        )
        assert resolve_cell(item, "orderId") == "D-1"
        assert resolve_cell(item, "date") == "15 Jan 2024"
        assert resolve_cell(item, "rate") == ""

    def test_mapping_and_unknown_keys(self):
        assert resolve_cell({"memberName": "Asha"}, "memberName") == "Asha"
        assert resolve_cell({"depot_name": "Main"}, "depotName") == "Main"
        assert resolve_cell({}, "whatever") == ""
        row = ExceptionReportRow(customer_id=5, depot_name="Main")
        assert resolve_cell(row, "customerId") == 5


class TestGroupedExport:
    def _export(self):
        data = parse_report_tree(TREE, PurchaseOrderItem)
        totals = ReportTotals(total_purchases=1, total_items=1, total_quantity=Decimal("5"), total_amount=Decimal("200"))
        return ExcelExporter(today=date(2024, 1, 15)).export(
            data, purchase_order_export_config("farmer,depot"), totals=totals
        )

    def test_file_name(self):
        assert self._export().file_name == "Purchase_Order_Report_2024-01-15.xlsx"

    def test_title_and_headers(self):
        ws = _sheet(self._export().content)
        assert ws.title == "Purchase Orders"
        assert ws["A1"].value == "Purchase Order Report"
        assert ws["A1"].font.bold and ws["A1"].font.size == 16
        assert "A1:K1" in [str(r) for r in ws.merged_cells.ranges]
        assert ws["A2"].value is None
        assert [ws.cell(3, c).value for c in range(1, 4)] == ["Status", "Product", "Quantity"]
        assert ws["A3"].fill.start_color.rgb.endswith("E0E0E0")
        assert ws.column_dimensions["B"].width == 20

    def test_groups_children_subtotals(self):
        ws = _sheet(self._export().content)
        assert ws["A4"].value == "Farmer: Ravi"
        assert ws["A4"].fill.start_color.rgb.endswith("D4E6F1")
        assert ws["A5"].value == "  Depot: Main (Pune)"
        assert ws["A5"].fill.start_color.rgb.endswith("D5F4E6")

        assert ws["A6"].value == "    pending"
        assert ws["B6"].value == "Milk - 1L"
        assert ws["C6"].value == 5
        assert ws["E6"].value == 200
        assert "₹" in ws["E6"].number_format
        assert ws["G6"].value in (None, "")

        assert ws["A7"].value == "  Total for Main:"
        assert ws["C7"].value == 5
        assert ws["D7"].value == "1 items"
        assert ws["K7"].value == "Avg: ₹40.00"
        assert ws["A8"].value is None
        assert ws["A9"].value == "Total for Ravi:"

    def test_grand_totals(self):
        ws = _sheet(self._export().content)
        assert ws["A12"].value == "GRAND TOTAL"
        assert ws["B12"].value == "Purchases: 1"
        assert ws["E12"].value == "₹200.00"
        assert ws["A12"].font.size == 14

    def test_no_grand_totals_without_totals(self):
        data = parse_report_tree(TREE, PurchaseOrderItem)
        ws = _sheet(ExcelExporter().export(data, purchase_order_export_config("farmer,depot")).content)
        assert ws.max_row == 9


class TestFlatExport:
    def test_without_title(self):
        rows = [ExceptionReportRow(date="15/01/2024", customer_id=5, pincode="411001", new_variant="1L")]
        ws = _sheet(ExcelExporter().export(rows, EXCEPTION_EXPORT).content)
        assert ws["A1"].value == "Date"
        assert ws["A2"].value == "15/01/2024"
        assert ws["B2"].value == 5
        assert ws["J2"].value == "1L"
        assert ws.max_row == 2

    def test_delivery_summary_columns(self):
        summary = [DeliveryAgencySummary(id=1, name="Fresh Co", status_counts={"DELIVERED": 3}, total_count=3)]
        totals = DeliverySummaryTotals(total_deliveries=3, status_totals={"DELIVERED": 3})
        rows = build_delivery_summary_rows(summary, ["DELIVERED", "PENDING"], totals)
        ws = _sheet(ExcelExporter().export(rows, delivery_summary_export_config(["DELIVERED", "PENDING"])).content)
        assert [ws.cell(3, c).value for c in range(1, 6)] == ["Delivery Agency", "City", "DELIVERED", "PENDING", "Total"]
        assert [ws.cell(4, c).value for c in (1, 3, 4, 5)] == ["Fresh Co", 3, 0, 3]
        assert ws["A5"].value == "TOTAL"


class TestSNFOrdersWorkbook:
    def test_six_sheets(self):
        orders = [
            SNFOrderReportItem.model_validate(
                {"id": 1, "orderNo": "SNF-001", "mobile": "1", "totalAmount": 100, "paymentStatus": "PAID",
                 "orderDate": "2024-01-15T08:00:00Z", "depot": {"id": 1, "name": "Main"}}
            )
        ]
        file = SNFOrdersExcelExporter(now=datetime(2024, 1, 20, 9, 30)).export(orders, build_snf_order_stats(orders))
        assert file.file_name == "SNF_Orders_Report_2024-01-20.xlsx"
        wb = load_workbook(BytesIO(file.content))
        assert wb.sheetnames == [
            "Overview", "Depot-wise Analysis", "Orders Detail",
            "Payment Analysis", "Product Analysis", "City-wise Analysis",
        ]
        assert wb["Overview"]["B2"].value == "20/01/2024 09:30"
        assert wb["Orders Detail"]["A2"].value == "SNF-001"
        assert wb["Orders Detail"]["B2"].value == "15/01/2024"
        assert wb["Depot-wise Analysis"]["A2"].value == "Main"


class TestSaleRegisterExport:
    def test_columns_and_name(self):
        rows = [SaleRegisterRow(name="Asha", customer_id=7, sale_amount=Decimal("500"), net_amount=Decimal("500"), depot="Main")]
        file = export_sale_register(rows, "2024-01-01", "2024-01-31")
        assert file.file_name == "Sale_Register_2024-01-01_to_2024-01-31.xlsx"
        ws = _sheet(file.content)
        assert ws["K1"].value == "Milk Subscription Start Date"
        assert ws["A1"].font.bold
        assert [ws["A2"].value, ws["C2"].value, ws["I2"].value] == ["Asha", 500, "Main"]
