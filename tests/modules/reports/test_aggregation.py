import copy
from decimal import Decimal

from snf_admin.modules.reports.aggregation import (
    ProductNames,
    aggregate_by,
    build_delivery_summary_rows,
    build_payment_report,
    build_purchase_report,
    build_snf_order_stats,
    build_vendor_purchase_summaries,
    filter_delivery_date_groups,
    filter_snf_orders,
    summarize_delivery_items,
)
from snf_admin.modules.reports.schemas import (
    DeliveryAgencySummary,
    DeliveryDateGroup,
    DeliverySummaryTotals,
    SNFOrderReportItem,
)

ROWS = [
    {"agency": "A", "amount": 100},
    {"agency": "A", "amount": 50},
    {"agency": None, "amount": 25},
]


def _order(id, mobile, amount, status="PAID", mode="UPI", city="Pune", depot=None, items=None):
    return SNFOrderReportItem.model_validate(
        {
            "id": id,
            "orderNo": f"SNF-{id:03d}",
            "customerName": f"Customer {id}",
            "mobile": mobile,
            "city": city,
            "totalAmount": amount,
            "paymentStatus": status,
            "paymentMode": mode,
            "depot": depot,
            "items": items or [],
        }
    )


class TestAggregateBy:
    def test_buckets_with_fallback(self):
        result = aggregate_by(ROWS, "agency")
        assert list(result) == ["A", "Unassigned"]
        assert (result["A"].count, result["A"].amount) == (2, Decimal("150"))
        assert (result["Unassigned"].count, result["Unassigned"].amount) == (1, Decimal("25"))

    def test_totals_preserved(self):
        result = aggregate_by(ROWS, "agency")
        assert sum(s.count for s in result.values()) == len(ROWS)
        assert sum(s.amount for s in result.values()) == Decimal("175")

    def test_idempotent_and_pure(self):
        before = copy.deepcopy(ROWS)
        assert aggregate_by(ROWS, "agency") == aggregate_by(ROWS, "agency")
        assert ROWS == before

    def test_callable_key_and_custom_fallback(self):
        result = aggregate_by(ROWS, lambda r: r["agency"], fallback="NOT_SPECIFIED")
        assert "NOT_SPECIFIED" in result

    def test_empty(self):
        assert aggregate_by([], "agency") == {}


class TestSNFOrderStats:
    def test_depots_payments_and_cities(self):
        main = {"id": 1, "name": "Main"}
        orders = [
            _order(1, "111", 100, depot=main, items=[{"name": "Milk", "variantName": "1L", "quantity": 2, "price": 50}]),
            _order(2, "111", 60, status="PENDING", mode=None, depot=main, city="Mumbai"),
            _order(3, "222", 40, status="FAILED", depot=None),
        ]
        stats = build_snf_order_stats(orders)

        assert stats.total_orders == 3
        assert stats.total_customers == 2
        assert stats.total_amount == Decimal("200")
        # 2 from items, 1 each for orders without items
        assert stats.total_quantity == Decimal("4")
        assert stats.avg_order_value == Decimal("66.67")

        depots = {d.depot_id: d for d in stats.depot_stats}
        assert depots[1].total_orders == 2
        assert depots[1].total_customers == 1
        assert depots[1].payment_breakdown.paid == 1
        assert depots[1].payment_breakdown.pending == 1
        assert depots[0].depot_name == "No Depot"
        assert depots[0].payment_breakdown.failed == 1

        assert stats.payment_stats.by_mode["NOT_SPECIFIED"].count == 1
        assert sum(s.count for s in stats.payment_stats.by_status.values()) == 3
        assert [c.city for c in stats.city_stats] == ["Pune", "Mumbai"]
        assert stats.product_stats[0].product_name == "Milk"
        assert stats.product_stats[0].amount == Decimal("100")

    def test_dimension_totals_match_and_rerun_is_stable(self):
        main = {"id": 1, "name": "Main"}
        orders = [
            _order(1, "111", 100, depot=main, items=[{"name": "Milk", "quantity": 2, "price": 50}]),
            _order(2, "222", 60, status="PENDING", depot=None, city=None),
            _order(3, "333", 40, status=None, depot=main, city="Mumbai"),
        ]
        before = [o.model_dump() for o in orders]

        first = build_snf_order_stats(orders)
        second = build_snf_order_stats(orders)

        assert first.model_dump() == second.model_dump()
        assert [o.model_dump() for o in orders] == before
        assert sum(d.total_amount for d in first.depot_stats) == first.total_amount
        assert sum(c.amount for c in first.city_stats) == first.total_amount
        assert sum(s.amount for s in first.payment_stats.by_status.values()) == first.total_amount
        assert sum(d.total_orders for d in first.depot_stats) == len(orders)

    def test_product_fallback_without_items(self):
        stats = build_snf_order_stats([_order(1, "111", 100)])
        assert stats.product_stats[0].product_name == "Milk Products"
        assert stats.product_stats[0].variant_name == "Various"

    def test_empty_orders_have_zero_averages(self):
        stats = build_snf_order_stats([])
        assert stats.avg_order_value == Decimal("0")
        assert stats.product_stats == []

    def test_search(self):
        orders = [_order(1, "98765", 10, city="Pune"), _order(2, "11111", 10, city="Nashik")]
        assert [o.id for o in filter_snf_orders(orders, "nash")] == [2]
        assert [o.id for o in filter_snf_orders(orders, "snf-001")] == [1]
        assert len(filter_snf_orders(orders, "  ")) == 2


class TestDeliverySummaries:
    def test_summary_rows_end_with_total(self):
        summary = [
            DeliveryAgencySummary(id=1, name="Fresh Co", city="Pune", status_counts={"DELIVERED": 4, "PENDING": 1}, total_count=5)
        ]
        totals = DeliverySummaryTotals(total_deliveries=5, total_agencies=1, status_totals={"DELIVERED": 4, "PENDING": 1})
        rows = build_delivery_summary_rows(summary, ["DELIVERED", "PENDING", "SKIPPED"], totals)
        assert rows[0] == {"agency": "Fresh Co", "city": "Pune", "total": 5, "delivered": 4, "pending": 1, "skipped": 0}
        assert rows[-1]["agency"] == "TOTAL"
        assert rows[-1]["delivered"] == 4

    def test_summarize_flat_items(self):
        items = [
            {"agency_name": "Fresh Co", "status": "delivered"},
            {"agency_name": "Fresh Co", "status": None},
            {"agency_name": None, "status": "SKIPPED"},
        ]
        summaries, totals = summarize_delivery_items(items)
        by_name = {s.name: s for s in summaries}
        assert by_name["Fresh Co"].status_counts == {"DELIVERED": 1, "PENDING": 1}
        assert by_name["Unassigned"].total_count == 1
        assert totals.total_deliveries == 3
        assert sum(s.total_count for s in summaries) == totals.total_deliveries


class TestPurchaseReport:
    NAMES = ProductNames.from_catalog(
        [{"id": 5, "name": "Curd"}],
        [{"id": 11, "name": "500g", "productName": "Curd Cup"}],
    )

    def _purchase(self, id, rate, qty, vendor_id=7):
        return {
            "id": id,
            "purchaseNo": f"P-{id}",
            "vendor": {"id": vendor_id, "name": f"Vendor {vendor_id}"} if vendor_id else None,
            "purchaseDetails": [{"variantId": 11, "purchaseRate": rate, "quantity": qty}],
        }

    def test_payment_states(self):
        purchases = [self._purchase(1, 10, 5), self._purchase(2, 10, 5), self._purchase(3, 10, 5)]
        payments = [
            {"paymentDate": "2024-01-05", "details": [{"purchaseId": 1, "amount": 80}]},
            {"paymentDate": "2024-01-09", "details": [{"purchase": {"id": 2}, "amount": 20}]},
            {"paymentDate": "2024-01-03", "details": [{"purchaseId": 1, "amount": 20}]},
        ]
        report = build_purchase_report(purchases, payments, self.NAMES)
        by_no = {p.purchase_no: p for p in report.purchases}
        assert by_no["P-1"].payment_status == "paid"
        assert by_no["P-1"].payment_count == 2
        assert by_no["P-1"].last_payment_date == "2024-01-05"
        assert by_no["P-2"].payment_status == "partial"
        assert by_no["P-3"].payment_status == "unpaid"
        assert report.summary.total_outstanding == Decimal("80")
        assert by_no["P-1"].products[0].product_name == "Curd Cup"

    def test_overpayment_never_negative(self):
        report = build_purchase_report(
            [self._purchase(1, 10, 1)],
            [{"details": [{"purchaseId": 1, "amount": 15}]}],
            self.NAMES,
        )
        assert report.purchases[0].outstanding_amount == 0
        assert report.purchases[0].payment_status == "paid"

    def test_empty_after_filter(self):
        report = build_purchase_report([self._purchase(1, 10, 1)], [], self.NAMES, status="paid")
        assert report.purchases == []
        assert report.summary.average_order_value == 0

    def test_vendor_summaries_skip_purchases_without_vendor(self):
        purchases = [self._purchase(1, 10, 2), self._purchase(2, 10, 2, vendor_id=None)]
        payments = [
            {"vendor": {"id": 7}, "totalAmount": 50, "paymentDate": "2024-01-02"},
            {"vendor": {"id": 8}, "totalAmount": 999},
        ]
        (summary,) = build_vendor_purchase_summaries(purchases, payments)
        assert summary.vendor_id == 7
        assert summary.total_amount == Decimal("20")
        assert summary.total_paid == Decimal("50")
        assert summary.total_outstanding == 0

    def test_payment_report_totals(self):
        report = build_payment_report(
            [
                {"id": 1, "paymentno": "PAY-1", "totalAmount": "40", "details": [{"purchase": {"id": 3}}]},
                {"id": 2, "totalAmount": 60},
            ]
        )
        assert report.total_amount == Decimal("100")
        assert [p.purchase_count for p in report.payments] == [1, 0]


class TestFilterDeliveryDateGroups:
    GROUPS = [
        DeliveryDateGroup.model_validate(
            {
                "date": "2024-01-15",
                "products": [
                    {
                        "productName": "Curd",
                        "categoryName": "Dairy",
                        "depotVariants": [
                            {"depotVariantName": "500g", "depotName": "Main", "orders": [{"orderId": 1, "agencyName": "FastShip"}]}
                        ],
                    }
                ],
            }
        ),
        DeliveryDateGroup.model_validate({"date": "2024-01-16", "products": [{"productName": "Milk"}]}),
    ]

    def test_blank_search_keeps_all(self):
        assert filter_delivery_date_groups(self.GROUPS, "  ") == self.GROUPS

    def test_matches_nested_fields(self):
        assert [g.date for g in filter_delivery_date_groups(self.GROUPS, "fastship")] == ["2024-01-15"]
        assert [g.date for g in filter_delivery_date_groups(self.GROUPS, "MILK")] == ["2024-01-16"]
        assert filter_delivery_date_groups(self.GROUPS, "paneer") == []
