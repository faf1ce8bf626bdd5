"""
Client-side report aggregation.

Single pass over flat rows, one dict per dimension, averages computed after
the pass. Rows missing a dimension value land in a fallback bucket instead of
being dropped. Inputs are never mutated.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from snf_admin.modules.reports.schemas import (
    CityStats,
    DeliveryAgencySummary,
    DeliveryDateGroup,
    DeliverySummaryTotals,
    DepotVariantGroup,
    DepotWiseStats,
    DimensionStats,
    PaidPurchaseRef,
    PaymentReport,
    PaymentReportItem,
    PaymentStats,
    ProductStats,
    PurchaseLineSummary,
    PurchaseReport,
    PurchaseReportItem,
    PurchaseSummaryStats,
    SNFOrderReportItem,
    SNFOrdersReportStats,
    VendorPurchaseSummary,
)
from snf_admin.shared.utils.dates import parse_date
from snf_admin.shared.utils.money import round_money, to_decimal

NO_DEPOT = "No Depot"
UNASSIGNED = "Unassigned"
TOP_PRODUCTS_PER_DEPOT = 5


def _dig(raw: Any, *path: str) -> Any:
    value = raw
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _average(total: Decimal, count: int | Decimal) -> Decimal:
    if not count:
        return Decimal("0")
    return round_money(total / Decimal(count))


def aggregate_by(
    rows: list[Any],
    key: str | Callable[[Any], Any],
    amount_key: str = "amount",
    fallback: str = UNASSIGNED,
) -> dict[str, DimensionStats]:
    """
    Count rows and sum their amounts per dimension value.

    Example:
        >>> aggregate_by([{"agency": "A", "amount": 100}, {"agency": None, "amount": 25}], "agency")
        {'A': DimensionStats(count=1, amount=Decimal('100')), 'Unassigned': DimensionStats(count=1, amount=Decimal('25'))}
    """
    get_key = key if callable(key) else (lambda row: _field(row, key))
    buckets: dict[str, DimensionStats] = {}
    for row in rows:
        label = get_key(row)
        if label is None or label == "":
            label = fallback
        label = str(label)
        stats = buckets.get(label)
        if stats is None:
            stats = buckets[label] = DimensionStats()
        stats.count += 1
        stats.amount += to_decimal(_field(row, amount_key))
    return buckets


def order_quantity(order: SNFOrderReportItem) -> Decimal:
    """Sum of item quantities; an order without item quantities counts as 1."""
    qty = sum((item.quantity for item in order.items), Decimal("0"))
    return qty if qty else Decimal("1")


def _product_key(name: str, variant: str | None) -> tuple[str, str]:
    return name or "Unknown Product", variant or ""


def _build_product_stats(orders: list[SNFOrderReportItem]) -> list[ProductStats]:
    products: dict[tuple[str, str], ProductStats] = {}
    orders_seen: dict[tuple[str, str], set[int]] = {}
    for order in orders:
        for item in order.items:
            key = _product_key(item.name, item.variant_name)
            stats = products.get(key)
            if stats is None:
                stats = products[key] = ProductStats(
                    product_name=key[0], variant_name=item.variant_name
                )
                orders_seen[key] = set()
            stats.quantity += item.quantity
            stats.amount += item.line_total or item.price * item.quantity
            orders_seen[key].add(order.id)
    for key, stats in products.items():
        stats.order_count = len(orders_seen[key])
    return sorted(products.values(), key=lambda p: p.quantity, reverse=True)


def build_snf_order_stats(orders: list[SNFOrderReportItem]) -> SNFOrdersReportStats:
    """Depot, payment, city and product breakdowns of SNF orders."""
    total_orders = len(orders)
    total_amount = sum((o.total_amount for o in orders), Decimal("0"))
    total_quantity = sum((order_quantity(o) for o in orders), Decimal("0"))

    depots: dict[int, DepotWiseStats] = {}
    depot_customers: dict[int, set[str]] = {}
    depot_orders: dict[int, list[SNFOrderReportItem]] = {}
    for order in orders:
        depot_id = order.depot.id if order.depot else 0
        depot = depots.get(depot_id)
        if depot is None:
            depot = depots[depot_id] = DepotWiseStats(
                depot_id=depot_id,
                depot_name=(order.depot.name if order.depot and order.depot.name else NO_DEPOT),
            )
            depot_customers[depot_id] = set()
            depot_orders[depot_id] = []
        depot.total_orders += 1
        depot.total_amount += order.total_amount
        depot.total_quantity += order_quantity(order)
        depot_customers[depot_id].add(order.mobile)
        depot_orders[depot_id].append(order)

        status = (order.payment_status or "").upper()
        if status == "PAID":
            depot.payment_breakdown.paid += 1
        elif status == "PENDING":
            depot.payment_breakdown.pending += 1
        else:
            depot.payment_breakdown.failed += 1

    for depot_id, depot in depots.items():
        depot.total_customers = len(depot_customers[depot_id])
        depot.avg_order_value = _average(depot.total_amount, depot.total_orders)
        depot.top_products = _build_product_stats(depot_orders[depot_id])[:TOP_PRODUCTS_PER_DEPOT]

    payment_stats = PaymentStats(
        by_status=aggregate_by(
            orders, lambda o: o.payment_status, amount_key="total_amount", fallback="UNKNOWN"
        ),
        by_mode=aggregate_by(
            orders, lambda o: o.payment_mode, amount_key="total_amount", fallback="NOT_SPECIFIED"
        ),
    )

    cities: dict[str, CityStats] = {}
    city_customers: dict[str, set[str]] = {}
    for order in orders:
        city = order.city or "Unknown"
        stats = cities.get(city)
        if stats is None:
            stats = cities[city] = CityStats(city=city)
            city_customers[city] = set()
        stats.order_count += 1
        stats.amount += order.total_amount
        city_customers[city].add(order.mobile)
    for city, stats in cities.items():
        stats.customer_count = len(city_customers[city])
        stats.avg_order_value = _average(stats.amount, stats.order_count)
    city_stats = sorted(cities.values(), key=lambda c: c.amount, reverse=True)

    product_stats = _build_product_stats(orders)
    if not product_stats and orders:
        product_stats = [
            ProductStats(
                product_name="Milk Products",
                variant_name="Various",
                quantity=total_quantity,
                amount=total_amount,
                order_count=total_orders,
            )
        ]

    return SNFOrdersReportStats(
        total_orders=total_orders,
        total_customers=len({o.mobile for o in orders}),
        total_amount=total_amount,
        total_quantity=total_quantity,
        avg_order_value=_average(total_amount, total_orders),
        depot_stats=list(depots.values()),
        payment_stats=payment_stats,
        city_stats=city_stats,
        product_stats=product_stats,
    )


def filter_snf_orders(orders: list[SNFOrderReportItem], search: str | None) -> list[SNFOrderReportItem]:
    """Case-insensitive match on customer name, mobile, order number, city or email."""
    term = (search or "").strip().lower()
    if not term:
        return list(orders)
    result = []
    for order in orders:
        haystack = (order.customer_name, order.mobile, order.order_no, order.city, order.email or "")
        if any(term in (value or "").lower() for value in haystack):
            result.append(order)
    return result


def build_delivery_summary_rows(
    summary: list[DeliveryAgencySummary],
    status_list: list[str],
    totals: DeliverySummaryTotals,
) -> list[dict[str, Any]]:
    """One row per agency with a column per status, plus a closing TOTAL row."""
    rows: list[dict[str, Any]] = []
    for agency in summary:
        row: dict[str, Any] = {"agency": agency.name, "city": agency.city or "", "total": agency.total_count}
        for status in status_list:
            row[status.lower()] = agency.status_counts.get(status, 0)
        rows.append(row)

    total_row: dict[str, Any] = {"agency": "TOTAL", "city": "", "total": totals.total_deliveries}
    for status in status_list:
        total_row[status.lower()] = totals.status_totals.get(status, 0)
    rows.append(total_row)
    return rows


def summarize_delivery_items(items: list[Any]) -> tuple[list[DeliveryAgencySummary], DeliverySummaryTotals]:
    """Status counts per agency from flat delivery rows; rows without an agency go to 'Unassigned'."""
    agencies: dict[str, DeliveryAgencySummary] = {}
    status_totals: dict[str, int] = {}
    for item in items:
        name = _field(item, "agency_name") or UNASSIGNED
        status = (_field(item, "status") or "PENDING").upper()
        summary = agencies.get(name)
        if summary is None:
            summary = agencies[name] = DeliveryAgencySummary(
                id=_field(item, "agency_id") or 0,
                agency_id=_field(item, "agency_id"),
                name=name,
                city=_field(item, "city"),
                status_counts={},
            )
        summary.status_counts[status] = summary.status_counts.get(status, 0) + 1
        summary.total_count += 1
        status_totals[status] = status_totals.get(status, 0) + 1
    totals = DeliverySummaryTotals(
        total_deliveries=len(items),
        total_agencies=len(agencies),
        status_totals=status_totals,
    )
    return list(agencies.values()), totals


def filter_delivery_date_groups(groups: list[DeliveryDateGroup], search: str | None) -> list[DeliveryDateGroup]:
    """Delivery dates with any product, category, variant, depot, vendor, agency or PO number matching."""
    term = (search or "").strip().lower()
    if not term:
        return list(groups)

    def hit(*values: str | None) -> bool:
        return any(term in (value or "").lower() for value in values)

    def variant_matches(variant: DepotVariantGroup) -> bool:
        return hit(variant.depot_variant_name, variant.depot_name) or any(
            hit(o.vendor_name, o.agency_name, o.po_number) for o in variant.orders
        )

    return [
        group
        for group in groups
        if any(
            hit(product.product_name, product.category_name)
            or any(variant_matches(v) for v in product.depot_variants)
            for product in group.products
        )
    ]


# --- Purchases joined with payments ---

def _detail_rate(detail: Mapping[str, Any]) -> Decimal:
    return to_decimal(detail.get("purchaseRate") or detail.get("rate"))


def _detail_quantity(detail: Mapping[str, Any]) -> int:
    return int(to_decimal(detail.get("quantity")))


def purchase_total(details: list[Mapping[str, Any]] | None) -> Decimal:
    """Sum of rate x quantity over the purchase lines."""
    return sum((_detail_rate(d) * _detail_quantity(d) for d in details or []), Decimal("0"))


def purchase_payment_state(total: Decimal, paid: Decimal) -> str:
    if paid == 0:
        return "unpaid"
    if paid >= total:
        return "paid"
    return "partial"


def _later(current: str | None, candidate: str | None) -> str | None:
    if not candidate:
        return current
    if not current:
        return candidate
    return candidate if (parse_date(candidate) or date.min) > (parse_date(current) or date.min) else current


@dataclass
class _PaymentTally:
    paid: Decimal = Decimal("0")
    count: int = 0
    last_date: str | None = None


def _tally_payments(payments: list[Mapping[str, Any]]) -> dict[int, _PaymentTally]:
    tallies: dict[int, _PaymentTally] = {}
    for payment in payments:
        for detail in payment.get("details") or []:
            purchase_id = _dig(detail, "purchase", "id") or detail.get("purchaseId")
            if not purchase_id:
                continue
            tally = tallies.setdefault(int(purchase_id), _PaymentTally())
            tally.paid += to_decimal(detail.get("amount"))
            tally.count += 1
            tally.last_date = _later(tally.last_date, payment.get("paymentDate"))
    return tallies


@dataclass
class ProductNames:
    """Lookup tables for naming purchase lines."""

    products: dict[int, str]
    variants: dict[int, str]
    variant_products: dict[int, str]

    @classmethod
    def from_catalog(cls, products: list[Mapping[str, Any]], variants: list[Mapping[str, Any]]) -> "ProductNames":
        product_names = {p["id"]: p.get("name") or "" for p in products if p.get("id") is not None}
        variant_names: dict[int, str] = {}
        variant_products: dict[int, str] = {}
        for v in variants:
            if v.get("id") is None:
                continue
            variant_names[v["id"]] = v.get("name") or ""
            if v.get("productName"):
                variant_products[v["id"]] = v["productName"]
            elif v.get("productId") in product_names:
                variant_products[v["id"]] = product_names[v["productId"]]
        return cls(product_names, variant_names, variant_products)

    def line(self, detail: Mapping[str, Any]) -> PurchaseLineSummary:
        rate = _detail_rate(detail)
        quantity = _detail_quantity(detail)
        return PurchaseLineSummary(
            product_name=(
                self.variant_products.get(detail.get("variantId"))
                or self.products.get(detail.get("productId"))
                or _dig(detail, "product", "name")
                or "Unknown Product"
            ),
            variant_name=(
                self.variants.get(detail.get("variantId"))
                or _dig(detail, "variant", "name")
                or "Unknown Variant"
            ),
            quantity=quantity,
            rate=rate,
            amount=rate * quantity,
        )


def build_purchase_report(
    purchases: list[Mapping[str, Any]],
    payments: list[Mapping[str, Any]],
    names: ProductNames,
    status: str = "all",
    total_pages: int = 1,
    page: int = 1,
) -> PurchaseReport:
    """Purchases with paid/outstanding amounts from payment details; summary over the status-filtered rows."""
    tallies = _tally_payments(payments)
    items: list[PurchaseReportItem] = []
    for purchase in purchases:
        details = purchase.get("purchaseDetails") or []
        total = purchase_total(details)
        tally = tallies.get(purchase.get("id"), _PaymentTally())
        items.append(
            PurchaseReportItem(
                purchase_id=purchase["id"],
                purchase_no=purchase.get("purchaseNo") or "",
                purchase_date=purchase.get("purchaseDate"),
                invoice_no=purchase.get("invoiceNo") or "",
                invoice_date=purchase.get("invoiceDate") or purchase.get("purchaseDate"),
                vendor_id=_dig(purchase, "vendor", "id") or 0,
                vendor_name=_dig(purchase, "vendor", "name") or "",
                depot_id=_dig(purchase, "depot", "id") or 0,
                depot_name=_dig(purchase, "depot", "name") or "",
                total_amount=total,
                paid_amount=tally.paid,
                outstanding_amount=max(Decimal("0"), total - tally.paid),
                payment_status=purchase_payment_state(total, tally.paid),
                payment_count=tally.count,
                last_payment_date=tally.last_date,
                products=[names.line(d) for d in details],
            )
        )

    if status and status != "all":
        items = [p for p in items if p.payment_status == status]

    total_amount = sum((p.total_amount for p in items), Decimal("0"))
    summary = PurchaseSummaryStats(
        total_purchases=len(items),
        total_amount=total_amount,
        total_paid=sum((p.paid_amount for p in items), Decimal("0")),
        total_outstanding=sum((p.outstanding_amount for p in items), Decimal("0")),
        average_order_value=(
            (total_amount / len(items)).quantize(Decimal("1"), rounding=ROUND_HALF_UP) if items else Decimal("0")
        ),
        fully_paid_count=sum(1 for p in items if p.payment_status == "paid"),
        partially_paid_count=sum(1 for p in items if p.payment_status == "partial"),
        unpaid_count=sum(1 for p in items if p.payment_status == "unpaid"),
    )
    return PurchaseReport(summary=summary, purchases=items, total_pages=total_pages, current_page=page)


def build_vendor_purchase_summaries(
    purchases: list[Mapping[str, Any]],
    payments: list[Mapping[str, Any]],
) -> list[VendorPurchaseSummary]:
    """Per-vendor purchase and payment totals; payments of vendors without purchases are ignored."""
    vendors: dict[int, VendorPurchaseSummary] = {}
    for purchase in purchases:
        vendor_id = _dig(purchase, "vendor", "id")
        if not vendor_id:
            continue
        summary = vendors.get(vendor_id)
        if summary is None:
            summary = vendors[vendor_id] = VendorPurchaseSummary(
                vendor_id=vendor_id, vendor_name=_dig(purchase, "vendor", "name") or ""
            )
        summary.total_purchases += 1
        summary.total_amount += purchase_total(purchase.get("purchaseDetails"))
        summary.last_purchase_date = _later(summary.last_purchase_date, purchase.get("purchaseDate"))

    for payment in payments:
        summary = vendors.get(_dig(payment, "vendor", "id"))
        if summary is None:
            continue
        summary.total_paid += to_decimal(payment.get("totalAmount"))
        summary.last_payment_date = _later(summary.last_payment_date, payment.get("paymentDate"))

    for summary in vendors.values():
        summary.total_outstanding = max(Decimal("0"), summary.total_amount - summary.total_paid)
    return list(vendors.values())


def build_payment_report(
    payments: list[Mapping[str, Any]],
    total_pages: int = 1,
    page: int = 1,
) -> PaymentReport:
    items = [
        PaymentReportItem(
            payment_id=p["id"],
            payment_no=p.get("paymentno") or "",
            payment_date=p.get("paymentDate"),
            vendor_id=_dig(p, "vendor", "id") or 0,
            vendor_name=_dig(p, "vendor", "name") or "",
            mode=p.get("mode"),
            reference_no=p.get("referenceNo"),
            total_amount=to_decimal(p.get("totalAmount")),
            purchase_count=len(p.get("details") or []),
            purchases=[
                PaidPurchaseRef(
                    purchase_id=_dig(d, "purchase", "id") or 0,
                    purchase_no=_dig(d, "purchase", "purchaseNo") or "",
                    invoice_no=_dig(d, "purchase", "invoiceNo") or "",
                    amount=to_decimal(d.get("amount")),
                    purchase_date=_dig(d, "purchase", "purchaseDate") or "",
                )
                for d in p.get("details") or []
            ],
        )
        for p in payments
    ]
    return PaymentReport(
        payments=items,
        total_amount=sum((p.total_amount for p in items), Decimal("0")),
        total_pages=total_pages,
        current_page=page,
    )
