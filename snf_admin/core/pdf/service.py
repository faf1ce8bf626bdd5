"""PDF generation service (delivery labels / packing slips) from HTML templates."""

from datetime import date
from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from snf_admin.core.exceptions import PdfGenerationUnavailableError
from snf_admin.shared.utils.money import round_money

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "pdf"


def _rupees(amount) -> str:
    """Plain-ASCII amount for label printers: 'Rs. 120.00'."""
    return f"Rs. {round_money(amount):.2f}"


class PDFService:
    """Generate PDF documents from Jinja2 templates and WeasyPrint."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
        self._env.filters["rupees"] = _rupees

    def render_html(self, template_name: str, context: dict) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    def generate_delivery_labels_pdf(self, context: dict) -> bytes:
        """Render delivery label template (one 100x150mm page per order) and return PDF bytes."""
        try:
            from weasyprint import HTML
        except (OSError, ImportError) as e:
            raise PdfGenerationUnavailableError(
                f"PDF generation unavailable (WeasyPrint/system libs). On macOS: brew install pango glib. {e!s}"
            ) from e
        html_content = self.render_html("delivery_labels.html", context)
        try:
            return HTML(string=html_content).write_pdf()
        except Exception as e:
            raise PdfGenerationUnavailableError(str(e)) from e


def _payment_split(status: str, total: Decimal) -> tuple[Decimal, Decimal]:
    """(paid, remaining) for a packing slip; only PAID orders count as settled."""
    if (status or "").upper() == "PAID":
        return total, Decimal("0")
    return Decimal("0"), total


def build_delivery_labels_context(report) -> dict:
    """Build template context for delivery labels from a DeliveryLabelingReport."""
    labels = []
    for order in report.orders:
        paid, remaining = _payment_split(order.payment_status, order.total_amount)
        address_parts = [order.address_line1]
        if order.address_line2:
            address_parts.append(order.address_line2)
        address_parts.extend([order.city, order.pincode])
        labels.append(
            {
                "order_no": order.order_no,
                "payment_status": order.payment_status,
                "payment_mode": order.payment_mode,
                "name": order.name,
                "mobile": order.mobile,
                "address": ", ".join(p for p in address_parts if p),
                "total": order.total_amount,
                "paid": paid,
                "remaining": remaining,
                "items": [
                    {
                        "product": (item.product.name if item.product and item.product.name else item.name),
                        "variant": (
                            item.depot_product_variant.name
                            if item.depot_product_variant and item.depot_product_variant.name
                            else item.variant_name or "-"
                        ),
                        "quantity": item.quantity,
                    }
                    for item in order.items
                ],
            }
        )
    return {
        "delivery_date": report.delivery_date,
        "depot_name": report.depot_name,
        "labels": labels,
    }


def delivery_labels_filename(delivery_date: date, depot_name: str | None) -> str:
    """Delivery_Labels_15012024_Main_Depot.pdf"""
    depot_part = "_".join((depot_name or "All Depots").split())
    return f"Delivery_Labels_{delivery_date.strftime('%d%m%Y')}_{depot_part}.pdf"


pdf_service = PDFService()
