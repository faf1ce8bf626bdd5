from snf_admin.core.pdf.service import (
    build_delivery_labels_context,
    delivery_labels_filename,
    pdf_service,
)

__all__ = ["pdf_service", "build_delivery_labels_context", "delivery_labels_filename"]
