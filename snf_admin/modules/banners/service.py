"""Service for Banner management (backed by /api/admin/banners)."""

import logging

from fastapi import UploadFile

from snf_admin.core.backend import BackendClient, unwrap_envelope
from snf_admin.core.config import settings
from snf_admin.core.exceptions import ValidationError
from snf_admin.modules.banners.schemas import (
    ACCEPTED_IMAGE_TYPES,
    BannerFilters,
    BannerForm,
    BannerResponse,
)

logger = logging.getLogger(__name__)

API_BASE_URL = "/api/admin/banners"


def validate_banner_image(content_type: str | None, size: int) -> None:
    """Raise ValidationError for images over the size limit or of an unsupported type."""
    if size > settings.banner_max_image_bytes:
        mb = settings.banner_max_image_bytes // 1_000_000
        raise ValidationError(f"Max image size is {mb}MB.", field="banner_image")
    if content_type not in ACCEPTED_IMAGE_TYPES:
        raise ValidationError(
            "Only .jpg, .jpeg, .png and .webp formats are supported.", field="banner_image"
        )


async def _image_part(image: UploadFile | None) -> dict | None:
    if image is None or not image.filename:
        return None
    # Reject oversized uploads before reading them into memory
    if image.size is not None:
        validate_banner_image(image.content_type, image.size)
    content = await image.read()
    validate_banner_image(image.content_type, len(content))
    return {"bannerImage": (image.filename, content, image.content_type)}


def _form_data(form: BannerForm) -> dict[str, str]:
    return {
        "caption": form.caption or "",
        "description": form.description or "",
        "listOrder": str(form.list_order),
    }


class BannerService:
    """Banner CRUD; the backend owns storage, we validate and forward."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def list_banners(self, filters: BannerFilters) -> tuple[list[BannerResponse], int, int]:
        """Returns (banners, total_records, total_pages)."""
        payload = await self.client.get(
            API_BASE_URL,
            params={
                "page": filters.page,
                "limit": filters.limit,
                "search": filters.search,
                "sortBy": filters.sort_by,
                "sortOrder": filters.sort_order,
            },
        )
        payload = payload or {}
        banners = [BannerResponse.model_validate(b) for b in payload.get("banners") or []]
        return banners, payload.get("totalRecords", 0), payload.get("totalPages", 1)

    async def get_banner(self, banner_id: str) -> BannerResponse:
        payload = await self.client.get(f"{API_BASE_URL}/{banner_id}")
        return BannerResponse.model_validate(unwrap_envelope(payload))

    async def create_banner(self, form: BannerForm, image: UploadFile | None) -> BannerResponse:
        files = await _image_part(image)
        if files is None:
            raise ValidationError("Banner image is required to create a new banner.", field="banner_image")
        payload = await self.client.post_multipart(API_BASE_URL, data=_form_data(form), files=files)
        banner = BannerResponse.model_validate(unwrap_envelope(payload))
        logger.info("Banner %s created", banner.id)
        return banner

    async def update_banner(
        self, banner_id: str, form: BannerForm, image: UploadFile | None
    ) -> BannerResponse:
        """Without a new image the backend keeps the current one."""
        files = await _image_part(image)
        payload = await self.client.put_multipart(
            f"{API_BASE_URL}/{banner_id}", data=_form_data(form), files=files
        )
        return BannerResponse.model_validate(unwrap_envelope(payload))

    async def delete_banner(self, banner_id: str) -> None:
        await self.client.delete(f"{API_BASE_URL}/{banner_id}")
        logger.info("Banner %s deleted", banner_id)
