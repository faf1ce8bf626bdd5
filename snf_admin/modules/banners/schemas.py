"""Schemas for Banner management."""

from pydantic import Field

from snf_admin.shared.schemas.base import BaseSchema, UpstreamSchema

ACCEPTED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")


class BannerForm(BaseSchema):
    """Text fields of the banner create/update form."""

    caption: str = ""
    description: str = ""
    list_order: int = Field(..., ge=0)


class BannerResponse(UpstreamSchema):
    """Banner as returned by the backend."""

    id: int | str
    caption: str = ""
    description: str = ""
    image_path: str = ""
    list_order: int = 0
    created_at: str | None = None


class BannerFilters(BaseSchema):
    page: int = 1
    limit: int = 10
    search: str | None = None
    sort_by: str = "listOrder"
    sort_order: str = "asc"
