"""API for Banner management."""

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from snf_admin.core.auth.dependencies import AdminUser
from snf_admin.core.backend import Backend
from snf_admin.modules.banners.schemas import BannerFilters, BannerForm, BannerResponse
from snf_admin.modules.banners.service import BannerService
from snf_admin.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/banners", tags=["Banners"])


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[BannerResponse]],
)
async def list_banners(
    client: Backend,
    current_user: AdminUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None),
    sort_by: str = Query("listOrder"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
):
    """List banners ordered by list order."""
    service = BannerService(client)
    banners, total, _ = await service.list_banners(
        BannerFilters(page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order)
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(items=banners, total=total, page=page, limit=limit),
    )


@router.get("/{banner_id}", response_model=ApiResponse[BannerResponse])
async def get_banner(banner_id: str, client: Backend, current_user: AdminUser):
    return ApiResponse(data=await BannerService(client).get_banner(banner_id))


@router.post(
    "",
    response_model=ApiResponse[BannerResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_banner(
    client: Backend,
    current_user: AdminUser,
    list_order: int = Form(..., ge=0),
    caption: str = Form(""),
    description: str = Form(""),
    banner_image: UploadFile | None = File(None),
):
    """Create a banner; an image (jpeg/png/webp, max 5MB) is required."""
    form = BannerForm(caption=caption, description=description, list_order=list_order)
    banner = await BannerService(client).create_banner(form, banner_image)
    return ApiResponse(success=True, message="Banner created successfully.", data=banner)


@router.put("/{banner_id}", response_model=ApiResponse[BannerResponse])
async def update_banner(
    banner_id: str,
    client: Backend,
    current_user: AdminUser,
    list_order: int = Form(..., ge=0),
    caption: str = Form(""),
    description: str = Form(""),
    banner_image: UploadFile | None = File(None),
):
    """Update a banner; omit the image to keep the current one."""
    form = BannerForm(caption=caption, description=description, list_order=list_order)
    banner = await BannerService(client).update_banner(banner_id, form, banner_image)
    return ApiResponse(success=True, message="Banner updated successfully.", data=banner)


@router.delete("/{banner_id}", response_model=ApiResponse[None])
async def delete_banner(banner_id: str, client: Backend, current_user: AdminUser):
    await BannerService(client).delete_banner(banner_id)
    return ApiResponse(success=True, message="Banner deleted successfully.", data=None)
