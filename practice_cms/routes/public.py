"""
Public routes read by the website pages.
Only active content is returned, in display order.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
import logging

from practice_cms.database import get_db
from practice_cms.schemas import (
    CredentialResponse,
    FaqItemResponse,
    GalleryPhotoPublicResponse,
    GalleryPhotosPageResponse,
    PaginationMetadata,
    ServiceResponse,
    SiteConfigResponse,
    SpecialtyResponse,
    TestimonialResponse,
)
from practice_cms.services.cloudinary_service import resolve_display_url
from practice_cms.storage import DatabaseStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


@router.get("/testimonials", response_model=List[TestimonialResponse])
async def get_testimonials(db: AsyncSession = Depends(get_db)):
    rows = await DatabaseStorage(db).testimonials.get_all(active_only=True)
    return [TestimonialResponse.model_validate(row) for row in rows]


@router.get("/credentials", response_model=List[CredentialResponse])
async def get_credentials(db: AsyncSession = Depends(get_db)):
    rows = await DatabaseStorage(db).credentials.get_all(active_only=True)
    return [CredentialResponse.model_validate(row) for row in rows]


@router.get("/faq", response_model=List[FaqItemResponse])
async def get_faq(db: AsyncSession = Depends(get_db)):
    rows = await DatabaseStorage(db).faq_items.get_all(active_only=True)
    return [FaqItemResponse.model_validate(row) for row in rows]


@router.get("/services", response_model=List[ServiceResponse])
async def get_services(db: AsyncSession = Depends(get_db)):
    rows = await DatabaseStorage(db).services.get_all(active_only=True)
    return [ServiceResponse.model_validate(row) for row in rows]


@router.get("/specialties", response_model=List[SpecialtyResponse])
async def get_specialties(db: AsyncSession = Depends(get_db)):
    rows = await DatabaseStorage(db).specialties.get_all(active_only=True)
    return [SpecialtyResponse.model_validate(row) for row in rows]


@router.get("/gallery-photos", response_model=GalleryPhotosPageResponse)
async def get_gallery_photos(
    limit: int = 12,
    cursor: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Get paginated gallery photos for the carousel.

    The cursor is the number of photos already returned. `order` values may
    repeat, so it cannot be used as the cursor itself.

    Args:
        limit: Number of photos to return (1-100)
        cursor: Value of next_cursor from the previous page

    Raises:
        HTTPException: 400 if limit or cursor is out of range
    """
    if limit < 1 or limit > 100:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit must be between 1 and 100"
        )
    if cursor is not None and cursor < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cursor must not be negative"
        )

    repo = DatabaseStorage(db).gallery_photos
    offset = cursor or 0

    # Fetch limit + 1 to determine if there are more results
    page = await repo.get_page(offset, limit + 1, active_only=True)
    has_more = len(page) > limit
    page = page[:limit]
    total_count = await repo.count(active_only=True)

    logger.info(
        f"Retrieved {len(page)} gallery photos (cursor: {cursor}, has_more: {has_more})"
    )

    return GalleryPhotosPageResponse(
        photos=[
            GalleryPhotoPublicResponse(
                id=photo.id,
                title=photo.title,
                description=photo.description,
                image_url=photo.image_url,
                display_url=resolve_display_url(photo.image_url, width=1280),
                order=photo.order,
            )
            for photo in page
        ],
        pagination=PaginationMetadata(
            next_cursor=offset + limit if has_more else None,
            has_more=has_more,
            total_count=total_count,
        ),
    )


@router.get("/site-config", response_model=Dict[str, str])
async def get_site_config(db: AsyncSession = Depends(get_db)):
    """All configuration values as a flat {key: value} object."""
    configs = await DatabaseStorage(db).get_all_site_configs()
    return {config.key: config.value for config in configs}


@router.get("/site-config/{key}", response_model=SiteConfigResponse)
async def get_site_config_value(key: str, db: AsyncSession = Depends(get_db)):
    config = await DatabaseStorage(db).get_site_config(key)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Config not found", "detail": f"No site config for key '{key}'"}
        )
    return SiteConfigResponse.model_validate(config)
