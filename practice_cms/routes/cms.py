"""
CMS API routes for the admin panel.
Every endpoint requires the X-CMS-Password header.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional, Type
from pydantic import BaseModel
from pathlib import PurePath
import asyncio
import logging

from practice_cms.config import settings
from practice_cms.database import get_db
from practice_cms.schemas import (
    CredentialCreate, CredentialResponse, CredentialUpdate,
    FaqItemCreate, FaqItemResponse, FaqItemUpdate,
    GalleryPhotoCreate, GalleryPhotoResponse, GalleryPhotoUpdate,
    GalleryUploadError, GalleryUploadResponse,
    ImageUploadResponse, ReorderRequest,
    ServiceCreate, ServiceResponse, ServiceUpdate,
    SiteConfigResponse, SiteConfigSet,
    SpecialtyCreate, SpecialtyResponse, SpecialtyUpdate,
    TestimonialCreate, TestimonialResponse, TestimonialUpdate,
)
from practice_cms.services.cloudinary_service import (
    GALLERY_FOLDER, TESTIMONIALS_FOLDER, delete_image_by_url, upload_image,
)
from practice_cms.storage import DatabaseStorage, EntityNotFoundError
from practice_cms.utils.auth import verify_cms_password
from practice_cms.utils.image_converter import prepare_upload
from practice_cms.utils.rate_limit import RATE_LIMITS, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["CMS"], dependencies=[Depends(verify_cms_password)])


def _not_found(exc: EntityNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": f"{exc.entity} not found", "detail": f"IDs not found: {exc.ids}"}
    )


def _server_error(action: str, exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": f"Failed to {action}", "detail": str(exc)}
    )


def register_collection(
    path: str,
    repository: str,
    label: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    image_field: Optional[str] = None,
) -> None:
    """
    Register list/create/update/delete/reorder endpoints for one orderable
    collection under /admin/{path}.

    `image_field` names the column holding an uploaded image; its Cloudinary
    asset is removed together with the row.
    """

    @router.get(f"/{path}", response_model=List[response_schema], name=f"list_{repository}")
    async def list_items(db: AsyncSession = Depends(get_db)):
        try:
            rows = await getattr(DatabaseStorage(db), repository).get_all()
            logger.info(f"Retrieved {len(rows)} {label} row(s) for CMS")
            return [response_schema.model_validate(row) for row in rows]
        except Exception as e:
            logger.error(f"Error fetching {label} for CMS: {str(e)}", exc_info=True)
            raise _server_error(f"retrieve {label}", e)

    @router.post(
        f"/{path}",
        response_model=response_schema,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{repository}",
    )
    async def create_item(payload: create_schema, db: AsyncSession = Depends(get_db)):
        try:
            row = await getattr(DatabaseStorage(db), repository).create(payload.model_dump())
            await db.commit()
            return response_schema.model_validate(row)
        except Exception as e:
            logger.error(f"Error creating {label}: {str(e)}", exc_info=True)
            await db.rollback()
            raise _server_error(f"create {label}", e)

    @router.post(f"/{path}/reorder", name=f"reorder_{repository}")
    async def reorder_items(items: ReorderRequest, db: AsyncSession = Depends(get_db)):
        """
        Persist a new display order. The body is the admin's full list as
        [{"id": ..., "order": ...}, ...]; all pairs are written in one transaction.
        """
        try:
            count = await getattr(DatabaseStorage(db), repository).reorder(
                (item.id, item.order) for item in items.root
            )
            await db.commit()
            return {"message": f"Successfully reordered {count} {label}", "count": count}
        except EntityNotFoundError as e:
            await db.rollback()
            raise _not_found(e)
        except Exception as e:
            logger.error(f"Error reordering {label}: {str(e)}", exc_info=True)
            await db.rollback()
            raise _server_error(f"reorder {label}", e)

    @router.put(f"/{path}/{{item_id}}", response_model=response_schema, name=f"update_{repository}")
    async def update_item(item_id: int, payload: update_schema, db: AsyncSession = Depends(get_db)):
        changes = payload.model_dump(exclude_unset=True)
        try:
            repo = getattr(DatabaseStorage(db), repository)
            previous = None
            if image_field and image_field in changes:
                current = await repo.get(item_id)
                if current is not None:
                    previous = getattr(current, image_field)
            row = await repo.update(item_id, changes)
            await db.commit()
        except EntityNotFoundError as e:
            await db.rollback()
            raise _not_found(e)
        except Exception as e:
            logger.error(f"Error updating {label} {item_id}: {str(e)}", exc_info=True)
            await db.rollback()
            raise _server_error(f"update {label}", e)

        # Replaced images are removed from the CDN only once the new URL is stored
        if previous and previous != changes[image_field]:
            await delete_image_by_url(previous)
        return response_schema.model_validate(row)

    @router.delete(f"/{path}/{{item_id}}", name=f"delete_{repository}")
    async def delete_item(item_id: int, db: AsyncSession = Depends(get_db)):
        """Delete by id. Deleting an id that no longer exists succeeds."""
        image_url = None
        try:
            repo = getattr(DatabaseStorage(db), repository)
            if image_field:
                row = await repo.get(item_id)
                if row is not None:
                    image_url = getattr(row, image_field)
            await repo.delete(item_id)
            await db.commit()
        except Exception as e:
            logger.error(f"Error deleting {label} {item_id}: {str(e)}", exc_info=True)
            await db.rollback()
            raise _server_error(f"delete {label}", e)

        if image_url:
            await delete_image_by_url(image_url)
        return {"message": f"{label} deleted successfully", "id": item_id}


register_collection(
    "testimonials", "testimonials", "testimonials",
    TestimonialCreate, TestimonialUpdate, TestimonialResponse,
    image_field="photo",
)
register_collection(
    "gallery-photos", "gallery_photos", "gallery photos",
    GalleryPhotoCreate, GalleryPhotoUpdate, GalleryPhotoResponse,
    image_field="image_url",
)
register_collection(
    "credentials", "credentials", "credentials",
    CredentialCreate, CredentialUpdate, CredentialResponse,
)
register_collection(
    "faq", "faq_items", "FAQ items",
    FaqItemCreate, FaqItemUpdate, FaqItemResponse,
)
register_collection(
    "services", "services", "services",
    ServiceCreate, ServiceUpdate, ServiceResponse,
)
register_collection(
    "specialties", "specialties", "specialties",
    SpecialtyCreate, SpecialtyUpdate, SpecialtyResponse,
)


def _validate_image_file(file: UploadFile, content: bytes) -> None:
    filename = file.filename or "upload"
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid file type", "detail": f"File '{filename}' is not a valid image file"}
        )
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "File too large",
                "detail": f"File '{filename}' exceeds {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
            }
        )


@router.post(
    "/gallery-photos/upload",
    response_model=GalleryUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_gallery_photos(
    request: Request,
    files: List[UploadFile] = File(...),
    titles: Optional[List[str]] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload one or more photos and append them to the gallery.
    Files that fail to upload are reported in `errors`; the rest are saved.
    """
    contents = []
    for file in files:
        content = await file.read()
        _validate_image_file(file, content)
        contents.append(content)

    async def _upload(file: UploadFile, content: bytes) -> dict:
        filename = file.filename or "upload"
        result = await upload_image(prepare_upload(content, filename), folder=GALLERY_FOLDER)
        return {"url": result["url"], "filename": filename}

    results = await asyncio.gather(
        *(_upload(file, content) for file, content in zip(files, contents)),
        return_exceptions=True,
    )

    titles = titles or []
    errors = []
    uploads = []
    for i, result in enumerate(results):
        filename = files[i].filename or f"file_{i}"
        if isinstance(result, Exception):
            logger.error(f"Error uploading {filename} to Cloudinary: {str(result)}")
            errors.append(GalleryUploadError(filename=filename, error=str(result)))
            continue
        if i < len(titles) and titles[i].strip():
            title = titles[i].strip()
        elif len(titles) == 1 and titles[0].strip():
            title = titles[0].strip()
        else:
            title = PurePath(filename).stem or "Photo"
        uploads.append({"title": title, "image_url": result["url"]})

    if not uploads:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "All uploads failed", "errors": [e.model_dump() for e in errors]}
        )

    try:
        repo = DatabaseStorage(db).gallery_photos
        created = [await repo.create(data) for data in uploads]
        await db.commit()
    except Exception as e:
        logger.error(f"Error saving uploaded gallery photos: {str(e)}", exc_info=True)
        await db.rollback()
        raise _server_error("save gallery photos", e)

    if errors:
        logger.warning(f"Partial upload success: {len(created)} succeeded, {len(errors)} failed")

    return GalleryUploadResponse(
        photos=[GalleryPhotoResponse.model_validate(row) for row in created],
        errors=errors,
    )


@router.post("/testimonials/{testimonial_id}/image", response_model=ImageUploadResponse)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_testimonial_image(
    request: Request,
    testimonial_id: int,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload a client photo for a testimonial, replacing any previous one.
    """
    repo = DatabaseStorage(db).testimonials
    testimonial = await repo.get(testimonial_id)
    if testimonial is None:
        raise _not_found(EntityNotFoundError("Testimonial", [testimonial_id]))

    content = await image.read()
    _validate_image_file(image, content)

    try:
        result = await upload_image(
            prepare_upload(content, image.filename or "upload"),
            folder=TESTIMONIALS_FOLDER,
            max_width=600,
            max_height=600,
        )
    except Exception as e:
        logger.error(f"Error uploading testimonial {testimonial_id} image: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Image upload failed", "detail": str(e)}
        )

    previous = testimonial.photo
    await repo.update(testimonial_id, {"photo": result["url"]})
    await db.commit()

    if previous and previous != result["url"]:
        await delete_image_by_url(previous)

    logger.info(f"Updated testimonial {testimonial_id} photo: {result['url']}")
    return ImageUploadResponse(id=testimonial_id, image_url=result["url"])


@router.delete("/testimonials/{testimonial_id}/image")
async def delete_testimonial_image(testimonial_id: int, db: AsyncSession = Depends(get_db)):
    repo = DatabaseStorage(db).testimonials
    testimonial = await repo.get(testimonial_id)
    if testimonial is None:
        raise _not_found(EntityNotFoundError("Testimonial", [testimonial_id]))

    previous = testimonial.photo
    await repo.update(testimonial_id, {"photo": None})
    await db.commit()

    if previous:
        await delete_image_by_url(previous)

    return {"message": "Image removed successfully", "id": testimonial_id}


# Site configuration

@router.get("/site-config", response_model=List[SiteConfigResponse])
async def list_site_config(db: AsyncSession = Depends(get_db)):
    configs = await DatabaseStorage(db).get_all_site_configs()
    return [SiteConfigResponse.model_validate(config) for config in configs]


@router.put("/site-config/{key}", response_model=SiteConfigResponse)
async def set_site_config(key: str, payload: SiteConfigSet, db: AsyncSession = Depends(get_db)):
    try:
        config = await DatabaseStorage(db).set_site_config(key, payload.value)
        await db.commit()
        return SiteConfigResponse.model_validate(config)
    except Exception as e:
        logger.error(f"Error saving site config {key}: {str(e)}", exc_info=True)
        await db.rollback()
        raise _server_error("save site config", e)


@router.delete("/site-config/{key}")
async def delete_site_config(key: str, db: AsyncSession = Depends(get_db)) -> Dict[str, str]:
    await DatabaseStorage(db).delete_site_config(key)
    await db.commit()
    return {"message": "Site config deleted successfully", "key": key}
