"""
Cloudinary service for testimonial and gallery photo storage.
Uploads go through the CDN with automatic format/quality optimization.
"""
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from practice_cms.config import settings
import logging
import asyncio
import re
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True
)

TESTIMONIALS_FOLDER = "testimonials"
GALLERY_FOLDER = "gallery"

# Everything after /image/upload/ (optionally /v<version>/)
_PUBLIC_ID_PATTERN = re.compile(r'/image/upload(?:/v\d+)?/(.+)$')


async def upload_image(
    file: Any,
    folder: str = GALLERY_FOLDER,
    public_id: Optional[str] = None,
    max_width: int = 1920,
    max_height: int = 1080,
    max_retries: int = 3
) -> Dict[str, Any]:
    """
    Upload image to Cloudinary with automatic optimization and retry logic.

    Args:
        file: File object, file path, or bytes to upload
        folder: Cloudinary folder (testimonials or gallery)
        public_id: Optional custom public ID for the image
        max_width: Width limit applied on upload
        max_height: Height limit applied on upload
        max_retries: Maximum number of attempts for transient failures

    Returns:
        dict: url, public_id, format, width, height and bytes of the stored asset

    Raises:
        CloudinaryError: If upload fails after all retries
    """
    for attempt in range(max_retries):
        try:
            result = cloudinary.uploader.upload(
                file,
                folder=folder,
                public_id=public_id,
                fetch_format="auto",
                quality="auto",
                transformation=[
                    {"width": max_width, "height": max_height, "crop": "limit"}
                ]
            )

            logger.info(f"Successfully uploaded image: {result['public_id']}")

            return {
                "url": result["secure_url"],
                "public_id": result["public_id"],
                "format": result["format"],
                "width": result["width"],
                "height": result["height"],
                "bytes": result["bytes"]
            }

        except CloudinaryError as e:
            logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{max_retries}): {str(e)}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue

            logger.error(f"Cloudinary upload failed after {max_retries} attempts: {str(e)}")
            raise


async def delete_image(public_id: str, max_retries: int = 3) -> Dict[str, Any]:
    """
    Delete image from Cloudinary with retry logic.
    A "not found" result counts as success.

    Raises:
        CloudinaryError: If deletion fails after all retries
    """
    for attempt in range(max_retries):
        try:
            result = cloudinary.uploader.destroy(
                public_id,
                invalidate=True,
                resource_type='image'
            )

            if result.get('result') in ('ok', 'not found'):
                logger.info(f"Deleted image from Cloudinary: {public_id} (result: {result.get('result')})")
            else:
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
            return result

        except CloudinaryError as e:
            logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{max_retries}) for {public_id}: {str(e)}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue

            logger.error(f"Cloudinary delete failed after {max_retries} attempts for {public_id}: {str(e)}")
            raise


def is_cloudinary_url(url: Optional[str]) -> bool:
    return bool(url) and "res.cloudinary.com" in url and bool(_PUBLIC_ID_PATTERN.search(url))


def extract_public_id_from_url(cloudinary_url: str) -> str:
    """
    Extract the Cloudinary public_id from a delivery URL.

    https://res.cloudinary.com/{cloud}/image/upload/v123/gallery/office.jpg
    -> "gallery/office"

    Raises:
        ValueError: If URL format is invalid
    """
    match = _PUBLIC_ID_PATTERN.search(cloudinary_url)
    if not match:
        raise ValueError(f"Invalid Cloudinary URL format: {cloudinary_url}")

    parts = match.group(1).split('/')
    if '.' in parts[-1]:
        parts[-1] = parts[-1].rsplit('.', 1)[0]
    return '/'.join(parts)


async def delete_image_by_url(url: Optional[str]) -> bool:
    """
    Remove the Cloudinary asset behind `url`, if it is one.
    Failures are logged and reported as False so database cleanup can proceed.
    """
    if not is_cloudinary_url(url):
        return False

    public_id = extract_public_id_from_url(url)
    try:
        await delete_image(public_id)
        return True
    except Exception as e:
        logger.error(f"Failed to delete Cloudinary asset {public_id}: {str(e)}", exc_info=True)
        return False


def get_optimized_url(
    public_id: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: str = "auto",
    fetch_format: str = "auto"
) -> str:
    """
    Generate optimized Cloudinary URL with transformations.
    """
    transformation = []

    if width or height:
        transform_params = {"crop": "limit"}
        if width:
            transform_params["width"] = width
        if height:
            transform_params["height"] = height
        transformation.append(transform_params)

    transformation.append({
        "quality": quality,
        "fetch_format": fetch_format
    })

    return cloudinary.CloudinaryImage(public_id).build_url(
        transformation=transformation,
        secure=True
    )


def resolve_display_url(image_url: Optional[str], width: Optional[int] = None) -> str:
    """
    URL the site should render for a stored image: an optimized CDN URL for
    Cloudinary assets, the raw URL otherwise, the placeholder when empty.
    """
    if not image_url or not image_url.strip():
        return settings.PLACEHOLDER_IMAGE_URL
    if is_cloudinary_url(image_url):
        return get_optimized_url(extract_public_id_from_url(image_url), width=width)
    return image_url


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.
    """
    if not settings.CLOUDINARY_CLOUD_NAME:
        logger.warning("CLOUDINARY_CLOUD_NAME not configured")
        return False
    if not settings.CLOUDINARY_API_KEY:
        logger.warning("CLOUDINARY_API_KEY not configured")
        return False
    if not settings.CLOUDINARY_API_SECRET:
        logger.warning("CLOUDINARY_API_SECRET not configured")
        return False

    logger.info("Cloudinary configuration validated successfully")
    return True
