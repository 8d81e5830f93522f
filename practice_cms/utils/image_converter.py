"""
Image conversion utility for converting uploads to WebP.
Reduces file size before uploading to Cloudinary.
"""
import io
import logging
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_WEBP_QUALITY = 85  # 0-100
DEFAULT_WEBP_METHOD = 6    # 0-6, higher = better compression but slower
MAX_DIMENSION = 3840


def convert_to_webp(
    image_bytes: bytes,
    quality: int = DEFAULT_WEBP_QUALITY,
    method: int = DEFAULT_WEBP_METHOD,
    max_dimension: Optional[int] = MAX_DIMENSION,
    skip_if_webp: bool = True
) -> Tuple[bytes, bool]:
    """
    Convert image bytes to WebP format to reduce file size.

    Args:
        image_bytes: Original image file bytes
        quality: WebP quality (0-100)
        method: WebP compression method (0-6)
        max_dimension: Maximum width or height before downscaling (None to disable)
        skip_if_webp: Return the original bytes if already WebP

    Returns:
        Tuple[bytes, bool]: converted bytes (or the original ones) and whether
        conversion succeeded or was skipped
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))

        if skip_if_webp and image.format == 'WEBP':
            logger.debug("Image is already WebP format, skipping conversion")
            return image_bytes, True

        # WebP keeps alpha, so only palette images need converting to RGBA
        if image.mode == 'P':
            image = image.convert('RGBA')
        elif image.mode not in ('RGB', 'RGBA', 'LA'):
            image = image.convert('RGB')

        if max_dimension:
            width, height = image.size
            if width > max_dimension or height > max_dimension:
                scale = max_dimension / max(width, height)
                new_size = (int(width * scale), int(height * scale))
                logger.info(f"Downscaling image from {width}x{height} to {new_size[0]}x{new_size[1]}")
                image = image.resize(new_size, Image.Resampling.LANCZOS)

        save_kwargs = {'format': 'WEBP', 'quality': quality, 'method': method}
        if quality == 100:
            save_kwargs['lossless'] = True

        webp_buffer = io.BytesIO()
        image.save(webp_buffer, **save_kwargs)
        webp_bytes = webp_buffer.getvalue()

        logger.info(
            f"Converted image to WebP: {len(image_bytes):,} bytes -> {len(webp_bytes):,} bytes "
            f"(quality={quality})"
        )
        return webp_bytes, True

    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return image_bytes, False

    except (OSError, ValueError) as e:
        logger.error(f"Error converting image to WebP: {str(e)}", exc_info=True)
        return image_bytes, False


def prepare_upload(image_bytes: bytes, filename: str = "upload") -> bytes:
    """
    Bytes to send to the CDN: the WebP version when it is smaller,
    the original otherwise.
    """
    converted, ok = convert_to_webp(image_bytes)
    if not ok:
        logger.warning(f"WebP conversion failed for {filename}, uploading original format")
        return image_bytes
    if len(converted) < len(image_bytes):
        return converted
    logger.debug(f"WebP conversion did not reduce size for {filename}, using original")
    return image_bytes
