# Overview: Inline image intake: size checks and JPEG re-encoding with Pillow.

"""
Seal images are stored inline on the seal document as base64 data URLs,
so every image is capped before it is attached:

- source <= MAX_IMAGE_BYTES:           stored as-is (no decode, no re-encode)
- source >  MAX_SOURCE_BYTES:          rejected before decoding
- otherwise:                           downscaled to MAX_DIMENSION and
                                       re-encoded as JPEG, quality 70 stepping
                                       down by 10 to a floor of 10, until the
                                       data URL fits under MAX_IMAGE_BYTES

ImageTooLargeError and ImageCompressionError are distinct from store
failures so the caller can report them differently. Both are raised
before any document write.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .entities import IMAGE_TYPES, SealImage
from ..validation import ValidationError
from sealtrack.time_utils import to_document_timestamp, utcnow


logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_SOURCE_BYTES = 20 * 1024 * 1024
MAX_DIMENSION = 1200

INITIAL_QUALITY = 70
QUALITY_STEP = 10
MIN_QUALITY = 10


class ImageTooLargeError(ValueError):
    """Source image exceeds the hard upload limit."""


class ImageCompressionError(ValueError):
    """Image could not be decoded or squeezed under the size ceiling."""


def to_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Inverse of to_data_url: (content_type, raw bytes)."""
    header, _, payload = data_url.partition(",")
    content_type = header[len("data:"):].split(";", 1)[0]
    return content_type, base64.b64decode(payload)


def guess_content_type(filename: str | None, declared: str | None = None) -> str:
    if declared and declared.startswith("image/"):
        return declared
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "image/jpeg"


def _encode_jpeg(img: Image.Image, quality: int) -> str:
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    return to_data_url(buf.getvalue(), "image/jpeg")


def compress_image(
    data: bytes,
    content_type: str = "image/jpeg",
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    max_source_bytes: int = MAX_SOURCE_BYTES,
) -> str:
    """Return a data URL for `data` that fits under `max_bytes`."""
    size = len(data)
    if size <= max_bytes:
        return to_data_url(data, content_type)

    if size > max_source_bytes:
        raise ImageTooLargeError(
            f"Image is too large. Maximum size is {max_source_bytes // (1024 * 1024)}MB."
        )

    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise ImageCompressionError("Failed to load image") from exc

    # thumbnail() keeps the aspect ratio and never upscales
    img.thumbnail((MAX_DIMENSION, MAX_DIMENSION), Image.LANCZOS)
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    quality = INITIAL_QUALITY
    encoded = _encode_jpeg(img, quality)
    while len(encoded) > max_bytes and quality > MIN_QUALITY:
        quality -= QUALITY_STEP
        encoded = _encode_jpeg(img, quality)

    if len(encoded) > max_bytes:
        raise ImageCompressionError("Unable to compress image to required size")

    logger.debug("Compressed image from %d bytes to %d (quality %d)", size, len(encoded), quality)
    return encoded


def process_upload(
    data: bytes,
    filename: str | None,
    image_type: str = "initial",
    content_type: str | None = None,
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    max_source_bytes: int = MAX_SOURCE_BYTES,
) -> SealImage:
    """Turn an uploaded file into the SealImage record stored on the seal."""
    if image_type not in IMAGE_TYPES:
        raise ValidationError(f"image type must be one of: {', '.join(IMAGE_TYPES)}")
    if not data:
        raise ValidationError("Image file is empty")

    encoded = compress_image(
        data,
        guess_content_type(filename, content_type),
        max_bytes=max_bytes,
        max_source_bytes=max_source_bytes,
    )
    return SealImage(
        data=encoded,
        timestamp=to_document_timestamp(utcnow()),
        type=image_type,
        original_name=filename or "image",
    )
