"""Client-side photo compression before upload."""

import asyncio
import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageOps

from optitour.photos.models import PhotoFile

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024


class CompressionError(Exception):
    """The photo could not be decoded or re-encoded."""


@dataclass(frozen=True)
class CompressionOptions:
    """Target bounds for compressed photos.

    Photos are resized so the longest side fits `max_dimension`, then saved
    as JPEG starting at `quality` and stepping down by 10 until the result
    fits `max_size_mb` or `min_quality` is reached.
    """

    max_dimension: int = 1920
    max_size_mb: float = 1.5
    quality: int = 80
    min_quality: int = 40

    @property
    def max_bytes(self) -> int:
        return int(self.max_size_mb * _BYTES_PER_MB)


def compress_to_jpeg(img: Image.Image, quality: int = 80) -> bytes:
    """Compress PIL Image to JPEG bytes.

    Args:
        img: PIL Image to compress
        quality: JPEG quality (1-100)

    Returns:
        JPEG image as bytes
    """
    buffer = BytesIO()
    img.save(
        buffer,
        format="JPEG",
        quality=quality,
        optimize=True,
        progressive=True,
    )
    return buffer.getvalue()


def compress_image(photo: PhotoFile, options: CompressionOptions | None = None) -> PhotoFile:
    """Resize and re-encode a photo as JPEG.

    The original is returned unchanged when it already fits the bounds and
    re-encoding would not make it smaller.

    Raises:
        CompressionError: If the photo cannot be decoded or encoded
    """
    options = options or CompressionOptions()
    try:
        with Image.open(BytesIO(photo.content)) as source:
            original_size = source.size
            img = ImageOps.exif_transpose(source)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.thumbnail(
                (options.max_dimension, options.max_dimension),
                Image.Resampling.LANCZOS,
            )

            quality = options.quality
            data = compress_to_jpeg(img, quality)
            while len(data) > options.max_bytes and quality > options.min_quality:
                quality = max(options.min_quality, quality - 10)
                data = compress_to_jpeg(img, quality)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise CompressionError(f"cannot compress {photo.filename}: {e}") from e

    fits = max(original_size) <= options.max_dimension and photo.size <= options.max_bytes
    if fits and len(data) >= photo.size:
        return photo

    logger.info(
        "Compressed %s: %.2fMB -> %.2fMB (quality=%d)",
        photo.filename,
        photo.size / _BYTES_PER_MB,
        len(data) / _BYTES_PER_MB,
        quality,
    )
    return PhotoFile(
        filename=Path(photo.filename).with_suffix(".jpg").name,
        content=data,
        content_type="image/jpeg",
    )


def compress_or_original(photo: PhotoFile, options: CompressionOptions | None = None) -> PhotoFile:
    """Compress a photo, falling back to the original on any compression error."""
    try:
        return compress_image(photo, options)
    except CompressionError as e:
        logger.warning("Compression failed, uploading original: %s", e)
        return photo


async def compress_photos(
    photos: list[PhotoFile],
    options: CompressionOptions | None = None,
) -> list[PhotoFile]:
    """Compress photos in parallel worker threads, keeping input order."""
    return list(
        await asyncio.gather(
            *(asyncio.to_thread(compress_or_original, photo, options) for photo in photos)
        )
    )


def make_preview(photo: PhotoFile) -> str:
    """Return a data URI rendering the photo locally."""
    encoded = base64.b64encode(photo.content).decode("ascii")
    return f"data:{photo.content_type};base64,{encoded}"
