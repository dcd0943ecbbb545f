"""Photos module - compression and per-point upload sessions."""

from optitour.photos.compression import (
    CompressionError,
    CompressionOptions,
    compress_image,
    compress_photos,
    make_preview,
)
from optitour.photos.models import PhotoFile, PhotoItem, PhotoStatus
from optitour.photos.upload import PhotoUploadSession

__all__ = [
    "CompressionError",
    "CompressionOptions",
    "PhotoFile",
    "PhotoItem",
    "PhotoStatus",
    "PhotoUploadSession",
    "compress_image",
    "compress_photos",
    "make_preview",
]
