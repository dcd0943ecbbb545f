"""Tests for client-side photo compression."""

import base64
import os
from io import BytesIO

import pytest
from PIL import Image

from optitour.photos import PhotoFile
from optitour.photos.compression import (
    CompressionError,
    CompressionOptions,
    compress_image,
    compress_or_original,
    compress_photos,
    make_preview,
)


def noisy_png(size):
    """PNG with random pixels, which JPEG cannot shrink much."""
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class TestCompressImage:
    """Test resize and re-encode."""

    def test_large_photo_resized_to_bound(self, jpeg_factory):
        """The longest side is brought down to max_dimension, ratio kept."""
        photo = PhotoFile("wide.jpg", jpeg_factory(size=(4000, 3000)))
        result = compress_image(photo)

        with Image.open(BytesIO(result.content)) as img:
            assert img.format == "JPEG"
            assert img.size == (1920, 1440)
        assert result.content_type == "image/jpeg"

    def test_png_converted_to_jpeg(self):
        """Non-JPEG input comes out as a .jpg file."""
        buffer = BytesIO()
        Image.new("RGBA", (3000, 200), (0, 128, 255, 128)).save(buffer, format="PNG")
        result = compress_image(PhotoFile("shot.png", buffer.getvalue(), "image/png"))

        assert result.filename == "shot.jpg"
        with Image.open(BytesIO(result.content)) as img:
            assert img.mode == "RGB"
            assert max(img.size) == 1920

    def test_small_photo_returned_unchanged(self, jpeg_factory):
        """A photo within bounds is never made bigger."""
        photo = PhotoFile("small.jpg", jpeg_factory(size=(32, 32)))
        result = compress_image(photo)
        assert result.size <= photo.size

    def test_quality_lowered_to_fit_size(self):
        """A tighter size bound yields a smaller file."""
        photo = PhotoFile("noise.png", noisy_png((800, 800)), "image/png")
        loose = compress_image(photo, CompressionOptions(max_size_mb=5))
        tight = compress_image(photo, CompressionOptions(max_size_mb=0.1))
        assert tight.size < loose.size

    def test_garbage_raises(self):
        """Undecodable input raises CompressionError."""
        with pytest.raises(CompressionError):
            compress_image(PhotoFile("x.heic", b"not an image", "image/heic"))


class TestFallback:
    """Test best-effort compression helpers."""

    def test_compress_or_original_returns_input_on_error(self):
        """The original file is returned untouched when compression fails."""
        photo = PhotoFile("x.heic", b"not an image", "image/heic")
        assert compress_or_original(photo) is photo

    @pytest.mark.asyncio
    async def test_compress_photos_keeps_order(self, jpeg_factory):
        """Parallel compression returns results in input order."""
        photos = [
            PhotoFile("a.jpg", jpeg_factory(size=(3000, 2000))),
            PhotoFile("b.bin", b"garbage"),
            PhotoFile("c.jpg", jpeg_factory(size=(40, 40))),
        ]
        results = await compress_photos(photos)

        assert [r.filename for r in results] == ["a.jpg", "b.bin", "c.jpg"]
        assert results[1] is photos[1]


class TestPreview:
    """Test local preview rendering."""

    def test_preview_is_data_uri(self, jpeg_factory):
        """The preview embeds the file content as base64."""
        content = jpeg_factory()
        preview = make_preview(PhotoFile("a.jpg", content))

        prefix = "data:image/jpeg;base64,"
        assert preview.startswith(prefix)
        assert base64.b64decode(preview[len(prefix):]) == content
