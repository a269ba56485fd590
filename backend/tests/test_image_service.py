"""
Image intake tests.

Small images pass through untouched; mid-sized ones are re-encoded as
JPEG under the ceiling; oversized sources are rejected before decoding.
"""

import os

import pytest
from PIL import Image

from conftest import noise_png, png_bytes
from sealtrack.services.image_service import (
    MAX_IMAGE_BYTES,
    ImageCompressionError,
    ImageTooLargeError,
    compress_image,
    decode_data_url,
    guess_content_type,
    process_upload,
)
from sealtrack.validation import ValidationError


MB = 1024 * 1024


class TestCompressImage:
    def test_small_image_stored_as_is(self):
        data = os.urandom(4 * MB)

        encoded = compress_image(data, "image/png")

        content_type, raw = decode_data_url(encoded)
        assert content_type == "image/png"
        assert raw == data

    def test_mid_sized_image_recompressed_as_jpeg(self):
        data = noise_png(2000, 2000)
        assert 5 * MB < len(data) <= 20 * MB

        encoded = compress_image(data, "image/png")

        assert encoded.startswith("data:image/jpeg;base64,")
        assert len(encoded) <= MAX_IMAGE_BYTES

    def test_oversized_source_rejected(self):
        with pytest.raises(ImageTooLargeError, match="Maximum size is 20MB"):
            compress_image(b"\x00" * (25 * MB))

    def test_undecodable_data(self):
        with pytest.raises(ImageCompressionError):
            compress_image(b"\x00" * (6 * MB))

    def test_decompression_bomb_is_a_compression_failure(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        with pytest.raises(ImageCompressionError, match="Failed to load image"):
            compress_image(noise_png(60, 60), "image/png", max_bytes=100)

    def test_ceiling_too_low_to_reach(self):
        with pytest.raises(ImageCompressionError, match="Unable to compress"):
            compress_image(png_bytes(400, 400), "image/png", max_bytes=100)


class TestProcessUpload:
    def test_builds_seal_image(self):
        image = process_upload(png_bytes(), "seal.png", "damage")

        assert image.type == "damage"
        assert image.original_name == "seal.png"
        assert image.data.startswith("data:image/png;base64,")
        assert image.timestamp.endswith("Z")

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            process_upload(png_bytes(), "seal.png", "selfie")

    def test_empty_file(self):
        with pytest.raises(ValidationError):
            process_upload(b"", "seal.png")


@pytest.mark.parametrize("filename,declared,expected", [
    ("a.png", None, "image/png"),
    ("a.png", "image/webp", "image/webp"),
    ("a.png", "application/octet-stream", "image/png"),
    (None, None, "image/jpeg"),
])
def test_guess_content_type(filename, declared, expected):
    assert guess_content_type(filename, declared) == expected
