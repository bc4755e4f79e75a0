"""
Unit tests for image signature sniffing and the square check.
"""

import os
import sys

import pytest

from ideogram_client.errors import ContentError, ErrorKind, FileAccessError
from ideogram_client.security.image_validator import (
    ImageFormat,
    assert_square,
    detect_image_format,
    read_image_dimensions,
    validate_image_path,
)
from tests.conftest import GIF_HEADER, JPEG_HEADER, PNG_HEADER, WEBP_HEADER


class TestDetectImageFormat:
    """Magic-byte detection."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            (PNG_HEADER, ImageFormat.PNG),
            (JPEG_HEADER, ImageFormat.JPEG),
            (GIF_HEADER, ImageFormat.GIF),
            (WEBP_HEADER, ImageFormat.WEBP),
        ],
    )
    def test_recognized_signatures(self, data, expected):
        assert detect_image_format(data) is expected

    def test_format_metadata(self):
        assert ImageFormat.JPEG.mime_type == "image/jpeg"
        assert ImageFormat.JPEG.extension == "jpg"
        assert ImageFormat.WEBP.mime_type == "image/webp"

    def test_empty_is_distinct(self):
        with pytest.raises(ContentError, match="Image file is empty: upload.png"):
            detect_image_format(b"", "upload.png")

    @pytest.mark.parametrize(
        "data",
        [b"hello, this is plain text", b"\x89PN", b"\x00\x01\x02\x03" * 8, b"RIFF1234WEB"],
    )
    def test_unrecognized(self, data):
        with pytest.raises(ContentError, match="does not appear to be a valid image") as exc_info:
            detect_image_format(data, "mystery.bin")
        assert "empty" not in exc_info.value.message
        assert exc_info.value.kind is ErrorKind.CONTENT


class TestValidateImagePath:
    """Local file checks keep I/O failures apart from content failures."""

    @pytest.mark.asyncio
    async def test_valid_file(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(PNG_HEADER)
        assert await validate_image_path(str(path)) == path

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(FileAccessError, match="Image file not found") as exc_info:
            await validate_image_path(tmp_path / "missing.png")
        assert exc_info.value.reason == FileAccessError.NOT_FOUND
        assert exc_info.value.kind is ErrorKind.IO

    @pytest.mark.asyncio
    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits not enforced",
    )
    async def test_permission_denied(self, tmp_path):
        path = tmp_path / "locked.png"
        path.write_bytes(PNG_HEADER)
        path.chmod(0o000)
        try:
            with pytest.raises(FileAccessError, match="Permission denied") as exc_info:
                await validate_image_path(path)
            assert exc_info.value.reason == FileAccessError.PERMISSION_DENIED
        finally:
            path.chmod(0o600)

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(ContentError, match="empty"):
            await validate_image_path(path)

    @pytest.mark.asyncio
    async def test_text_file(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_text("definitely not an image")
        with pytest.raises(ContentError, match="not appear to be a valid image"):
            await validate_image_path(path)


class TestSquareCheck:
    """Dimension checks from bytes and from paths."""

    def test_square_bytes(self, png_square):
        assert_square(png_square)
        assert read_image_dimensions(png_square) == (4, 4)

    def test_wide_bytes(self, png_wide):
        with pytest.raises(ContentError, match="Image must be square. Received 4x2"):
            assert_square(png_wide)

    def test_square_path(self, tmp_path, png_square):
        path = tmp_path / "square.png"
        path.write_bytes(png_square)
        assert_square(path)
        assert_square(str(path))

    def test_wide_path(self, tmp_path, png_wide):
        path = tmp_path / "wide.png"
        path.write_bytes(png_wide)
        with pytest.raises(ContentError, match="Received 4x2"):
            assert_square(path)

    def test_undecodable_bytes(self):
        with pytest.raises(ContentError, match="Unable to read image dimensions") as exc_info:
            assert_square(PNG_HEADER)
        assert exc_info.value.__cause__ is not None

    def test_missing_path(self, tmp_path):
        with pytest.raises(ContentError, match="Unable to read image dimensions"):
            assert_square(tmp_path / "nope.png")
