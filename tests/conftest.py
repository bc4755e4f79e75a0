"""
Shared test fixtures and configuration for the Ideogram client tests.
"""

# Note: Test isolation is handled automatically in config.py.
# When pytest is detected and IDEOGRAM_CONFIG_FILE is not set, the user's
# ~/.ideogram/config.yaml and ~/.ideogram/.env are skipped.
import io
import logging
import os
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ideogram_client.config import get_settings  # noqa: E402

# Minimal headers recognised by the signature sniffer
PNG_HEADER = b"\x89PNG\r\n\x1a\n" + b"\x00" * 100
JPEG_HEADER = b"\xff\xd8\xff\xe0" + b"\x00" * 100
GIF_HEADER = b"GIF89a" + b"\x00" * 100
WEBP_HEADER = b"RIFF\x00\x00\x00\x00WEBP" + b"\x00" * 100


def make_png(width: int, height: int) -> bytes:
    """Encode a real PNG of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch):
    """Run every test in an empty directory with no IDEOGRAM* variables.

    Keeps a developer's real key, .env file and output directory out of the
    tests, and resets the cached settings and package logger afterwards.
    """
    for key in list(os.environ):
        if key.upper().startswith("IDEOGRAM"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()
    app_logger = logging.getLogger("ideogram_client")
    app_logger.handlers.clear()
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture
def png_square():
    return make_png(4, 4)


@pytest.fixture
def png_wide():
    return make_png(4, 2)


@pytest.fixture
def public_resolver():
    """Resolver stub returning a public address for any hostname."""

    async def resolve(hostname):
        return ["93.184.216.34"]

    return resolve
