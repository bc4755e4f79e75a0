"""Outbound-request security gate.

Every user-supplied image reference goes through :func:`validate_url` or the
file/content validators before its bytes are used, every download through
:func:`download_image`, and every output path through :func:`make_filename`.
"""

from .filenames import make_filename
from .image_loader import (
    MAX_IMAGE_BYTES,
    download_image,
    load_image,
    load_image_file,
)
from .image_validator import (
    ImageBytes,
    ImageFormat,
    assert_square,
    detect_image_format,
    read_image_dimensions,
    validate_image_path,
)
from .ip_blocklist import BLOCKED_IP_PATTERNS, BlockedIpPattern, classify_ip, is_blocked_ip
from .url_validator import URL_PIPELINE, ValidatedUrl, resolve_hostname, validate_url

__all__ = [
    "BLOCKED_IP_PATTERNS",
    "BlockedIpPattern",
    "ImageBytes",
    "ImageFormat",
    "MAX_IMAGE_BYTES",
    "URL_PIPELINE",
    "ValidatedUrl",
    "assert_square",
    "classify_ip",
    "detect_image_format",
    "download_image",
    "is_blocked_ip",
    "load_image",
    "load_image_file",
    "make_filename",
    "read_image_dimensions",
    "resolve_hostname",
    "validate_image_path",
    "validate_url",
]
