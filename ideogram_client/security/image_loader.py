"""Bounded image loading from local files and validated URLs."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urljoin

import aiohttp

from ..errors import FetchTimeoutError, FileAccessError, NetworkError, SecurityError
from .image_validator import (
    SUPPORTED_MIME_TYPES,
    ImageBytes,
    read_image_file,
    detect_image_format,
)
from .url_validator import ValidatedUrl, validate_url

logger = logging.getLogger(__name__)

# Maximum image payload, for both downloads and uploads (50MB)
MAX_IMAGE_BYTES = 50 * 1024 * 1024

# Network timeouts (seconds)
DOWNLOAD_TIMEOUT = 60
_CONNECT_TIMEOUT = 10

# Maximum redirects to follow
MAX_REDIRECTS = 5

# Chunk size for streaming downloads (64KB)
_DOWNLOAD_CHUNK_SIZE = 64 * 1024

_REDIRECT_STATUSES = (301, 302, 303, 307, 308)


def _limit_mb(max_bytes: int) -> str:
    return f"{max_bytes / (1024 * 1024):.0f}MB"


def is_url(source: str) -> bool:
    """Check if an image reference looks like a URL rather than a path."""
    return "://" in source


def _check_size(size: int, max_bytes: int, label: str) -> None:
    if size > max_bytes:
        actual_mb = size / (1024 * 1024)
        raise SecurityError(
            f"Image '{label}' ({actual_mb:.1f}MB) exceeds maximum of {_limit_mb(max_bytes)}",
            rule="size",
        )


async def load_image_file(
    path: Union[str, Path],
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    log: Optional[logging.Logger] = None,
) -> ImageBytes:
    """Read a local image, rejecting oversized files before buffering them.

    Raises:
        FileAccessError: If the file is missing or unreadable
        SecurityError: If the file exceeds ``max_bytes``
        ContentError: If the bytes are empty or not a recognized image
    """
    log = log or logger
    file_path = Path(path)

    try:
        size = file_path.stat().st_size
    except FileNotFoundError:
        raise FileAccessError(
            f"Image file not found: {path}", str(path), FileAccessError.NOT_FOUND
        )
    except PermissionError:
        raise FileAccessError(
            f"Permission denied reading image file: {path}",
            str(path),
            FileAccessError.PERMISSION_DENIED,
        )
    except OSError as e:
        raise FileAccessError(
            f"Cannot access image file '{path}': {e}",
            str(path),
            FileAccessError.OS_ERROR,
        )
    _check_size(size, max_bytes, str(path))

    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(None, read_image_file, file_path)
    # The file may have grown between stat() and read()
    _check_size(len(data), max_bytes, str(path))

    image_format = detect_image_format(data, str(path))
    log.debug(f"Loaded {image_format.name} image from {path} ({len(data)} bytes)")
    return ImageBytes(data=data, format=image_format, source=str(path))


async def download_image(
    validated: ValidatedUrl,
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    timeout: float = DOWNLOAD_TIMEOUT,
    max_redirects: int = MAX_REDIRECTS,
    log: Optional[logging.Logger] = None,
) -> ImageBytes:
    """Download an image from a URL that already passed :func:`validate_url`.

    Redirects are followed manually so that every hop goes through the same
    URL validation as the original request. The body is streamed and
    abandoned as soon as it crosses ``max_bytes``.

    Raises:
        TypeError: If ``validated`` is a raw string instead of a ValidatedUrl
        SecurityError: Oversized body, disallowed content type, redirect abuse
        FetchTimeoutError: If the transfer exceeds ``timeout``
        NetworkError: For non-200 responses and transport failures
        ContentError: If the bytes are not a recognized image
    """
    if not isinstance(validated, ValidatedUrl):
        raise TypeError("download_image requires a ValidatedUrl; call validate_url first")

    log = log or logger
    original_url = validated.url
    current = validated
    redirect_count = 0

    client_timeout = aiohttp.ClientTimeout(total=timeout, connect=_CONNECT_TIMEOUT)

    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            while True:
                log.debug(f"Downloading image from URL: {current.url}")
                async with session.get(current.url, allow_redirects=False) as response:
                    if response.status in _REDIRECT_STATUSES:
                        redirect_count += 1
                        if redirect_count > max_redirects:
                            raise SecurityError(
                                f"Too many redirects (>{max_redirects}) fetching '{original_url}'",
                                rule="redirects",
                            )

                        location = response.headers.get("Location")
                        if not location:
                            raise NetworkError(
                                f"Redirect without Location header from '{current.url}'",
                                status_code=response.status,
                            )

                        # Every hop must satisfy the same policy as the first URL
                        target = urljoin(current.url, location)
                        log.debug(f"Following redirect to: {target}")
                        current = await validate_url(target, log=log)
                        continue

                    if response.status != 200:
                        raise NetworkError(
                            f"Failed to fetch image from '{original_url}': HTTP {response.status}",
                            status_code=response.status,
                        )

                    # Check Content-Length header (but don't trust it fully)
                    content_length = response.headers.get("Content-Length")
                    if content_length:
                        try:
                            declared_size = int(content_length)
                        except ValueError:
                            declared_size = None
                        if declared_size is not None:
                            _check_size(declared_size, max_bytes, original_url)

                    chunks = []
                    total_size = 0
                    async for chunk in response.content.iter_chunked(
                        _DOWNLOAD_CHUNK_SIZE
                    ):
                        total_size += len(chunk)
                        if total_size > max_bytes:
                            raise SecurityError(
                                f"Image at '{original_url}' exceeds maximum of "
                                f"{_limit_mb(max_bytes)} during download",
                                rule="size",
                            )
                        chunks.append(chunk)

                    content_type = response.headers.get("Content-Type", "")
                    break

    except asyncio.TimeoutError:
        raise FetchTimeoutError(
            f"Timeout fetching image from '{original_url}' (limit: {timeout}s)",
            timeout=timeout,
        )
    except aiohttp.ClientError as e:
        raise NetworkError(f"Failed to fetch image from '{original_url}': {e}")

    mime_type = content_type.split(";")[0].strip().lower()
    if mime_type not in SUPPORTED_MIME_TYPES:
        log.warning(f"SECURITY: Rejected Content-Type '{mime_type}' from {original_url}")
        raise SecurityError(
            f"Invalid Content-Type: {mime_type or 'missing'}. "
            f"Expected image/* (png, jpeg, webp, gif)",
            rule="content-type",
        )

    data = b"".join(chunks)
    image_format = detect_image_format(data, original_url)
    return ImageBytes(data=data, format=image_format, source=original_url)


async def load_image(
    source: Union[str, Path],
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    timeout: float = DOWNLOAD_TIMEOUT,
    max_redirects: int = MAX_REDIRECTS,
    log: Optional[logging.Logger] = None,
) -> ImageBytes:
    """Load an image reference that may be a local path or an https URL.

    URLs are validated before any connection is opened.
    """
    if isinstance(source, str) and is_url(source):
        validated = await validate_url(source, log=log)
        return await download_image(
            validated,
            max_bytes=max_bytes,
            timeout=timeout,
            max_redirects=max_redirects,
            log=log,
        )
    return await load_image_file(source, max_bytes=max_bytes, log=log)
