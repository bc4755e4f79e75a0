"""Persistence of operation results: images plus a metadata JSON per call."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

from .api import extract_images
from .security import ImageBytes, download_image, make_filename, validate_url
from .security.image_loader import DOWNLOAD_TIMEOUT, MAX_IMAGE_BYTES, MAX_REDIRECTS

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[ImageBytes]]


@dataclass
class SavedResults:
    """Files written for one operation."""

    directory: Path
    image_paths: List[Path] = field(default_factory=list)
    metadata_path: Optional[Path] = None


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if it does not exist."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def save_image(image_data: Union[bytes, str], output_path: Union[str, Path]) -> Path:
    """Write raw or base64-encoded image data, creating parent directories."""
    path = Path(output_path)
    ensure_directory(path.parent)

    if isinstance(image_data, (bytes, bytearray)):
        data = bytes(image_data)
    elif isinstance(image_data, str):
        try:
            data = base64.b64decode(image_data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"image_data is not valid base64: {e}") from e
    else:
        raise TypeError("image_data must be bytes or a base64-encoded string")

    path.write_bytes(data)
    logger.debug(f"Saved image to: {path}")
    return path


def save_metadata(metadata_path: Union[str, Path], metadata: Dict[str, Any]) -> Path:
    """Write metadata as pretty-printed JSON."""
    path = Path(metadata_path)
    ensure_directory(path.parent)
    path.write_text(json.dumps(metadata, indent=2, default=str), encoding="utf-8")
    logger.debug(f"Saved metadata to: {path}")
    return path


async def fetch_image(
    url: str,
    *,
    max_bytes: int = MAX_IMAGE_BYTES,
    timeout: float = DOWNLOAD_TIMEOUT,
    max_redirects: int = MAX_REDIRECTS,
    log: Optional[logging.Logger] = None,
) -> ImageBytes:
    """Download a result image URL through the full URL validation gate."""
    validated = await validate_url(url, log=log)
    return await download_image(
        validated,
        max_bytes=max_bytes,
        timeout=timeout,
        max_redirects=max_redirects,
        log=log,
    )


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unique_path(directory: Path, text: str, extension: str) -> Path:
    """Pick an output path that does not exist yet.

    Names only carry second precision, so a repeated name within the same
    second gets a numeric suffix instead of overwriting the earlier file.
    """
    first = directory / make_filename(text, extension=extension)
    path = first
    counter = 2
    while path.exists():
        path = first.with_name(f"{first.stem}-{counter}{first.suffix}")
        counter += 1
    return path


async def save_results(
    response: Dict[str, Any],
    operation: str,
    name: str,
    output_dir: Union[str, Path],
    parameters: Dict[str, Any],
    *,
    fetch: Fetcher = fetch_image,
) -> SavedResults:
    """Download every returned image into ``<output_dir>/<operation>/``.

    Images are fetched one at a time; the first failure propagates and the
    remaining images are not fetched. Each file is written only after its own
    download passed validation, and is named with the detected format's
    extension. A sibling metadata JSON is written once all images are saved.
    """
    images = extract_images(response)
    directory = ensure_directory(Path(output_dir) / operation)
    saved = SavedResults(directory=directory)

    if not images:
        logger.warning("No images returned")
        return saved

    entries = []
    for index, image in enumerate(images, start=1):
        url = image.get("url")
        if not url:
            logger.warning(f"Image {index}/{len(images)} has no URL, skipping")
            continue

        content = await fetch(url)

        base = f"{name} {index}" if len(images) > 1 else name
        path = save_image(
            content.data,
            _unique_path(directory, base, content.format.extension),
        )
        saved.image_paths.append(path)
        logger.info(f"Saved image {index}/{len(images)}: {path}")

        entries.append(
            {
                "index": index,
                "url": url,
                "file": path.name,
                "resolution": image.get("resolution"),
                "seed": image.get("seed"),
                "is_image_safe": image.get("is_image_safe"),
            }
        )

    saved.metadata_path = save_metadata(
        _unique_path(directory, name, "json"),
        {
            "operation": operation,
            "timestamp": response.get("created") or _timestamp(),
            "parameters": parameters,
            "response": {"image_count": len(entries), "images": entries},
        },
    )
    return saved


def _source_name(image: Union[str, Path]) -> str:
    text = str(image)
    if "://" in text:
        text = urlsplit(text).path
    return Path(text).name or "image"


def save_description(
    image: Union[str, Path],
    descriptions: List[str],
    output_dir: Union[str, Path],
    parameters: Dict[str, Any],
) -> Path:
    """Write the describe result to ``<output_dir>/describe/``."""
    directory = ensure_directory(Path(output_dir) / "describe")
    return save_metadata(
        _unique_path(directory, _source_name(image), "json"),
        {
            "operation": "describe",
            "timestamp": _timestamp(),
            "image": str(image),
            "parameters": parameters,
            "descriptions": descriptions,
        },
    )
