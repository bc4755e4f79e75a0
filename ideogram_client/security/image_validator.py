"""Image content validation: magic-byte sniffing and dimension checks."""

import asyncio
import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple, Union

from PIL import Image

from ..errors import ContentError, FileAccessError

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, Path]


class ImageFormat(Enum):
    """Image formats accepted by the Ideogram API."""

    PNG = ("image/png", "png")
    JPEG = ("image/jpeg", "jpg")
    GIF = ("image/gif", "gif")
    WEBP = ("image/webp", "webp")

    @property
    def mime_type(self) -> str:
        return self.value[0]

    @property
    def extension(self) -> str:
        return self.value[1]


SUPPORTED_MIME_TYPES = frozenset(fmt.mime_type for fmt in ImageFormat)


@dataclass(frozen=True)
class ImageBytes:
    """Raw image content with its signature-detected format."""

    data: bytes
    format: ImageFormat
    source: str  # path or URL the bytes came from, or "memory"

    def __len__(self) -> int:
        return len(self.data)


def detect_image_format(data: bytes, label: str = "image data") -> ImageFormat:
    """Identify an image purely by its leading bytes.

    Args:
        data: Raw content
        label: Name used in error messages (file path, URL)

    Raises:
        ContentError: If the content is empty or matches no known signature
    """
    if len(data) == 0:
        raise ContentError(f"Image file is empty: {label}")

    head = bytes(data[:12])
    if head[:4] == b"\x89PNG":
        return ImageFormat.PNG
    if head[:3] == b"\xff\xd8\xff":
        return ImageFormat.JPEG
    if head[:3] == b"GIF":
        return ImageFormat.GIF
    if head[8:12] == b"WEBP":
        return ImageFormat.WEBP

    raise ContentError(
        f"File does not appear to be a valid image (PNG, JPEG, WebP, or GIF): {label}"
    )


def read_image_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
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
            f"Failed to read image file '{path}': {e}",
            str(path),
            FileAccessError.OS_ERROR,
        )


async def validate_image_path(path: Union[str, Path]) -> Path:
    """Check that a local file exists, is readable and holds a known image.

    Returns:
        The path, unchanged apart from conversion to ``Path``

    Raises:
        FileAccessError: If the file is missing or unreadable
        ContentError: If the file is empty or not a recognized image
    """
    file_path = Path(path)
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(None, read_image_file, file_path)
    detect_image_format(data, str(file_path))
    return file_path


def read_image_dimensions(source: ImageSource) -> Tuple[int, int]:
    """Read width and height from the image header.

    Pillow decodes lazily, so only the header is parsed, never the pixels.

    Raises:
        ContentError: If the dimensions cannot be determined
    """
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            handle = Image.open(io.BytesIO(bytes(source)))
        elif isinstance(source, (str, Path)):
            handle = Image.open(source)
        else:
            raise TypeError(f"Unsupported image input: {type(source).__name__}")
        with handle as img:
            width, height = img.size
    except Exception as e:
        raise ContentError(f"Unable to read image dimensions: {e}") from e
    return width, height


def assert_square(source: ImageSource) -> None:
    """Require that an image is exactly square.

    Raises:
        ContentError: If the image is not square or cannot be read
    """
    width, height = read_image_dimensions(source)
    if width != height:
        raise ContentError(f"Image must be square. Received {width}x{height}")
    logger.debug(f"Square image check passed ({width}x{height})")
