"""Ideogram API client.

Wraps every Ideogram 3.0 operation (generate, edit, remix, reframe,
replace-background) plus upscale and describe. All operations are
synchronous on the Ideogram side, so one request yields the final result.

Every request passes the same gate: parameter checks, image content
validation, the square check for reframe, the request size limit, then the
network call and response validation.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from pathlib import Path

import httpx

from .config import redact_api_key
from .constants import BASE_URL, COLOR_PALETTE_PRESETS, ENDPOINTS
from .errors import (
    ConfigurationError,
    FetchTimeoutError,
    NetworkError,
    SecurityError,
    UpstreamCategory,
    UpstreamError,
)
from .forms import MultipartForm, build_form_data
from .params import validate_operation_params
from .security import (
    MAX_IMAGE_BYTES,
    ImageBytes,
    assert_square,
    detect_image_format,
    load_image,
)
from .security.image_loader import DOWNLOAD_TIMEOUT, MAX_REDIRECTS

logger = logging.getLogger(__name__)

# Request and response limits
MAX_REQUEST_BYTES = 50 * 1024 * 1024
MAX_RESPONSE_BYTES = 100 * 1024 * 1024
API_TIMEOUT = 120.0

ImageInput = Union[ImageBytes, bytes, str, Path]

_STATUS_CATEGORIES = {
    400: UpstreamCategory.INVALID_INPUT,
    401: UpstreamCategory.AUTH_FAILED,
    403: UpstreamCategory.NOT_AUTHORIZED,
    422: UpstreamCategory.VALIDATION_FAILED,
    429: UpstreamCategory.RATE_LIMITED,
}

_HARDENED_NETWORK_MESSAGE = "Request failed. Please check your connection and try again."


def map_upstream_error(
    status_code: int, message: str, hardened: bool = False
) -> UpstreamError:
    """Translate an upstream error status into a user-facing ``UpstreamError``.

    In hardened mode the message carries the category only; upstream detail
    is dropped from the error entirely.
    """
    category = _STATUS_CATEGORIES.get(status_code, UpstreamCategory.GENERIC)
    detail = None if hardened else message

    if category is UpstreamCategory.INVALID_INPUT:
        text = "Invalid input." if hardened else f"Invalid input: {message}"
    elif category is UpstreamCategory.AUTH_FAILED:
        text = "Authentication failed. Check API key."
    elif category is UpstreamCategory.NOT_AUTHORIZED:
        text = "Not authorized to perform this operation."
    elif category is UpstreamCategory.VALIDATION_FAILED:
        text = "Validation failed." if hardened else f"Validation failed: {message}"
    elif category is UpstreamCategory.RATE_LIMITED:
        text = "Rate limit exceeded. Too many requests."
    elif hardened:
        text = "Operation failed. Please try again."
    else:
        text = f"API error ({status_code}): {message}"

    return UpstreamError(category, text, status_code=status_code, detail=detail)


def _error_message(body: bytes, status_code: int) -> str:
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            if payload.get(key):
                return str(payload[key])
    text = body.decode("utf-8", errors="replace").strip()
    return text[:500] if text else f"Request failed with status code {status_code}"


def _color_palette(value: Optional[Union[str, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    # A bare string names a preset palette
    if isinstance(value, str):
        name = value.upper()
        if name not in COLOR_PALETTE_PRESETS:
            logger.warning(f"Unknown color palette preset: {value}")
        return {"name": name}
    return value


class IdeogramAPI:
    """Async client for the Ideogram API.

    Example:
        async with IdeogramAPI(api_key) as api:
            response = await api.generate("A serene mountain landscape at sunset")
            for image in extract_images(response):
                print(image["url"])
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        *,
        hardened: bool = False,
        logger: Optional[logging.Logger] = None,
        timeout: float = API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        download_timeout: float = DOWNLOAD_TIMEOUT,
        max_redirects: int = MAX_REDIRECTS,
    ):
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key is required")

        if not base_url.startswith("https://"):
            raise ConfigurationError("Base URL must use HTTPS protocol for security")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.hardened = hardened
        self.timeout = timeout
        self.max_image_bytes = max_image_bytes
        self.download_timeout = download_timeout
        self.max_redirects = max_redirects
        self.logger = logger or logging.getLogger(__name__)

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), transport=transport
        )

        # Key only appears redacted, and only at debug level
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Ideogram API initialized (API key: {redact_api_key(api_key)})"
            )
        else:
            self.logger.info("Ideogram API initialized")

    async def __aenter__(self) -> "IdeogramAPI":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def set_log_level(self, level: Union[str, int]) -> None:
        """Set the level of this client's logger (``debug``, ``info``, ``warn``, ``error``)."""
        if isinstance(level, str):
            level = level.upper()
            if level == "WARN":
                level = "WARNING"
        self.logger.setLevel(level)

    async def _load_input(self, image: ImageInput) -> ImageBytes:
        if isinstance(image, ImageBytes):
            return image
        if isinstance(image, (bytes, bytearray, memoryview)):
            data = bytes(image)
            return ImageBytes(data=data, format=detect_image_format(data), source="memory")
        return await load_image(
            image,
            max_bytes=self.max_image_bytes,
            timeout=self.download_timeout,
            max_redirects=self.max_redirects,
            log=self.logger,
        )

    async def _make_request(self, endpoint: str, form: MultipartForm) -> Dict[str, Any]:
        """POST a multipart form and return the decoded JSON response.

        Raises:
            SecurityError: Oversized request or response, non-JSON response
            UpstreamError: Error status from the API
            FetchTimeoutError: Request exceeded the client timeout
            NetworkError: Transport failure
        """
        url = f"{self.base_url}{endpoint}"
        self.logger.debug(f"Making request to: {url}")

        request = self._client.build_request(
            "POST", url, files=form.parts(), headers={"Api-Key": self.api_key}
        )
        body_size = len(request.read())
        if body_size > MAX_REQUEST_BYTES:
            raise SecurityError(
                f"Request payload too large: {body_size / 1024 / 1024:.2f}MB "
                f"exceeds maximum of 50MB",
                rule="size",
            )

        try:
            response = await self._client.send(request, stream=True)
            try:
                body = await self._read_body(response)
            finally:
                await response.aclose()
        except httpx.TimeoutException as e:
            self.logger.error(f"Request timed out: {e}")
            raise FetchTimeoutError(
                f"API request timed out after {self.timeout:.0f}s", timeout=self.timeout
            )
        except httpx.HTTPError as e:
            self.logger.error(f"Request failed: {e}")
            if self.hardened:
                raise NetworkError(_HARDENED_NETWORK_MESSAGE)
            raise NetworkError(f"Request failed: {e}")

        if response.status_code >= 400:
            message = _error_message(body, response.status_code)
            self.logger.error(f"API request failed ({response.status_code}): {message}")
            raise map_upstream_error(response.status_code, message, self.hardened)

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            self.logger.warning(f"Unexpected Content-Type in response: {content_type}")
            raise SecurityError("Invalid response format from API", rule="response-format")

        try:
            payload = json.loads(body)
        except ValueError:
            raise SecurityError("Invalid response format from API", rule="response-format")

        if not isinstance(payload, dict):
            self.logger.warning(
                f"Unexpected JSON payload type in response: {type(payload).__name__}"
            )
            raise SecurityError("Invalid response format from API", rule="response-format")
        return payload

    async def _read_body(self, response: httpx.Response) -> bytes:
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > MAX_RESPONSE_BYTES:
            raise SecurityError("Response from API exceeds maximum of 100MB", rule="size")

        chunks = []
        total = 0
        async for chunk in response.aiter_bytes():
            total += len(chunk)
            if total > MAX_RESPONSE_BYTES:
                raise SecurityError(
                    "Response from API exceeds maximum of 100MB", rule="size"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    async def generate(
        self,
        prompt: str,
        *,
        resolution: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        rendering_speed: str = "DEFAULT",
        magic_prompt: str = "AUTO",
        negative_prompt: Optional[str] = None,
        num_images: int = 1,
        seed: Optional[int] = None,
        color_palette: Optional[Union[str, Dict[str, Any]]] = None,
        style_codes: Optional[List[str]] = None,
        style_type: Optional[str] = None,
        style_preset: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate images from a text prompt with Ideogram 3.0."""
        params = {
            "prompt": prompt,
            "seed": seed,
            "resolution": resolution,
            "aspect_ratio": aspect_ratio,
            "rendering_speed": rendering_speed,
            "magic_prompt": magic_prompt,
            "negative_prompt": negative_prompt,
            "num_images": num_images,
            "color_palette": _color_palette(color_palette),
            "style_codes": style_codes,
            "style_type": style_type,
            "style_preset": style_preset,
        }
        validate_operation_params("generate-v3", params)

        self.logger.info("Generating images with Ideogram 3.0")
        self.logger.debug(f'Prompt: "{prompt}"')

        response = await self._make_request(
            ENDPOINTS["generate-v3"], build_form_data(params)
        )
        self.logger.info(f"Generated {len(extract_images(response))} image(s) successfully")
        return response

    async def edit(
        self,
        prompt: str,
        image: ImageInput,
        mask: ImageInput,
        *,
        magic_prompt: str = "AUTO",
        num_images: int = 1,
        seed: Optional[int] = None,
        rendering_speed: str = "DEFAULT",
        style_type: Optional[str] = None,
        style_preset: Optional[str] = None,
        color_palette: Optional[Union[str, Dict[str, Any]]] = None,
        style_codes: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Edit the masked region of an image with a natural language prompt."""
        params = {
            "prompt": prompt,
            "magic_prompt": magic_prompt,
            "num_images": num_images,
            "seed": seed,
            "rendering_speed": rendering_speed,
            "style_type": style_type,
            "style_preset": style_preset,
            "color_palette": _color_palette(color_palette),
            "style_codes": style_codes,
        }
        validate_operation_params("edit-v3", params)

        self.logger.info("Editing image with Ideogram 3.0")
        self.logger.debug(f'Prompt: "{prompt}"')

        image_bytes = await self._load_input(image)
        mask_bytes = await self._load_input(mask)
        form = build_form_data({"image": image_bytes, "mask": mask_bytes, **params})

        response = await self._make_request(ENDPOINTS["edit-v3"], form)
        self.logger.info(
            f"Edited image successfully ({len(extract_images(response))} results)"
        )
        return response

    async def remix(
        self,
        prompt: str,
        image: ImageInput,
        *,
        image_weight: Optional[int] = None,
        resolution: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        rendering_speed: str = "DEFAULT",
        magic_prompt: str = "AUTO",
        negative_prompt: Optional[str] = None,
        num_images: int = 1,
        seed: Optional[int] = None,
        color_palette: Optional[Union[str, Dict[str, Any]]] = None,
        style_codes: Optional[List[str]] = None,
        style_type: Optional[str] = None,
        style_preset: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Remix an image guided by a prompt."""
        params = {
            "prompt": prompt,
            "image_weight": image_weight,
            "seed": seed,
            "resolution": resolution,
            "aspect_ratio": aspect_ratio,
            "rendering_speed": rendering_speed,
            "magic_prompt": magic_prompt,
            "negative_prompt": negative_prompt,
            "num_images": num_images,
            "color_palette": _color_palette(color_palette),
            "style_codes": style_codes,
            "style_type": style_type,
            "style_preset": style_preset,
        }
        validate_operation_params("remix-v3", params)

        self.logger.info("Remixing image with Ideogram 3.0")
        self.logger.debug(f'Prompt: "{prompt}"')

        image_bytes = await self._load_input(image)
        form = build_form_data({"image": image_bytes, **params})

        response = await self._make_request(ENDPOINTS["remix-v3"], form)
        self.logger.info(
            f"Remixed image successfully ({len(extract_images(response))} results)"
        )
        return response

    async def reframe(
        self,
        image: ImageInput,
        resolution: str,
        *,
        num_images: int = 1,
        seed: Optional[int] = None,
        rendering_speed: str = "DEFAULT",
        style_preset: Optional[str] = None,
        color_palette: Optional[Union[str, Dict[str, Any]]] = None,
        style_codes: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Extend a square image to a new resolution.

        The input must be exactly square; this is checked locally before
        anything is uploaded.
        """
        params = {
            "resolution": resolution,
            "num_images": num_images,
            "seed": seed,
            "rendering_speed": rendering_speed,
            "style_preset": style_preset,
            "color_palette": _color_palette(color_palette),
            "style_codes": style_codes,
        }
        validate_operation_params("reframe-v3", params)

        self.logger.info("Reframing image with Ideogram 3.0")

        image_bytes = await self._load_input(image)
        assert_square(image_bytes.data)
        form = build_form_data({"image": image_bytes, **params})

        response = await self._make_request(ENDPOINTS["reframe-v3"], form)
        self.logger.info(
            f"Reframed image successfully ({len(extract_images(response))} results)"
        )
        return response

    async def replace_background(
        self,
        prompt: str,
        image: ImageInput,
        *,
        magic_prompt: str = "AUTO",
        num_images: int = 1,
        seed: Optional[int] = None,
        rendering_speed: str = "DEFAULT",
        style_preset: Optional[str] = None,
        color_palette: Optional[Union[str, Dict[str, Any]]] = None,
        style_codes: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Replace the background of an image while keeping the subject."""
        params = {
            "prompt": prompt,
            "magic_prompt": magic_prompt,
            "num_images": num_images,
            "seed": seed,
            "rendering_speed": rendering_speed,
            "style_preset": style_preset,
            "color_palette": _color_palette(color_palette),
            "style_codes": style_codes,
        }
        validate_operation_params("replace-background-v3", params)

        self.logger.info("Replacing background with Ideogram 3.0")
        self.logger.debug(f'Prompt: "{prompt}"')

        image_bytes = await self._load_input(image)
        form = build_form_data({"image": image_bytes, **params})

        response = await self._make_request(ENDPOINTS["replace-background-v3"], form)
        self.logger.info(
            f"Replaced background successfully ({len(extract_images(response))} results)"
        )
        return response

    async def upscale(
        self,
        image: ImageInput,
        *,
        prompt: Optional[str] = None,
        resemblance: Optional[int] = None,
        detail: Optional[int] = None,
        magic_prompt_option: Optional[str] = None,
        num_images: int = 1,
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Upscale an image, optionally guided by a prompt."""
        image_request = {
            "prompt": prompt,
            "resemblance": resemblance,
            "detail": detail,
            "magic_prompt_option": magic_prompt_option,
            "num_images": num_images,
            "seed": seed,
        }
        validate_operation_params("upscale", image_request)

        self.logger.info("Upscaling image")

        image_bytes = await self._load_input(image)
        form = build_form_data(
            {"image_file": image_bytes, "image_request": image_request}
        )

        response = await self._make_request(ENDPOINTS["upscale"], form)
        self.logger.info(
            f"Upscaled image successfully ({len(extract_images(response))} results)"
        )
        return response

    async def describe(
        self, image: ImageInput, *, describe_model_version: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get text descriptions of an image."""
        params = {"describe_model_version": describe_model_version}
        validate_operation_params("describe", params)

        self.logger.info("Describing image")

        image_bytes = await self._load_input(image)
        form = build_form_data({"image_file": image_bytes, **params})

        response = await self._make_request(ENDPOINTS["describe"], form)
        self.logger.info(
            f"Described image successfully "
            f"({len(extract_descriptions(response))} descriptions)"
        )
        return response


def extract_images(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the image entries (url, prompt, resolution, seed, ...) of a response."""
    return list(response.get("data") or [])


def extract_descriptions(response: Dict[str, Any]) -> List[str]:
    """Return the description texts of a describe response."""
    return [d.get("text", "") for d in response.get("descriptions") or []]
