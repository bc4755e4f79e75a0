"""Ideogram API client and CLI with a hardened outbound-request gate."""

from .api import IdeogramAPI, extract_descriptions, extract_images
from .errors import (
    ConfigurationError,
    ContentError,
    ErrorKind,
    FetchTimeoutError,
    FileAccessError,
    FormatError,
    IdeogramError,
    NetworkError,
    ParameterError,
    ResolutionError,
    SecurityError,
    UpstreamCategory,
    UpstreamError,
)

__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "ContentError",
    "ErrorKind",
    "FetchTimeoutError",
    "FileAccessError",
    "FormatError",
    "IdeogramAPI",
    "IdeogramError",
    "NetworkError",
    "ParameterError",
    "ResolutionError",
    "SecurityError",
    "UpstreamCategory",
    "UpstreamError",
    "extract_descriptions",
    "extract_images",
]
