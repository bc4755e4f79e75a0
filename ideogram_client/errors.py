"""Tagged error hierarchy for the Ideogram client.

Every failure raised by the security gate, the SDK client and the CLI is an
``IdeogramError`` carrying an explicit ``kind``. Callers branch on the kind
(or on the concrete subclass), never on message text.
"""

from enum import Enum, auto
from typing import Optional


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    FORMAT = auto()  # Input is not syntactically parseable
    SECURITY = auto()  # Syntactically valid but denied by policy
    RESOLUTION = auto()  # DNS lookup failed
    CONTENT = auto()  # Bytes are empty, unrecognized or the wrong shape
    IO = auto()  # Local file not found / permission denied
    UPSTREAM = auto()  # Ideogram API returned a non-success status
    TIMEOUT = auto()  # Download or API call ran out of time
    NETWORK = auto()  # Transport failure unrelated to policy
    CONFIGURATION = auto()  # Missing API key, insecure base URL
    PARAMETER = auto()  # Operation parameter outside its constraints


class UpstreamCategory(Enum):
    """User-facing categories for upstream HTTP errors."""

    INVALID_INPUT = auto()  # 400
    AUTH_FAILED = auto()  # 401
    NOT_AUTHORIZED = auto()  # 403
    VALIDATION_FAILED = auto()  # 422
    RATE_LIMITED = auto()  # 429
    GENERIC = auto()


class IdeogramError(Exception):
    """Base exception for all client errors."""

    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class FormatError(IdeogramError):
    """Raised when a string is not a parseable URL."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.FORMAT, message)


class SecurityError(IdeogramError):
    """Raised when input is denied by policy.

    ``rule`` names the check that fired so audit logs and callers can tell
    a blocked host from an oversized payload without parsing the message.
    """

    def __init__(self, message: str, rule: str):
        super().__init__(ErrorKind.SECURITY, message)
        self.rule = rule


class ResolutionError(IdeogramError):
    """Raised when DNS resolution of a hostname fails."""

    def __init__(self, message: str, hostname: str, not_found: bool = False):
        super().__init__(ErrorKind.RESOLUTION, message)
        self.hostname = hostname
        self.not_found = not_found


class ContentError(IdeogramError):
    """Raised when image bytes fail signature, dimension or emptiness checks."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.CONTENT, message)


class FileAccessError(IdeogramError):
    """Raised when a local image cannot be read."""

    NOT_FOUND = "not-found"
    PERMISSION_DENIED = "permission-denied"
    OS_ERROR = "os-error"

    def __init__(self, message: str, path: str, reason: str):
        super().__init__(ErrorKind.IO, message)
        self.path = path
        self.reason = reason


class UpstreamError(IdeogramError):
    """Raised when the Ideogram API answers with an error status."""

    def __init__(
        self,
        category: UpstreamCategory,
        message: str,
        status_code: int,
        detail: Optional[str] = None,
    ):
        super().__init__(ErrorKind.UPSTREAM, message)
        self.category = category
        self.status_code = status_code
        self.detail = detail


class FetchTimeoutError(IdeogramError):
    """Raised when a download or API call exceeds its timeout."""

    def __init__(self, message: str, timeout: float):
        super().__init__(ErrorKind.TIMEOUT, message)
        self.timeout = timeout


class NetworkError(IdeogramError):
    """Raised for transport failures that are not policy denials."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(ErrorKind.NETWORK, message)
        self.status_code = status_code


class ConfigurationError(IdeogramError):
    """Raised for missing or insecure client configuration."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.CONFIGURATION, message)


class ParameterError(IdeogramError):
    """Raised when an operation parameter violates its constraints."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(ErrorKind.PARAMETER, message)
        self.parameter = parameter
