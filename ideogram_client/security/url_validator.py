"""SSRF-safe validation of user-supplied image URLs.

Validation runs as a fixed pipeline of named stages. The order is part of
the contract: the IPv4-mapped IPv6 scan must see the raw string before
``urlsplit`` normalizes the host, and DNS resolution only happens once the
cheap textual checks have passed.
"""

import asyncio
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
from urllib.parse import SplitResult, urlsplit

from ..errors import FormatError, ResolutionError, SecurityError
from .ip_blocklist import LOCALHOST, METADATA, classify_ip, mapped_ipv4_category

logger = logging.getLogger(__name__)

# DNS resolution timeout (seconds)
_DNS_TIMEOUT = 5

_MAPPED_IPV6_LITERAL = re.compile(r"\[::ffff:(\d+\.\d+\.\d+\.\d+)\]", re.IGNORECASE)

_BLOCKED_HOSTNAMES = {
    "localhost": LOCALHOST,
    "metadata.google.internal": METADATA,
    "metadata": METADATA,
}

_MESSAGES = {
    LOCALHOST: "Access to localhost is not allowed",
    METADATA: "Access to cloud metadata endpoints is not allowed",
}
_PRIVATE_MESSAGE = "Access to internal/private IP addresses is not allowed"

# getaddrinfo error codes meaning "this name does not exist"
_NOT_FOUND_CODES = {
    code
    for code in (
        getattr(socket, "EAI_NONAME", None),
        getattr(socket, "EAI_NODATA", None),
    )
    if code is not None
}

Resolver = Callable[[str], Awaitable[List[str]]]


@dataclass(frozen=True)
class ValidatedUrl:
    """A URL that passed every check in :data:`URL_PIPELINE`.

    ``url`` is the caller's original string, unchanged. ``resolved_ips`` is
    informational: the download step resolves the hostname again, so there
    is a narrow window between check and connect (accepted limitation).
    """

    url: str
    hostname: str
    resolved_ips: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.url


@dataclass
class _UrlCheck:
    """Per-call state threaded through the pipeline stages."""

    raw: str
    log: logging.Logger
    resolver: Resolver
    parsed: Optional[SplitResult] = None
    hostname: str = ""
    is_ip_literal: bool = False
    resolved_ips: List[str] = field(default_factory=list)


def _deny(check: _UrlCheck, category: str, rule: str, detail: str) -> SecurityError:
    check.log.warning(f"SECURITY: {detail}: {check.raw}")
    return SecurityError(_MESSAGES.get(category, _PRIVATE_MESSAGE), rule=rule)


async def _scan_mapped_ipv6(check: _UrlCheck) -> None:
    match = _MAPPED_IPV6_LITERAL.search(check.raw)
    if not match:
        return
    ipv4 = match.group(1)
    check.log.warning(
        f"SECURITY: Detected IPv4-mapped IPv6 address in URL: {check.raw} -> {ipv4}"
    )
    category = mapped_ipv4_category(ipv4)
    if category == LOCALHOST:
        raise _deny(check, LOCALHOST, "mapped-ipv6", "Blocked IPv4-mapped IPv6 localhost")
    if category is not None:
        raise _deny(check, category, "mapped-ipv6", "Blocked IPv4-mapped IPv6 private IP")


async def _parse(check: _UrlCheck) -> None:
    try:
        parsed = urlsplit(check.raw)
        hostname = parsed.hostname
        # Accessing .port validates it
        parsed.port
    except ValueError:
        raise FormatError(f"Invalid URL: {check.raw}")
    if not parsed.scheme or not hostname:
        raise FormatError(f"Invalid URL: {check.raw}")
    check.parsed = parsed


async def _require_https(check: _UrlCheck) -> None:
    if check.parsed.scheme.lower() != "https":
        raise SecurityError(
            "Only HTTPS URLs are allowed for security reasons", rule="scheme"
        )


async def _extract_hostname(check: _UrlCheck) -> None:
    hostname = check.parsed.hostname.lower()
    if hostname.startswith("[") and hostname.endswith("]"):
        hostname = hostname[1:-1]
    check.hostname = hostname


async def _check_blocked_hostname(check: _UrlCheck) -> None:
    category = _BLOCKED_HOSTNAMES.get(check.hostname)
    if category is not None:
        raise _deny(
            check,
            category,
            category,
            f"Blocked access to prohibited hostname {check.hostname}",
        )


async def _check_literal_ip(check: _UrlCheck) -> None:
    try:
        ipaddress.ip_address(check.hostname)
    except ValueError:
        return
    check.is_ip_literal = True
    pattern = classify_ip(check.hostname)
    if pattern is not None:
        raise _deny(
            check,
            pattern.category,
            "private-ip",
            f"Blocked access to private/internal IP {check.hostname} ({pattern.name})",
        )
    check.resolved_ips = [check.hostname]


async def _check_dns(check: _UrlCheck) -> None:
    if check.is_ip_literal:
        return
    hostname = check.hostname
    check.log.debug(f"Resolving DNS for hostname: {hostname}")
    addresses = await check.resolver(hostname)
    if not addresses:
        raise ResolutionError(f"Domain {hostname} could not be resolved", hostname, True)

    for address in addresses:
        pattern = classify_ip(address)
        if pattern is not None:
            check.log.warning(
                f"SECURITY: DNS resolution of {hostname} points to blocked IP: "
                f"{address} ({pattern.name})"
            )
            raise SecurityError(
                f"Domain {hostname} resolves to internal/private IP address",
                rule="dns-rebinding",
            )

    check.log.debug(f"DNS validation passed for {hostname} (resolved to {addresses})")
    check.resolved_ips = list(addresses)


# Fixed execution order. Do not sort, filter or extend at runtime.
URL_PIPELINE: Sequence[Tuple[str, Callable[[_UrlCheck], Awaitable[None]]]] = (
    ("mapped-ipv6-scan", _scan_mapped_ipv6),
    ("parse", _parse),
    ("scheme", _require_https),
    ("hostname", _extract_hostname),
    ("blocked-host", _check_blocked_hostname),
    ("literal-ip", _check_literal_ip),
    ("dns", _check_dns),
)


async def resolve_hostname(hostname: str) -> List[str]:
    """Resolve hostname to its A/AAAA addresses.

    Returns:
        Unique resolved addresses, sorted for determinism

    Raises:
        ResolutionError: If the name does not exist, the lookup fails or times out
    """
    loop = asyncio.get_running_loop()

    try:
        results = await asyncio.wait_for(
            loop.run_in_executor(
                None,
                lambda: socket.getaddrinfo(
                    hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM
                ),
            ),
            timeout=_DNS_TIMEOUT,
        )
    except asyncio.TimeoutError:
        raise ResolutionError(
            f"Failed to validate domain {hostname}: DNS timeout after {_DNS_TIMEOUT}s",
            hostname,
        )
    except socket.gaierror as e:
        if e.errno in _NOT_FOUND_CODES:
            logger.warning(f"SECURITY: Domain {hostname} could not be resolved")
            raise ResolutionError(
                f"Domain {hostname} could not be resolved", hostname, not_found=True
            )
        logger.warning(f"SECURITY: DNS lookup failed for {hostname}: {e}")
        raise ResolutionError(f"Failed to validate domain {hostname}: {e}", hostname)
    except UnicodeError as e:
        # IDNA encoding rejects empty labels and labels over 63 characters
        logger.warning(f"SECURITY: Hostname {hostname!r} is not encodable: {e}")
        raise ResolutionError(f"Failed to validate domain {hostname}: {e}", hostname)
    except OSError as e:
        raise ResolutionError(f"Failed to validate domain {hostname}: {e}", hostname)

    return sorted({result[4][0] for result in results})


async def validate_url(
    url: str,
    *,
    log: Optional[logging.Logger] = None,
    resolver: Optional[Resolver] = None,
) -> ValidatedUrl:
    """Validate an image URL for outbound use.

    Args:
        url: User-supplied URL string
        log: Logger to report security decisions to (defaults to module logger)
        resolver: Async hostname resolver, defaults to :func:`resolve_hostname`

    Returns:
        ValidatedUrl wrapping the original, unmodified string

    Raises:
        FormatError: If the string is not a parseable URL
        SecurityError: If any policy check fails
        ResolutionError: If the hostname cannot be resolved
    """
    if not isinstance(url, str):
        raise FormatError(f"Invalid URL: {url!r}")

    check = _UrlCheck(
        raw=url,
        log=log or logger,
        resolver=resolver or resolve_hostname,
    )
    for _name, stage in URL_PIPELINE:
        await stage(check)

    return ValidatedUrl(
        url=url, hostname=check.hostname, resolved_ips=tuple(check.resolved_ips)
    )
