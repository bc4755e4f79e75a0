"""Blocked IP classification for outbound image requests (SSRF protection).

Pure predicates over address text: nothing in this module touches the
network, so every rule can be unit-tested with plain strings.
"""

import ipaddress
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

# Categories used by callers to phrase their error messages
LOCALHOST = "localhost"
METADATA = "metadata"
PRIVATE = "private"


@dataclass(frozen=True)
class BlockedIpPattern:
    """A single blocklist rule."""

    name: str
    category: str
    matches: Callable[[str], bool]


def _ipv4_octets(text: str) -> Optional[Tuple[int, int, int, int]]:
    """Split a dotted quad into numeric octets, or None if it isn't one."""
    parts = text.split(".")
    if len(parts) != 4:
        return None
    octets = []
    for part in parts:
        if not part or not part.isascii() or not part.isdigit():
            return None
        value = int(part)
        if value > 255:
            return None
        octets.append(value)
    return octets[0], octets[1], octets[2], octets[3]


def _ipv4_rule(predicate: Callable[[Tuple[int, int, int, int]], bool]):
    def matches(text: str) -> bool:
        octets = _ipv4_octets(text)
        return octets is not None and predicate(octets)

    return matches


def _ipv6_rule(network: str):
    net = ipaddress.IPv6Network(network)

    def matches(text: str) -> bool:
        if ":" not in text:
            return False
        try:
            return ipaddress.IPv6Address(text) in net
        except ValueError:
            return False

    return matches


def _ipv4_mapped(text: str) -> bool:
    if ":" not in text:
        return False
    try:
        mapped = ipaddress.IPv6Address(text).ipv4_mapped
    except ValueError:
        return False
    return mapped is not None and mapped_ipv4_category(str(mapped)) is not None


EXACT_BLOCKED_HOSTS = {
    "localhost": LOCALHOST,
    "127.0.0.1": LOCALHOST,
    "::1": LOCALHOST,
    "metadata.google.internal": METADATA,
    "metadata": METADATA,
    "169.254.169.254": METADATA,
}

# Ordered, first match wins. Immutable after import.
BLOCKED_IP_PATTERNS: Tuple[BlockedIpPattern, ...] = (
    BlockedIpPattern("loopback", LOCALHOST, _ipv4_rule(lambda o: o[0] == 127)),
    BlockedIpPattern("private-class-a", PRIVATE, _ipv4_rule(lambda o: o[0] == 10)),
    BlockedIpPattern(
        "private-class-b",
        PRIVATE,
        _ipv4_rule(lambda o: o[0] == 172 and 16 <= o[1] <= 31),
    ),
    BlockedIpPattern(
        "private-class-c",
        PRIVATE,
        _ipv4_rule(lambda o: o[0] == 192 and o[1] == 168),
    ),
    BlockedIpPattern(
        "link-local",
        PRIVATE,
        _ipv4_rule(lambda o: o[0] == 169 and o[1] == 254),
    ),
    BlockedIpPattern("reserved", PRIVATE, _ipv4_rule(lambda o: o[0] == 0)),
    BlockedIpPattern("ipv6-loopback", LOCALHOST, _ipv6_rule("::1/128")),
    BlockedIpPattern("ipv6-unspecified", PRIVATE, _ipv6_rule("::/128")),
    BlockedIpPattern("ipv6-link-local", PRIVATE, _ipv6_rule("fe80::/10")),
    BlockedIpPattern("ipv6-unique-local-fc", PRIVATE, _ipv6_rule("fc00::/8")),
    BlockedIpPattern("ipv6-unique-local-fd", PRIVATE, _ipv6_rule("fd00::/8")),
    BlockedIpPattern("ipv4-mapped-ipv6", PRIVATE, _ipv4_mapped),
)

_MAPPED_PRIVATE_RULES = frozenset(
    {"private-class-a", "private-class-b", "private-class-c", "link-local", "reserved"}
)

_EXACT_PATTERNS = {
    host: BlockedIpPattern(f"exact:{host}", category, lambda _text: True)
    for host, category in EXACT_BLOCKED_HOSTS.items()
}


def _clean(ip: str) -> str:
    text = ip.strip().lower()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    # Strip IPv6 zone ID (fe80::1%eth0 -> fe80::1)
    if "%" in text:
        text = text.split("%", 1)[0]
    return text


def classify_ip(ip: str) -> Optional[BlockedIpPattern]:
    """Return the blocklist rule matching ``ip``, or None if it is allowed."""
    text = _clean(ip)
    exact = _EXACT_PATTERNS.get(text)
    if exact is not None:
        return exact
    for pattern in BLOCKED_IP_PATTERNS:
        if pattern.matches(text):
            return pattern
    return None


def is_blocked_ip(ip: str) -> bool:
    """Check whether an address falls in a blocked range."""
    return classify_ip(ip) is not None


def mapped_ipv4_category(dotted_quad: str) -> Optional[str]:
    """Classify the IPv4 half of an IPv4-mapped IPv6 literal.

    Only the localhost prefix and the private ranges apply here.
    """
    octets = _ipv4_octets(dotted_quad)
    if octets is None:
        return None
    if octets[0] == 127:
        return LOCALHOST
    for pattern in BLOCKED_IP_PATTERNS:
        if pattern.name in _MAPPED_PRIVATE_RULES and pattern.matches(dotted_quad):
            return PRIVATE
    return None
