"""
Unit tests for SSRF-safe URL validation.
"""

import logging
import socket
from unittest.mock import AsyncMock, patch

import pytest

from ideogram_client.errors import ErrorKind, FormatError, ResolutionError, SecurityError
from ideogram_client.security.url_validator import (
    URL_PIPELINE,
    ValidatedUrl,
    resolve_hostname,
    validate_url,
)


def resolver_for(*addresses):
    return AsyncMock(return_value=list(addresses))


class TestBlockedHosts:
    """Static blocklist: localhost, metadata and private literals."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        ["https://localhost/x.png", "https://127.0.0.1/x.png", "https://[::1]/x.png"],
    )
    async def test_localhost_rejected(self, url):
        with pytest.raises(SecurityError, match="localhost is not allowed"):
            await validate_url(url, resolver=resolver_for("93.184.216.34"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        [
            "https://169.254.169.254/latest/meta-data",
            "https://metadata.google.internal/computeMetadata/v1/",
            "https://metadata/x",
        ],
    )
    async def test_metadata_rejected(self, url):
        with pytest.raises(SecurityError, match="cloud metadata endpoints"):
            await validate_url(url, resolver=resolver_for("93.184.216.34"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "host",
        [
            "10.0.0.1",
            "172.16.0.1",
            "172.31.255.255",
            "192.168.1.1",
            "169.254.1.1",
            "[fe80::1]",
            "[fc00::1]",
            "[fd00::1]",
            "[::]",
        ],
    )
    async def test_private_literal_rejected(self, host):
        with pytest.raises(SecurityError, match="internal/private IP") as exc_info:
            await validate_url(f"https://{host}/x.png", resolver=resolver_for("8.8.8.8"))
        assert exc_info.value.rule == "private-ip"
        assert exc_info.value.kind is ErrorKind.SECURITY

    @pytest.mark.asyncio
    async def test_blocked_hostname_rule_names_category(self):
        with pytest.raises(SecurityError) as exc_info:
            await validate_url("https://LOCALHOST/x.png")
        assert exc_info.value.rule == "localhost"

    @pytest.mark.asyncio
    async def test_literal_ip_skips_dns(self):
        resolver = resolver_for("10.0.0.1")
        result = await validate_url("https://8.8.8.8/x.png", resolver=resolver)
        assert result.resolved_ips == ("8.8.8.8",)
        resolver.assert_not_awaited()


class TestScheme:
    """Only https is accepted."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        [
            "http://example.com/x.png",
            "ftp://example.com/x.png",
            "file://example.com/etc/passwd",
            "gopher://example.com/x",
        ],
    )
    async def test_non_https_rejected(self, url):
        with pytest.raises(SecurityError, match="Only HTTPS URLs") as exc_info:
            await validate_url(url, resolver=resolver_for("93.184.216.34"))
        assert exc_info.value.rule == "scheme"


class TestFormat:
    """Unparseable input is a format error, not a policy denial."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", ["not a url", "", "https://", "https://example.com:99999/x", "://x"]
    )
    async def test_invalid_url(self, url):
        with pytest.raises(FormatError, match="Invalid URL"):
            await validate_url(url, resolver=resolver_for("93.184.216.34"))

    @pytest.mark.asyncio
    async def test_non_string(self):
        with pytest.raises(FormatError):
            await validate_url(None)


class TestMappedIPv6:
    """IPv4-mapped IPv6 literals are caught by the raw-string pre-scan."""

    @pytest.mark.asyncio
    async def test_mapped_localhost(self):
        with pytest.raises(SecurityError, match="localhost is not allowed") as exc_info:
            await validate_url("https://[::ffff:127.0.0.1]/x")
        assert exc_info.value.rule == "mapped-ipv6"

    @pytest.mark.asyncio
    async def test_mapped_private(self):
        with pytest.raises(SecurityError, match="internal/private IP") as exc_info:
            await validate_url("https://[::ffff:10.0.0.1]/x")
        assert exc_info.value.rule == "mapped-ipv6"

    @pytest.mark.asyncio
    async def test_prescan_catches_what_ip_classifier_misses(self):
        """With the IP classifier disabled, only the pre-scan stands in the way."""
        with patch(
            "ideogram_client.security.url_validator.classify_ip", return_value=None
        ):
            with pytest.raises(SecurityError) as exc_info:
                await validate_url(
                    "https://[::ffff:127.0.0.1]/x", resolver=resolver_for("8.8.8.8")
                )
        assert exc_info.value.rule == "mapped-ipv6"

    @pytest.mark.asyncio
    async def test_prescan_runs_before_parsing(self):
        """A mapped literal anywhere in the raw string is rejected before parsing."""
        resolver = resolver_for("93.184.216.34")
        with pytest.raises(SecurityError) as exc_info:
            await validate_url(
                "https://cdn.example.com/redirect?to=[::ffff:192.168.0.1]",
                resolver=resolver,
            )
        assert exc_info.value.rule == "mapped-ipv6"
        resolver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mapped_public_allowed(self):
        result = await validate_url("https://[::ffff:8.8.8.8]/x")
        assert result.url == "https://[::ffff:8.8.8.8]/x"

    def test_prescan_is_first_stage(self):
        names = [name for name, _stage in URL_PIPELINE]
        assert names[0] == "mapped-ipv6-scan"
        assert names.index("parse") < names.index("dns")
        assert names[-1] == "dns"


class TestDNSRebinding:
    """Domains resolving to internal addresses are rejected."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "address", ["127.0.0.1", "10.0.0.1", "169.254.169.254", "fd00::1", "::1"]
    )
    async def test_resolves_to_internal(self, address):
        with pytest.raises(SecurityError, match="resolves to internal/private IP") as exc_info:
            await validate_url(
                "https://innocent.example.com/x.png", resolver=resolver_for(address)
            )
        assert exc_info.value.rule == "dns-rebinding"

    @pytest.mark.asyncio
    async def test_any_internal_address_rejects(self):
        """Every resolved address is checked, not only the first."""
        with pytest.raises(SecurityError, match="resolves to internal"):
            await validate_url(
                "https://mixed.example.com/x.png",
                resolver=resolver_for("93.184.216.34", "10.0.0.1"),
            )

    @pytest.mark.asyncio
    async def test_empty_resolution_is_not_found(self):
        with pytest.raises(ResolutionError) as exc_info:
            await validate_url("https://ghost.example.com/x", resolver=resolver_for())
        assert exc_info.value.not_found is True

    @pytest.mark.asyncio
    async def test_public_domain_accepted_unchanged(self):
        url = "https://Example.com:443/Images/Cat.PNG?size=large#top"
        result = await validate_url(url, resolver=resolver_for("8.8.8.8"))

        assert isinstance(result, ValidatedUrl)
        assert result.url == url
        assert str(result) == url
        assert result.hostname == "example.com"
        assert result.resolved_ips == ("8.8.8.8",)

    @pytest.mark.asyncio
    async def test_revalidation_is_stable(self):
        resolver = resolver_for("8.8.8.8")
        first = await validate_url("https://example.com/a.png", resolver=resolver)
        second = await validate_url(str(first), resolver=resolver)
        assert first == second

        for _ in range(2):
            with pytest.raises(SecurityError):
                await validate_url("https://10.1.2.3/a.png")


class TestResolveHostname:
    """DNS lookups through getaddrinfo."""

    @pytest.mark.asyncio
    async def test_returns_unique_sorted_addresses(self):
        def fake_getaddrinfo(host, port, family, type):
            return [
                (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("93.184.216.34", 0)),
                (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("93.184.216.34", 0)),
                (socket.AF_INET6, socket.SOCK_STREAM, 0, "", ("2606:2800::1", 0, 0, 0)),
            ]

        with patch(
            "ideogram_client.security.url_validator.socket.getaddrinfo", fake_getaddrinfo
        ):
            addresses = await resolve_hostname("example.com")

        assert addresses == ["2606:2800::1", "93.184.216.34"]

    @pytest.mark.asyncio
    async def test_not_found(self):
        def failing_dns(*args, **kwargs):
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        with patch(
            "ideogram_client.security.url_validator.socket.getaddrinfo",
            side_effect=failing_dns,
        ):
            with pytest.raises(ResolutionError, match="could not be resolved") as exc_info:
                await resolve_hostname("nonexistent.invalid")

        assert exc_info.value.not_found is True
        assert exc_info.value.hostname == "nonexistent.invalid"

    @pytest.mark.asyncio
    async def test_other_failure_wraps_cause(self):
        def failing_dns(*args, **kwargs):
            raise socket.gaierror(socket.EAI_AGAIN, "Temporary failure in name resolution")

        with patch(
            "ideogram_client.security.url_validator.socket.getaddrinfo",
            side_effect=failing_dns,
        ):
            with pytest.raises(ResolutionError, match="Temporary failure") as exc_info:
                await resolve_hostname("flaky.example.com")

        assert exc_info.value.not_found is False
        assert "Failed to validate domain flaky.example.com" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", ["https://a..b/x.png", "https://" + "a" * 64 + ".com/x.png"]
    )
    async def test_unencodable_hostname_is_resolution_error(self, url):
        """Empty or over-long labels fail IDNA encoding inside getaddrinfo."""
        with pytest.raises(ResolutionError, match="Failed to validate domain") as exc_info:
            await validate_url(url)
        assert exc_info.value.not_found is False

    @pytest.mark.asyncio
    async def test_idna_failure_wrapped(self):
        def failing_encode(*args, **kwargs):
            raise UnicodeError("encoding with 'idna' codec failed")

        with patch(
            "ideogram_client.security.url_validator.socket.getaddrinfo",
            side_effect=failing_encode,
        ):
            with pytest.raises(ResolutionError, match="idna"):
                await resolve_hostname("bad..example.com")


class TestSecurityLogging:
    """Denials are reported to the injected logger."""

    @pytest.mark.asyncio
    async def test_denial_logged_to_injected_logger(self, caplog):
        log = logging.getLogger("test.url_validator.instance")
        with caplog.at_level(logging.WARNING, logger="test.url_validator.instance"):
            with pytest.raises(SecurityError):
                await validate_url("https://10.0.0.1/x", log=log)

        records = [r for r in caplog.records if r.name == "test.url_validator.instance"]
        assert records
        assert "SECURITY" in records[0].getMessage()
