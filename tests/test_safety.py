"""Tests for the private-host classifier and URL validation."""

import pytest

from toolhub.infra.error_handler import ErrorCategory, UnsafeURLError, classify_error
from toolhub.infra.safety import PRIVATE_ADDRESS_ERROR, is_private_host, validate_public_url


class TestPrivateHostClassifier:
    """Host classification."""

    @pytest.mark.parametrize("host", [
        "localhost",
        "LOCALHOST",
        "127.0.0.1",
        "127.8.9.10",
        "169.254.169.254",
        "10.0.0.5",
        "172.16.0.1",
        "172.31.255.255",
        "192.168.1.1",
        "0.0.0.0",
        "metadata.google.internal",
        "printer.local",
        "app.localhost",
        "::1",
        "[::1]",
        "::ffff:127.0.0.1",
        "fd00::1",
        "2130706433",
        "127.1",
        "169.254.43518",
        "0x7f.0.0.1",
        "0177.0.0.1",
        "0x7f000001",
        "10.1",
    ])
    def test_private_hosts(self, host):
        assert is_private_host(host) is True

    @pytest.mark.parametrize("host", [
        "example.com",
        "8.8.8.8",
        "172.32.0.1",
        "192.169.0.1",
        "2606:4700:4700::1111",
        "internal.example.com",
        "1.example.com",
        "0x.example.com",
    ])
    def test_public_hosts(self, host):
        assert is_private_host(host) is False


class TestValidatePublicUrl:
    """URL validation."""

    def test_accepts_public_https(self):
        parsed = validate_public_url("https://api.example.com/v1/items?q=1")
        assert parsed.hostname == "api.example.com"

    def test_rejects_metadata_endpoint(self):
        with pytest.raises(UnsafeURLError) as exc_info:
            validate_public_url("http://169.254.169.254/latest/meta-data")
        assert str(exc_info.value) == PRIVATE_ADDRESS_ERROR

    @pytest.mark.parametrize("url", [
        "http://127.1:8080/",
        "http://0x7f000001/",
        "http://169.254.43518/latest/meta-data",
    ])
    def test_rejects_shorthand_private_addresses(self, url):
        with pytest.raises(UnsafeURLError) as exc_info:
            validate_public_url(url)
        assert str(exc_info.value) == PRIVATE_ADDRESS_ERROR

    @pytest.mark.parametrize("url", ["ftp://example.com/file", "file:///etc/passwd", "gopher://x"])
    def test_rejects_other_protocols(self, url):
        with pytest.raises(UnsafeURLError) as exc_info:
            validate_public_url(url)
        assert "Unsupported protocol" in str(exc_info.value)

    def test_rejects_missing_host(self):
        with pytest.raises(UnsafeURLError):
            validate_public_url("http:///path")

    def test_unsafe_url_is_a_security_error(self):
        category, retryable = classify_error(UnsafeURLError("blocked"))
        assert category == ErrorCategory.SECURITY
        assert retryable is False
