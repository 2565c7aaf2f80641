"""SSRF guard for user-supplied URLs."""

import ipaddress
import socket
from typing import Iterable
from urllib.parse import urlparse, ParseResult

from toolhub.infra.error_handler import UnsafeURLError

PRIVATE_ADDRESS_ERROR = "Cannot fetch internal/private addresses"

_BLOCKED_NETWORKS = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("127.0.0.0/8"),  # Loopback
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local, cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("::/128"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("fc00::/7"),
]

_BLOCKED_SUFFIXES = (".internal", ".local", ".localhost")


def _parse_ip(host: str):
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    # getaddrinfo also accepts the inet_aton shorthands: "127.1", "0x7f.0.0.1",
    # "0177.0.0.1", "2130706433"
    if " " in host or "\t" in host:
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except (OSError, ValueError):
        return None


def is_private_host(hostname: str) -> bool:
    """
    Return True when a hostname points at loopback, link-local, RFC1918 or
    other internal destinations.

    Only the literal host is inspected, DNS is not resolved.
    """
    if not hostname:
        return True

    host = hostname.strip().lower().rstrip(".")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    if host == "localhost" or host.endswith(_BLOCKED_SUFFIXES):
        return True

    address = _parse_ip(host)
    if address is None:
        return False

    if address.version == 6 and address.ipv4_mapped:
        address = address.ipv4_mapped

    return any(address in network for network in _BLOCKED_NETWORKS)


def validate_public_url(
    url: str,
    allowed_schemes: Iterable[str] = ("http", "https"),
) -> ParseResult:
    """
    Validate that a URL uses an allowed protocol and a public host.

    Raises:
        UnsafeURLError: On a disallowed protocol, a missing host or a private host
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise UnsafeURLError(f"Invalid URL: {e}")

    schemes = tuple(allowed_schemes)
    if parsed.scheme.lower() not in schemes:
        raise UnsafeURLError(
            f"Unsupported protocol '{parsed.scheme or 'none'}'. Only {', '.join(schemes)} URLs are allowed."
        )

    if not parsed.hostname:
        raise UnsafeURLError("URL has no host")

    if is_private_host(parsed.hostname):
        raise UnsafeURLError(PRIVATE_ADDRESS_ERROR)

    return parsed
