"""
Validated relay WebSocket URL with network type detection.

Parses and normalizes ``ws://`` / ``wss://`` URLs with ``rfc3986`` and
classifies the host (clearnet, Tor, I2P, Lokinet, local). The normalized
[url][nostrkit.models.relay.Relay] is the key of the client's relay
registry, so two spellings of the same relay collide as duplicates.

Unlike a crawler, a client may legitimately talk to a relay on
``localhost`` or a LAN address, so local hosts are accepted and the scheme
chosen by the caller is preserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import ip_address
from typing import Any, ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import OVERLAY_NETWORKS, NetworkType


@dataclass(frozen=True, slots=True)
class Relay:
    """Immutable, normalized relay address.

    Attributes:
        url: Normalized URL (lowercase scheme and host, default port and
            trailing slash removed).
        network: Detected [NetworkType][nostrkit.models.constants.NetworkType].
        scheme: ``ws`` or ``wss``.
        host: Hostname or IP address (brackets stripped for IPv6).
        port: Explicit non-default port, or ``None``.
        path: Path component, or ``None``.

    Raises:
        ValueError: If the URL is malformed, uses a scheme other than
            ``ws``/``wss``, has a query or fragment, or contains null bytes.

    Examples:
        ```python
        Relay("WSS://Relay.Damus.io:443/").url   # 'wss://relay.damus.io'
        Relay("ws://localhost:7777").network     # NetworkType.LOCAL
        Relay("ws://abc.onion").is_overlay       # True
        ```
    """

    raw_url: str = field(repr=False)

    url: str = field(init=False)
    network: NetworkType = field(init=False)
    scheme: str = field(init=False)
    host: str = field(init=False)
    port: int | None = field(init=False)
    path: str | None = field(init=False)

    _DEFAULT_PORTS: ClassVar[dict[str, int]] = {"ws": 80, "wss": 443}

    _NETWORK_TLDS: ClassVar[dict[str, NetworkType]] = {
        ".onion": NetworkType.TOR,
        ".i2p": NetworkType.I2P,
        ".loki": NetworkType.LOKI,
    }

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise TypeError(f"relay url must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        parsed = self._parse(self.raw_url)
        if parsed["network"] == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: '{parsed['host']}'")

        object.__setattr__(self, "url", parsed["url"])
        object.__setattr__(self, "network", parsed["network"])
        object.__setattr__(self, "scheme", parsed["scheme"])
        object.__setattr__(self, "host", parsed["host"])
        object.__setattr__(self, "port", parsed["port"])
        object.__setattr__(self, "path", parsed["path"])

    def __str__(self) -> str:
        return self.url

    @property
    def is_overlay(self) -> bool:
        """True for Tor, I2P and Lokinet relays, which need a SOCKS5 proxy."""
        return self.network in OVERLAY_NETWORKS

    @staticmethod
    def _detect_network(host: str) -> NetworkType:
        """Classify a hostname or IP address.

        Overlay TLDs win, then loopback/private IPs and single-label names
        are ``LOCAL``, then well-formed dotted names are ``CLEARNET``.
        """
        if not host:
            return NetworkType.UNKNOWN

        host_bare = host.lower().strip("[]")

        for tld, network in Relay._NETWORK_TLDS.items():
            if host_bare.endswith(tld):
                return network

        try:
            ip = ip_address(host_bare)
        except ValueError:
            pass
        else:
            if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified:
                return NetworkType.LOCAL
            return NetworkType.CLEARNET

        labels = host_bare.split(".")
        if not all(label and not label.startswith("-") and not label.endswith("-")
                   for label in labels):
            return NetworkType.UNKNOWN
        if len(labels) == 1 or host_bare.endswith((".local", ".localhost", ".localdomain")):
            return NetworkType.LOCAL
        return NetworkType.CLEARNET

    @staticmethod
    def _parse(raw: str) -> dict[str, Any]:
        """Validate *raw* as an RFC 3986 ``ws``/``wss`` URI and normalize it.

        Raises:
            ValueError: If the scheme is not allowed or the URI is invalid.
        """
        uri = uri_reference(raw.strip()).normalize()

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )

        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

        scheme = uri.scheme
        host = uri.host.strip("[]")
        port = int(uri.port) if uri.port else None
        if port == Relay._DEFAULT_PORTS[scheme]:
            port = None

        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        path = path.rstrip("/") or None

        formatted_host = f"[{host}]" if ":" in host else host
        authority = f"{formatted_host}:{port}" if port else formatted_host

        return {
            "url": f"{scheme}://{authority}{path or ''}",
            "scheme": scheme,
            "host": host,
            "port": port,
            "path": path,
            "network": Relay._detect_network(host),
        }
