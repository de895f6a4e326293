"""Client configuration models.

See Also:
    [Client.from_config()][nostrkit.client.client.Client.from_config]:
        Builds a client from a [ClientConfig][nostrkit.client.configs.ClientConfig].
    [load_yaml()][nostrkit.core.yaml.load_yaml]: Reads the YAML form.

Examples:
    ```yaml
    relays:
      - wss://relay.damus.io
      - wss://nos.lol
    fetch_timeout: 15
    proxy_url: socks5://127.0.0.1:9050
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from nostrkit.models.relay import Relay
from nostrkit.utils.transport import DEFAULT_CLOSE_TIMEOUT, DEFAULT_MAX_FRAME_SIZE, DEFAULT_TIMEOUT


class ClientConfig(BaseModel):
    """Relays and connection behaviour of a [Client][nostrkit.client.client.Client].

    Attributes:
        relays: Relay URLs added by
            [connect()][nostrkit.client.client.Client.connect]. Normalized
            and deduplicated during validation.
        connect_timeout: WebSocket handshake timeout in seconds.
        fetch_timeout: Default deadline for
            [collect_until_complete()][nostrkit.client.client.Client.collect_until_complete];
            ``None`` waits until every relay signals EOSE.
        close_timeout: Bound on closing each transport.
        allow_insecure: Retry ``wss://`` handshakes that fail certificate
            verification without verification.
        proxy_url: SOCKS5 proxy used for Tor, I2P and Lokinet relays.
        verify_signatures: Drop fetched events whose id or signature does
            not verify.
        max_frame_size: Largest inbound frame accepted, in bytes.
    """

    relays: list[str] = Field(default_factory=list, description="Relay URLs to connect to")
    connect_timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Handshake timeout (seconds)"
    )
    fetch_timeout: float | None = Field(
        default=30.0, gt=0, description="Default fetch deadline (seconds), None to disable"
    )
    close_timeout: float = Field(
        default=DEFAULT_CLOSE_TIMEOUT, gt=0, description="Transport close timeout (seconds)"
    )
    allow_insecure: bool = Field(default=False, description="Fall back to unverified TLS")
    proxy_url: str | None = Field(default=None, description="SOCKS5 proxy for overlay relays")
    verify_signatures: bool = Field(default=True, description="Drop events that do not verify")
    max_frame_size: int = Field(
        default=DEFAULT_MAX_FRAME_SIZE, ge=1024, description="Max inbound frame size (bytes)"
    )

    @field_validator("relays")
    @classmethod
    def normalize_relays(cls, v: list[str]) -> list[str]:
        """Normalize every URL and drop duplicates, keeping the first occurrence."""
        seen: dict[str, None] = {}
        for raw in v:
            seen.setdefault(Relay(raw).url, None)
        return list(seen)

    @field_validator("proxy_url")
    @classmethod
    def validate_proxy_url(cls, v: str | None) -> str | None:
        """Require a SOCKS scheme so overlay traffic never leaks to clearnet."""
        if v is not None and not v.lower().startswith(("socks5://", "socks5h://", "socks4://")):
            raise ValueError(f"proxy_url must be a socks URL, got {v!r}")
        return v
