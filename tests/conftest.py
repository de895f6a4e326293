"""
Pytest configuration and shared fixtures for nostrkit tests.

Provides:
- Deterministic key material and sample events
- FakeTransport, an in-memory relay connection driven by asyncio.Queue
- A factory wiring FakeTransports into a Client
"""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import pytest

from nostrkit.client import Client, ClientConfig
from nostrkit.core.exceptions import ConnectionClosedError, RelayConnectionError, SendError
from nostrkit.models import Relay, SignedEvent, UnsignedEvent
from nostrkit.utils.keys import Keys
from nostrkit.utils.signing import sign_event


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Let every nostrkit record reach pytest's capture handlers."""
    logging.getLogger("nostrkit").setLevel(logging.DEBUG)


# ============================================================================
# Key and Event Fixtures
# ============================================================================

# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)


@pytest.fixture
def keys() -> Keys:
    """Keys derived from VALID_HEX_KEY."""
    return Keys.parse(VALID_HEX_KEY)


@pytest.fixture
def unsigned_event(keys: Keys) -> UnsignedEvent:
    """A text note authored by the test key."""
    return UnsignedEvent(
        content="hello",
        created_at=1_700_000_000,
        kind=1,
        pubkey=keys.public_key.hex,
        tags=[["t", "nostr"], ["p", "b" * 64]],
    )


@pytest.fixture
def signed_event(unsigned_event: UnsignedEvent, keys: Keys) -> SignedEvent:
    """unsigned_event signed with the test key."""
    return sign_event(unsigned_event, keys.private_key.hex)


@pytest.fixture
def make_event(keys: Keys) -> Callable[..., SignedEvent]:
    """Factory signing kind-1 notes with the test key."""

    def _make(content: str, created_at: int = 1_700_000_000) -> SignedEvent:
        unsigned = UnsignedEvent(
            content=content, created_at=created_at, kind=1, pubkey=keys.public_key.hex
        )
        return sign_event(unsigned, keys.private_key.hex)

    return _make


# ============================================================================
# Fake Transport
# ============================================================================


class FakeTransport:
    """In-memory transport: outbound frames are recorded, inbound frames queued.

    A ``script`` callback, when set, is called with every parsed outbound
    frame and may push inbound frames in response, imitating a relay.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.closed = False
        self.fail_send = False
        self.script: Any = None

    async def send(self, text: str) -> None:
        if self.closed or self.fail_send:
            raise SendError(f"Send failed: {self.url}", url=self.url)
        self.sent.append(text)
        if self.script is not None:
            self.script(self, json.loads(text))

    async def receive(self) -> str | bytes:
        item = await self.inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    def push(self, *frames: Any) -> None:
        for frame in frames:
            self.inbox.put_nowait(frame)

    def disconnect(self) -> None:
        self.inbox.put_nowait(ConnectionClosedError(f"Connection closed: {self.url}", url=self.url))

    def sent_frames(self) -> list[list[Any]]:
        return [json.loads(text) for text in self.sent]


class FakeNetwork:
    """Transport factory handing out FakeTransports keyed by normalized URL."""

    def __init__(self, unreachable: set[str] | None = None) -> None:
        self.transports: dict[str, FakeTransport] = {}
        self.unreachable = unreachable or set()

    async def __call__(self, relay: Relay) -> FakeTransport:
        if relay.url in self.unreachable:
            raise RelayConnectionError(f"Connection failed: {relay.url}", url=relay.url)
        transport = FakeTransport(relay.url)
        self.transports[relay.url] = transport
        return transport

    def __getitem__(self, url: str) -> FakeTransport:
        return self.transports[url]


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def client(network: FakeNetwork) -> Client:
    """A Client with no relays whose transports come from ``network``."""
    return Client(ClientConfig(fetch_timeout=5.0), transport_factory=network)
