"""WebSocket transport to a single relay.

Wraps an ``aiohttp`` WebSocket in the small contract the client layer relies
on: ``send(text)``, ``receive() -> str | bytes``, ``close()``. Failures are
translated into the [ConnectivityError][nostrkit.core.exceptions.ConnectivityError]
family so callers never see ``aiohttp`` exceptions.

Note:
    Clearnet ``wss://`` relays are first tried with full certificate
    verification. Only if that fails with a certificate error and
    ``allow_insecure=True`` is the handshake retried with verification
    disabled. Overlay relays (Tor, I2P, Lokinet) are reached through a
    SOCKS5 proxy, which is required, and never verify certificates because
    the overlay provides its own encryption.

Examples:
    ```python
    transport = await connect_relay(Relay("wss://relay.damus.io"), timeout=10.0)
    await transport.send('["REQ","sub",{"limit":1}]')
    frame = await transport.receive()
    await transport.close()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from typing import Protocol, runtime_checkable

import aiohttp
from aiohttp_socks import ProxyConnector

from nostrkit.core.exceptions import (
    ConnectionClosedError,
    ReceiveError,
    RelayConnectionError,
    SendError,
)
from nostrkit.models.relay import Relay


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_CLOSE_TIMEOUT = 5.0
DEFAULT_MAX_FRAME_SIZE = 4 * 1024 * 1024

_CLOSED_TYPES = frozenset(
    {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED}
)


@runtime_checkable
class Transport(Protocol):
    """A bidirectional message channel to one relay."""

    @property
    def url(self) -> str: ...

    @property
    def closed(self) -> bool: ...

    async def send(self, text: str) -> None: ...

    async def receive(self) -> str | bytes: ...

    async def close(self) -> None: ...


def _insecure_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


class WebSocketTransport:
    """An open aiohttp WebSocket and the session that owns it.

    Created by [connect_relay()][nostrkit.utils.transport.connect_relay].
    """

    def __init__(
        self,
        url: str,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        self._url = url
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout

    @property
    def url(self) -> str:
        return self._url

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, text: str) -> None:
        """Send one text frame.

        Raises:
            SendError: If the socket is closed or the write fails.
        """
        if self._ws.closed:
            raise SendError(f"Connection closed: {self._url}", url=self._url)
        try:
            await self._ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise SendError(f"Send failed: {self._url} ({e})", url=self._url) from e

    async def receive(self) -> str | bytes:
        """Wait for the next data frame.

        Returns:
            ``str`` for text frames, ``bytes`` for binary frames.

        Raises:
            ConnectionClosedError: If the relay closed the connection.
            ReceiveError: If the socket reported an error.
        """
        while True:
            try:
                msg = await self._ws.receive()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                raise ReceiveError(f"Receive failed: {self._url} ({e})", url=self._url) from e

            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.BINARY:
                return msg.data
            if msg.type in _CLOSED_TYPES:
                raise ConnectionClosedError(f"Connection closed: {self._url}", url=self._url)
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise ReceiveError(
                    f"Receive failed: {self._url} ({self._ws.exception()})", url=self._url
                )
            # PING/PONG are answered by aiohttp's autoping

    async def close(self) -> None:
        """Close the socket and its session, bounded by ``close_timeout``."""
        # aiohttp may raise ClientError or ServerDisconnectedError while closing
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


async def _open(
    url: str,
    connector: aiohttp.BaseConnector,
    timeout: float,  # noqa: ASYNC109
    close_timeout: float,
    max_frame_size: int,
) -> WebSocketTransport:
    session = aiohttp.ClientSession(connector=connector)
    try:
        ws = await asyncio.wait_for(
            session.ws_connect(url, max_msg_size=max_frame_size, autoping=True),
            timeout=timeout,
        )
    except BaseException:
        await session.close()
        raise
    return WebSocketTransport(url, ws, session, close_timeout=close_timeout)


async def connect_relay(
    relay: Relay,
    *,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    proxy_url: str | None = None,
    allow_insecure: bool = False,
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
) -> WebSocketTransport:
    """Open a WebSocket to *relay*.

    Args:
        relay: Validated relay address.
        timeout: Handshake timeout in seconds.
        proxy_url: SOCKS5 proxy URL, required for overlay relays.
        allow_insecure: Retry ``wss://`` handshakes that fail certificate
            verification with verification disabled.
        close_timeout: Bound on each close step of the returned transport.
        max_frame_size: Largest inbound frame accepted, in bytes.

    Returns:
        The connected transport.

    Raises:
        RelayConnectionError: If the relay is unreachable, the handshake
            fails or times out, or an overlay relay has no proxy.
    """
    if relay.is_overlay:
        if proxy_url is None:
            raise RelayConnectionError(
                f"proxy_url required for {relay.network} relay: {relay.url}", url=relay.url
            )
        logger.debug("proxy_connecting relay=%s", relay.url)
        try:
            return await _open(
                relay.url,
                ProxyConnector.from_url(proxy_url, ssl=_insecure_context()),
                timeout,
                close_timeout,
                max_frame_size,
            )
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            logger.debug("connect_failed relay=%s error=%s", relay.url, e)
            raise RelayConnectionError(
                f"Connection failed: {relay.url} ({e})", url=relay.url
            ) from e

    logger.debug("connecting relay=%s", relay.url)
    try:
        return await _open(
            relay.url, aiohttp.TCPConnector(), timeout, close_timeout, max_frame_size
        )
    except aiohttp.ClientConnectorCertificateError as e:
        if not allow_insecure:
            logger.debug("ssl_verify_failed relay=%s error=%s", relay.url, e)
            raise RelayConnectionError(
                f"SSL certificate verification failed for {relay.url}: {e}", url=relay.url
            ) from e
        logger.debug("ssl_fallback_insecure relay=%s error=%s", relay.url, e)
    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        logger.debug("connect_failed relay=%s error=%s", relay.url, e)
        raise RelayConnectionError(f"Connection failed: {relay.url} ({e})", url=relay.url) from e

    try:
        transport = await _open(
            relay.url,
            aiohttp.TCPConnector(ssl=_insecure_context()),
            timeout,
            close_timeout,
            max_frame_size,
        )
    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        logger.debug("connect_failed relay=%s error=%s", relay.url, e)
        raise RelayConnectionError(
            f"Connection failed (insecure): {relay.url} ({e})", url=relay.url
        ) from e
    logger.debug("insecure_connected relay=%s", relay.url)
    return transport
