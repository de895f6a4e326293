"""Bounded HTTP JSON fetching.

Relays and NIP-05 hosts are untrusted, so response bodies are read in
chunks up to a size limit before any JSON parsing happens.

See Also:
    [Nip05.fetch()][nostrkit.nips.nip05.Nip05.fetch]: Fetches
        ``/.well-known/nostr.json`` through
        [fetch_json()][nostrkit.utils.http.fetch_json].
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

import aiohttp
from aiohttp_socks import ProxyConnector


DEFAULT_MAX_SIZE = 65_536


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read the whole body, failing once it grows past *max_size* bytes.

    Loops over ``content.read`` because chunked transfer-encoding may return
    short reads before EOF.

    Raises:
        ValueError: If the body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON body of at most *max_size* bytes.

    Raises:
        ValueError: If the body is too large or not valid JSON.
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body)


async def fetch_json(
    url: str,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
    max_size: int = DEFAULT_MAX_SIZE,
    proxy_url: str | None = None,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> Any:
    """GET *url* and return its parsed JSON body.

    Args:
        url: HTTP(S) URL.
        timeout: Total request timeout in seconds.
        max_size: Maximum response body size in bytes.
        proxy_url: Optional SOCKS5 proxy URL.
        headers: Extra request headers.
        params: Query parameters, percent-encoded by aiohttp.

    Raises:
        aiohttp.ClientError: On connection failures.
        TimeoutError: If the request exceeds *timeout*.
        ValueError: On a non-200 status, an oversized body, or invalid JSON.
    """
    connector: aiohttp.BaseConnector | None = (
        ProxyConnector.from_url(proxy_url) if proxy_url else None
    )
    async with (
        aiohttp.ClientSession(connector=connector) as session,
        session.get(
            url,
            headers=headers or {"Accept": "application/json"},
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=False,
        ) as resp,
    ):
        if resp.status != HTTPStatus.OK:
            raise ValueError(f"HTTP {resp.status}")
        return await read_bounded_json(resp, max_size)
