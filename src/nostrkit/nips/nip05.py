"""
NIP-05 identity lookup.

A NIP-05 identifier ``name@domain`` maps to a public key through the
document served at ``https://<domain>/.well-known/nostr.json?name=<name>``:

```json
{"names": {"bob": "<64-hex pubkey>"}, "relays": {"<64-hex pubkey>": ["wss://..."]}}
```

The document is untrusted input: the body size is bounded, the shape is
validated with pydantic, and every failure surfaces as
[Nip05Error][nostrkit.core.exceptions.Nip05Error].

Examples:
    ```python
    pubkey, relays = await Nip05.resolve("bob@example.com")
    ```
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nostrkit.core.exceptions import Nip05Error
from nostrkit.models._validation import is_lower_hex
from nostrkit.utils.http import fetch_json


logger = logging.getLogger(__name__)


class Nip05Document(BaseModel):
    """Parsed ``/.well-known/nostr.json`` document.

    Attributes:
        names: Local name to hex public key.
        relays: Hex public key to relay URLs, when the host publishes them.
    """

    model_config = ConfigDict(frozen=True)

    names: dict[str, str] = Field(default_factory=dict)
    relays: dict[str, list[str]] | None = None

    @field_validator("names")
    @classmethod
    def _pubkeys_are_hex(cls, v: dict[str, str]) -> dict[str, str]:
        for name, pubkey in v.items():
            if not is_lower_hex(pubkey, 64):
                raise ValueError(f"names[{name!r}] is not a 64-char lowercase hex pubkey")
        return v

    def pubkey_for(self, name: str) -> str | None:
        """Return the pubkey registered for *name* (case-insensitive)."""
        return self.names.get(name.lower())

    def relays_for(self, pubkey: str) -> list[str]:
        """Return the relay hints for *pubkey*, or an empty list."""
        if self.relays is None:
            return []
        return list(self.relays.get(pubkey, []))


class Nip05:
    """NIP-05 document fetch and identifier resolution."""

    _MAX_SIZE: ClassVar[int] = 65_536
    _DEFAULT_TIMEOUT: ClassVar[float] = 10.0

    @staticmethod
    def split_identifier(identifier: str) -> tuple[str, str]:
        """Split ``name@domain`` into ``(name, domain)``.

        A bare domain stands for the root identifier ``_@domain``.

        Raises:
            Nip05Error: If the identifier is empty or has an empty part.
        """
        identifier = identifier.strip()
        name, sep, domain = identifier.rpartition("@")
        if not sep:
            name, domain = "_", identifier
        if not name or not domain or "/" in domain or " " in domain:
            raise Nip05Error(f"Invalid NIP-05 identifier: {identifier!r}")
        return name.lower(), domain.lower()

    @classmethod
    async def fetch(
        cls,
        domain: str,
        name: str | None = None,
        *,
        timeout: float | None = None,  # noqa: ASYNC109
        max_size: int | None = None,
        proxy_url: str | None = None,
    ) -> Nip05Document:
        """Fetch and validate the NIP-05 document of *domain*.

        Args:
            domain: Host serving ``/.well-known/nostr.json``.
            name: Optional ``name`` query parameter.
            timeout: Request timeout in seconds (default 10).
            max_size: Maximum body size in bytes (default 64 KB).
            proxy_url: Optional SOCKS5 proxy URL.

        Raises:
            Nip05Error: On network errors, timeouts, non-200 responses,
                oversized or non-JSON bodies, or an invalid document shape.
        """
        url = f"https://{domain}/.well-known/nostr.json"
        params = {"name": name} if name is not None else None

        try:
            data: Any = await fetch_json(
                url,
                timeout=timeout if timeout is not None else cls._DEFAULT_TIMEOUT,
                max_size=max_size if max_size is not None else cls._MAX_SIZE,
                proxy_url=proxy_url,
                params=params,
            )
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.debug("nip05_fetch_failed url=%s error=%s", url, e)
            raise Nip05Error(f"Failed to fetch {url}: {e}") from e

        if not isinstance(data, dict):
            raise Nip05Error(f"Expected a JSON object from {url}, got {type(data).__name__}")
        return cls.from_dict(data)

    @classmethod
    async def resolve(cls, identifier: str, **kwargs: Any) -> tuple[str, list[str]]:
        """Resolve ``name@domain`` to ``(pubkey_hex, relay_urls)``.

        Keyword arguments are passed to [fetch()][nostrkit.nips.nip05.Nip05.fetch].

        Raises:
            Nip05Error: If the document cannot be fetched or lacks the name.
        """
        name, domain = cls.split_identifier(identifier)
        document = await cls.fetch(domain, name, **kwargs)
        pubkey = document.pubkey_for(name)
        if pubkey is None:
            raise Nip05Error(f"{name}@{domain} is not listed in the NIP-05 document")
        return pubkey, document.relays_for(pubkey)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Nip05Document:
        """Validate an already-decoded document.

        Raises:
            Nip05Error: If *data* does not have the NIP-05 shape.
        """
        try:
            return Nip05Document.model_validate(data)
        except ValidationError as e:
            raise Nip05Error(f"Invalid NIP-05 document: {e}") from e
