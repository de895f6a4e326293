"""Utilities: keys, signing, WebSocket transport and bounded HTTP fetching.

Attributes:
    KeyPair: A key in hex and bech32 form. See [nostrkit.utils.keys][].
    Keys: A private key with its derived public key.
    KeysConfig: Pydantic model that loads
        [Keys][nostrkit.utils.keys.Keys] from an environment variable.
    sign_event: Deterministic BIP-340 signing of events.
        See [nostrkit.utils.signing][].
    verify_signature: Schnorr verification with distinct malformed-input
        and rejected-signature errors.
    WebSocketTransport: aiohttp WebSocket wrapper.
        See [nostrkit.utils.transport][].
    connect_relay: Open a transport with SSL fallback and SOCKS5 support.
    read_bounded_json: Size-limited JSON body reader.
        See [nostrkit.utils.http][].
"""

from .http import fetch_json, read_bounded_json
from .keys import (
    ENV_PRIVATE_KEY,
    KeyPair,
    Keys,
    KeysConfig,
    generate_private_key,
    generate_public_key,
    load_keys_from_env,
    parse_private_key,
)
from .signing import is_valid_event, sign_event, verify_event, verify_signature
from .transport import Transport, WebSocketTransport, connect_relay


__all__ = [
    "ENV_PRIVATE_KEY",
    "KeyPair",
    "Keys",
    "KeysConfig",
    "Transport",
    "WebSocketTransport",
    "connect_relay",
    "fetch_json",
    "generate_private_key",
    "generate_public_key",
    "is_valid_event",
    "load_keys_from_env",
    "parse_private_key",
    "read_bounded_json",
    "sign_event",
    "verify_event",
    "verify_signature",
]
