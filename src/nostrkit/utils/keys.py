"""Key generation, derivation and loading.

Private keys are 32-byte secp256k1 scalars in ``[1, n-1]``; public keys are
the 32-byte x-only coordinate of ``d*G`` (BIP-340). Both are handled as
lowercase hex and exposed alongside their NIP-19 bech32 form as a
[KeyPair][nostrkit.utils.keys.KeyPair].

Warning:
    Private keys must never be stored in configuration files or logged.
    Load them from the environment with
    [load_keys_from_env()][nostrkit.utils.keys.load_keys_from_env] or
    [KeysConfig][nostrkit.utils.keys.KeysConfig].

Examples:
    ```python
    private = generate_private_key()
    public = generate_public_key(private.hex)
    public.bech32  # 'npub1...'
    ```
"""

from __future__ import annotations

import os
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import secp256k1
from pydantic import BaseModel, ConfigDict, Field, model_validator

from nostrkit.core.exceptions import ConfigurationError, DecodingError, InvalidPrivateKeyError
from nostrkit.models.constants import KeyPrefix
from nostrkit.nips.nip19 import decode, encode


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class KeyPair(NamedTuple):
    """One key in both of its text forms."""

    hex: str
    bech32: str


def _is_valid_scalar(raw: bytes) -> bool:
    return 0 < int.from_bytes(raw, "big") < SECP256K1_ORDER


def _private_key_bytes(private_key_hex: str) -> bytes:
    if not isinstance(private_key_hex, str) or len(private_key_hex) != 64:
        raise InvalidPrivateKeyError("private key must be 64 hex characters")
    if not all(c in string.hexdigits for c in private_key_hex):
        raise InvalidPrivateKeyError("private key contains non-hex characters")
    raw = bytes.fromhex(private_key_hex)
    if not _is_valid_scalar(raw):
        raise InvalidPrivateKeyError("private key is outside the secp256k1 scalar range")
    return raw


def private_key_object(private_key_hex: str) -> secp256k1.PrivateKey:
    """Return a ``secp256k1.PrivateKey`` for a validated hex private key.

    Raises:
        InvalidPrivateKeyError: If the key is not 32 hex bytes in ``[1, n-1]``.
    """
    return secp256k1.PrivateKey(_private_key_bytes(private_key_hex), raw=True)


def generate_private_key() -> KeyPair:
    """Draw a fresh private key from the OS CSPRNG.

    Values outside ``[1, n-1]`` are rejected and redrawn.
    """
    while True:
        raw = secrets.token_bytes(32)
        if _is_valid_scalar(raw):
            break
    private_hex = raw.hex()
    return KeyPair(private_hex, encode(KeyPrefix.NSEC, private_hex))


def generate_public_key(private_key_hex: str) -> KeyPair:
    """Derive the x-only public key of *private_key_hex*.

    Raises:
        InvalidPrivateKeyError: If the key is not 32 hex bytes in ``[1, n-1]``.
    """
    compressed = private_key_object(private_key_hex).pubkey.serialize(compressed=True)
    public_hex = compressed[1:33].hex()
    return KeyPair(public_hex, encode(KeyPrefix.NPUB, public_hex))


def parse_private_key(value: str) -> str:
    """Normalize an ``nsec1...`` or 64-char hex private key to lowercase hex.

    Raises:
        InvalidPrivateKeyError: If *value* is neither a valid nsec nor a
            valid hex private key.
    """
    if not isinstance(value, str):
        raise InvalidPrivateKeyError(f"private key must be a str, got {type(value).__name__}")
    value = value.strip()
    if value.startswith(f"{KeyPrefix.NSEC}1"):
        try:
            private_hex = decode(value, expected_prefix=KeyPrefix.NSEC)
        except DecodingError as e:
            raise InvalidPrivateKeyError(f"invalid nsec: {e}") from e
    else:
        private_hex = value.lower()
    _private_key_bytes(private_hex)
    return private_hex


@dataclass(frozen=True, slots=True)
class Keys:
    """A private key with its derived public key.

    The private half is excluded from ``repr`` so the object can appear in
    logs and tracebacks.
    """

    private_key: KeyPair = field(repr=False)
    public_key: KeyPair

    @classmethod
    def parse(cls, value: str) -> Keys:
        """Build from an ``nsec1...`` or hex private key.

        Raises:
            InvalidPrivateKeyError: If *value* is not a valid private key.
        """
        private_hex = parse_private_key(value)
        return cls(
            private_key=KeyPair(private_hex, encode(KeyPrefix.NSEC, private_hex)),
            public_key=generate_public_key(private_hex),
        )

    @classmethod
    def generate(cls) -> Keys:
        """Build from a freshly generated private key."""
        private = generate_private_key()
        return cls(private_key=private, public_key=generate_public_key(private.hex))


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load [Keys][nostrkit.utils.keys.Keys] from an environment variable.

    Args:
        env_var: Variable holding an ``nsec1...`` or hex private key.

    Raises:
        ConfigurationError: If the variable is unset, empty, or invalid.
    """
    value = os.getenv(env_var)
    if not value:
        raise ConfigurationError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )
    try:
        return Keys.parse(value)
    except InvalidPrivateKeyError as e:
        raise ConfigurationError(f"{env_var} does not hold a valid private key: {e}") from e


class KeysConfig(BaseModel):
    """Pydantic model that loads [Keys][nostrkit.utils.keys.Keys] from the environment.

    The ``keys`` field is populated during validation from the variable named
    by ``keys_env``, so a missing key fails at startup rather than at the
    first signature.

    Raises:
        ConfigurationError: If the variable is unset or invalid.

    Warning:
        ``keys`` holds a live private key. Do not serialize this model.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for private key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env (required)")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and "keys" not in data:
            env_var = data.get("keys_env", ENV_PRIVATE_KEY)
            data = {**data, "keys": load_keys_from_env(env_var)}
        return data
