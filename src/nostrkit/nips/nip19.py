"""
NIP-19 bech32 encoding of keys and event ids.

Converts between lowercase hex and checksummed bech32 text tagged with a
[KeyPrefix][nostrkit.models.constants.KeyPrefix] (``npub``, ``nsec``,
``note``). The bech32 checksum and 5-bit regrouping come from the
``bech32`` library; this module adds hex validation, prefix checks and
typed errors.

Every malformed input raises
[EncodingError][nostrkit.core.exceptions.EncodingError] or
[DecodingError][nostrkit.core.exceptions.DecodingError].

Examples:
    ```python
    from nostrkit.nips.nip19 import decode, encode
    from nostrkit.models import KeyPrefix

    nsec = encode(KeyPrefix.NSEC, "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa")
    # 'nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5'
    decode(nsec, expected_prefix=KeyPrefix.NSEC)
    ```
"""

from __future__ import annotations

import binascii
import string

import bech32

from nostrkit.core.exceptions import DecodingError, EncodingError
from nostrkit.models.constants import KeyPrefix


def encode(prefix: KeyPrefix | str, hex_string: str) -> str:
    """Encode hex data as bech32 text with the given human-readable part.

    Args:
        prefix: ``npub``, ``nsec`` or ``note``.
        hex_string: Hex data (upper or lower case).

    Returns:
        The bech32 string.

    Raises:
        EncodingError: If *prefix* is unknown, or *hex_string* has odd
            length or non-hex characters.
    """
    try:
        hrp = KeyPrefix(prefix)
    except ValueError:
        raise EncodingError(f"Unknown bech32 prefix: {prefix!r}") from None
    if not isinstance(hex_string, str):
        raise EncodingError(f"hex input must be a str, got {type(hex_string).__name__}")
    if len(hex_string) % 2:
        raise EncodingError(f"hex input has odd length {len(hex_string)}")
    if not all(c in string.hexdigits for c in hex_string):
        raise EncodingError("hex input contains non-hex characters")
    data = bytes.fromhex(hex_string)

    words = bech32.convertbits(data, 8, 5)
    text = bech32.bech32_encode(hrp.value, words) if words is not None else None
    if text is None:
        raise EncodingError(f"cannot encode {len(data)} bytes as {hrp.value}")
    return text


def decode_with_prefix(text: str) -> tuple[KeyPrefix, str]:
    """Decode bech32 text into its prefix and lowercase hex payload.

    Raises:
        DecodingError: On a bad checksum, malformed text, an unknown
            prefix, or a payload that does not regroup into whole bytes.
    """
    if not isinstance(text, str):
        raise DecodingError(f"bech32 input must be a str, got {type(text).__name__}")

    hrp, words = bech32.bech32_decode(text.strip())
    if hrp is None or words is None:
        raise DecodingError("invalid bech32 string or checksum mismatch")
    try:
        prefix = KeyPrefix(hrp)
    except ValueError:
        raise DecodingError(f"unsupported bech32 prefix: {hrp!r}") from None

    data = bech32.convertbits(words, 5, 8, False)
    if data is None:
        raise DecodingError("bech32 payload has invalid padding")
    return prefix, binascii.hexlify(bytes(data)).decode("ascii")


def decode(text: str, expected_prefix: KeyPrefix | str | None = None) -> str:
    """Decode bech32 text into lowercase hex.

    Args:
        text: An ``npub1...``, ``nsec1...`` or ``note1...`` string.
        expected_prefix: When given, the decoded prefix must match.

    Raises:
        DecodingError: If *text* is malformed or carries another prefix.
    """
    prefix, payload = decode_with_prefix(text)
    if expected_prefix is not None and prefix != expected_prefix:
        raise DecodingError(f"expected {expected_prefix} prefix, got {prefix}")
    return payload


def to_npub(pubkey_hex: str) -> str:
    """Encode a 64-char hex public key as ``npub``."""
    return encode(KeyPrefix.NPUB, pubkey_hex)


def to_nsec(private_key_hex: str) -> str:
    """Encode a 64-char hex private key as ``nsec``."""
    return encode(KeyPrefix.NSEC, private_key_hex)


def to_note(event_id_hex: str) -> str:
    """Encode a 64-char hex event id as ``note``."""
    return encode(KeyPrefix.NOTE, event_id_hex)
