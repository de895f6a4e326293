"""BIP-340 Schnorr signing and verification of events.

Signing hashes the event with
[compute_event_id()][nostrkit.nips.nip01.compute_event_id] and signs the raw
32-byte digest (not its hex text) with ``secp256k1``.

Note:
    Signatures are produced without auxiliary randomness, so the same event
    and key always yield the same signature. This keeps signing reproducible
    in tests and across runs; the side-channel hardening that BIP-340 aux
    randomness provides is not applied.

Examples:
    ```python
    signed = sign_event(event, private_key_hex)
    verify_event(signed)            # raises SignatureError on failure
    is_valid_event(signed)          # True
    ```
"""

from __future__ import annotations

import logging
import string

import secp256k1

from nostrkit.core.exceptions import (
    InvalidEventError,
    MalformedSignatureInputError,
    SignatureError,
    SignatureVerificationError,
)
from nostrkit.models.event import SignedEvent, UnsignedEvent
from nostrkit.nips.nip01 import compute_event_id

from .keys import private_key_object


logger = logging.getLogger(__name__)

_EVEN_Y_PREFIX = b"\x02"


def _decode_hex(value: str, length: int, name: str) -> bytes:
    if not isinstance(value, str) or len(value) != length * 2:
        raise MalformedSignatureInputError(f"{name} must be {length * 2} hex characters")
    if not all(c in string.hexdigits for c in value):
        raise MalformedSignatureInputError(f"{name} contains non-hex characters")
    return bytes.fromhex(value)


def sign_event(event: UnsignedEvent, private_key_hex: str) -> SignedEvent:
    """Hash and sign *event*.

    The signer's public key is taken from ``event.pubkey`` as given; an event
    whose pubkey does not belong to *private_key_hex* signs fine but will
    not verify.

    Args:
        event: The event to sign.
        private_key_hex: 64-char hex private key.

    Returns:
        The immutable signed event.

    Raises:
        InvalidPrivateKeyError: If the key is not 32 hex bytes in ``[1, n-1]``.
        InvalidEventError: If the event fails structural validation.
    """
    private_key = private_key_object(private_key_hex)
    event_id = compute_event_id(event)
    sig = private_key.schnorr_sign(bytes.fromhex(event_id), None, raw=True)
    return SignedEvent(
        content=event.content,
        created_at=event.created_at,
        kind=event.kind,
        pubkey=event.pubkey,
        tags=event.tags,
        id=event_id,
        sig=sig.hex(),
    )


def verify_signature(sig_hex: str, pubkey_hex: str, id_hex: str) -> None:
    """Verify a Schnorr signature over a 32-byte event id.

    Args:
        sig_hex: 128-char hex signature.
        pubkey_hex: 64-char hex x-only public key.
        id_hex: 64-char hex message digest.

    Raises:
        MalformedSignatureInputError: If an input has the wrong length, is
            not hex, or the public key is not a point on the curve.
        SignatureVerificationError: If the signature does not verify.
    """
    sig = _decode_hex(sig_hex, 64, "signature")
    xonly = _decode_hex(pubkey_hex, 32, "pubkey")
    msg = _decode_hex(id_hex, 32, "event id")

    try:
        public_key = secp256k1.PublicKey(_EVEN_Y_PREFIX + xonly, raw=True)
    except Exception as e:  # secp256k1 raises bare Exception for invalid points
        raise MalformedSignatureInputError(f"pubkey is not a valid curve point: {e}") from e

    if not public_key.schnorr_verify(msg, sig, None, raw=True):
        raise SignatureVerificationError("signature does not match pubkey and event id")


def verify_event(event: SignedEvent) -> None:
    """Check that *event*'s id matches its content and its signature verifies.

    Raises:
        MalformedSignatureInputError: If the event cannot be hashed or its
            id, pubkey or sig cannot be decoded.
        SignatureVerificationError: If the id does not match the recomputed
            hash or the signature is rejected.
    """
    try:
        expected_id = compute_event_id(event)
    except InvalidEventError as e:
        raise MalformedSignatureInputError(str(e)) from e
    if event.id != expected_id:
        raise SignatureVerificationError(
            f"event id {event.id!r} does not match computed id {expected_id!r}"
        )
    verify_signature(event.sig, event.pubkey, event.id)


def is_valid_event(event: SignedEvent) -> bool:
    """Return True if [verify_event()][nostrkit.utils.signing.verify_event] passes."""
    try:
        verify_event(event)
    except SignatureError as e:
        logger.debug("event_rejected id=%s reason=%s", event.id, e)
        return False
    return True
