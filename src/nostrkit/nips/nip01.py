"""
NIP-01 canonical event serialization, hashing and wire parsing.

An event's ``id`` is the SHA-256 of the UTF-8 bytes of the JSON array
``[0, pubkey, created_at, kind, tags, content]`` printed without whitespace.
Other clients and relays recompute that hash byte for byte, so the
serialization parameters below must not change: compact separators, and
``ensure_ascii=False`` so non-ASCII content is emitted as raw UTF-8 instead
of ``\\uXXXX`` escapes.

Examples:
    ```python
    from nostrkit.models import UnsignedEvent
    from nostrkit.nips.nip01 import compute_event_id

    event = UnsignedEvent(content="hello", created_at=1700000000, kind=1, pubkey=pk, tags=[])
    compute_event_id(event)  # 64 lowercase hex characters
    ```

See Also:
    [nostrkit.utils.signing][]: Signs and verifies the ids computed here.
"""

from __future__ import annotations

import datetime
import hashlib
import json
from collections.abc import Mapping
from typing import Any

from nostrkit.core.exceptions import InvalidEventError
from nostrkit.models._validation import is_lower_hex
from nostrkit.models.event import SignedEvent, UnsignedEvent


PUBKEY_HEX_LENGTH = 64


def _representable_timestamp(created_at: Any) -> bool:
    if isinstance(created_at, bool) or not isinstance(created_at, int):
        return False
    try:
        datetime.datetime.fromtimestamp(created_at, tz=datetime.UTC)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def _utf8_encodable(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def validate_event(event: UnsignedEvent) -> bool:
    """Return True if *event* may be canonicalized.

    Checks that ``created_at`` maps to a representable UTC datetime, that
    ``pubkey`` is exactly 64 lowercase hex characters, and that content and
    every tag value are encodable as UTF-8 (JSON text may carry lone
    surrogates such as ``"\\ud800"``, which have no UTF-8 form).
    """
    return (
        _representable_timestamp(event.created_at)
        and is_lower_hex(event.pubkey, PUBKEY_HEX_LENGTH)
        and _utf8_encodable(event.content)
        and all(_utf8_encodable(value) for tag in event.tags for value in tag)
    )


def serialize_event(event: UnsignedEvent) -> str:
    """Return the canonical JSON text of *event*.

    Raises:
        InvalidEventError: If [validate_event()][nostrkit.nips.nip01.validate_event]
            rejects the event.
    """
    if not validate_event(event):
        raise InvalidEventError(
            "event failed validation (timestamp, pubkey or UTF-8 text): "
            f"pubkey={event.pubkey!r} created_at={event.created_at!r}"
        )
    return json.dumps(
        [0, event.pubkey, event.created_at, event.kind, event.tags_as_lists(), event.content],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def canonicalize(event: UnsignedEvent) -> bytes:
    """Return the canonical UTF-8 bytes hashed into the event id.

    Raises:
        InvalidEventError: If the event fails validation.
    """
    return serialize_event(event).encode("utf-8")


def compute_event_id(event: UnsignedEvent) -> str:
    """Return the lowercase hex SHA-256 of [canonicalize()][nostrkit.nips.nip01.canonicalize].

    Raises:
        InvalidEventError: If the event fails validation.
    """
    return hashlib.sha256(canonicalize(event)).hexdigest()


def parse_event(data: Mapping[str, Any]) -> SignedEvent:
    """Parse a decoded event object into a [SignedEvent][nostrkit.models.event.SignedEvent].

    The signature is not verified.

    Raises:
        InvalidEventError: If a field is missing or has the wrong JSON type.
    """
    try:
        return SignedEvent.from_dict(data)
    except (TypeError, ValueError) as e:
        raise InvalidEventError(f"invalid event object: {e}") from e


def parse_frame(text: str | bytes) -> list[Any]:
    """Decode a wire frame into its JSON array.

    Raises:
        ValueError: If *text* is not JSON or not a non-empty array whose
            first element is a string.
    """
    frame = json.loads(text)
    if not isinstance(frame, list) or not frame or not isinstance(frame[0], str):
        raise ValueError("frame is not a JSON array with a string tag")
    return frame


def dump_frame(frame: list[Any]) -> str:
    """Serialize an outbound frame with compact separators."""
    return json.dumps(frame, separators=(",", ":"), ensure_ascii=False)
