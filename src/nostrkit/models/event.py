"""
Immutable Nostr event models.

[UnsignedEvent][nostrkit.models.event.UnsignedEvent] carries the five
fields that define an event's content-addressed identity;
[SignedEvent][nostrkit.models.event.SignedEvent] adds the derived ``id``
and the Schnorr ``sig``. Both are frozen dataclasses so that a signed event
can never drift away from the hash it was signed over.

Only JSON *types* are enforced here. Protocol-level checks (pubkey format,
representable timestamp) belong to
[validate_event()][nostrkit.nips.nip01.validate_event] so that an invalid
event can still be represented and rejected with a typed error when it is
canonicalized.

See Also:
    [nostrkit.nips.nip01][]: Canonical serialization, hashing and wire parsing.
    [nostrkit.utils.signing][]: Produces [SignedEvent][nostrkit.models.event.SignedEvent]
        instances and verifies them.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ._validation import freeze_tags, validate_instance, validate_int, validate_non_negative_int


Tags = tuple[tuple[str, ...], ...]


@dataclass(frozen=True, slots=True)
class UnsignedEvent:
    """An event before signing.

    Attributes:
        content: Arbitrary text payload.
        created_at: Unix timestamp in seconds.
        kind: Non-negative event category code.
        pubkey: Author's x-only public key as 64 lowercase hex characters.
        tags: Ordered sequence of tags, each an ordered sequence of strings.
            Lists are normalized to tuples on construction.

    Raises:
        TypeError: If a field has the wrong JSON type.
        ValueError: If ``kind`` is negative.

    Examples:
        ```python
        event = UnsignedEvent(
            content="hello",
            created_at=1700000000,
            kind=1,
            pubkey="b" * 64,
            tags=[["t", "nostr"]],
        )
        event.tags  # (('t', 'nostr'),)
        ```
    """

    content: str
    created_at: int
    kind: int
    pubkey: str
    tags: Tags = field(default=())

    def __post_init__(self) -> None:
        validate_instance(self.content, str, "content")
        validate_int(self.created_at, "created_at")
        validate_non_negative_int(self.kind, "kind")
        validate_instance(self.pubkey, str, "pubkey")
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def tags_as_lists(self) -> list[list[str]]:
        """Return the tags as nested lists, the shape used on the wire."""
        return [list(tag) for tag in self.tags]


@dataclass(frozen=True, slots=True)
class SignedEvent(UnsignedEvent):
    """An event with its content hash and Schnorr signature.

    Created by [sign_event()][nostrkit.utils.signing.sign_event] or parsed
    from a relay frame with [from_dict()][nostrkit.models.event.SignedEvent.from_dict].
    Construction does not verify the signature; use
    [verify_event()][nostrkit.utils.signing.verify_event] for that.

    Attributes:
        id: SHA-256 of the canonical serialization, 64 lowercase hex characters.
        sig: BIP-340 Schnorr signature over ``id``, 128 hex characters.
    """

    id: str = ""
    sig: str = ""

    def __post_init__(self) -> None:
        super(SignedEvent, self).__post_init__()
        validate_instance(self.id, str, "id")
        validate_instance(self.sig, str, "sig")

    def unsigned(self) -> UnsignedEvent:
        """Return the unsigned part of this event."""
        return UnsignedEvent(
            content=self.content,
            created_at=self.created_at,
            kind=self.kind,
            pubkey=self.pubkey,
            tags=self.tags,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": self.tags_as_lists(),
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Return the compact JSON text of [to_dict()][nostrkit.models.event.SignedEvent.to_dict]."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignedEvent:
        """Build a SignedEvent from a NIP-01 JSON object.

        Args:
            data: Decoded event object, e.g. ``frame[2]`` of an inbound
                ``["EVENT", sub_id, event]`` frame.

        Returns:
            The parsed event (signature not verified).

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a required field is missing.
        """
        validate_instance(data, Mapping, "event")
        missing = [k for k in ("id", "pubkey", "created_at", "kind", "tags", "content", "sig")
                   if k not in data]
        if missing:
            raise ValueError(f"event is missing fields: {', '.join(missing)}")
        return cls(
            content=data["content"],
            created_at=data["created_at"],
            kind=data["kind"],
            pubkey=data["pubkey"],
            tags=data["tags"],
            id=data["id"],
            sig=data["sig"],
        )

    @classmethod
    def from_json(cls, text: str) -> SignedEvent:
        """Parse a SignedEvent from its JSON text.

        Raises:
            ValueError: If *text* is not valid JSON or a field is missing.
            TypeError: If a field has the wrong type.
        """
        return cls.from_dict(json.loads(text))
