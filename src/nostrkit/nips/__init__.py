"""NIP implementations: event canonical form, bech32 entities, identity lookup.

Attributes:
    nip01: Canonical serialization, event id hashing, structural validation
        and wire frame parsing. See [nostrkit.nips.nip01][].
    nip19: Hex <-> bech32 encoding with ``npub``/``nsec``/``note`` prefixes.
        See [nostrkit.nips.nip19][].
    Nip05: NIP-05 ``/.well-known/nostr.json`` fetch and ``name@domain``
        resolution. See [Nip05][nostrkit.nips.nip05.Nip05].
"""

from .nip01 import (
    canonicalize,
    compute_event_id,
    dump_frame,
    parse_event,
    parse_frame,
    serialize_event,
    validate_event,
)
from .nip05 import Nip05, Nip05Document
from .nip19 import decode, decode_with_prefix, encode, to_note, to_npub, to_nsec


__all__ = [
    "Nip05",
    "Nip05Document",
    "canonicalize",
    "compute_event_id",
    "decode",
    "decode_with_prefix",
    "dump_frame",
    "encode",
    "parse_event",
    "parse_frame",
    "serialize_event",
    "to_note",
    "to_npub",
    "to_nsec",
    "validate_event",
]
