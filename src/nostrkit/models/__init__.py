"""Pure frozen dataclasses with zero I/O for events, filters and relays.

The models layer is the foundation of the diamond DAG. It has **no dependencies**
on any other nostrkit package. Every model uses
``@dataclass(frozen=True, slots=True)`` and raises ``TypeError``/``ValueError``
from ``__post_init__``; the layers above translate those into the typed
errors of [nostrkit.core.exceptions][].

Attributes:
    UnsignedEvent: The five fields that define an event's identity.
    SignedEvent: An [UnsignedEvent][nostrkit.models.event.UnsignedEvent]
        plus its content hash ``id`` and Schnorr ``sig``.
    SubscriptionFilter: Declarative relay query carried by ``REQ`` frames.
    Relay: Validated relay URL with RFC 3986 parsing and
        [NetworkType][nostrkit.models.constants.NetworkType] detection.
    NetworkType: Enum classifying relay URLs into clearnet, tor, i2p, loki,
        local, or unknown.
    KeyPrefix: Bech32 human-readable parts (``npub``, ``nsec``, ``note``).
    MessageType: First element of a wire frame (``EVENT``, ``REQ``, ...).
    EventKind: Well-known event kinds.

See Also:
    [nostrkit.nips.nip01][]: Canonical serialization of these models.
    [nostrkit.client][]: Session and subscription protocol built on them.
"""

from .constants import OVERLAY_NETWORKS, EventKind, KeyPrefix, MessageType, NetworkType
from .event import SignedEvent, Tags, UnsignedEvent
from .filter import SubscriptionFilter
from .relay import Relay


__all__ = [
    "OVERLAY_NETWORKS",
    "EventKind",
    "KeyPrefix",
    "MessageType",
    "NetworkType",
    "Relay",
    "SignedEvent",
    "SubscriptionFilter",
    "Tags",
    "UnsignedEvent",
]
