"""Shared constants for the models layer.

Defines enumerations and other constants that are used across multiple
model modules. Placing them here avoids circular dependencies between
the models, nips, and client layers.

See Also:
    [nostrkit.models.relay][]: Uses [NetworkType][nostrkit.models.constants.NetworkType]
        to classify relay URLs during construction.
    [nostrkit.nips.nip19][]: Uses [KeyPrefix][nostrkit.models.constants.KeyPrefix]
        as the bech32 human-readable part.
    [nostrkit.client.client][]: Uses [MessageType][nostrkit.models.constants.MessageType]
        to build and route wire frames.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type during
    [Relay][nostrkit.models.relay.Relay] construction. Overlay networks
    require a SOCKS5 proxy in the transport layer.

    Attributes:
        CLEARNET: Public internet relay.
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Loopback, private, or single-label intranet host.
        UNKNOWN: Hostname that could not be classified (rejected during validation).

    Examples:
        ```python
        Relay("wss://relay.damus.io").network   # NetworkType.CLEARNET
        Relay("ws://abc123.onion").network       # NetworkType.TOR
        Relay("ws://localhost:7777").network     # NetworkType.LOCAL
        ```
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


OVERLAY_NETWORKS: frozenset[NetworkType] = frozenset(
    {NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI}
)


class KeyPrefix(StrEnum):
    """Bech32 human-readable parts for NIP-19 encoded entities.

    Attributes:
        NPUB: Public key.
        NSEC: Private key.
        NOTE: Event id.
    """

    NPUB = "npub"
    NSEC = "nsec"
    NOTE = "note"


class MessageType(StrEnum):
    """First element of a NIP-01 wire frame.

    Attributes:
        EVENT: Client publish (``["EVENT", event]``) or relay delivery
            (``["EVENT", sub_id, event]``).
        REQ: Client subscription request.
        CLOSE: Client subscription teardown.
        EOSE: Relay signal that stored events for a subscription are exhausted.
        OK: Relay acknowledgement of a published event.
        NOTICE: Human-readable relay message.
        CLOSED: Relay-side subscription termination.
    """

    EVENT = "EVENT"
    REQ = "REQ"
    CLOSE = "CLOSE"
    EOSE = "EOSE"
    OK = "OK"
    NOTICE = "NOTICE"
    CLOSED = "CLOSED"


class EventKind(IntEnum):
    """Well-known Nostr event kinds.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        RECOMMEND_RELAY: Kind 2 -- legacy relay recommendation (deprecated).
        CONTACTS: Kind 3 -- contact list (NIP-02).
        RELAY_LIST: Kind 10002 -- NIP-65 relay list metadata.
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    RECOMMEND_RELAY = 2
    CONTACTS = 3
    RELAY_LIST = 10_002
