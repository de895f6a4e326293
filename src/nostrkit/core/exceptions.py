"""nostrkit exception hierarchy.

Every failure a caller can act on surfaces as a subclass of
[NostrKitError][nostrkit.core.exceptions.NostrKitError]. Malformed key
material, events and signatures are typed errors returned to the caller,
never a process abort. ``asyncio.CancelledError`` is never wrapped.

Exception hierarchy:

```text
NostrKitError (base -- never raised directly)
├── ConfigurationError           -- config validation, missing env vars, bad YAML
├── ConnectivityError            -- transport-level failures
│   ├── RelayConnectionError     -- relay unreachable or handshake failed
│   ├── SendError                -- frame could not be written
│   └── ReceiveError             -- frame could not be read
│       └── ConnectionClosedError
├── RegistryError                -- relay registry misuse
│   ├── AlreadyConnectedError
│   └── RelayNotFoundError
├── InvalidRelayUrlError         -- relay URL failed validation (also ValueError)
├── KeyCodecError                -- bech32 text encoding
│   ├── EncodingError
│   └── DecodingError
├── InvalidEventError            -- event failed structural validation
├── InvalidKeyError              -- malformed key material
│   ├── InvalidPrivateKeyError
│   └── InvalidPubkeyError
├── SignatureError
│   ├── MalformedSignatureInputError  -- inputs cannot be decoded
│   └── SignatureVerificationError    -- cryptographically rejected
├── SubscriptionNotFoundError    -- drain on an unknown subscription id
├── PublishingError              -- event reached no relay
└── Nip05Error                   -- NIP-05 document fetch or lookup failure
```

See Also:
    [Client][nostrkit.client.client.Client]: Raises the registry, connectivity
        and publishing errors.
    [nostrkit.utils.signing][]: Raises the signature and key errors.
"""

from __future__ import annotations

from typing import Any


class NostrKitError(Exception):
    """Base exception for all nostrkit errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrKitError):
    """Invalid or missing configuration (YAML, env vars).

    See Also:
        [load_yaml()][nostrkit.core.yaml.load_yaml]: YAML loading function.
        [KeysConfig][nostrkit.utils.keys.KeysConfig]: Raises this when the
            private key environment variable is unset or invalid.
    """


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrKitError):
    """Base for all relay/transport errors.

    Attributes:
        url: Relay URL the failure occurred on, when known.
    """

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class RelayConnectionError(ConnectivityError):
    """Relay unreachable or WebSocket handshake failed."""


class SendError(ConnectivityError):
    """A frame could not be written to the relay."""


class ReceiveError(ConnectivityError):
    """A frame could not be read from the relay."""


class ConnectionClosedError(ReceiveError):
    """The relay closed the connection; no further frames will arrive."""


# ---------------------------------------------------------------------------
# Relay registry
# ---------------------------------------------------------------------------


class RegistryError(NostrKitError):
    """Base for relay registry misuse."""


class AlreadyConnectedError(RegistryError):
    """``add_relay`` was called for a URL that is already registered."""


class RelayNotFoundError(RegistryError, KeyError):
    """The URL is not in the relay registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class InvalidRelayUrlError(NostrKitError, ValueError):
    """The relay URL is malformed or uses a scheme other than ws/wss."""


# ---------------------------------------------------------------------------
# Key codec
# ---------------------------------------------------------------------------


class KeyCodecError(NostrKitError, ValueError):
    """Base for bech32 key/note encoding failures.

    See Also:
        [nostrkit.nips.nip19][]: The codec raising these errors.
    """


class EncodingError(KeyCodecError):
    """Hex input has odd length or non-hex characters."""


class DecodingError(KeyCodecError):
    """Bech32 text is malformed, has a bad checksum, or an unexpected prefix."""


# ---------------------------------------------------------------------------
# Events, keys and signatures
# ---------------------------------------------------------------------------


class InvalidEventError(NostrKitError, ValueError):
    """Event failed structural validation before hashing or parsing."""


class InvalidKeyError(NostrKitError, ValueError):
    """Base for malformed key material."""


class InvalidPrivateKeyError(InvalidKeyError):
    """Private key is not 32 hex-encoded bytes in ``[1, n-1]``."""


class InvalidPubkeyError(InvalidKeyError):
    """Public key is not a 32-byte x-only point on secp256k1."""


class SignatureError(NostrKitError):
    """Base for signature verification failures.

    Callers that only need a yes/no answer catch this; callers that need to
    tell "cannot parse" apart from "forged" catch the subclasses.
    """


class MalformedSignatureInputError(SignatureError):
    """Signature, public key or message could not be decoded."""


class SignatureVerificationError(SignatureError):
    """Inputs decoded but the signature (or recomputed id) does not match."""


# ---------------------------------------------------------------------------
# Subscriptions and publishing
# ---------------------------------------------------------------------------


class SubscriptionNotFoundError(NostrKitError, KeyError):
    """No buffer exists for the subscription id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PublishingError(NostrKitError):
    """An event could not be sent to any relay.

    Attributes:
        result: The per-relay
            [BroadcastResult][nostrkit.client.client.BroadcastResult]; empty
            when no relay was registered.
    """

    def __init__(self, message: str, *, result: Any = None) -> None:
        super().__init__(message)
        self.result = result


# ---------------------------------------------------------------------------
# NIP-05
# ---------------------------------------------------------------------------


class Nip05Error(NostrKitError):
    """The NIP-05 document could not be fetched, parsed, or lacks the name."""
