"""Core layer: exceptions, structured logging and YAML loading.

Depends only on ``nostrkit.models``; used by the nips, utils and client
layers.

Attributes:
    NostrKitError: Root of the typed exception hierarchy. See
        [nostrkit.core.exceptions][].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrkit.core.logger.Logger].
    configure_logging: Install the structured formatter on the root logger.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][nostrkit.core.yaml.load_yaml].
"""

from .exceptions import (
    AlreadyConnectedError,
    ConfigurationError,
    ConnectionClosedError,
    ConnectivityError,
    DecodingError,
    EncodingError,
    InvalidEventError,
    InvalidKeyError,
    InvalidPrivateKeyError,
    InvalidPubkeyError,
    InvalidRelayUrlError,
    KeyCodecError,
    MalformedSignatureInputError,
    Nip05Error,
    NostrKitError,
    PublishingError,
    ReceiveError,
    RegistryError,
    RelayConnectionError,
    RelayNotFoundError,
    SendError,
    SignatureError,
    SignatureVerificationError,
    SubscriptionNotFoundError,
)
from .logger import Logger, StructuredFormatter, configure_logging, format_kv_pairs
from .yaml import load_yaml


__all__ = [
    "AlreadyConnectedError",
    "ConfigurationError",
    "ConnectionClosedError",
    "ConnectivityError",
    "DecodingError",
    "EncodingError",
    "InvalidEventError",
    "InvalidKeyError",
    "InvalidPrivateKeyError",
    "InvalidPubkeyError",
    "InvalidRelayUrlError",
    "KeyCodecError",
    "Logger",
    "MalformedSignatureInputError",
    "Nip05Error",
    "NostrKitError",
    "PublishingError",
    "ReceiveError",
    "RegistryError",
    "RelayConnectionError",
    "RelayNotFoundError",
    "SendError",
    "SignatureError",
    "SignatureVerificationError",
    "StructuredFormatter",
    "SubscriptionNotFoundError",
    "configure_logging",
    "format_kv_pairs",
    "load_yaml",
]
