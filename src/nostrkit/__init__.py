r"""nostrkit -- Client toolkit for the Nostr protocol.

Generates and encodes keys, builds, signs and verifies events, and runs
subscriptions against any number of relays over WebSockets.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              client           Relay sessions, subscription table, Client
             /   |   \
          core  nips  utils    Infrastructure, protocol, and helpers
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Events, filters, relay URLs and protocol constants.
    core: Exceptions, structured logging, YAML loading.
    nips: NIP-01 canonical form and frames, NIP-05 lookup, NIP-19 bech32.
    utils: Keys, signing, WebSocket transport, bounded HTTP fetching.
    client: The multi-relay [Client][nostrkit.client.client.Client].

Note:
    For lightweight usage, import directly from subpackages::

        from nostrkit.models import UnsignedEvent
        from nostrkit.utils import Keys, sign_event

    Top-level imports (``from nostrkit import Client``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrkit")

__all__ = [
    "BroadcastResult",
    "Client",
    "ClientConfig",
    "EventKind",
    "KeyPrefix",
    "Keys",
    "Logger",
    "NetworkType",
    "Nip05",
    "NostrKitError",
    "Relay",
    "SignedEvent",
    "SubscriptionFilter",
    "UnsignedEvent",
    "compute_event_id",
    "decode",
    "encode",
    "generate_private_key",
    "generate_public_key",
    "sign_event",
    "verify_event",
    "verify_signature",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("nostrkit.core", "Logger"),
    "NostrKitError": ("nostrkit.core", "NostrKitError"),
    "EventKind": ("nostrkit.models", "EventKind"),
    "KeyPrefix": ("nostrkit.models", "KeyPrefix"),
    "NetworkType": ("nostrkit.models", "NetworkType"),
    "Relay": ("nostrkit.models", "Relay"),
    "SignedEvent": ("nostrkit.models", "SignedEvent"),
    "SubscriptionFilter": ("nostrkit.models", "SubscriptionFilter"),
    "UnsignedEvent": ("nostrkit.models", "UnsignedEvent"),
    "Nip05": ("nostrkit.nips", "Nip05"),
    "compute_event_id": ("nostrkit.nips", "compute_event_id"),
    "decode": ("nostrkit.nips", "decode"),
    "encode": ("nostrkit.nips", "encode"),
    "Keys": ("nostrkit.utils", "Keys"),
    "generate_private_key": ("nostrkit.utils", "generate_private_key"),
    "generate_public_key": ("nostrkit.utils", "generate_public_key"),
    "sign_event": ("nostrkit.utils", "sign_event"),
    "verify_event": ("nostrkit.utils", "verify_event"),
    "verify_signature": ("nostrkit.utils", "verify_signature"),
    "BroadcastResult": ("nostrkit.client", "BroadcastResult"),
    "Client": ("nostrkit.client", "Client"),
    "ClientConfig": ("nostrkit.client", "ClientConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrkit' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
