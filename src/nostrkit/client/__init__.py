"""Multi-relay client: relay sessions, the subscription table, and the fetch protocol.

The client layer is the top of the diamond DAG, depending on
[nostrkit.core][nostrkit.core], [nostrkit.nips][nostrkit.nips],
[nostrkit.utils][nostrkit.utils], and [nostrkit.models][nostrkit.models].

Attributes:
    Client: Relay registry with ``publish``, ``subscribe``, ``unsubscribe``
        and ``collect_until_complete``.
    ClientConfig: Pydantic configuration for relays, timeouts and proxying.
    BroadcastResult: Per-relay outcome of a broadcast.
    RelaySession: One relay's transport with its send lock and
        unacknowledged queue.
    Subscription: Buffered frames and EOSE state of one subscription id.
    SubscriptionTable: All subscriptions of a client.
    SubscriptionState: ``requested``, ``partially_complete``, ``complete``,
        ``closed``.

Examples:
    ```python
    from nostrkit.client import Client

    async with Client.from_yaml("client.yaml") as client:
        subscription_id = await client.subscribe(filters)
        frames = await client.next_frames()
    ```
"""

from .client import BroadcastResult, Client, TransportFactory
from .configs import ClientConfig
from .session import RelaySession
from .subscription import Frame, Subscription, SubscriptionState, SubscriptionTable


__all__ = [
    "BroadcastResult",
    "Client",
    "ClientConfig",
    "Frame",
    "RelaySession",
    "Subscription",
    "SubscriptionState",
    "SubscriptionTable",
    "TransportFactory",
]
