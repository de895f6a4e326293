r"""Subscription table: inbound frame buffers and per-relay EOSE state.

Each subscription id maps to a [Subscription][nostrkit.client.subscription.Subscription]
holding the raw frames routed to it, deduplicated by exact equality, and the
set of relays that have signaled EOSE. Only
[record_inbound()][nostrkit.client.subscription.SubscriptionTable.record_inbound]
and [drain()][nostrkit.client.subscription.SubscriptionTable.drain] touch the
buffers.

Frames can arrive for an id before the local ``subscribe`` call has
registered it (the ``REQ`` is on the wire before the table is updated, or a
relay replays an old id). Such frames create the buffer lazily and the
later registration adopts it.

Ids that were closed recently are remembered in a bounded history; frames a
relay streams for them before it processes the ``CLOSE`` are dropped rather
than creating a new buffer that nothing would ever drain.

State per subscription:

```text
REQUESTED --EOSE from some relays--> PARTIALLY_COMPLETE --EOSE from all--> COMPLETE
    \______________________________________________________________________/
                                  unsubscribe --> CLOSED
```

Only relays registered when the subscription was issued count toward
completion; an EOSE from any other relay is ignored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from nostrkit.core.exceptions import SubscriptionNotFoundError
from nostrkit.models.filter import SubscriptionFilter


Frame = str | bytes

CLOSED_HISTORY_SIZE = 1024


class SubscriptionState(StrEnum):
    """Lifecycle of a subscription as seen from the client."""

    REQUESTED = "requested"
    PARTIALLY_COMPLETE = "partially_complete"
    COMPLETE = "complete"
    CLOSED = "closed"


@dataclass(slots=True)
class Subscription:
    """Buffered frames and EOSE bookkeeping for one subscription id.

    Attributes:
        id: Subscription id sent in ``REQ``/``CLOSE`` frames.
        filters: Filters the subscription was issued with.
        relays: Relay URLs registered when the ``REQ`` was broadcast.
        eose: Subset of ``relays`` that signaled EOSE.
        registered: False while the entry only exists because frames
            arrived before the local ``subscribe``.
        closed: True once ``CLOSE`` was broadcast.
    """

    id: str
    filters: tuple[SubscriptionFilter, ...] = ()
    relays: frozenset[str] = frozenset()
    eose: set[str] = field(default_factory=set)
    registered: bool = False
    closed: bool = False
    _frames: list[Frame] = field(default_factory=list, repr=False)
    _seen: set[Frame] = field(default_factory=set, repr=False)
    _eose_signals: dict[str, asyncio.Event] = field(default_factory=dict, repr=False)

    @property
    def state(self) -> SubscriptionState:
        if self.closed:
            return SubscriptionState.CLOSED
        if not self.registered:
            return SubscriptionState.REQUESTED
        if self.relays <= self.eose:
            return SubscriptionState.COMPLETE
        if self.eose:
            return SubscriptionState.PARTIALLY_COMPLETE
        return SubscriptionState.REQUESTED

    @property
    def complete(self) -> bool:
        """True once every relay registered at subscribe time signaled EOSE."""
        return self.registered and self.relays <= self.eose

    @property
    def pending_relays(self) -> frozenset[str]:
        """Registered relays that have not signaled EOSE yet."""
        return self.relays - self.eose

    @property
    def buffered(self) -> int:
        return len(self._frames)

    def has_eose(self, url: str) -> bool:
        return url in self.eose

    async def wait_eose(self, url: str) -> None:
        """Block until *url* signals EOSE for this subscription."""
        if url in self.eose:
            return
        await self._eose_signals.setdefault(url, asyncio.Event()).wait()

    def _mark_eose(self, url: str) -> bool:
        if url not in self.relays or url in self.eose:
            return False
        self.eose.add(url)
        signal = self._eose_signals.get(url)
        if signal is not None:
            signal.set()
        return True

    def _append(self, frame: Frame) -> bool:
        if frame in self._seen:
            return False
        self._seen.add(frame)
        self._frames.append(frame)
        return True

    def _take(self) -> list[Frame]:
        frames, self._frames = self._frames, []
        self._seen = set()
        return frames


class SubscriptionTable:
    """All subscriptions of one client, keyed by id."""

    def __init__(self, closed_history: int = CLOSED_HISTORY_SIZE) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._closed_ids: dict[str, None] = {}
        self._closed_history = closed_history

    def _remember_closed(self, subscription_id: str) -> None:
        self._closed_ids.pop(subscription_id, None)
        self._closed_ids[subscription_id] = None
        while len(self._closed_ids) > self._closed_history:
            del self._closed_ids[next(iter(self._closed_ids))]

    def recently_closed(self, subscription_id: str) -> bool:
        """True if *subscription_id* was closed and not registered again since."""
        return subscription_id in self._closed_ids

    def __contains__(self, subscription_id: object) -> bool:
        return subscription_id in self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions.values()))

    def get(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def register(
        self,
        subscription_id: str,
        filters: Iterable[SubscriptionFilter],
        relays: Iterable[str],
    ) -> Subscription:
        """Record that ``REQ`` was issued for *subscription_id* to *relays*.

        An entry created earlier by
        [record_inbound()][nostrkit.client.subscription.SubscriptionTable.record_inbound]
        is adopted with its buffered frames. Re-registering an id restarts
        its EOSE tracking.
        """
        self._closed_ids.pop(subscription_id, None)
        sub = self._subscriptions.get(subscription_id)
        if sub is None:
            sub = Subscription(id=subscription_id)
            self._subscriptions[subscription_id] = sub
        sub.filters = tuple(filters)
        sub.relays = frozenset(relays)
        sub.eose = set()
        sub._eose_signals = {}
        sub.registered = True
        sub.closed = False
        return sub

    def record_inbound(self, subscription_id: str, frame: Frame) -> bool:
        """Buffer *frame* for *subscription_id* unless an equal frame is buffered.

        Creates the buffer lazily for unseen ids. Frames for an id that was
        closed recently and has no entry left are dropped.

        Returns:
            True if the frame was appended, False if it was a duplicate or
            belongs to a closed subscription.
        """
        sub = self._subscriptions.get(subscription_id)
        if sub is None:
            if subscription_id in self._closed_ids:
                return False
            sub = Subscription(id=subscription_id)
            self._subscriptions[subscription_id] = sub
        return sub._append(frame)

    def mark_eose(self, subscription_id: str, url: str) -> bool:
        """Record EOSE from *url*.

        Returns:
            True if this completed the relay for a registered subscription;
            False for unknown ids, unregistered relays, and repeats.
        """
        sub = self._subscriptions.get(subscription_id)
        return sub is not None and sub._mark_eose(url)

    def mark_closed(self, subscription_id: str) -> None:
        """Flag the subscription as closed and remember its id."""
        self._remember_closed(subscription_id)
        sub = self._subscriptions.get(subscription_id)
        if sub is not None:
            sub.closed = True

    def drain(self, subscription_id: str) -> list[Frame]:
        """Remove and return the buffered frames of *subscription_id*.

        A closed subscription is dropped from the table once drained.

        Raises:
            SubscriptionNotFoundError: If the id has no entry.
        """
        sub = self._subscriptions.get(subscription_id)
        if sub is None:
            raise SubscriptionNotFoundError(f"No such subscription: {subscription_id!r}")
        frames = sub._take()
        if sub.closed:
            del self._subscriptions[subscription_id]
        return frames

    def discard(self, subscription_id: str) -> None:
        """Drop the entry without draining it; the id counts as closed."""
        self._subscriptions.pop(subscription_id, None)
        self._remember_closed(subscription_id)

    def clear(self) -> None:
        self._subscriptions.clear()
        self._closed_ids.clear()
