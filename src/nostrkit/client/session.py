"""One logical connection to one relay.

A [RelaySession][nostrkit.client.session.RelaySession] exclusively owns its
transport. Writes are serialized by a send lock so concurrent ``publish``
and ``subscribe`` calls never interleave frames; each individual receive is
serialized by a separate lock that is released between frames, so no caller
holds the read side across a whole polling loop.

Ids of published events are kept in an unacknowledged queue until the relay
answers ``["OK", event_id, accepted, message]``. The queue is bounded: a
client that publishes without ever reading replies evicts the oldest ids.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from nostrkit.core.exceptions import SendError
from nostrkit.models.constants import MessageType
from nostrkit.models.event import SignedEvent
from nostrkit.models.relay import Relay
from nostrkit.nips.nip01 import dump_frame
from nostrkit.utils.transport import Transport


logger = logging.getLogger(__name__)

MAX_UNACKNOWLEDGED = 1024


class RelaySession:
    """Transport handle plus per-relay locks and acknowledgement state."""

    def __init__(
        self,
        relay: Relay,
        transport: Transport,
        max_unacknowledged: int = MAX_UNACKNOWLEDGED,
    ) -> None:
        self._relay = relay
        self._transport = transport
        self._send_lock = asyncio.Lock()
        self._recv_lock = asyncio.Lock()
        self._unacknowledged: dict[str, None] = {}
        self._max_unacknowledged = max_unacknowledged

    @property
    def relay(self) -> Relay:
        return self._relay

    @property
    def url(self) -> str:
        return self._relay.url

    @property
    def closed(self) -> bool:
        return self._transport.closed

    @property
    def unacknowledged(self) -> list[str]:
        """Ids of published events the relay has not answered with ``OK`` yet."""
        return list(self._unacknowledged)

    async def send(self, frame: list[Any]) -> None:
        """Serialize and send one outbound frame.

        Raises:
            SendError: If the transport rejects the write.
        """
        text = dump_frame(frame)
        async with self._send_lock:
            await self._transport.send(text)

    async def send_event(self, event: SignedEvent) -> None:
        """Send ``["EVENT", event]`` and queue it until acknowledged.

        Raises:
            SendError: If the transport rejects the write; the event is not
                left in the queue.
        """
        self._unacknowledged.pop(event.id, None)
        self._unacknowledged[event.id] = None
        try:
            await self.send([MessageType.EVENT.value, event.to_dict()])
        except SendError:
            self._unacknowledged.pop(event.id, None)
            raise

        while len(self._unacknowledged) > self._max_unacknowledged:
            evicted = next(iter(self._unacknowledged))
            del self._unacknowledged[evicted]
            logger.debug("unacknowledged_evicted relay=%s id=%s", self.url, evicted)

    async def receive(self) -> str | bytes:
        """Wait for the next inbound frame.

        Raises:
            ReceiveError: If the transport fails or the relay closed the
                connection.
        """
        async with self._recv_lock:
            return await self._transport.receive()

    def acknowledge(self, event_id: str, accepted: bool, message: str = "") -> bool:  # noqa: FBT001
        """Drop *event_id* from the unacknowledged queue.

        Returns:
            True if the event was pending on this session.
        """
        pending = event_id in self._unacknowledged
        self._unacknowledged.pop(event_id, None)
        if pending and not accepted:
            logger.info("event_rejected relay=%s id=%s message=%s", self.url, event_id, message)
        return pending

    async def close(self) -> None:
        """Close the transport."""
        await self._transport.close()

    def __repr__(self) -> str:
        return (
            f"RelaySession(url={self.url}, closed={self.closed}, "
            f"unacknowledged={len(self._unacknowledged)})"
        )
