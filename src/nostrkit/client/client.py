"""
Multi-relay Nostr client.

[Client][nostrkit.client.client.Client] owns a registry of
[RelaySession][nostrkit.client.session.RelaySession] objects keyed by
normalized relay URL and a private
[SubscriptionTable][nostrkit.client.subscription.SubscriptionTable].
It broadcasts ``EVENT``/``REQ``/``CLOSE`` frames and routes inbound frames to
the subscription they name.

Broadcasts send to each relay in turn. One relay failing never aborts the
broadcast: per-relay outcomes are collected in a
[BroadcastResult][nostrkit.client.client.BroadcastResult], and a publish
that reaches some relays but not others is a partial success.

[collect_until_complete()][nostrkit.client.client.Client.collect_until_complete]
is the fetch-and-wait operation: subscribe, read every relay until it
signals EOSE (or its stream fails, or the deadline expires), unsubscribe,
then return the verified, deduplicated events that were buffered.

Examples:
    ```python
    from nostrkit import Client, ClientConfig, SubscriptionFilter

    config = ClientConfig(relays=["wss://relay.damus.io", "wss://nos.lol"])
    async with Client.from_config(config) as client:
        notes = await client.collect_until_complete(
            [SubscriptionFilter(kinds=[1], limit=20)], timeout=10.0
        )
    ```

See Also:
    [nostrkit.client.subscription][]: EOSE bookkeeping and frame buffers.
    [nostrkit.utils.transport][]: The aiohttp transport used by default.
"""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any, Self

from nostrkit.core.exceptions import (
    AlreadyConnectedError,
    ConnectivityError,
    InvalidEventError,
    InvalidRelayUrlError,
    PublishingError,
    ReceiveError,
    RelayNotFoundError,
    SendError,
)
from nostrkit.core.logger import Logger
from nostrkit.core.yaml import load_yaml
from nostrkit.models.constants import MessageType
from nostrkit.models.event import SignedEvent
from nostrkit.models.filter import SubscriptionFilter
from nostrkit.models.relay import Relay
from nostrkit.nips.nip01 import parse_event, parse_frame
from nostrkit.utils.signing import is_valid_event, verify_event
from nostrkit.utils.transport import Transport, connect_relay

from .configs import ClientConfig
from .session import RelaySession
from .subscription import Frame, Subscription, SubscriptionTable


TransportFactory = Callable[[Relay], Awaitable[Transport]]

SUBSCRIPTION_ID_BYTES = 16


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    """Per-relay outcome of a broadcast.

    Attributes:
        sent: URLs the frame was written to, in send order.
        failed: URL to the error that prevented the send.
    """

    sent: tuple[str, ...] = ()
    failed: dict[str, ConnectivityError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True if at least one relay received the frame."""
        return bool(self.sent)

    @property
    def complete(self) -> bool:
        """True if every relay received the frame."""
        return bool(self.sent) and not self.failed


class Client:
    """Relay registry, broadcasts, and the subscription protocol.

    Args:
        config: Relays and connection behaviour; defaults to an empty
            [ClientConfig][nostrkit.client.configs.ClientConfig].
        transport_factory: Coroutine opening a
            [Transport][nostrkit.utils.transport.Transport] for a relay.
            Defaults to [connect_relay()][nostrkit.utils.transport.connect_relay]
            with the config's timeouts, proxy and TLS settings.

    Note:
        A client is bound to one event loop. All state is mutated from
        coroutines on that loop, so the registry and subscription table need
        no locks of their own; writes to each relay are serialized by its
        session.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config if config is not None else ClientConfig()
        self._transport_factory = transport_factory or self._open_transport
        self._sessions: dict[str, RelaySession] = {}
        self._connecting: set[str] = set()
        self._subscriptions = SubscriptionTable()
        self._logger = Logger("nostrkit.client")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> Self:
        return cls(config=config, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Create a client from a configuration dictionary.

        Raises:
            pydantic.ValidationError: If *data* is not a valid
                [ClientConfig][nostrkit.client.configs.ClientConfig].
        """
        return cls(config=ClientConfig(**data), **kwargs)

    @classmethod
    def from_yaml(cls, config_path: str | Path, **kwargs: Any) -> Self:
        """Create a client from a YAML file via [load_yaml()][nostrkit.core.yaml.load_yaml]."""
        return cls.from_dict(load_yaml(config_path), **kwargs)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        """The client configuration (read-only)."""
        return self._config

    @property
    def relays(self) -> list[str]:
        """Normalized URLs of the registered relays."""
        return list(self._sessions)

    def session(self, url: str) -> RelaySession:
        """Return the session registered for *url*.

        Raises:
            InvalidRelayUrlError: If *url* is not a valid relay URL.
            RelayNotFoundError: If the relay is not registered.
        """
        relay = self._parse_relay(url)
        try:
            return self._sessions[relay.url]
        except KeyError:
            raise RelayNotFoundError(f"Relay not registered: {relay.url}") from None

    def subscription(self, subscription_id: str) -> Subscription | None:
        """Return the table entry for *subscription_id*, if any."""
        return self._subscriptions.get(subscription_id)

    # -------------------------------------------------------------------------
    # Relay Registry
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_relay(url: str) -> Relay:
        try:
            return Relay(url)
        except (TypeError, ValueError) as e:
            raise InvalidRelayUrlError(f"Invalid relay URL {url!r}: {e}") from e

    async def _open_transport(self, relay: Relay) -> Transport:
        return await connect_relay(
            relay,
            timeout=self._config.connect_timeout,
            proxy_url=self._config.proxy_url,
            allow_insecure=self._config.allow_insecure,
            close_timeout=self._config.close_timeout,
            max_frame_size=self._config.max_frame_size,
        )

    async def add_relay(self, url: str) -> Relay:
        """Connect to *url* and register it.

        Returns:
            The normalized [Relay][nostrkit.models.relay.Relay].

        Raises:
            InvalidRelayUrlError: If *url* is not a valid relay URL.
            AlreadyConnectedError: If the relay is registered or being added.
            RelayConnectionError: If the handshake fails.
        """
        relay = self._parse_relay(url)
        if relay.url in self._sessions or relay.url in self._connecting:
            raise AlreadyConnectedError(f"Relay already registered: {relay.url}")

        self._connecting.add(relay.url)
        try:
            transport = await self._transport_factory(relay)
        finally:
            self._connecting.discard(relay.url)

        self._sessions[relay.url] = RelaySession(relay, transport)
        self._logger.info("relay_added", url=relay.url, network=relay.network, relays=len(self))
        return relay

    async def remove_relay(self, url: str) -> None:
        """Close the transport of *url* and drop it from the registry.

        Raises:
            InvalidRelayUrlError: If *url* is not a valid relay URL.
            RelayNotFoundError: If the relay is not registered.
        """
        relay = self._parse_relay(url)
        session = self._sessions.pop(relay.url, None)
        if session is None:
            raise RelayNotFoundError(f"Relay not registered: {relay.url}")
        await session.close()
        self._logger.info("relay_removed", url=relay.url, relays=len(self))

    async def connect(self) -> BroadcastResult:
        """Add every relay from the configuration concurrently.

        Relays that are already registered are skipped; connection failures
        are reported in the result rather than raised.
        """
        urls = [url for url in self._config.relays if url not in self._sessions]
        outcomes = await asyncio.gather(
            *(self.add_relay(url) for url in urls), return_exceptions=True
        )

        sent: list[str] = []
        failed: dict[str, ConnectivityError] = {}
        for url, outcome in zip(urls, outcomes, strict=True):
            if isinstance(outcome, AlreadyConnectedError):
                continue
            if isinstance(outcome, ConnectivityError):
                self._logger.warning("relay_connect_failed", url=url, error=str(outcome))
                failed[url] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                sent.append(url)

        self._logger.info("connected", relays=len(sent), failed=len(failed))
        return BroadcastResult(sent=tuple(sent), failed=failed)

    async def close(self) -> None:
        """Close every transport and forget all subscriptions."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        self._subscriptions.clear()
        await asyncio.gather(*(session.close() for session in sessions))
        if sessions:
            self._logger.info("client_closed", relays=len(sessions))

    # -------------------------------------------------------------------------
    # Broadcasts
    # -------------------------------------------------------------------------

    async def _broadcast(self, frame: list[Any], action: str) -> BroadcastResult:
        sent: list[str] = []
        failed: dict[str, ConnectivityError] = {}
        for url, session in list(self._sessions.items()):
            try:
                await session.send(frame)
            except SendError as e:
                self._logger.warning(f"{action}_failed", url=url, error=str(e))
                failed[url] = e
            else:
                sent.append(url)
        return BroadcastResult(sent=tuple(sent), failed=failed)

    async def publish(self, event: SignedEvent) -> BroadcastResult:
        """Send ``["EVENT", event]`` to every registered relay.

        The event's id and signature are verified before anything is sent.

        Raises:
            SignatureError: If the event does not verify.
            PublishingError: If no relay is registered or every send failed.
                The per-relay result is attached as ``result``.
        """
        verify_event(event)
        if not self._sessions:
            raise PublishingError("No relays registered", result=BroadcastResult())

        sent: list[str] = []
        failed: dict[str, ConnectivityError] = {}
        for url, session in list(self._sessions.items()):
            try:
                await session.send_event(event)
            except SendError as e:
                self._logger.warning("publish_failed", url=url, id=event.id, error=str(e))
                failed[url] = e
            else:
                sent.append(url)

        result = BroadcastResult(sent=tuple(sent), failed=failed)
        if not result.success:
            raise PublishingError(f"Event {event.id} reached no relay", result=result)
        self._logger.info("event_published", id=event.id, sent=len(sent), failed=len(failed))
        return result

    async def subscribe(
        self,
        filters: SubscriptionFilter | Iterable[SubscriptionFilter],
        subscription_id: str | None = None,
    ) -> str:
        """Broadcast ``["REQ", id, filter, ...]`` and return the id immediately.

        Args:
            filters: One filter or a sequence of filters.
            subscription_id: Used verbatim when given; otherwise a random
                128-bit hex id is generated.

        Raises:
            ValueError: If no filter is given or the id is empty.
        """
        if isinstance(filters, SubscriptionFilter):
            filters = (filters,)
        filters = tuple(filters)
        if not filters:
            raise ValueError("At least one filter is required")
        if subscription_id is None:
            subscription_id = secrets.token_hex(SUBSCRIPTION_ID_BYTES)
        elif not isinstance(subscription_id, str) or not subscription_id:
            raise ValueError("subscription_id must be a non-empty str")

        # Registered before sending so an EOSE racing the REQ is not lost
        sub = self._subscriptions.register(subscription_id, filters, self._sessions)
        frame = [MessageType.REQ.value, subscription_id, *(f.to_dict() for f in filters)]
        result = await self._broadcast(frame, "subscribe")

        # A relay that never received the REQ will never answer it
        if result.failed:
            sub.relays = sub.relays.difference(result.failed)

        self._logger.debug(
            "subscribed", id=subscription_id, relays=len(result.sent), failed=len(result.failed)
        )
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> BroadcastResult:
        """Broadcast ``["CLOSE", id]`` to every relay, whatever the state. Idempotent."""
        result = await self._broadcast([MessageType.CLOSE.value, subscription_id], "unsubscribe")
        self._subscriptions.mark_closed(subscription_id)
        self._logger.debug("unsubscribed", id=subscription_id, relays=len(result.sent))
        return result

    # -------------------------------------------------------------------------
    # Subscription Buffers
    # -------------------------------------------------------------------------

    def record_inbound(self, subscription_id: str, frame: Frame) -> bool:
        """Buffer *frame* for *subscription_id*, dropping exact duplicates.

        See [SubscriptionTable.record_inbound()][nostrkit.client.subscription.SubscriptionTable.record_inbound].
        """
        return self._subscriptions.record_inbound(subscription_id, frame)

    def drain(self, subscription_id: str) -> list[Frame]:
        """Remove and return the frames buffered for *subscription_id*.

        Raises:
            SubscriptionNotFoundError: If nothing was ever buffered or
                registered under this id.
        """
        return self._subscriptions.drain(subscription_id)

    # -------------------------------------------------------------------------
    # Inbound Routing
    # -------------------------------------------------------------------------

    def _dispatch(self, url: str, frame: Frame) -> None:
        """Route one inbound frame from *url* by its subscription id."""
        try:
            message = parse_frame(frame)
        except (ValueError, RecursionError):
            self._logger.debug("frame_discarded", url=url, reason="malformed")
            return

        tag = message[0]
        target = message[1] if len(message) > 1 and isinstance(message[1], str) else None

        if tag == MessageType.EOSE and target is not None:
            self._subscriptions.mark_eose(target, url)
        elif tag == MessageType.EVENT and target is not None:
            self._subscriptions.record_inbound(target, frame)
        elif tag == MessageType.CLOSED and target is not None:
            # The relay ended the subscription; no EOSE will follow
            self._subscriptions.record_inbound(target, frame)
            self._subscriptions.mark_eose(target, url)
            reason = message[2] if len(message) > 2 else ""
            self._logger.info("subscription_closed_by_relay", url=url, id=target, reason=reason)
        elif tag == MessageType.OK and target is not None and len(message) > 2:
            session = self._sessions.get(url)
            if session is not None:
                note = message[3] if len(message) > 3 and isinstance(message[3], str) else ""
                session.acknowledge(target, message[2] is True, note)
        elif tag == MessageType.NOTICE:
            self._logger.info("relay_notice", url=url, message=message[1] if target else "")
        else:
            self._logger.debug("frame_unhandled", url=url, tag=tag)

    async def _receive_unless_eose(self, session: RelaySession, sub: Subscription) -> Frame | None:
        """Wait for the next frame from *session* or for its EOSE on *sub*.

        Another reader on the same session may consume this relay's EOSE
        for *sub*; waiting on the EOSE signal as well keeps this reader from
        blocking on a receive that will never concern it.
        """
        receive = asyncio.ensure_future(session.receive())
        signalled = asyncio.ensure_future(sub.wait_eose(session.url))
        try:
            await asyncio.wait({receive, signalled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            signalled.cancel()
            if not receive.done():
                receive.cancel()
            elif not receive.cancelled():
                receive.exception()
        if receive.done() and not receive.cancelled():
            return receive.result()
        return None

    async def _read_until_eose(self, session: RelaySession, sub: Subscription) -> None:
        url = session.url
        try:
            while not sub.has_eose(url) and not sub.closed:
                frame = await self._receive_unless_eose(session, sub)
                if frame is not None:
                    self._dispatch(url, frame)
        except ReceiveError as e:
            # A failed stream will never send EOSE; the relay counts as done
            self._logger.warning("relay_stream_failed", url=url, id=sub.id, error=str(e))

    async def _wait_for_eose(self, sub: Subscription, timeout: float | None) -> None:  # noqa: ASYNC109
        sessions = [self._sessions[url] for url in sub.pending_relays if url in self._sessions]
        try:
            async with asyncio.timeout(timeout), asyncio.TaskGroup() as group:
                for session in sessions:
                    group.create_task(self._read_until_eose(session, sub))
        except TimeoutError:
            self._logger.warning(
                "fetch_timeout",
                id=sub.id,
                timeout=timeout,
                pending=",".join(sorted(sub.pending_relays)),
            )

    def _extract_events(self, subscription_id: str, frames: list[Frame]) -> list[SignedEvent]:
        events: list[SignedEvent] = []
        seen: set[str] = set()
        for frame in frames:
            if not isinstance(frame, str):
                continue
            try:
                message = parse_frame(frame)
            except (ValueError, RecursionError):
                continue
            if len(message) < 3 or message[0] != MessageType.EVENT or message[1] != subscription_id:
                continue
            try:
                event = parse_event(message[2])
            except InvalidEventError as e:
                self._logger.debug("event_discarded", id=subscription_id, reason=str(e))
                continue
            if event.id in seen:
                continue
            if self._config.verify_signatures and not is_valid_event(event):
                self._logger.debug("event_discarded", id=subscription_id, reason="invalid signature")
                continue
            seen.add(event.id)
            events.append(event)
        return events

    async def collect_until_complete(
        self,
        filters: SubscriptionFilter | Iterable[SubscriptionFilter],
        timeout: float | None = None,  # noqa: ASYNC109
        subscription_id: str | None = None,
    ) -> list[SignedEvent]:
        """Fetch stored events matching *filters* from every registered relay.

        Subscribes, then reads each relay registered at that moment in its
        own task, routing frames by subscription id, until every relay has
        signaled EOSE for this subscription or its stream has failed. When
        the deadline expires first, silent relays are treated as done and
        whatever was buffered is returned. The subscription is then closed
        and drained; frames that are not text, not an ``EVENT`` for this
        subscription, or do not decode into an event are discarded, as are
        events that fail verification (see ``verify_signatures``) and
        repeated event ids.

        Args:
            filters: One filter or a sequence of filters.
            timeout: Deadline in seconds; defaults to
                ``config.fetch_timeout`` (``None`` there waits indefinitely).
            subscription_id: Optional caller-chosen id.

        Returns:
            The events, in the order their first copy was received.
        """
        deadline = timeout if timeout is not None else self._config.fetch_timeout
        subscription_id = await self.subscribe(filters, subscription_id)
        sub = self._subscriptions.get(subscription_id)
        if sub is None:  # closed by a concurrent close()
            return []

        try:
            await self._wait_for_eose(sub, deadline)
        except asyncio.CancelledError:
            # Relays keep streaming an open REQ until they see CLOSE
            try:
                await asyncio.shield(self.unsubscribe(subscription_id))
            finally:
                self._subscriptions.discard(subscription_id)
            raise

        await self.unsubscribe(subscription_id)
        if subscription_id not in self._subscriptions:
            return []
        events = self._extract_events(subscription_id, self.drain(subscription_id))
        self._logger.info(
            "fetch_completed",
            id=subscription_id,
            events=len(events),
            complete=sub.complete,
        )
        return events

    async def next_frames(self) -> list[tuple[str, Frame]]:
        """Receive one frame from every relay concurrently and route them.

        Relays whose stream fails are logged and skipped.

        Returns:
            ``(url, frame)`` pairs for the relays that yielded a frame.
        """
        sessions = list(self._sessions.values())
        outcomes = await asyncio.gather(
            *(session.receive() for session in sessions), return_exceptions=True
        )

        frames: list[tuple[str, Frame]] = []
        for session, outcome in zip(sessions, outcomes, strict=True):
            if isinstance(outcome, ReceiveError):
                self._logger.warning("relay_stream_failed", url=session.url, error=str(outcome))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            self._dispatch(session.url, outcome)
            frames.append((session.url, outcome))
        return frames

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        """Connect the configured relays on context entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Close all relays on context exit."""
        await self.close()

    def __len__(self) -> int:
        return len(self._sessions)

    def __repr__(self) -> str:
        return f"Client(relays={len(self._sessions)}, subscriptions={len(self._subscriptions)})"
