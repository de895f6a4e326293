"""
Unit tests for client.client module.

Tests:
- Relay registry: add_relay(), remove_relay(), connect(), close()
- publish() per-relay results, partial success and PublishingError
- subscribe() / unsubscribe() wire frames and ids
- collect_until_complete() EOSE correlation, timeout, stream failure,
  filtering of malformed frames and cross-relay deduplication
- next_frames() routing of EVENT, EOSE, CLOSED, OK and NOTICE frames
- Construction from dict and YAML, async context manager
"""

import asyncio
import dataclasses
import json
import logging

import pytest

from nostrkit.client import BroadcastResult, Client, ClientConfig, SubscriptionState
from nostrkit.core.exceptions import (
    AlreadyConnectedError,
    InvalidRelayUrlError,
    PublishingError,
    RelayConnectionError,
    RelayNotFoundError,
    SendError,
    SignatureVerificationError,
    SubscriptionNotFoundError,
)
from nostrkit.models import SubscriptionFilter


A = "wss://a.example"
B = "wss://b.example"
C = "wss://c.example"

NOTES = SubscriptionFilter(kinds=[1])


def event_frame(subscription_id, event, *, compact=True):
    separators = (",", ":") if compact else (", ", ": ")
    return json.dumps(["EVENT", subscription_id, event.to_dict()], separators=separators)


def eose_frame(subscription_id):
    return json.dumps(["EOSE", subscription_id])


def relay_script(*events, eose=True, **kwargs):
    """Answer each REQ with the stored *events* and, optionally, EOSE."""

    def script(transport, frame):
        if frame[0] != "REQ":
            return
        subscription_id = frame[1]
        transport.push(*(event_frame(subscription_id, event, **kwargs) for event in events))
        if eose:
            transport.push(eose_frame(subscription_id))

    return script


async def _connect(client, *urls):
    for url in urls:
        await client.add_relay(url)


# =============================================================================
# Relay Registry Tests
# =============================================================================


class TestAddRelay:
    """add_relay()."""

    async def test_registers_normalized_url(self, client, network):
        relay = await client.add_relay("WSS://A.example:443/")
        assert relay.url == A
        assert client.relays == [A]
        assert client.session(A).url == A
        assert A in network.transports

    async def test_duplicate_rejected(self, client):
        await client.add_relay(A)
        with pytest.raises(AlreadyConnectedError):
            await client.add_relay(A)
        assert len(client) == 1

    async def test_duplicate_after_normalization(self, client):
        await client.add_relay(A)
        with pytest.raises(AlreadyConnectedError):
            await client.add_relay("wss://A.EXAMPLE/")

    async def test_concurrent_duplicate(self, client):
        results = await asyncio.gather(
            client.add_relay(A), client.add_relay(A), return_exceptions=True
        )
        assert sum(isinstance(r, AlreadyConnectedError) for r in results) == 1
        assert client.relays == [A]

    async def test_invalid_url(self, client):
        with pytest.raises(InvalidRelayUrlError):
            await client.add_relay("https://a.example")
        assert len(client) == 0

    async def test_handshake_failure(self, network, client):
        network.unreachable.add(A)
        with pytest.raises(RelayConnectionError):
            await client.add_relay(A)
        assert len(client) == 0
        await client.add_relay(B)


class TestRemoveRelay:
    """remove_relay()."""

    async def test_closes_and_drops(self, client, network):
        await client.add_relay(A)
        await client.remove_relay(A)
        assert network[A].closed
        assert client.relays == []

    async def test_unknown(self, client):
        with pytest.raises(RelayNotFoundError):
            await client.remove_relay(A)

    async def test_session_lookup_after_remove(self, client):
        await client.add_relay(A)
        await client.remove_relay(A)
        with pytest.raises(RelayNotFoundError):
            client.session(A)

    async def test_url_reusable_after_remove(self, client):
        await client.add_relay(A)
        await client.remove_relay(A)
        await client.add_relay(A)
        assert client.relays == [A]


class TestConnectAndClose:
    """connect(), close() and the async context manager."""

    async def test_connect_reports_failures(self, network):
        network.unreachable.add(B)
        client = Client(ClientConfig(relays=[A, B, C]), transport_factory=network)

        result = await client.connect()

        assert set(result.sent) == {A, C}
        assert list(result.failed) == [B]
        assert isinstance(result.failed[B], RelayConnectionError)
        assert set(client.relays) == {A, C}

    async def test_connect_skips_registered(self, network):
        client = Client(ClientConfig(relays=[A, B]), transport_factory=network)
        await client.add_relay(A)
        result = await client.connect()
        assert result.sent == (B,)

    async def test_close(self, client, network):
        await _connect(client, A, B)
        await client.subscribe(NOTES, "s")
        await client.close()
        assert network[A].closed and network[B].closed
        assert len(client) == 0
        assert client.subscription("s") is None

    async def test_context_manager(self, network):
        config = ClientConfig(relays=[A, B])
        async with Client(config, transport_factory=network) as client:
            assert set(client.relays) == {A, B}
        assert network[A].closed and network[B].closed

    def test_from_dict(self, network):
        client = Client.from_dict({"relays": [A], "fetch_timeout": 2}, transport_factory=network)
        assert client.config.relays == [A]
        assert client.config.fetch_timeout == 2.0

    def test_from_yaml(self, tmp_path, network):
        path = tmp_path / "client.yaml"
        path.write_text(f"relays:\n  - {A}/\nverify_signatures: false\n", encoding="utf-8")
        client = Client.from_yaml(path, transport_factory=network)
        assert client.config.relays == [A]
        assert client.config.verify_signatures is False

    def test_repr(self, client):
        assert repr(client) == "Client(relays=0, subscriptions=0)"


# =============================================================================
# Publish Tests
# =============================================================================


class TestPublish:
    """publish()."""

    async def test_broadcast(self, client, network, signed_event):
        await _connect(client, A, B, C)

        result = await client.publish(signed_event)

        assert result == BroadcastResult(sent=(A, B, C))
        assert result.success and result.complete
        for url in (A, B, C):
            assert network[url].sent_frames() == [["EVENT", signed_event.to_dict()]]
            assert client.session(url).unacknowledged == [signed_event.id]

    async def test_partial_success(self, client, network, signed_event):
        await _connect(client, A, B, C)
        network[C].fail_send = True

        result = await client.publish(signed_event)

        assert result.sent == (A, B)
        assert isinstance(result.failed[C], SendError)
        assert result.success
        assert not result.complete
        assert network[A].sent and network[B].sent

    async def test_all_failed(self, client, network, signed_event):
        await _connect(client, A, B)
        network[A].fail_send = True
        network[B].fail_send = True

        with pytest.raises(PublishingError) as exc_info:
            await client.publish(signed_event)

        assert set(exc_info.value.result.failed) == {A, B}
        assert exc_info.value.result.sent == ()

    async def test_no_relays(self, client, signed_event):
        with pytest.raises(PublishingError, match="No relays"):
            await client.publish(signed_event)

    async def test_invalid_event_not_sent(self, client, network, signed_event):
        await _connect(client, A)
        tampered = dataclasses.replace(signed_event, content="forged")

        with pytest.raises(SignatureVerificationError):
            await client.publish(tampered)
        assert network[A].sent == []

    async def test_ok_acknowledges(self, client, network, signed_event):
        await _connect(client, A)
        await client.publish(signed_event)

        network[A].push(json.dumps(["OK", signed_event.id, True, ""]))
        await client.next_frames()

        assert client.session(A).unacknowledged == []


# =============================================================================
# Subscribe / Unsubscribe Tests
# =============================================================================


class TestSubscribe:
    """subscribe() and unsubscribe()."""

    async def test_req_frame(self, client, network):
        await _connect(client, A, B)
        filters = [SubscriptionFilter(kinds=[1], limit=5), SubscriptionFilter(authors=["ab"])]

        subscription_id = await client.subscribe(filters, "feed")

        assert subscription_id == "feed"
        expected = ["REQ", "feed", {"kinds": [1], "limit": 5}, {"authors": ["ab"]}]
        assert network[A].sent_frames() == [expected]
        assert network[B].sent_frames() == [expected]

    async def test_single_filter(self, client, network):
        await _connect(client, A)
        await client.subscribe(NOTES, "one")
        assert network[A].sent_frames() == [["REQ", "one", {"kinds": [1]}]]

    async def test_random_id(self, client):
        first = await client.subscribe(NOTES)
        second = await client.subscribe(NOTES)
        assert len(first) == 32
        int(first, 16)
        assert first != second

    async def test_returns_before_response(self, client, network):
        await _connect(client, A)
        subscription_id = await client.subscribe(NOTES)
        assert client.subscription(subscription_id).state == SubscriptionState.REQUESTED

    async def test_empty_filters(self, client):
        with pytest.raises(ValueError, match="filter"):
            await client.subscribe([])

    async def test_empty_id(self, client):
        with pytest.raises(ValueError):
            await client.subscribe(NOTES, "")

    async def test_failed_relay_excluded(self, client, network):
        await _connect(client, A, B)
        network[B].fail_send = True
        await client.subscribe(NOTES, "s")
        assert client.subscription("s").relays == frozenset({A})

    async def test_unsubscribe(self, client, network):
        await _connect(client, A, B)
        await client.subscribe(NOTES, "s")

        result = await client.unsubscribe("s")

        assert set(result.sent) == {A, B}
        assert network[A].sent_frames()[-1] == ["CLOSE", "s"]
        assert client.subscription("s").state == SubscriptionState.CLOSED

    async def test_unsubscribe_idempotent(self, client, network):
        await _connect(client, A)
        await client.unsubscribe("never")
        await client.unsubscribe("never")
        assert network[A].sent_frames() == [["CLOSE", "never"], ["CLOSE", "never"]]


# =============================================================================
# Buffer Tests
# =============================================================================


class TestBuffers:
    """record_inbound() and drain()."""

    def test_dedup(self, client, signed_event):
        frame = event_frame("s", signed_event)
        assert client.record_inbound("s", frame) is True
        assert client.record_inbound("s", frame) is False
        assert client.drain("s") == [frame]

    def test_drain_unknown(self, client):
        with pytest.raises(SubscriptionNotFoundError):
            client.drain("never")


# =============================================================================
# collect_until_complete() Tests
# =============================================================================


class TestCollectUntilComplete:
    """The fetch-and-wait protocol."""

    async def test_waits_for_every_relay(self, client, network, make_event):
        await _connect(client, A, B, C)
        first, second, third = make_event("1"), make_event("2"), make_event("3")
        network[A].script = relay_script(first)
        network[B].script = relay_script(second)
        network[C].script = relay_script(third)

        events = await client.collect_until_complete([NOTES], timeout=2.0)

        assert sorted(e.content for e in events) == ["1", "2", "3"]
        for url in (A, B, C):
            frames = network[url].sent_frames()
            assert frames[0][0] == "REQ"
            assert frames[-1] == ["CLOSE", frames[0][1]]

    async def test_completion_requires_all_eose(self, client, network, make_event):
        await _connect(client, A, B)
        network[A].script = relay_script(make_event("a"))
        task = asyncio.create_task(client.collect_until_complete(NOTES, subscription_id="s"))

        await asyncio.sleep(0.05)
        assert not task.done()
        assert client.subscription("s").state == SubscriptionState.PARTIALLY_COMPLETE

        network[B].push(event_frame("s", make_event("b")), eose_frame("s"))
        events = await asyncio.wait_for(task, timeout=2.0)
        assert sorted(e.content for e in events) == ["a", "b"]

    async def test_timeout_returns_partial_result(self, client, network, make_event, caplog):
        await _connect(client, A, B, C)
        network[A].script = relay_script(make_event("a"))
        network[B].script = relay_script(make_event("b"), eose=False)
        network[C].script = relay_script(make_event("c"))

        with caplog.at_level(logging.WARNING, logger="nostrkit.client"):
            events = await client.collect_until_complete(NOTES, timeout=0.2)

        assert sorted(e.content for e in events) == ["a", "b", "c"]
        assert "fetch_timeout" in caplog.text
        assert network[B].sent_frames()[-1][0] == "CLOSE"

    async def test_timeout_from_config(self, network, make_event):
        client = Client(ClientConfig(fetch_timeout=0.1), transport_factory=network)
        await _connect(client, A)

        events = await asyncio.wait_for(client.collect_until_complete(NOTES), timeout=2.0)

        assert events == []

    async def test_failed_stream_counts_as_done(self, client, network, make_event):
        await _connect(client, A, B)
        network[A].script = relay_script(make_event("a"))

        def disconnect(transport, frame):
            if frame[0] == "REQ":
                transport.disconnect()

        network[B].script = disconnect

        events = await asyncio.wait_for(client.collect_until_complete(NOTES), timeout=2.0)
        assert [e.content for e in events] == ["a"]

    async def test_relay_closed_subscription(self, client, network, make_event):
        await _connect(client, A, B)
        network[A].script = relay_script(make_event("a"))

        def refuse(transport, frame):
            if frame[0] == "REQ":
                transport.push(json.dumps(["CLOSED", frame[1], "auth-required: login"]))

        network[B].script = refuse

        events = await asyncio.wait_for(client.collect_until_complete(NOTES), timeout=2.0)
        assert [e.content for e in events] == ["a"]

    async def test_cross_relay_duplicates_returned_once(self, client, network, make_event):
        await _connect(client, A, B)
        shared = make_event("shared")
        network[A].script = relay_script(shared)
        network[B].script = relay_script(shared, compact=False)

        events = await client.collect_until_complete(NOTES, timeout=2.0)

        assert events == [shared]

    async def test_malformed_frames_discarded(self, client, network, make_event, signed_event):
        await _connect(client, A)
        good = make_event("good")
        forged = dataclasses.replace(make_event("x"), content="forged")

        def script(transport, frame):
            if frame[0] != "REQ":
                return
            sub = frame[1]
            transport.push(
                "not json",
                b'["EVENT","' + sub.encode() + b'",{}]',
                json.dumps(["EVENT", sub, {"id": "missing fields"}]),
                json.dumps(["EVENT", sub]),
                event_frame(sub, forged),
                event_frame("other-subscription", signed_event),
                json.dumps(["NOTICE", "slow down"]),
                json.dumps(["AUTH", "challenge"]),
                json.dumps({"EVENT": sub}),
                event_frame(sub, good),
                eose_frame(sub),
            )

        network[A].script = script

        events = await client.collect_until_complete(NOTES, timeout=2.0)

        assert events == [good]
        assert client.drain("other-subscription") == [event_frame("other-subscription", signed_event)]

    async def test_unencodable_event_discarded(self, client, network, make_event):
        await _connect(client, A)
        good = make_event("good")
        broken = {**make_event("x").to_dict(), "content": "\ud800"}

        def script(transport, frame):
            if frame[0] == "REQ":
                sub = frame[1]
                transport.push(
                    json.dumps(["EVENT", sub, broken]),
                    event_frame(sub, good),
                    eose_frame(sub),
                )

        network[A].script = script

        events = await client.collect_until_complete(NOTES, timeout=2.0)

        assert events == [good]

    async def test_verification_can_be_disabled(self, network, make_event):
        client = Client(ClientConfig(verify_signatures=False), transport_factory=network)
        await _connect(client, A)
        forged = dataclasses.replace(make_event("x"), content="forged")
        network[A].script = relay_script(forged)

        events = await client.collect_until_complete(NOTES, timeout=2.0)

        assert events == [forged]

    async def test_no_relays(self, client):
        assert await client.collect_until_complete(NOTES, timeout=1.0) == []

    async def test_subscription_removed_after_fetch(self, client, network):
        await _connect(client, A)
        network[A].script = relay_script()

        await client.collect_until_complete(NOTES, subscription_id="s", timeout=2.0)

        assert client.subscription("s") is None

    async def test_cancellation_propagates(self, client, network):
        await _connect(client, A)
        task = asyncio.create_task(
            client.collect_until_complete(NOTES, subscription_id="s", timeout=None)
        )
        await asyncio.sleep(0.05)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert client.subscription("s") is None
        assert network[A].sent_frames()[-1] == ["CLOSE", "s"]

    async def test_late_frames_after_fetch_not_buffered(self, client, network, make_event):
        await _connect(client, A)

        def script(transport, frame):
            if frame[0] == "REQ":
                transport.push(eose_frame(frame[1]), event_frame(frame[1], make_event("live")))

        network[A].script = script

        for _ in range(3):
            await client.collect_until_complete(NOTES, timeout=2.0)
            await client.next_frames()

        assert "subscriptions=0" in repr(client)

    async def test_events_after_eose_not_waited_for(self, client, network, make_event):
        await _connect(client, A)

        def script(transport, frame):
            if frame[0] == "REQ":
                transport.push(eose_frame(frame[1]), event_frame(frame[1], make_event("live")))

        network[A].script = script

        events = await client.collect_until_complete(NOTES, timeout=2.0)

        assert events == []
        assert network[A].inbox.qsize() == 1


# =============================================================================
# next_frames() Tests
# =============================================================================


class TestNextFrames:
    """One routed frame per relay."""

    async def test_routes_events(self, client, network, signed_event):
        await _connect(client, A, B)
        network[A].push(event_frame("s", signed_event))
        network[B].push(json.dumps(["NOTICE", "hello"]))

        frames = await client.next_frames()

        assert dict(frames) == {A: event_frame("s", signed_event), B: '["NOTICE", "hello"]'}
        assert client.drain("s") == [event_frame("s", signed_event)]

    async def test_late_relay_eose_ignored(self, client, network):
        await _connect(client, A)
        await client.subscribe(NOTES, "s")
        await client.add_relay(B)

        network[A].push(json.dumps(["NOTICE", "tick"]))
        network[B].push(eose_frame("s"))
        await client.next_frames()

        assert client.subscription("s").state == SubscriptionState.REQUESTED
        assert client.subscription("s").relays == frozenset({A})

    async def test_eose_for_unknown_subscription_ignored(self, client, network):
        await _connect(client, A)
        network[A].push(eose_frame("ghost"))
        await client.next_frames()
        assert client.subscription("ghost") is None

    async def test_failed_relay_skipped(self, client, network):
        await _connect(client, A, B)
        network[A].disconnect()
        network[B].push(json.dumps(["NOTICE", "x"]))

        frames = await client.next_frames()

        assert [url for url, _ in frames] == [B]
