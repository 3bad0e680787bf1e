"""Tests for the room signaling channel and the in-memory hub."""

import asyncio

import pytest

from linguaroom.rtc.channel import ChannelState, RoomSignalingChannel
from linguaroom.rtc.transports import BroadcastTransport, InMemoryHub, WebSocketTransport
from linguaroom.tests.fakes import GatedTransport


class Recorder:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event, payload):
        self.events.append((event, payload))


class FailingTransport(BroadcastTransport):
    async def subscribe(self, topic, handler):
        raise ConnectionError("refused")

    async def send(self, topic, event, payload):
        raise AssertionError("never attached")

    async def unsubscribe(self, topic):
        raise AssertionError("never attached")


@pytest.mark.asyncio
async def test_attach_announces_join_to_others_only():
    hub = InMemoryHub()
    observer = Recorder()
    await hub.transport().subscribe("room:r1", observer)

    own = Recorder()
    channel = RoomSignalingChannel(hub.transport(), "r1", "alice")
    await channel.attach(own)

    assert channel.state is ChannelState.ATTACHED
    assert observer.events == [("user-joined", {"userId": "alice"})]
    assert own.events == []


@pytest.mark.asyncio
async def test_topics_are_scoped_per_room():
    hub = InMemoryHub()
    other_room = Recorder()
    await hub.transport().subscribe("room:r2", other_room)

    channel = RoomSignalingChannel(hub.transport(), "r1", "alice")
    await channel.attach(Recorder())
    assert other_room.events == []


@pytest.mark.asyncio
async def test_detach_announces_leave_and_stops_delivery():
    hub = InMemoryHub()
    observer_transport = hub.transport()
    observer = Recorder()
    await observer_transport.subscribe("room:r1", observer)

    inbound = Recorder()
    channel = RoomSignalingChannel(hub.transport(), "r1", "alice")
    await channel.attach(inbound)
    await channel.detach()

    assert channel.state is ChannelState.DETACHED
    assert observer.events[-1] == ("user-left", {"userId": "alice"})
    assert hub.subscribers("room:r1") == 1

    await observer_transport.send("room:r1", "user-joined", {"userId": "bob"})
    assert inbound.events == []

    # publishing after detach goes nowhere; detach again is harmless
    await channel.publish("offer", {"signal": 1, "caller": "alice", "target": "bob"})
    await channel.detach()
    assert observer.events[-1] == ("user-left", {"userId": "alice"})


@pytest.mark.asyncio
async def test_attach_twice_rejected():
    channel = RoomSignalingChannel(InMemoryHub().transport(), "r1", "alice")
    await channel.attach(Recorder())
    with pytest.raises(RuntimeError):
        await channel.attach(Recorder())


@pytest.mark.asyncio
async def test_subscribe_failure_is_terminal_not_fatal():
    channel = RoomSignalingChannel(FailingTransport(), "r1", "alice")
    await channel.attach(Recorder())
    assert channel.state is ChannelState.DETACHED
    await channel.publish("user-joined", {"userId": "alice"})
    await channel.detach()


@pytest.mark.asyncio
async def test_hub_delivers_copies():
    hub = InMemoryHub()
    first, second = Recorder(), Recorder()
    await hub.transport().subscribe("room:r1", first)
    await hub.transport().subscribe("room:r1", second)

    payload = {"signal": {"sdp": "x"}, "caller": "a", "target": "b"}
    await hub.transport().send("room:r1", "offer", payload)
    first.events[0][1]["signal"]["sdp"] = "mutated"
    assert second.events[0][1]["signal"]["sdp"] == "x"


@pytest.mark.asyncio
async def test_hub_forgets_empty_topics():
    hub = InMemoryHub()
    transport = hub.transport()
    await transport.subscribe("room:r1", Recorder())
    assert hub.subscribers("room:r1") == 1
    await transport.unsubscribe("room:r1")
    assert hub.subscribers("room:r1") == 0


def test_websocket_url_for_topic():
    transport = WebSocketTransport("ws://localhost:8000/", "alice")
    assert transport.url_for("room:42") == "ws://localhost:8000/ws/rooms/42?user_id=alice"
    with pytest.raises(ValueError):
        transport.url_for("lobby")


def test_websocket_url_for_escapes_user_id():
    transport = WebSocketTransport("ws://localhost:8000", "a b&c")
    assert transport.url_for("room:7") == "ws://localhost:8000/ws/rooms/7?user_id=a+b%26c"


@pytest.mark.asyncio
async def test_websocket_send_before_subscribe_is_dropped():
    transport = WebSocketTransport("ws://localhost:8000", "alice", heartbeat_interval=0)
    await transport.send("room:42", "user-joined", {"userId": "alice"})
    await transport.unsubscribe("room:42")


@pytest.mark.asyncio
async def test_detach_during_pending_subscribe_releases_topic():
    hub = InMemoryHub()
    observer = Recorder()
    await hub.transport().subscribe("room:r1", observer)

    channel = RoomSignalingChannel(GatedTransport(hub), "r1", "alice")
    attaching = asyncio.create_task(channel.attach(Recorder()))
    await channel._transport.entered.wait()
    await channel.detach()
    channel._transport.gate.set()
    await attaching

    assert channel.state is ChannelState.DETACHED
    assert hub.subscribers("room:r1") == 1
    assert observer.events == []
