"""Peer manager behaviour, driven directly without a session or transport."""

import pytest

from linguaroom.rtc.media import LocalStream
from linguaroom.rtc.peers import LocalSignal, PeerManager, StreamArrived
from linguaroom.tests.fakes import FakeConnection, FakeTrack


class RecordingChannel:
    def __init__(self):
        self.published: list[tuple[str, dict]] = []

    async def publish(self, event, payload):
        self.published.append((event, payload))


class Harness:
    def __init__(self, local_id="b", initiate_on_join=True, stream=None):
        self.channel = RecordingChannel()
        self.posted = []
        self.changes = []
        self.stream = stream
        self.manager = PeerManager(
            local_id,
            self.channel,
            FakeConnection,
            stream_provider=lambda: self.stream,
            post=self.posted.append,
            initiate_on_join=initiate_on_join,
            on_peers_changed=self.changes.append,
        )

    async def pump(self):
        """Feed posted connection events back in, as the session dispatcher would."""
        while self.posted:
            await self.manager.handle_connection_event(self.posted.pop(0))


@pytest.fixture()
def h():
    return Harness()


# ---------------------------------------------------------------------------
# user-joined / user-left
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_join_creates_single_initiating_record(h):
    await h.manager.handle_user_joined("c")
    record = h.manager.get("c")
    assert record is not None
    assert record.initiator is True
    assert record.connection.started is True
    assert len(h.manager) == 1

    await h.pump()
    assert h.channel.published == [
        ("offer", {"signal": {"type": "offer", "sdp": f"offer-{record.connection.id}"}, "caller": "b", "target": "c"})
    ]


@pytest.mark.asyncio
async def test_join_for_self_ignored(h):
    await h.manager.handle_user_joined("b")
    assert len(h.manager) == 0


@pytest.mark.asyncio
async def test_repeated_join_keeps_at_most_one_record(h):
    for _ in range(3):
        await h.manager.handle_user_joined("c")
        assert len(h.manager) == 1
    connections = FakeConnection.created[-3:]
    assert [c.closed for c in connections] == [True, True, False]
    assert h.manager.get("c").connection is connections[-1]


@pytest.mark.asyncio
async def test_join_leave_sequences_never_duplicate(h):
    for event in ["join", "join", "leave", "leave", "join", "leave", "join", "join"]:
        if event == "join":
            await h.manager.handle_user_joined("x")
        else:
            await h.manager.handle_user_left("x")
        assert len([p for p in h.manager.peers if p.remote_id == "x"]) <= 1
    assert "x" in h.manager


@pytest.mark.asyncio
async def test_leave_closes_and_removes(h):
    await h.manager.handle_user_joined("c")
    connection = h.manager.get("c").connection
    await h.manager.handle_user_left("c")
    assert "c" not in h.manager
    assert connection.closed is True


@pytest.mark.asyncio
async def test_leave_unknown_is_noop(h):
    await h.manager.handle_user_joined("c")
    changes = len(h.changes)
    await h.manager.handle_user_left("nobody")
    assert [p.remote_id for p in h.manager.peers] == ["c"]
    assert len(h.changes) == changes


@pytest.mark.asyncio
async def test_passive_join_creates_non_initiating_record():
    h = Harness(initiate_on_join=False)
    await h.manager.handle_user_joined("c")
    record = h.manager.get("c")
    assert record.initiator is False
    assert record.connection.started is False
    await h.pump()
    assert h.channel.published == []


@pytest.mark.asyncio
async def test_local_stream_attached_to_new_connections():
    stream = LocalStream([FakeTrack()])
    h = Harness(stream=stream)
    await h.manager.handle_user_joined("c")
    assert h.manager.get("c").connection.local_stream is stream


# ---------------------------------------------------------------------------
# offer / answer
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_offer_for_us_creates_responder_and_answers(h):
    offer = {"type": "offer", "sdp": "remote-offer"}
    await h.manager.handle_offer(offer, caller="a", target="b")
    record = h.manager.get("a")
    assert record.initiator is False
    assert record.connection.received == [offer]

    await h.pump()
    event, payload = h.channel.published[0]
    assert event == "answer"
    assert payload["caller"] == "b"
    assert payload["target"] == "a"
    assert record.remote_stream is not None


@pytest.mark.asyncio
async def test_offer_for_someone_else_ignored(h):
    await h.manager.handle_offer({"type": "offer"}, caller="a", target="z")
    assert len(h.manager) == 0


@pytest.mark.asyncio
async def test_offer_reuses_fresh_passive_record():
    h = Harness(initiate_on_join=False)
    await h.manager.handle_user_joined("a")
    connection = h.manager.get("a").connection
    await h.manager.handle_offer({"type": "offer", "sdp": "o"}, caller="a", target="b")
    assert h.manager.get("a").connection is connection
    assert connection.received == [{"type": "offer", "sdp": "o"}]


@pytest.mark.asyncio
async def test_second_offer_replaces_record(h):
    await h.manager.handle_offer({"type": "offer", "sdp": "1"}, caller="a", target="b")
    first = h.manager.get("a").connection
    await h.manager.handle_offer({"type": "offer", "sdp": "2"}, caller="a", target="b")
    assert first.closed is True
    assert h.manager.get("a").connection is not first
    assert len(h.manager) == 1


@pytest.mark.asyncio
async def test_answer_completes_handshake(h):
    await h.manager.handle_user_joined("c")
    await h.pump()
    record = h.manager.get("c")
    await h.manager.handle_answer({"type": "answer", "sdp": "x"}, caller="c", target="b")
    await h.pump()
    assert record.remote_stream is not None
    assert h.changes[-1] == [record]


@pytest.mark.asyncio
async def test_answer_without_record_dropped(h):
    await h.manager.handle_answer({"type": "answer"}, caller="z")
    assert len(h.manager) == 0
    assert h.posted == []


@pytest.mark.asyncio
async def test_answer_addressed_elsewhere_ignored(h):
    await h.manager.handle_user_joined("c")
    connection = h.manager.get("c").connection
    await h.manager.handle_answer({"type": "answer"}, caller="c", target="someone-else")
    assert connection.received == []


@pytest.mark.asyncio
async def test_answer_to_responder_record_ignored(h):
    await h.manager.handle_offer({"type": "offer"}, caller="a", target="b")
    connection = h.manager.get("a").connection
    await h.manager.handle_answer({"type": "answer"}, caller="a")
    assert connection.received == [{"type": "offer"}]


# ---------------------------------------------------------------------------
# glare
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_glare_smaller_id_keeps_its_offer():
    h = Harness(local_id="a")
    await h.manager.handle_user_joined("b")
    ours = h.manager.get("b").connection
    await h.manager.handle_offer({"type": "offer", "sdp": "theirs"}, caller="b", target="a")
    assert h.manager.get("b").connection is ours
    assert ours.received == []


@pytest.mark.asyncio
async def test_glare_larger_id_answers_theirs():
    h = Harness(local_id="b")
    await h.manager.handle_user_joined("a")
    ours = h.manager.get("a").connection
    await h.manager.handle_offer({"type": "offer", "sdp": "theirs"}, caller="a", target="b")
    record = h.manager.get("a")
    assert ours.closed is True
    assert record.initiator is False
    assert record.connection.received == [{"type": "offer", "sdp": "theirs"}]


# ---------------------------------------------------------------------------
# connection events
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_events_from_retired_connection_dropped(h):
    await h.manager.handle_user_joined("c")
    connection = h.manager.get("c").connection
    await h.manager.handle_user_left("c")
    h.posted.clear()

    await h.manager.handle_connection_event(LocalSignal(connection, {"type": "offer"}))
    await h.manager.handle_connection_event(StreamArrived(connection, object()))
    assert h.channel.published == []
    assert len(h.manager) == 0


@pytest.mark.asyncio
async def test_failed_connection_lingers_until_leave(h):
    await h.manager.handle_user_joined("c")
    h.manager.get("c").connection.fail()
    await h.pump()
    assert "c" in h.manager
    await h.manager.handle_user_left("c")
    assert "c" not in h.manager


@pytest.mark.asyncio
async def test_teardown_closes_everything(h):
    for peer in ("c", "d", "e"):
        await h.manager.handle_user_joined(peer)
    connections = [p.connection for p in h.manager.peers]
    await h.manager.teardown()
    assert len(h.manager) == 0
    assert all(c.closed for c in connections)
    assert h.changes[-1] == []
