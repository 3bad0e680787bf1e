"""
Peer manager — one record per remote participant, driven by room events.

Every handler here runs on the session's dispatcher, one event at a time, so
the record map needs no locking.  Connection callbacks never touch the map
directly: they are posted back to the dispatcher as ``LocalSignal`` /
``StreamArrived`` / ``ConnectionFailed`` events and resolved against the
record that currently owns the connection.  A connection that has been
retired therefore cannot publish or attach a stream.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from linguaroom.core import events
from linguaroom.rtc.connection import ConnectionFactory, PeerConnection, RemoteStream
from linguaroom.rtc.media import LocalStream

logger = logging.getLogger(__name__)


@dataclass
class PeerRecord:
    remote_id: str
    connection: PeerConnection
    remote_stream: RemoteStream | None = None
    # Set once a remote offer has been fed to a non-initiating record.
    offer_received: bool = False

    @property
    def initiator(self) -> bool:
        return self.connection.initiator


@dataclass
class LocalSignal:
    connection: PeerConnection
    data: Any


@dataclass
class StreamArrived:
    connection: PeerConnection
    stream: RemoteStream


@dataclass
class ConnectionFailed:
    connection: PeerConnection
    error: Exception


ConnectionEvent = LocalSignal | StreamArrived | ConnectionFailed


class Publisher(Protocol):
    """What the manager needs from the signaling channel."""

    async def publish(self, event: str, payload: dict) -> None: ...


class PeerManager:
    def __init__(
        self,
        local_id: str,
        channel: Publisher,
        connection_factory: ConnectionFactory,
        stream_provider: Callable[[], LocalStream | None],
        post: Callable[[ConnectionEvent], None],
        initiate_on_join: bool = True,
        on_peers_changed: Callable[[list[PeerRecord]], None] | None = None,
    ) -> None:
        self.local_id = local_id
        self._channel = channel
        self._factory = connection_factory
        self._stream_provider = stream_provider
        self._post = post
        self._initiate_on_join = initiate_on_join
        self._on_peers_changed = on_peers_changed
        self._records: dict[str, PeerRecord] = {}

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    @property
    def peers(self) -> list[PeerRecord]:
        return list(self._records.values())

    def get(self, remote_id: str) -> PeerRecord | None:
        return self._records.get(remote_id)

    def __contains__(self, remote_id: str) -> bool:
        return remote_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def _owner_of(self, connection: PeerConnection) -> PeerRecord | None:
        for record in self._records.values():
            if record.connection is connection:
                return record
        return None

    def _changed(self) -> None:
        if self._on_peers_changed is not None:
            try:
                self._on_peers_changed(self.peers)
            except Exception:
                logger.exception("on_peers_changed listener failed")

    # ------------------------------------------------------------------
    # Record lifecycle
    # ------------------------------------------------------------------

    async def _create(self, remote_id: str, initiator: bool) -> PeerRecord:
        await self._retire(remote_id, notify=False)

        connection = self._factory(initiator, self._stream_provider())
        connection.bind(
            on_signal=lambda data: self._post(LocalSignal(connection, data)),
            on_stream=lambda stream: self._post(StreamArrived(connection, stream)),
            on_failure=lambda exc: self._post(ConnectionFailed(connection, exc)),
        )
        record = PeerRecord(remote_id=remote_id, connection=connection)
        self._records[remote_id] = record
        logger.info("Peer %s added (initiator=%s)", remote_id, initiator)
        if initiator:
            connection.start()
        self._changed()
        return record

    async def _retire(self, remote_id: str, notify: bool = True) -> bool:
        record = self._records.pop(remote_id, None)
        if record is None:
            return False
        try:
            await record.connection.close()
        except Exception as exc:
            logger.warning("Closing connection to %s failed: %s", remote_id, exc)
        logger.info("Peer %s removed", remote_id)
        if notify:
            self._changed()
        return True

    # ------------------------------------------------------------------
    # Room events
    # ------------------------------------------------------------------

    async def handle_user_joined(self, user_id: str) -> None:
        if user_id == self.local_id:
            return
        await self._create(user_id, initiator=self._initiate_on_join)

    async def handle_user_left(self, user_id: str) -> None:
        if not await self._retire(user_id):
            logger.debug("user-left for unknown peer %s ignored", user_id)

    async def handle_offer(self, signal: Any, caller: str, target: str) -> None:
        if target != self.local_id or caller == self.local_id:
            return

        record = self._records.get(caller)
        if record is not None and record.initiator and record.remote_stream is None:
            # Both sides offered.  The smaller id keeps its offer.
            if self.local_id < caller:
                logger.info("Offer glare with %s: keeping our offer", caller)
                return
            logger.info("Offer glare with %s: answering theirs", caller)
            record = None
        elif record is not None and (record.initiator or record.offer_received):
            record = None

        if record is None:
            record = await self._create(caller, initiator=False)
        record.offer_received = True
        record.connection.signal(signal)

    async def handle_answer(self, signal: Any, caller: str, target: str | None = None) -> None:
        if target is not None and target != self.local_id:
            return
        record = self._records.get(caller)
        if record is None or not record.initiator:
            logger.debug("Stale answer from %s dropped", caller)
            return
        record.connection.signal(signal)

    # ------------------------------------------------------------------
    # Connection events
    # ------------------------------------------------------------------

    async def handle_connection_event(self, event: ConnectionEvent) -> None:
        record = self._owner_of(event.connection)
        if record is None:
            logger.debug("Event from retired connection dropped: %s", type(event).__name__)
            return

        if isinstance(event, LocalSignal):
            name = events.OFFER if record.initiator else events.ANSWER
            await self._channel.publish(
                name,
                {"signal": event.data, "caller": self.local_id, "target": record.remote_id},
            )
        elif isinstance(event, StreamArrived):
            record.remote_stream = event.stream
            logger.info("Remote audio from %s arrived", record.remote_id)
            self._changed()
        elif isinstance(event, ConnectionFailed):
            # The record stays until the peer leaves; there is no retry.
            logger.warning("Connection to %s failed: %s", record.remote_id, event.error)

    async def teardown(self) -> None:
        for remote_id in list(self._records):
            await self._retire(remote_id, notify=False)
        self._changed()
