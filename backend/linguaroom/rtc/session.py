"""
Room session — the explicit lifecycle for one user's audio presence in a room.

    session = RoomSession(transport, MicrophoneDevice(), AiortcPeerConnection)
    await session.start(room_id, user_id)
    session.toggle_mute()
    ...
    await session.stop()

or, scoped:

    async with room_session(transport, device, factory, room_id, user_id) as session:
        ...

Inbound room events and connection callbacks are queued and handled by a
single dispatcher task, one at a time and to completion.  ``stop()`` is the
only way out: it releases the microphone, closes every peer connection and
detaches from the room topic, and from then on nothing reaches the session.
"""

import asyncio
import enum
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from pydantic import ValidationError

from linguaroom.config import settings
from linguaroom.core import events
from linguaroom.rtc.channel import RoomSignalingChannel
from linguaroom.rtc.connection import ConnectionFactory
from linguaroom.rtc.media import LocalMediaController, MediaDevice
from linguaroom.rtc.peers import ConnectionEvent, PeerManager, PeerRecord
from linguaroom.rtc.transports import BroadcastTransport
from linguaroom.schemas.signaling import AnswerPayload, OfferPayload, PresencePayload, parse_signal

logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """The session was used outside its lifecycle."""


class SessionState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


@dataclass
class RoomEvent:
    event: str
    payload: dict


class RoomSession:
    def __init__(
        self,
        transport: BroadcastTransport,
        device: MediaDevice,
        connection_factory: ConnectionFactory,
        initiate_on_join: bool | None = None,
        await_media: bool | None = None,
        on_peers_changed: Callable[[list[PeerRecord]], None] | None = None,
    ) -> None:
        self._transport = transport
        self._factory = connection_factory
        self._initiate_on_join = settings.RTC_INITIATE_ON_JOIN if initiate_on_join is None else initiate_on_join
        self._await_media = settings.RTC_AWAIT_MEDIA if await_media is None else await_media
        self._on_peers_changed = on_peers_changed

        self.media = LocalMediaController(device)
        self.channel: RoomSignalingChannel | None = None
        self.peer_manager: PeerManager | None = None
        self.state = SessionState.IDLE

        self._queue: asyncio.Queue[RoomEvent | ConnectionEvent] | None = None
        self._dispatcher: asyncio.Task | None = None
        self._media_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def peers(self) -> list[PeerRecord]:
        return self.peer_manager.peers if self.peer_manager is not None else []

    @property
    def is_muted(self) -> bool:
        return self.media.is_muted

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.ACTIVE and self.channel is not None and self.channel.attached

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, room_id: str, local_id: str) -> None:
        if self.state is not SessionState.IDLE:
            raise SessionError(f"Session already {self.state.value}")
        self.state = SessionState.ACTIVE

        self._queue = asyncio.Queue()
        self.channel = RoomSignalingChannel(self._transport, str(room_id), local_id)
        self.peer_manager = PeerManager(
            local_id,
            self.channel,
            self._factory,
            stream_provider=lambda: self.media.stream,
            post=self._enqueue,
            initiate_on_join=self._initiate_on_join,
            on_peers_changed=self._on_peers_changed,
        )
        self._dispatcher = asyncio.create_task(self._dispatch_loop())

        # Opening the microphone is the one slow step; events may be handled meanwhile.
        self._media_task = asyncio.create_task(self.media.start())
        if self._await_media:
            await asyncio.wait({self._media_task})
            if self.state is not SessionState.ACTIVE:
                return

        await self.channel.attach(self._on_room_event)
        if self.state is not SessionState.ACTIVE:
            # stop() ran while attaching; the channel released the topic itself.
            return
        logger.info("Joined room %s as %s", room_id, local_id)

    async def stop(self) -> None:
        """End the session.  Every resource is released even if one release fails."""
        if self.state is not SessionState.ACTIVE:
            self.state = SessionState.STOPPED
            return
        self.state = SessionState.STOPPED

        await self._cancel(self._dispatcher)
        self._dispatcher = None
        try:
            # A capture still opening is released by the controller as soon as it arrives.
            self.media.stop()
        finally:
            try:
                await self.peer_manager.teardown()
            finally:
                await self.channel.detach()
                self._drain_queue()
                logger.info("Left room %s", self.channel.room_id)

    def toggle_mute(self) -> bool:
        return self.media.toggle_mute()

    async def wait_idle(self) -> None:
        """Return once every queued event has been handled."""
        if self.state is SessionState.ACTIVE and self._queue is not None:
            await self._queue.join()

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------

    def _on_room_event(self, event: str, payload: dict) -> None:
        self._enqueue(RoomEvent(event, payload))

    def _enqueue(self, item: RoomEvent | ConnectionEvent) -> None:
        if self.state is not SessionState.ACTIVE or self._queue is None:
            return
        self._queue.put_nowait(item)

    async def _dispatch_loop(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if self.state is SessionState.ACTIVE:
                    await self._dispatch(item)
            except Exception:
                logger.exception("Error handling %r", item)
            finally:
                self._queue.task_done()

    async def _dispatch(self, item: RoomEvent | ConnectionEvent) -> None:
        if not isinstance(item, RoomEvent):
            await self.peer_manager.handle_connection_event(item)
            return

        if item.event not in events.SIGNALING_EVENTS:
            logger.debug("Ignoring room event %r", item.event)
            return
        try:
            payload = parse_signal(item.event, item.payload)
        except ValidationError as exc:
            logger.warning("Malformed %r payload dropped: %s", item.event, exc)
            return

        if isinstance(payload, OfferPayload):
            await self.peer_manager.handle_offer(payload.signal, payload.caller, payload.target)
        elif isinstance(payload, AnswerPayload):
            await self.peer_manager.handle_answer(payload.signal, payload.caller, payload.target)
        elif isinstance(payload, PresencePayload):
            if item.event == events.USER_JOINED:
                await self.peer_manager.handle_user_joined(payload.user_id)
            else:
                await self.peer_manager.handle_user_left(payload.user_id)

    def _drain_queue(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    @staticmethod
    async def _cancel(task: asyncio.Task | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


@asynccontextmanager
async def room_session(
    transport: BroadcastTransport,
    device: MediaDevice,
    connection_factory: ConnectionFactory,
    room_id: str,
    local_id: str,
    **kwargs,
) -> AsyncIterator[RoomSession]:
    session = RoomSession(transport, device, connection_factory, **kwargs)
    try:
        await session.start(room_id, local_id)
        yield session
    finally:
        await session.stop()
