"""Room signaling channel — the session's single attachment to a room topic."""

import enum
import logging

from linguaroom.core import events
from linguaroom.rtc.transports import BroadcastTransport, EventHandler

logger = logging.getLogger(__name__)


class ChannelState(enum.Enum):
    UNATTACHED = "unattached"
    ATTACHED = "attached"
    DETACHED = "detached"


class RoomSignalingChannel:
    def __init__(self, transport: BroadcastTransport, room_id: str, local_id: str) -> None:
        self.room_id = room_id
        self.local_id = local_id
        self.topic = events.room_topic(room_id)
        self.state = ChannelState.UNATTACHED
        self._transport = transport
        self._handler: EventHandler | None = None

    @property
    def attached(self) -> bool:
        return self.state is ChannelState.ATTACHED

    async def attach(self, handler: EventHandler) -> None:
        """Subscribe to the room topic and announce the local user."""
        if self.state is not ChannelState.UNATTACHED:
            raise RuntimeError(f"Channel for {self.topic} is {self.state.value}")
        self._handler = handler
        try:
            await self._transport.subscribe(self.topic, self._on_message)
        except Exception as exc:
            # No reconnect: the session carries on without signaling.
            logger.warning("Could not attach to %s: %s", self.topic, exc)
            self.state = ChannelState.DETACHED
            self._handler = None
            return
        if self.state is not ChannelState.UNATTACHED:
            # detach() ran while the subscription was pending.
            await self._release_topic()
            return
        self.state = ChannelState.ATTACHED
        await self.publish(events.USER_JOINED, {"userId": self.local_id})

    def _on_message(self, event: str, payload: dict) -> None:
        if self.state is not ChannelState.ATTACHED or self._handler is None:
            return
        self._handler(event, payload)

    async def publish(self, event: str, payload: dict) -> None:
        if self.state is not ChannelState.ATTACHED:
            logger.debug("%s not attached, dropping outgoing %r", self.topic, event)
            return
        try:
            await self._transport.send(self.topic, event, payload)
        except Exception as exc:
            logger.warning("Publishing %r on %s failed: %s", event, self.topic, exc)

    async def detach(self) -> None:
        if self.state is not ChannelState.ATTACHED:
            self.state = ChannelState.DETACHED
            return
        await self.publish(events.USER_LEFT, {"userId": self.local_id})
        self.state = ChannelState.DETACHED
        await self._release_topic()

    async def _release_topic(self) -> None:
        self._handler = None
        try:
            await self._transport.unsubscribe(self.topic)
        except Exception as exc:
            logger.warning("Unsubscribing from %s failed: %s", self.topic, exc)
