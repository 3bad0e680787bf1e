"""
Broadcast transports for a room topic.

A transport belongs to one client.  ``send`` reaches every *other*
subscriber of the topic (no self-echo); inbound envelopes are handed to the
subscriber's handler as ``(event, payload)``.  Handlers must not block:
they are expected to enqueue work and return.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from urllib.parse import urlencode

import websockets

from linguaroom.config import settings
from linguaroom.core import events

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict], None]


class BroadcastTransport(ABC):
    @abstractmethod
    async def subscribe(self, topic: str, handler: EventHandler) -> None: ...

    @abstractmethod
    async def send(self, topic: str, event: str, payload: dict) -> None: ...

    @abstractmethod
    async def unsubscribe(self, topic: str) -> None: ...


# ---------------------------------------------------------------------------
# In-process hub
# ---------------------------------------------------------------------------


class InMemoryHub:
    """Process-local topics; every transport from one hub shares them."""

    def __init__(self) -> None:
        # topic -> {transport: handler}
        self._subscribers: dict[str, dict["InMemoryTransport", EventHandler]] = defaultdict(dict)

    def transport(self) -> "InMemoryTransport":
        return InMemoryTransport(self)

    def subscribers(self, topic: str) -> int:
        return len(self._subscribers.get(topic, {}))

    def _subscribe(self, topic: str, transport: "InMemoryTransport", handler: EventHandler) -> None:
        self._subscribers[topic][transport] = handler

    def _unsubscribe(self, topic: str, transport: "InMemoryTransport") -> None:
        subs = self._subscribers.get(topic)
        if subs is None:
            return
        subs.pop(transport, None)
        if not subs:
            del self._subscribers[topic]

    def _deliver(self, topic: str, sender: "InMemoryTransport", event: str, payload: dict) -> None:
        for transport, handler in list(self._subscribers.get(topic, {}).items()):
            if transport is sender:
                continue
            try:
                # Each subscriber gets its own copy, as it would off the wire.
                handler(event, json.loads(json.dumps(payload)))
            except Exception:
                logger.exception("In-memory subscriber on %s failed handling %r", topic, event)


class InMemoryTransport(BroadcastTransport):
    def __init__(self, hub: InMemoryHub) -> None:
        self._hub = hub

    async def subscribe(self, topic: str, handler: EventHandler) -> None:
        self._hub._subscribe(topic, self, handler)

    async def send(self, topic: str, event: str, payload: dict) -> None:
        self._hub._deliver(topic, self, event, payload)

    async def unsubscribe(self, topic: str) -> None:
        self._hub._unsubscribe(topic, self)


# ---------------------------------------------------------------------------
# WebSocket client of the backend's /ws/rooms/{room_id} relay
# ---------------------------------------------------------------------------


class WebSocketTransport(BroadcastTransport):
    """Attach to a room topic served by the linguaroom backend.

    ``base_url`` is the server root, e.g. ``ws://localhost:8000``.
    """

    def __init__(self, base_url: str, user_id: str, heartbeat_interval: float | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_id = user_id
        self._heartbeat_interval = (
            settings.RTC_HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval
        )
        self._ws = None
        self._tasks: list[asyncio.Task] = []

    def url_for(self, topic: str) -> str:
        room_id = events.room_id_from_topic(topic)
        query = urlencode({"user_id": self._user_id})
        return f"{self._base_url}/ws/rooms/{room_id}?{query}"

    async def subscribe(self, topic: str, handler: EventHandler) -> None:
        self._ws = await websockets.connect(self.url_for(topic))
        self._tasks.append(asyncio.create_task(self._read(topic, handler)))
        if self._heartbeat_interval > 0:
            self._tasks.append(asyncio.create_task(self._heartbeat()))
        logger.info("Attached to %s as %s", topic, self._user_id)

    async def _read(self, topic: str, handler: EventHandler) -> None:
        try:
            async for raw in self._ws:
                try:
                    msg = json.loads(raw)
                except ValueError:
                    continue
                if not isinstance(msg, dict) or not isinstance(msg.get("event"), str):
                    continue
                payload = msg.get("payload")
                handler(msg["event"], payload if isinstance(payload, dict) else {})
        except websockets.ConnectionClosed as exc:
            # No reconnect: the session simply stops receiving signaling.
            logger.warning("Broadcast connection for %s closed: %s", topic, exc)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await self._ws.send(json.dumps({"event": events.HEARTBEAT, "payload": {}}))
            except websockets.ConnectionClosed:
                return

    async def send(self, topic: str, event: str, payload: dict) -> None:
        if self._ws is None:
            logger.debug("Not attached to %s, dropping %r", topic, event)
            return
        try:
            await self._ws.send(json.dumps({"event": event, "payload": payload}))
        except websockets.ConnectionClosed as exc:
            logger.warning("Could not publish %r on %s: %s", event, topic, exc)

    async def unsubscribe(self, topic: str) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()
