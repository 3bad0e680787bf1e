import json
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RoomConnectionManager:
    """Tracks WebSocket connections attached to each room's broadcast topic.

    Connections are stored as {room_id: {user_id: WebSocket}}.  A user holds
    at most one connection per room; a reconnect replaces the older socket.

    NOTE: in-memory singleton, so it assumes a single-process deployment
    (single uvicorn worker).
    """

    def __init__(self) -> None:
        # room_id -> {user_id: WebSocket}
        self._connections: dict[int, dict[str, WebSocket]] = defaultdict(dict)

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self, room_id: int, user_id: str, websocket: WebSocket) -> None:
        """Register an already-accepted connection, closing any stale one."""
        old = self._connections[room_id].get(user_id)
        if old is not None and old is not websocket:
            try:
                await old.close()
            except Exception:
                pass
        self._connections[room_id][user_id] = websocket
        logger.info("WebSocket connected to room %s (user %s)", room_id, user_id)

    def disconnect(self, room_id: int, user_id: str, websocket: WebSocket | None = None) -> bool:
        """Forget a connection.

        When ``websocket`` is given the entry is only removed if it is still
        that socket, so a replaced connection cannot evict its successor.
        Returns True if something was removed.
        """
        room = self._connections.get(room_id)
        if not room or user_id not in room:
            return False
        if websocket is not None and room[user_id] is not websocket:
            return False
        del room[user_id]
        if not room:
            self._connections.pop(room_id, None)
        logger.info("WebSocket disconnected from room %s (user %s)", room_id, user_id)
        return True

    def get(self, room_id: int, user_id: str) -> WebSocket | None:
        return self._connections.get(room_id, {}).get(user_id)

    def is_connected(self, room_id: int, user_id: str) -> bool:
        return user_id in self._connections.get(room_id, {})

    def holds(self, room_id: int, user_id: str, websocket: WebSocket) -> bool:
        """True while ``websocket`` is still the registered connection for the user."""
        return self.get(room_id, user_id) is websocket

    def get_room_users(self, room_id: int) -> list[str]:
        """Return user ids currently attached to a room."""
        return list(self._connections.get(room_id, {}))

    def count(self, room_id: int) -> int:
        return len(self._connections.get(room_id, {}))

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def broadcast(self, room_id: int, payload: dict, exclude: str | None = None) -> None:
        """Send a JSON payload to every connection in a room."""
        data = json.dumps(payload)
        for uid, ws in list(self._connections.get(room_id, {}).items()):
            if uid == exclude:
                continue
            try:
                await ws.send_text(data)
            except Exception as exc:
                # The socket's own handler removes it and announces user-left.
                logger.warning("Send to %s in room %s failed: %s", uid, room_id, exc)

    async def send_to(self, room_id: int, user_id: str, payload: dict) -> bool:
        """Send to one user in a room.

        Returns True if delivered, False if the user isn't attached here.
        """
        ws = self._connections.get(room_id, {}).get(user_id)
        if ws is None:
            return False
        try:
            await ws.send_text(json.dumps(payload))
            return True
        except Exception as exc:
            logger.warning("Send to %s in room %s failed: %s", user_id, room_id, exc)
            return False


# Module-level singleton, shared across all connections (single-process only)
room_manager = RoomConnectionManager()
