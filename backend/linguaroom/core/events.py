# Event names carried on a room's broadcast topic.

# Peer signaling (payload field names are part of the wire format)
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
OFFER = "offer"
ANSWER = "answer"

SIGNALING_EVENTS = frozenset({USER_JOINED, USER_LEFT, OFFER, ANSWER})

# Client keepalive for room presence; never relayed to other clients
HEARTBEAT = "heartbeat"

# Server-originated room events
MESSAGE_NEW = "message.new"
ROOM_CLOSED = "room.closed"
ROOM_UPDATED = "room.updated"
PARTICIPANT_UPDATED = "participant.updated"
PARTICIPANT_KICKED = "participant.kicked"

# WebSocket close codes used by the room relay
CLOSE_ROOM_NOT_FOUND = 4404  # missing or closed room
CLOSE_ROOM_FULL = 4403
CLOSE_KICKED = 4410


def room_topic(room_id: int | str) -> str:
    """Broadcast topic name shared by every client in a room."""
    return f"room:{room_id}"


def room_id_from_topic(topic: str) -> str:
    prefix, _, room_id = topic.partition(":")
    if prefix != "room" or not room_id:
        raise ValueError(f"Not a room topic: {topic!r}")
    return room_id
