"""
Room presence — tracks who is attached to a room's audio mesh in Redis.

Key scheme:
  {SERVER_DOMAIN}:room:{room_id}:participants  →  Redis set of user id strings
  {SERVER_DOMAIN}:room:participant:{user_id}   →  JSON blob {"room_id", "muted", "role"}
  TTL = REDIS_PRESENCE_TTL seconds (default 300 s).

If Redis is unavailable every call is a no-op and queries return empty data.
"""

import json
import logging

from linguaroom.config import settings
from linguaroom.redis.client import get_redis
from linguaroom.redis.keys import participant_key, room_participants_key

logger = logging.getLogger(__name__)


async def join_room(room_id: int, user_id: str, muted: bool = True, role: str = "audience") -> None:
    """Add a user to a room and store their state.  New participants start muted."""
    r = get_redis()
    if r is None:
        return
    try:
        pipe = r.pipeline()
        pipe.sadd(room_participants_key(room_id), user_id)
        pipe.expire(room_participants_key(room_id), settings.REDIS_PRESENCE_TTL)
        state = json.dumps({"room_id": room_id, "muted": muted, "role": role})
        pipe.setex(participant_key(user_id), settings.REDIS_PRESENCE_TTL, state)
        await pipe.execute()
    except Exception as exc:
        logger.warning("participants.join_room failed: %s", exc)


async def leave_room(room_id: int, user_id: str) -> None:
    """Remove a user from a room."""
    r = get_redis()
    if r is None:
        return
    try:
        pipe = r.pipeline()
        pipe.srem(room_participants_key(room_id), user_id)
        pipe.delete(participant_key(user_id))
        await pipe.execute()
    except Exception as exc:
        logger.warning("participants.leave_room failed: %s", exc)


async def update_participant(room_id: int, user_id: str, **changes) -> dict | None:
    """Merge ``changes`` (muted, role) into an already-joined user's state.

    Returns the new state, or None when Redis is unavailable.
    """
    r = get_redis()
    if r is None:
        return None
    try:
        raw = await r.get(participant_key(user_id))
        state = json.loads(raw) if raw else {"muted": True, "role": "audience"}
        state.update(changes, room_id=room_id)
        await r.setex(participant_key(user_id), settings.REDIS_PRESENCE_TTL, json.dumps(state))
        return state
    except Exception as exc:
        logger.warning("participants.update_participant failed: %s", exc)
        return None


async def heartbeat(room_id: int, user_id: str) -> None:
    """Refresh TTL for both the room set and the user state key."""
    r = get_redis()
    if r is None:
        return
    try:
        pipe = r.pipeline()
        pipe.expire(room_participants_key(room_id), settings.REDIS_PRESENCE_TTL)
        pipe.expire(participant_key(user_id), settings.REDIS_PRESENCE_TTL)
        await pipe.execute()
    except Exception as exc:
        logger.warning("participants.heartbeat failed: %s", exc)


async def get_room_participants(room_id: int) -> list[str]:
    """Return the user ids currently in a room."""
    r = get_redis()
    if r is None:
        return []
    try:
        members = await r.smembers(room_participants_key(room_id))
        return sorted(members)
    except Exception as exc:
        logger.warning("participants.get_room_participants failed: %s", exc)
        return []


async def get_participant_state(user_id: str) -> dict | None:
    """Return the state dict for a user, or None if not in any room."""
    r = get_redis()
    if r is None:
        return None
    try:
        raw = await r.get(participant_key(user_id))
        if raw is None:
            return None
        return json.loads(raw)
    except Exception as exc:
        logger.warning("participants.get_participant_state failed: %s", exc)
        return None


async def get_bulk_participant_states(user_ids: list[str]) -> dict[str, dict | None]:
    """Return {user_id: state_dict_or_None} for multiple users via pipeline."""
    if not user_ids:
        return {}
    r = get_redis()
    if r is None:
        return {uid: None for uid in user_ids}
    try:
        pipe = r.pipeline()
        for uid in user_ids:
            pipe.get(participant_key(uid))
        values = await pipe.execute()
        result: dict[str, dict | None] = {}
        for uid, raw in zip(user_ids, values, strict=False):
            result[uid] = json.loads(raw) if raw else None
        return result
    except Exception as exc:
        logger.warning("participants.get_bulk_participant_states failed: %s", exc)
        return {uid: None for uid in user_ids}
