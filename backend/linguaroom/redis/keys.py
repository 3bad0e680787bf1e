"""
Namespaced Redis key helpers.

Every key is prefixed with SERVER_DOMAIN to avoid collisions when multiple
deployments share a Redis cluster.
"""

from linguaroom.config import settings


def room_participants_key(room_id: int) -> str:
    return f"{settings.SERVER_DOMAIN}:room:{room_id}:participants"


def participant_key(user_id: str) -> str:
    return f"{settings.SERVER_DOMAIN}:room:participant:{user_id}"
