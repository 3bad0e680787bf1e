from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from linguaroom.config import settings

ParticipantRole = Literal["host", "co_host", "speaker", "audience"]
# The host role follows Room.host_id and cannot be handed out.
AssignableRole = Literal["co_host", "speaker", "audience"]


def _clean_name(v: str | None) -> str | None:
    if v is None:
        return v
    if not v.strip():
        raise ValueError("Room name must not be blank")
    return v.strip()


def normalize_language_code(v: str | None) -> str | None:
    if v is None:
        return v
    if not v.replace("-", "").isalpha():
        raise ValueError("Language code must be letters with optional hyphens")
    return v.lower()


class RoomBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    language_code: str = Field(..., min_length=2, max_length=10)


class RoomCreate(RoomBase):
    host_id: str = Field(..., min_length=1, max_length=64)
    max_participants: int = Field(settings.ROOM_DEFAULT_MAX_PARTICIPANTS, ge=2, le=50)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _clean_name(v)

    @field_validator("language_code")
    @classmethod
    def language_code_alpha(cls, v):
        return normalize_language_code(v)


class RoomUpdate(BaseModel):
    """Room settings edited by the host.  Omitted fields keep their value."""

    user_id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    language_code: str | None = Field(None, min_length=2, max_length=10)
    max_participants: int | None = Field(None, ge=2, le=50)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _clean_name(v)

    @field_validator("language_code")
    @classmethod
    def language_code_alpha(cls, v):
        return normalize_language_code(v)


class HostAction(BaseModel):
    """Body of host-only actions: ``user_id`` is the acting user."""

    user_id: str = Field(..., min_length=1, max_length=64)


class RoomResponse(RoomBase):
    id: int
    host_id: str
    max_participants: int
    is_active: bool
    created_at: datetime

    participant_count: int = 0

    model_config = {"from_attributes": True}


class Participant(BaseModel):
    user_id: str
    muted: bool
    role: ParticipantRole = "audience"


class ParticipantUpdate(BaseModel):
    muted: bool | None = None
    role: AssignableRole | None = None
    # Required for role changes, which only the host may make.
    actor_id: str | None = Field(None, min_length=1, max_length=64)

    @model_validator(mode="after")
    def require_change(self) -> "ParticipantUpdate":
        if self.muted is None and self.role is None:
            raise ValueError("Nothing to update")
        return self


class RoomParticipantsResponse(BaseModel):
    room_id: int
    participants: list[Participant]
