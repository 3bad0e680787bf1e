from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from linguaroom.schemas.room import normalize_language_code


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=500)
    country: str | None = Field(None, max_length=100)
    birthday: date | None = None
    native_language_code: str | None = Field(None, min_length=2, max_length=10)
    learning_language_code: str | None = Field(None, min_length=2, max_length=10)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None

    @field_validator("native_language_code", "learning_language_code")
    @classmethod
    def language_code_alpha(cls, v):
        return normalize_language_code(v)

    @field_validator("birthday")
    @classmethod
    def birthday_in_past(cls, v: date | None) -> date | None:
        if v is not None and v >= date.today():
            raise ValueError("Birthday must be in the past")
        return v


class ProfileResponse(BaseModel):
    id: str
    full_name: str | None = None
    avatar_url: str | None = None
    country: str | None = None
    birthday: date | None = None
    native_language_code: str | None = None
    learning_language_code: str | None = None
    created_at: datetime

    followers_count: int = 0
    following_count: int = 0

    model_config = {"from_attributes": True}


class FollowCreate(BaseModel):
    follower_id: str = Field(..., min_length=1, max_length=64)
