from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

MessageType = Literal["text", "image", "gif"]


class RoomMessageCreate(BaseModel):
    sender_id: str = Field(..., min_length=1, max_length=64)
    content: str = Field(..., max_length=2000)
    message_type: MessageType = "text"

    @model_validator(mode="after")
    def require_content(self) -> "RoomMessageCreate":
        self.content = self.content.strip()
        if not self.content:
            raise ValueError("Message must have content")
        if self.message_type != "text" and not self.content.startswith(("http://", "https://")):
            raise ValueError(f"A {self.message_type} message must be a URL")
        return self


class RoomMessageResponse(BaseModel):
    id: int
    room_id: int
    sender_id: str
    content: str
    message_type: MessageType
    created_at: datetime

    model_config = {"from_attributes": True}


class RoomMessageList(BaseModel):
    messages: list[RoomMessageResponse]
    total: int
    limit: int
    offset: int
