from datetime import datetime

from pydantic import BaseModel, Field

from linguaroom.schemas.message import MessageType, RoomMessageCreate


class ConversationCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    other_user_id: str = Field(..., min_length=1, max_length=64)


class ConversationResponse(BaseModel):
    id: int
    other_user_id: str
    created_at: datetime
    updated_at: datetime
    unread_count: int = 0


class DirectMessageCreate(RoomMessageCreate):
    """Same content rules as room chat."""


class DirectMessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: str
    content: str
    message_type: MessageType
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class DirectMessageList(BaseModel):
    messages: list[DirectMessageResponse]
    total: int
    limit: int
    offset: int


class MarkRead(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)


class MarkReadResponse(BaseModel):
    updated: int
