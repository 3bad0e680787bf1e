"""
Direct messages between two users.

A conversation is found or created from the pair of user ids, in either
order.  Every call names the acting user; only the two participants can read
or write a conversation.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from linguaroom.config import settings
from linguaroom.database import get_db
from linguaroom.models.conversation import Conversation
from linguaroom.models.direct_message import DirectMessage
from linguaroom.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    DirectMessageCreate,
    DirectMessageList,
    DirectMessageResponse,
    MarkRead,
    MarkReadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def _unread_query(db: Session, conv: Conversation, user_id: str):
    return db.query(DirectMessage).filter(
        DirectMessage.conversation_id == conv.id,
        DirectMessage.sender_id != user_id,
        DirectMessage.is_read == False,  # noqa: E712
    )


def _conversation_response(db: Session, conv: Conversation, user_id: str) -> ConversationResponse:
    return ConversationResponse(
        id=conv.id,
        other_user_id=conv.other_participant(user_id),
        created_at=conv.created_at,
        updated_at=conv.updated_at,
        unread_count=_unread_query(db, conv, user_id).count(),
    )


def _load_for(db: Session, conversation_id: int, user_id: str) -> Conversation:
    conv = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conv:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if not conv.has_participant(user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant")
    return conv


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    user_id: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
) -> list[ConversationResponse]:
    """The user's conversations, most recently active first."""
    convs = (
        db.query(Conversation)
        .filter(or_(Conversation.participant_1_id == user_id, Conversation.participant_2_id == user_id))
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .all()
    )
    return [_conversation_response(db, c, user_id) for c in convs]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_200_OK)
async def get_or_create_conversation(
    body: ConversationCreate,
    db: Session = Depends(get_db),
) -> ConversationResponse:
    if body.user_id == body.other_user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot message yourself")
    conv = Conversation.get_or_create(db, body.user_id, body.other_user_id)
    return _conversation_response(db, conv, body.user_id)


@router.get("/{conversation_id}/messages", response_model=DirectMessageList)
async def list_messages(
    conversation_id: int,
    user_id: str = Query(..., min_length=1, max_length=64),
    limit: int = Query(default=50, ge=1, le=settings.ROOM_MESSAGE_PAGE_LIMIT),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> DirectMessageList:
    conv = _load_for(db, conversation_id, user_id)
    query = db.query(DirectMessage).filter(DirectMessage.conversation_id == conv.id)
    total = query.count()
    messages = (
        query.order_by(DirectMessage.created_at.asc(), DirectMessage.id.asc()).offset(offset).limit(limit).all()
    )
    return DirectMessageList(
        messages=[DirectMessageResponse.model_validate(m) for m in messages],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/{conversation_id}/messages", response_model=DirectMessageResponse)
async def send_message(
    conversation_id: int,
    message_in: DirectMessageCreate,
    db: Session = Depends(get_db),
) -> DirectMessageResponse:
    conv = _load_for(db, conversation_id, message_in.sender_id)
    msg = DirectMessage(
        conversation_id=conv.id,
        sender_id=message_in.sender_id,
        content=message_in.content,
        message_type=message_in.message_type,
    )
    db.add(msg)

    conv.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(msg)
    logger.debug("Conversation %s: message %s from %s", conv.id, msg.id, msg.sender_id)
    return DirectMessageResponse.model_validate(msg)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: int,
    body: MarkRead,
    db: Session = Depends(get_db),
) -> MarkReadResponse:
    """Mark every message the other participant sent as read by ``body.user_id``."""
    conv = _load_for(db, conversation_id, body.user_id)
    updated = _unread_query(db, conv, body.user_id).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return MarkReadResponse(updated=updated)
