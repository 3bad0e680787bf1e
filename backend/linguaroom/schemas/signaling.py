"""Wire payloads for the four peer-signaling events.

Field names follow the broadcast format exactly (``userId`` is camelCase).
``signal`` is an opaque negotiation blob passed between peers verbatim.
"""

from typing import Any

from pydantic import BaseModel, Field

from linguaroom.core import events


class PresencePayload(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)

    model_config = {"populate_by_name": True}


class OfferPayload(BaseModel):
    signal: Any = Field(...)
    caller: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)


class AnswerPayload(BaseModel):
    signal: Any = Field(...)
    caller: str = Field(..., min_length=1)
    # Not required on receipt; always sent so bystanders can ignore the answer.
    target: str | None = None


SignalPayload = PresencePayload | OfferPayload | AnswerPayload

_PAYLOADS: dict[str, type[BaseModel]] = {
    events.USER_JOINED: PresencePayload,
    events.USER_LEFT: PresencePayload,
    events.OFFER: OfferPayload,
    events.ANSWER: AnswerPayload,
}


def parse_signal(event: str, payload: Any) -> SignalPayload:
    """Validate a signaling payload.

    Raises ValueError for unknown events and pydantic.ValidationError (a
    ValueError subclass) for malformed payloads.
    """
    model = _PAYLOADS.get(event)
    if model is None:
        raise ValueError(f"Unknown signaling event: {event!r}")
    return model.model_validate(payload)


def dump_signal(payload: SignalPayload) -> dict:
    return payload.model_dump(by_alias=True, exclude_none=True)
