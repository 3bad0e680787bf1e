from pydantic import BaseModel


class LanguageResponse(BaseModel):
    id: int
    code: str
    name: str
    flag_emoji: str | None = None

    model_config = {"from_attributes": True}
