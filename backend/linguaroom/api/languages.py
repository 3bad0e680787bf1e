from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from linguaroom.database import get_db
from linguaroom.models.language import Language
from linguaroom.schemas.language import LanguageResponse

router = APIRouter(prefix="/languages", tags=["languages"])


@router.get("", response_model=list[LanguageResponse])
async def list_languages(db: Session = Depends(get_db)) -> list[LanguageResponse]:
    """Languages offered for rooms and profiles, alphabetical by name."""
    languages = db.query(Language).order_by(Language.name).all()
    return [LanguageResponse.model_validate(lang) for lang in languages]
