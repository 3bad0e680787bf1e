"""
Profiles and followers REST API.

Endpoints:
  GET    /api/profiles                                  → search profiles
  GET    /api/profiles/{user_id}                        → profile with follow counts
  PUT    /api/profiles/{user_id}                        → create or edit a profile
  GET    /api/profiles/{user_id}/followers              → who follows the user
  GET    /api/profiles/{user_id}/following              → who the user follows
  POST   /api/profiles/{user_id}/followers              → follow the user
  DELETE /api/profiles/{user_id}/followers/{follower_id} → unfollow
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from linguaroom.database import get_db
from linguaroom.models.follow import Follow
from linguaroom.models.profile import Profile
from linguaroom.schemas.profile import FollowCreate, ProfileResponse, ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _load(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def _to_response(db: Session, profile: Profile) -> ProfileResponse:
    resp = ProfileResponse.model_validate(profile)
    resp.followers_count = db.query(Follow).filter(Follow.following_id == profile.id).count()
    resp.following_count = db.query(Follow).filter(Follow.follower_id == profile.id).count()
    return resp


@router.get("", response_model=list[ProfileResponse])
async def search_profiles(
    q: str | None = Query(default=None, min_length=1, description="Partial full name"),
    native_language: str | None = Query(default=None, max_length=10),
    learning_language: str | None = Query(default=None, max_length=10),
    exclude: str | None = Query(default=None, description="User id to leave out, usually the caller"),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
) -> list[ProfileResponse]:
    query = db.query(Profile)
    if q:
        query = query.filter(Profile.full_name.ilike(f"%{q.strip()}%"))
    if native_language:
        query = query.filter(Profile.native_language_code == native_language.lower())
    if learning_language:
        query = query.filter(Profile.learning_language_code == learning_language.lower())
    if exclude:
        query = query.filter(Profile.id != exclude)
    profiles = query.order_by(Profile.full_name, Profile.id).limit(limit).all()
    return [_to_response(db, p) for p in profiles]


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, db: Session = Depends(get_db)) -> ProfileResponse:
    return _to_response(db, _load(db, user_id))


@router.put("/{user_id}", response_model=ProfileResponse)
async def upsert_profile(
    user_id: str,
    updates: ProfileUpdate,
    db: Session = Depends(get_db),
) -> ProfileResponse:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        profile = Profile(id=user_id)
        db.add(profile)
        logger.info("Profile created for %s", user_id)
    for field, value in updates.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return _to_response(db, profile)


@router.get("/{user_id}/followers", response_model=list[ProfileResponse])
async def list_followers(user_id: str, db: Session = Depends(get_db)) -> list[ProfileResponse]:
    _load(db, user_id)
    profiles = (
        db.query(Profile)
        .join(Follow, Follow.follower_id == Profile.id)
        .filter(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .all()
    )
    return [_to_response(db, p) for p in profiles]


@router.get("/{user_id}/following", response_model=list[ProfileResponse])
async def list_following(user_id: str, db: Session = Depends(get_db)) -> list[ProfileResponse]:
    _load(db, user_id)
    profiles = (
        db.query(Profile)
        .join(Follow, Follow.following_id == Profile.id)
        .filter(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .all()
    )
    return [_to_response(db, p) for p in profiles]


@router.post("/{user_id}/followers", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def follow(user_id: str, body: FollowCreate, db: Session = Depends(get_db)) -> ProfileResponse:
    """``body.follower_id`` starts following ``user_id``; returns the followed profile."""
    if body.follower_id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    target = _load(db, user_id)
    _load(db, body.follower_id)

    existing = (
        db.query(Follow).filter(Follow.follower_id == body.follower_id, Follow.following_id == user_id).first()
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already following")

    db.add(Follow(follower_id=body.follower_id, following_id=user_id))
    db.commit()
    logger.info("%s now follows %s", body.follower_id, user_id)
    return _to_response(db, target)


@router.delete("/{user_id}/followers/{follower_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow(user_id: str, follower_id: str, db: Session = Depends(get_db)) -> None:
    existing = db.query(Follow).filter(Follow.follower_id == follower_id, Follow.following_id == user_id).first()
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not following")
    db.delete(existing)
    db.commit()
