from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import ProfileUpdateRequest
from ..security import visible
from .persistence import commit_or_raise

_SEARCH_LIMIT = 20


def get_profile(db: Session, profile_id: UUID) -> Profile:
    profile = db.scalar(visible(db, Profile).where(Profile.id == profile_id))
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def get_profile_by_username(db: Session, username: str) -> Profile:
    profile = db.scalar(visible(db, Profile).where(Profile.username == username.strip().lower()))
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def search_profiles(db: Session, query: str, *, limit: int = _SEARCH_LIMIT) -> list[Profile]:
    term = query.strip()
    if not term:
        return []
    stmt = (
        visible(db, Profile)
        .where(Profile.username.ilike(f"%{term}%"))
        .order_by(Profile.username)
        .limit(max(1, min(limit, _SEARCH_LIMIT)))
    )
    return list(db.scalars(stmt))


def update_profile(db: Session, *, profile_id: UUID, payload: ProfileUpdateRequest) -> Profile:
    """Apply handle, bio and avatar updates to the caller's own profile."""

    profile = get_profile(db, profile_id)

    # Only update fields that were actually sent by the client
    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("username") is None:
        update_data.pop("username", None)
    if "bio" in update_data and update_data["bio"] is None:
        update_data["bio"] = ""

    for field, value in update_data.items():
        setattr(profile, field, value)

    try:
        commit_or_raise(db, detail="Failed to update profile", refresh=(profile,))
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already in use") from exc
    return profile


__all__ = ["get_profile", "get_profile_by_username", "search_profiles", "update_profile"]
