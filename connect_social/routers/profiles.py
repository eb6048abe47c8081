"""Profile API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import PostFeedResponse, PostResponse, ProfileResponse, ProfileSummary, ProfileUpdateRequest
from ..services import (
    get_current_profile,
    get_profile,
    get_profile_by_username,
    get_viewer_session,
    list_profile_posts,
    search_profiles,
    update_profile,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def retrieve_my_profile(current_profile: Profile = Depends(get_current_profile)) -> ProfileResponse:
    return ProfileResponse.model_validate(current_profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ProfileResponse:
    updated = update_profile(db, profile_id=current_profile.id, payload=payload)
    return ProfileResponse.model_validate(updated)


@router.get("/search", response_model=list[ProfileSummary])
async def search_profiles_endpoint(
    q: str = Query(..., min_length=1, max_length=150),
    db: Session = Depends(get_viewer_session),
) -> list[ProfileSummary]:
    return [ProfileSummary.model_validate(profile) for profile in search_profiles(db, q)]


@router.get("/id/{profile_id}", response_model=ProfileResponse)
async def retrieve_profile_by_id(profile_id: UUID, db: Session = Depends(get_viewer_session)) -> ProfileResponse:
    return ProfileResponse.model_validate(get_profile(db, profile_id))


@router.get("/id/{profile_id}/posts", response_model=PostFeedResponse)
async def list_profile_posts_endpoint(
    profile_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostFeedResponse:
    get_profile(db, profile_id)
    records = list_profile_posts(db, profile_id=profile_id, viewer_id=current_profile.id)
    return PostFeedResponse(items=[PostResponse(**record) for record in records])


@router.get("/{username}", response_model=ProfileResponse)
async def retrieve_profile(username: str, db: Session = Depends(get_viewer_session)) -> ProfileResponse:
    """Fetch a profile by its handle, as used by profile pages."""
    return ProfileResponse.model_validate(get_profile_by_username(db, username))


__all__ = ["router"]
