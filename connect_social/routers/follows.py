"""Follow request and follower API routes."""
from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import (
    FollowActionResponse,
    FollowRequestCreate,
    FollowRequestListResponse,
    FollowRequestRespond,
    FollowRequestResponse,
    FollowStatsResponse,
    ProfileListResponse,
    ProfileSummary,
    RelationshipResponse,
)
from ..services import (
    cancel_request,
    delete_request,
    get_current_profile,
    get_follow_stats,
    get_relationship,
    get_viewer_session,
    list_followers,
    list_following,
    list_incoming_requests,
    list_mutuals,
    list_outgoing_requests,
    request_follow,
    respond_to_request,
    unfollow,
)

router = APIRouter(prefix="/follows", tags=["follows"])


def _profile_list(profiles: list[Profile]) -> ProfileListResponse:
    return ProfileListResponse(items=[ProfileSummary.model_validate(profile) for profile in profiles])


@router.post("/requests", response_model=FollowRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_follow_request(
    payload: FollowRequestCreate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowRequestResponse:
    record = request_follow(db, sender_id=current_profile.id, receiver_id=payload.receiver_id)
    return FollowRequestResponse.model_validate(record)


@router.get("/requests/incoming", response_model=FollowRequestListResponse)
async def incoming_requests(
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowRequestListResponse:
    records = list_incoming_requests(db, viewer_id=current_profile.id)
    return FollowRequestListResponse(items=[FollowRequestResponse.model_validate(item) for item in records])


@router.get("/requests/outgoing", response_model=FollowRequestListResponse)
async def outgoing_requests(
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowRequestListResponse:
    records = list_outgoing_requests(db, viewer_id=current_profile.id)
    return FollowRequestListResponse(items=[FollowRequestResponse.model_validate(item) for item in records])


@router.post("/requests/{request_id}/respond", response_model=FollowRequestResponse)
async def respond_follow_request(
    request_id: UUID,
    payload: FollowRequestRespond,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowRequestResponse:
    record = respond_to_request(
        db, viewer_id=current_profile.id, request_id=request_id, accept=payload.action == "accept"
    )
    return FollowRequestResponse.model_validate(record)


@router.delete("/requests/to/{receiver_id}", response_model=FollowActionResponse)
async def cancel_follow_request(
    receiver_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowActionResponse:
    changed = cancel_request(db, sender_id=current_profile.id, receiver_id=receiver_id)
    return FollowActionResponse(profile_id=receiver_id, status="cancelled" if changed else "noop")


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_follow_request(request_id: UUID, db: Session = Depends(get_viewer_session)) -> Response:
    delete_request(db, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats/{profile_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    profile_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowStatsResponse:
    stats = get_follow_stats(db, profile_id=profile_id, viewer_id=current_profile.id)
    return FollowStatsResponse(**asdict(stats))


@router.get("/relationship/{profile_id}", response_model=RelationshipResponse)
async def relationship_endpoint(
    profile_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> RelationshipResponse:
    relationship = get_relationship(db, viewer_id=current_profile.id, profile_id=profile_id)
    return RelationshipResponse(**asdict(relationship))


@router.get("/{profile_id}/followers", response_model=ProfileListResponse)
async def followers_endpoint(profile_id: UUID, db: Session = Depends(get_viewer_session)) -> ProfileListResponse:
    return _profile_list(list_followers(db, profile_id=profile_id))


@router.get("/{profile_id}/following", response_model=ProfileListResponse)
async def following_endpoint(profile_id: UUID, db: Session = Depends(get_viewer_session)) -> ProfileListResponse:
    return _profile_list(list_following(db, profile_id=profile_id))


@router.get("/{profile_id}/mutuals", response_model=ProfileListResponse)
async def mutuals_endpoint(profile_id: UUID, db: Session = Depends(get_viewer_session)) -> ProfileListResponse:
    return _profile_list(list_mutuals(db, profile_id=profile_id))


@router.delete("/{profile_id}", response_model=FollowActionResponse)
async def unfollow_endpoint(
    profile_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> FollowActionResponse:
    changed = unfollow(db, follower_id=current_profile.id, following_id=profile_id)
    return FollowActionResponse(profile_id=profile_id, status="unfollowed" if changed else "noop")


__all__ = ["router"]
