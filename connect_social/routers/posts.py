"""Feed API routes."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import (
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
    PostUpdate,
)
from ..services import (
    create_comment,
    create_post,
    delete_comment,
    delete_post,
    get_current_profile,
    get_post,
    get_viewer_session,
    like_post,
    list_comments,
    list_feed,
    share_post,
    unlike_post,
    update_post,
)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/feed", response_model=PostFeedResponse)
async def feed_endpoint(
    limit: int | None = Query(None, ge=1, le=200),
    before: datetime | None = Query(None),
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostFeedResponse:
    records = list_feed(db, viewer_id=current_profile.id, limit=limit, before=before)
    return PostFeedResponse(items=[PostResponse(**record) for record in records])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    payload: PostCreate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostResponse:
    post = create_post(
        db,
        author_id=current_profile.id,
        content=payload.content,
        image_url=payload.image_url,
        post_type=payload.post_type,
    )
    return PostResponse(**get_post(db, post_id=post.id, viewer_id=current_profile.id))


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(comment_id: UUID, db: Session = Depends(get_viewer_session)) -> Response:
    delete_comment(db, comment_id=comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{post_id}", response_model=PostResponse)
async def retrieve_post(
    post_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostResponse:
    return PostResponse(**get_post(db, post_id=post_id, viewer_id=current_profile.id))


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post_endpoint(
    post_id: UUID,
    payload: PostUpdate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostResponse:
    update_post(db, post_id=post_id, changes=payload.model_dump(exclude_unset=True))
    return PostResponse(**get_post(db, post_id=post_id, viewer_id=current_profile.id))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(post_id: UUID, db: Session = Depends(get_viewer_session)) -> Response:
    delete_post(db, post_id=post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=PostEngagementResponse)
async def like_post_endpoint(
    post_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostEngagementResponse:
    return PostEngagementResponse(**like_post(db, post_id=post_id, viewer_id=current_profile.id))


@router.delete("/{post_id}/like", response_model=PostEngagementResponse)
async def unlike_post_endpoint(
    post_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostEngagementResponse:
    return PostEngagementResponse(**unlike_post(db, post_id=post_id, viewer_id=current_profile.id))


@router.post("/{post_id}/share", response_model=PostEngagementResponse)
async def share_post_endpoint(
    post_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostEngagementResponse:
    return PostEngagementResponse(**share_post(db, post_id=post_id, viewer_id=current_profile.id))


@router.get("/{post_id}/comments", response_model=PostCommentListResponse)
async def list_comments_endpoint(post_id: UUID, db: Session = Depends(get_viewer_session)) -> PostCommentListResponse:
    nodes = list_comments(db, post_id=post_id)
    return PostCommentListResponse(items=[PostCommentResponse.model_validate(node) for node in nodes])


@router.post("/{post_id}/comments", response_model=PostCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: UUID,
    payload: PostCommentCreate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> PostCommentResponse:
    node = create_comment(
        db, post_id=post_id, author=current_profile, content=payload.content, parent_id=payload.parent_id
    )
    return PostCommentResponse.model_validate(node)


__all__ = ["router"]
