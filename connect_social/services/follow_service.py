"""Business logic for follow requests and follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from ..constants import FOLLOW_REQUEST_ACCEPTED, FOLLOW_REQUEST_PENDING, FOLLOW_REQUEST_REJECTED
from ..models import Follow, FollowRequest, Profile
from ..security import helpers, visible
from .persistence import commit_or_raise

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FollowStats:
    profile_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


@dataclass(slots=True)
class Relationship:
    profile_id: UUID
    is_following: bool
    is_followed_by: bool
    is_mutual: bool
    outgoing_request_status: str | None


def _ensure_profile(db: Session, profile_id: UUID, *, detail: str, status_code: int) -> None:
    found = db.scalar(select(visible(db, Profile).where(Profile.id == profile_id).exists()))
    if not found:
        raise HTTPException(status_code=status_code, detail=detail)


def _find_request(db: Session, sender_id: UUID, receiver_id: UUID) -> FollowRequest | None:
    return db.scalar(
        visible(db, FollowRequest).where(FollowRequest.sender_id == sender_id, FollowRequest.receiver_id == receiver_id)
    )


def _renew_if_stale(db: Session, record: FollowRequest) -> FollowRequest:
    if record.status == FOLLOW_REQUEST_PENDING:
        return record
    if record.status == FOLLOW_REQUEST_ACCEPTED and helpers.is_following(db, record.sender_id, record.receiver_id):
        return record

    # Rejected, or accepted with the edge since removed: start over as a fresh request.
    record.status = FOLLOW_REQUEST_PENDING
    commit_or_raise(db, detail="Unable to send follow request", refresh=(record,))
    logger.info("Follow request %s renewed to pending", record.id)
    return record


def request_follow(db: Session, *, sender_id: UUID, receiver_id: UUID) -> FollowRequest:
    """Create or renew the single request from ``sender_id`` to ``receiver_id``."""

    if sender_id == receiver_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    _ensure_profile(db, receiver_id, detail="Receiver does not exist", status_code=status.HTTP_400_BAD_REQUEST)

    existing = _find_request(db, sender_id, receiver_id)
    if existing is not None:
        return _renew_if_stale(db, existing)

    record = FollowRequest(sender_id=sender_id, receiver_id=receiver_id, status=FOLLOW_REQUEST_PENDING)
    db.add(record)
    try:
        commit_or_raise(db, detail="Unable to send follow request", refresh=(record,))
    except IntegrityError:
        existing = _find_request(db, sender_id, receiver_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Follow request conflict")
        return _renew_if_stale(db, existing)

    logger.info("Follow request %s sent from %s to %s", record.id, sender_id, receiver_id)
    return record


def respond_to_request(db: Session, *, viewer_id: UUID, request_id: UUID, accept: bool) -> FollowRequest:
    record = db.scalar(visible(db, FollowRequest).where(FollowRequest.id == request_id))
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Follow request not found")
    if record.receiver_id != viewer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the receiver may respond")
    if record.status != FOLLOW_REQUEST_PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Follow request is no longer pending")

    record.status = FOLLOW_REQUEST_ACCEPTED if accept else FOLLOW_REQUEST_REJECTED
    commit_or_raise(db, detail="Unable to respond to follow request", refresh=(record,))
    logger.info("Follow request %s %s", record.id, record.status)
    return record


def cancel_request(db: Session, *, sender_id: UUID, receiver_id: UUID) -> bool:
    record = db.scalar(
        visible(db, FollowRequest).where(
            FollowRequest.sender_id == sender_id,
            FollowRequest.receiver_id == receiver_id,
            FollowRequest.status == FOLLOW_REQUEST_PENDING,
        )
    )
    if record is None:
        return False
    db.delete(record)
    commit_or_raise(db, detail="Unable to cancel follow request")
    return True


def delete_request(db: Session, *, request_id: UUID) -> None:
    """Sender may withdraw while pending; the receiver may discard at any time."""

    record = db.scalar(visible(db, FollowRequest).where(FollowRequest.id == request_id))
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Follow request not found")
    db.delete(record)
    commit_or_raise(db, detail="Unable to delete follow request")


def unfollow(db: Session, *, follower_id: UUID, following_id: UUID) -> bool:
    record = db.scalar(
        visible(db, Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    if record is None:
        return False
    db.delete(record)
    commit_or_raise(db, detail="Unable to unfollow profile")
    logger.info("Profile %s unfollowed %s", follower_id, following_id)
    return True


def is_following(db: Session, follower_id: UUID, following_id: UUID) -> bool:
    return helpers.is_following(db, follower_id, following_id)


def is_mutual(db: Session, profile_a: UUID, profile_b: UUID) -> bool:
    return helpers.are_mutual_followers(db, profile_a, profile_b)


def _pending_requests(db: Session, *criteria) -> list[FollowRequest]:
    stmt = (
        visible(db, FollowRequest)
        .where(FollowRequest.status == FOLLOW_REQUEST_PENDING, *criteria)
        .order_by(FollowRequest.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_incoming_requests(db: Session, *, viewer_id: UUID) -> list[FollowRequest]:
    return _pending_requests(db, FollowRequest.receiver_id == viewer_id)


def list_outgoing_requests(db: Session, *, viewer_id: UUID) -> list[FollowRequest]:
    return _pending_requests(db, FollowRequest.sender_id == viewer_id)


def get_follow_stats(db: Session, *, profile_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    _ensure_profile(db, profile_id, detail="Profile not found", status_code=status.HTTP_404_NOT_FOUND)

    edges = visible(db, Follow).subquery()
    followers_count = db.scalar(
        select(func.count()).select_from(edges).where(edges.c.following_id == profile_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(edges).where(edges.c.follower_id == profile_id)
    ) or 0

    return FollowStats(
        profile_id=profile_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=viewer_id is not None and helpers.is_following(db, viewer_id, profile_id),
    )


def list_followers(db: Session, *, profile_id: UUID) -> list[Profile]:
    stmt = (
        visible(db, Profile)
        .join(Follow, Follow.follower_id == Profile.id)
        .where(Follow.following_id == profile_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_following(db: Session, *, profile_id: UUID) -> list[Profile]:
    stmt = (
        visible(db, Profile)
        .join(Follow, Follow.following_id == Profile.id)
        .where(Follow.follower_id == profile_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_mutuals(db: Session, *, profile_id: UUID) -> list[Profile]:
    outgoing = aliased(Follow)
    incoming = aliased(Follow)
    stmt = (
        visible(db, Profile)
        .where(
            exists().where(and_(outgoing.follower_id == profile_id, outgoing.following_id == Profile.id)),
            exists().where(and_(incoming.follower_id == Profile.id, incoming.following_id == profile_id)),
        )
        .order_by(Profile.username)
    )
    return list(db.scalars(stmt))


def get_relationship(db: Session, *, viewer_id: UUID, profile_id: UUID) -> Relationship:
    _ensure_profile(db, profile_id, detail="Profile not found", status_code=status.HTTP_404_NOT_FOUND)
    following = helpers.is_following(db, viewer_id, profile_id)
    followed_by = helpers.is_following(db, profile_id, viewer_id)
    outgoing = _find_request(db, viewer_id, profile_id) if viewer_id != profile_id else None
    return Relationship(
        profile_id=profile_id,
        is_following=following,
        is_followed_by=followed_by,
        is_mutual=following and followed_by,
        outgoing_request_status=outgoing.status if outgoing is not None else None,
    )


__all__ = [
    "FollowStats",
    "Relationship",
    "request_follow",
    "respond_to_request",
    "cancel_request",
    "delete_request",
    "unfollow",
    "is_following",
    "is_mutual",
    "list_incoming_requests",
    "list_outgoing_requests",
    "get_follow_stats",
    "list_followers",
    "list_following",
    "list_mutuals",
    "get_relationship",
]
