"""Feed posts, likes, comments and shares.

Counter columns on ``posts`` are never written here: likes and comments move
them through the consistency triggers, shares through
:func:`connect_social.triggers.increment_share_count`.
"""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import POST_TYPES
from ..models import Comment, Like, Post, Profile
from ..security import elevated, visible
from ..triggers import increment_share_count
from .persistence import commit_or_raise, flush_or_raise

logger = logging.getLogger(__name__)


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.scalar(visible(db, Post).where(Post.id == post_id))
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _liked_post_ids(db: Session, viewer_id: UUID | None, post_ids: list[UUID]) -> set[UUID]:
    if viewer_id is None or not post_ids:
        return set()
    stmt = select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(post_ids))
    return set(db.scalars(stmt))


def _serialize_posts(db: Session, rows: list[tuple[Post, str | None, str | None]], viewer_id: UUID | None) -> list[dict[str, Any]]:
    liked = _liked_post_ids(db, viewer_id, [post.id for post, _, _ in rows])
    return [
        {
            "id": post.id,
            "author_id": post.author_id,
            "content": post.content,
            "image_url": post.image_url,
            "post_type": post.post_type,
            "created_at": post.created_at,
            "updated_at": post.updated_at,
            "username": cast(str | None, username),
            "avatar_url": cast(str | None, avatar_url),
            "likes_count": post.likes_count,
            "comments_count": post.comments_count,
            "shares_count": post.shares_count,
            "liked_by_me": post.id in liked,
        }
        for post, username, avatar_url in rows
    ]


def _feed_statement(db: Session):
    return (
        visible(db, Post)
        .join(Profile, Profile.id == Post.author_id)
        .add_columns(Profile.username, Profile.avatar_url)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .execution_options(populate_existing=True)
    )


def create_post(
    db: Session,
    *,
    author_id: UUID,
    content: str,
    image_url: str | None = None,
    post_type: str = "text",
) -> Post:
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post content cannot be empty")
    if post_type not in POST_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported post type")

    post = Post(author_id=author_id, content=text, image_url=image_url, post_type=post_type)
    db.add(post)
    commit_or_raise(db, detail="Failed to create post", refresh=(post,))
    logger.info("Post %s created by %s", post.id, author_id)
    return post


def list_feed(db: Session, *, viewer_id: UUID | None, limit: int | None = None, before=None) -> list[dict[str, Any]]:
    """Newest first, capped at ``FEED_PAGE_SIZE``."""

    page_size = get_settings().feed_page_size
    stmt = _feed_statement(db)
    if before is not None:
        stmt = stmt.where(Post.created_at < before)
    stmt = stmt.limit(max(1, min(limit or page_size, page_size)))
    return _serialize_posts(db, db.execute(stmt).all(), viewer_id)


def list_profile_posts(db: Session, *, profile_id: UUID, viewer_id: UUID | None) -> list[dict[str, Any]]:
    stmt = _feed_statement(db).where(Post.author_id == profile_id).limit(get_settings().feed_page_size)
    return _serialize_posts(db, db.execute(stmt).all(), viewer_id)


def get_post(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    row = db.execute(_feed_statement(db).where(Post.id == post_id)).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return _serialize_posts(db, [row], viewer_id)[0]


def update_post(db: Session, *, post_id: UUID, changes: dict[str, Any]) -> Post:
    """Author-only edit of content, image and type; the counters stay trigger-owned."""

    post = _get_post_or_404(db, post_id)
    if "content" in changes:
        text = (changes["content"] or "").strip()
        if not text:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Post content cannot be empty")
        post.content = text
    if "image_url" in changes:
        post.image_url = changes["image_url"] or None
    if changes.get("post_type") is not None:
        post.post_type = changes["post_type"]

    commit_or_raise(db, detail="Failed to update post", refresh=(post,))
    return post


def delete_post(db: Session, *, post_id: UUID) -> None:
    post = _get_post_or_404(db, post_id)
    db.delete(post)
    commit_or_raise(db, detail="Failed to delete post")
    logger.info("Post %s deleted", post_id)


def engagement_snapshot(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    db.refresh(post)
    return {
        "post_id": post.id,
        "likes_count": post.likes_count,
        "comments_count": post.comments_count,
        "shares_count": post.shares_count,
        "liked_by_me": post.id in _liked_post_ids(db, viewer_id, [post.id]),
    }


def like_post(db: Session, *, post_id: UUID, viewer_id: UUID) -> dict[str, Any]:
    _get_post_or_404(db, post_id)

    existing = db.scalar(visible(db, Like).where(Like.post_id == post_id, Like.user_id == viewer_id))
    if existing is None:
        db.add(Like(post_id=post_id, user_id=viewer_id))
        try:
            commit_or_raise(db, detail="Failed to like post")
        except IntegrityError:
            # Liked concurrently; the existing row already counts.
            pass

    return engagement_snapshot(db, post_id=post_id, viewer_id=viewer_id)


def unlike_post(db: Session, *, post_id: UUID, viewer_id: UUID) -> dict[str, Any]:
    _get_post_or_404(db, post_id)

    existing = db.scalar(visible(db, Like).where(Like.post_id == post_id, Like.user_id == viewer_id))
    if existing is not None:
        db.delete(existing)
        commit_or_raise(db, detail="Failed to unlike post")

    return engagement_snapshot(db, post_id=post_id, viewer_id=viewer_id)


def share_post(db: Session, *, post_id: UUID, viewer_id: UUID) -> dict[str, Any]:
    _get_post_or_404(db, post_id)
    increment_share_count(db.connection(), post_id)
    commit_or_raise(db, detail="Failed to share post")
    return engagement_snapshot(db, post_id=post_id, viewer_id=viewer_id)


def _comment_node(comment: Comment, username: str | None, avatar_url: str | None) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author_id": comment.author_id,
        "username": username,
        "avatar_url": avatar_url,
        "content": comment.content,
        "parent_id": comment.parent_id,
        "created_at": comment.created_at,
        "replies": [],
    }


def list_comments(db: Session, *, post_id: UUID) -> list[dict[str, Any]]:
    """Top-level comments oldest first, each carrying its replies."""

    _get_post_or_404(db, post_id)
    stmt = (
        visible(db, Comment)
        .join(Profile, Comment.author_id == Profile.id)
        .add_columns(Profile.username, Profile.avatar_url)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )

    nodes: dict[UUID, dict[str, Any]] = {}
    roots: list[dict[str, Any]] = []
    for comment, username, avatar_url in db.execute(stmt).all():
        node = _comment_node(comment, username, avatar_url)
        nodes[comment.id] = node
        if comment.parent_id and comment.parent_id in nodes:
            nodes[comment.parent_id]["replies"].append(node)
        else:
            roots.append(node)
    return roots


def create_comment(
    db: Session,
    *,
    post_id: UUID,
    author: Profile,
    content: str,
    parent_id: UUID | None = None,
) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment cannot be empty")

    if parent_id is not None:
        parent = db.scalar(visible(db, Comment).where(Comment.id == parent_id))
        if parent is None or parent.post_id != post.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid parent comment")
        if parent.parent_id is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Replies cannot be nested further")

    comment = Comment(post_id=post.id, author_id=author.id, content=text, parent_id=parent_id)
    db.add(comment)
    commit_or_raise(db, detail="Failed to add comment", refresh=(comment,))
    return _comment_node(comment, author.username, author.avatar_url)


def delete_comment(db: Session, *, comment_id: UUID) -> UUID:
    """Author-only; the replies under the comment go with it. Returns the post id."""

    comment = db.scalar(visible(db, Comment, command="delete").where(Comment.id == comment_id))
    if comment is None:
        if db.scalar(visible(db, Comment).where(Comment.id == comment_id)) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author may delete this comment")

    post_id = comment.post_id
    replies = list(comment.replies)
    if replies:
        # Thread removal: replies by other authors are deleted on the author's behalf.
        with elevated(db):
            for reply in replies:
                db.delete(reply)
            flush_or_raise(db, detail="Failed to delete comment")
        db.expire(comment, ["replies"])

    db.delete(comment)
    commit_or_raise(db, detail="Failed to delete comment")
    return post_id


__all__ = [
    "create_post",
    "list_feed",
    "list_profile_posts",
    "get_post",
    "update_post",
    "delete_post",
    "engagement_snapshot",
    "like_post",
    "unlike_post",
    "share_post",
    "create_comment",
    "list_comments",
    "delete_comment",
]
