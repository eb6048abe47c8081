"""Consistency triggers keeping derived rows and counters in step with their sources.

Every handler runs on the flush connection of the statement that fired it, so
the derived write commits or rolls back together with the source row. Writes
issued here go straight through Core and are never evaluated against the row
security policies: they are the privileged side of the model, the same way a
``SECURITY DEFINER`` trigger is.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, event, exists, inspect, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.sql.schema import Table

from .constants import FOLLOW_REQUEST_ACCEPTED, FOLLOW_REQUEST_PENDING, GROUP_ROLE_ADMIN
from .models.base import utcnow
from .models.conversation import Conversation, Message
from .models.follow import Follow, FollowRequest
from .models.group import Group, GroupMember, GroupMessage
from .models.post import Comment, Like, Post

logger = logging.getLogger(__name__)


def insert_ignoring_conflicts(connection: Connection, table: Table, values: dict[str, Any], *, conflict_columns: tuple[str, ...]) -> None:
    """``INSERT ... ON CONFLICT DO NOTHING`` across the supported dialects."""

    dialect = connection.dialect.name
    if dialect == "postgresql":
        connection.execute(pg_insert(table).values(**values).on_conflict_do_nothing())
        return
    if dialect == "sqlite":
        connection.execute(sqlite_insert(table).values(**values).on_conflict_do_nothing())
        return

    already_there = connection.scalar(
        select(exists().where(*[table.c[name] == values[name] for name in conflict_columns]))
    )
    if not already_there:
        connection.execute(insert(table).values(**values))


def previous_value(target: Any, attribute: str) -> Any:
    history = inspect(target).attrs[attribute].history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


# --- groups ---------------------------------------------------------------


@event.listens_for(Group, "after_insert")
def _grant_creator_admin(_mapper, connection: Connection, target: Group) -> None:
    insert_ignoring_conflicts(
        connection,
        GroupMember.__table__,
        {"group_id": target.id, "profile_id": target.created_by, "role": GROUP_ROLE_ADMIN},
        conflict_columns=("group_id", "profile_id"),
    )
    logger.debug("Granted creator %s admin membership of group %s", target.created_by, target.id)


@event.listens_for(GroupMessage, "after_insert")
def _touch_group_activity(_mapper, connection: Connection, target: GroupMessage) -> None:
    connection.execute(
        update(Group.__table__)
        .where(Group.__table__.c.id == target.group_id)
        .values(updated_at=target.created_at or utcnow())
    )


# --- follow workflow ------------------------------------------------------


@event.listens_for(FollowRequest, "after_update")
def _materialize_accepted_follow(_mapper, connection: Connection, target: FollowRequest) -> None:
    if target.status != FOLLOW_REQUEST_ACCEPTED:
        return
    if previous_value(target, "status") != FOLLOW_REQUEST_PENDING:
        return
    insert_ignoring_conflicts(
        connection,
        Follow.__table__,
        {"follower_id": target.sender_id, "following_id": target.receiver_id},
        conflict_columns=("follower_id", "following_id"),
    )
    logger.debug("Follow edge %s -> %s materialized from request %s", target.sender_id, target.receiver_id, target.id)


@event.listens_for(Follow, "after_delete")
def _clear_lingering_request(_mapper, connection: Connection, target: Follow) -> None:
    # Leaves the pair free for a fresh request later on.
    table = FollowRequest.__table__
    connection.execute(
        delete(table).where(table.c.sender_id == target.follower_id, table.c.receiver_id == target.following_id)
    )


# --- feed counters --------------------------------------------------------


def _shift_post_counter(connection: Connection, post_id: Any, column: str, delta: int) -> None:
    table = Post.__table__
    connection.execute(update(table).where(table.c.id == post_id).values({column: table.c[column] + delta}))


@event.listens_for(Like, "after_insert")
def _like_added(_mapper, connection: Connection, target: Like) -> None:
    _shift_post_counter(connection, target.post_id, "likes_count", 1)


@event.listens_for(Like, "after_delete")
def _like_removed(_mapper, connection: Connection, target: Like) -> None:
    _shift_post_counter(connection, target.post_id, "likes_count", -1)


@event.listens_for(Comment, "after_insert")
def _comment_added(_mapper, connection: Connection, target: Comment) -> None:
    _shift_post_counter(connection, target.post_id, "comments_count", 1)


@event.listens_for(Comment, "after_delete")
def _comment_removed(_mapper, connection: Connection, target: Comment) -> None:
    _shift_post_counter(connection, target.post_id, "comments_count", -1)


def increment_share_count(connection: Connection, post_id: Any) -> None:
    """Atomic share counter bump; the only sanctioned write path for ``shares_count``."""

    _shift_post_counter(connection, post_id, "shares_count", 1)


# --- direct messages ------------------------------------------------------


@event.listens_for(Message, "after_insert")
def _touch_conversation_activity(_mapper, connection: Connection, target: Message) -> None:
    connection.execute(
        update(Conversation.__table__)
        .where(Conversation.__table__.c.id == target.conversation_id)
        .values(updated_at=target.created_at or utcnow())
    )


__all__ = ["insert_ignoring_conflicts", "increment_share_count", "previous_value"]
