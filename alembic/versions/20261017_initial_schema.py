"""Initial Connect Social schema: profiles, feed, follow workflow and chats.

Revision ID: 20261017_initial_schema
Revises:
Create Date: 2026-10-17
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _profile_fk(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, _uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=nullable)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


_INDEXES = (
    ("profiles", "user_id", True),
    ("profiles", "username", True),
    ("posts", "author_id", False),
    ("comments", "post_id", False),
    ("comments", "author_id", False),
    ("comments", "parent_id", False),
    ("likes", "post_id", False),
    ("likes", "user_id", False),
    ("follows", "follower_id", False),
    ("follows", "following_id", False),
    ("follow_requests", "sender_id", False),
    ("follow_requests", "receiver_id", False),
    ("conversations", "user_1", False),
    ("conversations", "user_2", False),
    ("messages", "conversation_id", False),
    ("messages", "sender_id", False),
    ("group_chats", "created_by", False),
    ("group_chat_members", "group_id", False),
    ("group_chat_members", "profile_id", False),
    ("group_chat_messages", "group_id", False),
    ("group_chat_messages", "sender_id", False),
    ("chat_read_status", "profile_id", False),
    ("chat_read_status", "conversation_id", False),
    ("chat_read_status", "group_id", False),
)


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("bio", sa.Text(), nullable=False, server_default=""),
        sa.Column("provider_id", sa.String(length=255), nullable=True),
        _created_at(),
        _created_at("updated_at"),
    )

    op.create_table(
        "posts",
        sa.Column("id", _uuid(), primary_key=True),
        _profile_fk("author_id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("post_type", sa.String(length=16), nullable=False, server_default="text"),
        sa.Column("likes_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shares_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _created_at("updated_at"),
        sa.CheckConstraint("post_type IN ('text', 'image', 'blog')", name="ck_posts_post_type"),
    )

    op.create_table(
        "comments",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("post_id", _uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("author_id"),
        sa.Column("parent_id", _uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "likes",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("post_id", _uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("user_id"),
        _created_at(),
        sa.UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),
    )

    op.create_table(
        "follows",
        sa.Column("id", _uuid(), primary_key=True),
        _profile_fk("follower_id"),
        _profile_fk("following_id"),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
    )

    op.create_table(
        "follow_requests",
        sa.Column("id", _uuid(), primary_key=True),
        _profile_fk("sender_id"),
        _profile_fk("receiver_id"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("sender_id", "receiver_id", name="uq_follow_requests_pair"),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_follow_requests_no_self"),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name="ck_follow_requests_status"),
    )

    op.create_table(
        "conversations",
        sa.Column("id", _uuid(), primary_key=True),
        _profile_fk("user_1"),
        _profile_fk("user_2"),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("user_1", "user_2", name="uq_conversations_pair"),
        sa.CheckConstraint("user_1 < user_2", name="ck_conversations_canonical_order"),
    )

    op.create_table(
        "messages",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("conversation_id", _uuid(), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("sender_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "group_chats",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        _profile_fk("created_by"),
        _created_at(),
        _created_at("updated_at"),
    )

    op.create_table(
        "group_chat_members",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("group_id", _uuid(), sa.ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("profile_id"),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        _created_at("joined_at"),
        sa.UniqueConstraint("group_id", "profile_id", name="uq_group_chat_members_pair"),
        sa.CheckConstraint("role IN ('member', 'admin')", name="ck_group_chat_members_role"),
    )

    op.create_table(
        "group_chat_messages",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("group_id", _uuid(), sa.ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False),
        _profile_fk("sender_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "chat_read_status",
        sa.Column("id", _uuid(), primary_key=True),
        _profile_fk("profile_id"),
        sa.Column("conversation_id", _uuid(), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=True),
        sa.Column("group_id", _uuid(), sa.ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=True),
        _created_at("last_read_at"),
        sa.UniqueConstraint("profile_id", "conversation_id", name="uq_chat_read_status_conversation"),
        sa.UniqueConstraint("profile_id", "group_id", name="uq_chat_read_status_group"),
        sa.CheckConstraint(
            "(conversation_id IS NULL AND group_id IS NOT NULL) OR (conversation_id IS NOT NULL AND group_id IS NULL)",
            name="ck_chat_read_status_single_target",
        ),
    )

    for table, column, unique in _INDEXES:
        op.create_index(f"ix_{table}_{column}", table, [column], unique=unique)


def downgrade() -> None:
    for table, column, _unique in reversed(_INDEXES):
        op.drop_index(f"ix_{table}_{column}", table_name=table)

    for table in (
        "chat_read_status",
        "group_chat_messages",
        "group_chat_members",
        "group_chats",
        "messages",
        "conversations",
        "follow_requests",
        "follows",
        "likes",
        "comments",
        "posts",
        "profiles",
    ):
        op.drop_table(table)
