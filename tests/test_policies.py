"""Row security registry behaviour and per-table write rules."""
from __future__ import annotations

import pytest
from sqlalchemy import select

from connect_social.constants import (
    FOLLOW_REQUEST_ACCEPTED,
    FOLLOW_REQUEST_PENDING,
    FOLLOW_REQUEST_REJECTED,
    GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR,
    GROUP_ROLE_ADMIN,
    GROUP_ROLE_MEMBER,
)
from connect_social.models import Conversation, Follow, FollowRequest, Group, GroupMember, Message, Post, Profile
from connect_social.security import (
    CyclicPolicyError,
    PolicyContext,
    PolicyViolationError,
    RowSecurity,
    TablePolicy,
    group_member_policy,
    row_security,
    visible,
    visible_ids,
)
from connect_social.services.conversation_service import ordered_pair


def test_self_referential_member_policy_is_refused_when_installed():
    installed = row_security.policy_for(GroupMember)
    naive = TablePolicy(
        select=lambda ctx: GroupMember.group_id.in_(visible_ids(GroupMember, ctx, GroupMember.group_id)),
    )

    with pytest.raises(CyclicPolicyError) as excinfo:
        with row_security.swapped(GroupMember, naive):
            pass  # pragma: no cover - never reached

    assert "group_chat_members" in str(excinfo.value)
    assert excinfo.value.chain == ("group_chat_members", "group_chat_members")
    assert row_security.policy_for(GroupMember) is installed


def test_mutually_recursive_policies_are_detected_across_tables():
    registry = RowSecurity()
    registry.register(
        Conversation,
        TablePolicy(select=lambda ctx: Conversation.id.in_(registry.visible_ids(Message, ctx, Message.conversation_id))),
    )

    with pytest.raises(CyclicPolicyError) as excinfo:
        registry.register(
            Message,
            TablePolicy(select=lambda ctx: Message.conversation_id.in_(registry.visible_ids(Conversation, ctx))),
        )

    assert excinfo.value.chain == ("messages", "conversations", "messages")
    assert registry.policy_for(Message) is None
    assert registry.registered() == (Conversation,)


def test_missing_rule_denies(session_as, profile_factory):
    alice = profile_factory("alice")
    registry = RowSecurity()
    registry.register(Post, TablePolicy())
    ctx = PolicyContext.for_session(session_as(alice))

    with pytest.raises(PolicyViolationError):
        registry.check_insert(ctx, Post(author_id=alice.id, content="hi"))
    assert str(registry.row_filter(Post, ctx, "delete")) == "false"


def test_service_session_bypasses_row_security(session_as, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")

    system = session_as(None)
    system.add(Follow(follower_id=alice.id, following_id=bob.id))
    system.commit()

    assert system.scalar(select(Follow).where(Follow.follower_id == alice.id)) is not None


def test_follow_edges_are_never_client_insertable(session_as, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    db = session_as(alice)

    db.add(Follow(follower_id=alice.id, following_id=bob.id))
    with pytest.raises(PolicyViolationError) as excinfo:
        db.commit()
    db.rollback()

    assert str(excinfo.value) == 'new row violates row-level security policy for table "follows"'
    assert session_as(None).scalar(select(Follow)) is None


def test_post_counters_cannot_be_written_by_author(session_as, profile_factory):
    alice = profile_factory("alice")
    db = session_as(alice)
    post = Post(author_id=alice.id, content="hello")
    db.add(post)
    db.commit()

    post.likes_count = 1000
    with pytest.raises(PolicyViolationError):
        db.commit()
    db.rollback()

    post.content = "edited"
    db.commit()
    db.refresh(post)
    assert post.content == "edited"
    assert post.likes_count == 0


def test_other_profiles_cannot_be_updated(session_as, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    db = session_as(alice)

    target = db.get(Profile, bob.id)
    target.bio = "defaced"
    with pytest.raises(PolicyViolationError) as excinfo:
        db.commit()
    db.rollback()
    assert excinfo.value.command == "update"


def test_identity_link_is_immutable(session_as, profile_factory):
    alice = profile_factory("alice")
    db = session_as(alice)

    own = db.get(Profile, alice.id)
    own.user_id = "idp|someone-else"
    with pytest.raises(PolicyViolationError):
        db.commit()
    db.rollback()


def test_messages_are_immutable(session_as, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    follow(alice, bob, mutual=True)
    user_1, user_2 = ordered_pair(alice.id, bob.id)

    db = session_as(alice)
    conversation = Conversation(user_1=user_1, user_2=user_2)
    db.add(conversation)
    db.commit()
    message = Message(conversation_id=conversation.id, sender_id=alice.id, content="first")
    db.add(message)
    db.commit()

    message.content = "rewritten"
    with pytest.raises(PolicyViolationError):
        db.commit()
    db.rollback()

    db.delete(db.get(Message, message.id))
    with pytest.raises(PolicyViolationError):
        db.commit()
    db.rollback()


def test_fallback_member_visibility_shows_own_row_and_created_groups(session_as, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    other = profile_factory("other")

    system = session_as(None)
    group = Group(name="Fallback", created_by=owner.id)
    system.add(group)
    system.flush()
    system.add_all(
        [
            GroupMember(group_id=group.id, profile_id=member.id, role=GROUP_ROLE_MEMBER),
            GroupMember(group_id=group.id, profile_id=other.id, role=GROUP_ROLE_MEMBER),
        ]
    )
    system.commit()

    with row_security.swapped(GroupMember, group_member_policy(GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR)):
        member_db = session_as(member)
        rows = member_db.scalars(visible(member_db, GroupMember).where(GroupMember.group_id == group.id)).all()
        assert [row.profile_id for row in rows] == [member.id]

        owner_db = session_as(owner)
        rows = owner_db.scalars(visible(owner_db, GroupMember).where(GroupMember.group_id == group.id)).all()
        assert {row.profile_id for row in rows} == {owner.id, member.id, other.id}

    member_db = session_as(member)
    rows = member_db.scalars(visible(member_db, GroupMember).where(GroupMember.group_id == group.id)).all()
    assert {row.profile_id for row in rows} == {owner.id, member.id, other.id}
    assert {row.role for row in rows} == {GROUP_ROLE_ADMIN, GROUP_ROLE_MEMBER}


def test_unknown_member_visibility_mode_is_rejected():
    with pytest.raises(ValueError):
        group_member_policy("everyone")


def test_answered_follow_request_cannot_be_flipped(session_as, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")

    sender_db = session_as(alice)
    request = FollowRequest(sender_id=alice.id, receiver_id=bob.id, status=FOLLOW_REQUEST_PENDING)
    sender_db.add(request)
    sender_db.commit()

    receiver_db = session_as(bob)
    stored = receiver_db.get(FollowRequest, request.id)
    stored.status = FOLLOW_REQUEST_REJECTED
    receiver_db.commit()

    stored.status = FOLLOW_REQUEST_ACCEPTED
    with pytest.raises(PolicyViolationError) as excinfo:
        receiver_db.commit()
    receiver_db.rollback()
    assert excinfo.value.command == "update"

    system = session_as(None)
    assert system.scalar(select(FollowRequest.status).where(FollowRequest.id == request.id)) == FOLLOW_REQUEST_REJECTED
    assert system.scalar(select(Follow)) is None


def test_accepted_follow_request_cannot_be_rejected_afterwards(session_as, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")

    sender_db = session_as(alice)
    request = FollowRequest(sender_id=alice.id, receiver_id=bob.id, status=FOLLOW_REQUEST_PENDING)
    sender_db.add(request)
    sender_db.commit()

    receiver_db = session_as(bob)
    stored = receiver_db.get(FollowRequest, request.id)
    stored.status = FOLLOW_REQUEST_ACCEPTED
    receiver_db.commit()
    assert session_as(None).scalar(select(Follow).where(Follow.follower_id == alice.id)) is not None

    stored.status = FOLLOW_REQUEST_REJECTED
    with pytest.raises(PolicyViolationError):
        receiver_db.commit()
    receiver_db.rollback()
