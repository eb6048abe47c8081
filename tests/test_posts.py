"""Feed posts and the counters kept in step with likes, comments and shares."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from connect_social.database import SessionLocal
from connect_social.models import Post


def _counters(post_id) -> tuple[int, int, int]:
    with SessionLocal() as session:
        post = session.scalar(select(Post).where(Post.id == UUID(str(post_id))))
        return post.likes_count, post.comments_count, post.shares_count


def _publish(client, content="First post"):
    response = client.post("/posts", json={"content": content})
    assert response.status_code == 201
    return response.json()


def test_create_and_read_post(authed_client, profile_factory):
    alice = profile_factory("alice")
    post = _publish(authed_client(alice), "  Hello world  ")

    assert post["content"] == "Hello world"
    assert post["username"] == "alice"
    assert post["post_type"] == "text"
    assert (post["likes_count"], post["comments_count"], post["shares_count"]) == (0, 0, 0)

    bob = profile_factory("bob")
    fetched = authed_client(bob).get(f"/posts/{post['id']}")
    assert fetched.json()["id"] == post["id"]


def test_feed_is_newest_first(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    first = _publish(authed_client(alice), "older")
    second = _publish(authed_client(bob), "newer")

    feed = authed_client(alice).get("/posts/feed").json()["items"]
    assert [item["id"] for item in feed] == [second["id"], first["id"]]

    limited = authed_client(alice).get("/posts/feed", params={"limit": 1}).json()["items"]
    assert [item["id"] for item in limited] == [second["id"]]

    profile_posts = authed_client(bob).get(f"/profiles/id/{alice.id}/posts").json()
    assert [item["id"] for item in profile_posts["items"]] == [first["id"]]


def test_only_the_author_edits_or_deletes(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    post = _publish(authed_client(alice))

    assert authed_client(bob).patch(f"/posts/{post['id']}", json={"content": "hijacked"}).status_code == 403
    assert authed_client(bob).delete(f"/posts/{post['id']}").status_code == 403

    edited = authed_client(alice).patch(f"/posts/{post['id']}", json={"content": "edited"})
    assert edited.status_code == 200
    assert edited.json()["content"] == "edited"

    assert authed_client(alice).delete(f"/posts/{post['id']}").status_code == 204
    assert authed_client(alice).get(f"/posts/{post['id']}").status_code == 404


def test_like_round_trip_restores_counter(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    post = _publish(authed_client(alice))

    liked = authed_client(bob).post(f"/posts/{post['id']}/like")
    assert liked.json()["likes_count"] == 1
    assert liked.json()["liked_by_me"] is True

    again = authed_client(bob).post(f"/posts/{post['id']}/like")
    assert again.json()["likes_count"] == 1

    from_author = authed_client(alice).get(f"/posts/{post['id']}").json()
    assert from_author["likes_count"] == 1
    assert from_author["liked_by_me"] is False

    unliked = authed_client(bob).delete(f"/posts/{post['id']}/like")
    assert unliked.json()["likes_count"] == 0
    assert unliked.json()["liked_by_me"] is False

    noop = authed_client(bob).delete(f"/posts/{post['id']}/like")
    assert noop.json()["likes_count"] == 0
    assert _counters(post["id"]) == (0, 0, 0)


def test_shares_increment_atomically(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    post = _publish(authed_client(alice))

    authed_client(bob).post(f"/posts/{post['id']}/share")
    shared = authed_client(alice).post(f"/posts/{post['id']}/share")

    assert shared.status_code == 200
    assert shared.json()["shares_count"] == 2
    assert _counters(post["id"]) == (0, 0, 2)


def test_comments_nest_one_level(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    post = _publish(authed_client(alice))

    top = authed_client(bob).post(f"/posts/{post['id']}/comments", json={"content": "Nice"}).json()
    reply = authed_client(alice).post(
        f"/posts/{post['id']}/comments", json={"content": "Thanks", "parent_id": top["id"]}
    )
    assert reply.status_code == 201
    assert reply.json()["parent_id"] == top["id"]

    nested = authed_client(bob).post(
        f"/posts/{post['id']}/comments", json={"content": "deeper", "parent_id": reply.json()["id"]}
    )
    assert nested.status_code == 400

    other_post = _publish(authed_client(bob), "Elsewhere")
    cross = authed_client(bob).post(
        f"/posts/{other_post['id']}/comments", json={"content": "wrong thread", "parent_id": top["id"]}
    )
    assert cross.status_code == 400

    thread = authed_client(bob).get(f"/posts/{post['id']}/comments").json()["items"]
    assert [item["content"] for item in thread] == ["Nice"]
    assert [item["content"] for item in thread[0]["replies"]] == ["Thanks"]
    assert _counters(post["id"])[1] == 2


def test_deleting_a_comment_removes_its_replies_and_adjusts_counter(authed_client, profile_factory):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    post = _publish(authed_client(alice))

    top = authed_client(bob).post(f"/posts/{post['id']}/comments", json={"content": "Nice"}).json()
    authed_client(alice).post(f"/posts/{post['id']}/comments", json={"content": "Thanks", "parent_id": top["id"]})
    other = authed_client(alice).post(f"/posts/{post['id']}/comments", json={"content": "Standalone"}).json()
    assert _counters(post["id"])[1] == 3

    assert authed_client(alice).delete(f"/posts/comments/{top['id']}").status_code == 403
    assert authed_client(bob).delete("/posts/comments/00000000-0000-0000-0000-000000000001").status_code == 404

    assert authed_client(bob).delete(f"/posts/comments/{top['id']}").status_code == 204
    thread = authed_client(alice).get(f"/posts/{post['id']}/comments").json()["items"]
    assert [item["id"] for item in thread] == [other["id"]]
    assert _counters(post["id"])[1] == 1
