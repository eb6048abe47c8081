"""Bearer tokens, first sign-in provisioning and profile updates."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from connect_social.database import SessionLocal
from connect_social.main import app
from connect_social.models import Profile
from connect_social.config import MissingSecretError, load_jwt_secret
from connect_social.services import IdentityClaims, create_identity_token
from connect_social.services.auth_service import derive_handle_base


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_first_sign_in_provisions_exactly_one_profile(client):
    token = create_identity_token(
        "idp|new-user",
        email="Jane.Doe@example.com",
        user_metadata={"avatar_url": "https://cdn.example.com/jane.png"},
        provider="github",
    )

    first = client.get("/profiles/me", headers=_bearer(token))
    assert first.status_code == 200
    body = first.json()
    assert body["username"].startswith("jane_doe_")
    assert len(body["username"]) == len("jane_doe_") + 4
    assert body["avatar_url"] == "https://cdn.example.com/jane.png"

    second = client.get("/profiles/me", headers=_bearer(token))
    assert second.json()["id"] == body["id"]

    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Profile)) == 1
        stored = session.scalar(select(Profile))
        assert stored.user_id == "idp|new-user"
        assert stored.provider_id == "github"


def test_existing_profile_is_resolved_not_recreated(client, profile_factory):
    alice = profile_factory("alice")
    token = create_identity_token(alice.user_id, user_metadata={"user_name": "someone_else"})

    response = client.get("/profiles/me", headers=_bearer(token))
    assert response.json()["id"] == str(alice.id)
    assert response.json()["username"] == "alice"


def test_missing_or_invalid_tokens_are_rejected(client):
    assert client.get("/profiles/me").status_code == 401
    assert client.get("/profiles/me", headers=_bearer("not-a-jwt")).status_code == 401

    expired = create_identity_token("idp|late", expires_minutes=-5)
    assert client.get("/profiles/me", headers=_bearer(expired)).status_code == 401


@pytest.mark.parametrize(
    ("metadata", "email", "expected"),
    [
        ({"user_name": "Octo Cat"}, "x@example.com", "octo_cat"),
        ({"preferred_username": "pref.name"}, None, "pref_name"),
        ({}, "first.last+tag@example.com", "first_last_tag"),
        ({"user_name": "!!!"}, None, "user"),
        ({}, None, "user"),
    ],
)
def test_handle_derivation(metadata, email, expected):
    claims = IdentityClaims(subject="idp|x", email=email, user_metadata=metadata)
    assert derive_handle_base(claims) == expected


@pytest.mark.parametrize("value", ["", "   ", "changeme", "Your-JWT-Secret"])
def test_sample_signing_keys_are_refused(monkeypatch, value):
    monkeypatch.setenv("JWT_SECRET_KEY", value)
    with pytest.raises(MissingSecretError):
        load_jwt_secret()


def test_signing_key_is_trimmed(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "  real-value  ")
    assert load_jwt_secret() == "real-value"

    monkeypatch.delenv("JWT_SECRET_KEY")
    with pytest.raises(MissingSecretError):
        load_jwt_secret()


def test_profile_update_and_handle_conflict(authed_client, profile_factory):
    alice = profile_factory("alice")
    profile_factory("bob")
    client = authed_client(alice)

    updated = client.put("/profiles/me", json={"bio": "Hello", "username": "alice_2"})
    assert updated.status_code == 200
    assert updated.json()["username"] == "alice_2"
    assert updated.json()["bio"] == "Hello"

    assert client.put("/profiles/me", json={"username": "bob"}).status_code == 409
    assert client.put("/profiles/me", json={"username": "Not Valid"}).status_code == 422

    assert client.get("/profiles/alice_2").json()["id"] == str(alice.id)
    found = client.get("/profiles/search", params={"q": "bo"}).json()
    assert [item["username"] for item in found] == ["bob"]
