"""Shared fixtures: a throwaway SQLite schema, profiles and identity-bound clients."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_connect_social.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from connect_social.database import Base, SessionLocal, engine  # noqa: E402
from connect_social.main import app  # noqa: E402
from connect_social.models import Follow, Profile  # noqa: E402
from connect_social.security import bind_identity  # noqa: E402
from connect_social.services import get_current_profile  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    yield
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture
def profile_factory() -> Callable[[str], Profile]:
    def _factory(handle: str) -> Profile:
        with SessionLocal() as session:
            profile = Profile(user_id=f"idp|{handle}", username=handle)
            session.add(profile)
            session.commit()
            session.refresh(profile)
            return profile
    return _factory


@pytest.fixture
def follow() -> Callable[..., None]:
    """Write follow edges directly, the way the acceptance trigger would."""

    def _follow(follower: Profile, following: Profile, *, mutual: bool = False) -> None:
        with SessionLocal() as session:
            session.add(Follow(follower_id=follower.id, following_id=following.id))
            if mutual:
                session.add(Follow(follower_id=following.id, following_id=follower.id))
            session.commit()
    return _follow


@pytest.fixture
def session_as() -> Iterator[Callable[[Profile | None], Session]]:
    """Open sessions acting on behalf of a profile; ``None`` gives a service session."""

    sessions: list[Session] = []

    def _open(profile: Profile | None = None) -> Session:
        session = SessionLocal()
        if profile is not None:
            bind_identity(session, profile.user_id, profile_id=profile.id)
        sessions.append(session)
        return session

    yield _open
    for session in sessions:
        session.close()


@pytest.fixture
def authed_client() -> Iterator[Callable[[Profile], TestClient]]:
    with TestClient(app) as client:
        def _with_profile(profile: Profile) -> TestClient:
            def _override() -> Profile:
                return profile
            app.dependency_overrides[get_current_profile] = _override
            return client
        yield _with_profile
    app.dependency_overrides.clear()
