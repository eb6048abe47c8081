"""Identity resolution: from an authenticated external identity to one profile.

The lookups in this module read ``profiles`` directly instead of going through
:func:`connect_social.security.policies.visible`. Policies call
:func:`current_profile_id` while they are being evaluated, so routing it
through the filtered path would make every predicate depend on itself.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Profile

AUTH_UID_KEY = "auth.uid"
PROFILE_ID_KEY = "auth.profile_id"


def bind_identity(session: Session, auth_uid: str, *, profile_id: UUID | None = None) -> None:
    """Run every subsequent statement in ``session`` on behalf of ``auth_uid``."""

    session.info[AUTH_UID_KEY] = auth_uid
    if profile_id is None:
        session.info.pop(PROFILE_ID_KEY, None)
    else:
        session.info[PROFILE_ID_KEY] = profile_id


def auth_uid(session: Session) -> str | None:
    return session.info.get(AUTH_UID_KEY)


def is_privileged(session: Session) -> bool:
    """Sessions without a bound identity act as the service role."""

    return session.info.get(AUTH_UID_KEY) is None


@contextmanager
def elevated(session: Session) -> Iterator[Session]:
    """Temporarily drop the bound identity so writes skip row security."""

    saved_uid = session.info.pop(AUTH_UID_KEY, None)
    saved_profile = session.info.pop(PROFILE_ID_KEY, None)
    try:
        yield session
    finally:
        if saved_uid is not None:
            session.info[AUTH_UID_KEY] = saved_uid
        if saved_profile is not None:
            session.info[PROFILE_ID_KEY] = saved_profile


def resolve_profile(session: Session, external_id: str) -> Profile | None:
    with session.no_autoflush:
        return session.scalar(select(Profile).where(Profile.user_id == external_id))


def current_profile_id(session: Session) -> UUID | None:
    """Profile id owned by the session's identity, or ``None`` when not provisioned."""

    cached = session.info.get(PROFILE_ID_KEY)
    if cached is not None:
        return cached
    uid = auth_uid(session)
    if uid is None:
        return None
    with session.no_autoflush:
        profile_id = session.scalar(select(Profile.id).where(Profile.user_id == uid))
    if profile_id is not None:
        session.info[PROFILE_ID_KEY] = profile_id
    return profile_id


__all__ = [
    "AUTH_UID_KEY",
    "PROFILE_ID_KEY",
    "auth_uid",
    "bind_identity",
    "current_profile_id",
    "elevated",
    "is_privileged",
    "resolve_profile",
]
