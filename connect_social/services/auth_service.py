"""Identity provider tokens, lazy profile provisioning and request identity binding."""
from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import MissingSecretError, get_settings, load_jwt_secret
from ..database import get_session
from ..models import Profile
from ..security import bind_identity, resolve_profile

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

_HANDLE_INVALID = re.compile(r"[^a-z0-9_]+")
_HANDLE_MAX_BASE = 40
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_PROVISION_ATTEMPTS = 3


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return load_jwt_secret()
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


@dataclass(slots=True)
class IdentityClaims:
    """The parts of an identity provider token this service relies on."""

    subject: str
    email: str | None = None
    user_metadata: dict[str, Any] = field(default_factory=dict)
    provider: str | None = None


def create_identity_token(
    subject: str,
    *,
    email: str | None = None,
    user_metadata: dict[str, Any] | None = None,
    provider: str | None = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign a token in the identity provider's format (local tooling and tests)."""

    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.jwt_expires_minutes),
        "user_metadata": user_metadata or {},
    }
    if email:
        payload["email"] = email
    if provider:
        payload["app_metadata"] = {"provider": provider}
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_identity_token(token: str) -> IdentityClaims:
    """Decode and validate a token, returning the external identity and profile hints."""

    settings = get_settings()
    options = {} if settings.jwt_audience else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            _get_jwt_secret(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    metadata = payload.get("user_metadata") or {}
    app_metadata = payload.get("app_metadata") or {}
    return IdentityClaims(
        subject=subject,
        email=payload.get("email"),
        user_metadata=metadata if isinstance(metadata, dict) else {},
        provider=app_metadata.get("provider") if isinstance(app_metadata, dict) else None,
    )


def _normalize_handle(value: str) -> str:
    return _HANDLE_INVALID.sub("_", value.strip().lower()).strip("_")[:_HANDLE_MAX_BASE]


def derive_handle_base(claims: IdentityClaims) -> str:
    """``user_name``, then ``preferred_username``, then the email local part, else ``user``."""

    meta = claims.user_metadata
    email_prefix = claims.email.split("@", 1)[0] if claims.email else None
    for candidate in (meta.get("user_name"), meta.get("preferred_username"), email_prefix):
        if isinstance(candidate, str):
            normalized = _normalize_handle(candidate)
            if normalized:
                return normalized
    return "user"


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def _handle_suffix(attempt: int) -> str:
    if attempt == 0:
        return _to_base36(int(time.time() * 1000))[-4:].rjust(4, "0")
    return "".join(secrets.choice(_BASE36) for _ in range(4))


def provision_profile(db: Session, claims: IdentityClaims) -> Profile:
    """Return the profile owned by ``claims.subject``, creating it on first sign-in.

    The session must already be bound to ``claims.subject`` so the insert is
    checked against the profile policy.
    """

    existing = resolve_profile(db, claims.subject)
    if existing is not None:
        return existing

    base = derive_handle_base(claims)
    meta = claims.user_metadata
    avatar = meta.get("avatar_url") or meta.get("picture")
    provider_id = meta.get("provider_id") or meta.get("sub") or claims.provider

    for attempt in range(_PROVISION_ATTEMPTS):
        profile = Profile(
            user_id=claims.subject,
            username=f"{base}_{_handle_suffix(attempt)}",
            avatar_url=avatar if isinstance(avatar, str) else None,
            provider_id=str(provider_id) if provider_id else None,
            bio="",
        )
        db.add(profile)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # A concurrent sign-in may have provisioned the same identity.
            existing = resolve_profile(db, claims.subject)
            if existing is not None:
                return existing
            logger.info("Handle %s already taken, retrying", profile.username)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to provision profile for identity %s", claims.subject)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to provision profile"
            ) from exc
        except Exception:
            db.rollback()
            raise

        db.refresh(profile)
        logger.info("Provisioned profile %s (%s) for identity %s", profile.id, profile.username, claims.subject)
        return profile

    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Unable to allocate a unique username")


def authenticate_token(db: Session, token: str) -> Profile:
    """Decode ``token``, bind its identity to ``db`` and resolve or provision the profile."""

    claims = decode_identity_token(token)
    bind_identity(db, claims.subject)
    profile = provision_profile(db, claims)
    bind_identity(db, claims.subject, profile_id=profile.id)
    return profile


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
    db: Session = Depends(get_session),
) -> Profile:
    """Resolve the authenticated profile from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    return authenticate_token(db, credentials.credentials)


def get_viewer_session(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_session),
) -> Session:
    """The request session, acting on behalf of the authenticated profile."""

    bind_identity(db, profile.user_id, profile_id=profile.id)
    return db


__all__ = [
    "IdentityClaims",
    "authenticate_token",
    "create_identity_token",
    "decode_identity_token",
    "derive_handle_base",
    "get_current_profile",
    "get_viewer_session",
    "provision_profile",
]
