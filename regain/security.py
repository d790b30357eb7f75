"""
Password hashing and session tokens.

Passwords are hashed with bcrypt. Sessions are HS256 JWTs carrying the
user's email, delivered in an HTTP-only cookie (a ``Bearer`` header is
accepted as well for non-browser clients).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request

from regain.config import Settings, get_settings
from regain.db import DbClient, UserRecord
from regain.dependencies import get_db_client
from regain.errors import AuthenticationError, InvalidRequestError

logger = logging.getLogger(__name__)

MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 10) -> str:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise InvalidRequestError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes long"
        )
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@lru_cache(maxsize=None)
def dummy_password_hash(rounds: int = 10) -> str:
    """Hash compared against when the email is unknown, so login costs the same."""
    return bcrypt.hashpw(b"regain-unknown-user", bcrypt.gensalt(rounds)).decode("utf-8")


def issue_token(email: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "email": email,
        "iat": now,
        "exp": now + timedelta(hours=settings.token_ttl_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> str:
    """Return the email inside a valid token or raise AuthenticationError."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Session expired, please login again") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid authentication") from exc

    email = payload.get("email")
    if not email or not isinstance(email, str):
        raise AuthenticationError("Invalid authentication")
    return email


def _token_from_request(request: Request, settings: Settings) -> Optional[str]:
    token = request.cookies.get(settings.cookie_name)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip() or None
    return None


def get_current_email(
    request: Request, settings: Settings = Depends(get_settings)
) -> str:
    """Dependency resolving the authenticated caller's email."""
    token = _token_from_request(request, settings)
    if not token:
        raise AuthenticationError("Please login first")
    return decode_token(token, settings)


def get_current_user(
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
) -> UserRecord:
    user = db.get_user(email)
    if not user:
        logger.warning("Valid token for unknown user %s", email)
        raise AuthenticationError("User not found")
    return user
