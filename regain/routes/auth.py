"""
Registration, login and session endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from regain.config import Settings, get_settings
from regain.db import DbClient, UserRecord
from regain.dependencies import get_db_client
from regain.errors import AuthenticationError
from regain.routes.base import EnvelopeRoute
from regain.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    StatusResponse,
    UserOut,
    UserResponse,
)
from regain.security import (
    dummy_password_hash,
    get_current_user,
    hash_password,
    issue_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(route_class=EnvelopeRoute, tags=["auth"])


@router.post("/register", response_model=UserResponse)
def register(
    payload: RegisterRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    user = UserRecord(
        email=payload.email.lower(),
        password_hash=hash_password(payload.password, settings.bcrypt_rounds),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
    )
    db.create_user(user)
    logger.info("Registered user %s", user.email)
    return UserResponse(
        status="success",
        message="User registered successfully",
        data=UserOut.from_record(user),
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    email = payload.email.lower()
    user = db.get_user(email)
    if user:
        password_hash = user.password_hash
    else:
        password_hash = dummy_password_hash(settings.bcrypt_rounds)
    password_ok = verify_password(payload.password, password_hash)
    if not user or not password_ok:
        logger.warning("Rejected login for %s", email)
        raise AuthenticationError("Invalid email or password")

    token = issue_token(user.email, settings)
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.token_ttl_hours * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
    logger.info("User %s logged in", user.email)
    return LoginResponse(
        status="success",
        message="Login successful",
        data=UserOut.from_record(user),
        token=token,
    )


@router.get("/auth", response_model=UserResponse)
def check_session(user: UserRecord = Depends(get_current_user)):
    return UserResponse(status="success", data=UserOut.from_record(user))


@router.post("/logout", response_model=StatusResponse)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
    return StatusResponse(status="success", message="Logged out")
