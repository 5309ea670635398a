from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.audit import log_audit, request_meta
from app.db import get_db
from app.errors import ApiError, bad_request
from app.models import Newsroom, User, UserRole
from app.schemas import AdminLoginRequest, NewsroomRead, PinLoginRequest, SessionUserRead
from app.security import (
    CurrentUser,
    create_access_token,
    ensure_login_attempt_allowed,
    get_current_user,
    register_login_failure,
    register_login_success,
    verify_password,
)

router = APIRouter(tags=["auth"])
logger = logging.getLogger("app.request")

INVALID_CREDENTIALS = "Pogrešno korisničko ime ili lozinka"


def _newsroom_read(db: Session, newsroom_id: int | None) -> NewsroomRead | None:
    if newsroom_id is None:
        return None
    newsroom = db.get(Newsroom, newsroom_id)
    return NewsroomRead.model_validate(newsroom) if newsroom is not None else None


def _session_user(db: Session, user: User) -> SessionUserRead:
    return SessionUserRead(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
        newsroom_id=user.newsroom_id,
        newsroom=_newsroom_read(db, user.newsroom_id),
    )


def _throttle_key(meta: dict[str, str | None], fallback: str) -> str:
    return meta["ip"] or fallback


@router.post("/api/auth/login")
def pin_login(payload: PinLoginRequest, request: Request, db: Session = Depends(get_db)) -> dict[str, Any]:
    if not payload.pin:
        raise bad_request("PIN je obavezan", code="VALIDATION_ERROR")

    meta = request_meta(request)
    key = _throttle_key(meta, "pin")
    ensure_login_attempt_allowed(key)

    newsroom = db.scalar(select(Newsroom).where(Newsroom.pin == payload.pin))
    if newsroom is None:
        register_login_failure(key)
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Neispravan PIN")
    if payload.newsroom_id and newsroom.id != payload.newsroom_id:
        register_login_failure(key)
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Neispravan PIN za ovu redakciju")
    register_login_success(key)

    session_user = CurrentUser(
        id=newsroom.id,
        username=newsroom.name,
        name=newsroom.name,
        role=UserRole.NEWSROOM.value,
        newsroom_id=newsroom.id,
    )
    token, expires_in = create_access_token(session_user)
    request.state.actor = session_user.role
    request.state.actor_id = session_user.username
    return {
        "success": True,
        "token": token,
        "expires_in": expires_in,
        "user": SessionUserRead(
            id=newsroom.id,
            username=newsroom.name,
            name=newsroom.name,
            role=UserRole.NEWSROOM.value,
            newsroom_id=newsroom.id,
        ),
    }


@router.post("/api/auth/admin-login")
def admin_login(payload: AdminLoginRequest, request: Request, db: Session = Depends(get_db)) -> dict[str, Any]:
    username = (payload.username or "").strip()
    if not username or not payload.password:
        raise bad_request("Korisničko ime i lozinka su obavezni", code="VALIDATION_ERROR")

    meta = request_meta(request)
    key = _throttle_key(meta, username)
    ensure_login_attempt_allowed(key)

    user = db.scalar(select(User).where(User.username == username))
    if user is not None and not user.is_active:
        register_login_failure(key)
        raise ApiError(
            status_code=401,
            code="ACCOUNT_DISABLED",
            message="Korisnički nalog je deaktiviran. Kontaktirajte administratora.",
        )
    if user is None or not verify_password(payload.password, user.password):
        register_login_failure(key)
        logger.warning("login_failed", extra={"username": username, "ip": meta["ip"]})
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message=INVALID_CREDENTIALS)
    register_login_success(key)

    current = CurrentUser(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
        newsroom_id=user.newsroom_id,
    )
    token, expires_in = create_access_token(current)
    request.state.actor = user.role
    request.state.actor_id = user.username

    log_audit(
        db,
        user_id=user.id,
        action="LOGIN: User login",
        table_name="users",
        record_id=user.id,
        new_data={"login_time": datetime.now(timezone.utc).isoformat()},
        description=f"Prijava korisnika: {user.name} ({user.username}) - {user.role}",
        **meta,
    )
    return {
        "success": True,
        "token": token,
        "expires_in": expires_in,
        "user": _session_user(db, user),
    }


@router.get("/api/auth/me")
def read_me(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)) -> dict[str, Any]:
    if user.is_newsroom_session:
        newsroom = db.get(Newsroom, user.id)
        if newsroom is None:
            raise ApiError(status_code=404, code="NOT_FOUND", message="Korisnik nije pronađen")
        data = SessionUserRead(
            id=newsroom.id,
            username=newsroom.name,
            name=newsroom.name,
            role=UserRole.NEWSROOM.value,
            newsroom_id=newsroom.id,
            newsroom=NewsroomRead.model_validate(newsroom),
        )
        return {"success": True, "data": data}

    row = db.get(User, user.id)
    if row is None:
        raise ApiError(status_code=404, code="NOT_FOUND", message="Korisnik nije pronađen")
    return {"success": True, "data": _session_user(db, row)}
