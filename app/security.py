from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from app.errors import ApiError
from app.models import UserRole
from app.settings import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

_LOCK = threading.Lock()
_FAILED_ATTEMPTS: dict[str, deque[datetime]] = defaultdict(deque)
_MAX_ATTEMPTS = 10
_ATTEMPT_WINDOW = timedelta(minutes=10)

# Roles that see every task regardless of newsroom.
TASK_OVERSIGHT_ROLES = frozenset(
    {UserRole.ADMIN.value, UserRole.PRODUCER.value, UserRole.CHIEF_CAMERA.value, UserRole.CAMERMAN_EDITOR.value}
)
CAMERA_MANAGER_ROLES = frozenset({UserRole.CHIEF_CAMERA.value, UserRole.CAMERMAN_EDITOR.value})
READ_ONLY_TASK_ROLES = frozenset({UserRole.VIEWER.value, UserRole.CAMERA.value, UserRole.CONTROL_ROOM.value})
NEWSROOM_ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.PRODUCER.value})
SCHEDULE_MANAGE_ROLES = frozenset(
    {UserRole.ADMIN.value, UserRole.PRODUCER.value, UserRole.CHIEF_CAMERA.value, UserRole.EDITOR.value}
)


@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: int
    username: str
    name: str
    role: str
    newsroom_id: int | None = None

    def has_role(self, *roles: UserRole | str) -> bool:
        return self.role in {str(getattr(role, "value", role)) for role in roles}

    @property
    def is_newsroom_session(self) -> bool:
        return self.role == UserRole.NEWSROOM.value

    @property
    def user_id(self) -> int | None:
        """Row id in ``users``; PIN sessions carry a newsroom id instead."""
        return None if self.is_newsroom_session else self.id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleanup_attempts(key: str, now: datetime) -> None:
    queue = _FAILED_ATTEMPTS[key]
    threshold = now - _ATTEMPT_WINDOW
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _FAILED_ATTEMPTS.pop(key, None)


def ensure_login_attempt_allowed(key: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(key, now)
        queue = _FAILED_ATTEMPTS.get(key, deque())
        if len(queue) >= _MAX_ATTEMPTS:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_ATTEMPTS",
                message="Previše neuspješnih pokušaja prijave. Pokušajte ponovo kasnije.",
            )


def register_login_failure(key: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(key, now)
        _FAILED_ATTEMPTS[key].append(now)


def register_login_success(key: str) -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.pop(key, None)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        return False


def _build_claims(*, user: CurrentUser, expires_delta: timedelta) -> dict[str, Any]:
    settings = get_settings()
    now = _utcnow()
    exp = now + expires_delta
    return {
        "sub": str(user.id),
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "role": user.role,
        "newsroom_id": user.newsroom_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": str(uuid4()),
    }


def create_access_token(user: CurrentUser) -> tuple[str, int]:
    settings = get_settings()
    claims = _build_claims(user=user, expires_delta=timedelta(minutes=settings.access_token_minutes))
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
    return token, settings.access_token_minutes * 60


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Invalid or expired token") from exc

    if not isinstance(payload.get("id"), int) or not payload.get("role"):
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Invalid or expired token")
    return payload


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Access token required")

    payload = decode_token(credentials.credentials)
    newsroom_id = payload.get("newsroom_id")
    user = CurrentUser(
        id=int(payload["id"]),
        username=str(payload.get("username") or ""),
        name=str(payload.get("name") or payload.get("username") or ""),
        role=str(payload["role"]),
        newsroom_id=int(newsroom_id) if newsroom_id is not None else None,
    )
    request.state.actor = user.role
    request.state.actor_id = user.username
    return user


def require_roles(*roles: UserRole, message: str = "Nemate dozvolu za ovu akciju") -> Callable[..., CurrentUser]:
    allowed = {role.value for role in roles}

    def _dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise ApiError(status_code=403, code="FORBIDDEN", message=message)
        return user

    return _dependency


require_admin = require_roles(UserRole.ADMIN, message="Samo administrator može pristupiti ovoj funkciji")
