import asyncio
from contextlib import suppress
from datetime import date, datetime, timezone
import logging
import time
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import models  # noqa: F401
from app.db import Base, SessionLocal, engine
from app.errors import ApiError, error_response
from app.logging_utils import bind_request_id, reset_request_id, setup_json_logging
from app.routers import (
    audit,
    auth,
    dashboard,
    notifications,
    people,
    roles,
    scheduling,
    task_presets,
    tasks,
    users,
    vehicles,
    wallboard,
)
from app.services.bootstrap import seed_default_data
from app.services.dates import local_now
from app.services.notifications import run_daily_notification_cleanup
from app.services.schema_guard import SchemaGuardResult, verify_runtime_schema
from app.settings import get_cors_origins, get_settings

settings = get_settings()
setup_json_logging(settings.log_level, service=settings.app_name)
logger = logging.getLogger("app.request")
notification_worker_logger = logging.getLogger("app.notification_worker")
bootstrap_logger = logging.getLogger("app.bootstrap")


app = FastAPI(title=settings.app_name, version=settings.app_version)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    request.state.request_id = request_id
    context_token = bind_request_id(request_id)
    request.state.actor = getattr(request.state, "actor", "anonymous")
    request.state.actor_id = getattr(request.state, "actor_id", "anonymous")

    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-Id"] = request_id
        return response
    finally:
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            "request_complete",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "latency_ms": latency_ms,
                "actor": getattr(request.state, "actor", "anonymous"),
                "actor_id": getattr(request.state, "actor_id", "anonymous"),
            },
        )
        reset_request_id(context_token)


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code
    if status_code == 404 and request.url.path.startswith("/api") and exc.detail == "Not Found":
        return error_response(request, status_code=404, code="NOT_FOUND", message="API endpoint nije pronađen")
    code_map = {
        400: "BAD_REQUEST",
        401: "INVALID_TOKEN",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        429: "TOO_MANY_ATTEMPTS",
    }
    code = code_map.get(status_code, "HTTP_ERROR")
    message = str(exc.detail) if exc.detail else "Request failed."
    return error_response(
        request,
        status_code=status_code,
        code=code,
        message=message,
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        status_code=422,
        code="VALIDATION_ERROR",
        message=str(exc.errors()),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "path": request.url.path,
            "method": request.method,
        },
    )
    return error_response(
        request,
        status_code=500,
        code="INTERNAL_ERROR",
        message="Greška na serveru",
    )


app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(people.router)
app.include_router(users.router)
app.include_router(vehicles.router)
app.include_router(scheduling.router)
app.include_router(dashboard.router)
app.include_router(task_presets.router)
app.include_router(roles.router)
app.include_router(wallboard.router)
app.include_router(notifications.router)
app.include_router(audit.router)


def _default_schema_guard_result() -> SchemaGuardResult:
    return SchemaGuardResult(
        ok=False,
        checked_at_utc=datetime.now(timezone.utc),
        issues=["SCHEMA_GUARD_NOT_RUN"],
        warnings=[],
    )


def purge_due(now_utc: datetime, last_purged: date | None) -> bool:
    """The nightly purge runs once per local day, at or after the purge hour."""
    local = local_now(now_utc)
    if local.hour < settings.notification_purge_hour:
        return False
    return last_purged != local.date()


async def _notification_worker_loop(stop_event: asyncio.Event) -> None:
    interval_seconds = max(15, int(settings.notification_worker_interval_seconds))
    last_purged: date | None = None
    while not stop_event.is_set():
        now_utc = datetime.now(timezone.utc)
        if purge_due(now_utc, last_purged):
            try:
                deleted = await asyncio.to_thread(run_daily_notification_cleanup, now_utc)
            except Exception:
                notification_worker_logger.exception("notification_purge_failed")
            else:
                last_purged = local_now(now_utc).date()
                notification_worker_logger.info("notification_purge_completed", extra={"deleted": deleted})

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue


def _prepare_database() -> dict[str, int]:
    if settings.schema_auto_create:
        Base.metadata.create_all(bind=engine)
    if not settings.seed_default_data:
        return {}
    with SessionLocal() as db:
        return seed_default_data(db)


@app.on_event("startup")
async def prepare_database() -> None:
    seeded = await asyncio.to_thread(_prepare_database)
    bootstrap_logger.info("database_ready", extra={"seeded": seeded})


@app.on_event("startup")
async def run_schema_guard() -> None:
    result = await asyncio.to_thread(verify_runtime_schema, engine)
    app.state.schema_guard_result = result
    if result.ok:
        bootstrap_logger.info(
            "schema_guard_ok",
            extra=result.to_dict(),
        )
        return

    bootstrap_logger.error(
        "schema_guard_failed",
        extra=result.to_dict(),
    )
    if settings.schema_guard_strict:
        joined_issues = "; ".join(result.issues)
        raise RuntimeError(f"Runtime schema guard failed: {joined_issues}")


@app.on_event("startup")
async def start_notification_worker() -> None:
    if not settings.notification_worker_enabled:
        return
    if getattr(app.state, "notification_worker_task", None) is not None:
        return

    stop_event = asyncio.Event()
    task = asyncio.create_task(_notification_worker_loop(stop_event))
    app.state.notification_worker_stop_event = stop_event
    app.state.notification_worker_task = task
    notification_worker_logger.info(
        "notification_worker_started",
        extra={
            "interval_seconds": max(15, int(settings.notification_worker_interval_seconds)),
            "purge_hour": settings.notification_purge_hour,
        },
    )


@app.on_event("shutdown")
async def stop_notification_worker() -> None:
    stop_event: asyncio.Event | None = getattr(app.state, "notification_worker_stop_event", None)
    task: asyncio.Task[None] | None = getattr(app.state, "notification_worker_task", None)
    if stop_event is not None:
        stop_event.set()
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    app.state.notification_worker_stop_event = None
    app.state.notification_worker_task = None


@app.get("/api/health")
def health() -> Any:
    schema_guard_result: SchemaGuardResult = getattr(app.state, "schema_guard_result", _default_schema_guard_result())
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health_database_unreachable")
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "timestamp": timestamp,
                "database": "disconnected",
                "error": "Database connection failed",
            },
        )
    return {
        "status": "ok",
        "timestamp": timestamp,
        "database": "connected",
        "version": settings.app_version,
        "schema_guard": schema_guard_result.to_dict(),
    }
