from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./newsroom.db"
    jwt_secret: str = "change-me"
    jwt_issuer: str = "newsroom-dispatch"
    jwt_audience: str = "newsroom-api"
    access_token_minutes: int = 24 * 60
    app_name: str = "NewsroomDispatch"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    cors_allow_origins: str = "http://127.0.0.1:5173,http://localhost:5173"
    app_timezone: str = "Europe/Sarajevo"
    camera_newsroom_id: int = 8
    email_domain: str = "rtvtk.ba"
    push_vapid_public_key: str | None = None
    push_vapid_private_key: str | None = None
    push_vapid_subject: str = "mailto:admin@rtvtk.ba"
    notification_worker_enabled: bool = True
    notification_worker_interval_seconds: int = 60
    notification_purge_hour: int = 23
    notifications_list_limit: int = 50
    audit_list_limit: int = 500
    schema_auto_create: bool = True
    seed_default_data: bool = True
    schema_guard_strict: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_cors_origins() -> list[str]:
    raw = get_settings().cors_allow_origins
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_app_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().app_timezone)


def is_push_enabled() -> bool:
    settings = get_settings()
    return bool(
        (settings.push_vapid_public_key or "").strip()
        and (settings.push_vapid_private_key or "").strip()
    )
