from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "newsrooms": {"id", "name", "pin"},
    "users": {"id", "username", "password", "role", "newsroom_id", "is_active"},
    "people": {"id", "name", "email", "newsroom_id", "is_active"},
    "tasks": {
        "id",
        "date",
        "title",
        "status",
        "flags",
        "journalist_ids",
        "cameraman_ids",
        "cameraman_id",
        "created_by",
        "cameraman_assigned_by",
        "confirmed_by_name",
    },
    "notifications": {"id", "user_id", "message", "task_id", "created_at"},
    "push_subscriptions": {"id", "user_id", "endpoint", "p256dh", "auth"},
    "audit_log": {"id", "user_id", "action", "old_data", "new_data", "created_at"},
}


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)

    try:
        table_names = set(inspector.get_table_names())
    except Exception as exc:  # pragma: no cover
        table_names = set()
        issues.append(f"TABLE_LIST_FAILED:{exc.__class__.__name__}")

    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        if table_names and table_name not in table_names:
            issues.append(f"MISSING_TABLE:{table_name}")
            continue
        try:
            column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        except Exception as exc:  # pragma: no cover
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue

        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")

    # Schemas built by create_all carry no alembic stamp.
    if "alembic_version" not in table_names:
        warnings.append("ALEMBIC_VERSION_TABLE_MISSING")
    else:
        try:
            with engine.connect() as connection:
                row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
                version = str(row).strip() if row is not None else ""
                if not version:
                    warnings.append("ALEMBIC_VERSION_EMPTY")
        except Exception as exc:  # pragma: no cover
            issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
