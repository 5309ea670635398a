#!/usr/bin/env python
from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, select, text
from sqlalchemy.engine import Connection

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.models import Newsroom, Person, Task
from app.services.schema_guard import verify_runtime_schema
from app.settings import get_settings

VERSIONS_DIR = ROOT_DIR / "app" / "migrations" / "versions"
ORPHAN_SAMPLE_SIZE = 20


@dataclass(slots=True)
class CheckResult:
    name: str
    status: str
    details: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def _extract_revision_ids() -> list[str]:
    revisions: list[str] = []
    pattern = re.compile(r'^\s*revision\s*:\s*str\s*=\s*"([^"]+)"\s*$', re.MULTILINE)
    for path in sorted(VERSIONS_DIR.glob("*.py")):
        if path.name.startswith("__"):
            continue
        match = pattern.search(path.read_text(encoding="utf-8"))
        if match:
            revisions.append(match.group(1).strip())
    return revisions


def _check_push_config() -> CheckResult:
    settings = get_settings()
    public_key_set = bool((settings.push_vapid_public_key or "").strip())
    private_key_set = bool((settings.push_vapid_private_key or "").strip())
    pair_ok = public_key_set == private_key_set
    return CheckResult(
        name="push_config_pair",
        status="ok" if pair_ok else "fail",
        details={
            "push_vapid_public_key_set": public_key_set,
            "push_vapid_private_key_set": private_key_set,
            "pair_ok": pair_ok,
        },
    )


def _check_revision_id_lengths() -> CheckResult:
    revisions = _extract_revision_ids()
    too_long = [revision for revision in revisions if len(revision) > 32]
    return CheckResult(
        name="migration_revision_length",
        status="ok" if not too_long else "fail",
        details={"max_len": 32, "too_long": too_long, "total": len(revisions)},
    )


def _expected_alembic_heads() -> list[str]:
    config = Config(str(ROOT_DIR / "alembic.ini"))
    script = ScriptDirectory.from_config(config)
    return sorted(script.get_heads())


def _orphan_task_ids(connection: Connection) -> list[int]:
    known_people = set(connection.execute(select(Person.id)).scalars())
    orphans: list[int] = []
    rows = connection.execute(select(Task.id, Task.journalist_ids, Task.cameraman_ids).order_by(Task.id))
    for task_id, journalist_ids, cameraman_ids in rows:
        referenced = [*(journalist_ids or []), *(cameraman_ids or [])]
        if any(str(item).isdigit() and int(item) not in known_people for item in referenced):
            orphans.append(task_id)
            if len(orphans) >= ORPHAN_SAMPLE_SIZE:
                break
    return orphans


def _check_database(database_url: str) -> list[CheckResult]:
    expected_heads = _expected_alembic_heads()
    camera_newsroom_id = get_settings().camera_newsroom_id
    engine = create_engine(database_url, pool_pre_ping=True)
    try:
        with engine.connect() as connection:
            current_versions = [
                str(row[0]).strip()
                for row in connection.execute(text("SELECT version_num FROM alembic_version")).fetchall()
                if row and row[0] is not None
            ]
            camera_newsroom = connection.execute(
                select(Newsroom.name).where(Newsroom.id == camera_newsroom_id)
            ).scalar_one_or_none()
            orphan_tasks = _orphan_task_ids(connection)
        schema_result = verify_runtime_schema(engine)
    finally:
        engine.dispose()

    missing_heads = [head for head in expected_heads if head not in current_versions]
    return [
        CheckResult(
            name="database_schema_guard",
            status="fail" if missing_heads or not schema_result.ok else "ok",
            details={
                "expected_heads": expected_heads,
                "current_versions": current_versions,
                "missing_heads": missing_heads,
                "schema_guard_ok": schema_result.ok,
                "schema_guard_issues": schema_result.issues,
                "schema_guard_warnings": schema_result.warnings,
            },
        ),
        CheckResult(
            name="camera_newsroom_present",
            status="ok" if camera_newsroom is not None else "fail",
            details={"newsroom_id": camera_newsroom_id, "name": camera_newsroom},
        ),
        CheckResult(
            name="task_orphan_people",
            status="warn" if orphan_tasks else "ok",
            details={"sample_task_ids": orphan_tasks},
        ),
    ]


def main() -> int:
    checks = [_check_revision_id_lengths(), _check_push_config()]
    database_url = (os.getenv("DATABASE_URL") or "").strip()
    if database_url:
        checks.extend(_check_database(database_url))
    else:
        checks.append(CheckResult(name="database_schema_guard", status="warn", details={"reason": "DATABASE_URL_NOT_SET"}))

    failed_checks = [check for check in checks if check.status == "fail"]
    summary = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "ok": len(failed_checks) == 0,
        "checks": [{"name": check.name, "status": check.status, "details": check.details} for check in checks],
    }
    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return 0 if len(failed_checks) == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
