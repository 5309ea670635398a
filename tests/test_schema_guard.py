from __future__ import annotations

import unittest
from unittest.mock import patch

from app.services.schema_guard import REQUIRED_TABLE_COLUMNS, verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]]):
        self._columns_by_table = columns_by_table

    def get_table_names(self):  # type: ignore[no-untyped-def]
        return list(self._columns_by_table)

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]


def _complete_columns() -> dict[str, set[str]]:
    columns = {name: set(required) for name, required in REQUIRED_TABLE_COLUMNS.items()}
    columns["alembic_version"] = {"version_num"}
    return columns


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(columns_by_table=_complete_columns())
        fake_engine = _FakeEngine("0001_initial")

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns_and_tables(self) -> None:
        columns = _complete_columns()
        columns["tasks"] = {"id", "date", "title", "status"}
        del columns["push_subscriptions"]
        fake_inspector = _FakeInspector(columns_by_table=columns)
        fake_engine = _FakeEngine("")

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertTrue(any(item.startswith("MISSING_COLUMNS:tasks:") for item in result.issues))
        self.assertIn("cameraman_ids", next(item for item in result.issues if item.startswith("MISSING_COLUMNS:tasks")))
        self.assertIn("MISSING_TABLE:push_subscriptions", result.issues)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.warnings)

    def test_schema_without_alembic_stamp_is_only_a_warning(self) -> None:
        columns = _complete_columns()
        del columns["alembic_version"]
        fake_inspector = _FakeInspector(columns_by_table=columns)

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine(None))  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.warnings, ["ALEMBIC_VERSION_TABLE_MISSING"])


if __name__ == "__main__":
    unittest.main()
