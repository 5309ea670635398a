from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

from newsroom_testkit import ApiTestCase
from sqlalchemy.exc import OperationalError

from app.main import purge_due


class HealthEndpointTests(ApiTestCase):
    def test_reports_connected_database(self) -> None:
        with patch("app.main.engine", self.engine):
            response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertIn("schema_guard", body)

    def test_reports_unreachable_database(self) -> None:
        broken = MagicMock()
        broken.connect.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch("app.main.engine", broken):
            response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["database"], "disconnected")


class PurgeScheduleTests(unittest.TestCase):
    def test_waits_for_purge_hour_in_local_time(self) -> None:
        # Europe/Sarajevo is UTC+1 in January.
        self.assertFalse(purge_due(datetime(2026, 1, 15, 21, 30, tzinfo=timezone.utc), None))
        self.assertTrue(purge_due(datetime(2026, 1, 15, 22, 30, tzinfo=timezone.utc), None))

    def test_runs_once_per_local_day(self) -> None:
        now = datetime(2026, 1, 15, 22, 30, tzinfo=timezone.utc)
        self.assertFalse(purge_due(now, date(2026, 1, 15)))
        self.assertTrue(purge_due(now, date(2026, 1, 14)))

    def test_after_local_midnight_waits_for_next_evening(self) -> None:
        self.assertFalse(purge_due(datetime(2026, 1, 15, 23, 30, tzinfo=timezone.utc), date(2026, 1, 15)))


if __name__ == "__main__":
    unittest.main()
