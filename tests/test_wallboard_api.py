from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase

from app.models import Task, UserRole


class WallboardApiTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.alma = self.add_person("Alma Softić", email="alma@rtvtk.ba")
        self.mirsad = self.add_person("Mirsad Jusić", role="CAMERAMAN", email="mirsad@rtvtk.ba")
        self.nijaz = self.add_person("Nijaz Bašić", role="CAMERAMAN", email="nijaz@rtvtk.ba")

    def test_date_is_required(self) -> None:
        response = self.client.get("/api/wallboard/tasks")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Datum je obavezan")

    def test_lists_day_as_bare_rows_with_resolved_names(self) -> None:
        untimed = self.add_task("Bez termina", newsroom=self.ipp)
        late = self.add_task("Večernji", newsroom=self.ipp, time_start="18:00")
        early = self.add_task(
            "Jutarnji",
            newsroom=self.ipp,
            time_start="08:30",
            journalist_ids=[self.alma.id, 999],
            cameraman_ids=[self.mirsad.id, self.nijaz.id],
        )
        self.add_task("Sutra", newsroom=self.ipp, date="2026-03-11")

        response = self.client.get("/api/wallboard/tasks", params={"date": "2026-3-10"})
        self.assertEqual(response.status_code, 200, response.text)
        rows = response.json()
        self.assertIsInstance(rows, list)
        self.assertEqual([row["id"] for row in rows], [early.id, late.id, untimed.id])

        first = rows[0]
        self.assertEqual(first["journalist_names"], ["Alma Softić"])
        self.assertEqual(first["cameraman_name"], "Mirsad Jusić, Nijaz Bašić")
        self.assertEqual(first["newsroom_name"], "IPP")
        self.assertFalse(first["is_completed"])
        self.assertIsNone(first["completed_at"])

    def test_status_update_requires_login_and_status(self) -> None:
        task = self.add_task("Jutarnji", newsroom=self.ipp)
        self.assertEqual(
            self.client.put(f"/api/wallboard/tasks/{task.id}/status", json={"status": "SNIMLJENO"}).status_code,
            401,
        )

        self.login_as(self.add_user("rezija", UserRole.CONTROL_ROOM, name="Režija"))
        missing = self.client.put(f"/api/wallboard/tasks/{task.id}/status", json={})
        self.assertEqual(missing.status_code, 400)
        unknown = self.client.put("/api/wallboard/tasks/9999/status", json={"status": "SNIMLJENO"})
        self.assertEqual(unknown.status_code, 404)

    def test_complete_marks_task_completed(self) -> None:
        task = self.add_task("Jutarnji", newsroom=self.ipp)

        response = self.client.put(f"/api/wallboard/tasks/{task.id}/complete")
        self.assertEqual(response.status_code, 200, response.text)
        self.db.expire_all()
        self.assertEqual(self.db.get(Task, task.id).status, "COMPLETED")

        rows = self.client.get("/api/wallboard/tasks", params={"date": "2026-03-10"}).json()
        self.assertTrue(rows[0]["is_completed"])
        self.assertIsNotNone(rows[0]["completed_at"])

        self.assertEqual(self.client.put("/api/wallboard/tasks/9999/complete").status_code, 404)


if __name__ == "__main__":
    unittest.main()
