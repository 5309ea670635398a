from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase
from sqlalchemy import select

from app.models import AuditLog, LeaveRequest, ShiftType, UserRole


class EmployeeScheduleTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.dop = self.add_newsroom("DOP")
        self.camera_room = self.add_newsroom("KAMERMANI", newsroom_id=8)
        self.alma = self.add_person("Alma Softić", newsroom=self.ipp)
        self.dzenana = self.add_person("Dženana Džafić", newsroom=self.dop)
        self.mirsad = self.add_person("Mirsad Jusić", role="CAMERAMAN", newsroom=self.camera_room)
        self.producer = self.add_user("producent", UserRole.PRODUCER)

    def _shift(self, person_id: int, day: str = "2026-03-10") -> dict:
        return {
            "person_id": person_id,
            "date": day,
            "shift_start": "07:00",
            "shift_end": "15:00",
            "shift_type": "JUTARNJA",
        }

    def test_producer_creates_shifts_with_audit(self) -> None:
        self.login_as(self.producer)
        for person in (self.alma, self.dzenana, self.mirsad):
            response = self.client.post("/api/employee-schedules", json=self._shift(person.id))
            self.assertEqual(response.status_code, 201, response.text)

        rows = self.client.get("/api/employee-schedules", params={"start": "2026-03-10", "end": "2026-03-10"}).json()["data"]
        self.assertEqual(len(rows), 3)
        self.assertEqual(
            self.db.scalars(select(AuditLog.action).where(AuditLog.table_name == "employee_schedules")).all(),
            ["CREATE: Schedule created"] * 3,
        )

    def test_listing_is_scoped_by_role(self) -> None:
        self.login_as(self.producer)
        for person in (self.alma, self.dzenana, self.mirsad):
            self.client.post("/api/employee-schedules", json=self._shift(person.id))

        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))
        names = [row["person_name"] for row in self.client.get("/api/employee-schedules").json()["data"]]
        self.assertEqual(names, ["Alma Softić"])

        self.login_as(self.add_user("sef", UserRole.CHIEF_CAMERA))
        rows = self.client.get("/api/employee-schedules").json()["data"]
        self.assertEqual([row["person_name"] for row in rows], ["Mirsad Jusić"])
        self.assertEqual(rows[0]["newsroom_name"], "KAMERMANI")

        self.login_as(self.add_user("lutalica", UserRole.DESK_EDITOR))
        self.assertEqual(self.client.get("/api/employee-schedules").status_code, 403)

    def test_validation_and_permissions(self) -> None:
        self.login_as(self.add_user("gledalac", UserRole.VIEWER))
        self.assertEqual(self.client.post("/api/employee-schedules", json=self._shift(self.alma.id)).status_code, 403)

        self.login_as(self.producer)
        incomplete = self.client.post("/api/employee-schedules", json={"person_id": self.alma.id})
        self.assertEqual(incomplete.status_code, 400)
        missing = self.client.post("/api/employee-schedules", json=self._shift(9999))
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(self.client.delete("/api/employee-schedules/9999").status_code, 404)


class ShiftTypeAndNoteTests(ApiTestCase):
    def test_shift_type_delete_hides_it(self) -> None:
        self.login_as(self.add_user("producent", UserRole.PRODUCER))
        created = self.client.post("/api/shift-types", json={"name": "Noćna", "start_time": "22:00", "end_time": "06:00"})
        self.assertEqual(created.status_code, 201)
        shift_type_id = created.json()["data"]["id"]

        self.assertEqual(self.client.delete(f"/api/shift-types/{shift_type_id}").status_code, 200)
        self.assertEqual(self.client.get("/api/shift-types").json()["data"], [])
        self.assertIsNotNone(self.db.get(ShiftType, shift_type_id))

    def test_notes_belong_to_their_author(self) -> None:
        ipp = self.add_newsroom("IPP")
        first = self.add_user("prvi", UserRole.EDITOR, newsroom=ipp)
        second = self.add_user("drugi", UserRole.EDITOR, newsroom=ipp)

        self.login_as(first)
        created = self.client.post("/api/schedule/notes", json={"date": "2026-03-10T08:00:00", "note": "Sjednica vlade"})
        self.assertEqual(created.status_code, 201)
        note_id = created.json()["data"]["id"]
        notes = self.client.get("/api/schedule/notes").json()["data"]
        self.assertEqual([(row["date"], row["note"]) for row in notes], [("2026-03-10", "Sjednica vlade")])

        self.login_as(second)
        self.assertEqual(self.client.get("/api/schedule/notes").json()["data"], [])
        self.assertEqual(
            self.client.put(f"/api/schedule/notes/{note_id}", json={"date": "2026-03-11", "note": "x"}).status_code,
            404,
        )
        self.assertEqual(self.client.post("/api/schedule/notes", json={"date": "2026-03-10"}).status_code, 400)


class LeaveRequestTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.dop = self.add_newsroom("DOP")
        self.alma = self.add_person("Alma Softić", newsroom=self.ipp)
        self.dzenana = self.add_person("Dženana Džafić", newsroom=self.dop)
        self.login_as(self.add_user("producent", UserRole.PRODUCER))

    def _leave(self, person_id: int, start: str, end: str) -> dict:
        return {"person_id": person_id, "start_date": start, "end_date": end, "type": "GODIŠNJI"}

    def test_create_approve_and_delete(self) -> None:
        created = self.client.post("/api/leave-requests", json=self._leave(self.alma.id, "2026-07-01", "2026-07-14"))
        self.assertEqual(created.status_code, 201, created.text)
        leave = created.json()["data"]
        self.assertEqual(leave["status"], "PENDING")

        approved = self.client.put(f"/api/leave-requests/{leave['id']}/status", json={"status": "APPROVED"})
        self.assertEqual(approved.json()["data"]["status"], "APPROVED")

        self.assertEqual(self.client.delete(f"/api/leave-requests/{leave['id']}").status_code, 200)
        self.assertIsNone(self.db.get(LeaveRequest, leave["id"]))
        self.assertEqual(self.client.delete(f"/api/leave-requests/{leave['id']}").status_code, 404)

    def test_rejects_inverted_range(self) -> None:
        response = self.client.post("/api/leave-requests", json=self._leave(self.alma.id, "2026-07-14", "2026-07-01"))
        self.assertEqual(response.status_code, 400)

    def test_listing_filters_overlap_and_newsroom(self) -> None:
        self.client.post("/api/leave-requests", json=self._leave(self.alma.id, "2026-07-01", "2026-07-14"))
        self.client.post("/api/leave-requests", json=self._leave(self.alma.id, "2026-09-01", "2026-09-03"))
        self.client.post("/api/leave-requests", json=self._leave(self.dzenana.id, "2026-07-10", "2026-07-20"))

        july = self.client.get("/api/leave-requests", params={"start": "2026-07-12", "end": "2026-07-31"}).json()["data"]
        self.assertEqual(len(july), 2)

        self.login_as(self.add_user("gledalac", UserRole.VIEWER, newsroom=self.dop))
        visible = self.client.get("/api/leave-requests").json()["data"]
        self.assertEqual([row["person_id"] for row in visible], [self.dzenana.id])
        self.assertEqual(
            self.client.post("/api/leave-requests", json=self._leave(self.dzenana.id, "2026-08-01", "2026-08-02")).status_code,
            403,
        )


class TaskExportTests(ApiTestCase):
    def test_export_returns_workbook_and_audits(self) -> None:
        ipp = self.add_newsroom("IPP")
        amra = self.add_person("Amra Novinarka", newsroom=ipp)
        self.add_task("Sjednica", newsroom=ipp, time_start="09:00", time_end="10:00", journalist_ids=[amra.id])
        self.login_as(self.add_user("producent", UserRole.PRODUCER))

        response = self.client.get("/api/tasks/export/2026-03-10")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b"PK"))
        self.assertIn("zadaci-2026-03-10.xlsx", response.headers["content-disposition"])
        self.assertEqual(
            self.db.scalar(select(AuditLog.description).where(AuditLog.action == "EXPORT: Tasks")),
            "Izvoz zadataka za 2026-03-10 (1 zadataka)",
        )

    def test_export_rejects_malformed_day(self) -> None:
        self.login_as(self.add_user("producent", UserRole.PRODUCER))
        self.assertEqual(self.client.get("/api/tasks/export/10.03.2026").status_code, 422)


if __name__ == "__main__":
    unittest.main()
