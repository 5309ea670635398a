from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase
from sqlalchemy import func, select

from app.models import EmployeeSchedule, LeaveRequest, Person, Schedule, Task, UserRole
from app.services.people import format_phone_number, generate_email_from_name


class PeopleHelperTests(unittest.TestCase):
    def test_generate_email_transliterates_and_joins_with_dots(self) -> None:
        self.assertEqual(generate_email_from_name("Dženana Džafić"), "dzenana.dzafic@rtvtk.ba")
        self.assertEqual(generate_email_from_name("  Đorđe   Perić "), "dzordze.peric@rtvtk.ba")
        self.assertEqual(generate_email_from_name("Ana-Marija O'Brien"), "anamarija.obrien@rtvtk.ba")

    def test_generate_email_rejects_empty_names(self) -> None:
        self.assertIsNone(generate_email_from_name(None))
        self.assertIsNone(generate_email_from_name(""))
        self.assertIsNone(generate_email_from_name("!!!"))

    def test_format_phone_number_prefixes_country_code(self) -> None:
        self.assertEqual(format_phone_number("061 234 567"), "+38761234567")
        self.assertEqual(format_phone_number("+387 61 234 567"), "+38761234567")
        self.assertEqual(format_phone_number("61-234-567"), "+38761234567")
        self.assertIsNone(format_phone_number("   "))
        self.assertIsNone(format_phone_number(None))


class PeopleApiTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.dop = self.add_newsroom("DOP")

    def test_create_person_fills_email_phone_and_newsroom(self) -> None:
        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))

        response = self.client.post("/api/people", json={"name": "Dženana Džafić", "phone": "061 234 571"})
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["email"], "dzenana.dzafic@rtvtk.ba")
        self.assertEqual(data["phone"], "+38761234571")

        stored = self.db.get(Person, data["id"])
        self.assertEqual(stored.newsroom_id, self.ipp.id)
        self.assertEqual(stored.role, "VIEWER")

    def test_editor_cannot_add_people_to_other_newsroom(self) -> None:
        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))
        response = self.client.post("/api/people", json={"name": "Neko", "newsroom_id": self.dop.id})
        self.assertEqual(response.status_code, 403)

    def test_viewer_cannot_add_people(self) -> None:
        self.login_as(self.add_user("gledalac", UserRole.VIEWER))
        self.assertEqual(self.client.post("/api/people", json={"name": "Neko"}).status_code, 403)

    def test_delete_person_removes_dependents_and_unlinks_tasks(self) -> None:
        person = self.add_person("Mirsad Jusić", role="CAMERAMAN", newsroom=self.ipp)
        self.db.add_all(
            [
                EmployeeSchedule(
                    person_id=person.id,
                    date="2026-03-10",
                    shift_start="08:00",
                    shift_end="16:00",
                    shift_type="JUTARNJA",
                ),
                Schedule(cameraman_id=person.id, day_of_week=1, time_start="08:00", time_end="16:00"),
                LeaveRequest(person_id=person.id, start_date="2026-04-01", end_date="2026-04-05", type="GODIŠNJI"),
            ]
        )
        self.db.commit()
        task = self.add_task("Utakmica", newsroom=self.ipp, cameraman_id=person.id)
        person_id, task_id = person.id, task.id
        self.login_as(self.add_user("admin", UserRole.ADMIN))

        response = self.client.delete(f"/api/people/{person_id}")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(
            response.json()["data"],
            {"employee_schedules": 1, "schedules": 1, "leave_requests": 1, "tasks_unlinked": 1},
        )

        self.db.expire_all()
        self.assertIsNone(self.db.get(Person, person_id))
        for model in (EmployeeSchedule, Schedule, LeaveRequest):
            self.assertEqual(self.db.scalar(select(func.count()).select_from(model)), 0)
        self.assertIsNone(self.db.get(Task, task_id).cameraman_id)

    def test_editor_cannot_delete_person_without_newsroom(self) -> None:
        person = self.add_person("Bez Redakcije")
        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))

        response = self.client.delete(f"/api/people/{person.id}")
        self.assertEqual(response.status_code, 403)

    def test_people_by_role_lists_active_entries(self) -> None:
        self.add_person("Mirsad Jusić", role="CAMERAMAN")
        self.add_person("Alma Softić", role="JOURNALIST")
        self.login_as(self.add_user("admin", UserRole.ADMIN))

        response = self.client.get("/api/people/role/CAMERAMAN")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["name"] for item in response.json()["data"]], ["Mirsad Jusić"])


if __name__ == "__main__":
    unittest.main()
