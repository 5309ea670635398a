from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase

from app.models import UserRole


class TaskVisibilityTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP", pin="IPP123")
        self.dop = self.add_newsroom("DOP", pin="DOP123")

    def _task_ids(self, response) -> list[int]:  # type: ignore[no-untyped-def]
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertTrue(body["success"])
        return sorted(item["id"] for item in body["data"])

    def test_read_only_roles_cannot_create_tasks(self) -> None:
        for role in (UserRole.VIEWER, UserRole.CAMERA, UserRole.CONTROL_ROOM):
            with self.subTest(role=role.value):
                user = self.add_user(f"user_{role.value.lower()}", role, newsroom=self.ipp)
                self.login_as(user)
                response = self.client.post(
                    "/api/tasks",
                    json={"date": "2026-03-10", "title": "Sjednica vlade", "newsroom_id": self.ipp.id},
                )
                self.assertEqual(response.status_code, 403)
                body = response.json()
                self.assertFalse(body["success"])
                self.assertEqual(body["code"], "FORBIDDEN")

    def test_editor_creates_task_for_own_newsroom_only(self) -> None:
        editor = self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp)
        self.login_as(editor)

        created = self.client.post(
            "/api/tasks",
            json={"date": "2026-3-10", "title": "Sjednica vlade", "newsroom_id": self.ipp.id},
        )
        self.assertEqual(created.status_code, 422)

        created = self.client.post(
            "/api/tasks",
            json={"date": "2026-03-10", "title": "Sjednica vlade", "newsroom_id": self.ipp.id},
        )
        self.assertEqual(created.status_code, 201, created.text)
        data = created.json()["data"]
        self.assertEqual(data["status"], "PLANIRANO")
        self.assertEqual(data["coverage_type"], "ENG")
        self.assertEqual(data["created_by"], editor.id)
        self.assertEqual(data["newsroom_name"], "IPP")

        foreign = self.client.post(
            "/api/tasks",
            json={"date": "2026-03-10", "title": "Koncert", "newsroom_id": self.dop.id},
        )
        self.assertEqual(foreign.status_code, 403)

    def test_missing_required_fields_is_bad_request(self) -> None:
        self.login_as(self.add_user("admin", UserRole.ADMIN))
        response = self.client.post("/api/tasks", json={"title": "Bez datuma"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Datum, naslov i redakcija su obavezni")

    def test_editor_lists_only_own_newsroom(self) -> None:
        own = self.add_task("Vijesti", newsroom=self.ipp)
        self.add_task("Kultura", newsroom=self.dop)
        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))

        self.assertEqual(self._task_ids(self.client.get("/api/tasks")), [own.id])

    def test_newsroom_role_without_newsroom_is_denied(self) -> None:
        self.add_task("Vijesti", newsroom=self.ipp)
        self.login_as(self.add_user("lost.editor", UserRole.DESK_EDITOR))

        response = self.client.get("/api/tasks")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "NO_NEWSROOM")

    def test_viewer_without_newsroom_sees_everything(self) -> None:
        first = self.add_task("Vijesti", newsroom=self.ipp)
        second = self.add_task("Kultura", newsroom=self.dop)
        self.login_as(self.add_user("gledalac", UserRole.VIEWER))

        self.assertEqual(self._task_ids(self.client.get("/api/tasks")), sorted([first.id, second.id]))

    def test_oversight_role_can_filter_by_newsroom(self) -> None:
        self.add_task("Vijesti", newsroom=self.ipp)
        dop_task = self.add_task("Kultura", newsroom=self.dop)
        self.login_as(self.add_user("producent", UserRole.PRODUCER))

        response = self.client.get("/api/tasks", params={"newsroom_id": self.dop.id})
        self.assertEqual(self._task_ids(response), [dop_task.id])

    def test_journalist_sees_tasks_matched_through_email(self) -> None:
        devleta = self.add_person("Devleta Brkić", email="devleta.brkic@rtvtk.ba", newsroom=self.ipp)
        other = self.add_person("Alma Softić", email="alma@rtvtk.ba", newsroom=self.ipp)
        mine = self.add_task("Intervju", newsroom=self.ipp, journalist_ids=[devleta.id])
        self.add_task("Reportaža", newsroom=self.ipp, journalist_ids=[other.id])
        self.add_task("Bez novinara", newsroom=self.ipp)
        self.login_as(self.add_user("devleta.brkic", UserRole.JOURNALIST, name="Devleta", newsroom=self.ipp))

        self.assertEqual(self._task_ids(self.client.get("/api/tasks")), [mine.id])

    def test_person_membership_is_exact(self) -> None:
        seven = self.add_person("Sedmi Novinar", email="sedmi@rtvtk.ba", person_id=7)
        seventeen = self.add_person("Sedamnaesti Novinar", email="sedamnaesti@rtvtk.ba", person_id=17)
        self.add_task("Tuđi zadatak", newsroom=self.ipp, journalist_ids=[seventeen.id])
        mine = self.add_task("Moj zadatak", newsroom=self.ipp, journalist_ids=[seventeen.id, seven.id])
        self.login_as(self.add_user("sedmi", UserRole.JOURNALIST, name="Sedmi Novinar"))

        self.assertEqual(self._task_ids(self.client.get("/api/tasks")), [mine.id])

    def test_journalist_without_roster_entry_sees_nothing(self) -> None:
        self.add_task("Vijesti", newsroom=self.ipp)
        self.login_as(self.add_user("nepoznati", UserRole.JOURNALIST, name="Nepoznati"))

        self.assertEqual(self._task_ids(self.client.get("/api/tasks")), [])

    def test_camera_user_cannot_open_unassigned_task(self) -> None:
        mirsad = self.add_person("Mirsad Jusić", role="CAMERAMAN", email="mirsad.jusic@rtvtk.ba")
        nijaz = self.add_person("Nijaz Bašić", role="CAMERAMAN", email="nijaz@rtvtk.ba")
        assigned = self.add_task("Utakmica", newsroom=self.ipp, cameraman_ids=[mirsad.id])
        foreign = self.add_task("Koncert", newsroom=self.ipp, cameraman_ids=[nijaz.id])
        self.login_as(self.add_user("mirsad.jusic", UserRole.CAMERA, name="Mirsad Jusić"))

        self.assertEqual(self.client.get(f"/api/tasks/{assigned.id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/tasks/{foreign.id}").status_code, 403)

        update = self.client.put(f"/api/tasks/{foreign.id}", json={"status": "U_TOKU"})
        self.assertEqual(update.status_code, 403)
        self.assertEqual(update.json()["message"], "Niste dodijeljeni ovom zadatku")

        own_update = self.client.put(f"/api/tasks/{assigned.id}", json={"status": "U_TOKU", "title": "ignored"})
        self.assertEqual(own_update.status_code, 200, own_update.text)
        data = own_update.json()["data"]
        self.assertEqual(data["status"], "U_TOKU")
        self.assertEqual(data["title"], "Utakmica")

    def test_editor_gets_not_found_for_other_newsroom_task(self) -> None:
        foreign = self.add_task("Kultura", newsroom=self.dop)
        self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))

        self.assertEqual(self.client.get(f"/api/tasks/{foreign.id}").status_code, 404)

    def test_unknown_status_is_rejected(self) -> None:
        task = self.add_task("Vijesti", newsroom=self.ipp)
        self.login_as(self.add_user("admin", UserRole.ADMIN))

        response = self.client.put(f"/api/tasks/{task.id}/status", json={"status": "NEPOSTOJECI"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")


if __name__ == "__main__":
    unittest.main()
