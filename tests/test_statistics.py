from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase

from app.models import UserRole
from app.services import statistics

DAY = "2026-03-10"


class DashboardStatsTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.dop = self.add_newsroom("DOP")
        self.camera_room = self.add_newsroom("KAMERMANI", newsroom_id=8)
        self.kemal = self.add_person("Kemal Kamerman", role="CAMERA", newsroom=self.camera_room)
        self.chief = self.add_user("sef", UserRole.CAMERMAN_EDITOR, name="Šef Kamere")

        self.add_task("Planirano", newsroom=self.ipp, date=DAY)
        self.add_task("Dodijeljeno", newsroom=self.ipp, date=DAY, status="DODIJELJENO", cameraman_id=self.kemal.id)
        self.add_task(
            "Snimljeno",
            newsroom=self.ipp,
            date=DAY,
            status="SNIMLJENO",
            cameraman_id=self.kemal.id,
            cameraman_assigned_by=self.chief.id,
        )
        self.add_task("Otkazano", newsroom=self.dop, date=DAY, status="OTKAZANO", cameraman_assigned_by=self.chief.id)
        self.add_task("Sutra", newsroom=self.ipp, date="2026-03-11")

    def test_editor_counts_planned_tasks_as_active(self) -> None:
        editor = self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))
        data = statistics.dashboard_stats(self.db, editor, day=DAY)

        self.assertEqual(data["todayTasks"], 3)
        self.assertEqual(data["plannedTasks"], 1)
        self.assertEqual(data["activeTasks"], 2)
        self.assertEqual(data["completedTasks"], 1)
        self.assertEqual(data["cancelledTasks"], 0)
        self.assertEqual(data["activeCameramen"], 1)
        self.assertNotIn("assignedTasks", data)

    def test_camerman_editor_gets_personal_counters(self) -> None:
        chief = self.login_as(self.chief)
        data = statistics.dashboard_stats(self.db, chief, day=DAY)

        self.assertEqual(data["todayTasks"], 4)
        self.assertEqual(data["activeTasks"], 1)
        self.assertEqual(data["assignedTasks"], 2)
        self.assertEqual(data["myCompletedTasks"], 1)
        self.assertEqual(data["myCancelledTasks"], 1)

    def test_dashboard_endpoint_wraps_counters(self) -> None:
        self.login_as(self.add_user("producent", UserRole.PRODUCER))
        response = self.client.get("/api/dashboard/stats", params={"date": DAY})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["todayTasks"], 4)

        today = self.client.get("/api/dashboard/today-tasks", params={"date": DAY}).json()["data"]
        self.assertEqual(len(today), 4)

    def test_desk_editor_without_newsroom_is_denied(self) -> None:
        self.login_as(self.add_user("lutalica", UserRole.DESK_EDITOR))
        response = self.client.get("/api/dashboard/stats", params={"date": DAY})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "NO_NEWSROOM")


class StatisticsReportTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ipp = self.add_newsroom("IPP")
        self.camera_room = self.add_newsroom("KAMERMANI", newsroom_id=8)
        self.kemal = self.add_person("Kemal Kamerman", role="CAMERA", newsroom=self.camera_room)
        self.senad = self.add_person("Senad Snimatelj", role="CAMERA", newsroom=self.camera_room)
        self.amra = self.add_person("Amra Novinarka", role="JOURNALIST", newsroom=self.ipp)

        self.add_task(
            "Sjednica",
            newsroom=self.ipp,
            status="SNIMLJENO",
            flags=["HITNO", "UZIVO"],
            coverage_type="ENG",
            attachment_type="VO/SOT",
            cameraman_ids=[self.kemal.id],
            journalist_ids=[self.amra.id],
        )
        self.add_task(
            "Konferencija",
            newsroom=self.ipp,
            status="OTKAZANO",
            flags=["TEMA"],
            cameraman_ids=[self.kemal.id, self.senad.id],
        )
        self.add_task("Bez ekipe", status="PLANIRANO", flags=["RAZMJENA"])

    def test_overview_groups_by_newsroom_and_flag(self) -> None:
        producer = self.login_as(self.add_user("producent", UserRole.PRODUCER))
        data = statistics.overview(self.db, producer, date_from=None, date_to=None, newsroom_id=None)

        self.assertEqual(data["totalTasks"], 3)
        self.assertEqual(data["tasksByStatus"], {"SNIMLJENO": 1, "OTKAZANO": 1, "PLANIRANO": 1})
        self.assertEqual(data["tasksByNewsroom"], [{"name": "IPP", "count": 2}, {"name": "Nepoznato", "count": 1}])
        self.assertEqual(data["tasksByFlag"]["RAZMJENA"], 1)
        ipp_detail = data["tasksByNewsroomDetailed"][0]
        self.assertEqual(ipp_detail["flags"]["HITNO"], 1)
        self.assertNotIn("RAZMJENA", ipp_detail["flags"])
        self.assertEqual(data["tasksByAttachmentType"], {"VO/SOT": 1})

    def test_people_report_counts_crews(self) -> None:
        producer = self.login_as(self.add_user("producent", UserRole.PRODUCER))
        data = statistics.people_report(
            self.db, producer, date_from=None, date_to=None, newsroom_id=None, employee_id=None
        )

        counts = {row["name"]: row["count"] for row in data["tasksByPeople"]}
        self.assertEqual(counts, {"Kemal Kamerman": 2, "Senad Snimatelj": 1, "Nije dodjeljen": 1})
        self.assertEqual(data["mostActivePerson"], "Kemal Kamerman")
        kemal = next(row for row in data["tasksByPeopleDetailed"] if row["name"] == "Kemal Kamerman")
        self.assertEqual((kemal["completed"], kemal["cancelled"], kemal["successRate"]), (1, 1, 50))
        self.assertEqual(data["overall"]["totalCameramen"], 2)
        self.assertEqual(data["overall"]["averageSuccessRate"], 33)
        flags = {row["flag"]: row["count"] for row in data["tasksByFlags"]}
        self.assertEqual(flags["HITNO"], 1)
        self.assertEqual(flags["RAZMJENA"], 1)

    def test_editor_people_report_includes_journalists_of_own_newsroom(self) -> None:
        editor = self.login_as(self.add_user("ipp", UserRole.EDITOR, newsroom=self.ipp))
        data = statistics.people_report(
            self.db, editor, date_from=None, date_to=None, newsroom_id=None, employee_id=None
        )

        counts = {row["name"]: row["count"] for row in data["tasksByPeople"]}
        self.assertEqual(counts, {"Amra Novinarka": 1})
        self.assertEqual(data["totalTasks"], 2)

    def test_people_report_filters_by_employee(self) -> None:
        self.login_as(self.add_user("producent", UserRole.PRODUCER))
        response = self.client.get("/api/statistics/people", params={"employee_id": self.senad.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["totalTasks"], 1)

    def test_cameraman_report_uses_primary_cameraman(self) -> None:
        self.add_task("Snimanje", newsroom=self.ipp, status="ZAVRŠEN", cameraman_id=self.kemal.id)
        self.add_task("U toku", newsroom=self.ipp, status="U_TOKU", cameraman_id=self.kemal.id)
        self.login_as(self.add_user("producent", UserRole.PRODUCER))

        response = self.client.get("/api/statistics/cameraman")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["data"],
            {"Kemal Kamerman": {"totalTasks": 2, "completedTasks": 1, "inProgressTasks": 1, "completionRate": 50}},
        )


if __name__ == "__main__":
    unittest.main()
