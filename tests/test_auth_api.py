from __future__ import annotations

import unittest

from newsroom_testkit import ApiTestCase
from sqlalchemy import select

from app import security
from app.models import AuditLog, UserRole
from app.security import hash_password


class AuthApiTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        security._FAILED_ATTEMPTS.clear()
        self.ipp = self.add_newsroom("IPP", pin="IPP123")
        self.dop = self.add_newsroom("DOP", pin="DOP123")

    def tearDown(self) -> None:
        security._FAILED_ATTEMPTS.clear()
        super().tearDown()

    def test_pin_login_returns_newsroom_session(self) -> None:
        response = self.client.post("/api/auth/login", json={"pin": "IPP123"})
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["user"]["role"], "NEWSROOM")
        self.assertEqual(body["user"]["newsroom_id"], self.ipp.id)

        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        self.assertEqual(me.status_code, 200, me.text)
        self.assertEqual(me.json()["data"]["newsroom"]["name"], "IPP")

    def test_pin_login_errors(self) -> None:
        missing = self.client.post("/api/auth/login", json={})
        self.assertEqual(missing.status_code, 400)

        wrong = self.client.post("/api/auth/login", json={"pin": "000000"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json()["message"], "Neispravan PIN")

        mismatch = self.client.post("/api/auth/login", json={"pin": "IPP123", "newsroom_id": self.dop.id})
        self.assertEqual(mismatch.status_code, 401)
        self.assertEqual(mismatch.json()["message"], "Neispravan PIN za ovu redakciju")

    def test_admin_login_issues_token_and_audits(self) -> None:
        user = self.add_user(
            "ipp",
            UserRole.EDITOR,
            name="IPP Redakcija",
            newsroom=self.ipp,
            password=hash_password("ipp123"),
        )

        response = self.client.post("/api/auth/admin-login", json={"username": "ipp", "password": "ipp123"})
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["user"]["id"], user.id)
        self.assertEqual(body["user"]["newsroom"]["name"], "IPP")

        audit = self.db.scalar(select(AuditLog).where(AuditLog.action == "LOGIN: User login"))
        self.assertIsNotNone(audit)
        self.assertEqual(audit.user_id, user.id)

        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        self.assertEqual(me.status_code, 200, me.text)
        self.assertEqual(me.json()["data"]["username"], "ipp")

    def test_admin_login_rejects_bad_credentials_and_inactive_users(self) -> None:
        self.add_user("stari", UserRole.EDITOR, password=hash_password("lozinka"), is_active=False)
        self.add_user("aktivni", UserRole.EDITOR, password=hash_password("lozinka"))

        disabled = self.client.post("/api/auth/admin-login", json={"username": "stari", "password": "lozinka"})
        self.assertEqual(disabled.status_code, 401)
        self.assertEqual(disabled.json()["code"], "ACCOUNT_DISABLED")

        wrong = self.client.post("/api/auth/admin-login", json={"username": "aktivni", "password": "pogresno"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json()["code"], "INVALID_CREDENTIALS")

        missing = self.client.post("/api/auth/admin-login", json={"username": "aktivni"})
        self.assertEqual(missing.status_code, 400)

    def test_repeated_failures_are_throttled(self) -> None:
        for _ in range(10):
            self.assertEqual(self.client.post("/api/auth/login", json={"pin": "000000"}).status_code, 401)

        blocked = self.client.post("/api/auth/login", json={"pin": "IPP123"})
        self.assertEqual(blocked.status_code, 429)
        self.assertEqual(blocked.json()["code"], "TOO_MANY_ATTEMPTS")

    def test_protected_routes_require_valid_token(self) -> None:
        missing = self.client.get("/api/tasks")
        self.assertEqual(missing.status_code, 401)
        self.assertFalse(missing.json()["success"])

        invalid = self.client.get("/api/tasks", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(invalid.status_code, 401)
        self.assertEqual(invalid.json()["code"], "INVALID_TOKEN")

    def test_unknown_api_route_uses_error_envelope(self) -> None:
        response = self.client.get("/api/does-not-exist")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json()["message"],
            "API endpoint nije pronađen",
        )


if __name__ == "__main__":
    unittest.main()
