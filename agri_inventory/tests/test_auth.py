import unittest

from inventory_fixtures import PASSWORD, InventoryTestMixin
from services.user_access_service import AUTH_MAX_ATTEMPTS_PER_ACCOUNT, SESSION_TTL_SECONDS, LoginGuard
from services.user_service import upsert_user


class AuthFlowTests(InventoryTestMixin, unittest.TestCase):
    def test_login_returns_token_and_session_user(self):
        response = self.client().post("/api/auth/login", json={"email": "HEAD@agri.test", "password": PASSWORD})
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["sessionToken"])
        self.assertEqual(data["user"]["role"], "DEPT_HEAD")
        self.assertEqual(data["user"]["departmentId"], "food-lab")

    def test_me_accepts_cookie_or_token(self):
        login = self.client().post("/api/auth/login", json={"email": "admin@agri.test", "password": PASSWORD})
        token = login.json()["data"]["sessionToken"]

        via_token = self.client().get("/api/auth/me", headers={"X-Session-Token": token})
        self.assertEqual(via_token.status_code, 200)
        self.assertEqual(via_token.json()["data"]["user"]["email"], "admin@agri.test")

        via_cookie = self.login("admin@agri.test").get("/api/auth/me")
        self.assertEqual(via_cookie.status_code, 200)

    def test_me_without_session_is_unauthorized(self):
        response = self.client().get("/api/auth/me")
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_logout_revokes_session_token(self):
        client = self.client()
        token = client.post(
            "/api/auth/login",
            json={"email": "head@agri.test", "password": PASSWORD},
        ).json()["data"]["sessionToken"]
        headers = {"X-Session-Token": token}

        logout = client.post("/api/auth/logout", headers=headers)
        self.assertEqual(logout.status_code, 200)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)
        self.assertEqual(self.client().get("/api/auth/me", headers=headers).status_code, 401)

    def test_tampered_token_is_rejected(self):
        token = self.client().post(
            "/api/auth/login",
            json={"email": "head@agri.test", "password": PASSWORD},
        ).json()["data"]["sessionToken"]
        body, signature = token.split(".", 1)
        forged = f"{body}x.{signature}"
        self.assertEqual(self.client().get("/api/auth/me", headers={"X-Session-Token": forged}).status_code, 401)

    def test_wrong_password_and_inactive_user_are_rejected(self):
        wrong = self.client().post("/api/auth/login", json={"email": "head@agri.test", "password": "nope-nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json()["message"], "Invalid credentials.")

        with self.Session() as db:
            upsert_user(db, email="head@agri.test", role="DEPT_HEAD", department_id="food-lab", is_active=False)
        inactive = self.client().post("/api/auth/login", json={"email": "head@agri.test", "password": PASSWORD})
        self.assertEqual(inactive.status_code, 401)

    def test_malformed_login_request(self):
        response = self.client().post("/api/auth/login", json={"username": "admin"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid login request.")

    def test_repeated_failures_are_throttled(self):
        client = self.client()
        for _ in range(AUTH_MAX_ATTEMPTS_PER_ACCOUNT):
            failed = client.post("/api/auth/login", json={"email": "erss@agri.test", "password": "wrong-pass"})
            self.assertEqual(failed.status_code, 401)

        throttled = client.post("/api/auth/login", json={"email": "erss@agri.test", "password": PASSWORD})
        self.assertEqual(throttled.status_code, 429)
        self.assertIn("Retry-After", throttled.headers)

    def test_session_cookie_expires_with_session_token(self):
        response = self.client().post("/api/auth/login", json={"email": "admin@agri.test", "password": PASSWORD})
        cookie = response.headers["set-cookie"]
        self.assertIn("agri_inventory_session=", cookie)
        self.assertIn(f"Max-Age={SESSION_TTL_SECONDS}", cookie)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class LoginGuardTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.guard = LoginGuard(window_seconds=60, max_per_ip=5, max_per_account=3, lockout_seconds=120, clock=self.clock)

    def test_account_locks_after_limit_and_unlocks_after_lockout(self):
        for _ in range(2):
            self.assertIsNone(self.guard.retry_after("10.0.0.1", "user:a"))
            self.guard.record_failure("10.0.0.1", "user:a")
        with self.assertLogs("agri_inventory.auth", level="WARNING") as logs:
            self.guard.record_failure("10.0.0.2", "user:a")
        self.assertIn("Account locked key=user:a", logs.output[0])

        self.assertEqual(self.guard.retry_after("10.0.0.3", "user:a"), 120)
        self.assertIsNone(self.guard.retry_after("10.0.0.3", "user:b"))

        self.clock.now += 121
        self.assertIsNone(self.guard.retry_after("10.0.0.3", "user:a"))

    def test_ip_limit_uses_sliding_window(self):
        for index in range(5):
            self.guard.record_failure("10.0.0.9", f"user:{index}")
            self.clock.now += 10
        self.assertEqual(self.guard.retry_after("10.0.0.9", "user:new"), 10)

        self.clock.now += 11
        self.assertIsNone(self.guard.retry_after("10.0.0.9", "user:new"))

    def test_success_clears_account_failures(self):
        self.guard.record_failure("10.0.0.1", "user:a")
        self.guard.record_failure("10.0.0.1", "user:a")
        self.guard.record_success("user:a")
        self.guard.record_failure("10.0.0.1", "user:a")
        self.assertIsNone(self.guard.retry_after("10.0.0.1", "user:a"))


class UserProvisioningTests(InventoryTestMixin, unittest.TestCase):
    def test_dept_head_requires_department(self):
        with self.Session() as db:
            with self.assertRaises(ValueError):
                upsert_user(db, email="lost@agri.test", role="DEPT_HEAD", password=PASSWORD)

    def test_unknown_department_is_rejected(self):
        with self.Session() as db:
            with self.assertRaises(ValueError):
                upsert_user(db, email="x@agri.test", role="DEPT_HEAD", department_id="mars", password=PASSWORD)

    def test_short_password_is_rejected(self):
        with self.Session() as db:
            with self.assertRaises(ValueError):
                upsert_user(db, email="admin2@agri.test", role="ADMIN", password="short")


if __name__ == "__main__":
    unittest.main()
