import unittest
import uuid

from cityhub.security import decode_session_token
from cityhub.tests.support import JWT_SECRET, ApiTestCase


class LoginOrRegisterTests(ApiTestCase):
    def _login(self, user_id, email="rider@cityhub.io"):
        return self.client.post(
            "/api/auth/login-or-register",
            json={"supabase_user": {"id": user_id, "email": email}},
        )

    def test_registers_then_logs_in(self):
        user_id = str(uuid.uuid4())

        first = self._login(user_id)
        self.assertEqual(first.status_code, 200)
        body = first.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["mode"], "registered")
        self.assertEqual(body["user"]["role"], "user")
        self.assertIsNotNone(body["user"]["last_login"])

        second = self._login(user_id)
        self.assertEqual(second.json()["mode"], "logged_in")
        self.assertEqual(len(self.store.tables["users"]), 1)

    def test_token_claims(self):
        user_id = str(uuid.uuid4())
        self.store.insert("users", {"id": user_id, "email": "rider@cityhub.io", "role": "storepartner"})
        token = self._login(user_id).json()["token"]

        claims = decode_session_token(token=token, secret=JWT_SECRET)
        self.assertEqual(claims["id"], user_id)
        self.assertEqual(claims["email"], "rider@cityhub.io")
        self.assertEqual(claims["role"], "storepartner")
        self.assertEqual(claims["exp"] - claims["iat"], 7 * 24 * 3600)

    def test_requires_identity(self):
        resp = self.client.post("/api/auth/login-or-register", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid body")

        resp = self._login("not-a-uuid")
        self.assertEqual(resp.status_code, 400)


class CreateUserTests(ApiTestCase):
    def test_create_single_user(self):
        resp = self.client.post(
            "/api/auth/create-user",
            json={
                "email": "partner@cityhub.io",
                "password": "s3cret-pass",
                "role": "restaurantpartner",
                "full_name": "Priya",
                "membership_started": "2024-03-01",
            },
        )
        self.assertEqual(resp.status_code, 201)
        user = resp.json()["user"]
        self.assertEqual(user["role"], "restaurantpartner")
        self.assertEqual(user["membership_tier"], "none")
        self.assertEqual(user["corporate_code_status"], "pending")
        self.assertEqual(user["membership_started"], "2024-03-01")
        self.assertIn(user["id"], {u.id for u in self.auth.tokens.values()})

    def test_missing_fields(self):
        resp = self.client.post("/api/auth/create-user", json={"email": "a@cityhub.io"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "Email, password and role are required"})

    def test_duplicate_signup(self):
        payload = {"email": "dup@cityhub.io", "password": "pw", "role": "user"}
        self.assertEqual(self.client.post("/api/auth/create-user", json=payload).status_code, 201)
        resp = self.client.post("/api/auth/create-user", json=payload)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "User already registered")

    def test_signup_without_session(self):
        self.auth.issue_sessions = False
        resp = self.client.post(
            "/api/auth/create-user", json={"email": "x@cityhub.io", "password": "pw", "role": "user"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertTrue(resp.json()["error"].startswith("No session returned from signUp"))
        self.assertEqual(self.store.tables["users"], [])

    def test_bulk_create(self):
        resp = self.client.post(
            "/api/auth/create-user",
            json={
                "users": [
                    {"email": "one@cityhub.io", "password": "pw", "role": "user"},
                    {"email": "two@cityhub.io", "password": "pw", "role": "admin"},
                    {"email": "three@cityhub.io", "role": "user"},
                    {"email": "one@cityhub.io", "password": "pw", "role": "user"},
                ]
            },
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["created_count"], 2)
        self.assertEqual(body["failed_count"], 2)
        self.assertEqual([u["email"] for u in body["created"]], ["one@cityhub.io", "two@cityhub.io"])
        self.assertEqual(
            body["failed"],
            [
                {"email": "three@cityhub.io", "error": "Email, password and role are required"},
                {"email": "one@cityhub.io", "error": "User already registered"},
            ],
        )

    def test_bulk_limits(self):
        resp = self.client.post("/api/auth/create-user", json={"users": []})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "users[] is required"})

        users = [{"email": f"u{i}@cityhub.io", "password": "pw", "role": "user"} for i in range(201)]
        resp = self.client.post("/api/auth/create-user", json={"users": users})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Too many users in one request (max 200)"})
        self.assertEqual(self.store.tables["users"], [])


class UserDetailsTests(ApiTestCase):
    def test_upsert(self):
        user_id = str(uuid.uuid4())
        resp = self.client.post(
            "/api/user/details", json={"id": user_id, "full_name": "Kiran", "phone": "98450"}
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["success"], True)
        self.assertEqual(body["message"], "User details saved successfully")
        self.assertEqual(body["user"]["full_name"], "Kiran")

        resp = self.client.post(
            "/api/user/details", json={"id": user_id, "full_name": "Kiran R", "phone": "98450"}
        )
        self.assertEqual(resp.json()["user"]["full_name"], "Kiran R")
        self.assertEqual(len(self.store.tables["users"]), 1)
        self.assertIsNotNone(self.store.tables["users"][0]["updated_at"])

    def test_requires_fields(self):
        resp = self.client.post("/api/user/details", json={"id": str(uuid.uuid4()), "full_name": " "})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid body")


if __name__ == "__main__":
    unittest.main()
