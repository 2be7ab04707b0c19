import unittest

from cityhub.app import create_app
from cityhub.config import Settings
from cityhub.tests.support import ApiTestCase, in_memory_settings


class AppTests(ApiTestCase):
    def test_liveness(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "Backend running...")

    def test_unknown_route_uses_error_body(self):
        resp = self.client.get("/api/bookings")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Not Found"})

    def test_cors_headers(self):
        resp = self.client.get("/api/homeherooffers", headers={"Origin": "https://app.cityhub.io"})
        self.assertEqual(resp.headers.get("access-control-allow-origin"), "*")

    def test_unauthorized_carries_challenge(self):
        resp = self.client.post("/api/homeherooffers", json={"title": "x"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Missing Authorization token"})
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")


class SettingsTests(unittest.TestCase):
    def test_in_memory_mode_needs_only_jwt_secret(self):
        with self.assertRaises(RuntimeError) as ctx:
            create_app(in_memory_settings(jwt_secret=None))
        self.assertIn("JWT_SECRET", str(ctx.exception))

    def test_platform_mode_lists_missing_keys(self):
        settings = Settings(_env_file=None, jwt_secret="x", supabase_url="https://proj.supabase.co")
        with self.assertRaises(RuntimeError) as ctx:
            settings.check_required()
        message = str(ctx.exception)
        for name in ("SUPABASE_ANON_KEY", "SUPABASE_SERVICE_KEY", "DATABASE_URL"):
            self.assertIn(name, message)
        self.assertNotIn("SUPABASE_URL", message)

    def test_storage_urls(self):
        settings = Settings(_env_file=None, supabase_url="https://proj.supabase.co/")
        self.assertEqual(settings.s3_endpoint, "https://proj.supabase.co/storage/v1/s3")
        self.assertEqual(
            settings.public_object_url("spotlight", "images/1.png"),
            "https://proj.supabase.co/storage/v1/object/public/spotlight/images/1.png",
        )

    def test_cors_origins_split(self):
        settings = Settings(_env_file=None, cors_allow_origins="https://a.io, https://b.io,")
        self.assertEqual(settings.cors_origins, ["https://a.io", "https://b.io"])


if __name__ == "__main__":
    unittest.main()
