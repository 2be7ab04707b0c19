import unittest
from unittest import mock

import requests

from cityhub.auth_client import AuthServiceError, GoTrueAuthClient, SignUpError
from cityhub.db import InMemoryDataStore
from cityhub.services import create_accounts


def make_response(status_code, content, content_type="application/json"):
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = content
    resp.headers["Content-Type"] = content_type
    return resp


def gateway_error():
    return make_response(502, b"<html><body>Bad gateway</body></html>", "text/html")


class GoTrueAuthClientTests(unittest.TestCase):
    def setUp(self):
        self.client = GoTrueAuthClient(
            url="https://proj.supabase.co/", anon_key="anon-key", service_key="service-key"
        )
        self.client._session = mock.Mock()

    def test_get_user(self):
        self.client._session.get.return_value = make_response(
            200, b'{"id": "u1", "email": "asha@acme.com", "user_metadata": {"name": "Asha"}}'
        )
        user = self.client.get_user("caller-token")
        self.assertEqual(user.id, "u1")
        self.assertEqual(user.user_metadata, {"name": "Asha"})

        args, kwargs = self.client._session.get.call_args
        self.assertEqual(args[0], "https://proj.supabase.co/auth/v1/user")
        self.assertEqual(
            kwargs["headers"], {"apikey": "service-key", "Authorization": "Bearer caller-token"}
        )

    def test_get_user_falls_back_to_anon_key(self):
        client = GoTrueAuthClient(url="https://proj.supabase.co", anon_key="anon-key")
        client._session = mock.Mock()
        client._session.get.return_value = make_response(200, b'{"id": "u1"}')
        client.get_user("caller-token")
        self.assertEqual(client._session.get.call_args.kwargs["headers"]["apikey"], "anon-key")

    def test_get_user_rejected_token(self):
        self.client._session.get.return_value = make_response(401, b'{"msg": "invalid JWT"}')
        self.assertIsNone(self.client.get_user("expired"))

    def test_get_user_non_json_body(self):
        self.client._session.get.return_value = make_response(200, b"<html>maintenance</html>", "text/html")
        with self.assertRaises(AuthServiceError):
            self.client.get_user("caller-token")

        self.client._session.get.return_value = gateway_error()
        with self.assertRaises(AuthServiceError) as ctx:
            self.client.get_user("caller-token")
        self.assertIn("502", str(ctx.exception))

    def test_sign_up_error_message(self):
        self.client._session.post.return_value = make_response(422, b'{"msg": "User already registered"}')
        with self.assertRaises(SignUpError) as ctx:
            self.client.sign_up("asha@acme.com", "pw")
        self.assertEqual(str(ctx.exception), "User already registered")

    def test_sign_up_gateway_error(self):
        self.client._session.post.return_value = gateway_error()
        with self.assertRaises(SignUpError) as ctx:
            self.client.sign_up("asha@acme.com", "pw")
        self.assertEqual(str(ctx.exception), "signup returned 502")

    def test_sign_up_session(self):
        self.client._session.post.return_value = make_response(
            200, b'{"access_token": "tok", "user": {"id": "u1", "email": "asha@acme.com"}}'
        )
        result = self.client.sign_up("asha@acme.com", "pw", {"role": "user"})
        self.assertEqual(result.access_token, "tok")
        self.assertEqual(result.user.id, "u1")
        self.assertEqual(
            self.client._session.post.call_args.kwargs["json"],
            {"email": "asha@acme.com", "password": "pw", "data": {"role": "user"}},
        )

    def test_bulk_survives_gateway_errors(self):
        self.client._session.post.return_value = gateway_error()
        payloads = [
            {"email": "asha@acme.com", "password": "pw", "role": "user"},
            {"email": "ravi@acme.com", "password": "pw", "role": "user"},
        ]
        created, failed = create_accounts(self.client, InMemoryDataStore(), payloads)
        self.assertEqual(created, [])
        self.assertEqual(
            [(f["email"], f["error"]) for f in failed],
            [("asha@acme.com", "signup returned 502"), ("ravi@acme.com", "signup returned 502")],
        )


if __name__ == "__main__":
    unittest.main()
