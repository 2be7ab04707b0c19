"""Shared setup for the API tests: an app wired to in-memory backends."""

import unittest
import uuid

from fastapi.testclient import TestClient

from cityhub.app import create_app
from cityhub.config import Settings

JWT_SECRET = "cityhub-test-secret-0123456789abcdef"


def in_memory_settings(**overrides) -> Settings:
    values = {"use_in_memory_backends": True, "jwt_secret": JWT_SECRET}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.settings = in_memory_settings()
        self.app = create_app(self.settings)
        self.client = TestClient(self.app)
        self.store = self.app.state.data_store
        self.auth = self.app.state.auth_client
        self.storage = self.app.state.storage_client

    def add_user(self, role="user", email=None):
        """Register an identity with a registry row; returns (user_id, headers)."""
        email = email or f"{role}-{uuid.uuid4().hex[:8]}@cityhub.io"
        user, token = self.auth.add_user(email=email)
        if role is not None:
            self.store.insert("users", {"id": user.id, "email": email, "role": role})
        return user.id, {"Authorization": f"Bearer {token}"}
