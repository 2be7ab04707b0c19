import unittest
from unittest import mock

from fastapi import HTTPException

from cityhub import guards
from cityhub.auth_client import AuthServiceError, InMemoryAuthClient
from cityhub.db import InMemoryDataStore, StoreError
from cityhub.dependencies import RequestContext


class BearerTokenTests(unittest.TestCase):
    def test_accepts_well_formed_header(self):
        self.assertEqual(guards.bearer_token("Bearer abc"), "abc")

    def test_rejects_other_shapes(self):
        for header in (None, "", "Bearer", "Bearer ", "bearer abc", "Token abc", "Bearer a b"):
            self.assertIsNone(guards.bearer_token(header), header)


class GuardTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDataStore()
        self.auth = InMemoryAuthClient()

    def _caller(self, role):
        user, token = self.auth.add_user(email=f"{role or 'anon'}@example.com")
        if role is not None:
            self.store.insert("users", {"id": user.id, "email": user.email, "role": role})
        return user.id, RequestContext(self.store, self.auth, f"Bearer {token}")

    def _restaurant(self, owner=None):
        return self.store.insert(
            "restaurants", {"name": "Saffron", "slug": f"saffron-{owner}", "owner_user_id": owner}
        )

    def assertStatus(self, status, detail, fn, *args):
        with self.assertRaises(HTTPException) as ctx:
            fn(*args)
        self.assertEqual(ctx.exception.status_code, status)
        self.assertEqual(ctx.exception.detail, detail)

    def test_missing_token(self):
        ctx = RequestContext(self.store, self.auth, None)
        self.assertStatus(401, "Missing Authorization token", guards.require_auth, ctx)

    def test_unknown_token(self):
        ctx = RequestContext(self.store, self.auth, "Bearer nope")
        self.assertStatus(401, "Invalid session", guards.require_auth, ctx)

    def test_auth_service_failure_is_invalid_session(self):
        auth = mock.Mock()
        auth.get_user.side_effect = AuthServiceError("timeout")
        ctx = RequestContext(self.store, auth, "Bearer abc")
        self.assertStatus(401, "Invalid session", guards.require_auth, ctx)

    def test_require_admin_roles(self):
        for role in ("admin", "superadmin"):
            caller_id, ctx = self._caller(role)
            access = guards.require_admin(ctx)
            self.assertEqual(access.caller_id, caller_id)
            self.assertEqual(access.role, role)

    def test_require_admin_denies_others(self):
        for role in ("user", "restaurantpartner", "storepartner", None):
            _, ctx = self._caller(role)
            self.assertStatus(403, "Access denied", guards.require_admin, ctx)

    def test_role_change_applies_on_next_call(self):
        caller_id, ctx = self._caller("user")
        self.assertStatus(403, "Access denied", guards.require_admin, ctx)
        self.store.update("users", {"role": "admin"}, {"id": caller_id})
        self.assertEqual(guards.require_admin(ctx).role, "admin")

    def test_owner_or_admin_allows_owning_partner(self):
        caller_id, ctx = self._caller("restaurantpartner")
        row = self._restaurant(owner=caller_id)
        access = guards.require_owner_or_admin(ctx, "restaurants", row["id"], "Restaurant")
        self.assertEqual(access.role, "restaurantpartner")

    def test_owner_or_admin_denies_other_partner(self):
        owner_id, _ = self._caller("restaurantpartner")
        _, ctx = self._caller("storepartner")
        row = self._restaurant(owner=owner_id)
        self.assertStatus(
            403, "Access denied", guards.require_owner_or_admin, ctx, "restaurants", row["id"], "Restaurant"
        )

    def test_owner_or_admin_missing_resource_for_partner(self):
        _, ctx = self._caller("restaurantpartner")
        self.assertStatus(
            404,
            "Restaurant not found",
            guards.require_owner_or_admin,
            ctx,
            "restaurants",
            "8a6e0804-2bd0-4672-b79d-d97027f9071a",
            "Restaurant",
        )

    def test_owner_or_admin_denies_plain_user_even_as_owner(self):
        caller_id, ctx = self._caller("user")
        row = self._restaurant(owner=caller_id)
        self.assertStatus(
            403, "Access denied", guards.require_owner_or_admin, ctx, "restaurants", row["id"], "Restaurant"
        )

    def test_admin_skips_resource_lookup(self):
        _, ctx = self._caller("admin")
        access = guards.require_owner_or_admin(
            ctx, "restaurants", "8a6e0804-2bd0-4672-b79d-d97027f9071a", "Restaurant"
        )
        self.assertEqual(access.role, "admin")

    def test_role_lookup_failure_is_500(self):
        store = mock.Mock()
        store.get_one.side_effect = StoreError("connection refused")
        self.assertStatus(500, "connection refused", guards.resolve_role, store, "abc")


if __name__ == "__main__":
    unittest.main()
