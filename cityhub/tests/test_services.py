import unittest
from unittest import mock

from cityhub.auth_client import InMemoryAuthClient
from cityhub.db import InMemoryDataStore, StoreError
from cityhub.schemas import EmployeeRecord, ExternalIdentity
from cityhub.services import (
    AuthFlowError,
    EmployeeMergeError,
    create_account,
    create_accounts,
    login_or_register,
    merge_employees,
    remove_employee,
)

ASHA = "6f1c2b9e-3d4a-4f5b-8c7d-1e2f3a4b5c6d"
RAVI = "0a9b8c7d-6e5f-4a3b-9c2d-1e0f9a8b7c6d"


def employee(user_id, email, **extra):
    return EmployeeRecord(user_id=user_id, name="Someone", email=email, phone="1", **extra)


class MergeEmployeesTests(unittest.TestCase):
    registry = {ASHA: "asha@acme.com", RAVI: "ravi@acme.com"}

    def test_merge_is_idempotent(self):
        incoming = [employee(ASHA, "asha@acme.com", created_at="2024-01-01T00:00:00Z")]
        once = merge_employees([], incoming, self.registry)
        twice = merge_employees(once, incoming, self.registry)
        self.assertEqual(once, twice)

    def test_keeps_existing_entries(self):
        existing = [{"user_id": RAVI, "name": "Ravi"}]
        merged = merge_employees(existing, [employee(ASHA, "asha@acme.com")], self.registry)
        self.assertEqual([e["user_id"] for e in merged], [RAVI, ASHA])

    def test_stamps_created_at(self):
        [entry] = merge_employees([], [employee(ASHA, "asha@acme.com")], self.registry)
        self.assertTrue(entry["created_at"])

    def test_unknown_user(self):
        stranger = "11111111-2222-4333-8444-555555555555"
        with self.assertRaises(EmployeeMergeError) as ctx:
            merge_employees([], [employee(stranger, "x@acme.com")], self.registry)
        self.assertEqual(str(ctx.exception), f"User not found in users table: {stranger}")

    def test_seats(self):
        incoming = [employee(ASHA, "asha@acme.com"), employee(RAVI, "ravi@acme.com")]
        with self.assertRaises(EmployeeMergeError) as ctx:
            merge_employees([], incoming, self.registry, seats=1)
        self.assertEqual(str(ctx.exception), "Seats exceeded. Seats=1, requested employees=2")
        self.assertEqual(len(merge_employees([], incoming, self.registry, seats=2)), 2)

    def test_remove(self):
        existing = [{"user_id": ASHA}, {"user_id": RAVI}]
        self.assertEqual(remove_employee(existing, ASHA), [{"user_id": RAVI}])
        self.assertEqual(remove_employee(existing, "missing"), existing)


class LoginOrRegisterTests(unittest.TestCase):
    def test_lookup_failure(self):
        store = mock.Mock()
        store.get_one.side_effect = StoreError("timeout")
        with self.assertRaises(AuthFlowError) as ctx:
            login_or_register(store, ExternalIdentity(id=ASHA), secret="s" * 32)
        self.assertEqual(str(ctx.exception), "DB error")

    def test_registration_failure(self):
        store = mock.Mock()
        store.get_one.return_value = None
        store.insert.side_effect = StoreError("permission denied")
        with self.assertRaises(AuthFlowError) as ctx:
            login_or_register(store, ExternalIdentity(id=ASHA), secret="s" * 32)
        self.assertEqual(str(ctx.exception), "Registration failed")


class CreateAccountTests(unittest.TestCase):
    payload = {"email": "new@acme.com", "password": "pw", "role": "user"}

    def test_registry_write_failure_carries_hint(self):
        store = mock.Mock()
        store.for_caller.return_value.insert.side_effect = StoreError(
            'new row violates row-level security policy for table "users"'
        )
        result = create_account(InMemoryAuthClient(), store, self.payload)
        self.assertFalse(result.ok)
        self.assertIn("row-level security", result.error)
        self.assertTrue(result.hint)

    def test_writes_through_caller_scope(self):
        auth = InMemoryAuthClient()
        store = mock.Mock()
        store.for_caller.return_value.insert.return_value = {"id": "x"}
        result = create_account(auth, store, self.payload)
        self.assertTrue(result.ok)
        user_id = auth.accounts["new@acme.com"]
        store.for_caller.assert_called_once_with(user_id, "new@acme.com")

    def test_bulk_with_workers(self):
        auth = InMemoryAuthClient()
        store = InMemoryDataStore()
        payloads = [{"email": f"u{i}@acme.com", "password": "pw", "role": "user"} for i in range(6)]
        payloads.append({"email": "bad", "password": "pw", "role": "user"})

        created, failed = create_accounts(auth, store, payloads, max_workers=3)
        self.assertEqual(len(created), 6)
        self.assertEqual(failed, [{"email": "bad", "error": "Email, password and role are required"}])
        self.assertEqual(len(store.tables["users"]), 6)

    def test_bulk_cap(self):
        with self.assertRaises(ValueError):
            create_accounts(InMemoryAuthClient(), InMemoryDataStore(), [{}] * 201)


if __name__ == "__main__":
    unittest.main()
