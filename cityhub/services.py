"""
Request-scoped operations that need more than one data-store call.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Literal, Mapping, Optional, Sequence

from pydantic import ValidationError

from cityhub.auth_client import AuthClient, SignUpError
from cityhub.db import DataStore, StoreError
from cityhub.schemas import CreateUserRequest, EmployeeRecord, ExternalIdentity
from cityhub.security import SESSION_TTL_DAYS, create_session_token
from cityhub.tables import utcnow

logger = logging.getLogger(__name__)

MAX_BULK_ACCOUNTS = 200


# ---------------------------------------------------------------------------
# Corporate employees
# ---------------------------------------------------------------------------


class EmployeeMergeError(ValueError):
    pass


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def merge_employees(
    existing: Iterable[dict],
    incoming: Sequence[EmployeeRecord],
    registry: Mapping[str, Optional[str]],
    seats: int = 0,
) -> list[dict]:
    """Merge ``incoming`` into ``existing`` keyed by user_id.

    ``registry`` maps user ids to their registry email. The whole batch is
    rejected if any record is unknown, carries a different email, or the
    merged list would not fit into a positive ``seats`` count.
    """
    for emp in incoming:
        if emp.user_id not in registry:
            raise EmployeeMergeError(f"User not found in users table: {emp.user_id}")
        email = str(registry.get(emp.user_id) or "").lower()
        if email != emp.email.lower():
            raise EmployeeMergeError(
                f"Email mismatch for user_id {emp.user_id}: users.email != provided email"
            )

    by_user_id: dict[str, dict] = {}
    for entry in existing or []:
        uid = str((entry or {}).get("user_id") or "")
        if uid:
            by_user_id[uid] = entry

    for emp in incoming:
        by_user_id[emp.user_id] = {
            "user_id": emp.user_id,
            "name": emp.name,
            "email": emp.email,
            "phone": emp.phone,
            "department": emp.department,
            "designation": emp.designation,
            "created_at": emp.created_at or _iso_now(),
        }

    merged = list(by_user_id.values())
    if seats > 0 and len(merged) > seats:
        raise EmployeeMergeError(
            f"Seats exceeded. Seats={seats}, requested employees={len(merged)}"
        )
    return merged


def remove_employee(existing: Iterable[dict], user_id: str) -> list[dict]:
    return [e for e in existing or [] if str((e or {}).get("user_id") or "") != user_id]


# ---------------------------------------------------------------------------
# Login-or-register
# ---------------------------------------------------------------------------


class AuthFlowError(Exception):
    pass


@dataclass
class AuthOutcome:
    mode: Literal["registered", "logged_in"]
    token: str
    user: dict


def login_or_register(
    store: DataStore,
    identity: ExternalIdentity,
    *,
    secret: str,
    ttl_days: int = SESSION_TTL_DAYS,
) -> AuthOutcome:
    try:
        user = store.get_one("users", "id", identity.id)
    except StoreError as exc:
        logger.error("User lookup failed for %s: %s", identity.id, exc)
        raise AuthFlowError("DB error") from exc

    now = utcnow()
    if user is None:
        try:
            user = store.insert(
                "users",
                {
                    "id": identity.id,
                    "email": identity.email,
                    "role": "user",
                    "created_at": now,
                    "last_login": now,
                    "last_opened": now,
                },
            )
        except StoreError as exc:
            logger.error("Registration failed for %s: %s", identity.id, exc)
            raise AuthFlowError("Registration failed") from exc
        mode = "registered"
    else:
        try:
            updated = store.update(
                "users", {"last_login": now, "last_opened": now}, {"id": identity.id}
            )
        except StoreError as exc:
            logger.error("Login update failed for %s: %s", identity.id, exc)
            raise AuthFlowError("DB error") from exc
        user = updated[0] if updated else user
        mode = "logged_in"

    token = create_session_token(
        secret=secret,
        user_id=identity.id,
        email=identity.email,
        role=user.get("role"),
        expires_days=ttl_days,
    )
    logger.info("Issued session for %s (%s)", identity.id, mode)
    return AuthOutcome(mode=mode, token=token, user=user)


# ---------------------------------------------------------------------------
# Account creation
# ---------------------------------------------------------------------------


@dataclass
class AccountResult:
    ok: bool
    email: Optional[str] = None
    user: Optional[dict] = None
    error: Optional[str] = None
    hint: Optional[str] = None

    def failure(self) -> dict:
        out = {"email": self.email, "error": self.error}
        if self.hint:
            out["hint"] = self.hint
        return out


def _validation_message(exc: ValidationError) -> str:
    fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
    if {"email", "password", "role"} & set(fields):
        return "Email, password and role are required"
    return "Invalid user payload: " + ", ".join(fields)


def create_account(auth: AuthClient, store: DataStore, payload: dict) -> AccountResult:
    """Sign a user up with the auth subsystem and write their registry row."""
    email = payload.get("email") if isinstance(payload, dict) else None
    try:
        req = CreateUserRequest.model_validate(payload)
    except ValidationError as exc:
        return AccountResult(ok=False, email=email, error=_validation_message(exc))

    try:
        result = auth.sign_up(
            req.email,
            req.password,
            {"role": req.role.value, "full_name": req.full_name, "phone": req.phone},
        )
    except SignUpError as exc:
        return AccountResult(ok=False, email=req.email, error=str(exc))

    if result.user is None:
        return AccountResult(ok=False, email=req.email, error="User not returned from signUp")
    if not result.access_token:
        return AccountResult(
            ok=False,
            email=req.email,
            error="No session returned from signUp. If email confirmation is OFF, this is unexpected.",
        )

    scoped = store.for_caller(result.user.id, req.email)
    try:
        user = scoped.insert(
            "users",
            {
                "id": result.user.id,
                "email": req.email,
                "full_name": req.full_name,
                "phone": req.phone,
                "role": req.role.value,
                "profile_image": None,
                "gender": None,
                "dob": None,
                "membership": req.membership,
                "membership_tier": req.membership_tier or "none",
                "membership_started": req.membership_started,
                "membership_expiry": req.membership_expiry,
                "corporate_code": req.corporate_code,
                "corporate_code_status": req.corporate_code_status or "pending",
            },
        )
    except StoreError as exc:
        return AccountResult(
            ok=False,
            email=req.email,
            error=exc.message,
            hint="RLS might block insert. Add policy: WITH CHECK (auth.uid() = id).",
        )
    return AccountResult(ok=True, email=req.email, user=user)


def create_accounts(
    auth: AuthClient,
    store: DataStore,
    payloads: Sequence[dict],
    *,
    max_workers: int = 1,
) -> tuple[list[dict], list[dict]]:
    """Create every account in ``payloads``, collecting successes and failures.

    ``max_workers`` bounds how many sign-ups run at once; 1 keeps them
    sequential for auth rate limits.
    """
    if len(payloads) > MAX_BULK_ACCOUNTS:
        raise ValueError(f"Too many users in one request (max {MAX_BULK_ACCOUNTS})")

    if max_workers <= 1:
        results = [create_account(auth, store, p) for p in payloads]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda p: create_account(auth, store, p), payloads))

    created: list[dict] = []
    failed: list[dict] = []
    for result in results:
        if result.ok:
            created.append(result.user)
        else:
            failed.append(result.failure())
    logger.info("Bulk account creation: %d created, %d failed", len(created), len(failed))
    return created, failed
