"""Authentication / authorization guards.

Every write route runs the same pipeline once its input has validated:

- resolve the bearer credential into a caller-scoped data handle
- look up the caller's role in ``users``
- for partner roles, load the target row and compare ``owner_user_id``

Nothing is cached between calls, so role or ownership changes apply to the
next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException

from cityhub.auth_client import AuthServiceError, AuthUser
from cityhub.db import DataStore, StoreError
from cityhub.dependencies import RequestContext
from cityhub.schemas import Role

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({Role.admin.value, Role.superadmin.value})
PARTNER_ROLES = frozenset({Role.restaurantpartner.value, Role.storepartner.value})


@dataclass
class CallerSession:
    store: DataStore
    user: AuthUser


@dataclass
class AccessContext:
    store: DataStore
    caller_id: str
    role: Optional[str]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _backend_failure(exc: Exception) -> HTTPException:
    logger.error("Guard lookup failed: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


def is_admin_role(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def is_partner_role(role: Optional[str]) -> bool:
    return role in PARTNER_ROLES


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    parts = (authorization or "").split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def require_auth(ctx: RequestContext) -> CallerSession:
    token = bearer_token(ctx.authorization)
    if not token:
        raise _unauthorized("Missing Authorization token")

    try:
        user = ctx.auth.get_user(token)
    except AuthServiceError as exc:
        logger.warning("Session validation failed: %s", exc)
        user = None
    if user is None:
        raise _unauthorized("Invalid session")

    return CallerSession(store=ctx.store.for_caller(user.id, user.email), user=user)


def resolve_role(store: DataStore, caller_id: str) -> Optional[str]:
    """Return the caller's role, or None when no registry row exists."""
    try:
        row = store.get_one("users", "id", caller_id, columns=("id", "role"))
    except StoreError as exc:
        raise _backend_failure(exc)
    return (row or {}).get("role") or None


def require_admin(ctx: RequestContext) -> AccessContext:
    session = require_auth(ctx)
    caller_id = session.user.id

    role = resolve_role(session.store, caller_id)
    if not is_admin_role(role):
        raise HTTPException(status_code=403, detail="Access denied")

    return AccessContext(store=session.store, caller_id=caller_id, role=role)


def require_owner_or_admin(
    ctx: RequestContext,
    table: str,
    resource_id: str,
    label: str = "Resource",
) -> AccessContext:
    """
    admin/superadmin => allow
    restaurantpartner/storepartner => allow only if owner_user_id == caller
    """
    session = require_auth(ctx)
    caller_id = session.user.id

    role = resolve_role(session.store, caller_id)
    if is_admin_role(role):
        return AccessContext(store=session.store, caller_id=caller_id, role=role)

    if is_partner_role(role):
        try:
            resource = session.store.get_one(
                table, "id", resource_id, columns=("id", "owner_user_id")
            )
        except StoreError as exc:
            raise _backend_failure(exc)
        if resource is None:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        if resource.get("owner_user_id") != caller_id:
            raise HTTPException(status_code=403, detail="Access denied")
        return AccessContext(store=session.store, caller_id=caller_id, role=role)

    raise HTTPException(status_code=403, detail="Access denied")
