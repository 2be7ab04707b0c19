"""
Corporate accounts and their embedded employee lists (admin only).
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from cityhub import guards
from cityhub.db import Query
from cityhub.dependencies import RequestContext, get_request_context
from cityhub.routes.common import require_row
from cityhub.schemas import AddEmployeesRequest, CreateCorporateRequest, EmployeesResponse
from cityhub.services import EmployeeMergeError, merge_employees, remove_employee

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/corporates", tags=["corporates"])

TABLE = "corporate"


@router.post("", status_code=201)
def create_corporate(
    payload: CreateCorporateRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    access = guards.require_admin(ctx)
    store = access.store

    plan = payload.plan or None
    if not plan and payload.subscription_id:
        plan_row = store.get_one(
            "subscription", "id", payload.subscription_id, columns=("id", "plan_name")
        )
        if plan_row is None:
            raise HTTPException(status_code=400, detail="Invalid subscription_id")
        plan = plan_row["plan_name"]

    owner = store.get_one(
        "users", "id", payload.owner_user_id, columns=("id", "email", "role")
    )
    if owner is None:
        raise HTTPException(status_code=400, detail="Owner user not found in users table")
    if str(owner.get("email") or "").lower() != payload.owner_email.lower():
        raise HTTPException(status_code=400, detail="owner_email does not match users.email")

    corporate = store.insert(
        TABLE,
        {
            "name": payload.name,
            "phone": payload.phone,
            "email": payload.email or payload.owner_email,
            "city": payload.city,
            "area": payload.area,
            "full_address": payload.full_address,
            "owner_user_id": payload.owner_user_id,
            "owner_email": payload.owner_email,
            "plan": plan,
            "seats": payload.seats or 0,
            "subscription_start": payload.subscription_start,
            "subscription_expiry": payload.subscription_expiry,
            "subscription_status": "active",
            "is_active": True,
            "employees": [],
        },
    )
    logger.info("Corporate %s created by %s", corporate["id"], access.caller_id)
    return {"corporate": corporate}


@router.post("/{corporate_id}/employees", response_model=EmployeesResponse)
def add_employees(
    corporate_id: UUID,
    payload: AddEmployeesRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    """Merge employees into ``corporate.employees`` keyed by user_id.

    Read-modify-write without a version check: concurrent merges on the
    same corporate can overwrite each other.
    """
    access = guards.require_admin(ctx)
    store = access.store
    cid = str(corporate_id)

    corp = require_row(store, TABLE, cid, "Corporate", columns=("id", "seats", "employees"))
    existing = corp.get("employees") if isinstance(corp.get("employees"), list) else []

    ids = list({emp.user_id for emp in payload.employees})
    users = store.select(Query("users", columns=("id", "email")).in_("id", ids)).rows
    registry = {u["id"]: u.get("email") for u in users}

    try:
        merged = merge_employees(
            existing, payload.employees, registry, seats=int(corp.get("seats") or 0)
        )
    except EmployeeMergeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    rows = store.update(TABLE, {"employees": merged}, {"id": cid})
    if not rows:
        raise HTTPException(status_code=404, detail="Corporate not found")
    updated = rows[0]
    return EmployeesResponse(
        corporate_id=str(updated["id"]),
        employees=updated["employees"],
        seats=updated.get("seats"),
    )


@router.delete(
    "/{corporate_id}/employees/{user_id}",
    response_model=EmployeesResponse,
    response_model_exclude_none=True,
)
def delete_employee(
    corporate_id: UUID,
    user_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
):
    access = guards.require_admin(ctx)
    store = access.store
    cid = str(corporate_id)

    corp = require_row(store, TABLE, cid, "Corporate", columns=("id", "employees"))
    existing = corp.get("employees") if isinstance(corp.get("employees"), list) else []
    remaining = remove_employee(existing, str(user_id))

    rows = store.update(TABLE, {"employees": remaining}, {"id": cid})
    if not rows:
        raise HTTPException(status_code=404, detail="Corporate not found")
    return EmployeesResponse(corporate_id=str(rows[0]["id"]), employees=rows[0]["employees"])
