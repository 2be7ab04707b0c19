"""
Session issuing and account creation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cityhub.auth_client import AuthClient
from cityhub.config import Settings
from cityhub.db import DataStore
from cityhub.dependencies import (
    get_auth_client,
    get_data_store,
    get_settings_dep,
)
from cityhub.schemas import AuthResponse, BulkCreateUsersResponse, LoginOrRegisterRequest
from cityhub.services import (
    MAX_BULK_ACCOUNTS,
    AuthFlowError,
    create_account,
    create_accounts,
    login_or_register,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login-or-register", response_model=AuthResponse)
def login_or_register_route(
    payload: LoginOrRegisterRequest,
    store: DataStore = Depends(get_data_store),
    settings: Settings = Depends(get_settings_dep),
):
    try:
        outcome = login_or_register(
            store,
            payload.supabase_user,
            secret=settings.jwt_secret,
            ttl_days=settings.session_ttl_days,
        )
    except AuthFlowError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return AuthResponse(success=True, mode=outcome.mode, token=outcome.token, user=outcome.user)


@router.post("/create-user")
def create_user_route(
    body: Any = Body(...),
    store: DataStore = Depends(get_data_store),
    auth: AuthClient = Depends(get_auth_client),
    settings: Settings = Depends(get_settings_dep),
):
    """Create one account, or up to 200 with ``{"users": [...]}``."""
    if isinstance(body, dict) and isinstance(body.get("users"), list):
        users = body["users"]
        if not users:
            raise HTTPException(status_code=400, detail="users[] is required")
        if len(users) > MAX_BULK_ACCOUNTS:
            raise HTTPException(
                status_code=400,
                detail=f"Too many users in one request (max {MAX_BULK_ACCOUNTS})",
            )
        created, failed = create_accounts(
            auth, store, users, max_workers=settings.bulk_signup_concurrency
        )
        return BulkCreateUsersResponse(
            created_count=len(created),
            failed_count=len(failed),
            created=created,
            failed=failed,
        )

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid body")

    result = create_account(auth, store, body)
    if not result.ok:
        content = {"ok": False, "error": result.error}
        if result.hint:
            content["hint"] = result.hint
        return JSONResponse(status_code=400, content=content)
    return JSONResponse(status_code=201, content={"user": jsonable_encoder(result.user)})
