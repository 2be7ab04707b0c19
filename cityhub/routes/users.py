"""
User profile details.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from cityhub.db import DataStore
from cityhub.dependencies import get_data_store
from cityhub.schemas import UserDetailsRequest
from cityhub.tables import utcnow

router = APIRouter(prefix="/user", tags=["user"])


@router.post("/details")
def save_user_details(payload: UserDetailsRequest, store: DataStore = Depends(get_data_store)):
    """Upsert name and phone for a user identity."""
    existing = store.get_one("users", "id", payload.id, columns=("id",))

    if existing:
        rows = store.update(
            "users",
            {"full_name": payload.full_name, "phone": payload.phone, "updated_at": utcnow()},
            {"id": payload.id},
        )
        user = rows[0]
    else:
        user = store.insert(
            "users",
            {"id": payload.id, "full_name": payload.full_name, "phone": payload.phone},
        )

    return {
        "success": True,
        "message": "User details saved successfully",
        "user": user,
    }
