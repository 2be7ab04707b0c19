"""
Home page hero offers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from cityhub import guards
from cityhub.config import Settings
from cityhub.db import DataStore, Query
from cityhub.dependencies import (
    RequestContext,
    get_data_store,
    get_request_context,
    get_settings_dep,
    get_storage_client,
)
from cityhub.routes.common import file_extension, now_millis, upload_public
from cityhub.schemas import CreateOfferRequest
from cityhub.storage import StorageClient

router = APIRouter(prefix="/homeherooffers", tags=["homeherooffers"])

TABLE = "homeherooffers"


@router.get("")
def list_offers(store: DataStore = Depends(get_data_store)):
    query = Query(TABLE).eq("is_active", True).order_by("priority", ascending=True)
    return {"offers": store.select(query).rows}


@router.post("")
def create_offer(
    payload: CreateOfferRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    access = guards.require_admin(ctx)
    offer = access.store.insert(TABLE, payload.model_dump())
    return {"message": "Offer added", "offer": offer}


@router.post("/upload")
def upload_offer(
    media: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None),
    type: Optional[str] = Form(default=None),
    priority: int = Form(default=0),
    is_active: str = Form(default="false"),
    ctx: RequestContext = Depends(get_request_context),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings_dep),
):
    """Multipart create: the ``media`` file goes to the offers bucket first."""
    if media is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    access = guards.require_admin(ctx)

    file_name = f"offer_{now_millis()}.{file_extension(media.filename)}"
    media_url = upload_public(storage, settings.offers_bucket, file_name, media)

    offer = access.store.insert(
        TABLE,
        {
            "title": title,
            "type": type,
            "media_url": media_url,
            "priority": priority,
            "is_active": is_active == "true",
        },
    )
    return {"message": "Offer created", "offer": offer}


@router.delete("/{offer_id}")
def delete_offer(offer_id: int, ctx: RequestContext = Depends(get_request_context)):
    access = guards.require_admin(ctx)
    access.store.delete(TABLE, {"id": offer_id})
    return {"message": "Offer deleted"}
