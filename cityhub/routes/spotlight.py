"""
Spotlight media carousel items.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Literal, Optional
from uuid import UUID

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
from cityhub.schemas import ReorderRequest
from cityhub.storage import StorageClient
from cityhub.tables import utcnow

router = APIRouter(prefix="/spotlight", tags=["spotlight"])

TABLE = "spotlight_items"
VIDEO_THUMBNAIL = "https://placehold.co/300x400?text=Video+Preview"
REORDER_WORKERS = 8

MediaType = Literal["image", "video"]
ModuleType = Literal["dining", "stores", "events", "global"]


def _store_media(
    storage: StorageClient, settings: Settings, upload: UploadFile, media_type: Optional[str]
) -> str:
    folder = "videos" if media_type == "video" else "images"
    path = f"{folder}/{now_millis()}.{file_extension(upload.filename)}"
    return upload_public(storage, settings.spotlight_bucket, path, upload)


@router.get("")
def list_spotlight(
    module_type: Optional[str] = None,
    store: DataStore = Depends(get_data_store),
):
    query = Query(TABLE).eq("is_active", True).order_by("order_index", ascending=True)
    if module_type:
        query.eq("module_type", module_type)
    return store.select(query).rows


@router.post("")
def create_spotlight(
    title: Optional[str] = Form(default=None),
    subtitle: Optional[str] = Form(default=None),
    media_type: MediaType = Form(default="image"),
    module_type: Optional[ModuleType] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    ctx: RequestContext = Depends(get_request_context),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings_dep),
):
    access = guards.require_admin(ctx)

    media_url = ""
    thumbnail_url = ""
    if file is not None:
        media_url = _store_media(storage, settings, file, media_type)
        if media_type == "video":
            thumbnail_url = VIDEO_THUMBNAIL

    # New items go to the end of the list.
    last = access.store.select(
        Query(TABLE, columns=("order_index",))
        .order_by("order_index", ascending=False)
        .range(0, 1)
    ).first()
    next_order = (last["order_index"] + 1) if last and last.get("order_index") else 1

    return access.store.insert(
        TABLE,
        {
            "title": title,
            "subtitle": subtitle,
            "media_type": media_type,
            "media_url": media_url,
            "thumbnail_url": thumbnail_url,
            "module_type": module_type or "global",
            "order_index": next_order,
        },
    )


@router.put("/reorder/list")
def reorder_spotlight(
    payload: ReorderRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    access = guards.require_admin(ctx)

    def apply(entry):
        return access.store.update(TABLE, {"order_index": entry.order_index}, {"id": entry.id})

    workers = min(REORDER_WORKERS, len(payload.order))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(apply, payload.order))
    return {"message": "Order updated"}


@router.put("/{item_id}")
def update_spotlight(
    item_id: UUID,
    title: Optional[str] = Form(default=None),
    subtitle: Optional[str] = Form(default=None),
    media_type: Optional[MediaType] = Form(default=None),
    module_type: Optional[ModuleType] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    ctx: RequestContext = Depends(get_request_context),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings_dep),
):
    access = guards.require_admin(ctx)

    changes: dict = {
        key: value
        for key, value in (
            ("title", title),
            ("subtitle", subtitle),
            ("media_type", media_type),
            ("module_type", module_type),
        )
        if value is not None
    }
    changes["updated_at"] = utcnow()

    if file is not None:
        changes["media_url"] = _store_media(storage, settings, file, media_type)
        if media_type == "video":
            changes["thumbnail_url"] = VIDEO_THUMBNAIL

    rows = access.store.update(TABLE, changes, {"id": str(item_id)})
    if not rows:
        raise HTTPException(status_code=404, detail="Spotlight item not found")
    return rows[0]


@router.delete("/{item_id}")
def delete_spotlight(item_id: UUID, ctx: RequestContext = Depends(get_request_context)):
    access = guards.require_admin(ctx)
    access.store.update(TABLE, {"is_active": False}, {"id": str(item_id)})
    return {"success": True}
