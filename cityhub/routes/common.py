"""
Helpers shared by the entity routers.
"""

from __future__ import annotations

import logging
import time

from fastapi import HTTPException, UploadFile

from cityhub.db import DataStore, Query
from cityhub.schemas import ListQuery, ListResponse, PageInfo
from cityhub.storage import StorageClient, StorageError

logger = logging.getLogger(__name__)


def apply_status(query: Query, params: ListQuery) -> Query:
    """Hide inactive rows unless the caller opted in."""
    if not params.include_inactive and not params.status:
        query.eq("is_active", True)
    if params.status:
        query.eq("is_active", params.status == "active")
    return query


def list_page(store: DataStore, query: Query, params: ListQuery) -> ListResponse:
    query.count = True
    result = store.select(query.range(params.offset, params.limit))
    return ListResponse(
        items=result.rows,
        page=PageInfo(limit=params.limit, offset=params.offset, total=result.total or 0),
    )


def require_row(store: DataStore, table: str, row_id: str, label: str, columns=None) -> dict:
    row = store.get_one(table, "id", row_id, columns=columns)
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def soft_or_hard_delete(store: DataStore, table: str, row_id: str, label: str, hard: bool) -> dict:
    require_row(store, table, row_id, label, columns=("id", "is_active"))
    if hard:
        store.delete(table, {"id": row_id})
        return {"ok": True, "deleted": "hard", "id": row_id}
    store.update(table, {"is_active": False}, {"id": row_id})
    return {"ok": True, "deleted": "soft", "id": row_id}


def file_extension(filename: str | None, default: str = "bin") -> str:
    name = filename or ""
    return name.rsplit(".", 1)[-1] if "." in name else default


def upload_public(
    storage: StorageClient,
    bucket: str,
    path: str,
    upload: UploadFile,
) -> str:
    """Store an uploaded file and return its public URL."""
    try:
        storage.upload_bytes(
            bucket,
            path,
            upload.file.read(),
            content_type=upload.content_type,
            upsert=False,
        )
    except StorageError as exc:
        logger.error("Upload to %s/%s failed: %s", bucket, path, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return storage.public_url(bucket, path)


def now_millis() -> int:
    return int(time.time() * 1000)
