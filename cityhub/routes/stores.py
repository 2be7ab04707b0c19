"""
Store listing, detail with related tables, and delete.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query as QueryParams

from cityhub import guards
from cityhub.db import DataStore, Query
from cityhub.dependencies import RequestContext, get_data_store, get_request_context
from cityhub.routes.common import apply_status, list_page, require_row, soft_or_hard_delete
from cityhub.schemas import (
    DeleteQuery,
    DeleteResponse,
    ListResponse,
    StoreDetailQuery,
    StoreListQuery,
)

router = APIRouter(prefix="/stores", tags=["stores"])

TABLE = "stores"
SEARCH_COLUMNS = (
    "name",
    "slug",
    "category",
    "subcategory",
    "city",
    "region",
    "location_name",
)


@router.get("", response_model=ListResponse)
def list_stores(
    params: Annotated[StoreListQuery, QueryParams()],
    store: DataStore = Depends(get_data_store),
):
    query = apply_status(Query(TABLE), params)

    if params.city:
        query.ilike("city", params.city)
    if params.region:
        query.ilike("region", params.region)
    if params.country:
        query.ilike("country", params.country)
    if params.category:
        query.eq("category", params.category)
    if params.subcategory:
        query.eq("subcategory", params.subcategory)
    if params.is_featured is not None:
        query.eq("is_featured", params.is_featured)
    if params.tag:
        query.contains("tags", [params.tag])
    if params.search:
        query.search_any(SEARCH_COLUMNS, params.search)

    query.order_by(params.sort, ascending=params.order == "asc")
    # Stable ordering when sort values tie.
    if params.sort != "created_at":
        query.order_by("created_at", ascending=False)
    return list_page(store, query, params)


@router.get("/{store_id}")
def get_store(
    store_id: UUID,
    params: Annotated[StoreDetailQuery, QueryParams()],
    store: DataStore = Depends(get_data_store),
):
    row = require_row(store, TABLE, str(store_id), "Store")
    response: dict = {"item": row}

    if "payment" in params.expansions:
        response["payment"] = store.get_one("store_payment_details", "store_id", row["id"])

    if "catalogue" in params.expansions:
        catalogue = (
            Query("store_catalogue_items")
            .eq("store_id", row["id"])
            .order_by("sort_order", ascending=True)
            .order_by("created_at", ascending=True)
        )
        response["catalogue"] = store.select(catalogue).rows

    return response


@router.delete("/{store_id}", response_model=DeleteResponse)
def delete_store(
    store_id: UUID,
    params: Annotated[DeleteQuery, QueryParams()],
    ctx: RequestContext = Depends(get_request_context),
):
    """Soft delete by default; a hard delete cascades to payment details and catalogue items."""
    sid = str(store_id)
    access = guards.require_owner_or_admin(ctx, TABLE, sid, "Store")
    return soft_or_hard_delete(access.store, TABLE, sid, "Store", params.hard)
