"""
Restaurant listing (public) and admin / owning-partner writes.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query as QueryParams

from cityhub import guards
from cityhub.db import DataStore, Query, UniqueViolation
from cityhub.dependencies import RequestContext, get_data_store, get_request_context
from cityhub.routes.common import apply_status, list_page, require_row, soft_or_hard_delete
from cityhub.schemas import (
    CreateRestaurantRequest,
    DeleteQuery,
    DeleteResponse,
    ItemResponse,
    ListResponse,
    RestaurantListQuery,
    UpdateRestaurantRequest,
)
from cityhub.tables import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restaurants", tags=["restaurants"])

TABLE = "restaurants"
SEARCH_COLUMNS = ("name", "phone", "area", "city")


def _slug_conflict(exc: UniqueViolation) -> HTTPException:
    logger.info("Restaurant slug conflict: %s", exc.message)
    return HTTPException(status_code=400, detail="Slug already exists")


@router.get("", response_model=ListResponse)
def list_restaurants(
    params: Annotated[RestaurantListQuery, QueryParams()],
    store: DataStore = Depends(get_data_store),
):
    query = apply_status(Query(TABLE), params)
    if params.city:
        query.ilike("city", params.city)
    if params.area:
        query.ilike("area", params.area)
    if params.search:
        query.search_any(SEARCH_COLUMNS, params.search)
    query.order_by(params.sort, ascending=params.order == "asc")
    return list_page(store, query, params)


@router.get("/{restaurant_id}", response_model=ItemResponse)
def get_restaurant(restaurant_id: UUID, store: DataStore = Depends(get_data_store)):
    return ItemResponse(item=require_row(store, TABLE, str(restaurant_id), "Restaurant"))


@router.post("", status_code=201)
def create_restaurant(
    payload: CreateRestaurantRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    """Admin-only. Creates the restaurant row; partner accounts are created separately."""
    access = guards.require_admin(ctx)
    try:
        restaurant = access.store.insert(TABLE, payload.model_dump())
    except UniqueViolation as exc:
        raise _slug_conflict(exc)
    logger.info("Restaurant %s created by %s", restaurant["id"], access.caller_id)
    return {"restaurant": restaurant}


@router.put("/{restaurant_id}", response_model=ItemResponse)
def update_restaurant(
    restaurant_id: UUID,
    payload: UpdateRestaurantRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    rid = str(restaurant_id)
    access = guards.require_owner_or_admin(ctx, TABLE, rid, "Restaurant")
    changes = payload.changes()
    if "owner_user_id" in changes and not guards.is_admin_role(access.role):
        raise HTTPException(status_code=403, detail="Only admins can change the owner")

    changes["updated_at"] = utcnow()
    try:
        rows = access.store.update(TABLE, changes, {"id": rid})
    except UniqueViolation as exc:
        raise _slug_conflict(exc)
    if not rows:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return ItemResponse(item=rows[0])


@router.delete("/{restaurant_id}", response_model=DeleteResponse)
def delete_restaurant(
    restaurant_id: UUID,
    params: Annotated[DeleteQuery, QueryParams()],
    ctx: RequestContext = Depends(get_request_context),
):
    rid = str(restaurant_id)
    access = guards.require_owner_or_admin(ctx, TABLE, rid, "Restaurant")
    return soft_or_hard_delete(access.store, TABLE, rid, "Restaurant", params.hard)
