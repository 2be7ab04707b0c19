"""
Dependency wiring for the FastAPI app.

Clients are built once per application in ``create_app`` and kept on
``app.state``; route functions receive them through these dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from cityhub.auth_client import AuthClient, GoTrueAuthClient, InMemoryAuthClient
from cityhub.config import Settings
from cityhub.db import DataStore, InMemoryDataStore, SqlDataStore
from cityhub.storage import InMemoryStorageClient, S3StorageClient, StorageClient


def build_data_store(settings: Settings) -> DataStore:
    if settings.use_in_memory_backends:
        return InMemoryDataStore()
    return SqlDataStore(settings.database_url, role=settings.db_public_role)


def build_auth_client(settings: Settings) -> AuthClient:
    if settings.use_in_memory_backends:
        return InMemoryAuthClient()
    return GoTrueAuthClient(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_key=settings.supabase_service_key,
        timeout=settings.auth_timeout_seconds,
    )


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.use_in_memory_backends or not settings.storage_access_key_id:
        return InMemoryStorageClient(
            base_url=settings.public_object_url("", "").rstrip("/")
        )
    return S3StorageClient(
        endpoint=settings.s3_endpoint,
        region=settings.storage_s3_region,
        access_key_id=settings.storage_access_key_id,
        secret_access_key=settings.storage_secret_access_key or "",
        public_url_for=settings.public_object_url,
    )


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_data_store(request: Request) -> DataStore:
    return request.app.state.data_store


def get_auth_client(request: Request) -> AuthClient:
    return request.app.state.auth_client


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client


@dataclass
class RequestContext:
    """Everything a guard needs, gathered without deciding anything."""

    store: DataStore
    auth: AuthClient
    authorization: Optional[str]


def get_request_context(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> RequestContext:
    return RequestContext(
        store=request.app.state.data_store,
        auth=request.app.state.auth_client,
        authorization=authorization,
    )
