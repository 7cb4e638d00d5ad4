from __future__ import annotations

from fastapi import Depends, Header, Request

from storegate.common.auth import Authorizer
from storegate.common.config import Settings
from storegate.infra.storage.client import StorageClient
from storegate.services.base import UnauthorizedError, build_storage_client
from storegate.services.objects import ObjectService
from storegate.services.uploads import MultipartUploadCoordinator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_client(request: Request) -> StorageClient:
    """Storage client for this app, built from its settings on first use."""
    state = request.app.state
    storage = getattr(state, "storage_client", None)
    if storage is None:
        storage = build_storage_client(state.settings)
        state.storage_client = storage
    return storage


def get_authorizer(settings: Settings = Depends(get_app_settings)) -> Authorizer:
    return Authorizer(settings)


def require_authorization(
    authorization: str | None = Header(default=None),
    authorizer: Authorizer = Depends(get_authorizer),
) -> None:
    if not authorizer.is_authorized(authorization):
        raise UnauthorizedError("Unauthorized")


def get_object_service(
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
) -> ObjectService:
    return ObjectService(storage, settings=settings)


def get_upload_coordinator(
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
) -> MultipartUploadCoordinator:
    return MultipartUploadCoordinator(
        storage,
        bucket=settings.S3_BUCKET or "",
        part_size_bytes=settings.STORAGE_PART_SIZE_BYTES,
    )
