from __future__ import annotations

from storegate.common.config import Settings
from storegate.infra.storage.client import StorageClient
from storegate.infra.storage.s3_client import S3StorageClient


class ServiceError(Exception):
    """Base class for application service level exceptions."""


class NotFoundError(ServiceError):
    """Raised when an object is absent or may not be revealed to the caller."""


class UnauthorizedError(ServiceError):
    """Raised when a mutating request lacks valid credentials."""


class MethodNotAllowedError(ServiceError):
    """Raised for HTTP methods the file resource does not serve."""


class StorageBackendNotConfiguredError(ServiceError):
    """Raised when the storage backend is not properly configured."""


def build_storage_client(settings: Settings) -> StorageClient:
    """Build the S3 storage client described by ``settings``."""
    if not settings.S3_BUCKET:
        raise StorageBackendNotConfiguredError("S3_BUCKET is required")
    if not settings.S3_ACCESS_KEY_ID or not settings.S3_SECRET_ACCESS_KEY:
        raise StorageBackendNotConfiguredError(
            "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY are required"
        )
    return S3StorageClient(settings=settings)
