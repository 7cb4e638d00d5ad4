from .base import (
    MethodNotAllowedError,
    NotFoundError,
    ServiceError,
    StorageBackendNotConfiguredError,
    UnauthorizedError,
    build_storage_client,
)
from .objects import ObjectService, ObjectView
from .uploads import (
    AbortError,
    CompletionError,
    InitiationError,
    InvalidSessionStateError,
    MultipartUploadCoordinator,
    PartUploadError,
    SessionState,
    UploadError,
    UploadResult,
    UploadSession,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "UnauthorizedError",
    "MethodNotAllowedError",
    "StorageBackendNotConfiguredError",
    "build_storage_client",
    "ObjectService",
    "ObjectView",
    "MultipartUploadCoordinator",
    "UploadSession",
    "UploadResult",
    "SessionState",
    "UploadError",
    "InitiationError",
    "PartUploadError",
    "CompletionError",
    "AbortError",
    "InvalidSessionStateError",
]
