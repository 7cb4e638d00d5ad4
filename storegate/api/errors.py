"""Mapping of domain errors onto HTTP statuses and problem+json codes."""

from __future__ import annotations

from storegate.infra.storage.client import ObjectNotFoundError, StorageError
from storegate.services.base import (
    MethodNotAllowedError,
    NotFoundError,
    StorageBackendNotConfiguredError,
    UnauthorizedError,
)
from storegate.services.uploads import (
    CompletionError,
    InitiationError,
    PartUploadError,
    UploadError,
)

ERROR_CODE_BY_STATUS = {
    400: "bad_request",
    401: "unauthorized",
    404: "not_found",
    405: "method_not_allowed",
    500: "internal_error",
    502: "bad_gateway",
    503: "service_unavailable",
}

# Checked in order; subclasses must precede their bases.
STATUS_BY_ERROR: tuple[tuple[type[BaseException], int], ...] = (
    (NotFoundError, 404),
    (ObjectNotFoundError, 404),
    (UnauthorizedError, 401),
    (MethodNotAllowedError, 405),
    (StorageBackendNotConfiguredError, 503),
    (UploadError, 502),
    (StorageError, 502),
)

ERROR_CODE_BY_ERROR: tuple[tuple[type[BaseException], str], ...] = (
    (NotFoundError, "not_found"),
    (ObjectNotFoundError, "not_found"),
    (InitiationError, "upload_initiation_failed"),
    (PartUploadError, "upload_part_failed"),
    (CompletionError, "upload_completion_failed"),
    (StorageBackendNotConfiguredError, "storage_not_configured"),
    (StorageError, "storage_error"),
)

PUBLIC_DETAIL_BY_STATUS = {
    401: "Unauthorized",
    404: "Not found",
    405: "Method not allowed",
    500: "Internal server error",
    502: "Storage backend error",
    503: "Storage backend not configured",
}


def status_for_error(exc: BaseException) -> int:
    """HTTP status for a domain error.

    Missing objects and objects the caller may not read both map to 404, so
    a response never reveals whether a private key exists.
    """
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def resolve_error_code(status_code: int) -> str:
    if status_code == 422:
        return "validation_error"
    return ERROR_CODE_BY_STATUS.get(status_code, "unknown_error")


def error_code_for(exc: BaseException) -> str:
    for error_type, code in ERROR_CODE_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return resolve_error_code(status_for_error(exc))


def public_detail_for(exc: BaseException) -> str:
    """Client-facing detail; the full error text only goes to the log."""
    return public_detail_for_status(status_for_error(exc), "Internal server error")


def public_detail_for_status(status_code: int, detail):
    return PUBLIC_DETAIL_BY_STATUS.get(status_code, detail)
