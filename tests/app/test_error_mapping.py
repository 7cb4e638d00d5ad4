from __future__ import annotations

import pytest

from storegate.api.errors import (
    error_code_for,
    public_detail_for,
    public_detail_for_status,
    resolve_error_code,
    status_for_error,
)
from storegate.infra.storage.client import ObjectNotFoundError, StorageError
from storegate.services import (
    AbortError,
    CompletionError,
    InitiationError,
    MethodNotAllowedError,
    NotFoundError,
    PartUploadError,
    StorageBackendNotConfiguredError,
    UnauthorizedError,
)


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (NotFoundError("x"), 404),
        (ObjectNotFoundError("x"), 404),
        (UnauthorizedError("x"), 401),
        (MethodNotAllowedError("x"), 405),
        (StorageBackendNotConfiguredError("x"), 503),
        (InitiationError("x", key="a"), 502),
        (PartUploadError("x", key="a", upload_id="u", part_number=1), 502),
        (CompletionError("x", key="a", upload_id="u"), 502),
        (AbortError("x", key="a", upload_id="u"), 502),
        (StorageError("x"), 502),
        (RuntimeError("x"), 500),
        (ValueError("x"), 500),
    ],
)
def test_status_for_error(exc, status):
    assert status_for_error(exc) == status


def test_error_codes():
    assert error_code_for(PartUploadError("x", key="a", upload_id="u", part_number=2)) == (
        "upload_part_failed"
    )
    assert error_code_for(InitiationError("x", key="a")) == "upload_initiation_failed"
    assert error_code_for(StorageBackendNotConfiguredError("x")) == "storage_not_configured"
    assert error_code_for(StorageError("x")) == "storage_error"
    assert error_code_for(ObjectNotFoundError("x")) == "not_found"
    assert error_code_for(NotFoundError("x")) == "not_found"
    assert error_code_for(KeyError("x")) == "internal_error"


def test_resolve_error_code():
    assert resolve_error_code(404) == "not_found"
    assert resolve_error_code(405) == "method_not_allowed"
    assert resolve_error_code(422) == "validation_error"
    assert resolve_error_code(418) == "unknown_error"


def test_public_detail_hides_key_for_not_found():
    assert public_detail_for(NotFoundError("Object not found: secret.txt")) == "Not found"
    assert public_detail_for(ObjectNotFoundError("Object not found: a")) == "Not found"


def test_public_detail_hides_backend_messages():
    backend_message = "Failed to delete object: AccessDenied on http://minio:9000/files"

    assert public_detail_for(StorageError(backend_message)) == "Storage backend error"
    assert public_detail_for(
        PartUploadError(backend_message, key="a", upload_id="u", part_number=1)
    ) == "Storage backend error"
    assert public_detail_for(StorageBackendNotConfiguredError("S3_BUCKET is required")) == (
        "Storage backend not configured"
    )
    assert public_detail_for(RuntimeError("boom")) == "Internal server error"


def test_public_detail_for_status():
    assert public_detail_for_status(405, "Method Not Allowed") == "Method not allowed"
    assert public_detail_for_status(404, "Not Found") == "Not found"
    assert public_detail_for_status(400, "Bad payload") == "Bad payload"
