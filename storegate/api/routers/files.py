"""File resource router.

GET, PUT, PATCH and DELETE on ``/{filename}`` map onto object storage
operations. Any other method is rejected with 405.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from storegate.api.deps import (
    get_authorizer,
    get_object_service,
    get_upload_coordinator,
    require_authorization,
)
from storegate.common.auth import Authorizer
from storegate.common.metadata import extract_custom_metadata, resolve_content_type
from storegate.services.base import MethodNotAllowedError
from storegate.services.objects import ObjectService
from storegate.services.uploads import MultipartUploadCoordinator

FILE_PATH = "/{filename}"
REJECTED_METHODS = ["POST", "HEAD", "OPTIONS"]

router = APIRouter()


@router.get(
    FILE_PATH,
    response_class=StreamingResponse,
    summary="Download file",
    description=(
        "Stream an object with its x-store-* metadata as headers. Objects not "
        "marked public require authorization; denied reads answer 404."
    ),
)
def get_file(
    filename: str,
    authorization: str | None = Header(default=None),
    service: ObjectService = Depends(get_object_service),
    authorizer: Authorizer = Depends(get_authorizer),
) -> StreamingResponse:
    view = service.fetch(filename, lambda: authorizer.is_authorized(authorization))
    return StreamingResponse(view.iter_body(), headers=view.headers)


@router.put(
    FILE_PATH,
    response_class=PlainTextResponse,
    dependencies=[Depends(require_authorization)],
    summary="Upload file",
    description=(
        "Stream the request body into the object via a multipart upload. "
        "x-store-* headers are stored as object metadata."
    ),
)
async def put_file(
    filename: str,
    request: Request,
    coordinator: MultipartUploadCoordinator = Depends(get_upload_coordinator),
) -> PlainTextResponse:
    metadata = extract_custom_metadata(request.headers.items())
    content_type = resolve_content_type(filename, request.headers.get("content-type"))
    await coordinator.upload(filename, content_type, metadata, request.stream())
    return PlainTextResponse("OK")


@router.patch(
    FILE_PATH,
    response_class=PlainTextResponse,
    dependencies=[Depends(require_authorization)],
    summary="Replace file metadata",
    description="Replace the object's whole x-store-* metadata set.",
)
def patch_file(
    filename: str,
    request: Request,
    service: ObjectService = Depends(get_object_service),
) -> PlainTextResponse:
    service.replace_metadata(filename, extract_custom_metadata(request.headers.items()))
    return PlainTextResponse("OK")


@router.delete(
    FILE_PATH,
    response_class=PlainTextResponse,
    dependencies=[Depends(require_authorization)],
    summary="Delete file",
)
def delete_file(
    filename: str,
    service: ObjectService = Depends(get_object_service),
) -> PlainTextResponse:
    service.delete(filename)
    return PlainTextResponse("OK")


@router.api_route(FILE_PATH, methods=REJECTED_METHODS, include_in_schema=False)
def reject_method(filename: str) -> None:
    raise MethodNotAllowedError("Method not allowed")
