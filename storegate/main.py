import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storegate import __version__
from storegate.api.errors import (
    error_code_for,
    public_detail_for,
    public_detail_for_status,
    resolve_error_code,
    status_for_error,
)
from storegate.api.routers.files import router as files_router
from storegate.common.config import Settings, get_settings
from storegate.common.logging import setup_logging
from storegate.infra.observability.metrics import metrics_response
from storegate.infra.observability.middleware import MetricsMiddleware
from storegate.infra.storage.client import StorageClient, StorageError
from storegate.services.base import MethodNotAllowedError, ServiceError

READ_ONLY_REJECTED_METHODS = ["PUT", "PATCH", "DELETE", "POST", "HEAD", "OPTIONS"]


def _describe_storage_target(settings: Settings) -> str:
    endpoint = settings.S3_ENDPOINT_URL or "aws"
    bucket = settings.S3_BUCKET or "<unset>"
    return f"endpoint={endpoint} bucket={bucket} region={settings.S3_REGION}"


def _problem_response(
    request: Request,
    *,
    status_code: int,
    title: str,
    detail,
    error_code: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        media_type="application/problem+json",
        headers=headers,
        content={
            "type": "about:blank",
            "title": title,
            "status": status_code,
            "detail": detail,
            "error_code": error_code,
            "instance": str(request.url),
            "request_id": request.headers.get("X-Request-Id"),
        },
    )


def _log_error(request: Request, status_code: int, detail, exc: BaseException) -> None:
    logger = logging.getLogger("http")
    logger.log(
        logging.WARNING if status_code < 500 else logging.ERROR,
        "http_error status=%s detail=%s method=%s path=%s request_id=%s error=%r",
        status_code,
        detail,
        request.method,
        request.url.path,
        request.headers.get("X-Request-Id"),
        exc,
        extra={
            "extra": {
                "status": status_code,
                "detail": detail,
                "method": request.method,
                "route": request.url.path,
                "request_id": request.headers.get("X-Request-Id"),
                "error": repr(exc),
            }
        },
    )


def _reject_method() -> None:
    raise MethodNotAllowedError("Method not allowed")


def create_app(
    settings: Settings | None = None,
    *,
    storage_client: StorageClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(
        title="storegate",
        version=__version__,
        description="HTTP gateway onto an S3-compatible bucket",
    )
    app.state.settings = settings
    app.state.storage_client = storage_client

    # Optional CORS
    if settings.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS or ["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["*"],
        )

    # Metrics
    if settings.ENABLE_METRICS:
        app.add_middleware(MetricsMiddleware)

    @app.on_event("startup")
    def on_startup() -> None:
        startup_logger = logging.getLogger("storegate.startup")
        startup_logger.info(
            "storegate starting [event=startup] (%s part_size_bytes=%s "
            "delete_mode=%s auth_configured=%s)",
            _describe_storage_target(settings),
            settings.STORAGE_PART_SIZE_BYTES,
            settings.STORAGE_DELETE_MODE,
            settings.auth_configured,
        )
        if not settings.auth_configured:
            startup_logger.warning(
                "neither AUTH_TOKEN nor AUTH_TOKEN_SECRET is set; every write and "
                "every private read will be refused [event=auth_unconfigured]"
            )

    @app.exception_handler(ServiceError)
    @app.exception_handler(StorageError)
    async def domain_exception_handler(request: Request, exc: Exception):
        status_code = status_for_error(exc)
        detail = public_detail_for(exc)
        _log_error(request, status_code, str(exc), exc)
        return _problem_response(
            request,
            status_code=status_code,
            title="HTTP Error",
            detail=detail,
            error_code=error_code_for(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        _log_error(request, exc.status_code, exc.detail, exc)
        return _problem_response(
            request,
            status_code=exc.status_code,
            title="HTTP Error",
            detail=public_detail_for_status(exc.status_code, exc.detail),
            error_code=resolve_error_code(exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return _problem_response(
            request,
            status_code=422,
            title="Validation Error",
            detail=jsonable_encoder(exc.errors()),
            error_code=resolve_error_code(422),
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    reserved_paths = ["/health"]
    if settings.ENABLE_METRICS:
        app.add_api_route(
            "/metrics", metrics_response, methods=["GET"], include_in_schema=False
        )
        reserved_paths.append("/metrics")

    # Reserved paths must not fall through to the file routes.
    for path in reserved_paths:
        app.add_api_route(
            path,
            _reject_method,
            methods=READ_ONLY_REJECTED_METHODS,
            include_in_schema=False,
        )

    app.include_router(files_router, tags=["files"])

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("storegate.main:app", host="0.0.0.0", port=8000)
