import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from storegate.infra.observability.metrics import LATENCY, REQUESTS


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request metrics, propagates X-Request-Id and logs each request.

    Request and response bodies are never buffered: uploads and downloads are
    streamed end to end.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        client_ip = _client_ip(request)
        logger = logging.getLogger("http")

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = time.perf_counter() - start
            logger.exception(
                "request_error method=%s route=%s status=%s duration_ms=%.3f "
                "request_id=%s client_ip=%s user_agent=%s",
                request.method,
                request.url.path,
                500,
                round(elapsed * 1000, 3),
                request_id,
                client_ip or "-",
                request.headers.get("User-Agent") or "-",
                extra={
                    "extra": {
                        "method": request.method,
                        "route": request.url.path,
                        "status": 500,
                        "duration_ms": round(elapsed * 1000, 3),
                        "request_id": request_id,
                        "client_ip": client_ip,
                        "user_agent": request.headers.get("User-Agent"),
                        "exception": repr(exc),
                    }
                },
            )
            raise

        elapsed = time.perf_counter() - start
        status_code = response.status_code

        route_template = request.scope.get("route", None)
        if route_template and hasattr(route_template, "path"):
            route = route_template.path
        else:
            route = request.url.path

        REQUESTS.labels(request.method, route, str(status_code)).inc()
        LATENCY.labels(request.method, route).observe(elapsed)

        if "X-Request-Id" not in response.headers:
            response.headers["X-Request-Id"] = request_id

        level = logging.INFO
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING

        duration_ms = round(elapsed * 1000, 3)
        logger.log(
            level,
            "request method=%s route=%s status=%s duration_ms=%.3f "
            "request_id=%s client_ip=%s user_agent=%s",
            request.method,
            route,
            status_code,
            duration_ms,
            request_id,
            client_ip or "-",
            request.headers.get("User-Agent") or "-",
            extra={
                "extra": {
                    "method": request.method,
                    "route": route,
                    "status": status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                    "client_ip": client_ip,
                    "user_agent": request.headers.get("User-Agent"),
                    "content_length": request.headers.get("Content-Length"),
                }
            },
        )
        return response
