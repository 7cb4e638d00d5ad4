from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

# Route templates (e.g. /{filename}) keep label cardinality bounded.
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "route"],
)

UPLOADS = Counter(
    "storegate_uploads_total",
    "Multipart uploads by final outcome",
    ["outcome"],
)

UPLOAD_PARTS = Counter(
    "storegate_upload_parts_total",
    "Parts uploaded to object storage",
)

UPLOAD_BYTES = Counter(
    "storegate_upload_bytes_total",
    "Bytes uploaded to object storage",
)

UPLOAD_ABORTS = Counter(
    "storegate_upload_aborts_total",
    "Abort requests issued for failed uploads",
    ["result"],
)


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
