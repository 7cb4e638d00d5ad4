"""Custom metadata headers and content-type resolution."""

from __future__ import annotations

import mimetypes
from typing import Iterable, Mapping

METADATA_HEADER_PREFIX = "x-store-"
VISIBILITY_KEY = f"{METADATA_HEADER_PREFIX}visibility"
STORE_TYPE_KEY = f"{METADATA_HEADER_PREFIX}type"

PUBLIC_VISIBILITY = "public"
TEXT_STORE_TYPE = "text"

DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain;charset=utf-8"


def extract_custom_metadata(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Collect the ``x-store-*`` headers of a request.

    Only the name prefix is compared; values pass through untouched. Later
    duplicates win, matching how a header mapping would collapse them.
    """
    metadata: dict[str, str] = {}
    for name, value in headers:
        if name.startswith(METADATA_HEADER_PREFIX):
            metadata[name] = value
    return metadata


def guess_content_type(key: str) -> str | None:
    content_type, _ = mimetypes.guess_type(key, strict=False)
    return content_type


def resolve_content_type(key: str, declared: str | None = None) -> str:
    """Content type for a new object: declared header, extension, then fallback."""
    if declared and declared.strip():
        return declared.strip()
    return guess_content_type(key) or DEFAULT_CONTENT_TYPE


def resolve_read_content_type(
    key: str,
    stored: str | None,
    metadata: Mapping[str, str],
) -> str:
    """Content type served on read for a stored object."""
    if metadata.get(STORE_TYPE_KEY) == TEXT_STORE_TYPE:
        return TEXT_CONTENT_TYPE
    if stored and stored != DEFAULT_CONTENT_TYPE:
        return stored
    return guess_content_type(key) or DEFAULT_CONTENT_TYPE


def is_public(metadata: Mapping[str, str]) -> bool:
    return metadata.get(VISIBILITY_KEY) == PUBLIC_VISIBILITY
