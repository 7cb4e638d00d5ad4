"""Read, metadata replacement and deletion of stored objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Iterator, Mapping

import requests

from storegate.common.config import Settings
from storegate.common.metadata import is_public, resolve_read_content_type
from storegate.infra.storage.client import (
    ObjectBody,
    ObjectNotFoundError,
    StorageClient,
    StorageError,
)
from storegate.services.base import NotFoundError

logger = logging.getLogger("storegate.objects")

READ_CHUNK_SIZE = 64 * 1024
PRESIGNED_REQUEST_TIMEOUT_SECONDS = 30


@dataclass(frozen=True, slots=True)
class ObjectView:
    """What a GET returns: derived headers plus the unread body."""

    key: str
    headers: dict[str, str]
    body: ObjectBody

    def iter_body(self, chunk_size: int = READ_CHUNK_SIZE) -> Iterator[bytes]:
        try:
            yield from self.body.iter_chunks(chunk_size)
        finally:
            self.body.close()


class ObjectService:
    """Thin layer over the storage client for the non-upload verbs."""

    def __init__(self, storage: StorageClient, *, settings: Settings) -> None:
        self._storage = storage
        self._settings = settings

    @property
    def bucket(self) -> str:
        return self._settings.S3_BUCKET or ""

    def fetch(self, key: str, is_authorized: Callable[[], bool]) -> ObjectView:
        """Look up an object and derive its response headers.

        ``is_authorized`` is only consulted for objects that are not public.
        A denied read raises the same NotFoundError as a missing key.
        """
        try:
            stored = self._storage.get_object(bucket=self.bucket, object_key=key)
        except ObjectNotFoundError as exc:
            raise NotFoundError("Not found") from exc

        if not is_public(stored.metadata) and not is_authorized():
            stored.body.close()
            logger.info("read_denied key=%s", key, extra={"extra": {"key": key}})
            raise NotFoundError("Not found")

        headers = build_object_headers(
            key,
            metadata=stored.metadata,
            content_type=stored.content_type,
            size_bytes=stored.size_bytes,
            last_modified=stored.last_modified,
            etag=stored.etag,
        )
        return ObjectView(key=key, headers=headers, body=stored.body)

    def replace_metadata(self, key: str, metadata: Mapping[str, str]) -> None:
        """Overwrite the object's whole custom metadata set."""
        try:
            self._storage.replace_object_metadata(
                bucket=self.bucket, object_key=key, metadata=dict(metadata)
            )
        except ObjectNotFoundError as exc:
            raise NotFoundError("Not found") from exc
        logger.info(
            "metadata_replaced key=%s keys=%s",
            key,
            sorted(metadata),
            extra={"extra": {"key": key, "metadata_keys": sorted(metadata)}},
        )

    def delete(self, key: str) -> None:
        if self._settings.STORAGE_DELETE_MODE == "presigned":
            self._delete_via_presigned_url(key)
        else:
            self._storage.delete_object(bucket=self.bucket, object_key=key)
        logger.info(
            "object_deleted key=%s mode=%s",
            key,
            self._settings.STORAGE_DELETE_MODE,
            extra={
                "extra": {"key": key, "mode": self._settings.STORAGE_DELETE_MODE}
            },
        )

    def _delete_via_presigned_url(self, key: str) -> None:
        url = self._storage.presign_delete(
            bucket=self.bucket,
            object_key=key,
            expires_in=self._settings.STORAGE_PRESIGN_EXPIRES_SECONDS,
        )
        try:
            response = requests.delete(url, timeout=PRESIGNED_REQUEST_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StorageError(f"Failed to delete object via presigned URL: {exc}") from exc


def build_object_headers(
    key: str,
    *,
    metadata: Mapping[str, str],
    content_type: str | None,
    size_bytes: int,
    last_modified: datetime | None,
    etag: str | None,
) -> dict[str, str]:
    headers: dict[str, str] = dict(metadata)
    headers["content-type"] = resolve_read_content_type(key, content_type, metadata)
    headers["content-length"] = str(size_bytes)
    if last_modified is not None:
        headers["last-modified"] = format_http_date(last_modified)
    if etag:
        headers["etag"] = etag
    return headers


def format_http_date(value: datetime) -> str:
    """RFC 7231 date, e.g. ``Wed, 21 Oct 2015 07:28:00 GMT``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
