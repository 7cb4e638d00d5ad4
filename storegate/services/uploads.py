"""Streaming multipart upload coordinator.

A PUT body of unknown length is cut into fixed-size parts as it arrives and
sent to object storage one part at a time. Every upload session ends in
exactly one of two ways: the completion call succeeds and the object becomes
durable, or the session is aborted and the triggering error is re-raised.

Session lifecycle::

    CREATED -> UPLOADING -> COMPLETED
       |           |
       +-----------+------> ABORTED

``COMPLETED`` and ``ABORTED`` are terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import AsyncIterable, Mapping

import anyio
from starlette.concurrency import run_in_threadpool

from storegate.common.config import DEFAULT_PART_SIZE_BYTES
from storegate.infra.observability.metrics import (
    UPLOAD_ABORTS,
    UPLOAD_BYTES,
    UPLOAD_PARTS,
    UPLOADS,
)
from storegate.infra.storage.client import CompletedPart, StorageClient
from storegate.services.base import ServiceError

logger = logging.getLogger("storegate.uploads")


class UploadError(ServiceError):
    """Base class for failures of a multipart upload.

    ``abort_error`` is set when the cleanup abort that followed this error
    failed as well.
    """

    def __init__(self, message: str, *, key: str, upload_id: str | None = None):
        super().__init__(message)
        self.key = key
        self.upload_id = upload_id
        self.abort_error: AbortError | None = None


class InitiationError(UploadError):
    """Raised when the backend refuses to start a multipart upload."""


class PartUploadError(UploadError):
    """Raised when uploading a single part fails."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        upload_id: str | None = None,
        part_number: int,
    ):
        super().__init__(message, key=key, upload_id=upload_id)
        self.part_number = part_number


class CompletionError(UploadError):
    """Raised when the complete-multipart call fails."""


class AbortError(UploadError):
    """Raised when the cleanup abort of a failed upload fails."""


class InvalidSessionStateError(RuntimeError):
    """Raised on an illegal upload session state transition."""


class SessionState(str, Enum):
    CREATED = "CREATED"
    UPLOADING = "UPLOADING"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ABORTED)


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.CREATED: frozenset({SessionState.UPLOADING, SessionState.ABORTED}),
    SessionState.UPLOADING: frozenset({SessionState.COMPLETED, SessionState.ABORTED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.ABORTED: frozenset(),
}


@dataclass
class UploadSession:
    """In-flight multipart upload owned by a single PUT request."""

    key: str
    upload_id: str
    state: SessionState = SessionState.CREATED
    parts: list[CompletedPart] = field(default_factory=list)
    size_bytes: int = 0

    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1

    def begin(self) -> None:
        self._transition(SessionState.UPLOADING)

    def record_part(self, etag: str, size_bytes: int) -> CompletedPart:
        """Record the ETag of the part numbered ``next_part_number``."""
        if self.state is not SessionState.UPLOADING:
            raise InvalidSessionStateError(
                f"Upload {self.upload_id} cannot record parts in state "
                f"{self.state.value}"
            )
        part = CompletedPart(part_number=self.next_part_number, etag=etag)
        self.parts.append(part)
        self.size_bytes += size_bytes
        return part

    def completed_parts(self) -> list[CompletedPart]:
        return sorted(self.parts, key=lambda part: part.part_number)

    def mark_completed(self) -> None:
        self._transition(SessionState.COMPLETED)

    def mark_aborted(self) -> None:
        self._transition(SessionState.ABORTED)

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidSessionStateError(
                f"Upload {self.upload_id} cannot move from {self.state.value} "
                f"to {target.value}"
            )
        self.state = target


@dataclass(frozen=True, slots=True)
class UploadResult:
    """A durable object produced by a completed upload."""

    key: str
    upload_id: str
    etag: str | None
    part_count: int
    size_bytes: int


class MultipartUploadCoordinator:
    """Drives one multipart upload from a streamed request body.

    Parts are uploaded strictly in order; part N+1 is not sent before the
    upload of part N has returned. Storage calls are blocking and run in the
    thread pool.
    """

    def __init__(
        self,
        storage: StorageClient,
        *,
        bucket: str,
        part_size_bytes: int = DEFAULT_PART_SIZE_BYTES,
    ) -> None:
        if part_size_bytes <= 0:
            raise ValueError("part_size_bytes must be positive")
        self._storage = storage
        self._bucket = bucket
        self._part_size = part_size_bytes

    async def upload(
        self,
        key: str,
        content_type: str,
        metadata: Mapping[str, str],
        body: AsyncIterable[bytes],
    ) -> UploadResult:
        """Stream ``body`` into a new object stored under ``key``.

        Args:
            key: Object key to create or overwrite.
            content_type: MIME type recorded on the object.
            metadata: Custom metadata attached to the object.
            body: Request body chunks in arrival order; consumed once.

        Returns:
            UploadResult describing the durable object.

        Raises:
            InitiationError: If the upload session could not be started.
            PartUploadError: If a part upload failed; the session is aborted.
            CompletionError: If completion failed; the session is aborted.
            Exception: Any error raised by ``body`` itself, after the abort.
        """
        try:
            upload = await run_in_threadpool(
                partial(
                    self._storage.init_multipart_upload,
                    bucket=self._bucket,
                    object_key=key,
                    content_type=content_type,
                    metadata=dict(metadata),
                )
            )
        except Exception as exc:
            UPLOADS.labels("initiation_failed").inc()
            raise InitiationError(
                f"Failed to initiate upload for {key}: {exc}", key=key
            ) from exc

        session = UploadSession(key=key, upload_id=upload.upload_id)
        session.begin()
        logger.info(
            "upload_initiated key=%s upload_id=%s content_type=%s",
            key,
            session.upload_id,
            content_type,
            extra={
                "extra": {
                    "key": key,
                    "upload_id": session.upload_id,
                    "content_type": content_type,
                }
            },
        )

        try:
            etag = await self._transfer(session, body)
        # Includes cancellation on client disconnect.
        except BaseException as exc:
            await self._abort(session, exc)
            raise

        UPLOADS.labels("completed").inc()
        logger.info(
            "upload_completed key=%s upload_id=%s parts=%s size_bytes=%s",
            key,
            session.upload_id,
            len(session.parts),
            session.size_bytes,
            extra={
                "extra": {
                    "key": key,
                    "upload_id": session.upload_id,
                    "parts": len(session.parts),
                    "size_bytes": session.size_bytes,
                }
            },
        )
        return UploadResult(
            key=key,
            upload_id=session.upload_id,
            etag=etag,
            part_count=len(session.parts),
            size_bytes=session.size_bytes,
        )

    async def _transfer(
        self, session: UploadSession, body: AsyncIterable[bytes]
    ) -> str | None:
        buffer = bytearray()
        async for chunk in body:
            if not chunk:
                continue
            buffer += chunk
            while len(buffer) >= self._part_size:
                await self._upload_part(session, bytes(buffer[: self._part_size]))
                del buffer[: self._part_size]
        if buffer:
            await self._upload_part(session, bytes(buffer))

        try:
            etag = await run_in_threadpool(
                partial(
                    self._storage.complete_multipart_upload,
                    bucket=self._bucket,
                    object_key=session.key,
                    upload_id=session.upload_id,
                    parts=session.completed_parts(),
                )
            )
        except Exception as exc:
            raise CompletionError(
                f"Failed to complete upload for {session.key}: {exc}",
                key=session.key,
                upload_id=session.upload_id,
            ) from exc

        session.mark_completed()
        return etag

    async def _upload_part(self, session: UploadSession, data: bytes) -> None:
        part_number = session.next_part_number
        try:
            uploaded = await run_in_threadpool(
                partial(
                    self._storage.upload_part,
                    bucket=self._bucket,
                    object_key=session.key,
                    upload_id=session.upload_id,
                    part_number=part_number,
                    body=data,
                )
            )
        except Exception as exc:
            raise PartUploadError(
                f"Failed to upload part {part_number} of {session.key}: {exc}",
                key=session.key,
                upload_id=session.upload_id,
                part_number=part_number,
            ) from exc

        session.record_part(uploaded.etag, len(data))
        UPLOAD_PARTS.inc()
        UPLOAD_BYTES.inc(len(data))

    async def _abort(self, session: UploadSession, error: BaseException) -> None:
        if session.state.is_terminal:
            return
        session.mark_aborted()
        UPLOADS.labels("aborted").inc()

        try:
            with anyio.CancelScope(shield=True):
                await run_in_threadpool(
                    partial(
                        self._storage.abort_multipart_upload,
                        bucket=self._bucket,
                        object_key=session.key,
                        upload_id=session.upload_id,
                    )
                )
        except Exception as exc:
            abort_error = AbortError(
                f"Failed to abort upload {session.upload_id}: {exc}",
                key=session.key,
                upload_id=session.upload_id,
            )
            abort_error.__cause__ = exc
            if isinstance(error, UploadError):
                error.abort_error = abort_error
            UPLOAD_ABORTS.labels("failed").inc()
            logger.error(
                "upload_abort_failed key=%s upload_id=%s error=%s",
                session.key,
                session.upload_id,
                exc,
                exc_info=exc,
                extra={
                    "extra": {
                        "key": session.key,
                        "upload_id": session.upload_id,
                        "trigger": repr(error),
                    }
                },
            )
            return

        UPLOAD_ABORTS.labels("succeeded").inc()
        logger.warning(
            "upload_aborted key=%s upload_id=%s parts=%s error=%r",
            session.key,
            session.upload_id,
            len(session.parts),
            error,
            extra={
                "extra": {
                    "key": session.key,
                    "upload_id": session.upload_id,
                    "parts": len(session.parts),
                    "trigger": repr(error),
                }
            },
        )
