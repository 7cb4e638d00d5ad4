"""Storage client protocol and data types.

This module defines the abstract interface the gateway needs from an object
store: streamed multipart uploads, whole-object reads, in-place metadata
replacement, deletion and presigned URLs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Protocol, Sequence


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""


class ObjectNotFoundError(StorageError):
    """Raised when the requested object key does not exist."""


@dataclass(frozen=True, slots=True)
class CompletedPart:
    """Represents a completed part in a multipart upload."""

    part_number: int
    etag: str


@dataclass(frozen=True, slots=True)
class MultipartUpload:
    """Result of initiating a multipart upload."""

    upload_id: str
    bucket: str
    object_key: str


class ObjectBody(Protocol):
    """Readable object payload, e.g. botocore's ``StreamingBody``."""

    def iter_chunks(self, chunk_size: int = ...) -> Iterator[bytes]: ...

    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class StoredObject:
    """An object fetched from storage, with its body still unread."""

    body: ObjectBody
    size_bytes: int
    content_type: str | None
    last_modified: datetime | None
    etag: str | None
    metadata: dict[str, str] = field(default_factory=dict)


class StorageClient(Protocol):
    """Protocol defining the interface for object storage backends.

    Implementations must provide all methods defined here.
    Currently supports S3-compatible storage services.
    """

    def init_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartUpload:
        """Initialize a multipart upload session.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) in the bucket.
            content_type: MIME type of the object.
            metadata: Custom metadata to attach to the object.

        Returns:
            MultipartUpload containing the upload_id for subsequent operations.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def upload_part(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> CompletedPart:
        """Upload one part of a multipart upload.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) in the bucket.
            upload_id: Multipart upload ID from init_multipart_upload.
            part_number: Part number (1-based, max 10000).
            body: The part's bytes.

        Returns:
            CompletedPart carrying the ETag issued for the part.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def complete_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        parts: Sequence[CompletedPart],
    ) -> str | None:
        """Complete a multipart upload by combining all parts.

        An empty ``parts`` sequence completes a zero-byte object.

        Returns:
            The ETag of the resulting object, when the backend reports one.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def abort_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
    ) -> None:
        """Abort a multipart upload and clean up uploaded parts.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def get_object(self, *, bucket: str, object_key: str) -> StoredObject:
        """Fetch an object. The caller owns and must close ``body``.

        Raises:
            ObjectNotFoundError: If the key does not exist.
            StorageError: If the operation fails for any other reason.
        """
        ...

    def replace_object_metadata(
        self,
        *,
        bucket: str,
        object_key: str,
        metadata: dict[str, str],
    ) -> None:
        """Copy an object onto itself, replacing its whole metadata set.

        Raises:
            ObjectNotFoundError: If the key does not exist.
            StorageError: If the operation fails for any other reason.
        """
        ...

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def presign_delete(
        self,
        *,
        bucket: str,
        object_key: str,
        expires_in: int,
    ) -> str:
        """Generate a presigned URL for a DELETE request on an object.

        Raises:
            StorageError: If URL generation fails.
        """
        ...
