"""S3-compatible storage client implementation.

This module provides an S3-compatible storage client that works with
AWS S3, MinIO, Cloudflare R2 and other S3-compatible object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from storegate.infra.storage.client import (
    CompletedPart,
    MultipartUpload,
    ObjectNotFoundError,
    StorageError,
    StoredObject,
)

if TYPE_CHECKING:
    from storegate.common.config import Settings

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def _error_code(exc: Exception) -> str | None:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    code = response.get("Error", {}).get("Code")
    return str(code) if code is not None else None


def _is_not_found(exc: Exception) -> bool:
    return _error_code(exc) in NOT_FOUND_CODES


class S3StorageClient:
    """S3-compatible object storage client.

    Supports AWS S3, MinIO, and other S3-compatible services.
    Uses boto3 for all storage operations.
    """

    def __init__(self, *, settings: "Settings") -> None:
        """Initialize the S3 client with configuration from settings.

        Args:
            settings: Application settings containing S3 configuration.

        Raises:
            StorageError: If boto3 is not installed.
        """
        self._settings = settings
        self._client = self._build_client(settings)

    @staticmethod
    def _build_client(settings: "Settings") -> Any:
        """Create a boto3 S3 client from settings."""
        try:
            import boto3
            from botocore.config import Config
        except ImportError as exc:
            raise StorageError(
                "boto3 and botocore are required for S3 storage backend. "
                "Install with: pip install boto3"
            ) from exc

        config = Config(s3={"addressing_style": settings.S3_ADDRESSING_STYLE})

        return boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            region_name=settings.S3_REGION,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            use_ssl=bool(settings.S3_USE_SSL),
            config=config,
        )

    def init_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartUpload:
        """Initialize a multipart upload session."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_key}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata

        try:
            response = self._client.create_multipart_upload(**params)
        except Exception as exc:
            raise StorageError(f"Failed to create multipart upload: {exc}") from exc

        upload_id = response.get("UploadId")
        if not upload_id:
            raise StorageError("S3 response missing UploadId")

        return MultipartUpload(
            upload_id=str(upload_id),
            bucket=bucket,
            object_key=object_key,
        )

    def upload_part(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> CompletedPart:
        """Upload one part and return its ETag."""
        try:
            response = self._client.upload_part(
                Bucket=bucket,
                Key=object_key,
                UploadId=upload_id,
                PartNumber=int(part_number),
                Body=body,
            )
        except Exception as exc:
            raise StorageError(
                f"Failed to upload part {part_number}: {exc}"
            ) from exc

        etag = response.get("ETag")
        if not etag:
            raise StorageError(f"S3 response missing ETag for part {part_number}")

        return CompletedPart(part_number=int(part_number), etag=str(etag))

    def complete_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        parts: Sequence[CompletedPart],
    ) -> str | None:
        """Complete a multipart upload by combining all parts."""
        if not parts:
            # S3 rejects an empty part list; a single empty part yields a 0-byte object.
            parts = [
                self.upload_part(
                    bucket=bucket,
                    object_key=object_key,
                    upload_id=upload_id,
                    part_number=1,
                    body=b"",
                )
            ]

        multipart_payload = {
            "Parts": [
                {"ETag": part.etag, "PartNumber": int(part.part_number)}
                for part in sorted(parts, key=lambda p: p.part_number)
            ]
        }

        try:
            response = self._client.complete_multipart_upload(
                Bucket=bucket,
                Key=object_key,
                UploadId=upload_id,
                MultipartUpload=multipart_payload,
            )
        except Exception as exc:
            raise StorageError(f"Failed to complete multipart upload: {exc}") from exc

        etag = (response or {}).get("ETag")
        return str(etag) if etag else None

    def abort_multipart_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
    ) -> None:
        """Abort a multipart upload and clean up uploaded parts."""
        try:
            self._client.abort_multipart_upload(
                Bucket=bucket,
                Key=object_key,
                UploadId=upload_id,
            )
        except Exception as exc:
            raise StorageError(f"Failed to abort multipart upload: {exc}") from exc

    def get_object(self, *, bucket: str, object_key: str) -> StoredObject:
        """Fetch an object with its metadata; the body is left unread."""
        try:
            response = self._client.get_object(Bucket=bucket, Key=object_key)
        except Exception as exc:
            if _is_not_found(exc):
                raise ObjectNotFoundError(f"Object not found: {object_key}") from exc
            raise StorageError(f"Failed to get object: {exc}") from exc

        size = response.get("ContentLength")
        return StoredObject(
            body=response["Body"],
            size_bytes=int(size) if size is not None else 0,
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
            metadata=dict(response.get("Metadata") or {}),
        )

    def replace_object_metadata(
        self,
        *,
        bucket: str,
        object_key: str,
        metadata: dict[str, str],
    ) -> None:
        """Copy the object onto itself with ``MetadataDirective=REPLACE``."""
        try:
            self._client.copy_object(
                Bucket=bucket,
                Key=object_key,
                CopySource={"Bucket": bucket, "Key": object_key},
                MetadataDirective="REPLACE",
                Metadata=metadata,
            )
        except Exception as exc:
            if _is_not_found(exc):
                raise ObjectNotFoundError(f"Object not found: {object_key}") from exc
            raise StorageError(f"Failed to replace object metadata: {exc}") from exc

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage."""
        try:
            self._client.delete_object(Bucket=bucket, Key=object_key)
        except Exception as exc:
            raise StorageError(f"Failed to delete object: {exc}") from exc

    def presign_delete(
        self,
        *,
        bucket: str,
        object_key: str,
        expires_in: int,
    ) -> str:
        """Generate a presigned URL for deleting an object."""
        try:
            url = self._client.generate_presigned_url(
                "delete_object",
                Params={"Bucket": bucket, "Key": object_key},
                ExpiresIn=int(expires_in),
                HttpMethod="DELETE",
            )
        except Exception as exc:
            raise StorageError(f"Failed to generate presigned URL: {exc}") from exc

        if not url:
            raise StorageError("Generated presigned URL is empty")

        return str(url)
