"""Tests for S3 storage client."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from storegate.infra.storage.client import (
    CompletedPart,
    MultipartUpload,
    ObjectNotFoundError,
    StorageError,
)
from storegate.infra.storage.s3_client import S3StorageClient


class FakeClientError(Exception):
    """Mimics botocore's ClientError, which carries the parsed response."""

    def __init__(self, code: str):
        super().__init__(f"An error occurred ({code})")
        self.response = {"Error": {"Code": code}}


class TestS3StorageClient:
    """Test S3StorageClient implementation."""

    @pytest.fixture
    def mock_s3(self):
        """Mock boto3 S3 client."""
        mock_client = MagicMock()
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            yield mock_client

    @pytest.fixture
    def mock_settings(self):
        settings = MagicMock()
        settings.S3_ENDPOINT_URL = "http://localhost:9000"
        settings.S3_REGION = "us-east-1"
        settings.S3_ACCESS_KEY_ID = "test-key"
        settings.S3_SECRET_ACCESS_KEY = "test-secret"
        settings.S3_USE_SSL = False
        settings.S3_ADDRESSING_STYLE = "path"
        return settings

    @pytest.fixture
    def client(self, mock_s3, mock_settings):
        """Create S3StorageClient with mocked boto3."""
        return S3StorageClient(settings=mock_settings)

    def test_init_multipart_upload(self, client, mock_s3):
        mock_s3.create_multipart_upload.return_value = {"UploadId": "test-upload-id"}

        result = client.init_multipart_upload(
            bucket="test-bucket",
            object_key="a.txt",
            content_type="text/plain",
            metadata={"x-store-visibility": "public"},
        )

        assert result == MultipartUpload(
            upload_id="test-upload-id", bucket="test-bucket", object_key="a.txt"
        )
        mock_s3.create_multipart_upload.assert_called_once_with(
            Bucket="test-bucket",
            Key="a.txt",
            ContentType="text/plain",
            Metadata={"x-store-visibility": "public"},
        )

    def test_init_multipart_upload_missing_upload_id(self, client, mock_s3):
        mock_s3.create_multipart_upload.return_value = {}

        with pytest.raises(StorageError, match="missing UploadId"):
            client.init_multipart_upload(bucket="test-bucket", object_key="a.txt")

    def test_upload_part(self, client, mock_s3):
        mock_s3.upload_part.return_value = {"ETag": '"etag1"'}

        part = client.upload_part(
            bucket="test-bucket",
            object_key="a.txt",
            upload_id="test-upload-id",
            part_number=3,
            body=b"data",
        )

        assert part == CompletedPart(part_number=3, etag='"etag1"')
        mock_s3.upload_part.assert_called_once_with(
            Bucket="test-bucket",
            Key="a.txt",
            UploadId="test-upload-id",
            PartNumber=3,
            Body=b"data",
        )

    def test_upload_part_missing_etag(self, client, mock_s3):
        mock_s3.upload_part.return_value = {}

        with pytest.raises(StorageError, match="missing ETag for part 2"):
            client.upload_part(
                bucket="test-bucket",
                object_key="a.txt",
                upload_id="u",
                part_number=2,
                body=b"x",
            )

    def test_upload_part_error(self, client, mock_s3):
        mock_s3.upload_part.side_effect = Exception("Connection reset")

        with pytest.raises(StorageError, match="Failed to upload part 1"):
            client.upload_part(
                bucket="test-bucket",
                object_key="a.txt",
                upload_id="u",
                part_number=1,
                body=b"x",
            )

    def test_complete_multipart_upload_sorts_parts(self, client, mock_s3):
        mock_s3.complete_multipart_upload.return_value = {"ETag": '"final"'}

        etag = client.complete_multipart_upload(
            bucket="test-bucket",
            object_key="a.txt",
            upload_id="test-upload-id",
            parts=[
                CompletedPart(part_number=2, etag='"etag2"'),
                CompletedPart(part_number=1, etag='"etag1"'),
            ],
        )

        assert etag == '"final"'
        mock_s3.complete_multipart_upload.assert_called_once_with(
            Bucket="test-bucket",
            Key="a.txt",
            UploadId="test-upload-id",
            MultipartUpload={
                "Parts": [
                    {"ETag": '"etag1"', "PartNumber": 1},
                    {"ETag": '"etag2"', "PartNumber": 2},
                ]
            },
        )

    def test_complete_without_parts_uploads_one_empty_part(self, client, mock_s3):
        mock_s3.upload_part.return_value = {"ETag": '"empty"'}
        mock_s3.complete_multipart_upload.return_value = {"ETag": '"final"'}

        client.complete_multipart_upload(
            bucket="test-bucket", object_key="a.txt", upload_id="u", parts=[]
        )

        mock_s3.upload_part.assert_called_once_with(
            Bucket="test-bucket", Key="a.txt", UploadId="u", PartNumber=1, Body=b""
        )
        kwargs = mock_s3.complete_multipart_upload.call_args.kwargs
        assert kwargs["MultipartUpload"] == {
            "Parts": [{"ETag": '"empty"', "PartNumber": 1}]
        }

    def test_complete_multipart_upload_error(self, client, mock_s3):
        mock_s3.complete_multipart_upload.side_effect = Exception("S3 error")

        with pytest.raises(StorageError, match="Failed to complete multipart upload"):
            client.complete_multipart_upload(
                bucket="test-bucket",
                object_key="a.txt",
                upload_id="u",
                parts=[CompletedPart(part_number=1, etag='"e"')],
            )

    def test_abort_multipart_upload(self, client, mock_s3):
        client.abort_multipart_upload(
            bucket="test-bucket", object_key="a.txt", upload_id="test-upload-id"
        )

        mock_s3.abort_multipart_upload.assert_called_once_with(
            Bucket="test-bucket", Key="a.txt", UploadId="test-upload-id"
        )

    def test_abort_multipart_upload_error(self, client, mock_s3):
        mock_s3.abort_multipart_upload.side_effect = Exception("gone")

        with pytest.raises(StorageError, match="Failed to abort multipart upload"):
            client.abort_multipart_upload(
                bucket="test-bucket", object_key="a.txt", upload_id="u"
            )

    def test_get_object(self, client, mock_s3):
        body = MagicMock()
        modified = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        mock_s3.get_object.return_value = {
            "Body": body,
            "ContentLength": 11,
            "ContentType": "text/plain",
            "LastModified": modified,
            "ETag": '"abc"',
            "Metadata": {"x-store-visibility": "public"},
        }

        stored = client.get_object(bucket="test-bucket", object_key="a.txt")

        assert stored.body is body
        assert stored.size_bytes == 11
        assert stored.content_type == "text/plain"
        assert stored.last_modified == modified
        assert stored.etag == '"abc"'
        assert stored.metadata == {"x-store-visibility": "public"}
        mock_s3.get_object.assert_called_once_with(Bucket="test-bucket", Key="a.txt")

    def test_get_object_not_found(self, client, mock_s3):
        mock_s3.get_object.side_effect = FakeClientError("NoSuchKey")

        with pytest.raises(ObjectNotFoundError):
            client.get_object(bucket="test-bucket", object_key="missing.txt")

    def test_get_object_other_error(self, client, mock_s3):
        mock_s3.get_object.side_effect = FakeClientError("AccessDenied")

        with pytest.raises(StorageError, match="Failed to get object") as excinfo:
            client.get_object(bucket="test-bucket", object_key="a.txt")

        assert not isinstance(excinfo.value, ObjectNotFoundError)

    def test_replace_object_metadata(self, client, mock_s3):
        client.replace_object_metadata(
            bucket="test-bucket",
            object_key="a.txt",
            metadata={"x-store-owner": "bob"},
        )

        mock_s3.copy_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="a.txt",
            CopySource={"Bucket": "test-bucket", "Key": "a.txt"},
            MetadataDirective="REPLACE",
            Metadata={"x-store-owner": "bob"},
        )

    def test_replace_object_metadata_not_found(self, client, mock_s3):
        mock_s3.copy_object.side_effect = FakeClientError("NoSuchKey")

        with pytest.raises(ObjectNotFoundError):
            client.replace_object_metadata(
                bucket="test-bucket", object_key="missing.txt", metadata={}
            )

    def test_delete_object(self, client, mock_s3):
        client.delete_object(bucket="test-bucket", object_key="a.txt")

        mock_s3.delete_object.assert_called_once_with(Bucket="test-bucket", Key="a.txt")

    def test_delete_object_error(self, client, mock_s3):
        mock_s3.delete_object.side_effect = Exception("Delete failed")

        with pytest.raises(StorageError, match="Failed to delete object"):
            client.delete_object(bucket="test-bucket", object_key="a.txt")

    def test_presign_delete(self, client, mock_s3):
        mock_s3.generate_presigned_url.return_value = "https://presigned-delete"

        url = client.presign_delete(
            bucket="test-bucket", object_key="a.txt", expires_in=3600
        )

        assert url == "https://presigned-delete"
        mock_s3.generate_presigned_url.assert_called_once_with(
            "delete_object",
            Params={"Bucket": "test-bucket", "Key": "a.txt"},
            ExpiresIn=3600,
            HttpMethod="DELETE",
        )

    def test_presign_delete_empty_url(self, client, mock_s3):
        mock_s3.generate_presigned_url.return_value = ""

        with pytest.raises(StorageError, match="presigned URL is empty"):
            client.presign_delete(bucket="test-bucket", object_key="a.txt", expires_in=60)
