"""
Tests for the object storage service
Uses a MagicMock in place of the boto3 S3 client
"""

import re
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from config import StorageConfig
from services.storage_service import (
    StorageError,
    StorageObjectNotFound,
    StorageService,
    build_storage_key,
    file_extension,
    get_storage_service,
    sanitize_file_name,
)


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


class TestKeys:

    def test_sanitize(self):
        assert sanitize_file_name("My Trip!.jpg") == "My_Trip_.jpg"
        assert sanitize_file_name("loch-ness_2024.png") == "loch-ness_2024.png"

    @pytest.mark.parametrize("name,ext", [
        ("castle.png", "png"),
        ("archive.tar.gz", "gz"),
        ("no_extension", "jpg"),
        ("trailing.", "jpg"),
    ])
    def test_extension(self, name, ext):
        assert file_extension(name) == ext

    def test_key_layout(self):
        key = build_storage_key(
            "My Trip!.jpg",
            folder="journal",
            today=date(2024, 6, 1),
            unique_id="0b7e7c1a-0000-4000-8000-000000000000",
        )
        assert key == "journal/2024-06-01/0b7e7c1a-0000-4000-8000-000000000000_My_Trip_.jpg.jpg"

    def test_keys_are_unique(self):
        assert build_storage_key("a.jpg") != build_storage_key("a.jpg")

    def test_default_key_uses_today_and_uuid(self):
        key = build_storage_key("glen.png", folder="uploads")
        pattern = rf"^uploads/{date.today().isoformat()}/[0-9a-f-]{{36}}_glen\.png\.png$"
        assert re.match(pattern, key)


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_returns_presigned_url(self, storage, mock_s3):
        result = await storage.upload_file(b"abc", "castle.jpg", "image/jpeg", folder="journal")

        assert result.success
        assert result.url == "http://minio.test:9000/test-photos/signed"
        assert result.key.startswith("journal/")
        assert result.key.endswith("_castle.jpg.jpg")

        put_kwargs = mock_s3.put_object.call_args.kwargs
        assert put_kwargs["Bucket"] == "test-photos"
        assert put_kwargs["Body"] == b"abc"
        assert put_kwargs["ContentLength"] == 3
        assert put_kwargs["ContentType"] == "image/jpeg"
        assert result.to_dict() == {"success": True, "url": result.url, "key": result.key}

    @pytest.mark.asyncio
    async def test_upload_defaults_content_type(self, storage, mock_s3):
        await storage.upload_file(b"abc", "blob")
        assert mock_s3.put_object.call_args.kwargs["ContentType"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_upload_failure_is_reported(self, storage, mock_s3):
        mock_s3.put_object.side_effect = client_error("AccessDenied", "PutObject")

        result = await storage.upload_file(b"abc", "castle.jpg")

        assert result.success is False
        assert "AccessDenied" in result.error
        assert result.to_dict().keys() == {"success", "error"}


class TestUrls:

    @pytest.mark.asyncio
    async def test_presign_checks_existence_first(self, storage, mock_s3):
        url = await storage.get_file_url("journal/a.jpg", expiry=3600)

        assert url == "http://minio.test:9000/test-photos/signed"
        mock_s3.head_object.assert_called_once_with(Bucket="test-photos", Key="journal/a.jpg")
        mock_s3.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "test-photos", "Key": "journal/a.jpg"},
            ExpiresIn=3600,
        )

    @pytest.mark.asyncio
    async def test_missing_object(self, storage, mock_s3):
        mock_s3.head_object.side_effect = client_error("404")

        with pytest.raises(StorageObjectNotFound):
            await storage.get_file_url("journal/missing.jpg")
        mock_s3.generate_presigned_url.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expiry", [0, -5, 604801, True, "60"])
    async def test_expiry_bounds(self, storage, mock_s3, expiry):
        with pytest.raises(StorageError):
            await storage.get_file_url("journal/a.jpg", expiry=expiry)
        mock_s3.head_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_is_storage_error(self, storage, mock_s3):
        mock_s3.head_object.side_effect = client_error("AccessDenied")

        with pytest.raises(StorageError) as exc_info:
            await storage.get_file_url("journal/a.jpg")
        assert not isinstance(exc_info.value, StorageObjectNotFound)


class TestDeleteAndList:

    @pytest.mark.asyncio
    async def test_delete_existing(self, storage, mock_s3):
        assert await storage.delete_file("journal/a.jpg") is True
        mock_s3.delete_object.assert_called_once_with(Bucket="test-photos", Key="journal/a.jpg")

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, storage, mock_s3):
        mock_s3.head_object.side_effect = client_error("NoSuchKey")

        assert await storage.delete_file("journal/missing.jpg") is False
        mock_s3.delete_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_failure_returns_false(self, storage, mock_s3):
        mock_s3.delete_object.side_effect = client_error("AccessDenied", "DeleteObject")
        assert await storage.delete_file("journal/a.jpg") is False

    @pytest.mark.asyncio
    async def test_list_collects_all_pages(self, storage, mock_s3):
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "journal/1.jpg"}, {"Key": "journal/2.jpg"}]},
            {"Contents": [{"Key": "journal/3.jpg"}]},
            {},
        ]
        mock_s3.get_paginator.return_value = paginator

        files = await storage.list_files("journal/")

        assert files == ["journal/1.jpg", "journal/2.jpg", "journal/3.jpg"]
        paginator.paginate.assert_called_once_with(Bucket="test-photos", Prefix="journal/")

    @pytest.mark.asyncio
    async def test_list_failure_is_empty(self, storage, mock_s3):
        mock_s3.get_paginator.return_value.paginate.side_effect = EndpointConnectionError(
            endpoint_url="http://minio.test:9000"
        )
        assert await storage.list_files() == []


class TestBucketAndStats:

    @pytest.mark.asyncio
    async def test_existing_bucket_is_left_alone(self, storage, mock_s3):
        assert await storage.ensure_bucket() is True
        mock_s3.create_bucket.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_bucket_is_created(self, storage, mock_s3):
        mock_s3.head_bucket.side_effect = client_error("404", "HeadBucket")

        assert await storage.ensure_bucket() is True
        mock_s3.create_bucket.assert_called_once_with(Bucket="test-photos")

    @pytest.mark.asyncio
    async def test_bucket_outside_default_region(self, storage_config, mock_s3):
        storage_config.region = "eu-west-2"
        mock_s3.head_bucket.side_effect = client_error("NoSuchBucket", "HeadBucket")

        await StorageService(storage_config, client=mock_s3).ensure_bucket()

        mock_s3.create_bucket.assert_called_once_with(
            Bucket="test-photos",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-2"},
        )

    @pytest.mark.asyncio
    async def test_bucket_access_denied(self, storage, mock_s3):
        mock_s3.head_bucket.side_effect = client_error("403", "HeadBucket")
        assert await storage.ensure_bucket() is False
        mock_s3.create_bucket.assert_not_called()

    @pytest.mark.asyncio
    async def test_file_stats(self, storage, mock_s3):
        mock_s3.head_object.return_value = {
            "ContentLength": 2048,
            "ContentType": "image/png",
            "ETag": '"d41d8cd9"',
            "LastModified": datetime(2024, 6, 1, tzinfo=timezone.utc),
        }
        stats = await storage.get_file_stats("journal/a.png")
        assert stats == {
            "key": "journal/a.png",
            "size": 2048,
            "content_type": "image/png",
            "etag": "d41d8cd9",
            "last_modified": "2024-06-01T00:00:00+00:00",
        }

    @pytest.mark.asyncio
    async def test_file_stats_missing(self, storage, mock_s3):
        mock_s3.head_object.side_effect = client_error("404")
        assert await storage.get_file_stats("journal/nope.png") is None

    @pytest.mark.asyncio
    async def test_download(self, storage, mock_s3):
        body = MagicMock()
        body.read.return_value = b"photo-bytes"
        mock_s3.get_object.return_value = {"Body": body}
        assert await storage.download_file("journal/a.jpg") == b"photo-bytes"

    @pytest.mark.asyncio
    async def test_connection_check(self, storage, mock_s3):
        assert await storage.test_connection() is True
        mock_s3.list_buckets.side_effect = EndpointConnectionError(endpoint_url="http://minio.test:9000")
        assert await storage.test_connection() is False


def test_unconfigured_storage_is_none():
    assert get_storage_service(StorageConfig(endpoint=None)) is None
