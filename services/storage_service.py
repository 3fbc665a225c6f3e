"""
Photo storage on an S3-compatible object store (Minio)

Objects are written once under a date-partitioned key and read back through
presigned URLs that are generated per request, never stored.

    <folder>/<YYYY-MM-DD>/<uuid4>_<sanitized-name>.<ext>
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from config import MAX_URL_EXPIRY, StorageConfig

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_EXTENSION = "jpg"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


class StorageError(Exception):
    """Raised when the object store cannot serve a request"""


class StorageObjectNotFound(StorageError):
    """The requested key does not exist in the bucket"""


@dataclass
class UploadResult:
    success: bool
    url: Optional[str] = None
    key: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


def sanitize_file_name(file_name: str) -> str:
    """Replace anything outside [A-Za-z0-9.-] with an underscore"""
    return _UNSAFE_CHARS.sub("_", file_name)


def file_extension(file_name: str) -> str:
    """Text after the last '.', or 'jpg' when the name has none"""
    if "." not in file_name:
        return DEFAULT_EXTENSION
    extension = sanitize_file_name(file_name.rsplit(".", 1)[1])
    return extension or DEFAULT_EXTENSION


def build_storage_key(
    file_name: str,
    folder: str = "journal",
    today: Optional[date] = None,
    unique_id: Optional[str] = None,
) -> str:
    """
    Build the object key for an upload.

    "My Trip!.jpg" in folder "journal" becomes
    journal/2024-06-01/<uuid>_My_Trip_.jpg.jpg
    """
    today = today or date.today()
    unique_id = unique_id or str(uuid.uuid4())
    return (
        f"{folder}/{today.isoformat()}/{unique_id}_"
        f"{sanitize_file_name(file_name)}.{file_extension(file_name)}"
    )


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class StorageService:
    """
    Async facade over a boto3 S3 client.

    boto3 is synchronous, so every SDK call runs in the default executor.
    The client is configured without retries and with bounded timeouts.
    """

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.bucket = config.bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
                connect_timeout=config.timeout,
                read_timeout=config.timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def _exists(self, key: str) -> bool:
        try:
            await self._run(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_missing(e):
                return False
            raise

    async def upload_file(
        self,
        content: bytes,
        file_name: str,
        content_type: Optional[str] = None,
        folder: str = "journal",
    ) -> UploadResult:
        """Store bytes under a fresh unique key and return a presigned URL for it"""
        key = build_storage_key(file_name, folder)
        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentLength=len(content),
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )
            url = await self.get_file_url(key)
            logger.info(f"Uploaded {key} ({len(content)} bytes)")
            return UploadResult(success=True, url=url, key=key)
        except (ClientError, BotoCoreError, StorageError) as e:
            logger.error(f"❌ Upload of '{file_name}' failed: {e}")
            return UploadResult(success=False, error=str(e) or "Upload failed")

    async def get_file_url(self, key: str, expiry: int = MAX_URL_EXPIRY) -> str:
        """
        Generate a presigned GET URL.

        Raises:
            StorageError: invalid expiry, missing object or store unreachable
        """
        if isinstance(expiry, bool) or not isinstance(expiry, int) or not 1 <= expiry <= MAX_URL_EXPIRY:
            raise StorageError(f"Expiry must be between 1 and {MAX_URL_EXPIRY} seconds")

        try:
            if not await self._exists(key):
                raise StorageObjectNotFound(f"File not found: {key}")
            return await self._run(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expiry,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating URL for {key}: {e}")
            raise StorageError(str(e)) from e

    async def delete_file(self, key: str) -> bool:
        """Delete an object. False when it does not exist or the store fails"""
        try:
            # S3 deletes succeed for missing keys, so check first
            if not await self._exists(key):
                logger.warning(f"⚠️ Delete requested for missing file {key}")
                return False
            await self._run(self.client.delete_object, Bucket=self.bucket, Key=key)
            logger.info(f"Deleted {key}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting {key}: {e}")
            return False

    async def list_files(self, prefix: str = "") -> List[str]:
        """All keys under a prefix, across pages. Empty on any fault"""
        def _list() -> List[str]:
            paginator = self.client.get_paginator("list_objects_v2")
            keys = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
            return keys

        try:
            return await self._run(_list)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error listing files under '{prefix}': {e}")
            return []

    async def ensure_bucket(self) -> bool:
        """Create the bucket if it does not exist yet"""
        try:
            try:
                await self._run(self.client.head_bucket, Bucket=self.bucket)
                return True
            except ClientError as e:
                if not _is_missing(e):
                    raise

            params = {"Bucket": self.bucket}
            if self.config.region != "us-east-1":
                params["CreateBucketConfiguration"] = {"LocationConstraint": self.config.region}
            await self._run(self.client.create_bucket, **params)
            logger.info(f"✅ Created storage bucket: {self.bucket}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error ensuring bucket {self.bucket} exists: {e}")
            return False

    async def get_file_stats(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            head = await self._run(self.client.head_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error getting stats for {key}: {e}")
            return None
        return {
            "key": key,
            "size": head.get("ContentLength"),
            "content_type": head.get("ContentType"),
            "etag": (head.get("ETag") or "").strip('"'),
            "last_modified": head["LastModified"].isoformat() if head.get("LastModified") else None,
        }

    async def download_file(self, key: str) -> bytes:
        try:
            response = await self._run(self.client.get_object, Bucket=self.bucket, Key=key)
            return await self._run(response["Body"].read)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not download {key}: {e}") from e

    async def test_connection(self) -> bool:
        try:
            await self._run(self.client.list_buckets)
            logger.info("✅ Object storage connected successfully")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"❌ Object storage connection failed: {e}")
            return False


def get_storage_service(config: Optional[StorageConfig] = None) -> Optional[StorageService]:
    """
    Build the storage service from configuration.
    Returns None when the object store is not configured.
    """
    config = config or StorageConfig.from_environment()
    if not config.is_configured:
        logger.warning("⚠️ Object storage not configured (MINIO_ENDPOINT / credentials missing)")
        return None
    return StorageService(config)
