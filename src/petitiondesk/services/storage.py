"""Object store integration for petition attachments.

This module provides an S3-compatible client wrapper bound to the single
attachment bucket. Attachments are stored under

    petitions/<petition_code>/<random hex>-<sanitized filename>

and the key is recorded on the petition row.

Example:
    from petitiondesk.services.storage import ObjectStoreClient, attachment_key
    from petitiondesk.core.settings import get_settings

    settings = get_settings()
    client = ObjectStoreClient.from_settings(settings.s3)

    key = attachment_key("PET000001", "pothole.jpg")
    client.upload(key, data, content_type="image/jpeg")
"""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

if TYPE_CHECKING:
    from petitiondesk.core.config import S3Settings

logger = logging.getLogger(__name__)

ATTACHMENT_PREFIX = "petitions"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_FILENAME_LENGTH = 120


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied filename to a safe key segment."""
    # Drop any directory part a browser may have sent
    base = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base).strip("._")
    return cleaned[-_MAX_FILENAME_LENGTH:] or "attachment"


def attachment_key(petition_code: str, filename: str | None) -> str:
    """Object key for a petition attachment; unique per upload."""
    return f"{ATTACHMENT_PREFIX}/{petition_code}/{uuid.uuid4().hex}-{sanitize_filename(filename)}"


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation.

    Attributes:
        key: The object key in the bucket.
        bucket: The bucket name.
        sha256_digest: SHA-256 hex digest of the uploaded content.
        size_bytes: Size of the uploaded content in bytes.
        etag: S3 ETag (usually MD5 of content, quoted).
    """

    key: str
    bucket: str
    sha256_digest: str
    size_bytes: int
    etag: str


class StorageError(Exception):
    """Base exception for storage operations.

    Attributes:
        message: Human-readable error description.
        bucket: The bucket involved in the operation.
        key: The object key involved (if applicable).
        operation: The operation that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.message = message
        self.bucket = bucket
        self.key = key
        self.operation = operation
        super().__init__(message)


class BucketNotFoundError(StorageError):
    """Raised when the attachment bucket does not exist."""


class ObjectStoreClient:
    """S3-compatible attachment storage.

    Wraps a synchronous boto3 client. Calls are short single-object
    operations made inside a request's unit of work.
    """

    def __init__(
        self,
        bucket: str,
        access_key: str,
        secret_key: str,
        *,
        endpoint_url: str | None = None,
        region: str = "us-east-1",
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize the object store client.

        Args:
            bucket: Bucket holding attachments.
            access_key: S3 access key ID.
            secret_key: S3 secret access key.
            endpoint_url: S3-compatible endpoint URL (e.g., http://localhost:9000).
                None targets AWS itself.
            region: AWS region (use us-east-1 for MinIO).
            connect_timeout: Connection timeout in seconds.
            read_timeout: Read timeout in seconds.
            max_retries: Maximum retry attempts for transient failures.
        """
        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._region = region

        config = Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": max_retries, "mode": "standard"},
            signature_version="s3v4",
        )

        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=config,
        )

        logger.debug(
            "Initialized ObjectStoreClient for endpoint=%s bucket=%s",
            endpoint_url,
            bucket,
        )

    @classmethod
    def from_settings(cls, settings: S3Settings) -> ObjectStoreClient:
        """Create client from S3Settings configuration."""
        return cls(
            bucket=settings.bucket,
            access_key=settings.access_key.get_secret_value(),
            secret_key=settings.secret_key.get_secret_value(),
            endpoint_url=settings.endpoint,
            region=settings.region,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def ensure_bucket(self) -> bool:
        """Ensure the attachment bucket exists, creating it if necessary.

        Returns:
            True if bucket was created, False if it already existed.

        Raises:
            StorageError: If the check or creation fails.
        """
        try:
            self._client.head_bucket(Bucket=self._bucket)
            logger.debug("Bucket %s already exists", self._bucket)
            return False
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code not in ("404", "NoSuchBucket"):
                raise StorageError(
                    f"Failed to check bucket existence: {e}",
                    bucket=self._bucket,
                    operation="head_bucket",
                ) from e

        try:
            # us-east-1 rejects an explicit LocationConstraint
            if self._region == "us-east-1":
                self._client.create_bucket(Bucket=self._bucket)
            else:
                self._client.create_bucket(
                    Bucket=self._bucket,
                    CreateBucketConfiguration={"LocationConstraint": self._region},
                )
        except ClientError as e:
            raise StorageError(
                f"Failed to create bucket: {e}",
                bucket=self._bucket,
                operation="create_bucket",
            ) from e

        logger.info("Created bucket: %s", self._bucket)
        return True

    def upload(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> UploadResult:
        """Store an attachment.

        The SHA-256 digest is recorded in object metadata.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageError: If the upload fails.
        """
        sha256_digest = hashlib.sha256(data).hexdigest()

        upload_metadata = {"sha256-digest": sha256_digest}
        if metadata:
            upload_metadata.update(metadata)

        try:
            response = self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=upload_metadata,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "NoSuchBucket":
                raise BucketNotFoundError(
                    f"Bucket does not exist: {self._bucket}",
                    bucket=self._bucket,
                    key=key,
                    operation="upload",
                ) from e
            raise StorageError(
                f"Upload failed: {e}",
                bucket=self._bucket,
                key=key,
                operation="upload",
            ) from e
        except BotoCoreError as e:
            raise StorageError(
                f"Upload failed: {e}",
                bucket=self._bucket,
                key=key,
                operation="upload",
            ) from e

        logger.debug(
            "Uploaded %s/%s (%d bytes, sha256=%s)",
            self._bucket,
            key,
            len(data),
            sha256_digest[:16] + "...",
        )

        return UploadResult(
            key=key,
            bucket=self._bucket,
            sha256_digest=sha256_digest,
            size_bytes=len(data),
            etag=response.get("ETag", ""),
        )

    def delete(self, key: str) -> bool:
        """Delete an attachment.

        S3 deletes are idempotent; a missing key is not an error.

        Raises:
            StorageError: If the delete fails.
        """
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                f"Delete failed: {e}",
                bucket=self._bucket,
                key=key,
                operation="delete",
            ) from e

        logger.debug("Deleted %s/%s", self._bucket, key)
        return True

    def exists(self, key: str) -> bool:
        """Check if an attachment exists.

        Raises:
            StorageError: If the check fails for reasons other than not found.
        """
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("404", "NoSuchKey"):
                return False
            raise StorageError(
                f"Existence check failed: {e}",
                bucket=self._bucket,
                key=key,
                operation="exists",
            ) from e

    def health_check(self) -> dict[str, Any]:
        """Check connectivity to the attachment bucket.

        Raises:
            StorageError: If the bucket cannot be reached.
        """
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                f"Health check failed: {e}",
                bucket=self._bucket,
                operation="health_check",
            ) from e

        return {
            "healthy": True,
            "endpoint": self._endpoint_url,
            "bucket": self._bucket,
        }
