"""
Certificate blob storage on S3 or an S3-compatible server (MinIO).

Objects are keyed by opaque strings (``{uuid}.{ext}``); the database row
holds the key, never the bytes.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from hkidash.core.config import settings
from hkidash.core.exceptions import StorageError

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY = 0.5  # seconds
NON_RETRYABLE_CODES = {"NoSuchBucket", "AccessDenied", "Unauthorized", "InvalidAccessKeyId"}
# S3 DeleteObjects accepts at most this many keys per call
DELETE_BATCH_SIZE = 1000


def _retry_with_backoff(
    func: Any,
    *args: Any,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    **kwargs: Any,
) -> Any:
    """
    Call ``func`` and retry S3 client errors with exponential backoff.

    Raises:
        The last ClientError once retries are exhausted, or at once for
        errors that retrying cannot fix
    """
    for attempt in range(max_retries + 1):
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in NON_RETRYABLE_CODES or attempt == max_retries:
                logger.error(f"S3 call failed ({error_code or 'unknown'}): {e}")
                raise

            delay = base_delay * (2**attempt)
            logger.warning(f"Retry {attempt + 1}/{max_retries} after {delay:.1f}s: {e}")
            time.sleep(delay)


@dataclass
class StorageConfig:
    """S3 storage configuration."""

    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str

    @classmethod
    def from_settings(cls) -> "StorageConfig":
        """Create config from application settings."""
        return cls(
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            bucket_name=settings.s3_bucket_name,
            region=settings.s3_region,
        )


class StorageService:
    """Upload, remove and sign certificate objects."""

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig.from_settings()
        self._s3_client: Optional[BaseClient] = None

    @property
    def s3_client(self) -> BaseClient:
        """
        Get or create the S3 client.

        Raises:
            StorageError: If credentials are missing
        """
        if self._s3_client is None:
            if not self.config.access_key or not self.config.secret_key:
                raise StorageError("S3 access key and secret key are required")

            client_kwargs: dict[str, Any] = {
                "aws_access_key_id": self.config.access_key,
                "aws_secret_access_key": self.config.secret_key,
                "region_name": self.config.region,
            }
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url

            self._s3_client = boto3.client("s3", **client_kwargs)

        return self._s3_client

    def ensure_bucket(self) -> None:
        """Create the certificate bucket if it does not exist yet."""
        bucket = self.config.bucket_name
        try:
            _retry_with_backoff(self.s3_client.head_bucket, Bucket=bucket)
            logger.debug(f"Bucket {bucket} exists")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code not in ("404", "NoSuchBucket"):
                raise StorageError("Certificate bucket is not reachable", e) from e
            logger.info(f"Bucket {bucket} not found, creating")
            try:
                _retry_with_backoff(self.s3_client.create_bucket, Bucket=bucket)
            except (ClientError, BotoCoreError) as create_error:
                raise StorageError("Failed to create certificate bucket", create_error) from create_error
        except BotoCoreError as e:
            raise StorageError("Certificate storage is not reachable", e) from e

    def upload_bytes(
        self,
        data: bytes,
        object_key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Store ``data`` under ``object_key``.

        Returns:
            The object key

        Raises:
            StorageError: If the upload fails
        """
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type
        try:
            _retry_with_backoff(
                self.s3_client.put_object,
                Bucket=self.config.bucket_name,
                Key=object_key,
                Body=data,
                **extra_args,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("Gagal mengunggah sertifikat.", e) from e

        logger.info(f"Uploaded {len(data)} bytes to {object_key}")
        return object_key

    def delete_file(self, object_key: str) -> None:
        """
        Remove one object. Removing a missing key is not an error.

        Raises:
            StorageError: If the deletion fails
        """
        try:
            _retry_with_backoff(
                self.s3_client.delete_object,
                Bucket=self.config.bucket_name,
                Key=object_key,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Gagal menghapus berkas {object_key}.", e) from e
        logger.info(f"Deleted {object_key}")

    def delete_files(self, object_keys: list[str]) -> list[str]:
        """
        Remove many objects with batched DeleteObjects calls.

        Returns:
            Keys that could not be removed. A batch whose call fails
            outright counts every key in it as failed.
        """
        failed: list[str] = []
        for start in range(0, len(object_keys), DELETE_BATCH_SIZE):
            batch = object_keys[start : start + DELETE_BATCH_SIZE]
            try:
                response = _retry_with_backoff(
                    self.s3_client.delete_objects,
                    Bucket=self.config.bucket_name,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Batch delete of {len(batch)} objects failed: {e}")
                failed.extend(batch)
                continue
            failed.extend(error["Key"] for error in response.get("Errors", []))

        logger.info(f"Deleted {len(object_keys) - len(failed)}/{len(object_keys)} objects")
        return failed

    def generate_presigned_url(self, object_key: str, expiration_seconds: int = 60) -> str:
        """
        Sign a time-limited GET URL for an object.

        Raises:
            StorageError: If URL generation fails
        """
        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.config.bucket_name, "Key": object_key},
                ExpiresIn=expiration_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("Gagal membuat tautan sertifikat.", e) from e

        logger.debug(f"Generated presigned URL for {object_key}")
        return url


_default_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """FastAPI dependency returning the process-wide storage service."""
    global _default_storage_service
    if _default_storage_service is None:
        _default_storage_service = StorageService()
    return _default_storage_service
