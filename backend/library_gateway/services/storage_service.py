"""
Library Gateway — Object Storage Service
=========================================

What:  Uploads files to S3, deletes them by URL, and probes the bucket.
How:   Wraps a boto3 S3 client. Blocking SDK calls run in the thread pool so
       the event loop keeps serving other requests.
Who:   Called by the upload/delete routes and the /api/test-aws diagnostic.

Key layout:
    {folder}/{epoch_millis}_{original_filename}
    e.g. books/1718000000000_Digital Signal Processing.pdf
         notices/1718000000123_exam-timetable.pdf

    The millisecond prefix keeps two uploads of the same file apart and
    sorts objects by upload time inside each folder.

Access control:
    Objects are written without an ACL. Public read comes from the bucket
    policy, so the URL returned by upload() is directly usable by the
    frontend.

Retry policy:
    botocore's own retries are disabled; tenacity retries connection-level
    failures (endpoint unreachable, connect/read timeout) with exponential
    backoff and jitter. S3 error responses (AccessDenied, NoSuchBucket, ...)
    are final and surface immediately as StorageServiceError.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from fastapi.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from library_gateway.config import settings
from library_gateway.exceptions import (
    PayloadTooLargeError,
    StorageServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

BOOKS_FOLDER = "books"
NOTICES_FOLDER = "notices"

TRANSIENT_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)

_NOT_FOUND_CODES = {"404", "NoSuchBucket", "NotFound"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}


def transient_wait() -> wait_exponential_jitter:
    """Backoff between S3 retries: min_wait * 2^n plus jitter, capped at max_wait."""
    return wait_exponential_jitter(
        multiplier=settings.storage_retry_min_wait,
        max=settings.storage_retry_max_wait,
    )


_transient_retry = retry(
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    stop=stop_after_attempt(settings.storage_retry_attempts),
    wait=transient_wait(),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


@dataclass
class StoredObject:
    """Where an upload ended up."""
    key: str
    location: str


@dataclass
class BucketCheck:
    """Outcome of a head_bucket probe."""
    CONNECTED = "connected"
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    FAILED = "failed"

    status: str
    bucket_name: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == self.CONNECTED


def error_code(exc: Exception) -> Optional[str]:
    """Extract the S3 error code ("AccessDenied", "404", ...) from a botocore error."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


class StorageService:
    """
    S3 operations used by the gateway.

    All public methods are async. Errors from boto3 are translated into
    StorageServiceError with the SDK message in `details`; the route picks
    the user-facing message.
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        """
        Args:
            bucket_name, region, endpoint_url: Override settings (used in tests).
            client: Pre-built S3 client; if None one is created from settings.
        """
        self.bucket_name = bucket_name if bucket_name is not None else settings.s3_bucket_name
        self.region = region or settings.aws_region
        self.endpoint_url = endpoint_url if endpoint_url is not None else settings.s3_endpoint_url
        self._client = client if client is not None else self._create_client()

        logger.info(
            "StorageService initialized with bucket=%s, region=%s%s",
            self.bucket_name or "<unset>",
            self.region,
            f", endpoint={self.endpoint_url}" if self.endpoint_url else "",
        )

    def _create_client(self):
        boto_config = Config(
            signature_version="s3v4",
            retries={"mode": "standard", "max_attempts": 1},
            s3={"addressing_style": "path"} if self.endpoint_url else {},
        )
        kwargs = {
            "region_name": self.region,
            "config": boto_config,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            kwargs["aws_access_key_id"] = settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        return boto3.client("s3", **kwargs)

    # ── Keys & locations ──────────────────────────────────────────────────

    def build_key(self, folder: str, filename: str) -> str:
        """
        Build the storage key for a new upload.

        Only the final path component of the client-supplied name is used,
        so "../../x.pdf" or "C:\\docs\\x.pdf" both become "x.pdf".
        """
        basename = PurePosixPath(filename.replace("\\", "/")).name or "upload"
        millis = int(time.time() * 1000)
        return f"{folder}/{millis}_{basename}"

    def build_location(self, key: str) -> str:
        """Public URL of an object, matching what S3 reports as its Location."""
        quoted = quote(key, safe="/")
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quoted}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{quoted}"

    def key_from_location(self, file_url: str) -> str:
        """
        Recover the storage key from an object URL.

        Everything after the host is the key, URL-decoded. Path-style URLs
        (https://host/bucket/key) carry the bucket as the first segment,
        which is dropped.

        Raises:
            ValidationError: The URL has no host or no key.
        """
        parsed = urlparse(file_url.strip())
        if not parsed.scheme or not parsed.netloc:
            raise ValidationError(
                message="Invalid file URL",
                field="fileUrl",
                context={"file_url": file_url},
            )

        key = unquote(parsed.path.lstrip("/"))
        host = parsed.netloc.lower()
        bucket = self.bucket_name
        if bucket and not host.startswith(f"{bucket.lower()}.") and key.startswith(f"{bucket}/"):
            key = key[len(bucket) + 1:]

        if not key:
            raise ValidationError(
                message="Invalid file URL",
                field="fileUrl",
                context={"file_url": file_url},
            )
        return key

    # ── Validation ────────────────────────────────────────────────────────

    def validate_upload(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: Optional[bytes],
    ) -> None:
        """
        Check an incoming file before it is sent to S3.

        Order: presence → declared type → size. The type check uses the
        multipart part's Content-Type, normalised (parameters dropped,
        lowercased).

        Raises:
            ValidationError: No file, empty file, or type not allowed.
            PayloadTooLargeError: More than settings.max_file_size bytes.
        """
        if not filename or not content:
            raise ValidationError(message="No file uploaded", field="file")

        allowed = settings.allowed_content_types_set
        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type not in allowed:
            labels = ", ".join(sorted(ct.split("/")[-1].upper() for ct in allowed))
            raise ValidationError(
                message=f"Only {labels} files are allowed",
                field="file",
                context={"content_type": media_type, "allowed": sorted(allowed)},
            )

        if len(content) > settings.max_file_size:
            raise PayloadTooLargeError(limit=settings.max_file_size, actual=len(content))

    # ── SDK calls (sync, retried) ─────────────────────────────────────────

    @_transient_retry
    def _put_object(self, key: str, content: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
        )

    @_transient_retry
    def _delete_object(self, key: str) -> None:
        self._client.delete_object(Bucket=self.bucket_name, Key=key)

    @_transient_retry
    def _head_bucket(self) -> None:
        self._client.head_bucket(Bucket=self.bucket_name)

    # ── Public operations ─────────────────────────────────────────────────

    async def upload(
        self,
        folder: str,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> StoredObject:
        """
        Store a file under `folder` and return its key and public URL.

        Raises:
            StorageServiceError: put_object failed.
        """
        key = self.build_key(folder, filename)
        start_time = time.perf_counter()

        try:
            await run_in_threadpool(self._put_object, key, content, content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to upload %s to bucket %s: %s", key, self.bucket_name, e)
            raise StorageServiceError(
                message="Object storage upload failed",
                details=str(e),
                code=error_code(e),
                context={"key": key, "bucket": self.bucket_name},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        stored = StoredObject(key=key, location=self.build_location(key))
        logger.info(
            "Uploaded %s (%d bytes) in %.0fms",
            key,
            len(content),
            duration_ms,
        )
        return stored

    async def delete(self, file_url: str) -> str:
        """
        Delete the object behind `file_url`. Returns the key that was removed.

        S3 reports success for keys that do not exist, so deleting twice is
        not an error.

        Raises:
            ValidationError: The URL cannot be turned into a key.
            StorageServiceError: delete_object failed.
        """
        key = self.key_from_location(file_url)

        try:
            await run_in_threadpool(self._delete_object, key)
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to delete %s from bucket %s: %s", key, self.bucket_name, e)
            raise StorageServiceError(
                message="Object storage delete failed",
                details=str(e),
                code=error_code(e),
                context={"key": key, "bucket": self.bucket_name},
            ) from e

        logger.info("Deleted %s", key)
        return key

    async def check_bucket(self) -> BucketCheck:
        """
        Probe the configured bucket with head_bucket.

        Never raises: the outcome is classified so the diagnostic route can
        report it.
        """
        try:
            await run_in_threadpool(self._head_bucket)
        except ClientError as e:
            code = error_code(e)
            logger.error("Bucket check failed for %s: %s", self.bucket_name, e)
            if code in _NOT_FOUND_CODES:
                return BucketCheck(
                    status=BucketCheck.NOT_FOUND,
                    bucket_name=self.bucket_name,
                    error=f"Bucket '{self.bucket_name}' does not exist",
                )
            if code in _ACCESS_DENIED_CODES:
                return BucketCheck(
                    status=BucketCheck.ACCESS_DENIED,
                    bucket_name=self.bucket_name,
                    error="IAM user does not have permission to access this bucket",
                )
            return BucketCheck(
                status=BucketCheck.FAILED,
                bucket_name=self.bucket_name,
                error=str(e),
            )
        except BotoCoreError as e:
            logger.error("Bucket check failed for %s: %s", self.bucket_name, e)
            return BucketCheck(
                status=BucketCheck.FAILED,
                bucket_name=self.bucket_name,
                error=str(e),
            )

        return BucketCheck(status=BucketCheck.CONNECTED, bucket_name=self.bucket_name)


# ── Singleton Instance ────────────────────────────────────────────────────
storage_service = StorageService()
