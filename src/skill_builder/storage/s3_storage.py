"""S3-compatible skill storage (AWS S3, MinIO, SeaweedFS, R2)."""

import functools
import logging
from collections.abc import Iterator
from typing import Optional

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from .base import StorageBackend, validate_key
from .exceptions import (
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageTransientError,
)
from .retry import RetryPolicy

log = logging.getLogger(__name__)

_ERROR_CODE_MAP = {
    "NoSuchKey": StorageNotFoundError,
    "NotFound": StorageNotFoundError,
    "404": StorageNotFoundError,
    "NoSuchBucket": StorageNotFoundError,
    "AccessDenied": StoragePermissionError,
    "403": StoragePermissionError,
    "InvalidAccessKeyId": StoragePermissionError,
    "SignatureDoesNotMatch": StoragePermissionError,
    "ExpiredToken": StoragePermissionError,
    "Throttling": StorageTransientError,
    "ThrottlingException": StorageTransientError,
    "SlowDown": StorageTransientError,
    "RequestTimeout": StorageTransientError,
    "InternalError": StorageTransientError,
    "ServiceUnavailable": StorageTransientError,
    "503": StorageTransientError,
    "500": StorageTransientError,
}

_TRANSIENT_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


class S3StorageBackend(StorageBackend):
    """
    Skill storage using S3-compatible object storage.

    Credentials are resolved by boto3's default provider chain (environment,
    shared credentials file, instance role). botocore's own retries are
    switched off; transient failures go through the RetryPolicy instead.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        prefix: str = "",
        s3_client: Optional[BaseClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 60.0,
    ):
        if not bucket_name:
            raise ValueError("bucket_name cannot be empty")

        self._bucket = bucket_name
        self._region = region
        self._endpoint_url = endpoint_url
        self._prefix = prefix.strip("/")
        self._retry = retry_policy or RetryPolicy()

        if s3_client is not None:
            self._client = s3_client
        else:
            kwargs: dict = {
                "config": Config(
                    region_name=region,
                    signature_version="s3v4",
                    retries={"total_max_attempts": 1, "mode": "standard"},
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                ),
            }
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            self._client = boto3.client("s3", **kwargs)

        log.debug(
            "S3StorageBackend initialized. Bucket: %s, Prefix: %s, Endpoint: %s",
            self._bucket,
            self._prefix or "(none)",
            self._endpoint_url or "(aws)",
        )

    def __repr__(self) -> str:
        return f"S3StorageBackend({self.uri!r})"

    @property
    def uri(self) -> str:
        if self._prefix:
            return f"s3://{self._bucket}/{self._prefix}/"
        return f"s3://{self._bucket}/"

    def put(self, key: str, content: bytes) -> None:
        object_key = self._object_key(key)

        def _put():
            self._client.put_object(Bucket=self._bucket, Key=object_key, Body=content)

        self._call(_put, key)
        log.debug("[S3Storage:Put:%s] Wrote %d bytes", key, len(content))

    def get(self, key: str) -> bytes:
        object_key = self._object_key(key)

        def _get():
            response = self._client.get_object(Bucket=self._bucket, Key=object_key)
            return response["Body"].read()

        return self._call(_get, key)

    def exists(self, key: str) -> bool:
        object_key = self._object_key(key)

        def _head():
            self._client.head_object(Bucket=self._bucket, Key=object_key)

        try:
            self._call(_head, key)
            return True
        except StorageNotFoundError:
            return False

    def list(self, prefix: str) -> Iterator[str]:
        # Pages are requested one at a time so each request is retried on its own.
        params = {"Bucket": self._bucket, "Prefix": self._object_key(prefix, validate=False)}
        while True:
            page = self._call(functools.partial(self._client.list_objects_v2, **params), prefix)
            for obj in page.get("Contents", []):
                yield self._strip_prefix(obj["Key"])
            if not page.get("IsTruncated"):
                return
            params["ContinuationToken"] = page["NextContinuationToken"]

    def delete(self, key: str) -> None:
        object_key = self._object_key(key)

        def _delete():
            self._client.delete_object(Bucket=self._bucket, Key=object_key)

        try:
            self._call(_delete, key)
        except StorageNotFoundError:
            log.debug("[S3Storage:Delete:%s] Already absent", key)

    def _object_key(self, key: str, validate: bool = True) -> str:
        if validate:
            validate_key(key)
        if self._prefix:
            return f"{self._prefix}/{key}"
        return key

    def _strip_prefix(self, object_key: str) -> str:
        if self._prefix and object_key.startswith(self._prefix + "/"):
            return object_key[len(self._prefix) + 1:]
        return object_key

    def _call(self, operation, key: str):
        """Run a boto3 call with error translation and retries."""

        def _attempt():
            try:
                return operation()
            except ClientError as e:
                raise self._translate_error(e, key) from e
            except (NoCredentialsError, PartialCredentialsError) as e:
                raise StoragePermissionError(
                    f"AWS credentials not found or incomplete: {e}", key=key, cause=e
                ) from e
            except _TRANSIENT_BOTOCORE_ERRORS as e:
                raise StorageTransientError(str(e), key=key, cause=e) from e
            except BotoCoreError as e:
                raise StorageError(str(e), key=key, cause=e) from e

        return self._retry.call(_attempt)

    def _translate_error(self, error: ClientError, key: str | None = None) -> StorageError:
        code = str(error.response.get("Error", {}).get("Code", ""))
        exc_cls = _ERROR_CODE_MAP.get(code)
        if exc_cls is None:
            status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            exc_cls = StorageTransientError if status >= 500 else StorageError
        return exc_cls(str(error), key=key, cause=error)
