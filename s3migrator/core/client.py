"""S3 client manager for handling S3 connections."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Protocol, runtime_checkable

from aiobotocore.client import AioBaseClient
from aiobotocore.session import get_session
from botocore.config import Config
from botocore.exceptions import ClientError

from s3migrator.core.exceptions import (
    S3ConnectionError,
    S3MigratorError,
    S3OperationError,
)
from s3migrator.core.settings import MigratorSettings


@runtime_checkable
class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the record store needs."""

    async def get_object(self, Bucket: str, Key: str, **kwargs) -> dict[str, Any]:
        """Get an object from S3."""
        ...

    async def put_object(
        self, Bucket: str, Key: str, Body: bytes | str, **kwargs
    ) -> dict[str, Any]:
        """Put an object to S3."""
        ...

    async def delete_object(self, Bucket: str, Key: str, **kwargs) -> dict[str, Any]:
        """Delete an object from S3."""
        ...

    async def list_objects_v2(self, Bucket: str, **kwargs) -> dict[str, Any]:
        """List objects in S3."""
        ...


def adjust_endpoint_url(
    endpoint_url: str | None, bucket_name: str | None
) -> str | None:
    """Adjust endpoint URL for path-style addressing if needed.

    Args:
        endpoint_url: The S3 endpoint URL
        bucket_name: The S3 bucket name

    Returns:
        Adjusted endpoint URL or None
    """
    if not endpoint_url:
        return None
    if bucket_name and f"{bucket_name}." in endpoint_url:
        return endpoint_url.replace(f"{bucket_name}.", "")
    return endpoint_url


class S3ClientManager:
    """Creates aiobotocore S3 clients from MigratorSettings.

    Unlike a process-wide singleton, each manager is an ordinary object so
    tests and tools can hold several with different settings.
    """

    def __init__(self, settings: MigratorSettings | None = None):
        """Initialize the client manager.

        Args:
            settings: Settings to build clients from (read from env if omitted)
        """
        self.settings = settings or MigratorSettings()
        self._session = None
        self._endpoint_url = adjust_endpoint_url(
            self.settings.aws_url, self.settings.aws_bucket_name
        )
        self._client_config = Config(
            s3={"addressing_style": "path"},
            retries={
                "max_attempts": self.settings.aws_retry_attempts,
                "mode": "standard",
            },
        )

    @property
    def endpoint_url(self) -> str | None:
        return self._endpoint_url

    @asynccontextmanager
    async def get_async_client(self) -> AsyncGenerator[AioBaseClient, None]:
        """Get an async S3 client within a context manager.

        Yields:
            An aiobotocore S3 client

        Raises:
            S3ConnectionError: If client creation fails
            S3OperationError: If client operations fail
        """
        if self._session is None:
            self._session = get_session()

        try:
            async with self._session.create_client(
                "s3",
                region_name=self.settings.aws_default_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
                endpoint_url=self._endpoint_url,
                config=self._client_config,
            ) as client:
                yield client
        except S3MigratorError:
            raise
        except ClientError as e:
            raise S3OperationError(f"S3 client operation failed: {e}", original_error=e)
        except Exception as e:
            raise S3ConnectionError(
                message=f"Failed to create async S3 client: {e}",
                original_error=e,
                endpoint=self._endpoint_url,
            )

    async def ensure_bucket_exists(self, client: S3ClientProtocol) -> None:
        """Ensure the configured S3 bucket exists, creating it if necessary.

        Args:
            client: An async S3 client

        Raises:
            S3ConnectionError: If bucket creation fails
            S3OperationError: If bucket check fails
        """
        bucket = self.settings.require_bucket()
        try:
            await client.head_bucket(Bucket=bucket)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            # Handle both numeric codes and named codes
            if error_code in ("404", "NoSuchBucket", "NotFound"):
                try:
                    await client.create_bucket(Bucket=bucket)
                except ClientError as create_error:
                    raise S3ConnectionError(
                        message=f"Failed to create bucket: {create_error}",
                        original_error=create_error,
                        endpoint=self._endpoint_url,
                    )
            elif error_code == "403":
                raise S3OperationError(
                    "Permission denied checking bucket existence",
                    operation="head_bucket",
                    original_error=e,
                )
            else:
                raise S3OperationError(
                    f"Error checking bucket: {e}",
                    operation="head_bucket",
                    original_error=e,
                )
