"""Mock S3 client for testing s3migrator applications."""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict
from unittest.mock import AsyncMock

from botocore.exceptions import ClientError


class InMemoryS3:
    """In-memory S3 mock for testing without external dependencies.

    Stores all data in memory and implements the S3 operations the record
    store uses. Failures can be injected per operation to exercise error
    paths.

    Example:
        >>> s3 = InMemoryS3()
        >>> await s3.put_object(Bucket="test", Key="Widget/1.json", Body=b'{"id": "1"}')
        >>> s3.fail_on("put_object", lambda key: key.endswith("2.json"))
    """

    def __init__(self):
        """Initialize the in-memory S3 mock."""
        # Storage: {bucket_name: {key: bytes}}
        self._storage: Dict[str, Dict[str, bytes]] = {}
        # Metadata: {bucket_name: {key: dict}}
        self._metadata: Dict[str, Dict[str, dict]] = {}
        # Injected failures: {operation: predicate(key)}
        self._failures: Dict[str, Callable[[str], bool]] = {}
        # Number of calls per operation
        self.calls: Dict[str, int] = {}

    def _ensure_bucket(self, bucket: str) -> None:
        """Ensure a bucket exists in storage."""
        if bucket not in self._storage:
            self._storage[bucket] = {}
            self._metadata[bucket] = {}

    def _record_call(self, operation: str, key: str = "") -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        predicate = self._failures.get(operation)
        if predicate is not None and predicate(key):
            raise ClientError(
                {"Error": {"Code": "InternalError", "Message": "Injected failure"}},
                operation,
            )

    def fail_on(
        self,
        operation: str,
        predicate: Callable[[str], bool] | None = None,
    ) -> None:
        """Make an operation raise ClientError.

        Args:
            operation: Operation name, e.g. "put_object"
            predicate: Fails only for keys it accepts (all keys if omitted)
        """
        self._failures[operation] = predicate or (lambda key: True)

    def clear_failures(self) -> None:
        self._failures.clear()

    async def create_bucket(self, Bucket: str, **kwargs) -> dict:
        """Create a new bucket.

        Returns:
            Empty dict (matches S3 API)
        """
        self._ensure_bucket(Bucket)
        return {}

    async def head_bucket(self, Bucket: str, **kwargs) -> dict:
        """Check if a bucket exists.

        Raises:
            ClientError: If bucket doesn't exist
        """
        if Bucket not in self._storage:
            raise ClientError(
                {"Error": {"Code": "404", "Message": "Bucket not found"}},
                "HeadBucket"
            )
        return {}

    async def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: bytes | str,
        ContentType: str = "application/octet-stream",
        **kwargs
    ) -> dict:
        """Store an object in the mock S3.

        Returns:
            Dict with ETag
        """
        self._record_call("put_object", Key)
        self._ensure_bucket(Bucket)

        if isinstance(Body, str):
            Body = Body.encode("utf-8")

        self._storage[Bucket][Key] = Body
        self._metadata[Bucket][Key] = {
            "ContentType": ContentType,
            "ContentLength": len(Body),
            "LastModified": datetime.now(timezone.utc),
            "ETag": f'"{hash(Body)}"',
        }

        return {"ETag": self._metadata[Bucket][Key]["ETag"]}

    async def get_object(self, Bucket: str, Key: str, **kwargs) -> dict:
        """Retrieve an object from the mock S3.

        Returns:
            Dict with Body (AsyncMock with read method)

        Raises:
            ClientError: If object doesn't exist
        """
        self._record_call("get_object", Key)
        if Bucket not in self._storage or Key not in self._storage[Bucket]:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject"
            )

        body = AsyncMock()
        body.read = AsyncMock(return_value=self._storage[Bucket][Key])

        metadata = self._metadata[Bucket].get(Key, {})

        return {
            "Body": body,
            "ContentType": metadata.get("ContentType", "application/octet-stream"),
            "ContentLength": metadata.get("ContentLength", len(self._storage[Bucket][Key])),
            "LastModified": metadata.get("LastModified", datetime.now(timezone.utc)),
            "ETag": metadata.get("ETag", '"mock-etag"'),
        }

    async def delete_object(self, Bucket: str, Key: str, **kwargs) -> dict:
        """Delete an object from the mock S3.

        Returns:
            Empty dict
        """
        self._record_call("delete_object", Key)
        if Bucket in self._storage and Key in self._storage[Bucket]:
            del self._storage[Bucket][Key]
            if Key in self._metadata.get(Bucket, {}):
                del self._metadata[Bucket][Key]
        return {}

    async def list_objects_v2(
        self,
        Bucket: str,
        Prefix: str = "",
        MaxKeys: int = 1000,
        ContinuationToken: str | None = None,
        **kwargs
    ) -> dict:
        """List objects in a bucket.

        Args:
            Bucket: The bucket name
            Prefix: Filter by key prefix
            MaxKeys: Maximum number of keys to return
            ContinuationToken: Pagination token

        Returns:
            Dict with Contents and pagination info
        """
        self._record_call("list_objects_v2", Prefix)
        if Bucket not in self._storage:
            return {"KeyCount": 0}

        all_keys = sorted([
            key for key in self._storage[Bucket].keys()
            if key.startswith(Prefix)
        ])

        # Handle pagination
        start_idx = 0
        if ContinuationToken:
            try:
                start_idx = int(ContinuationToken)
            except ValueError:
                start_idx = 0

        end_idx = start_idx + MaxKeys
        page_keys = all_keys[start_idx:end_idx]

        if not page_keys:
            return {"KeyCount": 0}

        contents = []
        for key in page_keys:
            metadata = self._metadata[Bucket].get(key, {})
            contents.append({
                "Key": key,
                "Size": metadata.get("ContentLength", len(self._storage[Bucket][key])),
                "LastModified": metadata.get("LastModified", datetime.now(timezone.utc)),
                "ETag": metadata.get("ETag", '"mock-etag"'),
            })

        result = {
            "Contents": contents,
            "KeyCount": len(contents),
            "MaxKeys": MaxKeys,
            "Prefix": Prefix,
            "IsTruncated": end_idx < len(all_keys),
        }

        if result["IsTruncated"]:
            result["NextContinuationToken"] = str(end_idx)

        return result

    def clear(self) -> None:
        """Clear all stored data, injected failures and call counts."""
        self._storage.clear()
        self._metadata.clear()
        self._failures.clear()
        self.calls.clear()

    def get_bucket_data(self, bucket: str) -> dict:
        """Get all data in a bucket (for testing assertions).

        Returns:
            Dict of {key: data} for the bucket
        """
        return {
            key: json.loads(data.decode("utf-8"))
            for key, data in self._storage.get(bucket, {}).items()
            if data
        }


@contextmanager
def mock_s3_client():
    """Context manager providing an in-memory S3 mock.

    Example:
        >>> with mock_s3_client() as s3:
        ...     store = RecordStore(s3, "test-bucket")

    Yields:
        InMemoryS3 instance
    """
    mock = InMemoryS3()
    try:
        yield mock
    finally:
        mock.clear()
