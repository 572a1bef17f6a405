"""S3-backed record store that fires write and delete triggers."""

import json
import logging
import uuid
from typing import Any, AsyncIterator

from botocore.exceptions import ClientError

from s3migrator.core.client import S3ClientProtocol
from s3migrator.core.exceptions import S3OperationError
from s3migrator.store.host import TriggerHost
from s3migrator.store.query import RecordQuery
from s3migrator.store.record import Record

logger = logging.getLogger(__name__)


class RecordStore:
    """CRUD and query access to records kept as JSON objects in S3.

    Each record lives at ``{base_path}{type_name}/{id}.json``. Saves and
    deletes run the host's triggers for the record's type:

    - save: before-write, assign an id if new, put, after-write
    - delete: before-delete, delete, after-delete
    """

    LIST_PAGE_SIZE = 1000

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        bucket_name: str,
        host: TriggerHost | None = None,
        base_path: str = "",
    ):
        """Initialize the store.

        Args:
            s3_client: The S3 client to use
            bucket_name: The S3 bucket name
            host: Trigger host to notify (a fresh one if omitted)
            base_path: Key prefix for all records
        """
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.host = host or TriggerHost()
        if base_path and not base_path.endswith("/"):
            base_path = f"{base_path}/"
        self.base_path = base_path

    def prefix(self, type_name: str) -> str:
        return f"{self.base_path}{type_name}/"

    def key_for(self, type_name: str, record_id: str) -> str:
        return f"{self.prefix(type_name)}{record_id}.json"

    def record(self, type_name: str, data: dict[str, Any] | None = None) -> Record:
        """Build a new, unsaved record bound to this store."""
        return Record(type_name, data, store=self)

    def query(self, type_name: str) -> RecordQuery:
        return RecordQuery(self, type_name)

    async def create(self, type_name: str, data: dict[str, Any]) -> Record:
        """Build and save a new record."""
        return await self.save(self.record(type_name, data))

    async def get(self, type_name: str, record_id: str) -> Record | None:
        """Load a record by id.

        Returns:
            The record, or None if it does not exist
        """
        key = self.key_for(type_name, record_id)
        data = await self._load(key)
        if data is None:
            return None
        return Record.from_dict(type_name, data, store=self)

    async def save(self, record: Record) -> Record:
        """Persist a record, running write triggers around the put.

        Raises:
            TriggerRejectedError: If the before-write trigger fails the write
            S3OperationError: If the put fails
        """
        record.bind(self)
        replacement = await self.host.run_before_write(record)
        if replacement is not record:
            record.replace_with(replacement)

        was_new = record.is_new()
        if was_new:
            record.id = str(uuid.uuid4())
        key = self.key_for(record.type_name, record.id)

        try:
            await self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=json.dumps(record.to_dict(), default=str).encode("utf-8"),
                ContentType="application/json",
            )
        except ClientError as e:
            if was_new:
                record.id = None
            raise S3OperationError(
                f"Failed to save {record.type_name}: {e}",
                operation="put_object",
                key=key,
                original_error=e,
            ) from e

        record.mark_saved(existed=not was_new)
        logger.debug(f"Saved {record.type_name} '{record.id}'")
        await self.host.run_after_write(record)
        return record

    async def delete(self, record: Record) -> None:
        """Delete a persisted record, running delete triggers around it.

        Raises:
            ValueError: If the record was never saved
            TriggerRejectedError: If the before-delete trigger fails the delete
            S3OperationError: If the delete fails
        """
        if record.is_new():
            raise ValueError(f"Cannot delete unsaved {record!r}")

        record.bind(self)
        await self.host.run_before_delete(record)

        key = self.key_for(record.type_name, record.id)
        try:
            await self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise S3OperationError(
                f"Failed to delete {record.type_name}: {e}",
                operation="delete_object",
                key=key,
                original_error=e,
            ) from e

        logger.debug(f"Deleted {record.type_name} '{record.id}'")
        await self.host.run_after_delete(record)

    async def find(self, query: RecordQuery) -> list[Record]:
        """Return records matching a query, up to its limit."""
        results: list[Record] = []
        if query.limit_value == 0:
            return results
        async for data in self._iter_type(query.type_name):
            if query.matches(data):
                results.append(Record.from_dict(query.type_name, data, store=self))
                if query.limit_value is not None and len(results) >= query.limit_value:
                    break
        return results

    async def count(self, query: RecordQuery) -> int:
        total = 0
        async for data in self._iter_type(query.type_name):
            if query.matches(data):
                total += 1
        return total

    async def _iter_type(self, type_name: str) -> AsyncIterator[dict]:
        """Yield the stored data of every record of a type, in key order."""
        prefix = self.prefix(type_name)
        continuation_token = None

        while True:
            params = {
                "Bucket": self.bucket_name,
                "Prefix": prefix,
                "MaxKeys": self.LIST_PAGE_SIZE,
            }
            if continuation_token:
                params["ContinuationToken"] = continuation_token

            try:
                response = await self.s3_client.list_objects_v2(**params)
            except ClientError as e:
                raise S3OperationError(
                    f"Failed to list {type_name}: {e}",
                    operation="list_objects_v2",
                    key=prefix,
                    original_error=e,
                ) from e

            for obj_summary in response.get("Contents", []):
                key = obj_summary["Key"]
                if not key.endswith(".json"):
                    continue
                data = await self._load(key)
                # Deleted between list and get
                if data is not None:
                    yield data

            if not response.get("IsTruncated", False):
                break

            continuation_token = response.get("NextContinuationToken")

    async def _load(self, key: str) -> dict | None:
        try:
            response = await self.s3_client.get_object(
                Bucket=self.bucket_name,
                Key=key,
            )
            body = await response["Body"].read()
        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchKey":
                return None
            raise S3OperationError(
                f"Failed to load {key}: {e}",
                operation="get_object",
                key=key,
                original_error=e,
            ) from e
        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise S3OperationError(
                f"Object {key} is not valid JSON: {e}",
                operation="get_object",
                key=key,
                original_error=e,
            ) from e
