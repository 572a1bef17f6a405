"""Trigger host for record writes and deletes.

The host keeps, per entity type, the callback to run before and after each
write and delete, plus named background jobs. ``RecordStore`` drives it on
every save and delete. Before-callbacks answer through a ``TriggerResponse``
and may veto the operation; after-callbacks run once the operation is
committed and have nobody to report to.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from s3migrator.core.exceptions import JobNotFoundError, TriggerRejectedError
from s3migrator.store.record import Record

logger = logging.getLogger(__name__)


class TriggerEvent(str, Enum):
    """Events the host can run callbacks for."""

    BEFORE_WRITE = "before_write"
    AFTER_WRITE = "after_write"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"


@dataclass
class TriggerRequest:
    """What a trigger callback receives about the operation in flight."""

    object: Record
    type_name: str
    event: TriggerEvent


class TriggerResponse:
    """Response sink handed to before-callbacks.

    Exactly one of ``success`` or ``error`` must be called.
    """

    def __init__(self):
        self.responded = False
        self.object: Record | None = None
        self.error_value: Any = None
        self.failed = False

    def success(self, obj: Record | None = None) -> None:
        self._settle()
        self.object = obj

    def error(self, err: Any) -> None:
        self._settle()
        self.failed = True
        self.error_value = err

    def _settle(self) -> None:
        if self.responded:
            raise RuntimeError("Trigger response was already sent")
        self.responded = True


@runtime_checkable
class JobStatus(Protocol):
    """Status sink for background jobs."""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingJobStatus:
    """JobStatus that writes to the log and remembers the outcome."""

    def __init__(self, job_logger: logging.Logger | None = None):
        self._logger = job_logger or logger
        self.message: str | None = None
        self.succeeded: bool | None = None

    def success(self, message: str) -> None:
        self.message = message
        self.succeeded = True
        self._logger.info(message)

    def error(self, message: str) -> None:
        self.message = message
        self.succeeded = False
        self._logger.error(message)


BeforeCallback = Callable[[TriggerRequest, TriggerResponse], Any]
AfterCallback = Callable[[TriggerRequest], Any]
JobCallback = Callable[[JobStatus], Awaitable[Any]]


async def call_handler(handler: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async handler and return its result."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class TriggerHost:
    """Registry of per-type trigger callbacks and named jobs.

    Example:
        >>> host = TriggerHost()
        >>> host.register_before_write("Widget", callback)
        >>> store = RecordStore(s3_client, "bucket", host=host)
        >>> await store.create("Widget", {"name": "gear"})  # runs callback
    """

    def __init__(self):
        self._triggers: dict[tuple[TriggerEvent, str], Callable[..., Any]] = {}
        self._jobs: dict[str, JobCallback] = {}

    def _register(
        self,
        event: TriggerEvent,
        type_name: str,
        callback: Callable[..., Any],
    ) -> None:
        key = (event, type_name)
        if key in self._triggers:
            logger.warning(f"Replacing {event.value} trigger for {type_name}")
        self._triggers[key] = callback

    def register_before_write(self, type_name: str, callback: BeforeCallback) -> None:
        self._register(TriggerEvent.BEFORE_WRITE, type_name, callback)

    def register_after_write(self, type_name: str, callback: AfterCallback) -> None:
        self._register(TriggerEvent.AFTER_WRITE, type_name, callback)

    def register_before_delete(self, type_name: str, callback: BeforeCallback) -> None:
        self._register(TriggerEvent.BEFORE_DELETE, type_name, callback)

    def register_after_delete(self, type_name: str, callback: AfterCallback) -> None:
        self._register(TriggerEvent.AFTER_DELETE, type_name, callback)

    def register_job(self, name: str, callback: JobCallback) -> None:
        if name in self._jobs:
            logger.warning(f"Replacing job {name}")
        self._jobs[name] = callback

    def has_trigger(self, event: TriggerEvent, type_name: str) -> bool:
        return (event, type_name) in self._triggers

    def get_trigger(self, event: TriggerEvent, type_name: str) -> Callable[..., Any] | None:
        return self._triggers.get((event, type_name))

    @property
    def jobs(self) -> list[str]:
        return sorted(self._jobs)

    async def _run_before(self, event: TriggerEvent, record: Record) -> TriggerResponse | None:
        callback = self._triggers.get((event, record.type_name))
        if callback is None:
            return None

        request = TriggerRequest(object=record, type_name=record.type_name, event=event)
        response = TriggerResponse()
        try:
            await call_handler(callback, request, response)
        except Exception as e:
            raise TriggerRejectedError(event.value, record.type_name, e) from e

        if not response.responded:
            raise TriggerRejectedError(
                event.value, record.type_name, "trigger finished without responding"
            )
        if response.failed:
            err = response.error_value
            cause = err if isinstance(err, BaseException) else None
            raise TriggerRejectedError(event.value, record.type_name, err) from cause
        return response

    async def _run_after(self, event: TriggerEvent, record: Record) -> None:
        callback = self._triggers.get((event, record.type_name))
        if callback is None:
            return

        request = TriggerRequest(object=record, type_name=record.type_name, event=event)
        try:
            await call_handler(callback, request)
        except Exception as e:
            # The operation is already committed; there is no caller to fail.
            logger.error(
                f"{event.value} trigger for {record.type_name} '{record.id}' failed: {e}"
            )

    async def run_before_write(self, record: Record) -> Record:
        """Run the before-write callback for a record.

        Returns:
            The record to persist; either ``record`` or a replacement

        Raises:
            TriggerRejectedError: If the callback fails the write
        """
        response = await self._run_before(TriggerEvent.BEFORE_WRITE, record)
        if response is not None and isinstance(response.object, Record):
            return response.object
        return record

    async def run_after_write(self, record: Record) -> None:
        await self._run_after(TriggerEvent.AFTER_WRITE, record)

    async def run_before_delete(self, record: Record) -> None:
        """Run the before-delete callback for a record.

        Raises:
            TriggerRejectedError: If the callback fails the delete
        """
        await self._run_before(TriggerEvent.BEFORE_DELETE, record)

    async def run_after_delete(self, record: Record) -> None:
        await self._run_after(TriggerEvent.AFTER_DELETE, record)

    async def run_job(self, name: str, status: JobStatus | None = None) -> Any:
        """Run a registered job.

        Args:
            name: The job name
            status: Status sink for the job (logs if omitted)

        Returns:
            Whatever the job returns

        Raises:
            JobNotFoundError: If no job is registered under ``name``
        """
        callback = self._jobs.get(name)
        if callback is None:
            raise JobNotFoundError(name)
        logger.info(f"Running job {name}")
        return await callback(status or LoggingJobStatus())
