"""The import job: bulk migration of historical records.

Each invocation sweeps every type that has a migrate-on-write handler,
one type at a time, in batches of ``batch_size`` records that have not
reached a migrated status. The job stops at a deadline so it never overruns
the host's time limit; the next invocation picks up wherever the previous
one stopped, since progress is stored in each record's status field.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from s3migrator.core.exceptions import MigrationHandlerError
from s3migrator.core.status import (
    BATCH_SIZE,
    MAXIMUM_DURATION,
    MIGRATION_KEY,
    SWEEP_EXCLUDED_STATUSES,
    MigrationStatus,
)
from s3migrator.migrations.composer import apply_status
from s3migrator.migrations.registry import Handler, TriggerRegistry
from s3migrator.store.host import JobStatus, call_handler
from s3migrator.store.record import Record
from s3migrator.store.service import RecordStore

logger = logging.getLogger(__name__)

INITIAL_IMPORT_MESSAGE = "Completed initial import!"
IMPORT_PASS_MESSAGE = "Done with an import pass"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SweepReport:
    """Outcome of one import pass.

    Attributes:
        total: Records migrated by this pass
        per_type: Records migrated per entity type
        deadline_reached: Whether the pass stopped early at the deadline
    """

    total: int = 0
    per_type: dict[str, int] = field(default_factory=dict)
    deadline_reached: bool = False

    @property
    def message(self) -> str:
        # A pass that finds nothing left means the first full pass is done.
        if self.total == 0:
            return INITIAL_IMPORT_MESSAGE
        return IMPORT_PASS_MESSAGE


class SweepDriver:
    """Runs deadline-bounded import passes over a RecordStore.

    Example:
        >>> driver = SweepDriver(store, registry, batch_size=500)
        >>> report = await driver.sweep()
        >>> report.total
        1200
    """

    def __init__(
        self,
        store: RecordStore,
        registry: TriggerRegistry,
        batch_size: int = BATCH_SIZE,
        max_duration: timedelta = MAXIMUM_DURATION,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the driver.

        Args:
            store: Store holding the records to migrate
            registry: Registry providing migrate-on-write handlers
            batch_size: Records fetched and migrated per batch
            max_duration: Wall-clock budget of one pass
            clock: Returns the current time (timezone-aware)
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.registry = registry
        self.batch_size = batch_size
        self.max_duration = max_duration
        self._clock = clock
        self._deadline_hit = False

    def deadline(self) -> datetime:
        return self._clock() + self.max_duration

    async def run(self, status: JobStatus) -> int:
        """Job entry point: run one pass and report through ``status``.

        Returns:
            Number of records migrated by this pass

        Raises:
            Exception: Whatever aborted the pass, after reporting it
        """
        try:
            report = await self.sweep()
        except Exception as e:
            logger.error(f"Import pass failed: {e}")
            status.error(str(e))
            raise

        logger.info(report.message)
        status.success(report.message)
        return report.total

    async def sweep(self, deadline: datetime | None = None) -> SweepReport:
        """Migrate every registered type, one type at a time.

        Args:
            deadline: Stop time for the pass (now + max_duration if omitted)

        Returns:
            SweepReport for the pass
        """
        if deadline is None:
            deadline = self.deadline()
        self._deadline_hit = False

        logger.info("Starting import pass")
        report = SweepReport()
        migrations: list[tuple[str, Handler]] = []
        for name, handlers in self.registry.items():
            if handlers.migrate_on_write is None:
                logger.info(f"{name} has no migration function; nothing to import")
                continue
            logger.info(f"Will import type {name}")
            migrations.append((name, handlers.migrate_on_write))

        # Sequential on purpose: one type's batch in flight at a time.
        for name, migrate in migrations:
            logger.info(f"Starting import of type {name}")
            migrated = await self.migrate_type(name, migrate, deadline)
            report.per_type[name] = migrated
            report.total += migrated

        report.deadline_reached = self._deadline_hit
        return report

    async def migrate_type(
        self,
        type_name: str,
        migrate: Handler,
        deadline: datetime,
    ) -> int:
        """Migrate batches of one type until exhausted or out of time.

        Returns:
            Number of records migrated
        """
        total = 0
        while True:
            # Checked between batches only; a started batch always finishes.
            if self._clock() > deadline:
                logger.info(
                    f"Deadline reached while importing {type_name}; "
                    "shutting down to avoid an unclean exit"
                )
                self._deadline_hit = True
                return total

            # No sort: with one, the not-in filter gets slower as more records
            # are migrated, until a pass can time out without migrating any.
            records = await (
                self.store.query(type_name)
                .not_contained_in(MIGRATION_KEY, SWEEP_EXCLUDED_STATUSES)
                .limit(self.batch_size)
                .find()
            )
            await self._migrate_batch(type_name, records, migrate)
            total += len(records)
            logger.info(f"Migrated batch of {len(records)} {type_name} records")

            if len(records) < self.batch_size:
                logger.info(f"Done migrating type {type_name}")
                return total

    async def _migrate_batch(
        self,
        type_name: str,
        records: list[Record],
        migrate: Handler,
    ) -> None:
        # Wait for the whole batch before surfacing the first failure.
        results = await asyncio.gather(
            *(self._migrate_record(type_name, record, migrate) for record in records),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _migrate_record(
        self,
        type_name: str,
        record: Record,
        migrate: Handler,
    ) -> None:
        try:
            await call_handler(migrate, record)
        except Exception as e:
            raise MigrationHandlerError(type_name, record.id, e) from e
        apply_status(record, MigrationStatus.IS_MIGRATED)
        await record.save()
