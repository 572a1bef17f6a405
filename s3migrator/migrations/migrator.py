"""Migrator: the public entry point for registering migration handlers."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from s3migrator.core.settings import MigratorSettings
from s3migrator.core.status import BATCH_SIZE, IMPORT_JOB_NAME, MAXIMUM_DURATION
from s3migrator.migrations.composer import TriggerComposer
from s3migrator.migrations.registry import EventKind, Handler, HandlerSet, TriggerRegistry
from s3migrator.migrations.sweep import SweepDriver, utcnow
from s3migrator.store.host import JobStatus, LoggingJobStatus, TriggerHost
from s3migrator.store.service import RecordStore

logger = logging.getLogger(__name__)


class Migrator:
    """Migrates records from a legacy behavior to a new one without a cutover.

    Register handlers per entity type, then call ``export_triggers`` to hook
    them into a store's trigger host. Every write of a registered type then
    runs the before-write handler, migrates the record, and runs the
    after-write handler. The ``import`` job migrates records that are not
    written by normal traffic.

    Handlers may be sync or async. Each ``on_*`` method can also be used as a
    decorator:

        >>> migrator = Migrator()
        >>> @migrator.on_migrate_write("Widget")
        ... async def copy_to_new_backend(record):
        ...     await new_backend.put(record.id, record.to_dict())

    Migrate handlers receive the record and must not change its fields; they
    may run more than once for the same record and should be idempotent.
    """

    def __init__(
        self,
        registry: TriggerRegistry | None = None,
        settings: MigratorSettings | None = None,
        batch_size: int | None = None,
        max_duration: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the migrator.

        Args:
            registry: Handler registry (a new one if omitted)
            settings: Settings providing batch size and job duration
            batch_size: Overrides the import job's batch size
            max_duration: Overrides the import job's time budget
            clock: Time source for the import job deadline
        """
        self.registry = registry or TriggerRegistry()
        self.composer = TriggerComposer(self.registry)

        if batch_size is None:
            batch_size = settings.batch_size if settings else BATCH_SIZE
        if max_duration is None:
            max_duration = settings.max_duration if settings else MAXIMUM_DURATION
        self.batch_size = batch_size
        self.max_duration = max_duration
        self.clock = clock or utcnow

    def _register(self, kind: EventKind, entity_type: Any, handler: Handler | None):
        if handler is None:
            def decorator(fn: Handler) -> Handler:
                self.registry.register(entity_type, kind, fn)
                return fn

            return decorator
        self.registry.register(entity_type, kind, handler)
        return handler

    def on_before_write(self, entity_type: Any, handler: Handler | None = None):
        """Register a before-write handler.

        The handler receives the TriggerRequest and may return a Record to
        write instead of ``request.object``.
        """
        return self._register(EventKind.BEFORE_WRITE, entity_type, handler)

    def on_after_write(self, entity_type: Any, handler: Handler | None = None):
        return self._register(EventKind.AFTER_WRITE, entity_type, handler)

    def on_before_delete(self, entity_type: Any, handler: Handler | None = None):
        return self._register(EventKind.BEFORE_DELETE, entity_type, handler)

    def on_after_delete(self, entity_type: Any, handler: Handler | None = None):
        return self._register(EventKind.AFTER_DELETE, entity_type, handler)

    def on_migrate_write(self, entity_type: Any, handler: Handler | None = None):
        """Register the migrate handler run on writes and by the import job."""
        return self._register(EventKind.MIGRATE_ON_WRITE, entity_type, handler)

    def on_migrate_delete(self, entity_type: Any, handler: Handler | None = None):
        """Register the migrate handler run before a record is deleted."""
        return self._register(EventKind.MIGRATE_ON_DELETE, entity_type, handler)

    def handlers(self, entity_type: Any) -> HandlerSet:
        return self.registry.lookup(entity_type)

    def sweep_driver(self, store: RecordStore) -> SweepDriver:
        return SweepDriver(
            store,
            self.registry,
            batch_size=self.batch_size,
            max_duration=self.max_duration,
            clock=self.clock,
        )

    def export_triggers(self, host: TriggerHost, store: RecordStore) -> int:
        """Install composed triggers on ``host`` and register the import job.

        Args:
            host: The trigger host to install callbacks on
            store: Store the import job sweeps

        Returns:
            Number of trigger callbacks installed
        """
        installed = self.composer.install(host)

        async def import_job(status: JobStatus) -> int:
            return await self.sweep_driver(store).run(status)

        host.register_job(IMPORT_JOB_NAME, import_job)
        logger.info(
            f"Exported {installed} triggers for {len(self.registry)} types "
            f"and the {IMPORT_JOB_NAME} job"
        )
        return installed

    async def run_import(
        self,
        store: RecordStore,
        status: JobStatus | None = None,
    ) -> int:
        """Run one import pass directly, without going through a host."""
        return await self.sweep_driver(store).run(status or LoggingJobStatus())
