"""Composes registered handlers into trigger host callbacks.

For every write of a registered type the composed callbacks run, in order:

1. the user's before-write handler (skipped for bookkeeping writes)
2. the status transition and the migrate handler
3. after the write, the user's after-write handler and, for a record's
   first save, the forced second pass

New records are not migrated on their first save since they have no id
yet. The after-write callback marks them ``NEEDS_SECOND_PASS`` and saves
them again, and that save migrates them.
"""

import asyncio
import logging

from s3migrator.core.status import (
    MIGRATION_KEY,
    MigrationStatus,
    WriteAction,
    check_transition,
    decide_write,
    is_bookkeeping_write,
    needs_second_pass,
    status_after_migration,
)
from s3migrator.migrations.registry import TriggerRegistry
from s3migrator.store.host import (
    TriggerHost,
    TriggerRequest,
    TriggerResponse,
    call_handler,
)
from s3migrator.store.record import Record

logger = logging.getLogger(__name__)


def apply_status(record: Record, target: MigrationStatus) -> None:
    """Move a record's migration status after validating the transition.

    Setting the current status again is allowed and re-marks the field dirty.
    """
    if record.migration_status != target:
        check_transition(record.migration_status, target)
    record.set(MIGRATION_KEY, int(target))


class TriggerComposer:
    """Builds the host callbacks for each registered type."""

    def __init__(self, registry: TriggerRegistry):
        self.registry = registry

    def before_write(self, entity_type):
        handlers = self.registry.lookup(entity_type)
        before_write = handlers.before_write
        migrate = handlers.migrate_on_write

        async def callback(request: TriggerRequest, response: TriggerResponse):
            # Skip the user's handler on the migrator's own status-only saves.
            changed = request.object.dirty_fields()
            should_before_write = before_write is not None and not is_bookkeeping_write(
                changed
            )

            obj = request.object
            previous_status = None
            try:
                maybe_new = None
                if should_before_write:
                    maybe_new = await call_handler(before_write, request)
                obj = maybe_new if isinstance(maybe_new, Record) else request.object

                action = decide_write(
                    obj.migration_status,
                    has_migrate=migrate is not None,
                    is_new=obj.is_new(),
                )
                if action is WriteAction.MIGRATE:
                    previous_status = obj.field_state(MIGRATION_KEY)
                    apply_status(obj, status_after_migration(obj.migration_status))
                    # Migrate handlers must not change the record's fields.
                    await call_handler(migrate, obj)
            except Exception as e:
                # A rejected write leaves the record as the caller had it.
                if previous_status is not None:
                    obj.restore_field(MIGRATION_KEY, previous_status)
                logger.error(
                    f"before_write for {request.type_name} '{request.object.id}' failed: {e}"
                )
                return response.error(e)

            return response.success(obj)

        return callback

    def after_write(self, entity_type):
        handlers = self.registry.lookup(entity_type)
        after_write = handlers.after_write
        migrate = handlers.migrate_on_write

        async def maybe_touch(obj: Record) -> None:
            if not needs_second_pass(
                obj.migration_status,
                existed=obj.existed(),
                has_migrate=migrate is not None,
            ):
                return
            apply_status(obj, MigrationStatus.NEEDS_SECOND_PASS)
            await obj.save()

        async def callback(request: TriggerRequest):
            # The write is committed; run both at once and only log failures.
            if after_write is None:
                return await maybe_touch(request.object)
            results = await asyncio.gather(
                call_handler(after_write, request),
                maybe_touch(request.object),
                return_exceptions=True,
            )
            for step, result in zip(("after_write handler", "second pass"), results):
                if isinstance(result, BaseException):
                    logger.error(
                        f"{step} for {request.type_name} '{request.object.id}' failed: {result}"
                    )

        return callback

    def before_delete(self, entity_type):
        handlers = self.registry.lookup(entity_type)
        before_delete = handlers.before_delete
        migrate_delete = handlers.migrate_on_delete

        async def callback(request: TriggerRequest, response: TriggerResponse):
            try:
                if before_delete is not None:
                    await call_handler(before_delete, request)
                if migrate_delete is not None:
                    await call_handler(migrate_delete, request.object)
            except Exception as e:
                logger.error(
                    f"before_delete for {request.type_name} '{request.object.id}' failed: {e}"
                )
                return response.error(e)
            return response.success()

        return callback

    def after_delete(self, entity_type):
        after_delete = self.registry.lookup(entity_type).after_delete

        async def callback(request: TriggerRequest):
            if after_delete is not None:
                return await call_handler(after_delete, request)

        return callback

    def install(self, host: TriggerHost) -> int:
        """Register the composed callbacks with a host.

        Only callbacks that have something to do are installed.

        Returns:
            Number of callbacks installed
        """
        installed = 0
        for name, handlers in self.registry.items():
            if handlers.before_write is not None or handlers.migrate_on_write is not None:
                host.register_before_write(name, self.before_write(name))
                installed += 1
            if handlers.after_write is not None or handlers.migrate_on_write is not None:
                host.register_after_write(name, self.after_write(name))
                installed += 1
            if handlers.before_delete is not None or handlers.migrate_on_delete is not None:
                host.register_before_delete(name, self.before_delete(name))
                installed += 1
            if handlers.after_delete is not None:
                host.register_after_delete(name, self.after_delete(name))
                installed += 1
            logger.debug(
                f"Installed triggers for {name}: "
                f"{[k.value for k in handlers.registered_kinds()]}"
            )
        return installed
