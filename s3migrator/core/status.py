"""Migration status state machine.

Every record managed by s3migrator carries an integer ``migrationStatus``
field. An absent field means the record was never touched by the migrator.

    NONE ──(first save, migrate registered)──> NEEDS_SECOND_PASS
    NEEDS_SECOND_PASS ──(before-write migrates)──> FINISHED_SECOND_PASS
    NONE ──(before-write or import sweep migrates)──> IS_MIGRATED

``IS_MIGRATED`` and ``FINISHED_SECOND_PASS`` are stable: a write never
re-runs the migrate handler once either is reached. This module holds no
I/O; the composer and the sweep consult it to decide what to do.
"""

from datetime import timedelta
from enum import Enum, IntEnum
from typing import Any, Iterable

from s3migrator.core.exceptions import InvalidTransitionError

# Field used to track the state machine on each record
MIGRATION_KEY = "migrationStatus"

# Number of records queried at once by the import job. Lowered in tests.
BATCH_SIZE = 1000

# Wall-clock budget of one import job invocation. Stays under the host's
# 15 minute job limit so the job always exits cleanly.
MAXIMUM_DURATION = timedelta(minutes=14.5)

IMPORT_JOB_NAME = "import"


class MigrationStatus(IntEnum):
    """Persisted values of the ``migrationStatus`` field."""

    # The record is migrated and stable. Clients may also set this directly
    # to opt a record out of migration.
    IS_MIGRATED = 1

    # A new record finished its forced second pass. Stable, and distinct from
    # IS_MIGRATED so the second pass can be told apart from a real write.
    FINISHED_SECOND_PASS = 2

    # Set after a new record's first save; the follow-up save migrates it
    # with an id available.
    NEEDS_SECOND_PASS = 3


TERMINAL_STATUSES = frozenset(
    {MigrationStatus.IS_MIGRATED, MigrationStatus.FINISHED_SECOND_PASS}
)

# Statuses the import sweep never selects.
SWEEP_EXCLUDED_STATUSES = (
    MigrationStatus.IS_MIGRATED,
    MigrationStatus.FINISHED_SECOND_PASS,
    MigrationStatus.NEEDS_SECOND_PASS,
)

LEGAL_TRANSITIONS: dict[MigrationStatus | None, frozenset[MigrationStatus]] = {
    None: frozenset(
        {MigrationStatus.IS_MIGRATED, MigrationStatus.NEEDS_SECOND_PASS}
    ),
    MigrationStatus.NEEDS_SECOND_PASS: frozenset(
        {MigrationStatus.FINISHED_SECOND_PASS, MigrationStatus.IS_MIGRATED}
    ),
    MigrationStatus.FINISHED_SECOND_PASS: frozenset({MigrationStatus.IS_MIGRATED}),
    MigrationStatus.IS_MIGRATED: frozenset(),
}


class WriteAction(str, Enum):
    """What the before-write trigger does with a record."""

    SKIP = "skip"  # leave the record alone
    DEFER = "defer"  # new record; migrated on the forced second pass
    MIGRATE = "migrate"  # advance the status and run the migrate handler


def parse_status(value: Any) -> MigrationStatus | None:
    """Interpret a stored ``migrationStatus`` value.

    Missing and unrecognised values both mean the record is untouched. Only
    JSON integers count: ``"1"``, ``1.0`` and ``true`` are not statuses.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    try:
        return MigrationStatus(value)
    except ValueError:
        return None


def is_terminal(status: MigrationStatus | None) -> bool:
    return status in TERMINAL_STATUSES


def is_bookkeeping_write(changed_fields: Iterable[str]) -> bool:
    """Return True when a write only touches the migration status field.

    Bookkeeping writes are issued by the migrator itself and must not run
    user before-write handlers again.
    """
    changed = set(changed_fields)
    return changed == {MIGRATION_KEY}


def decide_write(
    status: MigrationStatus | None,
    has_migrate: bool,
    is_new: bool,
) -> WriteAction:
    """Decide how the before-write trigger treats a record.

    Args:
        status: The record's current migration status
        has_migrate: Whether a migrate-on-write handler is registered
        is_new: Whether the record has never been persisted

    Returns:
        The action to take
    """
    if not has_migrate or is_terminal(status):
        return WriteAction.SKIP
    if is_new:
        # No id yet; the after-write trigger forces a second pass.
        return WriteAction.DEFER
    return WriteAction.MIGRATE


def status_after_migration(status: MigrationStatus | None) -> MigrationStatus:
    if status == MigrationStatus.NEEDS_SECOND_PASS:
        return MigrationStatus.FINISHED_SECOND_PASS
    return MigrationStatus.IS_MIGRATED


def needs_second_pass(
    status: MigrationStatus | None,
    existed: bool,
    has_migrate: bool,
) -> bool:
    """Whether a just-saved record must be marked for a second pass.

    Only a record's first save qualifies. A record created with a terminal
    status has opted out of migration and is left alone.
    """
    return has_migrate and not existed and not is_terminal(status)


def check_transition(
    current: MigrationStatus | None,
    target: MigrationStatus,
) -> MigrationStatus:
    """Validate a status transition.

    Raises:
        InvalidTransitionError: If the move is not allowed
    """
    if target not in LEGAL_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)
    return target
