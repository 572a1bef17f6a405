"""s3migrator: online migration of records stored in S3, without a flag-day cutover."""

__version__ = "0.1.0"

# Core components
from s3migrator.core.client import S3ClientManager
from s3migrator.core.exceptions import (
    DuplicateHandlerError,
    InvalidTransitionError,
    JobNotFoundError,
    MigrationHandlerError,
    S3ConfigurationError,
    S3ConnectionError,
    S3MigratorError,
    S3OperationError,
    TriggerRejectedError,
)
from s3migrator.core.settings import MigratorSettings
from s3migrator.core.status import (
    BATCH_SIZE,
    IMPORT_JOB_NAME,
    MAXIMUM_DURATION,
    MIGRATION_KEY,
    MigrationStatus,
)

# Storage components
from s3migrator.store import (
    JobStatus,
    LoggingJobStatus,
    Record,
    RecordQuery,
    RecordStore,
    TriggerHost,
    TriggerRequest,
    TriggerResponse,
)

# Migration components
from s3migrator.migrations import (
    EventKind,
    HandlerSet,
    Migrator,
    SweepDriver,
    SweepReport,
    TriggerComposer,
    TriggerRegistry,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "S3ClientManager",
    "MigratorSettings",
    "S3MigratorError",
    "S3ConnectionError",
    "S3OperationError",
    "S3ConfigurationError",
    "DuplicateHandlerError",
    "InvalidTransitionError",
    "TriggerRejectedError",
    "MigrationHandlerError",
    "JobNotFoundError",
    "MIGRATION_KEY",
    "BATCH_SIZE",
    "MAXIMUM_DURATION",
    "IMPORT_JOB_NAME",
    "MigrationStatus",
    # Storage
    "Record",
    "RecordQuery",
    "RecordStore",
    "TriggerHost",
    "TriggerRequest",
    "TriggerResponse",
    "JobStatus",
    "LoggingJobStatus",
    # Migrations
    "Migrator",
    "EventKind",
    "HandlerSet",
    "TriggerRegistry",
    "TriggerComposer",
    "SweepDriver",
    "SweepReport",
]
