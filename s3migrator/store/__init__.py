"""Record storage on S3.

Records are JSON objects grouped by entity type. The store runs the trigger
host's callbacks around every save and delete, which is how the migrator
hooks into normal traffic.
"""

from s3migrator.store.host import (
    JobStatus,
    LoggingJobStatus,
    TriggerEvent,
    TriggerHost,
    TriggerRequest,
    TriggerResponse,
)
from s3migrator.store.query import Filter, FilterOperator, RecordQuery
from s3migrator.store.record import Record
from s3migrator.store.service import RecordStore

__all__ = [
    "Filter",
    "FilterOperator",
    "JobStatus",
    "LoggingJobStatus",
    "Record",
    "RecordQuery",
    "RecordStore",
    "TriggerEvent",
    "TriggerHost",
    "TriggerRequest",
    "TriggerResponse",
]
