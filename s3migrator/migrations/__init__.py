"""Online migration of S3-stored records.

Unlike a one-shot migration that rewrites every object at once, records
are migrated as normal traffic writes them, while a deadline-bounded import
job sweeps the rest in repeated passes until the collection converges.
"""

from s3migrator.migrations.composer import TriggerComposer
from s3migrator.migrations.migrator import Migrator
from s3migrator.migrations.registry import (
    EventKind,
    HandlerSet,
    TriggerRegistry,
    type_name,
)
from s3migrator.migrations.sweep import SweepDriver, SweepReport

__all__ = [
    "EventKind",
    "HandlerSet",
    "Migrator",
    "SweepDriver",
    "SweepReport",
    "TriggerComposer",
    "TriggerRegistry",
    "type_name",
]
