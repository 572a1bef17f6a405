"""Testing utilities for s3migrator applications."""

from unittest import IsolatedAsyncioTestCase

from s3migrator.core.settings import MigratorSettings
from s3migrator.migrations.migrator import Migrator
from s3migrator.store.host import TriggerHost
from s3migrator.store.service import RecordStore
from s3migrator.testing.mocks import InMemoryS3


def create_test_settings(
    bucket_name: str = "test-bucket",
    base_path: str = "test/",
    **overrides
) -> MigratorSettings:
    """Create s3migrator settings for testing.

    Args:
        bucket_name: The S3 bucket name for tests
        base_path: The S3 base path for tests
        **overrides: Additional settings to override

    Returns:
        MigratorSettings instance configured for testing
    """
    values = {
        "aws_bucket_name": bucket_name,
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "aws_default_region": "us-east-1",
        "aws_url": "http://localhost:4566",
        "s3_base_path": base_path,
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return MigratorSettings(**values)


class CollectingJobStatus:
    """JobStatus that records every message it receives."""

    def __init__(self):
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def message(self) -> str | None:
        if self.errors:
            return self.errors[-1]
        if self.successes:
            return self.successes[-1]
        return None


class MigratorTestCase(IsolatedAsyncioTestCase):
    """Base test case class for s3migrator tests.

    Provides a pre-configured environment with:
    - In-memory S3 mock
    - Test settings
    - A trigger host, a record store and an empty Migrator

    Call ``self.export()`` after registering handlers to install them.

    Example:
        >>> class TestWidgets(MigratorTestCase):
        ...     async def test_migrates_on_update(self):
        ...         self.migrator.on_migrate_write("Widget", migrate_widget)
        ...         self.export()
        ...         widget = await self.store.create("Widget", {"name": "gear"})
    """

    bucket_name: str = "test-bucket"
    base_path: str = "test/"

    def setUp(self) -> None:
        """Set up test fixtures."""
        super().setUp()
        self.s3_client = InMemoryS3()
        self.settings = create_test_settings(
            bucket_name=self.bucket_name,
            base_path=self.base_path,
        )
        self.host = TriggerHost()
        self.store = RecordStore(
            self.s3_client,
            self.bucket_name,
            host=self.host,
            base_path=self.base_path,
        )
        self.migrator = Migrator(settings=self.settings)

    def tearDown(self) -> None:
        """Clean up after test."""
        self.s3_client.clear()
        super().tearDown()

    def export(self) -> int:
        return self.migrator.export_triggers(self.host, self.store)

    def stored(self, type_name: str, record_id: str) -> dict:
        """Return a record's raw stored JSON."""
        data = self.s3_client.get_bucket_data(self.bucket_name)
        return data[f"{self.base_path}{type_name}/{record_id}.json"]
