"""Pytest fixtures for s3migrator testing.

To use these fixtures, add to your conftest.py:

    pytest_plugins = ["s3migrator.testing.fixtures"]
"""

import pytest

from s3migrator.core.settings import MigratorSettings
from s3migrator.migrations.migrator import Migrator
from s3migrator.store.host import TriggerHost
from s3migrator.store.service import RecordStore
from s3migrator.testing.mocks import InMemoryS3
from s3migrator.testing.utils import CollectingJobStatus, create_test_settings


@pytest.fixture
def migrator_settings() -> MigratorSettings:
    """Provide test settings for s3migrator."""
    return create_test_settings()


@pytest.fixture
def mock_s3() -> InMemoryS3:
    """Provide in-memory S3 mock."""
    s3 = InMemoryS3()
    yield s3
    s3.clear()


@pytest.fixture
def s3_test_bucket() -> str:
    """Provide test bucket name."""
    return "test-bucket"


@pytest.fixture
def s3_base_path() -> str:
    """Provide test base path."""
    return "test/"


@pytest.fixture
def trigger_host() -> TriggerHost:
    return TriggerHost()


@pytest.fixture
def record_store(
    mock_s3: InMemoryS3,
    s3_test_bucket: str,
    s3_base_path: str,
    trigger_host: TriggerHost,
) -> RecordStore:
    """Provide a RecordStore backed by the in-memory S3 mock."""
    return RecordStore(
        mock_s3,
        s3_test_bucket,
        host=trigger_host,
        base_path=s3_base_path,
    )


@pytest.fixture
def migrator() -> Migrator:
    """Provide a Migrator with no handlers registered."""
    return Migrator()


@pytest.fixture
def job_status() -> CollectingJobStatus:
    return CollectingJobStatus()


@pytest.fixture
def record_factory():
    """Provide a record factory creator.

    Example:
        def test_something(record_factory):
            widgets = record_factory("Widget")
            data = widgets.build()
    """
    from s3migrator.testing.factories import RecordFactory

    def _create_factory(type_name, **defaults):
        return RecordFactory(type_name, defaults=defaults, seed=1234)

    return _create_factory
