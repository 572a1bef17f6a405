"""Testing utilities for s3migrator applications.

This module provides utilities for testing migrations, including a mock
S3 client, test fixtures, and record factories.

Usage in conftest.py:
    from s3migrator.testing import mock_s3_client

    @pytest.fixture
    def s3_client():
        with mock_s3_client() as client:
            yield client

Or use provided fixtures directly:
    pytest_plugins = ["s3migrator.testing.fixtures"]
"""

from s3migrator.testing.mocks import InMemoryS3, mock_s3_client
from s3migrator.testing.factories import RecordFactory, factory_for
from s3migrator.testing.utils import (
    CollectingJobStatus,
    MigratorTestCase,
    create_test_settings,
)

__all__ = [
    "InMemoryS3",
    "mock_s3_client",
    "RecordFactory",
    "factory_for",
    "CollectingJobStatus",
    "MigratorTestCase",
    "create_test_settings",
]
