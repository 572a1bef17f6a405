"""Shared fixtures for the s3migrator test suite."""

pytest_plugins = ["s3migrator.testing.fixtures"]
