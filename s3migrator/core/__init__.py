"""Core building blocks: settings, S3 client, exceptions and the status state machine."""
