"""Custom exceptions for s3migrator.

This module provides a hierarchy of exceptions with helpful error messages
to make debugging migrations easier for developers.
"""


class S3MigratorError(Exception):
    """Base exception for all s3migrator errors.

    All s3migrator exceptions inherit from this class, making it easy
    to catch all framework-specific errors.
    """

    def __init__(self, message: str, hint: str | None = None):
        """Initialize the exception.

        Args:
            message: The error message
            hint: Optional hint for resolving the error
        """
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class S3ConnectionError(S3MigratorError):
    """Raised when there is an error connecting to S3."""

    def __init__(
        self,
        message: str | None = None,
        original_error: Exception | None = None,
        endpoint: str | None = None,
    ):
        """Initialize the connection error.

        Args:
            message: Custom error message (optional)
            original_error: The original exception that caused this error
            endpoint: The S3 endpoint URL being connected to
        """
        self.original_error = original_error
        self.endpoint = endpoint

        if message:
            final_message = message
            hint = None
        elif original_error:
            final_message, hint = self._format_error(original_error, endpoint)
        else:
            final_message = "Failed to connect to S3"
            hint = "Check your AWS credentials and network connection."

        super().__init__(final_message, hint)

    def _format_error(
        self, error: Exception, endpoint: str | None
    ) -> tuple[str, str | None]:
        """Format the error message based on the underlying error."""
        error_str = str(error)

        if "Could not connect" in error_str or "Connection refused" in error_str:
            if endpoint and "localhost" in endpoint:
                return (
                    f"Could not connect to S3 at {endpoint}",
                    "If using LocalStack, ensure it's running: docker run -d -p 4566:4566 localstack/localstack",
                )
            return (
                f"Could not connect to S3 at {endpoint or 'AWS'}",
                "Check your network connection and AWS endpoint configuration.",
            )

        if "InvalidAccessKeyId" in error_str:
            return (
                "Invalid AWS access key ID",
                "Check your AWS_ACCESS_KEY_ID environment variable.",
            )

        if "AccessDenied" in error_str:
            return (
                "Access denied to AWS resources",
                "Check your IAM permissions for S3 access.",
            )

        return (f"S3 connection error: {error}", None)


class S3OperationError(S3MigratorError):
    """Raised when an S3 operation fails (query, save or delete)."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        key: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the operation error.

        Args:
            message: The error message
            operation: The S3 operation that failed (e.g., 'put_object')
            key: The S3 key involved in the operation
            original_error: The original exception
        """
        self.operation = operation
        self.key = key
        self.original_error = original_error

        hint = None
        if "NoSuchKey" in message:
            hint = f"The object at key '{key}' does not exist."
        elif "NoSuchBucket" in message:
            hint = "The specified bucket does not exist."
        elif "AccessDenied" in message:
            hint = "Check your IAM permissions for this operation."

        super().__init__(message, hint)


class S3ConfigurationError(S3MigratorError):
    """Raised when s3migrator configuration is invalid."""

    def __init__(
        self,
        message: str | None = None,
        missing_fields: list[str] | None = None,
    ):
        """Initialize the configuration error.

        Args:
            message: Custom error message
            missing_fields: List of missing configuration fields
        """
        self.missing_fields = missing_fields or []

        if missing_fields:
            fields_str = ", ".join(missing_fields)
            message = f"Missing required configuration: {fields_str}"
            hint = "Set these as environment variables or in your .env file."
        else:
            hint = "Check your s3migrator configuration."

        super().__init__(message or "Invalid s3migrator configuration", hint)


class DuplicateHandlerError(S3MigratorError):
    """Raised when a second handler of one kind is registered for a type.

    This is a programming error: it is raised during registration and is
    meant to abort process startup.
    """

    def __init__(self, type_name: str, kind: str):
        self.type_name = type_name
        self.kind = kind
        super().__init__(
            f"Already registered a {kind} handler for {type_name}",
            "Each entity type accepts at most one handler per event kind. "
            "Combine the logic into a single function.",
        )


class InvalidTransitionError(S3MigratorError):
    """Raised when a record's migration status would move illegally."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        current_name = current.name if current is not None else "NONE"
        super().__init__(
            f"Illegal migration status transition {current_name} -> {target.name}"
        )


class TriggerRejectedError(S3MigratorError):
    """Raised when a before-write or before-delete trigger fails the operation.

    The write or delete is not committed. The exception raised by the
    handler is available as ``original_error`` and as ``__cause__``.
    """

    def __init__(
        self,
        event: str,
        type_name: str,
        original_error: BaseException | str | None = None,
    ):
        self.event = event
        self.type_name = type_name
        self.original_error = original_error
        detail = f": {original_error}" if original_error is not None else ""
        super().__init__(f"{event} trigger for {type_name} rejected the operation{detail}")


class MigrationHandlerError(S3MigratorError):
    """Raised when a migrate handler fails during the import sweep."""

    def __init__(
        self,
        type_name: str,
        record_id: str | None,
        original_error: Exception,
    ):
        self.type_name = type_name
        self.record_id = record_id
        self.original_error = original_error
        super().__init__(
            f"Migration of {type_name} '{record_id}' failed: {original_error}",
            "The record keeps its previous status and is retried by the next import pass.",
        )


class JobNotFoundError(S3MigratorError):
    """Raised when running a job that was never registered with the host."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"No job registered under '{name}'",
            "Call Migrator.export_triggers() before running the import job.",
        )
