"""Exceptions for the managed index client.

This module defines the exception hierarchy used across the package so that
callers can tell configuration mistakes, ingestion outcomes and remote service
failures apart.
"""

from typing import Any


class CloudIndexError(Exception):
    """Base exception class for all cloudindex-specific exceptions.

    All package exceptions inherit from this class to allow for consistent
    error handling and identification.
    """

    def __init__(self, message: str, *, error_code: str | None = None, context: dict[str, Any] | None = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Optional machine-readable error code
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}


# Configuration and Initialization Errors
class ConfigurationError(CloudIndexError):
    """Base class for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Exception raised when configuration values are invalid."""

    def __init__(self, config_key: str, value: Any, expected: str):
        """Initialize the exception.

        Args:
            config_key: The configuration key that is invalid
            value: The invalid value that was provided
            expected: Description of what was expected
        """
        self.config_key = config_key
        self.value = value
        self.expected = expected
        super().__init__(
            f"Invalid configuration for '{config_key}': got {value}, expected {expected}",
            error_code="INVALID_CONFIG",
            context={"config_key": config_key, "value": value, "expected": expected}
        )


class MissingConfigurationError(ConfigurationError):
    """Exception raised when required configuration is missing."""

    def __init__(self, config_key: str):
        """Initialize the exception.

        Args:
            config_key: The missing configuration key
        """
        self.config_key = config_key
        super().__init__(
            f"Missing required configuration: '{config_key}'",
            error_code="MISSING_CONFIG",
            context={"config_key": config_key}
        )


class MissingProjectIdError(ConfigurationError):
    """Exception raised when the service returns a project without an ID."""

    def __init__(self, project_name: str):
        self.project_name = project_name
        super().__init__(
            f"Project ID should be defined (project: '{project_name}')",
            error_code="MISSING_PROJECT_ID",
            context={"project_name": project_name}
        )


class MissingPipelineIdError(ConfigurationError):
    """Exception raised when the service returns a pipeline without an ID."""

    def __init__(self, pipeline_name: str, project_id: str | None = None):
        self.pipeline_name = pipeline_name
        self.project_id = project_id
        super().__init__(
            f"Pipeline ID must be defined (pipeline: '{pipeline_name}')",
            error_code="MISSING_PIPELINE_ID",
            context={"pipeline_name": pipeline_name, "project_id": project_id}
        )


class PipelineNotInitializedError(ConfigurationError):
    """Exception raised when a pipeline-scoped operation runs without a pipeline ID."""

    def __init__(self, operation: str):
        """Initialize the exception.

        Args:
            operation: The pipeline-scoped operation that was attempted
        """
        self.operation = operation
        super().__init__(
            f"Pipeline ID must be defined to {operation}. "
            "Create the index from documents or pass a pipeline_id.",
            error_code="PIPELINE_NOT_INITIALIZED",
            context={"operation": operation}
        )


# Ingestion Errors
class IngestionError(CloudIndexError):
    """Base class for ingestion outcome errors."""
    pass


class IngestionFailedError(IngestionError):
    """Exception raised when the remote pipeline reports an ingestion error."""

    def __init__(self, pipeline_id: str, deep_link: str | None = None, *, details: list[Any] | None = None):
        """Initialize the exception.

        Args:
            pipeline_id: ID of the pipeline whose ingestion failed
            deep_link: URL of the pipeline page holding the ingestion logs
            details: Optional error details reported by the service
        """
        self.pipeline_id = pipeline_id
        self.deep_link = deep_link
        self.details = details or []

        error_msg = "Some documents failed to ingest"
        if deep_link:
            error_msg += f", check your pipeline logs at {deep_link}"

        super().__init__(
            error_msg,
            error_code="INGESTION_FAILED",
            context={"pipeline_id": pipeline_id, "deep_link": deep_link, "details": self.details}
        )


class IngestionTimeoutError(IngestionError):
    """Exception raised when polling gives up before a terminal status."""

    def __init__(self, pipeline_id: str, attempts: int, elapsed_seconds: float, deep_link: str | None = None):
        """Initialize the exception.

        Args:
            pipeline_id: ID of the pipeline that was being polled
            attempts: Number of status requests that were made
            elapsed_seconds: Time spent polling
            deep_link: URL of the pipeline page
        """
        self.pipeline_id = pipeline_id
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        self.deep_link = deep_link

        error_msg = (
            f"Ingestion did not finish after {attempts} status checks "
            f"({elapsed_seconds:.1f}s)"
        )
        if deep_link:
            error_msg += f", follow its progress at {deep_link}"

        super().__init__(
            error_msg,
            error_code="INGESTION_TIMEOUT",
            context={
                "pipeline_id": pipeline_id,
                "attempts": attempts,
                "elapsed_seconds": elapsed_seconds,
                "deep_link": deep_link,
            }
        )


# External Service Errors
class ExternalServiceError(CloudIndexError):
    """Base class for external service-related errors."""
    pass


class APIError(ExternalServiceError):
    """Exception raised when the remote API answers with an error status."""

    def __init__(self, service: str, operation: str, message: str = "", *, status_code: int | None = None, original_error: Exception | None = None):
        """Initialize the exception.

        Args:
            service: Name of the external service
            operation: The operation that failed (e.g., 'upsert_project')
            message: Additional error message details
            status_code: HTTP status code if applicable
            original_error: The original exception that caused this error
        """
        self.service = service
        self.operation = operation
        self.status_code = status_code
        self.original_error = original_error

        error_msg = f"{service} API error during {operation}"
        if status_code:
            error_msg += f" (status: {status_code})"
        if message:
            error_msg += f": {message}"
        if original_error:
            error_msg += f" (caused by: {type(original_error).__name__}: {original_error})"

        super().__init__(
            error_msg,
            error_code="API_ERROR",
            context={
                "service": service,
                "operation": operation,
                "status_code": status_code,
                "original_error": str(original_error) if original_error else None
            }
        )
