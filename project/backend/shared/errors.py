"""
Error handling.

Custom exception classes for consistent error handling across the workflow.
"""

from typing import Optional


# Status codes worth another attempt (request timeout, rate limit, upstream failures)
RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)

NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
HTTP_ERROR = "HTTP_ERROR"


class PipelineError(Exception):
    """Base exception for all workflow errors."""

    def __init__(
        self,
        message: str,
        workflow_id: Optional[str] = None,
        code: Optional[str] = None
    ):
        """
        Initialize pipeline error.

        Args:
            message: Error message
            workflow_id: Optional workflow ID associated with the error
            code: Optional error code for categorization
        """
        self.message = message
        self.workflow_id = workflow_id
        self.code = code
        super().__init__(self.message)


class ConfigError(PipelineError):
    """Configuration errors (missing env vars, invalid settings)."""
    pass


class ValidationError(PipelineError):
    """Input validation errors."""
    pass


class AnalysisError(PipelineError):
    """Video analysis failures."""
    pass


class ScriptGenerationError(PipelineError):
    """AI script generation failures."""
    pass


class SegmentationError(PipelineError):
    """Clip segmentation failures."""
    pass


class ExportError(PipelineError):
    """Timeline export failures."""
    pass


class WorkflowStateError(PipelineError):
    """Operation not allowed in the current workflow state."""
    pass


class WorkflowCancelledError(PipelineError):
    """Raised by long operations that observe the cancel token."""

    def __init__(self, message: str = "Workflow cancelled", workflow_id: Optional[str] = None):
        super().__init__(message, workflow_id, code="CANCELLED")


class ServiceError(PipelineError):
    """
    Normalized error for calls to external services.

    Never mutated after creation.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
        retryable: Optional[bool] = None,
        workflow_id: Optional[str] = None
    ):
        """
        Initialize service error.

        Args:
            message: Error message
            code: NETWORK_ERROR, TIMEOUT, HTTP_ERROR or None when unclassified
            status_code: HTTP status (synthetic 408 for timeouts)
            original_error: Underlying exception, if any
            retryable: Whether the failure is presumed transient
            workflow_id: Optional workflow ID associated with the error
        """
        self.status_code = status_code
        self.original_error = original_error
        self.retryable = retryable
        super().__init__(message, workflow_id, code)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }


def user_message(error: ServiceError) -> str:
    """
    Map a service error to the message shown to users.

    Args:
        error: Normalized service error

    Returns:
        Human readable message keyed by the status code class
    """
    status = error.status_code
    if status == 401:
        return "Authentication failed, check your API key settings"
    if status == 429:
        return "Too many requests, please try again later"
    if status is not None and status >= 500:
        return "Server error, please try again later"
    return error.message


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "NETWORK_ERROR",
    "TIMEOUT",
    "HTTP_ERROR",
    "PipelineError",
    "ConfigError",
    "ValidationError",
    "AnalysisError",
    "ScriptGenerationError",
    "SegmentationError",
    "ExportError",
    "WorkflowStateError",
    "WorkflowCancelledError",
    "ServiceError",
    "user_message",
]
