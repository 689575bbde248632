"""
Pipeline Error Taxonomy

Every error the pipeline raises on purpose derives from PipelineError and
carries the HTTP status the API layer answers with. Transient collaborator
failures are flagged retryable so the retry helpers know what to repeat.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for pipeline errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.__class__.__name__, "detail": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(PipelineError):
    """Malformed input."""

    status_code = 400


class AuthError(PipelineError):
    """Missing or invalid session."""

    status_code = 401

    def __init__(self, message: str, status_code: int = 401, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = status_code


class NotFoundError(PipelineError):
    """Missing project, report, content or rewrite (or one the caller does not own)."""

    status_code = 404


class StateError(PipelineError):
    """Operation is invalid for the current lifecycle state."""

    status_code = 409


class FetchError(PipelineError):
    """Content fetch failed or timed out."""

    status_code = 502
    retryable = True

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, {"url": url, "status": status} if url else None)
        self.url = url
        self.status = status


class GenerationError(PipelineError):
    """LLM call failed or returned output that does not match the schema."""

    status_code = 502
    retryable = True


class LLMNotConfiguredError(GenerationError):
    """No LLM credentials; retrying cannot help."""

    retryable = False



class StorageTimeoutError(PipelineError):
    """Cache or artifact storage did not answer in time."""

    status_code = 504
    retryable = True


class InternalError(PipelineError):
    """Unexpected failure."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", correlation_id: Optional[str] = None):
        super().__init__(message, {"correlation_id": correlation_id} if correlation_id else None)
        self.correlation_id = correlation_id


def is_retryable(error: BaseException) -> bool:
    """Whether an error is a transient collaborator failure."""
    return isinstance(error, PipelineError) and error.retryable
