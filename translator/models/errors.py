"""
Error taxonomy for pipeline loading, caching and inference.
"""

from dataclasses import dataclass
from typing import Optional


class PipelineError(Exception):
    """Base class for all translator errors."""
    pass


class LoadError(PipelineError):
    """Raised when a pipeline could not be constructed for a cache key."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class LoadTimeoutError(LoadError):
    """Raised when a pipeline load exceeds its time budget."""

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Model loading timeout after {timeout:g}s for {key} pipeline", key=key)
        self.timeout = timeout


class CooldownError(PipelineError):
    """Raised while a recent load failure for a key is still cooling down."""

    def __init__(self, key: str, error_message: str, retry_after: float):
        super().__init__(f"Recent error loading {key} pipeline: {error_message}")
        self.key = key
        self.error_message = error_message
        self.retry_after = retry_after


class InferenceError(PipelineError):
    """Raised when backend output does not match the expected result shape."""
    pass


class ServiceError(PipelineError):
    """User-presentable failure raised by the application services."""
    pass


@dataclass
class CandidateFailure:
    """Structured record of one failed candidate attempt."""
    candidate: str
    error_type: str
    message: str
    resource_exhaustion: bool = False

    def __str__(self) -> str:
        kind = "resource" if self.resource_exhaustion else "error"
        return f"[{self.candidate}] {self.error_type} ({kind}): {self.message}"
