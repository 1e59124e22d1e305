"""
Custom exceptions for the sync engine with structured error context.

Every error raised by a provider client, normalizer or sink derives from
SyncException. The orchestrator catches them per source and turns them
into a failed (or, for ConfigMissing, a disabled) result.

Exception Hierarchy:
    SyncException (base)
    ├── ConfigMissing
    ├── ExtractionError
    │   ├── ProviderUnavailable
    │   └── ProviderLogicError
    ├── TransformationError
    │   └── NormalizationError
    ├── LoadError
    │   └── SinkWriteError
    └── CursorError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, status code, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigMissing(SyncException):
    """
    Raised when a source's required credentials or settings are absent.

    Not a failure: the orchestrator reports the source as disabled so that
    optional integrations can be left unconfigured.

    Context should include:
        - source: Source identifier
        - missing: Names of the missing settings
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(SyncException):
    """Base exception for provider fetch failures."""
    pass


class ProviderUnavailable(ExtractionError):
    """
    Non-success HTTP status without a parseable error body, a transport
    failure, or a malformed response.

    Context should include:
        - provider: Provider name
        - url: Request URL
        - status_code: HTTP status code (if any)
        - response_body: Response body (truncated)
    """
    pass


class ProviderLogicError(ExtractionError):
    """
    The provider answered with its documented error payload. The message
    is the provider's own text, unmodified.
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(SyncException):
    """Base exception for normalization failures."""
    pass


class NormalizationError(TransformationError):
    """
    Raised when a raw record cannot be mapped to its canonical shape.

    Context should include:
        - source: Source identifier
        - record_id: Provider identifier of the record (if known)
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(SyncException):
    """Base exception for sink failures."""
    pass


class SinkWriteError(LoadError):
    """
    The backing store rejected or could not complete a batch write.

    Context should include:
        - collection: Target collection
        - backend: Sink backend name
        - rows: Number of rows in the batch
    """
    pass


# ============================================================================
# Cursor Errors
# ============================================================================

class CursorError(SyncException):
    """
    Raised when the cursor store cannot be read or written.

    Context should include:
        - source: Source identifier
        - operation: "get" or "set"
    """
    pass
