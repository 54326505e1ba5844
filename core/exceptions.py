"""
Custom exceptions for schema ingestion with structured error context.

Every exception carries a context dictionary (release, url, batch index, ...)
so callers can decide whether to continue with the remaining releases or
abort the whole run.

Exception Hierarchy:
    SchemaIngestionException (base)
    ├── TransportError
    │   ├── VersionDiscoveryError
    │   └── SwaggerFetchError
    ├── MalformedDocumentError
    ├── PersistenceError
    │   ├── DatabaseError
    │   └── BatchUpsertError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SchemaIngestionException(Exception):
    """
    Base exception for all ingestion-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (release, url, etc.)
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
        self.timestamp = datetime.utcnow()

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


# ============================================================================
# Transport Errors
# ============================================================================

class TransportError(SchemaIngestionException):
    """
    Base exception for failed upstream HTTP calls.

    Context should include:
        - fetch: Which fetch failed ("tag_listing" or "swagger_document")
        - url: The URL that failed
        - status_code: HTTP status code (if applicable)
        - release: Release identifier (for document fetches)
    """
    pass


class VersionDiscoveryError(TransportError):
    """Raised when the upstream tag listing cannot be read."""
    pass


class SwaggerFetchError(TransportError):
    """Raised when a release's swagger.json cannot be downloaded."""
    pass


# ============================================================================
# Document Errors
# ============================================================================

class MalformedDocumentError(SchemaIngestionException):
    """
    Raised when an upstream API document is unusable.

    Context should include:
        - release: Release identifier
        - reason: What was wrong (no definitions, not JSON, ...)
    """
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(SchemaIngestionException):
    """Base exception for catalog store failures."""
    pass


class DatabaseError(PersistenceError):
    """
    Raised when a database operation fails.

    Context should include:
        - operation: Type of database operation (SELECT, UPSERT, INSERT, UPDATE)
        - table_name: Name of the table
    """
    pass


class BatchUpsertError(PersistenceError):
    """
    Raised when one persistence batch fails. Earlier batches stay committed.

    Context should include:
        - release: Release identifier
        - table_name: Table the batch targeted
        - batch_index: Zero-based index of the failing batch
        - batch_size: Rows in the failing batch
        - rows_committed: Rows committed before the failure
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SchemaIngestionException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 503)
    """
    pass


class NonRetryableError(SchemaIngestionException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Unknown release tag (HTTP 404)
    """
    pass


# ============================================================================
# Specific Transport Errors
# ============================================================================

class NetworkError(RetryableError, TransportError):
    """Network-related errors that exhausted their retries."""
    pass


class RateLimitError(RetryableError, TransportError):
    """Rate limiting errors (HTTP 429) that exhausted their retries."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds to wait before retry
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, TransportError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


class ResourceNotFoundError(NonRetryableError, TransportError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass
