"""
Centralized error handling for the prospecting pipeline.

Defines the error taxonomy shared by orchestrators and the HTTP layer, and
provides utilities for consistent logging and fallback behavior around
best-effort operations (cache writes, history inserts).

Taxonomy (``error_type`` is the stable discriminator returned to clients):
- SearchValidationError  -> 400 validation_error
- NoResultsError         -> 404 no_results
- SearchTimeoutError     -> 408 timeout
- ProviderTransportError -> 500 <feature>_error
- ProviderConfigurationError -> 503 api_configuration_error
- ExtractionError / RepairFailure are internal: orchestrators convert them
  into failed result objects and never let them reach the HTTP layer.
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
from dataclasses import dataclass, field
from datetime import datetime

T = TypeVar("T")


class ProspectingError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        error_type: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if error_type:
            self.error_type = error_type
        self.extra = extra or {}

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "type": self.error_type}
        if include_details and self.details:
            body["details"] = self.details
        body.update(self.extra)
        return body


class SearchValidationError(ProspectingError):
    """Missing or out-of-range request fields."""

    status_code = 400
    error_type = "validation_error"


class NoResultsError(ProspectingError):
    """Pipeline succeeded but no entity survived filtering."""

    status_code = 404
    error_type = "no_results"

    def __init__(self, message: str, suggestions: Optional[List[str]] = None, **kwargs):
        extra = kwargs.pop("extra", None) or {}
        extra["suggestions"] = suggestions or []
        super().__init__(message, extra=extra, **kwargs)


class SearchTimeoutError(ProspectingError):
    """A provider call or a whole search exceeded its budget."""

    status_code = 408
    error_type = "timeout"

    def __init__(self, stage: str, timeout_seconds: Optional[float] = None, **kwargs):
        self.stage = stage
        self.timeout_seconds = timeout_seconds
        budget = f" after {timeout_seconds:g}s" if timeout_seconds else ""
        super().__init__(f"Operation timed out{budget} during {stage}", **kwargs)


class ProviderTransportError(ProspectingError):
    """HTTP or network failure talking to a provider."""

    status_code = 500
    error_type = "provider_error"

    def __init__(self, provider: str, message: str, status: Optional[int] = None, **kwargs):
        self.provider = provider
        self.status = status
        super().__init__(message, **kwargs)


class ProviderConfigurationError(ProspectingError):
    """A provider API key is missing."""

    status_code = 503
    error_type = "api_configuration_error"


class ExtractionError(Exception):
    """No JSON candidate could be located in provider text."""

    def __init__(self, message: str, raw_snippet: str = ""):
        super().__init__(message)
        self.raw_snippet = raw_snippet


class RepairFailure(ExtractionError):
    """A JSON candidate was found but every repair strategy failed."""


@dataclass
class PipelineError:
    """
    Structured record of a non-fatal pipeline issue.

    Collected during a search and surfaced in the response ``debug`` block.
    """

    stage: str  # e.g., "normalize", "history"
    operation: str  # e.g., "enterprise_record", "history_insert"
    severity: str  # "critical", "high", "medium", "low"
    message: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    recoverable: bool = True
    exception_type: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (timestamp excluded, responses are cached)."""
        return {
            "stage": self.stage,
            "operation": self.operation,
            "severity": self.severity,
            "message": self.message,
            "recoverable": self.recoverable,
            "exception_type": self.exception_type,
        }


class ErrorCollector:
    """Collects non-fatal errors during one search."""

    def __init__(self):
        self.errors: List[PipelineError] = []

    def add_error(
        self,
        stage: str,
        operation: str,
        message: str,
        severity: str = "low",
        recoverable: bool = True,
        exception: Optional[Exception] = None,
    ) -> None:
        self.errors.append(PipelineError(
            stage=stage,
            operation=operation,
            message=message,
            severity=severity,
            recoverable=recoverable,
            exception_type=type(exception).__name__ if exception else None,
        ))

    def to_list(self) -> List[dict]:
        return [e.to_dict() for e in self.errors]


def pipeline_operation(
    operation_name: str,
    stage: str = "unknown",
    critical: bool = False,
    log_success: bool = False,
    fallback_value: Any = None,
    reraise: bool = False,
):
    """
    Decorator for async best-effort operations with consistent error handling.

    - DEBUG/INFO logging on success (if log_success=True)
    - ERROR logging with stack trace on failure for critical operations
    - WARNING logging on failure for non-critical operations
    - Optional re-raising of exceptions

    Usage:
        @pipeline_operation("history insert", stage="history", fallback_value=None)
        async def _record(self, ...):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                result = await func(*args, **kwargs)
                if log_success:
                    logger.info(f"[{stage}] [{operation_name}] ✓ Completed successfully")
                return result
            except Exception as e:
                log_level = logging.ERROR if critical else logging.WARNING
                logger.log(
                    log_level,
                    f"[{stage}] [{operation_name}] ✗ Failed: {e}",
                    exc_info=critical,
                )
                if reraise:
                    raise
                return fallback_value

        return wrapper

    return decorator
