"""Error taxonomy for listing extraction.

- Fatal errors surface to the caller of ``extract_listing``
- Non-fatal errors stay inside a pipeline stage and degrade to missing fields
- Every error carries a pydantic context for logging and HTTP responses
"""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorSeverity(str, Enum):
    """How loudly a failure should be logged."""
    CRITICAL = "critical"  # browser or service unusable
    HIGH = "high"         # Request failed
    MEDIUM = "medium"     # Subsystem skipped, record degraded
    LOW = "low"          # Single field missing
    INFO = "info"        # expected miss, nothing to do


class ErrorCategory(str, Enum):
    """Error categories for targeted handling."""
    NETWORK = "network"           # DNS, refused or reset connections
    BROWSER = "browser"           # Browser launch failures, page crashes
    RATE_LIMIT = "rate_limit"    # Upstream throttling
    PARSING = "parsing"           # page content did not yield a field
    VALIDATION = "validation"     # caller supplied a bad URL or payload
    TIMEOUT = "timeout"          # navigation or lookup deadline hit
    PERMISSION = "permission"     # blocked by the target or an upstream API
    UNKNOWN = "unknown"          # anything else


class RecoveryStrategy(str, Enum):
    """Advice for the caller; extraction itself never retries."""
    RETRY_BACKOFF = "retry_backoff"
    RETRY_LATER = "retry_later"
    RESTART_BROWSER = "restart_browser"
    FALLBACK = "fallback"
    SKIP = "skip"
    FAIL = "fail"


class ErrorContext(BaseModel):
    """Detailed error context for debugging."""
    timestamp: datetime
    url: Optional[str] = None
    site: Optional[str] = None
    stage: Optional[str] = None
    selector: Optional[str] = None
    details: Dict[str, Any] = {}
    traceback: Optional[str] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EnhancedError(Exception):
    """Base error with context and recovery information."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        recovery_strategy: RecoveryStrategy = RecoveryStrategy.RETRY_BACKOFF,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.recovery_strategy = recovery_strategy
        self.context = context or ErrorContext(timestamp=_now())
        self.cause = cause

        # keep the root cause traceback for the 500 body
        if not self.context.traceback and cause:
            self.context.traceback = ''.join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/responses."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "recovery_strategy": self.recovery_strategy.value,
            "context": self.context.model_dump(mode="json", exclude={"traceback"}),
            "cause": str(self.cause) if self.cause else None
        }


# Fatal errors

class InvalidURLError(EnhancedError):
    """The supplied URL cannot be parsed into an http(s) address."""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            recovery_strategy=RecoveryStrategy.FAIL,
            **kwargs
        )


class BrowserLaunchError(EnhancedError):
    """The automation runtime could not start."""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.BROWSER,
            severity=ErrorSeverity.CRITICAL,
            recovery_strategy=RecoveryStrategy.RESTART_BROWSER,
            **kwargs
        )


class NavigationError(EnhancedError):
    """Navigation failed before the document loaded."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.NETWORK)
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.RETRY_BACKOFF,
            **kwargs
        )


class NavigationTimeoutError(NavigationError):
    """Navigation exceeded its time bound."""
    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.TIMEOUT, **kwargs)


class ExtractionExhaustedError(EnhancedError):
    """Every strategy in a fallback chain failed to produce a title."""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.RETRY_LATER,
            **kwargs
        )


# Non-fatal errors

class EmbeddedStateError(EnhancedError):
    """Embedded hydration state is missing or malformed."""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.LOW,
            recovery_strategy=RecoveryStrategy.FALLBACK,
            **kwargs
        )


class PriceLookupError(EnhancedError):
    """Price reconstruction call failed."""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            recovery_strategy=RecoveryStrategy.SKIP,
            **kwargs
        )


class GeocodingError(EnhancedError):
    """Reverse geocoding failed or was throttled."""
    def __init__(self, message: str, *, rate_limited: bool = False, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT if rate_limited else ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            recovery_strategy=RecoveryStrategy.SKIP,
            **kwargs
        )
        self.rate_limited = rate_limited


FATAL_ERRORS = (InvalidURLError, BrowserLaunchError, NavigationError, ExtractionExhaustedError)


def classify_error(error: BaseException, context: Optional[ErrorContext] = None) -> EnhancedError:
    """Classify an arbitrary exception into an enhanced error."""
    if isinstance(error, EnhancedError):
        return error

    error_str = str(error).lower()

    if any(term in error_str for term in ['timeout', 'timed out']):
        return EnhancedError(
            str(error), category=ErrorCategory.TIMEOUT, severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.RETRY_BACKOFF, context=context, cause=error,
        )

    if any(term in error_str for term in ['network', 'connection', 'refused', 'dns', 'net::']):
        return EnhancedError(
            str(error), category=ErrorCategory.NETWORK, severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.RETRY_BACKOFF, context=context, cause=error,
        )

    if any(term in error_str for term in ['browser', 'crashed', 'closed', 'disconnected', 'target page']):
        return EnhancedError(
            str(error), category=ErrorCategory.BROWSER, severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.RESTART_BROWSER, context=context, cause=error,
        )

    if any(term in error_str for term in ['rate limit', '429', 'too many requests']):
        return EnhancedError(
            str(error), category=ErrorCategory.RATE_LIMIT, severity=ErrorSeverity.MEDIUM,
            recovery_strategy=RecoveryStrategy.RETRY_LATER, context=context, cause=error,
        )

    if any(term in error_str for term in ['forbidden', '403', 'unauthorized', 'access denied']):
        return EnhancedError(
            str(error), category=ErrorCategory.PERMISSION, severity=ErrorSeverity.HIGH,
            recovery_strategy=RecoveryStrategy.FAIL, context=context, cause=error,
        )

    if isinstance(error, (ValueError, KeyError, TypeError)):
        return EnhancedError(
            str(error), category=ErrorCategory.PARSING, severity=ErrorSeverity.MEDIUM,
            recovery_strategy=RecoveryStrategy.FAIL, context=context, cause=error,
        )

    return EnhancedError(
        str(error) or type(error).__name__, category=ErrorCategory.UNKNOWN, severity=ErrorSeverity.HIGH,
        recovery_strategy=RecoveryStrategy.FAIL, context=context, cause=error,
    )
