"""
Error handling utilities for the Listing Watch system.

This module defines the typed errors raised by pipeline components, an
error tracker for run statistics, and a decorator that records failures
and optionally degrades to a fallback value.
"""

import functools
import traceback
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional

from .logging import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    NETWORK = "network"
    CONFIGURATION = "configuration"
    PARSING = "parsing"
    STORAGE = "storage"
    SERIALIZATION = "serialization"
    MESSAGE_DELIVERY = "message_delivery"
    SYSTEM = "system"


class ListingWatchError(Exception):
    """Base class for errors raised by pipeline components."""

    category = ErrorCategory.SYSTEM
    severity = ErrorSeverity.HIGH
    fatal = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class FetchDegradedError(ListingWatchError):
    """Target page could not be fetched or parsed."""

    category = ErrorCategory.NETWORK
    severity = ErrorSeverity.MEDIUM
    fatal = False


class StoreTransientError(ListingWatchError):
    """Snapshot store access failed for a reason other than a missing key."""

    category = ErrorCategory.STORAGE


class SerializationError(ListingWatchError):
    """A snapshot could not be encoded, decoded, written or read locally."""

    category = ErrorCategory.SERIALIZATION
    severity = ErrorSeverity.CRITICAL


class ConfigError(ListingWatchError):
    """A required configuration value, parameter or secret is missing."""

    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.CRITICAL


class TransportError(ListingWatchError):
    """Notification delivery failed."""

    category = ErrorCategory.MESSAGE_DELIVERY
    severity = ErrorSeverity.MEDIUM
    fatal = False


@dataclass
class ErrorInfo:
    """One recorded failure."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    fatal: bool = False
    context: Dict[str, Any] = field(default_factory=dict)


class ErrorTracker:
    """
    Keeps the most recent failures of the process and counts all of them.

    Counts are keyed ``component.category.severity`` and survive eviction
    from the bounded history.
    """

    def __init__(self, max_errors: int = 1000):
        self.max_errors = max_errors
        self.errors: Deque[ErrorInfo] = deque(maxlen=max_errors)
        self.error_counts: Counter = Counter()
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
        fatal: bool = False,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information
            fatal: Whether the error aborted the run

        Returns:
            ErrorInfo object
        """
        trace = ""
        if exception is not None:
            trace = "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            )

        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=trace,
            fatal=fatal,
            context=context or {},
        )

        self.errors.append(error_info)
        self.error_counts[f"{component}.{category.value}.{severity.value}"] += 1

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "error_component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "fatal": fatal,
                "context": context,
            },
        )

        return error_info

    def record_exception(
        self,
        component: str,
        error: ListingWatchError,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """Record a typed pipeline error using its own classification."""
        return self.record_error(
            component=component,
            category=error.category,
            severity=error.severity,
            message=error.message,
            exception=error,
            context=context,
            fatal=error.fatal,
        )

    def get_error_stats(self) -> Dict[str, Any]:
        """Summarize the retained errors for logging at the end of a run."""
        severities = Counter(e.severity for e in self.errors)
        categories = Counter(e.category for e in self.errors)
        return {
            "total_errors": len(self.errors),
            "fatal_errors": sum(1 for e in self.errors if e.fatal),
            "error_counts": dict(self.error_counts),
            "severity_breakdown": {s.value: severities[s] for s in ErrorSeverity},
            "category_breakdown": {c.value: categories[c] for c in ErrorCategory},
        }

    def clear(self):
        self.errors.clear()
        self.error_counts.clear()


# Global error tracker instance
_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Get global error tracker instance."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Decorator that records failures of a synchronous function.

    Args:
        component: Component name
        category: Error category
        severity: Error severity
        fallback_value: Value to return on failure (or a zero-argument
            callable producing it)
        suppress_exceptions: Whether to suppress exceptions
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                get_error_tracker().record_error(
                    component=component,
                    category=category,
                    severity=severity,
                    message=f"Error in {func.__name__}: {str(e)}",
                    exception=e,
                    context={"function": func.__name__},
                )

                if not suppress_exceptions:
                    raise

                get_logger(component).warning(
                    f"Suppressing exception in {func.__name__}: {str(e)}"
                )
                return fallback_value() if callable(fallback_value) else fallback_value

        return wrapper

    return decorator
