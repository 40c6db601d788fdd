"""Observability primitives for dispatcher runs.

Provides structured logging and error categorization for run outcomes. All
events are emitted as structured log lines suitable for parsing by log
aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from bosun.errors import (
    ActionInputError,
    ConfigError,
    EventPayloadError,
    HandlerNotImplementedError,
    UnexpectedActionError,
)
from bosun.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
)
from bosun.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)

# HTTP status code threshold for server errors (5xx)
_HTTP_SERVER_ERROR_THRESHOLD = 500


class DispatchEventType(enum.StrEnum):
    """Structured log event types for dispatcher runs."""

    RUN_STARTED = "dispatch.run.started"
    RUN_COMPLETED = "dispatch.run.completed"
    RUN_FAILED = "dispatch.run.failed"
    RUN_REFUSED = "dispatch.run.refused"


class ErrorCategory(enum.StrEnum):
    """Categories for failure classification in reports and alerts."""

    CONFIGURATION = "configuration"
    ROUTING = "routing"
    HANDLER_MISSING = "handler_missing"
    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchRunContext:
    """Identifying fields shared by every event of one run."""

    handler_id: str
    event_name: str
    action: str | None
    repo_slug: str
    issue: int | None
    started_at: dt.datetime


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ActionInputError, ErrorCategory.CONFIGURATION),
    (ConfigError, ErrorCategory.CONFIGURATION),
    (GitHubConfigError, ErrorCategory.CONFIGURATION),
    (UnexpectedActionError, ErrorCategory.ROUTING),
    (HandlerNotImplementedError, ErrorCategory.HANDLER_MISSING),
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (EventPayloadError, ErrorCategory.SCHEMA_DRIFT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Returns:
        ErrorCategory indicating the type of failure.

    """
    # GitHubAPIError splits on status code; network errors carry none.
    if isinstance(exc, GitHubAPIError):
        if (
            exc.status_code is None
            or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class DispatchEventLogger:
    """Emit structured dispatcher run events.

    Events are emitted at INFO for start and completion, WARNING for refusal,
    and ERROR for failures.
    """

    def log_run_started(self, context: DispatchRunContext) -> None:
        """Log run start."""
        log_info(
            logger,
            "[%s] handler_id=%s event=%s action=%s repo_slug=%s issue=%s "
            "started_at=%s",
            DispatchEventType.RUN_STARTED,
            context.handler_id,
            context.event_name,
            context.action,
            context.repo_slug,
            context.issue,
            context.started_at.isoformat(),
        )

    def log_run_completed(
        self, context: DispatchRunContext, duration: dt.timedelta
    ) -> None:
        """Log successful run completion."""
        log_info(
            logger,
            "[%s] handler_id=%s repo_slug=%s issue=%s duration_seconds=%.3f",
            DispatchEventType.RUN_COMPLETED,
            context.handler_id,
            context.repo_slug,
            context.issue,
            duration.total_seconds(),
        )

    def log_run_failed(
        self,
        context: DispatchRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a failed run with error categorization."""
        log_error(
            logger,
            "[%s] handler_id=%s repo_slug=%s issue=%s duration_seconds=%.3f "
            "error_type=%s error_category=%s error_message=%s",
            DispatchEventType.RUN_FAILED,
            context.handler_id,
            context.repo_slug,
            context.issue,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_run_refused(self, context: DispatchRunContext) -> None:
        """Log a run refused by the self-protection check."""
        log_warning(
            logger,
            "[%s] handler_id=%s repo_slug=%s issue=%s",
            DispatchEventType.RUN_REFUSED,
            context.handler_id,
            context.repo_slug,
            context.issue,
        )


__all__ = [
    "DispatchEventLogger",
    "DispatchEventType",
    "DispatchRunContext",
    "ErrorCategory",
    "categorize_error",
]
