"""Telemetry sinks for dispatcher metrics and tracked exceptions.

A sink is optional: when none is configured, metric tracking is a no-op. The
built-in :class:`LoggingTelemetrySink` emits each sample as a structured log
line suitable for parsing by log aggregators.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import os
import typing as typ

from bosun.errors import ConfigError
from bosun.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

_VALID_BACKENDS = frozenset({"none", "log"})


class TelemetryEventType(enum.StrEnum):
    """Structured log event types emitted by :class:`LoggingTelemetrySink`."""

    METRIC = "telemetry.metric"
    EXCEPTION = "telemetry.exception"


@dc.dataclass(frozen=True, slots=True)
class MetricSample:
    """A named numeric measurement with contextual tags.

    Attributes
    ----------
    name
        Metric name, e.g. ``usage_core``.
    value
        Measured value.
    properties
        Tags identifying the run: ``repo``, ``issue``, ``id`` and ``user``.

    """

    name: str
    value: float
    properties: cabc.Mapping[str, str] = dc.field(default_factory=dict)


@typ.runtime_checkable
class TelemetrySink(typ.Protocol):
    """Destination for metric samples and exception records."""

    def track_metric(self, sample: MetricSample) -> None:
        """Record a metric sample."""
        ...

    def track_exception(
        self,
        exc: BaseException,
        properties: cabc.Mapping[str, str] | None = None,
    ) -> None:
        """Record an exception raised during a run."""
        ...


def _format_properties(properties: cabc.Mapping[str, str] | None) -> str:
    if not properties:
        return ""
    return " ".join(f"{key}={value}" for key, value in sorted(properties.items()))


class LoggingTelemetrySink:
    """Emit telemetry as structured femtologging events."""

    def track_metric(self, sample: MetricSample) -> None:
        """Log a metric sample at INFO."""
        log_info(
            logger,
            "[%s] name=%s value=%s %s",
            TelemetryEventType.METRIC,
            sample.name,
            sample.value,
            _format_properties(sample.properties),
        )

    def track_exception(
        self,
        exc: BaseException,
        properties: cabc.Mapping[str, str] | None = None,
    ) -> None:
        """Log an exception record at INFO with its type and message."""
        log_info(
            logger,
            "[%s] error_type=%s error_message=%s %s",
            TelemetryEventType.EXCEPTION,
            type(exc).__name__,
            str(exc),
            _format_properties(properties),
        )


def create_telemetry_sink(
    env: cabc.Mapping[str, str] | None = None,
) -> TelemetrySink | None:
    """Create a telemetry sink from ``BOSUN_TELEMETRY_BACKEND``.

    ``none`` (the default when unset) disables telemetry; ``log`` returns a
    :class:`LoggingTelemetrySink`.

    Raises
    ------
    ConfigError
        If the backend value is not recognised.

    Examples
    --------
    >>> create_telemetry_sink({"BOSUN_TELEMETRY_BACKEND": "log"})
    <bosun.telemetry.LoggingTelemetrySink object at ...>

    """
    source = os.environ if env is None else env
    raw_backend = source.get("BOSUN_TELEMETRY_BACKEND", "none")
    backend = raw_backend.strip().lower() or "none"
    if backend not in _VALID_BACKENDS:
        raise ConfigError.invalid_telemetry_backend(raw_backend, _VALID_BACKENDS)

    if backend == "none":
        return None
    return LoggingTelemetrySink()


__all__ = [
    "LoggingTelemetrySink",
    "MetricSample",
    "TelemetryEventType",
    "TelemetrySink",
    "create_telemetry_sink",
]
