"""Unit tests for telemetry sinks."""

from __future__ import annotations

import os
from unittest import mock

import pytest

from bosun.errors import ConfigError
from bosun.telemetry import (
    LoggingTelemetrySink,
    MetricSample,
    TelemetryEventType,
    TelemetrySink,
    create_telemetry_sink,
)
from tests.helpers.femtologging_capture import capture_femto_logs


class TestCreateTelemetrySink:
    """Tests for backend selection in create_telemetry_sink."""

    def test_defaults_to_disabled(self) -> None:
        """An unset backend disables telemetry."""
        with mock.patch.dict(os.environ, {}, clear=True):
            assert create_telemetry_sink() is None

    @pytest.mark.parametrize(
        "backend_value",
        ["log", "LOG", "  Log  "],
        ids=["lowercase", "uppercase", "mixed-case-with-whitespace"],
    )
    def test_creates_logging_sink_normalised(self, backend_value: str) -> None:
        """``log`` selects LoggingTelemetrySink regardless of case."""
        sink = create_telemetry_sink({"BOSUN_TELEMETRY_BACKEND": backend_value})
        assert isinstance(sink, LoggingTelemetrySink)
        assert isinstance(sink, TelemetrySink)

    @pytest.mark.parametrize("backend_value", ["none", "", "  "])
    def test_none_and_blank_disable(self, backend_value: str) -> None:
        """``none`` and blank values disable telemetry."""
        assert create_telemetry_sink({"BOSUN_TELEMETRY_BACKEND": backend_value}) is None

    def test_invalid_backend_lists_options(self) -> None:
        """Unrecognised backends raise ConfigError listing valid options."""
        with pytest.raises(ConfigError, match="statsd") as exc_info:
            create_telemetry_sink({"BOSUN_TELEMETRY_BACKEND": "statsd"})
        error_msg = str(exc_info.value)
        assert "log" in error_msg, "Error message should list valid options"
        assert "none" in error_msg, "Error message should list valid options"


class TestLoggingTelemetrySink:
    """Tests for LoggingTelemetrySink output."""

    def test_track_metric_logs_sample(self) -> None:
        """Metric samples are logged with name, value and sorted tags."""
        sink = LoggingTelemetrySink()
        sample = MetricSample(
            name="usage_core",
            value=0.25,
            properties={"repo": "o/r", "issue": "42", "id": "x", "user": "u"},
        )

        with capture_femto_logs("bosun.telemetry") as capture:
            sink.track_metric(sample)

        capture.wait_for_count(1)
        [record] = capture.records
        assert record.level == "INFO"
        assert TelemetryEventType.METRIC in record.message
        assert "name=usage_core value=0.25" in record.message
        assert "id=x issue=42 repo=o/r user=u" in record.message

    def test_track_exception_logs_type_and_message(self) -> None:
        """Exceptions are logged with their type and message."""
        sink = LoggingTelemetrySink()

        with capture_femto_logs("bosun.telemetry") as capture:
            sink.track_exception(RuntimeError("boom"), {"id": "x"})

        capture.wait_for_count(1)
        [record] = capture.records
        assert TelemetryEventType.EXCEPTION in record.message
        assert "error_type=RuntimeError" in record.message
        assert "error_message=boom" in record.message
        assert "id=x" in record.message
