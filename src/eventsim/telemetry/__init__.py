"""Telemetry sink interface and its OpenTelemetry implementation."""

from .sink import (
    EVENT_LOGGER_NAME,
    OtelTelemetrySink,
    TelemetrySink,
    create_sink,
    flatten_attributes,
)

__all__ = [
    "TelemetrySink",
    "OtelTelemetrySink",
    "create_sink",
    "flatten_attributes",
    "EVENT_LOGGER_NAME",
]
