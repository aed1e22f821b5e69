"""
Telemetry sink: where synthetic events and error notices are reported.

The simulator never talks to a telemetry backend directly. It is handed a
``TelemetrySink`` at construction time; the HTTP app creates one at startup
and flushes/shuts it down at termination.

``OtelTelemetrySink`` maps the two operations onto OpenTelemetry signals:

- custom event -> log record (``event.name`` = event type), span event on
  the active request span, and an ``eventsim.events`` counter increment
- error notice -> exception + ERROR status on the active span, an
  error-level log record, and an ``eventsim.errors`` counter increment
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter
from opentelemetry.trace import Status, StatusCode, Tracer

from .. import __version__
from ..config import Settings
from ..exporters import create_exporters
from ..models import SyntheticEvent

logger = logging.getLogger(__name__)

EVENT_LOGGER_NAME = "eventsim.events"
# Prefix for event fields on log records; bare names such as "message" would
# collide with attributes of logging.LogRecord.
EVENT_ATTR_PREFIX = "eventsim."

Primitive = str | int | float | bool


def flatten_attributes(attributes: dict[str, Any] | None) -> dict[str, Primitive]:
    """Coerce values to OTel-compatible primitives; nested values become JSON strings."""
    flat: dict[str, Primitive] = {}
    for key, value in (attributes or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, default=str, sort_keys=True)
    return flat


class TelemetrySink(ABC):
    """Destination for custom events and error notifications."""

    @abstractmethod
    def record_event(self, event: SyntheticEvent) -> None:
        """Record one custom event."""

    @abstractmethod
    def notice_error(self, error: BaseException, attributes: dict[str, Any] | None = None) -> None:
        """Report an error (real or synthetic)."""

    def get_tracer(self) -> Tracer:
        """Tracer used for request and chain-call spans; no-op unless overridden."""
        return trace.get_tracer(__name__)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True

    def shutdown(self) -> None:
        pass


class OtelTelemetrySink(TelemetrySink):
    """TelemetrySink backed by OpenTelemetry tracer, logger and meter providers."""

    def __init__(
        self,
        span_exporter: SpanExporter | None = None,
        metric_exporter: MetricExporter | None = None,
        log_exporter: LogRecordExporter | None = None,
        service_name: str = "eventsim",
        service_version: str = __version__,
        synchronous: bool = False,
        metric_export_interval_ms: int = 5000,
    ):
        """
        Initialize providers and attach exporters.

        Args:
            span_exporter: Destination for spans (None drops them)
            metric_exporter: Destination for metrics (None drops them)
            log_exporter: Destination for event/error log records (None drops them)
            service_name: service.name resource attribute
            service_version: service.version resource attribute
            synchronous: Export spans and logs as they end instead of batching
            metric_export_interval_ms: Period of the metric reader
        """
        resource = Resource.create(
            {"service.name": service_name, "service.version": service_version}
        )

        self.tracer_provider = TracerProvider(resource=resource)
        if span_exporter is not None:
            span_processor = (
                SimpleSpanProcessor(span_exporter)
                if synchronous
                else BatchSpanProcessor(span_exporter)
            )
            self.tracer_provider.add_span_processor(span_processor)
        self.tracer = self.tracer_provider.get_tracer("eventsim", service_version)

        self.logger_provider = LoggerProvider(resource=resource)
        if log_exporter is not None:
            log_processor = (
                SimpleLogRecordProcessor(log_exporter)
                if synchronous
                else BatchLogRecordProcessor(log_exporter)
            )
            self.logger_provider.add_log_record_processor(log_processor)

        readers = []
        if metric_exporter is not None:
            readers.append(
                PeriodicExportingMetricReader(
                    metric_exporter, export_interval_millis=metric_export_interval_ms
                )
            )
        self.meter_provider = MeterProvider(resource=resource, metric_readers=readers)
        meter = self.meter_provider.get_meter("eventsim", service_version)
        self.event_counter = meter.create_counter(
            "eventsim.events",
            description="Count of synthetic custom events by type",
            unit="1",
        )
        self.error_counter = meter.create_counter(
            "eventsim.errors",
            description="Count of error notices by error type",
            unit="1",
        )

        self._handler = LoggingHandler(level=logging.NOTSET, logger_provider=self.logger_provider)
        # One non-propagating child logger per sink.
        self._event_logger = logging.getLogger(f"{EVENT_LOGGER_NAME}.{id(self):x}")
        self._event_logger.setLevel(logging.INFO)
        self._event_logger.propagate = False
        self._event_logger.addHandler(self._handler)
        self._is_shutdown = False

    def get_tracer(self) -> Tracer:
        return self.tracer

    def record_event(self, event: SyntheticEvent) -> None:
        attrs = flatten_attributes(event.attributes)
        self.event_counter.add(1, {"event.type": event.event_type})
        trace.get_current_span().add_event(event.event_type, attrs)

        extra: dict[str, Primitive] = {
            f"{EVENT_ATTR_PREFIX}{key}": value for key, value in attrs.items()
        }
        extra["event.name"] = event.event_type
        extra[f"{EVENT_ATTR_PREFIX}timestamp"] = event.timestamp
        self._event_logger.info(event.event_type, extra=extra)
        logger.debug("Recorded %s %s", event.event_type, attrs)

    def notice_error(self, error: BaseException, attributes: dict[str, Any] | None = None) -> None:
        attrs = flatten_attributes(attributes)
        error_type = type(error).__name__

        span = trace.get_current_span()
        span.record_exception(error, attributes=attrs)
        span.set_status(Status(StatusCode.ERROR, str(error)))
        self.error_counter.add(1, {"error.type": error_type})

        extra: dict[str, Primitive] = {
            f"{EVENT_ATTR_PREFIX}{key}": value for key, value in attrs.items()
        }
        extra["error.type"] = error_type
        self._event_logger.error(str(error), exc_info=error, extra=extra)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        results = [
            self.tracer_provider.force_flush(timeout_millis),
            self.logger_provider.force_flush(timeout_millis),
            self.meter_provider.force_flush(timeout_millis),
        ]
        return all(results)

    def shutdown(self) -> None:
        """Flush everything, then shut down providers. Idempotent."""
        if self._is_shutdown:
            return
        self._is_shutdown = True
        if not self.force_flush(5000):
            logger.warning("Telemetry flush did not complete before shutdown")
        self._event_logger.removeHandler(self._handler)
        self.tracer_provider.shutdown()
        self.logger_provider.shutdown()
        self.meter_provider.shutdown()


def create_sink(settings: Settings) -> OtelTelemetrySink:
    """Build the sink selected by settings (exporter kind, endpoint, service name)."""
    exporters = create_exporters(settings)
    logger.info(
        "Telemetry sink: exporter=%s service=%s", settings.exporter, settings.service_name
    )
    return OtelTelemetrySink(
        span_exporter=exporters.span_exporter,
        metric_exporter=exporters.metric_exporter,
        log_exporter=exporters.log_exporter,
        service_name=settings.service_name,
        service_version=settings.service_version,
    )
