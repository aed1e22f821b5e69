"""
Exporter selection for the telemetry sink.

Maps ``Settings.exporter`` onto concrete span/metric/log exporters:
console output for local development, OTLP for a collector, JSONL files
for offline inspection, or nothing at all.
"""

from dataclasses import dataclass
from pathlib import Path

from opentelemetry.sdk._logs.export import ConsoleLogRecordExporter, LogRecordExporter
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, MetricExporter
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SpanExporter

from ..config import Settings
from .file_exporter import FileLogExporter, FileMetricExporter, FileSpanExporter
from .otlp_exporter import create_otlp_exporters


@dataclass
class ExporterSet:
    """Exporters for the three signals; any of them may be absent."""

    span_exporter: SpanExporter | None = None
    metric_exporter: MetricExporter | None = None
    log_exporter: LogRecordExporter | None = None


def create_console_exporters() -> ExporterSet:
    """Create console exporters for all signal types."""
    return ExporterSet(
        span_exporter=ConsoleSpanExporter(),
        metric_exporter=ConsoleMetricExporter(),
        log_exporter=ConsoleLogRecordExporter(),
    )


def _sibling(path: Path, suffix: str) -> Path:
    """traces.jsonl -> traces_<suffix>.jsonl"""
    return path.with_name(f"{path.stem}_{suffix}{path.suffix or '.jsonl'}")


def create_file_exporters(output_file: str | Path) -> ExporterSet:
    """Create JSONL exporters: spans to output_file, logs/metrics to sibling files."""
    path = Path(output_file)
    return ExporterSet(
        span_exporter=FileSpanExporter(path),
        metric_exporter=FileMetricExporter(_sibling(path, "metrics")),
        log_exporter=FileLogExporter(_sibling(path, "logs")),
    )


def create_exporters(settings: Settings) -> ExporterSet:
    """Build the exporter set selected by settings.exporter."""
    if settings.exporter == "console":
        return create_console_exporters()
    if settings.exporter == "file":
        return create_file_exporters(settings.output_file)
    if settings.exporter == "otlp":
        span_exporter, metric_exporter, log_exporter = create_otlp_exporters(
            settings.otlp_endpoint, settings.otlp_protocol
        )
        return ExporterSet(span_exporter, metric_exporter, log_exporter)
    if settings.exporter == "none":
        return ExporterSet()
    raise ValueError(f"Invalid exporter: {settings.exporter}")
