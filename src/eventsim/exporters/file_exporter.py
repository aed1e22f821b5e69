"""
File-based exporters for offline inspection of emitted telemetry.

Each exporter appends one JSON object per line (JSONL) so a run of the
simulator can be diffed, grepped or replayed into a collector later.
"""

import json
import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk._logs.export import LogExportResult, LogRecordExporter
from opentelemetry.sdk.metrics.export import MetricExporter, MetricExportResult, MetricsData
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

logger = logging.getLogger(__name__)


class _JsonlFile:
    """Thread-safe append-only JSONL writer shared by the exporters below."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        if not append and self.output_path.exists():
            self.output_path.unlink()

    def write(self, rows: list[dict[str, Any]]) -> bool:
        try:
            with self._lock, open(self.output_path, "a", encoding="utf-8") as f:
                for row in rows:
                    f.write(json.dumps(row, default=str) + "\n")
        except OSError as e:
            logger.error("Failed to write telemetry to %s: %s", self.output_path, e)
            return False
        return True


def _hex_id(value: int | None, width: int) -> str | None:
    return format(value, f"0{width}x") if value else None


class FileSpanExporter(SpanExporter):
    """Export spans to a JSONL file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self._file = _JsonlFile(output_path, append)

    @property
    def output_path(self) -> Path:
        return self._file.output_path

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        rows = []
        for span in spans:
            rows.append(
                {
                    "name": span.name,
                    "trace_id": _hex_id(span.context.trace_id, 32),
                    "span_id": _hex_id(span.context.span_id, 16),
                    "parent_span_id": _hex_id(span.parent.span_id, 16) if span.parent else None,
                    "kind": span.kind.name,
                    "start_time": span.start_time,
                    "end_time": span.end_time,
                    "status": span.status.status_code.name,
                    "attributes": dict(span.attributes or {}),
                    "events": [
                        {"name": ev.name, "attributes": dict(ev.attributes or {})}
                        for ev in span.events
                    ],
                    "resource": dict(span.resource.attributes),
                }
            )
        return SpanExportResult.SUCCESS if self._file.write(rows) else SpanExportResult.FAILURE

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


class FileLogExporter(LogRecordExporter):
    """Export log records (custom events and error notices) to a JSONL file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self._file = _JsonlFile(output_path, append)

    @property
    def output_path(self) -> Path:
        return self._file.output_path

    def export(self, batch: Sequence) -> LogExportResult:  # type: ignore[override]
        rows = []
        for item in batch:
            # SDK versions differ: batches hold either LogData or ReadableLogRecord,
            # both of which expose the record itself as .log_record.
            record = getattr(item, "log_record", item)
            resource = getattr(item, "resource", None) or getattr(record, "resource", None)
            rows.append(
                {
                    "timestamp": record.timestamp,
                    "severity_text": record.severity_text,
                    "body": None if record.body is None else str(record.body),
                    "attributes": dict(record.attributes or {}),
                    "trace_id": _hex_id(record.trace_id, 32),
                    "span_id": _hex_id(record.span_id, 16),
                    "resource": dict(resource.attributes) if resource else {},
                }
            )
        return LogExportResult.SUCCESS if self._file.write(rows) else LogExportResult.FAILURE

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


class FileMetricExporter(MetricExporter):
    """Export metric data points to a JSONL file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        super().__init__()
        self._file = _JsonlFile(output_path, append)

    @property
    def output_path(self) -> Path:
        return self._file.output_path

    def export(
        self,
        metrics_data: MetricsData,
        timeout_millis: float = 10000,
        **kwargs,
    ) -> MetricExportResult:
        rows = []
        for resource_metrics in metrics_data.resource_metrics:
            resource_attrs = dict(resource_metrics.resource.attributes)
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    rows.append(
                        {
                            "name": metric.name,
                            "unit": metric.unit,
                            "resource": resource_attrs,
                            "data_points": [
                                {
                                    "attributes": dict(dp.attributes or {}),
                                    "time": dp.time_unix_nano,
                                    "value": getattr(dp, "value", None),
                                    "count": getattr(dp, "count", None),
                                    "sum": getattr(dp, "sum", None),
                                }
                                for dp in metric.data.data_points
                            ],
                        }
                    )
        if not rows:
            return MetricExportResult.SUCCESS
        return MetricExportResult.SUCCESS if self._file.write(rows) else MetricExportResult.FAILURE

    def shutdown(self, timeout_millis: float = 30000, **kwargs) -> None:
        pass

    def force_flush(self, timeout_millis: float = 10000) -> bool:
        return True
