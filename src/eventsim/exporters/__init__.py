"""Telemetry exporters for various backends."""

from .factory import (
    ExporterSet,
    create_console_exporters,
    create_exporters,
    create_file_exporters,
)
from .file_exporter import FileLogExporter, FileMetricExporter, FileSpanExporter
from .otlp_exporter import create_otlp_exporters

__all__ = [
    "ExporterSet",
    "create_exporters",
    "create_console_exporters",
    "create_file_exporters",
    "create_otlp_exporters",
    "FileSpanExporter",
    "FileMetricExporter",
    "FileLogExporter",
]
