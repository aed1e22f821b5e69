"""
Event Simulator - synthetic observability signals over HTTP.

This package serves endpoints that fabricate latency, load, errors and
custom events (including chained calls for distributed tracing) and
reports them to an OpenTelemetry-backed telemetry sink.
"""

__version__ = "1.0.0"
