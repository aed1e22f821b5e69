"""
OTLP exporters for traces, metrics, and logs.

Supports both HTTP (protobuf over HTTP, default port 4318) and gRPC
(default port 4317) protocols. Exporter classes are imported lazily so
only the protocol in use needs its transport dependencies loaded.
"""

from typing import Any

_HTTP_PATHS = {
    "traces": "/v1/traces",
    "metrics": "/v1/metrics",
    "logs": "/v1/logs",
}


def _signal_endpoint(endpoint: str, protocol: str, signal: str) -> str:
    """Resolve the per-signal endpoint: HTTP appends /v1/<signal>, gRPC drops the scheme."""
    if protocol == "grpc":
        return endpoint.replace("http://", "").replace("https://", "")
    path = _HTTP_PATHS[signal]
    base = endpoint.rstrip("/")
    return base if base.endswith(path) else f"{base}{path}"


def create_otlp_exporters(
    endpoint: str = "http://localhost:4318",
    protocol: str = "http",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Create OTLP exporters for all three signals.

    Args:
        endpoint: OTLP collector base URL
        protocol: "http" or "grpc"
        headers: Optional headers to include on every export request
        **kwargs: Additional exporter configuration (e.g. timeout)

    Returns:
        Tuple of (span_exporter, metric_exporter, log_exporter)
    """
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    elif protocol == "http":
        from opentelemetry.exporter.otlp.proto.http._log_exporter import (  # type: ignore[assignment]
            OTLPLogExporter,
        )
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import (  # type: ignore[assignment]
            OTLPMetricExporter,
        )
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
            OTLPSpanExporter,
        )
    else:
        raise ValueError(f"Invalid OTLP protocol: {protocol}. Must be 'http' or 'grpc'")

    return (
        OTLPSpanExporter(
            endpoint=_signal_endpoint(endpoint, protocol, "traces"), headers=headers, **kwargs
        ),
        OTLPMetricExporter(
            endpoint=_signal_endpoint(endpoint, protocol, "metrics"), headers=headers, **kwargs
        ),
        OTLPLogExporter(
            endpoint=_signal_endpoint(endpoint, protocol, "logs"), headers=headers, **kwargs
        ),
    )
