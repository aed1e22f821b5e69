"""
Configuration for the event simulator.

Settings resolve in three layers, later layers winning:
1. Field defaults on ``Settings``
2. A YAML file (``--config`` on the CLI or EVENTSIM_CONFIG)
3. Environment variables (PORT, LOG_LEVEL, OTEL_* and EVENTSIM_*)

The YAML file uses the field names of ``Settings`` as top-level keys, e.g.::

    port: 5000
    exporter: otlp
    otlp_endpoint: http://collector:4318
    network_failure_rate: 0.3
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from . import __version__

EXPORTER_CHOICES = ("otlp", "console", "file", "none")
OTLP_PROTOCOL_CHOICES = ("http", "grpc")
CHAIN_TRANSPORT_CHOICES = ("http", "asgi")

# Environment variable -> Settings field. Standard OTEL_* names are honoured
# so the simulator can be pointed at a collector like any instrumented service.
_ENV_FIELDS: dict[str, str] = {
    "EVENTSIM_HOST": "host",
    "PORT": "port",
    "EVENTSIM_BASE_URL": "base_url",
    "OTEL_SERVICE_NAME": "service_name",
    "EVENTSIM_EXPORTER": "exporter",
    "OTEL_EXPORTER_OTLP_ENDPOINT": "otlp_endpoint",
    "OTEL_EXPORTER_OTLP_PROTOCOL": "otlp_protocol",
    "EVENTSIM_OUTPUT_FILE": "output_file",
    "LOG_LEVEL": "log_level",
    "EVENTSIM_LOAD_ITERATIONS": "load_iterations",
    "EVENTSIM_NETWORK_FAILURE_RATE": "network_failure_rate",
    "EVENTSIM_CHAIN_TIMEOUT": "chain_timeout_s",
    "EVENTSIM_CHAIN_TRANSPORT": "chain_transport",
}


@dataclass(frozen=True)
class Settings:
    """Process-wide settings for the simulator service."""

    host: str = "0.0.0.0"
    port: int = 5000
    # Target of the chain endpoints' self-calls; defaults to http://localhost:<port>.
    base_url: str | None = None
    service_name: str = "eventsim"
    service_version: str = __version__
    exporter: str = "console"
    otlp_endpoint: str = "http://localhost:4318"
    otlp_protocol: str = "http"
    output_file: str = "eventsim.jsonl"
    log_level: str = "INFO"
    load_iterations: int = 10_000_000
    network_failure_rate: float = 0.3
    chain_timeout_s: float = 30.0
    # "http" issues real loopback requests; "asgi" routes them in-process.
    chain_transport: str = "http"

    @property
    def chain_base_url(self) -> str:
        """Base URL for chain self-calls."""
        return (self.base_url or f"http://localhost:{self.port}").rstrip("/")

    def validate(self) -> "Settings":
        """Raise ValueError if any field is out of range; return self for chaining."""
        if self.exporter not in EXPORTER_CHOICES:
            raise ValueError(
                f"Invalid exporter: {self.exporter}. Must be one of {', '.join(EXPORTER_CHOICES)}"
            )
        if self.otlp_protocol not in OTLP_PROTOCOL_CHOICES:
            raise ValueError(
                f"Invalid otlp_protocol: {self.otlp_protocol}. Must be 'http' or 'grpc'"
            )
        if self.chain_transport not in CHAIN_TRANSPORT_CHOICES:
            raise ValueError(
                f"Invalid chain_transport: {self.chain_transport}. Must be 'http' or 'asgi'"
            )
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.load_iterations < 0:
            raise ValueError(f"load_iterations must be non-negative, got {self.load_iterations}")
        if not 0.0 <= self.network_failure_rate <= 1.0:
            raise ValueError(
                f"network_failure_rate must be between 0.0 and 1.0, got {self.network_failure_rate}"
            )
        if self.chain_timeout_s <= 0:
            raise ValueError(f"chain_timeout_s must be positive, got {self.chain_timeout_s}")
        return self


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; a missing file yields an empty dict."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    return data


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML/env value to the type of the named Settings field."""
    target = Settings.__dataclass_fields__[name].type
    if value is None:
        return None
    try:
        if target is int:
            return int(value)
        if target is float:
            return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {name}: {value!r}") from None
    return str(value)


def _overrides_from_mapping(data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return {key: _coerce(key, value) for key, value in data.items()}


def _overrides_from_env(environ: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = environ.get(env_name, "").strip()
        if raw:
            overrides[field_name] = _coerce(field_name, raw)
    return overrides


def load_settings(
    config_path: str | Path | None = None,
    environ: dict[str, str] | None = None,
    **overrides: Any,
) -> Settings:
    """
    Build validated Settings from defaults, an optional YAML file and the environment.

    Args:
        config_path: YAML file path; falls back to EVENTSIM_CONFIG when not given
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values (e.g. from CLI flags); None values are ignored

    Raises:
        ValueError: If the file is malformed or a value is out of range
    """
    env = dict(os.environ if environ is None else environ)
    path = config_path or env.get("EVENTSIM_CONFIG")

    settings = Settings()
    if path:
        settings = replace(settings, **_overrides_from_mapping(load_yaml(Path(path))))
    settings = replace(settings, **_overrides_from_env(env))
    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        settings = replace(settings, **_overrides_from_mapping(explicit))
    return settings.validate()
