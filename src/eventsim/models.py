"""Value types passed between the simulator, the telemetry sink and the HTTP layer."""

import time
from dataclasses import dataclass, field
from typing import Any

AttributeValue = str | int | float | bool | dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SyntheticEvent:
    """
    A fabricated custom event handed to the telemetry sink.

    Created once per emission and never mutated afterwards; it has no
    identity beyond its type and emission instant.
    """

    event_type: str
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    timestamp: int = field(default_factory=_now_ms)


@dataclass(frozen=True)
class SimulationResult:
    """Terminal outcome of one simulated endpoint: HTTP status plus JSON body."""

    status_code: int
    body: dict[str, Any]
