"""
Synthetic workloads behind the simulator's HTTP endpoints.

Each public coroutine performs one bounded workload (CPU spin, delay,
random metrics or chained calls), reports a custom event and, on its
failure branch, an error to the telemetry sink, then returns a
``SimulationResult`` for the HTTP layer to serialize.

All randomness flows through distributions bound to one injectable random
source, and all delays go through an injectable ``sleep`` coroutine, so
tests can script both.
"""

import asyncio
import logging
import math
import re
import time
from collections.abc import Awaitable, Callable, Mapping

from ..config import Settings
from ..exceptions import SimulatedFailure
from ..models import SimulationResult, SyntheticEvent
from ..statistics import (
    BernoulliDistribution,
    RandomSource,
    UniformDistribution,
    UniformIntDistribution,
)
from ..telemetry import TelemetrySink
from .chain_client import ChainClient

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

# Delay windows in milliseconds, upper bound exclusive.
APM_DELAY_MS = (500, 3000)
NETWORK_LATENCY_MS = (100, 1100)
SLOW_DELAY_MS = (3000, 6000)
# Upper bound for the caller-chosen /simulate-api delay.
MAX_API_DELAY_MS = 60_000
DISK_IO_RANGE = (0, 1000)
USAGE_PERCENT_RANGE = (0.0, 100.0)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def burn_cpu(iterations: int) -> float:
    """Sum sqrt(i) for i in [0, iterations); every iteration contributes to the result."""
    total = 0.0
    for i in range(iterations):
        total += math.sqrt(i)
    return total


def parse_delay(raw: str | None) -> int:
    """
    Parse the ``delay`` query parameter leniently.

    Leading integer digits are honoured ("250ms" -> 250); anything else,
    including a missing value or a number too long to convert, yields 0.
    Results are clamped to [0, MAX_API_DELAY_MS].
    """
    if raw is None:
        return 0
    match = _LEADING_INT.match(raw)
    if not match:
        return 0
    try:
        value = int(match.group(1))
    except ValueError:
        return 0
    return min(max(0, value), MAX_API_DELAY_MS)


def parse_flag(raw: str | None) -> bool:
    """Only the literal string "true" enables a flag."""
    return raw == "true"


class EventSimulator:
    """Stateless synthetic workloads reporting to an injected telemetry sink."""

    def __init__(
        self,
        sink: TelemetrySink,
        chain_client: ChainClient | None = None,
        settings: Settings | None = None,
        rng: RandomSource | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.sink = sink
        self.chain_client = chain_client
        self.settings = settings or Settings()
        self._sleep = sleep

        kwargs = {"rng": rng} if rng is not None else {}
        self.apm_delay = UniformIntDistribution(*APM_DELAY_MS, **kwargs)
        self.network_latency = UniformIntDistribution(*NETWORK_LATENCY_MS, **kwargs)
        self.network_failure = BernoulliDistribution(self.settings.network_failure_rate, **kwargs)
        self.slow_delay = UniformIntDistribution(*SLOW_DELAY_MS, **kwargs)
        self.usage_percent = UniformDistribution(*USAGE_PERCENT_RANGE, **kwargs)
        self.disk_io = UniformIntDistribution(*DISK_IO_RANGE, **kwargs)

    async def _delay(self, delay_ms: int) -> None:
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000)

    def _emit(self, event_type: str, **attributes) -> None:
        self.sink.record_event(SyntheticEvent(event_type, attributes))

    def _require_chain_client(self) -> ChainClient:
        if self.chain_client is None:
            raise RuntimeError("Chain endpoints need a ChainClient")
        return self.chain_client

    async def fake_load(self) -> SimulationResult:
        """Spin the CPU for a fixed iteration count; blocks the event loop by intent."""
        iterations = self.settings.load_iterations
        logger.info("Starting CPU load simulation (%d iterations)", iterations)
        start = time.perf_counter()
        total = burn_cpu(iterations)
        duration = round((time.perf_counter() - start) * 1000)
        self._emit("FakeLoadEvent", duration=duration, iterations=iterations)
        logger.info("Completed CPU load simulation. Duration: %d ms (sum=%.1f)", duration, total)
        return SimulationResult(200, {"message": "Fake load generated", "duration": duration})

    async def simulate_apm(self) -> SimulationResult:
        delay = self.apm_delay.sample()
        await self._delay(delay)
        self._emit("FakeAPMEvent", delay=delay)
        logger.info("APM simulation complete. Delay: %d ms", delay)
        return SimulationResult(200, {"message": "APM simulated endpoint", "delay": delay})

    async def simulate_infra(self) -> SimulationResult:
        cpu_usage = f"{self.usage_percent.sample():.2f}"
        memory_usage = f"{self.usage_percent.sample():.2f}"
        disk_io = str(self.disk_io.sample())
        self._emit("FakeInfraEvent", cpuUsage=cpu_usage, memoryUsage=memory_usage, diskIO=disk_io)
        logger.info(
            "Infrastructure simulation complete: cpu=%s memory=%s diskIO=%s",
            cpu_usage,
            memory_usage,
            disk_io,
        )
        return SimulationResult(
            200,
            {
                "message": "Infrastructure simulated",
                "cpuUsage": cpu_usage,
                "memoryUsage": memory_usage,
                "diskIO": disk_io,
            },
        )

    async def browser_monitoring(self) -> SimulationResult:
        self._emit("FakeBrowserEvent", timestamp=int(time.time() * 1000))
        return SimulationResult(200, {"message": "Browser monitoring simulated"})

    async def simulate_synthetic(self) -> SimulationResult:
        """Chain /simulate-apm then /simulate-network; either failing yields a 500."""
        client = self._require_chain_client()
        try:
            apm = await client.get_json("/simulate-apm")
            network = await client.get_json("/simulate-network")
        except SimulatedFailure as e:
            self.sink.notice_error(e, {"endpoint": "simulate-synthetic", "failed_path": e.path})
            logger.error("Synthetic monitoring chain failed: %s", e)
            return SimulationResult(
                500,
                {"message": "Error during synthetic monitoring simulation", "error": str(e)},
            )

        self._emit("FakeSyntheticEvent", apmDelay=apm.get("delay"), networkResult=network)
        return SimulationResult(
            200,
            {"message": "Synthetic monitoring simulated", "apm": apm, "network": network},
        )

    async def fake_log(self) -> SimulationResult:
        """Emit an info event and a synthetic error; the request itself always succeeds."""
        logger.info("Info: Fake log generation started.")
        self._emit("FakeLogEvent", level="info", message="Fake log started")

        error = SimulatedFailure("Simulated error for fake logging")
        self.sink.notice_error(error, {"endpoint": "fake-log"})
        logger.error("Error: %s", error)
        self._emit("FakeLogEvent", level="error", message=str(error))

        return SimulationResult(200, {"message": "Fake log generation complete"})

    async def simulate_tracing(self, headers: Mapping[str, str] | None = None) -> SimulationResult:
        """Chain /simulate-apm then /simulate-infra, forwarding the inbound headers."""
        client = self._require_chain_client()
        try:
            apm = await client.get_json("/simulate-apm", headers=headers)
            infra = await client.get_json("/simulate-infra", headers=headers)
        except SimulatedFailure as e:
            self.sink.notice_error(e, {"endpoint": "simulate-tracing", "failed_path": e.path})
            logger.error("Distributed tracing chain failed: %s", e)
            return SimulationResult(
                500,
                {"message": "Error in distributed tracing simulation", "error": str(e)},
            )

        self._emit(
            "FakeDistributedTracingEvent",
            apmDelay=apm.get("delay"),
            cpuUsage=infra.get("cpuUsage"),
        )
        return SimulationResult(
            200,
            {"message": "Distributed tracing simulation complete", "apm": apm, "infra": infra},
        )

    async def simulate_network(self) -> SimulationResult:
        latency = self.network_latency.sample()
        await self._delay(latency)
        if self.network_failure.sample_bool():
            self.sink.notice_error(
                SimulatedFailure("Simulated network error"), {"latency": latency}
            )
            logger.warning("Simulated network failure after %d ms", latency)
            return SimulationResult(
                500, {"message": "Simulated network failure", "latency": latency}
            )

        self._emit("FakeNetworkEvent", latency=latency)
        return SimulationResult(
            200, {"message": "Network simulation successful", "latency": latency}
        )

    async def simulate_api(self, delay: int = 0, error: bool = False) -> SimulationResult:
        delay = min(max(0, delay), MAX_API_DELAY_MS)
        await self._delay(delay)
        if error:
            self.sink.notice_error(SimulatedFailure("Simulated API error"), {"delay": delay})
            return SimulationResult(500, {"message": "Simulated API error", "delay": delay})

        self._emit("FakeAPIEvent", delay=delay, status="success")
        return SimulationResult(200, {"message": "API simulation successful", "delay": delay})

    async def slow_response(self) -> SimulationResult:
        delay = self.slow_delay.sample()
        logger.warning("Slow endpoint delaying response by %dms", delay)
        await self._delay(delay)
        return SimulationResult(
            200, {"status": "ok", "message": f"Delayed response ({delay}ms)"}
        )

    async def error_response(self) -> SimulationResult:
        logger.error("Error endpoint triggered")
        self.sink.notice_error(SimulatedFailure("Simulated server error"), {"endpoint": "error"})
        return SimulationResult(500, {"status": "error", "message": "Simulated server error"})
