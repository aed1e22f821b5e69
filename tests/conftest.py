"""Shared fixtures: a recording sink, a scripted random source and a fake sleep."""

from collections.abc import Iterable

import pytest

from eventsim.config import Settings
from eventsim.models import SyntheticEvent
from eventsim.telemetry import TelemetrySink


class RecordingSink(TelemetrySink):
    """TelemetrySink that keeps everything in memory for assertions."""

    def __init__(self):
        self.events: list[SyntheticEvent] = []
        self.errors: list[tuple[BaseException, dict]] = []
        self.shutdown_calls = 0

    def record_event(self, event: SyntheticEvent) -> None:
        self.events.append(event)

    def notice_error(self, error, attributes=None) -> None:
        self.errors.append((error, dict(attributes or {})))

    def shutdown(self) -> None:
        self.shutdown_calls += 1

    def event_types(self) -> list[str]:
        return [e.event_type for e in self.events]


class ScriptedRandom:
    """Random source returning queued values, then repeating a fallback forever."""

    def __init__(self, values: Iterable[float] = (), fallback: float = 0.5):
        self.values = list(values)
        self.fallback = fallback
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        if self.values:
            return self.values.pop(0)
        return self.fallback


class FakeSleep:
    """Records requested delays (in seconds) without waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def settings() -> Settings:
    return Settings(load_iterations=1000, exporter="none")
