"""HTTP-level tests for the FastAPI application."""

import asyncio
import time

import httpx
import pytest
from conftest import FakeSleep, RecordingSink, ScriptedRandom
from fastapi.testclient import TestClient

from eventsim.app import ENDPOINTS, create_app
from eventsim.config import Settings


@pytest.fixture
def client(sink: RecordingSink, settings: Settings, fake_sleep: FakeSleep):
    """App with a recording sink, constant 0.5 random draws and instant sleeps."""
    app = create_app(settings, sink=sink, rng=ScriptedRandom(fallback=0.5), sleep=fake_sleep)
    with TestClient(app) as test_client:
        yield test_client


def test_fake_load(client: TestClient, sink: RecordingSink) -> None:
    response = client.get("/fake-load")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Fake load generated"
    assert body["duration"] >= 0
    assert sink.event_types() == ["FakeLoadEvent"]


def test_simulate_apm(client: TestClient, fake_sleep: FakeSleep) -> None:
    response = client.get("/simulate-apm")
    assert response.status_code == 200
    assert response.json() == {"message": "APM simulated endpoint", "delay": 1750}
    assert fake_sleep.calls == [1.75]


def test_simulate_infra_fields_parse_as_floats(sink: RecordingSink, settings: Settings) -> None:
    """Three numeric strings: cpu and memory in [0, 100], diskIO in [0, 1000)."""
    app = create_app(settings, sink=sink)
    with TestClient(app) as test_client:
        for _ in range(20):
            body = test_client.get("/simulate-infra").json()
            assert body["message"] == "Infrastructure simulated"
            assert 0.0 <= float(body["cpuUsage"]) <= 100.0
            assert 0.0 <= float(body["memoryUsage"]) <= 100.0
            assert 0.0 <= float(body["diskIO"]) < 1000.0


def test_browser_monitoring_repeatable(client: TestClient) -> None:
    bodies = [client.get("/browser-monitoring").json() for _ in range(3)]
    assert bodies == [{"message": "Browser monitoring simulated"}] * 3


def test_fake_log_always_succeeds(client: TestClient, sink: RecordingSink) -> None:
    for _ in range(2):
        response = client.get("/fake-log")
        assert response.status_code == 200
        assert response.json() == {"message": "Fake log generation complete"}
    assert len(sink.errors) == 2


def test_simulate_network_success(client: TestClient) -> None:
    response = client.get("/simulate-network")
    assert response.status_code == 200
    assert response.json() == {"message": "Network simulation successful", "latency": 600}


def test_simulate_network_failure(sink: RecordingSink, settings: Settings) -> None:
    app = create_app(settings, sink=sink, rng=ScriptedRandom(fallback=0.1), sleep=FakeSleep())
    with TestClient(app) as test_client:
        response = test_client.get("/simulate-network")
    assert response.status_code == 500
    assert response.json() == {"message": "Simulated network failure", "latency": 200}
    assert sink.events == []


@pytest.mark.parametrize("delay", ["0", "50", "nonsense"])
def test_simulate_api_error_flag(client: TestClient, delay: str) -> None:
    response = client.get("/simulate-api", params={"delay": delay, "error": "true"})
    assert response.status_code == 500
    assert response.json()["message"] == "Simulated API error"


def test_simulate_api_oversized_delay(client: TestClient, sink: RecordingSink) -> None:
    """A delay too long to convert counts as 0 and the error branch still answers normally."""
    response = client.get("/simulate-api", params={"delay": "1" * 5000, "error": "true"})
    assert response.status_code == 500
    assert response.json() == {"message": "Simulated API error", "delay": 0}
    assert str(sink.errors[0][0]) == "Simulated API error"


def test_simulate_api_defaults(client: TestClient, fake_sleep: FakeSleep) -> None:
    response = client.get("/simulate-api")
    assert response.status_code == 200
    assert response.json() == {"message": "API simulation successful", "delay": 0}
    assert fake_sleep.calls == []


def test_simulate_api_waits_for_delay(sink: RecordingSink, settings: Settings) -> None:
    """With real sleeping, delay=100 takes at least 100ms and echoes the delay."""
    app = create_app(settings, sink=sink)
    with TestClient(app) as test_client:
        start = time.perf_counter()
        response = test_client.get("/simulate-api?delay=100&error=false")
        elapsed = time.perf_counter() - start
    assert response.status_code == 200
    assert response.json() == {"message": "API simulation successful", "delay": 100}
    assert elapsed >= 0.1


def test_chain_endpoints_use_injected_transport(sink: RecordingSink, settings: Settings) -> None:
    """simulate-synthetic stops after a failing first call; nothing else is requested."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(503, json={"message": "down"})

    app = create_app(settings, sink=sink, chain_transport=httpx.MockTransport(handler))
    with TestClient(app) as test_client:
        response = test_client.get("/simulate-synthetic")

    assert calls == ["/simulate-apm"]
    assert response.status_code == 500
    assert response.json() == {
        "message": "Error during synthetic monitoring simulation",
        "error": "Request failed with status code 503",
    }


def test_chain_endpoints_in_process_loopback(sink: RecordingSink, fake_sleep: FakeSleep) -> None:
    """With chain_transport=asgi the nested calls run through this same app."""
    settings = Settings(exporter="none", chain_transport="asgi")
    app = create_app(settings, sink=sink, rng=ScriptedRandom(fallback=0.5), sleep=fake_sleep)
    with TestClient(app) as test_client:
        synthetic = test_client.get("/simulate-synthetic")
        tracing = test_client.get("/simulate-tracing", headers={"x-request-id": "req-1"})

    assert synthetic.status_code == 200
    assert synthetic.json() == {
        "message": "Synthetic monitoring simulated",
        "apm": {"message": "APM simulated endpoint", "delay": 1750},
        "network": {"message": "Network simulation successful", "latency": 600},
    }
    assert tracing.status_code == 200
    assert tracing.json()["infra"]["cpuUsage"] == "50.00"
    assert sink.event_types() == [
        "FakeAPMEvent",
        "FakeNetworkEvent",
        "FakeSyntheticEvent",
        "FakeAPMEvent",
        "FakeInfraEvent",
        "FakeDistributedTracingEvent",
    ]


def test_api_routes(client: TestClient, sink: RecordingSink, fake_sleep: FakeSleep) -> None:
    assert client.get("/api/normal").json() == {"status": "ok", "message": "Normal response"}
    assert client.get("/api/synthetic").json() == {
        "status": "ok",
        "message": "Synthetic monitoring test response",
    }
    assert client.get("/api/slow").json() == {"status": "ok", "message": "Delayed response (4500ms)"}
    assert fake_sleep.calls == [4.5]

    error = client.get("/api/error")
    assert error.status_code == 500
    assert error.json() == {"status": "error", "message": "Simulated server error"}
    assert len(sink.errors) == 1


def test_health(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert "timestamp" in body


def test_unhandled_exception_becomes_500(sink: RecordingSink, settings: Settings) -> None:
    """The request middleware reports the error and answers with a JSON 500."""
    app = create_app(settings, sink=sink)

    @app.get("/explode")
    async def explode():
        raise RuntimeError("kaboom")

    with TestClient(app) as test_client:
        response = test_client.get("/explode")
        assert test_client.get("/api/normal").status_code == 200

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "kaboom"}
    assert isinstance(sink.errors[0][0], RuntimeError)


def test_cors_headers(client: TestClient) -> None:
    response = client.get("/api/normal", headers={"Origin": "http://localhost:3000"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_lifespan_shuts_down_sink(sink: RecordingSink, settings: Settings) -> None:
    with TestClient(create_app(settings, sink=sink)) as test_client:
        test_client.get("/api/normal")
        assert sink.shutdown_calls == 0
    assert sink.shutdown_calls == 1


def test_every_listed_endpoint_is_routed(sink: RecordingSink, settings: Settings) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    app = create_app(
        settings,
        sink=sink,
        rng=ScriptedRandom(fallback=0.5),
        sleep=FakeSleep(),
        chain_transport=transport,
    )
    with TestClient(app) as test_client:
        for path, _ in ENDPOINTS:
            assert test_client.get(path.split("?")[0]).status_code != 404, path


async def test_delayed_requests_interleave(sink: RecordingSink, settings: Settings) -> None:
    """Concurrent delayed calls overlap instead of queueing behind each other."""
    app = create_app(settings, sink=sink)
    async with app.router.lifespan_context(app):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://sim.test"
        ) as http:
            start = time.perf_counter()
            responses = await asyncio.gather(
                *(http.get("/simulate-api", params={"delay": "300"}) for _ in range(5))
            )
            elapsed = time.perf_counter() - start

    assert [r.status_code for r in responses] == [200] * 5
    assert elapsed >= 0.3
    assert elapsed < 1.0
    assert sink.event_types() == ["FakeAPIEvent"] * 5
