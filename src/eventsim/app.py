"""
FastAPI application serving the synthetic observability endpoints.

The telemetry sink, the shared HTTP client for chain calls and the
simulator are created in the app lifespan and torn down (client closed,
sink flushed and shut down) when the server stops.

Run with ``eventsim serve`` or ``uvicorn --factory eventsim.app:create_app``.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import propagate
from opentelemetry.trace import SpanKind, Status, StatusCode

from . import __version__
from .config import Settings, load_settings
from .models import SimulationResult
from .simulations import ChainClient, EventSimulator, parse_delay, parse_flag
from .statistics import RandomSource
from .telemetry import TelemetrySink, create_sink

logger = logging.getLogger(__name__)

# (path, description) for every synthetic endpoint, in the order they are listed.
ENDPOINTS: list[tuple[str, str]] = [
    ("/fake-load", "CPU-bound loop; reports its duration"),
    ("/simulate-apm", "Random delay in [500, 3000) ms"),
    ("/simulate-infra", "Random cpu/memory/disk I/O metrics"),
    ("/browser-monitoring", "Records a browser monitoring event"),
    ("/simulate-synthetic", "Chains /simulate-apm then /simulate-network"),
    ("/fake-log", "Emits an info event and a synthetic error"),
    ("/simulate-tracing", "Chains /simulate-apm then /simulate-infra with header propagation"),
    ("/simulate-network", "Random latency in [100, 1100) ms, fails ~30% of calls"),
    ("/simulate-api?delay=<ms>&error=<true|false>", "Fixed delay, optional forced error"),
    ("/api/normal", "Plain OK response"),
    ("/api/slow", "Random delay in [3000, 6000) ms"),
    ("/api/error", "Always 500"),
    ("/api/synthetic", "Synthetic monitoring probe target"),
]


def get_simulator(request: Request) -> EventSimulator:
    return request.app.state.simulator


def _respond(result: SimulationResult) -> JSONResponse:
    return JSONResponse(result.body, status_code=result.status_code)


router = APIRouter()
api_router = APIRouter(prefix="/api")


@router.get("/fake-load")
async def fake_load(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.fake_load())


@router.get("/simulate-apm")
async def simulate_apm(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.simulate_apm())


@router.get("/simulate-infra")
async def simulate_infra(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.simulate_infra())


@router.get("/browser-monitoring")
async def browser_monitoring(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.browser_monitoring())


@router.get("/simulate-synthetic")
async def simulate_synthetic(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.simulate_synthetic())


@router.get("/fake-log")
async def fake_log(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.fake_log())


@router.get("/simulate-tracing")
async def simulate_tracing(request: Request, simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.simulate_tracing(request.headers))


@router.get("/simulate-network")
async def simulate_network(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.simulate_network())


@router.get("/simulate-api")
async def simulate_api(
    delay: str | None = None,
    error: str | None = None,
    simulator: EventSimulator = Depends(get_simulator),
):
    return _respond(await simulator.simulate_api(parse_delay(delay), parse_flag(error)))


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }


@api_router.get("/normal")
async def normal():
    logger.info("Normal endpoint hit")
    return {"status": "ok", "message": "Normal response"}


@api_router.get("/slow")
async def slow(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.slow_response())


@api_router.get("/error")
async def error(simulator: EventSimulator = Depends(get_simulator)):
    return _respond(await simulator.error_response())


@api_router.get("/synthetic")
async def synthetic():
    return {"status": "ok", "message": "Synthetic monitoring test response"}


async def trace_and_log_requests(request: Request, call_next):
    """
    Wrap every request in a SERVER span parented on inbound trace headers,
    turn unhandled exceptions into a 500, and log one line per request.
    """
    sink: TelemetrySink = request.app.state.sink
    tracer = sink.get_tracer()
    parent = propagate.extract(dict(request.headers))
    path = request.url.path
    start = time.perf_counter()

    with tracer.start_as_current_span(
        f"{request.method} {path}", context=parent, kind=SpanKind.SERVER
    ) as span:
        span.set_attribute("http.request.method", request.method)
        span.set_attribute("url.path", path)
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", request.method, path)
            sink.notice_error(e, {"path": path})
            response = JSONResponse({"status": "error", "message": str(e)}, status_code=500)
        span.set_attribute("http.response.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR))

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %d (%.0fms)", request.method, path, response.status_code, elapsed_ms)
    return response


def create_app(
    settings: Settings | None = None,
    *,
    sink: TelemetrySink | None = None,
    rng: RandomSource | None = None,
    sleep: Callable | None = None,
    chain_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Service settings (defaults to load_settings())
        sink: Telemetry sink; created from settings at startup when omitted
        rng: Random source for every synthetic draw (defaults to the random module)
        sleep: Coroutine used for delays (defaults to asyncio.sleep)
        chain_transport: httpx transport for chain calls; overrides settings.chain_transport
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active_sink = sink or create_sink(settings)
        transport = chain_transport
        if transport is None and settings.chain_transport == "asgi":
            transport = httpx.ASGITransport(app=app)
        client = httpx.AsyncClient(
            base_url=settings.chain_base_url,
            transport=transport,
            timeout=settings.chain_timeout_s,
        )
        app.state.settings = settings
        app.state.sink = active_sink
        app.state.simulator = EventSimulator(
            active_sink,
            ChainClient(client, tracer=active_sink.get_tracer()),
            settings,
            rng=rng,
            sleep=sleep or asyncio.sleep,
        )
        logger.info(
            "Event simulator ready (chain target %s via %s)",
            settings.chain_base_url,
            "custom transport" if chain_transport else settings.chain_transport,
        )
        try:
            yield
        finally:
            await client.aclose()
            active_sink.shutdown()
            logger.info("Telemetry flushed and shut down")

    app = FastAPI(title="Event Simulator", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(trace_and_log_requests)
    app.include_router(router)
    app.include_router(api_router)
    return app
