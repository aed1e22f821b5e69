"""
Command-line interface for the Event Simulator.

Provides commands for:
- Serving the synthetic endpoints
- Driving concurrent traffic at a running instance
- Listing the available endpoints
"""

import argparse
import asyncio
import sys
import time

import httpx
import uvicorn

from .app import ENDPOINTS, create_app
from .config import EXPORTER_CHOICES, OTLP_PROTOCOL_CHOICES, load_settings
from .logging_setup import configure_logging

_DEFAULT_BASE_URL = "http://localhost:5000"
# Leave room above the slowest endpoint (/api/slow, up to 6s).
_DRIVE_TIMEOUT_S = 30.0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="eventsim",
        description="Synthetic observability event simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on port 5000, printing telemetry to the console
  eventsim serve

  # Serve and export to an OTLP collector
  eventsim serve --exporter otlp --endpoint http://localhost:4318

  # Fire 20 concurrent requests at a running instance
  eventsim drive /simulate-network --count 20
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Serve the synthetic endpoints")
    serve_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file (default: EVENTSIM_CONFIG if set)",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: PORT or 5000)")
    serve_parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Target for chain endpoint self-calls (default: http://localhost:<port>)",
    )
    serve_parser.add_argument(
        "--exporter",
        choices=EXPORTER_CHOICES,
        default=None,
        help="Telemetry destination (default: console)",
    )
    serve_parser.add_argument(
        "--endpoint",
        dest="otlp_endpoint",
        type=str,
        default=None,
        help="OTLP endpoint (default: http://localhost:4318)",
    )
    serve_parser.add_argument(
        "--protocol",
        dest="otlp_protocol",
        choices=OTLP_PROTOCOL_CHOICES,
        default=None,
        help="OTLP protocol (default: http)",
    )
    serve_parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="JSONL output path when --exporter=file (default: eventsim.jsonl)",
    )
    serve_parser.add_argument(
        "--service-name",
        type=str,
        default=None,
        help="Service name for telemetry (default: eventsim)",
    )
    serve_parser.add_argument("--log-level", type=str, default=None, help="Log level (default: INFO)")

    drive_parser = subparsers.add_parser(
        "drive", help="Send concurrent GET requests to a running simulator"
    )
    drive_parser.add_argument("path", type=str, help="Endpoint path, e.g. /simulate-apm")
    drive_parser.add_argument(
        "--count",
        type=int,
        default=10,
        help="Number of concurrent requests (default: 10)",
    )
    drive_parser.add_argument(
        "--base-url",
        type=str,
        default=_DEFAULT_BASE_URL,
        help=f"Simulator base URL (default: {_DEFAULT_BASE_URL})",
    )

    subparsers.add_parser("endpoints", help="List the synthetic endpoints")

    return parser


def cmd_serve(args: argparse.Namespace):
    """Serve the synthetic endpoints with uvicorn."""
    try:
        settings = load_settings(
            args.config,
            host=args.host,
            port=args.port,
            base_url=args.base_url,
            exporter=args.exporter,
            otlp_endpoint=args.otlp_endpoint,
            otlp_protocol=args.otlp_protocol,
            output_file=args.output_file,
            service_name=args.service_name,
            log_level=args.log_level,
        )
        configure_logging(settings.log_level)
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    print("Starting event simulator...")
    print(f"   Listening: http://{settings.host}:{settings.port}")
    print(f"   Exporter: {settings.exporter}")
    if settings.exporter == "otlp":
        print(f"   Endpoint: {settings.otlp_endpoint} ({settings.otlp_protocol})")
    elif settings.exporter == "file":
        print(f"   Output: {settings.output_file}")
    print(f"   Service: {settings.service_name}")
    print()

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


async def _timed_get(client: httpx.AsyncClient, path: str) -> tuple[int | None, float, str | None]:
    """GET path; return (status, elapsed ms, error). Transport errors are reported, not raised."""
    start = time.perf_counter()
    try:
        response = await client.get(path)
    except httpx.HTTPError as e:
        return None, (time.perf_counter() - start) * 1000, str(e) or type(e).__name__
    elapsed = (time.perf_counter() - start) * 1000
    error = None if response.is_success else f"HTTP {response.status_code}"
    return response.status_code, elapsed, error


async def drive(
    base_url: str,
    path: str,
    count: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[tuple[int | None, float, str | None]]:
    """Issue count concurrent GETs to path and return (status, elapsed ms, error) per call."""
    async with httpx.AsyncClient(
        base_url=base_url, timeout=_DRIVE_TIMEOUT_S, transport=transport
    ) as client:
        return list(await asyncio.gather(*(_timed_get(client, path) for _ in range(count))))


def cmd_drive(args: argparse.Namespace):
    """Send concurrent requests and print per-call timing plus a summary."""
    if args.count < 1:
        print("--count must be at least 1")
        sys.exit(1)
    path = args.path if args.path.startswith("/") else f"/{args.path}"

    print(f"Driving {args.count} requests to {args.base_url}{path}")
    print()
    try:
        results = asyncio.run(drive(args.base_url, path, args.count))
    except KeyboardInterrupt:
        print("\nDrive interrupted")
        sys.exit(0)

    for i, (status, elapsed, error) in enumerate(results, start=1):
        outcome = error or "ok"
        print(f"   [{i}/{len(results)}] status={status} time={elapsed:.0f}ms {outcome}")

    failures = sum(1 for _, _, error in results if error)
    times = [elapsed for _, elapsed, _ in results]
    print()
    print(f"Completed {len(results)} requests: {len(results) - failures} ok, {failures} failed")
    print(f"   Time min/avg/max: {min(times):.0f}/{sum(times) / len(times):.0f}/{max(times):.0f}ms")


def cmd_endpoints(args: argparse.Namespace):
    """List the synthetic endpoints."""
    print("Available endpoints (GET):")
    print()
    for path, description in ENDPOINTS:
        print(f"  - {path}")
        print(f"     {description}")


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "drive":
        cmd_drive(args)
    elif args.command == "endpoints":
        cmd_endpoints(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
