"""
HTTP client for the chain endpoints' calls back into this service.

Each call runs inside a CLIENT span and carries the active trace context
(W3C ``traceparent``) so nested requests join the caller's trace. Any
non-2xx response or transport error surfaces as ``SimulatedFailure``.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from opentelemetry import propagate, trace
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from ..exceptions import SimulatedFailure

logger = logging.getLogger(__name__)

# Inbound headers that describe the inbound connection rather than the request
# and must not be copied onto a new outbound request.
_UNFORWARDED_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "content-type",
        "connection",
        "keep-alive",
        "transfer-encoding",
        "upgrade",
        "te",
        "trailer",
        "proxy-authorization",
        "proxy-authenticate",
    }
)


def forwardable_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Copy of headers without hop-by-hop and connection-specific entries."""
    if not headers:
        return {}
    return {k: v for k, v in headers.items() if k.lower() not in _UNFORWARDED_HEADERS}


class ChainClient:
    """Issue GET requests to sibling endpoints and return their JSON bodies."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tracer: Tracer | None = None,
    ):
        """
        Args:
            client: Shared async client; its base_url names the target service
            tracer: Tracer for CLIENT spans (defaults to the global tracer)
        """
        self.client = client
        self.tracer = tracer or trace.get_tracer(__name__)

    async def get_json(
        self, path: str, headers: Mapping[str, str] | None = None
    ) -> dict[str, Any]:
        """
        GET path and decode the JSON body.

        Args:
            path: Endpoint path relative to the client's base URL
            headers: Inbound headers to forward; trace context is injected on top

        Raises:
            SimulatedFailure: On a non-2xx status, an undecodable body or a transport error
        """
        outbound = forwardable_headers(headers)
        with self.tracer.start_as_current_span(f"GET {path}", kind=SpanKind.CLIENT) as span:
            span.set_attribute("http.request.method", "GET")
            span.set_attribute("url.path", path)
            propagate.inject(outbound)
            try:
                response = await self.client.get(path, headers=outbound)
            except httpx.HTTPError as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.warning("Chain call to %s failed: %s", path, e)
                raise SimulatedFailure(str(e) or type(e).__name__, path=path) from e

            span.set_attribute("http.response.status_code", response.status_code)
            if response.is_error:
                message = f"Request failed with status code {response.status_code}"
                span.set_status(Status(StatusCode.ERROR, message))
                logger.warning("Chain call to %s returned %s", path, response.status_code)
                raise SimulatedFailure(message, status_code=response.status_code, path=path)

            try:
                return response.json()
            except ValueError as e:
                raise SimulatedFailure(
                    f"Invalid JSON from {path}", status_code=response.status_code, path=path
                ) from e
