"""Synthetic workloads and the client used by chained endpoints."""

from .chain_client import ChainClient, forwardable_headers
from .simulator import EventSimulator, burn_cpu, parse_delay, parse_flag

__all__ = [
    "ChainClient",
    "EventSimulator",
    "burn_cpu",
    "forwardable_headers",
    "parse_delay",
    "parse_flag",
]
