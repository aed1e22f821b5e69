"""
Exceptions for the event simulator.

Every failure surfaced by the synthetic endpoints is deliberate: it exists
to exercise the telemetry sink's error-reporting path, never to signal a
fault in the process itself.
"""


class SimulatedFailure(Exception):
    """Raised when a synthetic workload takes its failure branch."""

    def __init__(self, message: str, status_code: int | None = None, path: str | None = None):
        """
        Initialize the failure.

        Args:
            message: Human-readable error message reported to the sink
            status_code: HTTP status of the nested call that failed, if any
            path: Endpoint path of the nested call that failed, if any
        """
        self.message = message
        self.status_code = status_code
        self.path = path
        super().__init__(message)
