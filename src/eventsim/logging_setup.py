"""Process logging configuration (stdlib ``logging``)."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Loggers whose access lines duplicate the request log written by the app middleware.
_QUIET_LOGGERS = ("uvicorn.access",)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once for the process; safe to call repeatedly."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
