import logging
import sys
from typing import TextIO

# Third-party loggers that are noisy at INFO/DEBUG (HTTP pool, push, SQL echo)
_QUIET_LOGGERS = ("urllib3", "pywebpush", "sqlalchemy.engine")


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure simple, consistent logging for the API and the cron CLI.

    Format: time level logger message k=v ...
    The CLI passes stderr so stdout carries only the JSON summary.
    """
    root = logging.getLogger()
    level = level.upper()
    if root.handlers:
        # Respect existing (e.g., uvicorn) but align level
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
