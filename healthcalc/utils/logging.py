"""Logging setup for the assessment service."""

import logging
import sys
from typing import Dict, Optional

_configured = False
_loggers: Dict[str, logging.Logger] = {}

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", fmt: Optional[str] = None, force: bool = False) -> None:
    """Configure root logging once.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR).
        fmt: Optional log format string.
        force: Reconfigure even if logging was already set up.
    """
    global _configured
    if _configured and not force:
        return

    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=fmt or DEFAULT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # Reduce noise from the server stack
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name (e.g. __name__)."""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]
