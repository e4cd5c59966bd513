"""Centralized logger configuration for the scheduler."""
from __future__ import annotations

import logging
from typing import Optional


_LOGGER_NAME = "dependency_scheduler"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the package hierarchy.

    The library itself stays silent (NullHandler) until a host configures
    logging or the CLI is run with --verbose.
    """

    root = logging.getLogger(_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(f"{_LOGGER_NAME}.{name}") if name else root


def set_verbose(verbose: bool) -> None:
    """Attach a formatted stderr handler at DEBUG level (once)."""
    root = get_logger()
    if not verbose:
        return
    if not any(getattr(h, "_scheduler_stream", False) for h in root.handlers):
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        handler._scheduler_stream = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)
