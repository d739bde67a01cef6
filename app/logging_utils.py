"""
Structured logging helpers for clustering workflows.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for a CLI or API process.

    ``level`` falls back to the LOG_LEVEL environment variable, then INFO.
    """

    raw_level = level if level is not None else os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, raw_level.strip().upper(), logging.INFO),
        format=_LOG_FORMAT,
    )
