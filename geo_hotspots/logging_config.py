"""
Structured logging configuration.
JSON logs in production, human-readable in development.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import json_log_formatter

from geo_hotspots.config import get_settings


def setup_logging(level_name: Optional[str] = None) -> None:
    """
    Configure the root logger from settings.
    `level_name` overrides LOG_LEVEL (the CLI passes DEBUG for --verbose,
    which surfaces per-entity compile and drop decisions).
    """
    settings = get_settings()
    level = getattr(logging, (level_name or settings.log_level).upper(), logging.INFO)

    if settings.env == "production":
        # One JSON object per line for log aggregators
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(json_log_formatter.JSONFormatter())
        root = logging.getLogger()
        root.setLevel(level)
        root.handlers = [handler]
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        # stdout carries CLI output (hotspot JSON)
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
