"""Logging setup shared by the worker and the ops API."""

from __future__ import annotations

import logging

from deposit_engine.core.config import Settings


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else settings.logging.level.upper()
    logging.basicConfig(level=level, format=settings.logging.format)
    # web3/httpx request logs drown the cycle summaries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)
