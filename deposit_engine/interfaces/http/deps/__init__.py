"""Reusable FastAPI dependencies."""

from .database import get_db_session
from .engine import get_app_settings, get_reconciler

__all__ = [
    "get_app_settings",
    "get_db_session",
    "get_reconciler",
]
