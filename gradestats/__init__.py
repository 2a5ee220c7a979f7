"""Weighted score statistics for learners and classes, with a FastAPI front end."""

from .engine import StatsEngine
from .server import create_app

__all__ = ["StatsEngine", "create_app"]
