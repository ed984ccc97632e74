"""
HTTP API

FastAPI app exposing generation, streaming, gallery, schedules and admin
pricing routes.
"""

from .dependencies import VideoServices
from .server import create_app

__all__ = ["VideoServices", "create_app"]
