"""Distribution entry package for the movie picker service."""

from __future__ import annotations

from picker.main import app, create_app

__all__ = ["app", "create_app"]
