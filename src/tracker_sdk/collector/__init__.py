"""Collection endpoint for development and integration testing."""

from .app import create_app, run

__all__ = ["create_app", "run"]
