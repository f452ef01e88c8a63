"""HTTP surface for the reminder bot."""

from .main import app, create_app

__all__ = ["app", "create_app"]
