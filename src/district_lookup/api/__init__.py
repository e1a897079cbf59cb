"""HTTP API for District Lookup."""

from .app import create_app

__all__ = ["create_app"]
