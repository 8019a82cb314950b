"""Command line interface for recall."""

from .main import app, main

__all__ = ["app", "main"]
