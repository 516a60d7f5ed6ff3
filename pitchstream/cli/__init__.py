"""Command-line interface for pitchstream."""

from .main import cli, main

__all__ = ["cli", "main"]
