"""Command-line interface."""

from ipc_bridge.cli.app import app, main

__all__ = ["app", "main"]
