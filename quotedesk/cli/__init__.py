"""Command line interface for quotedesk."""

from quotedesk.cli.main import app, create_app

__all__ = ["app", "create_app"]
