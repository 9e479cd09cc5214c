"""WaniKani command line interface."""

from wanikani_client.cli.main import app, main

__all__ = ["app", "main"]
