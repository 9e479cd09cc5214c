"""Shared helpers for CLI commands.

Commands are sync typer callbacks that run an async body with asyncio.run().
Client errors are printed and turned into exit codes by category:
- retryable: 75 (temporary failure, try again later)
- requires reauthentication: 77 (log in again)
- anything else: 1
"""

import asyncio
from typing import Any, Coroutine

import typer
from rich.console import Console

from wanikani_client.errors import ErrorCategory, WaniKaniError

console = Console()
err_console = Console(stderr=True)

EXIT_CODES = {
    ErrorCategory.RETRYABLE: 75,
    ErrorCategory.REQUIRES_REAUTHENTICATION: 77,
}


def run(body: Coroutine[Any, Any, None]) -> None:
    """Run an async command body, mapping client errors to exit codes."""
    try:
        asyncio.run(body)
    except WaniKaniError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        if e.category == ErrorCategory.REQUIRES_REAUTHENTICATION:
            err_console.print("Run [bold]wanikani auth login[/bold] to sign in again.")
        raise typer.Exit(EXIT_CODES.get(e.category, 1)) from e
