"""WaniKani CLI - sign in, sync subjects and check your study queue."""

import logging

import typer

from wanikani_client.cli.auth import auth_app
from wanikani_client.cli.subjects import subjects_app
from wanikani_client.cli.summary import summary
from wanikani_client.config import Settings

app = typer.Typer(
    name="wanikani",
    help="Command line client for the WaniKani API",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(auth_app, name="auth")
app.add_typer(subjects_app, name="subjects")
app.command("summary")(summary)


def configure_logging(level_name: str) -> None:
    """Configure root logging; httpx request lines only show at DEBUG."""
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s [%(name)s::%(lineno)d] %(message)s",
        datefmt="%d/%b/%Y %H:%M:%S",
    )
    if level > logging.DEBUG:
        for noisy in ("httpx", "httpcore"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    configure_logging("DEBUG" if verbose else Settings().log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
