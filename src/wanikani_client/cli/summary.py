"""Lessons and reviews summary command."""

from datetime import datetime, timezone

import typer
from rich.table import Table

from wanikani_client import resources
from wanikani_client.auth import Authenticated
from wanikani_client.cli.runner import console, run
from wanikani_client.services import open_services
from wanikani_client.subjects import LevelProgress


def summary() -> None:
    """Show available lessons and reviews and current level progress."""

    async def _summary() -> None:
        async with open_services() as services:
            auth = services.authenticator
            state = await auth.restore_session()
            if not isinstance(state, Authenticated):
                console.print("Not signed in. Run [bold]wanikani auth login[/bold] first.")
                raise typer.Exit(77)

            report = (await auth.send(resources.summary())).data
            assignments = []
            async for page in services.client.pages(
                resources.assignments(levels=[state.user.level])
            ):
                assignments.extend(page.data)

        now = datetime.now(timezone.utc)
        progress = LevelProgress.from_assignments(assignments)

        table = Table(title=f"{state.user.username} - level {state.user.level}")
        table.add_column("", style="cyan")
        table.add_column("Now", justify="right")
        table.add_row("Lessons", str(len(report.available_lesson_ids(now))))
        table.add_row("Reviews", str(len(report.available_review_ids(now))))
        table.add_row(
            "Radicals passed", f"{progress.radicals.passed}/{progress.radicals.total}"
        )
        table.add_row("Kanji passed", f"{progress.kanji.passed}/{progress.kanji.total}")
        console.print(table)

        if report.next_reviews_at is not None:
            console.print(f"Next reviews at {report.next_reviews_at:%Y-%m-%d %H:%M} UTC")

    run(_summary())
