"""Subject cache CLI commands.

- sync: refresh the local subject cache if it is stale
- show: print one cached subject (never touches the network)
- stats: count cached subjects by kind and level
"""

import typer
from rich.table import Table

from wanikani_client.auth import Authenticated
from wanikani_client.cache import SubjectCache
from wanikani_client.cli.runner import console, run
from wanikani_client.config import Settings
from wanikani_client.services import open_services
from wanikani_client.subjects import SubjectGroups
from wanikani_client.types import Kanji, Radical, ReadingType, Vocabulary

subjects_app = typer.Typer(help="Sync and inspect the local subject cache")


@subjects_app.command("sync")
def sync(
    force: bool = typer.Option(
        False, "--force", "-f", help="Refresh even if the cache is still fresh"
    ),
) -> None:
    """Fetch subjects updated since the last sync."""

    async def _sync() -> None:
        async with open_services() as services:
            state = await services.authenticator.restore_session()
            if not isinstance(state, Authenticated):
                console.print("Not signed in. Run [bold]wanikani auth login[/bold] first.")
                raise typer.Exit(77)

            cache = services.subjects
            if force:
                cache.last_modified = None
            before = len(cache)
            await cache.update(services.authenticator)
            await cache.save()
        console.print(f"{len(cache)} subjects cached ({len(cache) - before} new)")

    run(_sync())


@subjects_app.command("show")
def show(
    subject_id: int = typer.Argument(..., help="Subject ID"),
) -> None:
    """Show a cached subject."""

    async def _show() -> None:
        settings = Settings()
        cache = await SubjectCache.load(settings.cache_path, settings.subject_freshness)
        subject = cache.get(subject_id)
        if subject is None:
            console.print(f"Subject {subject_id} is not cached")
            raise typer.Exit(1)

        table = Table(title=f"{subject.object} {subject.id}", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Characters", subject.characters or "-")
        table.add_row("Level", str(subject.level))
        table.add_row("Meaning", subject.primary_meaning or "-")
        if isinstance(subject, Kanji):
            for reading_type, label in (
                (ReadingType.ONYOMI, "On'yomi"),
                (ReadingType.KUNYOMI, "Kun'yomi"),
            ):
                readings = ", ".join(
                    r.reading for r in subject.readings_of_type(reading_type)
                )
                table.add_row(label, readings or "-")
        elif isinstance(subject, Vocabulary):
            readings = ", ".join(r.reading for r in subject.readings if r.primary)
            table.add_row("Reading", readings or "-")
        if isinstance(subject, Radical) and not subject.characters:
            table.add_row("Images", str(len(subject.character_images)))
        table.add_row("Slug", subject.slug)
        console.print(table)

    run(_show())


@subjects_app.command("stats")
def stats() -> None:
    """Count cached subjects by kind and level."""

    async def _stats() -> None:
        settings = Settings()
        cache = await SubjectCache.load(settings.cache_path, settings.subject_freshness)
        groups = SubjectGroups.from_subjects(cache.subjects())

        table = Table(title="Cached subjects")
        table.add_column("Kind")
        table.add_column("Count", justify="right")
        table.add_row("Radicals", str(len(groups.radicals)))
        table.add_row("Kanji", str(len(groups.kanji)))
        table.add_row("Vocabulary", str(len(groups.vocabulary)))
        table.add_row("Kana vocabulary", str(len(groups.kana_vocabulary)))
        table.add_row("[bold]Total[/bold]", f"[bold]{groups.count}[/bold]")
        console.print(table)

        if groups.count:
            levels = {s.level for s in groups}
            lowest, highest = min(levels), max(levels)
            console.print(f"Levels {lowest}-{highest}")
        if cache.last_modified is not None:
            stale = " (stale)" if cache.is_stale() else ""
            console.print(f"Last synced {cache.last_modified:%Y-%m-%d %H:%M:%S} UTC{stale}")

    run(_stats())
