"""CLI commands for registering, editing, and browsing catalogued videos."""

from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator, Optional, Sequence
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Table

from vidcat.config.settings import Settings, get_settings
from vidcat.db.migrate import run_migrations
from vidcat.db.store import CatalogFilters
from vidcat.models.theme import Theme
from vidcat.models.video import VideoRecord, VideoUpdate
from vidcat.services.catalog import (
    CatalogService,
    DuplicateReferenceError,
    StorageError,
    ThemeNotFoundError,
    VideoNotFoundError,
    create_store,
)
from vidcat.services.ingestion import IngestionResult, IngestionService
from vidcat.services.metadata import clean_keywords
from vidcat.utils.progress import ProgressCallback, ProgressUpdate
from vidcat.utils.validation import RejectionReason, canonical_url, resolve_url

QUIET_LOG_LEVELS = {"WARNING", "ERROR", "CRITICAL"}


class CatalogExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    DUPLICATE = 2
    NOT_FOUND = 3
    STORAGE_ERROR = 4


def register(app: typer.Typer, console: Console, settings: Optional[Settings] = None) -> None:
    """Register catalog commands on ``app``."""

    def get_app_settings() -> Settings:
        return settings or get_settings()

    @lru_cache(maxsize=1)
    def get_log_console() -> Console:
        quiet = get_app_settings().log_level.upper() in QUIET_LOG_LEVELS
        return Console(stderr=True, quiet=quiet)

    @lru_cache(maxsize=1)
    def get_catalog_service() -> CatalogService:
        store = create_store(get_app_settings(), console=get_log_console())
        return CatalogService(store, console=get_log_console())

    @lru_cache(maxsize=1)
    def get_ingestion_service() -> IngestionService:
        return IngestionService(get_catalog_service(), settings=get_app_settings(), console=get_log_console())

    @app.command("add")
    def add(
        url: str = typer.Argument(..., help="YouTube video URL to register"),
        annotation: str = typer.Option("", "--annotation", "-a", help="Administrator note stored with the video"),
        enrich: bool = typer.Option(True, "--enrich/--no-enrich", help="Fetch YouTube metadata and an AI summary"),
        json_output: bool = typer.Option(False, "--json", help="Output the stored record as JSON"),
    ) -> None:
        async def _run(handler: ProgressCallback) -> IngestionResult:
            return await get_ingestion_service().ingest(
                url,
                admin_annotation=annotation,
                enrich=enrich,
                on_progress=handler,
            )

        with _handle_errors(console):
            if json_output:
                result = asyncio.run(_run(None))
            else:
                progress = Progress(
                    TextColumn("{task.description}"),
                    BarColumn(),
                    TextColumn("{task.percentage:>3.0f}%"),
                    console=console,
                    transient=True,
                )
                with progress as running_progress:
                    task_id = running_progress.add_task("Resolving", total=100)
                    result = asyncio.run(_run(_progress_handler_factory(running_progress, task_id)))

        if json_output:
            typer.echo(json.dumps(_record_payload(result.record), ensure_ascii=False, indent=2))
            return

        console.print(Panel.fit(f"Registered: [bold]{result.record.title}[/bold]", border_style="green"))
        _print_record(console, result.record)
        if result.metadata_simulated:
            console.print("[yellow]YouTube metadata unavailable; default values were stored.[/yellow]")
        if result.ai_simulated:
            console.print("[yellow]AI summary unavailable; the summary is pending.[/yellow]")

    @app.command("resolve")
    def resolve(
        url: str = typer.Argument(..., help="URL to resolve without storing anything"),
        json_output: bool = typer.Option(False, "--json", help="Output the outcome as JSON"),
    ) -> None:
        outcome = resolve_url(url)
        if isinstance(outcome, RejectionReason):
            if json_output:
                typer.echo(json.dumps({"url": url, "rejected": outcome.value}))
            else:
                console.print(f"[red]Rejected:[/red] {outcome.value}")
            raise typer.Exit(code=CatalogExitCode.INVALID_INPUT)

        if json_output:
            payload = {"provider": outcome.provider.value, "external_id": outcome.external_id, "url": canonical_url(outcome)}
            typer.echo(json.dumps(payload))
            return
        console.print(f"{outcome.provider.value}: [bold]{outcome.external_id}[/bold] ({canonical_url(outcome)})")

    @app.command("show")
    def show(
        record_id: str = typer.Argument(..., help="Catalog record id"),
        json_output: bool = typer.Option(False, "--json", help="Output the record as JSON"),
    ) -> None:
        with _handle_errors(console):
            record = get_catalog_service().get(_parse_uuid(record_id))

        if json_output:
            typer.echo(json.dumps(_record_payload(record), ensure_ascii=False, indent=2))
            return
        console.print(Panel.fit(f"[bold]{record.title}[/bold]", border_style="blue"))
        _print_record(console, record)

    @app.command("annotate")
    def annotate(
        record_id: str = typer.Argument(..., help="Catalog record id"),
        text: str = typer.Argument(..., help="New administrator annotation"),
    ) -> None:
        with _handle_errors(console):
            record = get_catalog_service().annotate(_parse_uuid(record_id), text)
        console.print(f"[green]Annotation updated for {record.title}.[/green]")

    @app.command("update")
    def update(  # pylint: disable=too-many-arguments
        record_id: str = typer.Argument(..., help="Catalog record id"),
        title: Optional[str] = typer.Option(None, "--title", help="Replace the title"),
        uploader: Optional[str] = typer.Option(None, "--uploader", help="Replace the channel name"),
        summary: Optional[str] = typer.Option(None, "--summary", help="Replace the AI summary"),
        keywords: Optional[str] = typer.Option(None, "--keywords", help="Comma-separated keywords"),
        annotation: Optional[str] = typer.Option(None, "--annotation", help="Replace the annotation"),
        theme_id: Optional[str] = typer.Option(None, "--theme-id", help="Assign an existing theme"),
        clear_theme: bool = typer.Option(False, "--clear-theme", help="Remove the assigned theme"),
    ) -> None:
        with _handle_errors(console):
            changes = VideoUpdate(
                title=title,
                uploader=uploader,
                ai_summary=summary,
                keywords=clean_keywords(keywords) if keywords is not None else None,
                admin_annotation=annotation,
                theme_id=_parse_uuid(theme_id) if theme_id else None,
                clear_theme=clear_theme,
            )
            record = get_catalog_service().update(_parse_uuid(record_id), changes)
        console.print(f"[green]Updated {record.title}.[/green]")

    @app.command("remove")
    def remove(record_id: str = typer.Argument(..., help="Catalog record id")) -> None:
        with _handle_errors(console):
            record = get_catalog_service().remove(_parse_uuid(record_id))
        console.print(f"[green]Removed {record.title} ({record.reference.external_id}).[/green]")

    @app.command("list")
    def list_videos(
        theme_id: Optional[str] = typer.Option(None, "--theme-id", help="Only videos in this theme"),
        keyword: Optional[str] = typer.Option(None, "--keyword", help="Only videos tagged with this keyword"),
        search: Optional[str] = typer.Option(None, "--search", "-s", help="Case-insensitive text search"),
        limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum number of videos"),
        json_output: bool = typer.Option(False, "--json", help="Output records as JSON"),
    ) -> None:
        with _handle_errors(console):
            filters = CatalogFilters(
                theme_id=_parse_uuid(theme_id) if theme_id else None,
                keyword=keyword,
                search=search,
                limit=limit,
            )
            records = get_catalog_service().list(filters)

        if json_output:
            typer.echo(json.dumps([_record_payload(record) for record in records], ensure_ascii=False, indent=2))
            return
        if not records:
            console.print("[yellow]No videos found.[/yellow]")
            return
        _render_records(console, records)

    @app.command("themes")
    def themes(json_output: bool = typer.Option(False, "--json", help="Output themes as JSON")) -> None:
        with _handle_errors(console):
            items = get_catalog_service().list_themes()

        if json_output:
            typer.echo(json.dumps([theme.model_dump(mode="json") for theme in items], ensure_ascii=False, indent=2))
            return
        _render_themes(console, items)

    @app.command("keywords")
    def keywords(json_output: bool = typer.Option(False, "--json", help="Output keywords as JSON")) -> None:
        with _handle_errors(console):
            items = get_catalog_service().list_keywords()

        if json_output:
            typer.echo(json.dumps(items, ensure_ascii=False))
            return
        console.print(", ".join(items) if items else "[yellow]No keywords yet.[/yellow]")

    @app.command("migrate")
    def migrate() -> None:
        """Apply the bundled SQL migrations to DATABASE_URL."""

        database_url = get_app_settings().database_url
        with _handle_errors(console):
            if database_url is None:
                raise StorageError("DATABASE_URL is not configured.")
            run_migrations(console=console, dsn=str(database_url))


@contextmanager
def _handle_errors(console: Console) -> Iterator[None]:
    """Translate domain exceptions raised inside a command into messages and exit codes."""

    try:
        yield
    except DuplicateReferenceError as exc:
        console.print(f"[yellow]Error:[/yellow] {exc}")
        raise typer.Exit(code=CatalogExitCode.DUPLICATE) from exc
    except (VideoNotFoundError, ThemeNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=CatalogExitCode.NOT_FOUND) from exc
    except StorageError as exc:
        console.print(f"[red]Storage error:[/red] {exc}")
        raise typer.Exit(code=CatalogExitCode.STORAGE_ERROR) from exc
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=CatalogExitCode.INVALID_INPUT) from exc


def _parse_uuid(raw: str) -> UUID:
    try:
        return UUID(raw.strip())
    except ValueError as exc:
        raise ValueError(f"'{raw}' is not a valid id.") from exc


def _progress_handler_factory(progress: Progress, task_id: TaskID) -> Callable[[ProgressUpdate], None]:
    def handler(update: ProgressUpdate) -> None:
        progress.update(
            task_id,
            completed=update.overall_progress,
            description=update.message,
        )

    return handler


def _record_payload(record: VideoRecord) -> dict[str, object]:
    payload = record.model_dump(mode="json")
    payload["url"] = canonical_url(record.reference)
    return payload


def _print_record(console: Console, record: VideoRecord) -> None:
    console.print(f"ID: {record.id}")
    console.print(f"URL: {canonical_url(record.reference)}")
    console.print(f"Channel: {record.uploader}")
    console.print(f"Views: {record.view_count}  Duration: {record.duration}")
    console.print(f"Theme: {record.theme.name if record.theme else 'none'}")
    console.print(f"Keywords: {', '.join(record.keywords) or 'none'}")
    console.print(f"Summary: {record.ai_summary}")
    if record.admin_annotation:
        console.print(f"Annotation: {record.admin_annotation}")


def _render_records(console: Console, records: Sequence[VideoRecord]) -> None:
    table = Table(title="Catalog")
    table.add_column("ID", overflow="fold")
    table.add_column("Title", overflow="fold")
    table.add_column("Channel")
    table.add_column("Theme")
    table.add_column("Keywords", overflow="fold")
    table.add_column("Added")

    for record in records:
        table.add_row(
            str(record.id),
            record.title,
            record.uploader,
            record.theme.name if record.theme else "-",
            ", ".join(record.keywords) or "-",
            record.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def _render_themes(console: Console, themes: Sequence[Theme]) -> None:
    if not themes:
        console.print("[yellow]No themes yet.[/yellow]")
        return
    table = Table(title="Themes")
    table.add_column("ID", overflow="fold")
    table.add_column("Name")
    table.add_column("Color")
    for theme in themes:
        table.add_row(str(theme.id), theme.name, theme.color or "-")
    console.print(table)


__all__ = ["CatalogExitCode", "register"]
