"""CLI commands for processing playlists into study shorts and tracking study progress."""

from __future__ import annotations

import asyncio
import json
from functools import lru_cache
from typing import Callable, Optional, Sequence
from uuid import UUID

import psycopg2
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from stwipe.db.repositories import RecordNotFoundError, RepositoryError
from stwipe.models.playlist import Playlist
from stwipe.models.short import StudyShort
from stwipe.models.video import Video
from stwipe.services import ExternalServiceError
from stwipe.services.pipeline import PipelineBootstrapError, PipelineResult
from stwipe.services.playlists import PlaylistService
from stwipe.services.progress import StudyProgressService
from stwipe.utils.progress import ProgressUpdate
from stwipe.utils.validation import InvalidPlaylistURLError

ServiceFactory = Callable[[], PlaylistService]

DEFAULT_USER = "local"


class ExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    NETWORK_ERROR = 3
    PROCESSING_ERROR = 4
    STORAGE_ERROR = 5


def register(app: typer.Typer, console: Console, *, service_factory: Optional[ServiceFactory] = None) -> None:
    """Register playlist processing and study commands."""

    @lru_cache(maxsize=1)
    def get_playlist_service() -> PlaylistService:
        if service_factory is not None:
            return service_factory()
        return PlaylistService.from_settings(console=console)

    @lru_cache(maxsize=1)
    def get_progress_service() -> StudyProgressService:
        return StudyProgressService(get_playlist_service().store, console=console)

    def fail(message: str, code: int) -> typer.Exit:
        console.print(f"[red]Error:[/red] {message}")
        return typer.Exit(code=code)

    @app.command("process")
    def process(
        url: str = typer.Argument(..., help="YouTube playlist URL to turn into study shorts"),
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Owner of the playlist"),
        language: Optional[str] = typer.Option(None, "--language", "-l", help="hinglish, english, or hindi"),
        subject: Optional[str] = typer.Option(None, "--subject", help="Subject tag for the playlist"),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Print a JSON summary instead of progress"),
    ) -> None:
        service = get_playlist_service()
        try:
            submission = service.submit(user, url, language=language, subject=subject)
            if quiet:
                result = asyncio.run(service.process(submission))
            else:
                progress = Progress(
                    TextColumn("{task.description}"),
                    BarColumn(),
                    TextColumn("{task.percentage:>3.0f}%"),
                    TimeElapsedColumn(),
                    console=console,
                    transient=True,
                )
                with progress as running_progress:
                    task_id = running_progress.add_task("Processing", total=100)
                    handler = _progress_handler_factory(running_progress, task_id)
                    result = asyncio.run(service.process(submission, on_progress=handler))
        except InvalidPlaylistURLError as exc:
            raise fail(str(exc), ExitCode.INVALID_INPUT) from exc
        except ExternalServiceError as exc:
            raise fail(str(exc), ExitCode.NETWORK_ERROR) from exc
        except PipelineBootstrapError as exc:
            raise fail(str(exc), ExitCode.PROCESSING_ERROR) from exc
        except RepositoryError as exc:
            raise fail(str(exc), ExitCode.STORAGE_ERROR) from exc

        if quiet:
            typer.echo(json.dumps(_result_payload(result), ensure_ascii=False, indent=2))
            return

        console.print(Panel.fit(f"Processed: [bold]{result.playlist.title}[/bold]", border_style="green"))
        console.print(f"Playlist ID: {result.playlist.id}")
        console.print(_videos_table([outcome.video for outcome in result.outcomes]))
        console.print(f"Study shorts created: {len(result.shorts)}")
        if result.failures:
            console.print(f"[yellow]{len(result.failures)} video(s) failed; see the table above.[/yellow]")

    @app.command("playlists")
    def playlists(
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Owner of the playlists"),
    ) -> None:
        records = get_playlist_service().list_playlists(user)
        if not records:
            console.print("[yellow]No playlists found.[/yellow]")
            return
        console.print(_playlists_table(records))

    @app.command("status")
    def status(playlist_id: UUID = typer.Argument(..., help="Playlist identifier")) -> None:
        service = get_playlist_service()
        try:
            playlist = service.get_playlist(playlist_id)
        except RecordNotFoundError as exc:
            raise fail(str(exc), ExitCode.NOT_FOUND) from exc
        console.print(_playlists_table([playlist]))
        console.print(_videos_table(service.list_videos(playlist_id)))

    @app.command("shorts")
    def shorts(
        playlist_id: UUID = typer.Argument(..., help="Playlist identifier"),
        ordered: bool = typer.Option(False, "--ordered", help="Keep playlist order instead of shuffling"),
        json_output: bool = typer.Option(False, "--json", help="Output shorts as JSON"),
    ) -> None:
        try:
            records = get_playlist_service().list_shorts(playlist_id, shuffle=not ordered)
        except RecordNotFoundError as exc:
            raise fail(str(exc), ExitCode.NOT_FOUND) from exc

        if json_output:
            payload = [record.model_dump(mode="json") for record in records]
            typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
            return
        if not records:
            console.print("[yellow]No study shorts for this playlist.[/yellow]")
            return
        for record in records:
            console.print(_short_panel(record))

    @app.command("study")
    def study(
        short_id: UUID = typer.Argument(..., help="Study short identifier"),
        seconds: int = typer.Option(..., "--seconds", "-s", min=0, help="Seconds spent on the short"),
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Studying user"),
    ) -> None:
        try:
            progress = get_progress_service().record_study(user, short_id, seconds)
        except RecordNotFoundError as exc:
            raise fail(str(exc), ExitCode.NOT_FOUND) from exc
        console.print(f"[green]Recorded.[/green] Total time on playlist: {progress.total_time_spent}s")

    @app.command("bookmark")
    def bookmark(
        short_id: UUID = typer.Argument(..., help="Study short identifier"),
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Studying user"),
    ) -> None:
        try:
            bookmarked = get_progress_service().toggle_bookmark(user, short_id)
        except RecordNotFoundError as exc:
            raise fail(str(exc), ExitCode.NOT_FOUND) from exc
        console.print("Bookmarked." if bookmarked else "Bookmark removed.")

    @app.command("complete")
    def complete(
        short_id: UUID = typer.Argument(..., help="Study short identifier"),
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Studying user"),
    ) -> None:
        try:
            progress = get_progress_service().mark_completed(user, short_id)
        except RecordNotFoundError as exc:
            raise fail(str(exc), ExitCode.NOT_FOUND) from exc
        console.print(f"[green]Completed.[/green] {len(progress.completed_shorts)} short(s) done in this playlist")

    @app.command("stats")
    def stats(
        user: str = typer.Option(DEFAULT_USER, "--user", "-u", help="Studying user"),
        json_output: bool = typer.Option(False, "--json", help="Output statistics as JSON"),
    ) -> None:
        user_stats = get_progress_service().get_user_stats(user)
        if json_output:
            typer.echo(json.dumps(user_stats.model_dump(mode="json"), indent=2))
            return

        table = Table(title=f"Study stats for {user}")
        table.add_column("Shorts completed", justify="right")
        table.add_column("Hours studied", justify="right")
        table.add_column("Study days", justify="right")
        table.add_row(str(user_stats.total_shorts), f"{user_stats.hours_studied:.1f}", str(user_stats.streak))
        console.print(table)

    @app.command("migrate")
    def migrate() -> None:
        from stwipe.db.migrate import run_migrations

        try:
            run_migrations(console)
        except (RepositoryError, psycopg2.Error) as exc:
            raise fail(str(exc), ExitCode.STORAGE_ERROR) from exc


def _progress_handler_factory(progress: Progress, task_id: TaskID) -> Callable[[ProgressUpdate], None]:
    def handler(update: ProgressUpdate) -> None:
        progress.update(
            task_id,
            completed=update.overall_progress,
            description=f"{update.label}...",
        )

    return handler


def _result_payload(result: PipelineResult) -> dict[str, object]:
    return {
        "playlist": result.playlist.model_dump(mode="json"),
        "videos": [
            {
                "video_id": str(outcome.video.id),
                "title": outcome.video.title,
                "status": outcome.video.status.value,
                "shorts": len(outcome.shorts) if outcome.succeeded else 0,
                "error": None if outcome.succeeded else outcome.error_message,
            }
            for outcome in result.outcomes
        ],
    }


def _playlists_table(records: Sequence[Playlist]) -> Table:
    table = Table(title="Playlists")
    table.add_column("ID", style="cyan", overflow="fold")
    table.add_column("Title")
    table.add_column("Language")
    table.add_column("Status")
    table.add_column("Videos", justify="right")
    for record in records:
        table.add_row(
            str(record.id),
            record.title,
            record.language,
            record.status.value,
            f"{record.processed_videos}/{record.total_videos}",
        )
    return table


def _videos_table(videos: Sequence[Video]) -> Table:
    table = Table(title="Videos")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Shorts", justify="right")
    table.add_column("Error", style="red", overflow="fold")
    for video in videos:
        table.add_row(
            str(video.order_index + 1),
            video.title,
            video.status.value,
            str(video.total_shorts),
            video.error_message or "",
        )
    return table


def _short_panel(short: StudyShort) -> Panel:
    minutes, seconds = divmod(short.start_time, 60)
    return Panel(
        short.content,
        title=f"{short.title} [dim]({minutes:d}:{seconds:02d})[/dim]",
        subtitle=short.topic,
        border_style="blue",
    )


__all__ = ["ExitCode", "register"]
