"""drivechunks CLI - Main commands."""
import asyncio
import getpass
import json
import os
from pathlib import Path
from typing import Dict, Optional

import aiohttp
import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from drivechunks.core.exceptions import DriveChunksError
from drivechunks.core.logging import format_size
from drivechunks.core.transfer import ChunkEvent, ChunkPlan, Chunk, TransferObserver, TransferProgress

app = typer.Typer(
    name="drivechunks",
    help="Chunked file storage on Google Drive",
    add_completion=False
)
console = Console()

HOME_ENV = "DRIVECHUNKS_HOME"
USER_ENV = "DRIVECHUNKS_USER"


# Catalog path: ~/.config/drivechunks/catalog.db
def get_config_dir() -> Path:
    config_dir = Path(os.environ.get(HOME_ENV) or Path.home() / ".config" / "drivechunks")
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_catalog_path() -> Path:
    return get_config_dir() / "catalog.db"


def default_user() -> str:
    return os.environ.get(USER_ENV) or getpass.getuser()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def open_client(user: str):
    from drivechunks import DriveChunksClient
    return DriveChunksClient(user, get_catalog_path())


class RichTransferObserver(TransferObserver):
    """Renders planning, byte progress and chunk failures on a rich Progress."""

    def __init__(self, progress: Progress, description: str, total: int):
        self._progress = progress
        self._description = description
        self._task: TaskID = progress.add_task(description, total=total or None)
        self._planning: Optional[TaskID] = None
        self._failed: Dict[int, BaseException] = {}

    @property
    def failed(self) -> Dict[int, BaseException]:
        return self._failed

    async def on_chunking_progress(self, index: int, total_chunks: int) -> None:
        if self._planning is None:
            self._planning = self._progress.add_task("Planning chunks", total=total_chunks)
        self._progress.update(self._planning, completed=index + 1)

    async def on_chunking_complete(self, plan: ChunkPlan) -> None:
        if self._planning is not None:
            self._progress.remove_task(self._planning)
            self._planning = None
        self._progress.update(
            self._task,
            description=f"{self._description} ({plan.total_chunks} chunks)"
        )

    async def on_chunk_event(
        self,
        event: ChunkEvent,
        chunk: Chunk,
        error: Optional[BaseException] = None
    ) -> None:
        if event in (ChunkEvent.ERROR_UPLOADING, ChunkEvent.ERROR_DOWNLOADING):
            self._failed[chunk.index] = error
            self._progress.console.print(f"[red]Chunk {chunk.index} failed: {error}[/red]")

    async def on_progress(self, progress: TransferProgress) -> None:
        self._progress.update(self._task, completed=progress.file_transferred)


def transfer_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console
    )


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    dest: str = typer.Option("/", "--dest", "-d", help="Catalog directory path"),
    name: str = typer.Option(None, "--name", "-n", help="Custom file name"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing directories"),
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """Upload a file as chunks."""

    async def do_upload():
        async with open_client(user or default_user()) as drive:
            if parents:
                drive.ensure_directory_path(dest)

            with transfer_progress() as progress:
                observer = RichTransferObserver(
                    progress,
                    f"Uploading {file_path.name}",
                    file_path.stat().st_size
                )
                manifest = await drive.upload(
                    file_path,
                    directory=dest,
                    name=name,
                    observer=observer
                )

            if manifest.is_complete:
                console.print(f"[green]Uploaded {manifest.name}[/green]")
            else:
                failed = [chunk.index for chunk in manifest.failed_chunks]
                console.print(f"[yellow]Uploaded {manifest.name} with failed chunks: {failed}[/yellow]")
            console.print(f"File ID: {manifest.id}")
            console.print(f"Chunks: {len(manifest.chunks)}")

            if not manifest.is_complete:
                raise typer.Exit(2)

    try:
        run_async(do_upload())
    except (DriveChunksError, aiohttp.ClientError, OSError) as e:
        console.print(f"[red]Upload failed: {e}[/red]")
        raise typer.Exit(1)
    except KeyError as e:
        console.print(f"[red]Missing credentials: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def download(
    file_id: str = typer.Argument(..., help="File ID"),
    output: Path = typer.Argument(Path("."), help="Output file or directory"),
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """Download and reassemble a file."""

    async def do_download():
        async with open_client(user or default_user()) as drive:
            manifest = drive.get_file(file_id)
            with transfer_progress() as progress:
                observer = RichTransferObserver(
                    progress,
                    f"Downloading {manifest.name}",
                    manifest.size
                )
                await drive.download(file_id, output, observer=observer)
            target = output / manifest.name if output.is_dir() else output
            console.print(f"[green]Downloaded to: {target}[/green]")

    try:
        run_async(do_download())
    except (DriveChunksError, aiohttp.ClientError, OSError) as e:
        console.print(f"[red]Download failed: {e}[/red]")
        raise typer.Exit(1)
    except KeyError as e:
        console.print(f"[red]Missing credentials: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def mkdir(
    path: str = typer.Argument(..., help="Directory path to create"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parents"),
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """Create a catalog directory."""

    async def do_mkdir():
        async with open_client(user or default_user()) as drive:
            if parents:
                drive.ensure_directory_path(path)
            else:
                parent, _, name = path.rstrip("/").rpartition("/")
                drive.create_directory(name, parent or "/")
        console.print(f"[green]Created: {path}[/green]")

    try:
        run_async(do_mkdir())
    except DriveChunksError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def dirs(
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """List catalog directories."""

    async def list_dirs():
        async with open_client(user or default_user()) as drive:
            directories = drive.list_directories()

        if not directories:
            console.print("[dim]No directories[/dim]")
            return
        for directory in directories:
            console.print(f"[blue]{directory.absolute_path}/[/blue]")

    try:
        run_async(list_dirs())
    except DriveChunksError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def ls(
    long: bool = typer.Option(False, "-l", "--long", help="Long format with details"),
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """List catalogued files."""

    async def list_files():
        async with open_client(user or default_user()) as drive:
            entries = drive.list_files()

        if not entries:
            console.print("[dim]No files[/dim]")
            return

        if long:
            table = Table()
            table.add_column("Path")
            table.add_column("Size", justify="right")
            table.add_column("Chunks", justify="right")
            table.add_column("ID")
            for entry in entries:
                manifest = entry.manifest
                chunks = str(len(manifest.chunks))
                if not manifest.is_complete:
                    chunks = f"[red]{chunks} ({len(manifest.failed_chunks)} failed)[/red]"
                table.add_row(entry.path, format_size(manifest.size), chunks, manifest.id)
            console.print(table)
        else:
            for entry in entries:
                console.print(entry.path)

    try:
        run_async(list_files())
    except DriveChunksError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def info(
    file_id: str = typer.Argument(..., help="File ID"),
    user: str = typer.Option(None, "--user", "-u", help="Catalog owner"),
):
    """Show a file's manifest as JSON."""

    async def show_info():
        async with open_client(user or default_user()) as drive:
            manifest = drive.get_file(file_id)
        console.print_json(json.dumps(manifest.to_dict()))

    try:
        run_async(show_info())
    except DriveChunksError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
