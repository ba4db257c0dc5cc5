"""
Transferstate CLI - Inspect and maintain a task-state store.

Usage:
    transferstate info --path ~/.transferstate
    transferstate list records
    transferstate remove paused --all
"""

import asyncio
import json
from enum import Enum
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from transferstate import __version__
from transferstate.config import StoreSettings
from transferstate.exceptions import TransferStateError
from transferstate.persistence import RecordCollection, TaskStateStore, create_document_store

# Load .env file if present
load_dotenv()

app = typer.Typer(
    name="transferstate",
    help="Inspect and maintain a persistent transfer task-state store",
    add_completion=False,
)

console = Console()


class Category(str, Enum):
    records = "records"
    paused = "paused"
    modified = "modified"
    resume = "resume"


def _settings(path: Path | None, backend: str | None, verbose: bool) -> StoreSettings:
    from transferstate.logging import setup_logging

    updates: dict = {}
    if path is not None:
        updates["path"] = path.expanduser()
    if backend is not None:
        updates["backend"] = backend.strip().lower()
    if verbose:
        updates["log_level"] = "DEBUG"

    try:
        settings = StoreSettings.from_env()
        if updates:
            settings = StoreSettings.model_validate({**settings.model_dump(), **updates})
    except (TransferStateError, ValueError) as e:
        console.print(f"[red]Invalid settings: {e}[/red]")
        raise typer.Exit(2)

    setup_logging(level=settings.log_level)
    return settings


def _collection(store: TaskStateStore, category: Category) -> RecordCollection:
    return {
        Category.records: store.task_records,
        Category.paused: store.paused_tasks,
        Category.modified: store.modified_tasks,
        Category.resume: store.resume_data,
    }[category]


def _run(coro):
    """Run a coroutine, converting store errors into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except TransferStateError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"transferstate v{__version__}")


@app.command()
def info(
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Show schema identities and record counts without migrating."""
    settings = _settings(path, backend, verbose)

    async def _info():
        store = TaskStateStore(create_document_store(settings))
        try:
            stored = await store.stored_schema_identity()
            console.print(f"Medium: {store.documents.description}")
            console.print(f"Current schema: {store.current_schema_identity}")
            console.print(f"Stored schema:  {stored}")
            counts = {
                c.name: len(await store.documents.get_all(c.name)) for c in store.collections
            }
        finally:
            await store.close()

        table = Table(title="Collections")
        table.add_column("Collection")
        table.add_column("Documents", justify="right")
        for name, count in counts.items():
            table.add_row(name, str(count))
        console.print(table)

    _run(_info())


@app.command()
def migrate(
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Bring the stored schema up to date."""
    settings = _settings(path, backend, verbose)

    async def _migrate() -> bool:
        async with TaskStateStore(create_document_store(settings)) as store:
            return not store.is_degraded

    if _run(_migrate()):
        console.print("[green]✓ Schema is current[/green]")
    else:
        console.print("[red]✗ Migration failed; store is running in degraded mode[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_records(
    category: Category = typer.Argument(..., help="records, paused, modified or resume"),
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """List stored entities of one category."""
    settings = _settings(path, backend, verbose)

    async def _list():
        async with TaskStateStore(create_document_store(settings)) as store:
            return await _collection(store, category).retrieve_all()

    entities = _run(_list())

    table = Table(title=f"{category.value} ({len(entities)})")
    table.add_column("Task id")
    table.add_column("URL")
    table.add_column("Detail")
    for entity in entities:
        task = getattr(entity, "task", entity)
        if category is Category.records:
            detail = f"{entity.status.value} {entity.progress:.0%}"
        elif category is Category.resume:
            detail = f"from byte {entity.required_start_byte}"
        else:
            detail = f"{task.task_type.value} priority={task.priority}"
        table.add_row(task.task_id, task.url[:60], detail)
    console.print(table)


@app.command()
def show(
    category: Category = typer.Argument(..., help="records, paused, modified or resume"),
    task_id: str = typer.Argument(..., help="Task identifier"),
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Print one stored entity as JSON."""
    settings = _settings(path, backend, verbose)

    async def _show():
        async with TaskStateStore(create_document_store(settings)) as store:
            collection = _collection(store, category)
            entity = await collection.retrieve(task_id)
            return collection.codec.to_document(entity) if entity is not None else None

    document = _run(_show())
    if document is None:
        console.print(f"[yellow]No {category.value} entry for {task_id}[/yellow]")
        raise typer.Exit(1)
    console.print_json(json.dumps(document))


@app.command()
def remove(
    category: Category = typer.Argument(..., help="records, paused, modified or resume"),
    task_id: str | None = typer.Argument(None, help="Task identifier"),
    all_: bool = typer.Option(False, "--all", help="Remove every entry in the category"),
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Remove one entry, or the whole category with --all."""
    if (task_id is None) == (not all_):
        console.print("[red]Give either a task id or --all[/red]")
        raise typer.Exit(2)
    settings = _settings(path, backend, verbose)

    async def _remove():
        async with TaskStateStore(create_document_store(settings)) as store:
            await _collection(store, category).remove(None if all_ else task_id)

    _run(_remove())
    target = "all entries" if all_ else task_id
    console.print(f"[green]✓ Removed {target} from {category.value}[/green]")


@app.command()
def purge(
    path: Path | None = typer.Option(None, "--path", "-p", help="Store directory or SQLite file"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend (local/sqlite/memory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Remove task records that reached a final status."""
    settings = _settings(path, backend, verbose)

    async def _purge() -> int:
        async with TaskStateStore(create_document_store(settings)) as store:
            return await store.purge_final_task_records()

    removed = _run(_purge())
    console.print(f"[green]✓ Purged {removed} task record(s)[/green]")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
