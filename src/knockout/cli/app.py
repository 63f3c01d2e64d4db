"""Shared Typer app object, shared option types, and store utilities."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Awaitable, Callable, Optional, TypeVar

import typer

from ..core.config import Settings, load_settings
from ..core.errors import KnockoutError
from ..io.sqlite_store import SqliteStore
from ..io.store import Store, StoreError
from . import views

T = TypeVar("T")

# Shared --db-path option type used across all commands
DbPathOption = Annotated[
    Optional[Path],
    typer.Option("--db-path", "-p", help="SQLite database file (default: ~/.knockout/knockout.db)"),
]

# Shared --user option type
UserOption = Annotated[
    Optional[str],
    typer.Option("--user", "-u", help="User id (default: from config, 'local')"),
]

app = typer.Typer(
    name="knockout",
    help="Workout tracker: routines, live sessions and logged sets.",
    no_args_is_help=True,
)


def get_settings(db_path: Path | None = None, user: str | None = None) -> Settings:
    """Resolve settings, applying command-line overrides on top."""
    try:
        settings = load_settings()
    except ValueError as e:
        views.print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    if db_path is not None:
        settings = replace(settings, db_path=db_path)
    if user:
        settings = replace(settings, user_id=user)
    return settings


def run_with_store(settings: Settings, fn: Callable[[Store], Awaitable[T]]) -> T:
    """
    Open the SQLite store, run *fn* against it and close it again.

    Engine errors are printed and turned into exit code 1.
    """

    async def _run() -> T:
        async with SqliteStore(settings.db_path) as store:
            return await fn(store)

    try:
        return asyncio.run(_run())
    except (KnockoutError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
