"""
CLI entry point using Typer.

Provides commands for routines and live sessions:
- init: Seed the exercise catalog and copy starter routines
- exercises / exercise-add / favorite: Browse and extend the catalog
- routines / routine-*: Manage routines and their entries
- start / active / log-set / add-set / finish / discard: Run a session
- history: Show completed sessions
"""

import logging
from typing import Annotated

import typer

from ..logging_setup import setup_logging
from .app import app, get_settings

# Register commands on the shared app
from .commands import exercises as _exercises  # noqa: F401
from .commands import profile as _profile  # noqa: F401
from .commands import routines as _routines  # noqa: F401
from .commands import sessions as _sessions  # noqa: F401


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Workout tracker: routines, live sessions and logged sets.
    """
    settings = get_settings()
    setup_logging(settings.log_format, logging.DEBUG if verbose else settings.log_level)


if __name__ == "__main__":
    app()
