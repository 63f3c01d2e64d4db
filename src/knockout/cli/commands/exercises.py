"""Exercise commands: exercises, exercise-add, favorite."""

from typing import Annotated, Optional

import typer

from ...core.exercises import ExerciseLibrary
from ...io.store import Store
from .. import views
from ..app import DbPathOption, UserOption, app, get_settings, run_with_store


@app.command("exercises")
def list_exercises(
    muscle_group: Annotated[
        Optional[str],
        typer.Option("--muscle", "-m", help="Filter by muscle group"),
    ] = None,
    equipment: Annotated[
        Optional[str],
        typer.Option("--equipment", "-e", help="Filter by equipment"),
    ] = None,
    search: Annotated[
        Optional[str],
        typer.Option("--search", "-s", help="Search name or muscle group"),
    ] = None,
    favorites: Annotated[
        bool,
        typer.Option("--favorites", help="Only show favorites"),
    ] = False,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """List curated exercises and your own."""
    settings = get_settings(db_path, user)

    async def _list(store: Store):
        library = ExerciseLibrary(store, settings.user_id)
        return await library.list_exercises(muscle_group, equipment, search)

    exercises = run_with_store(settings, _list)
    if favorites:
        exercises = [e for e in exercises if e.is_favorite]
    views.print_exercises(exercises)


@app.command("exercise-add")
def exercise_add(
    name: Annotated[str, typer.Argument(help="Display name")],
    muscle_group: Annotated[str, typer.Option("--muscle", "-m", help="Muscle group")],
    equipment: Annotated[str, typer.Option("--equipment", "-e", help="Equipment")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Create a custom exercise."""
    settings = get_settings(db_path, user)

    async def _add(store: Store):
        library = ExerciseLibrary(store, settings.user_id)
        return await library.create_exercise(name, muscle_group, equipment)

    exercise = run_with_store(settings, _add)
    views.print_success(f"Created exercise {exercise.name} (id {exercise.id})")


@app.command()
def favorite(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id")],
    off: Annotated[bool, typer.Option("--off", help="Remove from favorites")] = False,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Mark (or unmark) an exercise as favorite."""
    settings = get_settings(db_path, user)

    async def _favorite(store: Store):
        library = ExerciseLibrary(store, settings.user_id)
        return await library.set_favorite(exercise_id, not off)

    exercise = run_with_store(settings, _favorite)
    state = "added to" if exercise.is_favorite else "removed from"
    views.print_success(f"{exercise.name} {state} favorites")
