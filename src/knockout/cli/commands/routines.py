"""Routine commands: listing, editing entries, and choosing the active routine."""

from typing import Annotated, Optional

import typer

from ...core.profiles import load_profile
from ...core.routines import RoutineLibrary
from ...io.store import Store
from .. import views
from ..app import DbPathOption, UserOption, app, get_settings, run_with_store


@app.command("routines")
def list_routines(
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """List your routines (* marks the active one)."""
    settings = get_settings(db_path, user)

    async def _list(store: Store):
        library = RoutineLibrary(store, settings.user_id)
        profile = await load_profile(store, settings.user_id)
        return await library.list_routines(), profile.active_routine_id

    routines, active_id = run_with_store(settings, _list)
    views.print_routines(routines, active_id)


@app.command("routine-show")
def routine_show(
    routine_id: Annotated[
        Optional[str],
        typer.Argument(help="Routine id (default: the active routine)"),
    ] = None,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Show the entries of a routine in order."""
    settings = get_settings(db_path, user)

    async def _show(store: Store):
        library = RoutineLibrary(store, settings.user_id)
        active = await library.active_routine()
        if routine_id is None:
            return active, active is not None
        routine = await library.get_routine(routine_id)
        return routine, active is not None and active.id == routine.id

    routine, is_active = run_with_store(settings, _show)
    if routine is None:
        views.print_info("No active routine. Pick one with 'knockout routine-activate'.")
        return
    views.print_routine(routine, is_active)


@app.command("routine-create")
def routine_create(
    name: Annotated[str, typer.Argument(help="Routine name")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Create an empty routine."""
    settings = get_settings(db_path, user)

    async def _create(store: Store):
        return await RoutineLibrary(store, settings.user_id).create_routine(name)

    routine = run_with_store(settings, _create)
    views.print_success(f"Created routine {routine.name} (id {routine.id})")


@app.command("routine-delete")
def routine_delete(
    routine_id: Annotated[str, typer.Argument(help="Routine id")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Delete without prompting"),
    ] = False,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Delete a routine and its entries."""
    settings = get_settings(db_path, user)

    if not force and not views.confirm_action(f"Delete routine {routine_id}?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    async def _delete(store: Store):
        await RoutineLibrary(store, settings.user_id).delete_routine(routine_id)

    run_with_store(settings, _delete)
    views.print_success(f"Deleted routine {routine_id}")


@app.command("routine-activate")
def routine_activate(
    routine_id: Annotated[str, typer.Argument(help="Routine id")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Make a routine the active one."""
    settings = get_settings(db_path, user)

    async def _activate(store: Store):
        library = RoutineLibrary(store, settings.user_id)
        await library.set_active_routine(routine_id)
        return await library.get_routine(routine_id)

    routine = run_with_store(settings, _activate)
    views.print_success(f"Active routine: {routine.name}")


@app.command("routine-add")
def routine_add(
    routine_id: Annotated[str, typer.Argument(help="Routine id")],
    exercise_id: Annotated[str, typer.Argument(help="Exercise id")],
    sets: Annotated[
        int,
        typer.Option("--sets", "-n", help="Planned sets (1-20)"),
    ] = 3,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Append an exercise to the end of a routine."""
    settings = get_settings(db_path, user)

    async def _add(store: Store):
        library = RoutineLibrary(store, settings.user_id)
        await library.entries.add_entry(routine_id, exercise_id, sets)
        return await library.get_routine(routine_id)

    routine = run_with_store(settings, _add)
    views.print_routine(routine)


@app.command("routine-move")
def routine_move(
    routine_id: Annotated[str, typer.Argument(help="Routine id")],
    position: Annotated[int, typer.Argument(help="Current position of the entry (1-based)")],
    direction: Annotated[str, typer.Argument(help="up or down")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Swap an entry with its neighbour above (up) or below (down)."""
    settings = get_settings(db_path, user)

    async def _move(store: Store):
        library = RoutineLibrary(store, settings.user_id)
        await library.entries.reorder(routine_id, direction, position - 1)
        return await library.get_routine(routine_id)

    routine = run_with_store(settings, _move)
    views.print_routine(routine)


@app.command("routine-remove")
def routine_remove(
    entry_id: Annotated[str, typer.Argument(help="Entry id (see routine-show)")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Remove an entry from its routine."""
    settings = get_settings(db_path, user)

    async def _remove(store: Store):
        remaining = await RoutineLibrary(store, settings.user_id).entries.delete_entry(entry_id)
        return len(remaining)

    count = run_with_store(settings, _remove)
    views.print_success(f"Removed entry; {count} left")


@app.command("routine-sets")
def routine_sets(
    entry_id: Annotated[str, typer.Argument(help="Entry id (see routine-show)")],
    count: Annotated[int, typer.Argument(help="Planned sets (1-20)")],
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Change the planned set count of a routine entry."""
    settings = get_settings(db_path, user)

    async def _sets(store: Store):
        return await RoutineLibrary(store, settings.user_id).entries.update_planned_sets(
            entry_id, count
        )

    if run_with_store(settings, _sets):
        views.print_success(f"Planned sets set to {count}")
    else:
        views.print_warning("Planned sets must be between 1 and 20; nothing changed.")
