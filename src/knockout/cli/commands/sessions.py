"""Session commands: start, active, log-set, add-set, finish, discard, history."""

from typing import Annotated, Optional

import typer

from ...core.config import DEFAULT_PLANNED_SETS, Settings
from ...core.errors import ConflictError, NotFoundError
from ...core.exercises import ExerciseLibrary
from ...core.models import ComposedSession
from ...core.routines import RoutineLibrary
from ...core.sessions import SessionManager
from ...core.slot_editor import SlotEditor
from ...io.store import Store
from .. import views
from ..app import DbPathOption, UserOption, app, get_settings, run_with_store

WeightOption = Annotated[
    Optional[str],
    typer.Option(
        "--weight",
        "-w",
        help="Load for the set; omit for body weight, pass '' for an empty field",
    ),
]


async def _exercise_name(store: Store, settings: Settings, exercise_id: str) -> str:
    try:
        exercise = await ExerciseLibrary(store, settings.user_id).get_exercise(exercise_id)
    except NotFoundError:
        return exercise_id
    return exercise.name


async def _planned_from_routine(store: Store, settings: Settings, exercise_id: str) -> int:
    """Planned sets of the exercise's entry in the active routine, or the default."""
    routine = await RoutineLibrary(store, settings.user_id).active_routine()
    if routine is not None:
        for day in routine.ordered_days:
            if day.exercise_id == exercise_id:
                return day.planned_sets
    return DEFAULT_PLANNED_SETS


async def _open_editor(store: Store, settings: Settings) -> SlotEditor:
    editor = await SlotEditor.open(SessionManager.from_settings(store, settings))
    if editor is None:
        raise NotFoundError("No session in progress. Start one with 'knockout start'.")
    return editor


@app.command()
def start(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id (see 'knockout exercises')")],
    sets: Annotated[
        Optional[int],
        typer.Option("--sets", "-n", help="Planned sets (default: from the active routine)"),
    ] = None,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """
    Start a session, prefilled from your last completed one.

    Only one session can be in progress at a time; if one is, it is shown
    instead and nothing new is started.
    """
    settings = get_settings(db_path, user)

    async def _start(store: Store):
        manager = SessionManager.from_settings(store, settings)
        planned = sets if sets is not None else await _planned_from_routine(
            store, settings, exercise_id
        )
        try:
            composed = await manager.create(exercise_id, planned)
            conflict = False
        except ConflictError:
            composed = await manager.get_active()
            if composed is None:
                raise
            conflict = True
        name = await _exercise_name(store, settings, composed.session.exercise_id)
        return composed, name, conflict

    composed, name, conflict = run_with_store(settings, _start)
    if conflict:
        views.print_info("A session is already in progress; resuming it.")
        views.print_session(composed, name)
        return
    views.print_session(composed, name)
    prefilled = composed.completed_count
    if prefilled:
        views.print_info(f"Prefilled {prefilled} set(s) from your last session.")


@app.command()
def active(
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Show the session in progress."""
    settings = get_settings(db_path, user)

    async def _active(store: Store):
        composed = await SessionManager.from_settings(store, settings).get_active()
        if composed is None:
            return None, None
        return composed, await _exercise_name(store, settings, composed.session.exercise_id)

    composed, name = run_with_store(settings, _active)
    if composed is None:
        views.print_info("No session in progress.")
        return
    views.print_session(composed, name)


@app.command("log-set")
def log_set(
    set_number: Annotated[int, typer.Argument(help="Set number (1-based)")],
    reps: Annotated[str, typer.Argument(help="Reps done; 0 or '' clears the set")],
    weight: WeightOption = None,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Record (or clear) one set of the session in progress."""
    settings = get_settings(db_path, user)

    async def _log(store: Store):
        editor = await _open_editor(store, settings)
        editor.edit(set_number, reps=reps, weight=weight)
        ok = await editor.commit(set_number)
        name = await _exercise_name(store, settings, editor.composed.session.exercise_id)
        return ok, editor.last_error, editor.composed, name

    ok, error, composed, name = run_with_store(settings, _log)
    if not ok:
        views.print_error(str(error))
        raise typer.Exit(1)
    views.print_session(composed, name)


@app.command("add-set")
def add_set(
    reps: Annotated[str, typer.Argument(help="Reps done in the extra set")],
    weight: WeightOption = None,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Append a set after the last one and record it."""
    settings = get_settings(db_path, user)

    async def _add(store: Store):
        editor = await _open_editor(store, settings)
        slot = await editor.add_slot()
        editor.edit(slot.set_number, reps=reps, weight=weight)
        ok = await editor.commit(slot.set_number)
        name = await _exercise_name(store, settings, editor.composed.session.exercise_id)
        return ok, editor.last_error, editor.composed, name

    ok, error, composed, name = run_with_store(settings, _add)
    if not ok:
        views.print_error(str(error))
        raise typer.Exit(1)
    views.print_session(composed, name)


@app.command()
def finish(
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Complete the session in progress (unfilled sets are fine)."""
    settings = get_settings(db_path, user)

    async def _finish(store: Store) -> ComposedSession:
        manager = SessionManager.from_settings(store, settings)
        current = await manager.get_active()
        if current is None:
            raise NotFoundError("No session in progress.")
        return await manager.complete(current.id)

    composed = run_with_store(settings, _finish)
    views.print_session(composed)
    views.print_success(
        f"Session completed: {composed.completed_count}/{len(composed.slots)} sets logged"
    )


@app.command()
def discard(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Discard without prompting"),
    ] = False,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Throw away the session in progress and its sets."""
    settings = get_settings(db_path, user)

    if not force and not views.confirm_action("Discard the session in progress?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    async def _discard(store: Store) -> str:
        manager = SessionManager.from_settings(store, settings)
        current = await manager.get_active()
        if current is None:
            raise NotFoundError("No session in progress.")
        await manager.discard(current.id)
        return current.id

    session_id = run_with_store(settings, _discard)
    views.print_success(f"Discarded session {session_id}")


@app.command()
def history(
    exercise_id: Annotated[
        Optional[str],
        typer.Option("--exercise", "-e", help="Only this exercise"),
    ] = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", help="Show at most this many sessions"),
    ] = None,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """Show completed sessions, most recent first."""
    settings = get_settings(db_path, user)

    async def _history(store: Store):
        sessions = await SessionManager.from_settings(store, settings).history(
            exercise_id, limit
        )
        names = {}
        for composed in sessions:
            ex_id = composed.session.exercise_id
            if ex_id not in names:
                names[ex_id] = await _exercise_name(store, settings, ex_id)
        return sessions, names

    sessions, names = run_with_store(settings, _history)
    views.print_history(sessions, names)
