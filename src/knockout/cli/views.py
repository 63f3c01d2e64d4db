"""
Rich console output for the knockout CLI.

Tables for sessions, routines and exercises plus the message helpers every
command uses.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import ComposedSession, Exercise, Routine, SetSlot

console = Console()


def _fmt_weight(slot: SetSlot) -> str:
    if not slot.completed:
        return "-"
    if slot.weight is None:
        return "BW"
    return f"{slot.weight:g}"


def format_session_table(composed: ComposedSession, exercise_name: str | None = None) -> Table:
    """
    Create a Rich table of a session's slots.

    Args:
        composed: Session with its slots
        exercise_name: Display name for the title (falls back to the id)

    Returns:
        Rich Table object
    """
    session = composed.session
    title = exercise_name or session.exercise_id
    table = Table(
        title=f"{title}  [dim]({session.status}, target {session.target_rep_min}-"
        f"{session.target_rep_max} reps)[/dim]"
    )
    table.add_column("Set", justify="right", style="dim", width=4)
    table.add_column("Reps", justify="right", style="bold")
    table.add_column("Weight", justify="right")
    table.add_column("Done", justify="center")

    active = composed.active_slot if session.is_in_progress else None
    for slot in composed.slots:
        marker = "→ " if active is not None and slot.set_number == active.set_number else ""
        table.add_row(
            f"{marker}{slot.set_number}",
            str(slot.reps) if slot.reps is not None else "-",
            _fmt_weight(slot),
            "[green]✓[/green]" if slot.completed else "",
        )
    return table


def print_session(composed: ComposedSession, exercise_name: str | None = None) -> None:
    console.print(format_session_table(composed, exercise_name))
    console.print(
        f"[dim]Session {composed.id}: {composed.completed_count}/{len(composed.slots)} sets done[/dim]"
    )


def print_history(sessions: list[ComposedSession], names: dict[str, str]) -> None:
    """
    Print completed sessions, most recent first.

    Args:
        sessions: Completed sessions to display
        names: exercise id -> display name
    """
    if not sessions:
        console.print("[yellow]No completed sessions yet.[/yellow]")
        return

    table = Table(title="Session History")
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Completed", style="cyan")
    table.add_column("Exercise", style="magenta")
    table.add_column("Sets", justify="right")
    table.add_column("Total reps", justify="right", style="bold")
    table.add_column("Top weight", justify="right")

    for i, composed in enumerate(sessions, 1):
        done = [s for s in composed.slots if s.completed]
        weights = [s.weight for s in done if s.weight is not None]
        table.add_row(
            str(i),
            (composed.session.completed_at or "")[:16].replace("T", " "),
            names.get(composed.session.exercise_id, composed.session.exercise_id),
            f"{len(done)}/{len(composed.slots)}",
            str(sum(s.reps or 0 for s in done)),
            f"{max(weights):g}" if weights else "BW" if done else "-",
        )
    console.print(table)


def print_routine(routine: Routine, is_active: bool = False) -> None:
    """Print one routine with its entries in position order."""
    suffix = " [green](active)[/green]" if is_active else ""
    table = Table(title=f"{routine.name}{suffix}")
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Title", style="cyan")
    table.add_column("Exercise", style="magenta")
    table.add_column("Muscle group")
    table.add_column("Sets", justify="right", style="bold")
    table.add_column("Entry id", style="dim")

    for day in routine.ordered_days:
        table.add_row(
            str(day.sort_order),
            day.title,
            day.exercise_id,
            day.muscle_group,
            str(day.planned_sets),
            day.id,
        )
    console.print(table)


def print_routines(routines: list[Routine], active_id: str | None) -> None:
    if not routines:
        console.print("[yellow]No routines yet. Run 'knockout init' first.[/yellow]")
        return

    table = Table(title="Routines")
    table.add_column("", width=1)
    table.add_column("Name", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Id", style="dim")
    for routine in routines:
        table.add_row(
            "[green]*[/green]" if routine.id == active_id else "",
            routine.name,
            str(len(routine.days)),
            routine.id,
        )
    console.print(table)


def print_exercises(exercises: list[Exercise]) -> None:
    if not exercises:
        console.print("[yellow]No exercises match.[/yellow]")
        return

    table = Table(title="Exercises")
    table.add_column("", width=1)
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Muscle group", style="magenta")
    table.add_column("Equipment")
    for ex in exercises:
        table.add_row(
            "[yellow]★[/yellow]" if ex.is_favorite else "",
            ex.id,
            ex.name if ex.is_curated else f"{ex.name} [dim](custom)[/dim]",
            ex.muscle_group,
            ex.equipment,
        )
    console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
