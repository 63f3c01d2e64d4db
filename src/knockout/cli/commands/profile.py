"""Profile commands: init (catalog seeding and onboarding)."""

from pathlib import Path
from typing import Annotated, List, Optional

import typer

from ...core.config import BODY_WEIGHT, EQUIPMENT
from ...core.exercises import seed_catalog
from ...core.onboarding import complete_onboarding
from ...core.profiles import load_profile
from ...io.store import Store
from .. import views
from ..app import DbPathOption, UserOption, app, get_settings, run_with_store


@app.command()
def init(
    equipment: Annotated[
        Optional[List[str]],
        typer.Option(
            "--equipment",
            "-e",
            help=f"Equipment you own (repeatable): {', '.join(EQUIPMENT)}",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Copy starter routines even if already onboarded"),
    ] = False,
    db_path: DbPathOption = None,
    user: UserOption = None,
) -> None:
    """
    Seed the exercise catalog and copy starter routines.

    One starter routine is copied per equipment type; the first becomes the
    active routine.  Running init again only refreshes the catalog unless
    --force is given.

      knockout init -e body_weight -e dumbbell
    """
    settings = get_settings(db_path, user)
    selected = equipment or [BODY_WEIGHT]

    async def _init(store: Store):
        count = await seed_catalog(store)
        profile = await load_profile(store, settings.user_id)
        if profile.onboarding_completed_at and not force:
            return count, None
        return count, await complete_onboarding(store, settings.user_id, selected)

    count, routines = run_with_store(settings, _init)

    views.print_success(f"Exercise catalog ready ({count} exercises) at {settings.db_path}")
    if routines is None:
        views.print_info("Already onboarded; use --force to copy starter routines again.")
        return
    if not routines:
        views.print_warning("No starter routine matched the selected equipment.")
        return
    for routine in routines:
        views.print_success(f"Added routine: {routine.name} ({len(routine.days)} entries)")
