"""
YAML → curated catalog loader.

Loads the curated exercises (``catalog/exercises.yaml``) and the stock
routines offered during onboarding (``catalog/routines.yaml``) bundled with
the package.  Each entry is validated on its own; a bad entry is skipped
with a warning rather than failing the whole catalog.

Usage:
    from knockout.core.catalog import load_curated_exercises, load_stock_routines
    exercises = load_curated_exercises()
    routines = load_stock_routines()
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .config import DEFAULT_PLANNED_SETS, EQUIPMENT, PLANNED_SETS_MAX, PLANNED_SETS_MIN
from .models import Exercise


@dataclass(frozen=True)
class StockDay:
    """One entry of a stock routine."""

    title: str
    exercise_id: str
    planned_sets: int = DEFAULT_PLANNED_SETS


@dataclass(frozen=True)
class StockRoutine:
    """A routine template tied to one equipment type."""

    equipment: str
    name: str
    days: tuple[StockDay, ...] = field(default_factory=tuple)


def get_catalog_dir() -> Path:
    """Return the bundled catalog/ data directory."""
    # catalog.py lives at src/knockout/core/catalog.py; two levels up → src/knockout/
    return Path(__file__).parent.parent / "catalog"


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; raise RuntimeError if the file is missing or malformed."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise RuntimeError(f"knockout: cannot read catalog file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"knockout: catalog file {path} must contain a mapping")
    return data


def exercise_from_dict(d: dict[str, Any]) -> Exercise:
    """Convert a raw catalog dict to a curated Exercise.

    Raises ValueError if a field is missing or invalid.
    """
    missing = {"id", "name", "muscle_group", "equipment"} - set(d)
    if missing:
        raise ValueError(f"exercise missing fields: {sorted(missing)}")
    return Exercise(
        id=str(d["id"]),
        name=str(d["name"]),
        muscle_group=str(d["muscle_group"]),
        equipment=str(d["equipment"]),
        is_curated=True,
        created_by=None,
    )


def stock_routine_from_dict(d: dict[str, Any]) -> StockRoutine:
    """Convert a raw routine template dict.

    Raises ValueError if a field is missing or invalid.
    """
    missing = {"equipment", "name", "days"} - set(d)
    if missing:
        raise ValueError(f"routine missing fields: {sorted(missing)}")
    if d["equipment"] not in EQUIPMENT:
        raise ValueError(f"unknown equipment {d['equipment']!r}")
    days = []
    for raw in d["days"] or []:
        planned = int(raw.get("planned_sets", DEFAULT_PLANNED_SETS))
        if not PLANNED_SETS_MIN <= planned <= PLANNED_SETS_MAX:
            raise ValueError(f"planned_sets out of range: {planned}")
        days.append(
            StockDay(
                title=str(raw["title"]),
                exercise_id=str(raw["exercise_id"]),
                planned_sets=planned,
            )
        )
    if not days:
        raise ValueError("routine has no days")
    return StockRoutine(equipment=str(d["equipment"]), name=str(d["name"]), days=tuple(days))


def load_curated_exercises(path: Path | None = None) -> list[Exercise]:
    """Return curated exercises from the catalog, skipping invalid entries.

    Raises RuntimeError if the file cannot be read or yields no exercise.
    """
    path = path if path is not None else get_catalog_dir() / "exercises.yaml"
    result: list[Exercise] = []
    seen: set[str] = set()
    for raw in _load_yaml_file(path).get("exercises") or []:
        try:
            ex = exercise_from_dict(raw)
        except (TypeError, ValueError) as exc:
            warnings.warn(f"knockout: skipping catalog exercise {raw!r}: {exc}", stacklevel=2)
            continue
        if ex.id in seen:
            warnings.warn(f"knockout: duplicate catalog exercise id {ex.id!r}", stacklevel=2)
            continue
        seen.add(ex.id)
        result.append(ex)
    if not result:
        raise RuntimeError(f"knockout: no exercises could be loaded from {path}")
    return result


def load_stock_routines(path: Path | None = None) -> list[StockRoutine]:
    """Return stock routine templates, skipping invalid entries."""
    path = path if path is not None else get_catalog_dir() / "routines.yaml"
    result: list[StockRoutine] = []
    for raw in _load_yaml_file(path).get("routines") or []:
        try:
            result.append(stock_routine_from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            warnings.warn(f"knockout: skipping stock routine: {exc}", stacklevel=2)
    return result
