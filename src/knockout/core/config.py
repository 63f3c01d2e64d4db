"""
Configuration for the knockout session engine.

Fixed model constants live at the top of this module.  Tunable behaviour is
collected in :class:`Settings`, loaded by :func:`load_settings` from
(later overrides earlier):

1. Built-in defaults (``DEFAULT_SETTINGS``)
2. User override at ``~/.knockout/config.yaml``
3. Environment variables (``KNOCKOUT_*``)

If the user YAML file exists but cannot be parsed, a warning is issued and
the file is ignored.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

# =============================================================================
# PLANNED SETS
# =============================================================================

PLANNED_SETS_MIN: Final[int] = 1
PLANNED_SETS_MAX: Final[int] = 20
DEFAULT_PLANNED_SETS: Final[int] = 3  # Used when an exercise is added to a routine

# =============================================================================
# TARGET REP RANGE (informational, copied onto each new session)
# =============================================================================

DEFAULT_REP_MIN: Final[int] = 10
DEFAULT_REP_MAX: Final[int] = 20

# =============================================================================
# SLOTS
# =============================================================================

PHANTOM_ID_PREFIX: Final[str] = "temp"  # phantom slot ids: temp-<session_id>-<n>

# =============================================================================
# ENUMERATIONS
# =============================================================================

MUSCLE_GROUPS: Final[tuple[str, ...]] = (
    "chest",
    "back",
    "shoulders",
    "arms",
    "legs",
    "core",
    "full_body",
)

EQUIPMENT: Final[tuple[str, ...]] = (
    "body_weight",
    "dumbbell",
    "barbell",
    "kettlebell",
    "cable",
    "machine",
    "band",
)

BODY_WEIGHT: Final[str] = "body_weight"

EmptyWeightPolicy = Literal["zero", "reject"]
LogFormat = Literal["text", "json"]

# =============================================================================
# SETTINGS
# =============================================================================

DEFAULT_SETTINGS: Final[dict[str, Any]] = {
    "db_path": "~/.knockout/knockout.db",
    "user_id": "local",
    # What an empty weight field becomes on a valid save:
    #   zero   -> stored as 0.0
    #   reject -> ValidationError, nothing written
    "empty_weight_policy": "zero",
    # Whether add_slot raises the stored planned_sets to the new slot number
    "grow_planned_sets": False,
    "log_format": "text",
    "log_level": "WARNING",
}

_ENV_OVERRIDES: Final[dict[str, str]] = {
    "KNOCKOUT_DB_PATH": "db_path",
    "KNOCKOUT_USER_ID": "user_id",
    "KNOCKOUT_EMPTY_WEIGHT": "empty_weight_policy",
    "KNOCKOUT_LOG_FORMAT": "log_format",
    "KNOCKOUT_LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    db_path: Path
    user_id: str = "local"
    empty_weight_policy: EmptyWeightPolicy = "zero"
    grow_planned_sets: bool = False
    log_format: LogFormat = "text"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.empty_weight_policy not in ("zero", "reject"):
            raise ValueError(
                f"Invalid empty_weight_policy: {self.empty_weight_policy!r}. "
                "Must be 'zero' or 'reject'."
            )
        if self.log_format not in ("text", "json"):
            raise ValueError(
                f"Invalid log_format: {self.log_format!r}. Must be 'text' or 'json'."
            )
        if not self.user_id:
            raise ValueError("user_id must be non-empty")


def get_user_config_path() -> Path:
    """Return ``~/.knockout/config.yaml`` (whether or not it exists)."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".knockout" / "config.yaml"


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; warn and return {} on parse errors."""
    import yaml

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"knockout: ignoring {path} ({exc})", stacklevel=3)
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_settings(
    config_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """
    Build Settings from defaults, the user YAML file and the environment.

    Args:
        config_path: YAML override file (default: ~/.knockout/config.yaml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings instance

    Raises:
        ValueError: If a resolved value is invalid
    """
    merged: dict[str, Any] = dict(DEFAULT_SETTINGS)

    path = config_path if config_path is not None else get_user_config_path()
    if path.exists():
        merged.update(
            {k: v for k, v in _load_yaml_file(path).items() if k in DEFAULT_SETTINGS}
        )

    env = os.environ if environ is None else environ
    for var, key in _ENV_OVERRIDES.items():
        if env.get(var):
            merged[key] = env[var]
    if env.get("KNOCKOUT_GROW_PLANNED_SETS"):
        merged["grow_planned_sets"] = env["KNOCKOUT_GROW_PLANNED_SETS"]

    return Settings(
        db_path=Path(str(merged["db_path"])).expanduser(),
        user_id=str(merged["user_id"]),
        empty_weight_policy=merged["empty_weight_policy"],
        grow_planned_sets=_coerce_bool(merged["grow_planned_sets"]),
        log_format=merged["log_format"],
        log_level=str(merged["log_level"]).upper(),
    )
