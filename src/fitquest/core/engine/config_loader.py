"""
YAML → typed config loader.

Loads engine constants from rules.yaml (bundled with the package) and
optionally merges user overrides from ~/.fitquest/rules.yaml.

Usage:
    from fitquest.core.engine.config_loader import load_rules
    rules = load_rules()
    rules.daily_xp_cap  # 500 unless overridden

If the bundled YAML cannot be parsed, the Python defaults from config.py
apply (no crash).  If the user override file exists but has parse errors,
a warning is issued and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from ..config import EngineRules

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; warn and return {} on any error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        warnings.warn(f"Ignoring {path}: {e}", stacklevel=2)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        warnings.warn(f"Ignoring {path}: top level must be a mapping", stacklevel=2)
        return {}
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _streak_steps(raw: list) -> tuple[tuple[int, float], ...]:
    steps = [(int(item["min_streak"]), float(item["multiplier"])) for item in raw]
    steps.sort(key=lambda s: s[0], reverse=True)
    return tuple(steps)


def _rules_kwargs(config: dict[str, Any]) -> dict[str, Any]:
    """Translate the YAML sections into EngineRules keyword arguments."""
    kwargs: dict[str, Any] = {}

    caps = config.get("caps", {})
    for key in ("daily_xp_cap", "power_day_xp_cap", "power_days_per_week", "power_day_min_activities"):
        if key in caps:
            kwargs[key] = int(caps[key])

    workout = config.get("workout_xp", {})
    if "difficulty_multipliers" in workout:
        kwargs["difficulty_multipliers"] = {
            str(k): float(v) for k, v in workout["difficulty_multipliers"].items()
        }
    for key in (
        "xp_per_exercise",
        "max_counted_exercises",
        "xp_per_completed_set",
        "max_counted_sets",
        "xp_per_minute",
        "max_time_xp",
    ):
        if key in workout:
            kwargs[key] = int(workout[key])

    streaks = config.get("streaks", {})
    if "multiplier_steps" in streaks:
        kwargs["streak_multiplier_steps"] = _streak_steps(streaks["multiplier_steps"])
    if "milestones" in streaks:
        kwargs["streak_milestones"] = tuple(sorted(int(m) for m in streaks["milestones"]))

    manual = config.get("manual_activity", {})
    if "xp" in manual:
        kwargs["manual_activity_xp"] = int(manual["xp"])
    if "max_age_hours" in manual:
        kwargs["manual_activity_max_age_hours"] = int(manual["max_age_hours"])
    if "cooldown_hours" in manual:
        kwargs["manual_activity_cooldown_hours"] = int(manual["cooldown_hours"])

    return kwargs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path(name: str = "rules.yaml") -> Path | None:
    """Return the path to a bundled YAML file, or None if not found."""
    ref = importlib.resources.files("fitquest").joinpath(name)
    if ref.is_file():
        with importlib.resources.as_file(ref) as p:
            return p
    candidate = Path(__file__).parent.parent.parent / name
    return candidate if candidate.exists() else None


def get_user_dir() -> Path:
    """Return the user config directory (``FITQUEST_HOME`` or ~/.fitquest)."""
    env = os.environ.get("FITQUEST_HOME")
    if env:
        return Path(env).expanduser()
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".fitquest"


def get_user_yaml_path(name: str = "rules.yaml") -> Path | None:
    """Return the user override for a YAML file if it exists, else None."""
    p = get_user_dir() / name
    return p if p.exists() else None


def load_model_config() -> dict[str, Any]:
    """
    Load and merge rule configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/fitquest/rules.yaml
    2. User override at ~/.fitquest/rules.yaml

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        user_cfg = _load_yaml_file(user)
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def load_rules(config: dict[str, Any] | None = None) -> EngineRules:
    """
    Build EngineRules from the merged YAML configuration.

    Values that cannot be interpreted are reported with a warning and the
    Python defaults are used instead.
    """
    if config is None:
        config = load_model_config()
    try:
        return EngineRules(**_rules_kwargs(config))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        warnings.warn(f"Invalid rules configuration, using defaults: {e}", stacklevel=2)
        return EngineRules()


@lru_cache(maxsize=1)
def get_default_rules() -> EngineRules:
    """Rules loaded once per process; components fall back to these."""
    return load_rules()
