"""
YAML → AchievementDefinition loader.

Loads the achievement catalog from the bundled ``src/fitquest/achievements.yaml``.

User overrides: entries in ``~/.fitquest/achievements.yaml`` are merged
by id over the bundled catalog, so only changed keys need to be listed.
An entry whose id does not exist in the bundled catalog is added.

The bundled catalog must be valid (CatalogError otherwise); a broken user
entry is skipped with a warning.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path

from .config import RANK_LADDER
from .engine.config_loader import (
    _deep_merge,
    _load_yaml_file,
    get_bundled_yaml_path,
    get_user_yaml_path,
)
from .errors import CatalogError
from .models import CATEGORIES, REQUIREMENT_TYPES, AchievementDefinition

logger = logging.getLogger(__name__)

CATALOG_FILE = "achievements.yaml"

_REQUIRED_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "name",
        "category",
        "rank",
        "points",
        "requirement_type",
        "requirement_value",
    }
)

_ACHIEVEMENT_RANKS: frozenset[str] = frozenset(name for name, _ in RANK_LADDER[1:])


def achievement_from_dict(d: dict) -> AchievementDefinition:
    """Convert a raw dict (from YAML) to an AchievementDefinition.

    Raises ValueError if a required field is absent or out of range.
    """
    missing = _REQUIRED_FIELDS - set(d)
    if missing:
        raise ValueError(f"AchievementDefinition missing fields: {sorted(missing)}")
    if d["requirement_type"] not in REQUIREMENT_TYPES:
        raise ValueError(f"Unknown requirement_type {d['requirement_type']!r}")
    if d["rank"] not in _ACHIEVEMENT_RANKS:
        raise ValueError(f"Unknown rank {d['rank']!r}")
    workout_category = d.get("workout_category")
    if d["requirement_type"] == "category_workouts" and workout_category not in CATEGORIES:
        raise ValueError(
            f"category_workouts needs workout_category in {CATEGORIES}, got {workout_category!r}"
        )

    definition = AchievementDefinition(
        id=str(d["id"]),
        name=str(d["name"]),
        description=str(d.get("description", "")),
        category=str(d["category"]),
        rank=d["rank"],
        points=int(d["points"]),
        xp_reward=int(d.get("xp_reward", 0)),
        requirement_type=d["requirement_type"],
        requirement_value=int(d["requirement_value"]),
        icon=str(d.get("icon", "")),
        workout_category=str(workout_category) if workout_category else None,
    )
    if definition.points < 0 or definition.xp_reward < 0:
        raise ValueError("points and xp_reward must be non-negative")
    if definition.requirement_value <= 0:
        raise ValueError("requirement_value must be positive")
    return definition


class AchievementCatalog:
    """Immutable, ordered set of achievement definitions."""

    def __init__(self, definitions: list[AchievementDefinition]):
        seen: set[str] = set()
        for definition in definitions:
            if definition.id in seen:
                raise CatalogError(f"Duplicate achievement id {definition.id!r}")
            seen.add(definition.id)
        self._definitions = tuple(definitions)
        self._by_id = {d.id: d for d in self._definitions}

    def __iter__(self) -> Iterator[AchievementDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._by_id

    def get(self, achievement_id: str) -> AchievementDefinition:
        if achievement_id not in self._by_id:
            raise CatalogError(f"Unknown achievement {achievement_id!r}")
        return self._by_id[achievement_id]

    def by_requirement(self, requirement_type: str) -> list[AchievementDefinition]:
        return [d for d in self._definitions if d.requirement_type == requirement_type]


def _entries(raw: dict, source: Path) -> list[dict]:
    entries = raw.get("achievements", [])
    if not isinstance(entries, list):
        raise CatalogError(f"{source}: 'achievements' must be a list")
    return [e for e in entries if isinstance(e, dict)]


def load_catalog(
    bundled_path: Path | None = None,
    user_path: Path | None = None,
) -> AchievementCatalog:
    """
    Load the achievement catalog.

    Args:
        bundled_path: Catalog file (default: the bundled achievements.yaml)
        user_path: Override file (default: ~/.fitquest/achievements.yaml if present)

    Raises:
        CatalogError: If the bundled catalog is missing or invalid
    """
    bundled_path = bundled_path or get_bundled_yaml_path(CATALOG_FILE)
    if bundled_path is None:
        raise CatalogError(f"Bundled {CATALOG_FILE} not found")
    bundled_raw = _load_yaml_file(bundled_path)
    if not bundled_raw:
        raise CatalogError(f"{bundled_path} is empty or unreadable")

    merged: dict[str, dict] = {}
    for entry in _entries(bundled_raw, bundled_path):
        try:
            achievement_from_dict(entry)
        except ValueError as exc:
            raise CatalogError(f"{bundled_path}: {entry.get('id', '?')}: {exc}") from exc
        if entry["id"] in merged:
            raise CatalogError(f"Duplicate achievement id {entry['id']!r}")
        merged[entry["id"]] = entry

    user_path = user_path or get_user_yaml_path(CATALOG_FILE)
    if user_path is not None:
        for entry in _entries(_load_yaml_file(user_path), user_path):
            achievement_id = entry.get("id")
            if not achievement_id:
                warnings.warn(f"fitquest: skipping user achievement without id in {user_path}", stacklevel=2)
                continue
            candidate = _deep_merge(merged.get(achievement_id, {}), entry)
            try:
                achievement_from_dict(candidate)
            except ValueError as exc:
                warnings.warn(
                    f"fitquest: skipping user achievement '{achievement_id}' ({exc})",
                    stacklevel=2,
                )
                continue
            merged[achievement_id] = candidate

    catalog = AchievementCatalog([achievement_from_dict(e) for e in merged.values()])
    logger.debug("Loaded %d achievements", len(catalog))
    return catalog


@lru_cache(maxsize=1)
def get_default_catalog() -> AchievementCatalog:
    """Catalog loaded once per process."""
    return load_catalog()
