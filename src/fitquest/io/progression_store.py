"""
JSON-based progression storage.

One document per user holds the progression counters, the workout and
activity log, personal records, achievement unlocks and progress rows,
power-day usage, the streak-preservation charge and guild membership.
"""

import copy
import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ..core.errors import PersistenceError, ValidationFailure, require_id
from ..core.models import (
    ActivityEntry,
    AchievementProgressEntry,
    AchievementUnlock,
    PersonalRecord,
    UserProgressionState,
    WorkoutRecord,
)
from .cache import TTLCache
from .serializers import (
    ValidationError,
    activity_to_dict,
    dict_to_activity,
    dict_to_progress,
    dict_to_record,
    dict_to_state,
    dict_to_unlock,
    dict_to_workout,
    progress_to_dict,
    record_to_dict,
    state_to_dict,
    unlock_to_dict,
    workout_to_dict,
)

logger = logging.getLogger(__name__)


def _week_key(week: int, year: int) -> str:
    return f"{year}-W{week:02d}"


def _empty_document(state: UserProgressionState) -> dict[str, Any]:
    return {
        "state": state_to_dict(state),
        "workouts": [],
        "activities": [],
        "personal_records": {},
        "unlocks": {},
        "progress": {},
        "power_days": {},
        "streak_preservations": [],
        "guild": None,
    }


class ProgressionStore:
    """
    Manages per-user progression documents.

    With a root directory each user lives in ``<root>/<user_id>.json``;
    without one everything stays in memory (tests, one-shot scripts).

    Every mutating method runs inside transaction(), so a call made
    outside an explicit block commits on its own, while calls made inside
    one are committed (or rolled back) together.
    """

    def __init__(self, root: str | Path | None = None, cache: TTLCache | None = None):
        """
        Initialize the store.

        Args:
            root: Directory holding one JSON file per user, or None for memory
            cache: Cache for personal-record lookups (a default one if None)
        """
        self.root = Path(root) if root is not None else None
        self.cache = cache if cache is not None else TTLCache()
        self._docs: dict[str, dict[str, Any]] = {}
        self._depth: dict[str, int] = {}
        self._snapshots: dict[str, dict[str, Any] | None] = {}

    # ------------------------------------------------------------------
    # documents
    # ------------------------------------------------------------------

    def _path(self, user_id: str) -> Path:
        assert self.root is not None
        return self.root / f"{user_id}.json"

    def exists(self, user_id: str) -> bool:
        if user_id in self._docs:
            return True
        return self.root is not None and self._path(user_id).exists()

    def list_users(self) -> list[str]:
        users = set(self._docs)
        if self.root is not None and self.root.exists():
            users.update(p.stem for p in self.root.glob("*.json"))
        return sorted(users)

    def _read(self, user_id: str) -> dict[str, Any]:
        if self.root is None:
            raise ValidationFailure(f"Unknown user: {user_id}")
        path = self._path(user_id)
        if not path.exists():
            raise ValidationFailure(f"Unknown user: {user_id}. Run 'init' first.")
        try:
            with open(path, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

    def _write(self, user_id: str) -> None:
        if self.root is None:
            return
        path = self._path(user_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w") as f:
                json.dump(self._docs[user_id], f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

    def _doc(self, user_id: str) -> dict[str, Any]:
        require_id(user_id, "user_id")
        doc = self._docs.get(user_id)
        if doc is None:
            doc = self._read(user_id)
            self._docs[user_id] = doc
        return doc

    @contextmanager
    def transaction(self, user_id: str) -> Iterator[None]:
        """
        Group writes for one user.

        The outermost block snapshots the user document; any exception
        restores the snapshot, drops cached lookups and re-raises. Nested
        blocks join the outer one. The file is written once, when the
        outermost block commits.
        """
        require_id(user_id, "user_id")
        depth = self._depth.get(user_id, 0)
        if depth == 0:
            existing = self._docs.get(user_id)
            if existing is None and self.exists(user_id):
                existing = self._doc(user_id)
            self._snapshots[user_id] = copy.deepcopy(existing)
        self._depth[user_id] = depth + 1
        try:
            yield
            if depth == 0 and user_id in self._docs:
                self._write(user_id)
        except BaseException:
            if depth == 0:
                self._rollback(user_id)
            raise
        finally:
            self._depth[user_id] = depth
            if depth == 0:
                self._snapshots.pop(user_id, None)

    def _rollback(self, user_id: str) -> None:
        snapshot = self._snapshots.get(user_id)
        if snapshot is None:
            self._docs.pop(user_id, None)
        else:
            self._docs[user_id] = snapshot
        self.cache.invalidate_user(user_id)
        logger.warning("Rolled back uncommitted changes for %s", user_id)

    # ------------------------------------------------------------------
    # progression state
    # ------------------------------------------------------------------

    def create_user(self, state: UserProgressionState) -> None:
        """
        Create a user document with the given initial state.

        Raises:
            ValidationFailure: If the user already exists
        """
        require_id(state.user_id, "user_id")
        if self.exists(state.user_id):
            raise ValidationFailure(f"User already exists: {state.user_id}")
        with self.transaction(state.user_id):
            self._docs[state.user_id] = _empty_document(state)
        logger.info("Created progression for %s", state.user_id)

    def load_state(self, user_id: str) -> UserProgressionState:
        try:
            return dict_to_state(self._doc(user_id)["state"])
        except (KeyError, ValidationError) as e:
            raise PersistenceError(f"Corrupt progression state for {user_id}: {e}") from e

    def save_state(self, state: UserProgressionState) -> None:
        with self.transaction(state.user_id):
            self._doc(state.user_id)["state"] = state_to_dict(state)

    # ------------------------------------------------------------------
    # workouts and activity log
    # ------------------------------------------------------------------

    def has_workout(self, user_id: str, workout_id: str) -> bool:
        return any(w.get("id") == workout_id for w in self._doc(user_id)["workouts"])

    def list_workouts(self, user_id: str) -> list[WorkoutRecord]:
        return [dict_to_workout(w) for w in self._doc(user_id)["workouts"]]

    def append_workout(self, workout: WorkoutRecord) -> None:
        with self.transaction(workout.owner_id):
            self._doc(workout.owner_id)["workouts"].append(workout_to_dict(workout))

    def list_activities(self, user_id: str, day: date | None = None) -> list[ActivityEntry]:
        entries = [dict_to_activity(a) for a in self._doc(user_id)["activities"]]
        if day is not None:
            entries = [a for a in entries if a.day == day]
        return entries

    def append_activity(self, user_id: str, entry: ActivityEntry) -> None:
        with self.transaction(user_id):
            self._doc(user_id)["activities"].append(activity_to_dict(entry))

    def last_manual_activity_at(self, user_id: str) -> datetime | None:
        value = self._doc(user_id).get("last_manual_at")
        return datetime.fromisoformat(value) if value else None

    def set_last_manual_activity_at(self, user_id: str, when: datetime) -> None:
        with self.transaction(user_id):
            self._doc(user_id)["last_manual_at"] = when.isoformat()

    # ------------------------------------------------------------------
    # personal records
    # ------------------------------------------------------------------

    def get_personal_records(self, user_id: str) -> dict[str, PersonalRecord]:
        """All personal records of a user keyed by exercise id (cached)."""
        key = (user_id, "personal_records")
        cached = self.cache.get(key)
        if cached is not None:
            return dict(cached)
        records = {
            exercise_id: dict_to_record(data)
            for exercise_id, data in self._doc(user_id)["personal_records"].items()
        }
        self.cache.set(key, records)
        return dict(records)

    def get_personal_record(self, user_id: str, exercise_id: str) -> PersonalRecord | None:
        return self.get_personal_records(user_id).get(exercise_id)

    def count_personal_records(self, user_id: str) -> int:
        return len(self._doc(user_id)["personal_records"])

    def upsert_personal_record(self, user_id: str, record: PersonalRecord) -> bool:
        """
        Store a record unless an equal or heavier one is already stored.

        Returns:
            True if the stored weight changed
        """
        with self.transaction(user_id):
            records = self._doc(user_id)["personal_records"]
            current = records.get(record.exercise_id)
            if current is not None and float(current.get("weight", 0)) >= record.weight:
                return False
            records[record.exercise_id] = record_to_dict(record)
            self.cache.invalidate((user_id, "personal_records"))
        return True

    # ------------------------------------------------------------------
    # achievements
    # ------------------------------------------------------------------

    def unlocked_ids(self, user_id: str) -> set[str]:
        return set(self._doc(user_id)["unlocks"])

    def list_unlocks(self, user_id: str) -> list[AchievementUnlock]:
        return [
            dict_to_unlock(user_id, data)
            for data in self._doc(user_id)["unlocks"].values()
        ]

    def insert_unlock_if_absent(self, unlock: AchievementUnlock) -> bool:
        """
        Insert an unlock row unless one exists for (user, achievement).

        Returns:
            True if the row was inserted, False if it was already there
        """
        with self.transaction(unlock.user_id):
            unlocks = self._doc(unlock.user_id)["unlocks"]
            if unlock.achievement_id in unlocks:
                return False
            unlocks[unlock.achievement_id] = unlock_to_dict(unlock)
        return True

    def get_progress(self, user_id: str) -> dict[str, AchievementProgressEntry]:
        return {
            achievement_id: dict_to_progress(user_id, data)
            for achievement_id, data in self._doc(user_id)["progress"].items()
        }

    def save_progress(self, entries: list[AchievementProgressEntry]) -> None:
        by_user: dict[str, list[AchievementProgressEntry]] = {}
        for entry in entries:
            by_user.setdefault(entry.user_id, []).append(entry)
        for user_id, rows in by_user.items():
            with self.transaction(user_id):
                progress = self._doc(user_id)["progress"]
                for row in rows:
                    progress[row.achievement_id] = progress_to_dict(row)

    # ------------------------------------------------------------------
    # power days, streak preservation, guild
    # ------------------------------------------------------------------

    def power_day_usage(self, user_id: str, week: int, year: int) -> list[date]:
        days = self._doc(user_id)["power_days"].get(_week_key(week, year), [])
        return [date.fromisoformat(d) for d in days]

    def add_power_day_usage(self, user_id: str, week: int, year: int, day: date) -> None:
        with self.transaction(user_id):
            usage = self._doc(user_id)["power_days"].setdefault(_week_key(week, year), [])
            if day.isoformat() not in usage:
                usage.append(day.isoformat())

    def streak_preservation_used(self, user_id: str, week: int, year: int) -> bool:
        return _week_key(week, year) in self._doc(user_id)["streak_preservations"]

    def mark_streak_preserved(self, user_id: str, week: int, year: int) -> None:
        with self.transaction(user_id):
            used = self._doc(user_id)["streak_preservations"]
            if _week_key(week, year) not in used:
                used.append(_week_key(week, year))

    def guild_contribution(self, user_id: str) -> float | None:
        """Cumulative guild contribution, or None when not in a guild."""
        guild = self._doc(user_id).get("guild")
        if not guild:
            return None
        return float(guild.get("contribution", 0.0))

    def join_guild(self, user_id: str, name: str) -> None:
        with self.transaction(user_id):
            doc = self._doc(user_id)
            if not doc.get("guild"):
                doc["guild"] = {"name": name, "contribution": 0.0}

    def add_guild_contribution(self, user_id: str, amount: float) -> None:
        with self.transaction(user_id):
            guild = self._doc(user_id).get("guild")
            if guild:
                guild["contribution"] = float(guild.get("contribution", 0.0)) + amount


def get_data_home() -> Path:
    """Base directory for fitquest data (``FITQUEST_HOME`` or ``~/.fitquest``)."""
    env = os.environ.get("FITQUEST_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".fitquest"


def get_default_store() -> ProgressionStore:
    """
    Get a ProgressionStore under the default data directory.

    Returns:
        ProgressionStore instance
    """
    return ProgressionStore(get_data_home() / "users")
