"""
Personal-record detection.

A workout sets a record for an exercise when its heaviest set is strictly
heavier than the stored best (0 when there is none).  Detection is read
only; record_personal_records() persists the records together with the
record-count progress rows, in one transaction.
"""

import logging

from ..io.notifications import NotificationEvent, NotificationSink, notify
from .clock import Clock
from .errors import require_id
from .models import PersonalRecord, WorkoutRecord
from .progress import AchievementProgressTracker

logger = logging.getLogger(__name__)


class PersonalRecordDetector:
    def __init__(
        self,
        store,
        progress: AchievementProgressTracker,
        clock: Clock | None = None,
        sink: NotificationSink | None = None,
    ):
        self.store = store
        self.progress = progress
        self.clock = clock or Clock()
        self.sink = sink

    def check_for_personal_records(self, user_id: str, workout: WorkoutRecord) -> list[PersonalRecord]:
        """
        Records this workout would set.

        An exercise appearing more than once is judged on its heaviest set
        overall.  Ties with the stored best are not records.
        """
        require_id(user_id, "user_id")
        best: dict[str, float] = {}
        for exercise in workout.exercises:
            weight = exercise.max_weight
            if weight > best.get(exercise.exercise_id, 0.0):
                best[exercise.exercise_id] = weight

        stored = self.store.get_personal_records(user_id)
        recorded_at = workout.completed_at or self.clock.now()
        records: list[PersonalRecord] = []
        for exercise_id, weight in best.items():
            previous = stored[exercise_id].weight if exercise_id in stored else 0.0
            if weight > previous:
                records.append(
                    PersonalRecord(
                        exercise_id=exercise_id,
                        weight=weight,
                        previous_weight=previous,
                        recorded_at=recorded_at,
                    )
                )
        return records

    def record_personal_record(self, user_id: str, record: PersonalRecord) -> bool:
        return bool(self.record_personal_records(user_id, [record]))

    def record_personal_records(self, user_id: str, records: list[PersonalRecord]) -> list[PersonalRecord]:
        """
        Persist records and the record-count progress as one unit.

        Returns:
            The records that actually changed the stored best
        """
        require_id(user_id, "user_id")
        if not records:
            return []
        with self.store.transaction(user_id):
            stored = [r for r in records if self.store.upsert_personal_record(user_id, r)]
            if stored:
                self.progress.update_record_progress(
                    user_id, self.store.count_personal_records(user_id)
                )

        for record in stored:
            logger.info("%s set a record on %s: %.1f kg", user_id, record.exercise_id, record.weight)
            notify(
                self.sink,
                NotificationEvent(
                    kind="personal_record",
                    user_id=user_id,
                    title=f"Novo recorde: {record.exercise_id}",
                    payload={
                        "exercise_id": record.exercise_id,
                        "weight": record.weight,
                        "previous_weight": record.previous_weight,
                    },
                    created_at=self.clock.now(),
                ),
            )
        return stored
