"""Local-only storage of whole collections as JSON blobs.

Predates the hybrid storage path; still used for the exercise cache and user
settings.
"""

import logging
from typing import Any

from gainz.schemas import Exercise, Workout
from gainz.services.local_store import LocalStore

logger = logging.getLogger(__name__)

WORKOUTS_KEY = "workouts"
EXERCISES_KEY = "exercises"
USER_SETTINGS_KEY = "user_settings"


class StorageService:
    def __init__(self, store: LocalStore):
        self.store = store

    def save_workout(self, workout: Workout) -> None:
        """Insert or replace, keeping the newest save at the front."""
        existing = [w for w in self.get_workouts() if w.id != workout.id]
        self.store.set(WORKOUTS_KEY, [w.model_dump() for w in [workout, *existing]])

    def get_workouts(self) -> list[Workout]:
        return [Workout.model_validate(w) for w in self.store.get(WORKOUTS_KEY, [])]

    def delete_workout(self, workout_id: str) -> None:
        remaining = [w.model_dump() for w in self.get_workouts() if w.id != workout_id]
        self.store.set(WORKOUTS_KEY, remaining)

    def save_exercises(self, exercises: list[Exercise]) -> None:
        self.store.set(EXERCISES_KEY, [e.model_dump() for e in exercises])

    def get_exercises(self) -> list[Exercise]:
        return [Exercise.model_validate(e) for e in self.store.get(EXERCISES_KEY, [])]

    def save_user_settings(self, settings: dict[str, Any]) -> None:
        self.store.set(USER_SETTINGS_KEY, settings)

    def get_user_settings(self) -> dict[str, Any] | None:
        return self.store.get(USER_SETTINGS_KEY)

    def clear_all(self) -> None:
        self.store.multi_remove([WORKOUTS_KEY, EXERCISES_KEY, USER_SETTINGS_KEY])
        logger.info("Cleared local workouts, exercise cache and settings")
