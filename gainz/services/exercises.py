import logging

from gainz.schemas import ExerciseCreate, ExerciseUpdate, ExerciseWithSource
from gainz.services.base import BackendService
from gainz.services.exceptions import NotFoundError
from gainz.utils import generate_uuid

logger = logging.getLogger(__name__)

ACCESSIBLE_VIEW = "user_accessible_exercises"


def exercise_from_row(row: dict) -> ExerciseWithSource:
    return ExerciseWithSource.model_validate(
        {
            **row,
            "muscle_groups": row.get("muscle_groups") or [],
            "category": row.get("category") or "strength",
            "is_bodyweight": bool(row.get("is_bodyweight")),
            "is_global": bool(row.get("is_global")),
            "visibility": row.get("visibility") or ("global" if row.get("is_global") else "personal"),
        }
    )


class ExerciseService(BackendService):
    def get_accessible_exercises(self) -> list[ExerciseWithSource]:
        """Global exercises plus the user's own, by name."""
        try:
            rows = self.backend.select(ACCESSIBLE_VIEW, order=[("name", True)])
        except Exception:
            logger.exception("Error fetching accessible exercises")
            return []
        return [exercise_from_row(row) for row in rows]

    def create_personal_exercise(self, exercise: ExerciseCreate) -> ExerciseWithSource:
        row = {
            "id": generate_uuid(),
            **exercise.model_dump(),
            "created_by": self._user_id(),
            "is_global": False,
            "visibility": "personal",
        }
        created = self.backend.insert("exercises", row)
        return exercise_from_row(created[0] if created else row)

    def update_personal_exercise(self, exercise_id: str, updates: ExerciseUpdate) -> None:
        self.backend.update(
            "exercises",
            updates.model_dump(exclude_unset=True),
            {"id": exercise_id, "created_by": self._user_id()},
        )

    def delete_personal_exercise(self, exercise_id: str) -> None:
        self.backend.delete("exercises", {"id": exercise_id, "created_by": self._user_id()})

    def search_exercises(self, query: str) -> list[ExerciseWithSource]:
        try:
            rows = self.backend.select(
                ACCESSIBLE_VIEW,
                filters={"name": ("ilike", f"%{query}%")},
                order=[("is_global", False), ("name", True)],
            )
        except Exception:
            logger.exception("Error searching exercises")
            return []
        return [exercise_from_row(row) for row in rows]

    def find_or_create_exercise(self, exercise: ExerciseCreate) -> ExerciseWithSource:
        exercise_id = self.backend.rpc(
            "get_or_create_exercise",
            {
                "exercise_name": exercise.name.strip(),
                "exercise_category": exercise.category or "strength",
                "exercise_is_bodyweight": exercise.is_bodyweight,
                "exercise_muscle_groups": exercise.muscle_groups,
                "exercise_suggested_weight": exercise.suggested_weight,
                "exercise_rest_seconds": exercise.rest_seconds,
                "exercise_notes": exercise.notes,
                "exercise_progression_notes": exercise.progression_notes,
            },
        )
        found = self.get_exercise_by_id(exercise_id)
        if found is None:
            raise NotFoundError("Exercise not found after creation")
        return found

    def get_exercise_by_id(self, exercise_id: str) -> ExerciseWithSource | None:
        try:
            row = self.backend.select(ACCESSIBLE_VIEW, filters={"id": exercise_id}, single=True)
        except Exception:
            return None
        return exercise_from_row(row)
