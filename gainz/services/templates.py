import logging
from typing import Any

from gainz.config import DEFAULT_REST_SECONDS
from gainz.remote.exceptions import APIError
from gainz.schemas import (
    TemplateCreate,
    TemplateExerciseDetail,
    TemplateExerciseInput,
    TemplateUpdate,
    WorkoutTemplate,
)
from gainz.services.base import BackendService, is_duplicate_error
from gainz.services.exceptions import NotFoundError
from gainz.utils import generate_uuid

logger = logging.getLogger(__name__)

TEMPLATE_COLUMNS = "*, template_exercises(*, exercises(id, name))"


def template_from_row(row: dict[str, Any]) -> WorkoutTemplate:
    exercises = [
        TemplateExerciseDetail(
            id=e["id"],
            exercise_id=e["exercise_id"],
            exercise_name=(e.get("exercises") or {}).get("name") or "Exercise not found",
            order_index=e.get("order_index") or 0,
            suggested_sets=e.get("suggested_sets") or 3,
            suggested_reps=e.get("suggested_reps"),
            suggested_weight_percentage=e.get("suggested_weight_percentage"),
            rest_seconds=e.get("rest_seconds") or DEFAULT_REST_SECONDS,
            notes=e.get("notes"),
        )
        for e in row.get("template_exercises") or []
    ]
    exercises.sort(key=lambda e: e.order_index)

    fields = {k: v for k, v in row.items() if k != "template_exercises" and v is not None}
    return WorkoutTemplate.model_validate({**fields, "exercises": exercises})


class TemplateService(BackendService):
    """Single-session workout templates stored on the backend."""

    def get_accessible_templates(self) -> list[WorkoutTemplate]:
        try:
            rows = self.backend.rpc("get_user_accessible_templates_v2")
        except Exception:
            logger.exception("Error fetching accessible templates")
            return []
        return [template_from_row(row) for row in rows or []]

    def get_template_by_id(self, template_id: str) -> WorkoutTemplate | None:
        try:
            row = self.backend.select(
                "workout_templates", columns=TEMPLATE_COLUMNS, filters={"id": template_id}, single=True
            )
        except Exception:
            logger.exception("Error fetching template %s", template_id)
            return None
        return template_from_row(row) if row else None

    def _insert_exercises(self, template_id: str, exercises: list[TemplateExerciseInput]) -> None:
        if not exercises:
            return
        self.backend.insert(
            "template_exercises",
            [
                {
                    "id": generate_uuid(),
                    "template_id": template_id,
                    "exercise_id": e.exercise_id,
                    "order_index": e.order_index,
                    "suggested_sets": e.suggested_sets,
                    "suggested_reps": e.suggested_reps,
                    "suggested_weight_percentage": e.suggested_weight_percentage,
                    "rest_seconds": e.rest_seconds or DEFAULT_REST_SECONDS,
                    "notes": e.notes,
                }
                for e in exercises
            ],
        )

    def create_personal_template(self, data: TemplateCreate) -> WorkoutTemplate:
        user_id = self._user_id()
        template_id = generate_uuid()
        self.backend.insert(
            "workout_templates",
            {
                "id": template_id,
                **data.model_dump(exclude={"exercises"}),
                "is_global": False,
                "created_by": user_id,
                "visibility": "personal",
            },
        )
        self._insert_exercises(template_id, data.exercises)

        template = self.get_template_by_id(template_id)
        if template is None:
            raise NotFoundError("Failed to retrieve created template")
        return template

    def update_personal_template(self, template_id: str, updates: TemplateUpdate) -> None:
        user_id = self._user_id()
        values = updates.model_dump(exclude_unset=True, exclude={"exercises"})
        if values:
            self.backend.update("workout_templates", values, {"id": template_id, "created_by": user_id})

        if updates.exercises is not None:
            self.backend.delete("template_exercises", {"template_id": template_id})
            self._insert_exercises(template_id, updates.exercises)

    def delete_personal_template(self, template_id: str) -> None:
        self.backend.delete("workout_templates", {"id": template_id, "created_by": self._user_id()})

    def add_to_favorites(self, template_id: str) -> None:
        try:
            self.backend.insert(
                "user_favorite_templates", {"user_id": self._user_id(), "template_id": template_id}
            )
        except APIError as e:
            if not is_duplicate_error(e):
                raise

    def remove_from_favorites(self, template_id: str) -> None:
        self.backend.delete(
            "user_favorite_templates", {"user_id": self._user_id(), "template_id": template_id}
        )

    def search_templates(self, query: str) -> list[WorkoutTemplate]:
        needle = query.lower()
        return [
            t
            for t in self.get_accessible_templates()
            if needle in t.name.lower()
            or needle in (t.description or "").lower()
            or any(needle in group.lower() for group in t.muscle_groups)
        ]

    def get_templates_by_difficulty(self, difficulty: str) -> list[WorkoutTemplate]:
        return [t for t in self.get_accessible_templates() if t.difficulty == difficulty]

    def get_favorite_templates(self) -> list[WorkoutTemplate]:
        return [t for t in self.get_accessible_templates() if t.is_favorite]

    def duplicate_template(self, template_id: str, new_name: str | None = None) -> WorkoutTemplate:
        original = self.get_template_by_id(template_id)
        if original is None:
            raise NotFoundError("Template not found")

        copy = TemplateCreate(
            name=new_name or f"{original.name} (Copy)",
            description=original.description or "",
            estimated_duration=original.estimated_duration,
            difficulty=original.difficulty,
            muscle_groups=list(original.muscle_groups),
            icon=original.icon,
            exercises=[
                TemplateExerciseInput(
                    exercise_id=e.exercise_id,
                    order_index=e.order_index,
                    suggested_sets=e.suggested_sets,
                    suggested_reps=e.suggested_reps,
                    suggested_weight_percentage=e.suggested_weight_percentage,
                    rest_seconds=e.rest_seconds,
                    notes=e.notes,
                )
                for e in original.exercises
            ],
        )
        return self.create_personal_template(copy)
