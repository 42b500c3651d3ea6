import logging
from typing import TYPE_CHECKING

from gainz.catalog import DEFAULT_EXERCISES
from gainz.schemas import ExerciseCreate, ExerciseWithSource
from gainz.services.exercises import ExerciseService
from gainz.stores.base import Store, synchronized

if TYPE_CHECKING:
    from gainz.stores.auth import AuthStore

logger = logging.getLogger(__name__)


def _basic_exercises() -> list[ExerciseWithSource]:
    return [ExerciseWithSource.model_validate(e.model_dump()) for e in DEFAULT_EXERCISES]


class ExerciseStore(Store):
    def __init__(self, exercises: ExerciseService, auth: "AuthStore"):
        super().__init__()
        self.service = exercises
        self.auth = auth
        self.exercises: list[ExerciseWithSource] = []
        self.selected_exercises: list[ExerciseWithSource] = []
        self.search_query = ""
        self.selected_muscle_group = ""
        self.selected_category = ""
        self.is_loading = False
        self.error: str | None = None

    @synchronized
    def load_exercises(self) -> None:
        """Backend catalog when signed in, the built-in list otherwise."""
        self.set_state(is_loading=True, error=None)
        try:
            if not self.auth.is_authenticated:
                self.set_state(exercises=_basic_exercises())
                return
            exercises = self.service.get_accessible_exercises()
            logger.info("Loaded %d exercises from backend", len(exercises))
            self.set_state(exercises=exercises)
        except Exception:
            logger.exception("Error loading exercises")
            self.set_state(error="Could not load exercises", exercises=_basic_exercises())
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def refresh_exercises(self) -> None:
        self.load_exercises()

    @synchronized
    def search_exercises(self, query: str) -> None:
        self.set_state(search_query=query)

    @synchronized
    def filter_by_muscle_group(self, muscle_group: str) -> None:
        self.set_state(selected_muscle_group=muscle_group)

    @synchronized
    def filter_by_category(self, category: str) -> None:
        self.set_state(selected_category=category)

    @synchronized
    def toggle_exercise_selection(self, exercise: ExerciseWithSource) -> None:
        if any(e.id == exercise.id for e in self.selected_exercises):
            self.set_state(selected_exercises=[e for e in self.selected_exercises if e.id != exercise.id])
        else:
            self.set_state(selected_exercises=[*self.selected_exercises, exercise])

    @synchronized
    def clear_selection(self) -> None:
        self.set_state(selected_exercises=[])

    @synchronized
    def add_personal_exercise(self, exercise: ExerciseCreate) -> ExerciseWithSource:
        self.set_state(is_loading=True, error=None)
        try:
            created = self.service.create_personal_exercise(exercise)
            self.set_state(exercises=[*self.exercises, created])
            logger.info("Personal exercise created: %s", created.name)
            return created
        except Exception:
            logger.exception("Error creating personal exercise")
            self.set_state(error="Could not create the personal exercise")
            raise
        finally:
            self.set_state(is_loading=False)

    def get_filtered_exercises(self) -> list[ExerciseWithSource]:
        query = self.search_query.lower()
        muscle = self.selected_muscle_group.lower()

        def matches(exercise: ExerciseWithSource) -> bool:
            if query and not (
                query in exercise.name.lower()
                or any(query in g.lower() for g in exercise.muscle_groups)
                or query in exercise.category.lower()
            ):
                return False
            if muscle and not any(g.lower() == muscle for g in exercise.muscle_groups):
                return False
            if self.selected_category and exercise.category != self.selected_category:
                return False
            return True

        return [e for e in self.exercises if matches(e)]

    @synchronized
    def clear_error(self) -> None:
        self.set_state(error=None)
