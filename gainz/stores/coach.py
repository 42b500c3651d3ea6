import logging
from typing import TYPE_CHECKING, Any

from gainz.schemas import (
    CoachRecommendation,
    Exercise,
    Preferences,
    UserProfile,
    Workout,
    WorkoutExercise,
)
from gainz.services import coach
from gainz.services.local_store import LocalStore
from gainz.stores.base import Store, synchronized
from gainz.utils import now_ms

if TYPE_CHECKING:
    from gainz.stores.workout import WorkoutStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "ai-coach-store"
ANALYSIS_WINDOW = 10


def _analysis_view(workout: Workout) -> Workout:
    """Exercises keyed by name with every logged set counted."""
    return workout.model_copy(
        update={
            "started_at": workout.date,
            "exercises": [
                WorkoutExercise(
                    id=f"{workout.id}_{index}",
                    exercise=Exercise(id=entry.exercise.name, name=entry.exercise.name),
                    sets=[s.model_copy(update={"completed": True}) for s in entry.sets],
                    order_index=index,
                )
                for index, entry in enumerate(workout.exercises)
            ],
        }
    )


class CoachStore(Store):
    def __init__(self, store: LocalStore, workouts: "WorkoutStore"):
        super().__init__()
        self.store = store
        self.workouts = workouts
        self.user_profile: UserProfile | None = None
        self.recommendations: list[CoachRecommendation] = []
        self.is_analyzing = False
        self.last_analysis: int | None = None

    def _persist(self) -> None:
        self.store.set(
            STORAGE_KEY,
            {
                "user_profile": self.user_profile.model_dump() if self.user_profile else None,
                "recommendations": [r.model_dump() for r in self.recommendations if not r.dismissed],
                "last_analysis": self.last_analysis,
            },
        )

    @synchronized
    def load(self) -> None:
        saved = self.store.get(STORAGE_KEY)
        if not saved:
            return
        profile = saved.get("user_profile")
        self.set_state(
            user_profile=UserProfile.model_validate(profile) if profile else None,
            recommendations=[CoachRecommendation.model_validate(r) for r in saved.get("recommendations", [])],
            last_analysis=saved.get("last_analysis"),
        )

    @synchronized
    def set_user_profile(self, profile: UserProfile) -> None:
        self.set_state(user_profile=profile)
        self._persist()

    @synchronized
    def update_user_profile(self, updates: dict[str, Any]) -> None:
        if self.user_profile is None:
            return
        merged = {**self.user_profile.model_dump(), **updates, "updated_at": now_ms()}
        self.set_state(user_profile=UserProfile.model_validate(merged))
        self._persist()

    @synchronized
    def initialize_profile(self) -> None:
        if self.user_profile is not None:
            return
        created = now_ms()
        self.set_user_profile(
            UserProfile(
                fitness_level="beginner",
                goals=["muscle"],
                preferences=Preferences(
                    workout_duration=60,
                    difficulty="moderate",
                    focus_areas=["chest", "back", "legs"],
                ),
                created_at=created,
                updated_at=created,
            )
        )

    @synchronized
    def analyze_performance(self) -> None:
        """Recommendations from the ten most recent workouts in history."""
        if self.user_profile is None:
            return

        self.set_state(is_analyzing=True)
        try:
            recent = sorted(self.workouts.workout_history, key=lambda w: w.date, reverse=True)
            window = [_analysis_view(w) for w in reversed(recent[:ANALYSIS_WINDOW])]
            recommendations = coach.analyze_performance(window, self.user_profile)
        except Exception:
            logger.exception("Coach analysis failed")
            self.set_state(is_analyzing=False)
            return

        self.set_state(recommendations=recommendations, last_analysis=now_ms(), is_analyzing=False)
        self._persist()

    @synchronized
    def dismiss_recommendation(self, recommendation_id: str) -> None:
        self.set_state(
            recommendations=[
                r.model_copy(update={"dismissed": True}) if r.id == recommendation_id else r
                for r in self.recommendations
            ]
        )
        self._persist()

    @synchronized
    def clear_recommendations(self) -> None:
        self.set_state(recommendations=[])
        self._persist()
