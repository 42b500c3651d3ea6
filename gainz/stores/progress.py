from gainz.schemas import PersonalRecord, ProgressionSuggestion, ProgressStats, Workout
from gainz.services import progress
from gainz.stores.base import Store, synchronized


class ProgressStore(Store):
    def __init__(self):
        super().__init__()
        self.personal_records: list[PersonalRecord] = []
        self.progression_suggestions: dict[str, ProgressionSuggestion] = {}
        self.new_prs: list[PersonalRecord] = []
        self.progress_stats = ProgressStats()

    @synchronized
    def update_progress(self, workouts: list[Workout]) -> None:
        """Recompute records, stats and suggestions for exercises of the last three sessions."""
        recent = sorted(
            (w for w in workouts if w.finished_at), key=lambda w: w.started_at, reverse=True
        )[:3]
        exercise_ids = dict.fromkeys(e.exercise.id for w in recent for e in w.exercises)

        suggestions = {}
        for exercise_id in exercise_ids:
            suggestion = progress.generate_progression_suggestion(workouts, exercise_id)
            if suggestion is not None:
                suggestions[exercise_id] = suggestion

        self.set_state(
            personal_records=progress.find_personal_records(workouts),
            progression_suggestions=suggestions,
            progress_stats=progress.calculate_progress_stats(workouts),
        )

    def get_progression_suggestion(self, exercise_id: str) -> ProgressionSuggestion | None:
        return self.progression_suggestions.get(exercise_id)

    @synchronized
    def mark_prs_seen(self) -> None:
        self.set_state(new_prs=[])

    @synchronized
    def detect_new_prs(self, completed: Workout, previous: list[Workout]) -> list[PersonalRecord]:
        new_prs = progress.detect_new_prs(completed, previous)
        self.set_state(new_prs=new_prs)
        return new_prs
