import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Literal

from gainz.config import DEFAULT_REST_SECONDS
from gainz.schemas import (
    BuiltinTemplate,
    Exercise,
    ProgramProgress,
    TemplateExercise,
    Workout,
    WorkoutExercise,
    WorkoutSet,
)
from gainz.services.hybrid_storage import HybridStorage
from gainz.stores.base import Store, synchronized
from gainz.utils import (
    generate_uuid,
    humanize_exercise_id,
    is_bodyweight_exercise,
    is_cardio,
    is_valid_uuid,
    muscle_groups_from_exercise_id,
    now_ms,
)

if TYPE_CHECKING:
    from gainz.stores.auth import AuthStore
    from gainz.stores.template import TemplateStore

logger = logging.getLogger(__name__)

ANONYMOUS_OWNER = "temp-user"


@dataclass
class RestTimer:
    is_active: bool = False
    time_left: int = 0
    duration: int = DEFAULT_REST_SECONDS


@dataclass
class SyncStatus:
    pending: int = 0
    synced: int = 0
    is_online: bool = True
    last_sync: int | None = None


def _fresh_set(rest_seconds: int | None = DEFAULT_REST_SECONDS) -> WorkoutSet:
    return WorkoutSet(rest_seconds=rest_seconds)


def _clear_pending_sets(entry: WorkoutExercise) -> WorkoutExercise:
    sets = [s if s.completed else s.model_copy(update={"reps": None, "weight": None}) for s in entry.sets]
    return entry.model_copy(update={"sets": sets})


class WorkoutStore(Store):
    """The workout being recorded, the rest timer and the synced history."""

    def __init__(self, storage: HybridStorage, auth: "AuthStore", templates: "TemplateStore"):
        super().__init__()
        self.storage = storage
        self.auth = auth
        self.templates = templates
        self.current_workout: Workout | None = None
        self.current_exercise: Exercise | None = None
        self.workout_history: list[Workout] = []
        self.is_recording = False
        self.is_loading = False
        self.current_exercise_index = 0
        self.rest_timer = RestTimer()
        self.workout_type: Literal["free", "template"] = "free"
        self.template_session_id: str | None = None
        self.sync_status = SyncStatus()

    def _owner(self) -> str:
        return self.auth.user.id if self.auth.user else ANONYMOUS_OWNER

    def _update_exercises(self, exercises: list[WorkoutExercise], **changes: Any) -> None:
        self.set_state(
            current_workout=self.current_workout.model_copy(update={"exercises": exercises}),
            **changes,
        )

    def _map_entry(self, entry_id: str, change) -> None:
        if self.current_workout is None:
            return
        self._update_exercises(
            [change(e) if e.id == entry_id else e for e in self.current_workout.exercises]
        )

    # ---------------------------------------------------------------------------
    # Starting a workout
    # ---------------------------------------------------------------------------

    @synchronized
    def start_workout(self, name: str, exercises: list[Exercise]) -> None:
        if not exercises:
            logger.error("No exercises selected to start the workout")
            return

        entries = [
            WorkoutExercise(
                id=generate_uuid(),
                exercise=exercise,
                sets=[_fresh_set()],
                order_index=index,
                notes="",
            )
            for index, exercise in enumerate(exercises)
        ]
        started = now_ms()
        self.set_state(
            current_workout=Workout(
                id=generate_uuid(),
                user_id=self._owner(),
                name=name,
                date=started,
                started_at=started,
                exercises=entries,
            ),
            is_recording=True,
            current_exercise_index=0,
            current_exercise=entries[0].exercise,
            workout_type="free",
        )

    def convert_template_to_workout(self, template_exercises: list[TemplateExercise]) -> list[WorkoutExercise]:
        """Workout entries with one empty set per prescribed set."""
        return [
            WorkoutExercise(
                id=generate_uuid(),
                exercise=Exercise(
                    id=t.exercise_id if is_valid_uuid(t.exercise_id) else generate_uuid(),
                    name=t.name or humanize_exercise_id(t.exercise_id),
                    is_bodyweight=t.is_bodyweight,
                    sets=t.sets,
                    reps="0",
                    rest_seconds=DEFAULT_REST_SECONDS,
                ),
                sets=[_fresh_set(t.rest_seconds) for _ in range(t.sets)],
                order_index=index,
                notes=t.notes or "",
            )
            for index, t in enumerate(template_exercises)
        ]

    @synchronized
    def start_template_workout(self, session_id: str, template_exercises: list[TemplateExercise]) -> None:
        entries = self.convert_template_to_workout(template_exercises)
        if not entries:
            logger.error("Template session %s has no exercises", session_id)
            return

        started = now_ms()
        self.set_state(
            workout_type="template",
            template_session_id=session_id,
            current_workout=Workout(
                id=generate_uuid(),
                user_id=self._owner(),
                name=f"Session {session_id}",
                date=started,
                started_at=started,
                exercises=entries,
            ),
            current_exercise=entries[0].exercise,
            current_exercise_index=0,
            is_recording=True,
        )

    # ---------------------------------------------------------------------------
    # Editing the current workout
    # ---------------------------------------------------------------------------

    @synchronized
    def add_exercise_to_workout(self, entry: WorkoutExercise) -> None:
        if self.current_workout is None:
            return
        self._update_exercises([*self.current_workout.exercises, entry])

    @synchronized
    def update_set(self, entry_id: str, set_index: int, data: dict[str, Any]) -> None:
        def change(entry: WorkoutExercise) -> WorkoutExercise:
            if not 0 <= set_index < len(entry.sets):
                return entry
            update = dict(data)
            if is_cardio(entry.exercise):
                update["duration_seconds"] = data.get("duration_seconds")
                update["distance_km"] = data.get("distance_km")
            sets = list(entry.sets)
            sets[set_index] = sets[set_index].model_copy(update=update)
            return entry.model_copy(update={"sets": sets})

        self._map_entry(entry_id, change)

    @synchronized
    def add_set(self, entry_id: str) -> None:
        def change(entry: WorkoutExercise) -> WorkoutExercise:
            last = entry.sets[-1] if entry.sets else WorkoutSet()
            if is_cardio(entry.exercise):
                new_set = WorkoutSet(
                    duration_seconds=last.duration_seconds,
                    distance_km=last.distance_km,
                    rest_seconds=DEFAULT_REST_SECONDS,
                )
            else:
                new_set = WorkoutSet(reps=last.reps, weight=last.weight, rest_seconds=DEFAULT_REST_SECONDS)
            return entry.model_copy(update={"sets": [*entry.sets, new_set]})

        self._map_entry(entry_id, change)

    @synchronized
    def remove_set(self, entry_id: str, set_index: int) -> None:
        def change(entry: WorkoutExercise) -> WorkoutExercise:
            if len(entry.sets) <= 1:
                return entry
            return entry.model_copy(update={"sets": [s for i, s in enumerate(entry.sets) if i != set_index]})

        self._map_entry(entry_id, change)

    @synchronized
    def complete_set(self, entry_id: str, set_index: int) -> None:
        """Mark the set done and start resting for its prescribed time."""
        if self.current_workout is None:
            return

        def change(entry: WorkoutExercise) -> WorkoutExercise:
            if not 0 <= set_index < len(entry.sets):
                return entry
            sets = list(entry.sets)
            sets[set_index] = sets[set_index].model_copy(update={"completed": True})
            return entry.model_copy(update={"sets": sets})

        self._map_entry(entry_id, change)

        entry = next((e for e in self.current_workout.exercises if e.id == entry_id), None)
        rest = None
        if entry is not None and 0 <= set_index < len(entry.sets):
            rest = entry.sets[set_index].rest_seconds
        self.start_rest_timer(rest or DEFAULT_REST_SECONDS)

    @synchronized
    def complete_exercise(self, entry_id: str) -> None:
        self._map_entry(entry_id, lambda e: e.model_copy(update={"completed": True}))

    @synchronized
    def complete_workout(self) -> None:
        if self.current_workout is None:
            return
        self.set_state(current_workout=self.current_workout.model_copy(update={"completed": True}))

    @synchronized
    def update_template_progress(self, exercise_id: str, set_index: int, data: dict[str, Any]) -> None:
        """Like `update_set` but addressed by the catalog exercise id."""
        if self.current_workout is None:
            return
        exercises = []
        for entry in self.current_workout.exercises:
            if entry.exercise.id == exercise_id and 0 <= set_index < len(entry.sets):
                sets = list(entry.sets)
                sets[set_index] = sets[set_index].model_copy(update=data)
                entry = entry.model_copy(update={"sets": sets})
            exercises.append(entry)
        self._update_exercises(exercises)

    # ---------------------------------------------------------------------------
    # Navigation
    # ---------------------------------------------------------------------------

    def _move_to(self, index: int) -> None:
        exercises = [
            _clear_pending_sets(e) if i == index else e
            for i, e in enumerate(self.current_workout.exercises)
        ]
        self._update_exercises(
            exercises,
            current_exercise_index=index,
            current_exercise=exercises[index].exercise,
        )

    @synchronized
    def go_to_next_exercise(self) -> None:
        if self.current_workout is None or not self.current_workout.exercises:
            return
        self._move_to(min(self.current_exercise_index + 1, len(self.current_workout.exercises) - 1))

    @synchronized
    def go_to_previous_exercise(self) -> None:
        if self.current_workout is None or not self.current_workout.exercises:
            return
        self._move_to(max(self.current_exercise_index - 1, 0))

    @synchronized
    def go_to_exercise(self, index: int) -> None:
        if self.current_workout is None:
            return
        if not 0 <= index < len(self.current_workout.exercises):
            return
        self._move_to(index)

    # ---------------------------------------------------------------------------
    # Rest timer
    # ---------------------------------------------------------------------------

    @synchronized
    def start_rest_timer(self, duration: int) -> None:
        self.set_state(rest_timer=RestTimer(is_active=True, time_left=duration, duration=duration))

    @synchronized
    def stop_rest_timer(self) -> None:
        self.set_state(rest_timer=replace(self.rest_timer, is_active=False, time_left=0))

    @synchronized
    def tick(self) -> None:
        """Advance the rest timer by one second."""
        timer = self.rest_timer
        if timer.is_active and timer.time_left > 0:
            self.set_state(rest_timer=replace(timer, time_left=timer.time_left - 1))
        elif timer.time_left <= 0:
            self.set_state(rest_timer=replace(timer, is_active=False))

    @synchronized
    def add_time_to_timer(self, seconds: int) -> None:
        timer = self.rest_timer
        if timer.is_active:
            self.set_state(
                rest_timer=replace(
                    timer, time_left=timer.time_left + seconds, duration=timer.duration + seconds
                )
            )

    # ---------------------------------------------------------------------------
    # Finishing
    # ---------------------------------------------------------------------------

    @synchronized
    def save_and_finalize_workout(self) -> Workout:
        if self.current_workout is None:
            raise ValueError("No workout in progress to finalize")

        finished = self.current_workout.model_copy(update={"finished_at": now_ms(), "completed": True})
        self.storage.save_workout(finished)
        self.set_state(workout_history=[finished, *self.workout_history])
        self.refresh_sync_status()
        return finished

    @synchronized
    def finish_workout(self) -> Workout:
        return self.save_and_finalize_workout()

    @synchronized
    def cancel_workout(self) -> None:
        self.set_state(
            current_workout=None,
            is_recording=False,
            current_exercise_index=0,
            rest_timer=RestTimer(),
        )

    @synchronized
    def clear_current_workout(self) -> None:
        self.set_state(current_workout=None)

    # ---------------------------------------------------------------------------
    # History and sync
    # ---------------------------------------------------------------------------

    def _program_workouts(self) -> list[Workout]:
        program = self.templates.current_program
        template = self.templates.selected_template
        if program is None or template is None:
            return []
        return [self._workout_from_progress(template, program.template_id, p) for p in program.progress_history]

    @staticmethod
    def _workout_from_progress(template: BuiltinTemplate, template_id: str, progress: ProgramProgress) -> Workout:
        session = next((s for s in template.sessions if s.id == progress.session_id), None)
        return Workout(
            id=generate_uuid(),
            user_id=ANONYMOUS_OWNER,
            name=session.name if session else template.name,
            date=progress.date,
            started_at=progress.date,
            finished_at=progress.date + progress.duration * 1000,
            completed=True,
            is_template=True,
            template_id=template_id,
            template_session_id=progress.session_id,
            exercises=[
                WorkoutExercise(
                    id=log.exercise_id,
                    exercise=Exercise(
                        id=log.exercise_id,
                        name=humanize_exercise_id(log.exercise_id),
                        muscle_groups=muscle_groups_from_exercise_id(log.exercise_id),
                        is_bodyweight=is_bodyweight_exercise(log.exercise_id),
                        sets=len(log.sets),
                        reps="0",
                        rest_seconds=DEFAULT_REST_SECONDS,
                    ),
                    sets=[s.model_copy(update={"rest_seconds": s.rest_seconds or DEFAULT_REST_SECONDS}) for s in log.sets],
                    completed=True,
                )
                for log in progress.exercises
            ],
        )

    @synchronized
    def load_workout_history(self) -> None:
        """Synced workouts plus sessions of the local template program, newest first."""
        self.set_state(is_loading=True)
        try:
            workouts = self.storage.get_workouts()
            try:
                workouts = [*workouts, *self._program_workouts()]
            except Exception:
                logger.exception("Error building template program history")
            self.set_state(workout_history=sorted(workouts, key=lambda w: w.started_at, reverse=True))
            self.refresh_sync_status()
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def delete_workout(self, workout_id: str) -> None:
        self.storage.delete_workout(workout_id)
        self.set_state(workout_history=[w for w in self.workout_history if w.id != workout_id])
        self.refresh_sync_status()

    @synchronized
    def add_workout_to_history(self, workout: Workout) -> None:
        self.set_state(workout_history=[workout, *self.workout_history])

    @synchronized
    def refresh_sync_status(self) -> None:
        try:
            summary = self.storage.get_sync_status()
        except Exception:
            logger.exception("Error getting sync status")
            return
        self.set_state(
            sync_status=replace(
                self.sync_status, pending=summary.pending, synced=summary.synced, last_sync=now_ms()
            )
        )

    @synchronized
    def force_sync_all(self) -> tuple[int, int]:
        result = self.storage.force_sync_all()
        self.refresh_sync_status()
        return result

    @synchronized
    def set_online(self, online: bool) -> None:
        self.set_state(sync_status=replace(self.sync_status, is_online=online))
        self.storage.set_online(online)
        self.refresh_sync_status()
