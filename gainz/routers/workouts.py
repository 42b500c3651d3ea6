from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import SQLModel

from gainz.app_state import AppState, get_app_state
from gainz.schemas import (
    Exercise,
    PersonalRecord,
    SyncSummary,
    TemplateExercise,
    Workout,
    WorkoutExercise,
)
from gainz.stores.workout import RestTimer, SyncStatus
from gainz.utils import is_cardio, is_set_ready

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class StartWorkoutBody(SQLModel):
    name: str
    exercises: list[Exercise]


class StartTemplateWorkoutBody(SQLModel):
    session_id: str
    exercises: list[TemplateExercise]


class SetUpdate(SQLModel):
    reps: int | None = None
    weight: float | None = None
    duration_seconds: int | None = None
    distance_km: float | None = None
    rest_seconds: int | None = None


class TimerBody(SQLModel):
    seconds: int


class OnlineBody(SQLModel):
    online: bool


class CurrentWorkoutRead(SQLModel):
    workout: Workout
    current_exercise_index: int
    is_recording: bool
    workout_type: Literal["free", "template"]
    template_session_id: str | None = None


class FinishedWorkout(SQLModel):
    workout: Workout
    new_prs: list[PersonalRecord]


class SyncResult(SQLModel):
    success: int
    failure: int
    status: SyncSummary


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _current(state: AppState) -> CurrentWorkoutRead:
    store = state.workouts
    if store.current_workout is None:
        raise HTTPException(status_code=404, detail="No workout in progress")
    return CurrentWorkoutRead(
        workout=store.current_workout,
        current_exercise_index=store.current_exercise_index,
        is_recording=store.is_recording,
        workout_type=store.workout_type,
        template_session_id=store.template_session_id,
    )


def _entry(state: AppState, entry_id: str, set_index: int | None = None) -> WorkoutExercise:
    current = _current(state)
    entry = next((e for e in current.workout.exercises if e.id == entry_id), None)
    if entry is None:
        raise HTTPException(status_code=404, detail="Exercise not in current workout")
    if set_index is not None and not 0 <= set_index < len(entry.sets):
        raise HTTPException(status_code=404, detail="Set not found")
    return entry


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[Workout])
def list_workouts(state: StateDep):
    return state.workouts.workout_history


@router.post("/reload", response_model=list[Workout])
def reload_history(state: StateDep):
    state.workouts.load_workout_history()
    state.progress.update_progress(state.workouts.workout_history)
    return state.workouts.workout_history


# ---------------------------------------------------------------------------
# Current workout
# ---------------------------------------------------------------------------


@router.get("/current", response_model=CurrentWorkoutRead)
def get_current_workout(state: StateDep):
    return _current(state)


@router.post("/current", response_model=CurrentWorkoutRead, status_code=201)
def start_workout(body: StartWorkoutBody, state: StateDep):
    if not body.exercises:
        raise HTTPException(status_code=400, detail="Select at least one exercise")
    state.workouts.start_workout(body.name, body.exercises)
    return _current(state)


@router.post("/current/template", response_model=CurrentWorkoutRead, status_code=201)
def start_template_workout(body: StartTemplateWorkoutBody, state: StateDep):
    if not body.exercises:
        raise HTTPException(status_code=400, detail="Template session has no exercises")
    state.workouts.start_template_workout(body.session_id, body.exercises)
    return _current(state)


@router.delete("/current", status_code=204)
def cancel_workout(state: StateDep):
    state.workouts.cancel_workout()


@router.post("/current/exercises", response_model=CurrentWorkoutRead)
def add_exercise(body: WorkoutExercise, state: StateDep):
    _current(state)
    state.workouts.add_exercise_to_workout(body)
    return _current(state)


@router.patch("/current/exercises/{entry_id}/sets/{set_index}", response_model=CurrentWorkoutRead)
def update_set(entry_id: str, set_index: int, body: SetUpdate, state: StateDep):
    _entry(state, entry_id, set_index)
    state.workouts.update_set(entry_id, set_index, body.model_dump(exclude_unset=True))
    return _current(state)


@router.post("/current/exercises/{entry_id}/sets", response_model=CurrentWorkoutRead)
def add_set(entry_id: str, state: StateDep):
    _entry(state, entry_id)
    state.workouts.add_set(entry_id)
    return _current(state)


@router.delete("/current/exercises/{entry_id}/sets/{set_index}", response_model=CurrentWorkoutRead)
def remove_set(entry_id: str, set_index: int, state: StateDep):
    entry = _entry(state, entry_id, set_index)
    if len(entry.sets) <= 1:
        raise HTTPException(status_code=400, detail="An exercise keeps at least one set")
    state.workouts.remove_set(entry_id, set_index)
    return _current(state)


@router.post("/current/exercises/{entry_id}/sets/{set_index}/complete", response_model=CurrentWorkoutRead)
def complete_set(entry_id: str, set_index: int, state: StateDep):
    entry = _entry(state, entry_id, set_index)
    if not is_cardio(entry.exercise) and not is_set_ready(entry.sets[set_index]):
        raise HTTPException(status_code=400, detail="Enter reps before completing the set")
    state.workouts.complete_set(entry_id, set_index)
    return _current(state)


@router.post("/current/exercises/{entry_id}/complete", response_model=CurrentWorkoutRead)
def complete_exercise(entry_id: str, state: StateDep):
    _entry(state, entry_id)
    state.workouts.complete_exercise(entry_id)
    return _current(state)


@router.post("/current/next", response_model=CurrentWorkoutRead)
def next_exercise(state: StateDep):
    _current(state)
    state.workouts.go_to_next_exercise()
    return _current(state)


@router.post("/current/previous", response_model=CurrentWorkoutRead)
def previous_exercise(state: StateDep):
    _current(state)
    state.workouts.go_to_previous_exercise()
    return _current(state)


@router.post("/current/go/{index}", response_model=CurrentWorkoutRead)
def go_to_exercise(index: int, state: StateDep):
    current = _current(state)
    if not 0 <= index < len(current.workout.exercises):
        raise HTTPException(status_code=404, detail="Exercise index out of range")
    state.workouts.go_to_exercise(index)
    return _current(state)


@router.post("/current/finish", response_model=FinishedWorkout)
def finish_workout(state: StateDep):
    _current(state)
    previous = list(state.workouts.workout_history)
    finished = state.workouts.finish_workout()
    new_prs = state.progress.detect_new_prs(finished, previous)
    state.progress.update_progress(state.workouts.workout_history)
    state.workouts.clear_current_workout()
    return FinishedWorkout(workout=finished, new_prs=new_prs)


# ---------------------------------------------------------------------------
# Rest timer
# ---------------------------------------------------------------------------


@router.get("/rest-timer", response_model=RestTimer)
def get_rest_timer(state: StateDep):
    return state.workouts.rest_timer


@router.post("/rest-timer/start", response_model=RestTimer)
def start_rest_timer(body: TimerBody, state: StateDep):
    state.workouts.start_rest_timer(body.seconds)
    return state.workouts.rest_timer


@router.post("/rest-timer/stop", response_model=RestTimer)
def stop_rest_timer(state: StateDep):
    state.workouts.stop_rest_timer()
    return state.workouts.rest_timer


@router.post("/rest-timer/tick", response_model=RestTimer)
def tick_rest_timer(state: StateDep):
    state.workouts.tick()
    return state.workouts.rest_timer


@router.post("/rest-timer/add", response_model=RestTimer)
def add_rest_time(body: TimerBody, state: StateDep):
    state.workouts.add_time_to_timer(body.seconds)
    return state.workouts.rest_timer


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


@router.get("/sync", response_model=SyncStatus)
def get_sync_status(state: StateDep):
    state.workouts.refresh_sync_status()
    return state.workouts.sync_status


@router.post("/sync", response_model=SyncResult)
def force_sync(state: StateDep):
    success, failure = state.workouts.force_sync_all()
    return SyncResult(success=success, failure=failure, status=state.storage.get_sync_status())


@router.put("/sync/online", response_model=SyncStatus)
def set_online(body: OnlineBody, state: StateDep):
    state.workouts.set_online(body.online)
    return state.workouts.sync_status


# Registered last so the static paths above take precedence.
@router.delete("/{workout_id}", status_code=204)
def delete_workout(workout_id: str, state: StateDep):
    known = any(w.id == workout_id for w in state.workouts.workout_history)
    if not known and state.storage.get_local_workout(workout_id) is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    state.workouts.delete_workout(workout_id)
