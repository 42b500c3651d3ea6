from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from gainz.app_state import AppState, get_app_state
from gainz.schemas import PersonalRecord, ProgressionSuggestion, ProgressStats
from gainz.services import progress as progress_service

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


@router.post("/refresh", status_code=204)
def refresh_progress(state: StateDep):
    state.progress.update_progress(state.workouts.workout_history)


@router.get("/records", response_model=list[PersonalRecord])
def list_records(state: StateDep, exercise_id: str | None = None):
    records = state.progress.personal_records
    if exercise_id:
        records = [r for r in records if r.exercise_id == exercise_id]
    return records


@router.get("/stats", response_model=ProgressStats)
def get_stats(state: StateDep, period_days: int = 30):
    if period_days == 30:
        return state.progress.progress_stats
    return progress_service.calculate_progress_stats(state.workouts.workout_history, period_days)


@router.get("/suggestions", response_model=dict[str, ProgressionSuggestion])
def list_suggestions(state: StateDep):
    return state.progress.progression_suggestions


@router.get("/suggestions/{exercise_id}", response_model=ProgressionSuggestion)
def get_suggestion(exercise_id: str, state: StateDep):
    suggestion = state.progress.get_progression_suggestion(exercise_id)
    if suggestion is None:
        suggestion = progress_service.generate_progression_suggestion(
            state.workouts.workout_history, exercise_id
        )
    if suggestion is None:
        raise HTTPException(status_code=404, detail="No history for this exercise")
    return suggestion


@router.get("/new-prs", response_model=list[PersonalRecord])
def list_new_prs(state: StateDep):
    return state.progress.new_prs


@router.delete("/new-prs", status_code=204)
def mark_prs_seen(state: StateDep):
    state.progress.mark_prs_seen()
