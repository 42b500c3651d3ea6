from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from gainz.app_state import AppState, get_app_state
from gainz.schemas import ExerciseCreate, ExerciseUpdate, ExerciseWithSource

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


@router.get("/", response_model=list[ExerciseWithSource])
def list_exercises(
    state: StateDep,
    q: str = "",
    muscle_group: str = "",
    category: str = "",
):
    store = state.exercises
    if not store.exercises:
        store.load_exercises()
    store.search_exercises(q)
    store.filter_by_muscle_group(muscle_group)
    store.filter_by_category(category)
    return store.get_filtered_exercises()


@router.post("/refresh", response_model=list[ExerciseWithSource])
def refresh_exercises(state: StateDep):
    state.exercises.refresh_exercises()
    return state.exercises.exercises


@router.get("/search", response_model=list[ExerciseWithSource])
def search_exercises(q: str, state: StateDep):
    return state.exercise_service.search_exercises(q)


@router.post("/", response_model=ExerciseWithSource, status_code=201)
def create_exercise(body: ExerciseCreate, state: StateDep):
    return state.exercises.add_personal_exercise(body)


@router.post("/find-or-create", response_model=ExerciseWithSource)
def find_or_create_exercise(body: ExerciseCreate, state: StateDep):
    return state.exercise_service.find_or_create_exercise(body)


@router.get("/{exercise_id}", response_model=ExerciseWithSource)
def get_exercise(exercise_id: str, state: StateDep):
    exercise = state.exercise_service.get_exercise_by_id(exercise_id)
    if exercise is None:
        raise HTTPException(status_code=404, detail="Exercise not found")
    return exercise


@router.patch("/{exercise_id}", status_code=204)
def update_exercise(exercise_id: str, body: ExerciseUpdate, state: StateDep):
    state.exercise_service.update_personal_exercise(exercise_id, body)
    state.exercises.refresh_exercises()


@router.delete("/{exercise_id}", status_code=204)
def delete_exercise(exercise_id: str, state: StateDep):
    state.exercise_service.delete_personal_exercise(exercise_id)
    state.exercises.set_state(exercises=[e for e in state.exercises.exercises if e.id != exercise_id])
