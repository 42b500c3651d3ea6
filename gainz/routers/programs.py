from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Field, SQLModel

from gainz.app_state import AppState, get_app_state
from gainz.schemas import (
    ProgramCreate,
    ProgramSession,
    ProgramStats,
    ProgramUpdate,
    SessionCompletion,
    UserActiveProgram,
    Workout,
    WorkoutProgram,
)

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


class StartProgramBody(SQLModel):
    customizations: dict[str, Any] = Field(default_factory=dict)


class DuplicateBody(SQLModel):
    name: str | None = None


class ActiveProgramRead(SQLModel):
    active_program: UserActiveProgram
    program: WorkoutProgram | None
    current_session: ProgramSession | None
    next_session: ProgramSession | None
    progress_percent: float
    stats: ProgramStats


def _active(state: AppState) -> ActiveProgramRead:
    store = state.programs
    if store.active_program is None:
        raise HTTPException(status_code=404, detail="No active program")
    return ActiveProgramRead(
        active_program=store.active_program,
        program=store.selected_program,
        current_session=store.get_current_session(),
        next_session=store.get_next_session(),
        progress_percent=store.get_program_progress(),
        stats=store.get_program_stats(),
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[WorkoutProgram])
def list_programs(state: StateDep, category: str | None = None, level: str | None = None):
    store = state.programs
    store.load_programs()
    if category:
        return store.get_programs_by_category(category)
    if level:
        return store.get_programs_by_level(level)
    return store.available_programs


@router.get("/search", response_model=list[WorkoutProgram])
def search_programs(q: str, state: StateDep):
    return state.programs.search_programs(q)


@router.get("/favorites", response_model=list[WorkoutProgram])
def list_favorites(state: StateDep):
    return state.programs.get_favorite_programs()


@router.post("/", response_model=WorkoutProgram, status_code=201)
def create_program(body: ProgramCreate, state: StateDep):
    return state.programs.create_personal_program(body)


# ---------------------------------------------------------------------------
# Active program
# ---------------------------------------------------------------------------


@router.get("/active", response_model=ActiveProgramRead)
def get_active_program(state: StateDep):
    state.programs.load_active_program()
    return _active(state)


@router.delete("/active", status_code=204)
def stop_program(state: StateDep):
    state.programs.stop_program()


@router.post("/active/complete", response_model=Workout)
def complete_session(body: SessionCompletion, state: StateDep):
    workout = state.programs.complete_session(body)
    state.workouts.add_workout_to_history(workout)
    return workout


@router.post("/active/skip", response_model=ActiveProgramRead)
def skip_session(state: StateDep):
    _active(state)
    state.programs.skip_session()
    return _active(state)


# ---------------------------------------------------------------------------
# Single program
# ---------------------------------------------------------------------------


@router.get("/{program_id}", response_model=WorkoutProgram)
def get_program(program_id: str, state: StateDep):
    program = state.program_service.get_program_by_id(program_id)
    if program is None:
        raise HTTPException(status_code=404, detail="Program not found")
    return program


@router.patch("/{program_id}", status_code=204)
def update_program(program_id: str, body: ProgramUpdate, state: StateDep):
    state.programs.update_personal_program(program_id, body)


@router.delete("/{program_id}", status_code=204)
def delete_program(program_id: str, state: StateDep):
    state.programs.delete_personal_program(program_id)


@router.post("/{program_id}/duplicate", response_model=WorkoutProgram, status_code=201)
def duplicate_program(program_id: str, body: DuplicateBody, state: StateDep):
    return state.programs.duplicate_program(program_id, body.name)


@router.put("/{program_id}/favorite", status_code=204)
def add_favorite(program_id: str, state: StateDep):
    state.programs.add_to_favorites(program_id)


@router.delete("/{program_id}/favorite", status_code=204)
def remove_favorite(program_id: str, state: StateDep):
    state.programs.remove_from_favorites(program_id)


@router.post("/{program_id}/start", response_model=ActiveProgramRead, status_code=201)
def start_program(program_id: str, body: StartProgramBody, state: StateDep):
    state.programs.start_program(program_id, body.customizations)
    return _active(state)
