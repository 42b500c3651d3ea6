from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import SQLModel

from gainz.app_state import AppState, get_app_state
from gainz.schemas import (
    BuiltinTemplate,
    ProgramProgress,
    ProgramStats,
    TemplateCreate,
    TemplateSession,
    TemplateUpdate,
    UserProgram,
    Workout,
    WorkoutTemplate,
)

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


class DuplicateBody(SQLModel):
    name: str | None = None


class TemplateProgramRead(SQLModel):
    program: UserProgram
    template: BuiltinTemplate | None
    current_session: TemplateSession | None
    next_session: TemplateSession | None
    progress_percent: float
    stats: ProgramStats


def _program(state: AppState) -> TemplateProgramRead:
    store = state.templates
    if store.current_program is None:
        raise HTTPException(status_code=404, detail="No template program in progress")
    return TemplateProgramRead(
        program=store.current_program,
        template=store.selected_template,
        current_session=store.get_current_session(),
        next_session=store.get_next_session(),
        progress_percent=store.get_program_progress(),
        stats=store.get_program_stats(),
    )


# ---------------------------------------------------------------------------
# Built-in templates tracked on the device
# ---------------------------------------------------------------------------


@router.get("/builtin", response_model=list[BuiltinTemplate])
def list_builtin_templates(state: StateDep):
    if not state.templates.available_templates:
        state.templates.load_templates()
    return state.templates.available_templates


@router.get("/builtin/program", response_model=TemplateProgramRead)
def get_template_program(state: StateDep):
    return _program(state)


@router.delete("/builtin/program", status_code=204)
def stop_template_program(state: StateDep):
    state.templates.stop_program()


@router.post("/builtin/program/complete", response_model=Workout)
def complete_template_session(body: ProgramProgress, state: StateDep):
    _program(state)
    workout = state.templates.complete_session(body)
    if workout is None:
        raise HTTPException(status_code=400, detail="Template has no sessions")
    return workout


@router.post("/builtin/program/skip", response_model=TemplateProgramRead)
def skip_template_session(state: StateDep):
    _program(state)
    state.templates.skip_session()
    return _program(state)


@router.post("/builtin/{template_id}/start", response_model=TemplateProgramRead, status_code=201)
def start_template_program(template_id: str, state: StateDep):
    if not state.templates.available_templates:
        state.templates.load_templates()
    state.templates.start_program(template_id)
    if state.templates.current_program is None or state.templates.current_program.template_id != template_id:
        raise HTTPException(status_code=404, detail="Template not found")
    return _program(state)


@router.put("/builtin/{template_id}/favorite", status_code=204)
def add_builtin_favorite(template_id: str, state: StateDep):
    state.templates.add_to_favorites(template_id)


@router.delete("/builtin/{template_id}/favorite", status_code=204)
def remove_builtin_favorite(template_id: str, state: StateDep):
    state.templates.remove_from_favorites(template_id)


# ---------------------------------------------------------------------------
# Backend templates
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[WorkoutTemplate])
def list_templates(state: StateDep, difficulty: str | None = None, favorites: bool = False):
    service = state.template_service
    if favorites:
        return service.get_favorite_templates()
    if difficulty:
        return service.get_templates_by_difficulty(difficulty)
    return service.get_accessible_templates()


@router.get("/search", response_model=list[WorkoutTemplate])
def search_templates(q: str, state: StateDep):
    return state.template_service.search_templates(q)


@router.post("/", response_model=WorkoutTemplate, status_code=201)
def create_template(body: TemplateCreate, state: StateDep):
    return state.template_service.create_personal_template(body)


@router.get("/{template_id}", response_model=WorkoutTemplate)
def get_template(template_id: str, state: StateDep):
    template = state.template_service.get_template_by_id(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.patch("/{template_id}", status_code=204)
def update_template(template_id: str, body: TemplateUpdate, state: StateDep):
    state.template_service.update_personal_template(template_id, body)


@router.delete("/{template_id}", status_code=204)
def delete_template(template_id: str, state: StateDep):
    state.template_service.delete_personal_template(template_id)


@router.post("/{template_id}/duplicate", response_model=WorkoutTemplate, status_code=201)
def duplicate_template(template_id: str, body: DuplicateBody, state: StateDep):
    return state.template_service.duplicate_template(template_id, body.name)


@router.put("/{template_id}/favorite", status_code=204)
def add_favorite(template_id: str, state: StateDep):
    state.template_service.add_to_favorites(template_id)


@router.delete("/{template_id}/favorite", status_code=204)
def remove_favorite(template_id: str, state: StateDep):
    state.template_service.remove_from_favorites(template_id)
