"""Tests for backend programs: service, store and routes."""

import pytest
from fastapi.testclient import TestClient

from gainz.app_state import AppState
from gainz.remote.exceptions import APIError
from gainz.schemas import (
    SessionCompletion,
    SessionExerciseLog,
    UserActiveProgram,
    WorkoutSet,
)
from gainz.services.exceptions import ConflictError, NotFoundError
from gainz.services.programs import program_from_row

PROGRAM_ID = "program-1"


def _program_row(**overrides) -> dict:
    row = {
        "id": PROGRAM_ID,
        "name": "Full Body",
        "description": "Three days a week",
        "category": "strength",
        "level": "beginner",
        "duration_weeks": 4,
        "frequency_per_week": 3,
        "tags": ["barbell"],
        "popularity": 40,
        "is_favorite": False,
        "program_sessions": [
            {
                "id": "session-b",
                "session_key": "b",
                "name": "Day B",
                "order_index": 1,
                "program_session_exercises": [
                    {"id": "pse-2", "exercise_id": "ex-2", "sets": 3, "reps": "5", "exercises": None},
                ],
            },
            {
                "id": "session-a",
                "session_key": "a",
                "name": "Day A",
                "order_index": 0,
                "program_session_exercises": [
                    {
                        "id": "pse-1",
                        "exercise_id": "ex-1",
                        "sets": 5,
                        "reps": "5",
                        "exercises": {"id": "ex-1", "name": "Squat"},
                    },
                ],
            },
        ],
    }
    row.update(overrides)
    return row


def _active_row(**overrides) -> dict:
    row = {
        "id": "active-1",
        "user_id": "u1",
        "program_id": PROGRAM_ID,
        "current_week": 1,
        "current_session_index": 0,
        "completed_sessions": [],
        "is_active": True,
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def test_program_from_row_orders_sessions():
    program = program_from_row(_program_row())

    assert [s.name for s in program.sessions] == ["Day A", "Day B"]
    assert program.session_count == 2
    assert program.sessions[0].exercises[0].exercise_name == "Squat"
    assert program.sessions[1].exercises[0].exercise_name == "Exercise not found"
    assert program.sessions[1].exercise_count == 1


# ---------------------------------------------------------------------------
# ProgramService
# ---------------------------------------------------------------------------


def test_accessible_programs_come_from_rpc(state: AppState, backend):
    backend.rpc_results["get_user_accessible_programs"] = [_program_row(), _program_row(id="p2", name="Split")]

    programs = state.program_service.get_accessible_programs()

    assert [p.id for p in programs] == [PROGRAM_ID, "p2"]
    assert [p.name for p in state.program_service.search_programs("split")] == ["Split"]
    assert len(state.program_service.search_programs("barbell")) == 2


def test_accessible_programs_failure_is_empty(state: AppState, backend):
    backend.failing.add("get_user_accessible_programs")
    assert state.program_service.get_accessible_programs() == []


def test_start_program_refuses_second_active(state: AppState, backend):
    backend.sign_in_as()
    backend.tables["user_active_programs"] = [_active_row()]

    with pytest.raises(ConflictError):
        state.program_service.start_program("program-2")


def test_start_program_inserts_run(state: AppState, backend):
    backend.sign_in_as()

    active = state.program_service.start_program(PROGRAM_ID, {"deload": True})

    [inserted] = backend.calls_to("insert", "user_active_programs")
    assert inserted["user_id"] == backend.session.user_id
    assert inserted["current_session_index"] == 0
    assert active.program_id == PROGRAM_ID
    assert active.customizations == {"deload": True}


def test_complete_session_records_history_and_advances(state: AppState, backend):
    backend.tables["user_active_programs"] = [{"completed_sessions": ["session-a"], "current_session_index": 1}]

    state.program_service.complete_session("active-1", "session-b", "workout-1", {"duration_seconds": 1800})

    [history] = backend.calls_to("insert", "user_program_history")
    assert history["workout_id"] == "workout-1"
    assert history["duration_seconds"] == 1800
    [(values, filters)] = backend.calls_to("update", "user_active_programs")
    assert values == {"completed_sessions": ["session-a", "session-b"], "current_session_index": 2}
    assert filters == {"id": "active-1"}


def test_add_to_favorites_tolerates_duplicates(state: AppState, backend, monkeypatch):
    backend.sign_in_as()

    def duplicate(table, rows):
        raise APIError("duplicate key value violates unique constraint", 409, "23505")

    monkeypatch.setattr(backend, "insert", duplicate)
    state.program_service.add_to_favorites(PROGRAM_ID)


def test_duplicate_program_copies_sessions(state: AppState, backend):
    backend.sign_in_as()
    backend.tables["workout_programs"] = [_program_row()]

    state.program_service.duplicate_program(PROGRAM_ID)

    [program] = backend.calls_to("insert", "workout_programs")
    assert program["name"] == "Full Body (Copy)"
    assert program["popularity"] == 0
    assert program["visibility"] == "personal"
    assert program["created_by"] == backend.session.user_id
    assert len(backend.calls_to("insert", "program_sessions")) == 2
    exercise_batches = backend.calls_to("insert", "program_session_exercises")
    assert sorted(batch[0]["exercise_id"] for batch in exercise_batches) == ["ex-1", "ex-2"]


def test_duplicate_missing_program(state: AppState, backend):
    backend.sign_in_as()
    with pytest.raises(NotFoundError):
        state.program_service.duplicate_program("nope")


# ---------------------------------------------------------------------------
# ProgramStore
# ---------------------------------------------------------------------------


def _running(state: AppState, completed: int = 0, index: int = 0) -> None:
    state.programs.set_state(
        active_program=UserActiveProgram.model_validate(
            _active_row(completed_sessions=["s"] * completed, current_session_index=index, current_week=2)
        ),
        selected_program=program_from_row(_program_row()),
    )


def test_load_programs_requires_authentication(state: AppState, backend):
    backend.rpc_results["get_user_accessible_programs"] = [_program_row()]
    state.programs.load_programs()
    assert state.programs.available_programs == []


def test_load_programs_collects_favorites(state: AppState, backend):
    backend.sign_in_as()
    state.auth.initialize_auth()
    backend.rpc_results["get_user_accessible_programs"] = [
        _program_row(),
        _program_row(id="p2", is_favorite=True),
    ]

    state.programs.load_programs()

    assert len(state.programs.available_programs) == 2
    assert state.programs.favorite_programs == ["p2"]
    assert [p.id for p in state.programs.get_favorite_programs()] == ["p2"]
    assert len(state.programs.get_programs_by_category("strength")) == 2
    assert state.programs.get_programs_by_level("advanced") == []


def test_start_program_stops_current_one_first(state: AppState, backend):
    backend.sign_in_as()

    def active_rows(filters):
        # Active until the stop update lands
        if backend.calls_to("update", "user_active_programs"):
            return []
        return [_active_row(program_id="old-program")]

    backend.tables["user_active_programs"] = active_rows
    state.programs.set_state(available_programs=[program_from_row(_program_row())])

    state.programs.start_program(PROGRAM_ID)

    [(values, _)] = backend.calls_to("update", "user_active_programs")
    assert values["is_active"] is False
    assert state.programs.active_program.program_id == PROGRAM_ID
    assert state.programs.selected_program.id == PROGRAM_ID


def test_current_and_next_session_wrap_around(state: AppState):
    _running(state, index=3)

    assert state.programs.get_current_session().name == "Day B"
    assert state.programs.get_next_session().name == "Day A"


def test_progress_and_stats(state: AppState):
    _running(state, completed=3)

    assert state.programs.get_program_progress() == 25
    stats = state.programs.get_program_stats()
    assert stats.total_weeks == 4
    assert stats.current_week == 2
    assert stats.total_sessions == 12
    assert stats.remaining_sessions == 9
    assert stats.progress_percent == 25
    assert stats.estimated_completion is not None


def test_progress_is_capped(state: AppState):
    _running(state, completed=20)
    assert state.programs.get_program_progress() == 100


def test_stats_without_program(state: AppState):
    assert state.programs.get_program_stats().total_sessions == 0
    assert state.programs.get_current_session() is None


def test_complete_session_saves_workout(state: AppState, backend):
    backend.sign_in_as()
    backend.tables["user_active_programs"] = [_active_row(current_session_index=1)]
    backend.tables["workout_programs"] = [_program_row()]
    _running(state)

    workout = state.programs.complete_session(
        SessionCompletion(
            started_at=1_700_000_000_000,
            exercises=[
                SessionExerciseLog(
                    exercise_id="ex-1",
                    exercise_name="Squat",
                    sets=[WorkoutSet(reps=5, weight=100, completed=True)],
                )
            ],
        )
    )

    assert workout.name == "Day A"
    assert workout.template_session_id == "session-a"
    assert workout.user_id == "u1"
    assert workout.exercises[0].sets[0].rest_seconds == 90
    assert state.storage.get_local_workout(workout.id) is not None
    [history] = backend.calls_to("insert", "user_program_history")
    assert history["workout_id"] == workout.id
    # Reloaded from the backend afterwards
    assert state.programs.active_program.current_session_index == 1


def test_complete_session_without_program(state: AppState):
    with pytest.raises(NotFoundError):
        state.programs.complete_session(SessionCompletion())


def test_restore_reads_persisted_state(state: AppState):
    _running(state)
    state.programs.add_to_favorites(PROGRAM_ID)  # fails unauthenticated, nothing persisted
    assert state.programs.error == "Could not add to favorites"

    state.programs.load_active_program()  # no session: clears and persists
    state.programs.restore()
    assert state.programs.active_program is None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def test_active_route_without_program(client: TestClient):
    assert client.get("/api/programs/active").status_code == 404


def test_start_route_requires_authentication(client: TestClient):
    response = client.post(f"/api/programs/{PROGRAM_ID}/start", json={})
    assert response.status_code == 401


def test_get_program_route(client: TestClient, backend):
    backend.tables["workout_programs"] = lambda filters: [_program_row()] if filters["id"] == PROGRAM_ID else []

    assert client.get(f"/api/programs/{PROGRAM_ID}").json()["name"] == "Full Body"
    assert client.get("/api/programs/unknown").status_code == 404


def test_start_and_complete_through_routes(client: TestClient, state: AppState, backend):
    backend.sign_in_as()
    state.auth.initialize_auth()
    backend.rpc_results["get_user_accessible_programs"] = [_program_row()]
    assert len(client.get("/api/programs/").json()) == 1

    response = client.post(f"/api/programs/{PROGRAM_ID}/start", json={"customizations": {}})
    assert response.status_code == 201
    assert response.json()["current_session"]["name"] == "Day A"
    assert response.json()["stats"]["total_sessions"] == 12

    backend.tables["user_active_programs"] = [_active_row()]
    backend.tables["workout_programs"] = [_program_row()]
    response = client.post("/api/programs/active/complete", json={"exercises": []})
    assert response.status_code == 200
    assert response.json()["name"] == "Day A"
    assert state.workouts.workout_history[0].id == response.json()["id"]
