import pytest
from fastapi.testclient import TestClient

from gainz.app_state import AppState
from gainz.schemas import ExerciseCreate, ExerciseUpdate
from gainz.services.exceptions import NotAuthenticatedError, NotFoundError
from gainz.services.exercises import exercise_from_row

GLOBAL_ROW = {"id": "ex-1", "name": "Squat", "muscle_groups": ["Quads"], "category": "strength", "is_global": True}
PERSONAL_ROW = {"id": "ex-2", "name": "Zercher Squat", "muscle_groups": None, "category": None, "is_global": False}


def _sign_in(state: AppState, backend) -> None:
    backend.sign_in_as()
    state.auth.initialize_auth()


# ---------------------------------------------------------------------------
# ExerciseService
# ---------------------------------------------------------------------------


def test_exercise_from_row_defaults():
    exercise = exercise_from_row(PERSONAL_ROW)

    assert exercise.muscle_groups == []
    assert exercise.category == "strength"
    assert exercise.visibility == "personal"
    assert exercise_from_row(GLOBAL_ROW).visibility == "global"


def test_accessible_exercises_failure_is_empty(state: AppState, backend):
    backend.failing.add("user_accessible_exercises")
    assert state.exercise_service.get_accessible_exercises() == []


def test_create_personal_exercise(state: AppState, backend):
    backend.sign_in_as()

    created = state.exercise_service.create_personal_exercise(ExerciseCreate(name="Zercher Squat"))

    [row] = backend.calls_to("insert", "exercises")
    assert row["created_by"] == backend.session.user_id
    assert row["visibility"] == "personal"
    assert created.id == row["id"]
    assert created.is_global is False


def test_create_requires_session(state: AppState):
    with pytest.raises(NotAuthenticatedError):
        state.exercise_service.create_personal_exercise(ExerciseCreate(name="Nope"))


def test_update_and_delete_are_scoped_to_owner(state: AppState, backend):
    backend.sign_in_as()

    state.exercise_service.update_personal_exercise("ex-2", ExerciseUpdate(notes="Keep the bar high"))
    state.exercise_service.delete_personal_exercise("ex-2")

    [(values, filters)] = backend.calls_to("update", "exercises")
    assert values == {"notes": "Keep the bar high"}
    assert filters == {"id": "ex-2", "created_by": backend.session.user_id}
    assert backend.calls_to("delete", "exercises") == [{"id": "ex-2", "created_by": backend.session.user_id}]


def test_search_uses_case_insensitive_name_filter(state: AppState, backend):
    backend.tables["user_accessible_exercises"] = [GLOBAL_ROW]

    [exercise] = state.exercise_service.search_exercises("squ")

    [filters] = backend.calls_to("select", "user_accessible_exercises")
    assert filters == {"name": ("ilike", "%squ%")}
    assert exercise.name == "Squat"


def test_find_or_create_exercise(state: AppState, backend):
    backend.tables["user_accessible_exercises"] = lambda filters: (
        [{"id": filters["id"], "name": "Sled Push"}] if filters.get("id") == "id-Sled Push" else []
    )

    exercise = state.exercise_service.find_or_create_exercise(ExerciseCreate(name="  Sled Push "))

    [params] = backend.calls_to("rpc", "get_or_create_exercise")
    assert params["exercise_name"] == "Sled Push"
    assert exercise.id == "id-Sled Push"


def test_find_or_create_missing_after_creation(state: AppState, backend):
    with pytest.raises(NotFoundError):
        state.exercise_service.find_or_create_exercise(ExerciseCreate(name="Ghost"))


# ---------------------------------------------------------------------------
# ExerciseStore
# ---------------------------------------------------------------------------


def test_signed_out_uses_builtin_catalog(state: AppState, backend):
    state.exercises.load_exercises()

    assert len(state.exercises.exercises) == 15
    assert backend.calls_to("select", "user_accessible_exercises") == []


def test_signed_in_loads_backend_catalog(state: AppState, backend):
    _sign_in(state, backend)
    backend.tables["user_accessible_exercises"] = [GLOBAL_ROW, PERSONAL_ROW]

    state.exercises.load_exercises()

    assert [e.name for e in state.exercises.exercises] == ["Squat", "Zercher Squat"]


def test_filters(state: AppState):
    store = state.exercises
    store.load_exercises()

    store.search_exercises("press")
    assert {e.id for e in store.get_filtered_exercises()} == {
        "bench-press",
        "incline-press",
        "leg-press",
        "shoulder-press",
    }

    store.search_exercises("")
    store.filter_by_muscle_group("back")
    assert {e.id for e in store.get_filtered_exercises()} == {"pull-ups", "barbell-row", "lat-pulldown", "deadlift"}

    store.filter_by_muscle_group("")
    store.filter_by_category("cardio")
    assert {e.id for e in store.get_filtered_exercises()} == {"treadmill", "cycling"}

    # Category text is searchable too
    store.filter_by_category("")
    store.search_exercises("CARDIO")
    assert {e.id for e in store.get_filtered_exercises()} == {"treadmill", "cycling"}


def test_selection_toggles(state: AppState):
    store = state.exercises
    store.load_exercises()
    squat = store.exercises[6]

    store.toggle_exercise_selection(squat)
    store.toggle_exercise_selection(store.exercises[0])
    store.toggle_exercise_selection(squat)
    assert [e.id for e in store.selected_exercises] == ["bench-press"]

    store.clear_selection()
    assert store.selected_exercises == []


def test_add_personal_exercise_failure_sets_error(state: AppState):
    with pytest.raises(NotAuthenticatedError):
        state.exercises.add_personal_exercise(ExerciseCreate(name="Nope"))

    assert state.exercises.error == "Could not create the personal exercise"
    assert state.exercises.is_loading is False
    state.exercises.clear_error()
    assert state.exercises.error is None


def test_add_personal_exercise_appends(state: AppState, backend):
    _sign_in(state, backend)

    created = state.exercises.add_personal_exercise(ExerciseCreate(name="Zercher Squat"))

    assert state.exercises.exercises[-1].id == created.id


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def test_exercise_routes(client: TestClient, state: AppState, backend):
    response = client.get("/api/exercises/", params={"muscle_group": "chest"})
    assert {e["id"] for e in response.json()} == {"bench-press", "incline-press", "push-ups", "tricep-dips"}

    assert client.post("/api/exercises/", json={"name": "Nope"}).status_code == 401
    assert client.get("/api/exercises/missing").status_code == 404

    _sign_in(state, backend)
    response = client.post("/api/exercises/", json={"name": "Zercher Squat", "muscle_groups": ["Quads"]})
    assert response.status_code == 201
    assert response.json()["visibility"] == "personal"

    assert client.delete(f"/api/exercises/{response.json()['id']}").status_code == 204
    assert all(e.id != response.json()["id"] for e in state.exercises.exercises)
