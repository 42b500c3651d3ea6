import threading
import time

import pytest
from fastapi.testclient import TestClient

from gainz.app_state import AppState
from gainz.catalog import DEFAULT_EXERCISES
from gainz.schemas import Exercise, ProgramExerciseLog, ProgramProgress, TemplateExercise, WorkoutSet
from gainz.stores import workout as workout_store

BENCH, SQUAT = DEFAULT_EXERCISES[0], DEFAULT_EXERCISES[6]
TREADMILL = next(e for e in DEFAULT_EXERCISES if e.id == "treadmill")


def _entry_id(state: AppState, index: int = 0) -> str:
    return state.workouts.current_workout.exercises[index].id


# ---------------------------------------------------------------------------
# Starting
# ---------------------------------------------------------------------------


def test_start_workout(state: AppState):
    state.workouts.start_workout("Monday", [BENCH, SQUAT])
    store = state.workouts

    workout = store.current_workout
    assert workout.user_id == "temp-user"
    assert [e.exercise.id for e in workout.exercises] == ["bench-press", "squat"]
    assert [e.order_index for e in workout.exercises] == [0, 1]
    assert all(len(e.sets) == 1 and e.sets[0].rest_seconds == 90 for e in workout.exercises)
    assert store.is_recording
    assert store.current_exercise.id == "bench-press"
    assert store.workout_type == "free"


def test_start_workout_needs_exercises(state: AppState):
    state.workouts.start_workout("Empty", [])
    assert state.workouts.current_workout is None


def test_signed_in_owner(state: AppState, backend):
    backend.sign_in_as()
    state.auth.initialize_auth()

    state.workouts.start_workout("Monday", [BENCH])

    assert state.workouts.current_workout.user_id == backend.session.user_id


def test_start_template_workout(state: AppState):
    prescriptions = [
        TemplateExercise(exercise_id="bench_press", sets=3, reps="8-10", rest_seconds=120),
        TemplateExercise(exercise_id="push_ups", sets=2, is_bodyweight=True, notes="Slow"),
    ]

    state.workouts.start_template_workout("push", prescriptions)

    store = state.workouts
    workout = store.current_workout
    assert workout.name == "Session push"
    assert store.workout_type == "template"
    assert store.template_session_id == "push"
    bench, push_ups = workout.exercises
    assert bench.exercise.name == "Bench Press"
    assert [s.rest_seconds for s in bench.sets] == [120, 120, 120]
    assert push_ups.exercise.is_bodyweight
    assert push_ups.notes == "Slow"
    assert len(push_ups.sets) == 2


# ---------------------------------------------------------------------------
# Editing sets
# ---------------------------------------------------------------------------


def test_set_editing(state: AppState):
    state.workouts.start_workout("Monday", [BENCH])
    entry_id = _entry_id(state)
    store = state.workouts

    store.update_set(entry_id, 0, {"reps": 8, "weight": 60})
    store.add_set(entry_id)
    store.add_set(entry_id)

    sets = store.current_workout.exercises[0].sets
    assert [(s.reps, s.weight) for s in sets] == [(8, 60), (8, 60), (8, 60)]

    store.remove_set(entry_id, 1)
    store.remove_set(entry_id, 0)
    store.remove_set(entry_id, 0)
    assert len(store.current_workout.exercises[0].sets) == 1


def test_concurrent_set_edits_are_all_kept(state: AppState, monkeypatch):
    state.workouts.start_workout("Monday", [BENCH])
    entry_id = _entry_id(state)
    state.workouts.add_set(entry_id)

    def slow_is_cardio(exercise):
        time.sleep(0.05)
        return False

    # Widens the window between reading the workout and writing it back
    monkeypatch.setattr(workout_store, "is_cardio", slow_is_cardio)

    threads = [
        threading.Thread(target=state.workouts.update_set, args=(entry_id, i, {"reps": 10 + i}))
        for i in range(2)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [s.reps for s in state.workouts.current_workout.exercises[0].sets] == [10, 11]


def test_stores_share_one_lock(state: AppState):
    assert state.workouts.lock is state.templates.lock is state.coach.lock is state.lock


def test_cardio_sets_track_duration_and_distance(state: AppState):
    state.workouts.start_workout("Run", [TREADMILL])
    entry_id = _entry_id(state)

    state.workouts.update_set(entry_id, 0, {"duration_seconds": 1200, "distance_km": 3.5})
    state.workouts.add_set(entry_id)

    first, second = state.workouts.current_workout.exercises[0].sets
    assert (first.duration_seconds, first.distance_km) == (1200, 3.5)
    assert (second.duration_seconds, second.distance_km, second.reps) == (1200, 3.5, None)


def test_complete_set_starts_rest_timer(state: AppState):
    state.workouts.start_workout("Monday", [BENCH])
    entry_id = _entry_id(state)
    state.workouts.update_set(entry_id, 0, {"rest_seconds": 150})

    state.workouts.complete_set(entry_id, 0)

    assert state.workouts.current_workout.exercises[0].sets[0].completed
    assert state.workouts.rest_timer.is_active
    assert state.workouts.rest_timer.time_left == 150


def test_update_template_progress_by_exercise_id(state: AppState):
    state.workouts.start_workout("Monday", [BENCH, SQUAT])

    state.workouts.update_template_progress("squat", 0, {"reps": 5, "weight": 100})

    bench, squat = state.workouts.current_workout.exercises
    assert squat.sets[0].weight == 100
    assert bench.sets[0].weight is None


def test_complete_exercise_and_workout(state: AppState):
    state.workouts.start_workout("Monday", [BENCH])
    state.workouts.complete_exercise(_entry_id(state))
    state.workouts.complete_workout()

    assert state.workouts.current_workout.exercises[0].completed
    assert state.workouts.current_workout.completed


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_navigation_clears_pending_sets(state: AppState):
    store = state.workouts
    store.start_workout("Monday", [BENCH, SQUAT])
    squat_id = _entry_id(state, 1)
    store.update_set(squat_id, 0, {"reps": 5, "weight": 100})
    store.add_set(squat_id)
    store.complete_set(squat_id, 0)

    store.go_to_next_exercise()

    assert store.current_exercise_index == 1
    assert store.current_exercise.id == "squat"
    done, pending = store.current_workout.exercises[1].sets
    assert (done.reps, done.weight) == (5, 100)
    assert (pending.reps, pending.weight) == (None, None)

    store.go_to_next_exercise()
    assert store.current_exercise_index == 1
    store.go_to_previous_exercise()
    store.go_to_previous_exercise()
    assert store.current_exercise_index == 0

    store.go_to_exercise(5)
    assert store.current_exercise_index == 0
    store.go_to_exercise(1)
    assert store.current_exercise_index == 1


# ---------------------------------------------------------------------------
# Rest timer
# ---------------------------------------------------------------------------


def test_rest_timer(state: AppState):
    store = state.workouts
    store.start_rest_timer(2)
    store.add_time_to_timer(30)
    assert (store.rest_timer.time_left, store.rest_timer.duration) == (32, 32)

    store.start_rest_timer(1)
    store.tick()
    assert store.rest_timer.time_left == 0
    assert store.rest_timer.is_active
    store.tick()
    assert not store.rest_timer.is_active

    store.add_time_to_timer(30)
    assert store.rest_timer.time_left == 0

    store.start_rest_timer(60)
    store.stop_rest_timer()
    assert (store.rest_timer.is_active, store.rest_timer.time_left) == (False, 0)


# ---------------------------------------------------------------------------
# Finishing and history
# ---------------------------------------------------------------------------


def test_finish_workout_saves_and_syncs(state: AppState, backend):
    backend.sign_in_as()
    store = state.workouts
    store.start_workout("Monday", [BENCH])

    finished = store.finish_workout()

    assert finished.completed
    assert finished.finished_at is not None
    assert store.workout_history[0].id == finished.id
    assert state.storage.get_local_workout(finished.id) is not None
    assert len(backend.calls_to("upsert", "workouts")) == 1
    assert (store.sync_status.synced, store.sync_status.pending) == (1, 0)


def test_finish_without_workout(state: AppState):
    with pytest.raises(ValueError):
        state.workouts.save_and_finalize_workout()


def test_cancel_workout(state: AppState):
    store = state.workouts
    store.start_workout("Monday", [BENCH])
    store.complete_set(_entry_id(state), 0)

    store.cancel_workout()

    assert store.current_workout is None
    assert not store.is_recording
    assert not store.rest_timer.is_active


def test_history_includes_template_program_sessions(state: AppState):
    state.templates.start_program("stronglifts_5x5")
    state.templates.complete_session(
        ProgramProgress(
            session_id="workout_b",
            date=1_700_000_000_000,
            duration=2700,
            exercises=[ProgramExerciseLog(exercise_id="overhead_press", sets=[WorkoutSet(reps=5, weight=40)])],
        )
    )

    state.workouts.load_workout_history()

    [workout] = state.workouts.workout_history
    assert workout.name == "Workout B - SQ/OHP/DL"
    assert workout.started_at == 1_700_000_000_000
    assert workout.finished_at > workout.started_at
    assert workout.exercises[0].exercise.name == "Overhead Press"
    assert workout.exercises[0].sets[0].rest_seconds == 90


def test_offline_then_reconnect(state: AppState, backend):
    backend.sign_in_as()
    store = state.workouts
    store.set_online(False)
    store.start_workout("Monday", [BENCH])
    store.finish_workout()

    assert store.sync_status.is_online is False
    assert store.sync_status.pending == 1
    assert backend.calls_to("upsert", "workouts") == []

    store.set_online(True)

    assert store.sync_status.pending == 0
    assert len(backend.calls_to("upsert", "workouts")) == 1


def test_delete_workout(state: AppState, backend):
    store = state.workouts
    store.start_workout("Monday", [BENCH])
    finished = store.finish_workout()

    store.delete_workout(finished.id)

    assert store.workout_history == []
    assert state.storage.get_local_workout(finished.id) is None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def test_workout_routes(client: TestClient, state: AppState):
    assert client.get("/api/workouts/current").status_code == 404
    assert client.post("/api/workouts/current", json={"name": "Empty", "exercises": []}).status_code == 400

    response = client.post(
        "/api/workouts/current", json={"name": "Monday", "exercises": [BENCH.model_dump()]}
    )
    assert response.status_code == 201
    entry_id = response.json()["workout"]["exercises"][0]["id"]
    assert client.post(f"/api/workouts/current/exercises/{entry_id}/sets/0/complete").status_code == 400

    response = client.patch(
        f"/api/workouts/current/exercises/{entry_id}/sets/0", json={"reps": 5, "weight": 100}
    )
    assert response.json()["workout"]["exercises"][0]["sets"][0]["weight"] == 100
    assert client.patch(f"/api/workouts/current/exercises/{entry_id}/sets/3", json={}).status_code == 404
    assert client.delete(f"/api/workouts/current/exercises/{entry_id}/sets/0").status_code == 400

    client.post(f"/api/workouts/current/exercises/{entry_id}/sets/0/complete")
    assert client.get("/api/workouts/rest-timer").json()["time_left"] == 90
    assert client.post("/api/workouts/rest-timer/tick").json()["time_left"] == 89

    response = client.post("/api/workouts/current/finish")
    assert response.status_code == 200
    body = response.json()
    assert {pr["type"] for pr in body["new_prs"]} == {"weight", "1rm", "volume", "reps"}
    assert client.get("/api/workouts/current").status_code == 404
    assert [w["id"] for w in client.get("/api/workouts/").json()] == [body["workout"]["id"]]
    assert len(client.get("/api/progress/records").json()) == 4

    assert client.get("/api/workouts/sync").json()["pending"] == 1
    assert client.delete(f"/api/workouts/{body['workout']['id']}").status_code == 204
    assert client.delete("/api/workouts/unknown").status_code == 404


def test_exercise_can_be_added_mid_workout(client: TestClient, state: AppState):
    client.post("/api/workouts/current", json={"name": "Monday", "exercises": [BENCH.model_dump()]})

    extra = {"id": "entry-2", "exercise": Exercise(id="curl", name="Curl").model_dump(), "sets": [{}]}
    response = client.post("/api/workouts/current/exercises", json=extra)

    assert [e["exercise"]["name"] for e in response.json()["workout"]["exercises"]] == ["Bench Press", "Curl"]
    assert client.post("/api/workouts/current/go/1").json()["current_exercise_index"] == 1
    assert client.post("/api/workouts/current/go/9").status_code == 404
