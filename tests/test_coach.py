import pytest
from fastapi.testclient import TestClient

from gainz.app_state import AppState
from gainz.catalog import DEFAULT_EXERCISES
from gainz.schemas import Exercise, UserProfile, Workout, WorkoutExercise, WorkoutSet
from gainz.services import coach
from gainz.stores.coach import CoachStore

NOW = 1_760_000_000_000
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


def lift(
    workout_id: str,
    date: int,
    weights: list[float],
    name: str = "Bench Press",
    completed: bool = True,
) -> Workout:
    return Workout(
        id=workout_id,
        user_id="u1",
        name="Session",
        date=date,
        started_at=date,
        finished_at=date + HOUR_MS,
        exercises=[
            WorkoutExercise(
                id=f"{workout_id}-e",
                exercise=Exercise(id=f"{workout_id}-{name}", name=name),
                sets=[WorkoutSet(reps=8, weight=w, completed=completed) for w in weights],
            )
        ],
    )


def keyed(workout_id: str, date: int, weight: float) -> Workout:
    """Same exercise id across workouts, as the coach service expects."""
    workout = lift(workout_id, date, [weight])
    workout.exercises[0].exercise = Exercise(id="bench", name="Bench Press")
    return workout


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "weight,level,expected",
    [
        (40, "beginner", 2.5),
        (80, "beginner", 5),
        (120, "beginner", 10),
        (120, "advanced", 5),
        (40, "intermediate", 1.875),
    ],
)
def test_calculate_weight_increase(weight, level, expected):
    assert coach.calculate_weight_increase(weight, level) == expected


def test_steady_progress_suggests_increase():
    workouts = [keyed("w1", NOW, 60), keyed("w2", NOW + 2 * DAY_MS, 62.5), keyed("w3", NOW + 4 * DAY_MS, 65)]

    [recommendation] = coach.analyze_performance(workouts, UserProfile(), now=NOW)

    assert recommendation.type == "weight_increase"
    assert recommendation.id == "increase_bench"
    assert recommendation.suggested_value == 70
    assert recommendation.description == "You're progressing well! Try +5kg"
    assert recommendation.created_at == NOW


def test_plateau_suggests_deload():
    workouts = [keyed(f"w{i}", NOW + i * 2 * DAY_MS, 100) for i in range(3)]

    [recommendation] = coach.analyze_performance(workouts, UserProfile())

    assert recommendation.type == "deload"
    assert recommendation.suggested_value == 85
    assert recommendation.confidence == 0.8


def test_frequent_training_warns_about_recovery():
    workouts = [keyed("w1", NOW, 100), keyed("w2", NOW + 12 * HOUR_MS, 100)]

    [recommendation] = coach.analyze_performance(workouts, UserProfile())

    assert recommendation.type == "rest_adjustment"
    assert recommendation.reasoning == "Average of 0.5 days between sessions"


def test_recommendations_sorted_by_confidence():
    workouts = [keyed("w1", NOW, 60), keyed("w2", NOW + 6 * HOUR_MS, 65)]

    recommendations = coach.analyze_performance(workouts, UserProfile())

    assert [r.type for r in recommendations] == ["weight_increase", "rest_adjustment"]


def test_uncompleted_sets_are_ignored():
    workouts = [lift("w1", NOW, [60], completed=False)]
    progress = coach.analyze_exercise_progression(workouts)
    assert progress["w1-Bench Press"].sessions == []


def test_personalized_workout_mixes_familiar_and_new():
    recent = [
        Workout(
            id="w1",
            user_id="u1",
            name="Session",
            date=NOW,
            started_at=NOW,
            exercises=[
                WorkoutExercise(id="e1", exercise=DEFAULT_EXERCISES[6]),
                WorkoutExercise(id="e2", exercise=DEFAULT_EXERCISES[7]),
            ],
        )
    ]

    workout = coach.generate_personalized_workout(
        UserProfile(goals=["strength"]), recent, DEFAULT_EXERCISES
    )

    assert [e.id for e in workout.exercises] == ["squat", "deadlift", "bench-press", "incline-press"]
    assert workout.suggested_reps == [5, 5, 5, 5]
    assert workout.suggested_sets == [3, 3, 3, 3]


# ---------------------------------------------------------------------------
# CoachStore
# ---------------------------------------------------------------------------


def test_initialize_profile(state: AppState):
    state.coach.initialize_profile()
    profile = state.coach.user_profile

    assert profile.fitness_level == "beginner"
    assert profile.goals == ["muscle"]
    assert profile.preferences.focus_areas == ["chest", "back", "legs"]

    state.coach.update_user_profile({"goals": ["strength"]})
    state.coach.initialize_profile()
    assert state.coach.user_profile.goals == ["strength"]
    assert state.coach.user_profile.updated_at >= profile.created_at


def test_update_without_profile_is_ignored(state: AppState):
    state.coach.update_user_profile({"goals": ["strength"]})
    assert state.coach.user_profile is None


def test_analysis_requires_profile(state: AppState):
    state.workouts.set_state(workout_history=[lift("w1", NOW, [60]), lift("w2", NOW + DAY_MS * 2, [70])])
    state.coach.analyze_performance()
    assert state.coach.recommendations == []
    assert state.coach.last_analysis is None


def test_analysis_keys_exercises_by_name(state: AppState):
    state.coach.initialize_profile()
    # Distinct exercise ids but the same name; sets never marked complete
    state.workouts.set_state(
        workout_history=[
            lift("w2", NOW + 2 * DAY_MS, [70], completed=False),
            lift("w1", NOW, [60], completed=False),
        ]
    )

    state.coach.analyze_performance()

    [recommendation] = state.coach.recommendations
    assert recommendation.exercise_id == "Bench Press"
    assert recommendation.suggested_value == 75
    assert state.coach.last_analysis is not None
    assert state.coach.is_analyzing is False


def test_analysis_window_is_ten_most_recent(state: AppState):
    state.coach.initialize_profile()
    old = [lift("old1", NOW - 200 * DAY_MS, [100]), lift("old2", NOW - 100 * DAY_MS, [100])]
    recent = [lift(f"r{i}", NOW + i * 12 * HOUR_MS, [100]) for i in range(10)]
    state.workouts.set_state(workout_history=[*recent, *old])

    state.coach.analyze_performance()

    types = {r.type for r in state.coach.recommendations}
    assert types == {"deload", "rest_adjustment"}


def test_analysis_failure_keeps_previous_recommendations(state: AppState, monkeypatch):
    state.coach.initialize_profile()
    state.workouts.set_state(workout_history=[lift("w1", NOW, [60])])

    def boom(workouts, profile):
        raise RuntimeError("analysis exploded")

    monkeypatch.setattr(coach, "analyze_performance", boom)
    state.coach.analyze_performance()

    assert state.coach.is_analyzing is False
    assert state.coach.recommendations == []


def test_dismissed_recommendations_are_not_persisted(state: AppState):
    state.coach.initialize_profile()
    state.workouts.set_state(
        workout_history=[keyed("w1", NOW, 60), keyed("w2", NOW + 6 * HOUR_MS, 65)]
    )
    state.coach.analyze_performance()
    state.coach.dismiss_recommendation("recovery_warning")

    assert [r.dismissed for r in state.coach.recommendations] == [False, True]

    reloaded = CoachStore(state.local_store, state.workouts)
    reloaded.load()

    assert [r.id for r in reloaded.recommendations] == ["increase_Bench Press"]
    assert reloaded.user_profile == state.coach.user_profile
    assert reloaded.last_analysis == state.coach.last_analysis


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def test_coach_routes(client: TestClient, state: AppState):
    assert client.get("/api/coach/profile").status_code == 404
    assert client.post("/api/coach/analyze").status_code == 404

    assert client.post("/api/coach/profile").status_code == 201
    response = client.patch("/api/coach/profile", json={"goals": ["strength"], "fitness_level": "advanced"})
    assert response.json()["fitness_level"] == "advanced"

    state.workouts.set_state(workout_history=[lift("w1", NOW, [100]), lift("w2", NOW + 2 * DAY_MS, [120])])
    [recommendation] = client.post("/api/coach/analyze").json()
    # 10kg step halved for advanced lifters
    assert recommendation["suggested_value"] == 125

    assert client.post("/api/coach/recommendations/nope/dismiss").status_code == 404
    assert client.post(f"/api/coach/recommendations/{recommendation['id']}/dismiss").status_code == 204
    assert client.get("/api/coach/recommendations").json() == []
    assert len(client.get("/api/coach/recommendations", params={"include_dismissed": True}).json()) == 1

    workout = client.post("/api/coach/workout").json()
    # No familiar exercises in the catalog, so only the two new picks
    assert [e["id"] for e in workout["exercises"]] == ["bench-press", "incline-press"]
    assert set(workout["suggested_reps"]) == {5}

    assert client.delete("/api/coach/recommendations").status_code == 204
    assert client.get("/api/coach/recommendations", params={"include_dismissed": True}).json() == []
