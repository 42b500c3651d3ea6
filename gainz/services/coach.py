"""Rule-based coaching: plateau and progress detection, recovery warnings,
and a simple personalized session builder."""

from dataclasses import dataclass, field

from gainz.schemas import (
    CoachRecommendation,
    Exercise,
    PersonalizedWorkout,
    UserProfile,
    Workout,
)
from gainz.utils import now_ms, round_half_up

DAY_MS = 24 * 60 * 60 * 1000

LEVEL_FACTORS = {"beginner": 1.0, "intermediate": 0.75, "advanced": 0.5}


@dataclass
class SessionSummary:
    date: int  # epoch ms
    max_weight: float
    total_volume: float
    avg_reps: float


@dataclass
class ExerciseProgress:
    exercise_id: str
    sessions: list[SessionSummary] = field(default_factory=list)


def analyze_exercise_progression(workouts: list[Workout]) -> dict[str, ExerciseProgress]:
    """Per-exercise series of session summaries, in workout order."""
    progress: dict[str, ExerciseProgress] = {}
    for workout in workouts:
        for entry in workout.exercises:
            series = progress.setdefault(entry.exercise.id, ExerciseProgress(entry.exercise.id))
            sets = [s for s in entry.sets if s.completed]
            if not sets:
                continue
            series.sessions.append(
                SessionSummary(
                    date=workout.started_at,
                    max_weight=max(s.weight or 0 for s in sets),
                    total_volume=sum((s.weight or 0) * (s.reps or 0) for s in sets),
                    avg_reps=sum(s.reps or 0 for s in sets) / len(sets),
                )
            )
    return progress


def detect_plateaus(progress: dict[str, ExerciseProgress]) -> set[str]:
    """Exercises whose max weight did not go up across their last three sessions."""
    plateaus = set()
    for exercise_id, series in progress.items():
        if len(series.sessions) < 3:
            continue
        weights = [s.max_weight for s in series.sessions[-3:]]
        if not any(later > earlier for earlier, later in zip(weights, weights[1:])):
            plateaus.add(exercise_id)
    return plateaus


def calculate_weight_increase(current_weight: float, level: str) -> float:
    if current_weight < 50:
        base = 2.5
    elif current_weight < 100:
        base = 5
    else:
        base = 10
    return base * LEVEL_FACTORS.get(level, 1.0)


def _progression_recommendations(
    progress: dict[str, ExerciseProgress],
    plateaus: set[str],
    profile: UserProfile,
    created_at: int,
) -> list[CoachRecommendation]:
    recommendations = []
    for exercise_id, series in progress.items():
        if len(series.sessions) < 2:
            continue
        previous, last = series.sessions[-2:]
        improvement = last.max_weight - previous.max_weight

        if exercise_id in plateaus:
            recommendations.append(
                CoachRecommendation(
                    id=f"deload_{exercise_id}",
                    type="deload",
                    title="Deload week recommended",
                    description="Drop the load by 10-15% to progress better afterwards",
                    confidence=0.8,
                    exercise_id=exercise_id,
                    suggested_value=round_half_up(last.max_weight * 0.85),
                    reasoning="Plateau detected over 3 consecutive sessions",
                    created_at=created_at,
                )
            )
        elif improvement > 0:
            increase = calculate_weight_increase(last.max_weight, profile.fitness_level)
            recommendations.append(
                CoachRecommendation(
                    id=f"increase_{exercise_id}",
                    type="weight_increase",
                    title="Weight increase suggested",
                    description=f"You're progressing well! Try +{increase:g}kg",
                    confidence=0.9,
                    exercise_id=exercise_id,
                    suggested_value=last.max_weight + increase,
                    reasoning=f"Steady progression of {improvement:g}kg detected",
                    created_at=created_at,
                )
            )
    return recommendations


def _recovery_recommendations(workouts: list[Workout], created_at: int) -> list[CoachRecommendation]:
    if len(workouts) < 2:
        return []
    gaps = [
        (later.started_at - earlier.started_at) / DAY_MS
        for earlier, later in zip(workouts, workouts[1:])
    ]
    gaps = [g for g in gaps if g > 0]
    if not gaps:
        return []

    avg_days = sum(gaps) / len(gaps)
    if avg_days >= 1:
        return []
    return [
        CoachRecommendation(
            id="recovery_warning",
            type="rest_adjustment",
            title="Watch your recovery",
            description="You are training very frequently. Plan some rest days.",
            confidence=0.7,
            reasoning=f"Average of {avg_days:.1f} days between sessions",
            created_at=created_at,
        )
    ]


def analyze_performance(
    workouts: list[Workout], profile: UserProfile, now: int | None = None
) -> list[CoachRecommendation]:
    """Recommendations for a chronological list of workouts, most confident first."""
    created_at = now if now is not None else now_ms()
    progress = analyze_exercise_progression(workouts)
    plateaus = detect_plateaus(progress)

    recommendations = _progression_recommendations(progress, plateaus, profile, created_at)
    recommendations += _recovery_recommendations(workouts, created_at)
    return sorted(recommendations, key=lambda r: r.confidence, reverse=True)


def generate_personalized_workout(
    profile: UserProfile, recent_workouts: list[Workout], available: list[Exercise]
) -> PersonalizedWorkout:
    recent_ids = {e.exercise.id for w in recent_workouts[-3:] for e in w.exercises}
    familiar = [e for e in available if e.id in recent_ids]
    new = [e for e in available if e.id not in recent_ids]
    selected = (familiar[:3] + new[:2])[:5]

    reps = 5 if "strength" in profile.goals else 10
    return PersonalizedWorkout(
        exercises=selected,
        suggested_sets=[3] * len(selected),
        suggested_reps=[reps] * len(selected),
        suggested_weights=[0.0] * len(selected),
        reasoning="A mix of familiar exercises and new challenges",
    )
