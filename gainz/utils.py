import math
import re
import time
import uuid
from typing import Any, Literal

from gainz.config import DEFAULT_REST_SECONDS
from gainz.schemas import Exercise, WorkoutSet

BODYWEIGHT_EXERCISES = {
    "pull-up",
    "push-up",
    "dip",
    "chin-up",
    "muscle-up",
    "handstand-push-up",
    "pistol-squat",
    "l-sit",
    "plank",
    "hollow-hold",
}

# Checked in order; the first group whose keywords match wins.
_MUSCLE_GROUP_KEYWORDS: list[tuple[tuple[str, ...], list[str]]] = [
    (("bench", "push", "chest"), ["chest"]),
    (("squat", "leg", "calf"), ["legs"]),
    (("pull", "row", "deadlift", "lat"), ["back"]),
    (("curl", "bicep"), ["biceps"]),
    (("tricep", "dips"), ["triceps"]),
    (("shoulder", "overhead", "lateral", "press"), ["shoulders"]),
    (("romanian",), ["legs", "glutes"]),
]


def now_ms() -> int:
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    """Round halves towards positive infinity (44.5 -> 45, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def generate_uuid() -> str:
    return str(uuid.uuid4())


def is_valid_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return str(parsed) == value.lower()


def humanize_exercise_id(exercise_id: str) -> str:
    """'bench_press' -> 'Bench Press'."""
    return re.sub(r"\b\w", lambda m: m.group().upper(), exercise_id.replace("_", " "))


def muscle_groups_from_exercise_id(exercise_id: str) -> list[str]:
    for keywords, groups in _MUSCLE_GROUP_KEYWORDS:
        if any(keyword in exercise_id for keyword in keywords):
            return list(groups)
    return ["full_body"]


def is_bodyweight_exercise(exercise_id: str) -> bool:
    return exercise_id in BODYWEIGHT_EXERCISES


def is_cardio(exercise: Exercise) -> bool:
    return exercise.category == "cardio"


def normalize_exercise(raw: dict[str, Any], mode: Literal["template", "free"]) -> Exercise:
    """Build a catalog Exercise from either a template prescription or a workout entry."""
    if mode == "template":
        return Exercise(
            id=raw["exercise_id"],
            name=raw.get("name") or humanize_exercise_id(raw["exercise_id"]),
            sets=raw.get("sets"),
            reps=raw.get("reps"),
            rest_seconds=raw.get("rest_seconds"),
            notes=raw.get("notes"),
            progression_notes=raw.get("progression_notes"),
            muscle_groups=raw.get("muscle_groups") or [],
            category=raw.get("category") or "strength",
            is_bodyweight=raw.get("is_bodyweight") or False,
        )

    exercise = raw["exercise"]
    return Exercise(
        id=exercise["id"],
        name=exercise["name"],
        sets=len(raw.get("sets") or []),
        reps=None,
        rest_seconds=DEFAULT_REST_SECONDS,
        muscle_groups=exercise.get("muscle_groups") or [],
        category=exercise.get("category") or "strength",
        is_bodyweight=exercise.get("is_bodyweight") or False,
    )


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    remaining_seconds = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{remaining_seconds}s"


def format_reps(reps: int | str) -> str:
    return reps if isinstance(reps, str) else str(reps)


def is_set_ready(workout_set: WorkoutSet) -> bool:
    """A set can be completed once it has reps; weight may be zero."""
    return (workout_set.weight or 0) >= 0 and (workout_set.reps or 0) > 0
