import time
from collections.abc import Iterable

from gainz.schemas import (
    Performance,
    PersonalRecord,
    ProgressionSuggestion,
    ProgressStats,
    Workout,
    WorkoutExercise,
    WorkoutSet,
)
from gainz.utils import round_half_up

DAY_MS = 24 * 60 * 60 * 1000


def calculate_1rm(weight: float, reps: int) -> float:
    """Estimated one-rep max (Epley)."""
    if reps == 1:
        return weight
    return weight * (1 + reps / 30)


def _consider(
    records: dict[str, PersonalRecord],
    candidate: PersonalRecord,
) -> None:
    """Keep `candidate` if it strictly beats the current record of its type."""
    current = records.get(candidate.type)
    if current is None or candidate.value > current.value:
        records[candidate.type] = candidate


def _cardio_records(
    records: dict[str, PersonalRecord], base: dict, workout_set: WorkoutSet
) -> None:
    duration = workout_set.duration_seconds
    distance = workout_set.distance_km
    cardio = {**base, "duration_seconds": duration, "distance_km": distance}

    if duration:
        _consider(records, PersonalRecord(**cardio, type="duration", value=duration))
    if distance:
        _consider(records, PersonalRecord(**cardio, type="distance", value=distance))
    if duration and distance:
        speed = distance / (duration / 3600)  # km/h
        _consider(records, PersonalRecord(**cardio, type="speed", value=speed))


def _strength_records(
    records: dict[str, PersonalRecord],
    base: dict,
    workout_set: WorkoutSet,
    is_bodyweight: bool,
) -> None:
    reps = workout_set.reps
    weight = workout_set.weight
    if not reps:
        return
    lifted = {**base, "reps": reps, "weight": weight}

    if not is_bodyweight and weight:
        _consider(records, PersonalRecord(**lifted, type="weight", value=weight))
        _consider(records, PersonalRecord(**lifted, type="1rm", value=calculate_1rm(weight, reps)))
        _consider(records, PersonalRecord(**lifted, type="volume", value=reps * weight))

    _consider(records, PersonalRecord(**lifted, type="reps", value=reps))


def find_personal_records(workouts: Iterable[Workout]) -> list[PersonalRecord]:
    """Best value per exercise and record type across finished workouts, newest first.

    Only completed sets count. Records are dated by the workout's start.
    """
    by_exercise: dict[str, dict[str, PersonalRecord]] = {}

    for workout in workouts:
        if not workout.finished_at:
            continue
        for entry in workout.exercises:
            exercise = entry.exercise
            records = by_exercise.setdefault(exercise.id, {})
            base = {
                "exercise_id": exercise.id,
                "exercise_name": exercise.name,
                "date": workout.started_at,
                "workout_id": workout.id,
            }
            for workout_set in entry.sets:
                if not workout_set.completed:
                    continue
                if exercise.category == "cardio":
                    _cardio_records(records, base, workout_set)
                else:
                    _strength_records(records, base, workout_set, exercise.is_bodyweight)

    flat = [record for records in by_exercise.values() for record in records.values()]
    return sorted(flat, key=lambda r: r.date, reverse=True)


def _recent_performances(
    workouts: Iterable[Workout], exercise_id: str, limit: int = 5
) -> list[WorkoutExercise]:
    finished = sorted(
        (w for w in workouts if w.finished_at), key=lambda w: w.started_at, reverse=True
    )
    entries = []
    for workout in finished:
        entry = next((e for e in workout.exercises if e.exercise.id == exercise_id), None)
        if entry is not None:
            entries.append(entry)
    return entries[:limit]


def generate_progression_suggestion(
    workouts: Iterable[Workout], exercise_id: str
) -> ProgressionSuggestion | None:
    """Next-session target from the latest finished performance of an exercise."""
    performances = _recent_performances(workouts, exercise_id, 3)
    if not performances:
        return None

    latest = performances[0]
    is_bodyweight = latest.exercise.is_bodyweight
    completed = [s for s in latest.sets if s.completed]
    if not completed:
        return None

    if is_bodyweight:
        best = max(completed, key=lambda s: s.reps or 0)
    else:
        best = max(completed, key=lambda s: (s.weight or 0) * (s.reps or 0))
    if not best.reps:
        return None

    sets = len(completed)
    reps = best.reps

    if is_bodyweight:
        target = reps + (1 if reps < 5 else 2)
        return ProgressionSuggestion(
            exercise_id=exercise_id,
            type="reps",
            current_best=Performance(sets=sets, reps=reps),
            suggested=Performance(sets=sets, reps=target),
            reasoning=f"Try {target} reps this time!",
        )

    weight = best.weight or 0
    current = Performance(sets=sets, reps=reps, weight=weight)

    if reps >= 12:
        new_weight = weight + (2.5 if weight < 20 else 5)
        new_reps = max(8, reps - 2)
        reasoning = f"Increase the weight! {new_weight}kg for {new_reps} reps"
    elif reps < 6:
        new_weight = max(weight * 0.9, weight - 5)
        new_reps = reps + 2
        reasoning = f"Lower the weight for more reps: {new_weight}kg"
    else:
        new_weight = weight + (2.5 if weight < 50 else 5)
        new_reps = reps
        reasoning = f"Try {new_weight}kg for {new_reps} reps"

    return ProgressionSuggestion(
        exercise_id=exercise_id,
        type="weight",
        current_best=current,
        suggested=Performance(sets=sets, reps=new_reps, weight=new_weight),
        reasoning=reasoning,
    )


def detect_new_prs(completed: Workout, previous: list[Workout]) -> list[PersonalRecord]:
    """Records set by `completed` that beat everything in `previous`."""
    previous_records = {(r.exercise_id, r.type): r for r in find_personal_records(previous)}
    new_records = []
    for record in find_personal_records([*previous, completed]):
        if record.workout_id != completed.id:
            continue
        before = previous_records.get((record.exercise_id, record.type))
        if before is None or record.value > before.value:
            new_records.append(record)
    return new_records


def calculate_total_volume(workouts: Iterable[Workout]) -> float:
    """Sum of reps * weight over completed sets."""
    return sum(
        s.reps * s.weight
        for w in workouts
        for e in w.exercises
        for s in e.sets
        if s.completed and s.reps and s.weight
    )


def calculate_progress_stats(
    workouts: list[Workout], period_days: int = 30, now: int | None = None
) -> ProgressStats:
    now = now if now is not None else int(time.time() * 1000)
    cutoff = now - period_days * DAY_MS
    recent = [w for w in workouts if w.finished_at and w.started_at > cutoff]
    earlier = [w for w in workouts if w.finished_at and w.started_at <= cutoff]

    recent_volume = calculate_total_volume(recent)
    previous_volume = calculate_total_volume(earlier)
    volume_change = (
        (recent_volume - previous_volume) / previous_volume * 100 if previous_volume > 0 else 0
    )

    avg_duration = 0
    if recent:
        total_ms = sum(w.finished_at - w.started_at for w in recent)
        avg_duration = round_half_up(total_ms / len(recent) / 1000 / 60)

    return ProgressStats(
        recent_workouts=len(recent),
        volume_change=round_half_up(volume_change),
        avg_duration=avg_duration,
    )


def detect_simple_prs(completed: Workout, previous: list[Workout]) -> list[dict]:
    """Sets whose weight and reps are not both matched by any earlier set of the exercise."""
    new_prs = []
    for entry in completed.exercises:
        history = [
            s
            for w in previous
            for e in w.exercises
            if e.exercise.id == entry.exercise.id
            for s in e.sets
            if s.weight and s.reps
        ]
        for workout_set in entry.sets:
            if not workout_set.weight or not workout_set.reps:
                continue
            dominated = any(
                s.weight >= workout_set.weight and s.reps >= workout_set.reps for s in history
            )
            if not dominated:
                new_prs.append(
                    {
                        "exercise_id": entry.exercise.id,
                        "exercise_name": entry.exercise.name,
                        "weight": workout_set.weight,
                        "reps": workout_set.reps,
                    }
                )
    return new_prs
