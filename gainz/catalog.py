"""Built-in exercise catalog and bundled multi-session templates.

Used when the backend catalog is unavailable and by the local template tracker.
"""

from gainz.schemas import BuiltinTemplate, Exercise

# ---------------------------------------------------------------------------
# Exercise catalogue
# ---------------------------------------------------------------------------

# (id, name, muscle groups, category, is_bodyweight)
_EXERCISES: list[tuple[str, str, list[str], str, bool]] = [
    ("bench-press", "Bench Press", ["Chest", "Triceps", "Shoulders"], "strength", False),
    ("incline-press", "Incline Press", ["Chest", "Shoulders"], "strength", False),
    ("push-ups", "Push-ups", ["Chest", "Triceps"], "strength", True),
    ("pull-ups", "Pull-ups", ["Back", "Biceps"], "strength", True),
    ("barbell-row", "Barbell Row", ["Back", "Biceps"], "strength", False),
    ("lat-pulldown", "Lat Pulldown", ["Back", "Biceps"], "strength", False),
    ("squat", "Squat", ["Quads", "Glutes"], "strength", False),
    ("deadlift", "Deadlift", ["Hamstrings", "Glutes", "Back"], "strength", False),
    ("leg-press", "Leg Press", ["Quads", "Glutes"], "strength", False),
    ("shoulder-press", "Shoulder Press", ["Shoulders", "Triceps"], "strength", False),
    ("lateral-raise", "Lateral Raise", ["Shoulders"], "strength", False),
    ("bicep-curl", "Bicep Curl", ["Biceps"], "strength", False),
    ("tricep-dips", "Tricep Dips", ["Triceps", "Chest"], "strength", True),
    ("treadmill", "Treadmill", ["Cardio"], "cardio", True),
    ("cycling", "Cycling", ["Cardio", "Legs"], "cardio", True),
]

DEFAULT_EXERCISES: list[Exercise] = [
    Exercise(
        id=exercise_id,
        name=name,
        muscle_groups=groups,
        category=category,
        is_bodyweight=is_bodyweight,
    )
    for exercise_id, name, groups, category, is_bodyweight in _EXERCISES
]

DEFAULT_EXERCISES[0].instructions = "Lying on the bench, lower the bar to your chest then press."


# ---------------------------------------------------------------------------
# Bundled templates
# ---------------------------------------------------------------------------

BUILTIN_TEMPLATES: list[BuiltinTemplate] = [
    BuiltinTemplate.model_validate(t)
    for t in [
        {
            "id": "ppl_beginner",
            "name": "Push Pull Legs - Beginner",
            "description": "Classic six-day split, a solid start to serious training",
            "category": "muscle_building",
            "level": "beginner",
            "duration": 75,
            "frequency": 6,
            "equipment": ["barbell", "dumbbells", "machines"],
            "tags": ["muscle building", "beginner friendly", "balanced", "popular"],
            "estimated_results": "Noticeable size and strength gains in 8-12 weeks",
            "popularity": 95,
            "sessions": [
                {
                    "id": "push",
                    "name": "Push - Chest, Shoulders, Triceps",
                    "estimated_duration": 75,
                    "rest_between_exercises": 90,
                    "exercises": [
                        {
                            "exercise_id": "bench_press",
                            "sets": 3,
                            "reps": "8-10",
                            "rest_seconds": 120,
                            "progression_notes": "Add 2.5kg once 3x10 is clean",
                        },
                        {
                            "exercise_id": "incline_dumbbell_press",
                            "sets": 3,
                            "reps": "8-12",
                            "rest_seconds": 90,
                            "notes": "Focus on the upper chest",
                        },
                        {
                            "exercise_id": "overhead_press",
                            "sets": 3,
                            "reps": "6-8",
                            "rest_seconds": 120,
                            "progression_notes": "Slower progression, +1.25kg per week",
                        },
                        {
                            "exercise_id": "lateral_raises",
                            "sets": 3,
                            "reps": "12-15",
                            "rest_seconds": 60,
                            "notes": "Keep the elbows slightly bent",
                        },
                        {
                            "exercise_id": "tricep_dips",
                            "sets": 3,
                            "reps": "10-15",
                            "rest_seconds": 75,
                            "notes": "Use assistance if needed",
                        },
                        {
                            "exercise_id": "overhead_tricep_extension",
                            "sets": 3,
                            "reps": "10-12",
                            "rest_seconds": 60,
                        },
                    ],
                },
                {
                    "id": "pull",
                    "name": "Pull - Back, Biceps",
                    "estimated_duration": 70,
                    "rest_between_exercises": 90,
                    "exercises": [
                        {
                            "exercise_id": "deadlift",
                            "sets": 3,
                            "reps": "5-6",
                            "rest_seconds": 180,
                            "progression_notes": "+2.5kg per week",
                            "notes": "Warm up with an empty bar",
                        },
                        {
                            "exercise_id": "pull_ups",
                            "sets": 3,
                            "reps": "6-10",
                            "rest_seconds": 120,
                            "notes": "Use assistance or negatives if needed",
                        },
                        {
                            "exercise_id": "barbell_rows",
                            "sets": 3,
                            "reps": "8-10",
                            "rest_seconds": 90,
                            "notes": "Flat back, pull towards the lower sternum",
                        },
                        {"exercise_id": "lat_pulldown", "sets": 3, "reps": "10-12", "rest_seconds": 75},
                        {
                            "exercise_id": "barbell_curls",
                            "sets": 3,
                            "reps": "10-12",
                            "rest_seconds": 60,
                            "progression_notes": "Don't swing the body",
                        },
                        {"exercise_id": "hammer_curls", "sets": 3, "reps": "12-15", "rest_seconds": 60},
                    ],
                },
                {
                    "id": "legs",
                    "name": "Legs - Quads, Hamstrings, Glutes",
                    "estimated_duration": 80,
                    "rest_between_exercises": 120,
                    "exercises": [
                        {
                            "exercise_id": "squat",
                            "sets": 3,
                            "reps": "8-10",
                            "rest_seconds": 180,
                            "progression_notes": "+2.5kg per week",
                            "notes": "Go down until the thighs are parallel",
                        },
                        {
                            "exercise_id": "romanian_deadlift",
                            "sets": 3,
                            "reps": "8-10",
                            "rest_seconds": 120,
                            "notes": "Targets hamstrings and glutes",
                        },
                        {
                            "exercise_id": "leg_press",
                            "sets": 3,
                            "reps": "12-15",
                            "rest_seconds": 90,
                        },
                        {"exercise_id": "leg_curls", "sets": 3, "reps": "12-15", "rest_seconds": 75},
                        {
                            "exercise_id": "calf_raises",
                            "sets": 4,
                            "reps": "15-20",
                            "rest_seconds": 45,
                            "notes": "Pause one second at the top",
                        },
                    ],
                },
            ],
        },
        {
            "id": "stronglifts_5x5",
            "name": "StrongLifts 5x5",
            "description": "Strength program built on five compound lifts",
            "category": "strength",
            "level": "beginner",
            "duration": 45,
            "frequency": 3,
            "equipment": ["barbell"],
            "tags": ["strength", "simple", "proven", "powerlifting"],
            "estimated_results": "Double your strength in 12 weeks",
            "popularity": 92,
            "sessions": [
                {
                    "id": "workout_a",
                    "name": "Workout A - SQ/BP/ROW",
                    "estimated_duration": 45,
                    "rest_between_exercises": 180,
                    "exercises": [
                        {"exercise_id": "squat", "sets": 5, "reps": "5", "rest_seconds": 180},
                        {"exercise_id": "bench_press", "sets": 5, "reps": "5", "rest_seconds": 180},
                        {"exercise_id": "barbell_row", "sets": 5, "reps": "5", "rest_seconds": 180},
                    ],
                },
                {
                    "id": "workout_b",
                    "name": "Workout B - SQ/OHP/DL",
                    "estimated_duration": 45,
                    "rest_between_exercises": 180,
                    "exercises": [
                        {"exercise_id": "squat", "sets": 5, "reps": "5", "rest_seconds": 180},
                        {"exercise_id": "overhead_press", "sets": 5, "reps": "5", "rest_seconds": 180},
                        {
                            "exercise_id": "deadlift",
                            "sets": 1,
                            "reps": "5",
                            "rest_seconds": 180,
                            "notes": "A single, very hard set",
                        },
                    ],
                },
            ],
        },
        {
            "id": "full_body_home",
            "name": "Full Body at Home",
            "description": "No-equipment full body routine",
            "category": "general_fitness",
            "level": "beginner",
            "duration": 35,
            "frequency": 3,
            "equipment": ["bodyweight"],
            "tags": ["home workout", "no equipment", "time efficient", "bodyweight"],
            "estimated_results": "Better tone and endurance in 6-8 weeks",
            "popularity": 88,
            "sessions": [
                {
                    "id": "full_body",
                    "name": "Full Body",
                    "estimated_duration": 35,
                    "rest_between_exercises": 45,
                    "exercises": [
                        {
                            "exercise_id": "push_ups",
                            "is_bodyweight": True,
                            "sets": 3,
                            "reps": "8-15",
                            "rest_seconds": 60,
                        },
                        {"exercise_id": "bodyweight_squats", "sets": 3, "reps": "15-25", "rest_seconds": 45},
                        {"exercise_id": "pike_push_ups", "sets": 3, "reps": "6-12", "rest_seconds": 60},
                        {"exercise_id": "lunges", "sets": 3, "reps": "10-15", "rest_seconds": 45},
                        {"exercise_id": "plank", "sets": 3, "reps": "30-60s", "rest_seconds": 60},
                        {"exercise_id": "burpees", "sets": 3, "reps": "5-10", "rest_seconds": 75},
                    ],
                },
            ],
        },
    ]
]


def get_builtin_template(template_id: str) -> BuiltinTemplate | None:
    return next((t for t in BUILTIN_TEMPLATES if t.id == template_id), None)
