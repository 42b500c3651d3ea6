from datetime import datetime
from typing import Any, Literal

from sqlmodel import Field, SQLModel

Level = Literal["beginner", "intermediate", "advanced"]


# ---------------------------------------------------------------------------
# Workouts
# ---------------------------------------------------------------------------


class Exercise(SQLModel):
    id: str
    name: str
    muscle_groups: list[str] = Field(default_factory=list)
    category: Literal["strength", "cardio"] = "strength"
    is_bodyweight: bool = False
    instructions: str | None = None
    image_url: str | None = None
    # Prescription hints carried over from templates and programs
    sets: int | None = None
    reps: int | str | None = None
    rest_seconds: int | None = None
    notes: str | None = None
    progression_notes: str | None = None
    suggested_weight: float | None = None


class ExerciseWithSource(Exercise):
    created_by: str | None = None
    is_global: bool = True
    visibility: Literal["global", "personal"] = "global"


class WorkoutSet(SQLModel):
    reps: int | None = None
    weight: float | None = None  # kg
    duration_seconds: int | None = None
    distance_km: float | None = None
    rest_seconds: int | None = None
    completed: bool = False


class WorkoutExercise(SQLModel):
    id: str
    exercise: Exercise
    sets: list[WorkoutSet] = Field(default_factory=list)
    completed: bool = False
    order_index: int = 0
    notes: str | None = ""


class Workout(SQLModel):
    id: str
    user_id: str
    name: str
    date: int  # epoch ms
    started_at: int
    finished_at: int | None = None
    exercises: list[WorkoutExercise] = Field(default_factory=list)
    completed: bool = False
    notes: str | None = None
    is_template: bool = False
    template_id: str | None = None
    template_session_id: str | None = None


class User(SQLModel):
    id: str
    email: str
    created_at: str
    is_anonymous: bool = False


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateExercise(SQLModel):
    """A prescription used to start a workout from a template session."""

    exercise_id: str
    sets: int
    reps: int | str = 0
    rest_seconds: int = 90
    name: str | None = None
    notes: str | None = None
    category: str | None = None
    is_bodyweight: bool = False
    progression_notes: str | None = None


class TemplateSession(SQLModel):
    id: str
    name: str
    exercises: list[TemplateExercise] = Field(default_factory=list)
    rest_between_exercises: int = 90
    estimated_duration: int = 60
    difficulty: Level = "beginner"


class BuiltinTemplate(SQLModel):
    """A bundled multi-session plan tracked locally by the template store."""

    id: str
    name: str
    description: str = ""
    category: str = "general_fitness"
    level: Level = "beginner"
    duration: int = 60  # minutes
    frequency: int = 3  # sessions per week
    equipment: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    sessions: list[TemplateSession] = Field(default_factory=list)
    popularity: int = 0
    estimated_results: str = ""


class TemplateExerciseDetail(SQLModel):
    id: str
    exercise_id: str
    exercise_name: str
    order_index: int = 0
    suggested_sets: int = 3
    suggested_reps: str | None = None
    suggested_weight_percentage: float | None = None
    rest_seconds: int = 90
    notes: str | None = None


class WorkoutTemplate(SQLModel):
    id: str
    name: str
    description: str = ""
    estimated_duration: int = 60
    difficulty: Level = "beginner"
    muscle_groups: list[str] = Field(default_factory=list)
    icon: str = ""
    is_global: bool = False
    created_by: str | None = None
    visibility: Literal["global", "personal"] = "personal"
    is_favorite: bool = False
    exercise_count: int | None = None
    exercises: list[TemplateExerciseDetail] = Field(default_factory=list)


class TemplateExerciseInput(SQLModel):
    exercise_id: str
    order_index: int = 0
    suggested_sets: int = 3
    suggested_reps: str | None = None
    suggested_weight_percentage: float | None = None
    rest_seconds: int | None = None
    notes: str | None = None


class TemplateCreate(SQLModel):
    name: str
    description: str = ""
    estimated_duration: int = 60
    difficulty: Level = "beginner"
    muscle_groups: list[str] = Field(default_factory=list)
    icon: str = ""
    exercises: list[TemplateExerciseInput] = Field(default_factory=list)


class TemplateUpdate(SQLModel):
    name: str | None = None
    description: str | None = None
    estimated_duration: int | None = None
    difficulty: Level | None = None
    muscle_groups: list[str] | None = None
    icon: str | None = None
    exercises: list[TemplateExerciseInput] | None = None


class ProgramExerciseLog(SQLModel):
    exercise_id: str
    sets: list[WorkoutSet] = Field(default_factory=list)


class ProgramProgress(SQLModel):
    """One completed session of a locally tracked template program."""

    session_id: str
    date: int  # session start, epoch ms
    duration: int = 0  # seconds
    exercises: list[ProgramExerciseLog] = Field(default_factory=list)


class UserProgram(SQLModel):
    template_id: str
    start_date: int
    current_week: int = 1
    current_session: int = 0
    completed_sessions: list[str] = Field(default_factory=list)
    customizations: dict[str, Any] = Field(default_factory=dict)
    progress_history: list[ProgramProgress] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------


class ProgramSessionExercise(SQLModel):
    id: str
    exercise_id: str
    exercise_name: str
    order_index: int = 0
    sets: int = 3
    reps: str = ""
    rest_seconds: int = 90
    notes: str | None = None
    progression_notes: str | None = None
    is_bodyweight: bool = False
    weight_percentage: float | None = None


class ProgramSession(SQLModel):
    id: str
    session_key: str
    name: str
    description: str | None = None
    estimated_duration: int = 60
    rest_between_exercises: int = 90
    order_index: int = 0
    week_pattern: list[str] = Field(default_factory=list)
    exercise_count: int = 0
    exercises: list[ProgramSessionExercise] = Field(default_factory=list)


class WorkoutProgram(SQLModel):
    id: str
    name: str
    description: str = ""
    category: str = "general_fitness"
    level: Level = "beginner"
    duration_weeks: int = 4
    frequency_per_week: int = 3
    equipment: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    estimated_results: str | None = None
    popularity: int = 0
    icon: str = ""
    is_global: bool = False
    created_by: str | None = None
    visibility: Literal["global", "personal"] = "personal"
    is_favorite: bool = False
    session_count: int | None = None
    sessions: list[ProgramSession] = Field(default_factory=list)


class ProgramSessionExerciseInput(SQLModel):
    exercise_id: str
    order_index: int = 0
    sets: int = 3
    reps: str = ""
    rest_seconds: int | None = None
    notes: str | None = None
    progression_notes: str | None = None
    is_bodyweight: bool = False
    weight_percentage: float | None = None


class ProgramSessionInput(SQLModel):
    session_key: str
    name: str
    description: str | None = None
    estimated_duration: int = 60
    rest_between_exercises: int | None = None
    order_index: int = 0
    week_pattern: list[str] = Field(default_factory=list)
    exercises: list[ProgramSessionExerciseInput] = Field(default_factory=list)


class ProgramCreate(SQLModel):
    name: str
    description: str = ""
    category: str = "general_fitness"
    level: Level = "beginner"
    duration_weeks: int = 4
    frequency_per_week: int = 3
    equipment: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    estimated_results: str | None = None
    popularity: int = 0
    icon: str = ""
    sessions: list[ProgramSessionInput] = Field(default_factory=list)


class ProgramUpdate(SQLModel):
    name: str | None = None
    description: str | None = None
    category: str | None = None
    level: Level | None = None
    duration_weeks: int | None = None
    frequency_per_week: int | None = None
    equipment: list[str] | None = None
    tags: list[str] | None = None
    estimated_results: str | None = None
    icon: str | None = None
    sessions: list[ProgramSessionInput] | None = None


class UserActiveProgram(SQLModel):
    id: str
    user_id: str
    program_id: str
    started_at: str | None = None
    current_week: int = 1
    current_session_index: int = 0
    completed_sessions: list[str] = Field(default_factory=list)
    customizations: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    completed_at: str | None = None
    program: WorkoutProgram | None = None


class ProgramStats(SQLModel):
    total_weeks: int = 0
    current_week: int = 0
    total_sessions: int = 0
    completed_sessions: int = 0
    remaining_sessions: int = 0
    progress_percent: int = 0
    estimated_completion: datetime | None = None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


RecordType = Literal["weight", "reps", "volume", "distance", "duration", "speed", "1rm"]


class PersonalRecord(SQLModel):
    exercise_id: str
    exercise_name: str
    type: RecordType
    value: float
    reps: int | None = None
    weight: float | None = None
    duration_seconds: int | None = None
    distance_km: float | None = None
    date: int
    workout_id: str


class Performance(SQLModel):
    sets: int
    reps: int
    weight: float | None = None


class ProgressionSuggestion(SQLModel):
    exercise_id: str
    type: Literal["weight", "reps", "sets"]
    current_best: Performance
    suggested: Performance
    reasoning: str


class ProgressStats(SQLModel):
    recent_workouts: int = 0
    volume_change: int = 0  # percent
    avg_duration: int = 0  # minutes


# ---------------------------------------------------------------------------
# Coach
# ---------------------------------------------------------------------------


class Preferences(SQLModel):
    workout_duration: int = 60  # minutes
    difficulty: Literal["easy", "moderate", "hard"] = "moderate"
    focus_areas: list[str] = Field(default_factory=list)


class UserProfile(SQLModel):
    fitness_level: Level = "beginner"
    goals: list[str] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    limitations: list[str] = Field(default_factory=list)
    created_at: int | None = None
    updated_at: int | None = None


class CoachRecommendation(SQLModel):
    id: str
    type: Literal["weight_increase", "rep_increase", "rest_adjustment", "exercise_swap", "deload"]
    title: str
    description: str
    confidence: float
    exercise_id: str | None = None
    suggested_value: float | None = None
    reasoning: str
    created_at: int
    dismissed: bool = False


class PersonalizedWorkout(SQLModel):
    exercises: list[Exercise]
    suggested_sets: list[int]
    suggested_reps: list[int]
    suggested_weights: list[float]
    reasoning: str


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class SyncSummary(SQLModel):
    pending: int = 0
    synced: int = 0


# ---------------------------------------------------------------------------
# Exercise catalog inputs
# ---------------------------------------------------------------------------


class ExerciseCreate(SQLModel):
    name: str
    muscle_groups: list[str] = Field(default_factory=list)
    category: Literal["strength", "cardio"] = "strength"
    is_bodyweight: bool = False
    instructions: str | None = None
    image_url: str | None = None
    rest_seconds: int | None = None
    notes: str | None = None
    progression_notes: str | None = None
    suggested_weight: float | None = None


class ExerciseUpdate(SQLModel):
    name: str | None = None
    muscle_groups: list[str] | None = None
    category: Literal["strength", "cardio"] | None = None
    is_bodyweight: bool | None = None
    instructions: str | None = None
    image_url: str | None = None
    rest_seconds: int | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Program sessions
# ---------------------------------------------------------------------------


class SessionExerciseLog(SQLModel):
    exercise_id: str
    exercise_name: str | None = None
    is_bodyweight: bool = False
    notes: str | None = None
    sets: list[WorkoutSet] = Field(default_factory=list)


class SessionCompletion(SQLModel):
    """What the user logged for one session of an active backend program."""

    date: int | None = None
    started_at: int | None = None
    duration_seconds: int | None = None
    notes: str | None = None
    exercises: list[SessionExerciseLog] = Field(default_factory=list)
