import logging
from datetime import datetime, timedelta
from typing import Any

from gainz.catalog import BUILTIN_TEMPLATES
from gainz.config import DEFAULT_REST_SECONDS
from gainz.schemas import (
    BuiltinTemplate,
    Exercise,
    ProgramProgress,
    ProgramStats,
    TemplateSession,
    UserProgram,
    Workout,
    WorkoutExercise,
)
from gainz.services.local_store import LocalStore
from gainz.services.storage import StorageService
from gainz.stores.base import Store, synchronized
from gainz.utils import generate_uuid, humanize_exercise_id, now_ms, round_half_up

logger = logging.getLogger(__name__)

STORAGE_KEY = "template-storage"

# Weeks per program category
PROGRAM_DURATIONS = {"strength": 12, "muscle_building": 16, "general_fitness": 8}
DEFAULT_PROGRAM_DURATION = 12


class TemplateStore(Store):
    """Follows a bundled template as a program entirely on the device."""

    def __init__(self, store: LocalStore, storage: StorageService):
        super().__init__()
        self.store = store
        self.storage = storage
        self.available_templates: list[BuiltinTemplate] = []
        self.favorite_templates: list[str] = []
        self.current_program: UserProgram | None = None
        self.selected_template: BuiltinTemplate | None = None

    def _persist(self) -> None:
        try:
            self.store.set(
                STORAGE_KEY,
                {
                    "favorite_templates": self.favorite_templates,
                    "current_program": self.current_program.model_dump() if self.current_program else None,
                    "selected_template": self.selected_template.model_dump() if self.selected_template else None,
                },
            )
        except Exception:
            logger.exception("Error saving template program state")

    @synchronized
    def load_templates(self) -> None:
        try:
            saved = self.store.get(STORAGE_KEY)
            if saved:
                program = saved.get("current_program")
                template = saved.get("selected_template")
                self.set_state(
                    current_program=UserProgram.model_validate(program) if program else None,
                    selected_template=BuiltinTemplate.model_validate(template) if template else None,
                    favorite_templates=saved.get("favorite_templates") or [],
                )
        except Exception:
            logger.exception("Error loading saved template program")
        self.set_state(available_templates=list(BUILTIN_TEMPLATES))

    def _find(self, template_id: str) -> BuiltinTemplate | None:
        return next((t for t in self.available_templates if t.id == template_id), None)

    @synchronized
    def select_template(self, template_id: str) -> None:
        self.set_state(selected_template=self._find(template_id))

    @synchronized
    def start_program(self, template_id: str, customizations: dict[str, Any] | None = None) -> None:
        template = self._find(template_id)
        if template is None:
            return
        program = UserProgram(
            template_id=template_id,
            start_date=now_ms(),
            customizations=customizations or {},
        )
        self.set_state(current_program=program, selected_template=template)
        self._persist()

    @synchronized
    def stop_program(self) -> None:
        self.set_state(current_program=None, selected_template=None)
        self._persist()

    # ---------------------------------------------------------------------------
    # Favorites
    # ---------------------------------------------------------------------------

    @synchronized
    def add_to_favorites(self, template_id: str) -> None:
        if template_id not in self.favorite_templates:
            self.set_state(favorite_templates=[*self.favorite_templates, template_id])
            self._persist()

    @synchronized
    def remove_from_favorites(self, template_id: str) -> None:
        self.set_state(favorite_templates=[t for t in self.favorite_templates if t != template_id])
        self._persist()

    # ---------------------------------------------------------------------------
    # Progression
    # ---------------------------------------------------------------------------

    @synchronized
    def complete_session(self, session_data: ProgramProgress) -> Workout | None:
        """Log the session as a workout and advance the program by one session."""
        program = self.current_program
        template = self.selected_template
        if program is None or template is None or not template.sessions:
            return None

        session_id = f"{program.template_id}_{program.current_session}"
        template_session = template.sessions[program.current_session % len(template.sessions)]
        finished_at = now_ms()

        workout = Workout(
            id=generate_uuid(),
            user_id="temp-user",
            name=template_session.name,
            date=session_data.date,
            started_at=session_data.date,
            finished_at=finished_at,
            completed=True,
            is_template=True,
            template_id=program.template_id,
            template_session_id=session_id,
            exercises=[
                WorkoutExercise(
                    id=generate_uuid(),
                    exercise=Exercise(
                        id=log.exercise_id,
                        name=humanize_exercise_id(log.exercise_id),
                        sets=len(log.sets),
                    ),
                    sets=[s.model_copy(update={"rest_seconds": DEFAULT_REST_SECONDS}) for s in log.sets],
                    completed=True,
                )
                for log in session_data.exercises
            ],
        )
        self.storage.save_workout(workout)

        recorded = session_data.model_copy(
            update={"duration": (finished_at - session_data.date) // 1000}
        )
        updated = program.model_copy(
            update={
                "completed_sessions": [*program.completed_sessions, session_id],
                "progress_history": [*program.progress_history, recorded],
                "current_session": program.current_session + 1,
            }
        )
        self.set_state(current_program=updated)
        self._persist()
        return workout

    @synchronized
    def skip_session(self) -> None:
        program = self.current_program
        template = self.selected_template
        if program is None or template is None:
            return

        current_session = program.current_session + 1
        current_week = program.current_week
        if current_session >= len(template.sessions):
            current_week += 1
            current_session = 0
        self.set_state(
            current_program=program.model_copy(
                update={"current_session": current_session, "current_week": current_week}
            )
        )
        self._persist()

    def get_current_session(self) -> TemplateSession | None:
        if self.current_program is None or not self.selected_template or not self.selected_template.sessions:
            return None
        sessions = self.selected_template.sessions
        return sessions[self.current_program.current_session % len(sessions)]

    def get_next_session(self) -> TemplateSession | None:
        if self.current_program is None or not self.selected_template or not self.selected_template.sessions:
            return None
        sessions = self.selected_template.sessions
        return sessions[(self.current_program.current_session + 1) % len(sessions)]

    def get_program_duration(self) -> int:
        """Program length in weeks, by category."""
        if self.selected_template is None:
            return 0
        return PROGRAM_DURATIONS.get(self.selected_template.category, DEFAULT_PROGRAM_DURATION)

    def get_total_sessions(self) -> int:
        if self.selected_template is None:
            return 0
        return self.get_program_duration() * len(self.selected_template.sessions)

    def get_program_progress(self) -> float:
        """Percent complete: the lower of session-based and week-based progress, capped at 100."""
        if self.current_program is None or self.selected_template is None:
            return 0
        total_sessions = self.get_total_sessions()
        if total_sessions == 0:
            return 0
        session_progress = len(self.current_program.completed_sessions) / total_sessions * 100
        week_progress = self.current_program.current_week / self.get_program_duration() * 100
        return min(session_progress, week_progress, 100)

    def get_program_stats(self) -> ProgramStats:
        if self.current_program is None or self.selected_template is None:
            return ProgramStats()

        total_sessions = self.get_total_sessions()
        completed = len(self.current_program.completed_sessions)
        remaining = total_sessions - completed
        weeks_remaining = remaining / self.selected_template.frequency
        return ProgramStats(
            total_weeks=self.get_program_duration(),
            current_week=self.current_program.current_week,
            total_sessions=total_sessions,
            completed_sessions=completed,
            remaining_sessions=remaining,
            progress_percent=round_half_up(self.get_program_progress()),
            estimated_completion=datetime.now() + timedelta(days=weeks_remaining * 7),
        )

    # ---------------------------------------------------------------------------
    # Customization
    # ---------------------------------------------------------------------------

    @synchronized
    def customize_template(self, modifications: dict[str, Any]) -> None:
        if self.selected_template is None:
            return
        customized = BuiltinTemplate.model_validate({**self.selected_template.model_dump(), **modifications})
        self.set_state(selected_template=customized)
        self._persist()

    @synchronized
    def update_session_weights(self, session_id: str, weights: dict[str, float]) -> None:
        if self.current_program is None:
            return
        customizations = dict(self.current_program.customizations)
        customizations["session_weights"] = {
            **customizations.get("session_weights", {}),
            session_id: weights,
        }
        self.set_state(
            current_program=self.current_program.model_copy(update={"customizations": customizations})
        )
        self._persist()
