import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from gainz.config import DEFAULT_REST_SECONDS
from gainz.schemas import (
    Exercise,
    ProgramCreate,
    ProgramSession,
    ProgramStats,
    ProgramUpdate,
    SessionCompletion,
    UserActiveProgram,
    Workout,
    WorkoutExercise,
    WorkoutProgram,
)
from gainz.services.exceptions import NotFoundError
from gainz.services.hybrid_storage import HybridStorage
from gainz.services.local_store import LocalStore
from gainz.services.programs import ProgramService
from gainz.stores.base import Store, synchronized
from gainz.utils import generate_uuid, now_ms, round_half_up

if TYPE_CHECKING:
    from gainz.stores.auth import AuthStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "program-storage"


class ProgramStore(Store):
    """Multi-week programs from the backend and the user's active run."""

    def __init__(
        self,
        programs: ProgramService,
        storage: HybridStorage,
        auth: "AuthStore",
        store: LocalStore,
    ):
        super().__init__()
        self.service = programs
        self.storage = storage
        self.auth = auth
        self.store = store
        self.available_programs: list[WorkoutProgram] = []
        self.favorite_programs: list[str] = []
        self.active_program: UserActiveProgram | None = None
        self.selected_program: WorkoutProgram | None = None
        self.is_loading = False
        self.error: str | None = None

    def _persist(self) -> None:
        self.store.set(
            STORAGE_KEY,
            {
                "favorite_programs": self.favorite_programs,
                "active_program": self.active_program.model_dump() if self.active_program else None,
                "selected_program": self.selected_program.model_dump() if self.selected_program else None,
            },
        )

    @synchronized
    def restore(self) -> None:
        saved = self.store.get(STORAGE_KEY)
        if not saved:
            return
        active = saved.get("active_program")
        selected = saved.get("selected_program")
        self.set_state(
            favorite_programs=saved.get("favorite_programs") or [],
            active_program=UserActiveProgram.model_validate(active) if active else None,
            selected_program=WorkoutProgram.model_validate(selected) if selected else None,
        )

    def _find(self, program_id: str) -> WorkoutProgram | None:
        return next((p for p in self.available_programs if p.id == program_id), None)

    # ---------------------------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------------------------

    @synchronized
    def load_programs(self) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            if not self.auth.is_authenticated:
                self.set_state(available_programs=[])
                return
            programs = self.service.get_accessible_programs()
            self.set_state(
                available_programs=programs,
                favorite_programs=[p.id for p in programs if p.is_favorite],
            )
            self._persist()
        except Exception:
            logger.exception("Error loading programs")
            self.set_state(error="Could not load programs", available_programs=[])
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def refresh_programs(self) -> None:
        self.load_programs()

    @synchronized
    def select_program(self, program_id: str) -> None:
        self.set_state(selected_program=self._find(program_id))

    @synchronized
    def create_personal_program(self, data: ProgramCreate) -> WorkoutProgram:
        self.set_state(is_loading=True, error=None)
        try:
            program = self.service.create_personal_program(data)
            self.set_state(available_programs=[program, *self.available_programs])
            return program
        except Exception:
            logger.exception("Error creating personal program")
            self.set_state(error="Could not create the personal program")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def update_personal_program(self, program_id: str, updates: ProgramUpdate) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self.service.update_personal_program(program_id, updates)
            self.load_programs()
        except Exception:
            logger.exception("Error updating personal program")
            self.set_state(error="Could not update the program")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def delete_personal_program(self, program_id: str) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self.service.delete_personal_program(program_id)
            self.set_state(
                available_programs=[p for p in self.available_programs if p.id != program_id],
                favorite_programs=[i for i in self.favorite_programs if i != program_id],
            )
            self._persist()
        except Exception:
            logger.exception("Error deleting personal program")
            self.set_state(error="Could not delete the program")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def duplicate_program(self, program_id: str, new_name: str | None = None) -> WorkoutProgram:
        self.set_state(is_loading=True, error=None)
        try:
            program = self.service.duplicate_program(program_id, new_name)
            self.set_state(available_programs=[program, *self.available_programs])
            return program
        except Exception:
            logger.exception("Error duplicating program")
            self.set_state(error="Could not duplicate the program")
            raise
        finally:
            self.set_state(is_loading=False)

    # ---------------------------------------------------------------------------
    # Favorites
    # ---------------------------------------------------------------------------

    def _mark_favorite(self, program_id: str, favorite: bool) -> list[WorkoutProgram]:
        return [
            p.model_copy(update={"is_favorite": favorite}) if p.id == program_id else p
            for p in self.available_programs
        ]

    @synchronized
    def add_to_favorites(self, program_id: str) -> None:
        self.set_state(error=None)
        try:
            self.service.add_to_favorites(program_id)
        except Exception:
            logger.exception("Error adding program to favorites")
            self.set_state(error="Could not add to favorites")
            return
        if program_id not in self.favorite_programs:
            self.set_state(
                favorite_programs=[*self.favorite_programs, program_id],
                available_programs=self._mark_favorite(program_id, True),
            )
            self._persist()

    @synchronized
    def remove_from_favorites(self, program_id: str) -> None:
        self.set_state(error=None)
        try:
            self.service.remove_from_favorites(program_id)
        except Exception:
            logger.exception("Error removing program from favorites")
            self.set_state(error="Could not remove from favorites")
            return
        self.set_state(
            favorite_programs=[i for i in self.favorite_programs if i != program_id],
            available_programs=self._mark_favorite(program_id, False),
        )
        self._persist()

    # ---------------------------------------------------------------------------
    # Active program
    # ---------------------------------------------------------------------------

    @synchronized
    def start_program(self, program_id: str, customizations: dict[str, Any] | None = None) -> None:
        """Start `program_id`, stopping whatever program is currently running."""
        self.set_state(is_loading=True, error=None)
        try:
            if self.service.get_active_program() is not None:
                self.service.stop_program()
            active = self.service.start_program(program_id, customizations or {})
            self.set_state(
                active_program=active,
                selected_program=self._find(program_id) or active.program,
            )
            self._persist()
        except Exception:
            logger.exception("Error starting program")
            self.set_state(error="Could not start the program")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def stop_program(self) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self.service.stop_program()
            self.set_state(active_program=None, selected_program=None)
            self._persist()
        except Exception:
            logger.exception("Error stopping program")
            self.set_state(error="Could not stop the program")
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def load_active_program(self) -> None:
        try:
            active = self.service.get_active_program()
            if active is None:
                self.set_state(active_program=None, selected_program=None)
            else:
                self.set_state(
                    active_program=active,
                    selected_program=self.service.get_program_by_id(active.program_id),
                )
            self._persist()
        except Exception:
            logger.exception("Error loading active program")

    def get_current_session(self) -> ProgramSession | None:
        if self.active_program is None or not self.selected_program or not self.selected_program.sessions:
            return None
        sessions = self.selected_program.sessions
        return sessions[self.active_program.current_session_index % len(sessions)]

    def get_next_session(self) -> ProgramSession | None:
        if self.active_program is None or not self.selected_program or not self.selected_program.sessions:
            return None
        sessions = self.selected_program.sessions
        return sessions[(self.active_program.current_session_index + 1) % len(sessions)]

    @synchronized
    def complete_session(self, data: SessionCompletion) -> Workout:
        """Save the logged session as a workout and advance the active program."""
        active = self.active_program
        if active is None:
            raise NotFoundError("No active program")
        session = self.get_current_session()
        if session is None:
            raise NotFoundError("No current session")

        now = now_ms()
        workout = Workout(
            id=generate_uuid(),
            user_id=active.user_id,
            name=session.name,
            date=data.date or now,
            started_at=data.started_at or now,
            finished_at=now,
            completed=True,
            is_template=True,
            template_id=active.program_id,
            template_session_id=session.id,
            exercises=[
                WorkoutExercise(
                    id=generate_uuid(),
                    exercise=Exercise(
                        id=log.exercise_id,
                        name=log.exercise_name or "Exercise",
                        is_bodyweight=log.is_bodyweight,
                        sets=len(log.sets),
                    ),
                    sets=[s.model_copy(update={"rest_seconds": s.rest_seconds or DEFAULT_REST_SECONDS}) for s in log.sets],
                    completed=True,
                    order_index=index,
                    notes=log.notes or "",
                )
                for index, log in enumerate(data.exercises)
            ],
        )

        try:
            self.storage.save_workout(workout)
            self.service.complete_session(active.id, session.id, workout.id, data.model_dump())
        except Exception:
            logger.exception("Error completing session")
            self.set_state(error="Could not complete the session")
            raise

        self.load_active_program()
        return workout

    @synchronized
    def skip_session(self) -> None:
        if self.active_program is None:
            return
        self.load_active_program()

    # ---------------------------------------------------------------------------
    # Filters and stats
    # ---------------------------------------------------------------------------

    def search_programs(self, query: str) -> list[WorkoutProgram]:
        try:
            return self.service.search_programs(query)
        except Exception:
            logger.exception("Error searching programs")
            return []

    def get_programs_by_category(self, category: str) -> list[WorkoutProgram]:
        return [p for p in self.available_programs if p.category == category]

    def get_programs_by_level(self, level: str) -> list[WorkoutProgram]:
        return [p for p in self.available_programs if p.level == level]

    def get_favorite_programs(self) -> list[WorkoutProgram]:
        return [p for p in self.available_programs if p.is_favorite]

    def _total_sessions(self) -> int:
        if self.selected_program is None:
            return 0
        return self.selected_program.duration_weeks * self.selected_program.frequency_per_week

    def get_program_progress(self) -> float:
        if self.active_program is None or self.selected_program is None:
            return 0
        total = self._total_sessions()
        if total == 0:
            return 0
        return min(len(self.active_program.completed_sessions) / total * 100, 100)

    def get_program_stats(self) -> ProgramStats:
        if self.active_program is None or self.selected_program is None:
            return ProgramStats()

        total = self._total_sessions()
        completed = len(self.active_program.completed_sessions)
        remaining = total - completed
        weeks_remaining = remaining / (self.selected_program.frequency_per_week or 1)
        return ProgramStats(
            total_weeks=self.selected_program.duration_weeks,
            current_week=self.active_program.current_week,
            total_sessions=total,
            completed_sessions=completed,
            remaining_sessions=remaining,
            progress_percent=round_half_up(self.get_program_progress()),
            estimated_completion=datetime.now() + timedelta(days=weeks_remaining * 7),
        )

    @synchronized
    def clear_error(self) -> None:
        self.set_state(error=None)
