import logging
from datetime import datetime, timezone
from typing import Any

from gainz.config import DEFAULT_REST_SECONDS
from gainz.remote.client import NO_ROWS_CODE
from gainz.remote.exceptions import APIError
from gainz.schemas import (
    ProgramCreate,
    ProgramSession,
    ProgramSessionExercise,
    ProgramSessionInput,
    ProgramUpdate,
    UserActiveProgram,
    WorkoutProgram,
)
from gainz.services.base import BackendService, is_duplicate_error
from gainz.services.exceptions import ConflictError, NotFoundError
from gainz.utils import generate_uuid

logger = logging.getLogger(__name__)

PROGRAM_COLUMNS = "*, program_sessions(*, program_session_exercises(*, exercises(id, name)))"
ACTIVE_PROGRAM_COLUMNS = "*, workout_programs(*)"


def program_from_row(row: dict[str, Any]) -> WorkoutProgram:
    sessions = []
    for s in row.get("program_sessions") or []:
        entries = s.get("program_session_exercises") or []
        sessions.append(
            ProgramSession(
                id=s["id"],
                session_key=s["session_key"],
                name=s["name"],
                description=s.get("description"),
                estimated_duration=s.get("estimated_duration") or 60,
                rest_between_exercises=s.get("rest_between_exercises") or DEFAULT_REST_SECONDS,
                order_index=s.get("order_index") or 0,
                week_pattern=s.get("week_pattern") or [],
                exercise_count=len(entries),
                exercises=[
                    ProgramSessionExercise(
                        id=e["id"],
                        exercise_id=e["exercise_id"],
                        exercise_name=(e.get("exercises") or {}).get("name") or "Exercise not found",
                        order_index=e.get("order_index") or 0,
                        sets=e.get("sets") or 0,
                        reps=e.get("reps") or "",
                        rest_seconds=e.get("rest_seconds") or DEFAULT_REST_SECONDS,
                        notes=e.get("notes"),
                        progression_notes=e.get("progression_notes"),
                        is_bodyweight=bool(e.get("is_bodyweight")),
                        weight_percentage=e.get("weight_percentage"),
                    )
                    for e in entries
                ],
            )
        )
    sessions.sort(key=lambda s: s.order_index)

    fields = {k: v for k, v in row.items() if k != "program_sessions" and v is not None}
    program = WorkoutProgram.model_validate({**fields, "sessions": sessions})
    if program.session_count is None and sessions:
        program.session_count = len(sessions)
    return program


def active_program_from_row(row: dict[str, Any]) -> UserActiveProgram:
    program_row = row.get("workout_programs")
    fields = {k: v for k, v in row.items() if k != "workout_programs" and v is not None}
    return UserActiveProgram.model_validate(
        {**fields, "program": program_from_row(program_row) if program_row else None}
    )


class ProgramService(BackendService):
    """Multi-week programs: catalog, personal CRUD, favorites and the active run."""

    # ---------------------------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------------------------

    def get_accessible_programs(self) -> list[WorkoutProgram]:
        try:
            rows = self.backend.rpc("get_user_accessible_programs")
        except Exception:
            logger.exception("Error fetching accessible programs")
            return []
        return [program_from_row(row) for row in rows or []]

    def get_program_by_id(self, program_id: str) -> WorkoutProgram | None:
        try:
            row = self.backend.select(
                "workout_programs", columns=PROGRAM_COLUMNS, filters={"id": program_id}, single=True
            )
        except Exception:
            logger.exception("Error fetching program %s", program_id)
            return None
        return program_from_row(row) if row else None

    def search_programs(self, query: str) -> list[WorkoutProgram]:
        needle = query.lower()
        return [
            p
            for p in self.get_accessible_programs()
            if needle in p.name.lower()
            or needle in (p.description or "").lower()
            or any(needle in tag.lower() for tag in p.tags)
            or needle in p.category.lower()
        ]

    def get_programs_by_category(self, category: str) -> list[WorkoutProgram]:
        return [p for p in self.get_accessible_programs() if p.category == category]

    def get_programs_by_level(self, level: str) -> list[WorkoutProgram]:
        return [p for p in self.get_accessible_programs() if p.level == level]

    def get_favorite_programs(self) -> list[WorkoutProgram]:
        return [p for p in self.get_accessible_programs() if p.is_favorite]

    # ---------------------------------------------------------------------------
    # Personal programs
    # ---------------------------------------------------------------------------

    def _insert_sessions(self, program_id: str, sessions: list[ProgramSessionInput]) -> None:
        for session in sessions:
            session_id = generate_uuid()
            self.backend.insert(
                "program_sessions",
                {
                    "id": session_id,
                    "program_id": program_id,
                    "session_key": session.session_key,
                    "name": session.name,
                    "description": session.description,
                    "estimated_duration": session.estimated_duration,
                    "rest_between_exercises": session.rest_between_exercises or DEFAULT_REST_SECONDS,
                    "order_index": session.order_index,
                    "week_pattern": session.week_pattern,
                },
            )
            if session.exercises:
                self.backend.insert(
                    "program_session_exercises",
                    [
                        {
                            "id": generate_uuid(),
                            "session_id": session_id,
                            "exercise_id": e.exercise_id,
                            "order_index": e.order_index,
                            "sets": e.sets,
                            "reps": e.reps,
                            "rest_seconds": e.rest_seconds or DEFAULT_REST_SECONDS,
                            "notes": e.notes,
                            "progression_notes": e.progression_notes,
                            "is_bodyweight": e.is_bodyweight,
                            "weight_percentage": e.weight_percentage,
                        }
                        for e in session.exercises
                    ],
                )

    def create_personal_program(self, data: ProgramCreate) -> WorkoutProgram:
        user_id = self._user_id()
        program_id = generate_uuid()
        self.backend.insert(
            "workout_programs",
            {
                "id": program_id,
                **data.model_dump(exclude={"sessions"}),
                "is_global": False,
                "created_by": user_id,
                "visibility": "personal",
            },
        )
        self._insert_sessions(program_id, data.sessions)

        program = self.get_program_by_id(program_id)
        if program is None:
            raise NotFoundError("Failed to retrieve created program")
        return program

    def update_personal_program(self, program_id: str, updates: ProgramUpdate) -> None:
        """Patch program fields; when sessions are given they replace the old ones."""
        user_id = self._user_id()
        values = updates.model_dump(exclude_unset=True, exclude={"sessions"})
        if values:
            self.backend.update("workout_programs", values, {"id": program_id, "created_by": user_id})

        if updates.sessions is not None:
            # Session exercises cascade on the backend
            self.backend.delete("program_sessions", {"program_id": program_id})
            self._insert_sessions(program_id, updates.sessions)

    def delete_personal_program(self, program_id: str) -> None:
        self.backend.delete("workout_programs", {"id": program_id, "created_by": self._user_id()})

    def duplicate_program(self, program_id: str, new_name: str | None = None) -> WorkoutProgram:
        original = self.get_program_by_id(program_id)
        if original is None:
            raise NotFoundError("Program not found")

        copy = ProgramCreate(
            name=new_name or f"{original.name} (Copy)",
            description=original.description or "",
            category=original.category,
            level=original.level,
            duration_weeks=original.duration_weeks,
            frequency_per_week=original.frequency_per_week,
            equipment=list(original.equipment),
            tags=list(original.tags),
            estimated_results=original.estimated_results,
            popularity=0,
            icon=original.icon,
            sessions=[
                ProgramSessionInput(
                    session_key=s.session_key,
                    name=s.name,
                    description=s.description,
                    estimated_duration=s.estimated_duration,
                    rest_between_exercises=s.rest_between_exercises,
                    order_index=s.order_index,
                    week_pattern=list(s.week_pattern),
                    exercises=[
                        e.model_dump(exclude={"id", "exercise_name"}) for e in s.exercises
                    ],
                )
                for s in original.sessions
            ],
        )
        return self.create_personal_program(copy)

    # ---------------------------------------------------------------------------
    # Favorites
    # ---------------------------------------------------------------------------

    def add_to_favorites(self, program_id: str) -> None:
        try:
            self.backend.insert(
                "user_favorite_programs", {"user_id": self._user_id(), "program_id": program_id}
            )
        except APIError as e:
            if not is_duplicate_error(e):
                raise

    def remove_from_favorites(self, program_id: str) -> None:
        self.backend.delete(
            "user_favorite_programs", {"user_id": self._user_id(), "program_id": program_id}
        )

    # ---------------------------------------------------------------------------
    # Active program
    # ---------------------------------------------------------------------------

    def _find_active(self, user_id: str, columns: str) -> dict | None:
        try:
            return self.backend.select(
                "user_active_programs",
                columns=columns,
                filters={"user_id": user_id, "is_active": True},
                single=True,
            )
        except APIError as e:
            if e.code == NO_ROWS_CODE:
                return None
            raise

    def start_program(self, program_id: str, customizations: dict | None = None) -> UserActiveProgram:
        user_id = self._user_id()
        if self._find_active(user_id, "id") is not None:
            raise ConflictError("User already has an active program. Stop the current program first.")

        rows = self.backend.insert(
            "user_active_programs",
            {
                "user_id": user_id,
                "program_id": program_id,
                "current_week": 1,
                "current_session_index": 0,
                "completed_sessions": [],
                "customizations": customizations or {},
                "is_active": True,
            },
        )
        active = self._find_active(user_id, ACTIVE_PROGRAM_COLUMNS)
        return active_program_from_row(active or rows[0])

    def stop_program(self) -> None:
        self.backend.update(
            "user_active_programs",
            {"is_active": False, "completed_at": datetime.now(timezone.utc).isoformat()},
            {"user_id": self._user_id(), "is_active": True},
        )

    def get_active_program(self) -> UserActiveProgram | None:
        session = self.backend.get_session()
        if session is None:
            return None
        try:
            row = self._find_active(session.user_id, ACTIVE_PROGRAM_COLUMNS)
        except Exception:
            logger.exception("Error fetching active program")
            return None
        return active_program_from_row(row) if row else None

    def complete_session(
        self,
        user_program_id: str,
        session_id: str,
        workout_id: str,
        session_data: dict[str, Any],
    ) -> None:
        """Record the session in history and advance the active run by one."""
        self.backend.insert(
            "user_program_history",
            {
                "user_program_id": user_program_id,
                "session_id": session_id,
                "workout_id": workout_id,
                "duration_seconds": session_data.get("duration_seconds"),
                "notes": session_data.get("notes"),
                "session_data": session_data,
            },
        )

        try:
            current = self.backend.select(
                "user_active_programs",
                columns="completed_sessions, current_session_index",
                filters={"id": user_program_id},
                single=True,
            )
        except APIError as e:
            if e.code != NO_ROWS_CODE:
                raise
            return

        self.backend.update(
            "user_active_programs",
            {
                "completed_sessions": [*(current.get("completed_sessions") or []), session_id],
                "current_session_index": (current.get("current_session_index") or 0) + 1,
            },
            {"id": user_program_id},
        )
