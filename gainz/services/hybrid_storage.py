"""Local-first workout storage with best-effort mirroring to the backend.

Every save lands in the local database first. When online, the workout is
pushed to the backend (with a small fixed-delay retry); otherwise, or when the
push fails, its id goes onto a persistent FIFO queue that is drained when
connectivity returns.
"""

import logging
import threading
import time
import uuid
from typing import Any

from sqlalchemy import Engine
from sqlmodel import Session, select

from gainz.config import (
    SYNC_BATCH_SIZE,
    SYNC_MAX_FAILURES,
    SYNC_MAX_RETRIES,
    SYNC_RETRY_DELAY,
)
from gainz.models import LocalWorkout, SyncQueueEntry, SyncState
from gainz.remote.client import BackendClient
from gainz.schemas import Exercise, SyncSummary, Workout, WorkoutExercise, WorkoutSet
from gainz.utils import generate_uuid, is_valid_uuid, now_ms

logger = logging.getLogger(__name__)

CLOUD_WORKOUT_COLUMNS = "*, workout_exercises(*, exercises(*), workout_sets(*))"


def _set_id(workout_exercise_id: str, set_order: int) -> str:
    # Stable per position so re-syncing a workout overwrites its sets
    return str(uuid.uuid5(uuid.UUID(workout_exercise_id), str(set_order)))


def _exercise_from_row(row: dict[str, Any]) -> Exercise:
    return Exercise(
        id=row["id"],
        name=row.get("name") or "",
        muscle_groups=row.get("muscle_groups") or [],
        category=row.get("category") or "strength",
        is_bodyweight=bool(row.get("is_bodyweight")),
        instructions=row.get("instructions"),
        image_url=row.get("image_url"),
        rest_seconds=row.get("rest_seconds"),
        notes=row.get("notes"),
        progression_notes=row.get("progression_notes"),
        suggested_weight=row.get("suggested_weight"),
    )


def workout_from_row(row: dict[str, Any]) -> Workout:
    """Rebuild a Workout from a nested `workouts` select."""
    exercises = []
    for entry in row.get("workout_exercises") or []:
        sets = sorted(entry.get("workout_sets") or [], key=lambda s: s.get("set_order") or 0)
        exercises.append(
            WorkoutExercise(
                id=entry["id"],
                exercise=_exercise_from_row(entry["exercises"]),
                sets=[
                    WorkoutSet(
                        weight=s.get("weight"),
                        reps=s.get("reps"),
                        completed=bool(s.get("completed")),
                        duration_seconds=s.get("duration_seconds"),
                        distance_km=s.get("distance_km"),
                        rest_seconds=s.get("rest_seconds"),
                    )
                    for s in sets
                ],
                completed=bool(entry.get("completed")),
                order_index=entry.get("order_index") or 0,
                notes=entry.get("notes"),
            )
        )
    return Workout(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        date=row["date"],
        started_at=row["started_at"],
        finished_at=row.get("finished_at"),
        completed=bool(row.get("completed")),
        notes=row.get("notes"),
        is_template=bool(row.get("is_template")),
        template_id=row.get("template_id"),
        template_session_id=row.get("template_session_id"),
        exercises=exercises,
    )


class HybridStorage:
    def __init__(self, engine: Engine, backend: BackendClient):
        self.engine = engine
        self.backend = backend
        self.is_online = True
        self.retry_delay = SYNC_RETRY_DELAY
        self._drain_lock = threading.Lock()

    # ---------------------------------------------------------------------------
    # Connectivity
    # ---------------------------------------------------------------------------

    def set_online(self, online: bool) -> None:
        was_offline = not self.is_online
        self.is_online = online
        if was_offline and online:
            logger.info("Back online, draining sync queue")
            self.process_sync_queue()

    # ---------------------------------------------------------------------------
    # Local rows
    # ---------------------------------------------------------------------------

    def save_workout_local(self, workout: Workout) -> None:
        with Session(self.engine) as session:
            row = session.get(LocalWorkout, workout.id) or LocalWorkout(
                id=workout.id,
                user_id=workout.user_id,
                name=workout.name,
                date=workout.date,
                started_at=workout.started_at,
                payload="",
            )
            row.user_id = workout.user_id
            row.name = workout.name
            row.date = workout.date
            row.started_at = workout.started_at
            row.finished_at = workout.finished_at
            row.completed = workout.completed
            row.payload = workout.model_dump_json()
            session.add(row)
            session.commit()

    def get_local_workout(self, workout_id: str) -> Workout | None:
        with Session(self.engine) as session:
            row = session.get(LocalWorkout, workout_id)
            if row is None:
                return None
            return Workout.model_validate_json(row.payload)

    def get_local_workouts(self) -> list[Workout]:
        """All locally stored workouts, newest date first."""
        with Session(self.engine) as session:
            rows = session.exec(select(LocalWorkout).order_by(LocalWorkout.date.desc())).all()
            return [Workout.model_validate_json(row.payload) for row in rows]

    def _local_workout_ids(self) -> list[str]:
        with Session(self.engine) as session:
            return list(session.exec(select(LocalWorkout.id)).all())

    # ---------------------------------------------------------------------------
    # Sync state
    # ---------------------------------------------------------------------------

    def mark_synced(self, workout_id: str, synced: bool = True) -> None:
        with Session(self.engine) as session:
            state = session.get(SyncState, workout_id) or SyncState(
                workout_id=workout_id, last_sync_attempt=0
            )
            state.synced = synced
            state.last_sync_attempt = now_ms()
            state.retry_count = 0
            session.add(state)
            session.commit()

    def _clear_sync_state(self, session: Session, workout_id: str) -> None:
        state = session.get(SyncState, workout_id)
        if state is not None:
            session.delete(state)

    def get_sync_status(self) -> SyncSummary:
        summary = SyncSummary()
        with Session(self.engine) as session:
            for workout_id in session.exec(select(LocalWorkout.id)).all():
                state = session.get(SyncState, workout_id)
                if state is not None and state.synced:
                    summary.synced += 1
                else:
                    summary.pending += 1
        return summary

    # ---------------------------------------------------------------------------
    # Save / delete
    # ---------------------------------------------------------------------------

    def save_workout(self, workout: Workout) -> None:
        self.save_workout_local(workout)
        try:
            if self.is_online:
                self.sync_with_retry(workout)
            else:
                self.add_to_sync_queue(workout.id)
        except Exception:
            # The local copy is safe and the id is queued for a later drain
            logger.exception("Error syncing workout %s after local save", workout.id)

    def delete_workout(self, workout_id: str) -> None:
        with Session(self.engine) as session:
            row = session.get(LocalWorkout, workout_id)
            if row is not None:
                session.delete(row)
            session.commit()

        if self.is_online:
            auth = self.backend.get_session()
            if auth is not None:
                try:
                    self.backend.delete("workouts", {"id": workout_id, "user_id": auth.user_id})
                except Exception:
                    logger.exception("Error deleting workout %s from backend", workout_id)

        with Session(self.engine) as session:
            self._clear_sync_state(session, workout_id)
            entry = session.exec(
                select(SyncQueueEntry).where(SyncQueueEntry.workout_id == workout_id)
            ).first()
            if entry is not None:
                session.delete(entry)
            session.commit()

    # ---------------------------------------------------------------------------
    # Push to backend
    # ---------------------------------------------------------------------------

    def sync_workout_to_cloud(self, workout: Workout) -> None:
        auth = self.backend.get_session()
        if auth is None:
            self.mark_synced(workout.id, False)
            return

        try:
            if not is_valid_uuid(workout.id):
                raise ValueError("Workout ID must be a valid UUID")

            self.backend.upsert(
                "workouts",
                {
                    "id": workout.id,
                    "name": workout.name,
                    "date": workout.date,
                    "started_at": workout.started_at,
                    "finished_at": workout.finished_at,
                    "completed": workout.completed,
                    "user_id": auth.user_id,
                    "is_template": workout.is_template,
                    "template_id": workout.template_id,
                    "template_session_id": workout.template_session_id,
                    "updated_at": now_ms(),
                },
            )
            for workout_exercise in workout.exercises:
                self._sync_workout_exercise(workout.id, workout_exercise)
        except Exception:
            logger.exception("Error syncing workout %s", workout.id)
            self.mark_synced(workout.id, False)
            self.add_to_sync_queue(workout.id)
            raise

        self.mark_synced(workout.id, True)
        self._remove_from_queue(workout.id)

    def _sync_workout_exercise(self, workout_id: str, workout_exercise: WorkoutExercise) -> None:
        if not is_valid_uuid(workout_exercise.id):
            workout_exercise.id = generate_uuid()

        exercise = workout_exercise.exercise
        exercise_id = self.backend.rpc(
            "get_or_create_exercise",
            {
                "exercise_name": exercise.name.strip(),
                "exercise_category": exercise.category or "strength",
                "exercise_is_bodyweight": exercise.is_bodyweight or False,
                "exercise_muscle_groups": exercise.muscle_groups or [],
                "exercise_suggested_weight": exercise.suggested_weight,
                "exercise_rest_seconds": exercise.rest_seconds,
                "exercise_notes": exercise.notes,
                "exercise_progression_notes": exercise.progression_notes,
            },
        )
        logger.debug("Exercise %r resolved to %s", exercise.name, exercise_id)

        self.backend.upsert(
            "workout_exercises",
            {
                "id": workout_exercise.id,
                "workout_id": workout_id,
                "exercise_id": exercise_id,
                "completed": workout_exercise.completed,
                "order_index": workout_exercise.order_index,
                "notes": workout_exercise.notes,
                "updated_at": now_ms(),
            },
        )

        for i, workout_set in enumerate(workout_exercise.sets):
            self.backend.upsert(
                "workout_sets",
                {
                    "id": _set_id(workout_exercise.id, i),
                    "workout_exercise_id": workout_exercise.id,
                    "weight": workout_set.weight,
                    "reps": workout_set.reps,
                    "completed": workout_set.completed,
                    "duration_seconds": workout_set.duration_seconds,
                    "distance_km": workout_set.distance_km,
                    "rest_seconds": workout_set.rest_seconds,
                    "set_order": i,
                    "updated_at": now_ms(),
                },
            )

    def sync_with_retry(self, workout: Workout) -> None:
        """First attempt plus up to SYNC_MAX_RETRIES retries, fixed delay between."""
        for attempt in range(SYNC_MAX_RETRIES + 1):
            try:
                self.sync_workout_to_cloud(workout)
                return
            except Exception:
                if attempt == SYNC_MAX_RETRIES:
                    raise
                logger.warning("Retrying sync for workout %s, attempt %d", workout.id, attempt + 1)
                time.sleep(self.retry_delay)

    # ---------------------------------------------------------------------------
    # Sync queue
    # ---------------------------------------------------------------------------

    def add_to_sync_queue(self, workout_id: str) -> None:
        with Session(self.engine) as session:
            existing = session.exec(
                select(SyncQueueEntry).where(SyncQueueEntry.workout_id == workout_id)
            ).first()
            if existing is None:
                session.add(SyncQueueEntry(workout_id=workout_id))
                session.commit()

    def get_sync_queue(self) -> list[str]:
        with Session(self.engine) as session:
            return list(
                session.exec(select(SyncQueueEntry.workout_id).order_by(SyncQueueEntry.id)).all()
            )

    def _pop_queue_head(self) -> str | None:
        with Session(self.engine) as session:
            entry = session.exec(select(SyncQueueEntry).order_by(SyncQueueEntry.id)).first()
            return entry.workout_id if entry else None

    def _remove_from_queue(self, workout_id: str) -> None:
        with Session(self.engine) as session:
            entry = session.exec(
                select(SyncQueueEntry).where(SyncQueueEntry.workout_id == workout_id)
            ).first()
            if entry is not None:
                session.delete(entry)
                session.commit()

    def _rotate_to_tail(self, workout_id: str) -> None:
        self._remove_from_queue(workout_id)
        with Session(self.engine) as session:
            session.add(SyncQueueEntry(workout_id=workout_id))
            session.commit()

    def process_sync_queue(self) -> tuple[int, int]:
        """Drain the queue. Returns (synced, failed) for this run."""
        if not self._drain_lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping")
            return 0, 0

        success_count = 0
        failure_count = 0
        try:
            while self.is_online and success_count < SYNC_BATCH_SIZE:
                workout_id = self._pop_queue_head()
                if workout_id is None:
                    break

                workout = self.get_local_workout(workout_id)
                if workout is None:
                    self._remove_from_queue(workout_id)
                    continue

                try:
                    self.sync_with_retry(workout)
                except Exception:
                    logger.error("Error syncing queued workout %s", workout_id)
                    failure_count += 1
                    self._rotate_to_tail(workout_id)
                    if failure_count >= SYNC_MAX_FAILURES:
                        logger.warning("Too many sync failures, stopping batch")
                        break
                else:
                    success_count += 1
                    self._remove_from_queue(workout_id)
        finally:
            self._drain_lock.release()

        logger.info("Sync batch completed: %d synced, %d failed", success_count, failure_count)
        return success_count, failure_count

    def force_sync_all(self) -> tuple[int, int]:
        for workout_id in self._local_workout_ids():
            self.add_to_sync_queue(workout_id)
        return self.process_sync_queue()

    # ---------------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------------

    def get_workouts(self) -> list[Workout]:
        """Workout history from the backend; empty when offline or on failure."""
        self.migrate_old_workout_ids()
        self.migrate_exercise_ids()

        if not self.is_online:
            return []
        try:
            return self.get_cloud_workouts()
        except Exception:
            logger.exception("Error fetching cloud workouts")
            return []

    def get_cloud_workouts(self) -> list[Workout]:
        auth = self.backend.get_session()
        if auth is None:
            return []
        rows = self.backend.select(
            "workouts",
            columns=CLOUD_WORKOUT_COLUMNS,
            filters={"user_id": auth.user_id},
            order=[("date", False)],
        )
        return [workout_from_row(row) for row in rows]

    def merge_workouts(self, local: list[Workout], cloud: list[Workout]) -> list[Workout]:
        """Last write wins; adopted cloud copies are written back locally."""
        merged = {workout.id: workout for workout in local}
        for cloud_workout in cloud:
            local_workout = merged.get(cloud_workout.id)
            if local_workout is not None:
                cloud_updated = cloud_workout.finished_at or 0
                local_updated = local_workout.finished_at or local_workout.started_at
                if cloud_updated <= local_updated:
                    continue
            merged[cloud_workout.id] = cloud_workout
            self.save_workout_local(cloud_workout)
        return sorted(merged.values(), key=lambda w: w.date, reverse=True)

    # ---------------------------------------------------------------------------
    # Migrations
    # ---------------------------------------------------------------------------

    def migrate_old_workout_ids(self) -> int:
        """Re-key workouts stored under non-UUID ids. Returns how many moved."""
        migrated = 0
        with Session(self.engine) as session:
            rows = session.exec(select(LocalWorkout)).all()
            for row in rows:
                if is_valid_uuid(row.id):
                    continue
                workout = Workout.model_validate_json(row.payload)
                old_id = workout.id
                workout.id = generate_uuid()
                for entry in workout.exercises:
                    if not is_valid_uuid(entry.id):
                        entry.id = generate_uuid()

                session.delete(row)
                self._clear_sync_state(session, old_id)
                session.add(
                    LocalWorkout(
                        id=workout.id,
                        user_id=workout.user_id,
                        name=workout.name,
                        date=workout.date,
                        started_at=workout.started_at,
                        finished_at=workout.finished_at,
                        completed=workout.completed,
                        payload=workout.model_dump_json(),
                    )
                )
                migrated += 1
            session.commit()
        if migrated:
            logger.info("Migrated %d workouts to UUID ids", migrated)
        return migrated

    def migrate_exercise_ids(self) -> int:
        """Replace non-UUID exercise ids inside stored workouts and mark them for re-sync."""
        changed = 0
        with Session(self.engine) as session:
            for row in session.exec(select(LocalWorkout)).all():
                workout = Workout.model_validate_json(row.payload)
                has_changes = False
                for entry in workout.exercises:
                    if not is_valid_uuid(entry.exercise.id):
                        entry.exercise.id = generate_uuid()
                        has_changes = True
                    if not is_valid_uuid(entry.id):
                        entry.id = generate_uuid()
                        has_changes = True
                if has_changes:
                    row.payload = workout.model_dump_json()
                    session.add(row)
                    self._clear_sync_state(session, row.id)
                    changed += 1
            session.commit()
        return changed

    def reassign_user(self, old_user_id: str, new_user_id: str) -> int:
        """Move local workouts to another account; they will sync under it."""
        moved = 0
        with Session(self.engine) as session:
            rows = session.exec(select(LocalWorkout).where(LocalWorkout.user_id == old_user_id)).all()
            for row in rows:
                workout = Workout.model_validate_json(row.payload)
                workout.user_id = new_user_id
                row.user_id = new_user_id
                row.payload = workout.model_dump_json()
                session.add(row)
                self._clear_sync_state(session, row.id)
                moved += 1
            session.commit()
        logger.info("Reassigned %d local workouts from %s to %s", moved, old_user_id, new_user_id)
        return moved
