"""Wiring of the backend client, services and stores shared by the API."""

import logging
import threading

from fastapi import Request
from sqlalchemy import Engine

from gainz.config import SUPABASE_ANON_KEY, SUPABASE_URL
from gainz.remote.client import BackendClient
from gainz.services.auth import AuthService
from gainz.services.exercises import ExerciseService
from gainz.services.hybrid_storage import HybridStorage
from gainz.services.local_store import LocalStore
from gainz.services.programs import ProgramService
from gainz.services.storage import StorageService
from gainz.services.templates import TemplateService
from gainz.stores.auth import AuthStore
from gainz.stores.coach import CoachStore
from gainz.stores.exercise import ExerciseStore
from gainz.stores.program import ProgramStore
from gainz.stores.progress import ProgressStore
from gainz.stores.template import TemplateStore
from gainz.stores.toast import ToastStore
from gainz.stores.workout import WorkoutStore

logger = logging.getLogger(__name__)


class AppState:
    def __init__(self, engine: Engine, backend: BackendClient | None = None):
        self.local_store = LocalStore(engine)
        self.backend = backend or BackendClient(SUPABASE_URL, SUPABASE_ANON_KEY, self.local_store)

        self.storage = HybridStorage(engine, self.backend)
        self.device_storage = StorageService(self.local_store)
        self.auth_service = AuthService(self.backend, self.local_store, self.storage)
        self.exercise_service = ExerciseService(self.backend)
        self.program_service = ProgramService(self.backend)
        self.template_service = TemplateService(self.backend)

        self.auth = AuthStore(self.auth_service)
        self.exercises = ExerciseStore(self.exercise_service, self.auth)
        self.templates = TemplateStore(self.local_store, self.device_storage)
        self.workouts = WorkoutStore(self.storage, self.auth, self.templates)
        self.programs = ProgramStore(self.program_service, self.storage, self.auth, self.local_store)
        self.progress = ProgressStore()
        self.coach = CoachStore(self.local_store, self.workouts)
        self.toast = ToastStore()

        # Stores call into each other, so they serialize on one lock
        self.lock = threading.RLock()
        for store in (
            self.auth,
            self.exercises,
            self.templates,
            self.workouts,
            self.programs,
            self.progress,
            self.coach,
            self.toast,
        ):
            store.lock = self.lock

    def load(self) -> None:
        """Restore persisted store state and resume the backend session."""
        self.templates.load_templates()
        self.programs.restore()
        self.coach.load()
        self.auth.initialize_auth()
        logger.info("App state loaded (authenticated=%s)", self.auth.is_authenticated)


def get_app_state(request: Request) -> AppState:
    return request.app.state.gainz
