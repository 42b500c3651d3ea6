import logging
from datetime import datetime, timezone

from gainz.remote.client import BackendClient
from gainz.remote.exceptions import AuthenticationError, BackendError
from gainz.schemas import User
from gainz.services.hybrid_storage import HybridStorage
from gainz.services.local_store import LocalStore
from gainz.utils import generate_uuid, now_ms

logger = logging.getLogger(__name__)

ANONYMOUS_USER_KEY = "anonymous_user"


def _user_from_backend(data: dict) -> User:
    return User(
        id=data["id"],
        email=data.get("email") or "",
        created_at=data.get("created_at") or "",
        is_anonymous=False,
    )


class AuthService:
    """Backend accounts plus a device-local anonymous identity."""

    def __init__(self, backend: BackendClient, store: LocalStore, storage: HybridStorage):
        self.backend = backend
        self.store = store
        self.storage = storage

    def sign_in_anonymously(self) -> User:
        existing = self.store.get(ANONYMOUS_USER_KEY)
        if existing:
            return User.model_validate(existing)

        user = User(
            id=generate_uuid(),
            email=f"anonymous_{now_ms()}@gainz.local",
            created_at=datetime.now(timezone.utc).isoformat(),
            is_anonymous=True,
        )
        self.store.set(ANONYMOUS_USER_KEY, user.model_dump())
        logger.info("Created anonymous user %s", user.id)
        return user

    def _register(self, email: str, password: str) -> User:
        session = self.backend.sign_up(email, password)
        if session is None:
            raise AuthenticationError("Confirm your email address to finish signing up")
        return _user_from_backend(session.user)

    def sign_up(self, email: str, password: str) -> User:
        user = self._register(email, password)
        self.store.remove(ANONYMOUS_USER_KEY)
        return user

    def sign_in(self, email: str, password: str) -> User:
        session = self.backend.sign_in_with_password(email, password)
        self.store.remove(ANONYMOUS_USER_KEY)
        return _user_from_backend(session.user)

    def get_current_user(self) -> User | None:
        try:
            session = self.backend.get_session()
            if session is not None:
                self.store.remove(ANONYMOUS_USER_KEY)
                return _user_from_backend(session.user)

            anonymous = self.store.get(ANONYMOUS_USER_KEY)
            if anonymous:
                return User.model_validate(anonymous)
        except Exception:
            logger.exception("Error getting current user")
        return None

    def sign_out(self) -> None:
        self.backend.sign_out()
        self.store.remove(ANONYMOUS_USER_KEY)

    def clear_all_storage(self) -> None:
        try:
            self.store.clear()
            self.backend.sign_out()
        except Exception:
            logger.exception("Error clearing storage")

    def is_anonymous(self) -> bool:
        user = self.get_current_user()
        return user.is_anonymous if user else False

    def migrate_anonymous_user(self, email: str, password: str) -> User:
        """Register a real account and hand the anonymous user's workouts over to it."""
        current = self.get_current_user()
        if current is None or not current.is_anonymous:
            raise AuthenticationError("No anonymous user to migrate")

        try:
            user = self._register(email, password)
        except BackendError as e:
            if "already registered" in str(e):
                raise AuthenticationError("This email address is already in use") from e
            raise

        self.storage.reassign_user(current.id, user.id)
        self.store.remove(ANONYMOUS_USER_KEY)
        return user

    def get_session_token(self) -> str | None:
        session = self.backend.get_session()
        return session.access_token if session else None
