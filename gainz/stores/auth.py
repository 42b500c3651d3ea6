import logging

from gainz.schemas import User
from gainz.services.auth import AuthService
from gainz.stores.base import Store, synchronized

logger = logging.getLogger(__name__)

# (substring of the backend message, message shown to the user)
SIGN_UP_ERRORS = [
    ("already registered", "This email address is already in use"),
    ("already in use", "This email address is already in use"),
    ("Invalid email", "Invalid email address"),
    ("Password", "Password must be at least 6 characters"),
]
SIGN_IN_ERRORS = [
    ("Invalid login credentials", "Incorrect email or password"),
    ("Email not confirmed", "Please confirm your email"),
]


def _friendly(error: Exception, table: list[tuple[str, str]], default: str) -> str:
    message = str(error)
    return next((friendly for needle, friendly in table if needle in message), default)


class AuthStore(Store):
    def __init__(self, auth: AuthService):
        super().__init__()
        self.auth = auth
        self.user: User | None = None
        self.is_loading = False
        self.is_authenticated = False
        self.is_anonymous = False
        self.is_initialized = False
        self.error: str | None = None
        self.show_welcome = False

    def _signed_in(self, user: User) -> None:
        self.set_state(user=user, is_authenticated=True, is_anonymous=user.is_anonymous)

    @synchronized
    def set_show_welcome(self, show: bool) -> None:
        self.set_state(show_welcome=show)

    @synchronized
    def initialize_auth(self) -> None:
        if self.is_loading or self.is_initialized:
            return

        self.set_state(is_loading=True, error=None)
        try:
            user = self.auth.get_current_user()
            if user is not None:
                self._signed_in(user)
            self.set_state(is_initialized=True)
        except Exception:
            logger.exception("Error initializing auth")
            self.set_state(
                error="Could not initialize authentication",
                user=None,
                is_authenticated=False,
                is_anonymous=False,
                is_initialized=True,
            )
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def sign_in_anonymously(self) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self._signed_in(self.auth.sign_in_anonymously())
        except Exception:
            self.set_state(error="Anonymous sign in failed")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def sign_up(self, email: str, password: str) -> None:
        """Register; an anonymous user keeps their local workouts."""
        self.set_state(is_loading=True, error=None)
        try:
            if self.is_anonymous:
                user = self.auth.migrate_anonymous_user(email, password)
            else:
                user = self.auth.sign_up(email, password)
            self._signed_in(user)
        except Exception as e:
            logger.error("Error signing up: %s", e)
            self.set_state(error=_friendly(e, SIGN_UP_ERRORS, "Sign up failed"))
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def sign_in(self, email: str, password: str) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self._signed_in(self.auth.sign_in(email, password))
        except Exception as e:
            logger.error("Error signing in: %s", e)
            self.set_state(error=_friendly(e, SIGN_IN_ERRORS, "Sign in failed"))
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def sign_out(self) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self.auth.sign_out()
            self.set_state(user=None, is_authenticated=False, is_anonymous=False, is_initialized=False)
        except Exception:
            logger.exception("Error signing out")
            self.set_state(error="Sign out failed")
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def migrate_to_real_account(self, email: str, password: str) -> None:
        self.set_state(is_loading=True, error=None)
        try:
            self._signed_in(self.auth.migrate_anonymous_user(email, password))
        except Exception as e:
            logger.error("Error migrating to real account: %s", e)
            self.set_state(error="Could not create the account")
            raise
        finally:
            self.set_state(is_loading=False)

    @synchronized
    def clear_error(self) -> None:
        self.set_state(error=None)
