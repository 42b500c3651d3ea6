from gainz.remote.client import BackendClient
from gainz.remote.exceptions import APIError
from gainz.services.exceptions import NotAuthenticatedError

UNIQUE_VIOLATION = "23505"


def is_duplicate_error(error: APIError) -> bool:
    return error.code == UNIQUE_VIOLATION or "duplicate" in str(error)


class BackendService:
    """Shared plumbing for services that talk to the backend on the user's behalf."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def _user_id(self) -> str:
        session = self.backend.get_session()
        if session is None:
            raise NotAuthenticatedError("User not authenticated")
        return session.user_id
