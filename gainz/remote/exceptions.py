"""Backend client exceptions."""


class BackendError(Exception):
    """Base exception for managed backend errors."""
    pass


class AuthenticationError(BackendError):
    """Raised when authentication fails."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when the session can no longer be refreshed."""
    pass


class APIError(BackendError):
    """Raised when a REST or RPC call fails."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
