"""Service-level errors surfaced to stores and routers."""


class ServiceError(Exception):
    pass


class NotAuthenticatedError(ServiceError):
    """Raised when an operation needs a signed-in backend session."""
    pass


class NotFoundError(ServiceError):
    pass


class ConflictError(ServiceError):
    """Raised when an intent clashes with current state (e.g. an active program)."""
    pass
