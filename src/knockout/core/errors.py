"""Exception taxonomy for the session engine."""


class KnockoutError(Exception):
    """Base class for all engine errors."""

    pass


class ConflictError(KnockoutError):
    """
    The requested transition conflicts with current state.

    Raised when a session is created while another one is in progress
    (``session_id`` then names the active session, when known), and when a
    completed session is completed or discarded again.
    """

    def __init__(self, message: str, session_id: str | None = None):
        super().__init__(message)
        self.session_id = session_id


class NotFoundError(KnockoutError):
    """A session, routine, routine day or exercise is missing or not owned by the caller."""

    pass


class ValidationError(KnockoutError):
    """Raised when input data fails validation."""

    pass
