"""Error taxonomy for the recognition engine."""


class RecognitionError(Exception):
    """Base class for every error the engine raises to its callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RecognitionError):
    """Malformed or out-of-range input."""

    status_code = 400


class ConflictError(RecognitionError):
    """The request conflicts with a rule on the involved users, e.g. self-recognition."""

    status_code = 409


class PermissionDeniedError(RecognitionError):
    """A role or ownership check failed."""

    status_code = 403


class NotFoundError(RecognitionError):
    """The record is absent or the viewer may not read it.

    The two cases share one error. A caller cannot tell an unreadable
    record from a missing one.
    """

    status_code = 404


class PersistenceError(RecognitionError):
    """A store call failed. Never retried by the engine."""

    status_code = 503


class NotificationError(RecognitionError):
    """Fanout publish failed. Absorbed inside creation."""
