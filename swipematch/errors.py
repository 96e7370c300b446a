"""Errors raised by the connection engine.

All of them are expected outcomes that callers can act on. The HTTP layer maps
each class to a status code through ``status_code``.
"""


class ConnectionEngineError(Exception):
    """Base class for engine errors."""

    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


class NotFound(ConnectionEngineError):
    """Referenced creator, member or connection does not exist."""

    status_code = 404


class AlreadySwiped(ConnectionEngineError):
    """A member swipe is already recorded for this pair."""

    status_code = 409


class InvalidState(ConnectionEngineError):
    """The connection's current status forbids the operation."""

    status_code = 409


class Unauthorized(ConnectionEngineError):
    """The actor is not a participant in the connection."""

    status_code = 403


class ConstraintViolation(ConnectionEngineError):
    """Duplicate pair or exhausted optimistic-concurrency retries."""

    status_code = 409


class InvalidSwipe(ConnectionEngineError):
    """Swipe direction or super-like combination is not allowed."""

    status_code = 422


class InvalidEvent(ConnectionEngineError):
    """Engagement event payload is malformed."""

    status_code = 422
