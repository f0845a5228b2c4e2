"""
Cafeteria Queue — Business errors

All four kinds are caller-caused and reported synchronously. Storage failures
are never wrapped in these; they propagate as system errors.
"""


class QueueError(Exception):
    """Base class for rejected booking/queue operations."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(QueueError):
    """A referenced slot, booking or menu item does not exist."""


class ForbiddenError(QueueError):
    """The caller does not own the booking."""


class InvalidStateError(QueueError):
    """The requested transition is illegal for the booking's current status."""

    def __init__(self, detail: str, status: str | None = None):
        super().__init__(detail)
        self.status = status


class CapacityExceededError(QueueError):
    """The slot was already full when the booking was attempted."""
