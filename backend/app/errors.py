from typing import List, Optional


class RoomValidationError(ValueError):
    """Bad room-creation input. Fatal, never retried or routed to a fallback."""

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = details or [message]


class MalformedResponseError(ValueError):
    """The model answered, but nothing usable could be read out of it."""


class RemoteBackendError(RuntimeError):
    """The remote room service answered with an error or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
