"""
Error kinds raised by the services. Routers map them to HTTP status codes:
  NotFoundError            → 404
  InvalidInputError        → 400
  ConcurrencyConflictError → 409
"""


class ClassmateError(Exception):
    """Base class for all service-level errors."""


class NotFoundError(ClassmateError):
    pass


class InvalidInputError(ClassmateError):
    pass


class ConcurrencyConflictError(ClassmateError):
    """A concurrent write to the same user's rating row won the race."""

    def __init__(self, user_id: str, expected_version: int):
        super().__init__(
            f"Rating state for user {user_id} changed concurrently "
            f"(expected version {expected_version})"
        )
        self.user_id = user_id
        self.expected_version = expected_version
