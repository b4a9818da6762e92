"""
Domain errors raised by the post lifecycle services.

The API layer maps each kind to an HTTP status in ``main.py``.
"""


class BlogError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BlogError):
    """A referenced post, version, category or tag does not exist."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ValidationFailedError(BlogError):
    """Input violates a domain rule."""


class InvalidScheduledAtError(ValidationFailedError):
    """Scheduling requested without a future publication time."""


class AlreadyExistsError(BlogError):
    """A unique field collides with an existing record."""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A record with {field} '{value}' already exists")


class InvalidTransitionError(BlogError):
    """The requested status change is not in the transition table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition post from {current} to {target}")


class BatchLimitExceededError(BlogError):
    """Batch input is larger than the configured maximum."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Batch operation limited to {limit} items")


class ConflictError(BlogError):
    """A concurrent writer committed first."""
