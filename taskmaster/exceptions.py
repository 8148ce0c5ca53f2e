"""Domain errors raised by the store, the dispatcher and the reminder job.

The HTTP layer maps them to status codes in ``api/errors.py``.
"""


class TaskmasterError(Exception):
    """Base class for all application errors."""


class ValidationError(TaskmasterError):
    """A required field is missing or malformed."""


class NotFoundError(TaskmasterError):
    """Unknown user, device, task or subscription."""


class StorageError(TaskmasterError):
    """The persistence layer failed; the operation was rolled back."""


class DeliveryError(TaskmasterError):
    """Push delivery failed for a transient or unknown reason."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SubscriptionGoneError(DeliveryError):
    """The push service reports the endpoint as permanently invalid (404/410)."""
