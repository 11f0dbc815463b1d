"""
Error kinds raised by the service layer.

Services signal failures by raising subclasses of ``ServiceError``.
Because ``ServiceError`` derives from ``ValueError`` existing
``except ValueError`` handlers keep working, while the HTTP layer can
use ``status_code`` to pick the response status without inspecting
message text.
"""

from fastapi import status


class ServiceError(ValueError):
    """Base class for business and storage errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """A game, review, user or list entry does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """The write would violate a uniqueness rule (duplicate review, game already listed)."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(ServiceError):
    """Ownership or role check failed."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidInputError(ServiceError):
    """Input rejected by a business rule that schema validation cannot express."""

    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(ServiceError):
    """Base class for failures of the storage backend."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageConflictError(StorageError):
    """The atomic unit could not acquire or commit because of concurrent writers.

    This is the only error kind that callers may retry.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StorageFailureError(StorageError):
    """The storage backend is unreachable or returned an unexpected error."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
