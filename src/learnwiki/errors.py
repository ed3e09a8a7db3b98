"""Error taxonomy shared by the storage layer, job engine and API."""

from __future__ import annotations


class WikiError(Exception):
    """Base exception for learnwiki errors.

    Carries the HTTP status the API layer should answer with.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WikiError):
    """Raised when input is malformed or missing required fields."""

    status_code = 400


class NotFoundError(WikiError):
    """Raised when a lookup by id finds nothing and the caller needs it."""

    status_code = 404


class ConflictError(WikiError):
    """Raised when an operation collides with existing state."""

    status_code = 409


class ProtectedLibraryError(WikiError):
    """Raised when trying to delete the default library."""

    status_code = 403


class GenerationError(WikiError):
    """Raised when the content generator fails, times out or returns garbage."""

    status_code = 502


class StorageUnavailableError(WikiError):
    """Raised when the underlying SQLite store cannot be read or written."""

    status_code = 503
