"""Error kinds raised by the bookmark services.

Every error carries the HTTP status the API answers with and a short machine
readable ``code``; the app factory registers a single handler for the base
class.
"""


class ShelfmarkError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(ShelfmarkError):
    """A required field is missing or empty."""

    code = "invalid_input"


class MalformedURLError(InvalidInputError):
    """The URL could not be parsed or lacks a scheme or host."""

    code = "malformed_url"


class ValidationError(ShelfmarkError):
    """The request is well formed but breaks a business rule."""

    code = "validation_error"


class NotFoundError(ShelfmarkError):
    status_code = 404
    code = "not_found"


class StorageError(ShelfmarkError):
    """A unit of work could not complete and was rolled back."""

    status_code = 500
    code = "storage_error"


class ConflictError(StorageError):
    """A unique constraint would be violated by the write."""

    status_code = 409
    code = "conflict"
