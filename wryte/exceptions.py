"""
Error taxonomy for wryte services.

Views translate these into HTTP responses:

    NotFound            -> 404
    Unauthorized        -> redirect with an error message
    ValidationError     -> form errors / 400
    ConstraintViolation -> generic retry message / 409
"""


class WryteError(Exception):
    """Base class for errors raised by wryte services."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(WryteError):
    """A post, comment, reply or reaction target does not exist."""

    default_message = "Not found."


class Unauthorized(WryteError):
    """The acting user does not own the object being changed."""

    default_message = "You are not allowed to change this."


class ValidationError(WryteError):
    """Input failed validation (missing title, empty content, bad type)."""

    default_message = "Invalid input."


class ConstraintViolation(WryteError):
    """A database constraint rejected the write."""
