from typing import Optional


class VigilError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidArgument(VigilError):
    """Missing or malformed caller input. Raised before any store write."""

    status_code = 400


class NotFound(VigilError):
    status_code = 404


class Internal(VigilError):
    """Store or unexpected failure.

    `details` keeps the original message for operators; it is not assumed safe
    to show to end users.
    """

    status_code = 500
