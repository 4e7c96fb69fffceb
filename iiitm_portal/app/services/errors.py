from __future__ import annotations


class PortalError(Exception):
    """Base class for errors surfaced to the user by a view."""

    message = "Something went wrong."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(PortalError):
    message = "Please fill in all required fields."


class DataAccessError(PortalError):
    message = "The request to the data store failed."


class NotFoundError(DataAccessError):
    message = "The requested record does not exist."


class TransitionError(PortalError):
    message = "That status change is not allowed."


class AuthError(PortalError):
    message = "Authentication failed."


class PermissionDenied(PortalError):
    message = "You do not have permission to perform this action."
