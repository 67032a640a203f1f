"""Core exceptions raised by services and translated to HTTP errors by the API."""

from typing import Optional


class RelsyncException(Exception):
    """Base exception for service-level errors."""

    def __init__(self, message: Optional[str] = None):
        """Store the message."""
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)


class NotFoundException(RelsyncException):
    """Requested resource was not found."""


class InvalidInputException(RelsyncException):
    """Input failed validation."""


class InvalidStateException(RelsyncException):
    """Operation is not allowed in the resource's current state."""


class UnauthorizedException(RelsyncException):
    """Credentials were missing or did not match."""
