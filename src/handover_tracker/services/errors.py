"""
handover_tracker.services.errors

Domain exceptions raised by the service layer.

The API layer maps each type to an HTTP status in `handover_tracker.api.errors`.
"""

from __future__ import annotations

from typing import Any


class HandoverError(Exception):
    """
    Base class for expected, user-facing failures.

    Keyword arguments become extra fields of the error body.
    """

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra


class NotFoundError(HandoverError):
    pass


class AccessDeniedError(HandoverError):
    pass


class InvalidTransitionError(HandoverError):
    pass


class ConflictError(HandoverError):
    pass


class InvalidRequestError(HandoverError):
    pass


class SyncConfigurationError(HandoverError):
    """Google integration settings are missing or malformed."""


class ExternalServiceError(HandoverError):
    """A Google API call failed while serving the request."""
