"""
Exceptions raised by the service layer.

Routes translate these into HTTP responses; fallback lookups log backend
failures and carry on instead of raising.
"""

from __future__ import annotations


class ClubHubError(Exception):
    pass


class NotFoundError(ClubHubError):
    pass


class NotInClubError(ClubHubError):
    def __init__(self, message: str = "User not associated with a club"):
        super().__init__(message)


class PermissionDenied(ClubHubError):
    pass


class AuthenticationError(ClubHubError):
    pass


class AlreadyRegistered(ClubHubError):
    pass


class InvalidTeamCode(ClubHubError):
    def __init__(self, message: str = "Invalid team access code"):
        super().__init__(message)


class InvalidOccurrenceId(ClubHubError):
    pass


class ValidationFailed(ClubHubError):
    pass
